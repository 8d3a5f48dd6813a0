"""
Command-line interface for assessment-engine

Lists and scores quizzes, and runs a full assessment in the terminal as
one more presentation surface over the shared conversation engine.
"""

import asyncio
import sys
import argparse
import json
import logging
from typing import Callable, List, Optional

from .backends import get_lead_store, get_notifier
from .config import config
from .conversation import (
    AssessmentEngine,
    ChoicePrompt,
    ContactForm,
    ConversationHandle,
    ConversationOptions,
    Done,
    ResultView,
)
from .errors import QuizNotFound
from .quiz.catalog import CATALOG
from .quiz.schema import Answer
from .quiz.scoring import score_answers


def print_quiz_list():
    """Print available quizzes."""
    print(f"{'ID':<10} {'QUESTIONS':>9}  TITLE")
    for quiz in CATALOG:
        print(f"{quiz.id:<10} {quiz.question_count:>9}  {quiz.title}")


def print_quiz(quiz_id: str, as_json: bool = False):
    """Print a quiz's questions and options."""
    quiz = CATALOG.get(quiz_id)
    if as_json:
        print(quiz.to_json())
        return

    print(f"\n{quiz.title}")
    print(quiz.description)
    print("=" * 60)
    for question in quiz.questions:
        print(f"\n{question.id}. {question.text}")
        for option in question.options:
            print(f"    [{option.value}] {option.label}")
    print()


def run_score(quiz_id: str, labels: List[str], as_json: bool = False) -> int:
    """Score answers given in question order. Returns an exit code."""
    quiz = CATALOG.get(quiz_id)
    if len(labels) != quiz.question_count:
        print(
            f"{quiz.id} has {quiz.question_count} questions, got {len(labels)} answers",
            file=sys.stderr,
        )
        return 1

    answers = [
        Answer(question_id=q.id, selected_label=label)
        for q, label in zip(quiz.questions, labels)
    ]
    result = score_answers(quiz.id, answers)

    if as_json:
        print(json.dumps({"quiz_type": quiz.id, **result.to_dict()}, indent=2))
    else:
        print(f"{quiz.title}")
        print(f"  Score:    {result.score} / {result.max_possible} ({result.percentage}%)")
        print(f"  Severity: {result.severity.value}")
        print(f"  {result.interpretation}")
    return 0


def _choose(prompt: ChoicePrompt, read: Callable[[str], str]) -> str:
    """Show numbered options and map a number (or exact label) back to a label."""
    if prompt.error:
        print(f"  ! {prompt.error}")
    if prompt.question_count:
        print(f"\nQuestion {prompt.question_number} of {prompt.question_count}")
    print(prompt.text)
    for i, option in enumerate(prompt.options, start=1):
        print(f"  {i}. {option}")

    raw = read("> ").strip()
    if raw.isdigit() and 1 <= int(raw) <= len(prompt.options):
        return prompt.options[int(raw) - 1]
    return raw


async def run_conversation(
    handle: ConversationHandle,
    read: Callable[[str], str] = input,
) -> ConversationHandle:
    """Drive a conversation from terminal input until it finishes."""
    while True:
        prompt = handle.current_prompt()

        if isinstance(prompt, ChoicePrompt):
            handle.submit_answer(_choose(prompt, read))

        elif isinstance(prompt, ContactForm):
            if prompt.error:
                print(f"  ! {prompt.error}")
            for message in prompt.errors.values():
                print(f"    - {message}")
            print(f"\n{prompt.text}")
            contact = {
                "name": read("Name: "),
                "email": read("Email: "),
                "phone": read("Phone: " if prompt.require_phone else "Phone (optional): "),
            }
            await handle.submit_contact(contact)

        elif isinstance(prompt, ResultView):
            result = prompt.result
            print(f"\n{prompt.text}")
            print(f"  Score:    {result.score}")
            print(f"  Severity: {result.severity.value}")
            print(f"  {result.interpretation}")
            print(f"  {result.summary}")
            handle.close()

        elif isinstance(prompt, Done):
            print(f"\n{prompt.text}")
            return handle


def main(argv: Optional[List[str]] = None):
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="assessment-engine",
        description="Clinical questionnaire scoring and lead capture",
        epilog="Example: assessment-engine take NOSE --surface card"
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable debug logging"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    subparsers.add_parser("list", help="List available quizzes")

    show_parser = subparsers.add_parser("show", help="Show a quiz's questions")
    show_parser.add_argument("quiz", help="Quiz id (e.g. NOSE)")
    show_parser.add_argument("--json", action="store_true", help="Output as JSON")

    score_parser = subparsers.add_parser("score", help="Score a full list of answers")
    score_parser.add_argument("quiz", help="Quiz id (e.g. NOSE)")
    score_parser.add_argument("answers", nargs="+", help="Option labels in question order")
    score_parser.add_argument("--json", action="store_true", help="Output as JSON")

    take_parser = subparsers.add_parser("take", help="Take an assessment in the terminal")
    take_parser.add_argument("quiz", help="Quiz id (e.g. NOSE)")
    take_parser.add_argument("--share-key", help="Share key from the clinician's link")
    take_parser.add_argument("--doctor", help="Explicit doctor id")
    take_parser.add_argument(
        "--surface",
        choices=list(ConversationOptions.SURFACES),
        default="chat",
        help="Surface policy to apply (default: chat)"
    )
    take_parser.add_argument(
        "--store",
        choices=["memory", "supabase"],
        default=config.store.backend,
        help=f"Lead store (default: {config.store.backend})"
    )
    take_parser.add_argument(
        "--notifier",
        choices=["log", "resend"],
        default=config.notify.backend,
        help=f"Clinician notifier (default: {config.notify.backend})"
    )
    take_parser.add_argument("--json", action="store_true", help="Print the final state as JSON")

    args = parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")

    if not args.command:
        parser.print_help()
        sys.exit(1)

    try:
        if args.command == "list":
            print_quiz_list()

        elif args.command == "show":
            print_quiz(args.quiz, as_json=args.json)

        elif args.command == "score":
            code = run_score(args.quiz, args.answers, as_json=args.json)
            if code:
                sys.exit(code)

        elif args.command == "take":
            async def run_take():
                store = get_lead_store(args.store)
                notifier = get_notifier(args.notifier)
                engine = AssessmentEngine(store=store, notifier=notifier)
                options = ConversationOptions.for_surface(
                    args.surface,
                    share_key=args.share_key,
                    doctor_id=args.doctor,
                )
                try:
                    handle = engine.start_conversation(args.quiz, options)
                    await run_conversation(handle)
                finally:
                    await store.close()
                    await notifier.close()

                if args.json:
                    print(json.dumps(handle.to_dict(), indent=2))

            asyncio.run(run_take())

    except QuizNotFound as e:
        print(f"{e.user_message} ({e.quiz_id})", file=sys.stderr)
        sys.exit(2)


if __name__ == "__main__":
    main()
