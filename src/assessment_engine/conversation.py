"""
Assessment conversation

The single state machine every presentation surface drives:

1. Greeting (accept, decline, or ask about the assessment)
2. Quiz, one question at a time, options only
3. Contact capture, validated, then scored and submitted
4. Results, then terminal

Surfaces render current_prompt() and feed user events back through
submit_answer() and submit_contact().
"""

import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Union

from .backends.base import LeadSource, LeadStore, Notifier, ShareKeyResolver
from .backends.memory import InMemoryLeadStore, LoggingNotifier
from .errors import AssessmentError, InvalidAnswer, SubmissionError, ValidationError
from .quiz.catalog import CATALOG, QuizCatalog
from .quiz.schema import Answer, QuizDefinition, QuizResult
from .quiz.scoring import score_answers
from .sharing import LeadHistoryShareKeyResolver, resolve_doctor_id
from .submission import ContactInfo, LeadSubmissionCoordinator, SubmissionContext

logger = logging.getLogger(__name__)


class ConversationState(str, Enum):
    """Where a conversation is."""
    GREETING = "greeting"
    QUIZ = "quiz"
    CONTACT_CAPTURE = "contact_capture"
    RESULTS = "results"
    TERMINAL = "terminal"


# Greeting choices
START = "Yes, let's start"
MORE_INFO = "Tell me more about this assessment"
LATER = "Maybe later"
GREETING_OPTIONS = [START, MORE_INFO, LATER]


@dataclass
class ChoicePrompt:
    """A message with a fixed set of options (greeting or question)."""
    text: str
    options: list[str]
    question_id: Optional[str] = None
    question_number: int = 0
    question_count: int = 0
    error: Optional[str] = None

    @property
    def progress(self) -> int:
        """Percent of questions reached, 0 during the greeting."""
        if not self.question_count:
            return 0
        return round(self.question_number / self.question_count * 100)


@dataclass
class ContactForm:
    """Request for contact details."""
    text: str
    require_phone: bool = False
    errors: dict[str, str] = field(default_factory=dict)
    error: Optional[str] = None


@dataclass
class ResultView:
    """Scored result ready to show."""
    text: str
    result: QuizResult
    lead_id: str


@dataclass
class Done:
    """Nothing more to do."""
    text: str


Prompt = Union[ChoicePrompt, ContactForm, ResultView, Done]


@dataclass
class ConversationOptions:
    """Per-conversation settings a surface passes in."""
    share_key: Optional[str] = None
    doctor_id: Optional[str] = None
    require_phone: bool = False
    lead_source: Optional[LeadSource] = None

    # Surface presets: (lead source, phone required)
    SURFACES = {
        "chat": (LeadSource.WEBSITE, False),
        "embed": (LeadSource.EMBED, False),
        "shared": (LeadSource.SHARED_LINK, False),
        "card": (LeadSource.CARD_PAGE, True),
    }

    @classmethod
    def for_surface(cls, surface: str, **kwargs) -> "ConversationOptions":
        """Options preset for a presentation surface ('chat', 'embed', 'shared', 'card')."""
        if surface not in cls.SURFACES:
            raise ValueError(f"Unknown surface: {surface}. Valid options: {list(cls.SURFACES)}")
        source, require_phone = cls.SURFACES[surface]
        kwargs.setdefault("lead_source", source)
        kwargs.setdefault("require_phone", require_phone)
        return cls(**kwargs)

    def resolved_source(self) -> LeadSource:
        if self.lead_source is not None:
            return LeadSource(self.lead_source)
        return LeadSource.SHARED_LINK if self.share_key else LeadSource.WEBSITE


@dataclass
class ContactOutcome:
    """Result of a submit_contact() call."""
    ok: bool
    message: str
    result: Optional[QuizResult] = None
    lead_id: Optional[str] = None
    error: Optional[AssessmentError] = None


class ConversationHandle:
    """
    One user's run through an assessment.

    Owns its answers and result. Holds no external resources, so an
    abandoned handle needs no cleanup.
    """

    def __init__(
        self,
        quiz: QuizDefinition,
        coordinator: LeadSubmissionCoordinator,
        options: Optional[ConversationOptions] = None,
        resolver: Optional[ShareKeyResolver] = None,
        catalog: QuizCatalog = CATALOG,
    ):
        self.id = str(uuid.uuid4())
        self.quiz = quiz
        self.coordinator = coordinator
        self.options = options or ConversationOptions()
        self.resolver = resolver
        self.catalog = catalog

        self.state = ConversationState.GREETING
        self.question_index = 0
        self.answers: list[Answer] = []
        self.result: Optional[QuizResult] = None
        self.lead_id: Optional[str] = None

        self._about_shown = False
        self._prompt_error: Optional[str] = None
        self._field_errors: dict[str, str] = {}
        self._doctor_id: Optional[str] = None
        self._submission: Optional[asyncio.Future] = None
        self._outcome: Optional[ContactOutcome] = None
        self._contact_name = ""

    # ------------------------------------------------------------------
    # Prompts
    # ------------------------------------------------------------------

    def current_prompt(self) -> Prompt:
        """What the surface should show now."""
        if self.state == ConversationState.GREETING:
            return self._greeting_prompt()

        if self.state == ConversationState.QUIZ:
            question = self.quiz.questions[self.question_index]
            return ChoicePrompt(
                text=question.text,
                options=question.labels,
                question_id=question.id,
                question_number=self.question_index + 1,
                question_count=self.quiz.question_count,
                error=self._prompt_error,
            )

        if self.state == ConversationState.CONTACT_CAPTURE:
            return ContactForm(
                text="Great! Now I need some contact information to provide you with your results.",
                require_phone=self.options.require_phone,
                errors=dict(self._field_errors),
                error=self._prompt_error,
            )

        if self.state == ConversationState.RESULTS:
            return ResultView(
                text=f"Thank you, {self._contact_name}! Here are your {self.quiz.title} results.",
                result=self.result,
                lead_id=self.lead_id,
            )

        if self.lead_id is None:
            return Done("No problem! Feel free to come back when you're ready. Have a great day!")
        return Done("Your assessment is complete. Thank you!")

    def _greeting_prompt(self) -> ChoicePrompt:
        if self._about_shown:
            text = (
                f"The {self.quiz.title} is a clinically validated assessment tool used by "
                f"healthcare professionals. It takes {self.quiz.question_count} questions and "
                "gives you instant results you can discuss with your healthcare provider. "
                "Ready to start?"
            )
            options = [START, LATER]
        else:
            text = (
                f"Hi! I'm here to help you with the {self.quiz.title}. "
                "This quick questionnaire will help evaluate your symptoms. "
                "Would you like to begin?"
            )
            options = list(GREETING_OPTIONS)
        return ChoicePrompt(text=text, options=options, error=self._prompt_error)

    # ------------------------------------------------------------------
    # Answers
    # ------------------------------------------------------------------

    def submit_answer(self, label: str) -> None:
        """
        Handle an option selection.

        Invalid input re-prompts without advancing. Calls in states that
        don't take answers are ignored.
        """
        self._prompt_error = None

        if self.state == ConversationState.GREETING:
            self._handle_greeting(label)
        elif self.state == ConversationState.QUIZ:
            try:
                self._record_answer(label)
            except InvalidAnswer as e:
                logger.warning(f"Conversation {self.id}: {e}")
                self._prompt_error = e.user_message
        else:
            logger.debug(f"Conversation {self.id}: ignoring answer in state {self.state.value}")

    def _handle_greeting(self, label: str) -> None:
        if label == START:
            self.state = ConversationState.QUIZ
            self.question_index = 0
        elif label == MORE_INFO and not self._about_shown:
            self._about_shown = True
        elif label == LATER:
            self.state = ConversationState.TERMINAL
        else:
            self._prompt_error = InvalidAnswer.user_message

    def _record_answer(self, label: str) -> None:
        question = self.quiz.questions[self.question_index]
        if question.option_for(label) is None:
            raise InvalidAnswer(label, question.id)

        self.answers.append(Answer(question_id=question.id, selected_label=label))

        if self.question_index + 1 < self.quiz.question_count:
            self.question_index += 1
        else:
            self.state = ConversationState.CONTACT_CAPTURE

    # ------------------------------------------------------------------
    # Contact capture
    # ------------------------------------------------------------------

    async def submit_contact(self, contact: Union[ContactInfo, dict]) -> ContactOutcome:
        """
        Score the quiz and submit the lead.

        Repeated or concurrent calls share the first call's outcome, so at
        most one lead is created. A failed store keeps the conversation in
        contact capture with answers intact.
        """
        if isinstance(contact, dict):
            contact = ContactInfo.from_dict(contact)

        if self._outcome is not None and self._outcome.ok:
            return self._outcome
        if self._submission is not None:
            return await asyncio.shield(self._submission)

        if self.state != ConversationState.CONTACT_CAPTURE:
            return ContactOutcome(ok=False, message="Please finish the questions first.")

        loop = asyncio.get_running_loop()
        self._submission = loop.create_future()
        try:
            outcome = await self._submit(contact)
        except asyncio.CancelledError:
            self._submission.cancel()
            self._submission = None
            raise
        except Exception as e:
            # Waiters see the same error; mark it retrieved when nobody waits
            self._submission.set_exception(e)
            self._submission.exception()
            self._submission = None
            raise

        self._submission.set_result(outcome)
        if outcome.ok:
            self._outcome = outcome
        else:
            self._submission = None
        return outcome

    async def _submit(self, contact: ContactInfo) -> ContactOutcome:
        self._prompt_error = None
        self._field_errors = {}

        if self._doctor_id is None:
            self._doctor_id = await resolve_doctor_id(
                self.options.share_key,
                self.options.doctor_id,
                self.resolver,
                timeout=self.coordinator.timeout_seconds,
            )

        result = score_answers(self.quiz.id, self.answers, catalog=self.catalog)
        context = SubmissionContext(
            quiz_type=self.quiz.id,
            answers=list(self.answers),
            idempotency_key=self.id,
            lead_source=self.options.resolved_source(),
            doctor_id=self._doctor_id,
            share_key=self.options.share_key,
            require_phone=self.options.require_phone,
        )

        try:
            lead_id = await self.coordinator.submit(contact, result, context)
        except ValidationError as e:
            self._field_errors = dict(e.fields)
            self._prompt_error = e.user_message
            return ContactOutcome(ok=False, message=e.user_message, error=e)
        except SubmissionError as e:
            logger.warning(f"Conversation {self.id}: submission failed: {e}")
            self._prompt_error = e.user_message
            return ContactOutcome(ok=False, message=e.user_message, error=e)

        self.result = result
        self.lead_id = lead_id
        self._contact_name = contact.cleaned().name
        self.state = ConversationState.RESULTS

        return ContactOutcome(
            ok=True,
            message=result.interpretation,
            result=result,
            lead_id=lead_id,
        )

    def close(self) -> None:
        """Leave the results view. Only meaningful from RESULTS."""
        if self.state == ConversationState.RESULTS:
            self.state = ConversationState.TERMINAL

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "quiz_type": self.quiz.id,
            "state": self.state.value,
            "question_index": self.question_index,
            "answers": [a.to_dict() for a in self.answers],
            "result": self.result.to_dict() if self.result else None,
            "lead_id": self.lead_id,
        }


class AssessmentEngine:
    """
    Entry point for presentation surfaces.

    Wires the catalog, share key resolver and submission coordinator
    together and starts conversations.
    """

    def __init__(
        self,
        store: Optional[LeadStore] = None,
        notifier: Optional[Notifier] = None,
        resolver: Optional[ShareKeyResolver] = None,
        catalog: QuizCatalog = CATALOG,
        coordinator: Optional[LeadSubmissionCoordinator] = None,
    ):
        """
        Initialize engine.

        Args:
            store: Lead store (defaults to in-memory)
            notifier: Clinician notifier (defaults to logging)
            resolver: Share key resolver (defaults to looking up earlier leads)
            catalog: Quiz catalog
            coordinator: Prebuilt coordinator; overrides store/notifier
        """
        if coordinator is None:
            coordinator = LeadSubmissionCoordinator(
                store=store or InMemoryLeadStore(),
                notifier=notifier or LoggingNotifier(),
            )
        self.coordinator = coordinator
        self.resolver = resolver or LeadHistoryShareKeyResolver(coordinator.store)
        self.catalog = catalog

    def start_conversation(
        self,
        quiz_id: str,
        options: Optional[ConversationOptions] = None,
    ) -> ConversationHandle:
        """
        Start a conversation.

        Raises:
            QuizNotFound: If the quiz id is unknown
        """
        quiz = self.catalog.get(quiz_id)
        handle = ConversationHandle(
            quiz=quiz,
            coordinator=self.coordinator,
            options=options,
            resolver=self.resolver,
            catalog=self.catalog,
        )
        logger.debug(f"Started {quiz.id} conversation {handle.id}")
        return handle


# Convenience function for one-off conversations
def start_conversation(
    quiz_id: str,
    share_key: Optional[str] = None,
    doctor_id: Optional[str] = None,
    require_phone: bool = False,
    engine: Optional[AssessmentEngine] = None,
) -> ConversationHandle:
    """
    Start a conversation with minimal setup.

    Uses an in-memory engine unless one is passed in.
    """
    engine = engine or AssessmentEngine()
    options = ConversationOptions(
        share_key=share_key,
        doctor_id=doctor_id,
        require_phone=require_phone,
    )
    return engine.start_conversation(quiz_id, options)
