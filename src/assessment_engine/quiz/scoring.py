"""
Quiz scoring

Pure functions mapping a quiz id and its ordered answers to a QuizResult.
Each quiz family keeps its own rule; thresholds are clinically defined per
instrument and are not merged into one curve.
"""

import logging
import math
import re
from typing import Optional, Sequence

from .catalog import CATALOG, QuizCatalog
from .schema import (
    Answer,
    BandBasis,
    CountRule,
    PointSumRule,
    Question,
    QuizDefinition,
    QuizResult,
    SeverityBand,
)

logger = logging.getLogger(__name__)

# "2 - Moderate Problem" or "Sometimes (2)"
_LEADING_WEIGHT = re.compile(r"^\s*(\d+)\s*-")
_PAREN_WEIGHT = re.compile(r"\((\d+)\)\s*$")


def round_half_up(value: float) -> int:
    """Round .5 away from zero for positive values (Python's round() is banker's)."""
    return int(math.floor(value + 0.5))


def parse_label_weight(label: str) -> Optional[int]:
    """Extract a numeric weight embedded in an option label, if any."""
    match = _LEADING_WEIGHT.match(label) or _PAREN_WEIGHT.search(label)
    if match:
        return int(match.group(1))
    return None


def select_band(rule_bands: Sequence[SeverityBand], normal: SeverityBand, value: int) -> SeverityBand:
    """
    Pick the highest band whose inclusive lower bound is met.

    Falls back to the rule's normal band.
    """
    for band in sorted(rule_bands, key=lambda b: b.minimum, reverse=True):
        if value >= band.minimum:
            return band
    return normal


def _question_for(quiz: QuizDefinition, index: int, answer: Answer) -> Optional[Question]:
    # Answers correspond to questions by position; ids are the fallback
    if index < quiz.question_count:
        question = quiz.questions[index]
        if question.id == answer.question_id:
            return question
    return quiz.question_by_id(answer.question_id)


def answer_weight(quiz: QuizDefinition, index: int, answer: Answer) -> int:
    """
    Weight of a single answer.

    Unknown or malformed labels contribute 0 rather than failing the quiz.
    """
    question = _question_for(quiz, index, answer)
    if question is not None:
        option = question.option_for(answer.selected_label)
        if option is not None:
            return option.value

    weight = parse_label_weight(answer.selected_label)
    if weight is None:
        logger.debug(
            f"{quiz.id}: unparseable answer {answer.selected_label!r} "
            f"for question {answer.question_id}, counting as 0"
        )
        return 0
    return weight


def _score_point_sum(quiz: QuizDefinition, rule: PointSumRule, answers: Sequence[Answer]) -> QuizResult:
    weights = [answer_weight(quiz, i, a) for i, a in enumerate(answers)]
    total = sum(weights) * rule.multiplier

    if rule.per_question_max is not None:
        max_possible = len(answers) * rule.per_question_max * rule.multiplier
    else:
        max_possible = quiz.max_score

    percentage = round_half_up(total / max_possible * 100) if max_possible else 0
    value = percentage if rule.basis == BandBasis.PERCENTAGE else total
    band = select_band(rule.bands, rule.normal, value)

    logger.debug(f"{quiz.id}: weights={weights} total={total} pct={percentage} -> {band.severity.value}")

    return QuizResult(
        score=total,
        severity=band.severity,
        interpretation=band.interpretation,
        summary=band.summary,
        percentage=percentage,
        max_possible=max_possible,
    )


def _score_count(quiz: QuizDefinition, rule: CountRule, answers: Sequence[Answer]) -> QuizResult:
    needle = rule.match.lower()
    count = sum(1 for a in answers if needle in a.selected_label.lower())
    total_questions = quiz.question_count

    percentage = round_half_up(count / total_questions * 100) if total_questions else 0
    band = select_band(rule.bands, rule.normal, percentage)

    logger.debug(f"{quiz.id}: {count}/{total_questions} matched -> {band.severity.value}")

    return QuizResult(
        score=count,
        severity=band.severity,
        interpretation=band.interpretation,
        summary=band.summary,
        percentage=percentage,
        max_possible=total_questions,
    )


def score_answers(
    quiz_id: str,
    answers: Sequence[Answer],
    catalog: QuizCatalog = CATALOG,
) -> QuizResult:
    """
    Score a completed quiz.

    Args:
        quiz_id: Quiz id (any case)
        answers: Answers in question order
        catalog: Catalog to resolve the quiz from

    Returns:
        QuizResult with score, severity and canned copy

    Raises:
        QuizNotFound: If the quiz id is unknown
    """
    quiz = catalog.get(quiz_id)
    rule = quiz.rule

    if isinstance(rule, PointSumRule):
        return _score_point_sum(quiz, rule, answers)
    if isinstance(rule, CountRule):
        return _score_count(quiz, rule, answers)
    raise TypeError(f"Unsupported scoring rule for {quiz.id}: {type(rule).__name__}")


def severity_for(quiz_id: str, value: int, catalog: QuizCatalog = CATALOG) -> SeverityBand:
    """Band a precomputed percentage (or raw score, per the quiz's basis)."""
    rule = catalog.get(quiz_id).rule
    return select_band(rule.bands, rule.normal, value)
