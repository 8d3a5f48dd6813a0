"""
Quiz schema and data structures

Defines quiz definitions, answers, results and the scoring rule variants
each quiz carries.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union
import json


class Severity(str, Enum):
    """Severity bands, lowest first."""
    NORMAL = "normal"
    MILD = "mild"
    MODERATE = "moderate"
    SEVERE = "severe"


class BandBasis(str, Enum):
    """What a rule's threshold bands are compared against."""
    PERCENTAGE = "percentage"
    SCORE = "score"


@dataclass(frozen=True)
class Option:
    """An answer option with its point weight."""
    label: str
    value: int

    def __post_init__(self):
        if self.value < 0:
            raise ValueError(f"Option {self.label!r} has negative value {self.value}")

    def to_dict(self) -> dict:
        return {"label": self.label, "value": self.value}

    @classmethod
    def from_dict(cls, data: dict) -> "Option":
        return cls(label=data["label"], value=int(data["value"]))


@dataclass(frozen=True)
class Question:
    """A single quiz question."""
    id: str
    text: str
    options: tuple[Option, ...]

    def __post_init__(self):
        if not self.options:
            raise ValueError(f"Question {self.id} has no options")

    @property
    def labels(self) -> list[str]:
        return [o.label for o in self.options]

    @property
    def max_value(self) -> int:
        return max(o.value for o in self.options)

    def option_for(self, label: str) -> Optional[Option]:
        """Exact-match lookup of an option by label."""
        for option in self.options:
            if option.label == label:
                return option
        return None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "text": self.text,
            "options": [o.to_dict() for o in self.options],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Question":
        return cls(
            id=str(data["id"]),
            text=data["text"],
            options=tuple(Option.from_dict(o) for o in data.get("options", [])),
        )


@dataclass(frozen=True)
class SeverityBand:
    """Inclusive lower bound for a severity, with its canned copy."""
    severity: Severity
    minimum: int
    interpretation: str
    summary: str


@dataclass(frozen=True)
class PointSumRule:
    """
    Sum option weights, then band by percentage or raw score.

    When per_question_max is set the percentage is taken over
    len(answers) * per_question_max instead of the quiz's max_score.
    The summed weights are scaled by multiplier before banding.
    """
    bands: tuple[SeverityBand, ...]
    normal: SeverityBand
    basis: BandBasis = BandBasis.PERCENTAGE
    per_question_max: Optional[int] = None
    multiplier: int = 1

    kind = "point_sum"


@dataclass(frozen=True)
class CountRule:
    """Count answers whose label contains `match`, band by percentage."""
    bands: tuple[SeverityBand, ...]
    normal: SeverityBand
    match: str = "yes"

    kind = "count"


ScoringRule = Union[PointSumRule, CountRule]


@dataclass(frozen=True)
class QuizDefinition:
    """
    An immutable, clinically defined questionnaire.

    max_score is written literally in the catalog; tests check it against
    the options rather than computing it here.
    """
    id: str
    title: str
    description: str
    max_score: int
    questions: tuple[Question, ...]
    rule: ScoringRule

    def __post_init__(self):
        if not self.questions:
            raise ValueError(f"Quiz {self.id} has no questions")

    @property
    def question_count(self) -> int:
        return len(self.questions)

    def question_by_id(self, question_id: str) -> Optional[Question]:
        for question in self.questions:
            if question.id == question_id:
                return question
        return None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "max_score": self.max_score,
            "scoring": self.rule.kind,
            "questions": [q.to_dict() for q in self.questions],
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2)


@dataclass(frozen=True)
class Answer:
    """One recorded answer. Created in question order, never changed."""
    question_id: str
    selected_label: str

    def to_dict(self) -> dict:
        return {"question_id": self.question_id, "answer": self.selected_label}

    @classmethod
    def from_dict(cls, data: dict) -> "Answer":
        # Stored leads use "answer"; accept "selected_label" too
        label = data.get("answer", data.get("selected_label", ""))
        return cls(question_id=str(data["question_id"]), selected_label=label)


@dataclass
class QuizResult:
    """Computed outcome of a completed quiz."""
    score: int
    severity: Severity
    interpretation: str
    summary: str
    percentage: int = 0
    max_possible: int = 0

    def to_dict(self) -> dict:
        return {
            "score": self.score,
            "severity": self.severity.value,
            "interpretation": self.interpretation,
            "summary": self.summary,
            "percentage": self.percentage,
            "max_possible": self.max_possible,
        }


def answers_to_dicts(answers: list[Answer]) -> list[dict]:
    """Serialize answers for storage alongside a lead."""
    return [a.to_dict() for a in answers]


def answers_from_dicts(data: list[dict]) -> list[Answer]:
    """Rebuild answers from a stored lead, e.g. for re-scoring."""
    return [Answer.from_dict(d) for d in data]
