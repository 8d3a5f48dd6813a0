"""
Quiz system for assessment-engine

Catalog of clinical questionnaires and their scoring rules.
"""

from .schema import (
    Answer,
    BandBasis,
    CountRule,
    Option,
    PointSumRule,
    Question,
    QuizDefinition,
    QuizResult,
    Severity,
    SeverityBand,
)
from .catalog import CATALOG, QuizCatalog, get_quiz
from .scoring import score_answers, severity_for

__all__ = [
    "Answer",
    "BandBasis",
    "CountRule",
    "Option",
    "PointSumRule",
    "Question",
    "QuizDefinition",
    "QuizResult",
    "Severity",
    "SeverityBand",
    "CATALOG",
    "QuizCatalog",
    "get_quiz",
    "score_answers",
    "severity_for",
]
