"""
assessment-engine: clinical questionnaire scoring and lead routing.

One state machine for every surface that runs a patient assessment, from
greeting to scored result and clinician lead.
"""

__version__ = "0.1.0"

from .errors import (
    AssessmentError,
    QuizNotFound,
    InvalidAnswer,
    ValidationError,
    SubmissionError,
    NotificationError,
)
from .config import config
from .quiz import CATALOG, QuizCatalog, get_quiz, score_answers, Answer, QuizResult, Severity
from .submission import ContactInfo, LeadSubmissionCoordinator, SubmissionContext
from .sharing import resolve_doctor_id, StaticShareKeyResolver, LeadHistoryShareKeyResolver
from .conversation import (
    AssessmentEngine,
    ConversationHandle,
    ConversationOptions,
    ConversationState,
    ContactOutcome,
    ChoicePrompt,
    ContactForm,
    ResultView,
    Done,
    start_conversation,
)

__all__ = [
    # Errors
    "AssessmentError",
    "QuizNotFound",
    "InvalidAnswer",
    "ValidationError",
    "SubmissionError",
    "NotificationError",
    # Config
    "config",
    # Quiz
    "CATALOG",
    "QuizCatalog",
    "get_quiz",
    "score_answers",
    "Answer",
    "QuizResult",
    "Severity",
    # Submission
    "ContactInfo",
    "LeadSubmissionCoordinator",
    "SubmissionContext",
    "resolve_doctor_id",
    "StaticShareKeyResolver",
    "LeadHistoryShareKeyResolver",
    # Conversation
    "AssessmentEngine",
    "ConversationHandle",
    "ConversationOptions",
    "ConversationState",
    "ContactOutcome",
    "ChoicePrompt",
    "ContactForm",
    "ResultView",
    "Done",
    "start_conversation",
]
