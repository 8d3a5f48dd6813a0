"""
Assessment engine errors

Every error carries a canned, user-safe message. Surfaces show
``user_message``, never ``str(error)``.
"""

from typing import Optional


class AssessmentError(Exception):
    """Base exception for assessment engine errors."""
    user_message = "Something went wrong. Please try again."


class QuizNotFound(AssessmentError):
    """Requested quiz id is not in the catalog."""
    user_message = "This assessment is currently unavailable."

    def __init__(self, quiz_id: str):
        super().__init__(f"Unknown quiz: {quiz_id!r}")
        self.quiz_id = quiz_id


class InvalidAnswer(AssessmentError):
    """Answer is not one of the current question's options."""
    user_message = "Please select one of the options shown."

    def __init__(self, label: str, question_id: str):
        super().__init__(f"{label!r} is not an option for question {question_id}")
        self.label = label
        self.question_id = question_id


# Field-scoped messages for the contact form
FIELD_MESSAGES = {
    "name": "Please enter your name.",
    "email": "Please check your email address.",
    "phone": "Please enter your phone number.",
}


class ValidationError(AssessmentError):
    """Contact details failed validation."""
    user_message = "Please check the highlighted fields."

    def __init__(self, fields: dict[str, str]):
        names = ", ".join(sorted(fields))
        super().__init__(f"Invalid contact fields: {names}")
        self.fields = fields


class SubmissionError(AssessmentError):
    """Lead could not be persisted."""
    user_message = "We couldn't save your results. Please try again."

    def __init__(self, message: str, retryable: bool = True, cause: Optional[Exception] = None):
        super().__init__(message)
        self.retryable = retryable
        self.cause = cause


class NotificationError(AssessmentError):
    """Clinician notification failed. Logged only."""
    pass
