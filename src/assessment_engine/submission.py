"""
Lead submission

Validates captured contact details, then creates exactly one lead and sends
one clinician notification per conversation.
"""

import asyncio
import logging
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Optional

from .backends.base import (
    Lead, LeadSource, LeadStatus, LeadStore, LeadSummary, Notifier, lead_id_for
)
from .config import config
from .errors import FIELD_MESSAGES, NotificationError, SubmissionError, ValidationError
from .quiz.schema import Answer, QuizResult, answers_to_dicts

logger = logging.getLogger(__name__)


@dataclass
class ContactInfo:
    """Contact details captured after the quiz."""
    name: str
    email: str
    phone: Optional[str] = None

    def cleaned(self) -> "ContactInfo":
        phone = (self.phone or "").strip()
        return ContactInfo(
            name=(self.name or "").strip(),
            email=(self.email or "").strip(),
            phone=phone or None,
        )

    @classmethod
    def from_dict(cls, data: dict) -> "ContactInfo":
        return cls(
            name=data.get("name", ""),
            email=data.get("email", ""),
            phone=data.get("phone"),
        )


@dataclass
class SubmissionContext:
    """Everything about the conversation the lead needs besides contact details."""
    quiz_type: str
    answers: list[Answer]
    idempotency_key: str
    lead_source: LeadSource = LeadSource.WEBSITE
    doctor_id: Optional[str] = None
    share_key: Optional[str] = None
    require_phone: bool = False


def validate_contact(contact: ContactInfo, require_phone: bool = False) -> ContactInfo:
    """
    Check contact details.

    Returns:
        The cleaned contact

    Raises:
        ValidationError: Naming every offending field
    """
    cleaned = contact.cleaned()
    errors = {}

    if not cleaned.name:
        errors["name"] = FIELD_MESSAGES["name"]
    if not cleaned.email or "@" not in cleaned.email:
        errors["email"] = FIELD_MESSAGES["email"]
    if require_phone and not cleaned.phone:
        errors["phone"] = FIELD_MESSAGES["phone"]

    if errors:
        raise ValidationError(errors)
    return cleaned


@dataclass
class LeadSubmissionCoordinator:
    """
    Creates leads with at-least-create, best-effort-notify semantics.

    Submissions are keyed by the conversation's idempotency key: a key that
    already produced a lead returns that lead id without touching the store
    or notifier again. Only the most recent `completed_cache_size` keys are
    remembered; an older key is re-inserted under the same lead id, which
    the store ignores as a duplicate.
    """

    store: LeadStore
    notifier: Notifier
    timeout_seconds: float = field(default_factory=lambda: config.submission.timeout_seconds)
    max_attempts: int = field(default_factory=lambda: config.submission.max_attempts)
    retry_delay_seconds: float = field(default_factory=lambda: config.submission.retry_delay_seconds)
    completed_cache_size: int = field(default_factory=lambda: config.submission.completed_cache_size)
    _completed: "OrderedDict[str, str]" = field(default_factory=OrderedDict, init=False, repr=False)
    _locks: dict[str, asyncio.Lock] = field(default_factory=dict, init=False, repr=False)
    _lock_users: dict[str, int] = field(default_factory=dict, init=False, repr=False)

    def build_lead(self, contact: ContactInfo, result: QuizResult, context: SubmissionContext) -> Lead:
        return Lead(
            id=lead_id_for(context.idempotency_key),
            doctor_id=context.doctor_id or config.submission.default_doctor_id,
            name=contact.name,
            email=contact.email,
            phone=contact.phone,
            quiz_type=context.quiz_type,
            score=result.score,
            severity=result.severity.value,
            answers=answers_to_dicts(context.answers),
            lead_source=context.lead_source,
            share_key=context.share_key,
            lead_status=LeadStatus.NEW,
            idempotency_key=context.idempotency_key,
        )

    async def submit(
        self,
        contact: ContactInfo,
        result: QuizResult,
        context: SubmissionContext,
    ) -> str:
        """
        Validate, persist and notify.

        Args:
            contact: Captured contact details
            result: Computed quiz result
            context: Conversation context

        Returns:
            The lead id

        Raises:
            ValidationError: Contact details invalid; store not called
            SubmissionError: Store failed after all attempts
        """
        contact = validate_contact(contact, require_phone=context.require_phone)
        key = context.idempotency_key

        lock = self._acquire_lock(key)
        try:
            async with lock:
                if key in self._completed:
                    logger.info(f"Duplicate submission for {key}, returning existing lead")
                    self._completed.move_to_end(key)
                    return self._completed[key]

                lead = self.build_lead(contact, result, context)
                lead_id = await self._create_with_retry(lead)
                self._remember(key, lead_id)
                logger.info(f"Created {lead.quiz_type} lead {lead_id} for doctor {lead.doctor_id}")
        finally:
            self._release_lock(key)

        await self._notify(LeadSummary.from_lead(lead))
        return lead_id

    def _acquire_lock(self, key: str) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        self._lock_users[key] = self._lock_users.get(key, 0) + 1
        return lock

    def _release_lock(self, key: str) -> None:
        # Drop the lock once nobody holds or waits on it
        self._lock_users[key] -= 1
        if not self._lock_users[key]:
            del self._lock_users[key]
            del self._locks[key]

    def _remember(self, key: str, lead_id: str) -> None:
        self._completed[key] = lead_id
        self._completed.move_to_end(key)
        while len(self._completed) > self.completed_cache_size:
            self._completed.popitem(last=False)

    async def _create_with_retry(self, lead: Lead) -> str:
        last_error: Optional[Exception] = None

        for attempt in range(1, self.max_attempts + 1):
            try:
                return await asyncio.wait_for(self.store.create(lead), timeout=self.timeout_seconds)
            except asyncio.TimeoutError as e:
                last_error = e
                logger.warning(f"Lead create timed out (attempt {attempt}/{self.max_attempts})")
            except Exception as e:
                last_error = e
                logger.warning(f"Lead create failed (attempt {attempt}/{self.max_attempts}): {e}")

            if attempt < self.max_attempts and self.retry_delay_seconds > 0:
                await asyncio.sleep(self.retry_delay_seconds)

        raise SubmissionError(
            f"Could not store lead after {self.max_attempts} attempts: {last_error}",
            retryable=True,
            cause=last_error,
        )

    async def _notify(self, summary: LeadSummary) -> None:
        try:
            await asyncio.wait_for(self.notifier.notify(summary), timeout=self.timeout_seconds)
        except Exception as e:
            error = NotificationError(f"Notification for lead {summary.lead_id} failed: {e!r}")
            logger.warning(str(error))
