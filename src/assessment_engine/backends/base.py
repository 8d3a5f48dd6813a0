"""
Base protocol for lead backends

Defines the lead record and the interfaces the engine consumes for
persistence, clinician notification and share-key lookup.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
import uuid


class StoreError(Exception):
    """Base exception for backend errors."""
    pass


class RateLimitError(StoreError):
    """Rate limit exceeded."""
    pass


class AuthenticationError(StoreError):
    """Authentication failed."""
    pass


class LeadStatus(str, Enum):
    """Clinician-facing follow-up status."""
    NEW = "NEW"
    CONTACTED = "CONTACTED"
    COMPLETED = "COMPLETED"


class LeadSource(str, Enum):
    """Where the assessment was taken."""
    WEBSITE = "website"
    SHARED_LINK = "shared_link"
    CARD_PAGE = "card_page"
    EMBED = "embed"


# Lead ids are derived from the idempotency key so a retried insert hits the same row
LEAD_NAMESPACE = uuid.UUID("6f1c1f0e-3a1e-4c8e-9a57-3f1f3b5a2d10")


def lead_id_for(idempotency_key: str) -> str:
    return str(uuid.uuid5(LEAD_NAMESPACE, idempotency_key))


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass
class Lead:
    """One completed, contact-captured assessment."""
    id: str
    doctor_id: Optional[str]
    name: str
    email: str
    quiz_type: str
    score: int
    severity: str
    answers: list[dict] = field(default_factory=list)
    phone: Optional[str] = None
    lead_source: LeadSource = LeadSource.WEBSITE
    share_key: Optional[str] = None
    lead_status: LeadStatus = LeadStatus.NEW
    submitted_at: str = field(default_factory=_utc_now_iso)
    idempotency_key: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "doctor_id": self.doctor_id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "quiz_type": self.quiz_type,
            "score": self.score,
            "severity": self.severity,
            "answers": self.answers,
            "lead_source": self.lead_source.value,
            "share_key": self.share_key,
            "lead_status": self.lead_status.value,
            "submitted_at": self.submitted_at,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Lead":
        return cls(
            id=data["id"],
            doctor_id=data.get("doctor_id"),
            name=data["name"],
            email=data["email"],
            phone=data.get("phone"),
            quiz_type=data["quiz_type"],
            score=int(data["score"]),
            severity=data.get("severity", ""),
            answers=data.get("answers", []),
            lead_source=LeadSource(data.get("lead_source", "website")),
            share_key=data.get("share_key"),
            lead_status=LeadStatus(data.get("lead_status", "NEW")),
            submitted_at=data.get("submitted_at") or _utc_now_iso(),
        )


@dataclass
class LeadSummary:
    """What the clinician is told about a new lead."""
    lead_id: str
    lead_name: str
    quiz_type: str
    score: int
    severity: str
    doctor_id: Optional[str]

    @classmethod
    def from_lead(cls, lead: Lead) -> "LeadSummary":
        return cls(
            lead_id=lead.id,
            lead_name=lead.name,
            quiz_type=lead.quiz_type,
            score=lead.score,
            severity=lead.severity,
            doctor_id=lead.doctor_id,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "lead_id": self.lead_id,
            "lead_name": self.lead_name,
            "quiz_type": self.quiz_type,
            "score": self.score,
            "severity": self.severity,
            "doctor_id": self.doctor_id,
        }


class LeadStore(ABC):
    """
    Persistence for leads.

    The engine only ever creates. Status changes belong to the
    clinician-facing workflow.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Backend name (e.g., 'memory', 'supabase')."""
        pass

    @abstractmethod
    async def create(self, lead: Lead) -> str:
        """
        Insert a lead.

        Returns:
            The stored lead id

        Raises:
            StoreError: On persistence failure
        """
        pass

    async def find_doctor_by_share_key(self, share_key: str) -> Optional[str]:
        """Doctor id of an earlier lead carrying this share key, if any."""
        return None

    async def close(self):
        """Release any held connections."""
        pass

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"


class Notifier(ABC):
    """Tells the owning clinician about a new lead."""

    @property
    @abstractmethod
    def name(self) -> str:
        pass

    @abstractmethod
    async def notify(self, summary: LeadSummary) -> None:
        """
        Send a notification.

        Raises:
            Exception: Any failure; the engine logs and swallows it
        """
        pass

    async def close(self):
        pass


class ShareKeyResolver(ABC):
    """Maps an opaque share token to the owning clinician."""

    @abstractmethod
    async def resolve(self, share_key: str) -> Optional[str]:
        """Return the doctor id, or None when the key is unknown."""
        pass
