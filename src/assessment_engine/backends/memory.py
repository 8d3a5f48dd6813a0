"""
In-memory backends for testing and local runs

Keep leads and notifications in process, with optional failure injection.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Optional

from .base import Lead, LeadStore, LeadSummary, Notifier, StoreError

logger = logging.getLogger(__name__)


@dataclass
class InMemoryLeadStore(LeadStore):
    """
    Lead store backed by a dict.

    `fail_times` makes the next N create() calls raise StoreError, and
    `delay_seconds` simulates network latency.
    """

    leads: dict[str, Lead] = field(default_factory=dict)
    create_calls: int = 0
    fail_times: int = 0
    delay_seconds: float = 0.0

    @property
    def name(self) -> str:
        return "memory"

    async def create(self, lead: Lead) -> str:
        self.create_calls += 1

        if self.delay_seconds > 0:
            await asyncio.sleep(self.delay_seconds)

        if self.fail_times > 0:
            self.fail_times -= 1
            raise StoreError("Simulated store failure")

        self.leads[lead.id] = lead
        return lead.id

    async def find_doctor_by_share_key(self, share_key: str) -> Optional[str]:
        for lead in self.leads.values():
            if lead.share_key == share_key and lead.doctor_id:
                return lead.doctor_id
        return None


@dataclass
class RecordingNotifier(Notifier):
    """Collects summaries instead of sending them."""

    sent: list[LeadSummary] = field(default_factory=list)
    fail: bool = False

    @property
    def name(self) -> str:
        return "recording"

    async def notify(self, summary: LeadSummary) -> None:
        if self.fail:
            raise RuntimeError("Simulated notification failure")
        self.sent.append(summary)


class LoggingNotifier(Notifier):
    """Writes each new lead to the log. Default for local runs."""

    @property
    def name(self) -> str:
        return "log"

    async def notify(self, summary: LeadSummary) -> None:
        logger.info(
            f"New {summary.quiz_type} lead {summary.lead_id} for doctor {summary.doctor_id}: "
            f"{summary.lead_name}, score {summary.score} ({summary.severity})"
        )
