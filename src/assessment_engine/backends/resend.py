"""
Resend email notifier

Sends the clinician a plain-text summary of each new lead via the Resend
HTTP API. Leads are routed to the owning clinician's address when one is
configured, otherwise to the default recipient.
"""

from typing import Optional

import httpx

from ..config import config
from .base import AuthenticationError, LeadSummary, Notifier, RateLimitError, StoreError


def parse_recipients(value: str) -> dict[str, str]:
    """Parse "doctor_id=address" pairs separated by commas."""
    recipients = {}
    for pair in value.split(","):
        doctor_id, sep, address = pair.partition("=")
        if sep and doctor_id.strip() and address.strip():
            recipients[doctor_id.strip()] = address.strip()
    return recipients


class ResendNotifier(Notifier):
    """
    Clinician notification over Resend.

    Requires RESEND_API_KEY, plus NOTIFY_EMAIL_TO or a NOTIFY_RECIPIENTS
    entry for the lead's doctor (or constructor arguments).
    """

    API_URL = "https://api.resend.com/emails"

    def __init__(
        self,
        api_key: Optional[str] = None,
        to_address: Optional[str] = None,
        from_address: Optional[str] = None,
        recipients: Optional[dict[str, str]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._api_key = api_key or config.notify.resend_api_key
        self._to = to_address or config.notify.to_address
        self._from = from_address or config.notify.from_address
        if recipients is None:
            recipients = parse_recipients(config.notify.recipients)
        self._recipients = recipients
        self._transport = transport
        self._client = None

    def _get_client(self) -> httpx.AsyncClient:
        """Lazy initialization of HTTP client."""
        if self._client is None:
            if not self._api_key:
                raise AuthenticationError(
                    "No Resend API key provided. Set RESEND_API_KEY or pass api_key to constructor."
                )
            self._client = httpx.AsyncClient(
                headers={
                    "Authorization": f"Bearer {self._api_key}",
                    "Content-Type": "application/json",
                },
                timeout=30.0,
                transport=self._transport,
            )
        return self._client

    @property
    def name(self) -> str:
        return "resend"

    def recipient_for(self, summary: LeadSummary) -> Optional[str]:
        """The doctor's own address, else the default recipient."""
        if summary.doctor_id and summary.doctor_id in self._recipients:
            return self._recipients[summary.doctor_id]
        return self._to or None

    def format_email(self, summary: LeadSummary) -> dict:
        """Build the Resend payload for a lead summary."""
        subject = f"New {summary.quiz_type} assessment lead: {summary.lead_name}"
        text = "\n".join([
            f"{summary.lead_name} completed the {summary.quiz_type} assessment.",
            "",
            f"Score: {summary.score}",
            f"Severity: {summary.severity}",
            f"Lead ID: {summary.lead_id}",
            f"Doctor: {summary.doctor_id or 'unassigned'}",
            "",
            "Log in to your dashboard to follow up.",
        ])
        return {
            "from": self._from,
            "to": [self.recipient_for(summary)],
            "subject": subject,
            "text": text,
        }

    async def notify(self, summary: LeadSummary) -> None:
        if not self.recipient_for(summary):
            raise StoreError(
                f"No notification recipient for doctor {summary.doctor_id}. "
                "Set NOTIFY_EMAIL_TO or NOTIFY_RECIPIENTS."
            )

        client = self._get_client()
        try:
            response = await client.post(self.API_URL, json=self.format_email(summary))
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            if e.response.status_code == 429:
                raise RateLimitError(f"Resend rate limit exceeded: {e}")
            if e.response.status_code in (401, 403):
                raise AuthenticationError(f"Resend authentication failed: {e}")
            raise StoreError(f"Resend API error: {e}")
        except httpx.HTTPError as e:
            raise StoreError(f"Resend connection error: {e}")

    async def close(self):
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None
