"""
Supabase lead store

Writes leads to the `quiz_leads` table through the PostgREST API and looks
up share keys against earlier leads.
"""

import os
from typing import Optional

import httpx

from ..config import config
from .base import (
    AuthenticationError, Lead, LeadStore, RateLimitError, ShareKeyResolver, StoreError
)


class SupabaseLeadStore(LeadStore):
    """
    Lead store on Supabase (PostgREST).

    Requires:
    1. SUPABASE_URL - project URL, e.g. https://abc.supabase.co
    2. SUPABASE_SERVICE_KEY - service role key
    """

    # Insertable columns of quiz_leads; severity is derived from quiz_type and score
    COLUMNS = (
        "id", "doctor_id", "name", "email", "phone", "quiz_type", "score",
        "answers", "lead_source", "share_key", "lead_status", "submitted_at",
    )

    def __init__(
        self,
        url: Optional[str] = None,
        api_key: Optional[str] = None,
        table: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize Supabase store.

        Args:
            url: Project URL (falls back to config/env var)
            api_key: Service key (falls back to config/env var)
            table: Leads table name
            transport: Optional httpx transport (tests use MockTransport)
        """
        self._url = (url or config.store.supabase_url or os.getenv("SUPABASE_URL", "")).rstrip("/")
        self._api_key = api_key or config.store.supabase_key or os.getenv("SUPABASE_SERVICE_KEY")
        self._table = table or config.store.leads_table
        self._transport = transport
        self._client = None

    def _get_client(self) -> httpx.AsyncClient:
        """Lazy initialization of HTTP client."""
        if self._client is None:
            if not self._url:
                raise AuthenticationError(
                    "No Supabase URL provided. Set SUPABASE_URL or pass url to constructor."
                )
            if not self._api_key:
                raise AuthenticationError(
                    "No Supabase key provided. Set SUPABASE_SERVICE_KEY or pass api_key to constructor."
                )
            self._client = httpx.AsyncClient(
                base_url=f"{self._url}/rest/v1",
                headers={
                    "apikey": self._api_key,
                    "Authorization": f"Bearer {self._api_key}",
                    "Content-Type": "application/json",
                },
                timeout=30.0,
                transport=self._transport,
            )
        return self._client

    @property
    def name(self) -> str:
        return "supabase"

    def to_row(self, lead: Lead) -> dict:
        """Lead as a quiz_leads insert row."""
        data = lead.to_dict()
        return {column: data[column] for column in self.COLUMNS}

    async def create(self, lead: Lead) -> str:
        """Insert a lead; a retried insert with the same id is ignored."""
        client = self._get_client()

        try:
            response = await client.post(
                f"/{self._table}",
                params={"on_conflict": "id"},
                json=self.to_row(lead),
                headers={"Prefer": "resolution=ignore-duplicates,return=minimal"},
            )
            response.raise_for_status()
            return lead.id

        except httpx.HTTPStatusError as e:
            if e.response.status_code == 429:
                raise RateLimitError(f"Supabase rate limit exceeded: {e}")
            if e.response.status_code in (401, 403):
                raise AuthenticationError(f"Supabase authentication failed: {e}")
            raise StoreError(f"Supabase API error: {e}")
        except httpx.HTTPError as e:
            raise StoreError(f"Supabase connection error: {e}")

    async def find_doctor_by_share_key(self, share_key: str) -> Optional[str]:
        client = self._get_client()

        try:
            response = await client.get(
                f"/{self._table}",
                params={
                    "select": "doctor_id",
                    "share_key": f"eq.{share_key}",
                    "limit": "1",
                },
            )
            response.raise_for_status()
            rows = response.json()
        except httpx.HTTPError as e:
            raise StoreError(f"Supabase lookup failed: {e}")

        if rows and rows[0].get("doctor_id"):
            return rows[0]["doctor_id"]
        return None

    async def close(self):
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None


class SupabaseShareKeyResolver(ShareKeyResolver):
    """Resolves share keys against leads already stored in Supabase."""

    def __init__(self, store: SupabaseLeadStore):
        self.store = store

    async def resolve(self, share_key: str) -> Optional[str]:
        return await self.store.find_doctor_by_share_key(share_key)
