"""
Share key resolution

Attributes a publicly shared assessment to its clinician. Attribution
failure never blocks completing an assessment.
"""

import asyncio
import logging
from typing import Optional

from .backends.base import LeadStore, ShareKeyResolver
from .config import config

logger = logging.getLogger(__name__)


class StaticShareKeyResolver(ShareKeyResolver):
    """Resolves from a fixed mapping of share key to doctor id."""

    def __init__(self, mapping: Optional[dict[str, str]] = None):
        self.mapping = dict(mapping or {})

    async def resolve(self, share_key: str) -> Optional[str]:
        return self.mapping.get(share_key)


class LeadHistoryShareKeyResolver(ShareKeyResolver):
    """Resolves a share key from the first earlier lead that carried it."""

    def __init__(self, store: LeadStore):
        self.store = store

    async def resolve(self, share_key: str) -> Optional[str]:
        return await self.store.find_doctor_by_share_key(share_key)


async def resolve_doctor_id(
    share_key: Optional[str],
    doctor_id: Optional[str],
    resolver: Optional[ShareKeyResolver],
    timeout: Optional[float] = None,
) -> str:
    """
    Work out which clinician owns a conversation.

    Order: resolved share key, then explicit doctor id, then the platform
    default bucket. Resolver errors and timeouts count as unresolved.

    Args:
        share_key: Token from the shared link, if any
        doctor_id: Explicit doctor id from the link, if any
        resolver: Share key resolver (skipped when None)
        timeout: Seconds to wait for the resolver

    Returns:
        A doctor id, never None
    """
    timeout = timeout if timeout is not None else config.submission.timeout_seconds

    if share_key and resolver is not None:
        try:
            resolved = await asyncio.wait_for(resolver.resolve(share_key), timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning(f"Share key lookup timed out for {share_key!r}")
            resolved = None
        except Exception as e:
            logger.warning(f"Share key lookup failed for {share_key!r}: {e}")
            resolved = None

        if resolved:
            return resolved
        logger.warning(f"Share key {share_key!r} unresolved, falling back")

    if doctor_id:
        return doctor_id
    return config.submission.default_doctor_id
