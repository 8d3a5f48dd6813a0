"""
Lead backends for assessment-engine

Persistence and notification share a common interface.
Stores: in-memory, Supabase. Notifiers: log, recording, Resend.
"""

from .base import (
    Lead, LeadSource, LeadStatus, LeadStore, LeadSummary, Notifier,
    ShareKeyResolver, StoreError, RateLimitError, AuthenticationError, lead_id_for,
)
from .memory import InMemoryLeadStore, RecordingNotifier, LoggingNotifier
from .supabase import SupabaseLeadStore, SupabaseShareKeyResolver
from .resend import ResendNotifier

__all__ = [
    # Base classes and types
    "Lead",
    "LeadSource",
    "LeadStatus",
    "LeadStore",
    "LeadSummary",
    "Notifier",
    "ShareKeyResolver",
    "StoreError",
    "RateLimitError",
    "AuthenticationError",
    "lead_id_for",
    # Implementations
    "InMemoryLeadStore",
    "RecordingNotifier",
    "LoggingNotifier",
    "SupabaseLeadStore",
    "SupabaseShareKeyResolver",
    "ResendNotifier",
]


def get_lead_store(name: str, **kwargs) -> LeadStore:
    """
    Factory function to get a lead store by name.

    Args:
        name: Store name ('memory', 'supabase')
        **kwargs: Store-specific options

    Raises:
        ValueError: If store name is unknown
    """
    stores = {
        "memory": InMemoryLeadStore,
        "supabase": SupabaseLeadStore,
    }

    if name not in stores:
        raise ValueError(f"Unknown lead store: {name}. Valid options: {list(stores.keys())}")

    return stores[name](**kwargs)


def get_notifier(name: str, **kwargs) -> Notifier:
    """
    Factory function to get a notifier by name.

    Args:
        name: Notifier name ('log', 'recording', 'resend')
        **kwargs: Notifier-specific options

    Raises:
        ValueError: If notifier name is unknown
    """
    notifiers = {
        "log": LoggingNotifier,
        "recording": RecordingNotifier,
        "resend": ResendNotifier,
    }

    if name not in notifiers:
        raise ValueError(f"Unknown notifier: {name}. Valid options: {list(notifiers.keys())}")

    return notifiers[name](**kwargs)
