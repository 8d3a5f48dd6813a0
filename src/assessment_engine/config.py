"""
assessment-engine configuration

Timeouts, retry limits, backend selection and credentials live here.
Environment variables override defaults for deployment flexibility.
"""

import os
from dataclasses import dataclass, field
from typing import Literal


@dataclass
class SubmissionConfig:
    """Lead submission behavior"""
    timeout_seconds: float = float(os.getenv("SUBMIT_TIMEOUT", "10.0"))
    max_attempts: int = int(os.getenv("SUBMIT_MAX_ATTEMPTS", "3"))
    retry_delay_seconds: float = float(os.getenv("SUBMIT_RETRY_DELAY", "0.5"))
    # Platform bucket for leads whose clinician can't be resolved
    default_doctor_id: str = os.getenv("DEFAULT_DOCTOR_ID", "demo")
    # Recently completed idempotency keys remembered per coordinator
    completed_cache_size: int = int(os.getenv("SUBMIT_COMPLETED_CACHE", "1024"))


@dataclass
class StoreConfig:
    """Lead persistence"""
    backend: Literal["memory", "supabase"] = os.getenv("LEAD_STORE", "memory")
    supabase_url: str = os.getenv("SUPABASE_URL", "")
    supabase_key: str = os.getenv("SUPABASE_SERVICE_KEY", "")
    leads_table: str = os.getenv("LEADS_TABLE", "quiz_leads")


@dataclass
class NotifyConfig:
    """Clinician notifications (Resend email)"""
    backend: Literal["log", "resend"] = os.getenv("NOTIFIER", "log")
    resend_api_key: str = os.getenv("RESEND_API_KEY", "")
    from_address: str = os.getenv("EMAIL_FROM", "noreply@resend.dev")
    to_address: str = os.getenv("NOTIFY_EMAIL_TO", "")
    # Per-clinician routing: "doctor_id=address,doctor_id=address"
    recipients: str = os.getenv("NOTIFY_RECIPIENTS", "")


@dataclass
class Config:
    """Master config, import this"""
    submission: SubmissionConfig = field(default_factory=SubmissionConfig)
    store: StoreConfig = field(default_factory=StoreConfig)
    notify: NotifyConfig = field(default_factory=NotifyConfig)

    @classmethod
    def fast_mode(cls) -> "Config":
        """For development and tests: short timeouts, no retry delay"""
        cfg = cls()
        cfg.submission.timeout_seconds = 0.5
        cfg.submission.retry_delay_seconds = 0.0
        return cfg


# Singleton
config = Config()
