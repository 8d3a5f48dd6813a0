"""
Tests for contact validation, lead submission and share key resolution.
"""

import asyncio

import pytest

from assessment_engine.backends.base import LeadSource, LeadStatus, lead_id_for
from assessment_engine.backends.memory import InMemoryLeadStore, RecordingNotifier
from assessment_engine.config import Config, config
from assessment_engine.errors import SubmissionError, ValidationError
from assessment_engine.quiz.schema import Answer
from assessment_engine.quiz.scoring import score_answers
from assessment_engine.sharing import (
    LeadHistoryShareKeyResolver,
    StaticShareKeyResolver,
    resolve_doctor_id,
)
from assessment_engine.submission import (
    ContactInfo,
    LeadSubmissionCoordinator,
    SubmissionContext,
    validate_contact,
)

NOSE_ANSWERS = [Answer(str(i), "4 - Severe") for i in range(1, 6)]


def make_coordinator(store=None, notifier=None, **kwargs):
    kwargs.setdefault("timeout_seconds", 0.5)
    kwargs.setdefault("retry_delay_seconds", 0)
    kwargs.setdefault("max_attempts", 3)
    return LeadSubmissionCoordinator(
        store=store or InMemoryLeadStore(),
        notifier=notifier or RecordingNotifier(),
        **kwargs,
    )


def make_context(key="conv-1", **kwargs):
    return SubmissionContext(
        quiz_type="NOSE",
        answers=list(NOSE_ANSWERS),
        idempotency_key=key,
        **kwargs,
    )


JANE = ContactInfo(name="Jane Doe", email="jane@example.com", phone="555-0100")


class TestValidateContact:
    """Tests for contact validation."""

    def test_valid_contact_is_cleaned(self):
        contact = validate_contact(ContactInfo(name="  Jane ", email=" jane@example.com ", phone="  "))

        assert contact.name == "Jane"
        assert contact.email == "jane@example.com"
        assert contact.phone is None

    def test_all_bad_fields_reported(self):
        """Test every failing field is named at once."""
        with pytest.raises(ValidationError) as exc_info:
            validate_contact(ContactInfo(name=" ", email="not-an-email"), require_phone=True)

        fields = exc_info.value.fields
        assert set(fields) == {"name", "email", "phone"}
        assert fields["email"] == "Please check your email address."

    def test_phone_optional_by_default(self):
        contact = validate_contact(ContactInfo(name="Jane", email="jane@example.com"))
        assert contact.phone is None

    def test_phone_required(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_contact(ContactInfo(name="Jane", email="jane@example.com"), require_phone=True)

        assert list(exc_info.value.fields) == ["phone"]

    def test_from_dict(self):
        contact = ContactInfo.from_dict({"name": "Jane", "email": "j@x.com"})
        assert contact == ContactInfo(name="Jane", email="j@x.com", phone=None)


class TestLeadSubmissionCoordinator:
    """Tests for lead creation and notification."""

    @pytest.mark.asyncio
    async def test_submit_creates_lead(self):
        """Test a submission stores one NEW lead and notifies once."""
        store = InMemoryLeadStore()
        notifier = RecordingNotifier()
        coordinator = make_coordinator(store, notifier)
        result = score_answers("NOSE", NOSE_ANSWERS)

        lead_id = await coordinator.submit(JANE, result, make_context(doctor_id="dr-1"))

        assert lead_id == lead_id_for("conv-1")
        lead = store.leads[lead_id]
        assert lead.quiz_type == "NOSE"
        assert lead.score == 20
        assert lead.severity == "severe"
        assert lead.lead_status == LeadStatus.NEW
        assert lead.doctor_id == "dr-1"
        assert lead.answers[0] == {"question_id": "1", "answer": "4 - Severe"}
        assert len(notifier.sent) == 1
        assert notifier.sent[0].lead_name == "Jane Doe"

    @pytest.mark.asyncio
    async def test_default_doctor(self):
        """Test leads without a clinician fall into the default bucket."""
        store = InMemoryLeadStore()
        coordinator = make_coordinator(store)
        result = score_answers("NOSE", NOSE_ANSWERS)

        lead_id = await coordinator.submit(JANE, result, make_context())

        assert store.leads[lead_id].doctor_id == "demo"

    @pytest.mark.asyncio
    async def test_validation_error_skips_store(self):
        """Test invalid contacts never reach the store."""
        store = InMemoryLeadStore()
        coordinator = make_coordinator(store)
        result = score_answers("NOSE", NOSE_ANSWERS)

        with pytest.raises(ValidationError):
            await coordinator.submit(ContactInfo(name="", email="x"), result, make_context())

        assert store.create_calls == 0

    @pytest.mark.asyncio
    async def test_same_key_creates_once(self):
        """Test resubmitting the same key returns the existing lead."""
        store = InMemoryLeadStore()
        notifier = RecordingNotifier()
        coordinator = make_coordinator(store, notifier)
        result = score_answers("NOSE", NOSE_ANSWERS)

        first = await coordinator.submit(JANE, result, make_context())
        second = await coordinator.submit(JANE, result, make_context())

        assert first == second
        assert store.create_calls == 1
        assert len(notifier.sent) == 1

    @pytest.mark.asyncio
    async def test_concurrent_same_key_creates_once(self):
        """Test concurrent submissions with one key are serialized."""
        store = InMemoryLeadStore(delay_seconds=0.05)
        coordinator = make_coordinator(store)
        result = score_answers("NOSE", NOSE_ANSWERS)

        ids = await asyncio.gather(*[
            coordinator.submit(JANE, result, make_context()) for _ in range(5)
        ])

        assert len(set(ids)) == 1
        assert store.create_calls == 1
        assert len(store.leads) == 1

    @pytest.mark.asyncio
    async def test_different_keys_create_separately(self):
        store = InMemoryLeadStore()
        coordinator = make_coordinator(store)
        result = score_answers("NOSE", NOSE_ANSWERS)

        await coordinator.submit(JANE, result, make_context("a"))
        await coordinator.submit(JANE, result, make_context("b"))

        assert len(store.leads) == 2

    @pytest.mark.asyncio
    async def test_retries_transient_failures(self):
        """Test a store that fails fewer times than max_attempts succeeds."""
        store = InMemoryLeadStore(fail_times=2)
        coordinator = make_coordinator(store, max_attempts=3)
        result = score_answers("NOSE", NOSE_ANSWERS)

        lead_id = await coordinator.submit(JANE, result, make_context())

        assert store.create_calls == 3
        assert lead_id in store.leads

    @pytest.mark.asyncio
    async def test_exhausted_retries_raise(self):
        """Test persistent failures surface as a retryable SubmissionError."""
        store = InMemoryLeadStore(fail_times=5)
        notifier = RecordingNotifier()
        coordinator = make_coordinator(store, notifier, max_attempts=3)
        result = score_answers("NOSE", NOSE_ANSWERS)

        with pytest.raises(SubmissionError) as exc_info:
            await coordinator.submit(JANE, result, make_context())

        assert exc_info.value.retryable
        assert store.create_calls == 3
        assert store.leads == {}
        assert notifier.sent == []

    @pytest.mark.asyncio
    async def test_key_retryable_after_failure(self):
        """Test a failed key can be submitted again and lands on the same id."""
        store = InMemoryLeadStore(fail_times=1)
        coordinator = make_coordinator(store, max_attempts=1)
        result = score_answers("NOSE", NOSE_ANSWERS)

        with pytest.raises(SubmissionError):
            await coordinator.submit(JANE, result, make_context())

        lead_id = await coordinator.submit(JANE, result, make_context())
        assert lead_id == lead_id_for("conv-1")
        assert len(store.leads) == 1

    @pytest.mark.asyncio
    async def test_store_timeout(self):
        """Test a hanging store is abandoned after the timeout."""
        store = InMemoryLeadStore(delay_seconds=1.0)
        coordinator = make_coordinator(store, timeout_seconds=0.05, max_attempts=2)
        result = score_answers("NOSE", NOSE_ANSWERS)

        with pytest.raises(SubmissionError):
            await coordinator.submit(JANE, result, make_context())

        assert store.create_calls == 2

    @pytest.mark.asyncio
    async def test_notification_failure_keeps_lead(self):
        """Test a failing notifier never rolls back the lead."""
        store = InMemoryLeadStore()
        notifier = RecordingNotifier(fail=True)
        coordinator = make_coordinator(store, notifier)
        result = score_answers("NOSE", NOSE_ANSWERS)

        lead_id = await coordinator.submit(JANE, result, make_context())

        assert lead_id in store.leads

    @pytest.mark.asyncio
    async def test_lead_carries_source_and_share_key(self):
        store = InMemoryLeadStore()
        coordinator = make_coordinator(store)
        result = score_answers("NOSE", NOSE_ANSWERS)
        context = make_context(lead_source=LeadSource.SHARED_LINK, share_key="abc123")

        lead_id = await coordinator.submit(JANE, result, context)

        lead = store.leads[lead_id]
        assert lead.lead_source == LeadSource.SHARED_LINK
        assert lead.share_key == "abc123"
        assert lead.to_dict()["lead_source"] == "shared_link"

    @pytest.mark.asyncio
    async def test_locks_released_after_many_conversations(self):
        """Test per-key locks are dropped once each submission finishes."""
        store = InMemoryLeadStore()
        coordinator = make_coordinator(store)
        result = score_answers("NOSE", NOSE_ANSWERS)

        for i in range(50):
            await coordinator.submit(JANE, result, make_context(f"conv-{i}"))

        assert len(store.leads) == 50
        assert coordinator._locks == {}
        assert coordinator._lock_users == {}

    @pytest.mark.asyncio
    async def test_locks_released_after_failure_and_contention(self):
        """Test locks are dropped after failed and concurrent submissions."""
        store = InMemoryLeadStore(fail_times=1, delay_seconds=0.01)
        coordinator = make_coordinator(store, max_attempts=1)
        result = score_answers("NOSE", NOSE_ANSWERS)

        with pytest.raises(SubmissionError):
            await coordinator.submit(JANE, result, make_context())
        assert coordinator._locks == {}

        await asyncio.gather(*[
            coordinator.submit(JANE, result, make_context()) for _ in range(4)
        ])

        assert store.create_calls == 2
        assert coordinator._locks == {}
        assert coordinator._lock_users == {}

    @pytest.mark.asyncio
    async def test_completed_keys_bounded(self):
        """Test only the most recent keys are remembered."""
        store = InMemoryLeadStore()
        coordinator = make_coordinator(store, completed_cache_size=10)
        result = score_answers("NOSE", NOSE_ANSWERS)

        for i in range(25):
            await coordinator.submit(JANE, result, make_context(f"conv-{i}"))

        assert len(coordinator._completed) == 10
        assert list(coordinator._completed) == [f"conv-{i}" for i in range(15, 25)]

    @pytest.mark.asyncio
    async def test_evicted_key_keeps_lead_id(self):
        """Test a forgotten key is re-inserted under the same lead id."""
        store = InMemoryLeadStore()
        coordinator = make_coordinator(store, completed_cache_size=1)
        result = score_answers("NOSE", NOSE_ANSWERS)

        first = await coordinator.submit(JANE, result, make_context("a"))
        await coordinator.submit(JANE, result, make_context("b"))
        again = await coordinator.submit(JANE, result, make_context("a"))

        assert first == again == lead_id_for("a")
        assert len(store.leads) == 2


class SlowResolver(StaticShareKeyResolver):
    async def resolve(self, share_key):
        await asyncio.sleep(1.0)
        return "never"


class BrokenResolver(StaticShareKeyResolver):
    async def resolve(self, share_key):
        raise RuntimeError("lookup down")


class TestResolveDoctorId:
    """Tests for share key attribution."""

    @pytest.mark.asyncio
    async def test_share_key_wins(self):
        resolver = StaticShareKeyResolver({"abc": "dr-share"})
        doctor = await resolve_doctor_id("abc", "dr-explicit", resolver)
        assert doctor == "dr-share"

    @pytest.mark.asyncio
    async def test_unknown_key_falls_back_to_explicit(self):
        resolver = StaticShareKeyResolver({})
        doctor = await resolve_doctor_id("zzz", "dr-explicit", resolver)
        assert doctor == "dr-explicit"

    @pytest.mark.asyncio
    async def test_falls_back_to_default(self):
        doctor = await resolve_doctor_id("zzz", None, StaticShareKeyResolver())
        assert doctor == "demo"

    @pytest.mark.asyncio
    async def test_no_share_key(self):
        doctor = await resolve_doctor_id(None, None, None)
        assert doctor == "demo"

    @pytest.mark.asyncio
    async def test_timeout_counts_as_unresolved(self):
        doctor = await resolve_doctor_id("abc", None, SlowResolver(), timeout=0.05)
        assert doctor == "demo"

    @pytest.mark.asyncio
    async def test_error_counts_as_unresolved(self):
        doctor = await resolve_doctor_id("abc", "dr-explicit", BrokenResolver())
        assert doctor == "dr-explicit"

    @pytest.mark.asyncio
    async def test_lead_history_resolver(self):
        """Test a share key resolves to the clinician of an earlier lead."""
        store = InMemoryLeadStore()
        coordinator = make_coordinator(store)
        result = score_answers("NOSE", NOSE_ANSWERS)
        await coordinator.submit(JANE, result, make_context(doctor_id="dr-7", share_key="card-7"))

        resolver = LeadHistoryShareKeyResolver(store)

        assert await resolver.resolve("card-7") == "dr-7"
        assert await resolver.resolve("other") is None


class SlowNotifier(RecordingNotifier):
    async def notify(self, summary):
        await asyncio.sleep(1.0)


class TestConfigDefaults:
    """Tests for coordinator defaults and config presets."""

    def test_defaults_from_config(self):
        coordinator = LeadSubmissionCoordinator(store=InMemoryLeadStore(), notifier=RecordingNotifier())

        assert coordinator.timeout_seconds == config.submission.timeout_seconds
        assert coordinator.max_attempts == config.submission.max_attempts
        assert coordinator.completed_cache_size == config.submission.completed_cache_size

    def test_fast_mode(self):
        cfg = Config.fast_mode()

        assert cfg.submission.timeout_seconds == 0.5
        assert cfg.submission.retry_delay_seconds == 0.0
        assert cfg.store.leads_table == "quiz_leads"

    @pytest.mark.asyncio
    async def test_notification_timeout_keeps_lead(self):
        """Test a hanging notifier is abandoned and the lead kept."""
        store = InMemoryLeadStore()
        coordinator = make_coordinator(store, SlowNotifier(), timeout_seconds=0.05)
        result = score_answers("NOSE", NOSE_ANSWERS)

        lead_id = await coordinator.submit(JANE, result, make_context())

        assert lead_id in store.leads
