"""Tests for the lead answer decision table."""

from chatbot_engine.leads.policy import Outcome, decide
from chatbot_engine.models.entities import FieldType, LeadField

EMAIL = LeadField(id="email", type=FieldType.EMAIL, label="Email", required=True)
PHONE = LeadField(id="phone", type=FieldType.PHONE, label="Phone", required=False)


def test_valid_answer_is_trimmed_and_accepted() -> None:
    decision = decide(EMAIL, "  jane@example.com ", retries=0)
    assert decision.outcome is Outcome.ACCEPT
    assert decision.value == "jane@example.com"


def test_skip_only_for_optional_fields() -> None:
    assert decide(PHONE, "SKIP", retries=0).outcome is Outcome.SKIP
    required_skip = decide(EMAIL, "skip", retries=0)
    assert required_skip.outcome is Outcome.RETRY
    assert required_skip.error == "Please enter a valid email address."


def test_retry_until_limit() -> None:
    assert decide(EMAIL, "nope", retries=0).outcome is Outcome.RETRY
    assert decide(EMAIL, "nope", retries=1).outcome is Outcome.RETRY


def test_third_failure_forces_progress() -> None:
    forced = decide(EMAIL, " ok ", retries=2)
    assert forced.outcome is Outcome.FORCE_ACCEPT
    assert forced.value == "ok"
    skipped = decide(PHONE, "12", retries=2)
    assert skipped.outcome is Outcome.FORCE_SKIP
    assert skipped.value == ""
    assert all(outcome.advances for outcome in (forced.outcome, skipped.outcome))


def test_custom_retry_limit() -> None:
    assert decide(EMAIL, "nope", retries=0, max_retries=1).outcome is Outcome.FORCE_ACCEPT
