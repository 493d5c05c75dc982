"""Decision table for one lead answer.

====================  ==========================================  ==============
outcome               condition                                   stored value
====================  ==========================================  ==============
SKIP                  answer is "skip", field optional            ""
ACCEPT                answer passes validation                    trimmed answer
RETRY                 invalid, attempts < max_retries             nothing
FORCE_ACCEPT          invalid, attempts >= max_retries, required  trimmed answer
FORCE_SKIP            invalid, attempts >= max_retries, optional  ""
====================  ==========================================  ==============

``attempts`` counts the current answer, i.e. ``retries + 1``.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from chatbot_engine.leads.validation import validate_field_value
from chatbot_engine.models.entities import LeadField

SKIP_TOKEN = "skip"
DEFAULT_MAX_RETRIES = 3


class Outcome(str, Enum):
    SKIP = "skip"
    ACCEPT = "accept"
    RETRY = "retry"
    FORCE_ACCEPT = "force_accept"
    FORCE_SKIP = "force_skip"

    @property
    def advances(self) -> bool:
        return self is not Outcome.RETRY


@dataclass(frozen=True, slots=True)
class Decision:
    outcome: Outcome
    value: str | None = None
    error: str | None = None


def decide(field: LeadField, answer: str, retries: int, max_retries: int = DEFAULT_MAX_RETRIES) -> Decision:
    trimmed = answer.strip()
    if trimmed.lower() == SKIP_TOKEN and not field.required:
        return Decision(Outcome.SKIP, value="")

    error = validate_field_value(field, trimmed)
    if error is None:
        return Decision(Outcome.ACCEPT, value=trimmed)
    if retries + 1 < max_retries:
        return Decision(Outcome.RETRY, error=error)
    if field.required:
        # TODO: revisit once product signs off on accepting unvalidated required answers
        return Decision(Outcome.FORCE_ACCEPT, value=trimmed, error=error)
    return Decision(Outcome.FORCE_SKIP, value="", error=error)


__all__ = ["Outcome", "Decision", "decide", "SKIP_TOKEN", "DEFAULT_MAX_RETRIES"]
