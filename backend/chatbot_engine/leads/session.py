"""In-process lead collection sessions keyed by conversation id."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from enum import Enum

from chatbot_engine.models.entities import LeadField


class LeadStatus(str, Enum):
    IDLE = "idle"
    COLLECTING = "collecting"
    SUBMITTING = "submitting"
    DONE = "done"
    ERROR = "error"


@dataclass(slots=True)
class LeadSession:
    conversation_id: str
    chatbot_id: str
    visitor_id: str
    form_id: str
    fields: tuple[LeadField, ...]
    status: LeadStatus = LeadStatus.IDLE
    index: int = 0
    retries: int = 0
    success_message: str | None = None
    data: dict[str, str] = field(default_factory=dict)

    @property
    def current_field(self) -> LeadField | None:
        if 0 <= self.index < len(self.fields):
            return self.fields[self.index]
        return None

    def reset(self) -> None:
        self.status = LeadStatus.COLLECTING
        self.index = 0
        self.retries = 0
        self.data = {}


class SessionRegistry:
    """Map of conversation id to LeadSession; the lock guards the map only."""

    def __init__(self) -> None:
        self._sessions: dict[str, LeadSession] = {}
        self._lock = threading.Lock()

    def get(self, conversation_id: str) -> LeadSession | None:
        with self._lock:
            return self._sessions.get(conversation_id)

    def put(self, session: LeadSession) -> LeadSession:
        with self._lock:
            self._sessions[session.conversation_id] = session
        return session

    def drop(self, conversation_id: str) -> None:
        with self._lock:
            self._sessions.pop(conversation_id, None)

    def clear(self) -> None:
        with self._lock:
            self._sessions.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)


__all__ = ["LeadStatus", "LeadSession", "SessionRegistry"]
