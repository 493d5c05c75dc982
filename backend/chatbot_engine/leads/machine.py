"""Conversational lead collection.

A session walks the chatbot's lead form one field per turn. While a session is
``collecting`` every user message is consumed as an answer; in any other state
messages fall through to the answering pipeline.
"""

from __future__ import annotations

import random
import sqlite3
from dataclasses import dataclass

from chatbot_engine.core.errors import ChatbotEngineError, ConflictError
from chatbot_engine.core.logging import get_logger
from chatbot_engine.leads.policy import DEFAULT_MAX_RETRIES, Outcome, decide
from chatbot_engine.leads.questions import acknowledgement, build_question
from chatbot_engine.leads.session import LeadSession, LeadStatus, SessionRegistry
from chatbot_engine.leads.store import LeadService
from chatbot_engine.models.entities import Chatbot

logger = get_logger(__name__)

THANK_YOU = "Thank you so much! I've noted your details. Now, how can I help you further?"
APOLOGY = "Sorry, I had trouble saving your details. Let's try again. "
RETRY_SUFFIX = " Please try again."
FORCE_ACCEPT_PREFIX = "I'll accept that for now. "
FORCE_SKIP_PREFIX = "No worries, let's move on! "


@dataclass(frozen=True, slots=True)
class LeadReply:
    consumed: bool
    status: LeadStatus
    message: str | None = None
    field_index: int | None = None


class LeadCollector:
    def __init__(
        self,
        sessions: SessionRegistry,
        submitter: LeadService,
        max_retries: int = DEFAULT_MAX_RETRIES,
        rng: random.Random | None = None,
    ) -> None:
        self.sessions = sessions
        self.submitter = submitter
        self.max_retries = max_retries
        self.rng = rng or random.Random()

    def can_start(self, chatbot: Chatbot, conversation_id: str, visitor_id: str) -> bool:
        form = chatbot.lead_form
        if form is None or not form.fields:
            return False
        session = self.sessions.get(conversation_id)
        if session is not None and session.status is not LeadStatus.IDLE:
            return False
        return not self.submitter.has_submitted(chatbot.id, visitor_id)

    def start(self, chatbot: Chatbot, conversation_id: str, visitor_id: str) -> LeadReply | None:
        """Begin collection and return the first question, or None if it cannot start."""
        if not self.can_start(chatbot, conversation_id, visitor_id):
            return None
        form = chatbot.lead_form
        if form is None:
            return None
        session = LeadSession(
            conversation_id=conversation_id,
            chatbot_id=chatbot.id,
            visitor_id=visitor_id,
            form_id=form.id,
            fields=form.fields,
            success_message=form.success_message,
        )
        session.reset()
        self.sessions.put(session)
        logger.info("Lead collection started", extra={"ctx_conversation_id": conversation_id})
        return LeadReply(
            consumed=True,
            status=session.status,
            message=build_question(form.fields[0], is_first=True),
            field_index=0,
        )

    def status(self, conversation_id: str) -> LeadStatus:
        session = self.sessions.get(conversation_id)
        return session.status if session else LeadStatus.IDLE

    def handle_message(self, conversation_id: str, text: str) -> LeadReply:
        session = self.sessions.get(conversation_id)
        if session is None or session.status is not LeadStatus.COLLECTING:
            return LeadReply(consumed=False, status=session.status if session else LeadStatus.IDLE)
        field = session.current_field
        if field is None:
            return LeadReply(consumed=False, status=session.status)

        decision = decide(field, text, session.retries, self.max_retries)
        if decision.outcome is Outcome.RETRY:
            session.retries += 1
            return LeadReply(
                consumed=True,
                status=session.status,
                message=f"{decision.error}{RETRY_SUFFIX}",
                field_index=session.index,
            )

        session.data[field.label] = decision.value or ""
        session.index += 1
        session.retries = 0
        if session.index >= len(session.fields):
            return self._submit(session)

        next_question = build_question(session.fields[session.index])
        if decision.outcome is Outcome.ACCEPT:
            message = f"{acknowledgement(self.rng)} {next_question}"
        elif decision.outcome is Outcome.FORCE_ACCEPT:
            message = FORCE_ACCEPT_PREFIX + next_question
        elif decision.outcome is Outcome.FORCE_SKIP:
            message = FORCE_SKIP_PREFIX + next_question
        else:
            message = next_question
        return LeadReply(consumed=True, status=session.status, message=message, field_index=session.index)

    def retry(self, conversation_id: str) -> LeadReply | None:
        """Resume a session whose submission failed; collected answers are kept."""
        session = self.sessions.get(conversation_id)
        if session is None or session.status is not LeadStatus.ERROR:
            return None
        field = session.current_field
        if field is None:
            return None
        session.status = LeadStatus.COLLECTING
        session.retries = 0
        return LeadReply(
            consumed=True,
            status=session.status,
            message=build_question(field),
            field_index=session.index,
        )

    def _submit(self, session: LeadSession) -> LeadReply:
        session.status = LeadStatus.SUBMITTING
        try:
            receipt = self.submitter.submit(
                session.form_id,
                session.chatbot_id,
                session.conversation_id,
                dict(session.data),
                origin="conversation",
            )
            lead_id: str | None = receipt.lead_id
        except ConflictError:
            logger.info("Lead already stored for conversation %s", session.conversation_id)
            lead_id = None
        except (ChatbotEngineError, sqlite3.Error) as exc:
            logger.warning("Lead submission failed for %s: %s", session.conversation_id, exc)
            return self._fail(session)
        except Exception:
            logger.exception("Unexpected error submitting lead for %s", session.conversation_id)
            return self._fail(session)

        try:
            self.submitter.mark_submitted(session.chatbot_id, session.visitor_id, lead_id)
        except Exception:
            logger.exception("Could not flag visitor %s as submitted", session.visitor_id)
            return self._fail(session)
        session.status = LeadStatus.DONE
        self.sessions.drop(session.conversation_id)
        return LeadReply(
            consumed=True,
            status=LeadStatus.DONE,
            message=session.success_message or THANK_YOU,
            field_index=session.index,
        )

    def _fail(self, session: LeadSession) -> LeadReply:
        session.status = LeadStatus.ERROR
        session.index = len(session.fields) - 1
        return LeadReply(
            consumed=True,
            status=session.status,
            message=APOLOGY + build_question(session.fields[session.index]),
            field_index=session.index,
        )


__all__ = ["LeadCollector", "LeadReply", "THANK_YOU", "APOLOGY"]
