"""Tests for lead persistence."""

import pytest

from chatbot_engine.core.errors import ConflictError, NotFoundError, OwnershipError, ValidationError
from chatbot_engine.db.repositories import ChatbotRepository, ConversationRepository
from chatbot_engine.db.sqlite import SQLiteDatabase
from chatbot_engine.leads.store import DEFAULT_SUCCESS_MESSAGE, LeadService

FIELDS = [
    {"id": "name", "type": "TEXT", "label": "Full Name", "required": True},
    {"id": "email", "type": "EMAIL", "label": "Email", "required": True},
    {"id": "notes", "type": "TEXTAREA", "label": "Notes"},
]


@pytest.fixture
def setup(db: SQLiteDatabase):
    chatbots = ChatbotRepository(db)
    conversations = ConversationRepository(db)
    chatbot_id = chatbots.create(name="Acme")
    form_id = chatbots.upsert_form(chatbot_id, FIELDS, success_message="We'll call you!")
    conversation_id = conversations.create(chatbot_id, "hi").id
    return LeadService(db, chatbots, conversations), chatbot_id, form_id, conversation_id


def test_second_submission_for_conversation_is_rejected(setup, db: SQLiteDatabase) -> None:
    service, chatbot_id, form_id, conversation_id = setup
    data = {"Full Name": "Jane Doe", "email": "jane@example.com"}
    receipt = service.submit(form_id, chatbot_id, conversation_id, data)
    assert receipt.success_message == "We'll call you!"

    with pytest.raises(ConflictError):
        service.submit(form_id, chatbot_id, conversation_id, data)
    assert service.count(chatbot_id) == 1

    lead = service.find(chatbot_id, conversation_id)
    assert lead.id == receipt.lead_id
    assert lead.data == {"Full Name": "Jane Doe", "Email": "jane@example.com"}
    assert ConversationRepository(db).get(conversation_id).lead_id == receipt.lead_id


def test_missing_required_fields_are_listed(setup) -> None:
    service, chatbot_id, form_id, conversation_id = setup
    with pytest.raises(ValidationError) as excinfo:
        service.submit(form_id, chatbot_id, conversation_id, {"Full Name": "  "})
    assert excinfo.value.details["missing"] == ["Full Name", "Email"]
    assert service.count(chatbot_id) == 0


def test_unknown_form_and_foreign_conversation(setup, db: SQLiteDatabase) -> None:
    service, chatbot_id, form_id, conversation_id = setup
    with pytest.raises(NotFoundError):
        service.submit("frm_missing", chatbot_id, conversation_id, {})

    chatbots = ChatbotRepository(db)
    other_bot = chatbots.create(name="Other")
    other_form = chatbots.upsert_form(other_bot, [{"label": "Email", "type": "EMAIL"}])
    with pytest.raises(OwnershipError):
        service.submit(other_form, other_bot, conversation_id, {"Email": "a@b.co"})


def test_default_success_message_and_visitor_flag(db: SQLiteDatabase) -> None:
    chatbots = ChatbotRepository(db)
    chatbot_id = chatbots.create(name="Plain")
    form_id = chatbots.upsert_form(chatbot_id, [{"label": "Email", "type": "EMAIL"}])
    service = LeadService(db, chatbots, ConversationRepository(db))
    assert service.submit(form_id, chatbot_id, None, {}).success_message == DEFAULT_SUCCESS_MESSAGE

    assert not service.has_submitted(chatbot_id, "visitor-9")
    service.mark_submitted(chatbot_id, "visitor-9", "lead_1")
    service.mark_submitted(chatbot_id, "visitor-9", "lead_2")
    assert service.has_submitted(chatbot_id, "visitor-9")
