"""API integration tests."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from chatbot_engine.app import app
from chatbot_engine.core.errors import FALLBACK_MESSAGE, RateLimitError
from chatbot_engine.leads.questions import INTRO

from conftest import FakeGenerator

DOCUMENT = "Office hours are nine to five on weekdays."


@pytest.fixture
def client(generator: FakeGenerator) -> TestClient:
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def chatbot_id(client: TestClient) -> str:
    resp = client.post(
        "/chatbots",
        json={"name": "Acme", "directive": "You are Acme's assistant.", "model_id": "gemini-test", "temperature": 0.5},
    )
    assert resp.status_code == 200
    bot_id = resp.json()["id"]

    source = client.post(f"/chatbots/{bot_id}/sources", json={"name": "FAQ"}).json()
    ingest = client.post(
        f"/sources/{source['id']}/documents",
        json={"text": DOCUMENT, "metadata": {"title": "Opening hours", "source": "https://acme.io/hours"}},
    )
    assert ingest.status_code == 200
    assert ingest.json()["chunks"] == 1

    client.post(f"/chatbots/{bot_id}/automations", json={"action": "leadCollection", "keywords": ["demo"]})
    client.post(
        f"/chatbots/{bot_id}/automations",
        json={"action": "LINK_BUTTON", "keywords": '["pricing"', "name": "broken"},
    )
    form = client.put(
        f"/chatbots/{bot_id}/form",
        json={
            "fields": [
                {"id": "email", "type": "EMAIL", "label": "Email", "required": True},
                {"id": "company", "type": "TEXT", "label": "Company"},
            ],
            "success_message": "Thanks, talk soon!",
        },
    )
    assert form.status_code == 200
    assert [field["label"] for field in form.json()["fields"]] == ["Email", "Company"]
    return bot_id


def test_health(client: TestClient) -> None:
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["ok"] is True


def test_grounded_answer_then_lead_collection(client: TestClient, chatbot_id: str, generator: FakeGenerator) -> None:
    first = client.post(
        "/chat",
        json={"chatbot_id": chatbot_id, "message": "office hours are nine to five on weekdays?", "visitor_id": "v1"},
    )
    assert first.status_code == 200
    payload = first.json()
    assert payload["mode"] == "grounded"
    assert payload["sources_used"] == 1
    assert payload["message"] == generator.answer
    assert payload["source_urls"] == [{"title": "Opening hours", "url": "https://acme.io/hours", "score": pytest.approx(1.0)}]
    assert DOCUMENT in generator.prompts()[-1]
    conversation_id = payload["conversation_id"]

    demo = client.post(
        "/chat",
        json={"chatbot_id": chatbot_id, "conversation_id": conversation_id, "message": "Can I book a demo?", "visitor_id": "v1"},
    ).json()
    assert [trigger["action"] for trigger in demo["logic_triggers"]] == ["COLLECT_LEADS"]
    assert demo["lead_status"] == "collecting"
    assert demo["lead_question"] == INTRO + "May I have your email address?"
    prompt = generator.prompts()[-1]
    assert "User: office hours are nine to five on weekdays?" in prompt
    assert "AVAILABLE ACTION: You can ask the user for their contact information." in prompt

    answers_before = len(generator.calls)
    email = client.post(
        "/chat",
        json={"chatbot_id": chatbot_id, "conversation_id": conversation_id, "message": "jane@example.com"},
    ).json()
    assert email["mode"] == "lead"
    assert email["lead_status"] == "collecting"
    assert "May I know your company?" in email["message"]
    assert len(generator.calls) == answers_before

    done = client.post(
        "/chat",
        json={"chatbot_id": chatbot_id, "conversation_id": conversation_id, "message": "skip"},
    ).json()
    assert done["lead_status"] == "done"
    assert done["message"] == "Thanks, talk soon!"

    transcript = client.get(f"/chat/{conversation_id}/messages", params={"chatbot_id": chatbot_id}).json()
    senders = [message["sender"] for message in transcript["messages"]]
    assert senders == ["USER", "BOT", "USER", "BOT", "BOT", "USER", "BOT", "USER", "BOT"]
    assert transcript["messages"][-1]["content"] == "Thanks, talk soon!"

    form_id = client.get(f"/chatbots/{chatbot_id}").json()["lead_form"]["id"]
    duplicate = client.post(
        "/leads",
        json={"form_id": form_id, "chatbot_id": chatbot_id, "conversation_id": conversation_id, "data": {"Email": "x@y.io"}},
    )
    assert duplicate.status_code == 409
    assert duplicate.json()["error"] == "ConflictError"

    again = client.post(
        "/chat/lead/start",
        json={"chatbot_id": chatbot_id, "conversation_id": conversation_id, "visitor_id": "v1"},
    ).json()
    assert again["started"] is False


def test_no_matching_knowledge_uses_open_mode(client: TestClient, chatbot_id: str, generator: FakeGenerator) -> None:
    resp = client.post("/chat", json={"chatbot_id": chatbot_id, "message": "What are your hours?"})
    assert resp.status_code == 200
    assert resp.json()["mode"] == "open"
    assert resp.json()["sources_used"] == 0
    prompt = generator.prompts()[-1]
    assert "KNOWLEDGE BASE CONTEXT" not in prompt
    assert "You are Acme's assistant." in prompt
    assert "This is the start of the conversation." in prompt


def test_search_endpoint(client: TestClient, chatbot_id: str) -> None:
    resp = client.get("/chat/search", params={"chatbot_id": chatbot_id, "query": "office hours", "threshold": 0.1})
    assert resp.status_code == 200
    payload = resp.json()
    assert payload["results"][0]["content"] == DOCUMENT
    assert payload["context"].startswith("KNOWLEDGE BASE CONTEXT:")


def test_unknown_chatbot_and_foreign_conversation(client: TestClient, chatbot_id: str) -> None:
    missing = client.post("/chat", json={"chatbot_id": "bot_missing", "message": "hi"})
    assert missing.status_code == 404
    assert missing.json() == {"error": "NotFoundError", "message": "Chatbot not found"}

    conversation_id = client.post("/chat", json={"chatbot_id": chatbot_id, "message": "hello"}).json()["conversation_id"]
    other_bot = client.post("/chatbots", json={"name": "Other"}).json()["id"]
    foreign = client.post("/chat", json={"chatbot_id": other_bot, "conversation_id": conversation_id, "message": "hi"})
    assert foreign.status_code == 403
    assert foreign.json()["message"] == "Conversation does not belong to this chatbot"

    unknown = client.post("/chat", json={"chatbot_id": chatbot_id, "conversation_id": "cnv_nope", "message": "hi"})
    assert unknown.status_code == 404

    transcript = client.get(f"/chat/{conversation_id}/messages", params={"chatbot_id": chatbot_id}).json()
    assert len(transcript["messages"]) == 2


def test_generation_failure_returns_fallback(
    client: TestClient,
    chatbot_id: str,
    generator: FakeGenerator,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    generator.fail = {"answer"}
    resp = client.post("/chat", json={"chatbot_id": chatbot_id, "message": "hello"})
    assert resp.status_code == 500
    assert resp.json() == {"error": "ProviderError", "message": FALLBACK_MESSAGE}

    from chatbot_engine.api import dependencies as deps
    from chatbot_engine.core.config import get_settings

    monkeypatch.setenv("CHATBOT_ENVIRONMENT", "development")
    deps.get_app_settings.cache_clear()
    get_settings.cache_clear()
    detailed = client.post("/chat", json={"chatbot_id": chatbot_id, "message": "hello"}).json()
    assert detailed["message"] == FALLBACK_MESSAGE
    assert "answer model unavailable" in detailed["details"]["error"]


def test_rate_limited_model_returns_429(client: TestClient, chatbot_id: str, generator: FakeGenerator) -> None:
    generator.fail = {"answer"}
    generator.error = RateLimitError
    resp = client.post("/chat", json={"chatbot_id": chatbot_id, "message": "hello"})
    assert resp.status_code == 429
    assert resp.json() == {"error": "RateLimitError", "message": FALLBACK_MESSAGE}


def test_end_conversation_and_validation(client: TestClient, chatbot_id: str) -> None:
    conversation_id = client.post("/chat", json={"chatbot_id": chatbot_id, "message": "hello"}).json()["conversation_id"]
    ended = client.put(f"/chat/{conversation_id}", json={"is_active": False, "metadata": {"rating": 5}}).json()
    assert ended["is_active"] is False
    assert ended["ended_at"] is not None
    assert ended["metadata"] == {"rating": 5}

    assert client.post("/chatbots", json={"name": "Bad", "temperature": 0}).status_code == 422
    assert client.post("/chat", json={"chatbot_id": chatbot_id, "message": ""}).status_code == 422


def test_metrics_endpoint(client: TestClient, chatbot_id: str) -> None:
    client.post("/chat", json={"chatbot_id": chatbot_id, "message": "hello"})
    resp = client.get("/metrics")
    assert resp.status_code == 200
    assert "chatbot_requests_total" in resp.text
