"""Tests for prompt assembly and answer generation."""

import pytest

from chatbot_engine.core.errors import ProviderError
from chatbot_engine.models.entities import Chatbot
from chatbot_engine.pipeline.composer import NO_INFORMATION_REPLY, AnswerComposer, AnswerMode
from chatbot_engine.pipeline.history import NEW_CONVERSATION

from conftest import FakeGenerator

CHATBOT = Chatbot(
    id="bot_1",
    workspace_id=None,
    name="Acme",
    directive="You are Acme's support assistant.",
    description="Upbeat and concise.",
    model_id="gemini-test",
    max_tokens=256,
    temperature=0.4,
)


def test_grounded_prompt_carries_refusal_phrase_verbatim() -> None:
    fake = FakeGenerator(answer="  The team plan costs 40 dollars.  ")
    composer = AnswerComposer(fake, default_model="fallback-model")
    context = "KNOWLEDGE BASE CONTEXT:\n\n[Chunk 1 | Relevance: 91.0% | Source: Pricing]\nTeam plan: 40 dollars"
    answer = composer.compose(CHATBOT, "How much is the team plan?", context)

    assert answer.mode is AnswerMode.GROUNDED
    assert answer.text == "The team plan costs 40 dollars."
    assert "I don't have information about that" in answer.prompt
    assert NO_INFORMATION_REPLY == "I don't have information about that"
    assert context in answer.prompt
    call = fake.calls[0]
    assert (call["model_id"], call["max_tokens"], call["temperature"]) == ("gemini-test", 256, 0.4)


def test_no_context_falls_back_to_open_mode() -> None:
    fake = FakeGenerator()
    answer = AnswerComposer(fake, "fallback-model").compose(CHATBOT, "What are your hours?", "")

    assert answer.mode is AnswerMode.OPEN
    assert "KNOWLEDGE BASE CONTEXT" not in answer.prompt
    assert NO_INFORMATION_REPLY not in answer.prompt
    assert "You are Acme's support assistant." in answer.prompt
    assert "Your personality: Upbeat and concise." in answer.prompt
    assert NEW_CONVERSATION in answer.prompt
    assert answer.prompt.rstrip().endswith("USER: What are your hours?\n\nASSISTANT:")


def test_empty_history_is_rendered_as_sentinel() -> None:
    fake = FakeGenerator()
    answer = AnswerComposer(fake, "m").compose(CHATBOT, "hi", "", history="   ")
    assert NEW_CONVERSATION in answer.prompt


def test_annotations_are_injected_in_both_modes() -> None:
    fake = FakeGenerator()
    composer = AnswerComposer(fake, "m")
    note = "AVAILABLE ACTION: You can offer to schedule a meeting with the user."
    assert note in composer.compose(CHATBOT, "call me", "", annotations=note).prompt
    assert note in composer.compose(CHATBOT, "call me", "KNOWLEDGE BASE CONTEXT: x", annotations=note).prompt


def test_missing_model_id_uses_default() -> None:
    fake = FakeGenerator()
    chatbot = Chatbot(
        id="b", workspace_id=None, name="b", directive=None, description=None,
        model_id=None, max_tokens=100, temperature=0.7,
    )
    answer = AnswerComposer(fake, "fallback-model").compose(chatbot, "hi", "")
    assert fake.calls[0]["model_id"] == "fallback-model"
    assert "You are a helpful, knowledgeable assistant." in answer.prompt


def test_generation_failure_propagates() -> None:
    composer = AnswerComposer(FakeGenerator(fail=("answer",)), "m")
    with pytest.raises(ProviderError):
        composer.compose(CHATBOT, "hi", "")
