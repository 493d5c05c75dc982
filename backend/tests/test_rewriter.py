"""Tests for query rewriting."""

import httpx
import pytest

from chatbot_engine.core.metrics import REGISTRY
from chatbot_engine.llm.client import GenerativeClient
from chatbot_engine.pipeline.rewriter import QueryRewriter, clean_query

from conftest import FakeGenerator


def _fallbacks() -> float:
    return REGISTRY.get_sample_value("chatbot_rewrite_fallbacks_total") or 0.0


def test_clean_query_strips_quotes_and_caps_words() -> None:
    assert clean_query('\n  "pricing plans for teams"\nextra line') == "pricing plans for teams"
    assert clean_query("1. “refund   policy”") == "refund policy"
    long = " ".join(f"w{i}" for i in range(15))
    assert clean_query(long).split() == [f"w{i}" for i in range(10)]


def test_rewrite_uses_model_output() -> None:
    fake = FakeGenerator()
    fake.rewrite = "'team plan monthly price'"
    rewriter = QueryRewriter(fake, "rewrite-model")
    assert rewriter.rewrite("hey so how much is the team plan per month?") == "team plan monthly price"
    assert fake.calls[0]["model_id"] == "rewrite-model"
    assert fake.calls[0]["purpose"] == "rewrite"


def test_provider_failure_returns_original_message() -> None:
    before = _fallbacks()
    rewriter = QueryRewriter(FakeGenerator(fail=("rewrite",)), "rewrite-model")
    assert rewriter.rewrite("Do you ship abroad?") == "Do you ship abroad?"
    assert _fallbacks() == before + 1


def test_empty_rewrite_returns_original_message() -> None:
    fake = FakeGenerator()
    fake.rewrite = '  ""  '
    assert QueryRewriter(fake, "m").rewrite("Opening hours?") == "Opening hours?"


@pytest.mark.parametrize(
    "payload",
    [
        {"candidates": [{"content": {"parts": [{"text": None}]}}]},
        {"candidates": [{"content": "oops"}]},
        {"candidates": {"0": 1}},
    ],
)
def test_malformed_model_response_returns_original_message(payload) -> None:
    client = GenerativeClient("key", transport=httpx.MockTransport(lambda request: httpx.Response(200, json=payload)))
    assert QueryRewriter(client, "rewrite-model").rewrite("what are your hours") == "what are your hours"
