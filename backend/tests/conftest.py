"""Test fixtures for the chatbot engine."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Any

import pytest

BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(BACKEND_ROOT))

from chatbot_engine.core.errors import ProviderError  # noqa: E402
from chatbot_engine.db.sqlite import SQLiteDatabase  # noqa: E402


class FakeGenerator:
    """Stands in for GenerativeClient; echoes the user message for rewrites."""

    def __init__(self, answer: str = "Happy to help with that.", fail: tuple[str, ...] = ()) -> None:
        self.answer = answer
        self.rewrite: str | None = None
        self.fail = set(fail)
        self.error: type[ProviderError] = ProviderError
        self.calls: list[dict[str, Any]] = []

    def generate(
        self,
        model_id: str,
        prompt: str,
        max_tokens: int,
        temperature: float,
        purpose: str = "answer",
    ) -> str:
        self.calls.append(
            {
                "model_id": model_id,
                "prompt": prompt,
                "max_tokens": max_tokens,
                "temperature": temperature,
                "purpose": purpose,
            }
        )
        if purpose in self.fail:
            raise self.error(f"{purpose} model unavailable")
        if purpose == "rewrite":
            if self.rewrite is not None:
                return self.rewrite
            return prompt.split("User message: ", 1)[1].split("\n", 1)[0]
        return self.answer

    def prompts(self, purpose: str = "answer") -> list[str]:
        return [call["prompt"] for call in self.calls if call["purpose"] == purpose]


@pytest.fixture(autouse=True)
def reset_state(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Reset global singletons and environment between tests."""
    monkeypatch.setenv("CHATBOT_DB_PATH", str(tmp_path / "chatbot.db"))
    monkeypatch.setenv("CHATBOT_ENVIRONMENT", "test")
    monkeypatch.delenv("CHATBOT_CONFIG", raising=False)

    from chatbot_engine.api import dependencies as deps
    from chatbot_engine.retrieval.embeddings import EmbeddingModel

    EmbeddingModel._instances.clear()
    deps.reset_dependencies()
    yield
    EmbeddingModel._instances.clear()
    deps.reset_dependencies()


@pytest.fixture
def generator() -> FakeGenerator:
    from chatbot_engine.api import dependencies as deps

    fake = FakeGenerator()
    deps._GENERATOR = fake
    return fake


@pytest.fixture
def db(tmp_path: Path) -> SQLiteDatabase:
    database = SQLiteDatabase(tmp_path / "unit.db")
    database.ensure_schema()
    yield database
    database.close()


@pytest.fixture(scope="session")
def sample_text() -> str:
    return "Pricing\n\nThe starter plan costs 10 dollars.\n\nThe team plan costs 40 dollars per month."
