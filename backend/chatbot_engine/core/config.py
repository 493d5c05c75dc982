"""Application configuration handling."""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Literal, Mapping

import yaml
from pydantic import BaseModel, Field, field_validator

ENV_PREFIX = "CHATBOT_"
DEFAULT_CONFIG_PATH = Path("~/.config/chatbot-engine/config.yaml")

_YAML_KEY_MAP: Mapping[tuple[str, ...], str] = {
    ("storage", "db_path"): "db_path",
    ("embeddings", "model"): "embedding_model",
    ("embeddings", "dim"): "embedding_dim",
    ("llm", "api_key"): "gemini_api_key",
    ("llm", "base_url"): "gemini_base_url",
    ("llm", "answer_model"): "answer_model",
    ("llm", "rewrite_model"): "rewrite_model",
    ("llm", "timeout_seconds"): "request_timeout_seconds",
    ("retrieval", "per_source_limit"): "search_limit",
    ("retrieval", "threshold"): "search_threshold",
    ("retrieval", "context_cap"): "context_cap",
    ("retrieval", "workers"): "search_workers",
    ("history", "window_minutes"): "history_window_minutes",
    ("history", "limit"): "history_limit",
    ("leads", "max_retries"): "lead_max_retries",
    ("app", "environment"): "environment",
}


class Settings(BaseModel):
    """Runtime configuration loaded from YAML file and environment variables."""

    db_path: Path = Field(default=Path.home() / ".chatbot-engine" / "chatbot.db")
    embedding_model: str = "hashed-384"
    embedding_dim: int = Field(default=384, gt=0)
    gemini_api_key: str = ""
    gemini_base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    answer_model: str = "gemini-2.5-flash"
    rewrite_model: str = "gemini-2.5-flash"
    request_timeout_seconds: float = Field(default=30.0, gt=0)
    search_limit: int = Field(default=5, ge=1)
    search_threshold: float = Field(default=0.65, ge=0.0, le=1.0)
    context_cap: int = Field(default=8, ge=1)
    search_workers: int = Field(default=4, ge=1)
    history_window_minutes: int = Field(default=30, ge=1)
    history_limit: int = Field(default=10, ge=1)
    lead_max_retries: int = Field(default=3, ge=1)
    environment: Literal["production", "development", "test"] = "production"

    model_config = {
        "validate_assignment": True,
        "extra": "ignore",
    }

    @field_validator("db_path", mode="before")
    @classmethod
    def _expand_db_path(cls, value: Any) -> Path:
        if isinstance(value, Path):
            return value.expanduser()
        if isinstance(value, str):
            return Path(value).expanduser()
        raise TypeError("db_path must be a path or string")

    @property
    def debug_errors(self) -> bool:
        """Whether raw error detail may be returned to API callers."""
        return self.environment == "development"

    @classmethod
    def from_yaml(cls, path: Path | None = None) -> "Settings":
        """Load YAML config and overlay env vars; fall back to defaults."""
        config_path = cls._resolve_config_path(path)
        data: dict[str, Any] = {}
        if config_path and config_path.exists():
            with config_path.open("r", encoding="utf-8") as fh:
                raw = yaml.safe_load(fh) or {}
            data.update(_flatten_yaml(raw))
        data.update(_load_env_overrides())
        return cls(**data)

    @staticmethod
    def _resolve_config_path(path: Path | None) -> Path | None:
        if path is not None:
            return path.expanduser()
        env_path = os.environ.get(f"{ENV_PREFIX}CONFIG")
        if env_path:
            return Path(env_path).expanduser()
        resolved_default = DEFAULT_CONFIG_PATH.expanduser()
        return resolved_default if resolved_default.exists() else None


def _flatten_yaml(raw: Mapping[str, Any], prefix: tuple[str, ...] = ()) -> dict[str, Any]:
    """Flatten nested YAML sections to Settings field names."""
    flat: dict[str, Any] = {}
    for key, value in raw.items():
        next_prefix = prefix + (key,)
        if isinstance(value, Mapping):
            flat.update(_flatten_yaml(value, prefix=next_prefix))
        else:
            mapped_key = _YAML_KEY_MAP.get(next_prefix)
            if mapped_key:
                flat[mapped_key] = value
            elif key in Settings.model_fields:
                flat[key] = value
    return flat


def _load_env_overrides() -> dict[str, Any]:
    """Map CHATBOT_* environment variables onto Settings fields."""
    overrides: dict[str, Any] = {}
    for key, value in os.environ.items():
        if not key.startswith(ENV_PREFIX):
            continue
        field_name = key[len(ENV_PREFIX) :].lower()
        if field_name in Settings.model_fields:
            overrides[field_name] = value
    return overrides


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Cached settings accessor for dependency injection."""
    return Settings.from_yaml()


__all__ = ["Settings", "get_settings"]
