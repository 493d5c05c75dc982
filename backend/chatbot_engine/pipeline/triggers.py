"""Keyword-triggered automations."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Sequence

import orjson

from chatbot_engine.core.errors import ConfigError
from chatbot_engine.core.logging import get_logger
from chatbot_engine.models.entities import ActionType, LogicAutomation

logger = get_logger(__name__)

KEYWORD_TRIGGER = "KEYWORD"


@dataclass(slots=True)
class FiredTrigger:
    automation_id: str
    name: str | None
    action: str
    keywords: list[str]
    config: dict[str, Any] = field(default_factory=dict)

    @property
    def action_type(self) -> ActionType | None:
        return ActionType.parse(self.action)


class LogicTriggerMatcher:
    """Reports which active keyword automations fire for a message.

    Automations with unparseable keyword JSON never fire; unparseable action
    config yields an empty config. Neither interrupts the turn.
    """

    def match(self, message: str, automations: Sequence[LogicAutomation]) -> list[FiredTrigger]:
        lowered = message.lower()
        fired: list[FiredTrigger] = []
        for automation in automations:
            if not automation.is_active or automation.trigger_type.upper() != KEYWORD_TRIGGER:
                continue
            try:
                keywords = parse_keywords(automation.keywords_raw)
            except ConfigError as exc:
                logger.debug("Skipping automation %s: %s", automation.id, exc)
                continue
            if not any(keyword.lower() in lowered for keyword in keywords):
                continue
            fired.append(
                FiredTrigger(
                    automation_id=automation.id,
                    name=automation.name,
                    action=_normalize_action(automation.action),
                    keywords=keywords,
                    config=_parse_config(automation),
                )
            )
        return fired


def parse_keywords(raw: Any) -> list[str]:
    if raw is None:
        raise ConfigError("Automation has no keywords")
    payload = raw
    if isinstance(raw, (str, bytes)):
        try:
            payload = orjson.loads(raw)
        except orjson.JSONDecodeError as exc:
            raise ConfigError("Automation keywords are not valid JSON") from exc
    if not isinstance(payload, list) or not all(isinstance(item, str) for item in payload):
        raise ConfigError("Automation keywords must be a list of strings")
    return [item.strip() for item in payload if item.strip()]


def format_trigger_annotations(triggers: Sequence[FiredTrigger]) -> str:
    """Prompt lines telling the model which actions it may offer."""
    lines: list[str] = []
    for trigger in triggers:
        action = trigger.action_type
        if action is ActionType.LINK_BUTTON:
            button_text = trigger.config.get("buttonText") or trigger.config.get("button_text") or "this link"
            lines.append(f'AVAILABLE ACTION: You can offer the user: "{button_text}"')
        elif action is ActionType.SCHEDULE_MEETING:
            lines.append("AVAILABLE ACTION: You can offer to schedule a meeting with the user.")
        elif action is ActionType.COLLECT_LEADS:
            lines.append("AVAILABLE ACTION: You can ask the user for their contact information.")
    return "\n".join(lines)


def _normalize_action(action: str) -> str:
    parsed = ActionType.parse(action)
    return parsed.value if parsed else action


def _parse_config(automation: LogicAutomation) -> dict[str, Any]:
    raw = automation.action_config_raw
    if not raw:
        return {}
    try:
        payload = orjson.loads(raw)
    except orjson.JSONDecodeError:
        logger.debug("Automation %s has malformed action config", automation.id)
        return {}
    return payload if isinstance(payload, dict) else {}


__all__ = ["FiredTrigger", "LogicTriggerMatcher", "parse_keywords", "format_trigger_annotations"]
