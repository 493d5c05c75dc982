"""Tests for keyword automations."""

from chatbot_engine.models.entities import ActionType, LogicAutomation
from chatbot_engine.pipeline.triggers import LogicTriggerMatcher, format_trigger_annotations


def _automation(
    automation_id: str,
    keywords: str | None,
    action: str = "LINK_BUTTON",
    config: str | None = None,
    active: bool = True,
    trigger_type: str = "KEYWORD",
) -> LogicAutomation:
    return LogicAutomation(
        id=automation_id,
        chatbot_id="bot",
        name=automation_id,
        trigger_type=trigger_type,
        keywords_raw=keywords,
        action=action,
        action_config_raw=config,
        is_active=active,
    )


def test_case_insensitive_substring_match() -> None:
    automations = [
        _automation("pricing", '["Pricing", "cost"]', config='{"buttonText": "See plans", "url": "https://x.io"}'),
        _automation("demo", '["demo"]', action="meetingSchedule"),
    ]
    fired = LogicTriggerMatcher().match("What does the PRICING look like?", automations)
    assert [trigger.automation_id for trigger in fired] == ["pricing"]
    assert fired[0].config["buttonText"] == "See plans"


def test_malformed_keywords_never_fire_and_never_raise() -> None:
    automations = [
        _automation("broken", "[not json"),
        _automation("wrong-shape", '{"keywords": "demo"}'),
        _automation("missing", None),
        _automation("ok", '["demo"]', action="leadCollection"),
    ]
    fired = LogicTriggerMatcher().match("book a demo", automations)
    assert [trigger.automation_id for trigger in fired] == ["ok"]
    assert fired[0].action_type is ActionType.COLLECT_LEADS


def test_inactive_and_non_keyword_automations_are_ignored() -> None:
    automations = [
        _automation("off", '["demo"]', active=False),
        _automation("timer", '["demo"]', trigger_type="TIME"),
    ]
    assert LogicTriggerMatcher().match("demo please", automations) == []


def test_malformed_config_yields_empty_config() -> None:
    fired = LogicTriggerMatcher().match("demo", [_automation("a", '["demo"]', config="{oops")])
    assert fired[0].config == {}
    assert format_trigger_annotations(fired) == 'AVAILABLE ACTION: You can offer the user: "this link"'


def test_annotations_per_action() -> None:
    automations = [
        _automation("meet", '["call"]', action="SCHEDULE_MEETING"),
        _automation("lead", '["call"]', action="COLLECT_LEADS"),
    ]
    annotations = format_trigger_annotations(LogicTriggerMatcher().match("schedule a call", automations))
    assert annotations.splitlines() == [
        "AVAILABLE ACTION: You can offer to schedule a meeting with the user.",
        "AVAILABLE ACTION: You can ask the user for their contact information.",
    ]
