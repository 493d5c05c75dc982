"""Chat prompts for lead form fields."""

from __future__ import annotations

import random

from chatbot_engine.models.entities import FieldType, LeadField

INTRO = "Before we continue, I'd love to know a bit more about you.\n\n"
ACKNOWLEDGEMENTS = ("Got it!", "Perfect!", "Thanks!", "Great!", "Noted!")
SKIP_HINT = '(Optional, type "skip" to skip this one)'

_CHOICE_TYPES = (FieldType.SELECT, FieldType.RADIO, FieldType.CHECKBOX, FieldType.MULTISELECT)


def build_question(field: LeadField, is_first: bool = False) -> str:
    if field.type is FieldType.EMAIL:
        question = "May I have your email address?"
    elif field.type is FieldType.PHONE:
        question = "What's the best phone number to reach you?"
    elif field.type in (FieldType.SELECT, FieldType.RADIO):
        question = f"{field.label}?" + _options_suffix(field)
    elif field.type in (FieldType.CHECKBOX, FieldType.MULTISELECT):
        question = f"{field.label}? (You can list multiple)" + _options_suffix(field)
    elif field.type is FieldType.TEXTAREA:
        question = f"{field.label}: feel free to share as much detail as you like."
    else:
        question = f"May I know your {field.label.lower()}?"

    if field.placeholder and field.type not in _CHOICE_TYPES:
        question += f"\n(e.g. {field.placeholder})"
    if not field.required:
        question += f"\n{SKIP_HINT}"
    return (INTRO if is_first else "") + question


def acknowledgement(rng: random.Random | None = None) -> str:
    return (rng or random).choice(ACKNOWLEDGEMENTS)


def _options_suffix(field: LeadField) -> str:
    if not field.options:
        return ""
    numbered = " | ".join(f"{idx}. {option}" for idx, option in enumerate(field.options, start=1))
    return f"\n\nOptions: {numbered}"


__all__ = ["INTRO", "ACKNOWLEDGEMENTS", "build_question", "acknowledgement"]
