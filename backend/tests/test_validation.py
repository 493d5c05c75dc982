"""Tests for lead answer validation."""

import pytest

from chatbot_engine.leads.validation import validate_field_value
from chatbot_engine.models.entities import FieldType, LeadField


def _field(field_type: FieldType, required: bool = True, options: tuple[str, ...] = ()) -> LeadField:
    return LeadField(id="f1", type=field_type, label="Company Name", required=required, options=options)


def test_blank_required_answer_names_the_field() -> None:
    assert validate_field_value(_field(FieldType.TEXT), "   ") == "Please provide your company name."


def test_blank_optional_answer_is_accepted() -> None:
    assert validate_field_value(_field(FieldType.EMAIL, required=False), "") is None


@pytest.mark.parametrize(
    ("field_type", "value", "valid"),
    [
        (FieldType.EMAIL, "jane@example.com", True),
        (FieldType.EMAIL, "not-an-email", False),
        (FieldType.PHONE, "+1 (555) 010-2030", True),
        (FieldType.PHONE, "12-34", False),
        (FieldType.NUMBER, "42.5", True),
        (FieldType.CURRENCY, "ten", False),
        (FieldType.LINK, "https://example.com/about", True),
        (FieldType.LINK, "example dot com", False),
        (FieldType.TEXT, "anything goes", True),
        (FieldType.DATE, "next tuesday", True),
    ],
)
def test_type_rules(field_type: FieldType, value: str, valid: bool) -> None:
    assert (validate_field_value(_field(field_type), value) is None) is valid


def test_select_membership_is_case_insensitive() -> None:
    field = _field(FieldType.SELECT, options=("Small", "Large"))
    assert validate_field_value(field, "large") is None
    assert validate_field_value(field, "Medium") == "Please choose one of: Small, Large."


def test_select_without_options_accepts_anything() -> None:
    assert validate_field_value(_field(FieldType.RADIO), "whatever") is None
