"""Tests for form session validation and answer text projection."""
import pytest

from formdesk.core.exceptions import AnswerTypeMismatch
from formdesk.schemas.answers import (
    AddressAnswer, BooleanAnswer, DateAnswer, FileAnswer, NumberAnswer,
    OptionsAnswer, ScaleAnswer, TextAnswer,
)
from formdesk.schemas.fields import FieldDefinition
from formdesk.services.form_renderer import (
    ADDRESS_MESSAGE, DATE_MESSAGE, FILE_MESSAGE, NUMBER_MESSAGE, OPTIONS_MESSAGE,
    REQUIRED_MESSAGE, SCALE_MESSAGE, FormSession, deserialize_answer,
    display_answer, scale_choices, serialize_answer,
)


def field(kind, order=0, required=True, **extra):
    return FieldDefinition(field_type=kind, label=kind, field_order=order, is_required=required, **extra)


EMPTY_CASES = [
    ("sp_short_text", TextAnswer(value="   "), REQUIRED_MESSAGE),
    ("sp_dropdown", OptionsAnswer(values=[]), OPTIONS_MESSAGE),
    ("sp_number", NumberAnswer(value=None), NUMBER_MESSAGE),
    ("sp_date", DateAnswer(value=""), DATE_MESSAGE),
    ("sp_yes_no", BooleanAnswer(value=None), REQUIRED_MESSAGE),
    ("sp_rating", ScaleAnswer(value=None), SCALE_MESSAGE),
    ("sp_file_upload", FileAnswer(), FILE_MESSAGE),
    ("sp_address", AddressAnswer(street="1 High St"), ADDRESS_MESSAGE),
]

MINIMAL_CASES = [
    ("sp_short_text", TextAnswer(value="a")),
    ("sp_dropdown", OptionsAnswer(values=["Option 1"])),
    ("sp_number", NumberAnswer(value=0)),
    ("sp_date", DateAnswer(value="2024-05-01")),
    ("sp_yes_no", BooleanAnswer(value=False)),
    ("sp_checkbox", BooleanAnswer(value=False)),
    ("sp_nps", ScaleAnswer(value=0)),
    ("sp_file_upload", FileAnswer(file_url="http://files.test/a.pdf")),
    ("sp_address", AddressAnswer(street="1 High St", city="Leeds")),
]


@pytest.mark.parametrize("kind, answer, message", EMPTY_CASES)
def test_required_field_with_empty_answer_fails(kind, answer, message):
    session = FormSession([field(kind)])
    session.on_change(0, answer)
    assert session.validate() == {0: message}


@pytest.mark.parametrize("kind, answer", MINIMAL_CASES)
def test_required_field_with_minimal_answer_passes(kind, answer):
    session = FormSession([field(kind)])
    session.on_change(0, answer)
    assert session.validate() == {}


def test_missing_answer_is_required_error():
    session = FormSession([field("sp_email")])
    assert session.validate() == {0: REQUIRED_MESSAGE}


def test_optional_fields_and_statements_are_not_validated():
    session = FormSession([field("sp_short_text", 0, required=False), field("sp_statement", 1)])
    assert session.validate() == {}


def test_errors_are_ordered_and_first_index_reported():
    session = FormSession([
        field("sp_short_text", 0, required=False),
        field("sp_email", 1),
        field("sp_phone", 2),
    ])
    errors = session.validate()
    assert list(errors) == [1, 2]
    assert session.first_error_index() == 1


def test_on_change_clears_that_fields_error():
    session = FormSession([field("sp_email", 0), field("sp_phone", 1)])
    session.validate()
    session.on_change(0, TextAnswer(value="a@b.co"))
    assert 0 not in session.errors
    assert 1 in session.errors


def test_on_change_accepts_plain_dicts():
    session = FormSession([field("sp_rating")])
    session.on_change(0, {"type": "scale", "value": 4})
    assert session.answers[0] == ScaleAnswer(value=4)


def test_on_change_rejects_out_of_range_index():
    session = FormSession([field("sp_short_text")])
    with pytest.raises(IndexError):
        session.on_change(-1, TextAnswer(value="Jo"))
    with pytest.raises(IndexError):
        session.on_change(1, TextAnswer(value="Jo"))
    assert session.answers == {}
    assert session.validate() == {0: REQUIRED_MESSAGE}


def test_on_change_rejects_mismatched_answer_tag():
    session = FormSession([field("sp_number"), field("sp_statement", 1)])
    with pytest.raises(AnswerTypeMismatch):
        session.on_change(0, TextAnswer(value="12"))
    with pytest.raises(AnswerTypeMismatch):
        session.on_change(1, TextAnswer(value="hi"))


def test_serialize_answer():
    assert serialize_answer(OptionsAnswer(values=["Red", "Blue"])) == "Red, Blue"
    assert serialize_answer(NumberAnswer(value=3.0)) == "3"
    assert serialize_answer(NumberAnswer(value=2.5)) == "2.5"
    assert serialize_answer(BooleanAnswer(value=False)) == "No"
    assert serialize_answer(FileAnswer(file_name="a.pdf", file_url="http://f/a.pdf")) == "http://f/a.pdf"
    assert serialize_answer(AddressAnswer(street="1 High St", postcode="LS1 1AA")) == "1 High St, LS1 1AA"
    assert serialize_answer(None) == ""


@pytest.mark.parametrize("kind, answer", [
    ("sp_long_text", TextAnswer(value="line one")),
    ("sp_number", NumberAnswer(value=0)),
    ("sp_number", NumberAnswer(value=12.75)),
    ("sp_date", DateAnswer(value="2024-02-29")),
    ("sp_yes_no", BooleanAnswer(value=True)),
    ("sp_yes_no", BooleanAnswer(value=False)),
    ("sp_opinion_scale", ScaleAnswer(value=7)),
])
def test_stored_text_reads_back_to_the_same_display(kind, answer):
    text = serialize_answer(answer)
    assert display_answer(deserialize_answer(kind, text)) == display_answer(answer)


def test_scale_choices_per_kind():
    assert scale_choices(field("sp_rating")) == [1, 2, 3, 4, 5]
    assert scale_choices(field("sp_nps")) == list(range(0, 11))
    assert scale_choices(field("sp_opinion_scale", scale_min=1, scale_max=7)) == list(range(1, 8))
    assert scale_choices(field("sp_short_text")) == []


def test_render_reports_error_and_display_value():
    session = FormSession([field("sp_dropdown", options=[{"id": "o1", "label": "Red"}]), field("sp_email", 1)])
    session.on_change(0, OptionsAnswer(values=["Red"]))
    session.validate()
    rendered = session.render_all()
    assert rendered[0].display_value == "Red"
    assert rendered[0].selected_options == ["Red"]
    assert rendered[0].error is None
    assert rendered[1].error == REQUIRED_MESSAGE
