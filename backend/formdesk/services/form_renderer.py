"""Single-page form state: current answers, required-field validation and
the text projection of each answer kind."""
import logging
from typing import Dict, List, Optional, Sequence

from pydantic import BaseModel, Field, TypeAdapter

from formdesk.core.exceptions import AnswerTypeMismatch
from formdesk.schemas.answers import (
    Answer, AddressAnswer, BooleanAnswer, DateAnswer, FileAnswer,
    NumberAnswer, OptionsAnswer, ScaleAnswer, TextAnswer,
)
from formdesk.schemas.fields import FieldDefinition, FieldType
from formdesk.services.field_catalog import answer_type_for, default_scale

logger = logging.getLogger(__name__)

REQUIRED_MESSAGE = "This field is required."
OPTIONS_MESSAGE = "Please select an option."
NUMBER_MESSAGE = "Please enter a number."
DATE_MESSAGE = "Please select a date."
SCALE_MESSAGE = "Please select a value."
FILE_MESSAGE = "Please upload a file."
ADDRESS_MESSAGE = "Please fill in the required address fields."

_answer_adapter = TypeAdapter(Answer)


class RenderedField(BaseModel):
    index: int
    field: FieldDefinition
    answer: Optional[Answer] = None
    error: Optional[str] = None
    display_value: str = ""
    scale_choices: List[int] = Field(default_factory=list)
    selected_options: List[str] = Field(default_factory=list)


def format_number(value: float) -> str:
    value = float(value)
    return str(int(value)) if value.is_integer() else str(value)


def serialize_answer(answer: Optional[Answer]) -> str:
    """Flatten an answer into the answer_text column."""
    if answer is None:
        return ""
    if isinstance(answer, TextAnswer):
        return answer.value
    if isinstance(answer, OptionsAnswer):
        return ", ".join(answer.values)
    if isinstance(answer, NumberAnswer):
        return "" if answer.value is None else format_number(answer.value)
    if isinstance(answer, DateAnswer):
        return answer.value
    if isinstance(answer, BooleanAnswer):
        if answer.value is None:
            return ""
        return "Yes" if answer.value else "No"
    if isinstance(answer, ScaleAnswer):
        return "" if answer.value is None else str(answer.value)
    if isinstance(answer, FileAnswer):
        return answer.file_url or answer.file_name or ""
    if isinstance(answer, AddressAnswer):
        parts = [answer.street, answer.city, answer.postcode, answer.country]
        return ", ".join(p for p in parts if p)
    return ""


def display_answer(answer: Optional[Answer]) -> str:
    """Human readable value shown next to a field or in an admin view."""
    if isinstance(answer, FileAnswer):
        return answer.file_name or answer.file_url or ""
    return serialize_answer(answer)


def deserialize_answer(kind, text: Optional[str]) -> Optional[Answer]:
    """Rebuild an answer from stored answer_text.

    Exact for text, number, date, boolean and scale kinds. Options and
    addresses are split on ", " which is best effort when labels contain commas.
    """
    answer_type = answer_type_for(kind)
    if answer_type is None:
        return None
    text = text or ""

    if answer_type == "text":
        return TextAnswer(value=text)
    if answer_type == "number":
        return NumberAnswer(value=float(text) if text else None)
    if answer_type == "date":
        return DateAnswer(value=text)
    if answer_type == "boolean":
        value = {"Yes": True, "No": False}.get(text)
        return BooleanAnswer(value=value)
    if answer_type == "scale":
        return ScaleAnswer(value=int(text) if text else None)
    if answer_type == "options":
        return OptionsAnswer(values=text.split(", ") if text else [])
    if answer_type == "file":
        return FileAnswer(file_url=text or None)
    if answer_type == "address":
        parts = text.split(", ") if text else []
        parts += [""] * (4 - len(parts))
        street, city, postcode, country = parts[:4]
        return AddressAnswer(street=street, city=city, postcode=postcode, country=country)
    return None


def scale_choices(field: FieldDefinition) -> List[int]:
    kind = field.field_type
    if kind == FieldType.NPS:
        low, high = 0, 10
    elif kind == FieldType.RATING:
        low, high = 1, field.scale_max if field.scale_max is not None else 5
    elif kind == FieldType.OPINION_SCALE:
        default_low, default_high = default_scale(kind)
        low = field.scale_min if field.scale_min is not None else default_low
        high = field.scale_max if field.scale_max is not None else default_high
    else:
        return []
    return list(range(low, high + 1))


def required_error(field: FieldDefinition, answer: Optional[Answer]) -> Optional[str]:
    """Message for a required field that has no usable answer, else None."""
    if not field.is_required or field.field_type == FieldType.STATEMENT:
        return None
    if answer is None:
        return REQUIRED_MESSAGE

    if isinstance(answer, TextAnswer):
        return None if answer.value.strip() else REQUIRED_MESSAGE
    if isinstance(answer, OptionsAnswer):
        return None if answer.values else OPTIONS_MESSAGE
    if isinstance(answer, NumberAnswer):
        # zero is a valid number
        return None if answer.value is not None else NUMBER_MESSAGE
    if isinstance(answer, DateAnswer):
        return None if answer.value else DATE_MESSAGE
    if isinstance(answer, BooleanAnswer):
        # False means "answered No"
        return None if answer.value is not None else REQUIRED_MESSAGE
    if isinstance(answer, ScaleAnswer):
        return None if answer.value is not None else SCALE_MESSAGE
    if isinstance(answer, FileAnswer):
        return None if answer.has_file else FILE_MESSAGE
    if isinstance(answer, AddressAnswer):
        if answer.street.strip() and answer.city.strip():
            return None
        return ADDRESS_MESSAGE
    return None


class FormSession:
    """Answers for one form instance, keyed by field index."""

    def __init__(self, fields: Sequence[FieldDefinition]):
        self.fields = list(fields)
        self.answers: Dict[int, Answer] = {}
        self.errors: Dict[int, str] = {}

    def on_change(self, field_index: int, answer) -> None:
        if not 0 <= field_index < len(self.fields):
            raise IndexError(f"No field at index {field_index}")
        field = self.fields[field_index]
        if isinstance(answer, dict):
            answer = _answer_adapter.validate_python(answer)

        expected = answer_type_for(field.field_type)
        if expected is None or answer.type != expected:
            raise AnswerTypeMismatch(field.field_type.value, answer.type)

        self.answers[field_index] = answer
        self.errors.pop(field_index, None)

    def validate(self) -> Dict[int, str]:
        errors = {}
        for idx, field in enumerate(self.fields):
            message = required_error(field, self.answers.get(idx))
            if message:
                errors[idx] = message
        self.errors = errors
        if errors:
            logger.debug("Form validation failed for fields %s", sorted(errors))
        return dict(errors)

    def first_error_index(self) -> Optional[int]:
        """Field the caller should scroll to after a failed validate()."""
        return min(self.errors) if self.errors else None

    def render(self, field_index: int) -> RenderedField:
        field = self.fields[field_index]
        answer = self.answers.get(field_index)
        return RenderedField(
            index=field_index,
            field=field,
            answer=answer,
            error=self.errors.get(field_index),
            display_value=display_answer(answer),
            scale_choices=scale_choices(field),
            selected_options=answer.values if isinstance(answer, OptionsAnswer) else [],
        )

    def render_all(self) -> List[RenderedField]:
        return [self.render(idx) for idx in range(len(self.fields))]
