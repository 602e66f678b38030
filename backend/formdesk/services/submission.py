"""Turn a validated answer set into one response row plus its answer rows.

The response, its answers and its notification jobs are written in a single
transaction. Each answer insert runs in its own savepoint: a failing answer
is rolled back alone and recorded in submission_issues for operator review,
the rest of the submission still commits. A failing file upload keeps the
answer row with empty file columns and is recorded the same way.
"""
import logging
from typing import Dict, List, Optional

from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from formdesk.core.exceptions import FormValidationError, SubmissionError, UploadError
from formdesk.models.form import Form
from formdesk.models.response import Response, ResponseAnswer, SubmissionIssue
from formdesk.schemas.answers import (
    Answer, AddressAnswer, FileAnswer, OptionsAnswer, ScaleAnswer, TextAnswer,
)
from formdesk.schemas.fields import FieldDefinition, FieldType
from formdesk.services.field_catalog import validate_field_list
from formdesk.services.form_renderer import FormSession, serialize_answer
from formdesk.services.notification_producer import NotificationProducer
from formdesk.services.storage import LocalFileStorage, safe_file_name

logger = logging.getLogger(__name__)

MB = 1024 * 1024


class ContactFieldMap(BaseModel):
    """Field ids feeding the response contact columns.

    Unset slots fall back to the first field of the matching kind.
    """
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    postcode: Optional[str] = None

    @classmethod
    def for_form(cls, form: Form) -> "ContactFieldMap":
        return cls(**(form.contact_field_map or {}))


_FALLBACK_KINDS = {
    "name": FieldType.SHORT_TEXT,
    "email": FieldType.EMAIL,
    "phone": FieldType.PHONE,
    "postcode": FieldType.ADDRESS,
}


def _contact_index(
    fields: List[FieldDefinition],
    answers: Dict[int, Answer],
    field_id: Optional[str],
    kind: FieldType,
) -> Optional[int]:
    if field_id:
        for idx, field in enumerate(fields):
            if field.id == field_id:
                return idx
        logger.warning("Contact field %s is not on the form; falling back to first %s", field_id, kind.value)
    for idx, field in enumerate(fields):
        if field.field_type != kind:
            continue
        # an address only counts once it carries a postcode
        if kind == FieldType.ADDRESS and not _contact_value(answers.get(idx)):
            continue
        return idx
    return None


def _contact_value(answer: Optional[Answer]) -> Optional[str]:
    if isinstance(answer, TextAnswer):
        return answer.value or None
    if isinstance(answer, AddressAnswer):
        return answer.postcode or None
    return None


def extract_contact(
    fields: List[FieldDefinition],
    answers: Dict[int, Answer],
    mapping: Optional[ContactFieldMap] = None,
) -> Dict[str, Optional[str]]:
    mapping = mapping or ContactFieldMap()
    contact = {}
    for slot, kind in _FALLBACK_KINDS.items():
        idx = _contact_index(fields, answers, getattr(mapping, slot), kind)
        contact[f"contact_{slot}"] = _contact_value(answers.get(idx)) if idx is not None else None
    return contact


class ResponseSubmissionWriter:
    def __init__(
        self,
        db: Session,
        storage: Optional[LocalFileStorage] = None,
        producer: Optional[NotificationProducer] = None,
    ):
        self.db = db
        self.storage = storage or LocalFileStorage()
        self.producer = producer or NotificationProducer(db)

    def submit(self, form: Form, answers: Dict[int, Answer]) -> Response:
        """Validate, then persist the response, its answers and its notification jobs.

        Raises FieldDefinitionError for a malformed field list and
        FormValidationError before any write, SubmissionError when the
        response row (or the final commit) fails.
        """
        fields = [FieldDefinition.from_step(step) for step in form.steps]
        validate_field_list(fields)
        session = FormSession(fields)
        for idx, answer in answers.items():
            if not 0 <= idx < len(fields):
                logger.warning("Ignoring answer for unknown field index %s on form %s", idx, form.id)
                continue
            session.on_change(idx, answer)

        errors = session.validate()
        if errors:
            raise FormValidationError(errors)

        contact = extract_contact(fields, session.answers, ContactFieldMap.for_form(form))

        try:
            response = Response(form_id=form.id, **contact)
            self.db.add(response)
            self.db.flush()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Failed to insert response for form %s: %s", form.id, e)
            raise SubmissionError(SubmissionError.USER_MESSAGE) from e

        for idx, field in enumerate(fields):
            answer = session.answers.get(idx)
            if answer is None:
                continue
            self._write_answer(response, field, answer)

        self.producer.enqueue(response, form.client)

        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Failed to commit response for form %s: %s", form.id, e)
            raise SubmissionError(SubmissionError.USER_MESSAGE) from e

        logger.info("Response %s submitted for form %s (%d answers)", response.id, form.id, len(session.answers))
        return response

    def _write_answer(self, response: Response, field: FieldDefinition, answer: Answer) -> None:
        values = self._answer_columns(response, field, answer)
        try:
            with self.db.begin_nested():
                self.db.add(ResponseAnswer(**values))
        except SQLAlchemyError as e:
            logger.error("Answer for field %s on response %s not stored: %s", field.id, response.id, e)
            self._record_issue(response, field, "answer_insert_failed", str(e))

    def _answer_columns(self, response: Response, field: FieldDefinition, answer: Answer) -> dict:
        values = {
            "response_id": response.id,
            "step_id": field.id,
            "answer_text": None,
        }

        if isinstance(answer, FileAnswer):
            if answer.content is not None:
                # upload before the row is written; answer_text carries the URL only
                stored_name = safe_file_name(answer.file_name)
                path = f"responses/{response.id}/{field.field_order}-{stored_name}"
                max_size = field.max_file_size * MB if field.max_file_size else None
                try:
                    url = self.storage.upload(path, answer.content, max_size=max_size)
                    values.update(file_url=url, file_name=answer.file_name or stored_name, file_size=len(answer.content))
                except UploadError as e:
                    logger.warning("Upload failed for field %s on response %s: %s", field.id, response.id, e)
                    self._record_issue(response, field, "upload_failed", str(e))
                values["answer_text"] = values.get("file_url")
            else:
                values.update(file_url=answer.file_url, file_name=answer.file_name, answer_text=answer.file_url)
        elif isinstance(answer, ScaleAnswer):
            values["scale_rating"] = answer.value
            values["answer_text"] = str(answer.value) if answer.value is not None else None
        elif isinstance(answer, OptionsAnswer):
            values["answer_text"] = serialize_answer(answer)
            values["selected_option_id"] = self._option_id(field, answer)
        else:
            values["answer_text"] = serialize_answer(answer)
        return values

    @staticmethod
    def _option_id(field: FieldDefinition, answer: OptionsAnswer) -> Optional[str]:
        if len(answer.values) != 1:
            return None
        for option in field.options:
            if option.label == answer.values[0]:
                return option.id
        return None

    def _record_issue(self, response: Response, field: FieldDefinition, kind: str, message: str) -> None:
        self.db.add(SubmissionIssue(
            response_id=response.id,
            step_id=field.id,
            kind=kind,
            message=message[:1000],
        ))
