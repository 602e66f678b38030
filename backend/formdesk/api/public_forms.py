"""Public form API - what the embedded form loads and posts to. No auth."""
import logging
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from formdesk.api.deps import get_storage
from formdesk.core.database import get_db
from formdesk.core.exceptions import (
    AnswerTypeMismatch, FieldDefinitionError, FormValidationError, SubmissionError,
)
from formdesk.models.form import Form
from formdesk.schemas.fields import FieldDefinition
from formdesk.schemas.submission import PublicClient, PublicForm, SubmissionRequest, SubmissionResult
from formdesk.services.storage import LocalFileStorage
from formdesk.services.submission import ResponseSubmissionWriter

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/public/forms", tags=["public-forms"])


def _single_page_form(db: Session, form_id: str) -> Form:
    form = db.query(Form).filter(Form.id == form_id).first()
    if not form:
        raise HTTPException(status_code=404, detail="Form not found")
    if form.form_type != "single_page":
        raise HTTPException(status_code=400, detail="Only single-page forms can be loaded here")
    return form


@router.get("/{form_id}", response_model=PublicForm)
def get_public_form(form_id: str, db: Session = Depends(get_db)):
    form = _single_page_form(db, form_id)
    return PublicForm(
        id=form.id,
        name=form.name,
        form_type=form.form_type,
        client=PublicClient.model_validate(form.client) if form.client else None,
        fields=[FieldDefinition.from_step(step) for step in form.steps],
    )


@router.post("/{form_id}/responses", response_model=SubmissionResult)
def submit_response(
    form_id: str,
    payload: SubmissionRequest,
    db: Session = Depends(get_db),
    storage: LocalFileStorage = Depends(get_storage),
):
    form = _single_page_form(db, form_id)

    try:
        response = ResponseSubmissionWriter(db, storage=storage).submit(form, payload.answers)
    except FormValidationError as e:
        raise HTTPException(
            status_code=422,
            detail={"errors": e.errors, "first_error_index": e.first_error_index},
        )
    except FieldDefinitionError as e:
        logger.error("Form %s has an invalid field list: %s", form.id, e)
        raise HTTPException(status_code=400, detail=str(e))
    except AnswerTypeMismatch as e:
        raise HTTPException(status_code=422, detail=str(e))
    except SubmissionError:
        raise HTTPException(status_code=500, detail=SubmissionError.USER_MESSAGE)

    return SubmissionResult(response_id=response.id)
