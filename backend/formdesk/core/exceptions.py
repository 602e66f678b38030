"""Domain errors raised by the services and translated to HTTP by the routers."""
from typing import Dict, Optional


class FormDeskError(Exception):
    """Base class for every error raised on purpose by FormDesk."""


class FieldDefinitionError(FormDeskError):
    """A form's field list breaks ordering or option rules."""


class AnswerTypeMismatch(FormDeskError):
    """An answer's tag does not belong to the field kind it was given for."""

    def __init__(self, field_type: str, answer_type: str):
        self.field_type = field_type
        self.answer_type = answer_type
        super().__init__(f"{answer_type!r} answer is not valid for a {field_type!r} field")


class FormValidationError(FormDeskError):
    """Required fields are missing; errors maps field index to message."""

    def __init__(self, errors: Dict[int, str]):
        self.errors = dict(sorted(errors.items()))
        super().__init__(f"{len(self.errors)} field(s) failed validation")

    @property
    def first_error_index(self) -> Optional[int]:
        return next(iter(self.errors), None)


class UploadError(FormDeskError):
    """A file answer could not be stored."""


class SubmissionError(FormDeskError):
    """The response row itself could not be written."""

    USER_MESSAGE = "There was an error submitting the form. Please try again."


class InvalidApiKey(FormDeskError):
    """API key is malformed or unknown."""


class IntegrationDisabled(FormDeskError):
    """The API key is valid but its owner has not enabled the Zapier integration."""
