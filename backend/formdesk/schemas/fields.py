from pydantic import BaseModel, Field
from typing import Optional, List
import enum


class FieldType(str, enum.Enum):
    # Contact info / text
    SHORT_TEXT = "sp_short_text"
    LONG_TEXT = "sp_long_text"
    EMAIL = "sp_email"
    PHONE = "sp_phone"
    ADDRESS = "sp_address"
    WEBSITE = "sp_website"
    # Choice
    MULTIPLE_CHOICE = "sp_multiple_choice"
    DROPDOWN = "sp_dropdown"
    PICTURE_CHOICE = "sp_picture_choice"
    YES_NO = "sp_yes_no"
    CHECKBOX = "sp_checkbox"
    LEGAL = "sp_legal"
    # Numbers & dates
    NUMBER = "sp_number"
    DATE = "sp_date"
    # Files
    FILE_UPLOAD = "sp_file_upload"
    # Rating & ranking
    RATING = "sp_rating"
    OPINION_SCALE = "sp_opinion_scale"
    NPS = "sp_nps"
    # Layout
    STATEMENT = "sp_statement"


class FieldCategory(str, enum.Enum):
    CONTACT_INFO = "Contact Info"
    TEXT = "Text"
    CHOICE = "Choice"
    NUMBERS_AND_DATES = "Numbers & Dates"
    FILES = "Files"
    RATING_AND_RANKING = "Rating & Ranking"
    LAYOUT = "Layout"


class FieldOption(BaseModel):
    id: str
    label: str
    description: Optional[str] = None
    image_url: Optional[str] = None

    class Config:
        from_attributes = True


class FieldDefinition(BaseModel):
    """A single-page field as the renderer and validator see it."""
    id: Optional[str] = None
    field_type: FieldType
    label: str
    description: Optional[str] = None
    placeholder: Optional[str] = None
    is_required: bool = False
    field_order: int
    options: List[FieldOption] = Field(default_factory=list)
    allow_multiple: bool = False
    scale_min: Optional[int] = None
    scale_max: Optional[int] = None
    scale_min_label: Optional[str] = None
    scale_max_label: Optional[str] = None
    number_min: Optional[int] = None
    number_max: Optional[int] = None
    max_file_size: Optional[int] = None  # MB
    allowed_file_types: Optional[List[str]] = None
    images_per_row: Optional[int] = None

    @classmethod
    def from_step(cls, step) -> "FieldDefinition":
        """Build from a FormStep row (question_type carries the sp_* kind)."""
        return cls(
            id=step.id,
            field_type=step.question_type,
            label=step.title,
            description=step.description,
            placeholder=step.placeholder,
            is_required=bool(step.is_required),
            field_order=step.step_order,
            options=[FieldOption.model_validate(o) for o in step.options],
            allow_multiple=bool(step.allow_multiple),
            scale_min=step.scale_min,
            scale_max=step.scale_max,
            scale_min_label=step.scale_min_label,
            scale_max_label=step.scale_max_label,
            number_min=step.number_min,
            number_max=step.number_max,
            max_file_size=step.max_file_size,
            allowed_file_types=step.allowed_file_types,
            images_per_row=step.images_per_row,
        )


class CatalogEntry(BaseModel):
    type: FieldType
    label: str
    description: str
    category: FieldCategory
    answer_type: Optional[str] = None
