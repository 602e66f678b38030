"""Single source of truth for single-page field kinds.

Adding a field kind means one entry in FIELD_CATALOG plus a case in the
renderer/validator. Everything else (categories, defaults, which answer tag
a kind accepts) is derived from this table.
"""
import uuid
from typing import Dict, Iterable, List, Optional

from formdesk.core.exceptions import FieldDefinitionError
from formdesk.schemas.fields import (
    CatalogEntry, FieldCategory, FieldDefinition, FieldOption, FieldType,
)

_C = FieldCategory

FIELD_CATALOG: Dict[FieldType, CatalogEntry] = {
    entry.type: entry
    for entry in [
        CatalogEntry(type=FieldType.SHORT_TEXT, label="Short Text", description="Single-line text input",
                     category=_C.TEXT, answer_type="text"),
        CatalogEntry(type=FieldType.LONG_TEXT, label="Long Text", description="Multi-line textarea",
                     category=_C.TEXT, answer_type="text"),
        CatalogEntry(type=FieldType.EMAIL, label="Email", description="Email address field with validation",
                     category=_C.CONTACT_INFO, answer_type="text"),
        CatalogEntry(type=FieldType.PHONE, label="Phone Number", description="Phone number input",
                     category=_C.CONTACT_INFO, answer_type="text"),
        CatalogEntry(type=FieldType.ADDRESS, label="Address", description="Street, city, postcode fields",
                     category=_C.CONTACT_INFO, answer_type="address"),
        CatalogEntry(type=FieldType.WEBSITE, label="Website", description="URL input with validation",
                     category=_C.CONTACT_INFO, answer_type="text"),
        CatalogEntry(type=FieldType.MULTIPLE_CHOICE, label="Multiple Choice", description="Select one or more options",
                     category=_C.CHOICE, answer_type="options"),
        CatalogEntry(type=FieldType.DROPDOWN, label="Dropdown", description="Select one option from a list",
                     category=_C.CHOICE, answer_type="options"),
        CatalogEntry(type=FieldType.PICTURE_CHOICE, label="Picture Choice", description="Choose from image cards",
                     category=_C.CHOICE, answer_type="options"),
        CatalogEntry(type=FieldType.YES_NO, label="Yes / No", description="Simple two-option toggle",
                     category=_C.CHOICE, answer_type="boolean"),
        CatalogEntry(type=FieldType.CHECKBOX, label="Checkbox", description="Single checkbox for agreement or consent",
                     category=_C.CHOICE, answer_type="boolean"),
        CatalogEntry(type=FieldType.LEGAL, label="Legal", description="Terms agreement with checkbox",
                     category=_C.CHOICE, answer_type="boolean"),
        CatalogEntry(type=FieldType.NUMBER, label="Number", description="Numeric input with optional min/max",
                     category=_C.NUMBERS_AND_DATES, answer_type="number"),
        CatalogEntry(type=FieldType.DATE, label="Date", description="Date picker",
                     category=_C.NUMBERS_AND_DATES, answer_type="date"),
        CatalogEntry(type=FieldType.FILE_UPLOAD, label="File Upload", description="Allow users to upload files",
                     category=_C.FILES, answer_type="file"),
        CatalogEntry(type=FieldType.RATING, label="Rating", description="Star rating (1-5)",
                     category=_C.RATING_AND_RANKING, answer_type="scale"),
        CatalogEntry(type=FieldType.OPINION_SCALE, label="Opinion Scale", description="Numeric scale (e.g. 1-10)",
                     category=_C.RATING_AND_RANKING, answer_type="scale"),
        CatalogEntry(type=FieldType.NPS, label="Net Promoter Score", description="How likely are you to recommend us? (0-10)",
                     category=_C.RATING_AND_RANKING, answer_type="scale"),
        CatalogEntry(type=FieldType.STATEMENT, label="Statement", description="Display a block of text with no input",
                     category=_C.LAYOUT, answer_type=None),
    ]
}

CATEGORY_ORDER: List[FieldCategory] = [
    _C.CONTACT_INFO,
    _C.TEXT,
    _C.CHOICE,
    _C.NUMBERS_AND_DATES,
    _C.FILES,
    _C.RATING_AND_RANKING,
    _C.LAYOUT,
]

_OPTION_KINDS = {FieldType.MULTIPLE_CHOICE, FieldType.DROPDOWN, FieldType.PICTURE_CHOICE}


def get_entry(kind) -> CatalogEntry:
    try:
        return FIELD_CATALOG[FieldType(kind)]
    except (ValueError, KeyError):
        raise FieldDefinitionError(f"Unknown field type: {kind!r}")


def category_for(kind) -> FieldCategory:
    return get_entry(kind).category


def answer_type_for(kind) -> Optional[str]:
    """Answer tag accepted by a kind, None for layout-only kinds."""
    return get_entry(kind).answer_type


def needs_options(kind) -> bool:
    return FieldType(kind) in _OPTION_KINDS


def default_scale(kind) -> tuple[int, int]:
    kind = FieldType(kind)
    if kind == FieldType.NPS:
        return 0, 10
    if kind == FieldType.RATING:
        return 1, 5
    return 1, 10


def empty_field(kind, order: int) -> FieldDefinition:
    """A freshly added field of the given kind, as the builder creates it."""
    entry = get_entry(kind)
    scale_min, scale_max = default_scale(entry.type)
    options = []
    if needs_options(entry.type):
        options = [
            FieldOption(id=str(uuid.uuid4()), label="Option 1"),
            FieldOption(id=str(uuid.uuid4()), label="Option 2"),
        ]
    return FieldDefinition(
        field_type=entry.type,
        label=entry.label,
        description="",
        placeholder="",
        is_required=False,
        field_order=order,
        options=options,
        scale_min=scale_min,
        scale_max=scale_max,
    )


def fields_by_category() -> Dict[FieldCategory, List[CatalogEntry]]:
    grouped = {category: [] for category in CATEGORY_ORDER}
    for entry in FIELD_CATALOG.values():
        grouped[entry.category].append(entry)
    return grouped


def validate_field_list(fields: Iterable[FieldDefinition]) -> None:
    """Ordinals must be unique and consecutive; options present iff the kind needs them."""
    fields = list(fields)
    orders = sorted(f.field_order for f in fields)
    if len(set(orders)) != len(orders):
        raise FieldDefinitionError("Field positions must be unique")
    if orders and orders != list(range(orders[0], orders[0] + len(orders))):
        raise FieldDefinitionError("Field positions must be consecutive")

    for field in fields:
        if needs_options(field.field_type) and not field.options:
            raise FieldDefinitionError(f"Field {field.label!r} needs at least one option")
        if not needs_options(field.field_type) and field.options:
            raise FieldDefinitionError(f"Field {field.label!r} does not take options")
