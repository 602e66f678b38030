from fastapi import APIRouter

from formdesk.services.field_catalog import fields_by_category

router = APIRouter(prefix="/api/fields", tags=["fields"])


@router.get("/catalog")
def get_field_catalog():
    """Field kinds grouped for the builder's add-field palette."""
    return {
        "categories": [
            {"category": category.value, "fields": [entry.model_dump(mode="json") for entry in entries]}
            for category, entries in fields_by_category().items()
        ]
    }
