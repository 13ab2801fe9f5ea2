"""Representative sample values used for mapping previews."""

from __future__ import annotations

from typing import TYPE_CHECKING

from formmapper.typing.enums import FieldType

if TYPE_CHECKING:
    from formmapper.settings import Settings

FIELD_NAME_SAMPLES: dict[str, str] = {
    "first_name": "Jane",
    "last_name": "Doe",
    "name": "Jane Doe",
    "email": "test@example.com",
    "phone": "5551234567",
    "phone_number": "5551234567",
    "ssn": "123456789",
    "zip": "02139",
    "zip_code": "02139",
    "date_of_birth": "1984-07-02",
    "dob": "1984-07-02",
    "gender": "female",
    "address": "  12 Main Street  ",
    "allergies": "Penicillin",
    "medications": "Lisinopril 10mg",
}

TYPE_SAMPLES: dict[FieldType, str] = {
    FieldType.STRING: "Sample Text",
    FieldType.TEXT: "Long form text content",
    FieldType.EMAIL: "test@example.com",
    FieldType.URL: "https://example.com",
    FieldType.TEL: "5551234567",
    FieldType.NUMBER: "42.567",
    FieldType.INTEGER: "100",
    FieldType.FLOAT: "3.14159",
    FieldType.BOOLEAN: "true",
    FieldType.CHECKBOX: "true",
    FieldType.DATE: "2024-03-20",
    FieldType.DATETIME: "2024-03-20T15:30:00",
    FieldType.SELECT: "Option 1",
    FieldType.RADIO: "Option 1",
    FieldType.MULTISELECT: "Option 1, Option 2",
    FieldType.ARRAY: "Item 1, Item 2",
    FieldType.OBJECT: "{}",
    FieldType.FILE: "document.pdf",
    FieldType.IMAGE: "image.png",
}

DEFAULT_SAMPLE = "Sample Value"


def global_samples(settings: Settings) -> dict[str, str]:
    """Return preview values of the global `user.*` sources."""
    return {
        "user.name": settings.current_user_name,
        "user.email": settings.current_user_email,
    }


def sample_value(
    field_id: str,
    field_type: FieldType | None,
    *,
    overrides: dict[str, str] | None = None,
) -> str:
    """Pick a representative value for a source field.

    Lookup order: explicit overrides, well-known field names, the field type sample.

    Args:
        field_id (str): Source field identifier.
        field_type (FieldType | None): Semantic type of the field.
        overrides (dict[str, str] | None): Caller supplied samples keyed by field id.

    Returns:
        str: Sample value.
    """
    if overrides and field_id in overrides:
        return overrides[field_id]
    if field_id.lower() in FIELD_NAME_SAMPLES:
        return FIELD_NAME_SAMPLES[field_id.lower()]
    if field_type is not None and field_type in TYPE_SAMPLES:
        return TYPE_SAMPLES[field_type]
    return DEFAULT_SAMPLE
