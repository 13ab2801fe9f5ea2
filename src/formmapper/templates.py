"""Mapping templates: named field-pair sets applied from one source form."""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING
from uuid import uuid4

from formmapper import logger
from formmapper.exceptions import MappingValidationError
from formmapper.resolver import GLOBAL_SOURCE_FORM_ID, get_available_sources
from formmapper.typing.models import FieldMapping, MappingTemplate, TemplateField

if TYPE_CHECKING:
    from formmapper.typing.models import FormGraph, MappingSource


def _template(template_id: str, name: str, description: str, pairs: Sequence[tuple[str, str]]) -> MappingTemplate:
    return MappingTemplate(
        id=template_id,
        name=name,
        description=description,
        fields=[TemplateField(source_field=source, target_field=target) for source, target in pairs],
    )


DEFAULT_TEMPLATES: tuple[MappingTemplate, ...] = (
    _template(
        "patient",
        "Patient Information",
        "Patient identity fields",
        [
            ("first_name", "patient_first_name"),
            ("last_name", "patient_last_name"),
            ("date_of_birth", "patient_dob"),
            ("gender", "patient_gender"),
        ],
    ),
    _template(
        "contact",
        "Contact Information",
        "Phone, email and postal address",
        [
            ("phone", "contact_phone"),
            ("email", "contact_email"),
            ("address", "contact_address"),
        ],
    ),
    _template(
        "medical",
        "Medical History",
        "Allergies, conditions and medications",
        [
            ("allergies", "patient_allergies"),
            ("conditions", "patient_conditions"),
            ("medications", "patient_medications"),
        ],
    ),
    _template(
        "contact-info",
        "Contact Details",
        "Maps common contact fields like name, email, phone",
        [
            ("firstName", "first_name"),
            ("lastName", "last_name"),
            ("email", "email_address"),
            ("phone", "phone_number"),
        ],
    ),
    _template(
        "address",
        "Address Fields",
        "Maps address-related fields",
        [
            ("street", "address_line_1"),
            ("city", "city"),
            ("state", "state"),
            ("zip", "postal_code"),
        ],
    ),
)


def get_template(template_id: str, templates: Sequence[MappingTemplate] = DEFAULT_TEMPLATES) -> MappingTemplate | None:
    """Return the template with `template_id`, if any."""
    return next((template for template in templates if template.id == template_id), None)


def _source_form_key(source: MappingSource) -> str:
    return source.form_id or GLOBAL_SOURCE_FORM_ID


def build_template_mappings(
    template: MappingTemplate,
    graph: FormGraph,
    target_form_id: str,
    source_form_id: str,
) -> list[FieldMapping]:
    """Turn every pair of a template into a mapping drawing from `source_form_id`.

    Sources are taken from the candidates offered for the target form, so each
    mapping carries the direct, transitive or global source type and label the
    resolver assigns.

    Args:
        template (MappingTemplate): Template to expand.
        graph (FormGraph): Form graph.
        target_form_id (str): Form receiving the mappings.
        source_form_id (str): Upstream form providing every source field.

    Raises:
        MappingValidationError: If the source form, a source field or a target field is
            not available. All problems are reported together.

    Returns:
        list[FieldMapping]: One new mapping per template pair.
    """
    candidates = {
        source.field_id: source
        for source in get_available_sources(graph, target_form_id)
        if _source_form_key(source) == source_form_id
    }
    message = f"Cannot apply template '{template.name}'"
    if not candidates:
        raise MappingValidationError(
            errors=[f"Source form '{source_form_id}' is not an upstream dependency of '{target_form_id}'"],
            message=message,
        )

    errors: list[str] = []
    mappings: list[FieldMapping] = []
    for pair in template.fields:
        source = candidates.get(pair.source_field)
        if source is None:
            errors.append(f"Source field '{pair.source_field}' is not available in '{source_form_id}'")
        if graph.field_schema(target_form_id, pair.target_field) is None:
            errors.append(f"Target field '{pair.target_field}' not found in form '{target_form_id}'")
        if source is None or errors:
            continue
        mappings.append(
            FieldMapping(
                id=str(uuid4()),
                target_form_id=target_form_id,
                target_field_id=pair.target_field,
                source=source,
                transformation=pair.transformation,
            ),
        )

    if errors:
        raise MappingValidationError(errors=errors, message=message)

    logger.debug(
        "Template expanded",
        extra={"template": template.id, "form_id": target_form_id, "source_form": source_form_id},
    )
    return mappings
