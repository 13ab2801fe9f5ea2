from __future__ import annotations

from uuid import UUID

import pytest

from formmapper.exceptions import MappingValidationError
from formmapper.templates import DEFAULT_TEMPLATES, build_template_mappings, get_template
from formmapper.typing.enums import SourceType
from formmapper.typing.models import FormGraph, MappingTemplate, MappingTransformation, TemplateField

INTAKE = MappingTemplate(
    id="intake",
    name="Intake",
    fields=[
        TemplateField(source_field="first_name", target_field="full_name"),
        TemplateField(source_field="email", target_field="contact_email"),
        TemplateField(
            source_field="date_of_birth",
            target_field="visit_date",
            transformation=MappingTransformation(type="formatDate", format="MM/DD/YYYY"),
        ),
    ],
)


def test_default_templates_have_unique_ids() -> None:
    ids = [template.id for template in DEFAULT_TEMPLATES]

    assert len(ids) == len(set(ids))
    assert {"patient", "contact", "medical"} <= set(ids)


def test_get_template() -> None:
    patient = get_template("patient")

    assert patient is not None
    assert patient.name == "Patient Information"
    assert [field.target_field for field in patient.fields][:2] == ["patient_first_name", "patient_last_name"]
    assert get_template("missing") is None
    assert get_template("intake", [INTAKE]) is INTAKE


def test_template_fields_accept_camel_case_payload() -> None:
    field = TemplateField.model_validate({"sourceField": "street", "targetField": "address_line_1"})

    assert field.source_field == "street"


def test_build_template_mappings_uses_resolved_sources(graph: FormGraph) -> None:
    mappings = build_template_mappings(INTAKE, graph, "form-c", "form-a")

    assert [mapping.target_field_id for mapping in mappings] == ["full_name", "contact_email", "visit_date"]
    assert all(mapping.target_form_id == "form-c" for mapping in mappings)
    assert all(UUID(mapping.id).version == 4 for mapping in mappings)
    assert len({mapping.id for mapping in mappings}) == 3

    first = mappings[0].source
    assert first is not None
    assert first.type == SourceType.TRANSITIVE
    assert first.form_id == "form-a"
    assert first.label == "Form A - First Name"
    assert mappings[2].transformation == MappingTransformation(type="formatDate", format="MM/DD/YYYY")


def test_build_template_mappings_rejects_non_upstream_form(graph: FormGraph) -> None:
    with pytest.raises(MappingValidationError) as exc_info:
        build_template_mappings(INTAKE, graph, "form-b", "form-c")

    assert exc_info.value.errors == ["Source form 'form-c' is not an upstream dependency of 'form-b'"]


def test_build_template_mappings_reports_every_missing_field(graph: FormGraph) -> None:
    template = get_template("contact")
    assert template is not None

    with pytest.raises(MappingValidationError, match="Cannot apply template 'Contact Information'") as exc_info:
        build_template_mappings(template, graph, "form-c", "form-a")

    assert "Target field 'contact_phone' not found in form 'form-c'" in exc_info.value.errors
    assert "Source field 'address' is not available in 'form-a'" in exc_info.value.errors
    assert "Target field 'contact_email' not found in form 'form-c'" not in exc_info.value.errors


def test_template_requires_fields() -> None:
    with pytest.raises(ValueError, match="fields"):
        MappingTemplate(id="empty", name="Empty", fields=[])
