from __future__ import annotations

import json

import pytest

from formmapper.exceptions import ImportMappingsError
from formmapper.exchange import build_document, dump_document, parse_document
from formmapper.transformations import TransformationRegistry
from formmapper.typing.enums import SourceType
from formmapper.typing.models import MAPPING_DOCUMENT_VERSION, FieldMapping, FormGraph, MappingSource
from formmapper.validation import ValidationService


@pytest.fixture
def service() -> ValidationService:
    return ValidationService(TransformationRegistry())


def _mapping() -> FieldMapping:
    return FieldMapping(
        id="m1",
        target_form_id="form-c",
        target_field_id="full_name",
        source=MappingSource(type=SourceType.DIRECT, form_id="form-b", field_id="full_name", label="Form B - Full Name"),
    )


def test_dump_document_uses_camel_case_envelope() -> None:
    payload = json.loads(dump_document([_mapping()]))

    assert payload["version"] == MAPPING_DOCUMENT_VERSION
    assert payload["timestamp"]
    assert payload["mappings"][0]["targetFieldId"] == "full_name"
    assert payload["mappings"][0]["source"]["formId"] == "form-b"
    assert "transformation" not in payload["mappings"][0]


def test_parse_document_accepts_exported_document(service: ValidationService, graph: FormGraph) -> None:
    assert parse_document(dump_document([_mapping()]), service, graph=graph) == [_mapping()]


def test_parse_document_rejects_empty_transformation_type(service: ValidationService) -> None:
    document = build_document([_mapping()]).model_dump(mode="json", by_alias=True)
    document["mappings"][0]["transformation"] = {"type": ""}

    with pytest.raises(ImportMappingsError) as exc_info:
        parse_document(json.dumps(document), service)

    assert exc_info.value.errors == ["Mapping m1: Transformation type is required"]


def test_parse_document_rejects_invalid_json(service: ValidationService) -> None:
    with pytest.raises(ImportMappingsError, match="not valid JSON"):
        parse_document("{", service)


def test_parse_document_rejects_wrong_shape(service: ValidationService) -> None:
    with pytest.raises(ImportMappingsError, match="must be a JSON object"):
        parse_document('"mappings"', service)
    with pytest.raises(ImportMappingsError, match="must be an array"):
        parse_document('{"version": "1.0", "mappings": 3}', service)


@pytest.mark.parametrize(
    "document",
    [
        '{"version": "1.0"}',
        '{"version": "1.0", "mappings": null}',
        '{"version": "1.0", "mappings": {}}',
    ],
)
def test_parse_document_requires_mappings_array(service: ValidationService, document: str) -> None:
    with pytest.raises(ImportMappingsError) as exc_info:
        parse_document(document, service)

    assert exc_info.value.errors == ["'mappings' must be an array"]


def test_parse_document_accepts_explicit_empty_array(service: ValidationService) -> None:
    assert parse_document('{"version": "1.0", "mappings": []}', service) == []


def test_parse_document_reports_model_errors(service: ValidationService) -> None:
    with pytest.raises(ImportMappingsError) as exc_info:
        parse_document('{"version": "1.0", "mappings": [{"id": "m1"}]}', service)

    assert any("targetFormId" in error for error in exc_info.value.errors)


def test_parse_document_warns_on_version_mismatch(service: ValidationService, mocker) -> None:
    mock_logger = mocker.patch("formmapper.exchange.logger")
    document = {"version": "0.9", "mappings": [_mapping().to_json_dict()]}

    assert parse_document(json.dumps(document), service) == [_mapping()]
    mock_logger.warning.assert_called_once()


def test_parse_document_accepts_bare_array(service: ValidationService) -> None:
    assert parse_document(json.dumps([_mapping().to_json_dict()]), service) == [_mapping()]
