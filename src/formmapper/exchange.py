"""Export and import of mapping documents."""

from __future__ import annotations

import json
from collections.abc import Iterable
from typing import TYPE_CHECKING, cast

from pydantic import ValidationError

from formmapper import logger
from formmapper.exceptions import ImportMappingsError
from formmapper.typing.models import MAPPING_DOCUMENT_VERSION, FieldMapping, MappingDocument

if TYPE_CHECKING:
    from formmapper.typing.models import FormGraph
    from formmapper.validation import ValidationService


def build_document(mappings: Iterable[FieldMapping]) -> MappingDocument:
    """Wrap mappings in a versioned, timestamped document."""
    return MappingDocument(mappings=list(mappings))


def dump_document(mappings: Iterable[FieldMapping]) -> str:
    """Serialize mappings as an export document.

    Args:
        mappings (Iterable[FieldMapping]): Mappings to export.

    Returns:
        str: Indented JSON document.
    """
    document = build_document(mappings)
    return json.dumps(document.model_dump(mode="json", by_alias=True, exclude_none=True), indent=2)


def _format_validation_errors(exc: ValidationError) -> list[str]:
    return [
        f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}" if error["loc"] else error["msg"]
        for error in exc.errors()
    ]


def parse_document(
    text: str,
    validation: ValidationService,
    *,
    graph: FormGraph | None = None,
) -> list[FieldMapping]:
    """Parse and validate an import document as a whole.

    A bare JSON array of mappings is accepted as a version-less document. A version
    other than the current one is logged as a warning, not rejected.

    Args:
        text (str): Raw JSON document.
        validation (ValidationService): Service validating every mapping.
        graph (FormGraph | None): Graph enabling dependency and type checks.

    Raises:
        ImportMappingsError: If the document is malformed or any mapping is invalid.

    Returns:
        list[FieldMapping]: Validated mappings.
    """
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ImportMappingsError(errors=[f"Document is not valid JSON: {exc.msg}"]) from exc

    if isinstance(payload, list):
        payload = {"version": None, "mappings": payload}
    if not isinstance(payload, dict):
        raise ImportMappingsError(errors=["Document must be a JSON object with a 'mappings' array"])

    raw = cast("dict[str, object]", payload)
    version = raw.get("version")
    if version != MAPPING_DOCUMENT_VERSION:
        logger.warning(
            "Imported mappings version mismatch",
            extra={"expected": MAPPING_DOCUMENT_VERSION, "actual": version},
        )

    items = raw.get("mappings")
    if not isinstance(items, list):
        raise ImportMappingsError(errors=["'mappings' must be an array"])

    try:
        mappings = [FieldMapping.model_validate(item) for item in cast("list[object]", items)]
    except ValidationError as exc:
        raise ImportMappingsError(errors=_format_validation_errors(exc)) from exc

    result = validation.validate_mappings(mappings, graph)
    if not result.is_valid:
        raise ImportMappingsError(errors=result.errors)
    return mappings
