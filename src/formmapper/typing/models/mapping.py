"""Mapping-centric domain models."""

from __future__ import annotations

from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from formmapper.typing.enums import SourceType

MAPPING_DOCUMENT_VERSION = "1.0"


class MappingSource(BaseModel):
    """Candidate provider of a value for a target field."""

    model_config = ConfigDict(extra="forbid", frozen=True, alias_generator=to_camel, populate_by_name=True)

    type: SourceType
    form_id: str | None = None
    field_id: str
    label: str = ""


class MappingTransformation(BaseModel):
    """Named transformation applied to a source value."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    type: str
    format: str | None = None


class FieldMapping(BaseModel):
    """Persisted assignment of one target field to one source."""

    model_config = ConfigDict(extra="forbid", frozen=True, alias_generator=to_camel, populate_by_name=True)

    id: str
    target_form_id: str
    target_field_id: str
    source: MappingSource | None
    transformation: MappingTransformation | None = None

    def to_json_dict(self) -> dict[str, object]:
        """Return the camelCase JSON payload of the mapping."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class TemplateField(BaseModel):
    """Source-field to target-field pair of a mapping template."""

    model_config = ConfigDict(extra="forbid", frozen=True, alias_generator=to_camel, populate_by_name=True)

    source_field: str
    target_field: str
    transformation: MappingTransformation | None = None


class MappingTemplate(BaseModel):
    """Named set of field pairs applied together from one source form."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    id: str = Field(min_length=1)
    name: str
    description: str = ""
    fields: list[TemplateField] = Field(min_length=1)


class FormMappings(BaseModel):
    """Mapping set of one form as stored by file persistence."""

    model_config = ConfigDict(extra="forbid", alias_generator=to_camel, populate_by_name=True)

    form_id: str
    mappings: list[FieldMapping] = Field(default_factory=list)


class MappingDocument(BaseModel):
    """Export/import envelope."""

    model_config = ConfigDict(extra="ignore")

    version: str = MAPPING_DOCUMENT_VERSION
    timestamp: str = Field(default_factory=lambda: datetime.now(UTC).isoformat())
    mappings: list[FieldMapping] = Field(default_factory=list)
