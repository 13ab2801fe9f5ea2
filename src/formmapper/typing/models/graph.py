"""Form graph domain models."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, model_validator

from formmapper.typing.enums import FieldType

_FORMAT_TYPES: dict[str, FieldType] = {
    "email": FieldType.EMAIL,
    "date": FieldType.DATE,
    "date-time": FieldType.DATETIME,
    "uri": FieldType.URL,
    "url": FieldType.URL,
    "tel": FieldType.TEL,
}

_AVANTOS_TYPES: dict[str, FieldType] = {
    "short-text": FieldType.STRING,
    "multi-line-text": FieldType.TEXT,
    "multi-select": FieldType.MULTISELECT,
    "checkbox-group": FieldType.MULTISELECT,
    "dynamic-checkbox-group": FieldType.MULTISELECT,
    "object-enum": FieldType.SELECT,
}


class FieldSchema(BaseModel):
    """Schema of a single form field (JSON-schema flavoured)."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    type: FieldType = FieldType.STRING
    title: str | None = None
    description: str | None = None
    enum: list[Any] | None = None
    properties: dict[str, FieldSchema] | None = None
    items: FieldSchema | None = None
    format: str | None = None
    avantos_type: str | None = None
    pattern: str | None = None
    min_length: int | None = Field(default=None, alias="minLength", ge=0)
    max_length: int | None = Field(default=None, alias="maxLength", ge=0)
    minimum: float | None = None
    maximum: float | None = None

    @property
    def semantic_type(self) -> FieldType:
        """Return the effective field type after `avantos_type` and `format` refinements."""
        if self.avantos_type and self.avantos_type in _AVANTOS_TYPES:
            return _AVANTOS_TYPES[self.avantos_type]
        if self.format and self.format in _FORMAT_TYPES:
            return _FORMAT_TYPES[self.format]
        return self.type

    @property
    def display_title(self) -> str | None:
        """Return the title when it is not blank."""
        return self.title if self.title and self.title.strip() else None


class FormFieldSchema(BaseModel):
    """Object schema holding the fields of one form."""

    model_config = ConfigDict(extra="ignore")

    type: str = "object"
    properties: dict[str, FieldSchema] = Field(default_factory=dict)
    required: list[str] = Field(default_factory=list)


class FormSchema(BaseModel):
    """Reusable form definition referenced by graph nodes."""

    model_config = ConfigDict(extra="ignore")

    id: str
    name: str = ""
    description: str | None = None
    field_schema: FormFieldSchema = Field(default_factory=FormFieldSchema)


class FormNode(BaseModel):
    """Form instance placed in the dependency graph."""

    model_config = ConfigDict(extra="ignore")

    id: str
    name: str = ""
    component_id: str | None = None
    prerequisites: list[str] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _flatten_blueprint_node(cls, payload: Any) -> Any:
        """Accept blueprint nodes that nest their attributes under `data`."""
        if not isinstance(payload, dict) or not isinstance(payload.get("data"), dict):
            return payload
        data = payload["data"]
        return {
            "id": payload.get("id"),
            "name": data.get("name", ""),
            "component_id": data.get("component_id"),
            "prerequisites": data.get("prerequisites") or [],
        }


class Edge(BaseModel):
    """Directed edge between two graph nodes."""

    model_config = ConfigDict(extra="ignore")

    source: str
    target: str


class FormGraph(BaseModel):
    """Dependency graph of forms, treated as read-only by the engine."""

    model_config = ConfigDict(extra="ignore")

    id: str | None = None
    name: str | None = None
    nodes: list[FormNode] = Field(default_factory=list)
    edges: list[Edge] = Field(default_factory=list)
    forms: list[FormSchema] = Field(default_factory=list)

    _nodes_by_id: dict[str, FormNode] = PrivateAttr(default_factory=dict)
    _forms_by_id: dict[str, FormSchema] = PrivateAttr(default_factory=dict)

    def model_post_init(self, __context: object, /) -> None:
        """Index nodes and forms by id."""
        self._nodes_by_id = {node.id: node for node in self.nodes}
        self._forms_by_id = {form.id: form for form in self.forms}

    def node(self, form_id: str) -> FormNode | None:
        """Return the node with `form_id`, if any."""
        return self._nodes_by_id.get(form_id)

    def schema_for(self, form_id: str) -> FormSchema | None:
        """Resolve the schema a node points to through its component id.

        Args:
            form_id (str): Node identifier.

        Returns:
            FormSchema | None: Schema, or None when the form is schema-less.
        """
        node = self.node(form_id)
        if node is None or node.component_id is None:
            return None
        return self._forms_by_id.get(node.component_id)

    def field_schema(self, form_id: str, field_path: str | Sequence[str]) -> FieldSchema | None:
        """Resolve a (possibly nested) field schema of a form.

        Args:
            form_id (str): Node identifier.
            field_path (str | Sequence[str]): Field id or path through nested `properties`.

        Returns:
            FieldSchema | None: The field schema, or None when any segment is missing.
        """
        schema = self.schema_for(form_id)
        if schema is None:
            return None
        parts = [field_path] if isinstance(field_path, str) else list(field_path)
        if not parts:
            return None

        current = schema.field_schema.properties.get(parts[0])
        for part in parts[1:]:
            if current is None:
                return None
            container = current.items if current.type == FieldType.ARRAY and current.items else current
            current = (container.properties or {}).get(part)
        return current

    def is_required(self, form_id: str, field_id: str) -> bool:
        """Return whether the owning schema marks `field_id` as required."""
        schema = self.schema_for(form_id)
        return schema is not None and field_id in schema.field_schema.required
