"""Validation and editor read-model payloads."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from formmapper.typing.enums import EditorState, NotificationLevel
from formmapper.typing.models.mapping import FieldMapping


class ValidationResult(BaseModel):
    """Outcome of a validation step."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    is_valid: bool
    errors: list[str] = Field(default_factory=list)

    @classmethod
    def from_errors(cls, errors: list[str]) -> ValidationResult:
        """Build a result that is valid when `errors` is empty."""
        return cls(is_valid=not errors, errors=list(errors))


class PreviewData(BaseModel):
    """Sample value before and after the selected transformation."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    source: str
    transformed: str
    transformation_label: str


class Notification(BaseModel):
    """Toast-style message surfaced to the UI."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    level: NotificationLevel
    message: str


class EditorSnapshot(BaseModel):
    """Read model exposed by a mapping editor session."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    state: EditorState
    selected_source_form: str | None = None
    selected_source_field: str | None = None
    selected_target_field: str | None = None
    transformation_type: str | None = None
    transformation_format: str | None = None
    validation_error: str | None = None
    selection_error: str | None = None
    available_transformations: list[str] = Field(default_factory=list)
    preview: PreviewData | None = None
    current_mappings: list[FieldMapping] = Field(default_factory=list)
    can_undo: bool = False
    can_redo: bool = False
    notifications: list[Notification] = Field(default_factory=list)
