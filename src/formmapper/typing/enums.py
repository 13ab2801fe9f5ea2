"""Project enums."""

from __future__ import annotations

from enum import StrEnum


class _EnumMixin(StrEnum):
    """Shared conversion helpers for user-facing enums."""

    @classmethod
    def from_str(cls, value: str) -> _EnumMixin:
        """Parse enum from string.

        Args:
            value: Raw string value.

        Raises:
            ValueError: If the value is not supported.

        Returns:
            _EnumMixin: Parsed enum value.
        """
        try:
            return cls(value)
        except ValueError as exc:
            supported = ", ".join(member.value for member in cls)
            message = f"Unsupported {cls.__name__} value '{value}'. Expected one of: {supported}"
            raise ValueError(message) from exc

    def to_str(self) -> str:
        """Return string representation.

        Returns:
            str: Enum string value.
        """
        return self.value


class FieldType(_EnumMixin):
    """Semantic type of a form field."""

    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    DATE = "date"
    DATETIME = "datetime"
    INTEGER = "integer"
    FLOAT = "float"
    TEXT = "text"
    EMAIL = "email"
    URL = "url"
    TEL = "tel"
    OBJECT = "object"
    ARRAY = "array"
    FILE = "file"
    IMAGE = "image"
    SELECT = "select"
    MULTISELECT = "multiselect"
    RADIO = "radio"
    CHECKBOX = "checkbox"


class TypeClass(_EnumMixin):
    """Coarse grouping of field types used to offer transformations."""

    STRING = "string"
    NUMBER = "number"
    DATE = "date"


class SourceType(_EnumMixin):
    """Where a mapping source comes from relative to the target form."""

    DIRECT = "direct"
    TRANSITIVE = "transitive"
    GLOBAL = "global"


class EditorState(_EnumMixin):
    """Selection state of a mapping editor session."""

    EMPTY = "empty"
    SOURCE_FORM_CHOSEN = "source_form_chosen"
    SOURCE_FIELD_CHOSEN = "source_field_chosen"
    FIELDS_CHOSEN = "fields_chosen"
    TRANSFORMATION_CHOSEN = "transformation_chosen"
    INVALID = "invalid"


class NotificationLevel(_EnumMixin):
    """Severity of a user-facing notification."""

    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"
