"""Typing-centric domain modules."""

from formmapper.typing.enums import EditorState, FieldType, NotificationLevel, SourceType, TypeClass
from formmapper.typing.models import (
    EditorSnapshot,
    FieldMapping,
    FieldSchema,
    FormGraph,
    FormNode,
    FormSchema,
    MappingDocument,
    MappingSource,
    MappingTransformation,
    Notification,
    PreviewData,
    ValidationResult,
)
from formmapper.typing.protocol import ErrorCallback, MappingPersistence

__all__ = [
    "EditorSnapshot",
    "EditorState",
    "ErrorCallback",
    "FieldMapping",
    "FieldSchema",
    "FieldType",
    "FormGraph",
    "FormNode",
    "FormSchema",
    "MappingDocument",
    "MappingPersistence",
    "MappingSource",
    "MappingTransformation",
    "Notification",
    "NotificationLevel",
    "PreviewData",
    "SourceType",
    "TypeClass",
    "ValidationResult",
]
