"""Core domain model exports."""

from formmapper.typing.models.graph import (
    Edge,
    FieldSchema,
    FormFieldSchema,
    FormGraph,
    FormNode,
    FormSchema,
)
from formmapper.typing.models.mapping import (
    MAPPING_DOCUMENT_VERSION,
    FieldMapping,
    FormMappings,
    MappingDocument,
    MappingSource,
    MappingTemplate,
    MappingTransformation,
    TemplateField,
)
from formmapper.typing.models.results import EditorSnapshot, Notification, PreviewData, ValidationResult

__all__ = [
    "MAPPING_DOCUMENT_VERSION",
    "Edge",
    "EditorSnapshot",
    "FieldMapping",
    "FieldSchema",
    "FormFieldSchema",
    "FormGraph",
    "FormMappings",
    "FormNode",
    "FormSchema",
    "MappingDocument",
    "MappingSource",
    "MappingTemplate",
    "MappingTransformation",
    "Notification",
    "PreviewData",
    "TemplateField",
    "ValidationResult",
]
