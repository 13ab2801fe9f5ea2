"""Mapping editor session for one target form."""

from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import uuid4

from formmapper import logger
from formmapper.exceptions import MappingValidationError, TransformationError
from formmapper.processing.samples import global_samples, sample_value
from formmapper.resolver import (
    GLOBAL_SOURCE_FORM_ID,
    SourceForm,
    get_available_sources,
    get_source_forms,
    resolve_source_schema,
)
from formmapper.templates import DEFAULT_TEMPLATES, build_template_mappings, get_template
from formmapper.typing.enums import EditorState, NotificationLevel, SourceType
from formmapper.typing.models import (
    EditorSnapshot,
    FieldMapping,
    FieldSchema,
    MappingSource,
    MappingTemplate,
    MappingTransformation,
    Notification,
    PreviewData,
)

if TYPE_CHECKING:
    from collections.abc import Sequence

    from formmapper.settings import Settings
    from formmapper.store import MappingStateStore
    from formmapper.transformations import TransformationRegistry
    from formmapper.typing.models import FormGraph
    from formmapper.validation import ValidationService

GLOBAL_SOURCE_FORM = SourceForm(form_id=GLOBAL_SOURCE_FORM_ID, name="Global Data", type=SourceType.GLOBAL)
NO_TRANSFORMATION_LABEL = "No transformation"


def _source_form_key(source: MappingSource) -> str:
    return source.form_id or GLOBAL_SOURCE_FORM_ID


class MappingEditor:
    """Selection state machine driving the creation of mappings for one target form.

    Choosing a source form clears the source field and the transformation. Choosing a
    source or target field clears the transformation. Once both fields are chosen the
    pair is type-checked: an incompatible pair keeps its selections, exposes the error
    and blocks the commit. Rejected selections leave the current ones, the state and
    the commit untouched; the reason is exposed as `selection_error`.
    """

    def __init__(
        self,
        graph: FormGraph,
        target_form_id: str,
        store: MappingStateStore,
        validation: ValidationService,
        transformations: TransformationRegistry,
        *,
        settings: Settings | None = None,
        templates: Sequence[MappingTemplate] = DEFAULT_TEMPLATES,
    ) -> None:
        """Initialize the session.

        Args:
            graph (FormGraph): Form graph.
            target_form_id (str): Form receiving the mappings.
            store (MappingStateStore): Mapping set of the target form.
            validation (ValidationService): Type and mapping validation.
            transformations (TransformationRegistry): Transformations offered and previewed.
            settings (Settings | None): Source of the global user sample values.
            templates (Sequence[MappingTemplate]): Templates offered by `apply_template`.
        """
        self.graph = graph
        self.target_form_id = target_form_id
        self.store = store
        self._validation = validation
        self._transformations = transformations
        self._sample_overrides = global_samples(settings) if settings is not None else {}
        self._templates = tuple(templates)
        if store.on_error is None:
            store.on_error = self.report_error

        self._sources = get_available_sources(graph, target_form_id)
        self._source_forms = [*get_source_forms(graph, target_form_id), GLOBAL_SOURCE_FORM]

        self._source_form: str | None = None
        self._source: MappingSource | None = None
        self._target_field: str | None = None
        self._transformation_type: str | None = None
        self._transformation_format: str | None = None

        self._validation_error: str | None = None
        self._selection_error: str | None = None
        self._available_transformations: list[str] = []
        self._preview: PreviewData | None = None
        self._notifications: list[Notification] = []

    async def start(self) -> list[FieldMapping]:
        """Load the stored mappings of the target form."""
        return await self.store.load()

    # Read model

    @property
    def state(self) -> EditorState:
        """Return the current selection state."""
        if self._validation_error:
            return EditorState.INVALID
        if self._source is not None and self._target_field is not None:
            return EditorState.TRANSFORMATION_CHOSEN if self._transformation_type else EditorState.FIELDS_CHOSEN
        if self._source is not None:
            return EditorState.SOURCE_FIELD_CHOSEN
        if self._source_form is not None:
            return EditorState.SOURCE_FORM_CHOSEN
        return EditorState.EMPTY

    @property
    def source_forms(self) -> list[SourceForm]:
        """Return the selectable source forms, the global pseudo-form last."""
        return list(self._source_forms)

    @property
    def available_sources(self) -> list[MappingSource]:
        """Return the candidate sources of the selected source form, or all of them."""
        if self._source_form is None:
            return list(self._sources)
        return [source for source in self._sources if _source_form_key(source) == self._source_form]

    @property
    def target_fields(self) -> list[str]:
        """Return the field ids of the target form."""
        schema = self.graph.schema_for(self.target_form_id)
        return list(schema.field_schema.properties) if schema else []

    @property
    def templates(self) -> list[MappingTemplate]:
        """Return the mapping templates offered by the session."""
        return list(self._templates)

    @property
    def available_transformations(self) -> list[str]:
        """Return transformations applicable to the chosen field pair."""
        return list(self._available_transformations)

    @property
    def preview(self) -> PreviewData | None:
        """Return the preview of the chosen pair and transformation."""
        return self._preview

    @property
    def validation_error(self) -> str | None:
        """Return the message blocking the commit, if any."""
        return self._validation_error

    @property
    def selection_error(self) -> str | None:
        """Return why the last selection or commit attempt was refused, if it was."""
        return self._selection_error

    @property
    def notifications(self) -> list[Notification]:
        """Return notifications posted so far."""
        return list(self._notifications)

    def drain_notifications(self) -> list[Notification]:
        """Return and forget the notifications posted so far."""
        drained, self._notifications = self._notifications, []
        return drained

    def snapshot(self) -> EditorSnapshot:
        """Return the full read model of the session."""
        return EditorSnapshot(
            state=self.state,
            selected_source_form=self._source_form,
            selected_source_field=self._source.field_id if self._source else None,
            selected_target_field=self._target_field,
            transformation_type=self._transformation_type,
            transformation_format=self._transformation_format,
            validation_error=self._validation_error,
            selection_error=self._selection_error,
            available_transformations=self.available_transformations,
            preview=self._preview,
            current_mappings=self.store.mappings,
            can_undo=self.store.can_undo,
            can_redo=self.store.can_redo,
            notifications=self.notifications,
        )

    # Selections

    def select_source_form(self, form_id: str | None) -> bool:
        """Choose the source form, clearing the source field and transformation.

        Returns:
            bool: Whether the selection was accepted.
        """
        if form_id is not None and all(form.form_id != form_id for form in self._source_forms):
            return self._reject(f"Source form '{form_id}' is not an upstream dependency of '{self.target_form_id}'")

        self._source_form = form_id
        self._source = None
        self._clear_transformation()
        self._refresh()
        logger.debug("Source form selected", extra={"form_id": self.target_form_id, "source_form": form_id})
        return True

    def select_source_field(self, field_id: str | None) -> bool:
        """Choose a source field among the candidates of the selected source form.

        Returns:
            bool: Whether the selection was accepted.
        """
        if field_id is None:
            self._source = None
        else:
            if self._source_form is None:
                return self._reject("Choose a source form first")
            candidate = next((source for source in self.available_sources if source.field_id == field_id), None)
            if candidate is None:
                return self._reject(f"Source field '{field_id}' is not available in '{self._source_form}'")
            self._source = candidate

        self._clear_transformation()
        self._refresh()
        logger.debug("Source field selected", extra={"form_id": self.target_form_id, "source_field": field_id})
        return True

    def select_target_field(self, field_id: str | None) -> bool:
        """Choose the target field, clearing the transformation.

        Returns:
            bool: Whether the selection was accepted.
        """
        if field_id is not None and self.graph.field_schema(self.target_form_id, field_id) is None:
            return self._reject(f"Target field '{field_id}' not found in form '{self.target_form_id}'")

        self._target_field = field_id
        self._clear_transformation()
        self._refresh()
        logger.debug("Target field selected", extra={"form_id": self.target_form_id, "target_field": field_id})
        return True

    def select_transformation(self, name: str | None, format_value: str | None = None) -> bool:
        """Choose a transformation offered for the field pair, or clear it with None.

        Returns:
            bool: Whether the selection was accepted.
        """
        if name is not None:
            if self._source is None or self._target_field is None:
                return self._reject("Choose source and target fields first")
            if name not in self._available_transformations:
                return self._reject(f"Transformation '{name}' is not available for this field pair")

        self._transformation_type = name
        self._transformation_format = format_value if name is not None else None
        self._refresh()
        return True

    def set_transformation_format(self, format_value: str | None) -> bool:
        """Set the parameter of the chosen transformation.

        Returns:
            bool: Whether a transformation was chosen to receive the format.
        """
        if self._transformation_type is None:
            return self._reject("Choose a transformation first")
        self._transformation_format = format_value or None
        self._refresh()
        return True

    # Commands

    def handle_add_mapping(self) -> FieldMapping | None:
        """Commit the current selections as a new mapping.

        Returns:
            FieldMapping | None: The added mapping, or None when the commit was refused.
        """
        if self._source is None or self._target_field is None:
            self._reject("Choose source and target fields first")
            return None
        if self._validation_error:
            self._notify(NotificationLevel.ERROR, self._validation_error)
            return None

        transformation = (
            MappingTransformation(type=self._transformation_type, format=self._transformation_format)
            if self._transformation_type
            else None
        )
        mapping = FieldMapping(
            id=str(uuid4()),
            target_form_id=self.target_form_id,
            target_field_id=self._target_field,
            source=self._source,
            transformation=transformation,
        )

        result = self._validation.validate_mapping(mapping, self.graph)
        if not result.is_valid:
            self._validation_error = result.errors[0]
            self._notify(NotificationLevel.ERROR, result.errors[0])
            return None
        try:
            self.store.add(mapping)
        except MappingValidationError as exc:
            self._validation_error = exc.errors[0] if exc.errors else str(exc)
            self._notify(NotificationLevel.ERROR, self._validation_error)
            return None

        self._reset_selections()
        self._notify(NotificationLevel.SUCCESS, "Mapping added successfully")
        return mapping

    def apply_template(self, template_id: str, source_form_id: str) -> list[FieldMapping]:
        """Add every mapping of a template, drawing from `source_form_id`.

        The template is applied as a single undoable change, or not at all. Current
        selections are kept.

        Returns:
            list[FieldMapping]: The added mappings, empty when the template was refused.
        """
        template = get_template(template_id, self._templates)
        if template is None:
            self._reject(f"Template '{template_id}' not found")
            return []

        try:
            mappings = build_template_mappings(template, self.graph, self.target_form_id, source_form_id)
            added = self.store.add_many(mappings)
        except MappingValidationError as exc:
            self._notify(NotificationLevel.ERROR, f"Cannot apply template '{template.name}': {'; '.join(exc.errors)}")
            return []

        self._notify(NotificationLevel.SUCCESS, f"Template '{template.name}' applied ({len(added)} mappings)")
        return added

    def remove_mapping(self, mapping_id: str) -> bool:
        """Remove a mapping of the target form."""
        if not self.store.remove(mapping_id):
            self._notify(NotificationLevel.WARNING, f"Mapping '{mapping_id}' not found")
            return False
        self._notify(NotificationLevel.SUCCESS, "Mapping removed")
        return True

    def undo(self) -> bool:
        """Undo the last mapping change."""
        return self.store.undo()

    def redo(self) -> bool:
        """Redo the last undone mapping change."""
        return self.store.redo()

    def report_error(self, exc: Exception) -> None:
        """Surface a store failure as an error notification."""
        self._notify(NotificationLevel.ERROR, str(exc))

    # Internals

    def _reject(self, message: str) -> bool:
        self._selection_error = message
        logger.debug("Selection rejected", extra={"form_id": self.target_form_id, "reason": message})
        return False

    def _notify(self, level: NotificationLevel, message: str) -> None:
        self._notifications.append(Notification(level=level, message=message))

    def _clear_transformation(self) -> None:
        self._transformation_type = None
        self._transformation_format = None

    def _reset_selections(self) -> None:
        self._source_form = None
        self._source = None
        self._target_field = None
        self._clear_transformation()
        self._refresh()

    def _refresh(self) -> None:
        self._validation_error = None
        self._selection_error = None
        self._available_transformations = []
        self._preview = None
        if self._source is None or self._target_field is None:
            return

        source_schema = resolve_source_schema(self.graph, self._source)
        target_schema = self.graph.field_schema(self.target_form_id, self._target_field)
        if source_schema is not None and target_schema is not None:
            result = self._validation.validate_field_schemas(source_schema, target_schema)
            if not result.is_valid:
                self._validation_error = result.errors[0]
                return
            self._available_transformations = self._transformations.get_available_transformations(
                source_schema.semantic_type,
                target_schema.semantic_type,
            )
        else:
            self._available_transformations = self._transformations.names()

        self._preview = self._build_preview(source_schema)

    def _build_preview(self, source_schema: FieldSchema | None) -> PreviewData:
        source = self._source
        raw = sample_value(
            source.field_id,
            source_schema.semantic_type if source_schema else None,
            overrides=self._sample_overrides,
        )
        name = self._transformation_type
        if name is None:
            return PreviewData(source=raw, transformed=raw, transformation_label=NO_TRANSFORMATION_LABEL)

        label = f"{name} ({self._transformation_format})" if self._transformation_format else name
        params = self._transformations.params_from_format(name, self._transformation_format)
        try:
            transformed = str(self._transformations.transform(raw, name, params))
        except TransformationError as exc:
            transformed = f"Error: {exc}"
            self._notify(NotificationLevel.ERROR, f"Preview failed: {exc}")
        return PreviewData(source=raw, transformed=transformed, transformation_label=label)
