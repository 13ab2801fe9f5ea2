from __future__ import annotations

import asyncio
from uuid import UUID

import pytest

from formmapper.editor import NO_TRANSFORMATION_LABEL, MappingEditor
from formmapper.persistence import InMemoryMappingPersistence
from formmapper.settings import Settings
from formmapper.store import MappingStateStore
from formmapper.transformations import TransformationRegistry
from formmapper.typing.enums import EditorState, NotificationLevel, SourceType
from formmapper.typing.models import FieldMapping, FormGraph, MappingTemplate, Notification, TemplateField
from formmapper.validation import ValidationService


class _FullDisk(InMemoryMappingPersistence):
    async def save_mappings(self, form_id: str, mappings: list[FieldMapping]) -> None:
        raise OSError("disk full")


def _editor(graph: FormGraph, persistence: InMemoryMappingPersistence | None = None) -> MappingEditor:
    transformations = TransformationRegistry()
    validation = ValidationService(transformations)
    store = MappingStateStore("form-c", persistence or InMemoryMappingPersistence(), validation, graph=graph)
    return MappingEditor(
        graph,
        "form-c",
        store,
        validation,
        transformations,
        settings=Settings(current_user_name="Ada Lovelace", current_user_email="ada@example.com"),
    )


@pytest.fixture
def editor(graph: FormGraph) -> MappingEditor:
    return _editor(graph)


def _choose(editor: MappingEditor, source_form: str, source_field: str, target_field: str) -> None:
    assert editor.select_source_form(source_form)
    assert editor.select_source_field(source_field)
    assert editor.select_target_field(target_field)


def test_initial_state_and_source_forms(editor: MappingEditor) -> None:
    assert editor.state == EditorState.EMPTY
    assert [(form.form_id, form.type) for form in editor.source_forms] == [
        ("form-b", SourceType.DIRECT),
        ("form-a", SourceType.TRANSITIVE),
        ("global", SourceType.GLOBAL),
    ]
    assert editor.target_fields == ["full_name", "contact_email", "visit_date", "weight", "notes"]


def test_selection_progresses_through_states(editor: MappingEditor) -> None:
    assert editor.select_source_form("form-b")
    assert editor.state == EditorState.SOURCE_FORM_CHOSEN
    assert {source.form_id for source in editor.available_sources} == {"form-b"}

    assert editor.select_source_field("full_name")
    assert editor.state == EditorState.SOURCE_FIELD_CHOSEN

    assert editor.select_target_field("full_name")
    assert editor.state == EditorState.FIELDS_CHOSEN
    assert "uppercase" in editor.available_transformations
    assert "round" not in editor.available_transformations
    assert editor.preview is not None
    assert editor.preview.source == editor.preview.transformed == "Sample Text"
    assert editor.preview.transformation_label == NO_TRANSFORMATION_LABEL

    assert editor.select_transformation("uppercase")
    assert editor.state == EditorState.TRANSFORMATION_CHOSEN
    assert editor.preview.transformed == "SAMPLE TEXT"
    assert editor.preview.transformation_label == "uppercase"


def test_upstream_changes_reset_downstream_selections(editor: MappingEditor) -> None:
    _choose(editor, "form-b", "full_name", "full_name")
    editor.select_transformation("uppercase")

    editor.select_source_field("notes")
    snapshot = editor.snapshot()
    assert snapshot.transformation_type is None
    assert snapshot.selected_source_field == "notes"

    editor.select_transformation("lowercase")
    editor.select_source_form("form-a")
    snapshot = editor.snapshot()
    assert snapshot.selected_source_field is None
    assert snapshot.transformation_type is None
    assert snapshot.selected_target_field == "full_name"
    assert snapshot.preview is None
    assert editor.state == EditorState.SOURCE_FORM_CHOSEN


def test_rejected_selections_keep_current_ones(editor: MappingEditor) -> None:
    _choose(editor, "form-b", "full_name", "full_name")

    assert not editor.select_source_form("form-c")
    assert editor.state == EditorState.FIELDS_CHOSEN
    assert editor.validation_error is None
    assert editor.selection_error == "Source form 'form-c' is not an upstream dependency of 'form-c'"

    assert not editor.select_source_field("first_name")
    assert not editor.select_target_field("missing")
    assert not editor.select_transformation("round")

    snapshot = editor.snapshot()
    assert snapshot.selected_source_form == "form-b"
    assert snapshot.selected_source_field == "full_name"
    assert snapshot.selected_target_field == "full_name"


def test_rejected_transformation_does_not_block_commit(editor: MappingEditor) -> None:
    _choose(editor, "form-b", "full_name", "full_name")

    assert not editor.select_transformation("bogus")
    assert editor.state == EditorState.FIELDS_CHOSEN
    assert editor.snapshot().selection_error == "Transformation 'bogus' is not available for this field pair"

    mapping = editor.handle_add_mapping()

    assert mapping is not None
    assert mapping.transformation is None
    assert editor.store.mappings == [mapping]
    assert editor.selection_error is None


def test_rejection_from_empty_keeps_empty_state(editor: MappingEditor) -> None:
    assert not editor.select_target_field("missing")

    assert editor.state == EditorState.EMPTY
    assert editor.selection_error == "Target field 'missing' not found in form 'form-c'"

    assert editor.select_source_form("form-b")
    assert editor.selection_error is None


def test_source_field_requires_source_form(editor: MappingEditor) -> None:
    assert not editor.select_source_field("full_name")
    assert editor.selection_error == "Choose a source form first"
    assert editor.state == EditorState.EMPTY


def test_incompatible_pair_blocks_commit(editor: MappingEditor) -> None:
    _choose(editor, "form-a", "age", "full_name")

    assert editor.state == EditorState.INVALID
    assert editor.validation_error == "Incompatible field types: number cannot be mapped to string"
    assert editor.available_transformations == []
    assert editor.preview is None

    assert editor.handle_add_mapping() is None
    assert editor.store.mappings == []
    assert editor.notifications[-1].level == NotificationLevel.ERROR
    assert editor.snapshot().selected_source_field == "age"


def test_add_mapping_commits_and_resets(editor: MappingEditor) -> None:
    _choose(editor, "form-a", "phone", "full_name")
    editor.select_transformation("formatPhone")
    assert editor.preview is not None
    assert editor.preview.transformed == "(555) 123-4567"

    mapping = editor.handle_add_mapping()

    assert mapping is not None
    assert UUID(mapping.id).version == 4
    assert mapping.source is not None
    assert mapping.source.type == SourceType.TRANSITIVE
    assert mapping.transformation is not None
    assert mapping.transformation.type == "formatPhone"
    assert editor.store.mappings == [mapping]
    assert editor.state == EditorState.EMPTY
    assert editor.notifications[-1].level == NotificationLevel.SUCCESS

    snapshot = editor.snapshot()
    assert snapshot.current_mappings == [mapping]
    assert snapshot.can_undo
    assert not snapshot.can_redo


def test_add_mapping_requires_both_fields(editor: MappingEditor) -> None:
    editor.select_source_form("form-b")

    assert editor.handle_add_mapping() is None
    assert editor.selection_error == "Choose source and target fields first"
    assert editor.state == EditorState.SOURCE_FORM_CHOSEN


def test_duplicate_target_is_refused(editor: MappingEditor) -> None:
    _choose(editor, "form-b", "full_name", "full_name")
    assert editor.handle_add_mapping() is not None

    _choose(editor, "global", "user.name", "full_name")
    assert editor.handle_add_mapping() is None

    assert editor.validation_error == "Target field 'full_name' of form 'form-c' is already mapped"
    assert len(editor.store.mappings) == 1


def test_global_source_preview_uses_settings(editor: MappingEditor) -> None:
    _choose(editor, "global", "user.name", "full_name")

    assert editor.preview is not None
    assert editor.preview.source == "Ada Lovelace"


def test_failing_preview_degrades_to_error_text(editor: MappingEditor) -> None:
    _choose(editor, "form-b", "visit_date", "visit_date")
    assert editor.select_transformation("formatDate", "MM/DD/YYYY")
    assert editor.preview is not None
    assert editor.preview.transformed == "03/20/2024"
    assert editor.preview.transformation_label == "formatDate (MM/DD/YYYY)"

    assert editor.set_transformation_format("[soon]")

    assert editor.preview.transformed == "Error: Invalid date format string: [soon]"
    assert editor.notifications[-1].level == NotificationLevel.ERROR
    assert editor.state == EditorState.TRANSFORMATION_CHOSEN


def test_format_needs_transformation(editor: MappingEditor) -> None:
    assert not editor.set_transformation_format("YYYY")


def test_undo_redo_and_remove_delegate_to_store(editor: MappingEditor) -> None:
    _choose(editor, "form-b", "full_name", "full_name")
    mapping = editor.handle_add_mapping()
    assert mapping is not None

    assert editor.undo()
    assert editor.store.mappings == []
    assert editor.redo()
    assert editor.store.mappings == [mapping]

    assert editor.remove_mapping(mapping.id)
    assert not editor.remove_mapping(mapping.id)
    assert editor.notifications[-1].level == NotificationLevel.WARNING


def test_store_failures_arrive_as_notifications(graph: FormGraph) -> None:
    editor = _editor(graph, _FullDisk())
    _choose(editor, "form-b", "full_name", "full_name")

    mapping = editor.handle_add_mapping()

    assert mapping is not None
    assert editor.store.mappings == [mapping]
    levels = [notification.level for notification in editor.drain_notifications()]
    assert NotificationLevel.ERROR in levels
    assert editor.notifications == []


def test_start_loads_stored_mappings(graph: FormGraph) -> None:
    seed = _editor(graph)
    _choose(seed, "form-b", "full_name", "full_name")
    mapping = seed.handle_add_mapping()
    assert mapping is not None

    editor = _editor(graph, InMemoryMappingPersistence({"form-c": [mapping]}))

    assert asyncio.run(editor.start()) == [mapping]
    assert editor.snapshot().current_mappings == [mapping]


def _template_editor(graph: FormGraph) -> MappingEditor:
    transformations = TransformationRegistry()
    validation = ValidationService(transformations)
    store = MappingStateStore("form-c", InMemoryMappingPersistence(), validation, graph=graph)
    templates = [
        MappingTemplate(
            id="intake",
            name="Intake",
            fields=[
                TemplateField(source_field="first_name", target_field="full_name"),
                TemplateField(source_field="email", target_field="contact_email"),
            ],
        ),
        MappingTemplate(
            id="vitals",
            name="Vitals",
            fields=[
                TemplateField(source_field="date_of_birth", target_field="visit_date"),
                TemplateField(source_field="age", target_field="notes"),
            ],
        ),
    ]
    return MappingEditor(graph, "form-c", store, validation, transformations, templates=templates)


def test_apply_template_adds_all_mappings_as_one_change(graph: FormGraph) -> None:
    editor = _template_editor(graph)
    _choose(editor, "form-b", "weight", "weight")

    added = editor.apply_template("intake", "form-a")

    assert [mapping.target_field_id for mapping in added] == ["full_name", "contact_email"]
    assert editor.store.mappings == added
    assert len(editor.store.history.past) == 1
    assert editor.notifications[-1] == Notification(
        level=NotificationLevel.SUCCESS,
        message="Template 'Intake' applied (2 mappings)",
    )
    assert editor.state == EditorState.FIELDS_CHOSEN

    assert editor.undo()
    assert editor.store.mappings == []


def test_apply_template_with_incompatible_pair_adds_nothing(graph: FormGraph) -> None:
    editor = _template_editor(graph)

    assert editor.apply_template("vitals", "form-a") == []

    assert editor.store.mappings == []
    assert not editor.store.can_undo
    notification = editor.notifications[-1]
    assert notification.level == NotificationLevel.ERROR
    assert "Incompatible field types: number cannot be mapped to text" in notification.message


def test_apply_template_refuses_duplicate_targets(graph: FormGraph) -> None:
    editor = _template_editor(graph)
    _choose(editor, "global", "user.name", "full_name")
    assert editor.handle_add_mapping() is not None

    assert editor.apply_template("intake", "form-a") == []

    assert len(editor.store.mappings) == 1
    assert "is already mapped" in editor.notifications[-1].message


def test_apply_unknown_template_is_rejected(graph: FormGraph) -> None:
    editor = _template_editor(graph)

    assert editor.apply_template("missing", "form-a") == []
    assert editor.selection_error == "Template 'missing' not found"
    assert [template.id for template in editor.templates] == ["intake", "vitals"]
