"""Per-form mapping state with undo/redo and optimistic persistence."""

from __future__ import annotations

import asyncio
from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from formmapper import logger
from formmapper.async_runner import has_running_loop, run_async
from formmapper.exceptions import ImportMappingsError, MappingValidationError, PersistenceError
from formmapper.exchange import dump_document, parse_document
from formmapper.history import MappingHistory
from formmapper.typing.models import FieldMapping

if TYPE_CHECKING:
    from formmapper.typing.models import FormGraph
    from formmapper.typing.protocol import ErrorCallback, MappingPersistence
    from formmapper.validation import ValidationService


def duplicate_target_message(mapping: FieldMapping) -> str:
    """Return the message reported when a target field already has a mapping."""
    return f"Target field '{mapping.target_field_id}' of form '{mapping.target_form_id}' is already mapped"


class MappingStateStore:
    """Mapping set of one target form.

    Mutations are synchronous and apply to memory first; each applied change is then
    saved in the background. A failed save is logged and passed to `on_error` but the
    in-memory state is kept.
    """

    def __init__(
        self,
        form_id: str,
        persistence: MappingPersistence,
        validation: ValidationService,
        *,
        graph: FormGraph | None = None,
        on_error: ErrorCallback | None = None,
    ) -> None:
        """Initialize the store.

        Args:
            form_id (str): Target form owning the mapping set.
            persistence (MappingPersistence): Storage backend.
            validation (ValidationService): Validation applied before every change.
            graph (FormGraph | None): Graph enabling dependency and type checks.
            on_error (ErrorCallback | None): Receives load and background save failures.
        """
        self.form_id = form_id
        self._persistence = persistence
        self._validation = validation
        self._graph = graph
        self.on_error = on_error
        self._history = MappingHistory.start()
        self._pending_saves: set[asyncio.Task[None]] = set()

    @property
    def mappings(self) -> list[FieldMapping]:
        """Return the current mapping set."""
        return list(self._history.present)

    @property
    def history(self) -> MappingHistory:
        """Return the undo/redo history."""
        return self._history

    @property
    def can_undo(self) -> bool:
        """Return whether a change can be undone."""
        return self._history.can_undo

    @property
    def can_redo(self) -> bool:
        """Return whether an undone change can be restored."""
        return self._history.can_redo

    @property
    def has_pending_saves(self) -> bool:
        """Return whether background saves are still running."""
        return bool(self._pending_saves)

    def get(self, mapping_id: str) -> FieldMapping | None:
        """Return the mapping with `mapping_id`, if any."""
        return next((mapping for mapping in self._history.present if mapping.id == mapping_id), None)

    async def load(self) -> list[FieldMapping]:
        """Load the stored set and reset the history.

        A failing backend is reported and the store starts empty.

        Returns:
            list[FieldMapping]: Loaded mappings.
        """
        try:
            loaded = await self._persistence.load_mappings(self.form_id)
        except Exception as exc:
            self._report(
                exc if isinstance(exc, PersistenceError) else PersistenceError(message=str(exc), form_id=self.form_id),
                "Failed to load mappings",
            )
            loaded = []

        self._history = MappingHistory.start(loaded)
        logger.info("Mappings loaded", extra={"form_id": self.form_id, "count": len(loaded)})
        return list(loaded)

    async def save(self, mappings: list[FieldMapping] | None = None) -> None:
        """Validate then persist a mapping set.

        Args:
            mappings (list[FieldMapping] | None): Set to save; the current set when omitted.

        Raises:
            MappingValidationError: If any mapping is invalid. Nothing is persisted.
            PersistenceError: If the backend fails.
        """
        snapshot = list(self._history.present if mappings is None else mappings)
        result = self._validation.validate_mappings(snapshot, self._graph)
        if not result.is_valid:
            raise MappingValidationError(errors=result.errors)
        await self._save_snapshot(snapshot)

    def add(self, mapping: FieldMapping) -> FieldMapping:
        """Append a mapping.

        Raises:
            MappingValidationError: If the mapping is invalid, belongs to another form, or
                its target field is already mapped. The set is left untouched.

        Returns:
            FieldMapping: The added mapping.
        """
        errors = self._check_candidate(mapping, others=self._history.present)
        if errors:
            raise MappingValidationError(errors=errors, message="Cannot add mapping")

        self._apply((*self._history.present, mapping))
        logger.info("Mapping added", extra={"form_id": self.form_id, "mapping_id": mapping.id})
        return mapping

    def add_many(self, mappings: Sequence[FieldMapping]) -> list[FieldMapping]:
        """Append several mappings as one change.

        Every mapping is checked against the current set and the ones before it in
        `mappings`; a single failure rejects the whole batch.

        Raises:
            MappingValidationError: With the errors of every rejected mapping. The set is
                left untouched.

        Returns:
            list[FieldMapping]: The added mappings.
        """
        accepted: tuple[FieldMapping, ...] = ()
        errors: list[str] = []
        for mapping in mappings:
            mapping_errors = self._check_candidate(mapping, others=(*self._history.present, *accepted))
            if mapping_errors:
                errors.extend(mapping_errors)
            else:
                accepted = (*accepted, mapping)
        if errors:
            raise MappingValidationError(errors=errors, message="Cannot add mappings")
        if not accepted:
            return []

        self._apply((*self._history.present, *accepted))
        logger.info("Mappings added", extra={"form_id": self.form_id, "count": len(accepted)})
        return list(accepted)

    def remove(self, mapping_id: str) -> bool:
        """Remove the mapping with `mapping_id`.

        Returns:
            bool: Whether a mapping was removed.
        """
        if self.get(mapping_id) is None:
            logger.debug("Mapping to remove not found", extra={"form_id": self.form_id, "mapping_id": mapping_id})
            return False

        self._apply(tuple(mapping for mapping in self._history.present if mapping.id != mapping_id))
        logger.info("Mapping removed", extra={"form_id": self.form_id, "mapping_id": mapping_id})
        return True

    def update(self, mapping_id: str, changes: Mapping[str, Any]) -> FieldMapping | None:
        """Merge `changes` (field names as keys) into the mapping with `mapping_id`.

        The id itself cannot be changed. An update that leaves the mapping as it was
        records nothing.

        Args:
            mapping_id (str): Mapping to update.
            changes (Mapping[str, Any]): Partial payload.

        Raises:
            MappingValidationError: If the merged mapping is invalid. The set is left untouched.

        Returns:
            FieldMapping | None: Updated mapping, or None when `mapping_id` is unknown.
        """
        current = self.get(mapping_id)
        if current is None:
            logger.debug("Mapping to update not found", extra={"form_id": self.form_id, "mapping_id": mapping_id})
            return None

        payload = {**current.model_dump(), **dict(changes), "id": mapping_id}
        try:
            updated = FieldMapping.model_validate(payload)
        except ValidationError as exc:
            raise MappingValidationError(
                errors=[f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}" for error in exc.errors()],
                message="Cannot update mapping",
            ) from exc

        if updated == current:
            return current

        others = tuple(mapping for mapping in self._history.present if mapping.id != mapping_id)
        errors = self._check_candidate(updated, others=others)
        if errors:
            raise MappingValidationError(errors=errors, message="Cannot update mapping")

        self._apply(tuple(updated if mapping.id == mapping_id else mapping for mapping in self._history.present))
        logger.info("Mapping updated", extra={"form_id": self.form_id, "mapping_id": mapping_id})
        return updated

    def undo(self) -> bool:
        """Restore the previous set; returns whether anything changed."""
        if not self._history.can_undo:
            return False
        self._history = self._history.undo()
        self._schedule_save()
        return True

    def redo(self) -> bool:
        """Restore the last undone set; returns whether anything changed."""
        if not self._history.can_redo:
            return False
        self._history = self._history.redo()
        self._schedule_save()
        return True

    async def import_document(self, text: str) -> list[FieldMapping]:
        """Replace the whole set with the mappings of an export document.

        Args:
            text (str): Export document JSON.

        Raises:
            ImportMappingsError: If the document or any of its mappings is rejected.
                The set is left untouched.

        Returns:
            list[FieldMapping]: Imported mappings.
        """
        mappings = parse_document(text, self._validation, graph=self._graph)
        foreign = sorted({mapping.target_form_id for mapping in mappings if mapping.target_form_id != self.form_id})
        if foreign:
            raise ImportMappingsError(
                errors=[f"Mapping targets form '{form_id}', expected '{self.form_id}'" for form_id in foreign],
            )

        self._apply(tuple(mappings))
        logger.info("Mappings imported", extra={"form_id": self.form_id, "count": len(mappings)})
        return mappings

    def export_document(self) -> str:
        """Render the current set as an export document."""
        return dump_document(self._history.present)

    async def wait_for_saves(self) -> None:
        """Wait until every background save issued so far has finished."""
        while self._pending_saves:
            await asyncio.gather(*tuple(self._pending_saves))

    def _check_candidate(self, mapping: FieldMapping, *, others: tuple[FieldMapping, ...]) -> list[str]:
        errors = list(self._validation.validate_mapping(mapping, self._graph).errors)
        if mapping.target_form_id and mapping.target_form_id != self.form_id:
            errors.append(f"Mapping targets form '{mapping.target_form_id}', expected '{self.form_id}'")
        if any(other.id == mapping.id for other in others):
            errors.append(f"Mapping id '{mapping.id}' already exists")
        if any(
            other.target_form_id == mapping.target_form_id and other.target_field_id == mapping.target_field_id
            for other in others
        ):
            errors.append(duplicate_target_message(mapping))
        return errors

    def _apply(self, mappings: tuple[FieldMapping, ...]) -> None:
        self._history = self._history.record(mappings)
        self._schedule_save()

    def _schedule_save(self) -> None:
        snapshot = list(self._history.present)
        if not has_running_loop():
            run_async(self._persist(snapshot))
            return

        task = asyncio.get_running_loop().create_task(self._persist(snapshot))
        self._pending_saves.add(task)
        task.add_done_callback(self._pending_saves.discard)

    async def _persist(self, snapshot: list[FieldMapping]) -> None:
        try:
            await self._save_snapshot(snapshot)
        except PersistenceError as exc:
            self._report(exc, "Failed to save mappings")

    async def _save_snapshot(self, snapshot: list[FieldMapping]) -> None:
        try:
            await self._persistence.save_mappings(self.form_id, snapshot)
        except PersistenceError:
            raise
        except Exception as exc:
            raise PersistenceError(message=f"Failed to save mappings: {exc}", form_id=self.form_id) from exc

    def _report(self, exc: Exception, message: str) -> None:
        logger.error(message, extra={"form_id": self.form_id, "error": str(exc)})
        if self.on_error is not None:
            self.on_error(exc)
