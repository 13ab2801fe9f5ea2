"""Mapping persistence backends."""

from __future__ import annotations

import asyncio
import json
import threading
from pathlib import Path
from typing import cast

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, ValidationError

from formmapper import logger
from formmapper.exceptions import PersistenceError
from formmapper.typing.models import FieldMapping, FormMappings

_MAPPING_FILE_VERSION = 1


class InMemoryMappingPersistence:
    """Process-local persistence, optionally slowed down to expose save races."""

    def __init__(self, initial: dict[str, list[FieldMapping]] | None = None, *, delay: float = 0.0) -> None:
        """Initialize storage.

        Args:
            initial (dict[str, list[FieldMapping]] | None): Pre-populated mapping sets by form id.
            delay (float): Seconds awaited before each load and save completes.
        """
        self._data: dict[str, tuple[FieldMapping, ...]] = {
            form_id: tuple(mappings) for form_id, mappings in (initial or {}).items()
        }
        self.delay = delay
        self.save_count = 0

    async def load_mappings(self, form_id: str) -> list[FieldMapping]:
        """Return the stored set of `form_id`."""
        if self.delay:
            await asyncio.sleep(self.delay)
        return list(self._data.get(form_id, ()))

    async def save_mappings(self, form_id: str, mappings: list[FieldMapping]) -> None:
        """Replace the stored set of `form_id`."""
        snapshot = tuple(mappings)
        if self.delay:
            await asyncio.sleep(self.delay)
        self._data[form_id] = snapshot
        self.save_count += 1

    def stored(self, form_id: str) -> list[FieldMapping]:
        """Return the stored set synchronously."""
        return list(self._data.get(form_id, ()))


class JsonFileMappingPersistence(BaseModel):
    """Single JSON file holding the mapping sets of every form."""

    model_config = ConfigDict(extra="forbid", arbitrary_types_allowed=True)

    path: Path = Field(description="Mapping file path.")

    _lock: threading.Lock = PrivateAttr(default_factory=threading.Lock)

    def model_post_init(self, __context: object, /) -> None:
        """Ensure the parent directory exists after model initialization.

        Args:
            __context (object): Pydantic model context.
        """
        self.path.parent.mkdir(parents=True, exist_ok=True)

    async def load_mappings(self, form_id: str) -> list[FieldMapping]:
        """Load the mapping set of `form_id`.

        Raises:
            PersistenceError: If the file cannot be read or is corrupted.
        """
        forms = await asyncio.to_thread(self._read_forms)
        entry = forms.get(form_id)
        return list(entry.mappings) if entry else []

    async def save_mappings(self, form_id: str, mappings: list[FieldMapping]) -> None:
        """Replace the mapping set of `form_id`, keeping the other forms untouched.

        Raises:
            PersistenceError: If the existing file is corrupted or cannot be written.
        """
        await asyncio.to_thread(self._write_form, form_id, list(mappings))

    def load_all(self) -> dict[str, list[FieldMapping]]:
        """Return every stored mapping set keyed by form id."""
        return {form_id: list(entry.mappings) for form_id, entry in self._read_forms().items()}

    def _write_form(self, form_id: str, mappings: list[FieldMapping]) -> None:
        with self._lock:
            self._replace_form(form_id, mappings)
        logger.info("Mappings saved", extra={"form_id": form_id, "count": len(mappings), "path": str(self.path)})

    def _replace_form(self, form_id: str, mappings: list[FieldMapping]) -> None:
        forms = self._read_forms()
        forms[form_id] = FormMappings(form_id=form_id, mappings=mappings)
        envelope = {
            "mapping_file_version": _MAPPING_FILE_VERSION,
            "forms": [entry.model_dump(mode="json", by_alias=True, exclude_none=True) for entry in forms.values()],
        }
        temp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            temp_path.write_text(json.dumps(envelope, indent=2), encoding="utf-8")
            temp_path.replace(self.path)
        except OSError as exc:
            raise PersistenceError(message=f"Failed to save mappings to {self.path}: {exc}", form_id=form_id) from exc

    def _read_forms(self) -> dict[str, FormMappings]:
        if not self.path.exists():
            return {}
        try:
            payload = json.loads(self.path.read_text(encoding="utf-8"))
        except OSError as exc:
            raise PersistenceError(message=f"Failed to read mappings from {self.path}: {exc}") from exc
        except json.JSONDecodeError as exc:
            raise PersistenceError(message=f"Stored mappings are corrupted: {self.path}") from exc

        try:
            entries = [FormMappings.model_validate(item) for item in _migrate_mapping_payload(payload)]
        except ValidationError as exc:
            raise PersistenceError(message=f"Stored mappings are corrupted: {exc.error_count()} invalid entries") from exc
        return {entry.form_id: entry for entry in entries}


def _migrate_mapping_payload(payload: object) -> list[object]:
    """Return the per-form entries of a mapping file, whatever its format version.

    Version-less files are a bare JSON array of `{formId, mappings}` objects.

    Args:
        payload (object): Raw JSON payload.

    Raises:
        PersistenceError: If the payload has no recognizable shape.

    Returns:
        list[object]: Raw per-form entries.
    """
    if isinstance(payload, list):
        return cast("list[object]", payload)
    if isinstance(payload, dict):
        forms = cast("dict[str, object]", payload).get("forms")
        if isinstance(forms, list):
            return cast("list[object]", forms)
    raise PersistenceError(message="Stored mappings must be a JSON array or an object with a 'forms' array")
