"""Linear undo/redo history of mapping-set snapshots."""

from __future__ import annotations

from collections.abc import Iterable

from pydantic import BaseModel, ConfigDict, Field

from formmapper.typing.models import FieldMapping

Snapshot = tuple[FieldMapping, ...]


class MappingHistory(BaseModel):
    """Immutable past/present/future triple.

    `past` is ordered oldest first and `future` nearest first, so `undo` pops the end of
    `past` and `redo` pops the front of `future`.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    past: tuple[Snapshot, ...] = ()
    present: Snapshot = ()
    future: tuple[Snapshot, ...] = Field(default=())

    @classmethod
    def start(cls, mappings: Iterable[FieldMapping] = ()) -> MappingHistory:
        """Return a history with `mappings` as present and nothing to undo or redo."""
        return cls(present=tuple(mappings))

    @property
    def can_undo(self) -> bool:
        """Return whether a previous snapshot exists."""
        return bool(self.past)

    @property
    def can_redo(self) -> bool:
        """Return whether an undone snapshot can be restored."""
        return bool(self.future)

    def record(self, mappings: Iterable[FieldMapping]) -> MappingHistory:
        """Make `mappings` the present, pushing the current present and dropping the redo branch."""
        return MappingHistory(past=(*self.past, self.present), present=tuple(mappings), future=())

    def undo(self) -> MappingHistory:
        """Step back one snapshot; unchanged when there is nothing to undo."""
        if not self.past:
            return self
        return MappingHistory(past=self.past[:-1], present=self.past[-1], future=(self.present, *self.future))

    def redo(self) -> MappingHistory:
        """Step forward one snapshot; unchanged when there is nothing to redo."""
        if not self.future:
            return self
        return MappingHistory(past=(*self.past, self.present), present=self.future[0], future=self.future[1:])
