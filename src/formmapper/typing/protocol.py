"""Collaborator interfaces."""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from formmapper.typing.models import FieldMapping

ErrorCallback = Callable[[Exception], None]


class MappingPersistence(Protocol):
    """Async key-value storage of mapping sets, keyed by form id."""

    async def load_mappings(self, form_id: str) -> list[FieldMapping]:
        """Load the mapping set of a form.

        Args:
            form_id: Target form identifier.

        Returns:
            list[FieldMapping]: Stored mappings, empty when none were saved.
        """

    async def save_mappings(self, form_id: str, mappings: list[FieldMapping]) -> None:
        """Replace the mapping set of a form.

        Args:
            form_id: Target form identifier.
            mappings: Full mapping set to store.
        """
