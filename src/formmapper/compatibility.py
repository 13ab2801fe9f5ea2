"""Type compatibility lattice between semantic field types."""

from __future__ import annotations

from types import MappingProxyType

from formmapper.typing.enums import FieldType, TypeClass

STRING_LIKE = frozenset({FieldType.STRING, FieldType.TEXT, FieldType.EMAIL, FieldType.URL, FieldType.TEL})
NUMBER_LIKE = frozenset({FieldType.NUMBER, FieldType.INTEGER, FieldType.FLOAT})
DATE_LIKE = frozenset({FieldType.DATE, FieldType.DATETIME})
BOOLEAN_LIKE = frozenset({FieldType.BOOLEAN, FieldType.CHECKBOX})


def _build_table() -> dict[FieldType, frozenset[FieldType]]:
    """Declare, per type, the types it may flow into."""
    table: dict[FieldType, frozenset[FieldType]] = {field_type: frozenset({field_type}) for field_type in FieldType}
    for group in (STRING_LIKE, NUMBER_LIKE, DATE_LIKE, BOOLEAN_LIKE):
        for field_type in group:
            table[field_type] = group
    table[FieldType.MULTISELECT] = frozenset({FieldType.MULTISELECT, FieldType.SELECT, FieldType.ARRAY})
    return table


COMPATIBILITY_TABLE = MappingProxyType(_build_table())


def _coerce(field_type: FieldType | str) -> FieldType | None:
    try:
        return FieldType(field_type)
    except ValueError:
        return None


def is_compatible(source_type: FieldType | str, target_type: FieldType | str) -> bool:
    """Return whether a value of `source_type` may be mapped into `target_type`.

    A pair is compatible when either side's declared set contains the other.
    Unknown type names are only compatible with an identical name.

    Args:
        source_type (FieldType | str): Source field type.
        target_type (FieldType | str): Target field type.

    Returns:
        bool: True when the pair is compatible.
    """
    source = _coerce(source_type)
    target = _coerce(target_type)
    if source is None or target is None:
        return str(source_type) == str(target_type)
    return target in COMPATIBILITY_TABLE[source] or source in COMPATIBILITY_TABLE[target]


def type_class(field_type: FieldType | str) -> TypeClass | None:
    """Return the transformation type class of a field type, if it has one."""
    coerced = _coerce(field_type)
    if coerced in STRING_LIKE:
        return TypeClass.STRING
    if coerced in NUMBER_LIKE:
        return TypeClass.NUMBER
    if coerced in DATE_LIKE:
        return TypeClass.DATE
    return None
