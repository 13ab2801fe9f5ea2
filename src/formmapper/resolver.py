"""Dependency resolution over the form graph."""

from __future__ import annotations

from collections.abc import Sequence
from typing import NamedTuple

from formmapper import logger
from formmapper.typing.enums import FieldType, SourceType
from formmapper.typing.models import FieldSchema, FormGraph, MappingSource

GLOBAL_SOURCE_FORM_ID = "global"

GLOBAL_SOURCES: tuple[MappingSource, ...] = (
    MappingSource(type=SourceType.GLOBAL, field_id="user.name", label="User Name"),
    MappingSource(type=SourceType.GLOBAL, field_id="user.email", label="User Email"),
)

GLOBAL_FIELD_TYPES: dict[str, FieldType] = {
    "user.name": FieldType.STRING,
    "user.email": FieldType.EMAIL,
}


class SourceForm(NamedTuple):
    """Upstream form offered as a source, tagged with its distance class."""

    form_id: str
    name: str
    type: SourceType


def get_direct_dependencies(graph: FormGraph, form_id: str) -> list[str]:
    """Return the declared prerequisites of `form_id`, in declared order, without duplicates."""
    node = graph.node(form_id)
    if node is None:
        return []
    return list(dict.fromkeys(prereq for prereq in node.prerequisites if prereq != form_id))


def get_dependency_closure(graph: FormGraph, form_id: str) -> list[str]:
    """Return every ancestor of `form_id` in depth-first pre-order.

    Each node is visited once, so a cyclic graph terminates; `form_id` itself is
    never part of its own closure.

    Args:
        graph (FormGraph): Form graph.
        form_id (str): Target form identifier.

    Returns:
        list[str]: Ancestor form ids.
    """
    visited: set[str] = set()
    closure: dict[str, None] = {}
    stack = [form_id]

    while stack:
        current = stack.pop()
        if current in visited:
            continue
        visited.add(current)
        if current != form_id:
            closure[current] = None

        node = graph.node(current)
        if node is None:
            continue
        stack.extend(prereq for prereq in reversed(node.prerequisites) if prereq not in visited)

    return list(closure)


def get_transitive_dependencies(graph: FormGraph, form_id: str) -> list[str]:
    """Return ancestors of `form_id` that are not direct prerequisites."""
    direct = set(get_direct_dependencies(graph, form_id))
    return [dep for dep in get_dependency_closure(graph, form_id) if dep not in direct]


def get_source_forms(graph: FormGraph, form_id: str) -> list[SourceForm]:
    """Return upstream forms of `form_id`, direct ones first."""
    tagged = [(dep, SourceType.DIRECT) for dep in get_direct_dependencies(graph, form_id)]
    tagged += [(dep, SourceType.TRANSITIVE) for dep in get_transitive_dependencies(graph, form_id)]

    forms: list[SourceForm] = []
    for dep, source_type in tagged:
        node = graph.node(dep)
        if node is None:
            continue
        forms.append(SourceForm(form_id=dep, name=node.name or dep, type=source_type))
    return forms


def _field_sources(graph: FormGraph, form_id: str, source_type: SourceType) -> list[MappingSource]:
    node = graph.node(form_id)
    schema = graph.schema_for(form_id)
    if node is None or schema is None:
        logger.debug("Skipping schema-less source form", extra={"form_id": form_id})
        return []

    return [
        MappingSource(
            type=source_type,
            form_id=form_id,
            field_id=field_id,
            label=f"{node.name} - {field_schema.display_title or field_id}",
        )
        for field_id, field_schema in schema.field_schema.properties.items()
    ]


def get_available_sources(
    graph: FormGraph,
    target_form_id: str,
    target_field_path: Sequence[str] = (),
) -> list[MappingSource]:
    """List candidate mapping sources for a target form.

    Sources of direct prerequisites come first, then sources of transitive
    dependencies, then the global sources.

    Args:
        graph (FormGraph): Form graph.
        target_form_id (str): Form receiving the mapping.
        target_field_path (Sequence[str]): Target field path, used for diagnostics only.

    Returns:
        list[MappingSource]: Ordered candidate sources; empty when the target is not in the graph.
    """
    if graph.node(target_form_id) is None:
        logger.warning("Target form not found in graph", extra={"form_id": target_form_id})
        return []

    direct = get_direct_dependencies(graph, target_form_id)
    transitive = get_transitive_dependencies(graph, target_form_id)

    sources: list[MappingSource] = []
    for dep in direct:
        sources.extend(_field_sources(graph, dep, SourceType.DIRECT))
    for dep in transitive:
        sources.extend(_field_sources(graph, dep, SourceType.TRANSITIVE))
    sources.extend(GLOBAL_SOURCES)

    logger.debug(
        "Resolved mapping sources",
        extra={
            "form_id": target_form_id,
            "target_field": ".".join(target_field_path),
            "direct_forms": len(direct),
            "transitive_forms": len(transitive),
            "source_count": len(sources),
        },
    )
    return sources


def resolve_source_schema(graph: FormGraph, source: MappingSource) -> FieldSchema | None:
    """Return the field schema behind a mapping source, synthesizing one for globals."""
    if source.type == SourceType.GLOBAL:
        field_type = GLOBAL_FIELD_TYPES.get(source.field_id)
        return FieldSchema(type=field_type) if field_type else None
    if not source.form_id:
        return None
    return graph.field_schema(source.form_id, source.field_id)
