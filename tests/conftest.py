"""Pytest marker auto-assignment by folder and shared graph fixtures."""

from __future__ import annotations

import copy
from pathlib import Path
from typing import Any

import pytest

from formmapper import logger
from formmapper.typing.models import FormGraph

_DEMOGRAPHICS_FIELDS: dict[str, Any] = {
    "first_name": {"type": "string", "title": "First Name"},
    "email": {"type": "string", "format": "email", "title": "Email"},
    "date_of_birth": {"type": "string", "format": "date", "title": "Date of Birth"},
    "phone": {"type": "string", "title": "Phone"},
    "age": {"type": "number", "title": "Age"},
}

_INTAKE_FIELDS: dict[str, Any] = {
    "full_name": {"type": "string", "title": "Full Name"},
    "contact_email": {"type": "string", "format": "email", "title": "Contact Email"},
    "visit_date": {"type": "string", "format": "date", "title": "Visit Date"},
    "weight": {"type": "number", "title": "Weight"},
    "notes": {"type": "string", "avantos_type": "multi-line-text", "title": ""},
}

GRAPH_PAYLOAD: dict[str, Any] = {
    "id": "bp_01",
    "name": "Patient onboarding",
    "nodes": [
        {
            "id": "form-a",
            "type": "form",
            "data": {"name": "Form A", "component_id": "cmp-demographics", "prerequisites": []},
        },
        {
            "id": "form-b",
            "type": "form",
            "data": {"name": "Form B", "component_id": "cmp-intake", "prerequisites": ["form-a"]},
        },
        {
            "id": "form-c",
            "type": "form",
            "data": {"name": "Form C", "component_id": "cmp-intake", "prerequisites": ["form-b"]},
        },
    ],
    "edges": [
        {"source": "form-a", "target": "form-b"},
        {"source": "form-b", "target": "form-c"},
    ],
    "forms": [
        {
            "id": "cmp-demographics",
            "name": "Demographics",
            "field_schema": {"type": "object", "properties": _DEMOGRAPHICS_FIELDS, "required": ["first_name"]},
        },
        {
            "id": "cmp-intake",
            "name": "Intake",
            "field_schema": {"type": "object", "properties": _INTAKE_FIELDS, "required": []},
        },
    ],
}


@pytest.fixture
def graph_payload() -> dict[str, Any]:
    """Return a fresh copy of the A <- B <- C blueprint graph payload."""
    return copy.deepcopy(GRAPH_PAYLOAD)


@pytest.fixture
def graph(graph_payload: dict[str, Any]) -> FormGraph:
    """Return the A <- B <- C form graph."""
    return FormGraph.model_validate(graph_payload)


def _mark_tests_by_directory(
    config: pytest.Config,
    items: list[pytest.Item],
    marker: str,
) -> None:
    """Mark collected tests located under tests/<marker>/."""
    target_dir = Path(config.rootpath) / "tests" / marker
    target_dir = target_dir.resolve()

    for item in items:
        try:
            path = Path(str(item.fspath)).resolve()
        except OSError:
            logger.warning(
                f"Could not resolve path for test item {item.name!s}; skipping {marker!s} marker assignment",
            )
            continue

        if path == target_dir or target_dir in path.parents:
            item.add_marker(getattr(pytest.mark, marker))


def pytest_collection_modifyitems(
    config: pytest.Config,
    items: list[pytest.Item],
) -> None:
    """Apply directory-based markers to test items."""
    _mark_tests_by_directory(config, items, "unit")
    _mark_tests_by_directory(config, items, "integration")
    _mark_tests_by_directory(config, items, "end2end")
