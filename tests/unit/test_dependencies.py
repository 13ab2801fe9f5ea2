from __future__ import annotations

import pytest

from formmapper.dependencies import ensure_cli_dependencies_for_fetch
from formmapper.exceptions import DependencyError


def test_ensure_cli_dependencies_for_fetch_succeeds(monkeypatch) -> None:
    monkeypatch.setattr("formmapper.dependencies._is_module_available", lambda module_name: True)
    ensure_cli_dependencies_for_fetch()


def test_ensure_cli_dependencies_for_fetch_raises(monkeypatch) -> None:
    monkeypatch.setattr("formmapper.dependencies._is_module_available", lambda module_name: module_name != "httpx")
    with pytest.raises(DependencyError, match="fetch-graph") as exc_info:
        ensure_cli_dependencies_for_fetch()

    assert exc_info.value.missing_package == ["httpx"]
