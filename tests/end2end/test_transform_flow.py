from __future__ import annotations

import json
import sys
from subprocess import run as subprocess_run  # noqa: S404
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from pathlib import Path


def _run(*args: str, cwd: Path) -> Any:
    return subprocess_run(  # noqa: S603
        [sys.executable, "-m", "formmapper.cli", *args],
        capture_output=True,
        text=True,
        check=False,
        cwd=cwd,
    )


def test_format_phone_through_cli(tmp_path: Path) -> None:
    result = _run("transform", "formatPhone", "5551234567", cwd=tmp_path)

    assert result.returncode == 0
    assert result.stdout.strip() == "(555) 123-4567"


def test_sources_through_cli(tmp_path: Path, graph_payload: dict[str, Any]) -> None:
    graph_path = tmp_path / "graph.json"
    graph_path.write_text(json.dumps(graph_payload), encoding="utf-8")

    result = _run("sources", "--graph", str(graph_path), "--form", "form-c", cwd=tmp_path)

    assert result.returncode == 0
    kinds = [line.split("\t")[0] for line in result.stdout.strip().splitlines()]
    assert kinds == ["direct"] * 5 + ["transitive"] * 5 + ["global"] * 2
