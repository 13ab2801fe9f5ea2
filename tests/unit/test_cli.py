from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

import pytest

from formmapper import cli
from formmapper.exceptions import GraphError
from formmapper.settings import Settings
from formmapper.typing.models import FormGraph

if TYPE_CHECKING:
    from pathlib import Path


@pytest.fixture(autouse=True)
def _settings(mocker, tmp_path: Path) -> Settings:
    settings = Settings(log_json=False, mapping_store_path=str(tmp_path / "store" / "mappings.json"))
    mocker.patch("formmapper.cli.get_settings", return_value=settings)
    return settings


@pytest.fixture
def graph_path(tmp_path: Path, graph_payload: dict[str, Any]) -> Path:
    path = tmp_path / "graph.json"
    path.write_text(json.dumps(graph_payload), encoding="utf-8")
    return path


def _document(tmp_path: Path, transformation: dict[str, Any] | None = None) -> Path:
    mapping: dict[str, Any] = {
        "id": "m1",
        "targetFormId": "form-c",
        "targetFieldId": "full_name",
        "source": {"type": "direct", "formId": "form-b", "fieldId": "full_name", "label": "Form B - Full Name"},
    }
    if transformation is not None:
        mapping["transformation"] = transformation
    path = tmp_path / "export.json"
    path.write_text(json.dumps({"version": "1.0", "mappings": [mapping]}), encoding="utf-8")
    return path


def test_build_parser_supports_version_flag(capsys) -> None:
    parser = cli.build_parser()

    with pytest.raises(SystemExit) as exc_info:
        parser.parse_args(["--version"])
    assert exc_info.value.code == 0

    captured = capsys.readouterr()
    assert "0.1.0" in captured.out


def test_param_parser_rejects_missing_equals() -> None:
    parser = cli.build_parser()

    with pytest.raises(SystemExit):
        parser.parse_args(["transform", "round", "1.5", "--param", "decimals"])


def test_main_without_command_prints_help(capsys) -> None:
    assert cli.main([]) == 0
    assert "usage" in capsys.readouterr().out.lower()


def test_transform_command(capsys) -> None:
    assert cli.main(["transform", "formatPhone", "5551234567"]) == 0
    assert capsys.readouterr().out.strip() == "(555) 123-4567"

    assert cli.main(["transform", "formatDate", "2024-03-20", "--format", "MM/DD/YYYY"]) == 0
    assert capsys.readouterr().out.strip() == "03/20/2024"

    assert cli.main(["transform", "round", "42.567", "--param", "decimals=1"]) == 0
    assert capsys.readouterr().out.strip() == "42.6"


def test_transform_command_reports_failures() -> None:
    assert cli.main(["transform", "reverse", "abc"]) == 1


def test_sources_command(capsys, graph_path: Path) -> None:
    assert cli.main(["sources", "--graph", str(graph_path), "--form", "form-c"]) == 0

    lines = capsys.readouterr().out.strip().splitlines()
    assert lines[0].split("\t")[:3] == ["direct", "form-b", "full_name"]
    assert lines[-1].split("\t")[:3] == ["global", "-", "user.email"]
    assert len(lines) == 12


def test_validate_command(tmp_path: Path, graph_path: Path) -> None:
    assert cli.main(["validate", "--input", str(_document(tmp_path)), "--graph", str(graph_path)]) == 0
    invalid = _document(tmp_path, transformation={"type": ""})
    assert cli.main(["validate", "--input", str(invalid)]) == 1


def test_import_then_export(tmp_path: Path, graph_path: Path) -> None:
    document = _document(tmp_path, transformation={"type": "uppercase"})
    assert cli.main(["import", "--form", "form-c", "--input", str(document), "--graph", str(graph_path)]) == 0

    output = tmp_path / "out" / "export.json"
    assert cli.main(["export", "--form", "form-c", "--output", str(output)]) == 0

    exported = json.loads(output.read_text(encoding="utf-8"))
    assert exported["version"] == "1.0"
    assert exported["mappings"][0]["transformation"] == {"type": "uppercase"}


def test_import_rejects_invalid_document(tmp_path: Path) -> None:
    document = _document(tmp_path, transformation={"type": ""})

    assert cli.main(["import", "--form", "form-c", "--input", str(document)]) == 1
    assert cli.main(["export", "--form", "form-c"]) == 0


def test_import_reports_missing_input(tmp_path: Path) -> None:
    assert cli.main(["import", "--form", "form-c", "--input", str(tmp_path / "absent.json")]) == 1


def test_fetch_graph_command(mocker, tmp_path: Path, graph_payload: dict[str, Any]) -> None:
    mocker.patch("formmapper.cli.ensure_cli_dependencies_for_fetch")
    client = mocker.patch("formmapper.cli.GraphClient")
    client.return_value.__enter__.return_value.fetch_graph.return_value = FormGraph.model_validate(graph_payload)
    output = tmp_path / "graph.json"

    assert cli.main(["fetch-graph", "--org", "org-1", "--blueprint", "bp_01", "--output", str(output)]) == 0

    client.return_value.__enter__.return_value.fetch_graph.assert_called_once_with("org-1", "bp_01")
    saved = FormGraph.model_validate_json(output.read_text(encoding="utf-8"))
    assert saved.node("form-b").prerequisites == ["form-a"]


def test_fetch_graph_command_reports_graph_errors(mocker, tmp_path: Path) -> None:
    mocker.patch("formmapper.cli.ensure_cli_dependencies_for_fetch")
    client = mocker.patch("formmapper.cli.GraphClient")
    client.return_value.__enter__.return_value.fetch_graph.side_effect = GraphError(message="boom")

    assert cli.main(["fetch-graph", "--org", "o", "--blueprint", "b", "--output", str(tmp_path / "g.json")]) == 1
