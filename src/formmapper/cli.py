"""CLI entry point for FormMapper."""

from __future__ import annotations

import argparse
import json
from pathlib import Path
from typing import TYPE_CHECKING, Any

from formmapper import __version__, logger
from formmapper.async_runner import run_async
from formmapper.dependencies import ensure_cli_dependencies_for_fetch
from formmapper.exceptions import PackageError
from formmapper.exchange import dump_document, parse_document
from formmapper.graph_client import GraphClient, load_graph
from formmapper.logging import configure_logging
from formmapper.persistence import JsonFileMappingPersistence
from formmapper.resolver import get_available_sources
from formmapper.settings import get_settings
from formmapper.store import MappingStateStore
from formmapper.transformations import TransformationRegistry
from formmapper.validation import ValidationService

if TYPE_CHECKING:
    from collections.abc import Callable

    from formmapper.settings import Settings


def _param_from_cli(value: str) -> tuple[str, str]:
    """Convert a `--param key=value` CLI value into a pair.

    Args:
        value (str): CLI value.

    Raises:
        argparse.ArgumentTypeError: If the value has no `=`.

    Returns:
        tuple[str, str]: Parameter name and value.
    """
    name, sep, raw = value.partition("=")
    if not sep or not name:
        raise argparse.ArgumentTypeError("--param must look like name=value")  # noqa: TRY003
    return name, raw


def build_parser() -> argparse.ArgumentParser:
    """Create the command-line parser.

    Returns:
        argparse.ArgumentParser: The configured argument parser.
    """
    parser = argparse.ArgumentParser(prog="formmapper")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    subparsers = parser.add_subparsers(dest="command")

    sources_parser = subparsers.add_parser("sources", help="List candidate sources of a target form")
    sources_parser.add_argument("--graph", required=True, type=Path, dest="graph_path")
    sources_parser.add_argument("--form", required=True, dest="form_id")

    transform_parser = subparsers.add_parser("transform", help="Apply a transformation to a value")
    transform_parser.add_argument("name")
    transform_parser.add_argument("value")
    transform_parser.add_argument("--format", default=None, dest="format_value")
    transform_parser.add_argument("--param", action="append", default=[], type=_param_from_cli, dest="params")

    validate_parser = subparsers.add_parser("validate", help="Validate an export document against a graph")
    validate_parser.add_argument("--input", required=True, type=Path, dest="input_path")
    validate_parser.add_argument("--graph", type=Path, default=None, dest="graph_path")

    export_parser = subparsers.add_parser("export", help="Export the stored mappings of a form")
    export_parser.add_argument("--form", required=True, dest="form_id")
    export_parser.add_argument("--store", type=Path, default=None, dest="store_path")
    export_parser.add_argument("--output", type=Path, default=None, dest="output_path")

    import_parser = subparsers.add_parser("import", help="Replace the stored mappings of a form")
    import_parser.add_argument("--form", required=True, dest="form_id")
    import_parser.add_argument("--input", required=True, type=Path, dest="input_path")
    import_parser.add_argument("--graph", type=Path, default=None, dest="graph_path")
    import_parser.add_argument("--store", type=Path, default=None, dest="store_path")

    fetch_parser = subparsers.add_parser("fetch-graph", help="Download the form graph of a blueprint")
    fetch_parser.add_argument("--org", required=True, dest="org_id")
    fetch_parser.add_argument("--blueprint", required=True, dest="blueprint_id")
    fetch_parser.add_argument("--output", type=Path, default=Path("results/graph.json"), dest="output_path")

    return parser


def _persistence(args: argparse.Namespace, settings: Settings) -> JsonFileMappingPersistence:
    return JsonFileMappingPersistence(path=args.store_path or Path(settings.mapping_store_path))


def _run_sources(args: argparse.Namespace, settings: Settings) -> int:  # noqa: ARG001
    graph = load_graph(args.graph_path)
    for source in get_available_sources(graph, args.form_id):
        print(f"{source.type}\t{source.form_id or '-'}\t{source.field_id}\t{source.label}")  # noqa: T201
    return 0


def _run_transform(args: argparse.Namespace, settings: Settings) -> int:  # noqa: ARG001
    registry = TransformationRegistry()
    params: dict[str, Any] = registry.params_from_format(args.name, args.format_value)
    params.update(dict(args.params))
    print(registry.transform(args.value, args.name, params))  # noqa: T201
    return 0


def _run_validate(args: argparse.Namespace, settings: Settings) -> int:  # noqa: ARG001
    graph = load_graph(args.graph_path) if args.graph_path else None
    validation = ValidationService(TransformationRegistry())
    mappings = parse_document(args.input_path.read_text(encoding="utf-8"), validation, graph=graph)
    logger.info("Mappings are valid", extra={"count": len(mappings), "input_path": str(args.input_path)})
    return 0


def _run_export(args: argparse.Namespace, settings: Settings) -> int:
    mappings = run_async(_persistence(args, settings).load_mappings(args.form_id))
    document = dump_document(mappings)
    if args.output_path is None:
        print(document)  # noqa: T201
        return 0

    args.output_path.parent.mkdir(parents=True, exist_ok=True)
    args.output_path.write_text(document, encoding="utf-8")
    logger.info("Mappings exported", extra={"form_id": args.form_id, "output_path": str(args.output_path)})
    return 0


async def _import_mappings(args: argparse.Namespace, settings: Settings) -> list[Exception]:
    failures: list[Exception] = []
    graph = load_graph(args.graph_path) if args.graph_path else None
    store = MappingStateStore(
        args.form_id,
        _persistence(args, settings),
        ValidationService(TransformationRegistry()),
        graph=graph,
        on_error=failures.append,
    )
    await store.load()
    await store.import_document(args.input_path.read_text(encoding="utf-8"))
    await store.wait_for_saves()
    return failures


def _run_import(args: argparse.Namespace, settings: Settings) -> int:
    failures = run_async(_import_mappings(args, settings))
    if failures:
        for failure in failures:
            logger.error("Import failed", extra={"form_id": args.form_id, "error": str(failure)})
        return 1
    logger.info("Mappings imported", extra={"form_id": args.form_id, "input_path": str(args.input_path)})
    return 0


def _run_fetch_graph(args: argparse.Namespace, settings: Settings) -> int:
    ensure_cli_dependencies_for_fetch()
    with GraphClient(settings) as client:
        graph = client.fetch_graph(args.org_id, args.blueprint_id)

    args.output_path.parent.mkdir(parents=True, exist_ok=True)
    args.output_path.write_text(
        json.dumps(graph.model_dump(mode="json", exclude_none=True), indent=2),
        encoding="utf-8",
    )
    logger.info("Form graph saved", extra={"output_path": str(args.output_path)})
    return 0


_COMMANDS: dict[str, Callable[[argparse.Namespace, Settings], int]] = {
    "sources": _run_sources,
    "transform": _run_transform,
    "validate": _run_validate,
    "export": _run_export,
    "import": _run_import,
    "fetch-graph": _run_fetch_graph,
}


def main(argv: list[str] | None = None) -> int:
    """Run the CLI.

    Args:
        argv (list[str] | None): Arguments; `sys.argv` when omitted.

    Returns:
        int: Exit code (0 for success, 1 for error).
    """
    settings = get_settings()
    configure_logging(settings=settings)

    parser = build_parser()
    args = parser.parse_args(argv)

    handler = _COMMANDS.get(args.command)
    if handler is None:
        parser.print_help()
        return 0

    try:
        return handler(args, settings)
    except PackageError:
        logger.exception("Command failed", extra={"command": args.command})
        return 1
    except OSError:
        logger.exception("File access failed", extra={"command": args.command})
        return 1
    except KeyboardInterrupt:
        logger.info("Command aborted by user")
        return 130


if __name__ == "__main__":
    raise SystemExit(main())
