"""Form graph providers: local JSON files and the blueprint graph API."""

from __future__ import annotations

import json
from pathlib import Path
from typing import TYPE_CHECKING, Any, Self

import httpx
from pydantic import ValidationError

from formmapper import logger
from formmapper.exceptions import GraphError
from formmapper.settings import build_httpx_client_kwargs
from formmapper.typing.models import FormGraph

if TYPE_CHECKING:
    from types import TracebackType

    from formmapper.settings import Settings


def parse_graph(payload: Any) -> FormGraph:
    """Validate a raw graph payload.

    Raises:
        GraphError: If the payload is not a valid form graph.
    """
    try:
        return FormGraph.model_validate(payload)
    except ValidationError as exc:
        raise GraphError(message=f"Invalid form graph: {exc.error_count()} validation errors") from exc


def load_graph(path: Path) -> FormGraph:
    """Load a form graph from a JSON file.

    Args:
        path (Path): Graph JSON path.

    Raises:
        GraphError: If the file cannot be read or is not a valid graph.

    Returns:
        FormGraph: Parsed graph.
    """
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise GraphError(message=f"Cannot read form graph {path}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise GraphError(message=f"Form graph {path} is not valid JSON: {exc.msg}") from exc
    return parse_graph(payload)


class GraphClient:
    """Synchronous client of the blueprint graph API.

    Usage:
        with GraphClient(settings) as client:
            graph = client.fetch_graph("org", "bp_123")
    """

    def __init__(self, settings: Settings, *, client: httpx.Client | None = None) -> None:
        """Initialize the client.

        Args:
            settings (Settings): Runtime settings holding the base URL, token, TLS and proxy.
            client (httpx.Client | None): Pre-built HTTP client, mostly for tests.

        Raises:
            GraphError: If no base URL is configured.
        """
        if not settings.graph_api_base_url:
            raise GraphError(message="GRAPH_API_BASE_URL is not configured")
        self.base_url = settings.graph_api_base_url
        self._owns_client = client is None
        self._client = client or httpx.Client(**build_httpx_client_kwargs(settings))

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        self.close()

    def close(self) -> None:
        """Close the underlying HTTP client when this instance created it."""
        if self._owns_client:
            self._client.close()

    def graph_url(self, org_id: str, blueprint_id: str) -> str:
        """Return the graph endpoint of a blueprint."""
        return f"{self.base_url}/{org_id}/actions/blueprints/{blueprint_id}/graph"

    def fetch_graph(self, org_id: str, blueprint_id: str) -> FormGraph:
        """Fetch and parse the form graph of a blueprint.

        Args:
            org_id (str): Organization identifier.
            blueprint_id (str): Blueprint identifier.

        Raises:
            GraphError: On transport errors, non-2xx responses or invalid payloads.

        Returns:
            FormGraph: Parsed graph.
        """
        url = self.graph_url(org_id, blueprint_id)
        try:
            response = self._client.get(url)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise GraphError(
                message=f"Graph request failed with status {exc.response.status_code}: {url}",
            ) from exc
        except httpx.HTTPError as exc:
            raise GraphError(message=f"Graph request failed: {exc}") from exc

        try:
            payload = response.json()
        except ValueError as exc:
            raise GraphError(message=f"Graph response is not valid JSON: {url}") from exc

        graph = parse_graph(payload)
        logger.info(
            "Form graph fetched",
            extra={"org_id": org_id, "blueprint_id": blueprint_id, "nodes": len(graph.nodes)},
        )
        return graph
