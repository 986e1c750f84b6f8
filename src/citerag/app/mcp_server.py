"""citerag.app.mcp_server

MCP tool adapter exposing ``search`` and ``fetch`` over the retrieval service.

Remote tool callers send loosely-typed arguments, so every tool accepts the
full set of known fields as optional and forwards whatever was supplied to
the service, which owns normalisation. Tagged failures are returned to the
caller as ``{"error": code, "message": ...}`` dicts rather than raised.

Run with ``python -m citerag.app.mcp_server``; the configuration file is
taken from ``CITERAG_CONFIG``.
"""

from __future__ import annotations

import logging
import os
from typing import Any, Callable, Dict, Optional

from fastmcp import FastMCP

from citerag.common.errors import RetrievalError

logger = logging.getLogger("citerag.mcp")

CONFIG_ENV = "CITERAG_CONFIG"
DEFAULT_CONFIG_PATH = "config/config.yaml"

READ_ONLY_TOOL = {
    "readOnlyHint": True,
    "destructiveHint": False,
    "idempotentHint": True,
    "openWorldHint": False,
}


def build_payload(**fields: Any) -> Any:
    """Collect the supplied (non-``None``) tool fields into one payload.

    An ``arguments`` or ``input`` value that is the only field supplied is
    passed through as-is, so a bare string envelope stays a bare string.
    """
    supplied = {k: v for k, v in fields.items() if v is not None}
    if len(supplied) == 1:
        key, value = next(iter(supplied.items()))
        if key in ("arguments", "input"):
            return value
    return supplied


def call_tool(operation: Callable[[Any], Dict[str, Any]], payload: Any) -> Dict[str, Any]:
    """Invoke a service operation, turning tagged failures into error dicts."""
    try:
        return operation(payload)
    except RetrievalError as err:
        logger.info("Tool call rejected: %s", err)
        return err.to_dict()


def create_mcp_server(service: Any, name: str = "citerag") -> FastMCP:
    """Create a FastMCP server bound to ``service``.

    Parameters
    ----------
    service : RetrievalService
        Service handling the tool calls.
    name : str, optional
        Server name advertised to MCP clients.

    Returns
    -------
    FastMCP
        Server with ``search`` and ``fetch`` tools registered.
    """
    mcp = FastMCP(name=name, instructions="Citation-grade search over project Markdown docs")

    @mcp.tool(name="search", title="Search docs", annotations=READ_ONLY_TOOL)
    def search(
        query: Optional[Any] = None,
        q: Optional[Any] = None,
        topK: Optional[Any] = None,
        top_k: Optional[Any] = None,
        input: Optional[Any] = None,
        arguments: Optional[Any] = None,
    ) -> Dict[str, Any]:
        """Search the documentation index and return citable chunk ids, titles and URLs."""
        payload = build_payload(
            query=query, q=q, topK=topK, top_k=top_k, input=input, arguments=arguments,
        )
        return call_tool(service.search, payload)

    @mcp.tool(name="fetch", title="Fetch chunk", annotations=READ_ONLY_TOOL)
    def fetch(
        id: Optional[Any] = None,
        input: Optional[Any] = None,
        arguments: Optional[Any] = None,
    ) -> Dict[str, Any]:
        """Return the full text, URL and metadata of a chunk returned by search."""
        payload = build_payload(id=id, input=input, arguments=arguments)
        return call_tool(service.fetch, payload)

    return mcp


def main() -> None:
    from citerag.app.container import build_container
    from citerag.config import GlobalConfig

    cfg = GlobalConfig.load(os.environ.get(CONFIG_ENV, DEFAULT_CONFIG_PATH))
    logging.basicConfig(level=cfg.log_level)
    container = build_container(cfg)
    mcp = create_mcp_server(container.service)
    try:
        mcp.run()
    except Exception:
        logger.exception("MCP server crashed")
        raise


if __name__ == "__main__":
    main()
