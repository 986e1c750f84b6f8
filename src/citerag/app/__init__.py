"""citerag.app

Application layer: the composition root and the thin HTTP and MCP adapters
that expose the retrieval service.
"""
