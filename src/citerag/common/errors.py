"""citerag.common.errors

Error taxonomy for the retrieval engine.

Caller-input and collaborator failures are reported as a tagged
:class:`RetrievalError`; setup problems (bad chunker parameters, mixed
embedding models, malformed index files) raise :class:`ConfigurationError`
and are expected to stop the process at build or start time.
"""

from __future__ import annotations

from typing import Any, Dict

INVALID_QUERY = "invalid_query"
INVALID_ID = "invalid_id"
SEARCH_FAILED = "search_failed"
FETCH_FAILED = "fetch_failed"

ERROR_CODES = frozenset({INVALID_QUERY, INVALID_ID, SEARCH_FAILED, FETCH_FAILED})


class RetrievalError(Exception):
    """Tagged failure of a ``search`` or ``fetch`` call.

    Parameters
    ----------
    code : str
        One of ``invalid_query``, ``invalid_id``, ``search_failed`` or
        ``fetch_failed``.
    message : str
        Human-readable description.
    """

    def __init__(self, code: str, message: str):
        if code not in ERROR_CODES:
            raise ValueError(f"Unknown retrieval error code {code!r}.")
        super().__init__(f"{code}: {message}")
        self.code = code
        self.message = message

    @property
    def is_caller_error(self) -> bool:
        return self.code in (INVALID_QUERY, INVALID_ID)

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.code, "message": self.message}


class ConfigurationError(ValueError):
    """Invalid setup detected at build or start time."""


class IndexFormatError(ConfigurationError):
    """The persisted index file does not have the expected shape."""


class EmbeddingModelMismatchError(ConfigurationError):
    """Vectors from different embedding models were about to be compared."""


__all__ = [
    "INVALID_QUERY",
    "INVALID_ID",
    "SEARCH_FAILED",
    "FETCH_FAILED",
    "RetrievalError",
    "ConfigurationError",
    "IndexFormatError",
    "EmbeddingModelMismatchError",
]
