"""citerag.pipelines.arguments

Canonicalisation of loosely-shaped ``search``/``fetch`` arguments.

Remote tool callers wrap their arguments in different ways: a bare string,
``{"query": ...}``, ``{"q": ...}``, ``{"input": {...}}`` or a doubled
``{"arguments": {...}}`` envelope. Shape is tolerated; missing content is
not. A payload that does not yield a non-empty string query (or id) is
rejected with a tagged :class:`~citerag.common.errors.RetrievalError`.

The policy is expressed as ordered lists of :class:`ShapeMatcher` objects,
each a pure predicate plus extractor:

- ``ENVELOPE_MATCHERS`` are tried repeatedly to peel envelopes.
- ``QUERY_MATCHERS`` / ``ID_MATCHERS`` locate the semantic content.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional, Sequence

from citerag.common import CanonicalFetchCall, CanonicalSearchCall
from citerag.common.errors import INVALID_ID, INVALID_QUERY, RetrievalError
from citerag.common.schemas import DEFAULT_TOP_K, MAX_TOP_K, MIN_TOP_K

MAX_ENVELOPE_DEPTH = 16


@dataclass(frozen=True)
class ShapeMatcher:
    """A named predicate/extractor pair over a payload."""

    name: str
    matches: Callable[[Any], bool]
    extract: Callable[[Any], Any]

    def __call__(self, payload: Any) -> Any:
        return self.extract(payload)


def _has_key(key: str) -> Callable[[Any], bool]:
    return lambda payload: isinstance(payload, Mapping) and key in payload


def _has_str_field(key: str) -> Callable[[Any], bool]:
    return lambda payload: isinstance(payload, Mapping) and isinstance(payload.get(key), str)


def _get(key: str) -> Callable[[Any], Any]:
    return lambda payload: payload[key]


def _is_str(payload: Any) -> bool:
    return isinstance(payload, str)


def _identity(payload: Any) -> Any:
    return payload


ENVELOPE_MATCHERS: tuple[ShapeMatcher, ...] = (
    ShapeMatcher("arguments", _has_key("arguments"), _get("arguments")),
    ShapeMatcher("input", _has_key("input"), _get("input")),
)

QUERY_MATCHERS: tuple[ShapeMatcher, ...] = (
    ShapeMatcher("bare_string", _is_str, _identity),
    ShapeMatcher("query", _has_str_field("query"), _get("query")),
    ShapeMatcher("q", _has_str_field("q"), _get("q")),
)

ID_MATCHERS: tuple[ShapeMatcher, ...] = (
    ShapeMatcher("bare_string", _is_str, _identity),
    ShapeMatcher("id", _has_str_field("id"), _get("id")),
)

TOP_K_FIELDS = ("topK", "top_k")


def unwrap_envelopes(
        payload: Any,
        matchers: Sequence[ShapeMatcher] = ENVELOPE_MATCHERS,
    ) -> Any:
    """Peel known envelope keys off ``payload``.

    At each level the first matching envelope is followed; unwrapping stops
    when no envelope matches.

    Raises
    ------
    ValueError
        If more than ``MAX_ENVELOPE_DEPTH`` envelopes are nested.
    """
    for _ in range(MAX_ENVELOPE_DEPTH + 1):
        matcher = first_match(payload, matchers)
        if matcher is None:
            return payload
        payload = matcher(payload)
    raise ValueError(f"Payload nests more than {MAX_ENVELOPE_DEPTH} envelopes.")


def first_match(payload: Any, matchers: Sequence[ShapeMatcher]) -> Optional[ShapeMatcher]:
    for matcher in matchers:
        if matcher.matches(payload):
            return matcher
    return None


def coerce_top_k(value: Any, default: int = DEFAULT_TOP_K) -> int:
    """Clamp a numeric ``topK`` into ``[1, 20]`` and truncate it.

    Non-numeric (including booleans and strings) and non-finite values fall
    back to ``default``.
    """
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    if not math.isfinite(value):
        return default
    return int(min(max(value, MIN_TOP_K), MAX_TOP_K))


def normalize_search(payload: Any, default_top_k: int = DEFAULT_TOP_K) -> CanonicalSearchCall:
    """Canonicalise a search payload.

    Parameters
    ----------
    payload : Any
        Raw arguments as received from the caller.
    default_top_k : int, optional
        ``topK`` used when the payload carries none. Defaults to ``8``.

    Returns
    -------
    CanonicalSearchCall
        Validated query and result count.

    Raises
    ------
    RetrievalError
        ``invalid_query`` when no non-empty string query can be located.

    Examples
    --------
    >>> normalize_search("hello")
    CanonicalSearchCall(query='hello', top_k=8)
    >>> normalize_search({"input": {"q": "y"}})
    CanonicalSearchCall(query='y', top_k=8)
    """
    try:
        body = unwrap_envelopes(payload)
    except ValueError as e:
        raise RetrievalError(INVALID_QUERY, str(e)) from e

    matcher = first_match(body, QUERY_MATCHERS)
    if matcher is None:
        raise RetrievalError(INVALID_QUERY, "No string 'query' or 'q' found in arguments.")

    query = matcher(body)
    if not query.strip():
        raise RetrievalError(INVALID_QUERY, "Query must not be empty.")

    top_k = default_top_k
    if isinstance(body, Mapping):
        for key in TOP_K_FIELDS:
            if key in body:
                top_k = coerce_top_k(body[key], default_top_k)
                break

    return CanonicalSearchCall(query=query, top_k=top_k)


def normalize_fetch(payload: Any) -> CanonicalFetchCall:
    """Canonicalise a fetch payload.

    Raises
    ------
    RetrievalError
        ``invalid_id`` when no non-empty string id can be located.
    """
    try:
        body = unwrap_envelopes(payload)
    except ValueError as e:
        raise RetrievalError(INVALID_ID, str(e)) from e

    matcher = first_match(body, ID_MATCHERS)
    if matcher is None:
        raise RetrievalError(INVALID_ID, "No string 'id' found in arguments.")

    chunk_id = matcher(body)
    if not chunk_id.strip():
        raise RetrievalError(INVALID_ID, "Id must not be empty.")

    return CanonicalFetchCall(id=chunk_id)


__all__ = [
    "ShapeMatcher",
    "ENVELOPE_MATCHERS",
    "QUERY_MATCHERS",
    "ID_MATCHERS",
    "unwrap_envelopes",
    "first_match",
    "coerce_top_k",
    "normalize_search",
    "normalize_fetch",
]
