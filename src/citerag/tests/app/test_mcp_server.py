from fastmcp import FastMCP

from citerag.app.mcp_server import build_payload, call_tool, create_mcp_server


def test_build_payload_drops_unset_fields():
    assert build_payload(query="x", q=None, topK=3, input=None) == {"query": "x", "topK": 3}
    assert build_payload(query=None) == {}


def test_lone_envelope_is_passed_through():
    assert build_payload(input="hello", query=None) == "hello"
    assert build_payload(arguments={"q": "y"}) == {"q": "y"}


def test_call_tool_returns_search_results(sample_service):
    out = call_tool(sample_service.search, build_payload(query="retry", topK=1))
    assert [r["id"] for r in out["results"]] == ["docs/api.md::Retry policy::0"]


def test_call_tool_turns_tagged_errors_into_dicts(sample_service):
    out = call_tool(sample_service.search, build_payload(query="   "))
    assert out["error"] == "invalid_query"

    out = call_tool(sample_service.fetch, build_payload(id=None))
    assert out["error"] == "invalid_id"


def test_fetch_not_found_is_not_an_error(sample_service):
    out = call_tool(sample_service.fetch, build_payload(id="docs/none.md::X::0"))
    assert "error" not in out
    assert out["metadata"] == {"error": "not_found"}


def test_create_mcp_server(sample_service):
    assert isinstance(create_mcp_server(sample_service), FastMCP)
