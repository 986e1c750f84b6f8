import textwrap

import pytest
from fastapi.testclient import TestClient

from citerag.app.api import create_app


@pytest.fixture
def client(sample_service):
    with TestClient(create_app(service=sample_service)) as c:
        yield c


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_search_accepts_loose_payloads(client):
    for body in ({"query": "retry", "topK": 1}, {"arguments": {"input": {"q": "retry", "topK": 1}}}, "retry"):
        resp = client.post("/search", json=body)
        assert resp.status_code == 200
        results = resp.json()["results"]
        assert results[0]["id"] == "docs/api.md::Retry policy::0"


def test_search_invalid_query_is_400(client):
    resp = client.post("/search", json={"topK": 3})
    assert resp.status_code == 400
    assert resp.json()["error"] == "invalid_query"


def test_search_without_body_is_400(client):
    assert client.post("/search").status_code == 400


def test_search_provider_failure_is_502(client, keyword_embedder):
    keyword_embedder.fail_with = RuntimeError("upstream timeout")
    resp = client.post("/search", json={"query": "retry"})
    assert resp.status_code == 502
    assert resp.json() == {"error": "search_failed", "message": "upstream timeout"}


def test_fetch_found_and_not_found(client):
    found = client.post("/fetch", json={"id": "docs/api.md::Retry policy::0"})
    assert found.status_code == 200
    assert found.json()["title"] == "Retry policy (docs/api.md)"

    missing = client.post("/fetch", json={"id": "docs/api.md::Missing::0"})
    assert missing.status_code == 200
    assert missing.json()["metadata"] == {"error": "not_found"}


def test_fetch_invalid_id_is_400(client):
    resp = client.post("/fetch", json={"id": ""})
    assert resp.status_code == 400
    assert resp.json()["error"] == "invalid_id"


def test_unexpected_error_is_500(client, sample_service, monkeypatch):
    monkeypatch.setattr(sample_service, "search", lambda payload: 1 / 0)
    resp = client.post("/search", json={"query": "x"})
    assert resp.status_code == 500
    assert resp.json()["error"] == "internal_error"


def test_startup_builds_service_from_config(tmp_path, monkeypatch):
    """Without an injected service the app loads the config named by CITERAG_CONFIG."""
    docs = tmp_path / "docs"
    docs.mkdir()
    (docs / "api.md").write_text("# Retry\nretry body\n", encoding="utf-8")
    (docs / "faq.md").write_text("# Retry\nfaq body\n", encoding="utf-8")
    cfg = tmp_path / "config.yaml"
    cfg.write_text(
        textwrap.dedent(
            """
            embedder:
              kind: mock
              model_name: mock-embed
              embed_dim: 4
            index:
              path: artifacts/index.json
            indexing:
              docs_dir: docs
            service:
              doc_base_url: https://docs.example.com/
            """
        ),
        encoding="utf-8",
    )

    from citerag.app.container import build_container
    from citerag.config import GlobalConfig

    config = GlobalConfig.load(cfg)
    container = build_container(config)
    from citerag.retrieval.document_loader import load_markdown_documents

    container.index_builder.build(load_markdown_documents(config.indexing["docs_dir"])).save(config.index_path)

    monkeypatch.setenv("CITERAG_CONFIG", str(cfg))
    with TestClient(create_app()) as c:
        resp = c.post("/search", json={"query": "retry"})

    assert resp.status_code == 200
    results = resp.json()["results"]
    # constant mock vectors tie on similarity; source weight decides
    assert [r["url"] for r in results] == [
        "https://docs.example.com/docs/api.md",
        "https://docs.example.com/docs/faq.md",
    ]
