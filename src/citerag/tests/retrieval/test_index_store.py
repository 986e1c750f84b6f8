import json

import pytest

from citerag.common.errors import ConfigurationError, IndexFormatError
from citerag.retrieval.index_store import IndexStore


def _record(chunk_id="docs/a.md::H::0", text="body", source="docs/a.md", heading="H", part=0, embedding=None):
    return {
        "id": chunk_id,
        "text": text,
        "meta": {"source": source, "heading": heading, "part": part},
        "embedding": embedding if embedding is not None else [0.1, 0.2],
    }


def test_save_then_load_preserves_order_and_fields(tmp_path, chunk_factory):
    chunks = [
        chunk_factory("docs/api.md", "認証", "日本語の本文", [0.1, 0.2, 0.3]),
        chunk_factory("docs/api.md", "Retry", "retry text", [0.4, 0.5, 0.6], part=1),
    ]
    store = IndexStore(model="m-1", chunks=chunks)

    path = store.save(tmp_path / "nested" / "index.json")
    loaded = IndexStore.load(path)

    assert loaded.model == "m-1"
    assert loaded.dimension == 3
    assert [c.id for c in loaded] == [c.id for c in chunks]
    assert loaded.get("docs/api.md::Retry::1").part_index == 1
    raw = path.read_text(encoding="utf-8")
    assert "日本語の本文" in raw
    assert json.loads(raw)["chunks"][0]["meta"] == {"source": "docs/api.md", "heading": "認証", "part": 0}


def test_save_leaves_no_temp_files(tmp_path, chunk_factory):
    store = IndexStore(model="m", chunks=[chunk_factory("docs/a.md", "H", "t", [1.0])])
    store.save(tmp_path / "index.json")
    store.save(tmp_path / "index.json")
    assert [p.name for p in tmp_path.iterdir()] == ["index.json"]


def test_get_missing_returns_none(chunk_factory):
    store = IndexStore(model="m", chunks=[chunk_factory("docs/a.md", "H", "t", [1.0])])
    assert store.get("nope") is None


def test_mixed_vector_lengths_rejected():
    with pytest.raises(IndexFormatError):
        IndexStore.from_dict({
            "model": "m",
            "chunks": [_record(embedding=[1.0, 2.0]), _record(chunk_id="other", embedding=[1.0])],
        })


def test_duplicate_ids_rejected():
    with pytest.raises(IndexFormatError):
        IndexStore.from_dict({"model": "m", "chunks": [_record(), _record()]})


@pytest.mark.parametrize(
    "data",
    [
        [],
        {"model": "", "chunks": []},
        {"model": "m"},
        {"model": "m", "chunks": [_record(text="")]},
        {"model": "m", "chunks": [_record(part=-1)]},
        {"model": "m", "chunks": [_record(embedding=["x"])]},
        {"model": "m", "chunks": [{"id": "a", "text": "t", "embedding": [1.0]}]},
    ],
)
def test_malformed_index_rejected(data):
    with pytest.raises(IndexFormatError):
        IndexStore.from_dict(data)


def test_invalid_json_is_format_error(tmp_path):
    path = tmp_path / "index.json"
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(IndexFormatError):
        IndexStore.load(path)


def test_format_error_is_configuration_error():
    assert issubclass(IndexFormatError, ConfigurationError)
    assert issubclass(IndexFormatError, ValueError)


def test_empty_index_has_no_dimension():
    store = IndexStore(model="m", chunks=[])
    assert len(store) == 0
    assert store.dimension is None
