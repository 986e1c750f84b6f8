import pytest

from citerag.retrieval.document_loader import list_markdown_files, load_markdown_documents, source_id_for


def test_loads_markdown_recursively_in_sorted_order(tmp_path):
    docs = tmp_path / "docs"
    (docs / "sub").mkdir(parents=True)
    (docs / "b.md").write_text("# B\nb", encoding="utf-8")
    (docs / "a.MD").write_text("# A\na", encoding="utf-8")
    (docs / "sub" / "c.md").write_text("# C\nc", encoding="utf-8")
    (docs / "notes.txt").write_text("ignored", encoding="utf-8")

    documents = load_markdown_documents(docs)

    assert [d.source for d in documents] == ["docs/a.MD", "docs/b.md", "docs/sub/c.md"]
    assert documents[1].text == "# B\nb"


def test_source_ids_relative_to_explicit_base(tmp_path):
    docs = tmp_path / "docs"
    docs.mkdir()
    (docs / "api.md").write_text("x", encoding="utf-8")

    documents = load_markdown_documents(docs, base_dir=docs)

    assert documents[0].source == "api.md"
    assert source_id_for(docs / "api.md", tmp_path) == "docs/api.md"


def test_empty_or_missing_directory_is_an_error(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_markdown_documents(tmp_path)
    with pytest.raises(FileNotFoundError):
        list_markdown_files(tmp_path / "missing")
