"""Tests for loading documents from disk."""

import tempfile
from pathlib import Path

import pytest

from docgraph.errors import ValidationError
from docgraph.ingest import load_documents


def test_markdown_frontmatter_title():
    with tempfile.NamedTemporaryFile(suffix=".md", mode="w", delete=False) as f:
        f.write("---\ntitle: Test Doc\ntags: [test]\n---\n# Hello\n\nThis is a test document.")
        f.flush()
        [doc] = load_documents([f.name])
    assert doc["title"] == "Test Doc"
    assert doc["content"].startswith("# Hello")
    assert doc["metadata"]["tags"] == ["test"]
    assert doc["filename"] == Path(f.name).name


def test_markdown_heading_title():
    with tempfile.NamedTemporaryFile(suffix=".md", mode="w", delete=False) as f:
        f.write("Intro line\n\n# Solar Power\n\nBody.")
        f.flush()
        [doc] = load_documents([f.name])
    assert doc["title"] == "Solar Power"


def test_markdown_bad_frontmatter_is_ignored():
    with tempfile.NamedTemporaryFile(suffix=".md", mode="w", delete=False) as f:
        f.write("---\ntitle: [unclosed\n---\nBody only.")
        f.flush()
        [doc] = load_documents([f.name])
    assert doc["content"] == "Body only."
    assert doc["title"] == Path(f.name).stem


def test_text_first_line_title():
    with tempfile.NamedTemporaryFile(suffix=".txt", mode="w", delete=False) as f:
        f.write("Hello world\nThis is plain text content.")
        f.flush()
        [doc] = load_documents([f.name])
    assert doc["title"] == "Hello world"
    assert "plain text" in doc["content"]


def test_directory_walk_skips_unsupported(tmp_path):
    (tmp_path / "a.md").write_text("# A\n\nalpha")
    (tmp_path / "nested").mkdir()
    (tmp_path / "nested" / "b.txt").write_text("B\nbeta")
    (tmp_path / "image.png").write_bytes(b"\x89PNG")

    docs = load_documents([tmp_path])
    assert [d["title"] for d in docs] == ["A", "B"]


def test_missing_or_unsupported_path(tmp_path):
    with pytest.raises(ValidationError):
        load_documents([tmp_path / "missing.md"])
    pdf = tmp_path / "doc.pdf"
    pdf.write_bytes(b"%PDF")
    with pytest.raises(ValidationError):
        load_documents([pdf])
