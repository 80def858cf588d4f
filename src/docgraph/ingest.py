"""Load markdown and plain text files as analysis input documents."""

import logging
import re
from pathlib import Path
from typing import Any, Iterable

import yaml

from .errors import ValidationError

logger = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS = {".md", ".markdown", ".txt"}
MAX_TITLE_CHARS = 120


def parse_markdown(file_path: Path) -> dict[str, Any]:
    """Split YAML frontmatter from the body; title from frontmatter, first heading, or file name."""
    text = file_path.read_text(encoding="utf-8", errors="replace")
    metadata: dict[str, Any] = {}

    fm_match = re.match(r"^---\s*\n(.*?)\n---\s*\n", text, re.DOTALL)
    if fm_match:
        try:
            fm = yaml.safe_load(fm_match.group(1)) or {}
        except yaml.YAMLError as e:
            logger.warning(f"Ignoring malformed frontmatter in {file_path.name}: {e}")
            fm = {}
        if isinstance(fm, dict):
            metadata.update(fm)
        content = text[fm_match.end():]
    else:
        content = text

    title = metadata.get("title")
    if not title:
        heading = re.search(r"^#\s+(.+)$", content, re.MULTILINE)
        title = heading.group(1).strip() if heading else file_path.stem

    return {"title": str(title), "content": content, "metadata": metadata}


def parse_text(file_path: Path) -> dict[str, Any]:
    text = file_path.read_text(encoding="utf-8", errors="replace")
    title = file_path.stem
    # First line doubles as the title when short enough
    first_line = text.split("\n", 1)[0].strip()
    if first_line and len(first_line) < MAX_TITLE_CHARS:
        title = first_line
    return {"title": title, "content": text, "metadata": {}}


def load_document(file_path: Path) -> dict[str, Any]:
    suffix = file_path.suffix.lower()
    if suffix not in SUPPORTED_EXTENSIONS:
        raise ValidationError(f"Unsupported file type: {file_path.name}")
    parsed = parse_text(file_path) if suffix == ".txt" else parse_markdown(file_path)
    parsed["filename"] = file_path.name
    return parsed


def load_documents(paths: Iterable[str | Path]) -> list[dict[str, Any]]:
    """Documents for every supported file among ``paths``; directories are walked recursively.

    Raises ValidationError for a path that does not exist or an explicitly
    named file of an unsupported type. Unsupported files found while
    walking a directory are skipped.
    """
    documents = []
    for raw in paths:
        path = Path(raw).expanduser()
        if path.is_dir():
            for child in sorted(path.rglob("*")):
                if child.is_file() and child.suffix.lower() in SUPPORTED_EXTENSIONS:
                    documents.append(load_document(child))
        elif path.is_file():
            documents.append(load_document(path))
        else:
            raise ValidationError(f"Path not found: {path}")
    logger.debug(f"Loaded {len(documents)} document(s)")
    return documents
