"""Export and import of snippets as a self-describing JSON document."""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any

from shard.color import parse
from shard.errors import ImportFormatError, ParseError, StorageIOError
from shard.models import CodeContent, ColorContent, Snippet, SnippetContent, SnippetKind, TextContent
from shard.storage import SnippetStore

logger = logging.getLogger(__name__)

EXPORT_FORMAT = "shard-snippets"
EXPORT_VERSION = 1


def snippet_to_record(snippet: Snippet) -> dict[str, Any]:
    record: dict[str, Any] = {
        "id": snippet.id,
        "kind": snippet.kind.value,
        "label": snippet.label,
        "position": snippet.position,
        "created_at": snippet.created_at.isoformat(),
        "updated_at": snippet.updated_at.isoformat(),
    }
    content = snippet.content
    if isinstance(content, ColorContent):
        record["color"] = content.color.to_hex()
    elif isinstance(content, CodeContent):
        record["text"] = content.text
        record["language"] = content.language
    elif isinstance(content, TextContent):
        record["text"] = content.text
    else:
        raise TypeError(f"Unknown snippet content: {content!r}")
    return record


def record_to_content(record: Any, index: int) -> tuple[SnippetContent, str | None]:
    if not isinstance(record, dict):
        raise ImportFormatError(f"Record {index} is not an object")
    try:
        kind = SnippetKind(record.get("kind"))
    except ValueError:
        raise ImportFormatError(f"Record {index} has unknown kind {record.get('kind')!r}") from None

    label = record.get("label")
    if label is not None and not isinstance(label, str):
        raise ImportFormatError(f"Record {index} has a non-string label")

    if kind is SnippetKind.COLOR:
        color_text = record.get("color")
        if not isinstance(color_text, str):
            raise ImportFormatError(f"Record {index} is missing its color value")
        try:
            return ColorContent(parse(color_text)), label
        except ParseError as exc:
            raise ImportFormatError(f"Record {index}: {exc}") from exc

    text = record.get("text")
    if not isinstance(text, str):
        raise ImportFormatError(f"Record {index} is missing its text")
    if kind is SnippetKind.CODE:
        language = record.get("language")
        if language is not None and not isinstance(language, str):
            raise ImportFormatError(f"Record {index} has a non-string language")
        return CodeContent(text=text, language=language), label
    return TextContent(text=text), label


def export_snippets(store: SnippetStore) -> dict[str, Any]:
    """Build the export document; records are listed in display order (top first)."""
    return {
        "format": EXPORT_FORMAT,
        "version": EXPORT_VERSION,
        "exported_at": datetime.now().isoformat(),
        "snippets": [snippet_to_record(s) for s in store.list_snippets()],
    }


def import_snippets(store: SnippetStore, document: Any) -> list[str]:
    """Insert every record of an export document as a new snippet.

    The whole document is validated before anything is written, and all
    records are inserted in one transaction above the current top position,
    keeping their relative order.

    Args:
        store: Destination store.
        document: Parsed export document.

    Returns:
        New snippet ids, in document order.

    Raises:
        ImportFormatError: If the document or any record is malformed.
    """
    if not isinstance(document, dict):
        raise ImportFormatError("Export document must be an object")
    if document.get("format") != EXPORT_FORMAT:
        raise ImportFormatError(f"Unsupported document format {document.get('format')!r}")
    version = document.get("version")
    if not isinstance(version, int) or version > EXPORT_VERSION:
        raise ImportFormatError(f"Unsupported document version {version!r}")
    records = document.get("snippets")
    if not isinstance(records, list):
        raise ImportFormatError("Export document has no snippet list")

    items = [record_to_content(record, index) for index, record in enumerate(records)]
    # Bottom of the display order goes in first so the top record ends on top.
    ids = store.insert_many(list(reversed(items)))
    ids.reverse()
    logger.info("Imported %d snippets", len(ids))
    return ids


def dump_json(store: SnippetStore, path: str | Path) -> int:
    document = export_snippets(store)
    try:
        Path(path).write_text(json.dumps(document, indent=2, ensure_ascii=False), encoding="utf-8")
    except OSError as exc:
        raise StorageIOError(f"Cannot write {path}: {exc}") from exc
    logger.info("Exported %d snippets to %s", len(document["snippets"]), path)
    return len(document["snippets"])


def load_json(store: SnippetStore, path: str | Path) -> list[str]:
    try:
        raw = Path(path).read_text(encoding="utf-8")
    except OSError as exc:
        raise StorageIOError(f"Cannot read {path}: {exc}") from exc
    try:
        document = json.loads(raw)
    except ValueError as exc:
        raise ImportFormatError(f"{path} is not valid JSON: {exc}") from exc
    return import_snippets(store, document)
