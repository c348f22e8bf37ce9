from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from shard.color import Color
from shard.utils import first_line, truncate_text


class SnippetKind(str, Enum):
    COLOR = "color"
    CODE = "code"
    TEXT = "text"


@dataclass(frozen=True)
class ColorContent:
    color: Color


@dataclass(frozen=True)
class CodeContent:
    text: str
    language: str | None = None


@dataclass(frozen=True)
class TextContent:
    text: str


SnippetContent = ColorContent | CodeContent | TextContent


def content_kind(content: SnippetContent) -> SnippetKind:
    if isinstance(content, ColorContent):
        return SnippetKind.COLOR
    if isinstance(content, CodeContent):
        return SnippetKind.CODE
    if isinstance(content, TextContent):
        return SnippetKind.TEXT
    raise TypeError(f"Unknown snippet content: {content!r}")


def searchable_text(content: SnippetContent) -> str:
    """Payload text matched by free-text filters: hex for colors, the body otherwise."""
    if isinstance(content, ColorContent):
        return content.color.to_hex()
    if isinstance(content, (CodeContent, TextContent)):
        return content.text
    raise TypeError(f"Unknown snippet content: {content!r}")


@dataclass
class Snippet:
    id: str
    content: SnippetContent
    position: int
    created_at: datetime
    updated_at: datetime
    label: str | None = None

    @property
    def kind(self) -> SnippetKind:
        return content_kind(self.content)

    def preview(self, max_len: int) -> str:
        if isinstance(self.content, ColorContent):
            return self.content.color.to_hex()
        return truncate_text(first_line(self.content.text), max_len)

    def copyable_text(self) -> str:
        return searchable_text(self.content)

    def matches(self, query: str) -> bool:
        if not query:
            return True
        needle = query.lower()
        if self.label and needle in self.label.lower():
            return True
        return needle in searchable_text(self.content).lower()


@dataclass(frozen=True)
class SnippetFilter:
    kind: SnippetKind | None = None
    text_query: str | None = None
