import pytest

from shard.color import Color
from shard.models import CodeContent, ColorContent, SnippetKind, TextContent
from shard.storage import SnippetStore


@pytest.fixture
def storage():
    store = SnippetStore(db_path=":memory:")
    yield store
    store.close()


@pytest.fixture
def make_content():
    """Factory fixture to create snippet content for testing."""

    def _make_content(
        kind: SnippetKind = SnippetKind.TEXT,
        text: str = "hello world",
        language: str | None = None,
        rgba: tuple[int, int, int, int] = (255, 87, 51, 255),
    ):
        if kind == SnippetKind.COLOR:
            return ColorContent(Color(*rgba))
        if kind == SnippetKind.CODE:
            return CodeContent(text=text, language=language)
        return TextContent(text=text)

    return _make_content
