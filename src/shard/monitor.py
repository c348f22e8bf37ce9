import logging
import time
from collections.abc import Callable

import pyperclip

from shard.classifier import classify
from shard.config import MAX_TEXT_SIZE, POLL_INTERVAL
from shard.models import ColorContent
from shard.storage import SnippetStore

logger = logging.getLogger(__name__)


class ClipboardMonitor:
    def __init__(
        self,
        storage: SnippetStore,
        read_text: Callable[[], str] = pyperclip.paste,
        on_change: Callable[[str], None] | None = None,
    ):
        self._storage = storage
        self._read_text = read_text
        self._on_change = on_change
        self._last_content: str | None = None

    def check_clipboard(self) -> bool:
        try:
            text = self._read_text()
        except pyperclip.PyperclipException:
            logger.exception("Error reading clipboard")
            return False

        if not text or text == self._last_content:
            return False
        self._last_content = text

        if len(text.encode("utf-8")) > MAX_TEXT_SIZE:
            logger.warning("Clipboard text too large (%d chars), skipping", len(text))
            return False

        try:
            snippet_id = self._store_text(text)
        except Exception:
            logger.exception("Error storing clipboard content")
            return False

        if self._on_change:
            self._on_change(snippet_id)
        return True

    def sync_last_content(self) -> None:
        """Treat the current clipboard text as already seen."""
        try:
            self._last_content = self._read_text()
        except pyperclip.PyperclipException:
            logger.exception("Error reading clipboard")

    def run(self, interval: float = POLL_INTERVAL, max_polls: int | None = None) -> None:
        polls = 0
        while max_polls is None or polls < max_polls:
            self.check_clipboard()
            polls += 1
            if max_polls is None or polls < max_polls:
                time.sleep(interval)

    def _store_text(self, text: str) -> str:
        content = classify(text)
        if isinstance(content, ColorContent):
            return self._storage.insert_or_bump_color(content.color)
        return self._storage.insert(content)
