import itertools
import logging
from collections.abc import Callable

from shard.storage import SnippetStore

logger = logging.getLogger(__name__)


class PinRegistry:
    """In-memory table of pinned surfaces and the snippet each one shows.

    Only snippet ids are held; views resolve the id and read current content
    from the store on every render.
    """

    def __init__(self, on_close: Callable[[str], None] | None = None):
        self._pins: dict[str, str] = {}
        self._counter = itertools.count(1)
        self._on_close = on_close

    def pin(self, snippet_id: str) -> str:
        surface_id = f"surface-{next(self._counter)}"
        self._pins[surface_id] = snippet_id
        logger.debug("Pinned snippet %s on %s", snippet_id, surface_id)
        return surface_id

    def unpin(self, surface_id: str) -> bool:
        return self._pins.pop(surface_id, None) is not None

    # The view layer reports surfaces the user closed directly.
    on_surface_closed = unpin

    def resolve(self, surface_id: str) -> str | None:
        return self._pins.get(surface_id)

    def surfaces_for(self, snippet_id: str) -> list[str]:
        return [surface for surface, target in self._pins.items() if target == snippet_id]

    def on_snippet_deleted(self, snippet_id: str) -> list[str]:
        closed = self.surfaces_for(snippet_id)
        for surface_id in closed:
            del self._pins[surface_id]
            if self._on_close:
                self._on_close(surface_id)
        if closed:
            logger.info("Closed %d pinned surface(s) of deleted snippet %s", len(closed), snippet_id)
        return closed

    def attach(self, store: SnippetStore) -> None:
        store.add_delete_listener(self.on_snippet_deleted)

    def __len__(self) -> int:
        return len(self._pins)

    def __contains__(self, surface_id: object) -> bool:
        return surface_id in self._pins
