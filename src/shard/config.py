import os
from pathlib import Path

DATA_DIR = Path(os.environ.get("SHARD_DATA_DIR", Path.home() / ".local" / "share" / "shard"))
# Same file the colors-only releases used, so their table is migrated in place.
DB_PATH = DATA_DIR / "colors.db"
LOG_PATH = DATA_DIR / "shard.log"

POLL_INTERVAL = 0.5  # seconds between clipboard checks
MAX_TEXT_SIZE = 1_000_000  # 1MB text limit
PREVIEW_LENGTH = 60  # characters shown per snippet in listings


def _parse_list_display_count() -> int:
    raw = os.environ.get("SHARD_LIST_DISPLAY_COUNT")
    if raw is None:
        return 20
    try:
        value = int(raw)
    except ValueError:
        return 20
    return max(5, min(200, value))


LIST_DISPLAY_COUNT = _parse_list_display_count()
