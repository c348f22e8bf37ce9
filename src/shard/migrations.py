"""Ordered schema migrations for the snippet database.

Each migration runs inside its own transaction together with the version bump
recorded in ``schema_meta``.
"""

import logging
import math
import sqlite3
import uuid
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime

logger = logging.getLogger(__name__)

LEGACY_COLORS_TABLE = "colors"


@dataclass(frozen=True)
class Migration:
    version: int
    description: str
    apply: Callable[[sqlite3.Connection], None]


def table_exists(conn: sqlite3.Connection, name: str) -> bool:
    row = conn.execute(
        "SELECT 1 FROM sqlite_master WHERE type = 'table' AND name = ?", (name,)
    ).fetchone()
    return row is not None


def _create_snippets_table(conn: sqlite3.Connection) -> None:
    conn.execute(
        """CREATE TABLE snippets (
            id             TEXT PRIMARY KEY,
            kind           TEXT NOT NULL CHECK(kind IN ('color', 'code', 'text')),
            color_r        INTEGER,
            color_g        INTEGER,
            color_b        INTEGER,
            color_a        INTEGER,
            code_text      TEXT,
            code_language  TEXT,
            text_text      TEXT,
            label          TEXT,
            position       INTEGER NOT NULL,
            created_at     TEXT NOT NULL
        )"""
    )
    if table_exists(conn, LEGACY_COLORS_TABLE):
        _import_legacy_colors(conn)


def _import_legacy_colors(conn: sqlite3.Connection) -> None:
    """Copy rows of the old single-purpose colors table into snippets, then drop it."""
    rows = conn.execute(
        f"SELECT r, g, b, a, label, position, created_at FROM {LEGACY_COLORS_TABLE} ORDER BY position, id"
    ).fetchall()
    now = datetime.now().isoformat()
    previous = None
    for row in rows:
        # Legacy positions may collide; ties are pushed up in id order.
        position = int(row["position"])
        if previous is not None:
            position = max(position, previous + 1)
        previous = position
        alpha = max(0, min(255, math.floor(float(row["a"]) * 255 + 0.5)))
        created_at = datetime.fromisoformat(row["created_at"]).isoformat() if row["created_at"] else now
        conn.execute(
            """INSERT INTO snippets (id, kind, color_r, color_g, color_b, color_a, label, position, created_at)
               VALUES (?, 'color', ?, ?, ?, ?, ?, ?, ?)""",
            (
                uuid.uuid4().hex,
                int(row["r"]),
                int(row["g"]),
                int(row["b"]),
                alpha,
                row["label"] or None,
                position,
                created_at,
            ),
        )
    conn.execute(f"DROP TABLE {LEGACY_COLORS_TABLE}")
    logger.info("Migrated %d legacy colors into snippets", len(rows))


def _add_updated_at_and_indexes(conn: sqlite3.Connection) -> None:
    conn.execute("ALTER TABLE snippets ADD COLUMN updated_at TEXT")
    conn.execute("UPDATE snippets SET updated_at = created_at")
    conn.execute("CREATE UNIQUE INDEX idx_snippets_position ON snippets(position)")
    conn.execute("CREATE INDEX idx_snippets_kind ON snippets(kind)")


MIGRATIONS: list[Migration] = [
    Migration(1, "create snippets table and import legacy colors", _create_snippets_table),
    Migration(2, "add updated_at and position/kind indexes", _add_updated_at_and_indexes),
]

TARGET_VERSION = MIGRATIONS[-1].version
