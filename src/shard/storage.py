import logging
import sqlite3
import uuid
from collections.abc import Callable, Iterator, Sequence
from contextlib import contextmanager
from datetime import datetime
from functools import wraps
from pathlib import Path

from shard.color import Color
from shard.config import DB_PATH
from shard.errors import MigrationError, NotFoundError, ShardError, StorageIOError
from shard.migrations import MIGRATIONS, Migration
from shard.models import (
    CodeContent,
    ColorContent,
    Snippet,
    SnippetContent,
    SnippetFilter,
    SnippetKind,
    TextContent,
    content_kind,
)

logger = logging.getLogger(__name__)

# Sentinel to distinguish "label not provided" from "clear the label"
_UNSET = object()

SNIPPET_COLUMNS = (
    "id, kind, color_r, color_g, color_b, color_a, code_text, code_language, "
    "text_text, label, position, created_at, updated_at"
)


def _translate_sqlite_errors(func):
    """Surface sqlite failures as StorageIOError."""

    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except sqlite3.Error as exc:
            logger.error("Storage error in %s: %s", func.__name__, exc)
            raise StorageIOError(str(exc)) from exc

    return wrapper


def _content_columns(content: SnippetContent) -> dict[str, object]:
    columns: dict[str, object] = {
        "kind": content_kind(content).value,
        "color_r": None,
        "color_g": None,
        "color_b": None,
        "color_a": None,
        "code_text": None,
        "code_language": None,
        "text_text": None,
    }
    if isinstance(content, ColorContent):
        color = content.color
        columns.update(color_r=color.r, color_g=color.g, color_b=color.b, color_a=color.a)
    elif isinstance(content, CodeContent):
        columns.update(code_text=content.text, code_language=content.language)
    elif isinstance(content, TextContent):
        columns.update(text_text=content.text)
    return columns


class SnippetStore:
    def __init__(self, db_path: str | Path | None = None, migrations: Sequence[Migration] = MIGRATIONS):
        self._db_path = str(db_path) if db_path else str(DB_PATH)
        self._migrations = sorted(migrations, key=lambda m: m.version)
        self._delete_listeners: list[Callable[[str], None]] = []
        try:
            self._conn = sqlite3.connect(self._db_path, isolation_level=None)
        except sqlite3.Error as exc:
            raise StorageIOError(f"Cannot open {self._db_path}: {exc}") from exc
        self._conn.row_factory = sqlite3.Row
        try:
            self._conn.execute("PRAGMA journal_mode=WAL")
            self._conn.execute("PRAGMA foreign_keys=ON")
            self._migrate()
        except sqlite3.Error as exc:
            self._conn.close()
            raise StorageIOError(f"Cannot read {self._db_path}: {exc}") from exc
        except ShardError:
            self._conn.close()
            raise

    @classmethod
    def open(cls, location: str | Path | None = None, migrations: Sequence[Migration] = MIGRATIONS) -> "SnippetStore":
        """Open or create the store at ``location``, creating parent directories."""
        path = Path(location) if location else DB_PATH
        if str(path) != ":memory:":
            try:
                path.parent.mkdir(parents=True, exist_ok=True)
            except OSError as exc:
                raise StorageIOError(f"Cannot create {path.parent}: {exc}") from exc
        return cls(path, migrations)

    @property
    def target_version(self) -> int:
        return self._migrations[-1].version if self._migrations else 0

    @property
    @_translate_sqlite_errors
    def schema_version(self) -> int:
        row = self._conn.execute("SELECT version FROM schema_meta").fetchone()
        return row["version"]

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        self._conn.execute("BEGIN IMMEDIATE")
        try:
            yield self._conn
        except BaseException:
            if self._conn.in_transaction:
                self._conn.execute("ROLLBACK")
            raise
        else:
            self._conn.execute("COMMIT")

    def _migrate(self) -> None:
        with self._transaction() as conn:
            conn.execute("CREATE TABLE IF NOT EXISTS schema_meta (version INTEGER NOT NULL)")
            if conn.execute("SELECT COUNT(*) AS cnt FROM schema_meta").fetchone()["cnt"] == 0:
                conn.execute("INSERT INTO schema_meta (version) VALUES (0)")

        current = self.schema_version
        target = self.target_version
        if current > target:
            raise MigrationError(
                f"Database schema version {current} is newer than supported version {target}",
                version=current,
            )

        for migration in self._migrations:
            if migration.version <= current:
                continue
            logger.info("Applying migration v%d: %s", migration.version, migration.description)
            try:
                with self._transaction() as conn:
                    migration.apply(conn)
                    conn.execute("UPDATE schema_meta SET version = ?", (migration.version,))
            except Exception as exc:
                logger.exception("Migration v%d failed", migration.version)
                raise MigrationError(
                    f"Migration v{migration.version} ({migration.description}) failed: {exc}",
                    version=migration.version,
                ) from exc
            current = migration.version

    @staticmethod
    def _next_position(conn: sqlite3.Connection) -> int:
        row = conn.execute("SELECT MAX(position) AS top FROM snippets").fetchone()
        return 0 if row["top"] is None else row["top"] + 1

    def _insert_row(self, conn: sqlite3.Connection, content: SnippetContent, label: str | None) -> str:
        snippet_id = uuid.uuid4().hex
        now = datetime.now().isoformat()
        columns = _content_columns(content)
        conn.execute(
            f"""INSERT INTO snippets ({SNIPPET_COLUMNS})
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                snippet_id,
                columns["kind"],
                columns["color_r"],
                columns["color_g"],
                columns["color_b"],
                columns["color_a"],
                columns["code_text"],
                columns["code_language"],
                columns["text_text"],
                label,
                self._next_position(conn),
                now,
                now,
            ),
        )
        return snippet_id

    def _move_to_top(self, conn: sqlite3.Connection, snippet_id: str, position: int) -> None:
        top = conn.execute("SELECT MAX(position) AS top FROM snippets").fetchone()["top"]
        if position == top:
            return
        conn.execute("UPDATE snippets SET position = ? WHERE id = ?", (top + 1, snippet_id))

    @_translate_sqlite_errors
    def insert(self, content: SnippetContent, label: str | None = None) -> str:
        with self._transaction() as conn:
            snippet_id = self._insert_row(conn, content, label)
        logger.debug("Inserted %s snippet %s", content_kind(content).value, snippet_id)
        return snippet_id

    @_translate_sqlite_errors
    def insert_many(self, items: Sequence[tuple[SnippetContent, str | None]]) -> list[str]:
        """Insert several snippets in one transaction, in order (last ends on top)."""
        with self._transaction() as conn:
            return [self._insert_row(conn, content, label) for content, label in items]

    @_translate_sqlite_errors
    def insert_or_bump_color(self, color: Color, label: str | None = None) -> str:
        """Insert a color, or move an exactly equal stored color to the top.

        Returns:
            The id of the new snippet, or of the existing one that was bumped.
        """
        with self._transaction() as conn:
            row = conn.execute(
                """SELECT id, position FROM snippets
                   WHERE kind = 'color' AND color_r = ? AND color_g = ? AND color_b = ? AND color_a = ?
                   ORDER BY position DESC LIMIT 1""",
                (color.r, color.g, color.b, color.a),
            ).fetchone()
            if row:
                self._move_to_top(conn, row["id"], row["position"])
                logger.debug("Bumped existing color %s (%s)", row["id"], color.to_hex())
                return row["id"]
            snippet_id = self._insert_row(conn, ColorContent(color), label)
        logger.debug("Inserted color snippet %s (%s)", snippet_id, color.to_hex())
        return snippet_id

    @_translate_sqlite_errors
    def move_to_top(self, snippet_id: str) -> None:
        with self._transaction() as conn:
            row = conn.execute("SELECT position FROM snippets WHERE id = ?", (snippet_id,)).fetchone()
            if row is None:
                raise NotFoundError(snippet_id)
            self._move_to_top(conn, snippet_id, row["position"])

    @_translate_sqlite_errors
    def update(self, snippet_id: str, content: SnippetContent | None = None, label=_UNSET) -> Snippet:
        with self._transaction() as conn:
            exists = conn.execute("SELECT 1 FROM snippets WHERE id = ?", (snippet_id,)).fetchone()
            if exists is None:
                raise NotFoundError(snippet_id)
            assignments: dict[str, object] = {"updated_at": datetime.now().isoformat()}
            if content is not None:
                assignments.update(_content_columns(content))
            if label is not _UNSET:
                assignments["label"] = label
            clause = ", ".join(f"{column} = ?" for column in assignments)
            conn.execute(
                f"UPDATE snippets SET {clause} WHERE id = ?",
                (*assignments.values(), snippet_id),
            )
        return self.get(snippet_id)

    @_translate_sqlite_errors
    def delete(self, snippet_id: str) -> None:
        with self._transaction() as conn:
            cursor = conn.execute("DELETE FROM snippets WHERE id = ?", (snippet_id,))
            if cursor.rowcount == 0:
                raise NotFoundError(snippet_id)
        logger.debug("Deleted snippet %s", snippet_id)
        for listener in list(self._delete_listeners):
            listener(snippet_id)

    @_translate_sqlite_errors
    def get(self, snippet_id: str) -> Snippet:
        row = self._conn.execute(
            f"SELECT {SNIPPET_COLUMNS} FROM snippets WHERE id = ?", (snippet_id,)
        ).fetchone()
        if row is None:
            raise NotFoundError(snippet_id)
        return self._row_to_snippet(row)

    @_translate_sqlite_errors
    def list_snippets(self, snippet_filter: SnippetFilter | None = None, limit: int | None = None) -> list[Snippet]:
        """Return snippets ordered by descending position (most recent first)."""
        snippet_filter = snippet_filter or SnippetFilter()
        if snippet_filter.kind is not None:
            rows = self._conn.execute(
                f"SELECT {SNIPPET_COLUMNS} FROM snippets WHERE kind = ? ORDER BY position DESC",
                (SnippetKind(snippet_filter.kind).value,),
            ).fetchall()
        else:
            rows = self._conn.execute(
                f"SELECT {SNIPPET_COLUMNS} FROM snippets ORDER BY position DESC"
            ).fetchall()
        snippets = [self._row_to_snippet(r) for r in rows]
        if snippet_filter.text_query:
            snippets = [s for s in snippets if s.matches(snippet_filter.text_query)]
        if limit is not None:
            snippets = snippets[:limit]
        return snippets

    @_translate_sqlite_errors
    def count(self, kind: SnippetKind | None = None) -> int:
        if kind is None:
            row = self._conn.execute("SELECT COUNT(*) AS cnt FROM snippets").fetchone()
        else:
            row = self._conn.execute(
                "SELECT COUNT(*) AS cnt FROM snippets WHERE kind = ?", (SnippetKind(kind).value,)
            ).fetchone()
        return row["cnt"]

    def add_delete_listener(self, listener: Callable[[str], None]) -> None:
        self._delete_listeners.append(listener)

    def remove_delete_listener(self, listener: Callable[[str], None]) -> None:
        if listener in self._delete_listeners:
            self._delete_listeners.remove(listener)

    def close(self) -> None:
        self._conn.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    @staticmethod
    def _row_to_snippet(row: sqlite3.Row) -> Snippet:
        kind = SnippetKind(row["kind"])
        if kind is SnippetKind.COLOR:
            content = ColorContent(Color(row["color_r"], row["color_g"], row["color_b"], row["color_a"]))
        elif kind is SnippetKind.CODE:
            content = CodeContent(text=row["code_text"] or "", language=row["code_language"])
        else:
            content = TextContent(text=row["text_text"] or "")
        created_at = datetime.fromisoformat(row["created_at"])
        updated_at = datetime.fromisoformat(row["updated_at"]) if row["updated_at"] else created_at
        return Snippet(
            id=row["id"],
            content=content,
            position=row["position"],
            created_at=created_at,
            updated_at=updated_at,
            label=row["label"],
        )
