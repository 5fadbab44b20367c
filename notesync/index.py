"""
Full-text search index for notesync.

Defines the three-operation contract the session relies on (incremental
index, forced reindex, capped query) and a bundled SQLite FTS5 backend.
"""

import os
import sqlite3
import time
from abc import ABC, abstractmethod
from collections.abc import Iterable, Sequence
from pathlib import Path
from typing import Literal

import aiofiles
import structlog

from .enumerator import find_note_files, is_note_file
from .parser import parse_note_content
from .utils import SearchIndexError, normalize_path

logger = structlog.get_logger(__name__)

Order = Literal["recency", "relevance"]

SCHEMA = """
CREATE TABLE IF NOT EXISTS documents (
    id INTEGER PRIMARY KEY,
    path TEXT NOT NULL UNIQUE,
    mtime REAL NOT NULL
);
CREATE VIRTUAL TABLE IF NOT EXISTS documents_fts USING fts5(title, keywords, body);
"""


class SearchIndex(ABC):
    """Contract for an external full-text index over note directories."""

    @abstractmethod
    async def index_directories(self, roots: Sequence[Path], force: bool = False) -> None:
        """Bring the index up to date with the notes under ``roots``.

        Args:
            roots: Root directories to index
            force: Rebuild those roots from scratch instead of incrementally
        """

    @abstractmethod
    async def query(
        self,
        roots: Sequence[Path],
        query: str | None = None,
        max_results: int = 0,
        order: Order = "recency",
    ) -> list[Path]:
        """Return absolute note paths under ``roots`` matching ``query``.

        Args:
            roots: Root directories to search
            query: Query string, or None for every note
            max_results: Result cap, 0 for no cap
            order: "recency" (newest first) or "relevance"
        """


class SqliteSearchIndex(SearchIndex):
    """SQLite FTS5 index of note titles, keywords and bodies.

    Args:
        db_path: Database file, or ":memory:"
        extensions: Note extensions, without dots
        exclude_prefixes: Name prefixes skipped while scanning
        max_file_size: Files larger than this are left out of the index
    """

    def __init__(
        self,
        db_path: Path | str,
        extensions: Iterable[str] = ("org",),
        exclude_prefixes: str = "._#",
        max_file_size: int = 1 * 1024 * 1024,
    ):
        self.db_path = db_path
        self.extensions = tuple(extensions)
        self.exclude_prefixes = exclude_prefixes
        self.max_file_size = max_file_size
        self._conn: sqlite3.Connection | None = None

    def _connect(self) -> sqlite3.Connection:
        if self._conn is not None:
            return self._conn
        try:
            if str(self.db_path) != ":memory:":
                Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(str(self.db_path))
            conn.executescript(SCHEMA)
        except (sqlite3.Error, OSError) as e:
            raise SearchIndexError(f"Cannot open search index at {self.db_path}: {e}") from e
        self._conn = conn
        return conn

    def close(self) -> None:
        """Close the database connection."""
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    async def _read_document(self, path: Path) -> tuple[str | None, str | None, str] | None:
        """Return (title, keywords, body) for a file, or None if unreadable."""
        try:
            if path.stat().st_size > self.max_file_size:
                return None
            async with aiofiles.open(path, encoding="utf-8", errors="replace") as f:
                content = await f.read()
        except OSError as e:
            logger.warning("index_read_failed", path=str(path), error=str(e))
            return None
        title, _, keywords = parse_note_content(content)
        return title, keywords, content

    @staticmethod
    def _delete_document(conn: sqlite3.Connection, doc_id: int) -> None:
        conn.execute("DELETE FROM documents_fts WHERE rowid = ?", (doc_id,))
        conn.execute("DELETE FROM documents WHERE id = ?", (doc_id,))

    @staticmethod
    def _upsert_document(
        conn: sqlite3.Connection,
        path_key: str,
        mtime: float,
        document: tuple[str | None, str | None, str],
    ) -> None:
        title, keywords, body = document
        row = conn.execute("SELECT id FROM documents WHERE path = ?", (path_key,)).fetchone()
        if row:
            doc_id = row[0]
            conn.execute("UPDATE documents SET mtime = ? WHERE id = ?", (mtime, doc_id))
            conn.execute("DELETE FROM documents_fts WHERE rowid = ?", (doc_id,))
        else:
            cursor = conn.execute(
                "INSERT INTO documents (path, mtime) VALUES (?, ?)",
                (path_key, mtime),
            )
            doc_id = cursor.lastrowid
        conn.execute(
            "INSERT INTO documents_fts (rowid, title, keywords, body) VALUES (?, ?, ?, ?)",
            (doc_id, title or "", keywords or "", body),
        )

    @staticmethod
    def _scope(roots: Sequence[Path]) -> tuple[str, list]:
        """SQL condition selecting documents under any of ``roots``, with its parameters.

        Documents are scoped by path prefix, so a file under two nested roots
        is one document whichever root indexed it.
        """
        prefixes = [os.path.join(str(root), "") for root in roots]
        clause = " OR ".join("substr(d.path, 1, ?) = ?" for _ in prefixes)
        params = [value for prefix in prefixes for value in (len(prefix), prefix)]
        return f"({clause})", params

    def _still_indexable(self, path_key: str) -> bool:
        """True for an unseen document that still exists as a note.

        Such a file lives in a directory excluded under this root, so it
        belongs to another nested root and stays until a forced rebuild.
        """
        return os.path.isfile(path_key) and is_note_file(path_key, self.extensions, self.exclude_prefixes)

    async def index_directories(self, roots: Sequence[Path], force: bool = False) -> None:
        conn = self._connect()
        start_time = time.time()
        root_paths = [normalize_path(root) for root in roots]
        added = updated = removed = 0
        if not root_paths:
            return

        scope, scope_params = self._scope(root_paths)
        try:
            stored = {
                path_key: (doc_id, mtime)
                for doc_id, path_key, mtime in conn.execute(
                    f"SELECT d.id, d.path, d.mtime FROM documents d WHERE {scope}", scope_params
                )
            }

            if force:
                for doc_id, _ in stored.values():
                    self._delete_document(conn, doc_id)
                    removed += 1
                stored = {}

            seen: set[str] = set()
            for root in root_paths:
                for path in find_note_files(root, self.extensions, self.exclude_prefixes):
                    path_key = str(path)
                    if path_key in seen:
                        continue
                    seen.add(path_key)
                    try:
                        mtime = path.stat().st_mtime
                    except OSError:
                        continue
                    entry = stored.get(path_key)
                    if entry is not None and entry[1] == mtime:
                        continue
                    document = await self._read_document(path)
                    if document is None:
                        continue
                    self._upsert_document(conn, path_key, mtime, document)
                    if entry is None:
                        added += 1
                    else:
                        updated += 1

            for path_key, (doc_id, _) in stored.items():
                if path_key in seen or self._still_indexable(path_key):
                    continue
                self._delete_document(conn, doc_id)
                removed += 1

            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            raise SearchIndexError(f"Indexing failed: {e}") from e

        logger.info(
            "index_updated",
            roots=len(root_paths),
            forced=force,
            added=added,
            updated=updated,
            removed=removed,
            duration_ms=round((time.time() - start_time) * 1000, 2),
        )

    @staticmethod
    def _escape_query(query: str) -> str:
        """Quote every token so FTS5 matches them literally (AND of terms)."""
        return " ".join('"' + token.replace('"', '""') + '"' for token in query.split())

    async def query(
        self,
        roots: Sequence[Path],
        query: str | None = None,
        max_results: int = 0,
        order: Order = "recency",
    ) -> list[Path]:
        conn = self._connect()
        root_paths = [normalize_path(root) for root in roots]
        if not root_paths:
            return []

        scope, scope_params = self._scope(root_paths)
        limit = max_results if max_results > 0 else -1

        try:
            if query is None or not query.strip():
                rows = conn.execute(
                    f"SELECT d.path FROM documents d WHERE {scope} ORDER BY d.mtime DESC LIMIT ?",
                    [*scope_params, limit],
                ).fetchall()
            else:
                order_clause = "bm25(documents_fts)" if order == "relevance" else "d.mtime DESC"
                sql = (
                    "SELECT d.path FROM documents_fts "
                    "JOIN documents d ON d.id = documents_fts.rowid "
                    f"WHERE documents_fts MATCH ? AND {scope} "
                    f"ORDER BY {order_clause} LIMIT ?"
                )
                try:
                    rows = conn.execute(sql, [query, *scope_params, limit]).fetchall()
                except sqlite3.OperationalError as e:
                    logger.debug("fts_query_rejected", query=query, error=str(e))
                    rows = conn.execute(sql, [self._escape_query(query), *scope_params, limit]).fetchall()
        except sqlite3.Error as e:
            raise SearchIndexError(f"Query failed: {e}") from e

        results = [Path(row[0]) for row in rows]
        logger.debug("index_queried", query=query, results=len(results))
        return results
