"""DuckDB remote backend.

Stands in for the remote persistence service when no API is available:
local development, offline demos, and the marimo app when
``SHARED_NOTES_API_URL`` is unset.  Notes live in a DuckDB file (or an
in-memory database) shared by every notebook.

Semantics match the HTTP API: creating an existing id overwrites it with the
new payload, deleting an unknown id succeeds, and updates are last-write-wins
upserts.

Environment variables (all optional; direct kwargs take precedence):
    SHARED_NOTES_REMOTE_PATH  – DuckDB file holding the notes (default ``:memory:``)
"""

from __future__ import annotations

import os
from pathlib import Path

import duckdb

from shared_notes.errors import NetworkFailure
from shared_notes.note import Note, SyncState

# Create and update share one statement: a retried create may carry an edit
_UPSERT = """
    INSERT INTO remote_notes (notebook_id, id, content, position, updated_at)
    VALUES (?, ?, ?, ?, now())
    ON CONFLICT (notebook_id, id) DO UPDATE SET
        content    = excluded.content,
        position   = excluded.position,
        updated_at = now();
"""


class DuckDBRemote:
    """Remote backend backed by a DuckDB database."""

    def __init__(self, db_path: Path | str | None = None) -> None:
        self._db_path = str(db_path or os.getenv("SHARED_NOTES_REMOTE_PATH", ":memory:"))
        self.conn: duckdb.DuckDBPyConnection = duckdb.connect(self._db_path)
        self._ensure_schema()

    def _ensure_schema(self) -> None:
        self.conn.execute("""
            CREATE TABLE IF NOT EXISTS remote_notes (
                notebook_id VARCHAR NOT NULL,
                id          VARCHAR NOT NULL,
                content     TEXT    NOT NULL,
                position    BIGINT  NOT NULL,
                updated_at  TIMESTAMPTZ DEFAULT now(),
                PRIMARY KEY (notebook_id, id)
            );
        """)

    def _execute(self, action: str, sql: str, params: list) -> duckdb.DuckDBPyConnection:
        try:
            return self.conn.execute(sql, params)
        except duckdb.Error as exc:
            raise NetworkFailure(f"{action} failed: {exc}", reason="server") from exc

    # ------------------------------------------------------------------
    # Notes
    # ------------------------------------------------------------------

    async def fetch_all(self, notebook_id: str) -> list[Note]:
        rows = self._execute(
            "fetch",
            """
            SELECT id, content, position FROM remote_notes
            WHERE notebook_id = ?
            ORDER BY position, id
            """,
            [notebook_id],
        ).fetchall()
        return [Note(id=r[0], content=r[1], position=r[2], sync_state=SyncState.SYNCED) for r in rows]

    async def create(self, notebook_id: str, note: Note) -> None:
        self._execute(
            "create",
            _UPSERT,
            [notebook_id, note.id, note.content, note.position],
        )

    async def update(self, notebook_id: str, note: Note) -> None:
        self._execute(
            "update",
            _UPSERT,
            [notebook_id, note.id, note.content, note.position],
        )

    async def delete(self, notebook_id: str, note_id: str) -> None:
        self._execute(
            "delete",
            "DELETE FROM remote_notes WHERE notebook_id = ? AND id = ?",
            [notebook_id, note_id],
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def aclose(self) -> None:
        self.conn.close()

    async def __aenter__(self) -> "DuckDBRemote":
        return self

    async def __aexit__(self, *_: object) -> None:
        await self.aclose()
