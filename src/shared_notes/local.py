"""LocalState — durable local copy of each notebook's notes and sync queue.

Uses DuckDB as the on-disk store so a reload can recover everything that was
not yet confirmed by the remote service.  The persisted layout per notebook
is::

    {
        "notebookId": "amber-otter-harbor",
        "notes": [{"id", "content", "position", "syncState"}, ...],
        "pendingOperations": [{"noteId", "kind", "payload", "enqueuedAt", "revision"}, ...],
    }

Diagnostics views return :mod:`polars` DataFrames for tables in the marimo
app.

Usage::

    local = LocalState("notes.duckdb")
    local.save({"notebookId": nb, "notes": [...], "pendingOperations": [...]})
    state = local.load(nb)
    local.pending_table(nb)      # pl.DataFrame of queued operations

Environment variables (all optional; direct kwargs take precedence):
    SHARED_NOTES_STATE_PATH  – DuckDB file (default ``:memory:``)
"""

from __future__ import annotations

import json
import os
import time
from pathlib import Path
from typing import Any

import duckdb
import polars as pl


class LocalState:
    """DuckDB database holding the persisted layout of every local notebook."""

    def __init__(self, db_path: Path | str | None = None) -> None:
        self._db_path = str(db_path or os.getenv("SHARED_NOTES_STATE_PATH", ":memory:"))
        self.conn: duckdb.DuckDBPyConnection = duckdb.connect(self._db_path)
        self._create_schema()

    def _create_schema(self) -> None:
        self.conn.execute("""
            CREATE TABLE IF NOT EXISTS notebooks (
                notebook_id VARCHAR PRIMARY KEY,
                saved_at    TIMESTAMPTZ DEFAULT now()
            )
        """)
        self.conn.execute("""
            CREATE TABLE IF NOT EXISTS notes (
                notebook_id VARCHAR NOT NULL,
                id          VARCHAR NOT NULL,
                content     TEXT    NOT NULL,
                position    BIGINT  NOT NULL,
                sync_state  VARCHAR NOT NULL
            )
        """)
        self.conn.execute("""
            CREATE TABLE IF NOT EXISTS pending_operations (
                notebook_id VARCHAR NOT NULL,
                seq         INTEGER NOT NULL,
                note_id     VARCHAR NOT NULL,
                kind        VARCHAR NOT NULL,
                payload     JSON,
                enqueued_at DOUBLE  NOT NULL,
                revision    BIGINT  NOT NULL
            )
        """)

    # ------------------------------------------------------------------
    # Layout round-trip
    # ------------------------------------------------------------------

    def save(self, state: dict[str, Any]) -> None:
        """Replace everything stored for ``state["notebookId"]`` in one transaction."""
        notebook_id = state["notebookId"]
        note_rows = [
            (notebook_id, n["id"], n["content"], n["position"], n["syncState"])
            for n in state.get("notes", [])
        ]
        op_rows = [
            (
                notebook_id,
                seq,
                op["noteId"],
                op["kind"],
                json.dumps(op["payload"]) if op.get("payload") is not None else None,
                op["enqueuedAt"],
                op.get("revision", 0),
            )
            for seq, op in enumerate(state.get("pendingOperations", []))
        ]

        self.conn.begin()
        try:
            self.conn.execute("DELETE FROM notes WHERE notebook_id = ?", [notebook_id])
            self.conn.execute("DELETE FROM pending_operations WHERE notebook_id = ?", [notebook_id])
            self.conn.execute("INSERT OR REPLACE INTO notebooks (notebook_id, saved_at) VALUES (?, now())", [notebook_id])
            if note_rows:
                self.conn.executemany("INSERT INTO notes VALUES (?,?,?,?,?)", note_rows)
            if op_rows:
                self.conn.executemany("INSERT INTO pending_operations VALUES (?,?,?,?,?,?,?)", op_rows)
        except duckdb.Error:
            self.conn.rollback()
            raise
        self.conn.commit()

    def load(self, notebook_id: str) -> dict[str, Any]:
        """Return the persisted layout for *notebook_id* (empty lists if unknown)."""
        notes = [
            {"id": r[0], "content": r[1], "position": r[2], "syncState": r[3]}
            for r in self.conn.execute(
                "SELECT id, content, position, sync_state FROM notes WHERE notebook_id = ? ORDER BY position, id",
                [notebook_id],
            ).fetchall()
        ]
        operations = [
            {
                "noteId": r[0],
                "kind": r[1],
                "payload": json.loads(r[2]) if isinstance(r[2], str) else r[2],
                "enqueuedAt": r[3],
                "revision": r[4],
            }
            for r in self.conn.execute(
                """
                SELECT note_id, kind, payload, enqueued_at, revision
                FROM pending_operations WHERE notebook_id = ? ORDER BY seq
                """,
                [notebook_id],
            ).fetchall()
        ]
        return {"notebookId": notebook_id, "notes": notes, "pendingOperations": operations}

    def notebook_ids(self) -> list[str]:
        rows = self.conn.execute("SELECT notebook_id FROM notebooks ORDER BY saved_at DESC").fetchall()
        return [r[0] for r in rows]

    # ------------------------------------------------------------------
    # Diagnostics views
    # ------------------------------------------------------------------

    def notes_table(self, notebook_id: str) -> pl.DataFrame:
        return self.conn.execute(
            "SELECT id, content, position, sync_state FROM notes WHERE notebook_id = ? ORDER BY position, id",
            [notebook_id],
        ).pl()

    def pending_table(self, notebook_id: str) -> pl.DataFrame:
        """Queued operations in delivery order, with their age in seconds."""
        return self.conn.execute(
            """
            SELECT
                seq, note_id, kind,
                json_extract_string(payload, '$.content') AS content,
                CAST(? AS DOUBLE) - enqueued_at AS age_s
            FROM pending_operations
            WHERE notebook_id = ?
            ORDER BY seq
            """,
            [time.time(), notebook_id],
        ).pl()

    def sync_summary(self, notebook_id: str) -> pl.DataFrame:
        """Return a sync_state → count table."""
        return self.conn.execute(
            """
            SELECT sync_state, COUNT(*) AS note_count
            FROM notes
            WHERE notebook_id = ?
            GROUP BY sync_state
            ORDER BY note_count DESC, sync_state
            """,
            [notebook_id],
        ).pl()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def close(self) -> None:
        self.conn.close()

    def __enter__(self) -> "LocalState":
        return self

    def __exit__(self, *_: object) -> None:
        self.close()
