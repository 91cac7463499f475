"""Unit tests for shared_notes.local.LocalState."""

from pathlib import Path

import polars as pl
import pytest

from shared_notes.local import LocalState


@pytest.fixture()
def layout(notebook_id: str) -> dict:
    return {
        "notebookId": notebook_id,
        "notes": [
            {"id": "a", "content": "one", "position": 0, "syncState": "synced"},
            {"id": "b", "content": "two", "position": 1, "syncState": "pending"},
        ],
        "pendingOperations": [
            {
                "noteId": "b",
                "kind": "create",
                "payload": {"id": "b", "content": "two", "position": 1},
                "enqueuedAt": 1_700_000_000.0,
                "revision": 4,
            },
            {"noteId": "c", "kind": "delete", "payload": None, "enqueuedAt": 1_700_000_001.0, "revision": 5},
        ],
    }


# ---------------------------------------------------------------------------
# save() / load()
# ---------------------------------------------------------------------------


class TestLayout:
    def test_round_trip(self, local: LocalState, layout: dict, notebook_id: str):
        local.save(layout)
        assert local.load(notebook_id) == layout

    def test_unknown_notebook_is_empty(self, local: LocalState):
        assert local.load("nobody-here-yet") == {
            "notebookId": "nobody-here-yet",
            "notes": [],
            "pendingOperations": [],
        }

    def test_save_replaces_previous(self, local: LocalState, layout: dict, notebook_id: str):
        local.save(layout)
        local.save({"notebookId": notebook_id, "notes": [], "pendingOperations": []})
        assert local.load(notebook_id)["notes"] == []
        assert local.load(notebook_id)["pendingOperations"] == []

    def test_save_twice_is_stable(self, local: LocalState, layout: dict, notebook_id: str):
        local.save(layout)
        local.save(layout)
        assert local.load(notebook_id) == layout

    def test_notebooks_are_isolated(self, local: LocalState, layout: dict, notebook_id: str):
        local.save(layout)
        local.save({"notebookId": "other-note-book", "notes": [], "pendingOperations": []})
        assert len(local.load(notebook_id)["notes"]) == 2
        assert set(local.notebook_ids()) == {notebook_id, "other-note-book"}

    def test_survives_reopen(self, state_path: Path, layout: dict, notebook_id: str):
        with LocalState(state_path) as first:
            first.save(layout)
        with LocalState(state_path) as second:
            assert second.load(notebook_id) == layout


# ---------------------------------------------------------------------------
# Diagnostics views
# ---------------------------------------------------------------------------


class TestViews:
    def test_notes_table(self, local: LocalState, layout: dict, notebook_id: str):
        local.save(layout)
        df = local.notes_table(notebook_id)
        assert isinstance(df, pl.DataFrame)
        assert list(df["content"]) == ["one", "two"]

    def test_pending_table(self, local: LocalState, layout: dict, notebook_id: str):
        local.save(layout)
        df = local.pending_table(notebook_id)
        assert list(df["note_id"]) == ["b", "c"]
        assert df["content"][0] == "two"
        assert df["content"][1] is None

    def test_sync_summary(self, local: LocalState, layout: dict, notebook_id: str):
        local.save(layout)
        df = local.sync_summary(notebook_id)
        counts = dict(zip(df["sync_state"], df["note_count"]))
        assert counts == {"pending": 1, "synced": 1}
