"""Unit tests for shared_notes.reconcile."""

import asyncio

import pytest

from shared_notes.errors import MalformedRemoteSnapshot
from shared_notes.note import Note, OperationKind, PendingOperation, SyncState
from shared_notes.queue import SyncQueue
from shared_notes.reconcile import ReconciliationEngine, merge_snapshot
from shared_notes.store import NoteStore


def _synced(note_id: str, content: str, position: int) -> Note:
    return Note(note_id, content, position, SyncState.SYNCED)


def _upsert(note_id: str, kind: OperationKind, content: str, position: int) -> PendingOperation:
    return PendingOperation(note_id, kind, {"id": note_id, "content": content, "position": position})


# ---------------------------------------------------------------------------
# merge_snapshot()
# ---------------------------------------------------------------------------


class TestMergeSnapshot:
    def test_remote_only(self):
        merged = merge_snapshot([_synced("b", "two", 1), _synced("a", "one", 0)], [])
        assert [(n.id, n.sync_state) for n in merged] == [("a", SyncState.SYNCED), ("b", SyncState.SYNCED)]

    def test_pending_update_wins_over_remote(self):
        merged = merge_snapshot(
            [_synced("a", "one", 0)],
            [_upsert("a", OperationKind.UPDATE, "one more", 0)],
        )
        assert merged[0].content == "one more"
        assert merged[0].sync_state is SyncState.PENDING

    def test_pending_create_is_added(self):
        merged = merge_snapshot([_synced("a", "one", 0)], [_upsert("b", OperationKind.CREATE, "two", 1)])
        assert [n.content for n in merged] == ["one", "two"]

    def test_delete_removes_even_if_remote_has_it(self):
        merged = merge_snapshot([_synced("a", "one", 0)], [PendingOperation("a", OperationKind.DELETE)])
        assert merged == []

    def test_delete_of_note_unknown_to_remote(self):
        merged = merge_snapshot([], [PendingOperation("ghost", OperationKind.DELETE)])
        assert merged == []

    def test_failed_marker_preserved(self):
        merged = merge_snapshot(
            [], [_upsert("a", OperationKind.CREATE, "one", 0)], failed=frozenset({"a"})
        )
        assert merged[0].sync_state is SyncState.FAILED

    def test_settled_ops_come_out_synced(self):
        merged = merge_snapshot([], [], settled=[_upsert("a", OperationKind.CREATE, "one", 0)])
        assert merged[0].sync_state is SyncState.SYNCED


# ---------------------------------------------------------------------------
# ReconciliationEngine
# ---------------------------------------------------------------------------


@pytest.fixture()
def queue() -> SyncQueue:
    return SyncQueue()


class TestReconciliationEngine:
    def test_merges_remote_and_queue(self, stub, queue: SyncQueue, notebook_id: str):
        stub.notes = {"a": _synced("a", "one", 0)}
        store = NoteStore(queue, id_factory=lambda: "b")
        store.add_note("two")

        notes = asyncio.run(ReconciliationEngine(stub, store, queue).reconcile(notebook_id))
        assert [n.content for n in notes] == ["one", "two"]

    def test_offline_falls_back_to_last_known(self, stub, queue: SyncQueue, notebook_id: str):
        stub.online = False
        store = NoteStore(queue, [_synced("a", "one", 0)], id_factory=lambda: "b")
        store.add_note("two")

        notes = asyncio.run(ReconciliationEngine(stub, store, queue).reconcile(notebook_id))
        assert [(n.content, n.sync_state) for n in notes] == [
            ("one", SyncState.SYNCED),
            ("two", SyncState.PENDING),
        ]

    def test_malformed_snapshot_falls_back(self, queue: SyncQueue, notebook_id: str):
        class BrokenRemote:
            async def fetch_all(self, notebook_id):
                raise MalformedRemoteSnapshot("garbage")

        store = NoteStore(queue, [_synced("a", "one", 0)])
        notes = asyncio.run(ReconciliationEngine(BrokenRemote(), store, queue).reconcile(notebook_id))
        assert [n.content for n in notes] == ["one"]

    def test_remote_deletion_respected_when_nothing_queued(self, stub, queue: SyncQueue, notebook_id: str):
        store = NoteStore(queue, [_synced("a", "one", 0), _synced("b", "two", 1)])
        stub.notes = {"b": _synced("b", "two", 1)}

        notes = asyncio.run(ReconciliationEngine(stub, store, queue).reconcile(notebook_id))
        assert [n.id for n in notes] == ["b"]

    def test_mutation_during_fetch_is_not_reverted(self, queue: SyncQueue, notebook_id: str):
        store = NoteStore(queue, id_factory=lambda: "late")

        class SlowRemote:
            async def fetch_all(self, notebook_id):
                await asyncio.sleep(0)
                store.add_note("typed while loading")
                return []

        notes = asyncio.run(ReconciliationEngine(SlowRemote(), store, queue).reconcile(notebook_id))
        assert [n.content for n in notes] == ["typed while loading"]

    def test_note_confirmed_during_fetch_stays_visible(self, queue: SyncQueue, notebook_id: str):
        store = NoteStore(queue, id_factory=lambda: "a")
        store.add_note("one")

        class RacingRemote:
            async def fetch_all(self, notebook_id):
                # The list was computed before the create landed...
                snapshot: list[Note] = []
                # ...and the create is confirmed before the answer arrives
                queue.confirm(queue.get("a"))
                return snapshot

        notes = asyncio.run(ReconciliationEngine(RacingRemote(), store, queue).reconcile(notebook_id))
        assert [(n.content, n.sync_state) for n in notes] == [("one", SyncState.SYNCED)]
