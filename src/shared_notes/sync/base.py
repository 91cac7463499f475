"""Abstract remote client protocol."""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from shared_notes.errors import MalformedRemoteSnapshot
from shared_notes.note import Note, SyncState


@runtime_checkable
class RemoteClient(Protocol):
    """Common interface shared by all remote backends.

    Every call makes exactly one attempt.  Success returns normally; any
    failure raises a :class:`~shared_notes.errors.RemoteError`.  Retrying is
    the scheduler's job, never the client's.
    """

    async def fetch_all(self, notebook_id: str) -> list[Note]:
        """Return every note the remote service stores for *notebook_id*."""
        ...

    async def create(self, notebook_id: str, note: Note) -> None:
        """Store a new note.  Creating an id that already exists succeeds."""
        ...

    async def update(self, notebook_id: str, note: Note) -> None:
        """Overwrite the content and position of an existing note."""
        ...

    async def delete(self, notebook_id: str, note_id: str) -> None:
        """Remove a note.  Deleting an unknown id succeeds."""
        ...


def parse_snapshot(data: Any) -> list[Note]:
    """Validate a remote note list and convert it to :class:`Note` objects."""
    if isinstance(data, dict):
        data = data.get("notes")
    if not isinstance(data, list):
        raise MalformedRemoteSnapshot(f"expected a list of notes, got {type(data).__name__}")

    notes: list[Note] = []
    for item in data:
        if not isinstance(item, dict) or not isinstance(item.get("id"), str):
            raise MalformedRemoteSnapshot(f"note entry without a string id: {item!r}")
        content = item.get("content", "")
        position = item.get("position", 0)
        if not isinstance(content, str) or isinstance(position, bool) or not isinstance(position, int):
            raise MalformedRemoteSnapshot(f"note {item['id']!r} has malformed fields")
        notes.append(Note(id=item["id"], content=content, position=position, sync_state=SyncState.SYNCED))
    return notes
