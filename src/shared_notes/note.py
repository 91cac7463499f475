"""Core Note and PendingOperation dataclasses."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class SyncState(str, Enum):
    PENDING = "pending"
    SYNCED = "synced"
    FAILED = "failed"


class OperationKind(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


@dataclass
class Note:
    """A single free-text note in a notebook."""

    id: str
    content: str
    #: Ordering key; notes render sorted by ``(position, id)``
    position: int
    sync_state: SyncState = SyncState.PENDING

    @property
    def sort_key(self) -> tuple[int, str]:
        return (self.position, self.id)

    def to_payload(self) -> dict[str, Any]:
        """The fields the remote service stores for this note."""
        return {"id": self.id, "content": self.content, "position": self.position}

    def to_dict(self) -> dict[str, Any]:
        return {**self.to_payload(), "syncState": self.sync_state.value}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Note":
        return cls(
            id=str(data["id"]),
            content=str(data.get("content") or ""),
            position=int(data.get("position") or 0),
            sync_state=SyncState(data.get("syncState", SyncState.SYNCED.value)),
        )


@dataclass
class PendingOperation:
    """A local mutation awaiting confirmation from the remote service."""

    note_id: str
    kind: OperationKind
    #: ``Note.to_payload()`` for create/update, ``None`` for delete
    payload: dict[str, Any] | None = None
    enqueued_at: float = field(default_factory=time.time)
    #: Rewritten by the queue on every merge
    revision: int = 0

    def to_note(self, sync_state: SyncState = SyncState.PENDING) -> Note:
        if self.payload is None:
            raise ValueError(f"{self.kind.value} operation for {self.note_id!r} carries no note")
        return Note(
            id=self.note_id,
            content=self.payload.get("content", ""),
            position=int(self.payload.get("position", 0)),
            sync_state=sync_state,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "noteId": self.note_id,
            "kind": self.kind.value,
            "payload": self.payload,
            "enqueuedAt": self.enqueued_at,
            "revision": self.revision,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PendingOperation":
        return cls(
            note_id=data["noteId"],
            kind=OperationKind(data["kind"]),
            payload=data.get("payload"),
            enqueued_at=float(data.get("enqueuedAt", 0.0)),
            revision=int(data.get("revision", 0)),
        )
