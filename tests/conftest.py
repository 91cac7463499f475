"""Shared fixtures: an in-memory notes API and a scriptable stub remote.

``FakeNotesApi`` implements the remote CRUD routes behind an
:class:`httpx.MockTransport`, so the real :class:`HttpRemoteClient` is
exercised end to end.  Setting ``api.online = False`` makes every request
fail with :class:`httpx.ConnectError`, which is how the scenario tests
"block the network".

``StubRemote`` is a plain async object satisfying the ``RemoteClient``
protocol for unit tests of the scheduler and reconciler.
"""

from __future__ import annotations

import asyncio
import json
from pathlib import Path

import httpx
import pytest

from shared_notes.errors import NetworkFailure
from shared_notes.local import LocalState
from shared_notes.note import Note, SyncState
from shared_notes.sync.http import HttpRemoteClient

NOTEBOOK = "tests-tests-tests"


# ---------------------------------------------------------------------------
# Fake HTTP API
# ---------------------------------------------------------------------------


class FakeNotesApi:
    def __init__(self) -> None:
        self.notebooks: dict[str, dict[str, dict]] = {}
        self.online = True
        #: Number of upcoming writes that are applied but whose answer is lost
        self.drop_responses = 0
        self.requests: list[tuple[str, str]] = []

    def contents(self, notebook_id: str = NOTEBOOK) -> list[str]:
        notes = sorted(self.notebooks.get(notebook_id, {}).values(), key=lambda n: (n["position"], n["id"]))
        return [n["content"] for n in notes]

    def calls(self, method: str) -> int:
        return sum(1 for m, _ in self.requests if m == method)

    def handler(self, request: httpx.Request) -> httpx.Response:
        if not self.online:
            raise httpx.ConnectError("network blocked", request=request)
        self.requests.append((request.method, request.url.path))

        path = request.url.path
        if request.method == "GET" and path == "/notes":
            notebook = self.notebooks.get(request.url.params["notebook"], {})
            return httpx.Response(200, json=list(notebook.values()))

        if request.method in ("POST", "PATCH") and path == "/note":
            body = json.loads(request.content)
            notebook = self.notebooks.setdefault(body.pop("notebook"), {})
            if request.method == "POST" and body["id"] in notebook:
                return httpx.Response(409, json={"error": "exists"})
            if request.method == "PATCH" and body["id"] not in notebook:
                return httpx.Response(404, json={"error": "not found"})
            notebook[body["id"]] = body
            return self._answer(request, 201 if request.method == "POST" else 200, body)

        if request.method == "DELETE" and path.startswith("/note/"):
            notebook = self.notebooks.get(request.url.params["notebook"], {})
            note_id = path.rsplit("/", 1)[1]
            if note_id not in notebook:
                return httpx.Response(404, json={"error": "not found"})
            del notebook[note_id]
            return self._answer(request, 204, None)

        return httpx.Response(400, json={"error": f"no route {request.method} {path}"})

    def _answer(self, request: httpx.Request, status: int, body: dict | None) -> httpx.Response:
        if self.drop_responses:
            self.drop_responses -= 1
            raise httpx.ReadError("connection reset", request=request)
        return httpx.Response(status, json=body) if body is not None else httpx.Response(status)


@pytest.fixture()
def api() -> FakeNotesApi:
    return FakeNotesApi()


def make_client(api: FakeNotesApi) -> HttpRemoteClient:
    return HttpRemoteClient("http://notes.test", transport=httpx.MockTransport(api.handler))


@pytest.fixture()
def state_path(tmp_path: Path) -> Path:
    return tmp_path / "state.duckdb"


@pytest.fixture()
def local(state_path: Path):
    with LocalState(state_path) as state:
        yield state


# ---------------------------------------------------------------------------
# Stub remote
# ---------------------------------------------------------------------------


class StubRemote:
    def __init__(self, notes: list[Note] | None = None) -> None:
        self.notes = {n.id: n for n in notes or []}
        self.online = True
        self.calls: list[tuple[str, str]] = []
        #: When set, sends wait on this event before completing
        self.gate: asyncio.Event | None = None

    async def _call(self, kind: str, note_id: str) -> None:
        self.calls.append((kind, note_id))
        if self.gate is not None:
            await self.gate.wait()
        if not self.online:
            raise NetworkFailure("stub offline")

    async def fetch_all(self, notebook_id: str) -> list[Note]:
        if not self.online:
            raise NetworkFailure("stub offline")
        return [Note(n.id, n.content, n.position, SyncState.SYNCED) for n in self.notes.values()]

    async def create(self, notebook_id: str, note: Note) -> None:
        await self._call("create", note.id)
        self.notes.setdefault(note.id, note)

    async def update(self, notebook_id: str, note: Note) -> None:
        await self._call("update", note.id)
        self.notes[note.id] = note

    async def delete(self, notebook_id: str, note_id: str) -> None:
        await self._call("delete", note_id)
        self.notes.pop(note_id, None)


@pytest.fixture()
def stub() -> StubRemote:
    return StubRemote()


@pytest.fixture()
def client(api: FakeNotesApi) -> HttpRemoteClient:
    return make_client(api)


@pytest.fixture()
def notebook_id() -> str:
    return NOTEBOOK
