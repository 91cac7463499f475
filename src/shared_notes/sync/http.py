"""HTTP remote client for the notes CRUD API.

A thin async client that talks to the remote persistence service.

Expected routes
---------------
GET    /notes?notebook={id}        – list a notebook's notes
POST   /note                       – create a note
PATCH  /note                       – update a note
DELETE /note/{note_id}?notebook=…  – delete a note

All endpoints accept/return JSON.  Note bodies look like
``{"id", "notebook", "content", "position"}``; the list endpoint may answer
either a bare list or ``{"notes": [...]}``.

Environment variables (all optional; direct kwargs take precedence):
    SHARED_NOTES_API_URL   – base URL of the API (e.g. https://notes.example.dev/api)
    SHARED_NOTES_TIMEOUT   – per-request timeout in seconds (default 10)
"""

from __future__ import annotations

import os

import httpx

from shared_notes.errors import MalformedRemoteSnapshot, NetworkFailure, RemoteRejected
from shared_notes.note import Note
from shared_notes.sync.base import parse_snapshot


class HttpRemoteClient:
    """Remote backend backed by the REST notes API."""

    def __init__(
        self,
        base_url: str | None = None,
        *,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = (base_url or os.getenv("SHARED_NOTES_API_URL", "")).rstrip("/")
        if timeout is None:
            timeout = float(os.getenv("SHARED_NOTES_TIMEOUT", "10"))
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            headers={"Content-Type": "application/json"},
            timeout=timeout,
            transport=transport,
        )

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    async def _send(self, method: str, url: str, **kwargs) -> httpx.Response:
        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.TimeoutException as exc:
            raise NetworkFailure(f"{method} {url} timed out", reason="timeout") from exc
        except (httpx.ReadError, httpx.WriteError, httpx.RemoteProtocolError) as exc:
            raise NetworkFailure(f"{method} {url} aborted: {exc}", reason="aborted") from exc
        except httpx.TransportError as exc:
            raise NetworkFailure(f"{method} {url} unreachable: {exc}") from exc

        if response.status_code >= 500:
            raise NetworkFailure(f"{method} {url} -> {response.status_code}", reason="server")
        return response

    @staticmethod
    def _check(response: httpx.Response, *, ok_statuses: tuple[int, ...] = ()) -> None:
        if response.status_code in ok_statuses or response.is_success:
            return
        raise RemoteRejected(
            f"{response.request.method} {response.request.url.path} -> {response.status_code}",
            status_code=response.status_code,
        )

    @staticmethod
    def _body(notebook_id: str, note: Note) -> dict:
        return {"notebook": notebook_id, **note.to_payload()}

    # ------------------------------------------------------------------
    # Notes
    # ------------------------------------------------------------------

    async def fetch_all(self, notebook_id: str) -> list[Note]:
        r = await self._send("GET", "/notes", params={"notebook": notebook_id})
        self._check(r)
        try:
            data = r.json()
        except ValueError as exc:
            raise MalformedRemoteSnapshot(f"note list is not JSON: {exc}") from exc
        return parse_snapshot(data)

    async def create(self, notebook_id: str, note: Note) -> None:
        body = self._body(notebook_id, note)
        r = await self._send("POST", "/note", json=body)
        if r.status_code == 409:
            # An earlier attempt landed but its answer got lost; the queued
            # entry may carry newer content than that attempt did
            r = await self._send("PATCH", "/note", json=body)
        self._check(r)

    async def update(self, notebook_id: str, note: Note) -> None:
        r = await self._send("PATCH", "/note", json=self._body(notebook_id, note))
        self._check(r)

    async def delete(self, notebook_id: str, note_id: str) -> None:
        r = await self._send("DELETE", f"/note/{note_id}", params={"notebook": notebook_id})
        self._check(r, ok_statuses=(404, 410))

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "HttpRemoteClient":
        return self

    async def __aexit__(self, *_: object) -> None:
        await self.aclose()
