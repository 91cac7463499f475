"""Remote backends the sync engine can deliver to."""

from shared_notes.sync.base import RemoteClient, parse_snapshot
from shared_notes.sync.duckdb_remote import DuckDBRemote
from shared_notes.sync.http import HttpRemoteClient

__all__ = ["RemoteClient", "parse_snapshot", "DuckDBRemote", "HttpRemoteClient"]
