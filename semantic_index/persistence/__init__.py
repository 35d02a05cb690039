"""File persistence for the semantic index."""

from .log_store import LogEntry, TaggedLogStore
from .snapshot import load_snapshot, save_snapshot

__all__ = ["LogEntry", "TaggedLogStore", "load_snapshot", "save_snapshot"]
