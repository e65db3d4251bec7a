from ticket_stream.state.base import CursorStore, MemoryCursorStore
from ticket_stream.state.sqlite_store import SQLiteCursorStore

__all__ = [
    "CursorStore",
    "MemoryCursorStore",
    "SQLiteCursorStore",
]
