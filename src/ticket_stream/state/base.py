from __future__ import annotations

from typing import Optional, Protocol

from ticket_stream.core.models import CursorState


class CursorStore(Protocol):
    """Protocol for cursor state backends, keyed per exported domain."""

    def load(self, key: str) -> Optional[CursorState]: ...

    def save(self, key: str, state: CursorState) -> None: ...

    def mark_run_started(self, key: str) -> int: ...

    def mark_run_completed(self, key: str) -> None: ...


class MemoryCursorStore:
    """In-process store; state is lost with the process."""

    def __init__(self):
        self._states: dict[str, CursorState] = {}
        self._runs: dict[str, int] = {}

    def load(self, key: str) -> Optional[CursorState]:
        return self._states.get(key)

    def save(self, key: str, state: CursorState) -> None:
        self._states[key] = state

    def mark_run_started(self, key: str) -> int:
        self._runs[key] = self._runs.get(key, 0) + 1
        return self._runs[key]

    def mark_run_completed(self, key: str) -> None:
        return None
