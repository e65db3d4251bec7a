from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional, Tuple

DELETED_STATUS = "deleted"

# (id, updated_at) of the last record handled, used to skip the boundary duplicate.
Watermark = Tuple[Any, Optional[str]]

# Numeric ticket field id (as a string) -> event key.
FieldMap = Dict[str, str]

EmittedEvent = Dict[str, Any]


@dataclass(frozen=True)
class RequestSpec:
    """Specification for an HTTP request."""

    url: str
    method: str = "GET"
    headers: Dict[str, str] = field(default_factory=dict)
    params: Dict[str, Any] = field(default_factory=dict)
    body: Any = None


@dataclass(frozen=True)
class TicketRecord:
    """A ticket as returned by the incremental export."""

    id: Any
    updated_at: Optional[str]
    status: Optional[str]
    attributes: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_raw(cls, raw: Any) -> "TicketRecord":
        """Build a record from one raw export entry without validating its shape."""
        if not isinstance(raw, dict):
            return cls(id=None, updated_at=None, status=None, attributes={"_raw": raw})
        return cls(
            id=raw.get("id"),
            updated_at=raw.get("updated_at"),
            status=raw.get("status"),
            attributes=dict(raw),
        )

    @property
    def is_deleted(self) -> bool:
        return str(self.status or "").lower() == DELETED_STATUS

    @property
    def watermark(self) -> Watermark:
        return (self.id, self.updated_at)


@dataclass(frozen=True)
class ExportPage:
    """One page of the incremental export plus its pagination metadata."""

    records: List[TicketRecord]
    end_of_stream: bool
    next_start_time: int
    count: int = 0


@dataclass(frozen=True)
class CursorState:
    """Minimal durable state needed to resume an export."""

    last_record_id: Any = None
    last_record_updated_at: Optional[str] = None
    committed_start_time: Optional[int] = None

    @property
    def watermark(self) -> Optional[Watermark]:
        if self.last_record_id is None and self.last_record_updated_at is None:
            return None
        return (self.last_record_id, self.last_record_updated_at)

    def advance(self, record: TicketRecord) -> "CursorState":
        return replace(self, last_record_id=record.id, last_record_updated_at=record.updated_at)

    def with_start_time(self, start_time: int) -> "CursorState":
        return replace(self, committed_start_time=int(start_time))


@dataclass
class RunOutcome:
    """Summary of one engine run."""

    final_cursor_state: CursorState
    records_emitted: int = 0
    records_skipped: int = 0
    pages_fetched: int = 0
    failed: bool = False
    stop_reason: str = ""
    error: str = ""
    failures: Dict[str, int] = field(default_factory=dict)

    def bump_failure(self, key: str) -> None:
        """Increment the count for a specific failure type."""
        self.failures[key] = self.failures.get(key, 0) + 1
