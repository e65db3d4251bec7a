from __future__ import annotations

from typing import Optional

from ticket_stream.core.models import CursorState
from ticket_stream.utils.time import SECONDS_PER_DAY, epoch_now

FULL_HISTORY = -1
EPOCH_ZERO = 0


def resolve_start_time(
    cursor: Optional[CursorState],
    lookback_days: float,
    now: Optional[float] = None,
) -> int:
    """
    Compute the start_time for the next export request.

    Args:
        cursor: Stored cursor state, or None on the first ever run.
        lookback_days: How far back the first run reaches; -1 exports full history.
        now: Current epoch seconds, defaults to the wall clock.

    Returns:
        Epoch seconds to pass as the export start_time.
    """
    if cursor is not None and cursor.committed_start_time is not None:
        return int(cursor.committed_start_time)

    if lookback_days == FULL_HISTORY:
        return EPOCH_ZERO

    if lookback_days < 0:
        raise ValueError(f"lookback_days must be -1 or >= 0, got {lookback_days}")

    current = epoch_now() if now is None else now
    return int(current - lookback_days * SECONDS_PER_DAY)
