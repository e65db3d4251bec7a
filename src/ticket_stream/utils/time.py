import time
from datetime import datetime, timezone

SECONDS_PER_DAY = 86400


def utc_now_iso() -> str:
    """Get current UTC time in ISO format."""
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


def epoch_now() -> float:
    """Current time as unix epoch seconds."""
    return time.time()


def epoch_to_iso(ts: int) -> str:
    """Render an epoch cursor for log lines."""
    return datetime.fromtimestamp(ts, tz=timezone.utc).isoformat(timespec="seconds")
