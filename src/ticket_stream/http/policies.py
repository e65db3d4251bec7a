from __future__ import annotations

import random
import time
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class RetryPolicy:
    """Configuration for HTTP retry behavior."""

    max_attempts: int = 5
    base_delay_s: float = 1.0
    jitter_s: float = 0.3
    max_retry_after_s: float = 300.0
    retry_statuses: tuple[int, ...] = (429, 500, 502, 503, 504)


def retry_after_seconds(value: Optional[str]) -> Optional[float]:
    """Parse a Retry-After header given in seconds."""
    if value is None:
        return None
    try:
        seconds = float(str(value).strip())
    except ValueError:
        return None
    return max(0.0, seconds)


def backoff_sleep(policy: RetryPolicy, attempt_index: int, retry_after_s: Optional[float] = None) -> None:
    """Sleep for Retry-After when the server sent one, else exponential backoff with jitter."""
    if retry_after_s is not None:
        time.sleep(min(retry_after_s, policy.max_retry_after_s))
        return

    delay = policy.base_delay_s * (2**attempt_index)
    delay += random.uniform(0, policy.jitter_s)
    time.sleep(delay)
