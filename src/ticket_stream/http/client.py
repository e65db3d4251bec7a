from __future__ import annotations

from typing import Optional, Protocol, Tuple

import requests

from ticket_stream.core.models import RequestSpec
from ticket_stream.http.policies import RetryPolicy, backoff_sleep, retry_after_seconds
from ticket_stream.http.response import HttpResponse
from ticket_stream.utils.logging import get_logger


class HttpClient(Protocol):
    """Protocol for HTTP clients."""

    def send(self, req: RequestSpec) -> HttpResponse: ...


class RequestsHttpClient:
    """HTTP client using the requests library."""

    def __init__(
        self,
        timeout_s: int = 30,
        retry: RetryPolicy | None = None,
        auth: Optional[Tuple[str, str]] = None,
        session: Optional[requests.Session] = None,
    ):
        self.session = session or requests.Session()
        if auth is not None:
            self.session.auth = auth
        self.session.headers.setdefault("Accept", "application/json")
        self.timeout_s = timeout_s
        self.retry = retry or RetryPolicy()
        self.log = get_logger("ticket_stream.http")

    def send(self, req: RequestSpec) -> HttpResponse:
        """Send an HTTP request, retrying on rate limits, 5xx and connection errors."""
        last_exc: Exception | None = None

        for attempt in range(self.retry.max_attempts):
            try:
                r = self.session.request(
                    method=req.method,
                    url=req.url,
                    headers=req.headers,
                    params=req.params,
                    json=req.body if isinstance(req.body, (dict, list)) else None,
                    data=None if isinstance(req.body, (dict, list)) else req.body,
                    timeout=self.timeout_s,
                )
            except requests.RequestException as e:
                last_exc = e
                if attempt < self.retry.max_attempts - 1:
                    self.log.warning("Retrying %s (exception=%s, attempt=%s)", req.url, type(e).__name__, attempt + 1)
                    backoff_sleep(self.retry, attempt)
                    continue
                raise

            ct = r.headers.get("Content-Type", "")
            js = None
            if "json" in ct.lower():
                try:
                    js = r.json()
                except ValueError:
                    js = None

            resp = HttpResponse(status_code=r.status_code, headers=dict(r.headers), text=r.text, json=js)

            if resp.status_code in self.retry.retry_statuses and attempt < self.retry.max_attempts - 1:
                wait_s = retry_after_seconds(r.headers.get("Retry-After")) if resp.status_code == 429 else None
                self.log.warning(
                    "Retrying %s (status=%s, attempt=%s, retry_after=%s)",
                    req.url,
                    resp.status_code,
                    attempt + 1,
                    wait_s,
                )
                backoff_sleep(self.retry, attempt, retry_after_s=wait_s)
                continue

            return resp

        # Should never hit
        raise last_exc if last_exc else RuntimeError("HTTP send failed unexpectedly")
