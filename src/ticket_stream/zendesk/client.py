from __future__ import annotations

from typing import Any, Optional, Protocol, Tuple

import requests

from ticket_stream.core.errors import (
    AuthenticationError,
    ExportClientError,
    MalformedPageError,
    StartTimeTooRecent,
)
from ticket_stream.core.models import ExportPage, FieldMap, RequestSpec, TicketRecord
from ticket_stream.http.client import HttpClient
from ticket_stream.http.response import HttpResponse
from ticket_stream.utils.logging import get_logger
from ticket_stream.utils.text import field_key

# The time-based export returns at most this many tickets per page.
EXPORT_PAGE_SIZE = 1000

_TOO_RECENT_MARKER = "too recent"


class ExportClient(Protocol):
    """Protocol for the remote incremental-export collaborator."""

    def verify_credentials(self) -> None: ...

    def list_fields(self) -> FieldMap: ...

    def fetch_page(self, start_time: int) -> ExportPage: ...


def base_url_for(domain: str) -> str:
    """API root for a Zendesk subdomain ("company" -> https://company.zendesk.com/api/v2)."""
    return f"https://{domain}.zendesk.com/api/v2"


def basic_auth(user: str, password: Optional[str] = None, api_token: Optional[str] = None) -> Tuple[str, str]:
    """Build the basic-auth pair for either a password or an API token."""
    if password and api_token:
        raise ValueError("Cannot specify both password and api_token")
    if api_token:
        return (f"{user}/token", api_token)
    if password:
        return (user, password)
    raise ValueError("Must specify either a password or api_token")


class ZendeskExportClient:
    """
    Adapter over the Zendesk REST API exposing the calls the export engine needs.

    Transport retries for rate limits live in the HTTP client; this class turns
    responses into ExportPage values and classifies failures.
    """

    def __init__(self, http: HttpClient, base_url: str):
        self.http = http
        self.base_url = base_url.rstrip("/")
        self.log = get_logger("ticket_stream.zendesk")

    def verify_credentials(self) -> None:
        """Fail fast when the credentials resolve to the anonymous user."""
        data = self._get_json("/users/me.json", operation="verify_credentials")
        user = data.get("user") if isinstance(data, dict) else None
        if not isinstance(user, dict) or user.get("id") is None:
            raise AuthenticationError(
                "Cannot initialize a valid Zendesk client. Please check your login credentials.",
                operation="verify_credentials",
            )
        self.log.info("Authenticated as user id=%s role=%s", user.get("id"), user.get("role"))

    def list_fields(self) -> FieldMap:
        """Fetch ticket field metadata as {"<field id>": "<snake_case title>"}."""
        fields: FieldMap = {}
        url: Optional[str] = f"{self.base_url}/ticket_fields.json"
        pages = 0

        while url:
            data = self._get_json(url, operation="list_fields")
            entries = data.get("ticket_fields") if isinstance(data, dict) else None
            if not isinstance(entries, list):
                raise MalformedPageError("ticket_fields response has no ticket_fields list", operation="list_fields")

            for entry in entries:
                if not isinstance(entry, dict) or entry.get("id") is None:
                    continue
                key = field_key(entry.get("title") or entry.get("raw_title"))
                if key:
                    fields[str(entry["id"])] = key

            pages += 1
            url = data.get("next_page")

        self.log.info("Ticket fields loaded: fields=%s pages=%s", len(fields), pages)
        return fields

    def fetch_page(self, start_time: int) -> ExportPage:
        """
        Request one page of tickets updated since start_time.

        Raises:
            StartTimeTooRecent: The remote asks for an older start_time.
            ExportClientError: Any other transport, status or shape problem.
        """
        data = self._get_json(
            "/incremental/tickets.json",
            params={"start_time": int(start_time)},
            operation="fetch_page",
        )
        return self.parse_page(data)

    def parse_page(self, data: Any) -> ExportPage:
        """Turn an export response body into an ExportPage."""
        if not isinstance(data, dict):
            raise MalformedPageError("export response is not a JSON object", operation="fetch_page")

        tickets = data.get("tickets")
        if not isinstance(tickets, list):
            raise MalformedPageError("export response has no tickets list", operation="fetch_page")

        end_time = data.get("end_time")
        try:
            next_start_time = int(end_time)
        except (TypeError, ValueError):
            raise MalformedPageError(f"export response has invalid end_time: {end_time!r}", operation="fetch_page")

        count = data.get("count", len(tickets))
        if isinstance(count, bool) or not isinstance(count, int):
            raise MalformedPageError(f"export response has invalid count: {count!r}", operation="fetch_page")

        end_of_stream = data.get("end_of_stream")
        if end_of_stream is None:
            end_of_stream = count < EXPORT_PAGE_SIZE
        elif not isinstance(end_of_stream, bool):
            raise MalformedPageError(
                f"export response has invalid end_of_stream: {end_of_stream!r}", operation="fetch_page"
            )

        return ExportPage(
            records=[TicketRecord.from_raw(t) for t in tickets],
            end_of_stream=end_of_stream,
            next_start_time=next_start_time,
            count=count,
        )

    def _get_json(self, path_or_url: str, params: Optional[dict] = None, operation: str = "") -> Any:
        url = path_or_url if path_or_url.startswith("http") else f"{self.base_url}{path_or_url}"
        try:
            resp = self.http.send(RequestSpec(url=url, params=params or {}))
        except requests.RequestException as e:
            raise ExportClientError(f"{operation} failed: {type(e).__name__}: {e}", operation=operation) from e

        self._raise_for_status(resp, operation)
        if resp.json is None:
            raise MalformedPageError(f"{operation} returned a non-JSON body", resp.status_code, operation)
        return resp.json

    def _raise_for_status(self, resp: HttpResponse, operation: str) -> None:
        if resp.ok:
            return

        detail = self._error_detail(resp)
        if resp.status_code == 422 and _TOO_RECENT_MARKER in detail.lower():
            raise StartTimeTooRecent(detail, resp.status_code, operation)
        if resp.status_code in (401, 403):
            raise AuthenticationError(f"{operation} unauthorized: {detail}", resp.status_code, operation)
        raise ExportClientError(f"{operation} failed with status {resp.status_code}: {detail}", resp.status_code, operation)

    def _error_detail(self, resp: HttpResponse) -> str:
        body = resp.json
        if isinstance(body, dict):
            parts = [str(body.get(k)) for k in ("error", "description", "details") if body.get(k)]
            if parts:
                return " ".join(parts)
        return (resp.text or "")[:500]
