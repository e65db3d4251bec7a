from __future__ import annotations

from typing import Any, Optional


class TicketStreamError(Exception):
    """Base class for errors raised by the ticket stream."""


class ConfigError(TicketStreamError):
    """Invalid or unreadable configuration."""


class ExportClientError(TicketStreamError):
    """A remote call did not produce a usable response."""

    def __init__(self, message: str, status_code: Optional[int] = None, operation: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.operation = operation


class AuthenticationError(ExportClientError):
    """Credentials were rejected or resolved to an anonymous user."""


class MalformedPageError(ExportClientError):
    """The export response is missing the tickets list or its cursor."""


class StartTimeTooRecent(ExportClientError):
    """
    The remote refused the start_time because it is too close to now.

    This is the steady-state end of an export once the stream has caught up,
    not a failure.
    """


class TranslationError(TicketStreamError):
    """A single record could not be turned into an event."""

    def __init__(self, message: str, record_id: Any = None):
        super().__init__(message)
        self.record_id = record_id
