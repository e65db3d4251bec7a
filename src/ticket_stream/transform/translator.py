from __future__ import annotations

import re
from datetime import date, datetime
from typing import Any, Dict, Optional, Protocol

from ticket_stream.core.errors import TranslationError
from ticket_stream.core.models import EmittedEvent, FieldMap, TicketRecord
from ticket_stream.utils.logging import get_logger

EVENT_TYPE = "ticket"

_field_attr = re.compile(r"^field_(\d+)$")


class Translator(Protocol):
    """Protocol for record translators."""

    def translate(self, record: TicketRecord, field_map: FieldMap) -> EmittedEvent: ...


class TicketTranslator:
    """Maps one exported ticket onto the canonical event shape."""

    def __init__(self):
        self.log = get_logger("ticket_stream.translator")

    def translate(self, record: TicketRecord, field_map: FieldMap) -> EmittedEvent:
        """
        Translate a ticket into an event.

        Args:
            record: The exported ticket.
            field_map: Ticket field id -> event key, refreshed each run.

        Returns:
            A dict with type="ticket", the ticket id and the translated attributes.

        Raises:
            TranslationError: If the ticket has no id or an unexpected shape.
        """
        if record.id is None:
            raise TranslationError("ticket has no id", record_id=None)
        if not isinstance(record.attributes, dict):
            raise TranslationError("ticket attributes are not a mapping", record_id=record.id)

        attrs = dict(record.attributes)
        custom = self._flatten_custom_fields(record, attrs)

        event: EmittedEvent = {"type": EVENT_TYPE, "id": record.id}
        pending: Dict[str, Any] = dict(custom)

        for key, value in attrs.items():
            if key == "id":
                continue
            if key == "type":
                event["ticket_type"] = self.coerce(value)
                continue
            if _field_attr.match(key):
                pending[key] = value
                continue
            event[key] = self.coerce(value)

        for key, value in pending.items():
            event[self._field_name(key, field_map, event, record.id)] = self.coerce(value)

        return event

    def coerce(self, value: Any) -> Any:
        """Keep JSON scalars and nested structures; stringify everything else."""
        if value is None or isinstance(value, (bool, int, float, str, dict, list)):
            return value
        if isinstance(value, (datetime, date)):
            return value.isoformat()
        if isinstance(value, tuple):
            return list(value)
        return str(value)

    def _flatten_custom_fields(self, record: TicketRecord, attrs: Dict[str, Any]) -> Dict[str, Any]:
        flattened: Dict[str, Any] = {}
        entries = attrs.pop("custom_fields", None)
        # Zendesk mirrors custom_fields under "fields"; only one copy is kept.
        mirrored = attrs.pop("fields") if isinstance(attrs.get("fields"), list) else None
        if entries is None:
            entries = mirrored

        if entries is None:
            return flattened
        if not isinstance(entries, list):
            raise TranslationError("custom_fields is not a list", record_id=record.id)

        for entry in entries:
            if not isinstance(entry, dict) or entry.get("id") is None:
                raise TranslationError(f"custom field entry without id: {entry!r}", record_id=record.id)
            flattened[f"field_{entry['id']}"] = entry.get("value")
        return flattened

    def _field_name(self, key: str, field_map: FieldMap, event: EmittedEvent, record_id: Any) -> str:
        m = _field_attr.match(key)
        field_id = m.group(1) if m else ""
        name: Optional[str] = field_map.get(field_id)
        if not name:
            self.log.debug("Unknown ticket field passed through: ticket=%s field=%s", record_id, key)
            return key
        if name in event:
            self.log.debug(
                "Ticket field name collides with attribute, keeping raw key: ticket=%s field=%s name=%s",
                record_id,
                key,
                name,
            )
            return key
        return name
