from __future__ import annotations

import queue
from dataclasses import dataclass

from ticket_stream.config_models import JsonlSinkConfig, QueueSinkConfig, StreamConfig
from ticket_stream.core.engine import ExportEngine
from ticket_stream.core.scheduler import CancellationToken, PollingScheduler
from ticket_stream.http.client import RequestsHttpClient
from ticket_stream.http.policies import RetryPolicy
from ticket_stream.sinks.base import Sink
from ticket_stream.sinks.jsonl_sink import STDOUT_PATH, JsonlSink
from ticket_stream.sinks.queue_sink import QueueSink
from ticket_stream.state.base import CursorStore, MemoryCursorStore
from ticket_stream.state.sqlite_store import SQLiteCursorStore
from ticket_stream.transform.translator import TicketTranslator, Translator
from ticket_stream.zendesk.client import ZendeskExportClient, base_url_for, basic_auth


@dataclass(frozen=True)
class BuiltComponents:
    engine: ExportEngine
    scheduler: PollingScheduler
    client: ZendeskExportClient
    store: CursorStore
    sink: Sink
    translator: Translator
    token: CancellationToken


class ComponentFactory:
    """
    Factory responsible for wiring dependencies.
    Keeps main.py clean and lets tests swap any collaborator.
    """

    def build(self, config: StreamConfig) -> BuiltComponents:
        """
        Build all components needed for the export.

        Args:
            config: The validated stream configuration.

        Returns:
            A container with all built components.
        """
        token = CancellationToken()
        client = self._client(config)
        store = self._store(config)
        sink = self._sink(config)
        translator = self._translator()

        engine = ExportEngine(
            export_key=config.zendesk.domain,
            client=client,
            store=store,
            translator=translator,
            sink=sink,
            lookback_days=config.export.tickets_last_updated_n_days_ago,
            fetch_tickets=config.export.tickets,
            is_cancelled=token,
        )
        scheduler = PollingScheduler(
            run=engine.run_once,
            interval_minutes=config.export.interval_minutes,
            run_once=config.export.single_run,
            token=token,
        )

        return BuiltComponents(
            engine=engine,
            scheduler=scheduler,
            client=client,
            store=store,
            sink=sink,
            translator=translator,
            token=token,
        )

    # ---------- Builders (private) ----------

    def _client(self, config: StreamConfig) -> ZendeskExportClient:
        """Create the authenticated Zendesk client."""
        zd = config.zendesk
        auth = basic_auth(
            zd.user,
            password=zd.password.get_secret_value() if zd.password else None,
            api_token=zd.api_token.get_secret_value() if zd.api_token else None,
        )
        http = RequestsHttpClient(
            timeout_s=zd.timeout_s,
            retry=RetryPolicy(max_attempts=zd.max_attempts),
            auth=auth,
        )
        return ZendeskExportClient(http=http, base_url=base_url_for(zd.domain))

    def _store(self, config: StreamConfig) -> CursorStore:
        """Create the cursor store."""
        if config.state.backend == "memory":
            return MemoryCursorStore()
        return SQLiteCursorStore(config.state.path)

    def _sink(self, config: StreamConfig) -> Sink:
        """Create the output sink."""
        if isinstance(config.sink, JsonlSinkConfig):
            return JsonlSink(config.sink.path)
        if isinstance(config.sink, QueueSinkConfig):
            return QueueSink(queue.Queue(maxsize=config.sink.maxsize), timeout_s=config.sink.timeout_s)
        return JsonlSink(STDOUT_PATH)

    def _translator(self) -> Translator:
        """Create the ticket translator."""
        return TicketTranslator()
