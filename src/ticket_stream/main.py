from __future__ import annotations

import signal
import sys

from ticket_stream.config_models import StreamConfig, load_and_validate_config
from ticket_stream.core.errors import ConfigError
from ticket_stream.core.factory import BuiltComponents, ComponentFactory
from ticket_stream.utils.logging import get_logger, setup_logging


def install_signal_handlers(built: BuiltComponents) -> None:
    """Stop the scheduler on SIGINT/SIGTERM; the inter-run sleep ends immediately."""
    log = get_logger("ticket_stream.main")

    def _handle(signum, _frame):
        log.info("Received signal %s, stopping", signum)
        built.scheduler.stop()

    signal.signal(signal.SIGINT, _handle)
    signal.signal(signal.SIGTERM, _handle)


def run(config: StreamConfig) -> int:
    """Build the components, run the scheduler and return the process exit code."""
    setup_logging(config.logging_config)
    log = get_logger("ticket_stream.main")
    log.info(
        "Starting Zendesk ticket stream: domain=%s user=%s",
        config.zendesk.domain,
        config.zendesk.user,
    )

    built = ComponentFactory().build(config)
    install_signal_handlers(built)

    outcome = built.scheduler.start()
    if built.scheduler.run_once and outcome is not None and outcome.failed:
        return 1
    return 0


def main() -> None:
    """Main entry point for the ticket stream."""
    if len(sys.argv) < 2:
        print("Usage: ticket-stream configs/<domain>.yaml")
        raise SystemExit(2)

    config_path = sys.argv[1]
    try:
        config = load_and_validate_config(config_path)
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        raise SystemExit(2)

    raise SystemExit(run(config))


if __name__ == "__main__":
    main()
