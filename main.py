"""Sandboxed file gateway: confined reads and fixture seeding over HTTP."""

import logging
import signal
import sys

from gateway.bootstrap.config import SAMPLE_FILES, ServerConfig, parse_cli_args
from gateway.bootstrap.logging_setup import configure_logging
from gateway.domain.correlation_id import CorrelationLoggerAdapter
from gateway.lifecycle.state import ServerLifecycle
from gateway.storage.sandbox import SandboxGateway
from gateway.transport.accept_loop import run_server

SERVER_LOGGER = CorrelationLoggerAdapter(logging.getLogger("path_gateway.server"), {})


def main() -> None:
    """Resolve the base directory once, then serve until signalled."""
    args = parse_cli_args(sys.argv[1:])
    configure_logging(args.log_level, args.log_destination, args.log_json)

    gateway = SandboxGateway(args.directory, follow_symlinks=args.follow_symlinks)
    if args.seed_samples:
        gateway.seed_files(SAMPLE_FILES)

    config = ServerConfig(
        socket_timeout=args.socket_timeout,
        shutdown_grace_seconds=args.shutdown_grace_seconds,
    )
    lifecycle = ServerLifecycle()

    def shutdown_handler(signum: int, _frame) -> None:
        SERVER_LOGGER.info(
            "Received shutdown signal",
            extra={"event": "shutdown_signal", "signal": signum},
        )
        lifecycle.begin_draining()

    signal.signal(signal.SIGTERM, shutdown_handler)
    signal.signal(signal.SIGINT, shutdown_handler)

    SERVER_LOGGER.info(
        "Starting path gateway",
        extra={
            "event": "server_starting",
            "host": args.host,
            "port": args.port,
            "directory": str(gateway.base_directory),
            "follow_symlinks": args.follow_symlinks,
            "socket_timeout": config.socket_timeout,
            "shutdown_grace_seconds": config.shutdown_grace_seconds,
        },
    )
    run_server(args, config, lifecycle, gateway)


if __name__ == "__main__":
    main()
