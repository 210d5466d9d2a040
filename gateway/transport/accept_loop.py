"""Main connection acceptance loop."""

import argparse
import logging
import socket
import threading

from gateway.bootstrap.config import ServerConfig
from gateway.bootstrap.socket_factory import create_server_socket
from gateway.domain.correlation_id import CorrelationLoggerAdapter
from gateway.lifecycle.state import ServerLifecycle
from gateway.storage.sandbox import SandboxGateway
from gateway.transport.context import WorkerContext
from gateway.transport.worker import handle_client

ACCEPT_LOGGER = CorrelationLoggerAdapter(
    logging.getLogger("path_gateway.transport.accept"), {}
)


def run_server(
    args: argparse.Namespace,
    config: ServerConfig,
    lifecycle: ServerLifecycle,
    gateway: SandboxGateway,
) -> None:
    """Accept connections until draining begins, one worker thread per client."""
    server_socket = create_server_socket(args.host, args.port)
    ACCEPT_LOGGER.info(
        "Server listening for connections",
        extra={"event": "server_listening", "host": args.host, "port": args.port},
    )
    context = WorkerContext(gateway=gateway, lifecycle=lifecycle, config=config)

    try:
        while not lifecycle.is_draining():
            try:
                client_socket, client_address = server_socket.accept()
            except socket.timeout:
                continue
            except OSError as error:
                if lifecycle.is_draining():
                    break
                ACCEPT_LOGGER.error(
                    "Socket accept failed",
                    extra={"event": "accept_error", "error_type": type(error).__name__},
                )
                continue

            if ACCEPT_LOGGER.logger.isEnabledFor(logging.DEBUG):
                ACCEPT_LOGGER.debug(
                    "Client connection accepted",
                    extra={
                        "event": "client_accepted",
                        "client": f"{client_address[0]}:{client_address[1]}",
                    },
                )
            threading.Thread(
                target=handle_client,
                args=(client_socket, client_address, context),
                daemon=False,
            ).start()
    finally:
        server_socket.close()
        ACCEPT_LOGGER.info(
            "Waiting for active connections to complete",
            extra={
                "event": "shutdown_waiting",
                "shutdown_grace_seconds": config.shutdown_grace_seconds,
            },
        )
        lifecycle.wait_for_workers(config.shutdown_grace_seconds)
        ACCEPT_LOGGER.info("Server shutdown complete", extra={"event": "server_stopped"})
