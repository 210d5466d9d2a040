"""Worker thread logic for handling individual client connections."""

import logging
import socket
import threading
import time

from gateway.bootstrap.config import SECURITY_HEADERS
from gateway.domain.correlation_id import (
    CorrelationLoggerAdapter,
    clear_correlation_id,
    generate_correlation_id,
    set_correlation_id,
)
from gateway.domain.response_builders import (
    bad_request_response,
    draining_response,
    entity_too_large_response,
)
from gateway.pipeline.io import receive_request, send_response
from gateway.pipeline.router import route_request
from gateway.pipeline.validation import RequestEntityTooLarge
from gateway.transport.context import WorkerContext

WORKER_LOGGER = CorrelationLoggerAdapter(
    logging.getLogger("path_gateway.transport.worker"), {}
)


def _serve_one(
    client_socket: socket.socket, client_addr_str: str, context: WorkerContext
) -> None:
    lifecycle = context.lifecycle
    if lifecycle is not None and lifecycle.is_draining():
        send_response(client_socket, draining_response(SECURITY_HEADERS))
        return

    started = time.monotonic()
    try:
        request = receive_request(client_socket, context.max_body_bytes)
    except RequestEntityTooLarge:
        WORKER_LOGGER.warning(
            "Request body size exceeded limit",
            extra={"event": "body_size_exceeded", "client": client_addr_str},
        )
        send_response(client_socket, entity_too_large_response(SECURITY_HEADERS))
        return
    except ValueError:
        WORKER_LOGGER.warning(
            "Malformed request received",
            extra={"event": "malformed_request", "client": client_addr_str},
        )
        send_response(client_socket, bad_request_response(SECURITY_HEADERS))
        return

    if request is None:
        if WORKER_LOGGER.logger.isEnabledFor(logging.DEBUG):
            WORKER_LOGGER.debug(
                "Client disconnected during request",
                extra={"event": "client_disconnected", "client": client_addr_str},
            )
        return

    response = route_request(
        request,
        context.gateway,
        context.max_body_bytes,
        lifecycle,
        context.samples,
    )
    send_response(client_socket, response)
    WORKER_LOGGER.info(
        "Request complete",
        extra={
            "event": "request_complete",
            "client": client_addr_str,
            "method": request.method,
            "route": request.path,
            "status_code": response.status_code,
            "duration_ms": round((time.monotonic() - started) * 1000, 3),
        },
    )


def handle_client(
    client_socket: socket.socket,
    client_address: tuple[str, int],
    context: WorkerContext,
) -> None:
    """Serve a single request on the client socket, then close it."""
    current_thread = threading.current_thread()
    lifecycle = context.lifecycle
    if lifecycle is not None:
        lifecycle.register_worker(current_thread)
    if context.config is not None:
        client_socket.settimeout(context.config.socket_timeout)
    client_addr_str = f"{client_address[0]}:{client_address[1]}"
    set_correlation_id(generate_correlation_id())

    try:
        _serve_one(client_socket, client_addr_str, context)
    except (ConnectionError, TimeoutError, OSError, UnicodeDecodeError) as error:
        WORKER_LOGGER.error(
            "Error handling client connection",
            extra={
                "event": "connection_error",
                "client": client_addr_str,
                "error_type": type(error).__name__,
            },
        )
    except Exception as error:  # pylint: disable=broad-except
        WORKER_LOGGER.error(
            "Unexpected error in worker",
            extra={
                "event": "worker_error",
                "client": client_addr_str,
                "error_type": type(error).__name__,
            },
            exc_info=True,
        )
    finally:
        if lifecycle is not None:
            lifecycle.cleanup_worker(current_thread)
        try:
            client_socket.shutdown(socket.SHUT_WR)
        except OSError:
            pass
        client_socket.close()
        clear_correlation_id()
