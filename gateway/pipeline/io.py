"""HTTP input/output over raw sockets."""

import logging
import socket
import urllib.parse
from typing import Optional, Tuple

from gateway.bootstrap.config import HEADER_DELIMITER, MAX_BODY_BYTES
from gateway.domain.correlation_id import (
    CorrelationLoggerAdapter,
    get_correlation_id,
    set_correlation_id,
)
from gateway.domain.http_types import HttpRequest, HttpResponse
from gateway.pipeline.validation import RequestEntityTooLarge

IO_LOGGER = CorrelationLoggerAdapter(logging.getLogger("path_gateway.io"), {})

MAX_HEADER_BYTES = 16 * 1024


def parse_headers(lines: list[str]) -> dict[str, str]:
    """Convert raw header lines into a lowercase-keyed dictionary."""
    parsed = {}
    for line in lines:
        if ": " in line:
            name, value = line.split(": ", 1)
            parsed[name.lower()] = value
    return parsed


def parse_request_line(request_line: str) -> Tuple[str, str]:
    """Return the method and route path; the query string is discarded.

    The path is used for routing only and is not percent-decoded here.
    """
    try:
        method, target, _ = request_line.split(" ", 2)
    except ValueError as exc:
        raise ValueError("Invalid request line") from exc
    return method, urllib.parse.urlsplit(target).path


def determine_content_length(headers: dict[str, str], max_body_bytes: int) -> int:
    header_value = headers.get("content-length")
    if header_value is None:
        return 0
    try:
        content_length = int(header_value)
    except ValueError as exc:
        raise ValueError("Invalid Content-Length") from exc
    if content_length < 0:
        raise ValueError("Negative Content-Length")
    if content_length > max_body_bytes:
        raise RequestEntityTooLarge
    return content_length


def receive_request(
    client_socket: socket.socket, max_body_bytes: int = MAX_BODY_BYTES
) -> Optional[HttpRequest]:
    """Read one request from the socket; None when the client hangs up early."""
    buffer = b""
    while HEADER_DELIMITER not in buffer:
        if len(buffer) > MAX_HEADER_BYTES:
            raise ValueError("Header block too large")
        chunk = client_socket.recv(4096)
        if not chunk:
            return None
        buffer += chunk

    header_block, body = buffer.split(HEADER_DELIMITER, 1)
    header_lines = header_block.decode("iso-8859-1").split("\r\n")
    method, path = parse_request_line(header_lines[0])
    headers = parse_headers(header_lines[1:])

    incoming_correlation_id = headers.get("x-request-id")
    if incoming_correlation_id:
        set_correlation_id(incoming_correlation_id)

    content_length = determine_content_length(headers, max_body_bytes)
    while len(body) < content_length:
        chunk = client_socket.recv(4096)
        if not chunk:
            return None
        body += chunk

    IO_LOGGER.debug("Parsed request", extra={"method": method, "route": path})
    return HttpRequest(method, path, headers, body[:content_length])


def send_response(client_socket: socket.socket, response: HttpResponse) -> None:
    """Serialize and send the HTTP response over the socket."""
    headers = dict(response.headers)
    correlation_id = get_correlation_id()
    if correlation_id:
        headers["X-Request-ID"] = correlation_id
    headers["Content-Length"] = str(len(response.body))
    headers["Connection"] = "close"

    header_lines = [response.status_line]
    header_lines.extend(f"{name}: {value}" for name, value in headers.items())
    header_block = "\r\n".join(header_lines).encode("iso-8859-1") + HEADER_DELIMITER
    client_socket.sendall(header_block + response.body)
    IO_LOGGER.debug(
        "Sent response",
        extra={"status_code": response.status_code, "bytes_out": len(response.body)},
    )
