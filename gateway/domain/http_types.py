"""Shared HTTP type definitions to avoid circular imports."""

from dataclasses import dataclass


@dataclass
class HttpRequest:
    """A parsed HTTP request."""

    method: str
    path: str
    headers: dict[str, str]
    body: bytes


@dataclass
class HttpResponse:
    """An HTTP response to be written to a client.

    The gateway serves one request per connection, so every response closes it.
    """

    status_code: int
    reason: str
    headers: dict[str, str]
    body: bytes = b""

    @property
    def status_line(self) -> str:
        return f"HTTP/1.1 {self.status_code} {self.reason}"
