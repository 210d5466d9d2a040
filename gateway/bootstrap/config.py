"""Gateway configuration and CLI argument parsing."""

import argparse
import os
from dataclasses import dataclass


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    return int(value) if value is not None else default


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.lower() in {"1", "true", "yes", "on"}


MAX_BODY_BYTES = _env_int("PATH_GATEWAY_MAX_BODY_BYTES", 64 * 1024)
MAX_READ_BYTES = _env_int("PATH_GATEWAY_MAX_READ_BYTES", 10 * 1024 * 1024)
DEFAULT_SOCKET_TIMEOUT = _env_int("PATH_GATEWAY_SOCKET_TIMEOUT", 30)
DEFAULT_SHUTDOWN_GRACE_SECONDS = _env_int("PATH_GATEWAY_SHUTDOWN_GRACE_SECONDS", 10)

HEADER_DELIMITER = b"\r\n\r\n"
READ_ENDPOINT = "/read"
READ_NO_VALIDATE_ENDPOINT = "/read-no-validate"
SETUP_SAMPLE_ENDPOINT = "/setup-sample"
HEALTHZ_ENDPOINT = "/healthz"
ROUTE_METHODS = {
    READ_ENDPOINT: {"POST"},
    READ_NO_VALIDATE_ENDPOINT: {"POST"},
    SETUP_SAMPLE_ENDPOINT: {"POST"},
    HEALTHZ_ENDPOINT: {"GET"},
}

SAMPLE_FILES = {
    "hello.txt": "Hello from safe file!\n",
    "notes/readme.md": "# Readme\nSample readme file",
}

SECURITY_HEADERS = {
    "Content-Security-Policy": (
        "default-src 'self'; script-src 'self'; style-src 'self'; img-src 'self'; "
        "connect-src 'self'; form-action 'self'; frame-ancestors 'none'; "
        "object-src 'none'; base-uri 'self'"
    ),
    "Permissions-Policy": "geolocation=(), microphone=(), camera=(), fullscreen=()",
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Cross-Origin-Opener-Policy": "same-origin",
    "Cross-Origin-Resource-Policy": "same-origin",
    "Cross-Origin-Embedder-Policy": "require-corp",
    "Cache-Control": "no-store, no-cache, must-revalidate",
    "Pragma": "no-cache",
    "Expires": "0",
}


@dataclass
class ServerConfig:
    """Timeouts and shutdown settings for the HTTP front end."""

    socket_timeout: int
    shutdown_grace_seconds: int


def parse_cli_args(argv: list[str]) -> argparse.Namespace:
    """Return parsed CLI arguments for gateway configuration."""
    parser = argparse.ArgumentParser(description="Sandboxed file gateway")
    parser.add_argument(
        "--directory",
        default=os.getenv("PATH_GATEWAY_BASE_DIR", "files"),
        help="Base directory all file access is confined to (created if missing)",
    )
    parser.add_argument("--host", default="localhost")
    parser.add_argument("--port", type=int, default=_env_int("PATH_GATEWAY_PORT", 4000))
    parser.add_argument(
        "--log-level",
        default=os.getenv("PATH_GATEWAY_LOG_LEVEL", "INFO").upper(),
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        type=str.upper,
    )
    parser.add_argument(
        "--log-destination",
        default=os.getenv("PATH_GATEWAY_LOG_DESTINATION", "stdout"),
        help="stdout or a file path",
    )
    parser.add_argument(
        "--log-json",
        action=argparse.BooleanOptionalAction,
        default=_env_bool("PATH_GATEWAY_LOG_JSON", True),
        help="Emit structured JSON log lines",
    )
    parser.add_argument(
        "--follow-symlinks",
        action=argparse.BooleanOptionalAction,
        default=_env_bool("PATH_GATEWAY_FOLLOW_SYMLINKS", True),
        help="Follow symlinks inside the base directory; rejected when disabled",
    )
    parser.add_argument(
        "--seed-samples",
        action=argparse.BooleanOptionalAction,
        default=_env_bool("PATH_GATEWAY_SEED_SAMPLES", False),
        help="Write the sample fixture files at startup",
    )
    parser.add_argument(
        "--socket-timeout",
        type=int,
        default=DEFAULT_SOCKET_TIMEOUT,
        help="Socket timeout in seconds for request processing",
    )
    parser.add_argument(
        "--shutdown-grace-seconds",
        type=int,
        default=DEFAULT_SHUTDOWN_GRACE_SECONDS,
        help="Grace period in seconds for graceful shutdown",
    )
    return parser.parse_args(argv)
