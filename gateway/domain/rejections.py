"""Typed rejection outcomes for sandbox path resolution."""

from enum import Enum


class RejectionReason(str, Enum):
    """Stable, distinguishable kinds of resolution failure."""

    INVALID_INPUT = "invalid_input"
    DOUBLE_ENCODING = "double_encoding"
    TRAVERSAL = "traversal"
    NOT_FOUND = "not_found"
    IO_ERROR = "io_error"


class PathRejected(Exception):
    """Base class for every rejection raised by the resolver or the gateway.

    Messages describe the failed check only. They never include the
    canonicalized path, so callers cannot learn sandbox internals from them.
    """

    reason = RejectionReason.INVALID_INPUT

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.reason.value)


class InvalidInput(PathRejected):
    """Empty, whitespace-only, NUL-bearing, absolute or non-text input."""

    reason = RejectionReason.INVALID_INPUT


class DoubleEncoding(PathRejected):
    """Input still carries encoded traversal sequences after one decode."""

    reason = RejectionReason.DOUBLE_ENCODING


class Traversal(PathRejected):
    """Input designates a location outside the base directory."""

    reason = RejectionReason.TRAVERSAL


class NotFound(PathRejected):
    """Resolution succeeded but no regular file exists at the target."""

    reason = RejectionReason.NOT_FOUND


class SandboxIOError(PathRejected):
    """Filesystem failure unrelated to confinement."""

    reason = RejectionReason.IO_ERROR
