"""File read and fixture seeding handlers."""

import logging
from typing import Mapping

from gateway.domain.correlation_id import CorrelationLoggerAdapter
from gateway.domain.http_types import HttpRequest, HttpResponse
from gateway.domain.rejections import PathRejected, RejectionReason
from gateway.domain.response_builders import json_response, rejection_response
from gateway.pipeline.validation import (
    FieldValidationError,
    extract_filename,
    extract_filename_lenient,
    field_error_response,
)
from gateway.storage.sandbox import SandboxGateway

FILE_LOGGER = CorrelationLoggerAdapter(
    logging.getLogger("path_gateway.handlers.file"), {}
)


def read_response(
    request: HttpRequest,
    gateway: SandboxGateway,
    security_headers: dict[str, str],
) -> HttpResponse:
    """Serve ``POST /read``: the canonical path and the file's text content."""
    try:
        filename = extract_filename(request)
    except FieldValidationError as error:
        return field_error_response(error, security_headers)
    return _read_through_gateway(filename, gateway, security_headers)


def read_no_validate_response(
    request: HttpRequest,
    gateway: SandboxGateway,
    security_headers: dict[str, str],
) -> HttpResponse:
    """Serve ``POST /read-no-validate``; a missing name is read as ``""``."""
    try:
        filename = extract_filename_lenient(request)
    except FieldValidationError as error:
        return field_error_response(error, security_headers)
    return _read_through_gateway(filename, gateway, security_headers)


def _read_through_gateway(
    filename: str,
    gateway: SandboxGateway,
    security_headers: dict[str, str],
) -> HttpResponse:
    try:
        resolved_path, content = gateway.read_with_path(filename)
    except PathRejected as rejection:
        log = (
            FILE_LOGGER.error
            if rejection.reason is RejectionReason.IO_ERROR
            else FILE_LOGGER.warning
        )
        log(
            "File read rejected",
            extra={
                "event": "path_rejected",
                "requested_name": filename,
                "reason": rejection.reason.value,
            },
        )
        return rejection_response(rejection.reason, security_headers)

    FILE_LOGGER.info(
        "File read operation complete",
        extra={"event": "file_read_complete", "bytes_out": len(content)},
    )
    return json_response(
        200,
        {
            "path": str(resolved_path),
            "content": content.decode("utf-8", errors="replace"),
        },
        security_headers,
    )


def setup_sample_response(
    gateway: SandboxGateway,
    samples: Mapping[str, str],
    security_headers: dict[str, str],
) -> HttpResponse:
    """Serve ``POST /setup-sample`` by seeding the fixture files."""
    try:
        written = gateway.seed_files(samples)
    except PathRejected as rejection:
        FILE_LOGGER.error(
            "Sample seeding failed",
            extra={"event": "seed_failed", "reason": rejection.reason.value},
        )
        return rejection_response(rejection.reason, security_headers)
    return json_response(200, {"ok": True, "seeded": len(written)}, security_headers)
