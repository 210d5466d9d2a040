"""Request validation utilities for the gateway's HTTP front end."""

import json
from typing import Optional

from gateway.domain.http_types import HttpRequest, HttpResponse
from gateway.domain.response_builders import (
    entity_too_large_response,
    method_not_allowed_response,
    validation_error_response,
)


class RequestEntityTooLarge(Exception):
    """Raised when a request body exceeds configured limits."""


class FieldValidationError(ValueError):
    """Raised when a request body field is missing or has the wrong type."""

    def __init__(self, param: str, message: str) -> None:
        super().__init__(message)
        self.param = param
        self.message = message


def enforce_allowed_method(
    request: HttpRequest,
    allowed_methods: set[str],
    security_headers: dict[str, str],
) -> Optional[HttpResponse]:
    if request.method in allowed_methods:
        return None
    return method_not_allowed_response(allowed_methods, security_headers)


def enforce_body_size(
    request: HttpRequest, max_body_bytes: int, security_headers: dict[str, str]
) -> Optional[HttpResponse]:
    if len(request.body) > max_body_bytes:
        return entity_too_large_response(security_headers)
    return None


def _json_object(request: HttpRequest) -> dict:
    try:
        payload = json.loads(request.body.decode("utf-8")) if request.body else {}
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise FieldValidationError("body", "body must be a JSON object") from exc
    if not isinstance(payload, dict):
        raise FieldValidationError("body", "body must be a JSON object")
    return payload


def extract_filename(request: HttpRequest) -> str:
    """Return the ``filename`` field of a JSON body as a non-empty string.

    Only the type is checked here. Whitespace, encoding and traversal are
    left to the path resolver so every caller goes through the same stages.
    """
    payload = _json_object(request)
    if "filename" not in payload:
        raise FieldValidationError("filename", "filename required")
    filename = payload["filename"]
    if not isinstance(filename, str):
        raise FieldValidationError("filename", "filename must be a string")
    if filename == "":
        raise FieldValidationError("filename", "filename must not be empty")
    return filename


def extract_filename_lenient(request: HttpRequest) -> str:
    """Return the ``filename`` field when it is a string, otherwise ``""``."""
    filename = _json_object(request).get("filename")
    return filename if isinstance(filename, str) else ""


def validate_request(
    request: HttpRequest,
    allowed_methods: set[str],
    max_body_bytes: int,
    security_headers: dict[str, str],
) -> Optional[HttpResponse]:
    """Return an error response when the request fails generic checks."""
    method_error = enforce_allowed_method(request, allowed_methods, security_headers)
    if method_error is not None:
        return method_error
    return enforce_body_size(request, max_body_bytes, security_headers)


def field_error_response(
    error: FieldValidationError, security_headers: dict[str, str]
) -> HttpResponse:
    return validation_error_response(error.param, error.message, security_headers)
