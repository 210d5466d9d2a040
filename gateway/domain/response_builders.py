"""Pure HTTP response builders."""

import json
from typing import Any, Iterable

from gateway.domain.http_types import HttpResponse
from gateway.domain.rejections import RejectionReason

REASON_PHRASES = {
    200: "OK",
    400: "Bad Request",
    403: "Forbidden",
    404: "Not Found",
    405: "Method Not Allowed",
    413: "Payload Too Large",
    500: "Internal Server Error",
    503: "Service Unavailable",
}

REJECTION_STATUS = {
    RejectionReason.INVALID_INPUT: 400,
    RejectionReason.DOUBLE_ENCODING: 400,
    RejectionReason.TRAVERSAL: 403,
    RejectionReason.NOT_FOUND: 404,
    RejectionReason.IO_ERROR: 500,
}


def json_response(
    status_code: int, payload: Any, security_headers: dict[str, str]
) -> HttpResponse:
    """Serialize ``payload`` as a JSON response carrying the security headers."""
    headers = {"Content-Type": "application/json; charset=utf-8", **security_headers}
    return HttpResponse(
        status_code,
        REASON_PHRASES[status_code],
        headers,
        json.dumps(payload).encode("utf-8"),
    )


def error_response(
    status_code: int, error: str, security_headers: dict[str, str]
) -> HttpResponse:
    return json_response(status_code, {"error": error}, security_headers)


def rejection_response(
    reason: RejectionReason, security_headers: dict[str, str]
) -> HttpResponse:
    """Map a rejection kind to its status code without exposing any path."""
    return error_response(REJECTION_STATUS[reason], reason.value, security_headers)


def validation_error_response(
    param: str, message: str, security_headers: dict[str, str]
) -> HttpResponse:
    """Produce a 400 listing a field-level validation error."""
    return json_response(
        400, {"errors": [{"param": param, "msg": message}]}, security_headers
    )


def bad_request_response(security_headers: dict[str, str]) -> HttpResponse:
    return error_response(400, "bad_request", security_headers)


def not_found_response(security_headers: dict[str, str]) -> HttpResponse:
    return error_response(404, "not_found", security_headers)


def entity_too_large_response(security_headers: dict[str, str]) -> HttpResponse:
    return error_response(413, "payload_too_large", security_headers)


def method_not_allowed_response(
    allowed_methods: Iterable[str], security_headers: dict[str, str]
) -> HttpResponse:
    """Produce a 405 response enumerating the supported HTTP methods."""
    response = error_response(405, "method_not_allowed", security_headers)
    response.headers["Allow"] = ", ".join(sorted(allowed_methods))
    return response


def healthz_response(is_draining: bool, security_headers: dict[str, str]) -> HttpResponse:
    if is_draining:
        return json_response(503, {"status": "draining"}, security_headers)
    return json_response(200, {"status": "ok"}, security_headers)


def draining_response(security_headers: dict[str, str]) -> HttpResponse:
    return error_response(503, "draining", security_headers)
