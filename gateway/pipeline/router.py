"""Request routing logic."""

import logging
from typing import Mapping, Optional

from gateway.bootstrap.config import (
    HEALTHZ_ENDPOINT,
    READ_ENDPOINT,
    READ_NO_VALIDATE_ENDPOINT,
    ROUTE_METHODS,
    SAMPLE_FILES,
    SECURITY_HEADERS,
    SETUP_SAMPLE_ENDPOINT,
)
from gateway.domain.correlation_id import CorrelationLoggerAdapter
from gateway.domain.http_types import HttpRequest, HttpResponse
from gateway.domain.response_builders import not_found_response
from gateway.handlers.file_handler import (
    read_no_validate_response,
    read_response,
    setup_sample_response,
)
from gateway.handlers.system_handlers import handle_healthz
from gateway.lifecycle.state import ServerLifecycle
from gateway.pipeline.validation import validate_request
from gateway.storage.sandbox import SandboxGateway

ROUTER_LOGGER = CorrelationLoggerAdapter(
    logging.getLogger("path_gateway.pipeline.router"), {}
)


def route_request(
    request: HttpRequest,
    gateway: SandboxGateway,
    max_body_bytes: int,
    lifecycle: Optional[ServerLifecycle] = None,
    samples: Mapping[str, str] = SAMPLE_FILES,
) -> HttpResponse:
    """Dispatch the request to its handler and return the response."""
    allowed_methods = ROUTE_METHODS.get(request.path)
    if allowed_methods is None:
        ROUTER_LOGGER.info(
            "No matching route found",
            extra={
                "event": "route_not_found",
                "route": request.path,
                "method": request.method,
            },
        )
        return not_found_response(SECURITY_HEADERS)

    validation_error = validate_request(
        request, allowed_methods, max_body_bytes, SECURITY_HEADERS
    )
    if validation_error is not None:
        return validation_error

    if ROUTER_LOGGER.logger.isEnabledFor(logging.DEBUG):
        ROUTER_LOGGER.debug(
            "Route matched", extra={"event": "route_matched", "route": request.path}
        )
    if request.path == READ_ENDPOINT:
        return read_response(request, gateway, SECURITY_HEADERS)
    if request.path == READ_NO_VALIDATE_ENDPOINT:
        return read_no_validate_response(request, gateway, SECURITY_HEADERS)
    if request.path == SETUP_SAMPLE_ENDPOINT:
        return setup_sample_response(gateway, samples, SECURITY_HEADERS)
    if request.path == HEALTHZ_ENDPOINT:
        return handle_healthz(lifecycle)
    return not_found_response(SECURITY_HEADERS)
