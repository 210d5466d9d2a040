"""Health check handler."""

import logging
from typing import Optional

from gateway.bootstrap.config import SECURITY_HEADERS
from gateway.domain.correlation_id import CorrelationLoggerAdapter
from gateway.domain.http_types import HttpResponse
from gateway.domain.response_builders import healthz_response
from gateway.lifecycle.state import ServerLifecycle

SYSTEM_LOGGER = CorrelationLoggerAdapter(
    logging.getLogger("path_gateway.handlers.system"), {}
)


def handle_healthz(lifecycle: Optional[ServerLifecycle]) -> HttpResponse:
    is_draining = lifecycle.is_draining() if lifecycle is not None else False
    if SYSTEM_LOGGER.logger.isEnabledFor(logging.DEBUG):
        SYSTEM_LOGGER.debug(
            "Health check performed", extra={"event": "healthz_check"}
        )
    return healthz_response(is_draining, SECURITY_HEADERS)
