"""Server lifecycle state management."""

import logging
import threading
import time

from gateway.domain.correlation_id import CorrelationLoggerAdapter

LIFECYCLE_LOGGER = CorrelationLoggerAdapter(
    logging.getLogger("path_gateway.lifecycle"), {}
)


class ServerLifecycle:
    """Tracks the draining flag and in-flight worker threads."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._draining_event = threading.Event()
        self._workers: set[threading.Thread] = set()

    def is_draining(self) -> bool:
        return self._draining_event.is_set()

    def begin_draining(self) -> None:
        """Stop accepting work; in-flight requests are allowed to finish."""
        self._draining_event.set()
        LIFECYCLE_LOGGER.info(
            "Beginning graceful shutdown", extra={"event": "draining_started"}
        )

    def register_worker(self, thread: threading.Thread) -> None:
        with self._lock:
            self._workers.add(thread)

    def cleanup_worker(self, thread: threading.Thread) -> None:
        with self._lock:
            self._workers.discard(thread)

    def active_worker_count(self) -> int:
        with self._lock:
            return len(self._workers)

    def wait_for_workers(self, timeout: float) -> bool:
        """Join tracked workers; False when some are still alive at the deadline."""
        deadline = time.monotonic() + timeout
        while True:
            with self._lock:
                self._workers = {worker for worker in self._workers if worker.is_alive()}
                active_workers = list(self._workers)
            if not active_workers:
                return True
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                LIFECYCLE_LOGGER.warning(
                    "Shutdown timeout exceeded",
                    extra={
                        "event": "shutdown_timeout",
                        "remaining_workers": len(active_workers),
                    },
                )
                return False
            active_workers[0].join(timeout=min(0.1, remaining))
