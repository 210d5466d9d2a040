"""Context object shared across worker threads."""

from dataclasses import dataclass, field
from typing import Mapping, Optional

from gateway.bootstrap.config import MAX_BODY_BYTES, SAMPLE_FILES, ServerConfig
from gateway.lifecycle.state import ServerLifecycle
from gateway.storage.sandbox import SandboxGateway


@dataclass
class WorkerContext:
    """Dependencies shared across handler threads."""

    gateway: SandboxGateway
    lifecycle: Optional[ServerLifecycle] = None
    config: Optional[ServerConfig] = None
    max_body_bytes: int = MAX_BODY_BYTES
    samples: Mapping[str, str] = field(default_factory=lambda: dict(SAMPLE_FILES))
