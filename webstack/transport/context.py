"""Context object shared across worker threads of one server."""

from dataclasses import dataclass, field
from typing import Sequence

from webstack.bootstrap.config import DEFAULT_SOCKET_TIMEOUT
from webstack.lifecycle.state import ServerLifecycle
from webstack.pipeline.chain import Middleware


@dataclass
class WorkerContext:
    """Dependencies shared across handler threads."""

    name: str
    lifecycle: ServerLifecycle
    stages: Sequence[Middleware] = field(default_factory=list)
    socket_timeout: float = DEFAULT_SOCKET_TIMEOUT
