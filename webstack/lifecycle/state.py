"""Server lifecycle state management."""

import enum
import threading
from typing import Optional

from webstack.domain.errors import LifecycleError
from webstack.domain.request_context import get_logger

LIFECYCLE_LOGGER = get_logger("lifecycle")


class LifecycleState(enum.Enum):
    CREATED = "created"
    LISTENING = "listening"
    CLOSING = "closing"
    CLOSED = "closed"


_TRANSITIONS = {
    LifecycleState.CREATED: {LifecycleState.LISTENING, LifecycleState.CLOSED},
    LifecycleState.LISTENING: {LifecycleState.CLOSING},
    LifecycleState.CLOSING: {LifecycleState.CLOSED},
    LifecycleState.CLOSED: set(),
}


class ServerLifecycle:
    """Tracks one server through created, listening, closing and closed."""

    def __init__(self, name: str) -> None:
        self.name = name
        self._lock = threading.Lock()
        self._state = LifecycleState.CREATED
        self._stop_event = threading.Event()
        self._closed_event = threading.Event()

    @property
    def state(self) -> LifecycleState:
        with self._lock:
            return self._state

    def _advance(self, target: LifecycleState) -> None:
        with self._lock:
            if target not in _TRANSITIONS[self._state]:
                raise LifecycleError(
                    f"{self.name}: cannot go from {self._state.value} to {target.value}"
                )
            self._state = target
        self._log_transition(target)

    def _log_transition(self, target: LifecycleState) -> None:
        LIFECYCLE_LOGGER.debug(
            "Lifecycle transition",
            extra={
                "event": "state_changed",
                "server": self.name,
                "state": target.value,
            },
        )

    def mark_listening(self) -> None:
        self._advance(LifecycleState.LISTENING)

    def begin_closing(self) -> bool:
        """Request a stop; returns False when the server is already on its way out.

        A server that never listened goes straight to closed.
        """
        with self._lock:
            if self._state is LifecycleState.LISTENING:
                self._state = LifecycleState.CLOSING
            elif self._state is LifecycleState.CREATED:
                self._state = LifecycleState.CLOSED
                self._closed_event.set()
            else:
                return False
            target = self._state
            self._stop_event.set()
        self._log_transition(target)
        return True

    def mark_closed(self) -> None:
        self._advance(LifecycleState.CLOSED)
        self._closed_event.set()

    def should_stop(self) -> bool:
        """Check if the accept loop should stop taking connections."""
        return self._stop_event.is_set()

    def wait_closed(self, timeout: Optional[float] = None) -> bool:
        """Block until closed; returns False if ``timeout`` elapsed first."""
        return self._closed_event.wait(timeout)
