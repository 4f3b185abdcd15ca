"""Closing every server of a program together."""

import signal
import threading
from typing import Iterable, Optional

from webstack.domain.errors import LifecycleError
from webstack.domain.request_context import get_logger
from webstack.lifecycle.state import LifecycleState
from webstack.transport.accept_loop import ServerInstance

GROUP_LOGGER = get_logger("lifecycle.group")

SHUTDOWN_SIGNALS = (signal.SIGHUP, signal.SIGTERM, signal.SIGINT)


class ServerGroup:
    """An ordered set of servers that listen and shut down as one.

    Used as a context manager, leaving the block always runs
    :meth:`shutdown_all`, whatever ended it.
    """

    def __init__(self, servers: Iterable[ServerInstance] = ()) -> None:
        self.servers: list[ServerInstance] = list(servers)
        self._lock = threading.Lock()
        self._previous_handlers: dict[int, object] = {}

    def add(self, server: ServerInstance) -> ServerInstance:
        with self._lock:
            self.servers.append(server)
        return server

    def listen_all(self) -> None:
        """Bind every server that has a port configured."""
        for server in self.servers:
            if server.state is not LifecycleState.CREATED:
                # a shutdown signal arrived before this server was bound
                GROUP_LOGGER.info(
                    "Server already closing, not binding",
                    extra={"event": "server_not_bound", "server": server.name},
                )
                continue
            if server.options.address is None:
                GROUP_LOGGER.info(
                    "No listen port configured",
                    extra={"event": "server_not_bound", "server": server.name},
                )
                continue
            GROUP_LOGGER.info(
                "Starting server",
                extra={"event": "server_starting", "server": server.name},
            )
            try:
                server.listen()
            except LifecycleError:
                GROUP_LOGGER.info(
                    "Server closed while binding",
                    extra={"event": "server_not_bound", "server": server.name},
                )

    def shutdown_all(self) -> None:
        """Close every server's listening socket; in-flight work is not awaited."""
        with self._lock:
            servers = list(self.servers)
        for server in servers:
            server.close()
        GROUP_LOGGER.info(
            "All servers closed",
            extra={"event": "shutdown_complete", "servers": len(servers)},
        )

    def all_closed(self) -> bool:
        return all(server.state is LifecycleState.CLOSED for server in self.servers)

    def wait(self, poll_seconds: float = 0.5) -> None:
        """Block until every server that listened has closed.

        Waits in short slices so signal handlers keep running on the main
        thread.
        """
        for server in self.servers:
            if server.state is LifecycleState.CREATED:
                continue
            while not server.lifecycle.wait_closed(poll_seconds):
                pass

    def _handle_signal(self, signum: int, _frame) -> None:
        GROUP_LOGGER.info(
            "Received shutdown signal",
            extra={"event": "signal_received", "signal": signal.Signals(signum).name},
        )
        self.shutdown_all()

    def install_signal_handlers(self, signals: Optional[Iterable[int]] = None) -> None:
        """Route the shutdown signals to :meth:`shutdown_all`; main thread only."""
        for signum in signals or SHUTDOWN_SIGNALS:
            self._previous_handlers[signum] = signal.signal(signum, self._handle_signal)

    def restore_signal_handlers(self) -> None:
        for signum, handler in self._previous_handlers.items():
            signal.signal(signum, handler)
        self._previous_handlers.clear()

    def __enter__(self) -> "ServerGroup":
        return self

    def __exit__(self, exc_type, exc, traceback) -> None:
        self.shutdown_all()
        self.restore_signal_handlers()
