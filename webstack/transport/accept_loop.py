"""Main connection acceptance loop and the server object that owns it."""

import logging
import socket
import ssl
import threading
from typing import Optional, Sequence

from webstack.bootstrap.config import ACCEPT_POLL_SECONDS, DEFAULT_SOCKET_TIMEOUT
from webstack.bootstrap.options import ServerOptions
from webstack.bootstrap.socket_factory import create_listening_socket
from webstack.domain.errors import LifecycleError
from webstack.domain.request_context import get_logger
from webstack.lifecycle.state import LifecycleState, ServerLifecycle
from webstack.pipeline.chain import Middleware
from webstack.transport.context import WorkerContext
from webstack.transport.worker import handle_client

ACCEPT_LOGGER = get_logger("transport.accept")


def run_accept_loop(server_socket: socket.socket, context: WorkerContext) -> None:
    """Accept connections until the lifecycle asks to stop, then close."""
    lifecycle = context.lifecycle
    try:
        while not lifecycle.should_stop():
            try:
                client_socket, client_address = server_socket.accept()
            except socket.timeout:
                continue
            except OSError as error:
                if lifecycle.should_stop():
                    break
                ACCEPT_LOGGER.error(
                    "Socket accept failed",
                    extra={
                        "event": "accept_error",
                        "server": context.name,
                        "error_type": type(error).__name__,
                    },
                )
                continue

            if ACCEPT_LOGGER.logger.isEnabledFor(logging.DEBUG):
                ACCEPT_LOGGER.debug(
                    "Client connection accepted",
                    extra={
                        "event": "client_accepted",
                        "client": f"{client_address[0]}:{client_address[1]}",
                    },
                )
            threading.Thread(
                target=handle_client,
                args=(client_socket, client_address, context),
                name=f"{context.name}-worker",
                daemon=True,
            ).start()
    finally:
        server_socket.close()
        lifecycle.begin_closing()
        lifecycle.mark_closed()
        ACCEPT_LOGGER.info(
            "Server closed", extra={"event": "server_closed", "server": context.name}
        )


class ServerInstance:
    """One configured server: its stages, optional TLS context and socket.

    ``listen`` binds and returns at once; connections are accepted on a
    background thread. ``close`` stops accepting and closes the listening
    socket and the access log without waiting for in-flight responses.
    """

    def __init__(
        self,
        options: ServerOptions,
        stages: Sequence[Middleware],
        tls_context: Optional[ssl.SSLContext] = None,
        socket_timeout: float = DEFAULT_SOCKET_TIMEOUT,
    ) -> None:
        self.options = options
        self.name = options.name
        self.stages = list(stages)
        self.tls_context = tls_context
        self.lifecycle = ServerLifecycle(options.name)
        self.context = WorkerContext(
            name=options.name,
            lifecycle=self.lifecycle,
            stages=self.stages,
            socket_timeout=socket_timeout,
        )
        self.address: Optional[tuple[str, int]] = None
        self._thread: Optional[threading.Thread] = None
        self._released = False

    @property
    def is_tls(self) -> bool:
        return self.tls_context is not None

    @property
    def state(self) -> LifecycleState:
        return self.lifecycle.state

    def listen(self, address: Optional[tuple[str, int]] = None) -> tuple[str, int]:
        """Bind to ``address`` (default: the configured one) and start serving."""
        target = address or self.options.address
        if target is None:
            raise ValueError(f"{self.name}: no listen address configured")
        if self.lifecycle.state is not LifecycleState.CREATED:
            raise LifecycleError(f"{self.name}: already {self.lifecycle.state.value}")
        server_socket = create_listening_socket(self.name, target, self.tls_context)
        try:
            self.lifecycle.mark_listening()
        except LifecycleError:
            server_socket.close()
            raise
        self.address = server_socket.getsockname()[:2]
        self._thread = threading.Thread(
            target=run_accept_loop,
            args=(server_socket, self.context),
            name=f"{self.name}-accept",
            daemon=True,
        )
        self._thread.start()
        ACCEPT_LOGGER.info(
            "Listening for requests",
            extra={
                "event": "server_listening",
                "server": self.name,
                "host": self.address[0],
                "port": self.address[1],
                "tls": self.is_tls,
                "stages": [stage.name for stage in self.stages],
            },
        )
        return self.address

    def close(self, timeout: float = ACCEPT_POLL_SECONDS * 4) -> bool:
        """Stop accepting, release the socket and the access stream.

        Returns True once the listening socket is closed.
        """
        self.lifecycle.begin_closing()
        closed = True
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join(timeout)
            closed = not self._thread.is_alive()
        if not self._released:
            self._released = True
            for stage in self.stages:
                release = getattr(stage, "close", None)
                if release is not None:
                    release()
        return closed
