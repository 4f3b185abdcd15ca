"""Worker thread logic for handling individual client connections."""

import logging
import socket
import ssl
from typing import Optional

from webstack.domain.errors import RequestEntityTooLarge
from webstack.domain.http_types import HttpRequest, HttpResponse
from webstack.domain.request_context import (
    bind_request_id,
    get_logger,
    new_request_id,
    reset_request_id,
)
from webstack.domain.response_builders import (
    bad_request_response,
    entity_too_large_response,
    internal_error_response,
)
from webstack.pipeline.chain import dispatch
from webstack.pipeline.io import receive_request, send_response
from webstack.transport.context import WorkerContext

WORKER_LOGGER = get_logger("transport.worker")


def _read_request(
    client_socket: socket.socket,
    buffer: bytes,
    client_address: tuple[str, int],
) -> tuple[Optional[HttpRequest], bytes, bool]:
    """Read one request; the flag says whether the connection must end."""
    client_addr = f"{client_address[0]}:{client_address[1]}"
    try:
        request, buffer = receive_request(client_socket, buffer, client_address[0])
    except RequestEntityTooLarge:
        WORKER_LOGGER.warning(
            "Request body size exceeded limit",
            extra={"event": "body_size_exceeded", "client": client_addr},
        )
        send_response(client_socket, entity_too_large_response())
        return None, b"", True
    except (ValueError, UnicodeDecodeError):
        WORKER_LOGGER.warning(
            "Malformed request received",
            extra={"event": "malformed_request", "client": client_addr},
        )
        send_response(client_socket, bad_request_response())
        return None, b"", True

    if request is None:
        if WORKER_LOGGER.logger.isEnabledFor(logging.DEBUG):
            WORKER_LOGGER.debug(
                "Client disconnected",
                extra={"event": "client_disconnected", "client": client_addr},
            )
        return None, buffer, True
    return request, buffer, False


def respond(context: WorkerContext, request: HttpRequest) -> HttpResponse:
    """Run ``request`` through the server's stages; failures become a 500."""
    try:
        return dispatch(context.stages, request)
    except Exception as error:  # pylint: disable=broad-except
        WORKER_LOGGER.error(
            "Middleware stage failed",
            extra={
                "event": "stage_error",
                "server": context.name,
                "route": request.path,
                "error_type": type(error).__name__,
                "error": str(error),
            },
            exc_info=True,
        )
        return internal_error_response()


def _handshake(client_socket: socket.socket, client_addr: str) -> bool:
    if not isinstance(client_socket, ssl.SSLSocket):
        return True
    try:
        client_socket.do_handshake()
    except (ssl.SSLError, OSError) as error:
        WORKER_LOGGER.info(
            "TLS handshake failed",
            extra={
                "event": "tls_handshake_failed",
                "client": client_addr,
                "error_type": type(error).__name__,
            },
        )
        return False
    return True


def _close_client(client_socket: socket.socket) -> None:
    try:
        client_socket.shutdown(socket.SHUT_WR)
    except OSError:
        pass
    client_socket.close()


def handle_client(
    client_socket: socket.socket,
    client_address: tuple[str, int],
    context: WorkerContext,
) -> None:
    """Serve requests on one connection until it closes or the server stops."""
    client_addr = f"{client_address[0]}:{client_address[1]}"
    client_socket.settimeout(context.socket_timeout)
    buffer = b""
    try:
        if not _handshake(client_socket, client_addr):
            return
        while not context.lifecycle.should_stop():
            token = bind_request_id(new_request_id())
            try:
                request, buffer, finished = _read_request(
                    client_socket, buffer, client_address
                )
                if finished or request is None:
                    break
                response = respond(context, request)
                send_response(client_socket, response)
                if response.close_connection:
                    break
            finally:
                reset_request_id(token)
    except (ConnectionError, TimeoutError, OSError) as error:
        WORKER_LOGGER.info(
            "Connection ended with an error",
            extra={
                "event": "connection_error",
                "client": client_addr,
                "error_type": type(error).__name__,
            },
        )
    finally:
        _close_client(client_socket)
