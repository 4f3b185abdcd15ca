"""Listening sockets and TLS server contexts."""

import os
import socket
import ssl
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from webstack.bootstrap.config import ACCEPT_POLL_SECONDS
from webstack.bootstrap.options import TlsOptions
from webstack.domain.errors import StartupError
from webstack.domain.request_context import get_logger

SOCKET_LOGGER = get_logger("bootstrap.socket")


@dataclass(frozen=True)
class TlsMaterial:
    """Key and certificate bytes read during startup."""

    key: bytes
    cert: bytes


def read_tls_material(name: str, tls: TlsOptions) -> TlsMaterial:
    """Read the key and certificate files; any failure is fatal."""
    try:
        key = Path(tls.key_path).read_bytes()
        cert = Path(tls.cert_path).read_bytes()
    except OSError as error:
        SOCKET_LOGGER.critical(
            "Failed to read TLS key material",
            extra={
                "event": "startup_failed",
                "server": name,
                "error": str(error),
                "error_type": type(error).__name__,
            },
        )
        raise StartupError(name, f"cannot read TLS material: {error}") from error
    return TlsMaterial(key=key, cert=cert)


def build_tls_context(name: str, material: TlsMaterial) -> ssl.SSLContext:
    """Build a server context from in-memory PEM material.

    :meth:`ssl.SSLContext.load_cert_chain` only accepts file names, so the
    bytes are written to a private temporary directory that is removed once
    the chain is loaded.
    """
    context = ssl.SSLContext(ssl.PROTOCOL_TLS_SERVER)
    with tempfile.TemporaryDirectory(prefix="webstack-tls-") as scratch:
        cert_file = os.path.join(scratch, "cert.pem")
        key_file = os.path.join(scratch, "key.pem")
        for target, payload in ((cert_file, material.cert), (key_file, material.key)):
            descriptor = os.open(target, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o600)
            with os.fdopen(descriptor, "wb") as handle:
                handle.write(payload)
        try:
            context.load_cert_chain(cert_file, key_file)
        except ssl.SSLError as error:
            SOCKET_LOGGER.critical(
                "Failed to load TLS certificates",
                extra={"event": "startup_failed", "server": name, "error": str(error)},
            )
            raise StartupError(name, f"invalid TLS material: {error}") from error
    return context


def create_listening_socket(
    name: str,
    address: tuple[str, int],
    tls_context: Optional[ssl.SSLContext] = None,
) -> socket.socket:
    """Bind and listen on ``address``; wrap in TLS when a context is given.

    The TLS wrapper defers the handshake to the worker so a slow client
    cannot stall the accept loop.
    """
    try:
        server_socket = socket.create_server(address, reuse_port=False)
    except OSError as error:
        SOCKET_LOGGER.critical(
            "Failed to bind listening socket",
            extra={
                "event": "startup_failed",
                "server": name,
                "host": address[0],
                "port": address[1],
                "error": str(error),
            },
        )
        raise StartupError(name, f"cannot bind {address[0]}:{address[1]}") from error
    server_socket.settimeout(ACCEPT_POLL_SECONDS)
    if tls_context is not None:
        server_socket = tls_context.wrap_socket(
            server_socket, server_side=True, do_handshake_on_connect=False
        )
    return server_socket
