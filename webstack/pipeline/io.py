"""HTTP Input/Output operations."""

import logging
import socket
import urllib.parse
from typing import Optional, Tuple

from webstack.bootstrap.config import HEADER_DELIMITER, MAX_BODY_BYTES
from webstack.domain.errors import RequestEntityTooLarge
from webstack.domain.http_types import HttpRequest, HttpResponse
from webstack.domain.request_context import get_logger

IO_LOGGER = get_logger("pipeline.io")

MAX_HEADER_BYTES = 64 * 1024
SUPPORTED_VERSIONS = ("HTTP/1.0", "HTTP/1.1")


def parse_headers(lines: list[str]) -> dict[str, str]:
    """Convert raw header lines into a lowercase-keyed dictionary."""
    parsed = {}
    for line in lines:
        if ":" in line:
            name, value = line.split(":", 1)
            parsed[name.strip().lower()] = value.strip()
    return parsed


def parse_request_line(request_line: str) -> Tuple[str, str, str, str]:
    """Return method, decoded path, raw target and HTTP version."""
    try:
        method, target, version = request_line.split(" ", 2)
    except ValueError as exc:
        raise ValueError("Invalid request line") from exc
    if version not in SUPPORTED_VERSIONS:
        raise ValueError("Unsupported HTTP version")

    parsed_target = urllib.parse.urlsplit(target)
    path = urllib.parse.unquote(parsed_target.path)
    return method, path, target, version[len("HTTP/") :]


def determine_content_length(headers: dict[str, str]) -> int:
    """Validate and return the declared Content-Length for the request."""
    header_value = headers.get("content-length")
    if header_value is None:
        return 0
    try:
        content_length = int(header_value)
    except ValueError as exc:
        raise ValueError("Invalid Content-Length") from exc
    if content_length < 0:
        raise ValueError("Negative Content-Length")
    if content_length > MAX_BODY_BYTES:
        raise RequestEntityTooLarge
    return content_length


def receive_request(
    client_socket: socket.socket, buffer: bytes, remote_addr: str = ""
) -> Tuple[Optional[HttpRequest], bytes]:
    """Read bytes from the socket until a complete request is available."""
    while HEADER_DELIMITER not in buffer:
        if len(buffer) > MAX_HEADER_BYTES:
            raise ValueError("Header block too large")
        chunk = client_socket.recv(4096)
        if not chunk:
            return None, b""
        buffer += chunk

    header_block, remainder = buffer.split(HEADER_DELIMITER, 1)
    header_lines = header_block.decode("iso-8859-1").split("\r\n")
    method, path, target, version = parse_request_line(header_lines[0])
    headers = parse_headers(header_lines[1:])
    content_length = determine_content_length(headers)

    while len(remainder) < content_length:
        chunk = client_socket.recv(4096)
        if not chunk:
            return None, b""
        remainder += chunk

    body = remainder[:content_length]
    leftover = remainder[content_length:]
    if IO_LOGGER.logger.isEnabledFor(logging.DEBUG):
        IO_LOGGER.debug(
            "Parsed request",
            extra={"event": "request_parsed", "method": method, "route": path},
        )
    request = HttpRequest(
        method,
        path,
        headers,
        body,
        target=target,
        http_version=version,
        remote_addr=remote_addr,
    )
    return request, leftover


def send_response(client_socket: socket.socket, response: HttpResponse) -> int:
    """Serialize the response onto the socket and return the body bytes sent."""
    headers = dict(response.headers)
    if response.body_iter is None and "Content-Length" not in headers:
        headers["Content-Length"] = str(len(response.body))
    if response.close_connection:
        headers["Connection"] = "close"

    header_lines = [response.status_line]
    header_lines.extend(f"{name}: {value}" for name, value in headers.items())
    header_block = "\r\n".join(header_lines).encode("latin-1") + HEADER_DELIMITER

    sent = len(response.body)
    client_socket.sendall(header_block + response.body)
    if response.body_iter is not None:
        for chunk in response.body_iter:
            if chunk:
                client_socket.sendall(chunk)
                sent += len(chunk)
    if IO_LOGGER.logger.isEnabledFor(logging.DEBUG):
        IO_LOGGER.debug(
            "Sent response",
            extra={
                "event": "response_sent",
                "status_code": response.status_code,
                "bytes_out": sent,
            },
        )
    return sent
