"""Shared HTTP type definitions to avoid circular imports."""

from dataclasses import dataclass
from typing import Iterable, Optional


@dataclass
class HttpRequest:
    """Represents a parsed HTTP request."""

    method: str
    path: str
    headers: dict[str, str]
    body: bytes = b""
    target: str = ""
    http_version: str = "1.1"
    remote_addr: str = ""

    @property
    def url(self) -> str:
        """Original request target, including any query string."""
        return self.target or self.path


@dataclass
class HttpResponse:
    """Represents an HTTP response to be sent to a client."""

    status_line: str
    headers: dict[str, str]
    body: bytes
    close_connection: bool
    body_iter: Optional[Iterable[bytes]] = None

    @property
    def status_code(self) -> int:
        return int(self.status_line.split(" ", 2)[1])

    def header(self, name: str) -> Optional[str]:
        """Case-insensitive response header lookup."""
        lowered = name.lower()
        for key, value in self.headers.items():
            if key.lower() == lowered:
                return value
        return None


def should_close(headers: dict[str, str], http_version: str = "1.1") -> bool:
    """Determine whether the connection should be closed after responding."""
    connection = headers.get("connection", "").lower()
    if http_version == "1.0":
        return connection != "keep-alive"
    return connection == "close"
