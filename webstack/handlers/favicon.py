"""Favicon responder."""

import hashlib
import threading
from pathlib import Path
from typing import Optional

from webstack.bootstrap.options import FaviconOptions
from webstack.domain.http_types import HttpRequest, HttpResponse
from webstack.domain.request_context import get_logger
from webstack.domain.response_builders import (
    body_response,
    method_not_allowed_response,
    not_modified_response,
)

FAVICON_LOGGER = get_logger("handlers.favicon")

FAVICON_PATH = "/favicon.ico"
DEFAULT_ICON = Path(__file__).resolve().parent.parent / "resources" / "favicon.ico"
ALLOWED_METHODS = ("GET", "HEAD", "OPTIONS")


class FaviconStage:
    """Answers ``/favicon.ico`` from a configured or built-in icon.

    The icon is read on the first hit and kept in memory afterwards. Every
    other path passes through untouched.
    """

    name = "favicon"

    def __init__(self, options: FaviconOptions) -> None:
        self.icon_path = Path(options.path) if options.path else DEFAULT_ICON
        self.max_age_seconds = max(0, options.max_age_ms // 1000)
        self._lock = threading.Lock()
        self._icon: Optional[tuple[bytes, dict[str, str]]] = None

    def _load(self) -> tuple[bytes, dict[str, str]]:
        with self._lock:
            if self._icon is None:
                data = self.icon_path.read_bytes()
                digest = hashlib.md5(data, usedforsecurity=False).hexdigest()
                headers = {
                    "ETag": f'"{digest}"',
                    "Cache-Control": f"public, max-age={self.max_age_seconds}",
                }
                self._icon = (data, headers)
                FAVICON_LOGGER.debug(
                    "Favicon loaded",
                    extra={
                        "event": "favicon_loaded",
                        "path": self.icon_path.as_posix(),
                        "bytes_out": len(data),
                    },
                )
            return self._icon

    def __call__(self, request: HttpRequest, call_next) -> HttpResponse:
        if request.path != FAVICON_PATH:
            return call_next(request)

        if request.method not in ALLOWED_METHODS:
            return method_not_allowed_response(request, ALLOWED_METHODS)
        if request.method == "OPTIONS":
            return body_response(
                request, 200, b"", "text/plain", {"Allow": ", ".join(ALLOWED_METHODS)}
            )

        data, headers = self._load()
        if request.headers.get("if-none-match") == headers["ETag"]:
            return not_modified_response(request, headers)
        return body_response(request, 200, data, "image/x-icon", headers)
