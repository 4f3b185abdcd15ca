"""Static file stage."""

import logging
import mimetypes
import urllib.parse
from email.utils import formatdate, parsedate_to_datetime
from pathlib import Path
from typing import Iterator

from webstack.bootstrap.options import StaticOptions
from webstack.domain.http_types import HttpRequest, HttpResponse
from webstack.domain.request_context import get_logger
from webstack.domain.response_builders import (
    forbidden_response,
    not_modified_response,
    redirect_response,
    stream_response,
)
from webstack.domain.sandbox import ForbiddenPath, is_hidden, resolve_sandbox_path

STATIC_LOGGER = get_logger("handlers.static")

SERVED_METHODS = ("GET", "HEAD")


def stream_file(filepath: Path, chunk_size: int = 65536) -> Iterator[bytes]:
    """Yield file contents in fixed-size chunks for streaming responses."""
    with open(filepath, "rb") as file_handle:
        while True:
            chunk = file_handle.read(chunk_size)
            if not chunk:
                break
            yield chunk


def content_type_for_path(filepath: Path) -> str:
    mime_type, _ = mimetypes.guess_type(filepath.as_posix())
    if mime_type is None:
        return "application/octet-stream"
    if mime_type.startswith("text/") or mime_type in (
        "application/javascript",
        "application/json",
    ):
        return f"{mime_type}; charset=UTF-8"
    return mime_type


def _is_fresh(request: HttpRequest, etag: str, mtime: float) -> bool:
    if_none_match = request.headers.get("if-none-match")
    if if_none_match is not None:
        candidates = {tag.strip() for tag in if_none_match.split(",")}
        return "*" in candidates or etag in candidates
    if_modified_since = request.headers.get("if-modified-since")
    if if_modified_since:
        try:
            since = parsedate_to_datetime(if_modified_since).timestamp()
        except (TypeError, ValueError):
            return False
        return int(mtime) <= since
    return False


class StaticStage:
    """Serve files under a root directory, passing on everything it cannot.

    Only GET and HEAD are served. Directories get a trailing-slash redirect
    and then their index document; missing files and dotfiles fall through
    to the next stage.
    """

    name = "static"

    def __init__(self, options: StaticOptions) -> None:
        self.root = options.path
        self.max_age_seconds = max(0, options.max_age_ms // 1000)
        self.hidden = options.hidden
        self.redirect = options.redirect
        self.index = options.index

    def __call__(self, request: HttpRequest, call_next) -> HttpResponse:
        if request.method not in SERVED_METHODS:
            return call_next(request)
        if not self.hidden and is_hidden(request.path):
            return call_next(request)

        try:
            target = resolve_sandbox_path(self.root, request.path)
        except ForbiddenPath:
            STATIC_LOGGER.warning(
                "Forbidden path access blocked",
                extra={"event": "forbidden_path", "route": request.path},
            )
            return forbidden_response(request)

        try:
            is_directory = target.is_dir()
            if is_directory:
                target = target / self.index
            found = target.is_file()
        except OSError:
            # ENAMETOOLONG and the like: a name the file system cannot hold is absent
            is_directory = found = False

        trailing_slash = request.path.endswith("/")
        if is_directory and not trailing_slash:
            if not self.redirect:
                return call_next(request)
            return redirect_response(request, self._slash_location(request))
        # a file never matches a path with a trailing slash
        if not found or (trailing_slash and not is_directory):
            return call_next(request)
        return self._file_response(request, target)

    @staticmethod
    def _slash_location(request: HttpRequest) -> str:
        _, _, query = request.url.partition("?")
        location = urllib.parse.quote(request.path + "/")
        return f"{location}?{query}" if query else location

    def _file_response(self, request: HttpRequest, target: Path) -> HttpResponse:
        stat = target.stat()
        etag = f'W/"{stat.st_size:x}-{int(stat.st_mtime * 1000):x}"'
        headers = {
            "Content-Type": content_type_for_path(target),
            "Cache-Control": f"public, max-age={self.max_age_seconds}",
            "Last-Modified": formatdate(stat.st_mtime, usegmt=True),
            "ETag": etag,
        }
        if _is_fresh(request, etag, stat.st_mtime):
            return not_modified_response(request, headers)

        if STATIC_LOGGER.logger.isEnabledFor(logging.DEBUG):
            STATIC_LOGGER.debug(
                "Serving file",
                extra={
                    "event": "file_served",
                    "path": target.as_posix(),
                    "bytes_out": stat.st_size,
                },
            )
        return stream_response(request, stat.st_size, stream_file(target), headers)
