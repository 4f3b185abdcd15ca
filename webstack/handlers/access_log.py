"""Access logging stage.

Each request that reaches this stage produces one line on the server's
access stream. Lines are built from a format string of ``:token`` and
``:token[argument]`` placeholders; unknown tokens and missing values
render as ``-``.
"""

import logging
import re
import time
from dataclasses import dataclass
from email.utils import formatdate
from typing import Callable, Optional, TextIO

from webstack.bootstrap.options import LoggerOptions
from webstack.domain.http_types import HttpRequest, HttpResponse
from webstack.domain.response_builders import internal_error_response

TOKEN_PATTERN = re.compile(r":([-\w]{2,})(?:\[([^\]]+)\])?")

NAMED_FORMATS = {
    "default": (
        ':remote-addr - - [:date] ":method :url HTTP/:http-version" :status '
        ':res[content-length] ":referrer" ":user-agent"'
    ),
    "short": (
        ":remote-addr - :method :url HTTP/:http-version :status "
        ":res[content-length] - :response-time ms"
    ),
    "tiny": ":method :url :status :res[content-length] - :response-time ms",
    "dev": ":method :url :status :response-time ms - :res[content-length]",
}


@dataclass
class AccessRecord:
    """Inputs available to format tokens for one request."""

    request: HttpRequest
    response: Optional[HttpResponse]
    started_at: float
    duration_ms: Optional[float]


def _status(record: AccessRecord, _arg) -> Optional[str]:
    return str(record.response.status_code) if record.response else None


def _response_header(record: AccessRecord, arg) -> Optional[str]:
    if record.response is None or not arg:
        return None
    return record.response.header(arg)


def _request_header(record: AccessRecord, arg) -> Optional[str]:
    return record.request.headers.get(arg.lower()) if arg else None


def _response_time(record: AccessRecord, _arg) -> Optional[str]:
    if record.duration_ms is None:
        return None
    return str(int(round(record.duration_ms)))


TOKENS: dict[str, Callable[[AccessRecord, Optional[str]], Optional[str]]] = {
    "remote-addr": lambda record, _arg: record.request.remote_addr or None,
    "date": lambda record, _arg: formatdate(record.started_at, usegmt=True),
    "method": lambda record, _arg: record.request.method,
    "url": lambda record, _arg: record.request.url,
    "http-version": lambda record, _arg: record.request.http_version,
    "status": _status,
    "res": _response_header,
    "req": _request_header,
    "referrer": lambda record, _arg: (
        record.request.headers.get("referer") or record.request.headers.get("referrer")
    ),
    "user-agent": lambda record, _arg: record.request.headers.get("user-agent"),
    "response-time": _response_time,
}


def resolve_format(name_or_format: str) -> str:
    """Map a named format to its token string; other strings pass through."""
    return NAMED_FORMATS.get(name_or_format, name_or_format)


def format_line(line_format: str, record: AccessRecord) -> str:
    """Expand every token in ``line_format`` for ``record``."""

    def replace(match: re.Match) -> str:
        token = TOKENS.get(match.group(1))
        value = token(record, match.group(2)) if token is not None else None
        return value if value else "-"

    return TOKEN_PATTERN.sub(replace, line_format)


def build_access_logger(server_name: str, stream: TextIO) -> logging.Logger:
    """Return a private logger whose only handler writes lines to ``stream``.

    The logger is not registered with :func:`logging.getLogger`, so nothing
    reaches it, and nothing it emits reaches the operational log tree.
    """
    access_logger = logging.Logger(f"webstack.access.{server_name}", logging.INFO)
    access_logger.propagate = False
    handler = logging.StreamHandler(stream)
    handler.setFormatter(logging.Formatter("%(message)s"))
    access_logger.addHandler(handler)
    return access_logger


class AccessLogStage:
    """Write one access line per request passing through this point."""

    name = "logger"

    def __init__(self, server_name: str, options: LoggerOptions, stream: TextIO):
        self.line_format = resolve_format(options.format)
        self.immediate = options.immediate
        self.stream = stream
        self.access_logger = build_access_logger(server_name, stream)

    def _emit(self, record: AccessRecord) -> None:
        self.access_logger.info(format_line(self.line_format, record))

    def __call__(self, request: HttpRequest, call_next) -> HttpResponse:
        started_at = time.time()
        if self.immediate:
            self._emit(AccessRecord(request, None, started_at, None))
            return call_next(request)

        clock = time.perf_counter()
        try:
            response = call_next(request)
        except Exception:
            # the worker turns this into a 500; log that answer before re-raising
            elapsed = (time.perf_counter() - clock) * 1000
            failed = internal_error_response()
            self._emit(AccessRecord(request, failed, started_at, elapsed))
            raise
        elapsed = (time.perf_counter() - clock) * 1000
        self._emit(AccessRecord(request, response, started_at, elapsed))
        return response

    def close(self) -> None:
        """Detach the handler and close the underlying file."""
        for handler in list(self.access_logger.handlers):
            self.access_logger.removeHandler(handler)
            handler.close()
        self.stream.close()
