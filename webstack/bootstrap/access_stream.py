"""Opening the per-server access log file."""

import os
from typing import TextIO

from webstack.bootstrap.options import LoggerOptions
from webstack.domain.errors import StartupError
from webstack.domain.request_context import get_logger

STREAM_LOGGER = get_logger("bootstrap.access_stream")


def open_access_stream(name: str, options: LoggerOptions) -> TextIO:
    """Open ``options.path`` truncated, creating it with ``options.mode``.

    The process umask still applies to the creation mode.
    """
    try:
        descriptor = os.open(
            options.path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, options.mode
        )
    except OSError as error:
        STREAM_LOGGER.critical(
            "Failed to open access log",
            extra={"event": "startup_failed", "server": name, "path": options.path},
        )
        raise StartupError(name, f"cannot open access log: {error}") from error
    return os.fdopen(descriptor, "w", encoding="utf-8")
