"""Turning option records into an ordered list of middleware stages."""

from typing import Optional, TextIO

from webstack.bootstrap.options import ServerOptions
from webstack.handlers.access_log import AccessLogStage
from webstack.handlers.directory import DirectoryStage
from webstack.handlers.favicon import FaviconStage
from webstack.handlers.static import StaticStage
from webstack.pipeline.chain import Middleware
from webstack.pipeline.validation import RequestValidationStage


def compose_stages(
    options: ServerOptions, access_stream: Optional[TextIO] = None
) -> list[Middleware]:
    """Return the stages for ``options`` in their fixed order.

    The order is favicon, access logger, request validation, static files,
    directory listing. Favicon hits are answered before the logger sees
    them, so they never show up in the access log; rejected requests do.
    Validation is always present. Any other section that is absent, or that
    lacks its path, contributes no stage; the logger also needs
    ``access_stream``.
    """
    stages: list[Middleware] = []
    if options.favicon is not None:
        stages.append(FaviconStage(options.favicon))
    logger = options.logger
    if logger is not None and logger.path and access_stream is not None:
        stages.append(AccessLogStage(options.name, logger, access_stream))
    stages.append(RequestValidationStage())
    if options.static is not None and options.static.path:
        stages.append(StaticStage(options.static))
    if options.directory is not None and options.directory.path:
        stages.append(DirectoryStage(options.directory))
    return stages
