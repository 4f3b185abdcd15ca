"""Building server objects from option records."""

from typing import Optional, TextIO

from webstack.bootstrap.access_stream import open_access_stream
from webstack.bootstrap.config import DEFAULT_SOCKET_TIMEOUT
from webstack.bootstrap.options import ServerOptions
from webstack.bootstrap.socket_factory import build_tls_context, read_tls_material
from webstack.domain.request_context import get_logger
from webstack.pipeline.composer import compose_stages
from webstack.transport.accept_loop import ServerInstance

INSTANTIATE_LOGGER = get_logger("bootstrap.instantiate")


def create_server(
    options: ServerOptions, socket_timeout: float = DEFAULT_SOCKET_TIMEOUT
) -> ServerInstance:
    """Create the server for one record; nothing is bound yet.

    Key material is read and the access log truncated here, during startup,
    so a failure raises :class:`~webstack.domain.errors.StartupError` before
    any socket listens.
    """
    tls_context = None
    if options.uses_tls:
        material = read_tls_material(options.name, options.tls)
        tls_context = build_tls_context(options.name, material)

    access_stream: Optional[TextIO] = None
    if options.logger is not None and options.logger.path:
        access_stream = open_access_stream(options.name, options.logger)

    stages = compose_stages(options, access_stream)
    INSTANTIATE_LOGGER.debug(
        "Server created",
        extra={
            "event": "server_created",
            "server": options.name,
            "tls": tls_context is not None,
            "stages": [stage.name for stage in stages],
        },
    )
    return ServerInstance(options, stages, tls_context, socket_timeout)
