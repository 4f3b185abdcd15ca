"""Shared entry point for the example programs."""

from typing import Sequence, Union

from webstack.bootstrap.config import (
    DEFAULT_LOG_DESTINATION,
    DEFAULT_LOG_LEVEL,
    LOG_JSON,
)
from webstack.bootstrap.instantiate import create_server
from webstack.bootstrap.logging_setup import configure_logging
from webstack.bootstrap.options import RawOptions, load_option_set
from webstack.domain.errors import StartupError
from webstack.lifecycle.group import ServerGroup


def serve(raw_options: Union[RawOptions, Sequence[RawOptions]]) -> int:
    """Build, bind and run every configured server; return the exit status.

    Initialization (key material, access logs, binding) happens before
    anything is served. A failure there closes whatever was already opened
    and returns 1. Otherwise this blocks until a shutdown signal closes all
    servers and returns 0.
    """
    logger = configure_logging(DEFAULT_LOG_LEVEL, DEFAULT_LOG_DESTINATION, LOG_JSON)
    option_set = load_option_set(raw_options)

    with ServerGroup() as group:
        try:
            for options in option_set:
                group.add(create_server(options))
            group.install_signal_handlers()
            group.listen_all()
        except StartupError as error:
            logger.critical(
                "Startup aborted",
                extra={"event": "startup_aborted", "server": error.name},
            )
            return 1
        group.wait()
    return 0
