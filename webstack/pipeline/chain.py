"""Ordered middleware dispatch.

A stage is any callable ``stage(request, call_next) -> HttpResponse``. It
handles the request by returning its own response, or passes it on by
returning ``call_next(request)``. Stages run in registration order and the
first one that answers short-circuits the rest; when every stage passes,
the fallback (a plain 404) answers.
"""

import logging
from typing import Callable, Optional, Protocol, Sequence

from webstack.domain.http_types import HttpRequest, HttpResponse
from webstack.domain.request_context import get_logger
from webstack.domain.response_builders import not_found_response

CHAIN_LOGGER = get_logger("pipeline.chain")

Handler = Callable[[HttpRequest], HttpResponse]


class Middleware(Protocol):  # pylint: disable=too-few-public-methods
    name: str

    def __call__(self, request: HttpRequest, call_next: Handler) -> HttpResponse: ...


def dispatch(
    stages: Sequence[Middleware],
    request: HttpRequest,
    fallback: Optional[Handler] = None,
) -> HttpResponse:
    """Run ``request`` through ``stages`` and return the first answer."""
    final = fallback or not_found_response

    def call_at(index: int) -> Handler:
        def call_next(current: HttpRequest) -> HttpResponse:
            if index >= len(stages):
                if CHAIN_LOGGER.logger.isEnabledFor(logging.DEBUG):
                    CHAIN_LOGGER.debug(
                        "No stage answered",
                        extra={"event": "chain_exhausted", "route": current.path},
                    )
                return final(current)
            return stages[index](current, call_at(index + 1))

        return call_next

    return call_at(0)(request)
