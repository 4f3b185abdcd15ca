"""Per-request identifiers carried through operational logs."""

import contextvars
import logging
import uuid
from typing import Any, MutableMapping, Optional

LOGGER_PREFIX = "webstack."

_request_id_var: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "request_id", default=None
)


def new_request_id() -> str:
    """Return a short random identifier for one request."""
    return uuid.uuid4().hex[:16]


def current_request_id() -> Optional[str]:
    """Return the id bound to the current context, if any."""
    return _request_id_var.get()


def bind_request_id(request_id: str) -> contextvars.Token:
    """Bind a request id to the current context and return the reset token."""
    return _request_id_var.set(request_id)


def reset_request_id(token: Optional[contextvars.Token] = None) -> None:
    """Restore the previous binding, or clear it when no token is given."""
    if token is not None:
        _request_id_var.reset(token)
    else:
        _request_id_var.set(None)


class RequestLoggerAdapter(logging.LoggerAdapter):
    """Adds ``request_id`` and ``component`` to every record it emits."""

    def process(
        self, msg: str, kwargs: MutableMapping[str, Any]
    ) -> tuple[str, MutableMapping[str, Any]]:
        extra = dict(kwargs.get("extra") or {})
        request_id = current_request_id()
        extra["request_id"] = request_id if request_id is not None else "-"

        name = self.logger.name
        extra["component"] = (
            name[len(LOGGER_PREFIX) :] if name.startswith(LOGGER_PREFIX) else name
        )
        kwargs["extra"] = extra
        return msg, kwargs


def get_logger(component: str) -> RequestLoggerAdapter:
    """Return the adapter for ``webstack.<component>``."""
    return RequestLoggerAdapter(logging.getLogger(f"{LOGGER_PREFIX}{component}"), {})
