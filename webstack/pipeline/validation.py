"""Request checks that run before any middleware stage."""

from typing import Optional

from webstack.domain.http_types import HttpRequest, HttpResponse
from webstack.domain.response_builders import bad_request_response, forbidden_response


def enforce_safe_path(request: HttpRequest) -> Optional[HttpResponse]:
    """Reject paths that are not absolute or that try to climb out of a root."""
    if not request.path.startswith("/") or "\x00" in request.path:
        return bad_request_response(request)
    if (
        "/../" in request.path
        or request.path.endswith("/..")
        or request.path.startswith("/..")
    ):
        return forbidden_response(request)
    return None


def enforce_host_header(request: HttpRequest) -> Optional[HttpResponse]:
    """HTTP/1.1 requests must name a host."""
    if request.http_version == "1.1" and "host" not in request.headers:
        return bad_request_response(request)
    return None


def validate_request(request: HttpRequest) -> Optional[HttpResponse]:
    """Return an error response when the request fails validation checks."""
    path_error = enforce_safe_path(request)
    if path_error is not None:
        return path_error
    return enforce_host_header(request)


class RequestValidationStage:  # pylint: disable=too-few-public-methods
    """Answer requests that fail validation instead of passing them on.

    Composed right after the access logger, so rejected requests are still
    logged.
    """

    name = "validation"

    def __call__(self, request: HttpRequest, call_next) -> HttpResponse:
        rejection = validate_request(request)
        if rejection is not None:
            return rejection
        return call_next(request)
