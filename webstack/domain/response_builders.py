"""Pure HTTP response builders."""

from typing import Iterable, Optional

from webstack.bootstrap.config import SERVER_HEADER
from webstack.domain.http_types import HttpRequest, HttpResponse, should_close

REASONS = {
    200: "OK",
    301: "Moved Permanently",
    304: "Not Modified",
    400: "Bad Request",
    403: "Forbidden",
    404: "Not Found",
    405: "Method Not Allowed",
    413: "Payload Too Large",
    500: "Internal Server Error",
}


def status_line(code: int) -> str:
    return f"HTTP/1.1 {code} {REASONS.get(code, 'Unknown')}"


def base_headers() -> dict[str, str]:
    return {"Server": SERVER_HEADER, "X-Content-Type-Options": "nosniff"}


def _close_for(request: Optional[HttpRequest]) -> bool:
    if request is None:
        return True
    return should_close(request.headers, request.http_version)


def body_response(
    request: HttpRequest,
    code: int,
    body: bytes,
    content_type: str,
    extra_headers: Optional[dict[str, str]] = None,
) -> HttpResponse:
    """Build a response with an in-memory body; HEAD keeps the length only."""
    headers = {
        **base_headers(),
        "Content-Type": content_type,
        "Content-Length": str(len(body)),
        **(extra_headers or {}),
    }
    payload = b"" if request.method == "HEAD" else body
    return HttpResponse(status_line(code), headers, payload, _close_for(request))


def stream_response(
    request: HttpRequest,
    length: int,
    chunks: Optional[Iterable[bytes]],
    headers: dict[str, str],
) -> HttpResponse:
    """Build a 200 response whose body is produced lazily by ``chunks``."""
    merged = {**base_headers(), **headers, "Content-Length": str(length)}
    body_iter = None if request.method == "HEAD" else chunks
    return HttpResponse(
        status_line(200), merged, b"", _close_for(request), body_iter=body_iter
    )


def not_modified_response(
    request: HttpRequest, headers: dict[str, str]
) -> HttpResponse:
    """Produce a 304 carrying the validators but no body."""
    merged = {**base_headers(), **headers}
    merged.pop("Content-Length", None)
    merged.pop("Content-Type", None)
    return HttpResponse(status_line(304), merged, b"", _close_for(request))


def redirect_response(request: HttpRequest, location: str) -> HttpResponse:
    """Produce a 301 pointing at ``location``."""
    return body_response(
        request,
        301,
        f"Redirecting to {location}\n".encode(),
        "text/plain; charset=utf-8",
        {"Location": location},
    )


def not_found_response(request: HttpRequest) -> HttpResponse:
    """Return the fallback 404 once every stage has passed."""
    return body_response(
        request,
        404,
        f"Cannot {request.method} {request.path}\n".encode(),
        "text/plain; charset=utf-8",
    )


def forbidden_response(request: Optional[HttpRequest]) -> HttpResponse:
    """Produce a 403 response honoring the caller's connection preference."""
    headers = {**base_headers(), "Content-Type": "text/plain; charset=utf-8"}
    body = b"Forbidden\n"
    headers["Content-Length"] = str(len(body))
    payload = body if request is None or request.method != "HEAD" else b""
    return HttpResponse(status_line(403), headers, payload, _close_for(request))


def bad_request_response(request: Optional[HttpRequest] = None) -> HttpResponse:
    """Produce a 400 response; without a parsed request the connection closes."""
    headers = {**base_headers(), "Content-Length": "0"}
    return HttpResponse(status_line(400), headers, b"", _close_for(request))


def entity_too_large_response() -> HttpResponse:
    """Produce a 413 response that always closes the connection."""
    headers = {**base_headers(), "Content-Length": "0"}
    return HttpResponse(status_line(413), headers, b"", True)


def method_not_allowed_response(
    request: HttpRequest, allowed_methods: Iterable[str]
) -> HttpResponse:
    """Produce a 405 response enumerating the supported HTTP methods."""
    headers = {
        **base_headers(),
        "Allow": ", ".join(allowed_methods),
        "Content-Length": "0",
    }
    return HttpResponse(status_line(405), headers, b"", _close_for(request))


def internal_error_response() -> HttpResponse:
    headers = {**base_headers(), "Content-Length": "0"}
    return HttpResponse(status_line(500), headers, b"", True)
