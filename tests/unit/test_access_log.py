"""Unit tests for the access logging stage."""

import io
import logging

import pytest

from webstack.bootstrap.options import LoggerOptions
from webstack.domain.http_types import HttpRequest
from webstack.domain.response_builders import body_response
from webstack.handlers.access_log import (
    AccessLogStage,
    AccessRecord,
    format_line,
    resolve_format,
)


def _request(path="/hello.html", headers=None):
    return HttpRequest(
        "GET",
        path,
        {"host": "localhost", **(headers or {})},
        target=path + "?v=1",
        remote_addr="192.0.2.10",
    )


def _ok(request):
    return body_response(request, 200, b"hello", "text/html")


def test_default_format_line():
    """The default format reads like a combined log line."""
    request = _request(headers={"user-agent": "curl/8", "referer": "http://a/"})
    record = AccessRecord(request, _ok(request), 0.0, 3.2)

    line = format_line(resolve_format("default"), record)

    assert line == (
        '192.0.2.10 - - [Thu, 01 Jan 1970 00:00:00 GMT] '
        '"GET /hello.html?v=1 HTTP/1.1" 200 5 "http://a/" "curl/8"'
    )


def test_missing_values_render_as_dash():
    """Unknown tokens and absent headers become '-'."""
    request = HttpRequest("GET", "/", {})
    record = AccessRecord(request, None, 0.0, None)

    line = format_line(":remote-addr :status :req[x-missing] :bogus-token", record)

    assert line == "- - - -"


def test_tiny_and_custom_formats():
    """Named formats resolve; other strings are used as given."""
    request = _request()
    record = AccessRecord(request, _ok(request), 0.0, 12.6)

    assert format_line(resolve_format("tiny"), record) == (
        "GET /hello.html?v=1 200 5 - 13 ms"
    )
    assert format_line(":method :res[content-type]", record) == "GET text/html"


def test_stage_writes_one_line_per_request():
    """Each request that passes produces one line after it is answered."""
    stream = io.StringIO()
    options = LoggerOptions(path="x", format=":status :url")
    stage = AccessLogStage("test", options, stream)

    stage(_request(), _ok)
    stage(_request("/other"), _ok)

    assert stream.getvalue().splitlines() == ["200 /hello.html?v=1", "200 /other?v=1"]


def test_immediate_mode_logs_before_response():
    """Immediate lines are written before the next stage runs."""
    stream = io.StringIO()
    options = LoggerOptions(path="x", format=":method :status", immediate=True)
    stage = AccessLogStage("test", options, stream)
    seen = []

    def downstream(request):
        seen.append(stream.getvalue())
        return _ok(request)

    stage(_request(), downstream)

    assert seen == ["GET -\n"]


def test_access_lines_stay_out_of_operational_logs(caplog):
    """The access logger is private and never propagates."""
    caplog.set_level(logging.DEBUG)
    stage = AccessLogStage("test", LoggerOptions(path="x"), io.StringIO())

    stage(_request(), _ok)

    assert not any("hello.html" in r.getMessage() for r in caplog.records)


def test_close_releases_stream():
    """Closing the stage closes the file it writes to."""
    stream = io.StringIO()
    stage = AccessLogStage("test", LoggerOptions(path="x"), stream)

    stage.close()

    assert stream.closed
    assert not stage.access_logger.handlers


def test_failing_downstream_is_logged_as_500():
    """A stage that raises still leaves a line, and the error propagates."""
    stream = io.StringIO()
    options = LoggerOptions(path="x", format=":method :url :status")
    stage = AccessLogStage("test", options, stream)

    def downstream(request):
        raise RuntimeError("stage exploded")

    with pytest.raises(RuntimeError):
        stage(_request(), downstream)

    assert stream.getvalue().splitlines() == ["GET /hello.html?v=1 500"]
