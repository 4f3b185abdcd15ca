"""Unit tests covering HTTP request parsing and response serialization."""

import pytest

from webstack.domain.errors import RequestEntityTooLarge
from webstack.domain.http_types import HttpRequest, HttpResponse
from webstack.pipeline.io import (
    determine_content_length,
    parse_headers,
    parse_request_line,
    receive_request,
    send_response,
)


class FakeSocket:
    """Minimal socket stub that returns predefined chunks sequentially."""

    def __init__(self, chunks=()):
        self._chunks = [
            chunk if isinstance(chunk, bytes) else chunk.encode() for chunk in chunks
        ]
        self.sent = b""

    def recv(self, _):
        """Return the next chunk or an empty bytes object when exhausted."""

        if self._chunks:
            return self._chunks.pop(0)
        return b""

    def sendall(self, data):
        """Collect everything written to the socket."""

        self.sent += data


def test_parse_headers_normalizes_keys_and_skips_invalid_lines():
    """Header parsing should lowercase keys and ignore malformed lines."""

    headers = parse_headers(
        [
            "Content-Length: 10",
            "User-Agent: ExampleClient",
            "x-custom:value",
            "invalid-line",
        ]
    )
    assert headers == {
        "content-length": "10",
        "user-agent": "ExampleClient",
        "x-custom": "value",
    }


def test_parse_request_line_decodes_path_and_keeps_target():
    """The path is percent-decoded without its query; the target is kept."""

    method, path, target, version = parse_request_line(
        "GET /docs/read%20me.txt?x=1 HTTP/1.0"
    )
    assert method == "GET"
    assert path == "/docs/read me.txt"
    assert target == "/docs/read%20me.txt?x=1"
    assert version == "1.0"


@pytest.mark.parametrize("line", ["GET /", "GET / HTTP/2.0", "garbage"])
def test_parse_request_line_rejects_malformed_lines(line):
    """Missing parts and unknown versions raise ValueError."""

    with pytest.raises(ValueError):
        parse_request_line(line)


def test_determine_content_length_limits():
    """Absent means zero, invalid values raise, oversize bodies are refused."""

    assert determine_content_length({}) == 0
    assert determine_content_length({"content-length": "5"}) == 5
    with pytest.raises(ValueError):
        determine_content_length({"content-length": "abc"})
    with pytest.raises(ValueError):
        determine_content_length({"content-length": "-1"})
    with pytest.raises(RequestEntityTooLarge):
        determine_content_length({"content-length": str(1024 * 1024 + 1)})


def test_receive_request_handles_partial_reads_and_leftover_bytes():
    """Receiving a request must tolerate partial socket reads."""

    request_bytes = (
        b"POST /upload HTTP/1.1\r\n"
        b"Host: localhost\r\n"
        b"Content-Length: 5\r\n\r\n"
        b"helloEXTRA"
    )
    socket_chunks = [request_bytes[:25], request_bytes[25:50], request_bytes[50:]]
    client = FakeSocket(socket_chunks)
    request, leftover = receive_request(client, b"", "10.0.0.7")
    assert isinstance(request, HttpRequest)
    assert request.path == "/upload"
    assert request.body == b"hello"
    assert request.remote_addr == "10.0.0.7"
    assert leftover == b"EXTRA"


def test_receive_request_returns_none_when_socket_closes_early():
    """If the client disconnects early the parser should return nothing."""

    client = FakeSocket([b"GET / HTTP/1.1\r\n"])
    request, buffer = receive_request(client, b"")
    assert request is None
    assert buffer == b""


def test_send_response_adds_length_and_close_header():
    """In-memory bodies get a Content-Length and closing responses say so."""

    client = FakeSocket()
    response = HttpResponse("HTTP/1.1 200 OK", {"Server": "webstack"}, b"hi", True)

    sent = send_response(client, response)

    head, body = client.sent.split(b"\r\n\r\n", 1)
    assert sent == 2
    assert body == b"hi"
    assert b"Content-Length: 2" in head
    assert b"Connection: close" in head


def test_send_response_streams_body_iterator():
    """Iterated chunks follow the header block in order."""

    client = FakeSocket()
    response = HttpResponse(
        "HTTP/1.1 200 OK",
        {"Content-Length": "6"},
        b"",
        False,
        body_iter=iter([b"abc", b"", b"def"]),
    )

    sent = send_response(client, response)

    assert sent == 6
    assert client.sent.endswith(b"\r\n\r\nabcdef")
    assert b"Connection" not in client.sent
