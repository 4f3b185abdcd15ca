"""Integration tests for https_example.py: one plain and one TLS server."""

# pylint: disable=redefined-outer-name

from pathlib import Path

import pytest
import requests

PROJECT_ROOT = Path(__file__).resolve().parents[2]

pytestmark = [
    pytest.mark.integration,
    pytest.mark.filterwarnings("ignore::urllib3.exceptions.InsecureRequestWarning"),
]


def _port(info, variable):
    return info["ports"][variable]


def test_https_connection(https_example):
    """The secure server answers over TLS with the shipped certificate."""
    port = _port(https_example, "WEBSTACK_HTTPS_PORT")

    response = requests.get(
        f"https://{https_example['host']}:{port}/hello.html", verify=False, timeout=5
    )

    assert response.status_code == 200
    assert response.content == (PROJECT_ROOT / "static" / "hello.html").read_bytes()
    assert response.headers.get("X-Content-Type-Options") == "nosniff"


def test_https_favicon_uses_custom_icon(https_example):
    """The secure server is configured with the icon from resources/."""
    port = _port(https_example, "WEBSTACK_HTTPS_PORT")

    response = requests.get(
        f"https://{https_example['host']}:{port}/favicon.ico", verify=False, timeout=5
    )

    assert response.status_code == 200
    assert response.content == (PROJECT_ROOT / "resources" / "favicon.ico").read_bytes()


def test_plain_http_server_is_not_tls(https_example):
    """The standard server speaks plain HTTP on its own port."""
    port = _port(https_example, "WEBSTACK_HTTP_PORT")

    response = requests.get(
        f"http://{https_example['host']}:{port}/hello.html", timeout=5
    )

    assert response.status_code == 200


def test_http_connection_to_tls_port_fails(https_example):
    """Plain HTTP requests to the HTTPS port fail at the handshake."""
    port = _port(https_example, "WEBSTACK_HTTPS_PORT")

    with pytest.raises(requests.exceptions.RequestException):
        requests.get(f"http://{https_example['host']}:{port}/", timeout=2)


def test_tls_port_still_serves_after_failed_handshake(https_example):
    """A broken client does not take the secure server down."""
    port = _port(https_example, "WEBSTACK_HTTPS_PORT")
    with pytest.raises(requests.exceptions.RequestException):
        requests.get(f"http://{https_example['host']}:{port}/", timeout=2)

    response = requests.get(
        f"https://{https_example['host']}:{port}/", verify=False, timeout=5
    )

    # the secure server has no directory stage and static/ has no index
    assert response.status_code == 404
