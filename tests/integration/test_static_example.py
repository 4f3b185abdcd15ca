"""End-to-end tests for static_example.py."""

# pylint: disable=redefined-outer-name

import time
from pathlib import Path

import pytest
import requests

PROJECT_ROOT = Path(__file__).resolve().parents[2]

pytestmark = pytest.mark.integration

ACCESS_LOG = PROJECT_ROOT / "static_example.log"


def _url(info, path):
    return f"http://{info['host']}:{info['ports']['WEBSTACK_STATIC_PORT']}{path}"


def _access_lines():
    # access lines are flushed per request; give the worker a moment
    time.sleep(0.2)
    return ACCESS_LOG.read_text().splitlines()


def test_root_lists_the_static_directory(static_example):
    """The root has no index document, so the directory stage answers."""
    response = requests.get(_url(static_example, "/"), timeout=5)

    assert response.status_code == 200
    assert response.headers["Content-Type"] == "text/html; charset=utf-8"
    assert "hello.html" in response.text
    assert "css/" in response.text
    assert "&#128193;" in response.text


def test_static_file_served_byte_for_byte(static_example):
    """Files under static/ come back unchanged with a cache lifetime."""
    response = requests.get(_url(static_example, "/hello.html"), timeout=5)

    assert response.status_code == 200
    assert response.content == (PROJECT_ROOT / "static" / "hello.html").read_bytes()
    assert response.headers["Cache-Control"] == "public, max-age=3600"


def test_directory_redirect_and_listing(static_example):
    """A folder without a slash redirects, then lists its contents."""
    response = requests.get(
        _url(static_example, "/docs"), timeout=5, allow_redirects=False
    )
    assert response.status_code == 301
    assert response.headers["Location"] == "/docs/"

    listing = requests.get(
        _url(static_example, "/docs/"), headers={"Accept": "text/plain"}, timeout=5
    )
    assert listing.text == "readme.txt\n"


def test_favicon_hits_are_not_logged(static_example):
    """The favicon stage answers before the access logger sees the request."""
    for _ in range(2):
        response = requests.get(_url(static_example, "/favicon.ico"), timeout=5)
        assert response.status_code == 200
        assert response.headers["Content-Type"] == "image/x-icon"

    assert not any("favicon" in line for line in _access_lines())


def test_other_requests_are_logged(static_example):
    """Static hits and misses each add one access line."""
    requests.get(_url(static_example, "/hello.html"), timeout=5)
    missing = requests.get(_url(static_example, "/does-not-exist"), timeout=5)

    assert missing.status_code == 404
    assert missing.text == "Cannot GET /does-not-exist\n"
    lines = _access_lines()
    assert any('"GET /hello.html HTTP/1.1" 200' in line for line in lines)
    assert any('"GET /does-not-exist HTTP/1.1" 404' in line for line in lines)
