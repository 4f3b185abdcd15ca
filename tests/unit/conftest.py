"""Shared fixtures for unit tests."""

import logging

import pytest

from webstack.domain.request_context import reset_request_id


@pytest.fixture(autouse=True)
def enable_log_propagation():
    """Ensure logs propagate to root so caplog can catch them."""
    logger = logging.getLogger("webstack")
    old_propagate = logger.propagate
    logger.propagate = True
    yield
    logger.propagate = old_propagate


@pytest.fixture(autouse=True)
def clear_request_id():
    """Start every test without a bound request id."""
    reset_request_id()
    yield
    reset_request_id()
