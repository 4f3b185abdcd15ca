"""Process-level settings seeded from the environment."""

import os


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    return int(value) if value is not None else default


def _env_str(name: str, default: str) -> str:
    value = os.getenv(name)
    return value if value else default


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return value.strip().lower() not in ("0", "false", "no", "off")


DEFAULT_LOG_LEVEL = _env_str("WEBSTACK_LOG_LEVEL", "INFO").upper()
DEFAULT_LOG_DESTINATION = _env_str("WEBSTACK_LOG_DESTINATION", "stdout")
LOG_JSON = _env_bool("WEBSTACK_LOG_JSON", True)
DEFAULT_SOCKET_TIMEOUT = _env_int("WEBSTACK_SOCKET_TIMEOUT", 60)
MAX_BODY_BYTES = _env_int("WEBSTACK_MAX_BODY_BYTES", 1024 * 1024)

DEFAULT_HOST = _env_str("WEBSTACK_HOST", "0.0.0.0")
STATIC_PORT = _env_int("WEBSTACK_STATIC_PORT", 10100)
HTTP_PORT = _env_int("WEBSTACK_HTTP_PORT", 10101)
HTTPS_PORT = _env_int("WEBSTACK_HTTPS_PORT", 10102)

HEADER_DELIMITER = b"\r\n\r\n"
ACCEPT_POLL_SECONDS = 0.5
SERVER_HEADER = "webstack"
