"""Listen for plain HTTP and HTTPS at the same time.

Each entry in ``OPTIONS`` becomes its own server object; the second one
carries a key and certificate and so accepts TLS connections only. The
shipped certificate is self-signed for ``localhost``. Start it with::

    python https_example.py

and browse to http://<hostname>:10101/ or https://<hostname>:10102/.
"""

import sys
from pathlib import Path

from webstack.bootstrap.config import DEFAULT_HOST, HTTP_PORT, HTTPS_PORT
from webstack.bootstrap.runner import serve

BASE_DIR = Path(__file__).resolve().parent

OPTIONS = [
    {
        "name": "standard http server",
        "listen": {"port": HTTP_PORT, "host": DEFAULT_HOST},
        "logger": {
            "path": str(BASE_DIR / "https_example_http.log"),
            "mode": 0o666,
        },
        "static": {
            "path": str(BASE_DIR / "static"),
            "max_age_ms": 3_600_000,
        },
        "favicon": {},
    },
    {
        "name": "secure https server",
        "key_path": str(BASE_DIR / "resources" / "ssl_server.key"),
        "cert_path": str(BASE_DIR / "resources" / "ssl_server.crt"),
        "listen": {"port": HTTPS_PORT, "host": DEFAULT_HOST},
        "logger": {
            "path": str(BASE_DIR / "https_example_https.log"),
            "mode": 0o666,
        },
        "static": {
            "path": str(BASE_DIR / "static"),
            "max_age_ms": 3_600_000,
        },
        "favicon": {"path": str(BASE_DIR / "resources" / "favicon.ico")},
    },
]


def main() -> None:
    sys.exit(serve(OPTIONS))


if __name__ == "__main__":
    main()
