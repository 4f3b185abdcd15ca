"""Serve static files, directory listings and a favicon on one port.

The middleware order matters: the favicon stage answers ``/favicon.ico``
before the access logger runs, so repeated icon requests never appear in
``static_example.log``. Start it with::

    python static_example.py

then browse to http://<hostname>:10100/. Send SIGHUP (or SIGTERM/SIGINT)
to close the listening socket and exit.
"""

import sys
from pathlib import Path

from webstack.bootstrap.config import DEFAULT_HOST, STATIC_PORT
from webstack.bootstrap.runner import serve

BASE_DIR = Path(__file__).resolve().parent

OPTIONS = {
    "name": "static server",
    "listen": {
        "port": STATIC_PORT,
        "host": DEFAULT_HOST,
    },
    "static": {
        "path": str(BASE_DIR / "static"),
        "max_age_ms": 3_600_000,
    },
    "logger": {
        "path": str(BASE_DIR / "static_example.log"),
        "mode": 0o666,
    },
    # an empty section keeps the stage with the built-in icon; set "path"
    # to str(BASE_DIR / "resources" / "favicon.ico") for the custom one
    "favicon": {},
    "directory": {
        "path": str(BASE_DIR / "static"),
        "icons": True,
    },
}


def main() -> None:
    sys.exit(serve(OPTIONS))


if __name__ == "__main__":
    main()
