"""Shared pytest fixtures for integration and unit tests."""

from __future__ import annotations

import os
import subprocess
import sys
from pathlib import Path
from typing import Callable, Generator, TypedDict

import pytest

from tests.utils.http import reserve_port, wait_for_port
from webstack.bootstrap.instantiate import create_server
from webstack.bootstrap.options import server_options_from_mapping
from webstack.transport.accept_loop import ServerInstance

PROJECT_ROOT = Path(__file__).resolve().parent.parent
LOCALHOST = "127.0.0.1"


class ExampleProcessInfo(TypedDict):
    """Metadata describing a running example program."""

    host: str
    ports: dict[str, int]
    process: subprocess.Popen[str]


def _launch_example(
    script: str, ports: dict[str, int]
) -> Generator[ExampleProcessInfo, None, None]:
    env = dict(os.environ)
    env["WEBSTACK_HOST"] = LOCALHOST
    for variable, port in ports.items():
        env[variable] = str(port)

    with subprocess.Popen(
        [sys.executable, str(PROJECT_ROOT / script)],
        cwd=PROJECT_ROOT,
        env=env,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        text=True,
    ) as process:
        try:
            for port in ports.values():
                wait_for_port(LOCALHOST, port)
        except Exception:
            process.terminate()
            stdout, stderr = process.communicate(timeout=5)
            print(f"\nExample stdout:\n{stdout}")
            print(f"\nExample stderr:\n{stderr}")
            raise

        yield {"host": LOCALHOST, "ports": ports, "process": process}

        if process.poll() is None:
            process.terminate()
            try:
                process.wait(timeout=5)
            except subprocess.TimeoutExpired:
                process.kill()


@pytest.fixture(scope="session")
def project_root() -> Path:
    """Expose the repository root path to tests."""

    return PROJECT_ROOT


@pytest.fixture(name="static_example")
def _static_example() -> Generator[ExampleProcessInfo, None, None]:
    """Run static_example.py on a free port."""

    ports = {"WEBSTACK_STATIC_PORT": reserve_port(LOCALHOST)}
    yield from _launch_example("static_example.py", ports)


@pytest.fixture(name="https_example")
def _https_example() -> Generator[ExampleProcessInfo, None, None]:
    """Run https_example.py with both of its servers on free ports."""

    ports = {
        "WEBSTACK_HTTP_PORT": reserve_port(LOCALHOST),
        "WEBSTACK_HTTPS_PORT": reserve_port(LOCALHOST),
    }
    yield from _launch_example("https_example.py", ports)


@pytest.fixture(name="running_server")
def _running_server() -> Generator[Callable[[dict], ServerInstance], None, None]:
    """Build servers in-process from option mappings and close them afterwards."""

    started: list[ServerInstance] = []

    def start(raw: dict) -> ServerInstance:
        server = create_server(server_options_from_mapping(raw), socket_timeout=5)
        started.append(server)
        server.listen((LOCALHOST, reserve_port(LOCALHOST)))
        return server

    yield start

    for server in started:
        server.close()
