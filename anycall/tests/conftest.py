"""Unit tests configuration file."""

import os
import socket
import threading
from dataclasses import replace

import pytest

from anycall.proto import Connection, SchemaRegistry, ServiceEndpoint

FILE_DIR = os.path.dirname(os.path.realpath(__file__))


def pytest_configure(config):
    """Disable verbose output when running tests."""
    terminal = config.pluginmanager.getplugin("terminal")
    if terminal:
        terminal.TerminalReporter.showfspath = False


class EchoHandler:
    """Answers the Echo service and remembers every call it received."""

    def __init__(self):
        self.calls = []

    def ping(self, count):
        self.calls.append(("ping", count))
        return "pong" * (count.value if count is not None else 0)

    def sumList(self, values):
        self.calls.append(("sumList", values))
        return sum(v.value for v in values or [])

    def distinct(self, values):
        self.calls.append(("distinct", values))
        return len(values or ())

    def paint(self, label, colors):
        self.calls.append(("paint", label, colors))
        if label is None:
            raise ValueError("label is required")
        return replace(label, tags=tuple(sorted(c.name for c in colors or ())))

    def nested(self, groups):
        self.calls.append(("nested", groups))
        return [sum(v.value for v in group) for group in groups or []]

    def reset(self):
        self.calls.append(("reset",))

    def measure(self, reading):
        self.calls.append(("measure", reading))
        return reading.level if reading is not None else 0.0


@pytest.fixture
def schema_file():
    return os.path.join(FILE_DIR, "echo.anycall")


@pytest.fixture
def registry(schema_file):
    return SchemaRegistry.from_file(schema_file)


@pytest.fixture
def handler():
    return EchoHandler()


@pytest.fixture
def endpoint(registry, handler):
    return ServiceEndpoint(registry, "Echo", handler)


@pytest.fixture
def echo_server(registry, endpoint):
    """Serve Echo on a free localhost port; yields the port."""
    server = socket.create_server(("127.0.0.1", 0))

    def run():
        while True:
            try:
                sock, _ = server.accept()
            except OSError:
                return
            with Connection(sock, crc=registry.crc) as connection:
                endpoint.serve(connection)

    thread = threading.Thread(target=run, daemon=True)
    thread.start()
    yield server.getsockname()[1]
    server.close()


@pytest.fixture
def connection_pair(registry):
    """Two connected Connections (client, server) over a socket pair."""
    client_sock, server_sock = socket.socketpair()
    client = Connection(client_sock, crc=registry.crc)
    server = Connection(server_sock, crc=registry.crc)
    yield client, server
    client.close()
    server.close()
