"""Serve the Echo service from echo.anycall.

Run::

    python examples/echo/server.py 9090

then, from another shell::

    anycall call -s examples/echo/echo.anycall localhost 9090 Echo ping
"""

import logging
import socket
import sys
from dataclasses import replace
from pathlib import Path

from anycall.proto import Connection, SchemaRegistry, ServiceEndpoint

logger = logging.getLogger("echo")

SCHEMA_FILE = Path(__file__).parent / "echo.anycall"


class EchoHandler:
    def ping(self, count):
        return "pong" * (count.value if count is not None else 0)

    def sumList(self, values):
        return sum(v.value for v in values or [])

    def distinct(self, values):
        return len(values or ())

    def paint(self, label, colors):
        if label is None:
            raise ValueError("label is required")
        return replace(label, tags=tuple(sorted(c.name for c in colors or ())))

    def nested(self, groups):
        return [sum(v.value for v in group) for group in groups or []]

    def reset(self):
        logger.info("reset")


def main() -> None:
    logging.basicConfig(level=logging.INFO)
    port = int(sys.argv[1]) if len(sys.argv) > 1 else 9090
    registry = SchemaRegistry.from_file(SCHEMA_FILE)
    endpoint = ServiceEndpoint(registry, "Echo", EchoHandler())

    with socket.create_server(("localhost", port)) as server:
        logger.info("Echo listening on port %d", port)
        while True:
            sock, address = server.accept()
            logger.info("Connection from %s:%d", *address[:2])
            with Connection(sock, crc=registry.crc) as connection:
                endpoint.serve(connection)


if __name__ == "__main__":
    main()
