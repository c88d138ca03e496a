"""Runtime support for calling schema-described services.

A call is one CALL frame answered by one REPLY or ERROR frame. Frames
are COBS framed with a CRC (see framing.py).

    CALL   0x01  method name (NUL terminated), then per parameter a
                 presence byte (0 absent, 1 present) and the packed value
    REPLY  0x02  presence byte and packed result, nothing for void methods
    ERROR  0x03  error message (NUL terminated)
"""

import logging
import socket
from collections.abc import Sequence
from enum import IntEnum
from types import TracebackType
from typing import Any

from anycall.errors import ConnectError, MethodNotFoundError, ProtocolError, RemoteCallError
from anycall.schema.types import ProtoMethod, ProtoService, ProtoType

from .crc import CrcSize
from .framing import Framer, FrameError
from .registry import SchemaRegistry
from .serialization import SerializationError

logger = logging.getLogger(__name__)

RECV_SIZE = 4096


class FrameKind(IntEnum):
    CALL = 1
    REPLY = 2
    ERROR = 3


_STRING = ProtoType(name="string")


def find_method(service: ProtoService, name: str) -> ProtoMethod:
    """First method declared with this name; overloads are not supported."""
    for method in service.methods:
        if method.name == name:
            return method
    raise MethodNotFoundError(service.name, name)


def _pack_optional(registry: SchemaRegistry, t: ProtoType, value: Any) -> bytes:
    if value is None:
        return b"\x00"
    return b"\x01" + registry.codec.pack(t, value)


def _unpack_optional(
    registry: SchemaRegistry, t: ProtoType, data: bytes, offset: int
) -> tuple[Any, int]:
    if offset >= len(data):
        raise SerializationError("Missing presence byte")
    if data[offset] == 0:
        return None, offset + 1
    value, consumed = registry.codec.unpack(t, data, offset + 1)
    return value, offset + 1 + consumed


def encode_call(registry: SchemaRegistry, method: ProtoMethod, args: Sequence[Any]) -> bytes:
    """Encode a CALL payload. ``None`` arguments are sent as absent."""
    if len(args) != len(method.params):
        raise SerializationError(
            f"{method.name} takes {len(method.params)} arguments, got {len(args)}"
        )
    payload = bytearray([FrameKind.CALL])
    payload += registry.codec.pack(_STRING, method.name)
    for param, arg in zip(method.params, args):
        payload += _pack_optional(registry, param.type, arg)
    return bytes(payload)


def decode_call(
    registry: SchemaRegistry, service: ProtoService, payload: bytes
) -> tuple[ProtoMethod, list[Any]]:
    """Decode a CALL payload into the method and its arguments."""
    if not payload or payload[0] != FrameKind.CALL:
        raise ProtocolError("Expected a CALL frame")
    name, consumed = registry.codec.unpack(_STRING, payload, 1)
    method = find_method(service, name)
    offset = 1 + consumed
    args = []
    for param in method.params:
        arg, offset = _unpack_optional(registry, param.type, payload, offset)
        args.append(arg)
    if offset != len(payload):
        raise ProtocolError(f"{len(payload) - offset} trailing bytes after {name} arguments")
    return method, args


def encode_reply(registry: SchemaRegistry, method: ProtoMethod, result: Any) -> bytes:
    if method.returns is None:
        return bytes([FrameKind.REPLY])
    return bytes([FrameKind.REPLY]) + _pack_optional(registry, method.returns, result)


def encode_error(registry: SchemaRegistry, message: str) -> bytes:
    return bytes([FrameKind.ERROR]) + registry.codec.pack(_STRING, message.replace("\x00", ""))


def decode_reply(registry: SchemaRegistry, method: ProtoMethod, payload: bytes) -> Any:
    """Decode a REPLY payload; an ERROR payload raises RemoteCallError."""
    if not payload:
        raise ProtocolError("Empty reply frame")
    kind = payload[0]
    if kind == FrameKind.ERROR:
        message, _ = registry.codec.unpack(_STRING, payload, 1)
        raise RemoteCallError(method.name, message)
    if kind != FrameKind.REPLY:
        raise ProtocolError(f"Unexpected frame kind {kind} in reply to {method.name}")
    if method.returns is None:
        return None
    result, _ = _unpack_optional(registry, method.returns, payload, 1)
    return result


class Connection:
    """A connected socket exchanging frames."""

    def __init__(self, sock: socket.socket, *, crc: CrcSize = CrcSize.CRC8) -> None:
        self._sock = sock
        self._framer = Framer(crc=crc)

    def send_frame(self, payload: bytes) -> None:
        frame = self._framer.encode_frame(payload)
        logger.debug("Sending %d byte frame", len(frame))
        try:
            self._sock.sendall(frame)
        except OSError as e:
            raise ProtocolError(f"Send failed: {e}") from e

    def receive_frame(self) -> bytes | None:
        """Block until a frame arrives; None once the peer closes the connection."""
        while True:
            try:
                frame = self._framer.decode_frame()
            except FrameError as e:
                raise ProtocolError(f"Bad frame: {e}") from e
            if frame is not None:
                logger.debug("Received %d byte payload", len(frame))
                return frame

            try:
                data = self._sock.recv(RECV_SIZE)
            except OSError as e:
                raise ProtocolError(f"Receive failed: {e}") from e
            if not data:
                return None
            self._framer.append_buffer(data)

    def close(self) -> None:
        self._sock.close()

    def __enter__(self) -> "Connection":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()


class Transport:
    """TCP transport; the timeout only bounds connection establishment."""

    def __init__(self, host: str, port: int, connect_timeout: float = 1.0) -> None:
        self.host = host
        self.port = port
        self.connect_timeout = connect_timeout

    def open(self, *, crc: CrcSize = CrcSize.CRC8) -> Connection:
        logger.debug("Connecting to %s:%d", self.host, self.port)
        try:
            sock = socket.create_connection((self.host, self.port), timeout=self.connect_timeout)
        except OSError as e:
            raise ConnectError(self.host, self.port, str(e) or type(e).__name__) from e
        sock.settimeout(None)
        return Connection(sock, crc=crc)


class ServiceStub:
    """Client for one service: call any declared method by name.

    Example:
        registry = SchemaRegistry.from_file("echo.anycall")
        with Transport("localhost", 9090).open(crc=registry.crc) as conn:
            stub = ServiceStub(conn, registry, "Echo")
            stub.call("ping", [registry.enum_type("Count")["ONE"]])
    """

    def __init__(self, connection: Connection, registry: SchemaRegistry, service: str) -> None:
        self.connection = connection
        self.registry = registry
        self.service = registry.service(service)

    @property
    def methods(self) -> list[ProtoMethod]:
        return self.service.methods

    def call(self, method_name: str, args: Sequence[Any]) -> Any:
        """Perform one remote call and return its result."""
        method = find_method(self.service, method_name)
        try:
            self.connection.send_frame(encode_call(self.registry, method, args))
            payload = self.connection.receive_frame()
            if payload is None:
                raise ProtocolError(f"Connection closed before {method.name} replied")
            return decode_reply(self.registry, method, payload)
        except SerializationError as e:
            raise ProtocolError(f"Cannot exchange {method.name}: {e}") from e


class ServiceEndpoint:
    """Serves calls for one service by dispatching to a handler object.

    Each call invokes the handler attribute named like the method with the
    decoded arguments (absent arguments are None). Exceptions raised by the
    handler are answered with an ERROR frame.
    """

    def __init__(self, registry: SchemaRegistry, service: str, handler: Any) -> None:
        self.registry = registry
        self.service = registry.service(service)
        self.handler = handler

    def handle(self, payload: bytes) -> bytes:
        """Answer one CALL payload with a REPLY or ERROR payload."""
        try:
            method, args = decode_call(self.registry, self.service, payload)
        except (ProtocolError, MethodNotFoundError, SerializationError) as e:
            logger.warning("Rejected call: %s", e)
            return encode_error(self.registry, str(e))

        target = getattr(self.handler, method.name, None)
        if target is None:
            return encode_error(self.registry, f"{method.name} is not implemented")

        try:
            result = target(*args)
            return encode_reply(self.registry, method, result)
        except Exception as e:
            logger.warning("%s raised %s", method.name, e)
            return encode_error(self.registry, f"{type(e).__name__}: {e}")

    def serve(self, connection: Connection, *, max_calls: int | None = None) -> int:
        """Answer calls until the peer disconnects or ``max_calls`` were served."""
        served = 0
        while max_calls is None or served < max_calls:
            payload = connection.receive_frame()
            if payload is None:
                break
            connection.send_frame(self.handle(payload))
            served += 1
        return served
