"""Errors raised while invoking a remote method.

Every error below is fatal to the invocation that raised it. Nothing is
retried and no partially built call is ever sent.

Hierarchy:
    InvocationError
      ConnectError          transport could not be opened
      ProtocolError         malformed or truncated frame exchange
      ServiceNotFoundError  service name not declared in the schema
      MethodNotFoundError   method name not declared on the service
      UnsupportedTypeError  parameter type is not a record, list, set or enum
      DecodeError           record text or true type could not be decoded
      UnknownSymbolError    enum text names no symbol of the enum
      MissingArgumentError  blank top-level argument in strict mode
      RemoteCallError       the service answered with an error
"""

from __future__ import annotations


class InvocationError(RuntimeError):
    """Base class for all invocation failures."""


class ConnectError(InvocationError):
    """Raised when the transport cannot connect."""

    def __init__(self, host: str, port: int, reason: str) -> None:
        super().__init__(f"Cannot connect to {host}:{port}: {reason}")
        self.host = host
        self.port = port
        self.reason = reason


class ProtocolError(InvocationError):
    """Raised when a frame exchange with the service fails."""


class ServiceNotFoundError(InvocationError):
    """Raised when a service is not declared in the schema."""

    def __init__(self, service: str) -> None:
        super().__init__(f"Couldn't find service named {service}")
        self.service = service


class MethodNotFoundError(InvocationError):
    """Raised when a method is not declared on a service."""

    def __init__(self, service: str, method: str) -> None:
        super().__init__(f"Couldn't find method named {method} in {service}")
        self.service = service
        self.method = method


class UnsupportedTypeError(InvocationError):
    """Raised when a type cannot be built from input."""

    def __init__(self, type_name: str, name: str | None = None) -> None:
        where = f" for {name}" if name else ""
        super().__init__(
            f"Cannot build a value of type {type_name}{where}: "
            "only records, lists, sets and enums are supported"
        )
        self.type_name = type_name
        self.name = name


class DecodeError(InvocationError):
    """Raised when record text or a true type name cannot be decoded."""

    def __init__(self, schema: str, text: str, reason: str) -> None:
        super().__init__(f"Cannot decode {text!r} as {schema}: {reason}")
        self.schema = schema
        self.text = text
        self.reason = reason


class UnknownSymbolError(InvocationError):
    """Raised when enum input names no symbol of the enum."""

    def __init__(self, enum: str, text: str, symbols: tuple[str, ...]) -> None:
        super().__init__(
            f"{text!r} is not a symbol of {enum} (expected one of {', '.join(symbols)})"
        )
        self.enum = enum
        self.text = text
        self.symbols = symbols


class MissingArgumentError(InvocationError):
    """Raised in strict mode when a top-level argument is left blank."""

    def __init__(self, method: str, name: str) -> None:
        super().__init__(f"No value entered for argument {name} of {method}")
        self.method = method
        self.name = name


class RemoteCallError(InvocationError):
    """Raised when the service answers a call with an error."""

    def __init__(self, method: str, message: str) -> None:
        super().__init__(f"{method} failed remotely: {message}")
        self.method = method
        self.message = message
