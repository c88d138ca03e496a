"""JSON text encoding of records, used for typed-in record values.

The text form fills a zero-valued record: members that are not given keep
their zero value, unknown members and ill-typed values are rejected. The
text form never travels over the wire.
"""

import base64
import binascii
import json
import math
from typing import Any

from anycall.errors import DecodeError
from anycall.schema.types import INT_RANGES, ProtoType

from .registry import SchemaRegistry
from .serialization import FLOAT32_MAX, Record, SchemaEnum


class _Mismatch(Exception):
    """Internal: a value does not match its declared type."""

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"{path}: {reason}" if path else reason)


def decode(registry: SchemaRegistry, schema: str, text: str) -> Record:
    """Decode JSON text into a record of the named struct."""
    if not registry.is_record(schema):
        raise DecodeError(schema, text, f"{schema} is not a record type")
    try:
        value = json.loads(text)
        return _from_json(registry, ProtoType(name=schema), value, "")
    except json.JSONDecodeError as e:
        raise DecodeError(schema, text, f"malformed JSON ({e.msg} at column {e.colno})") from e
    except ValueError as e:
        raise DecodeError(schema, text, f"unreadable JSON value ({e})") from e
    except RecursionError as e:
        raise DecodeError(schema, text, "value is nested too deeply") from e
    except _Mismatch as e:
        raise DecodeError(schema, text, str(e)) from e


def encode(registry: SchemaRegistry, record: Record) -> str:
    """Encode a record as compact JSON text, the inverse of decode()."""
    return json.dumps(_to_json(registry, ProtoType(name=record._schema), record), separators=(",", ":"))


def _describe(value: Any) -> str:
    return f"{json.dumps(value)} ({type(value).__name__})"


def _from_json(registry: SchemaRegistry, t: ProtoType, value: Any, path: str) -> Any:
    name = t.name

    if name in INT_RANGES:
        if isinstance(value, bool) or not isinstance(value, int):
            raise _Mismatch(path, f"expected {name}, got {_describe(value)}")
        low, high = INT_RANGES[name]
        if not low <= value <= high:
            raise _Mismatch(path, f"{value} is out of range for {name}")
        return value

    if name in ("float32", "float64"):
        if isinstance(value, bool) or not isinstance(value, int | float):
            raise _Mismatch(path, f"expected {name}, got {_describe(value)}")
        try:
            number = float(value)
        except OverflowError:
            raise _Mismatch(path, f"{value} is out of range for {name}") from None
        if not math.isfinite(number):
            raise _Mismatch(path, f"expected a finite {name}, got {value}")
        if name == "float32" and abs(number) > FLOAT32_MAX:
            raise _Mismatch(path, f"{value} is out of range for float32")
        return number

    if name == "bool":
        if not isinstance(value, bool):
            raise _Mismatch(path, f"expected bool, got {_describe(value)}")
        return value

    if name == "string":
        if not isinstance(value, str):
            raise _Mismatch(path, f"expected string, got {_describe(value)}")
        if "\x00" in value:
            raise _Mismatch(path, "strings cannot contain NUL characters")
        if t.size is not None and len(value.encode("utf-8")) > t.size:
            raise _Mismatch(path, f"string longer than {t.size} bytes")
        return value

    if name == "bytes":
        if not isinstance(value, str):
            raise _Mismatch(path, f"expected base64 string, got {_describe(value)}")
        try:
            data = base64.b64decode(value, validate=True)
        except binascii.Error as e:
            raise _Mismatch(path, f"invalid base64 ({e})") from e
        if t.size is not None and len(data) > t.size:
            raise _Mismatch(path, f"bytes longer than {t.size}")
        return data

    if name in ("list", "set"):
        assert t.element is not None
        if not isinstance(value, list):
            raise _Mismatch(path, f"expected a JSON array for {t}, got {_describe(value)}")
        items = [_from_json(registry, t.element, v, f"{path}[{i}]") for i, v in enumerate(value)]
        return frozenset(items) if name == "set" else tuple(items)

    if registry.is_enum(name):
        enum_type = registry.enum_type(name)
        if not isinstance(value, str) or value not in enum_type.__members__:
            symbols = ", ".join(registry.enums[name].symbols)
            raise _Mismatch(path, f"expected one of {symbols}, got {_describe(value)}")
        return enum_type[value]

    if registry.is_record(name):
        if not isinstance(value, dict):
            raise _Mismatch(path, f"expected a JSON object for {name}, got {_describe(value)}")
        members = {m.name: m for m in registry.structs[name].members}
        unknown = sorted(set(value) - set(members))
        if unknown:
            raise _Mismatch(path, f"unknown field {', '.join(unknown)} for {name}")
        fields = {
            key: _from_json(registry, members[key].type, v, f"{path}.{key}" if path else key)
            for key, v in value.items()
        }
        return registry.record_type(name)(**fields)

    raise _Mismatch(path, f"unknown type {name}")


def _to_json(registry: SchemaRegistry, t: ProtoType, value: Any) -> Any:
    name = t.name

    if name == "bytes":
        return base64.b64encode(value).decode("ascii")
    if name in ("float32", "float64") and not math.isfinite(value):
        raise ValueError(f"{value} has no JSON representation")
    if name in ("list", "set"):
        assert t.element is not None
        return [_to_json(registry, t.element, v) for v in value]
    if isinstance(value, SchemaEnum):
        return value.name
    if isinstance(value, Record):
        return {
            m.name: _to_json(registry, m.type, getattr(value, m.name))
            for m in registry.structs[name].members
        }
    return value
