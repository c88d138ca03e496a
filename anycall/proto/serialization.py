"""Binary serialization for schema-described values.

Layout (little-endian):
    numeric primitives  fixed width, struct-packed
    string              UTF-8, NUL terminated
    bytes               one length byte, then the data
    enum                symbol value, packed as the enum's base type
    struct              members in declaration order
    list / set          one count byte, then the elements
"""

import struct as _struct
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, ClassVar, Self

from anycall.schema.types import INT_RANGES, ProtoType

if TYPE_CHECKING:
    from .registry import SchemaRegistry

# Map schema types to struct format characters
FORMAT_CHARS = {
    "bool": "?",
    "int8": "b",
    "uint8": "B",
    "int16": "h",
    "uint16": "H",
    "int32": "i",
    "uint32": "I",
    "int64": "q",
    "uint64": "Q",
    "float32": "f",
    "float64": "d",
}

# Size in bytes for each type
TYPE_SIZES = {name: _struct.calcsize("<" + fmt) for name, fmt in FORMAT_CHARS.items()}

MAX_LENGTH = 255

# Largest finite float32
FLOAT32_MAX = 3.4028234663852886e38


class SerializationError(RuntimeError):
    """Raised when serialization or deserialization fails."""


@dataclass(frozen=True)
class RecordFieldInfo:
    """Metadata for a record field."""

    type: ProtoType


def record_field(type: ProtoType, *, default_factory: Any) -> Any:
    """Define a record field carrying its schema type."""
    return field(default_factory=default_factory, metadata={"anycall": RecordFieldInfo(type)})


class Record:
    """Base class for record types created from a schema.

    Subclasses are frozen dataclasses made by ``SchemaRegistry.record_type``.
    List members hold tuples and set members hold frozensets, so records
    are hashable and can be collected into sets.
    """

    _registry: ClassVar["SchemaRegistry"]
    _schema: ClassVar[str]

    def pack(self) -> bytes:
        """Pack this record to bytes."""
        return self._registry.codec.pack(ProtoType(name=self._schema), self)

    @classmethod
    def unpack(cls, data: bytes | memoryview, offset: int = 0) -> tuple[Self, int]:
        """Unpack a record from bytes.

        Args:
            data: The bytes to unpack from.
            offset: Starting offset in data.

        Returns:
            Tuple of (instance, bytes_consumed).
        """
        return cls._registry.codec.unpack(ProtoType(name=cls._schema), data, offset)


class SchemaEnum(Enum):
    """Base class for enum types created from a schema."""

    _base_type: ClassVar[str]


class WireCodec:
    """Packs and unpacks values according to their schema type."""

    def __init__(self, registry: "SchemaRegistry") -> None:
        self._registry = registry

    def pack(self, t: ProtoType, value: Any) -> bytes:
        buf = bytearray()
        self._pack(t, value, buf)
        return bytes(buf)

    def unpack(self, t: ProtoType, data: bytes | memoryview, offset: int = 0) -> tuple[Any, int]:
        """Unpack one value of type ``t`` starting at ``offset``.

        Returns:
            Tuple of (value, bytes_consumed).
        """
        try:
            value, end = self._unpack(t, bytes(data), offset, frozen=False)
        except (_struct.error, IndexError) as e:
            raise SerializationError(f"Truncated {t} at offset {offset}") from e
        return value, end - offset

    def _pack(self, t: ProtoType, value: Any, buf: bytearray) -> None:
        name = t.name

        if name in FORMAT_CHARS:
            if name in INT_RANGES:
                if isinstance(value, bool) or not isinstance(value, int):
                    raise SerializationError(f"Expected an integer for {name}, got {value!r}")
                low, high = INT_RANGES[name]
                if not low <= value <= high:
                    raise SerializationError(f"{value} does not fit {name}")
            elif name == "bool" and not isinstance(value, bool):
                raise SerializationError(f"Expected a boolean, got {value!r}")
            try:
                buf.extend(_struct.pack("<" + FORMAT_CHARS[name], value))
            except (_struct.error, OverflowError) as e:
                raise SerializationError(f"Cannot pack {value!r} as {name}: {e}") from e
        elif name == "string":
            if not isinstance(value, str):
                raise SerializationError(f"Expected a string, got {value!r}")
            encoded = value.encode("utf-8")
            if b"\x00" in encoded:
                raise SerializationError("Strings cannot contain NUL characters")
            if t.size is not None and len(encoded) > t.size:
                raise SerializationError(f"String exceeds {t.size} bytes")
            buf.extend(encoded)
            buf.append(0)
        elif name == "bytes":
            if not isinstance(value, bytes | bytearray):
                raise SerializationError(f"Expected bytes, got {value!r}")
            limit = min(t.size, MAX_LENGTH) if t.size is not None else MAX_LENGTH
            if len(value) > limit:
                raise SerializationError(f"Bytes exceed {limit} bytes")
            buf.append(len(value))
            buf.extend(value)
        elif name in ("list", "set"):
            assert t.element is not None
            if isinstance(value, str | bytes) or not hasattr(value, "__iter__"):
                raise SerializationError(f"Expected a {name} for {t}, got {value!r}")
            items = list(value)
            if len(items) > MAX_LENGTH:
                raise SerializationError(f"{t} exceeds {MAX_LENGTH} elements")
            buf.append(len(items))
            for item in items:
                self._pack(t.element, item, buf)
        elif self._registry.is_enum(name):
            enum_type = self._registry.enum_type(name)
            if not isinstance(value, enum_type):
                raise SerializationError(f"Expected a {name} symbol, got {value!r}")
            buf.extend(_struct.pack("<" + FORMAT_CHARS[enum_type._base_type], value.value))
        elif self._registry.is_record(name):
            if not isinstance(value, self._registry.record_type(name)):
                raise SerializationError(f"Expected a {name} record, got {value!r}")
            for member in self._registry.structs[name].members:
                self._pack(member.type, getattr(value, member.name), buf)
        else:
            raise SerializationError(f"Unknown type {name}")

    def _unpack(self, t: ProtoType, data: bytes, o: int, *, frozen: bool) -> tuple[Any, int]:
        """Unpack one value; returns (value, new offset).

        ``frozen`` selects tuples/frozensets for collections, as needed
        inside records and set elements.
        """
        name = t.name

        if name in FORMAT_CHARS:
            (value,) = _struct.unpack_from("<" + FORMAT_CHARS[name], data, o)
            return value, o + TYPE_SIZES[name]

        if name == "string":
            end = data.find(b"\x00", o)
            if end < 0:
                raise SerializationError("Unterminated string")
            try:
                return data[o:end].decode("utf-8"), end + 1
            except UnicodeDecodeError as e:
                raise SerializationError(f"Invalid UTF-8 string: {e}") from e

        if name == "bytes":
            length = data[o]
            o += 1
            if o + length > len(data):
                raise SerializationError("Truncated bytes")
            return data[o : o + length], o + length

        if name in ("list", "set"):
            assert t.element is not None
            count = data[o]
            o += 1
            items = []
            for _ in range(count):
                item, o = self._unpack(t.element, data, o, frozen=frozen or name == "set")
                items.append(item)
            if name == "set":
                return (frozenset(items) if frozen else set(items)), o
            return (tuple(items) if frozen else items), o

        if self._registry.is_enum(name):
            enum_type = self._registry.enum_type(name)
            fmt = FORMAT_CHARS[enum_type._base_type]
            (raw,) = _struct.unpack_from("<" + fmt, data, o)
            try:
                return enum_type(raw), o + TYPE_SIZES[enum_type._base_type]
            except ValueError as e:
                raise SerializationError(f"{raw} is not a value of {name}") from e

        if self._registry.is_record(name):
            values = {}
            for member in self._registry.structs[name].members:
                values[member.name], o = self._unpack(member.type, data, o, frozen=True)
            return self._registry.record_type(name)(**values), o

        raise SerializationError(f"Unknown type {name}")
