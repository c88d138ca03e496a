"""Schema registry: the declared types and services of one schema file.

Record and enum Python types are created from the registry on first use
and cached, so values built from the same registry compare equal.
"""

import logging
from dataclasses import make_dataclass
from functools import cached_property, partial
from pathlib import Path
from typing import Any

from anycall.errors import ServiceNotFoundError
from anycall.schema import SchemaError, parse, parse_type
from anycall.schema.types import (
    COLLECTION_TYPES,
    INT_RANGES,
    PRIMITIVE_TYPES,
    ProtoEnum,
    ProtoService,
    ProtoStruct,
    ProtoType,
    Schema,
)

from .crc import CrcSize, crc_size
from .serialization import Record, SchemaEnum, WireCodec, record_field

logger = logging.getLogger(__name__)

# Python annotations for primitive members
PRIMITIVE_TYPE_MAP: dict[str, type] = {
    **{name: int for name in INT_RANGES},
    "bool": bool,
    "float32": float,
    "float64": float,
    "bytes": bytes,
    "string": str,
}

_ZERO_VALUES: dict[str, Any] = {
    **{name: 0 for name in INT_RANGES},
    "bool": False,
    "float32": 0.0,
    "float64": 0.0,
    "bytes": b"",
    "string": "",
}


class SchemaRegistry:
    """Lookup table over a parsed schema."""

    def __init__(self, schema: Schema) -> None:
        self.schema = schema
        self.enums: dict[str, ProtoEnum] = {e.name: e for e in schema.enums}
        self.structs: dict[str, ProtoStruct] = {s.name: s for s in schema.structs}
        self.services: dict[str, ProtoService] = {s.name: s for s in schema.services}
        self._record_types: dict[str, type[Record]] = {}
        self._enum_types: dict[str, type[SchemaEnum]] = {}

    @classmethod
    def from_text(cls, text: str) -> "SchemaRegistry":
        return cls(parse(text))

    @classmethod
    def from_file(cls, path: str | Path) -> "SchemaRegistry":
        with open(path, encoding="utf-8") as f:
            text = f.read()
        logger.debug("Loaded schema from %s", path)
        return cls.from_text(text)

    @cached_property
    def codec(self) -> WireCodec:
        return WireCodec(self)

    @property
    def crc(self) -> CrcSize:
        """CRC used for frames, from the ``protocol`` block (default CRC8)."""
        if self.schema.protocol:
            for option in self.schema.protocol.options:
                if option.name == "crc":
                    return crc_size(str(option.value))
        return CrcSize.CRC8

    def service(self, name: str) -> ProtoService:
        try:
            return self.services[name]
        except KeyError:
            raise ServiceNotFoundError(name) from None

    def is_record(self, name: str) -> bool:
        return name in self.structs

    def is_enum(self, name: str) -> bool:
        return name in self.enums

    def parse_type(self, text: str) -> ProtoType:
        """Parse a type expression and check every name in it is known."""
        t = parse_type(text)
        self._check_known(t, text)
        return t

    def _check_known(self, t: ProtoType, text: str) -> None:
        if t.name in COLLECTION_TYPES:
            assert t.element is not None
            self._check_known(t.element, text)
        elif t.name not in PRIMITIVE_TYPES and t.name not in self.enums and t.name not in self.structs:
            raise SchemaError(f"Unknown type {t.name} in {text!r}")

    def record_type(self, name: str) -> type[Record]:
        """Return the frozen dataclass for a struct, creating it on first use."""
        if name not in self._record_types:
            struct = self.structs[name]
            fields = [
                (
                    member.name,
                    self._annotation(member.type),
                    record_field(member.type, default_factory=partial(self.zero_value, member.type)),
                )
                for member in struct.members
            ]
            self._record_types[name] = make_dataclass(
                name,
                fields,
                bases=(Record,),
                frozen=True,
                namespace={"_registry": self, "_schema": name, "__doc__": struct.comment},
            )
        return self._record_types[name]

    def enum_type(self, name: str) -> type[SchemaEnum]:
        """Return the Enum class for a schema enum, creating it on first use."""
        if name not in self._enum_types:
            enum = self.enums[name]
            enum_type = SchemaEnum(name, [(v.name, v.value) for v in enum.values])  # type: ignore[call-overload]
            enum_type._base_type = enum.type.name
            self._enum_types[name] = enum_type
        return self._enum_types[name]

    def zero_value(self, t: ProtoType) -> Any:
        """The value a record member holds when it is not given."""
        if t.name == "list":
            return ()
        if t.name == "set":
            return frozenset()
        if t.name in _ZERO_VALUES:
            return _ZERO_VALUES[t.name]
        if self.is_enum(t.name):
            return next(iter(self.enum_type(t.name)))
        return self.record_type(t.name)()

    def _annotation(self, t: ProtoType) -> Any:
        if t.name == "list":
            return tuple
        if t.name == "set":
            return frozenset
        if t.name in PRIMITIVE_TYPE_MAP:
            return PRIMITIVE_TYPE_MAP[t.name]
        if self.is_enum(t.name):
            return self.enum_type(t.name)
        return self.record_type(t.name)
