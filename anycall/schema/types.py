"""Type definitions for schema parsing."""

from dataclasses import dataclass
from typing import Any

from dataclasses_json import DataClassJsonMixin


@dataclass
class ProtoType(DataClassJsonMixin):
    """Represents a type expression.

    - size=N: bytes/string with max length N
    - element: element type of a list/set
    - otherwise a primitive or a user-defined type (struct/enum)
    """

    name: str
    size: int | None = None
    element: "ProtoType | None" = None

    def __str__(self) -> str:
        if self.element is not None:
            return f"{self.name}<{self.element}>"
        if self.size is not None:
            return f"{self.name}[{self.size}]"
        return self.name


@dataclass
class ProtoEnumValue(DataClassJsonMixin):
    """Represents a single enum symbol."""

    name: str
    value: int
    comment: str | None


@dataclass
class ProtoEnum(DataClassJsonMixin):
    """Represents an enum type definition."""

    values: list[ProtoEnumValue]
    type: ProtoType
    name: str
    comment: str | None

    @property
    def symbols(self) -> tuple[str, ...]:
        return tuple(v.name for v in self.values)


@dataclass
class ProtoStructMember(DataClassJsonMixin):
    """Represents a member of a struct."""

    type: ProtoType
    name: str
    comment: str | None


@dataclass
class ProtoStruct(DataClassJsonMixin):
    """Represents a struct type definition."""

    members: list[ProtoStructMember]
    name: str
    comment: str | None


@dataclass
class ProtoParam(DataClassJsonMixin):
    """Represents a declared method parameter."""

    name: str
    type: ProtoType


@dataclass
class ProtoMethod(DataClassJsonMixin):
    """Represents a remote method declaration.

    returns=None means the method returns nothing.
    """

    name: str
    params: list[ProtoParam]
    returns: ProtoType | None
    comment: str | None


@dataclass
class ProtoService(DataClassJsonMixin):
    """Represents a service and its methods in declaration order."""

    name: str
    methods: list[ProtoMethod]
    comment: str | None


@dataclass
class ProtoOption(DataClassJsonMixin):
    """Represents a protocol option."""

    name: str
    value: Any
    comment: str | None


@dataclass
class Protocol(DataClassJsonMixin):
    """Represents the protocol settings block."""

    options: list[ProtoOption]
    comment: str | None


@dataclass
class Schema(DataClassJsonMixin):
    """Everything declared in one schema file."""

    enums: list[ProtoEnum]
    structs: list[ProtoStruct]
    services: list[ProtoService]
    protocol: Protocol | None
    comments: list[str]


PRIMITIVE_TYPES = frozenset(
    [
        "bool",
        "int8",
        "int16",
        "int32",
        "int64",
        "uint8",
        "uint16",
        "uint32",
        "uint64",
        "float32",
        "float64",
        "bytes",
        "string",
    ]
)

COLLECTION_TYPES = frozenset(["list", "set"])

SIZED_TYPES = frozenset(["bytes", "string"])

ENUM_BASE_TYPES = frozenset(["int8", "int16", "int32", "uint8", "uint16", "uint32"])

INT_RANGES: dict[str, tuple[int, int]] = {
    "int8": (-(2**7), 2**7 - 1),
    "int16": (-(2**15), 2**15 - 1),
    "int32": (-(2**31), 2**31 - 1),
    "int64": (-(2**63), 2**63 - 1),
    "uint8": (0, 2**8 - 1),
    "uint16": (0, 2**16 - 1),
    "uint32": (0, 2**32 - 1),
    "uint64": (0, 2**64 - 1),
}
