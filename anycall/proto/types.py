"""Runtime type descriptors for building call arguments.

A declared parameter type classifies into exactly one of these
descriptors. Collection descriptors keep the declared element type; the
type named at the prompt must equal it.
"""

from dataclasses import dataclass

from anycall.schema.types import ProtoType


@dataclass(frozen=True, slots=True)
class RecordDescriptor:
    """A struct declared in the schema."""

    schema: str


@dataclass(frozen=True, slots=True)
class ListDescriptor:
    """An ordered sequence; duplicates and order are kept."""

    element: ProtoType


@dataclass(frozen=True, slots=True)
class SetDescriptor:
    """An unordered collection; equal elements collapse."""

    element: ProtoType


@dataclass(frozen=True, slots=True)
class EnumDescriptor:
    """One symbol out of a fixed set."""

    name: str
    symbols: tuple[str, ...]


TypeDescriptor = RecordDescriptor | ListDescriptor | SetDescriptor | EnumDescriptor
