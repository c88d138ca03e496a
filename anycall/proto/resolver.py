"""Classify declared types into buildable type descriptors."""

from anycall.errors import UnsupportedTypeError
from anycall.schema.types import ProtoType

from .registry import SchemaRegistry
from .types import EnumDescriptor, ListDescriptor, RecordDescriptor, SetDescriptor, TypeDescriptor


def classify(registry: SchemaRegistry, declared: ProtoType, name: str | None = None) -> TypeDescriptor:
    """Map a declared type to the descriptor used to build its values.

    Records are checked first, then lists, sets and enums. Primitives and
    unknown names raise UnsupportedTypeError.
    """
    if registry.is_record(declared.name):
        return RecordDescriptor(schema=declared.name)
    if declared.name == "list" and declared.element is not None:
        return ListDescriptor(element=declared.element)
    if declared.name == "set" and declared.element is not None:
        return SetDescriptor(element=declared.element)
    if registry.is_enum(declared.name):
        return EnumDescriptor(name=declared.name, symbols=registry.enums[declared.name].symbols)
    raise UnsupportedTypeError(str(declared), name)
