"""Type-directed construction of call arguments from line input.

Every value is built from exactly one structural line per step:

    record  one line of JSON text
    enum    one line naming a symbol
    list    one line naming the true element type, then one value per
    set     element until a blank ends the collection

A blank line always means "no value". At the top level that omits the
argument; inside a collection it ends the collection.
"""

import logging
from typing import Any

from anycall.errors import DecodeError, UnknownSymbolError
from anycall.proto.registry import SchemaRegistry
from anycall.proto.resolver import classify
from anycall.proto.textcodec import decode
from anycall.proto.types import EnumDescriptor, ListDescriptor, RecordDescriptor, SetDescriptor
from anycall.schema import SchemaError

from .lines import LineStream
from .signature import ParameterSpec

logger = logging.getLogger(__name__)


def _freeze(value: Any) -> Any:
    """Hashable form of a built value, for set membership."""
    if isinstance(value, list | tuple):
        return tuple(_freeze(v) for v in value)
    if isinstance(value, set | frozenset):
        return frozenset(_freeze(v) for v in value)
    return value


class ParameterBuilder:
    """Builds one argument value per parameter, reading from a LineStream."""

    def __init__(self, registry: SchemaRegistry, lines: LineStream) -> None:
        self._registry = registry
        self._lines = lines

    def build(self, spec: ParameterSpec) -> Any:
        """Build a value for ``spec``; None means the input was blank."""
        descriptor = spec.type
        if isinstance(descriptor, RecordDescriptor):
            return self._build_record(spec.name, descriptor)
        if isinstance(descriptor, ListDescriptor | SetDescriptor):
            return self._build_collection(spec.name, descriptor)
        if isinstance(descriptor, EnumDescriptor):
            return self._build_enum(spec.name, descriptor)
        raise TypeError(f"Unknown descriptor {descriptor!r}")

    def _build_record(self, name: str, descriptor: RecordDescriptor) -> Any:
        text = self._lines.prompt(
            f"Enter JSON value for {name} ({descriptor.schema}), blank to not enter: "
        )
        if not text.strip():
            return None
        return decode(self._registry, descriptor.schema, text)

    def _build_enum(self, name: str, descriptor: EnumDescriptor) -> Any:
        text = self._lines.prompt(
            f"Enter {descriptor.name} value for {name} "
            f"({' | '.join(descriptor.symbols)}), blank to not enter: "
        )
        if not text.strip():
            return None
        # Symbols match exactly, surrounding whitespace included
        if text not in descriptor.symbols:
            raise UnknownSymbolError(descriptor.name, text, descriptor.symbols)
        return self._registry.enum_type(descriptor.name)[text]

    def _build_collection(self, name: str, descriptor: ListDescriptor | SetDescriptor) -> Any:
        kind = "list" if isinstance(descriptor, ListDescriptor) else "set"
        text = self._lines.prompt(f"Enter true type for {name} (blank to not enter the {kind}): ")
        if not text.strip():
            return None

        element = descriptor.element
        try:
            true_type = self._registry.parse_type(text)
        except SchemaError as e:
            raise DecodeError(str(element), text.strip(), str(e)) from e
        if true_type != element:
            raise DecodeError(
                str(element), text.strip(), f"true type {true_type} is not the element type {element}"
            )

        element_spec = ParameterSpec(
            name=name, type=classify(self._registry, true_type, name), declared=true_type
        )
        self._lines.report(f"Selecting {true_type} as true type for {name}")
        self._lines.report(f"Begin to enter {name} ({kind} of {true_type}), blank to finish")

        values: list[Any] = []
        unique: set[Any] = set()
        while True:
            value = self.build(element_spec)
            if value is None:
                break
            if kind == "list":
                values.append(value)
            else:
                unique.add(_freeze(value))

        result: list[Any] | set[Any] = values if kind == "list" else unique
        logger.debug("Built %s %s with %d elements", kind, name, len(result))
        self._lines.report(f"Completed a {kind} of {true_type} of size {len(result)}")
        return result
