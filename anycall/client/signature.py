"""Method signatures: the ordered parameters of a declared method."""

from dataclasses import dataclass

from anycall.proto.registry import SchemaRegistry
from anycall.proto.resolver import classify
from anycall.proto.runtime import find_method
from anycall.proto.types import TypeDescriptor
from anycall.schema.types import ProtoService, ProtoType


@dataclass(frozen=True)
class ParameterSpec:
    """One parameter to build: its name, descriptor and declared type."""

    name: str
    type: TypeDescriptor
    declared: ProtoType


@dataclass(frozen=True)
class MethodSignature:
    """A method's parameters in call-site order."""

    service: str
    name: str
    parameters: tuple[ParameterSpec, ...]
    returns: ProtoType | None

    def __str__(self) -> str:
        params = ", ".join(f"{p.name}: {p.declared}" for p in self.parameters)
        returns = f" -> {self.returns}" if self.returns is not None else ""
        return f"{self.service}.{self.name}({params}){returns}"


def resolve_method(registry: SchemaRegistry, service: ProtoService, method_name: str) -> MethodSignature:
    """Resolve the first method named ``method_name``.

    Overloads are not disambiguated. Every parameter type is classified up
    front, so an unsupported type fails before any input is read.
    """
    method = find_method(service, method_name)
    parameters = tuple(
        ParameterSpec(name=p.name, type=classify(registry, p.type, p.name), declared=p.type)
        for p in method.params
    )
    return MethodSignature(
        service=service.name, name=method.name, parameters=parameters, returns=method.returns
    )
