"""Typed Python client generator.

Renders a module with one client class per service and one typed method
per declared method, each forwarding to ``ServiceStub.call``.
"""

import keyword

from jinja2 import Environment, PackageLoader

from anycall.proto.registry import PRIMITIVE_TYPE_MAP
from anycall.schema.types import ProtoMethod, ProtoService, ProtoType, Schema

env = Environment(
    loader=PackageLoader("anycall", "templates"),
    trim_blocks=True,
    lstrip_blocks=True,
    keep_trailing_newline=True,
    line_comment_prefix="%%",
    line_statement_prefix="%",
)

template = env.get_template("client.py.j2")


def py_name(name: str) -> str:
    """A usable Python identifier for a schema name."""
    return f"{name}_" if keyword.iskeyword(name) else name


def map_type(t: ProtoType | None) -> str:
    """Map a schema type to a Python annotation."""
    if t is None:
        return "None"
    if t.element is not None:
        return f"{t.name}[{map_type(t.element)}]"
    if t.name in PRIMITIVE_TYPE_MAP:
        return PRIMITIVE_TYPE_MAP[t.name].__name__
    return py_name(t.name)


def callable_methods(service: ProtoService) -> list[ProtoMethod]:
    """Methods reachable by name: the first declaration of each name."""
    seen: set[str] = set()
    methods = []
    for method in service.methods:
        if method.name not in seen:
            seen.add(method.name)
            methods.append(method)
    return methods


def render(schema: Schema, text: str) -> str:
    """Render a typed client module for ``schema`` (parsed from ``text``)."""
    return template.render(
        schema=schema,
        schema_literal=repr(text),
        map_type=map_type,
        py_name=py_name,
        callable_methods=callable_methods,
    )
