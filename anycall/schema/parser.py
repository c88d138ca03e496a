"""Schema definition parser using Lark."""

import os
from dataclasses import dataclass
from typing import Any, TypeVar

from lark import Lark, Token, v_args
from lark.exceptions import LarkError, VisitError
from lark.visitors import Transformer

from .types import (
    COLLECTION_TYPES,
    ENUM_BASE_TYPES,
    INT_RANGES,
    PRIMITIVE_TYPES,
    SIZED_TYPES,
    Protocol,
    ProtoEnum,
    ProtoEnumValue,
    ProtoMethod,
    ProtoOption,
    ProtoParam,
    ProtoService,
    ProtoStruct,
    ProtoStructMember,
    ProtoType,
    Schema,
)

_g_parser: Lark | None = None
_g_comments: list[Token] = []

KNOWN_OPTIONS = {
    "crc": frozenset(["none", "crc8", "crc16", "crc32"]),
}


class SchemaError(RuntimeError):
    """Raised when a schema cannot be parsed or fails validation."""


@dataclass
class _Comment:
    text: str
    own_line: bool


TFilter = TypeVar("TFilter", bound=object)


def _filter(args: list[Any], class_type: type[TFilter]) -> list[TFilter]:
    return [v for v in args if isinstance(v, class_type)]


def _find_one(args: list[Any], class_type: type[TFilter]) -> TFilter | None:
    filtered = _filter(args, class_type)
    if len(filtered) > 1:
        raise SchemaError(f"Found more than one {class_type.__name__}")
    return filtered[0] if filtered else None


def _tokens(args: list[Any]) -> list[str]:
    return [str(v) for v in args if isinstance(v, Token)]


class TreeTransformer(Transformer):
    """Transform parse tree into schema types."""

    def __init__(self, comments: dict[int, _Comment] | None = None) -> None:
        super().__init__()
        self._comments = comments or {}

    def _comment(self, meta: Any) -> str | None:
        """Trailing comment on the same line, else a full-line comment just above."""
        if getattr(meta, "empty", True):
            return None
        same_line = self._comments.get(meta.line)
        if same_line and not same_line.own_line:
            return same_line.text
        above = self._comments.get(meta.line - 1)
        if above and above.own_line:
            return above.text
        return None

    def start(self, args: list[Any]) -> list[Any]:
        return args

    def type_expr(self, args: list[Any]) -> ProtoType:
        return args[0]

    def named_type(self, args: list[Any]) -> ProtoType:
        return ProtoType(name=str(args[0]))

    def sized_type(self, args: list[Any]) -> ProtoType:
        name = str(args[0])
        if name not in SIZED_TYPES:
            raise SchemaError(f"Only {' and '.join(sorted(SIZED_TYPES))} take a size, not {name}")
        return ProtoType(name=name, size=int(args[1]))

    def list_type(self, args: list[Any]) -> ProtoType:
        return ProtoType(name="list", element=args[0])

    def set_type(self, args: list[Any]) -> ProtoType:
        return ProtoType(name="set", element=args[0])

    @v_args(meta=True)
    def enum(self, meta: Any, args: list[Any]) -> ProtoEnum:
        name, base = _tokens(args)
        return ProtoEnum(
            name=name,
            type=ProtoType(name=base),
            values=_filter(args, ProtoEnumValue),
            comment=self._comment(meta),
        )

    @v_args(meta=True)
    def enum_value(self, meta: Any, args: list[Any]) -> ProtoEnumValue:
        name, value = _tokens(args)
        return ProtoEnumValue(name=name, value=int(value), comment=self._comment(meta))

    @v_args(meta=True)
    def struct(self, meta: Any, args: list[Any]) -> ProtoStruct:
        return ProtoStruct(
            name=_tokens(args)[0],
            members=_filter(args, ProtoStructMember),
            comment=self._comment(meta),
        )

    @v_args(meta=True)
    def struct_member(self, meta: Any, args: list[Any]) -> ProtoStructMember:
        return ProtoStructMember(
            name=_tokens(args)[0],
            type=args[1],
            comment=self._comment(meta),
        )

    @v_args(meta=True)
    def service(self, meta: Any, args: list[Any]) -> ProtoService:
        return ProtoService(
            name=_tokens(args)[0],
            methods=_filter(args, ProtoMethod),
            comment=self._comment(meta),
        )

    @v_args(meta=True)
    def method(self, meta: Any, args: list[Any]) -> ProtoMethod:
        return ProtoMethod(
            name=_tokens(args)[0],
            params=_filter(args, ProtoParam),
            returns=_find_one(args, ProtoType),
            comment=self._comment(meta),
        )

    def param(self, args: list[Any]) -> ProtoParam:
        return ProtoParam(name=str(args[0]), type=args[1])

    @v_args(meta=True)
    def proto(self, meta: Any, args: list[Any]) -> Protocol:
        return Protocol(options=_filter(args, ProtoOption), comment=self._comment(meta))

    @v_args(meta=True)
    def proto_option(self, meta: Any, args: list[Any]) -> ProtoOption:
        name, value = _tokens(args)
        return ProtoOption(name=name, value=value, comment=self._comment(meta))


def _get_parser() -> Lark:
    global _g_parser

    if not _g_parser:
        with open(f"{os.path.dirname(__file__)}/schema.lark", encoding="utf-8") as f:
            grammar = f.read()

        _g_parser = Lark(
            grammar,
            parser="lalr",
            start=["start", "type_expr"],
            propagate_positions=True,
            lexer_callbacks={"COMMENT": _g_comments.append},
        )
    return _g_parser


def _check_type(t: ProtoType, where: str, declared: set[str]) -> None:
    if t.name in COLLECTION_TYPES:
        if t.element is None:
            raise SchemaError(f"{where}: {t.name} needs an element type")
        _check_type(t.element, where, declared)
    elif t.name not in PRIMITIVE_TYPES and t.name not in declared:
        raise SchemaError(f"{where}: unknown type {t.name}")


def _check_unique(names: list[str], what: str) -> None:
    seen: set[str] = set()
    for name in names:
        if name in seen:
            raise SchemaError(f"Duplicate {what} {name}")
        seen.add(name)


def _check_struct_cycles(structs: list[ProtoStruct]) -> None:
    """A struct may not contain itself other than through a list or set."""
    struct_map = {s.name: s for s in structs}

    def visit(name: str, path: list[str]) -> None:
        if name in path:
            cycle = " -> ".join([*path[path.index(name) :], name])
            raise SchemaError(f"Struct {name} contains itself: {cycle}")
        for member in struct_map[name].members:
            if member.type.name in struct_map:
                visit(member.type.name, [*path, name])

    for struct in structs:
        visit(struct.name, [])


def validate(schema: Schema) -> None:
    """Validate a parsed schema."""
    type_names = [e.name for e in schema.enums] + [s.name for s in schema.structs]
    _check_unique(type_names, "type")
    _check_unique([s.name for s in schema.services], "service")
    declared = set(type_names)

    for enum in schema.enums:
        if enum.type.name not in ENUM_BASE_TYPES:
            raise SchemaError(f"Enum {enum.name}: {enum.type.name} is not an integer type")
        if not enum.values:
            raise SchemaError(f"Enum {enum.name} declares no symbols")
        _check_unique([v.name for v in enum.values], f"symbol in {enum.name}:")
        low, high = INT_RANGES[enum.type.name]
        for value in enum.values:
            if not low <= value.value <= high:
                raise SchemaError(
                    f"Enum {enum.name}: {value.name} = {value.value} does not fit {enum.type.name}"
                )

    for struct in schema.structs:
        _check_unique([m.name for m in struct.members], f"member in {struct.name}:")
        for member in struct.members:
            _check_type(member.type, f"{struct.name}.{member.name}", declared)

    _check_struct_cycles(schema.structs)

    for service in schema.services:
        for method in service.methods:
            where = f"{service.name}.{method.name}"
            _check_unique([p.name for p in method.params], f"parameter in {where}:")
            for param in method.params:
                _check_type(param.type, f"{where}({param.name})", declared)
            if method.returns is not None:
                _check_type(method.returns, f"{where} return", declared)

    if schema.protocol:
        for option in schema.protocol.options:
            allowed = KNOWN_OPTIONS.get(option.name)
            if allowed is None:
                raise SchemaError(f"Unknown protocol option {option.name}")
            if str(option.value).lower() not in allowed:
                raise SchemaError(f"Invalid value {option.value} for protocol option {option.name}")


def _collect_comments(text: str) -> dict[int, _Comment]:
    lines = text.splitlines()
    comments: dict[int, _Comment] = {}
    for token in _g_comments:
        prefix = lines[token.line - 1][: token.column - 1]
        comments[token.line] = _Comment(
            text=str(token).lstrip("#").strip(), own_line=not prefix.strip()
        )
    return comments


def parse(text: str) -> Schema:
    """Parse and validate a schema definition."""
    parser = _get_parser()

    _g_comments.clear()
    try:
        tree = parser.parse(text, start="start")
    except LarkError as e:
        raise SchemaError(f"Invalid schema: {e}") from e

    comments = _collect_comments(text)
    try:
        items = TreeTransformer(comments).transform(tree)
    except VisitError as e:
        if isinstance(e.orig_exc, SchemaError):
            raise e.orig_exc from None
        raise

    protocols = _filter(items, Protocol)
    if len(protocols) > 1:
        raise SchemaError("Only one protocol block is allowed")

    schema = Schema(
        enums=_filter(items, ProtoEnum),
        structs=_filter(items, ProtoStruct),
        services=_filter(items, ProtoService),
        protocol=protocols[0] if protocols else None,
        comments=[c.text for c in comments.values()],
    )
    validate(schema)
    return schema


def parse_type(text: str) -> ProtoType:
    """Parse a standalone type expression such as ``list<Point>``."""
    try:
        tree = _get_parser().parse(text.strip(), start="type_expr")
        return TreeTransformer().transform(tree)
    except VisitError as e:
        if isinstance(e.orig_exc, SchemaError):
            raise e.orig_exc from None
        raise
    except LarkError as e:
        raise SchemaError(f"Invalid type expression {text!r}") from e
