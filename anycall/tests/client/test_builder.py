"""Tests for type-directed argument building"""

import io

import pytest
from rich.console import Console

from anycall.client import LineStream, ParameterBuilder, ParameterSpec
from anycall.errors import DecodeError, UnknownSymbolError, UnsupportedTypeError
from anycall.proto import classify


def _spec(registry, name, type_text):
    declared = registry.parse_type(type_text)
    return ParameterSpec(name=name, type=classify(registry, declared, name), declared=declared)


def _builder(registry, *lines, output=None):
    console = Console(file=output, soft_wrap=True) if output is not None else None
    return ParameterBuilder(registry, LineStream.from_lines(lines, console))


def describe_records():
    def decodes_one_line_of_json(expect, registry):
        builder = _builder(registry, '{"value": 7}')
        value = builder.build(_spec(registry, "r", "Int32Record"))
        expect(value) == registry.record_type("Int32Record")(value=7)

    def treats_blank_as_absent(expect, registry):
        builder = _builder(registry, "   ")
        expect(builder.build(_spec(registry, "r", "Int32Record"))) == None

    def raises_decode_errors(expect, registry):
        builder = _builder(registry, "{oops")
        with pytest.raises(DecodeError) as exinfo:
            builder.build(_spec(registry, "r", "Int32Record"))
        expect(exinfo.value.schema) == "Int32Record"


def describe_enums():
    def looks_up_symbols(expect, registry):
        builder = _builder(registry, "BLUE")
        expect(builder.build(_spec(registry, "c", "Color"))) == registry.enum_type("Color").BLUE

    def requires_an_exact_match(expect, registry):
        builder = _builder(registry, " BLUE")
        with pytest.raises(UnknownSymbolError) as exinfo:
            builder.build(_spec(registry, "c", "Color"))
        expect(exinfo.value.text) == " BLUE"

    def treats_blank_as_absent(expect, registry):
        builder = _builder(registry, "")
        expect(builder.build(_spec(registry, "c", "Color"))) == None

    def rejects_unknown_symbols(expect, registry):
        builder = _builder(registry, "blue")
        with pytest.raises(UnknownSymbolError) as exinfo:
            builder.build(_spec(registry, "c", "Color"))
        expect(exinfo.value.symbols) == ("RED", "GREEN", "BLUE")


def describe_lists():
    def keeps_entry_order_and_duplicates(expect, registry):
        builder = _builder(registry, "Int32Record", '{"value": 2}', '{"value": 1}', '{"value": 2}', "")
        values = builder.build(_spec(registry, "values", "list<Int32Record>"))
        Int32Record = registry.record_type("Int32Record")
        expect(values) == [Int32Record(value=2), Int32Record(value=1), Int32Record(value=2)]

    def builds_empty_lists(expect, registry):
        builder = _builder(registry, "Int32Record", "")
        expect(builder.build(_spec(registry, "values", "list<Int32Record>"))) == []

    def treats_a_blank_true_type_as_absent(expect, registry):
        builder = _builder(registry, "", '{"value": 1}')
        expect(builder.build(_spec(registry, "values", "list<Int32Record>"))) == None

    def builds_nested_lists(expect, registry):
        builder = _builder(
            registry,
            "list<Int32Record>",
            "Int32Record",
            '{"value": 1}',
            '{"value": 2}',
            "",
            "Int32Record",
            "",
            "",
        )
        groups = builder.build(_spec(registry, "groups", "list<list<Int32Record>>"))
        Int32Record = registry.record_type("Int32Record")
        expect(groups) == [[Int32Record(value=1), Int32Record(value=2)], []]

    def rejects_a_different_true_type(expect, registry):
        builder = _builder(registry, "Label")
        with pytest.raises(DecodeError) as exinfo:
            builder.build(_spec(registry, "values", "list<Int32Record>"))
        expect(exinfo.value.reason).includes("not the element type Int32Record")

    def rejects_unknown_true_types(expect, registry):
        builder = _builder(registry, "Missing")
        with pytest.raises(DecodeError) as exinfo:
            builder.build(_spec(registry, "values", "list<Int32Record>"))
        expect(exinfo.value.text) == "Missing"

    def rejects_primitive_elements(expect, registry):
        builder = _builder(registry, "int32")
        with pytest.raises(UnsupportedTypeError):
            builder.build(_spec(registry, "values", "list<int32>"))


def describe_sets():
    def collapses_equal_elements(expect, registry):
        builder = _builder(registry, "Int32Record", '{"value": 1}', '{"value": 1}', '{"value": 3}', "")
        values = builder.build(_spec(registry, "values", "set<Int32Record>"))
        Int32Record = registry.record_type("Int32Record")
        expect(values) == {Int32Record(value=1), Int32Record(value=3)}

    def collects_enum_symbols(expect, registry):
        builder = _builder(registry, "Color", "RED", "BLUE", "RED", "")
        Color = registry.enum_type("Color")
        expect(builder.build(_spec(registry, "colors", "set<Color>"))) == {Color.RED, Color.BLUE}

    def freezes_nested_lists(expect, registry):
        builder = _builder(registry, "list<Color>", "Color", "RED", "", "Color", "RED", "", "")
        Color = registry.enum_type("Color")
        values = builder.build(_spec(registry, "paths", "set<list<Color>>"))
        expect(values) == {(Color.RED,)}


def describe_end_of_input():
    def ends_open_collections(expect, registry):
        builder = _builder(registry, "Int32Record", '{"value": 4}')
        values = builder.build(_spec(registry, "values", "list<Int32Record>"))
        expect(values) == [registry.record_type("Int32Record")(value=4)]


def describe_reporting():
    def reports_collection_progress(expect, registry):
        output = io.StringIO()
        builder = _builder(registry, "Int32Record", '{"value": 1}', "", output=output)
        builder.build(_spec(registry, "values", "list<Int32Record>"))
        text = output.getvalue()
        expect(text).includes("Enter true type for values (blank to not enter the list): ")
        expect(text).includes("Selecting Int32Record as true type for values")
        expect(text).includes("Completed a list of Int32Record of size 1")
