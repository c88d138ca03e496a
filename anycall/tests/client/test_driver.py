"""Tests for the invocation driver"""

import io

import pytest
from rich.console import Console

from anycall.client import LineStream, invoke
from anycall.errors import MissingArgumentError, UnknownSymbolError, UnsupportedTypeError


class FakeStub:
    """Records calls instead of sending them."""

    def __init__(self, registry, result=None):
        self.registry = registry
        self.service = registry.service("Echo")
        self.result = result
        self.calls = []

    def call(self, method_name, args):
        self.calls.append((method_name, args))
        return self.result


def describe_invoke():
    def calls_methods_without_parameters_without_reading(expect, registry):
        stub = FakeStub(registry)
        lines = LineStream.from_lines(["unused"])
        invoke(stub, "reset", lines)
        expect(stub.calls) == [("reset", [])]
        expect(lines.lines_read) == 0

    def passes_enum_arguments(expect, registry):
        stub = FakeStub(registry, result="pong")
        result = invoke(stub, "ping", LineStream.from_lines(["ONE"]))
        expect(result) == "pong"
        expect(stub.calls) == [("ping", [registry.enum_type("Count").ONE])]

    def passes_collection_arguments(expect, registry):
        stub = FakeStub(registry, result=3)
        invoke(
            stub,
            "sumList",
            LineStream.from_lines(["Int32Record", '{"value": 1}', '{"value": 2}', ""]),
        )
        Int32Record = registry.record_type("Int32Record")
        expect(stub.calls) == [("sumList", [[Int32Record(value=1), Int32Record(value=2)]])]

    def sends_blank_arguments_as_absent(expect, registry):
        stub = FakeStub(registry)
        invoke(stub, "paint", LineStream.from_lines([]))
        expect(stub.calls) == [("paint", [None, None])]

    def refuses_blank_arguments_when_strict(expect, registry):
        stub = FakeStub(registry)
        with pytest.raises(MissingArgumentError) as exinfo:
            invoke(stub, "ping", LineStream.from_lines([""]), strict=True)
        expect(exinfo.value.name) == "count"
        expect(stub.calls) == []

    def does_not_call_after_a_build_failure(expect, registry):
        stub = FakeStub(registry)
        with pytest.raises(UnknownSymbolError):
            invoke(stub, "ping", LineStream.from_lines(["TWO"]))
        expect(stub.calls) == []

    def does_not_read_for_unsupported_methods(expect, registry):
        stub = FakeStub(registry)
        lines = LineStream.from_lines(["2"])
        with pytest.raises(UnsupportedTypeError):
            invoke(stub, "scale", lines)
        expect(lines.lines_read) == 0

    def reports_progress(expect, registry):
        output = io.StringIO()
        stub = FakeStub(registry, result="pong")
        console = Console(file=output, soft_wrap=True)
        invoke(stub, "ping", LineStream.from_lines(["ONE"], console))
        text = output.getvalue()
        expect(text).includes("Enter Count value for count (ZERO | ONE), blank to not enter: ")
        expect(text).includes("Adding <Count.ONE: 1> to params for count")
        expect(text).includes("Querying Echo.ping(<Count.ONE: 1>)")
        expect(text).includes("'pong'")
