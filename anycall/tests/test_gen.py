"""Tests for the typed client generator"""

from anycall import gen
from anycall.proto import Transport
from anycall.schema import parse
from anycall.schema.types import ProtoType


def _load_client(schema_file):
    with open(schema_file, encoding="utf-8") as f:
        text = f.read()
    namespace = {"__name__": "echo_client"}
    exec(compile(gen.render(parse(text), text), "echo_client.py", "exec"), namespace)
    return namespace


def describe_map_type():
    def maps_primitives(expect):
        expect(gen.map_type(ProtoType(name="uint16"))) == "int"
        expect(gen.map_type(ProtoType(name="string", size=4))) == "str"

    def maps_collections(expect):
        t = ProtoType(name="set", element=ProtoType(name="Color"))
        expect(gen.map_type(t)) == "set[Color]"

    def maps_void(expect):
        expect(gen.map_type(None)) == "None"


def describe_py_name():
    def escapes_keywords(expect):
        expect(gen.py_name("class")) == "class_"
        expect(gen.py_name("Color")) == "Color"


def describe_render():
    def defines_types_and_clients(expect, schema_file):
        client = _load_client(schema_file)
        expect(sorted(client["Color"].__members__)) == ["BLUE", "GREEN", "RED"]
        expect(client["Label"]().text) == ""
        expect(client["EchoClient"].__doc__) == "Client for the Echo service."

    def exposes_the_first_method_of_each_name(expect, schema_file):
        client = _load_client(schema_file)
        ping = client["EchoClient"].ping
        expect(ping.__code__.co_varnames[: ping.__code__.co_argcount]) == ("self", "count")

    def calls_the_service(expect, schema_file, echo_server):
        client = _load_client(schema_file)
        registry = client["registry"]
        with Transport("127.0.0.1", echo_server).open(crc=registry.crc) as connection:
            echo = client["EchoClient"](connection)
            expect(echo.ping(client["Count"].ONE)) == "pong"
            expect(echo.nested([[client["Int32Record"](value=2)], []])) == [2, 0]
