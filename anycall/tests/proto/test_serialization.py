"""Tests for binary serialization"""

import pytest

from anycall.proto.serialization import SerializationError
from anycall.schema.types import ProtoType


def describe_records():
    def packs_a_simple_record(expect, registry):
        Int32Record = registry.record_type("Int32Record")

        record = Int32Record(value=-2)
        packed = record.pack()
        expect(packed) == b"\xfe\xff\xff\xff"

        recovered, consumed = Int32Record.unpack(packed)
        expect(recovered) == record
        expect(consumed) == 4

    def packs_every_member_kind(expect, registry):
        Label = registry.record_type("Label")
        Color = registry.enum_type("Color")

        label = Label(
            text="hi",
            color=Color.BLUE,
            tags=("a",),
            blob=b"\x01\x02",
            ratio=0.5,
            active=True,
        )
        packed = label.pack()
        expect(packed) == bytes.fromhex("686900" "2c01" "016100" "020102" "000000000000e03f" "01")

        recovered, consumed = Label.unpack(packed)
        expect(recovered) == label
        expect(consumed) == len(packed)

    def unpacks_nested_collections_as_hashable_values(expect, registry):
        Box = registry.record_type("Box")
        Label = registry.record_type("Label")

        box = Box(label=Label(tags=("x", "y")), sizes=frozenset({1, 2}))
        recovered, _ = Box.unpack(box.pack())
        expect(recovered) == box
        expect(recovered.label.tags) == ("x", "y")
        expect(hash(recovered)) == hash(box)

    def rejects_values_of_the_wrong_record_type(expect, registry):
        codec = registry.codec
        Int32Record = registry.record_type("Int32Record")
        with pytest.raises(SerializationError):
            codec.pack(ProtoType(name="Label"), Int32Record(value=1))


def describe_primitives():
    def rejects_out_of_range_integers(expect, registry):
        Int32Record = registry.record_type("Int32Record")
        with pytest.raises(SerializationError) as exinfo:
            Int32Record(value=2**31).pack()
        expect(str(exinfo.value)).includes("does not fit int32")

    def rejects_booleans_as_integers(expect, registry):
        with pytest.raises(SerializationError):
            registry.codec.pack(ProtoType(name="uint8"), True)

    def rejects_long_sized_strings(expect, registry):
        Label = registry.record_type("Label")
        with pytest.raises(SerializationError):
            Label(text="far too long").pack()

    def rejects_floats_outside_float32(expect, registry):
        Reading = registry.record_type("Reading")
        with pytest.raises(SerializationError) as exinfo:
            Reading(level=1e40).pack()
        expect(str(exinfo.value)).includes("as float32")

    def rejects_truncated_data(expect, registry):
        with pytest.raises(SerializationError):
            registry.codec.unpack(ProtoType(name="int64"), b"\x01\x02")

    def rejects_unterminated_strings(expect, registry):
        with pytest.raises(SerializationError):
            registry.codec.unpack(ProtoType(name="string"), b"abc")


def describe_collections():
    def packs_lists_with_a_count_prefix(expect, registry):
        t = ProtoType(name="list", element=ProtoType(name="Int32Record"))
        Int32Record = registry.record_type("Int32Record")

        packed = registry.codec.pack(t, [Int32Record(value=1), Int32Record(value=2)])
        expect(packed) == b"\x02\x01\x00\x00\x00\x02\x00\x00\x00"

        values, consumed = registry.codec.unpack(t, packed)
        expect(values) == [Int32Record(value=1), Int32Record(value=2)]
        expect(consumed) == 9

    def unpacks_sets_as_sets(expect, registry):
        Color = registry.enum_type("Color")
        t = ProtoType(name="set", element=ProtoType(name="Color"))

        values, _ = registry.codec.unpack(t, registry.codec.pack(t, {Color.RED, Color.BLUE}))
        expect(values) == {Color.RED, Color.BLUE}

    def rejects_more_than_255_elements(expect, registry):
        t = ProtoType(name="list", element=ProtoType(name="uint8"))
        with pytest.raises(SerializationError):
            registry.codec.pack(t, [0] * 256)


def describe_enums():
    def packs_the_symbol_value_in_the_base_type(expect, registry):
        Color = registry.enum_type("Color")
        expect(registry.codec.pack(ProtoType(name="Color"), Color.BLUE)) == b"\x2c\x01"

    def rejects_unknown_values(expect, registry):
        with pytest.raises(SerializationError):
            registry.codec.unpack(ProtoType(name="Color"), b"\x07\x00")
