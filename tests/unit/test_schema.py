"""Unit tests for deriving shapes from Pydantic records."""

from __future__ import annotations

import enum
from typing import Annotated, ClassVar, Optional

import pytest

from shapewire import Optional as OptionalShape
from shapewire import (
    BOOL,
    F32,
    F64,
    I16,
    U8,
    U16,
    U32,
    U64,
    VOID,
    Aggregate,
    AssociativeContainer,
    DynamicSequence,
    EncodeError,
    EnumBits,
    Enumeration,
    ErrorDomain,
    ErrorSet,
    FallibleValue,
    FixedInt,
    FixedLength,
    FixedSequence,
    Float32,
    Growable,
    GrowableList,
    IndexStrategy,
    Int,
    Int16,
    MapLayout,
    PackedAggregate,
    Record,
    RecordSchema,
    SchemaError,
    UInt8,
    UInt16,
    UInt32,
    UInt64,
    decode_from_bytes,
    encode_to_bytes,
    field_sizes,
    shape_of,
    static_size,
)
from shapewire.codec.schema import record_shape


class Color(enum.Enum):
    RED = 0
    GREEN = 1
    BLUE = 2


class LinkError(ErrorSet):
    TIMEOUT = 1
    CHECKSUM = 2


class Sample(Record):
    id: UInt64
    readings: tuple[Int16, ...]
    valid: bool


class Flags(Record):
    a: Annotated[int, FixedInt(2)]
    b: Annotated[int, FixedInt(4)]
    pad: Annotated[int, FixedInt(2)] = 0

    wire_packed_bits: ClassVar[int | None] = 8


class Reply(Record):
    a: UInt32 = 255
    err: UInt16 | LinkError = 12


class Limited(Record):
    payload: bytes

    wire_max_bytes: ClassVar[int | None] = 10


class Node(Record):
    value: UInt8
    children: list[Node]


class Untyped(Record):
    count: int


class TestShapeOf:
    """Test annotation to shape mapping."""

    @pytest.mark.parametrize(
        ("annotation", "expected"),
        [
            (bool, BOOL),
            (UInt16, U16),
            (Int16, I16),
            (float, F64),
            (Float32, F32),
            (None, VOID),
            (Annotated[int, FixedInt(12, signed=True)], Int(12, signed=True)),
        ],
    )
    def test_scalars(self, annotation, expected) -> None:
        assert shape_of(annotation) == expected

    def test_bare_int_rejected(self) -> None:
        with pytest.raises(SchemaError, match="int needs a width"):
            shape_of(int)

    def test_str_rejected(self) -> None:
        with pytest.raises(SchemaError, match="no wire representation"):
            shape_of(str)

    def test_bytes(self) -> None:
        assert shape_of(bytes) == DynamicSequence(U8, owned=False, builder=bytes)
        assert shape_of(Annotated[bytes, FixedLength(4)]) == FixedSequence(U8, 4, builder=bytes)

    def test_optional(self) -> None:
        assert shape_of(Optional[UInt8]) == OptionalShape(U8)
        assert shape_of(UInt8 | None) == OptionalShape(U8)

    def test_fallible(self) -> None:
        assert shape_of(UInt16 | LinkError) == FallibleValue(U16, ErrorDomain(LinkError))

    def test_fallible_with_narrow_codes(self) -> None:
        shape = shape_of(Annotated[UInt16 | LinkError, EnumBits(8)])
        assert shape.errors.bits == 8

    def test_unsupported_union(self) -> None:
        with pytest.raises(SchemaError, match="TaggedUnion"):
            shape_of(UInt8 | UInt16)

    def test_lists(self) -> None:
        assert shape_of(list[UInt8]) == GrowableList(U8, managed=False)
        assert shape_of(Annotated[list[UInt8], Growable()]) == GrowableList(U8, managed=True)
        assert shape_of(Annotated[list[UInt8], FixedLength(3)]) == FixedSequence(U8, 3, builder=list)

    def test_tuples(self) -> None:
        assert shape_of(tuple[Int16, ...]) == DynamicSequence(I16, owned=False)
        assert shape_of(tuple[Float32, Float32, Float32]) == FixedSequence(F32, 3)

    def test_heterogeneous_tuple(self) -> None:
        with pytest.raises(SchemaError, match="share one type"):
            shape_of(tuple[UInt8, bool])

    def test_dicts(self) -> None:
        assert shape_of(dict[UInt8, UInt32]) == AssociativeContainer(U8, U32)
        ordered = shape_of(Annotated[dict[UInt8, bool], MapLayout(IndexStrategy.ORDERED_ARRAY, context=U16)])
        assert ordered == AssociativeContainer(U8, BOOL, IndexStrategy.ORDERED_ARRAY, U16)

    def test_enums(self) -> None:
        assert shape_of(Color) == Enumeration(Color)
        assert shape_of(Annotated[Color, EnumBits(8)]) == Enumeration(Color, 8, False)
        assert shape_of(LinkError) == ErrorDomain(LinkError)

    def test_shape_override(self) -> None:
        assert shape_of(Annotated[int, U8]) == U8
        assert shape_of(Annotated[list[UInt8], DynamicSequence(U8)]) == DynamicSequence(U8)


class TestRecordShape:
    """Test record derivation."""

    def test_aggregate(self) -> None:
        shape = shape_of(Sample)
        assert isinstance(shape, Aggregate)
        assert shape.model is Sample
        assert [item.name for item in shape.fields] == ["id", "readings", "valid"]
        assert shape.fields[1].shape == DynamicSequence(I16, owned=False)

    def test_cached(self) -> None:
        assert record_shape(Sample) is record_shape(Sample)

    def test_packed(self) -> None:
        shape = shape_of(Flags)
        assert isinstance(shape, PackedAggregate)
        assert shape.backing == U8

    def test_recursive_record(self) -> None:
        with pytest.raises(SchemaError, match="recursive record Node -> Node"):
            shape_of(Node)

    def test_field_error_names_field(self) -> None:
        with pytest.raises(SchemaError, match="Untyped.count"):
            shape_of(Untyped)

    def test_schema(self) -> None:
        schema = RecordSchema.from_model(Reply)
        assert [field.name for field in schema.fields] == ["a", "err"]
        assert schema.fields[0].static_size() == 4
        assert schema.total_bytes() is None
        assert not schema.packed

    def test_sizes(self) -> None:
        assert static_size(Flags) == 1
        assert static_size(Sample) is None
        assert field_sizes(Sample) == {"id": 8, "readings": None, "valid": 1}
        assert field_sizes(Flags) == {"a": 2, "b": 4, "pad": 2}
        assert field_sizes(Flags(a=1, b=2)) == {"a": 2, "b": 4, "pad": 2}

    def test_field_sizes_needs_record(self) -> None:
        with pytest.raises(SchemaError):
            field_sizes(U64)


class TestRecordCodec:
    """Test encoding records through their derived shapes."""

    def test_serialized_length(self) -> None:
        data = encode_to_bytes(Sample, Sample(id=555, readings=(1, 2, 3), valid=True))
        assert len(data) == 23
        assert decode_from_bytes(data, Sample) == Sample(id=555, readings=(1, 2, 3), valid=True)

    def test_packed_record(self) -> None:
        data = encode_to_bytes(Flags, Flags(a=1, b=5))
        assert data == b"\x15"
        assert decode_from_bytes(data, Flags) == Flags(a=1, b=5)

    def test_fallible_field_value(self) -> None:
        data = encode_to_bytes(Reply, Reply())
        assert data == bytes([0xFF, 0x00, 0x00, 0x00, 0x00, 0x0C, 0x00])
        assert decode_from_bytes(data, Reply) == Reply()

    def test_fallible_field_error(self) -> None:
        reply = Reply(err=LinkError.CHECKSUM)
        data = encode_to_bytes(Reply, reply)
        assert data == bytes([0xFF, 0x00, 0x00, 0x00, 0x01, 0x02, 0x00])
        assert decode_from_bytes(data, Reply).err is LinkError.CHECKSUM

    def test_wire_max_bytes(self) -> None:
        assert len(encode_to_bytes(Limited, Limited(payload=b"ab"))) == 10
        with pytest.raises(EncodeError, match="wire_max_bytes=10"):
            encode_to_bytes(Limited, Limited(payload=b"abc"))

    def test_bytes_field(self) -> None:
        data = encode_to_bytes(Limited, Limited(payload=b"ab"))
        assert decode_from_bytes(data, Limited).payload == b"ab"
