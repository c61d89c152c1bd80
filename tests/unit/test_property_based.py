"""Property-based tests using hypothesis."""

from __future__ import annotations

import enum
import math
import struct

from hypothesis import given
from hypothesis import strategies as st

from shapewire import (
    BOOL,
    F64,
    I32,
    U8,
    U16,
    U64,
    VOID,
    Aggregate,
    AllocConfig,
    Allocator,
    ArrayMap,
    AssociativeContainer,
    DecodeError,
    DynamicSequence,
    Enumeration,
    ErrorDomain,
    ErrorSet,
    FallibleValue,
    FixedSequence,
    GrowableList,
    IndexStrategy,
    Int,
    Optional,
    PackedAggregate,
    Tagged,
    TaggedUnion,
    decode_from_bytes,
    encode_to_bytes,
    encoded_length,
)


class Mode(enum.Enum):
    IDLE = 0
    RUN = 3
    HALT = 7


class Fault(ErrorSet):
    OVERHEAT = 10
    STALL = 20


RECORD = Aggregate(
    [
        ("id", U16),
        ("mode", Enumeration(Mode)),
        ("samples", DynamicSequence(I32)),
        ("note", Optional(FixedSequence(U8, 2))),
        ("result", FallibleValue(U8, ErrorDomain(Fault))),
    ]
)

records = st.fixed_dictionaries(
    {
        "id": st.integers(0, 0xFFFF),
        "mode": st.sampled_from(Mode),
        "samples": st.lists(st.integers(-(2**31), 2**31 - 1), max_size=8),
        "note": st.none() | st.tuples(st.integers(0, 255), st.integers(0, 255)),
        "result": st.integers(0, 255) | st.sampled_from(Fault),
    }
)


def widths(signed: bool) -> st.SearchStrategy[tuple[Int, int]]:
    def value_for(bits: int) -> st.SearchStrategy[tuple[Int, int]]:
        shape = Int(bits, signed)
        return st.tuples(st.just(shape), st.integers(shape.min_value, shape.max_value))

    return st.integers(1, 256).flatmap(value_for)


class TestCodecProperties:
    """Property-based tests for the codec."""

    @given(pair=widths(signed=False) | widths(signed=True))
    def test_integer_roundtrip(self, pair: tuple[Int, int]) -> None:
        shape, value = pair
        data = encode_to_bytes(shape, value)
        assert len(data) == shape.byte_size
        assert decode_from_bytes(data, shape) == value

    @given(value=st.integers(0, 2**64 - 1))
    def test_u64_little_endian(self, value: int) -> None:
        assert encode_to_bytes(U64, value) == struct.pack("<Q", value)

    @given(value=st.floats(allow_nan=True, allow_infinity=True))
    def test_f64_bit_exact(self, value: float) -> None:
        data = encode_to_bytes(F64, value)
        decoded = decode_from_bytes(data, F64)
        assert struct.pack("<d", decoded) == data
        if not math.isnan(value):
            assert decoded == value

    @given(value=records)
    def test_record_roundtrip(self, value: dict) -> None:
        data = encode_to_bytes(RECORD, value)
        assert decode_from_bytes(data, RECORD) == value

    @given(value=records)
    def test_length_consistency(self, value: dict) -> None:
        assert encoded_length(RECORD, value) == len(encode_to_bytes(RECORD, value))

    @given(value=records)
    def test_encode_deterministic(self, value: dict) -> None:
        assert encode_to_bytes(RECORD, value) == encode_to_bytes(RECORD, dict(value))

    @given(
        value=st.one_of(
            st.builds(Tagged, st.just("small"), st.integers(0, 255)),
            st.builds(Tagged, st.just("flag"), st.booleans()),
            st.builds(Tagged, st.just("nothing"), st.none()),
        )
    )
    def test_union_roundtrip(self, value: Tagged) -> None:
        shape = TaggedUnion([("small", U8), ("flag", BOOL), ("nothing", VOID)])
        assert decode_from_bytes(encode_to_bytes(shape, value), shape) == value

    @given(
        a=st.integers(0, 3),
        b=st.integers(-8, 7),
        c=st.booleans(),
        mode=st.sampled_from(Mode),
    )
    def test_packed_roundtrip(self, a: int, b: int, c: bool, mode: Mode) -> None:
        shape = PackedAggregate(
            [("a", Int(2)), ("b", Int(4, signed=True)), ("c", BOOL), ("mode", Enumeration(Mode))],
            backing_bits=10,
        )
        value = {"a": a, "b": b, "c": c, "mode": mode}
        data = encode_to_bytes(shape, value)
        assert len(data) == 2
        assert decode_from_bytes(data, shape) == value


class TestContainerProperties:
    """Property-based tests for container adapters."""

    @given(items=st.lists(st.lists(st.integers(0, 255), max_size=4), max_size=6))
    def test_list_roundtrip_tracks_buffers(self, items: list[list[int]]) -> None:
        shape = GrowableList(GrowableList(U8))
        allocator = Allocator()
        decoded = decode_from_bytes(encode_to_bytes(shape, items), shape, allocator)
        assert decoded == items
        assert allocator.live == 1 + len(items)

    @given(entries=st.dictionaries(st.integers(0, 0xFFFF), st.booleans(), max_size=10))
    def test_hashed_roundtrip(self, entries: dict[int, bool]) -> None:
        shape = AssociativeContainer(U16, BOOL)
        data = encode_to_bytes(shape, entries)
        assert len(data) == 8 + 3 * len(entries) + 1
        assert decode_from_bytes(data, shape) == entries

    @given(entries=st.dictionaries(st.integers(0, 255), st.integers(0, 255), max_size=10))
    def test_ordered_roundtrip_keeps_order(self, entries: dict[int, int]) -> None:
        shape = AssociativeContainer(U8, U8, strategy=IndexStrategy.ORDERED_ARRAY, context=U16)
        value = ArrayMap(entries, context=len(entries))
        decoded = decode_from_bytes(encode_to_bytes(shape, value), shape)
        assert list(decoded.items()) == list(entries.items())
        assert decoded.context == len(entries)

    @given(data=st.binary(max_size=40))
    def test_garbage_never_leaks(self, data: bytes) -> None:
        shape = GrowableList(AssociativeContainer(U8, DynamicSequence(U8)))
        allocator = Allocator(AllocConfig(max_items=64))
        try:
            decode_from_bytes(data, shape, allocator)
        except DecodeError:
            assert allocator.live == 0
