"""Unit tests for allocation tracking and cleanup on failed decodes."""

from __future__ import annotations

import enum
import logging

import pytest

from shapewire import (
    U8,
    U16,
    Aggregate,
    AllocationFailure,
    AllocConfig,
    Allocator,
    AssociativeContainer,
    DecodeError,
    DynamicSequence,
    Enumeration,
    EndOfInput,
    FailingAllocator,
    FixedSequence,
    GrowableList,
    Optional,
    decode_from_bytes,
    encode_to_bytes,
    release,
)
from shapewire.models.containers import HashMap, OwnedList


class _Two(enum.Enum):
    A = 0
    B = 1


class TestAllocator:
    """Test the allocator bookkeeping."""

    def test_alloc_and_free(self, allocator: Allocator) -> None:
        buffer = allocator.alloc(3)
        assert buffer == [None, None, None]
        assert allocator.live == 1
        allocator.free(buffer)
        assert allocator.live == 0
        assert allocator.total_allocations == 1

    def test_double_free(self, allocator: Allocator) -> None:
        buffer = allocator.alloc(1)
        allocator.free(buffer)
        with pytest.raises(ValueError, match="not a live allocation"):
            allocator.free(buffer)

    def test_owns_is_identity_based(self, allocator: Allocator) -> None:
        buffer = allocator.alloc(2)
        assert allocator.owns(buffer)
        assert not allocator.owns([None, None])

    def test_factory(self, allocator: Allocator) -> None:
        buffer = allocator.alloc(2, OwnedList)
        assert isinstance(buffer, OwnedList)

    def test_create(self, allocator: Allocator) -> None:
        container = allocator.create(HashMap)
        assert allocator.owns(container)

    def test_max_allocations(self, caplog: pytest.LogCaptureFixture) -> None:
        allocator = Allocator(AllocConfig(max_allocations=1))
        allocator.alloc(1)
        with caplog.at_level(logging.WARNING, logger="shapewire.memory"):
            with pytest.raises(AllocationFailure, match="budget"):
                allocator.alloc(1)
        assert "budget of 1 exhausted" in caplog.text

    def test_max_items(self) -> None:
        allocator = Allocator(AllocConfig(max_items=4))
        allocator.alloc(4)
        with pytest.raises(AllocationFailure, match="max_items"):
            allocator.alloc(5)

    def test_failing_allocator(self) -> None:
        with pytest.raises(AllocationFailure):
            FailingAllocator().alloc(0)

    def test_allocation_failure_is_decode_error(self) -> None:
        assert issubclass(AllocationFailure, DecodeError)


class TestDecodeAllocations:
    """Test which shapes allocate."""

    def test_heap_free_shapes_work_with_failing_allocator(self) -> None:
        shape = Aggregate([("a", U8), ("b", FixedSequence(U16, 2)), ("c", Optional(U8))])
        value = {"a": 1, "b": (2, 3), "c": None}
        data = encode_to_bytes(shape, value)
        assert decode_from_bytes(data, shape, FailingAllocator()) == value

    def test_dynamic_sequence_needs_allocator(self) -> None:
        data = encode_to_bytes(DynamicSequence(U8), [1])
        with pytest.raises(AllocationFailure):
            decode_from_bytes(data, DynamicSequence(U8), FailingAllocator())

    def test_huge_length_refused_by_budget(self) -> None:
        data = b"\xff" * 8
        allocator = Allocator(AllocConfig(max_items=1024))
        with pytest.raises(AllocationFailure):
            decode_from_bytes(data, DynamicSequence(U8), allocator)
        assert allocator.live == 0


class TestCleanupOnFailure:
    """A failed decode releases everything it allocated."""

    def test_list_of_lists(self, allocator: Allocator) -> None:
        shape = GrowableList(GrowableList(U8))
        data = encode_to_bytes(shape, [[1, 2], [3], [4, 5]])
        with pytest.raises(EndOfInput) as exc_info:
            decode_from_bytes(data[:-1], shape, allocator)
        assert exc_info.value.path == [2, 1]
        assert allocator.live == 0

    def test_record_with_containers(self, allocator: Allocator) -> None:
        shape = Aggregate(
            [
                ("names", DynamicSequence(DynamicSequence(U8))),
                ("index", AssociativeContainer(U8, GrowableList(U8))),
                ("tail", Enumeration(_Two, bits=8)),
            ]
        )
        value = {"names": [[1], [2, 3]], "index": {1: [4], 2: [5, 6]}, "tail": _Two.B}
        data = encode_to_bytes(shape, value)
        with pytest.raises(DecodeError) as exc_info:
            decode_from_bytes(data[:-1] + b"\x09", shape, allocator)
        assert exc_info.value.path == ["tail"]
        assert allocator.live == 0

    def test_map_value_failure(self, allocator: Allocator) -> None:
        shape = AssociativeContainer(U8, GrowableList(U8))
        data = encode_to_bytes(shape, {1: [1], 2: [2, 3]})
        with pytest.raises(EndOfInput):
            decode_from_bytes(data[:-3], shape, allocator)
        assert allocator.live == 0

    def test_budget_hit_midway(self) -> None:
        shape = GrowableList(GrowableList(U8))
        data = encode_to_bytes(shape, [[1], [2], [3]])
        allocator = Allocator(AllocConfig(max_allocations=3))
        with pytest.raises(AllocationFailure):
            decode_from_bytes(data, shape, allocator)
        assert allocator.live == 0

    def test_successful_decode_then_release(self, allocator: Allocator) -> None:
        shape = Aggregate([("a", GrowableList(DynamicSequence(U8))), ("m", AssociativeContainer(U8, U8))])
        value = decode_from_bytes(encode_to_bytes(shape, {"a": [[1], [2]], "m": {1: 1}}), shape, allocator)
        assert allocator.live == 4
        release(shape, value, allocator)
        assert allocator.live == 0

    def test_release_ignores_foreign_values(self, allocator: Allocator) -> None:
        release(GrowableList(U8), [1, 2, 3], allocator)
        assert allocator.live == 0
