"""Shape-directed binary decoder.

This module provides the decode() dispatcher that reads a value of a known
shape from a byte source. Values are built bottom-up: children are decoded
first and the parent is constructed from them, so a partially decoded value
is never exposed.

If decoding fails, everything allocated by the failing call is released
before the error propagates; the allocator is left as it was found.
"""

from __future__ import annotations

from typing import Any

from ..exceptions import (
    DecodeError,
    InvalidDiscriminant,
    InvalidErrorCode,
    SchemaError,
)
from ..memory import Allocator
from ..models.containers import Tagged
from ..streams import Reader, Source
from .bitpack import BitUnpacker
from .containers import decode_list, decode_map
from .primitive import decode_bool, decode_flag, decode_int, decode_length, decode_primitive
from .release import release, release_all
from .schema import resolve_shape
from .shapes import (
    Aggregate,
    AssociativeContainer,
    Bool,
    DynamicSequence,
    Enumeration,
    ErrorDomain,
    FallibleValue,
    FixedSequence,
    Float,
    GrowableList,
    Int,
    Optional,
    PackedAggregate,
    Shape,
    TaggedUnion,
    Void,
)


def decode(source: Source | Reader, shape: Any, allocator: Allocator | None = None) -> Any:
    """Decode one value of ``shape`` from ``source``.

    Exactly the bytes of the encoding are consumed; anything after them is
    left in the source.

    Args:
        source: Object with a ``read(n)`` method, or a Reader
        shape: Shape descriptor, or a Record class
        allocator: Allocator for dynamic sequences, lists and maps
            (a fresh one is used if omitted)

    Returns:
        The decoded value

    Raises:
        SchemaError: If the shape cannot be decoded at top level
        EndOfInput: If the data is truncated
        InvalidDiscriminant: If an enum value, union tag or flag is unknown
        InvalidErrorCode: If an error code is not in its error domain
        AllocationFailure: If the allocator refuses an allocation
    """
    shape = resolve_shape(shape)
    if isinstance(shape, ErrorDomain):
        raise SchemaError(
            f"{shape} cannot be decoded on its own; wrap it in a fallible value or a record field"
        )
    reader = source if isinstance(source, Reader) else Reader(source)
    if allocator is None:
        allocator = Allocator()
    return decode_value(reader, shape, allocator)


def decode_value(reader: Reader, shape: Shape, allocator: Allocator) -> Any:
    """Recursive dispatcher; callers are expected to have validated the top-level shape."""
    # Container adapters
    if isinstance(shape, AssociativeContainer):
        return decode_map(reader, shape, allocator, decode_value)
    if isinstance(shape, GrowableList):
        return decode_list(reader, shape, allocator, decode_value)

    if isinstance(shape, (Int, Float, Bool)):
        return decode_primitive(reader, shape)

    if isinstance(shape, Void):
        return None

    if isinstance(shape, FixedSequence):
        items: list[Any] = []
        for index in range(shape.count):
            try:
                items.append(decode_value(reader, shape.element, allocator))
            except DecodeError as err:
                err.add_context(index)
                release_all([(shape.element, item) for item in items], allocator)
                raise
        return shape.builder(items)

    if isinstance(shape, DynamicSequence):
        return _decode_dynamic(reader, shape, allocator)

    if isinstance(shape, Aggregate):
        return _decode_aggregate(reader, shape, allocator)

    if isinstance(shape, PackedAggregate):
        return unpack_fields(shape, decode_int(reader, shape.backing))

    if isinstance(shape, Optional):
        if not decode_bool(reader):
            return None
        return decode_value(reader, shape.inner, allocator)

    if isinstance(shape, Enumeration):
        return _enum_member(shape, decode_int(reader, shape.tag))

    if isinstance(shape, TaggedUnion):
        member = _enum_member(shape.discriminant, decode_int(reader, shape.discriminant.tag))
        payload_shape = shape.payload_shape(member.name)
        if payload_shape is None:
            raise InvalidDiscriminant(f"{member.name!r} has no payload registered in {shape}")
        try:
            payload = decode_value(reader, payload_shape, allocator)
        except DecodeError as err:
            err.add_context(member.name)
            raise
        return Tagged(member.name, payload)

    if isinstance(shape, FallibleValue):
        if decode_flag(reader, "error-union"):
            return _error_member(shape.errors, decode_int(reader, shape.errors.code))
        return decode_value(reader, shape.payload, allocator)

    if isinstance(shape, ErrorDomain):
        return _error_member(shape, decode_int(reader, shape.code))

    raise SchemaError(f"unsupported shape {shape!r}")


def unpack_fields(shape: PackedAggregate, raw: int) -> Any:
    """Rebuild a packed aggregate from its backing integer."""
    unpacker = BitUnpacker(raw, shape.backing_bits)
    values: dict[str, Any] = {}
    for item in shape.fields:
        field_shape = item.shape
        try:
            if isinstance(field_shape, Bool):
                values[item.name] = unpacker.read_bool()
            elif isinstance(field_shape, Int):
                values[item.name] = _read_packed_int(unpacker, field_shape)
            elif isinstance(field_shape, Enumeration):
                values[item.name] = _enum_member(field_shape, _read_packed_int(unpacker, field_shape.tag))
            else:
                values[item.name] = unpack_fields(field_shape, unpacker.read_uint(field_shape.backing_bits))
        except DecodeError as err:
            err.add_context(item.name)
            raise
    return _build(shape, values)


def _read_packed_int(unpacker: BitUnpacker, shape: Int) -> int:
    if shape.signed:
        return unpacker.read_int(shape.bits)
    return unpacker.read_uint(shape.bits)


def _decode_dynamic(reader: Reader, shape: DynamicSequence, allocator: Allocator) -> Any:
    length = decode_length(reader)
    buffer = allocator.alloc(length)
    for index in range(length):
        try:
            buffer[index] = decode_value(reader, shape.element, allocator)
        except DecodeError as err:
            err.add_context(index)
            release_all([(shape.element, item) for item in buffer[:index]], allocator)
            allocator.free(buffer)
            raise
    if shape.keeps_buffer:
        return buffer
    builder = shape.builder or tuple
    try:
        result = builder(buffer)
    except (TypeError, ValueError) as err:
        release(shape, buffer, allocator)
        raise DecodeError(f"cannot build {shape} from decoded items: {err}") from err
    allocator.free(buffer)
    return result


def _decode_aggregate(reader: Reader, shape: Aggregate, allocator: Allocator) -> Any:
    values: dict[str, Any] = {}
    for item in shape.fields:
        try:
            values[item.name] = decode_value(reader, item.shape, allocator)
        except DecodeError as err:
            err.add_context(item.name)
            _release_fields(shape, values, allocator)
            raise
    try:
        return _build(shape, values)
    except DecodeError:
        _release_fields(shape, values, allocator)
        raise


def _release_fields(shape: Aggregate, values: dict[str, Any], allocator: Allocator) -> None:
    release_all([(item.shape, values[item.name]) for item in shape.fields if item.name in values], allocator)


def _build(shape: Aggregate | PackedAggregate, values: dict[str, Any]) -> Any:
    model = shape.model
    if model is None:
        return values
    # Decoded values already match their shapes; skip validation so lists and
    # maps keep their identity (and with it their allocator registration).
    construct = getattr(model, "model_construct", None)
    try:
        if construct is not None:
            return construct(**values)
        return model(**values)
    except (TypeError, ValueError) as err:
        raise DecodeError(f"Failed to construct {shape.display_name}: {err}") from err


def _enum_member(shape: Enumeration, raw: int) -> Any:
    member = shape.member_for(raw)
    if member is None:
        raise InvalidDiscriminant(f"{raw} is not a valid {shape.enum_class.__name__}")
    return member


def _error_member(shape: ErrorDomain, code: int) -> Any:
    member = shape.member_for(code)
    if member is None:
        raise InvalidErrorCode(f"{code} is not an error code of {shape.enum_class.__name__}")
    return member
