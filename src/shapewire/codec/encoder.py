"""Shape-directed binary encoder.

This module provides the encode() dispatcher that walks a shape descriptor
and writes the matching value to a byte sink. Container adapters are matched
first, then primitives and the composite shapes; composite shapes recurse
back into the dispatcher for their children.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from ..exceptions import EncodeError, SchemaError
from ..models.containers import Tagged
from ..streams import Sink
from .bitpack import BitPacker
from .containers import encode_list, encode_map
from .primitive import encode_bool, encode_flag, encode_int, encode_length, encode_primitive
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


def encode(sink: Sink, shape: Any, value: Any) -> None:
    """Encode ``value`` to ``sink`` using ``shape``.

    Args:
        sink: Object with a ``write(bytes)`` method
        shape: Shape descriptor, or a Record class
        value: Value to encode

    Raises:
        SchemaError: If the shape cannot be encoded at top level
        EncodeError: If the value does not match the shape
        OSError: Propagated unchanged from the sink

    Example:
        >>> import io
        >>> from shapewire.codec.shapes import U32, Optional
        >>> sink = io.BytesIO()
        >>> encode(sink, Optional(U32), 5)
        >>> sink.getvalue().hex()
        '0105000000'
    """
    shape = resolve_shape(shape)
    if isinstance(shape, ErrorDomain):
        raise SchemaError(
            f"{shape} cannot be encoded on its own; wrap it in a fallible value or a record field"
        )
    encode_value(sink, shape, value)


def encode_value(sink: Sink, shape: Shape, value: Any) -> None:
    """Recursive dispatcher; callers are expected to have validated the top-level shape."""
    # Container adapters
    if isinstance(shape, AssociativeContainer):
        encode_map(sink, shape, value, encode_value)
        return
    if isinstance(shape, GrowableList):
        encode_list(sink, shape, value, encode_value)
        return

    if isinstance(shape, (Int, Float, Bool)):
        encode_primitive(sink, shape, value)
        return

    if isinstance(shape, Void):
        if value is not None:
            raise EncodeError(f"expected None for void, got {type(value).__name__}")
        return

    if isinstance(shape, FixedSequence):
        items = _as_sequence(shape, value)
        if len(items) != shape.count:
            raise EncodeError(f"expected {shape.count} items for {shape}, got {len(items)}")
        _encode_items(sink, shape.element, items)
        return

    if isinstance(shape, DynamicSequence):
        items = _as_sequence(shape, value)
        encode_length(sink, len(items))
        _encode_items(sink, shape.element, items)
        return

    if isinstance(shape, Aggregate):
        for item in shape.fields:
            field_value = _field_value(shape, value, item.name)
            try:
                encode_value(sink, item.shape, field_value)
            except EncodeError as err:
                raise EncodeError(f"{item.name}: {err}") from err
        return

    if isinstance(shape, PackedAggregate):
        encode_int(sink, shape.backing, pack_fields(shape, value))
        return

    if isinstance(shape, Optional):
        if value is None:
            encode_bool(sink, False)
        else:
            encode_bool(sink, True)
            encode_value(sink, shape.inner, value)
        return

    if isinstance(shape, Enumeration):
        encode_int(sink, shape.tag, _enum_value(shape, value))
        return

    if isinstance(shape, TaggedUnion):
        _encode_union(sink, shape, value)
        return

    if isinstance(shape, FallibleValue):
        if isinstance(value, shape.errors.enum_class):
            encode_flag(sink, 1)
            encode_int(sink, shape.errors.code, value.value)
        else:
            encode_flag(sink, 0)
            encode_value(sink, shape.payload, value)
        return

    if isinstance(shape, ErrorDomain):
        if not isinstance(value, shape.enum_class):
            raise EncodeError(f"expected a {shape.enum_class.__name__} member, got {value!r}")
        encode_int(sink, shape.code, value.value)
        return

    raise SchemaError(f"unsupported shape {shape!r}")


def pack_fields(shape: PackedAggregate, value: Any) -> int:
    """Pack the fields of a packed aggregate into its backing integer."""
    packer = BitPacker()
    for item in shape.fields:
        field_value = _field_value(shape, value, item.name)
        field_shape = item.shape
        try:
            if isinstance(field_shape, Bool):
                if not isinstance(field_value, bool):
                    raise EncodeError(f"expected bool, got {type(field_value).__name__}")
                packer.write_bool(field_value)
            elif isinstance(field_shape, Int):
                _write_packed_int(packer, field_shape, field_value)
            elif isinstance(field_shape, Enumeration):
                _write_packed_int(packer, field_shape.tag, _enum_value(field_shape, field_value))
            else:
                packer.write_uint(pack_fields(field_shape, field_value), field_shape.backing_bits)
        except EncodeError as err:
            raise EncodeError(f"{item.name}: {err}") from err
    return packer.to_int()


def _write_packed_int(packer: BitPacker, shape: Int, value: Any) -> None:
    if isinstance(value, bool) or not isinstance(value, int):
        raise EncodeError(f"expected int for {shape}, got {type(value).__name__}")
    if not shape.fits(value):
        raise EncodeError(f"value {value} out of range for {shape}")
    if shape.signed:
        packer.write_int(value, shape.bits)
    else:
        packer.write_uint(value, shape.bits)


def _encode_items(sink: Sink, element: Shape, items: Sequence[Any]) -> None:
    for index, item in enumerate(items):
        try:
            encode_value(sink, element, item)
        except EncodeError as err:
            raise EncodeError(f"[{index}]: {err}") from err


def _encode_union(sink: Sink, shape: TaggedUnion, value: Any) -> None:
    if not isinstance(value, Tagged):
        raise EncodeError(f"expected Tagged for {shape}, got {type(value).__name__}")
    payload_shape = shape.payload_shape(value.tag)
    if payload_shape is None:
        raise EncodeError(f"{value.tag!r} is not a variant of {shape}")
    discriminant = shape.discriminant
    member = discriminant.enum_class[value.tag]
    encode_int(sink, discriminant.tag, member.value)
    try:
        encode_value(sink, payload_shape, value.value)
    except EncodeError as err:
        raise EncodeError(f"{value.tag}: {err}") from err


def _enum_value(shape: Enumeration, value: Any) -> int:
    if not isinstance(value, shape.enum_class):
        raise EncodeError(f"expected a {shape.enum_class.__name__} member, got {value!r}")
    return value.value


def _as_sequence(shape: Shape, value: Any) -> Sequence[Any]:
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value)
    if not isinstance(value, Sequence) or isinstance(value, str):
        raise EncodeError(f"expected a sequence for {shape}, got {type(value).__name__}")
    return value


def _field_value(shape: Aggregate | PackedAggregate, value: Any, name: str) -> Any:
    if isinstance(value, Mapping):
        try:
            return value[name]
        except KeyError:
            raise EncodeError(f"{shape.display_name}: missing field {name!r}") from None
    try:
        return getattr(value, name)
    except AttributeError:
        raise EncodeError(f"{shape.display_name}: missing field {name!r}") from None
