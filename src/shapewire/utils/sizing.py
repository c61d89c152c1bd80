"""Encoded size calculation utilities.

This module provides functions to calculate encoded sizes without keeping
the encoded bytes around.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel

from ..codec.encoder import encode
from ..codec.schema import resolve_shape
from ..codec.shapes import Aggregate, PackedAggregate, packed_width
from ..exceptions import SchemaError
from ..streams import CountingSink


def encoded_length(shape: Any, value: Any) -> int:
    """Return the number of bytes ``value`` encodes to.

    The value is encoded into a counting sink, so the result always agrees
    with what ``encode`` would write.

    Raises:
        EncodeError: If the value does not match the shape

    Example:
        >>> from shapewire.codec.shapes import U8, Optional
        >>> encoded_length(Optional(U8), 7)
        2
    """
    sink = CountingSink()
    encode(sink, shape, value)
    return sink.bytes_written


def static_size(shape_or_record: Any) -> int | None:
    """Return the encoded size if it is the same for every value, else None.

    Accepts a shape, a record class, or a record instance.

    Example:
        >>> from shapewire.codec.shapes import U32, Aggregate, BOOL
        >>> static_size(Aggregate([("id", U32), ("ok", BOOL)]))
        5
    """
    return _shape(shape_or_record).static_size()


def field_sizes(shape_or_record: Any) -> dict[str, int | None]:
    """Get the encoded size in bytes of each field of a record.

    Fields whose size depends on the value map to None. For a packed record
    the sizes are bit widths within the backing integer.

    Raises:
        SchemaError: If the shape is not a record

    Example:
        >>> from shapewire.codec.shapes import U32, Aggregate, BOOL
        >>> field_sizes(Aggregate([("id", U32), ("ok", BOOL)]))
        {'id': 4, 'ok': 1}
    """
    shape = _shape(shape_or_record)
    if isinstance(shape, PackedAggregate):
        return {item.name: packed_width(item.shape) for item in shape.fields}
    if not isinstance(shape, Aggregate):
        raise SchemaError(f"field_sizes needs a record shape, got {shape}")
    return {item.name: item.shape.static_size() for item in shape.fields}


def _shape(shape_or_record: Any) -> Any:
    # Get the class if we were passed an instance
    if isinstance(shape_or_record, BaseModel):
        shape_or_record = type(shape_or_record)
    return resolve_shape(shape_or_record)
