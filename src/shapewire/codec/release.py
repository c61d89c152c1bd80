"""Releasing the storage owned by decoded values.

``release`` walks a decoded value alongside its shape and frees every buffer
or container the allocator still tracks for it. The decoder uses it to undo
the work of a decode that fails halfway, so a failed decode leaves the
allocator exactly as it found it.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from ..memory import Allocator
from ..models.containers import Tagged
from .shapes import (
    Aggregate,
    AssociativeContainer,
    DynamicSequence,
    ErrorDomain,
    FallibleValue,
    FixedSequence,
    GrowableList,
    Optional,
    Shape,
    TaggedUnion,
)


def release(shape: Shape, value: Any, allocator: Allocator) -> None:
    """Free everything ``value`` owns in ``allocator``, children first.

    Values (or parts of values) that were not allocated by ``allocator`` are
    skipped, so releasing a hand-built value is harmless.
    """
    if isinstance(shape, AssociativeContainer):
        if shape.context is not None:
            release(shape.context, getattr(value, "context", None), allocator)
        for key, item in value.items():
            release(shape.key, key, allocator)
            release(shape.value, item, allocator)
        _free(allocator, value)
    elif isinstance(shape, (GrowableList, DynamicSequence, FixedSequence)):
        if value is None or isinstance(value, (bytes, bytearray)):
            return
        for item in value:
            if item is not None:
                release(shape.element, item, allocator)
        _free(allocator, value)
    elif isinstance(shape, Aggregate):
        for item in shape.fields:
            child = value.get(item.name) if isinstance(value, Mapping) else getattr(value, item.name, None)
            if child is not None:
                release(item.shape, child, allocator)
    elif isinstance(shape, Optional):
        if value is not None:
            release(shape.inner, value, allocator)
    elif isinstance(shape, TaggedUnion):
        if isinstance(value, Tagged):
            payload_shape = shape.payload_shape(value.tag)
            if payload_shape is not None:
                release(payload_shape, value.value, allocator)
    elif isinstance(shape, FallibleValue):
        if not isinstance(value, shape.errors.enum_class):
            release(shape.payload, value, allocator)
    elif isinstance(shape, ErrorDomain):
        return


def release_all(parts: list[tuple[Shape, Any]], allocator: Allocator) -> None:
    """Release already-decoded parts in reverse order of decoding."""
    for shape, value in reversed(parts):
        release(shape, value, allocator)


def _free(allocator: Allocator, value: Any) -> None:
    if allocator.owns(value):
        allocator.free(value)
