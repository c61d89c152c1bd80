r"""Container adapters: growable lists and associative containers.

Both adapters fold a container into the recursive scheme by encoding its
elements with the dispatcher's ``encode``/``decode`` callables.

Growable list layout:

    [N: u64 le][item_0]...[item_N-1]

Associative container layouts:

    HASHED:         [context?][N: u64 le][key_0][value_0]...[key_N-1][value_N-1][0x00]
    ORDERED_ARRAY:  [context?][N: u64 le][key_0][value_0]...[key_N-1][value_N-1]

The trailing ``0x00`` of the hashed layout is a ``false`` end-of-entries
sentinel. It carries no information, but the decoder must consume it to stay
aligned with the rest of the stream.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from functools import partial
from typing import Any

from ..exceptions import DecodeError, EncodeError
from ..memory import Allocator
from ..models.containers import ArrayMap, HashMap, OwnedList
from ..streams import Reader, Sink
from .primitive import decode_bool, decode_length, encode_bool, encode_length
from .release import release, release_all
from .shapes import AssociativeContainer, GrowableList, Shape

Encoder = Callable[[Sink, Shape, Any], None]
Decoder = Callable[[Reader, Shape, Allocator], Any]


def encode_list(sink: Sink, shape: GrowableList, value: Any, encode: Encoder) -> None:
    if not isinstance(value, Sequence) or isinstance(value, (str, bytes)):
        raise EncodeError(f"expected a list for {shape}, got {type(value).__name__}")
    encode_length(sink, len(value))
    for index, item in enumerate(value):
        try:
            encode(sink, shape.element, item)
        except EncodeError as err:
            raise EncodeError(f"[{index}]: {err}") from err


def decode_list(reader: Reader, shape: GrowableList, allocator: Allocator, decode: Decoder) -> list[Any]:
    """Decode a growable list with capacity exactly equal to its length.

    A managed list is bound to ``allocator``; an unmanaged one is a plain
    list that the caller tracks through the allocator directly.
    """
    length = decode_length(reader)
    factory = partial(OwnedList, allocator=allocator) if shape.managed else list
    items = allocator.alloc(length, factory)
    for index in range(length):
        try:
            items[index] = decode(reader, shape.element, allocator)
        except DecodeError as err:
            err.add_context(index)
            for done in items[:index]:
                release(shape.element, done, allocator)
            allocator.free(items)
            raise
    return items


def encode_map(sink: Sink, shape: AssociativeContainer, value: Any, encode: Encoder) -> None:
    if not isinstance(value, Mapping):
        raise EncodeError(f"expected a mapping for {shape}, got {type(value).__name__}")
    if shape.context is not None:
        try:
            encode(sink, shape.context, getattr(value, "context", None))
        except EncodeError as err:
            raise EncodeError(f"context: {err}") from err
    encode_length(sink, len(value))
    for key, item in value.items():
        try:
            encode(sink, shape.key, key)
            encode(sink, shape.value, item)
        except EncodeError as err:
            raise EncodeError(f"[{key!r}]: {err}") from err
    if shape.hashed:
        encode_bool(sink, False)


def decode_map(reader: Reader, shape: AssociativeContainer, allocator: Allocator, decode: Decoder) -> HashMap | ArrayMap:
    """Decode an associative container bound to ``allocator``.

    Entries are inserted in the order read, which reproduces the iteration
    order of an ORDERED_ARRAY container exactly.
    """
    context = None
    if shape.context is not None:
        try:
            context = decode(reader, shape.context, allocator)
        except DecodeError as err:
            err.add_context("context")
            raise

    container_cls = HashMap if shape.hashed else ArrayMap
    try:
        container = allocator.create(partial(container_cls, context=context, allocator=allocator))
    except DecodeError:
        if shape.context is not None:
            release(shape.context, context, allocator)
        raise

    try:
        count = decode_length(reader)
        for _ in range(count):
            parts: list[tuple[Shape, Any]] = []
            try:
                key = decode(reader, shape.key, allocator)
                parts.append((shape.key, key))
                item = decode(reader, shape.value, allocator)
                parts.append((shape.value, item))
            except DecodeError as err:
                err.add_context(len(container))
                release_all(parts, allocator)
                raise
            if key in container:
                release(shape.value, container[key], allocator)
            container[key] = item
        if shape.hashed:
            decode_bool(reader)
    except DecodeError:
        release(shape, container, allocator)
        raise
    return container

