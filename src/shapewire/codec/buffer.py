"""In-memory encode/decode helpers.

These wrap the stream codec for the common case of a complete message held
in a ``bytes`` object.
"""

from __future__ import annotations

import io
import logging
from typing import Any

from ..exceptions import DecodeError, EncodeError
from ..memory import Allocator
from .decoder import decode
from .encoder import encode
from .schema import resolve_shape
from .shapes import Aggregate, PackedAggregate

logger = logging.getLogger(__name__)


def encode_to_bytes(shape: Any, value: Any) -> bytes:
    """Encode ``value`` and return the bytes.

    If ``shape`` is a record class with ``wire_max_bytes`` set, the encoded
    size is checked against it.

    Raises:
        SchemaError: If the shape cannot be encoded at top level
        EncodeError: If the value does not match the shape, or the encoding
            exceeds ``wire_max_bytes``

    Example:
        >>> from shapewire.codec.shapes import I16, DynamicSequence
        >>> encode_to_bytes(DynamicSequence(I16), [1, -1]).hex()
        '02000000000000000100ffff'
    """
    shape = resolve_shape(shape)
    sink = io.BytesIO()
    encode(sink, shape, value)
    data = sink.getvalue()

    limit = _max_bytes(shape)
    if limit is not None and len(data) > limit:
        raise EncodeError(f"{shape} encoded to {len(data)} bytes, exceeds wire_max_bytes={limit}")

    logger.debug("Encoded %s into %d bytes", shape, len(data))
    return data


def decode_from_bytes(data: bytes, shape: Any, allocator: Allocator | None = None) -> Any:
    """Decode one value from the start of ``data``.

    Bytes after the encoded value are ignored.

    Raises:
        DecodeError: If the data is malformed or truncated
    """
    shape = resolve_shape(shape)
    source = io.BytesIO(data)
    try:
        value = decode(source, shape, allocator)
    except DecodeError as err:
        logger.debug("Decoding %s from %d bytes failed: %s", shape, len(data), err)
        raise

    consumed = source.tell()
    if consumed < len(data):
        logger.debug("Decoded %s from %d bytes, ignored %d trailing", shape, consumed, len(data) - consumed)
    else:
        logger.debug("Decoded %s from %d bytes", shape, consumed)
    return value


def _max_bytes(shape: Any) -> int | None:
    if isinstance(shape, (Aggregate, PackedAggregate)) and shape.model is not None:
        return getattr(shape.model, "wire_max_bytes", None)
    return None
