"""Primitive codec: fixed-width integers, floats and booleans.

Every multi-byte value is little-endian on the wire regardless of the host
byte order. Integers occupy the storage width of their declared bit width
(see ``storage_bytes``); signed integers are two's complement. Floats are
written bit-for-bit with ``struct``, so NaN payloads and signed zeros are
preserved.

>>> import io
>>> sink = io.BytesIO()
>>> encode_int(sink, U64, 1)
>>> sink.getvalue().hex()
'0100000000000000'
"""

from __future__ import annotations

import struct
from typing import Any

from ..exceptions import DecodeError, EncodeError, InvalidDiscriminant
from ..streams import Reader, Sink
from .shapes import U8, U64, U64_LENGTH, Bool, Float, Int


def encode_int(sink: Sink, shape: Int, value: Any) -> None:
    """Encode an integer using the shape's storage width and signedness.

    Raises:
        EncodeError: If value is not an int or is out of range for the width
    """
    if isinstance(value, bool) or not isinstance(value, int):
        raise EncodeError(f"expected int for {shape}, got {type(value).__name__}")
    if not shape.fits(value):
        raise EncodeError(
            f"value {value} out of range for {shape} [{shape.min_value}, {shape.max_value}]"
        )
    sink.write(value.to_bytes(shape.byte_size, "little", signed=shape.signed))


def decode_int(reader: Reader, shape: Int) -> int:
    """Decode an integer.

    Raises:
        EndOfInput: If the data is truncated
        DecodeError: If the stored value does not fit the declared bit width
    """
    data = reader.read_exact(shape.byte_size)
    value = int.from_bytes(data, "little", signed=shape.signed)
    if not shape.fits(value):
        raise DecodeError(f"decoded value {value} does not fit in {shape}")
    return value


def encode_float(sink: Sink, shape: Float, value: Any) -> None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise EncodeError(f"expected float for {shape}, got {type(value).__name__}")
    try:
        sink.write(struct.pack(shape.struct_format, value))
    except (OverflowError, struct.error) as err:
        raise EncodeError(f"value {value} cannot be represented as {shape}: {err}") from err


def decode_float(reader: Reader, shape: Float) -> float:
    data = reader.read_exact(shape.byte_size)
    (value,) = struct.unpack(shape.struct_format, data)
    return value


def encode_bool(sink: Sink, value: Any) -> None:
    """Encode a boolean as one byte: 0x01 for True, 0x00 for False."""
    if not isinstance(value, bool):
        raise EncodeError(f"expected bool, got {type(value).__name__}")
    sink.write(b"\x01" if value else b"\x00")


def decode_bool(reader: Reader) -> bool:
    """Decode a one-byte boolean.

    Raises:
        InvalidDiscriminant: If the byte is neither 0x00 nor 0x01
    """
    raw = reader.read_exact(1)[0]
    if raw == 0:
        return False
    if raw == 1:
        return True
    raise InvalidDiscriminant(f"{bytes([raw])!r} is not a valid boolean")


def encode_flag(sink: Sink, value: int) -> None:
    """Encode a one-byte 0/1 marker (fallible-value branch flag)."""
    encode_int(sink, U8, value)


def decode_flag(reader: Reader, what: str) -> int:
    raw = decode_int(reader, U8)
    if raw not in (0, 1):
        raise InvalidDiscriminant(f"invalid {what} flag {raw:#04x}")
    return raw


def encode_length(sink: Sink, length: int) -> None:
    """Encode an element count as u64 little-endian."""
    encode_int(sink, U64_LENGTH, length)


def decode_length(reader: Reader) -> int:
    return decode_int(reader, U64_LENGTH)


def encode_primitive(sink: Sink, shape: Int | Float | Bool, value: Any) -> None:
    if isinstance(shape, Int):
        encode_int(sink, shape, value)
    elif isinstance(shape, Float):
        encode_float(sink, shape, value)
    else:
        encode_bool(sink, value)


def decode_primitive(reader: Reader, shape: Int | Float | Bool) -> Any:
    if isinstance(shape, Int):
        return decode_int(reader, shape)
    if isinstance(shape, Float):
        return decode_float(reader, shape)
    return decode_bool(reader)
