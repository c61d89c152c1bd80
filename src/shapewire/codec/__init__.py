"""Binary codec for shapewire.

This module provides the stream encoder and decoder, the in-memory helpers,
the shape descriptors that drive them, and the derivation of shapes from
Pydantic records.
"""

from __future__ import annotations

from .buffer import decode_from_bytes, encode_to_bytes
from .decoder import decode
from .encoder import encode
from .release import release
from .schema import FieldSchema, RecordSchema, record_shape, resolve_shape, shape_of

__all__ = [
    "encode",
    "decode",
    "encode_to_bytes",
    "decode_from_bytes",
    "release",
    "shape_of",
    "record_shape",
    "resolve_shape",
    "RecordSchema",
    "FieldSchema",
]
