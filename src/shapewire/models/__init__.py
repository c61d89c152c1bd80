"""Pydantic record modeling for shapewire.

This module provides the Record base class, the field annotation helpers,
and the value types the decoder produces.
"""

from __future__ import annotations

from .base import ErrorSet, Record
from .containers import ArrayMap, HashMap, OwnedList, Tagged
from .fields import (
    EnumBits,
    FixedFloat,
    FixedInt,
    FixedLength,
    Float16,
    Float32,
    Float64,
    Growable,
    Int8,
    Int16,
    Int32,
    Int64,
    MapLayout,
    UInt8,
    UInt16,
    UInt32,
    UInt64,
)

__all__ = [
    "Record",
    "ErrorSet",
    "Tagged",
    "OwnedList",
    "HashMap",
    "ArrayMap",
    "FixedInt",
    "FixedFloat",
    "FixedLength",
    "EnumBits",
    "Growable",
    "MapLayout",
    "UInt8",
    "UInt16",
    "UInt32",
    "UInt64",
    "Int8",
    "Int16",
    "Int32",
    "Int64",
    "Float16",
    "Float32",
    "Float64",
]
