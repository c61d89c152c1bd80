"""Field annotation helpers.

This module provides the metadata markers used inside ``Annotated[...]`` to
give record fields their wire widths and layouts, plus ready-made aliases for
the common fixed-width numbers.

Example:
    >>> class Reading(Record):
    ...     sensor: Annotated[int, FixedInt(bits=12)]
    ...     samples: Annotated[list[Float32], FixedLength(4)]
    ...     counts: dict[UInt8, UInt32]
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Annotated, Any

from ..codec.shapes import IndexStrategy


@dataclass(frozen=True)
class FixedInt:
    """Give an ``int`` field its bit width and signedness.

    Example:
        >>> class Message(Record):
        ...     temperature: Annotated[int, FixedInt(bits=16, signed=True)]
    """

    bits: int
    signed: bool = False


@dataclass(frozen=True)
class FixedFloat:
    """Give a ``float`` field its width (16, 32 or 64 bits; default 64)."""

    bits: int


@dataclass(frozen=True)
class FixedLength:
    """Make a ``list``, ``tuple`` or ``bytes`` field a fixed-length array.

    No length prefix is written; encoding fails if the value has a
    different length.
    """

    length: int


@dataclass(frozen=True)
class EnumBits:
    """Override the backing integer of an enum or error-set field."""

    bits: int
    signed: bool = False


@dataclass(frozen=True)
class Growable:
    """Decode a ``list`` field as a growable list.

    With ``managed=True`` the result is an ``OwnedList`` bound to the
    allocator used for decoding.
    """

    managed: bool = True


@dataclass(frozen=True)
class MapLayout:
    """Choose the indexing strategy and context shape of a ``dict`` field.

    ``context`` may be a shape or an annotation such as ``UInt8``.
    """

    strategy: IndexStrategy = IndexStrategy.HASHED
    context: Any = None


UInt8 = Annotated[int, FixedInt(8)]
UInt16 = Annotated[int, FixedInt(16)]
UInt32 = Annotated[int, FixedInt(32)]
UInt64 = Annotated[int, FixedInt(64)]
Int8 = Annotated[int, FixedInt(8, signed=True)]
Int16 = Annotated[int, FixedInt(16, signed=True)]
Int32 = Annotated[int, FixedInt(32, signed=True)]
Int64 = Annotated[int, FixedInt(64, signed=True)]
Float16 = Annotated[float, FixedFloat(16)]
Float32 = Annotated[float, FixedFloat(32)]
Float64 = Annotated[float, FixedFloat(64)]
