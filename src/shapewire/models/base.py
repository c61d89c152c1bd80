"""Base record class and shapewire-specific Pydantic configuration.

This module provides the Record class that wire records should inherit from,
and the ErrorSet base for error domains.
"""

from __future__ import annotations

import enum
from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict, ValidatorFunctionWrapHandler, field_validator

from .containers import ArrayMap, HashMap, OwnedList


class Record(BaseModel):
    """Base class for all shapewire records.

    Records declare their fields with type annotations; the wire shape is
    derived from the annotations in declaration order (see ``shape_of``).
    Integer fields need an explicit width via ``FixedInt`` metadata or one of
    the ``UInt8``/``Int32``/... aliases.

    shapewire-specific options are configured as ClassVar attributes:

    Example:
        >>> from typing import ClassVar
        >>> class Sample(Record):
        ...     channel: UInt8
        ...     reading: Float32
        ...     valid: bool
        ...
        ...     wire_max_bytes: ClassVar[int | None] = 16

    Attributes:
        wire_packed_bits: If set, the record is bit-packed into an unsigned
            integer of this width (fields must be ints, bools, enums or
            packed records whose widths add up exactly)
        wire_max_bytes: Maximum encoded size in bytes, checked when the
            record is encoded as a whole message
    """

    model_config = ConfigDict(
        # Lax validation so plain ints/lists are accepted for annotated fields
        strict=False,
        # Tagged, OwnedList, HashMap and friends are plain Python types
        arbitrary_types_allowed=True,
        # Validate on assignment
        validate_assignment=True,
        # Forbid extra fields not defined in schema
        extra="forbid",
    )

    wire_packed_bits: ClassVar[int | None] = None
    wire_max_bytes: ClassVar[int | None] = None

    @field_validator("*", mode="wrap")
    @classmethod
    def keep_bound_containers(cls, value: Any, handler: ValidatorFunctionWrapHandler) -> Any:
        """Keep decoded lists and maps bound to their allocator and context.

        Lax validation copies an ``OwnedList``, ``HashMap`` or ``ArrayMap``
        into a plain list or dict. The validated items are put back into the
        original container instead, so it stays the registered allocation.
        """
        validated = handler(value)
        if isinstance(value, OwnedList) and isinstance(validated, list):
            if validated != value:
                value[:] = validated
            return value
        if isinstance(value, (HashMap, ArrayMap)) and isinstance(validated, dict):
            if validated != value:
                value.clear()
                value.update(validated)
            return value
        return validated


class ErrorSet(enum.Enum):
    """Base class for error domains.

    Member values are the stable integer codes written on the wire. They are
    assigned by the domain's author and must not change between the encoding
    and the decoding side.

    Example:
        >>> class LinkError(ErrorSet):
        ...     TIMEOUT = 1
        ...     CHECKSUM = 2
    """
