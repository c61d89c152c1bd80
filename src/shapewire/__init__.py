"""shapewire: shape-directed binary serialization

A Python library that encodes and decodes values to a compact, deterministic
little-endian byte format. Every value is described by a shape descriptor
(integers, floats, sequences, records, optionals, enums, tagged unions,
fallible values, lists and maps); the encoder and decoder walk the shape, so
the bytes carry no type information of their own.

Key Features:
- Shapes built by hand or derived from Pydantic records
- Bit-packed records for flag words and register images
- Explicit ownership of decoded lists and maps through an Allocator
- Failed decodes release everything they allocated

Quick Start:
    >>> from shapewire import Record, UInt64, Int16, encode_to_bytes, decode_from_bytes
    >>>
    >>> class Sample(Record):
    ...     id: UInt64
    ...     readings: tuple[Int16, ...]
    ...     valid: bool
    >>>
    >>> data = encode_to_bytes(Sample, Sample(id=1, readings=(1, 2, 3), valid=True))
    >>> len(data)
    23
    >>> decode_from_bytes(data, Sample).readings
    (1, 2, 3)
"""

from __future__ import annotations

from .codec import (
    RecordSchema,
    decode,
    decode_from_bytes,
    encode,
    encode_to_bytes,
    release,
    shape_of,
)
from .codec.shapes import (
    BOOL,
    F16,
    F32,
    F64,
    I8,
    I16,
    I32,
    I64,
    U8,
    U16,
    U32,
    U64,
    U64_LENGTH,
    VOID,
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
    IndexStrategy,
    Int,
    Optional,
    PackedAggregate,
    Shape,
    TaggedUnion,
    Void,
)
from .exceptions import (
    AllocationFailure,
    DecodeError,
    EncodeError,
    EndOfInput,
    InvalidDiscriminant,
    InvalidErrorCode,
    SchemaError,
    ShapewireError,
)
from .memory import AllocConfig, Allocator, FailingAllocator
from .models import (
    ArrayMap,
    EnumBits,
    ErrorSet,
    FixedFloat,
    FixedInt,
    FixedLength,
    Float16,
    Float32,
    Float64,
    Growable,
    HashMap,
    Int8,
    Int16,
    Int32,
    Int64,
    MapLayout,
    OwnedList,
    Record,
    Tagged,
    UInt8,
    UInt16,
    UInt32,
    UInt64,
)
from .streams import CountingSink, Reader
from .utils import encoded_length, field_sizes, static_size

__version__ = "0.1.0"

__all__ = [
    # Core API
    "encode",
    "decode",
    "encode_to_bytes",
    "decode_from_bytes",
    "release",
    "shape_of",
    "RecordSchema",
    # Shapes
    "Shape",
    "Int",
    "Float",
    "Bool",
    "Void",
    "FixedSequence",
    "DynamicSequence",
    "Aggregate",
    "PackedAggregate",
    "Optional",
    "Enumeration",
    "TaggedUnion",
    "ErrorDomain",
    "FallibleValue",
    "GrowableList",
    "AssociativeContainer",
    "IndexStrategy",
    "U8",
    "U16",
    "U32",
    "U64",
    "U64_LENGTH",
    "I8",
    "I16",
    "I32",
    "I64",
    "F16",
    "F32",
    "F64",
    "BOOL",
    "VOID",
    # Records
    "Record",
    "ErrorSet",
    "Tagged",
    "OwnedList",
    "HashMap",
    "ArrayMap",
    # Field helpers
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
    # Allocation
    "Allocator",
    "AllocConfig",
    "FailingAllocator",
    # Streams
    "CountingSink",
    "Reader",
    # Sizing
    "encoded_length",
    "static_size",
    "field_sizes",
    # Exceptions
    "ShapewireError",
    "SchemaError",
    "EncodeError",
    "DecodeError",
    "EndOfInput",
    "InvalidDiscriminant",
    "InvalidErrorCode",
    "AllocationFailure",
    # Version
    "__version__",
]
