"""Shape descriptors.

A shape descriptor is an immutable classification of a value that drives
encode/decode dispatch. Descriptors are built once (by hand, or derived from
a Record class with ``shape_of``) and never inferred from the byte stream.

Every descriptor validates itself on construction and raises ``SchemaError``
for contract violations, so an invalid shape is rejected before any byte is
produced or consumed.

Example:
    >>> point = Aggregate([("x", F32), ("y", F32)])
    >>> path = DynamicSequence(point)
    >>> str(path)
    '[]struct{x: f32, y: f32}'
"""

from __future__ import annotations

import enum
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any, NamedTuple

from ..exceptions import SchemaError

MAX_INT_BITS = 256
FLOAT_FORMATS = {16: "<e", 32: "<f", 64: "<d"}


def storage_bytes(bits: int) -> int:
    """Return the number of bytes an integer of ``bits`` width occupies.

    The byte count is rounded up to the next power of two, so ``u24`` takes
    4 bytes and ``u40`` takes 8. Zero-width integers take no bytes.
    """
    if bits == 0:
        return 0
    n = (bits + 7) // 8
    return 1 << (n - 1).bit_length()


class Shape:
    """Base class for all shape descriptors."""

    def static_size(self) -> int | None:
        """Return the encoded length in bytes if it does not depend on the value."""
        return None


class FieldShape(NamedTuple):
    """A named child shape of an aggregate or a tagged-union variant."""

    name: str
    shape: Shape


def _require_shape(shape: Any, where: str) -> Shape:
    if not isinstance(shape, Shape):
        raise SchemaError(f"{where}: expected a shape descriptor, got {shape!r}")
    if isinstance(shape, ErrorDomain):
        raise SchemaError(
            f"{where}: an error domain can only be a record field or the error side "
            f"of a fallible value"
        )
    return shape


def _normalize_fields(fields: Iterable[tuple[str, Shape]] | Mapping[str, Shape], owner: str) -> tuple[FieldShape, ...]:
    items = fields.items() if isinstance(fields, Mapping) else fields
    result = []
    seen: set[str] = set()
    for name, shape in items:
        if not isinstance(name, str) or not name:
            raise SchemaError(f"{owner}: field names must be non-empty strings, got {name!r}")
        if name in seen:
            raise SchemaError(f"{owner}: duplicate field {name!r}")
        if not isinstance(shape, Shape):
            raise SchemaError(f"{owner}.{name}: expected a shape descriptor, got {shape!r}")
        seen.add(name)
        result.append(FieldShape(name, shape))
    return tuple(result)


@dataclass(frozen=True)
class Int(Shape):
    """Fixed-width integer, little-endian on the wire.

    Attributes:
        bits: Declared bit width (0-256)
        signed: Whether the integer is two's complement signed
    """

    bits: int
    signed: bool = False

    def __post_init__(self) -> None:
        if isinstance(self.bits, bool) or not isinstance(self.bits, int):
            raise SchemaError(f"integer width must be an int, got {self.bits!r}")
        if not 0 <= self.bits <= MAX_INT_BITS:
            raise SchemaError(f"integer width must be 0-{MAX_INT_BITS}, got {self.bits}")

    @property
    def byte_size(self) -> int:
        return storage_bytes(self.bits)

    @property
    def min_value(self) -> int:
        if self.signed and self.bits:
            return -(1 << (self.bits - 1))
        return 0

    @property
    def max_value(self) -> int:
        if self.signed and self.bits:
            return (1 << (self.bits - 1)) - 1
        return (1 << self.bits) - 1

    def fits(self, value: int) -> bool:
        return self.min_value <= value <= self.max_value

    def static_size(self) -> int | None:
        return self.byte_size

    def __str__(self) -> str:
        return f"{'i' if self.signed else 'u'}{self.bits}"


@dataclass(frozen=True)
class Float(Shape):
    """IEEE 754 floating point number, encoded bit-for-bit.

    Only half, single and double precision (16, 32 and 64 bits) are
    supported; 80-bit extended and 128-bit quad floats raise ``SchemaError``.
    """

    bits: int = 64

    def __post_init__(self) -> None:
        if self.bits not in FLOAT_FORMATS:
            raise SchemaError(f"float width must be one of {sorted(FLOAT_FORMATS)}, got {self.bits}")

    @property
    def byte_size(self) -> int:
        return self.bits // 8

    @property
    def struct_format(self) -> str:
        return FLOAT_FORMATS[self.bits]

    def static_size(self) -> int | None:
        return self.byte_size

    def __str__(self) -> str:
        return f"f{self.bits}"


@dataclass(frozen=True)
class Bool(Shape):
    """Boolean stored in one byte (0 or 1)."""

    def static_size(self) -> int | None:
        return 1

    def __str__(self) -> str:
        return "bool"


@dataclass(frozen=True)
class Void(Shape):
    """Unit value; contributes no bytes."""

    def static_size(self) -> int | None:
        return 0

    def __str__(self) -> str:
        return "void"


@dataclass(frozen=True)
class FixedSequence(Shape):
    """Array with a count fixed by the shape; no length prefix is written.

    Attributes:
        element: Shape of every element
        count: Number of elements
        builder: Callable that turns the decoded items into the result (default tuple)
    """

    element: Shape
    count: int
    builder: Callable[[Iterable[Any]], Any] = tuple

    def __post_init__(self) -> None:
        _require_shape(self.element, "fixed sequence element")
        if isinstance(self.count, bool) or not isinstance(self.count, int) or self.count < 0:
            raise SchemaError(f"fixed sequence count must be a non-negative int, got {self.count!r}")

    def static_size(self) -> int | None:
        element_size = self.element.static_size()
        if element_size is None:
            return None
        return element_size * self.count

    def __str__(self) -> str:
        return f"[{self.count}]{self.element}"


@dataclass(frozen=True)
class DynamicSequence(Shape):
    """Length-prefixed sequence (u64 little-endian length, then the elements).

    An owned sequence decodes into a ``list`` allocated from the caller's
    allocator and stays registered there until released. A borrowed sequence
    decodes into an immutable ``tuple``; its temporary buffer is returned to
    the allocator once the tuple is built. A custom ``builder`` (e.g.
    ``bytes``) behaves like a borrowed sequence.
    """

    element: Shape
    owned: bool = True
    builder: Callable[[Iterable[Any]], Any] | None = None

    def __post_init__(self) -> None:
        _require_shape(self.element, "dynamic sequence element")

    @property
    def keeps_buffer(self) -> bool:
        """Whether the decoded value is the allocated buffer itself."""
        return self.owned and self.builder is None

    def __str__(self) -> str:
        return f"[]{'' if self.owned else 'const '}{self.element}"


@dataclass(frozen=True)
class Aggregate(Shape):
    """Ordered product type; fields are encoded back to back in declaration order.

    Attributes:
        fields: Ordered (name, shape) pairs
        model: Class constructed from the decoded fields (None decodes to a dict)
        name: Display name
    """

    fields: tuple[FieldShape, ...]
    model: type | None = None
    name: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "fields", _normalize_fields(self.fields, self.display_name))

    @property
    def display_name(self) -> str:
        if self.name:
            return self.name
        if self.model is not None:
            return self.model.__name__
        return "struct"

    def static_size(self) -> int | None:
        total = 0
        for item in self.fields:
            size = item.shape.static_size()
            if size is None:
                return None
            total += size
        return total

    def __str__(self) -> str:
        if self.name or self.model is not None:
            return self.display_name
        inner = ", ".join(f"{item.name}: {item.shape}" for item in self.fields)
        return f"struct{{{inner}}}"


def packed_width(shape: Shape) -> int:
    """Return the number of bits a shape occupies inside a packed aggregate."""
    if isinstance(shape, Int):
        return shape.bits
    if isinstance(shape, Bool):
        return 1
    if isinstance(shape, Enumeration):
        return shape.tag.bits
    if isinstance(shape, PackedAggregate):
        return shape.backing_bits
    raise SchemaError(f"{shape} cannot be a packed field; use int, bool, enum or packed record")


@dataclass(frozen=True)
class PackedAggregate(Shape):
    """Product type whose fields are bit-packed into one backing integer.

    The first field occupies the least significant bits. On the wire only
    the backing integer is written.
    """

    fields: tuple[FieldShape, ...]
    backing_bits: int
    model: type | None = None
    name: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "fields", _normalize_fields(self.fields, self.display_name))
        backing = Int(self.backing_bits)
        total = sum(packed_width(item.shape) for item in self.fields)
        if total != backing.bits:
            raise SchemaError(
                f"{self.display_name}: packed fields take {total} bits, "
                f"backing integer has {backing.bits}"
            )

    @property
    def display_name(self) -> str:
        if self.name:
            return self.name
        if self.model is not None:
            return self.model.__name__
        return "packed struct"

    @property
    def backing(self) -> Int:
        return Int(self.backing_bits)

    def static_size(self) -> int | None:
        return self.backing.byte_size

    def __str__(self) -> str:
        return f"{self.display_name}({self.backing})"


@dataclass(frozen=True)
class Optional(Shape):
    """Presence byte (1 or 0) followed by the inner encoding when present."""

    inner: Shape

    def __post_init__(self) -> None:
        _require_shape(self.inner, "optional inner")

    def __str__(self) -> str:
        return f"?{self.inner}"


def _int_members(enum_class: Any, owner: str) -> list[Any]:
    if not isinstance(enum_class, type) or not issubclass(enum_class, enum.Enum):
        raise SchemaError(f"{owner}: expected an enum class, got {enum_class!r}")
    members = list(enum_class)
    if not members:
        raise SchemaError(f"{owner}: {enum_class.__name__} has no members")
    for member in members:
        if isinstance(member.value, bool) or not isinstance(member.value, int):
            raise SchemaError(
                f"{owner}: {enum_class.__name__}.{member.name} has non-integer value {member.value!r}"
            )
    return members


@dataclass(frozen=True)
class Enumeration(Shape):
    """Enum encoded as the integer value of its member.

    If ``bits`` is omitted the smallest width that holds every member value
    is used; ``signed`` defaults to whether any value is negative.
    """

    enum_class: type[enum.Enum]
    bits: int | None = None
    signed: bool | None = None
    _by_value: dict[int, Any] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        members = _int_members(self.enum_class, "enum")
        values = [member.value for member in members]
        signed = self.signed if self.signed is not None else min(values) < 0
        if self.bits is None:
            if signed:
                bits = max((v if v >= 0 else ~v).bit_length() for v in values) + 1
            else:
                bits = max(values).bit_length()
            object.__setattr__(self, "bits", bits)
        object.__setattr__(self, "signed", signed)
        tag = Int(self.bits, signed)
        for member in members:
            if not tag.fits(member.value):
                raise SchemaError(
                    f"enum {self.enum_class.__name__}.{member.name}={member.value} "
                    f"does not fit in {tag}"
                )
        object.__setattr__(self, "_by_value", {member.value: member for member in members})

    @property
    def tag(self) -> Int:
        return Int(self.bits, bool(self.signed))

    def member_for(self, raw: int) -> Any:
        """Return the member with integer value ``raw``, or None."""
        return self._by_value.get(raw)

    def static_size(self) -> int | None:
        return self.tag.byte_size

    def __str__(self) -> str:
        return f"{self.enum_class.__name__}({self.tag})"


@dataclass(frozen=True)
class TaggedUnion(Shape):
    """Discriminant followed by the payload of the active variant.

    Values are ``Tagged(name, payload)``. When ``tag`` is omitted an
    implicit tag enum is built with ordinals 0..n-1 in variant order.
    """

    variants: tuple[FieldShape, ...]
    tag: Enumeration | None = None
    name: str | None = None
    _payloads: dict[str, Shape] = field(init=False, repr=False, compare=False)
    _discriminant: Enumeration = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        variants = _normalize_fields(self.variants, self.name or "union")
        if not variants:
            raise SchemaError(f"{self.name or 'union'}: a tagged union needs at least one variant")
        for item in variants:
            _require_shape(item.shape, f"union variant {item.name}")
        object.__setattr__(self, "variants", variants)
        names = [item.name for item in variants]

        if self.tag is None:
            tag_enum = enum.Enum(f"{self.name or 'Union'}Tag", [(n, i) for i, n in enumerate(names)])
            object.__setattr__(self, "tag", Enumeration(tag_enum, bits=(len(names) - 1).bit_length()))
        elif not isinstance(self.tag, Enumeration):
            raise SchemaError(f"union tag must be an Enumeration shape, got {self.tag!r}")
        else:
            tag_names = {member.name for member in self.tag.enum_class}
            if tag_names != set(names):
                raise SchemaError(
                    f"union variants {sorted(names)} don't match tag members {sorted(tag_names)}"
                )
        object.__setattr__(self, "_discriminant", self.tag)
        object.__setattr__(self, "_payloads", {item.name: item.shape for item in variants})

    @property
    def discriminant(self) -> Enumeration:
        """The tag enumeration, explicit or implicit."""
        return self._discriminant

    def payload_shape(self, name: str) -> Shape | None:
        return self._payloads.get(name)

    def __str__(self) -> str:
        if self.name:
            return self.name
        inner = ", ".join(f"{item.name}: {item.shape}" for item in self.variants)
        return f"union{{{inner}}}"


@dataclass(frozen=True)
class ErrorDomain(Shape):
    """Finite set of named errors, each with a stable integer code.

    The codes are the member values of ``enum_class``; the codec never
    assigns codes itself.
    """

    enum_class: type[enum.Enum]
    bits: int = 16
    _by_code: dict[int, Any] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        members = _int_members(self.enum_class, "error domain")
        code = Int(self.bits)
        for member in members:
            if not code.fits(member.value):
                raise SchemaError(
                    f"error {self.enum_class.__name__}.{member.name}={member.value} "
                    f"does not fit in {code}"
                )
        object.__setattr__(self, "_by_code", {member.value: member for member in members})

    @property
    def code(self) -> Int:
        return Int(self.bits)

    def member_for(self, code: int) -> Any:
        return self._by_code.get(code)

    def static_size(self) -> int | None:
        return self.code.byte_size

    def __str__(self) -> str:
        return f"error{{{', '.join(member.name for member in self.enum_class)}}}"


@dataclass(frozen=True)
class FallibleValue(Shape):
    """Either a payload or an error: flag byte (0=value, 1=error), then the branch."""

    payload: Shape
    errors: ErrorDomain

    def __post_init__(self) -> None:
        _require_shape(self.payload, "fallible payload")
        if not isinstance(self.errors, ErrorDomain):
            raise SchemaError(f"fallible errors must be an ErrorDomain, got {self.errors!r}")

    def __str__(self) -> str:
        return f"{self.errors.enum_class.__name__}!{self.payload}"


@dataclass(frozen=True)
class GrowableList(Shape):
    """Resizable list: u64 length, then the elements.

    A managed list decodes into an ``OwnedList`` bound to the allocator;
    an unmanaged one decodes into a plain ``list``.
    """

    element: Shape
    managed: bool = True

    def __post_init__(self) -> None:
        _require_shape(self.element, "list element")

    def __str__(self) -> str:
        return f"{'List' if self.managed else 'ListUnmanaged'}({self.element})"


class IndexStrategy(enum.Enum):
    """How an associative container indexes its entries."""

    HASHED = "hashed"
    ORDERED_ARRAY = "ordered_array"


def decodes_hashable(shape: Shape) -> bool:
    """Whether values decoded with ``shape`` can be used as dict keys."""
    if isinstance(shape, (Int, Float, Bool, Void, Enumeration, ErrorDomain)):
        return True
    if isinstance(shape, FixedSequence):
        return shape.builder in (tuple, bytes, frozenset) and decodes_hashable(shape.element)
    if isinstance(shape, DynamicSequence):
        if shape.keeps_buffer:
            return False
        builder = shape.builder or tuple
        return builder in (tuple, bytes, frozenset) and decodes_hashable(shape.element)
    if isinstance(shape, (Aggregate, PackedAggregate)):
        if shape.model is None or getattr(shape.model, "__hash__", None) is None:
            return False
        return all(decodes_hashable(item.shape) for item in shape.fields)
    if isinstance(shape, Optional):
        return decodes_hashable(shape.inner)
    if isinstance(shape, TaggedUnion):
        return all(decodes_hashable(item.shape) for item in shape.variants)
    if isinstance(shape, FallibleValue):
        return decodes_hashable(shape.payload)
    return False


@dataclass(frozen=True)
class AssociativeContainer(Shape):
    """Key to value container.

    Attributes:
        key: Key shape (must decode to a hashable value)
        value: Value shape
        strategy: HASHED (count, entries, trailing ``false`` sentinel) or
            ORDERED_ARRAY (count, entries in insertion order, no sentinel)
        context: Optional shape of the container's hash/compare context,
            encoded before the entries
    """

    key: Shape
    value: Shape
    strategy: IndexStrategy = IndexStrategy.HASHED
    context: Shape | None = None

    def __post_init__(self) -> None:
        _require_shape(self.key, "map key")
        _require_shape(self.value, "map value")
        if self.context is not None:
            _require_shape(self.context, "map context")
        if not isinstance(self.strategy, IndexStrategy):
            raise SchemaError(f"map strategy must be an IndexStrategy, got {self.strategy!r}")
        if not decodes_hashable(self.key):
            raise SchemaError(f"map key {self.key} does not decode to a hashable value")

    @property
    def hashed(self) -> bool:
        return self.strategy is IndexStrategy.HASHED

    def __str__(self) -> str:
        kind = "HashMap" if self.hashed else "ArrayMap"
        ctx = f", ctx={self.context}" if self.context is not None else ""
        return f"{kind}({self.key}, {self.value}{ctx})"


U8 = Int(8)
U16 = Int(16)
U32 = Int(32)
U64 = Int(64)
I8 = Int(8, signed=True)
I16 = Int(16, signed=True)
I32 = Int(32, signed=True)
I64 = Int(64, signed=True)
F16 = Float(16)
F32 = Float(32)
F64 = Float(64)
BOOL = Bool()
VOID = Void()
U64_LENGTH = U64
