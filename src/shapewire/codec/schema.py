"""Shape derivation for Pydantic models.

This module maps type annotations to shape descriptors so records can be
encoded without writing their shapes by hand. Shapes are derived once per
record class and cached.

Mapping rules:
    bool                                -> Bool
    int + FixedInt(bits, signed)        -> Int (a bare int is rejected)
    float [+ FixedFloat(bits)]          -> Float (64 bits by default)
    None                                -> Void
    bytes                               -> length-prefixed bytes
    bytes + FixedLength(n)              -> n bytes, no prefix
    Enum subclass [+ EnumBits]          -> Enumeration
    ErrorSet subclass [+ EnumBits]      -> ErrorDomain
    T | None                            -> Optional(T)
    T | SomeErrorSet                    -> FallibleValue(T, SomeErrorSet)
    list[T]                             -> unmanaged growable list
    list[T] + Growable()                -> managed growable list
    list[T] + FixedLength(n)            -> fixed sequence decoded as a list
    tuple[T, ...]                       -> borrowed dynamic sequence
    tuple[T, T, T]                      -> fixed sequence of 3
    dict[K, V] [+ MapLayout(...)]       -> associative container
    Record subclass                     -> Aggregate (PackedAggregate if
                                           wire_packed_bits is set)

A Shape instance inside ``Annotated[...]`` metadata overrides all of the
above for that annotation.
"""

from __future__ import annotations

import enum
import types
from dataclasses import dataclass
from functools import lru_cache
from typing import Annotated, Any, List, Union, get_args, get_origin

from pydantic import BaseModel

from ..exceptions import SchemaError
from ..models.base import ErrorSet
from ..models.fields import EnumBits, FixedFloat, FixedInt, FixedLength, Growable, MapLayout
from .shapes import (
    BOOL,
    F64,
    U8,
    VOID,
    Aggregate,
    AssociativeContainer,
    DynamicSequence,
    Enumeration,
    ErrorDomain,
    FallibleValue,
    FixedSequence,
    Float,
    GrowableList,
    Int,
    Optional,
    PackedAggregate,
    Shape,
)

_NONE_TYPES = (None, type(None))


def _marker(metadata: tuple[Any, ...], kind: type) -> Any:
    found = None
    for item in metadata:
        if isinstance(item, kind):
            found = item
    return found


def shape_of(annotation: Any, metadata: tuple[Any, ...] = (), _seen: tuple[type, ...] = ()) -> Shape:
    """Derive the shape descriptor for a type annotation.

    Args:
        annotation: Type annotation (may be ``Annotated[...]``), a Record
            class, or a Shape (returned unchanged)
        metadata: Extra ``Annotated`` metadata that applies to the annotation

    Returns:
        Shape descriptor

    Raises:
        SchemaError: If the annotation has no wire representation

    Example:
        >>> str(shape_of(list[Annotated[int, FixedInt(16, signed=True)]]))
        'ListUnmanaged(i16)'
    """
    if isinstance(annotation, Shape):
        return annotation

    if get_origin(annotation) is Annotated:
        base, *extra = get_args(annotation)
        return shape_of(base, (*extra, *metadata), _seen)

    override = _marker(metadata, Shape)
    if override is not None:
        return override

    if annotation in _NONE_TYPES:
        return VOID
    if annotation is bool:
        return BOOL
    if annotation is int:
        fixed = _marker(metadata, FixedInt)
        if fixed is None:
            raise SchemaError("int needs a width: use FixedInt(bits) metadata or an alias like UInt32")
        return Int(fixed.bits, fixed.signed)
    if annotation is float:
        fixed = _marker(metadata, FixedFloat)
        return Float(fixed.bits) if fixed is not None else F64
    if annotation is bytes:
        length = _marker(metadata, FixedLength)
        if length is not None:
            return FixedSequence(U8, length.length, builder=bytes)
        return DynamicSequence(U8, owned=False, builder=bytes)

    origin = get_origin(annotation)
    if origin is Union or origin is types.UnionType:
        return _union_shape(annotation, metadata, _seen)
    if origin is list:
        return _list_shape(annotation, metadata, _seen)
    if origin is tuple:
        return _tuple_shape(annotation, metadata, _seen)
    if origin is dict:
        return _dict_shape(annotation, metadata, _seen)

    if isinstance(annotation, type):
        if issubclass(annotation, ErrorSet):
            bits = _marker(metadata, EnumBits)
            return ErrorDomain(annotation, bits.bits) if bits is not None else ErrorDomain(annotation)
        if issubclass(annotation, enum.Enum):
            bits = _marker(metadata, EnumBits)
            if bits is not None:
                return Enumeration(annotation, bits.bits, bits.signed)
            return Enumeration(annotation)
        if issubclass(annotation, BaseModel):
            if annotation in _seen:
                chain = " -> ".join(cls.__name__ for cls in (*_seen, annotation))
                raise SchemaError(f"recursive record {chain} cannot be encoded without indirection")
            if _seen:
                return _derive_record(annotation, _seen)
            return record_shape(annotation)

    raise SchemaError(f"no wire representation for {annotation!r}")


def _union_shape(annotation: Any, metadata: tuple[Any, ...], seen: tuple[type, ...]) -> Shape:
    arms = get_args(annotation)
    optional = any(arm in _NONE_TYPES for arm in arms)
    errors = [arm for arm in arms if isinstance(arm, type) and issubclass(arm, ErrorSet)]
    rest = [arm for arm in arms if arm not in _NONE_TYPES and arm not in errors]

    if len(errors) > 1:
        raise SchemaError(f"{annotation!r}: at most one error set per union")
    if len(rest) != 1:
        raise SchemaError(
            f"{annotation!r}: only T | None and T | ErrorSet unions are supported; "
            f"use a TaggedUnion shape for anything else"
        )

    shape = shape_of(rest[0], metadata, seen)
    if optional:
        shape = Optional(shape)
    if errors:
        bits = _marker(metadata, EnumBits)
        domain = ErrorDomain(errors[0], bits.bits) if bits is not None else ErrorDomain(errors[0])
        shape = FallibleValue(shape, domain)
    return shape


def _element(annotation: Any, seen: tuple[type, ...]) -> Shape:
    args = get_args(annotation)
    if not args:
        raise SchemaError(f"{annotation!r}: element type is required")
    return shape_of(args[0], (), seen)


def _list_shape(annotation: Any, metadata: tuple[Any, ...], seen: tuple[type, ...]) -> Shape:
    element = _element(annotation, seen)
    length = _marker(metadata, FixedLength)
    if length is not None:
        return FixedSequence(element, length.length, builder=list)
    growable = _marker(metadata, Growable)
    return GrowableList(element, managed=growable.managed if growable is not None else False)


def _tuple_shape(annotation: Any, metadata: tuple[Any, ...], seen: tuple[type, ...]) -> Shape:
    args = get_args(annotation)
    if len(args) == 2 and args[1] is Ellipsis:
        element = shape_of(args[0], (), seen)
        length = _marker(metadata, FixedLength)
        if length is not None:
            return FixedSequence(element, length.length)
        return DynamicSequence(element, owned=False)
    if not args:
        raise SchemaError(f"{annotation!r}: empty tuples have no wire representation")
    shapes = [shape_of(arg, (), seen) for arg in args]
    if any(shape != shapes[0] for shape in shapes[1:]):
        raise SchemaError(f"{annotation!r}: tuple elements must share one type; use a Record instead")
    return FixedSequence(shapes[0], len(shapes))


def _dict_shape(annotation: Any, metadata: tuple[Any, ...], seen: tuple[type, ...]) -> Shape:
    args = get_args(annotation)
    if len(args) != 2:
        raise SchemaError(f"{annotation!r}: key and value types are required")
    layout = _marker(metadata, MapLayout) or MapLayout()
    return AssociativeContainer(
        shape_of(args[0], (), seen),
        shape_of(args[1], (), seen),
        strategy=layout.strategy,
        context=shape_of(layout.context, (), seen) if layout.context is not None else None,
    )


@lru_cache(maxsize=None)
def record_shape(model_class: type[BaseModel]) -> Aggregate | PackedAggregate:
    """Return the (cached) shape of a record class.

    Raises:
        SchemaError: If any field has no wire representation
    """
    return _derive_record(model_class, ())


def _derive_record(model_class: type[BaseModel], seen: tuple[type, ...]) -> Aggregate | PackedAggregate:
    seen = (*seen, model_class)
    fields = []
    for name, info in model_class.model_fields.items():
        if info.annotation is None:
            raise SchemaError(f"{model_class.__name__}.{name} has no type annotation")
        try:
            shape = shape_of(info.annotation, tuple(info.metadata), seen)
        except SchemaError as err:
            raise SchemaError(f"{model_class.__name__}.{name}: {err}") from err
        fields.append((name, shape))

    packed_bits = getattr(model_class, "wire_packed_bits", None)
    if packed_bits is not None:
        return PackedAggregate(fields, packed_bits, model=model_class)
    return Aggregate(fields, model=model_class)


def resolve_shape(shape: Any) -> Shape:
    """Accept a Shape or a record class wherever a shape is expected."""
    if isinstance(shape, Shape):
        return shape
    if isinstance(shape, type) and issubclass(shape, BaseModel):
        return record_shape(shape)
    raise SchemaError(f"expected a shape descriptor or a record class, got {shape!r}")


@dataclass(frozen=True)
class FieldSchema:
    """Schema information for a single record field.

    Attributes:
        name: Field name
        annotation: Python type annotation
        shape: Derived wire shape
    """

    name: str
    annotation: Any
    shape: Shape

    def static_size(self) -> int | None:
        """Encoded size in bytes, or None if it depends on the value."""
        return self.shape.static_size()


class RecordSchema:
    """Schema information for an entire record.

    Example:
        >>> schema = RecordSchema.from_model(Telemetry)
        >>> for field in schema.fields:
        ...     print(f"{field.name}: {field.shape}")
    """

    def __init__(self, model_class: type[BaseModel]) -> None:
        self.model_class = model_class
        self.shape = record_shape(model_class)
        annotations = {name: info.annotation for name, info in model_class.model_fields.items()}
        self.fields: List[FieldSchema] = [
            FieldSchema(item.name, annotations[item.name], item.shape) for item in self.shape.fields
        ]

    @classmethod
    def from_model(cls, model_class: type[BaseModel]) -> RecordSchema:
        return cls(model_class)

    @property
    def packed(self) -> bool:
        return isinstance(self.shape, PackedAggregate)

    def total_bytes(self) -> int | None:
        """Encoded size of the whole record, or None if it varies."""
        return self.shape.static_size()
