"""Record analysis CLI command."""

from __future__ import annotations

import importlib.util
import inspect
import logging
import sys
from collections.abc import Iterator
from pathlib import Path

from ..codec.schema import RecordSchema
from ..codec.shapes import (
    Aggregate,
    AssociativeContainer,
    DynamicSequence,
    FallibleValue,
    FixedSequence,
    GrowableList,
    Optional,
    PackedAggregate,
    Shape,
    TaggedUnion,
    packed_width,
)
from ..models.base import Record

logger = logging.getLogger(__name__)

WIDTH = 60


def analyze_file(file_path: Path) -> None:
    """Analyze all Record classes defined in a Python file.

    Args:
        file_path: Path to Python file containing record definitions
    """
    # Load the Python module
    spec = importlib.util.spec_from_file_location("user_module", file_path)
    if spec is None or spec.loader is None:
        raise ValueError(f"Could not load module from {file_path}")

    module = importlib.util.module_from_spec(spec)
    sys.modules["user_module"] = module
    spec.loader.exec_module(module)

    # Only include classes defined in this file (not imported)
    record_classes = [
        obj
        for _name, obj in inspect.getmembers(module, inspect.isclass)
        if obj is not Record and issubclass(obj, Record) and obj.__module__ == "user_module"
    ]
    logger.debug("Found %d record classes in %s", len(record_classes), file_path)

    if not record_classes:
        print(f"No Record classes found in {file_path}")
        return

    print(f"{len(record_classes)} record{'s' if len(record_classes) != 1 else ''} loaded.")
    print("Sizes are in bytes; fields of packed records are in bits.")
    print()

    for record_class in record_classes:
        analyze_record_class(record_class)


def analyze_record_class(record_class: type[Record]) -> None:
    """Print the wire layout of a single record class."""
    schema = RecordSchema.from_model(record_class)
    total = schema.total_bytes()

    print(f"{'=' * 19} {record_class.__name__} {'=' * 19}")
    if total is not None:
        print(f"Encoded size: {total} bytes")
    else:
        print("Encoded size: variable")
    if schema.packed:
        print(f"Packed into: {schema.shape.backing}")
    max_bytes = getattr(record_class, "wire_max_bytes", None)
    if max_bytes is not None:
        print(f"Allowed maximum size: {max_bytes} bytes")
    print()

    for i, field in enumerate(schema.fields, 1):
        if schema.packed:
            size = f"{packed_width(field.shape)} bits"
        else:
            size = _size_label(field.shape)
        _print_row(f"{i}. {field.name}: {field.shape}", size, indent=4)
        for depth, label, child in describe_shape(field.shape):
            _print_row(label, _size_label(child), indent=4 + 4 * depth)
    print()


def describe_shape(shape: Shape, depth: int = 1) -> Iterator[tuple[int, str, Shape]]:
    """Yield (depth, label, shape) for every child of ``shape``, depth first."""
    for label, child in _children(shape):
        yield depth, f"{label}: {child}", child
        yield from describe_shape(child, depth + 1)


def _children(shape: Shape) -> list[tuple[str, Shape]]:
    if isinstance(shape, (Aggregate, PackedAggregate)):
        return [(item.name, item.shape) for item in shape.fields]
    if isinstance(shape, (FixedSequence, DynamicSequence, GrowableList)):
        return [("item", shape.element)]
    if isinstance(shape, Optional):
        return [("some", shape.inner)]
    if isinstance(shape, TaggedUnion):
        return [(item.name, item.shape) for item in shape.variants]
    if isinstance(shape, FallibleValue):
        return [("ok", shape.payload), ("error", shape.errors)]
    if isinstance(shape, AssociativeContainer):
        children = [("key", shape.key), ("value", shape.value)]
        if shape.context is not None:
            children.insert(0, ("context", shape.context))
        return children
    return []


def _size_label(shape: Shape) -> str:
    size = shape.static_size()
    return "variable" if size is None else f"{size} bytes"


def _print_row(label: str, size: str, indent: int) -> None:
    dots = "." * max(1, WIDTH - indent - len(label) - len(size))
    print(f"{' ' * indent}{label}{dots}{size}")
