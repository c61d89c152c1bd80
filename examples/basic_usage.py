#!/usr/bin/env python3
"""Basic usage example for shapewire.

This example demonstrates:
1. Defining a record with Pydantic
2. Encoding to the binary format
3. Decoding back, with an allocator tracking the dynamic parts
4. Calculating encoded sizes
"""

from __future__ import annotations

from typing import Annotated, ClassVar

from shapewire import (
    Allocator,
    ErrorSet,
    FixedInt,
    Float32,
    Growable,
    Record,
    UInt8,
    UInt16,
    decode_from_bytes,
    encode_to_bytes,
    encoded_length,
    field_sizes,
    release,
    shape_of,
)


class SensorError(ErrorSet):
    """Errors a sensor can report instead of a reading."""

    OFFLINE = 1
    SATURATED = 2


class Status(Record):
    """Bit-packed status flags."""

    mode: Annotated[int, FixedInt(3)]
    armed: bool
    spare: Annotated[int, FixedInt(4)] = 0

    wire_packed_bits: ClassVar[int | None] = 8


class Report(Record):
    """Vehicle report with a fixed header and a variable log."""

    vehicle_id: UInt8
    depth: Float32
    status: Status
    pressure: UInt16 | SensorError
    log: Annotated[list[UInt16], Growable()]


def main() -> None:
    """Run the basic usage example."""
    print("=" * 60)
    print("shapewire Basic Usage Example")
    print("=" * 60)
    print()

    print("1. Creating a report...")
    report = Report(
        vehicle_id=42,
        depth=25.5,
        status=Status(mode=3, armed=True),
        pressure=SensorError.SATURATED,
        log=[100, 200, 300],
    )
    print(f"   {report!r}")
    print()

    print("2. Analyzing field sizes...")
    for name, size in field_sizes(Report).items():
        label = "variable" if size is None else f"{size} bytes"
        print(f"   {name}: {label}")
    print(f"   Shape: {shape_of(Report)}")
    print()

    print("3. Encoding...")
    data = encode_to_bytes(Report, report)
    print(f"   Encoded size: {len(data)} bytes (computed: {encoded_length(Report, report)})")
    print(f"   Hex: {data.hex()}")
    print()

    print("4. Decoding...")
    allocator = Allocator()
    decoded = decode_from_bytes(data, Report, allocator)
    print(f"   {decoded!r}")
    print(f"   Live allocations: {allocator.live}")
    print()

    print("5. Verifying round-trip...")
    if decoded == report:
        print("   Round-trip successful! Records match.")
    else:
        print("   Round-trip failed! Records don't match.")
    release(shape_of(Report), decoded, allocator)
    print(f"   Live allocations after release: {allocator.live}")
    print()

    print("6. Comparing to JSON...")
    json_bytes = report.model_dump_json().encode("utf-8")
    print(f"   shapewire size: {len(data)} bytes")
    print(f"   JSON size: {len(json_bytes)} bytes")
    print()

    print("=" * 60)
    print("Example complete!")
    print("=" * 60)


if __name__ == "__main__":
    main()
