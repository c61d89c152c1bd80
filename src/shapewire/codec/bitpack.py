"""Bit-level packing for packed aggregates.

Packed aggregates store their fields in a single backing integer. The first
field occupies the least significant bits, each following field sits directly
above the previous one, and signed fields are stored in two's complement.
"""

from __future__ import annotations


class BitPacker:
    """Packs values into an integer, least significant bits first.

    Example:
        >>> packer = BitPacker()
        >>> packer.write_uint(1, 2)
        >>> packer.write_uint(5, 4)
        >>> packer.write_uint(0, 2)
        >>> bin(packer.to_int())
        '0b10101'
    """

    def __init__(self) -> None:
        """Initialize an empty bit packer."""
        self._value = 0
        self._offset = 0

    def write_bool(self, value: bool) -> None:
        """Write a boolean as a single bit."""
        self.write_uint(1 if value else 0, 1)

    def write_uint(self, value: int, num_bits: int) -> None:
        """Write an unsigned integer using the specified number of bits.

        Args:
            value: Unsigned integer value to write (must be >= 0)
            num_bits: Number of bits to use for encoding (>= 0)

        Raises:
            ValueError: If value is negative or doesn't fit in num_bits
        """
        if value < 0:
            raise ValueError(f"write_uint requires non-negative value, got {value}")
        if num_bits < 0:
            raise ValueError(f"num_bits must be >= 0, got {num_bits}")

        max_value = (1 << num_bits) - 1
        if value > max_value:
            raise ValueError(f"Value {value} requires more than {num_bits} bits (max: {max_value})")

        self._value |= value << self._offset
        self._offset += num_bits

    def write_int(self, value: int, num_bits: int) -> None:
        """Write a signed integer using two's complement encoding.

        Raises:
            ValueError: If value doesn't fit in num_bits using two's complement
        """
        if num_bits < 1:
            raise ValueError(f"num_bits must be >= 1 for signed integers, got {num_bits}")

        min_value = -(1 << (num_bits - 1))
        max_value = (1 << (num_bits - 1)) - 1
        if value < min_value or value > max_value:
            raise ValueError(
                f"Value {value} doesn't fit in {num_bits} bits (range: {min_value} to {max_value})"
            )

        self.write_uint(value & ((1 << num_bits) - 1), num_bits)

    def bit_length(self) -> int:
        """Return the number of bits written so far."""
        return self._offset

    def to_int(self) -> int:
        """Return the packed backing integer."""
        return self._value


class BitUnpacker:
    """Unpacks values from an integer, least significant bits first.

    Example:
        >>> unpacker = BitUnpacker(0b10101, 8)
        >>> unpacker.read_uint(2), unpacker.read_uint(4), unpacker.read_uint(2)
        (1, 5, 0)
    """

    def __init__(self, value: int, total_bits: int) -> None:
        """Initialize a bit unpacker over ``total_bits`` bits of ``value``."""
        self._value = value
        self._total = total_bits
        self._position = 0

    def read_bool(self) -> bool:
        return self.read_uint(1) == 1

    def read_uint(self, num_bits: int) -> int:
        """Read an unsigned integer of the specified bit width.

        Raises:
            IndexError: If not enough bits are available
        """
        if self._position + num_bits > self._total:
            raise IndexError(
                f"Not enough bits: need {num_bits}, have {self._total - self._position}"
            )

        value = (self._value >> self._position) & ((1 << num_bits) - 1)
        self._position += num_bits
        return value

    def read_int(self, num_bits: int) -> int:
        """Read a signed integer using two's complement encoding."""
        unsigned_value = self.read_uint(num_bits)

        sign_bit = 1 << (num_bits - 1)
        if unsigned_value & sign_bit:
            return unsigned_value - (1 << num_bits)
        return unsigned_value

    def bits_remaining(self) -> int:
        return self._total - self._position
