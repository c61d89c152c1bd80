"""Exception hierarchy for shapewire.

This module defines all custom exceptions used throughout the package.
All exceptions inherit from ShapewireError for easy catching of any shapewire-specific error.
"""

from __future__ import annotations


class ShapewireError(Exception):
    """Base exception for all shapewire errors."""

    pass


class SchemaError(ShapewireError):
    """Raised when a shape descriptor is invalid or cannot be built.

    This is a construction-time error: it is raised before any byte is
    produced or consumed.

    Examples:
        - Integer width out of range, or an unsupported float width
        - Enum member value that does not fit its backing integer
        - Packed field widths that don't add up to the backing integer
        - Error domain used outside a fallible value or record field
        - Annotation that cannot be mapped to a shape
    """

    pass


class EncodeError(ShapewireError):
    """Raised when a value does not match the shape it is encoded with.

    Examples:
        - Integer out of range for its bit width
        - Missing record field
        - Fixed sequence with the wrong number of items
        - Unknown tagged-union variant
        - Encoded record exceeds wire_max_bytes
    """

    pass


class DecodeError(ShapewireError):
    """Raised when decoding binary data fails.

    Attributes:
        path: Field names and element indexes the error unwound through,
            outermost first.
    """

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message
        self.path: list[str | int] = []

    def add_context(self, step: str | int) -> None:
        """Record one more enclosing field name or element index."""
        self.path.insert(0, step)

    def __str__(self) -> str:
        if not self.path:
            return self.message
        location = "".join(f"[{step}]" if isinstance(step, int) else f".{step}" for step in self.path)
        return f"{self.message} (at {location.lstrip('.')})"


class EndOfInput(DecodeError):
    """Raised when fewer bytes are available than the current shape requires."""

    pass


class InvalidDiscriminant(DecodeError):
    """Raised when a decoded enum value, union tag or flag byte is not in the known set."""

    pass


class InvalidErrorCode(DecodeError):
    """Raised when a decoded error code is not a member of its error domain."""

    pass


class AllocationFailure(DecodeError):
    """Raised when the allocator refuses or fails to provide storage."""

    pass
