"""Value types produced by the decoder for unions, lists and maps.

``OwnedList``, ``HashMap`` and ``ArrayMap`` are plain ``list``/``dict``
subclasses, so they compare equal to ordinary lists and dicts with the same
contents. They additionally carry the allocator they were decoded with (and,
for maps, the container context) so the storage can be released explicitly.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import TYPE_CHECKING, Any, NamedTuple

if TYPE_CHECKING:
    from ..memory import Allocator


class Tagged(NamedTuple):
    """Value of a tagged union: the active variant name and its payload.

    Example:
        >>> Tagged("speed", 12.5)
        Tagged(tag='speed', value=12.5)
    """

    tag: str
    value: Any = None


class OwnedList(list):
    """List whose storage belongs to an allocator."""

    def __init__(self, items: Iterable[Any] = (), allocator: Allocator | None = None) -> None:
        super().__init__(items)
        self.allocator = allocator

    def release(self) -> None:
        """Return the storage to the allocator and empty the list."""
        if self.allocator is not None and self.allocator.owns(self):
            self.allocator.free(self)
        self.clear()


class _BoundMap(dict):
    def __init__(
        self,
        items: Mapping[Any, Any] | Iterable[tuple[Any, Any]] = (),
        *,
        context: Any = None,
        allocator: Allocator | None = None,
    ) -> None:
        super().__init__(items)
        self.context = context
        self.allocator = allocator

    def release(self) -> None:
        """Return the storage to the allocator and empty the map."""
        if self.allocator is not None and self.allocator.owns(self):
            self.allocator.free(self)
        self.clear()

    def __repr__(self) -> str:
        ctx = f", context={self.context!r}" if self.context is not None else ""
        return f"{type(self).__name__}({dict.__repr__(self)}{ctx})"


class HashMap(_BoundMap):
    """Hash-indexed map; iteration order carries no meaning on the wire."""


class ArrayMap(_BoundMap):
    """Array-backed map; insertion order is preserved through encode/decode."""
