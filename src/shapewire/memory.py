"""Allocation tracking for decoded values.

Decoding is the only operation that allocates: dynamic sequences, growable
lists and associative containers are created through an ``Allocator`` so
their ownership is explicit. An allocator records every buffer or container
it hands out until it is freed, which makes leaks and double frees
observable, and it can be given budgets to bound what a decode may create.

Example:
    >>> allocator = Allocator()
    >>> buffer = allocator.alloc(3)
    >>> allocator.live
    1
    >>> allocator.free(buffer)
    >>> allocator.live
    0
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Any, TypeVar

from .exceptions import AllocationFailure

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class AllocConfig:
    """Allocator budgets.

    Attributes:
        max_allocations: Maximum number of allocations outstanding at once
            (None for unlimited, 0 refuses every allocation)
        max_items: Maximum number of slots a single buffer may have
    """

    max_allocations: int | None = None
    max_items: int | None = None


DEFAULT_ALLOC_CONFIG = AllocConfig()


class Allocator:
    """Hands out buffers and containers and tracks which are still live."""

    def __init__(self, config: AllocConfig = DEFAULT_ALLOC_CONFIG) -> None:
        self.config = config
        self._live: dict[int, Any] = {}
        self.total_allocations = 0

    @property
    def live(self) -> int:
        """Number of allocations not yet freed."""
        return len(self._live)

    def owns(self, obj: Any) -> bool:
        """Whether ``obj`` was allocated here and not freed yet."""
        return self._live.get(id(obj)) is obj

    def alloc(self, count: int, factory: Callable[[Iterable[Any]], T] = list) -> T:  # type: ignore[assignment]
        """Allocate a buffer with exactly ``count`` slots.

        Args:
            count: Number of slots
            factory: Buffer type, called with an iterable of ``count`` Nones

        Raises:
            AllocationFailure: If a budget is exceeded or memory runs out
        """
        self._reserve(count)
        try:
            buffer = factory([None] * count)
        except (MemoryError, OverflowError) as err:
            logger.warning("Allocation of %d slots failed: %s", count, err)
            raise AllocationFailure(f"cannot allocate {count} slots") from err
        return self._register(buffer)

    def create(self, factory: Callable[[], T]) -> T:
        """Allocate a container object built by ``factory``."""
        self._reserve(0)
        return self._register(factory())

    def free(self, obj: Any) -> None:
        """Release an allocation.

        Raises:
            ValueError: If ``obj`` is not a live allocation of this allocator
        """
        if not self.owns(obj):
            raise ValueError(f"{type(obj).__name__} at {id(obj):#x} is not a live allocation")
        del self._live[id(obj)]

    def _reserve(self, count: int) -> None:
        limit = self.config.max_allocations
        if limit is not None and len(self._live) >= limit:
            logger.warning("Allocation budget of %d exhausted", limit)
            raise AllocationFailure(f"allocation budget of {limit} exhausted")
        max_items = self.config.max_items
        if max_items is not None and count > max_items:
            logger.warning("Refusing buffer of %d slots (max_items=%d)", count, max_items)
            raise AllocationFailure(f"buffer of {count} slots exceeds max_items={max_items}")

    def _register(self, obj: T) -> T:
        self._live[id(obj)] = obj
        self.total_allocations += 1
        return obj


class FailingAllocator(Allocator):
    """Allocator that refuses every allocation.

    Useful to check that decoding a shape with no heap-backed parts never
    touches the allocator.
    """

    def __init__(self) -> None:
        super().__init__(AllocConfig(max_allocations=0))
