"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import io

import pytest

from shapewire import Allocator


@pytest.fixture
def allocator() -> Allocator:
    """Fresh allocator with no budgets."""
    return Allocator()


@pytest.fixture
def sink() -> io.BytesIO:
    """In-memory byte sink."""
    return io.BytesIO()
