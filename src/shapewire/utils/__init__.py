"""Utility functions for shapewire.

This module provides encoded size calculation.
"""

from __future__ import annotations

from .sizing import encoded_length, field_sizes, static_size

__all__ = [
    "encoded_length",
    "static_size",
    "field_sizes",
]
