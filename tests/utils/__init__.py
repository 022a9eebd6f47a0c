"""
Test utilities for ProxyState.

This package contains shared testing utilities to help write
better, more maintainable tests.
"""

from .memory_utils import assert_cleaned_up, assert_retained, count_types

__all__ = [
    "assert_cleaned_up",
    "assert_retained",
    "count_types",
]
