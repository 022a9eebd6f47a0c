"""
ProxyState Equality - Change Detection for Tracked Writes
=========================================================

This module decides whether a proposed new value is the same as the value
already stored, so that writes which change nothing never reach listeners.

Rules, applied in order:
    1. Identical references are equal.
    2. Values of different exact types are not equal (``1`` vs ``1.0``,
       ``[]`` vs ``{}``, ``dict`` vs a ``dict`` subclass).
    3. Lists are equal when they have the same length and every index is
       pairwise deep-equal.
    4. Dicts are equal when they have the same key set and every value is
       pairwise deep-equal. The framework back-reference key ``_owner`` is
       skipped on mappings that carry the ``$$typeof`` marker.
    5. Anything else falls back to ``==``, with NaN treated as equal to NaN.

There is no cycle detection: a self-referential structure recurses until
Python raises ``RecursionError``.
"""

import math
from typing import Any

# Mappings emitted by UI frameworks may point back at their owner; comparing
# that key would walk framework-internal cycles.
BACKREF_KEY = "_owner"
BACKREF_MARKER = "$$typeof"


def same_value(a: Any, b: Any) -> bool:
    """Identity check for references, value check for scalars (NaN == NaN)."""
    if a is b:
        return True
    if type(a) is not type(b):
        return False
    if isinstance(a, (dict, list)):
        return False
    if isinstance(a, float) and math.isnan(a) and math.isnan(b):
        return True
    try:
        return bool(a == b)
    except (TypeError, ValueError):
        # Element-wise __eq__ (numpy arrays and the like) counts as different.
        return False


def deep_equal(a: Any, b: Any) -> bool:
    """
    Structural equality for plain dict/list trees.

    Args:
        a: Current value.
        b: Proposed value.

    Returns:
        True when replacing ``a`` with ``b`` would not be an observable change.
    """
    if a is b:
        return True
    if type(a) is not type(b):
        return False

    if isinstance(a, list):
        if len(a) != len(b):
            return False
        for i in range(len(a) - 1, -1, -1):
            if not deep_equal(a[i], b[i]):
                return False
        return True

    if isinstance(a, dict):
        if len(a) != len(b):
            return False
        for key in a:
            if key not in b:
                return False
        skip_backref = BACKREF_MARKER in a
        for key, value in a.items():
            if skip_backref and key == BACKREF_KEY:
                continue
            if not deep_equal(value, b[key]):
                return False
        return True

    return same_value(a, b)
