"""
ProxyState Snapshot - Detached Copies of Tracked Data
=====================================================

Self-marker listeners receive a live façade. ``snapshot()`` copies it into
plain dicts and lists that no longer change when the tracked tree does.
"""

from typing import Any

from .identity import is_trackable, unwrap


def snapshot(value: Any) -> Any:
    """
    Deep-copy the dict/list skeleton of ``value``; leaves are shared.

    Accepts façades at any depth. Self-referential data recurses without
    bound.
    """
    value = unwrap(value)
    if not is_trackable(value):
        return value
    if type(value) is dict:
        return {key: snapshot(item) for key, item in value.items()}
    return [snapshot(item) for item in value]
