"""
ProxyState Subscription - Path Subscriptions with One-Level Redirection
=======================================================================

``subscribe(obj, key, handler)`` watches one path on a tracked object.

Where the subscription lands depends on what ``obj[key]`` holds right now:

- a plain dict or list: the subscription is *redirected* onto that nested
  object under the ``SELF`` marker, so any direct write to one of its items
  calls ``handler`` with a façade over the nested object;
- anything else (a scalar, or nothing yet): the subscription stays on ``obj``
  under ``key``, so writes of ``obj[key]`` call ``handler`` with the new
  value.

Propagation is exactly one level deep. A write two levels below ``key`` only
reaches listeners registered on the object that was actually written.
Subscriptions are not migrated when the value at ``key`` later changes kind.

The returned disposer clears *every* listener at the path-key it registered
on, not only ``handler``.
"""

import logging
from typing import Any, Callable, Hashable

from .identity import MISSING, is_trackable, unwrap
from .proxy import _normalize_index, wrap
from .registry import SELF, Handler, _noop, get_registry


def _read(facade: Any, key: Hashable) -> Any:
    try:
        return facade[key]
    except (KeyError, IndexError, TypeError):
        return MISSING


def subscribe(obj: Any, key: Hashable, handler: Handler) -> Callable[[], None]:
    """
    Register ``handler`` for changes at ``obj[key]``.

    Args:
        obj: A façade or a plain dict/list.
        key: Dict key or list index.
        handler: Called with the new value (or a façade over the redirected
            object) once per change, after the writing code has finished.

    Returns:
        A disposer that clears all listeners on the same path-key.
    """
    original_obj = unwrap(obj)
    if not is_trackable(original_obj):
        logging.debug(f"subscribe() on non-trackable {type(original_obj).__name__}; ignored")
        return _noop

    registry = get_registry()
    next_value = _read(wrap(original_obj), key)
    original_next = unwrap(next_value)

    if is_trackable(original_next):
        logging.debug(f"subscribe({key!r}) redirected to {type(original_next).__name__} {id(original_next):#x}")
        return registry.add(original_next, SELF, handler)

    if type(original_obj) is list:
        key = _normalize_index(key, len(original_obj))
    return registry.add(original_obj, key, handler)


def release(obj: Any, recursive: bool = False) -> int:
    """
    Forget every subscription held on ``obj``.

    This is the disposal hook for long-lived programs: registry entries pin
    their objects until released.

    Args:
        obj: A façade or a plain dict/list.
        recursive: Also release every dict and list reachable from ``obj``.

    Returns:
        Number of registry entries removed.
    """
    return get_registry().release(obj, recursive=recursive)
