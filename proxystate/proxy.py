"""
ProxyState Proxy - Transparent Façades over Plain Data
======================================================

``wrap()`` turns a plain ``dict`` or ``list`` into a façade that behaves like
the original container while intercepting reads and writes:

- **Reads** return nested dicts and lists as façades of their own (created on
  every read), and everything else unchanged. Reading never touches the
  registry; only subscriptions create entries.
- **Writes** are compared with the current value first. Identical or
  deep-equal values are stored silently; real changes are reported to the
  registry for the object being written, then stored.
- **Deletes** remove the item without notifying anyone.

Only plain ``dict`` and ``list`` instances are wrapped. Subclasses, tuples,
sets and arbitrary objects pass through reads untouched and are not
reactive.

Example:
    >>> state = wrap({"count": 0, "todo": {"done": False}})
    >>> state["todo"]["done"] = True     # reported on the nested dict
    >>> unwrap(state["todo"])            # the plain dict underneath
    {'done': True}
"""

from collections.abc import MutableMapping, MutableSequence
from typing import Any, Hashable, Iterator, Optional

from .equality import deep_equal
from .identity import MISSING, is_trackable, unwrap, unwrap_deep
from .registry import SELF, get_registry


def wrap(value: Any, register: bool = False) -> Any:
    """
    Return a façade over ``value``.

    Wrapping a façade wraps its underlying object again, so both views share
    one registry entry. Non-trackable values are returned unchanged.

    Args:
        value: A plain dict or list, or a façade over one.
        register: Also make sure the object has a registry entry.
    """
    target = unwrap(value)
    if not is_trackable(target):
        return value
    if register:
        get_registry().ensure(target)
    if type(target) is dict:
        return ProxyDict(target)
    return ProxyList(target)


proxy = wrap


def _wrap_child(value: Any) -> Any:
    if is_trackable(value):
        return wrap(value)
    return value


def _normalize_index(index: Any, length: int) -> Any:
    if isinstance(index, int) and not isinstance(index, bool) and index < 0:
        return index + length
    return index


def _write(target: Any, key: Hashable, value: Any, prev: Any) -> None:
    """Report ``target[key] = value`` unless it changes nothing."""
    if prev is value or deep_equal(prev, value):
        return
    get_registry().notify(target, key, value)


class ProxyDict(MutableMapping):
    """Façade over a plain ``dict``."""

    __slots__ = ("_target",)

    def __init__(self, target: dict):
        self._target = target

    @property
    def __proxy_target__(self) -> dict:
        return self._target

    def __getitem__(self, key: Hashable) -> Any:
        return _wrap_child(self._target[key])

    def __setitem__(self, key: Hashable, value: Any) -> None:
        value = unwrap_deep(value)
        _write(self._target, key, value, self._target.get(key, MISSING))
        self._target[key] = value

    def __delitem__(self, key: Hashable) -> None:
        del self._target[key]

    def __iter__(self) -> Iterator[Hashable]:
        return iter(self._target)

    def __len__(self) -> int:
        return len(self._target)

    def __contains__(self, key: object) -> bool:
        return key in self._target

    def __eq__(self, other: object) -> bool:
        return self._target == unwrap(other)

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"ProxyDict({self._target!r})"


class ProxyList(MutableSequence):
    """Façade over a plain ``list``."""

    __slots__ = ("_target",)

    def __init__(self, target: list):
        self._target = target

    @property
    def __proxy_target__(self) -> list:
        return self._target

    def __getitem__(self, index: Any) -> Any:
        if isinstance(index, slice):
            return self._target[index]
        return _wrap_child(self._target[index])

    def __setitem__(self, index: Any, value: Any) -> None:
        if isinstance(index, slice):
            items = [unwrap_deep(item) for item in value]
            prev = self._target[index]
            # Extended slices may reject the length; write before reporting.
            self._target[index] = items
            # Structural edits are reported to redirected subscribers only.
            _write(self._target, SELF, items, prev)
            return

        value = unwrap_deep(value)
        index = _normalize_index(index, len(self._target))
        _write(self._target, index, value, self._target[index])
        self._target[index] = value

    def __delitem__(self, index: Any) -> None:
        del self._target[index]

    def __len__(self) -> int:
        return len(self._target)

    def __contains__(self, value: object) -> bool:
        return unwrap(value) in self._target

    def insert(self, index: int, value: Any) -> None:
        value = unwrap_deep(value)
        length = len(self._target)
        position = _normalize_index(index, length)
        position = min(max(position, 0), length)
        _write(self._target, position, value, MISSING)
        self._target.insert(position, value)

    def sort(self, key: Optional[Any] = None, reverse: bool = False) -> None:
        ordered = sorted(self._target, key=key, reverse=reverse)
        for i, item in enumerate(ordered):
            self[i] = item

    def __eq__(self, other: object) -> bool:
        return self._target == unwrap(other)

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"ProxyList({self._target!r})"
