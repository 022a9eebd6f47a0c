"""
ProxyState Registry - Per-Object, Per-Path Listener Storage
===========================================================

The registry maps each tracked object (by canonical identity) to an entry of
``path-key -> [listener, ...]``. Path-keys are dict keys, list indices, or the
``SELF`` marker, which holds subscriptions that were redirected onto this
object from a parent path.

Storage discipline:
    Plain ``dict`` and ``list`` objects cannot be weakly referenced, so a
    ``WeakKeyDictionary`` is not an option. Entries are keyed by ``id()`` and
    pin their target, which keeps the id from being reused while the entry
    exists. Only subscriptions create entries, and an entry is dropped as
    soon as its disposers leave it without listeners. ``release()`` evicts
    entries whose subscriptions are never disposed.
"""

import logging
from typing import Any, Callable, Dict, Hashable, Iterator, List, Optional

from .dispatcher import Dispatcher, get_dispatcher
from .identity import is_trackable, unwrap


class _SelfMarker:
    """Path-key for "any direct property change of this object"."""

    __slots__ = ()

    def __repr__(self) -> str:
        return "SELF"

    def __reduce__(self):
        return "SELF"


SELF = _SelfMarker()

Handler = Callable[[Any], None]


class RegistryEntry:
    """Listener lists for one tracked object."""

    __slots__ = ("target", "listeners")

    def __init__(self, target: Any):
        self.target = target
        self.listeners: Dict[Hashable, List[Handler]] = {}

    def add(self, key: Hashable, handler: Handler) -> None:
        handlers = self.listeners.get(key)
        if not handlers:
            self.listeners[key] = [handler]
        else:
            handlers.append(handler)

    def clear(self, key: Hashable) -> None:
        """Empty the listener list at ``key``; the key itself stays."""
        self.listeners[key] = []

    def get(self, key: Hashable) -> List[Handler]:
        return self.listeners.get(key) or []

    def is_empty(self) -> bool:
        return not any(self.listeners.values())


class Registry:
    """
    Process-wide subscription registry.

    Keyed by canonical identity, so every façade over the same object shares
    one notification stream.
    """

    def __init__(self, dispatcher: Optional[Dispatcher] = None):
        self._entries: Dict[int, RegistryEntry] = {}
        self._dispatcher = dispatcher

    @property
    def dispatcher(self) -> Dispatcher:
        # Resolved lazily so a reset dispatcher singleton is picked up.
        return self._dispatcher if self._dispatcher is not None else get_dispatcher()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, obj: Any) -> bool:
        return self.get(obj) is not None

    def __iter__(self) -> Iterator[Any]:
        return (entry.target for entry in list(self._entries.values()))

    def get(self, obj: Any) -> Optional[RegistryEntry]:
        target = unwrap(obj)
        entry = self._entries.get(id(target))
        if entry is not None and entry.target is target:
            return entry
        return None

    def ensure(self, obj: Any) -> Optional[RegistryEntry]:
        """Return the entry for ``obj``, creating it on first use (idempotent)."""
        target = unwrap(obj)
        if not is_trackable(target):
            return None
        entry = self.get(target)
        if entry is None:
            entry = RegistryEntry(target)
            self._entries[id(target)] = entry
            logging.debug(f"Registry entry created for {type(target).__name__} {id(target):#x}")
        return entry

    def add(self, obj: Any, key: Hashable, handler: Handler) -> Callable[[], None]:
        """
        Append ``handler`` under ``key`` on ``obj``'s entry.

        Returns:
            A disposer that clears every listener at that path-key, and drops
            the entry once none of its keys has listeners left.
        """
        entry = self.ensure(obj)
        if entry is None:
            return _noop
        entry.add(key, handler)

        def dispose() -> None:
            entry.clear(key)
            if not entry.is_empty():
                return
            target = entry.target
            if self._entries.get(id(target)) is entry:
                del self._entries[id(target)]
                logging.debug(f"Registry entry dropped for {type(target).__name__} {id(target):#x}")

        return dispose

    def notify(self, obj: Any, key: Hashable, new_value: Any) -> None:
        """
        Hand listeners interested in a write of ``key`` on ``obj`` to the dispatcher.

        Exact-key listeners receive ``new_value``; ``SELF`` listeners receive a
        façade over ``obj``.
        """
        entry = self.get(obj)
        if entry is None:
            return

        dispatcher = self.dispatcher
        if key is not SELF:
            exact = entry.get(key)
            if exact:
                dispatcher.enqueue(list(exact), new_value)
        redirected = entry.get(SELF)
        if redirected:
            # Import here to avoid circular dependency
            from .proxy import wrap

            dispatcher.enqueue(list(redirected), wrap(entry.target))

    def release(self, obj: Any, recursive: bool = False) -> int:
        """
        Drop the entry for ``obj``; returns how many entries were removed.

        With ``recursive=True`` every tracked object reachable from ``obj`` is
        released as well.
        """
        target = unwrap(obj)
        removed = 0
        stack = [target]
        seen = set()
        while stack:
            current = stack.pop()
            if id(current) in seen:
                continue
            seen.add(id(current))
            entry = self.get(current)
            if entry is not None:
                del self._entries[id(current)]
                removed += 1
                logging.debug(f"Registry entry released for {type(current).__name__} {id(current):#x}")
            if recursive and is_trackable(current):
                children = current.values() if isinstance(current, dict) else current
                stack.extend(child for child in children if is_trackable(child))
        return removed

    def clear(self) -> None:
        self._entries.clear()


def _noop() -> None:
    pass


_registry: Optional[Registry] = None


def get_registry() -> Registry:
    """
    Get or create the process-wide registry.

    Lazy singleton pattern: creates on first access, reuses thereafter.
    Testing can reset via _reset_registry().
    """
    global _registry
    if _registry is None:
        _registry = Registry()
    return _registry


def _reset_registry() -> None:
    """Reset the registry for testing purposes. All subscriptions are lost."""
    global _registry
    _registry = None
