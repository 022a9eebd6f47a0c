"""
ProxyState Identity - Canonical Object Resolution
=================================================

Every tracked value has exactly one canonical reference: the plain ``dict`` or
``list`` that holds its data. Façades are throwaway views over it, so all
registry bookkeeping keys on the canonical object, never on a façade.
"""

from typing import Any

# Reserved attribute every façade answers with its underlying object.
ORIGINAL_ATTR = "__proxy_target__"

# Sentinel for "no value here" (missing dict key, out-of-range list index).
class _Missing:
    __slots__ = ()

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING = _Missing()


def is_trackable(value: Any) -> bool:
    """True for plain dicts and lists; subclasses and other types pass through."""
    return type(value) is dict or type(value) is list


def unwrap(value: Any) -> Any:
    """Return the canonical object behind a façade, or ``value`` unchanged."""
    return getattr(value, ORIGINAL_ATTR, value) if _is_facade(value) else value


def unwrap_deep(value: Any) -> Any:
    """
    Unwrap ``value`` and every façade nested inside it.

    Dicts and lists that hold façades are rebuilt with the underlying objects
    in their place; containers without any are returned as-is, so plain data
    keeps its identity.
    """
    value = unwrap(value)
    if type(value) is dict:
        items = {key: unwrap_deep(item) for key, item in value.items()}
        if any(items[key] is not item for key, item in value.items()):
            return items
        return value
    if type(value) is list:
        items = [unwrap_deep(item) for item in value]
        if any(new is not old for new, old in zip(items, value)):
            return items
        return value
    return value


def _is_facade(value: Any) -> bool:
    # Plain containers and scalars never carry the reserved attribute; skip
    # the attribute lookup for them.
    if is_trackable(value) or value is None:
        return False
    return hasattr(type(value), ORIGINAL_ATTR)
