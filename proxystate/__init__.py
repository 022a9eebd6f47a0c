"""
ProxyState - Mutation Tracking for Plain Python Data

Wrap a plain dict or list once, subscribe to paths on it, and mutate it like
ordinary data. Real changes are detected on write and delivered to listeners
in one batched flush after the writing code has finished.
"""

# Change detection
from .equality import deep_equal, same_value

# Canonical identity
from .identity import MISSING, is_trackable, unwrap, unwrap_deep

# Batched delivery
from .dispatcher import (
    Dispatcher,
    _reset_dispatcher,
    flush,
    get_dispatcher,
    set_scheduler,
    transaction,
)

# Subscription storage
from .registry import SELF, Registry, _reset_registry, get_registry

# Façades
from .proxy import ProxyDict, ProxyList, proxy, wrap

# Public API
from .snapshot import snapshot
from .subscription import release, subscribe

__all__ = [
    # Core API
    "wrap",
    "proxy",
    "subscribe",
    "unwrap",
    "unwrap_deep",
    "release",
    "snapshot",
    # Delivery control
    "flush",
    "transaction",
    "set_scheduler",
    # Change detection
    "deep_equal",
    "same_value",
    "is_trackable",
    # Building blocks
    "ProxyDict",
    "ProxyList",
    "Registry",
    "Dispatcher",
    "get_registry",
    "get_dispatcher",
    # Sentinels
    "SELF",
    "MISSING",
    # Testing utilities (internal use)
    "_reset_registry",
    "_reset_dispatcher",
]
