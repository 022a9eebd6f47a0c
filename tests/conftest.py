"""
Shared pytest fixtures and configuration for ProxyState tests.
"""

import pytest

from proxystate import _reset_dispatcher, _reset_registry, set_scheduler


@pytest.fixture(autouse=True)
def reset_global_state():
    """Reset the registry and dispatcher before each test to prevent state leakage."""
    _reset_registry()
    _reset_dispatcher()


@pytest.fixture
def scheduled():
    """Capture scheduled flushes instead of deferring them onto an event loop."""
    callbacks = []
    set_scheduler(callbacks.append)
    return callbacks
