"""Integration tests for wrap/subscribe/mutate/flush running on an event loop."""

import asyncio
import logging

import pytest

from proxystate import flush, subscribe, transaction, unwrap, wrap


def run(scenario):
    """Run an async scenario and return its result."""
    return asyncio.run(scenario())


async def settle():
    """Yield to the loop so a scheduled flush can run."""
    await asyncio.sleep(0)


@pytest.mark.integration
def test_real_change_is_delivered_once_after_the_synchronous_turn():
    """state.count = 1 results in exactly one deferred h(1)"""

    async def scenario():
        state = wrap({"count": 0})
        received = []
        subscribe(state, "count", received.append)

        state["count"] = 1
        assert received == []

        await settle()
        return received

    assert run(scenario) == [1]


@pytest.mark.integration
def test_wrapping_twice_shares_one_notification_stream():
    """Mutating through one façade reaches listeners registered through another"""

    async def scenario():
        data = {"k": 1}
        first = wrap(data)
        second = wrap(first)
        third = wrap(data)
        received = []
        subscribe(second, "k", received.append)

        first["k"] = 2
        third["k"] = 3
        await settle()
        return received

    assert run(scenario) == [2, 3]


@pytest.mark.integration
@pytest.mark.parametrize(
    "initial, replacement",
    [
        (1, 1),
        ("a", "a"),
        ({"a": 1}, {"a": 1}),
        ([1, {"b": [2]}], [1, {"b": [2]}]),
        (float("nan"), float("nan")),
    ],
)
def test_equal_reassignment_notifies_nobody(initial, replacement):
    """Structurally equal writes are suppressed"""

    async def scenario():
        state = wrap({"k": initial})
        received = []
        subscribe(state, "k", received.append)

        state["k"] = replacement
        await settle()
        return received

    assert run(scenario) == []


@pytest.mark.integration
def test_nested_reassignment_of_equal_object_notifies_nobody():
    """Replacing a nested object with an equal one fires neither path nor self listeners"""

    async def scenario():
        state = wrap({"user": {"profile": {"name": "Ada"}}})
        received = []
        subscribe(state, "user", received.append)

        state["user"]["profile"] = {"name": "Ada"}
        await settle()
        return received

    assert run(scenario) == []


@pytest.mark.integration
def test_mutations_in_one_turn_share_one_flush_window(scheduled):
    """Two writes to two subscribed keys produce one flush, in write order"""
    state = wrap({"a": 0, "b": 0})
    received = []
    subscribe(state, "b", lambda v: received.append(("b", v)))
    subscribe(state, "a", lambda v: received.append(("a", v)))

    state["b"] = 1
    state["a"] = 1

    assert len(scheduled) == 1
    scheduled[0]()
    assert received == [("b", 1), ("a", 1)]


@pytest.mark.integration
def test_redirection_reaches_one_level_only():
    """A write one level below the path fires; two levels below does not"""

    async def scenario():
        state = wrap({"foo": {"bar": 1, "deep": {"baz": 1}}})
        outer = []
        subscribe(state, "foo", outer.append)

        state["foo"]["bar"] = 2
        await settle()
        after_first = len(outer)

        state["foo"]["deep"]["baz"] = 2
        await settle()
        return after_first, len(outer)

    assert run(scenario) == (1, 1)


@pytest.mark.integration
def test_exact_and_redirected_listeners_fire_in_enqueue_order():
    """A nested write reaches the nested key's listeners, then the parent path's"""

    async def scenario():
        state = wrap({"child": {"x": 1}})
        order = []
        subscribe(state, "child", lambda view: order.append("parent-path"))
        subscribe(state["child"], "x", lambda value: order.append(f"x={value}"))

        state["child"]["x"] = 2
        await settle()
        return order

    assert run(scenario) == ["x=2", "parent-path"]


@pytest.mark.integration
def test_disposer_clears_every_listener_on_the_path():
    """Disposing h1 also silences h2 registered on the same path"""

    async def scenario():
        state = wrap({"count": 0})
        calls = []
        dispose_h1 = subscribe(state, "count", lambda v: calls.append("h1"))
        subscribe(state, "count", lambda v: calls.append("h2"))

        dispose_h1()
        state["count"] = 1
        await settle()
        return calls

    assert run(scenario) == []


@pytest.mark.integration
def test_deletion_is_silent():
    """Deleting a watched key notifies nobody, even after earlier writes did"""

    async def scenario():
        state = wrap({"count": 0, "nested": {"x": 1}})
        key_calls, self_calls = [], []
        subscribe(state, "count", key_calls.append)
        subscribe(state, "nested", self_calls.append)

        state["count"] = 1
        await settle()

        del state["count"]
        del state["nested"]["x"]
        state["nested"].clear()
        await settle()
        return key_calls, self_calls

    assert run(scenario) == ([1], [])


@pytest.mark.integration
def test_listener_faults_do_not_reach_the_writer(caplog):
    """A failing listener is logged; the write and sibling listeners are unaffected"""

    async def scenario():
        state = wrap({"count": 0})
        received = []

        def broken(value):
            raise RuntimeError("listener exploded")

        subscribe(state, "count", broken)
        subscribe(state, "count", received.append)

        state["count"] = 1
        await settle()
        return unwrap(state), received

    with caplog.at_level(logging.ERROR):
        data, received = run(scenario)

    assert data == {"count": 1}
    assert received == [1]
    assert "listener exploded" in caplog.text


@pytest.mark.integration
def test_listener_writes_are_delivered_in_a_later_window():
    """A listener that mutates state triggers a follow-up flush"""

    async def scenario():
        state = wrap({"celsius": 0, "fahrenheit": 32})
        seen = []
        subscribe(state, "celsius", lambda c: state.__setitem__("fahrenheit", c * 9 / 5 + 32))
        subscribe(state, "fahrenheit", seen.append)

        state["celsius"] = 100
        await settle()
        assert seen == []
        await settle()
        return seen

    assert run(scenario) == [212.0]


@pytest.mark.integration
def test_transaction_delivers_before_the_block_returns():
    """Inside a loop, a transaction still flushes synchronously on exit"""

    async def scenario():
        state = wrap({"a": 0, "b": 0})
        received = []
        subscribe(state, "a", received.append)
        subscribe(state, "b", received.append)

        with transaction():
            state["a"] = 1
            state["b"] = 2
            assert received == []
        after_block = list(received)

        await settle()
        return after_block, received

    assert run(scenario) == ([1, 2], [1, 2])


@pytest.mark.integration
def test_list_state_end_to_end():
    """Lists nested in dicts support index and redirected subscriptions"""
    state = wrap({"todos": [{"title": "write", "done": False}]})
    todo_changes, list_changes = [], []
    subscribe(state["todos"][0], "done", todo_changes.append)
    subscribe(state, "todos", list_changes.append)

    state["todos"][0]["done"] = True
    state["todos"].append({"title": "ship", "done": False})
    flush()

    assert todo_changes == [True]
    assert len(list_changes) == 1
    assert list_changes[0] == [
        {"title": "write", "done": True},
        {"title": "ship", "done": False},
    ]
