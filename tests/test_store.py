import logging
from datetime import UTC, datetime

import pytest

from nexaconnect.actions import Goto, SendEnquiry, SetSearchQuery, SetTheme
from nexaconnect.models import AppState, Location, Provider
from nexaconnect.reducer import initial_state
from nexaconnect.store import Store

NOW = datetime(2025, 11, 20, 9, 30, tzinfo=UTC)


def _store() -> Store:
    provider = Provider(
        id="p1",
        name="Sunshine",
        location=Location(suburb="Newcastle"),
        categories=("daily-living",),
    )
    return Store(initial_state(providers=(provider,)), clock=lambda: NOW)


def test_dispatch_updates_state_and_notifies() -> None:
    store = _store()
    seen: list[tuple[str, str]] = []

    store.subscribe(lambda new, previous, action: seen.append((previous.route, new.route)))
    state = store.dispatch(Goto(route="search"))

    assert state.route == "search"
    assert store.state is state
    assert seen == [("landing", "search")]


def test_unsubscribe() -> None:
    store = _store()
    calls: list[object] = []
    unsubscribe = store.subscribe(lambda *args: calls.append(args))
    unsubscribe()
    unsubscribe()
    store.dispatch(SetTheme(theme="light"))
    assert calls == []


def test_legacy_actions_use_store_clock() -> None:
    store = _store()
    state = store.dispatch(
        {
            "type": "SEND_ENQUIRY",
            "payload": {"providerId": "p1", "participantId": "u1", "message": "Hello"},
        }
    )
    assert state.enquiries[0].messages[0].sent_at == NOW
    assert store.now() == NOW


def test_malformed_and_unknown_actions_are_ignored(caplog: pytest.LogCaptureFixture) -> None:
    store = _store()
    before = store.state
    with caplog.at_level(logging.DEBUG, logger="nexaconnect.store"):
        store.dispatch({"type": "NAV_GOTO", "payload": "broken"})
        store.dispatch({"type": "ADMIN_SUSPEND"})
    assert store.state is before
    assert "Ignoring malformed action NAV_GOTO" in caplog.text
    assert "Ignoring unknown action ADMIN_SUSPEND" in caplog.text


def test_reentrant_dispatch_is_serialized() -> None:
    store = _store()
    order: list[str] = []

    def listener(new: AppState, previous: AppState, action) -> None:
        order.append(type(action).__name__)
        if isinstance(action, Goto):
            store.dispatch(SetSearchQuery(query="therapy"))
            order.append("after nested dispatch")

    store.subscribe(listener)
    state = store.dispatch(Goto(route="search"))

    assert order == ["Goto", "after nested dispatch", "SetSearchQuery"]
    assert state.search_query == "therapy"
    assert state.route == "search"


def test_custom_reducer() -> None:
    calls: list[object] = []

    def reducer(state: AppState, action) -> AppState:
        calls.append(action)
        return state

    store = Store(reducer=reducer)
    action = SendEnquiry(provider_id="p1", participant_id="u1", message="Hi", sent_at=NOW)
    store.dispatch(action)
    assert calls == [action]
    assert store.state == AppState()
