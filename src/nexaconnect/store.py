"""Explicit state container with serialized dispatch and subscriptions."""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Callable, Mapping
from datetime import UTC, datetime
from typing import Any

from .actions import Action, decode_action
from .exceptions import ValidationError
from .models import AppState
from .reducer import reduce

_LOGGER = logging.getLogger(__name__)

Listener = Callable[[AppState, AppState, Action], None]
Reducer = Callable[[AppState, Action], AppState]
Clock = Callable[[], datetime]


def _utc_now() -> datetime:
    return datetime.now(UTC)


class Store:
    """Hold the current state and apply actions one at a time.

    A dispatch issued from a listener is queued and reduced after the
    current dispatch finishes, so listeners always observe actions in order.
    """

    def __init__(
        self,
        state: AppState | None = None,
        *,
        reducer: Reducer = reduce,
        clock: Clock | None = None,
    ) -> None:
        self._state = state if state is not None else AppState()
        self._reducer = reducer
        self._clock = clock or _utc_now
        self._listeners: list[Listener] = []
        self._queue: deque[Action] = deque()
        self._dispatching = False

    @property
    def state(self) -> AppState:
        return self._state

    def now(self) -> datetime:
        return self._clock()

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register ``listener``; the returned callable removes it again."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def dispatch(self, action: Action | Mapping[str, Any]) -> AppState:
        if isinstance(action, Mapping):
            try:
                decoded = decode_action(action, now=self._clock())
            except ValidationError as exc:
                _LOGGER.debug("Ignoring malformed action %s: %s", action.get("type"), exc)
                return self._state
            if decoded is None:
                _LOGGER.debug("Ignoring unknown action %s", action.get("type"))
                return self._state
            action = decoded
        self._queue.append(action)
        if self._dispatching:
            return self._state
        self._dispatching = True
        try:
            while self._queue:
                self._apply(self._queue.popleft())
        finally:
            self._dispatching = False
            self._queue.clear()
        return self._state

    def _apply(self, action: Action) -> None:
        previous = self._state
        self._state = self._reducer(previous, action)
        _LOGGER.debug(
            "Dispatched %s (changed=%s)", type(action).__name__, self._state is not previous
        )
        for listener in list(self._listeners):
            listener(self._state, previous, action)
