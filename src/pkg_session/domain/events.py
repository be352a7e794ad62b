from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List

from .constants import SessionEvent

logger = logging.getLogger(__name__)

Callback = Callable[..., Any]


class SessionEvents:
    """
    Subscription hub for session lifecycle events.

    - RENEWED: the access token was (re-)established, no arguments
    - EXPIRED: the session was terminated, no arguments
    - ERROR:   a renewal attempt failed but will be retried, receives the error
    """

    def __init__(self) -> None:
        self._subscribers: Dict[SessionEvent, List[Callback]] = {event: [] for event in SessionEvent}

    def subscribe(self, event: SessionEvent, callback: Callback) -> Callable[[], None]:
        """
        Register `callback` for `event`. Returns a function that removes it.
        """
        if not callable(callback):
            raise TypeError("callback must be callable")
        self._subscribers[event].append(callback)

        def unsubscribe() -> None:
            try:
                self._subscribers[event].remove(callback)
            except ValueError:
                pass

        return unsubscribe

    def subscribers(self, event: SessionEvent) -> List[Callback]:
        return list(self._subscribers[event])

    def emit(self, event: SessionEvent, *args: Any) -> None:
        # Host callbacks must never break the session state machine.
        for callback in list(self._subscribers[event]):
            try:
                callback(*args)
            except Exception:  # noqa: BLE001
                logger.exception("Session %s callback %r failed", event.value, callback)
