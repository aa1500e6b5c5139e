from __future__ import annotations

import logging
from typing import Callable, Dict, List, Protocol

from .models import ProgressEvent

logger = logging.getLogger(__name__)

ProgressListener = Callable[[ProgressEvent], None]


class ProgressSubscription:
    """
    Handle for a listener registered on `ProgressEvents`. Usable as a context
    manager so the listener is released on every exit path.
    """

    def __init__(self, bus: "ProgressEvents", article_id: str, listener: ProgressListener):
        self._bus = bus
        self.article_id = article_id
        self._listener = listener
        self.closed = False

    def close(self) -> None:
        if self.closed:
            return
        self._bus._remove(self.article_id, self._listener)
        self.closed = True

    def __enter__(self) -> "ProgressSubscription":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


class ProgressEvents:
    """
    Side channel for parsing progress. Listeners are keyed by article id and
    only receive events published for that id.
    """

    def __init__(self):
        self._listeners: Dict[str, List[ProgressListener]] = {}

    def subscribe(self, article_id: str, listener: ProgressListener) -> ProgressSubscription:
        self._listeners.setdefault(article_id, []).append(listener)
        return ProgressSubscription(self, article_id, listener)

    def publish(self, event: ProgressEvent) -> None:
        listeners = list(self._listeners.get(event.id, []))
        if not listeners:
            logger.debug("Progress for %s has no listener (%s%%)", event.id, event.percent)
        for listener in listeners:
            listener(event)

    def listener_count(self, article_id: str) -> int:
        return len(self._listeners.get(article_id, []))

    def _remove(self, article_id: str, listener: ProgressListener) -> None:
        listeners = self._listeners.get(article_id)
        if not listeners:
            return
        if listener in listeners:
            listeners.remove(listener)
        if not listeners:
            del self._listeners[article_id]


class Notifier(Protocol):
    def alert(self, message: str) -> None:
        ...


class LoggingNotifier:
    """
    Notifier for headless runs: alerts go to the log.
    """

    def alert(self, message: str) -> None:
        logger.error("ALERT: %s", message)


class CollectingNotifier:
    """
    Keeps alerts until a client picks them up (see the /notifications route).
    """

    def __init__(self):
        self.messages: List[str] = []

    def alert(self, message: str) -> None:
        logger.warning("Alert raised: %s", message)
        self.messages.append(message)

    def drain(self) -> List[str]:
        messages, self.messages = self.messages, []
        return messages
