"""Event bus connecting the watcher, the registry and the presence engine."""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Any, Callable

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class PlayerAppeared:
    name: str


@dataclass(frozen=True, slots=True)
class PlayerVanished:
    name: str


@dataclass(frozen=True, slots=True)
class SessionAdded:
    session_id: str


@dataclass(frozen=True, slots=True)
class SessionChanged:
    session_id: str


@dataclass(frozen=True, slots=True)
class SessionRemoved:
    session_id: str


@dataclass(frozen=True, slots=True)
class Diagnostic:
    """Non-fatal problem report (transport errors, failed enumeration)."""

    source: str
    message: str
    error: BaseException | None = None


Handler = Callable[[Any], None]


class EventBus:
    """
    Synchronous publish/subscribe keyed by event type.

    Handlers run in subscription order on the caller's turn. A handler that
    raises is logged and does not stop delivery to the others.
    """

    def __init__(self) -> None:
        self._subscribers: dict[type, list[Handler]] = {}

    def subscribe(self, event_type: type, handler: Handler) -> Callable[[], None]:
        self._subscribers.setdefault(event_type, []).append(handler)

        def _unsubscribe() -> None:
            self.unsubscribe(event_type, handler)

        return _unsubscribe

    def unsubscribe(self, event_type: type, handler: Handler) -> None:
        handlers = self._subscribers.get(event_type)
        if not handlers:
            return
        try:
            handlers.remove(handler)
        except ValueError:
            logger.debug("Handler %r was not subscribed to %s", handler, event_type.__name__)

    def publish(self, event: Any) -> None:
        # copy: handlers may unsubscribe while we iterate
        for handler in list(self._subscribers.get(type(event), ())):
            try:
                handler(event)
            except Exception:
                logger.exception("Error in %s handler %r", type(event).__name__, handler)

    def subscriber_count(self, event_type: type | None = None) -> int:
        if event_type is not None:
            return len(self._subscribers.get(event_type, ()))
        return sum(len(h) for h in self._subscribers.values())
