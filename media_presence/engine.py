from __future__ import annotations

from collections import deque
import logging
import time
from typing import Any, Callable, Protocol

from media_presence.events import Diagnostic, EventBus, SessionAdded, SessionChanged, SessionRemoved
from media_presence.mpris.metadata import TrackInfo
from media_presence.mpris.player import PlaybackStatus, PlayerHandle
from media_presence.mpris.watcher import BusWatcher
from media_presence.presentation.state_machine import (
    DEFAULT_MAX_SIZE,
    DEFAULT_MIN_SIZE,
    Animator,
    PresentationState,
    PresentationStateMachine,
)
from media_presence.session.registry import HandleFactory, SessionRegistry
from media_presence.session.selector import Selection, select

logger = logging.getLogger(__name__)


class PresenceListener(Protocol):
    def on_session_update(self, track: TrackInfo, status: PlaybackStatus) -> None: ...

    def on_presentation_state_change(self, state: PresentationState, target_size: int) -> None: ...


class MediaPresence:
    """
    Watcher -> registry -> selector -> presentation, plus control dispatch
    back to the selected player.

    Everything runs on the caller's event loop; no method blocks on the bus
    except the initial name enumeration in start().
    """

    def __init__(
        self,
        bus: Any,
        animator: Animator,
        listener: PresenceListener | None = None,
        *,
        events: EventBus | None = None,
        measure: Callable[[Selection], int] | None = None,
        min_size: int = DEFAULT_MIN_SIZE,
        max_size: int = DEFAULT_MAX_SIZE,
        clock: Callable[[], float] = time.monotonic,
        handle_factory: HandleFactory = PlayerHandle,
    ):
        self._bus = bus
        self._listener = listener
        self._clock = clock
        self._handle_factory = handle_factory
        self.events = events or EventBus()
        self.presentation = PresentationStateMachine(
            animator,
            on_state_change=self._on_state_change,
            measure=measure,
            min_size=min_size,
            max_size=max_size,
        )
        self.registry: SessionRegistry | None = None
        self.watcher: BusWatcher | None = None
        self._selection: Selection | None = None
        self._last_update: Selection | None = None
        self._unsubscribe: list[Callable[[], None]] = []
        self.diagnostics: deque[Diagnostic] = deque(maxlen=50)

    @property
    def running(self) -> bool:
        return self.watcher is not None

    @property
    def selection(self) -> Selection | None:
        return self._selection

    @property
    def state(self) -> PresentationState:
        return self.presentation.state

    def start(self) -> frozenset[str]:
        if self.watcher is not None:
            logger.debug("MediaPresence already started")
            return frozenset(self.registry.ids()) if self.registry else frozenset()

        self._unsubscribe = [
            self.events.subscribe(SessionAdded, self._on_registry_event),
            self.events.subscribe(SessionChanged, self._on_registry_event),
            self.events.subscribe(SessionRemoved, self._on_registry_event),
            self.events.subscribe(Diagnostic, self._on_diagnostic),
        ]
        self.registry = SessionRegistry(self._bus, self.events, clock=self._clock, handle_factory=self._handle_factory)
        self.watcher = BusWatcher(self._bus, self.events)
        names = self.watcher.start()
        logger.info("Watching MPRIS players (%d present)", len(names))
        return names

    def rescan(self) -> frozenset[str]:
        """Retry enumeration, e.g. after a failed start()."""
        if self.watcher is None:
            return self.start()
        return self.watcher.start()

    def stop(self) -> None:
        if self.watcher is None:
            return
        watcher, self.watcher = self.watcher, None
        registry, self.registry = self.registry, None
        watcher.stop()
        if registry is not None:
            registry.close()
        self.presentation.cancel()
        for unsubscribe in self._unsubscribe:
            unsubscribe()
        self._unsubscribe = []
        self._selection = None
        self._last_update = None
        logger.info("Stopped watching MPRIS players")

    # -- inbound control -------------------------------------------------

    def active_handle(self) -> PlayerHandle | None:
        if self._selection is None or self.registry is None:
            return None
        session = self.registry.get(self._selection.session_id)
        return session.handle if session is not None else None

    def request_toggle(self) -> str | None:
        handle = self._require_active("toggle")
        return handle.toggle_status() if handle else None

    def request_next(self) -> bool | None:
        handle = self._require_active("next")
        return handle.go_next() if handle else None

    def request_previous(self) -> bool | None:
        handle = self._require_active("previous")
        return handle.go_previous() if handle else None

    def _require_active(self, action: str) -> PlayerHandle | None:
        handle = self.active_handle()
        if handle is None:
            logger.info("No active player for %s", action)
        return handle

    # -- recompute -------------------------------------------------------

    def _on_registry_event(self, _event: Any) -> None:
        self.recompute()

    def recompute(self) -> Selection | None:
        if self.registry is None:
            return None
        selection = select(self.registry)
        self._selection = selection
        if selection is not None and selection != self._last_update:
            self._last_update = selection
            if self._listener is not None:
                self._listener.on_session_update(selection.track, selection.status)
        elif selection is None:
            self._last_update = None
        self.presentation.update(selection)
        return selection

    def _on_state_change(self, state: PresentationState, target_size: int) -> None:
        if self._listener is not None:
            self._listener.on_presentation_state_change(state, target_size)

    def _on_diagnostic(self, event: Diagnostic) -> None:
        # already logged where it happened
        self.diagnostics.append(event)
