from __future__ import annotations

from dataclasses import dataclass, field
import itertools
import logging
import time
from typing import Any, Callable, Iterator

from media_presence.events import (
    Diagnostic,
    EventBus,
    PlayerAppeared,
    PlayerVanished,
    SessionAdded,
    SessionChanged,
    SessionRemoved,
)
from media_presence.mpris.errors import TransportError
from media_presence.mpris.metadata import TrackInfo
from media_presence.mpris.player import Capabilities, PlaybackStatus, PlayerChange, PlayerHandle

logger = logging.getLogger(__name__)

HandleFactory = Callable[..., PlayerHandle]


@dataclass(slots=True)
class MediaSession:
    id: str
    handle: PlayerHandle
    # insertion sequence, used as the selector's tie-break
    seq: int
    last_status_change_at: float
    playback_status: PlaybackStatus = PlaybackStatus.UNKNOWN
    capabilities: Capabilities = field(default_factory=Capabilities)
    metadata: TrackInfo = field(default_factory=TrackInfo)
    refreshing: bool = True

    def apply(self, change: PlayerChange, now: float) -> bool:
        """Fold a handle update in. Returns True if the status value changed."""
        self.refreshing = False
        self.capabilities = change.capabilities
        self.metadata = change.track
        if change.status is self.playback_status:
            return False
        self.playback_status = change.status
        self.last_status_change_at = now
        return True


class SessionRegistry:
    """
    Owns one MediaSession per MPRIS service currently on the bus.

    Entries are created from PlayerAppeared events and destroyed from
    PlayerVanished events (or close()); every mutation is announced on the
    event bus after it has been applied.
    """

    def __init__(
        self,
        bus: Any,
        events: EventBus,
        *,
        clock: Callable[[], float] = time.monotonic,
        handle_factory: HandleFactory = PlayerHandle,
    ):
        self._bus = bus
        self._events = events
        self._clock = clock
        self._handle_factory = handle_factory
        self._sessions: dict[str, MediaSession] = {}
        self._seq = itertools.count()
        self._unsubscribe = [
            events.subscribe(PlayerAppeared, lambda ev: self.on_appeared(ev.name)),
            events.subscribe(PlayerVanished, lambda ev: self.on_disappeared(ev.name)),
        ]

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)

    def __iter__(self) -> Iterator[MediaSession]:
        return iter(self.sessions())

    def get(self, session_id: str) -> MediaSession | None:
        return self._sessions.get(session_id)

    def ids(self) -> list[str]:
        return list(self._sessions)

    def sessions(self) -> list[MediaSession]:
        return sorted(self._sessions.values(), key=lambda s: s.seq)

    def snapshot(self) -> list[tuple[str, PlaybackStatus, TrackInfo]]:
        return [(s.id, s.playback_status, s.metadata) for s in self.sessions()]

    @property
    def settled(self) -> bool:
        """True once every session has seen its first refresh reply."""
        return not any(s.refreshing for s in self._sessions.values())

    def on_appeared(self, session_id: str) -> None:
        if session_id in self._sessions:
            logger.debug("Session %s already tracked, skipping", session_id)
            return

        handle: PlayerHandle | None = None

        def _on_change(change: PlayerChange) -> None:
            self._on_handle_change(session_id, handle, change)

        try:
            handle = self._handle_factory(self._bus, session_id, on_change=_on_change, on_error=self._on_handle_error)
        except Exception as e:
            # dbus.DBusException and friends; never fatal
            logger.warning("Failed to add player %s: %s", session_id, e)
            err = TransportError(str(e), service_name=session_id, operation="connect")
            self._events.publish(Diagnostic(source="registry", message=f"Failed to add player {session_id}", error=err))
            return

        self._sessions[session_id] = MediaSession(
            id=session_id,
            handle=handle,
            seq=next(self._seq),
            last_status_change_at=self._clock(),
        )
        logger.info("Tracking player %s", session_id)
        self._events.publish(SessionAdded(session_id))
        handle.refresh()

    def on_disappeared(self, session_id: str) -> None:
        session = self._sessions.pop(session_id, None)
        if session is None:
            logger.debug("Session %s not tracked, nothing to remove", session_id)
            return
        session.handle.close()
        logger.info("Stopped tracking player %s", session_id)
        self._events.publish(SessionRemoved(session_id))

    def close(self) -> None:
        for unsubscribe in self._unsubscribe:
            unsubscribe()
        self._unsubscribe = []
        sessions, self._sessions = self._sessions, {}
        for session in sessions.values():
            session.handle.close()
        if sessions:
            logger.debug("Closed %d session(s)", len(sessions))

    def _on_handle_change(self, session_id: str, handle: PlayerHandle | None, change: PlayerChange) -> None:
        session = self._sessions.get(session_id)
        if session is None or session.handle is not handle:
            # late reply for a removed (or replaced) session
            logger.debug("Dropping update for untracked session %s", session_id)
            return
        if session.apply(change, self._clock()):
            logger.debug("%s is now %s", session_id, session.playback_status.value)
        self._events.publish(SessionChanged(session_id))

    def _on_handle_error(self, err: TransportError) -> None:
        self._events.publish(Diagnostic(source="player", message=str(err), error=err))
