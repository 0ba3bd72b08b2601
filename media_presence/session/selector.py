from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from media_presence.mpris.metadata import TrackInfo
from media_presence.mpris.player import PlaybackStatus

from .registry import MediaSession, SessionRegistry


@dataclass(frozen=True, slots=True)
class Selection:
    session_id: str
    track: TrackInfo
    status: PlaybackStatus


def pick_session(sessions: Iterable[MediaSession]) -> MediaSession | None:
    """
    The Playing session whose status changed most recently.

    ``sessions`` must be in insertion order: on equal timestamps the
    earliest-registered one wins. Nothing Playing -> None.
    """
    best: MediaSession | None = None
    for s in sessions:
        if s.refreshing or s.playback_status is not PlaybackStatus.PLAYING:
            continue
        if best is None or s.last_status_change_at > best.last_status_change_at:
            best = s
    return best


def select(registry: SessionRegistry) -> Selection | None:
    session = pick_session(registry.sessions())
    if session is None:
        return None
    return Selection(session_id=session.id, track=session.metadata, status=session.playback_status)
