from __future__ import annotations

from dataclasses import dataclass
import logging
import signal

import dbus
from dbus.mainloop.glib import DBusGMainLoop
import gi

gi.require_version("GLib", "2.0")
from gi.repository import GLib  # noqa: E402

from media_presence.config import AppConfig  # noqa: E402
from media_presence.engine import MediaPresence  # noqa: E402
from media_presence.events import SessionChanged, SessionRemoved  # noqa: E402
from media_presence.mpris.errors import NoPlayersFound, PlayerUnavailable  # noqa: E402
from media_presence.mpris.metadata import TrackInfo  # noqa: E402
from media_presence.mpris.player import PlaybackStatus, PlayerHandle  # noqa: E402
from media_presence.mpris.watcher import list_players  # noqa: E402
from media_presence.presentation.animator import GLibAnimator, InstantAnimator  # noqa: E402
from media_presence.render.ansi import AnsiRenderer  # noqa: E402

logger = logging.getLogger(__name__)

ACTIONS = ("toggle", "next", "previous")


def session_bus() -> dbus.SessionBus:
    # async calls and signal matches need a main loop attached to the connection
    DBusGMainLoop(set_as_default=True)
    return dbus.SessionBus()


def _quit_on_signals(loop: GLib.MainLoop) -> None:
    def _quit(*_args) -> bool:
        loop.quit()
        return GLib.SOURCE_REMOVE

    for signum in (signal.SIGINT, signal.SIGTERM):
        GLib.unix_signal_add(GLib.PRIORITY_DEFAULT, signum, _quit)


def watch(cfg: AppConfig) -> int:
    """
    Main loop:
    bus names -> sessions -> selection -> expand/collapse -> terminal box.
    """
    try:
        bus = session_bus()
    except dbus.DBusException as e:
        logger.error("Unable to connect to D-Bus session bus: %s", e)
        return 1

    loop = GLib.MainLoop()
    renderer = AnsiRenderer(use_alt_screen=cfg.use_alt_screen)
    animator = GLibAnimator(renderer.on_frame, duration_ms=cfg.animation_ms, frame_hz=cfg.frame_hz)
    presence = MediaPresence(
        bus,
        animator,
        renderer,
        measure=renderer.measure,
        min_size=cfg.min_width,
        max_size=cfg.max_width,
    )
    _quit_on_signals(loop)

    renderer.enter()
    try:
        presence.start()
        loop.run()
    finally:
        presence.stop()
        animator.cancel()
        renderer.exit()
    return 0


@dataclass(frozen=True, slots=True)
class ControlResult:
    code: int
    message: str


def control(cfg: AppConfig, action: str) -> ControlResult:
    """
    One-shot: discover players, wait for their first refresh, send ``action``
    to the selected one.
    """
    if action not in ACTIONS:
        raise ValueError(f"action must be one of: {', '.join(ACTIONS)}")

    try:
        bus = session_bus()
    except dbus.DBusException as e:
        return ControlResult(1, f"Unable to connect to D-Bus session bus: {e}")

    loop = GLib.MainLoop()
    presence = MediaPresence(bus, InstantAnimator())
    outcome: list[ControlResult] = []

    def _dispatch(*_args) -> bool:
        if outcome:
            return GLib.SOURCE_REMOVE
        try:
            outcome.append(_send(presence, action))
        except NoPlayersFound as e:
            outcome.append(ControlResult(1, str(e)))
        bus.flush()
        loop.quit()
        return GLib.SOURCE_REMOVE

    def _maybe_dispatch(_event) -> None:
        if presence.registry is not None and presence.registry.settled:
            _dispatch()

    try:
        names = presence.start()
        presence.events.subscribe(SessionChanged, _maybe_dispatch)
        presence.events.subscribe(SessionRemoved, _maybe_dispatch)
        if not names:
            GLib.idle_add(_dispatch)
        GLib.timeout_add(int(cfg.settle_timeout_s * 1000), _dispatch)
        _quit_on_signals(loop)
        loop.run()
    finally:
        presence.stop()

    return outcome[0] if outcome else ControlResult(1, "Interrupted")


def _send(presence: MediaPresence, action: str) -> ControlResult:
    selection = presence.selection
    if selection is None:
        raise NoPlayersFound("No player is currently playing")
    if action == "toggle":
        method = presence.request_toggle()
        if method is None:
            return ControlResult(1, f"{selection.session_id}: nothing to toggle")
        return ControlResult(0, f"{selection.session_id}: {method}")
    sent = presence.request_next() if action == "next" else presence.request_previous()
    if not sent:
        return ControlResult(1, f"{selection.session_id}: {action} not supported")
    return ControlResult(0, f"{selection.session_id}: {action}")


@dataclass(frozen=True, slots=True)
class PlayerSummary:
    name: str
    identity: str | None
    status: PlaybackStatus
    track: TrackInfo | None


def describe_players() -> list[PlayerSummary]:
    """Synchronous status of every player on the bus."""
    try:
        bus = session_bus()
    except dbus.DBusException as e:
        logger.debug("Unable to connect to D-Bus session bus: %s", e)
        return []

    out: list[PlayerSummary] = []
    for name in list_players(bus):
        try:
            handle = PlayerHandle(bus, name)
        except dbus.DBusException as e:
            logger.warning("Failed to query %s: %s", name, e)
            out.append(PlayerSummary(name, None, PlaybackStatus.UNKNOWN, None))
            continue
        try:
            change = handle.refresh_sync()
            out.append(PlayerSummary(name, handle.identity_sync(), change.status, change.track))
        except PlayerUnavailable as e:
            logger.warning("Failed to query %s: %s", name, e)
            out.append(PlayerSummary(name, None, PlaybackStatus.UNKNOWN, None))
        finally:
            handle.close()
    return out
