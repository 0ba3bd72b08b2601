from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
import logging
from typing import Any, Callable

import dbus

from .errors import PlayerUnavailable, TransportError
from .metadata import TrackInfo, extract_track_info
from .protocol import (
    METHOD_GET,
    METHOD_GET_ALL,
    METHOD_NEXT,
    METHOD_PAUSE,
    METHOD_PLAY,
    METHOD_PLAY_PAUSE,
    METHOD_PREVIOUS,
    METHOD_STOP,
    OBJECT_PATH,
    PLAYER_IFACE,
    PROP_CAN_GO_NEXT,
    PROP_CAN_GO_PREVIOUS,
    PROP_CAN_PAUSE,
    PROP_CAN_PLAY,
    PROP_IDENTITY,
    PROP_METADATA,
    PROP_PLAYBACK_STATUS,
    PROPERTIES_IFACE,
    ROOT_IFACE,
    SIGNAL_PROPERTIES_CHANGED,
)

logger = logging.getLogger(__name__)


class PlaybackStatus(str, Enum):
    PLAYING = "Playing"
    PAUSED = "Paused"
    STOPPED = "Stopped"
    UNKNOWN = "Unknown"

    @classmethod
    def parse(cls, value: Any) -> "PlaybackStatus":
        if isinstance(value, str):
            for status in (cls.PLAYING, cls.PAUSED, cls.STOPPED):
                if value == status.value:
                    return status
        return cls.UNKNOWN


@dataclass(frozen=True, slots=True)
class Capabilities:
    can_play: bool = False
    can_pause: bool = False
    can_go_next: bool = False
    can_go_previous: bool = False

    @classmethod
    def from_properties(cls, props: dict[str, Any]) -> "Capabilities":
        return cls(
            can_play=bool(props.get(PROP_CAN_PLAY, False)),
            can_pause=bool(props.get(PROP_CAN_PAUSE, False)),
            can_go_next=bool(props.get(PROP_CAN_GO_NEXT, False)),
            can_go_previous=bool(props.get(PROP_CAN_GO_PREVIOUS, False)),
        )


@dataclass(frozen=True, slots=True)
class PlayerChange:
    """What a handle forwards upstream after every property update."""

    service_name: str
    status: PlaybackStatus
    capabilities: Capabilities
    metadata: dict[str, Any]

    @property
    def track(self) -> TrackInfo:
        return extract_track_info(self.metadata)


ChangeCallback = Callable[[PlayerChange], None]
ErrorCallback = Callable[[TransportError], None]


class PlayerHandle:
    """
    One MPRIS player at ``/org/mpris/MediaPlayer2``.

    Property reads come from a local cache fed by GetAll replies and
    PropertiesChanged pushes. Control methods are fire-and-forget: they
    return immediately and a failure is reported through ``on_error``.
    """

    def __init__(
        self,
        bus: Any,
        service_name: str,
        on_change: ChangeCallback | None = None,
        on_error: ErrorCallback | None = None,
    ):
        self.service_name = service_name
        self._on_change = on_change
        self._on_error = on_error
        self._properties: dict[str, Any] = {}
        self._identity: str | None = None
        self._closed = False

        self._obj = bus.get_object(service_name, OBJECT_PATH, introspect=False)
        self._player = dbus.Interface(self._obj, PLAYER_IFACE)
        self._props = dbus.Interface(self._obj, PROPERTIES_IFACE)
        self._match = self._props.connect_to_signal(SIGNAL_PROPERTIES_CHANGED, self._on_properties_changed)
        self._fetch_identity()

    def __repr__(self) -> str:
        return f"PlayerHandle({self.service_name!r})"

    @property
    def closed(self) -> bool:
        return self._closed

    # -- cached state --------------------------------------------------

    def status(self) -> PlaybackStatus:
        return PlaybackStatus.parse(self._properties.get(PROP_PLAYBACK_STATUS))

    def metadata(self) -> dict[str, Any]:
        md = self._properties.get(PROP_METADATA)
        # dbus.Dictionary acts like dict
        return dict(md) if isinstance(md, dict) else {}

    def capabilities(self) -> Capabilities:
        return Capabilities.from_properties(self._properties)

    def track_info(self) -> TrackInfo:
        return extract_track_info(self.metadata())

    def identity(self) -> str | None:
        return self._identity

    def snapshot(self) -> PlayerChange:
        return PlayerChange(
            service_name=self.service_name,
            status=self.status(),
            capabilities=self.capabilities(),
            metadata=self.metadata(),
        )

    # -- refresh -------------------------------------------------------

    def refresh(self) -> None:
        """Re-read every player property; forwards one change event on reply."""
        if self._closed:
            return
        try:
            self._props.get_dbus_method(METHOD_GET_ALL, PROPERTIES_IFACE)(
                PLAYER_IFACE,
                reply_handler=self._on_get_all_reply,
                error_handler=self._error_handler(METHOD_GET_ALL),
            )
        except dbus.DBusException as e:
            self._error_handler(METHOD_GET_ALL)(e)

    def refresh_sync(self) -> PlayerChange:
        """Blocking variant of refresh(), for one-shot CLI use."""
        try:
            props = self._props.get_dbus_method(METHOD_GET_ALL, PROPERTIES_IFACE)(PLAYER_IFACE)
        except dbus.DBusException as e:
            raise PlayerUnavailable(str(e), service_name=self.service_name, operation=METHOD_GET_ALL) from e
        self._properties = dict(props)
        return self.snapshot()

    def _on_get_all_reply(self, props: dict[str, Any]) -> None:
        if self._closed:
            return
        self._properties = dict(props)
        self._emit()

    def _on_properties_changed(self, interface: str, changed: dict[str, Any], invalidated: list[str]) -> None:
        if self._closed or interface != PLAYER_IFACE:
            return
        self._properties.update(dict(changed))
        self._emit()
        if invalidated:
            # values were not sent along; ask for them
            self.refresh()

    def _fetch_identity(self) -> None:
        try:
            self._props.get_dbus_method(METHOD_GET, PROPERTIES_IFACE)(
                ROOT_IFACE,
                PROP_IDENTITY,
                reply_handler=self._on_identity_reply,
                error_handler=self._error_handler(PROP_IDENTITY, quiet=True),
            )
        except dbus.DBusException as e:
            self._error_handler(PROP_IDENTITY, quiet=True)(e)

    def identity_sync(self) -> str | None:
        try:
            self._on_identity_reply(self._props.get_dbus_method(METHOD_GET, PROPERTIES_IFACE)(ROOT_IFACE, PROP_IDENTITY))
        except dbus.DBusException as e:
            logger.debug("%s: no Identity: %s", self.service_name, e)
        return self._identity

    def _on_identity_reply(self, value: Any) -> None:
        if isinstance(value, str) and value:
            self._identity = str(value)

    def _emit(self) -> None:
        if self._on_change is not None:
            self._on_change(self.snapshot())

    # -- control -------------------------------------------------------

    def play_pause(self) -> None:
        self._invoke(METHOD_PLAY_PAUSE)

    def play(self) -> None:
        self._invoke(METHOD_PLAY)

    def pause(self) -> None:
        self._invoke(METHOD_PAUSE)

    def stop(self) -> None:
        self._invoke(METHOD_STOP)

    def next(self) -> None:
        self._invoke(METHOD_NEXT)

    def previous(self) -> None:
        self._invoke(METHOD_PREVIOUS)

    def toggle_status(self) -> str | None:
        caps = self.capabilities()
        status = self.status()
        if caps.can_play and caps.can_pause:
            self.play_pause()
            return METHOD_PLAY_PAUSE
        # some players (Plexamp) flip CanPause to false while paused
        if caps.can_play and status is PlaybackStatus.PAUSED:
            self.play()
            return METHOD_PLAY
        if status is PlaybackStatus.PLAYING:
            self.stop()
            return METHOD_STOP
        logger.debug("%s: nothing to toggle (status=%s, %s)", self.service_name, status.value, caps)
        return None

    def go_next(self) -> bool:
        if not self.capabilities().can_go_next:
            logger.debug("%s does not advertise CanGoNext", self.service_name)
            return False
        self.next()
        return True

    def go_previous(self) -> bool:
        if not self.capabilities().can_go_previous:
            logger.debug("%s does not advertise CanGoPrevious", self.service_name)
            return False
        self.previous()
        return True

    def _invoke(self, method: str) -> None:
        if self._closed:
            logger.debug("%s: %s on a closed handle ignored", self.service_name, method)
            return
        logger.debug("%s: %s", self.service_name, method)
        try:
            self._player.get_dbus_method(method, PLAYER_IFACE)(
                reply_handler=_ignore_reply,
                error_handler=self._error_handler(method),
            )
        except dbus.DBusException as e:
            # raised synchronously when the connection itself is gone
            self._error_handler(method)(e)

    def _error_handler(self, operation: str, quiet: bool = False) -> Callable[[Exception], None]:
        def _handler(e: Exception) -> None:
            if quiet:
                logger.debug("%s: %s failed: %s", self.service_name, operation, e)
                return
            logger.warning("%s: %s failed: %s", self.service_name, operation, e)
            if self._on_error is not None:
                self._on_error(PlayerUnavailable(str(e), service_name=self.service_name, operation=operation))

        return _handler

    # -- teardown ------------------------------------------------------

    def close(self) -> None:
        if self._closed:
            logger.debug("%s: close() on an already closed handle", self.service_name)
            return
        self._closed = True
        self._on_change = None
        match, self._match = self._match, None
        if match is None:
            return
        try:
            match.remove()
        except dbus.DBusException as e:
            logger.debug("%s: PropertiesChanged subscription already gone: %s", self.service_name, e)


def _ignore_reply(*_args: Any) -> None:
    return None
