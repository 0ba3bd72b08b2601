from __future__ import annotations

import logging
from typing import Any

import dbus

from media_presence.events import Diagnostic, EventBus, PlayerAppeared, PlayerVanished

from .errors import TransportError
from .protocol import DBUS_IFACE, DBUS_NAME, DBUS_PATH, SIGNAL_NAME_OWNER_CHANGED, is_player_name

logger = logging.getLogger(__name__)


def list_players(bus: Any | None = None) -> list[str]:
    try:
        bus = bus or dbus.SessionBus()
        return [str(s) for s in bus.list_names() if is_player_name(s)]
    except dbus.DBusException as e:
        # In restricted environments (tests/sandbox/CI), connecting to the
        # session bus can fail (e.g. AccessDenied). Treat as "no players".
        logger.debug("Unable to list D-Bus names: %s", e)
        return []


class BusWatcher:
    """
    Turns the bus name registry into PlayerAppeared / PlayerVanished events.
    """

    def __init__(self, bus: Any, events: EventBus):
        self._bus = bus
        self._events = events
        self._match: Any = None

    @property
    def started(self) -> bool:
        return self._match is not None

    def start(self) -> frozenset[str]:
        """
        Subscribe to NameOwnerChanged, then enumerate the names already on
        the bus. Returns the player names found; each one is also published
        as PlayerAppeared. Safe to call again to retry a failed enumeration.
        """
        if self._match is None:
            try:
                self._match = self._bus.add_signal_receiver(
                    self._on_name_owner_changed,
                    signal_name=SIGNAL_NAME_OWNER_CHANGED,
                    dbus_interface=DBUS_IFACE,
                    bus_name=DBUS_NAME,
                    path=DBUS_PATH,
                )
            except dbus.DBusException as e:
                self._report("Unable to subscribe to NameOwnerChanged", e, "AddMatch")
                return frozenset()

        names = self.enumerate()
        for name in names:
            self._events.publish(PlayerAppeared(name))
        return frozenset(names)

    def enumerate(self) -> list[str]:
        try:
            names = self._bus.list_names()
        except dbus.DBusException as e:
            self._report("Unable to enumerate bus names", e, "ListNames")
            return []
        # keep bus order so registry insertion order is deterministic
        out: list[str] = []
        for name in names:
            if is_player_name(name) and str(name) not in out:
                out.append(str(name))
        logger.debug("Enumerated %d MPRIS player(s): %s", len(out), out)
        return out

    def stop(self) -> None:
        match, self._match = self._match, None
        if match is None:
            return
        try:
            match.remove()
        except dbus.DBusException as e:
            logger.debug("NameOwnerChanged subscription already gone: %s", e)

    def _on_name_owner_changed(self, name: str, old_owner: str, new_owner: str) -> None:
        if not is_player_name(name):
            return
        if new_owner and not old_owner:
            logger.debug("Player appeared: %s", name)
            self._events.publish(PlayerAppeared(str(name)))
        elif old_owner and not new_owner:
            logger.debug("Player vanished: %s", name)
            self._events.publish(PlayerVanished(str(name)))
        # owner handover (both set) or (both empty): nothing to track

    def _report(self, message: str, e: Exception, operation: str) -> None:
        logger.warning("%s: %s", message, e)
        err = TransportError(f"{message}: {e}", operation=operation)
        self._events.publish(Diagnostic(source="watcher", message=message, error=err))
