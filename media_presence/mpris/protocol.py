"""
Fixed MPRIS / D-Bus schema used by the watcher and player handles.

Proxies are built with ``introspect=False``; every name the code touches on
the wire lives here.
"""

from __future__ import annotations

# org.freedesktop.DBus
DBUS_NAME = "org.freedesktop.DBus"
DBUS_PATH = "/org/freedesktop/DBus"
DBUS_IFACE = "org.freedesktop.DBus"
SIGNAL_NAME_OWNER_CHANGED = "NameOwnerChanged"

# org.freedesktop.DBus.Properties
PROPERTIES_IFACE = "org.freedesktop.DBus.Properties"
SIGNAL_PROPERTIES_CHANGED = "PropertiesChanged"
METHOD_GET = "Get"
METHOD_GET_ALL = "GetAll"

# MPRIS
BUS_NAME_PREFIX = "org.mpris.MediaPlayer2."
OBJECT_PATH = "/org/mpris/MediaPlayer2"
ROOT_IFACE = "org.mpris.MediaPlayer2"
PLAYER_IFACE = "org.mpris.MediaPlayer2.Player"

PROP_IDENTITY = "Identity"
PROP_PLAYBACK_STATUS = "PlaybackStatus"
PROP_METADATA = "Metadata"
PROP_CAN_PLAY = "CanPlay"
PROP_CAN_PAUSE = "CanPause"
PROP_CAN_GO_NEXT = "CanGoNext"
PROP_CAN_GO_PREVIOUS = "CanGoPrevious"

METHOD_PLAY = "Play"
METHOD_PAUSE = "Pause"
METHOD_PLAY_PAUSE = "PlayPause"
METHOD_STOP = "Stop"
METHOD_NEXT = "Next"
METHOD_PREVIOUS = "Previous"

# xesam / mpris metadata keys
META_TITLE = "xesam:title"
META_ARTIST = "xesam:artist"
META_ALBUM = "xesam:album"
META_ART_URL = "mpris:artUrl"
META_TRACK_ID = "mpris:trackid"


def is_player_name(name: str) -> bool:
    return isinstance(name, str) and name.startswith(BUS_NAME_PREFIX)


def short_name(name: str) -> str:
    """``org.mpris.MediaPlayer2.vlc.instance42`` -> ``vlc.instance42``"""
    if is_player_name(name):
        return name[len(BUS_NAME_PREFIX):]
    return name
