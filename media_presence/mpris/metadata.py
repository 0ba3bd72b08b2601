from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from .protocol import META_ALBUM, META_ART_URL, META_ARTIST, META_TITLE, META_TRACK_ID

DEFAULT_TITLE = "Unknown Title"
DEFAULT_ARTIST = "Unknown Artist"
DEFAULT_ALBUM = "Unknown Album"


@dataclass(frozen=True, slots=True)
class TrackInfo:
    title: str = DEFAULT_TITLE
    artist: str = DEFAULT_ARTIST
    album: str = DEFAULT_ALBUM
    # None means "no art"; the renderer treats that differently from a placeholder
    art_url: str | None = None
    track_id: str = ""

    @property
    def display(self) -> str:
        return f"{self.artist} - {self.title}"


def _scalar(value: Any) -> str | None:
    # dbus.String and dbus.ObjectPath are str subclasses
    if isinstance(value, str) and value:
        return str(value)
    return None


def _join_artist(value: Any) -> str | None:
    if isinstance(value, (list, tuple)):
        joined = ", ".join(str(x) for x in value if isinstance(x, str) and x)
        return joined or None
    return _scalar(value)


def extract_track_info(metadata: Mapping[str, Any] | None) -> TrackInfo:
    """
    Normalize an MPRIS ``Metadata`` dictionary into a TrackInfo.

    Never raises: a missing key or a value of the wrong type yields the
    field's default.
    """
    if not isinstance(metadata, Mapping):
        return TrackInfo()

    return TrackInfo(
        title=_scalar(metadata.get(META_TITLE)) or DEFAULT_TITLE,
        artist=_join_artist(metadata.get(META_ARTIST)) or DEFAULT_ARTIST,
        album=_scalar(metadata.get(META_ALBUM)) or DEFAULT_ALBUM,
        art_url=_scalar(metadata.get(META_ART_URL)),
        track_id=_scalar(metadata.get(META_TRACK_ID)) or "",
    )
