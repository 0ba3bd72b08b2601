from __future__ import annotations

import shutil
import signal
import sys
from dataclasses import dataclass
from typing import Callable, TextIO

from colorama import Fore, Style

from media_presence.mpris.metadata import TrackInfo
from media_presence.mpris.player import PlaybackStatus
from media_presence.presentation.state_machine import PresentationState
from media_presence.session.selector import Selection

CSI = "\x1b["

# left + right border and one space of padding each side
_CHROME = 4

_STATUS_GLYPHS = {
    PlaybackStatus.PLAYING: "▶",
    PlaybackStatus.PAUSED: "⏸",
    PlaybackStatus.STOPPED: "■",
    PlaybackStatus.UNKNOWN: "?",
}


@dataclass(frozen=True, slots=True)
class Theme:
    border: str = Fore.CYAN
    title: str = Fore.WHITE + Style.BRIGHT
    artist: str = Fore.GREEN
    dim: str = Style.DIM
    reset: str = Style.RESET_ALL


def _fit(text: str, width: int) -> str:
    if width <= 0:
        return ""
    if len(text) <= width:
        return text.ljust(width)
    if width == 1:
        return "…"
    return text[: width - 1] + "…"


def natural_width(track: TrackInfo) -> int:
    lines = (f"X {track.title}", track.artist, track.album)
    return max(len(s) for s in lines) + _CHROME


class AnsiRenderer:
    """
    Terminal stand-in for the dock widget: a box whose width follows the
    presentation animation and whose content follows the active session.
    """

    def __init__(self, use_alt_screen: bool = True, theme: Theme | None = None, out: TextIO | None = None):
        self.use_alt_screen = use_alt_screen
        self.theme = theme or Theme()
        self._out = out
        self._entered = False
        self._resize_handler: Callable[..., None] | None = None
        self.track: TrackInfo | None = None
        self.status = PlaybackStatus.UNKNOWN
        self.state = PresentationState.HIDDEN
        self.width = 0

    @property
    def out(self) -> TextIO:
        return self._out or sys.stdout

    def __enter__(self):
        self.enter()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.exit()

    def enter(self) -> None:
        if self._entered:
            return
        if self.use_alt_screen:
            self.out.write(CSI + "?1049h")  # alt screen
        self.out.write(CSI + "?25l")  # hide cursor
        self.out.write(CSI + "H" + CSI + "2J")  # home + clear
        self.out.flush()
        self._entered = True

        # Register SIGWINCH handler for resize
        def _on_resize(signum=None, frame=None):
            self.draw()

        self._resize_handler = _on_resize
        signal.signal(signal.SIGWINCH, _on_resize)

    def exit(self) -> None:
        if not self._entered:
            return
        # Restore default SIGWINCH handler
        if self._resize_handler:
            signal.signal(signal.SIGWINCH, signal.SIG_DFL)
            self._resize_handler = None
        self.out.write(self.theme.reset)
        self.out.write(CSI + "?25h")  # show cursor
        if self.use_alt_screen:
            self.out.write(CSI + "?1049l")  # normal screen
        self.out.flush()
        self._entered = False

    # -- listener ------------------------------------------------------

    def on_session_update(self, track: TrackInfo, status: PlaybackStatus) -> None:
        self.track = track
        self.status = status
        self.draw()

    def on_presentation_state_change(self, state: PresentationState, target_size: int) -> None:
        self.state = state
        self.draw()

    def on_frame(self, width: int) -> None:
        self.width = width
        self.draw()

    def measure(self, selection: Selection) -> int:
        return natural_width(selection.track)

    # -- drawing -------------------------------------------------------

    def frame_lines(self) -> list[str]:
        cols, _rows = shutil.get_terminal_size(fallback=(80, 24))
        width = min(self.width, cols)
        if width < _CHROME + 1 or self.track is None:
            return []

        th = self.theme
        inner = width - _CHROME
        glyph = _STATUS_GLYPHS.get(self.status, "?")
        body = [
            f"{th.title}{_fit(f'{glyph} {self.track.title}', inner)}{th.reset}",
            f"{th.artist}{_fit(self.track.artist, inner)}{th.reset}",
            f"{th.dim}{_fit(self.track.album, inner)}{th.reset}",
        ]
        if self.track.art_url:
            body.append(f"{th.dim}{_fit(self.track.art_url, inner)}{th.reset}")

        top = f"{th.border}╭{'─' * (width - 2)}╮{th.reset}"
        bottom = f"{th.border}╰{'─' * (width - 2)}╯{th.reset}"
        side = f"{th.border}│{th.reset}"
        return [top] + [f"{side} {line} {side}" for line in body] + [bottom]

    def draw(self) -> None:
        lines = self.frame_lines()
        # move home + clear, then print full frame
        self.out.write(CSI + "H" + CSI + "2J")
        self.out.write("\n".join(lines))
        self.out.write(self.theme.reset)
        self.out.flush()
