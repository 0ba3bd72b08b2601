from __future__ import annotations

import logging
import time
from typing import Callable

import gi

gi.require_version("GLib", "2.0")
from gi.repository import GLib  # noqa: E402

from .easing import Easing, ease_in_quad, ease_out_quad, interpolate

logger = logging.getLogger(__name__)

DEFAULT_DURATION_MS = 300


class GLibAnimator:
    """
    Animates a single size value on the GLib main loop.

    Growing uses ease-out-quad and shrinking ease-in-quad. ``on_frame``
    receives the size on every tick; ``on_complete`` runs once the target
    is reached and never after cancel().
    """

    def __init__(
        self,
        on_frame: Callable[[int], None],
        *,
        duration_ms: int = DEFAULT_DURATION_MS,
        frame_hz: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._on_frame = on_frame
        self.duration_ms = max(int(duration_ms), 0)
        self._interval_ms = max(int(1000 / max(frame_hz, 1.0)), 1)
        self._clock = clock
        self.size = 0
        self._source: int | None = None
        self._start_size = 0
        self._target = 0
        self._started_at = 0.0
        self._easing: Easing = ease_out_quad
        self._on_complete: Callable[[], None] | None = None

    @property
    def running(self) -> bool:
        return self._source is not None

    def animate(self, target_size: int, on_complete: Callable[[], None]) -> None:
        self.cancel()
        self._start_size = self.size
        self._target = int(target_size)
        self._easing = ease_out_quad if self._target >= self.size else ease_in_quad
        self._started_at = self._clock()
        self._on_complete = on_complete
        self._source = GLib.timeout_add(self._interval_ms, self._tick)

    def cancel(self) -> None:
        source, self._source = self._source, None
        self._on_complete = None
        if source is not None:
            GLib.source_remove(source)

    def _tick(self) -> bool:
        if self._source is None:
            return GLib.SOURCE_REMOVE
        elapsed_ms = (self._clock() - self._started_at) * 1000.0
        t = 1.0 if self.duration_ms == 0 else elapsed_ms / self.duration_ms
        if t < 1.0:
            self.size = interpolate(self._start_size, self._target, t, self._easing)
            self._on_frame(self.size)
            return GLib.SOURCE_CONTINUE

        self.size = self._target
        self._on_frame(self.size)
        on_complete, self._on_complete = self._on_complete, None
        # returning SOURCE_REMOVE drops the source; forget it without source_remove()
        self._source = None
        if on_complete is not None:
            on_complete()
        return GLib.SOURCE_REMOVE


class InstantAnimator:
    """Jumps straight to the target; used where nothing is drawn."""

    def __init__(self) -> None:
        self.size = 0

    def animate(self, target_size: int, on_complete: Callable[[], None]) -> None:
        self.size = int(target_size)
        on_complete()

    def cancel(self) -> None:
        pass
