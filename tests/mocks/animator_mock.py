from __future__ import annotations

from typing import Callable


class ManualAnimator:
    """Records animations; the test decides when (and which) completion fires."""

    def __init__(self):
        self.started: list[tuple[int, Callable[[], None]]] = []
        self.cancelled = 0

    def animate(self, target_size: int, on_complete: Callable[[], None]) -> None:
        self.started.append((target_size, on_complete))

    def cancel(self) -> None:
        self.cancelled += 1

    def complete(self, index: int = -1) -> None:
        self.started[index][1]()
