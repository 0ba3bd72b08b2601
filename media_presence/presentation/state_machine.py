from __future__ import annotations

from enum import Enum
import logging
from typing import Any, Callable, Protocol

logger = logging.getLogger(__name__)

DEFAULT_MIN_SIZE = 180
DEFAULT_MAX_SIZE = 300


class PresentationState(str, Enum):
    HIDDEN = "Hidden"
    EXPANDING = "Expanding"
    EXPANDED = "Expanded"
    COLLAPSING = "Collapsing"
    # a finished collapse lands in HIDDEN
    COLLAPSED = "Hidden"


class Animator(Protocol):
    def animate(self, target_size: int, on_complete: Callable[[], None]) -> None: ...

    def cancel(self) -> None: ...


StateListener = Callable[[PresentationState, int], None]


class PresentationStateMachine:
    """
    Show/hide state driven by the current selection.

    Every transition start bumps ``generation`` and cancels the animation in
    flight; a completion callback carrying an older generation is ignored.
    Content changes while visible do not touch the state.
    """

    def __init__(
        self,
        animator: Animator,
        *,
        on_state_change: StateListener | None = None,
        measure: Callable[[Any], int] | None = None,
        min_size: int = DEFAULT_MIN_SIZE,
        max_size: int = DEFAULT_MAX_SIZE,
    ):
        if min_size > max_size:
            raise ValueError(f"min_size ({min_size}) > max_size ({max_size})")
        self._animator = animator
        self._on_state_change = on_state_change
        self._measure = measure
        self.min_size = min_size
        self.max_size = max_size
        self._state = PresentationState.HIDDEN
        self._generation = 0
        self._in_flight = False
        self._target_size = 0

    @property
    def state(self) -> PresentationState:
        return self._state

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def target_size(self) -> int:
        return self._target_size

    @property
    def animating(self) -> bool:
        return self._in_flight

    def update(self, selection: Any | None) -> None:
        """Feed the latest selector output (None = nothing to show)."""
        state = self._state
        if selection is not None:
            if state in (PresentationState.HIDDEN, PresentationState.COLLAPSING):
                self._begin(PresentationState.EXPANDING, self._expanded_size(selection))
        else:
            if state in (PresentationState.EXPANDING, PresentationState.EXPANDED):
                self._begin(PresentationState.COLLAPSING, 0)

    def on_animation_complete(self, generation: int) -> None:
        if generation != self._generation or not self._in_flight:
            logger.debug("Ignoring stale animation completion (gen %d, current %d)", generation, self._generation)
            return
        self._in_flight = False
        if self._state is PresentationState.EXPANDING:
            self._set_state(PresentationState.EXPANDED)
        elif self._state is PresentationState.COLLAPSING:
            self._set_state(PresentationState.HIDDEN)

    def cancel(self) -> None:
        """Stop any animation in flight; its completion will never land."""
        self._generation += 1
        if self._in_flight:
            self._in_flight = False
            self._animator.cancel()

    def _expanded_size(self, selection: Any) -> int:
        natural = self._measure(selection) if self._measure is not None else self.max_size
        return min(max(int(natural), self.min_size), self.max_size)

    def _begin(self, state: PresentationState, target_size: int) -> None:
        if self._in_flight:
            self._animator.cancel()
        self._generation += 1
        generation = self._generation
        self._in_flight = True
        self._target_size = target_size
        self._set_state(state)
        self._animator.animate(target_size, lambda: self.on_animation_complete(generation))

    def _set_state(self, state: PresentationState) -> None:
        logger.debug("Presentation %s -> %s (gen %d)", self._state.value, state.value, self._generation)
        self._state = state
        if self._on_state_change is not None:
            self._on_state_change(state, self._target_size)
