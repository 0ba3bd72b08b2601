from __future__ import annotations

from typing import Callable

Easing = Callable[[float], float]


def _clamp01(t: float) -> float:
    return 0.0 if t < 0.0 else 1.0 if t > 1.0 else t


def linear(t: float) -> float:
    return _clamp01(t)


def ease_out_quad(t: float) -> float:
    t = _clamp01(t)
    return t * (2.0 - t)


def ease_in_quad(t: float) -> float:
    t = _clamp01(t)
    return t * t


def interpolate(start: int, end: int, t: float, easing: Easing = linear) -> int:
    return int(round(start + (end - start) * easing(t)))
