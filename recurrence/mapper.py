"""Recurrence color mapping: pixel coordinate to recurrence-time color.

Each pixel selects a pair of initial angles. The pendulum is released
from rest at those angles and stepped until both bobs come back inside
a small box around where they started. The step count at which that
happens picks the color; pixels that never come back are black.
"""

from __future__ import annotations

import functools
import logging
import math
from dataclasses import dataclass, field

import numpy as np

from simulation import (
    RENDER_DT, PendulumParams, PendulumState, advance, positions,
)

logger = logging.getLogger(__name__)

# Initial angle range along both image axes (radians)
ANGLE_RANGE = (-math.pi / 2, math.pi / 2)

# Color for "no recurrence within the iteration budget"
SENTINEL_COLOR = (0, 0, 0)

DEFAULT_MAX_ITERATIONS = 255
DEFAULT_THRESHOLD = 0.1

# Recurrences at or below this step are near-zero-motion artifacts
DEFAULT_MIN_ITERATION = 5


def lerp(lo: float, hi: float, t: float) -> float:
    """Linear interpolation between lo and hi."""
    return lo + (hi - lo) * t


def recurrence_color(i: int) -> tuple[int, int, int]:
    """Map a recurrence step to an RGB triple.

    The palette cycles under the 8-bit masks; it carries no physical
    meaning beyond separating neighbouring recurrence times.
    """
    return (i * 8) & 0xFF, (i * 9) & 0xFF, (0xFF - i * 4) & 0xFF


def search_recurrence(a1, a2, l1, l2, m1, m2, g,
                      dt, max_iterations, threshold, min_iteration):
    """NumPy scalar recurrence search built on simulation.advance().

    Same signature and return convention as the Numba kernel: the first
    step index ``i > min_iteration`` at which both bobs are back within
    threshold, or -1.
    """
    params = PendulumParams(l1=l1, l2=l2, m1=m1, m2=m2, g=g)
    state = PendulumState.new(a1, a2, params)
    initial_p1, initial_p2 = positions(state)

    with np.errstate(divide="ignore", invalid="ignore", over="ignore"):
        for i in range(max_iterations):
            advance(state, dt)

            # A non-finite state compares unequal to everything from
            # here on, so the rest of the budget cannot succeed.
            if not state.is_finite():
                return -1

            p1, p2 = positions(state)
            if (
                i > min_iteration
                and p1.similar_to(initial_p1, threshold)
                and p2.similar_to(initial_p2, threshold)
            ):
                return i

    return -1


@functools.lru_cache(maxsize=None)
def get_default_kernel():
    """Pick the fastest available recurrence search.

    Priority: Numba > NumPy. Resolved once per process.
    """
    try:
        from recurrence._numba_backend import recurrence_time_jit
        logger.info("Using Numba recurrence kernel")
        return recurrence_time_jit
    except ImportError:
        pass

    logger.info("Using NumPy recurrence kernel")
    return search_recurrence


@dataclass(frozen=True)
class RecurrenceColorMapper:
    """Pure, picklable per-pixel color function for one image.

    Call it with a pixel coordinate ``(x, y)`` to get an RGB triple.
    Holds no mutable state, so copies can be shipped to worker
    processes and evaluated in any order. With ``jit=True`` the search
    runs on the Numba kernel when numba is installed; ``jit=False``
    forces the NumPy search.
    """

    width: int
    height: int
    params: PendulumParams = field(default_factory=PendulumParams)
    max_iterations: int = DEFAULT_MAX_ITERATIONS
    dt: float = RENDER_DT
    threshold: float = DEFAULT_THRESHOLD
    min_iteration: int = DEFAULT_MIN_ITERATION
    angle_range: tuple[float, float] = ANGLE_RANGE
    jit: bool = True

    def initial_angles(self, x: int, y: int) -> tuple[float, float]:
        """Angles (a1, a2) selected by pixel (x, y)."""
        lo, hi = self.angle_range
        return lerp(lo, hi, x / self.width), lerp(lo, hi, y / self.height)

    def recurrence_time(self, x: int, y: int) -> int | None:
        """First step index at which the pendulum returns, or None.

        Step ``i`` is tested after the ``i``-th Euler step and only
        counts when ``i > min_iteration``.
        """
        a1, a2 = self.initial_angles(x, y)
        p = self.params
        kernel = get_default_kernel() if self.jit else search_recurrence
        i = kernel(
            float(a1), float(a2),
            float(p.l1), float(p.l2), float(p.m1), float(p.m2), float(p.g),
            float(self.dt), int(self.max_iterations),
            float(self.threshold), int(self.min_iteration),
        )
        if i < 0:
            return None
        return int(i)

    def __call__(self, x: int, y: int) -> tuple[int, int, int]:
        i = self.recurrence_time(x, y)
        if i is None:
            return SENTINEL_COLOR
        return recurrence_color(i)
