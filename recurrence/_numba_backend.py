"""Numba JIT-compiled recurrence search.

Compiles the per-pixel Euler loop to native code. This module is
optional: if numba is not installed, get_default_kernel() falls back to
the NumPy scalar search in recurrence.mapper automatically.

IMPORTANT: The loop body mirrors simulation.advance() and
simulation.positions() operation for operation. error_model="numpy"
makes a zero denominator produce inf/nan instead of raising.
"""

from __future__ import annotations

import math

from numba import njit


@njit(cache=True, error_model="numpy")
def recurrence_time_jit(a1, a2, l1, l2, m1, m2, g,
                        dt, max_iterations, threshold, min_iteration):
    """First recurrence step for a pendulum released at (a1, a2).

    Returns the step index, or -1 when the budget runs out or the state
    becomes non-finite.
    """
    a1v = 0.0
    a2v = 0.0

    x1_0 = l1 * math.sin(a1)
    y1_0 = -l1 * math.cos(a1)
    x2_0 = x1_0 + l2 * math.sin(a2)
    y2_0 = y1_0 - l2 * math.cos(a2)

    for i in range(max_iterations):
        dd1 = (
            -g * (2 * m1 + m2) * math.sin(a1)
            - m2 * g * math.sin(a1 - 2 * a2)
            - 2 * math.sin(a1 - a2) * m2
            * (a2v * a2v * l2 + a1v * a1v * l1 * math.cos(a1 - a2))
        ) / (l1 * (2 * m1 + m2 - m2 * math.cos(2 * a1 - 2 * a2)))
        dd2 = 2 * math.sin(a1 - a2) * (
            a1v * a1v * l1 * (m1 + m2)
            + g * (m1 + m2) * math.cos(a1)
            + a2v * a2v * l2 * m2 * math.cos(a1 - a2)
        ) / (l2 * (2 * m1 + m2 - m2 * math.cos(2 * (a1 - a2))))

        a1v = a1v + dd1 * dt
        a2v = a2v + dd2 * dt
        a1 = a1 + a1v * dt
        a2 = a2 + a2v * dt

        if not (math.isfinite(a1) and math.isfinite(a2)
                and math.isfinite(a1v) and math.isfinite(a2v)):
            return -1

        x1 = l1 * math.sin(a1)
        y1 = -l1 * math.cos(a1)
        x2 = x1 + l2 * math.sin(a2)
        y2 = y1 - l2 * math.cos(a2)

        if (
            i > min_iteration
            and abs(x1 - x1_0) < threshold and abs(y1 - y1_0) < threshold
            and abs(x2 - x2_0) < threshold and abs(y2 - y2_0) < threshold
        ):
            return i

    return -1


def warmup() -> None:
    """Trigger JIT compilation with a tiny call."""
    recurrence_time_jit(0.1, 0.1, 1.0, 1.0, 1.0, 1.0, 9.8, 0.02, 2, 0.1, 5)
