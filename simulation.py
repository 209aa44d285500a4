"""Double pendulum physics engine.

Implements the Lagrangian equations of motion for a double pendulum and
advances a single pendulum with a fixed-step explicit Euler scheme. The
same equations are also exposed as a first-order system so SciPy's
solve_ivp can produce a high-accuracy reference trajectory.

Accelerations are evaluated with numpy float64 semantics: a vanishing
denominator yields inf/nan rather than raising, and those values flow
through the state untouched.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import NamedTuple

import numpy as np
from scipy.integrate import solve_ivp

# Step sizes for the two callers of advance()
VIEWER_DT = 0.05
RENDER_DT = 0.02


@dataclass(frozen=True)
class PendulumParams:
    """Physical constants of the double pendulum, fixed per session."""

    l1: float = 1.0
    l2: float = 1.0
    m1: float = 2.0
    m2: float = 2.0
    g: float = 9.8


class Position(NamedTuple):
    """Cartesian position of a bob, pivot at the origin, y pointing up."""

    x: float
    y: float

    def similar_to(self, other: Position, threshold: float) -> bool:
        """True when both axes differ by strictly less than threshold."""
        return bool(
            abs(self.x - other.x) < threshold
            and abs(self.y - other.y) < threshold
        )


@dataclass
class PendulumState:
    """Evolving state of one pendulum.

    Angles accumulate without wrapping. Accelerations are overwritten on
    every advance() and only kept for inspection.
    """

    params: PendulumParams = field(default_factory=PendulumParams)
    a1: float = 0.0
    a2: float = 0.0
    a1v: float = 0.0
    a2v: float = 0.0
    a1a: float = 0.0
    a2a: float = 0.0

    @classmethod
    def new(cls, a1: float, a2: float,
            params: PendulumParams | None = None) -> PendulumState:
        """Create a state at rest with the given joint angles."""
        if params is None:
            params = PendulumParams()
        return cls(params=params, a1=a1, a2=a2)

    @property
    def l1(self) -> float:
        return self.params.l1

    @property
    def l2(self) -> float:
        return self.params.l2

    @property
    def m1(self) -> float:
        return self.params.m1

    @property
    def m2(self) -> float:
        return self.params.m2

    @property
    def g(self) -> float:
        return self.params.g

    def is_finite(self) -> bool:
        return bool(np.isfinite((self.a1, self.a2, self.a1v, self.a2v)).all())


def angular_acceleration_1(state: PendulumState) -> float:
    """Angular acceleration of the first link.

    See https://www.myphysicslab.com/pendulum/double-pendulum-en.html
    for the derivation.
    """
    a1, a2, a1v, a2v = state.a1, state.a2, state.a1v, state.a2v
    l1, l2, m1, m2, g = state.l1, state.l2, state.m1, state.m2, state.g

    num = (
        -g * (2 * m1 + m2) * np.sin(a1)
        - m2 * g * np.sin(a1 - 2 * a2)
        - 2 * np.sin(a1 - a2) * m2
        * (a2v * a2v * l2 + a1v * a1v * l1 * np.cos(a1 - a2))
    )
    den = l1 * (2 * m1 + m2 - m2 * np.cos(2 * a1 - 2 * a2))
    return num / den


def angular_acceleration_2(state: PendulumState) -> float:
    """Angular acceleration of the second link."""
    a1, a2, a1v, a2v = state.a1, state.a2, state.a1v, state.a2v
    l1, l2, m1, m2, g = state.l1, state.l2, state.m1, state.m2, state.g

    num = 2 * np.sin(a1 - a2) * (
        a1v * a1v * l1 * (m1 + m2)
        + g * (m1 + m2) * np.cos(a1)
        + a2v * a2v * l2 * m2 * np.cos(a1 - a2)
    )
    den = l2 * (2 * m1 + m2 - m2 * np.cos(2 * (a1 - a2)))
    return num / den


def advance(state: PendulumState, dt: float) -> PendulumState:
    """Advance the state by one explicit Euler step of size dt.

    Both accelerations come from the pre-step angles and velocities; the
    angles are then moved with the already-updated velocities.
    """
    state.a1a = angular_acceleration_1(state)
    state.a2a = angular_acceleration_2(state)

    state.a1v = state.a1v + state.a1a * dt
    state.a2v = state.a2v + state.a2a * dt

    state.a1 = state.a1 + state.a1v * dt
    state.a2 = state.a2 + state.a2v * dt
    return state


def positions(state: PendulumState) -> tuple[Position, Position]:
    """Convert the current angles to bob positions (bob 1, bob 2)."""
    x1 = state.l1 * np.sin(state.a1)
    y1 = -state.l1 * np.cos(state.a1)

    x2 = x1 + state.l2 * np.sin(state.a2)
    y2 = y1 - state.l2 * np.cos(state.a2)

    return Position(x1, y1), Position(x2, y2)


def total_energy(state: PendulumState) -> float:
    """Compute total mechanical energy (T + V).

    Potential energy is measured from the pivot point (y=0).
    """
    a1, a2, w1, w2 = state.a1, state.a2, state.a1v, state.a2v
    l1, l2, m1, m2, g = state.l1, state.l2, state.m1, state.m2, state.g

    # Kinetic energy
    T = (
        0.5 * (m1 + m2) * l1**2 * w1**2
        + 0.5 * m2 * l2**2 * w2**2
        + m2 * l1 * l2 * w1 * w2 * np.cos(a1 - a2)
    )

    # Potential energy (from pivot)
    V = -(m1 + m2) * g * l1 * np.cos(a1) - m2 * g * l2 * np.cos(a2)

    return T + V


def derivatives(t, y, params):
    """First-order form of the equations of motion.

    State vector: [a1, a2, a1v, a2v]
    Returns: [d_a1/dt, d_a2/dt, d_a1v/dt, d_a2v/dt]
    """
    state = PendulumState(params=params, a1=y[0], a2=y[1], a1v=y[2], a2v=y[3])
    return [
        state.a1v,
        state.a2v,
        angular_acceleration_1(state),
        angular_acceleration_2(state),
    ]


def reference_trajectory(params, a1_0, a2_0, n_steps, dt):
    """Integrate from rest with DOP853 and sample every dt.

    Returns:
        (n_steps + 1, 4) array of [a1, a2, a1v, a2v], row 0 being the
        initial condition.
    """
    t_end = n_steps * dt
    t_eval = np.linspace(0.0, t_end, n_steps + 1)

    sol = solve_ivp(
        fun=lambda t, y: derivatives(t, y, params),
        t_span=(0.0, t_end),
        y0=[a1_0, a2_0, 0.0, 0.0],
        method="DOP853",
        t_eval=t_eval,
        rtol=1e-12,
        atol=1e-12,
    )

    return sol.y.T
