"""Screen geometry for the pendulum viewer (no Qt dependency)."""

from simulation import PendulumParams

# Pivot placement as a fraction of the widget size
PIVOT_X = 0.5
PIVOT_Y = 0.35

# Fraction of the short widget side covered by the fully extended pendulum
REACH = 0.38

# Bob radius in pixels per unit mass
RADIUS_PER_MASS = 4.0


def view_scale(w: float, h: float, params: PendulumParams) -> float:
    """Pixels per length unit so the pendulum fits the widget."""
    total_length = params.l1 + params.l2
    return min(w, h) * REACH / max(total_length, 0.01)


def to_pixel(x: float, y: float, w: float, h: float,
             params: PendulumParams) -> tuple[float, float]:
    """Convert physics coords (y up) to widget pixel coords (y down)."""
    scale = view_scale(w, h, params)
    return w * PIVOT_X + x * scale, h * PIVOT_Y - y * scale


def bob_radius(mass: float) -> float:
    return RADIUS_PER_MASS * mass
