"""Tests for simulation.py: equations of motion, Euler stepping, positions."""

import math

import numpy as np
import pytest

from simulation import (
    PendulumParams, PendulumState, Position,
    advance, angular_acceleration_1, angular_acceleration_2,
    positions, reference_trajectory, total_energy,
)


def _dda1(a1, a2, w1, w2, l1, l2, m1, m2, g):
    return (
        -g * (2 * m1 + m2) * math.sin(a1)
        - m2 * g * math.sin(a1 - 2 * a2)
        - 2 * math.sin(a1 - a2) * m2 * (w2 ** 2 * l2 + w1 ** 2 * l1 * math.cos(a1 - a2))
    ) / (l1 * (2 * m1 + m2 - m2 * math.cos(2 * a1 - 2 * a2)))


def _dda2(a1, a2, w1, w2, l1, l2, m1, m2, g):
    return (
        2 * math.sin(a1 - a2)
        * (w1 ** 2 * l1 * (m1 + m2) + g * (m1 + m2) * math.cos(a1)
           + w2 ** 2 * l2 * m2 * math.cos(a1 - a2))
    ) / (l2 * (2 * m1 + m2 - m2 * math.cos(2 * (a1 - a2))))


class TestPendulumParams:
    """Test the physical constants configuration."""

    def test_defaults(self):
        params = PendulumParams()
        assert params.l1 == 1.0
        assert params.l2 == 1.0
        assert 1.0 <= params.m1 <= 2.0
        assert 1.0 <= params.m2 <= 2.0
        assert params.g == pytest.approx(9.8)

    def test_immutable(self):
        params = PendulumParams()
        with pytest.raises(AttributeError):
            params.g = 1.0


class TestPendulumState:
    """Test state construction."""

    def test_new_starts_at_rest(self):
        state = PendulumState.new(0.3, -0.7)
        assert state.a1 == 0.3
        assert state.a2 == -0.7
        assert state.a1v == 0.0
        assert state.a2v == 0.0
        assert state.a1a == 0.0
        assert state.a2a == 0.0

    def test_constants_read_through(self):
        params = PendulumParams(l1=1.5, l2=0.5, m1=1.2, m2=1.8, g=3.0)
        state = PendulumState.new(0.0, 0.0, params)
        assert (state.l1, state.l2, state.m1, state.m2, state.g) == (
            1.5, 0.5, 1.2, 1.8, 3.0,
        )

    def test_advance_keeps_constants(self):
        params = PendulumParams(l1=1.5, m2=1.1)
        state = PendulumState.new(1.0, 0.5, params)
        for _ in range(10):
            advance(state, 0.01)
        assert state.params is params


class TestAccelerations:
    """Test the closed-form angular accelerations."""

    def test_hanging_at_rest_is_zero(self):
        state = PendulumState.new(0.0, 0.0)
        assert angular_acceleration_1(state) == 0.0
        assert angular_acceleration_2(state) == 0.0

    def test_matches_closed_form(self):
        params = PendulumParams(l1=1.3, l2=0.7, m1=1.1, m2=1.9, g=9.8)
        state = PendulumState(params=params, a1=0.7, a2=-0.3, a1v=1.0, a2v=-0.5)
        args = (0.7, -0.3, 1.0, -0.5, 1.3, 0.7, 1.1, 1.9, 9.8)
        assert angular_acceleration_1(state) == pytest.approx(_dda1(*args), rel=1e-12)
        assert angular_acceleration_2(state) == pytest.approx(_dda2(*args), rel=1e-12)

    def test_horizontal_pulled_down(self):
        """Both links horizontal to the right: link 1 swings back."""
        state = PendulumState.new(math.pi / 2, math.pi / 2)
        assert angular_acceleration_1(state) < 0

    def test_zero_masses_give_nan(self):
        state = PendulumState.new(0.5, 0.2, PendulumParams(m1=0.0, m2=0.0))
        with np.errstate(divide="ignore", invalid="ignore"):
            assert math.isnan(angular_acceleration_1(state))
            assert math.isnan(angular_acceleration_2(state))

    def test_zero_length_is_non_finite(self):
        state = PendulumState.new(-math.pi / 2, -math.pi / 2, PendulumParams(l1=0.0))
        with np.errstate(divide="ignore", invalid="ignore"):
            assert not math.isfinite(angular_acceleration_1(state))


class TestAdvance:
    """Test the explicit Euler step."""

    def test_three_step_trace(self):
        """advance() matches a hand-unrolled Euler recurrence."""
        params = PendulumParams()
        dt = 0.05
        state = PendulumState.new(1.0, 0.5, params)

        a1, a2, w1, w2 = 1.0, 0.5, 0.0, 0.0
        consts = (params.l1, params.l2, params.m1, params.m2, params.g)
        for _ in range(3):
            dd1 = _dda1(a1, a2, w1, w2, *consts)
            dd2 = _dda2(a1, a2, w1, w2, *consts)
            w1 += dd1 * dt
            w2 += dd2 * dt
            a1 += w1 * dt
            a2 += w2 * dt

            advance(state, dt)
            assert state.a1a == pytest.approx(dd1, rel=1e-12)
            assert state.a2a == pytest.approx(dd2, rel=1e-12)

        assert state.a1 == pytest.approx(a1, rel=1e-12)
        assert state.a2 == pytest.approx(a2, rel=1e-12)
        assert state.a1v == pytest.approx(w1, rel=1e-12)
        assert state.a2v == pytest.approx(w2, rel=1e-12)

    def test_first_step_values(self):
        """From rest the velocity update precedes the angle update."""
        state = PendulumState.new(0.4, 0.1)
        dd1 = angular_acceleration_1(state)
        dd2 = angular_acceleration_2(state)
        advance(state, 0.1)
        assert state.a1v == pytest.approx(dd1 * 0.1)
        assert state.a2v == pytest.approx(dd2 * 0.1)
        assert state.a1 == pytest.approx(0.4 + dd1 * 0.01)
        assert state.a2 == pytest.approx(0.1 + dd2 * 0.01)

    def test_angles_not_wrapped(self):
        state = PendulumState(a1=10.0, a2=-20.0, a1v=5.0, a2v=-5.0)
        advance(state, 0.01)
        assert state.a1 > 2 * math.pi
        assert state.a2 < -2 * math.pi

    def test_rest_stays_at_rest(self):
        state = PendulumState.new(0.0, 0.0)
        for _ in range(100):
            advance(state, 0.05)
        assert (state.a1, state.a2, state.a1v, state.a2v) == (0.0, 0.0, 0.0, 0.0)

    def test_non_finite_propagates(self):
        state = PendulumState.new(0.5, 0.2, PendulumParams(m1=0.0, m2=0.0))
        with np.errstate(divide="ignore", invalid="ignore"):
            advance(state, 0.01)
        assert not state.is_finite()


class TestReferenceTrajectory:
    """Cross-validate Euler against the DOP853 reference."""

    @staticmethod
    def _euler_error(dt, t_end=1.0):
        params = PendulumParams()
        n_steps = round(t_end / dt)
        state = PendulumState.new(0.3, 0.2, params)
        for _ in range(n_steps):
            advance(state, dt)
        ref = reference_trajectory(params, 0.3, 0.2, n_steps, dt)
        return abs(state.a1 - ref[-1, 0]) + abs(state.a2 - ref[-1, 1])

    def test_shape_and_initial_row(self):
        ref = reference_trajectory(PendulumParams(), 0.3, 0.2, 10, 0.01)
        assert ref.shape == (11, 4)
        np.testing.assert_allclose(ref[0], [0.3, 0.2, 0.0, 0.0])

    def test_euler_converges(self):
        coarse = self._euler_error(0.02)
        fine = self._euler_error(0.0025)
        assert fine < coarse
        assert fine < 0.05


class TestPositions:
    """Test Cartesian coordinate conversion."""

    def test_straight_down(self):
        p1, p2 = positions(PendulumState.new(0.0, 0.0))
        assert p1.x == pytest.approx(0.0)
        assert p1.y == pytest.approx(-1.0)
        assert p2.x == pytest.approx(0.0)
        assert p2.y == pytest.approx(-2.0)

    def test_horizontal(self):
        p1, p2 = positions(PendulumState.new(math.pi / 2, math.pi / 2))
        assert p1.x == pytest.approx(1.0)
        assert p1.y == pytest.approx(0.0, abs=1e-12)
        assert p2.x == pytest.approx(2.0)
        assert p2.y == pytest.approx(0.0, abs=1e-12)

    def test_pure(self):
        state = PendulumState(a1=0.9, a2=-1.3, a1v=2.0, a2v=1.0)
        assert positions(state) == positions(state)
        assert state.a1 == 0.9


class TestPosition:
    """Test the per-axis similarity check."""

    def test_within_threshold(self):
        assert Position(0.0, 0.0).similar_to(Position(0.05, -0.05), 0.1)

    def test_one_axis_outside(self):
        assert not Position(0.0, 0.0).similar_to(Position(0.05, 0.2), 0.1)

    def test_boundary_is_exclusive(self):
        assert not Position(0.0, 0.0).similar_to(Position(0.5, 0.0), 0.5)

    def test_nan_never_similar(self):
        assert not Position(math.nan, 0.0).similar_to(Position(0.0, 0.0), 0.1)


class TestTotalEnergy:
    """Test the energy diagnostic."""

    def test_hanging_at_rest(self):
        params = PendulumParams()
        energy = total_energy(PendulumState.new(0.0, 0.0, params))
        expected = -(params.m1 + params.m2) * params.g * params.l1 - params.m2 * params.g * params.l2
        assert energy == pytest.approx(expected)

    def test_small_drift_for_small_step(self):
        state = PendulumState.new(0.5, 0.5)
        e0 = total_energy(state)
        for _ in range(1000):
            advance(state, 0.001)
        assert abs(total_energy(state) - e0) < 0.05 * abs(e0)
