"""
===============================================================================
TWOBODY - Closed-Form Propagator Test Suite
===============================================================================
Tests for the Goodyear and Danby-Stumpff universal-variable propagators:
forward/backward round trips on a near-circular low Earth orbit, agreement
between the two independent implementations, conservation of energy and
angular momentum, hyperbolic and long-interval cases, and comparison against
a high-accuracy numerical reference (scipy DOP853).
===============================================================================
"""

import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

import numpy as np
import pytest
from numpy.testing import assert_allclose
from scipy.integrate import solve_ivp

from twobody.core.constants import EARTH_MU_KM
from twobody.core.validation import InvalidConfigurationError, SingularStateError
from twobody.dynamics.conserved import specific_energy
from twobody.dynamics.propagators import (
    PropagationResult,
    get_propagator,
    propagate_danby,
    propagate_goodyear,
    stumpff,
)

PROPAGATOR_FUNCS = [propagate_goodyear, propagate_danby]

LEO_R0 = np.array([3871.567, 6365.217, -2670.288])
LEO_V0 = np.array([-5.205, 4.258, 2.382])


# =============================================================================
# Helper functions
# =============================================================================

def reference_propagate(mu, tau, r0, v0):
    """Integrate the two-body equations with DOP853 at tight tolerance."""
    def rhs(t, y):
        r = y[:3]
        a = -mu * r / np.linalg.norm(r) ** 3
        return np.concatenate([y[3:], a])

    sol = solve_ivp(rhs, (0.0, tau), np.concatenate([r0, v0]),
                    method='DOP853', rtol=1e-12, atol=1e-12)
    assert sol.success
    return sol.y[:3, -1], sol.y[3:, -1]


def period(mu, r0, v0):
    energy = specific_energy(np.asarray(r0, float), np.asarray(v0, float), mu)
    a = -mu / (2.0 * energy)
    return 2.0 * np.pi * np.sqrt(a ** 3 / mu)


# =============================================================================
# Stumpff functions
# =============================================================================

class TestStumpff:
    """Reduced-argument evaluation against closed forms."""

    def test_at_zero(self):
        c0, c1, c2, c3 = stumpff(0.0)
        assert_allclose([c0, c1, c2, c3], [1.0, 1.0, 0.5, 1.0 / 6.0])

    @pytest.mark.parametrize("x", [0.05, 0.3, 2.0, 9.0, 40.0])
    def test_positive_argument(self, x):
        z = np.sqrt(x)
        expected = [
            np.cos(z),
            np.sin(z) / z,
            (1.0 - np.cos(z)) / x,
            (z - np.sin(z)) / (x * z),
        ]
        assert_allclose(stumpff(x), expected, rtol=1e-10, atol=1e-12)

    @pytest.mark.parametrize("x", [-0.05, -0.3, -2.0, -9.0, -25.0])
    def test_negative_argument(self, x):
        z = np.sqrt(-x)
        expected = [
            np.cosh(z),
            np.sinh(z) / z,
            (np.cosh(z) - 1.0) / (-x),
            (np.sinh(z) - z) / (-x * z),
        ]
        assert_allclose(stumpff(x), expected, rtol=1e-10)


# =============================================================================
# Round trip and agreement
# =============================================================================

class TestLowEarthOrbit:
    """Near-circular LEO, km and seconds."""

    @pytest.mark.parametrize("propagate", PROPAGATOR_FUNCS)
    @pytest.mark.parametrize("tau", [1.0, 100.0, 1000.0])
    def test_round_trip(self, propagate, tau):
        r1, v1 = propagate(EARTH_MU_KM, tau, LEO_R0, LEO_V0)
        r2, v2 = propagate(EARTH_MU_KM, -tau, r1, v1)
        assert_allclose(r2, LEO_R0, rtol=1e-6)
        assert_allclose(v2, LEO_V0, rtol=1e-6)

    @pytest.mark.parametrize("tau", [1.0, 100.0, 1000.0, -750.0, 20000.0])
    def test_methods_agree(self, tau):
        g = propagate_goodyear(EARTH_MU_KM, tau, LEO_R0, LEO_V0)
        d = propagate_danby(EARTH_MU_KM, tau, LEO_R0, LEO_V0)
        assert g.converged and d.converged
        assert_allclose(g.position, d.position, rtol=1e-5, atol=1e-2)
        assert_allclose(g.velocity, d.velocity, rtol=1e-5, atol=1e-5)

    @pytest.mark.parametrize("propagate", PROPAGATOR_FUNCS)
    def test_conservation(self, propagate):
        e0 = specific_energy(LEO_R0, LEO_V0, EARTH_MU_KM)
        h0 = np.cross(LEO_R0, LEO_V0)
        for tau in (10.0, 500.0, 3000.0):
            r1, v1 = propagate(EARTH_MU_KM, tau, LEO_R0, LEO_V0)
            assert specific_energy(r1, v1, EARTH_MU_KM) == pytest.approx(e0, rel=1e-6)
            assert_allclose(np.cross(r1, v1), h0, rtol=1e-6)

    @pytest.mark.parametrize("propagate", PROPAGATOR_FUNCS)
    def test_matches_numerical_reference(self, propagate):
        tau = 1800.0
        r_ref, v_ref = reference_propagate(EARTH_MU_KM, tau, LEO_R0, LEO_V0)
        r1, v1 = propagate(EARTH_MU_KM, tau, LEO_R0, LEO_V0)
        assert_allclose(r1, r_ref, rtol=1e-6, atol=1e-3)
        assert_allclose(v1, v_ref, rtol=1e-6, atol=1e-6)


class TestEccentricOrbit:
    """Worked example in simulation units: mu = G*m1 = 1000, e = 0.5."""

    MU = 1000.0
    R0 = np.array([5.0, 0.0, 0.0])
    V0 = np.array([0.0, 0.0, 10.0])

    @pytest.mark.parametrize("propagate", PROPAGATOR_FUNCS)
    def test_full_period_returns_to_start(self, propagate):
        T = period(self.MU, self.R0, self.V0)
        r1, v1 = propagate(self.MU, T, self.R0, self.V0)
        assert_allclose(r1, self.R0, rtol=1e-6, atol=1e-6)
        assert_allclose(v1, self.V0, rtol=1e-6, atol=1e-6)

    @pytest.mark.parametrize("propagate", PROPAGATOR_FUNCS)
    def test_half_period_reaches_periapsis(self, propagate):
        T = period(self.MU, self.R0, self.V0)
        r1, _ = propagate(self.MU, 0.5 * T, self.R0, self.V0)
        # a = 10/3, e = 0.5 -> periapsis 5/3 on the -x axis
        assert_allclose(r1, [-5.0 / 3.0, 0.0, 0.0], atol=1e-6)

    @pytest.mark.parametrize("tau", [0.01, 0.0833, 0.4, 2.5])
    def test_methods_agree(self, tau):
        g = propagate_goodyear(self.MU, tau, self.R0, self.V0)
        d = propagate_danby(self.MU, tau, self.R0, self.V0)
        assert_allclose(g.position, d.position, rtol=1e-5, atol=1e-6)
        assert_allclose(g.velocity, d.velocity, rtol=1e-5, atol=1e-5)

    @pytest.mark.parametrize("propagate", PROPAGATOR_FUNCS)
    def test_matches_numerical_reference(self, propagate):
        r_ref, v_ref = reference_propagate(self.MU, 0.3, self.R0, self.V0)
        r1, v1 = propagate(self.MU, 0.3, self.R0, self.V0)
        assert_allclose(r1, r_ref, rtol=1e-6, atol=1e-6)
        assert_allclose(v1, v_ref, rtol=1e-6, atol=1e-5)


class TestHyperbolicOrbit:
    """Unbound orbit: v^2 > 2 mu / r."""

    MU = 1.0
    R0 = np.array([1.0, 0.0, 0.0])
    V0 = np.array([0.0, 2.0, 0.0])

    @pytest.mark.parametrize("propagate", PROPAGATOR_FUNCS)
    @pytest.mark.parametrize("tau", [0.5, 1.0, 5.0])
    def test_matches_numerical_reference(self, propagate, tau):
        r_ref, v_ref = reference_propagate(self.MU, tau, self.R0, self.V0)
        result = propagate(self.MU, tau, self.R0, self.V0)
        assert result.converged
        assert_allclose(result.position, r_ref, rtol=1e-6, atol=1e-7)
        assert_allclose(result.velocity, v_ref, rtol=1e-6, atol=1e-7)

    @pytest.mark.parametrize("propagate", PROPAGATOR_FUNCS)
    def test_energy_conserved(self, propagate):
        e0 = specific_energy(self.R0, self.V0, self.MU)
        r1, v1 = propagate(self.MU, 3.0, self.R0, self.V0)
        assert e0 > 0.0
        assert specific_energy(r1, v1, self.MU) == pytest.approx(e0, rel=1e-6)


# =============================================================================
# Contract and edge cases
# =============================================================================

class TestContract:

    @pytest.mark.parametrize("propagate", PROPAGATOR_FUNCS)
    def test_zero_tau_returns_initial_state(self, propagate):
        result = propagate(EARTH_MU_KM, 0.0, LEO_R0, LEO_V0)
        assert result.converged
        assert result.iterations == 0
        assert_allclose(result.position, LEO_R0)
        assert_allclose(result.velocity, LEO_V0)

    @pytest.mark.parametrize("propagate", PROPAGATOR_FUNCS)
    def test_inputs_not_modified(self, propagate):
        r0 = LEO_R0.copy()
        v0 = LEO_V0.copy()
        result = propagate(EARTH_MU_KM, 60.0, r0, v0)
        result.position[:] = 0.0
        assert_allclose(r0, LEO_R0)
        assert_allclose(v0, LEO_V0)

    @pytest.mark.parametrize("propagate", PROPAGATOR_FUNCS)
    def test_result_unpacks(self, propagate):
        result = propagate(EARTH_MU_KM, 60.0, LEO_R0, LEO_V0)
        assert isinstance(result, PropagationResult)
        r1, v1 = result
        assert r1.shape == (3,) and v1.shape == (3,)
        assert result.residual >= 0.0

    @pytest.mark.parametrize("propagate", PROPAGATOR_FUNCS)
    def test_zero_position_raises(self, propagate):
        with pytest.raises(SingularStateError):
            propagate(EARTH_MU_KM, 10.0, np.zeros(3), LEO_V0)

    @pytest.mark.parametrize("propagate", PROPAGATOR_FUNCS)
    @pytest.mark.parametrize("mu, tau", [(0.0, 10.0), (-1.0, 10.0), (1.0, np.nan), (1.0, np.inf)])
    def test_invalid_arguments(self, propagate, mu, tau):
        with pytest.raises(InvalidConfigurationError):
            propagate(mu, tau, LEO_R0, LEO_V0)

    def test_iteration_budget_exhausted_is_flagged(self):
        result = propagate_goodyear(EARTH_MU_KM, 5000.0, LEO_R0, LEO_V0, max_iter=1)
        assert not result.converged
        assert result.iterations == 1
        assert np.all(np.isfinite(result.position))

    def test_get_propagator(self):
        assert get_propagator('goodyear') is propagate_goodyear
        assert get_propagator('DANBY') is propagate_danby
        with pytest.raises(InvalidConfigurationError):
            get_propagator('kepler')
