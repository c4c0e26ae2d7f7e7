"""
===============================================================================
TWOBODY - Analytic Conic Test Suite
===============================================================================
Tests for the polar conic model: apsis distances, construction from a
periapsis, closed-loop sampling, and the singular cases of the
axis-aligned eccentricity approximation.
===============================================================================
"""

import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

import numpy as np
import pytest
from numpy.testing import assert_allclose

from twobody.core.validation import InvalidConfigurationError, SingularStateError
from twobody.dynamics.conic import KeplerConic
from twobody.dynamics.orbital_state import PhysicalParameters


@pytest.fixture
def params():
    return PhysicalParameters(m1=1000.0, m2=1.0, G=1.0)


@pytest.fixture
def conic(params):
    """Conic of the worked example: the initial point is the apoapsis."""
    return KeplerConic.from_state(params, [5.0, 0.0, 0.0], [0.0, 0.0, 10.0])


# =============================================================================
# Construction
# =============================================================================

class TestConstruction:

    def test_constants(self, conic, params):
        mu = params.reduced_mass
        l = 50.0 * mu
        assert conic.angular_momentum == pytest.approx(l)
        assert conic.c == pytest.approx(l * l / (params.gamma * mu))
        assert conic.eccentricity == pytest.approx(conic.A * conic.c)

    def test_initial_point_lies_on_conic(self, conic):
        # rhat is the +x axis, so phi = 0 is the initial point
        assert conic.distance(0.0) == pytest.approx(5.0)

    def test_apoapsis_start_gives_negative_eccentricity(self, conic):
        assert conic.eccentricity < 0.0
        assert conic.is_bound

    def test_from_periapsis(self, params):
        conic = KeplerConic.from_periapsis(params, 2.0, 25.0)
        assert conic.distance(0.0) == pytest.approx(2.0)
        assert conic.eccentricity > 0.0

    def test_from_periapsis_rejects_non_positive(self, params):
        with pytest.raises(InvalidConfigurationError):
            KeplerConic.from_periapsis(params, 0.0, 1.0)

    def test_zero_x_component_is_singular(self, params):
        with pytest.raises(SingularStateError):
            KeplerConic.from_state(params, [0.0, 5.0, 0.0], [0.0, 0.0, 10.0])

    def test_radial_orbit_is_singular(self, params):
        with pytest.raises(SingularStateError):
            KeplerConic.from_state(params, [5.0, 0.0, 0.0], [1.0, 0.0, 0.0])

    def test_origin_is_singular(self, params):
        with pytest.raises(SingularStateError):
            KeplerConic.from_state(params, [0.0, 0.0, 0.0], [0.0, 0.0, 10.0])


# =============================================================================
# Geometry
# =============================================================================

class TestGeometry:

    def test_apsis_distances(self, params):
        conic = KeplerConic.from_periapsis(params, 2.0, 25.0)
        eps = conic.eccentricity
        assert conic.distance(0.0) == pytest.approx(conic.c / (1.0 + eps))
        assert conic.distance(np.pi) == pytest.approx(conic.c / (1.0 - eps))

    def test_position_lies_in_xz_plane(self, conic):
        x, y, z = conic.position(0.7)
        assert y == 0.0
        assert np.hypot(x, z) == pytest.approx(conic.distance(0.7))

    def test_approximate_phase_starts_at_zero(self, conic):
        assert conic.approximate_phase(0.0) == 0.0

    def test_hyperbolic_conic_is_unbound(self, params):
        conic = KeplerConic.from_periapsis(params, 1.0, 60.0)
        assert not conic.is_bound


# =============================================================================
# Sampling
# =============================================================================

class TestSampling:

    def test_sample_128_is_closed_loop(self, conic):
        points = conic.sample(128)
        assert len(points) == 129
        assert points[0] == points[128]

    @pytest.mark.parametrize("segments", [1, 3, 7, 64])
    def test_sample_count(self, conic, segments):
        points = conic.sample(segments)
        assert len(points) == segments + 1
        assert points[0] == points[-1]

    def test_sample_array_shape(self, conic):
        arr = conic.sample_array(16)
        assert arr.shape == (17, 3)
        assert_allclose(arr[:, 1], 0.0)

    def test_sample_points_on_conic(self, conic):
        arr = conic.sample_array(32)
        phis = np.linspace(0.0, 2.0 * np.pi, 33)[:-1]
        radii = np.linalg.norm(arr[:-1], axis=1)
        expected = [conic.distance(phi) for phi in phis]
        assert_allclose(radii, expected, rtol=1e-12)

    @pytest.mark.parametrize("segments", [0, -4, 2.5, True, '8'])
    def test_invalid_segments(self, conic, segments):
        with pytest.raises(InvalidConfigurationError):
            conic.sample(segments)
