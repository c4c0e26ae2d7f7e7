"""
===============================================================================
TWOBODY - Analytic Conic Model
===============================================================================
Polar conic description of the orbit, derived once from the initial state:

    l   = |r x v| * mu                     (angular momentum, mu = reduced mass)
    c   = l^2 / (G*m1*m2 * mu)             (semi-latus-rectum-like constant)
    A   = (1/|r0| - 1/c) / rhat_x
    eps = A * c

    r(phi) = c / (1 + eps*cos(phi))

The division by the x-component of the normalised initial radius is an
approximation: it is exact only when the initial radius lies along the x axis
(the apsidal line then coincides with that axis).  For other initial
conditions the eccentricity it yields is wrong.  The model is a visualisation
aid for the worked, axis-aligned examples; it is never fed back into either
solver and is not recomputed as the trajectory evolves.
===============================================================================
"""

import logging
from dataclasses import dataclass
from typing import List, Tuple

import numpy as np

from twobody.core.constants import DEFAULT_SEGMENTS, TWO_PI
from twobody.core.validation import (
    InvalidConfigurationError,
    SingularStateError,
    as_vector3,
    require_nonzero_position,
    require_positive,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class KeplerConic:
    """
    Orbit shape constants and the polar equation built from them.

    Attributes
    ----------
    reduced_mass : float
        m1*m2/(m1+m2).
    angular_momentum : float
        |r0 x v0| * reduced_mass.
    gamma : float
        G*m1*m2.
    c : float
        Orbital constant l^2/(gamma*mu).
    A : float
        Inverse-radius amplitude, (1/r0 - 1/c)/rhat_x.
    eccentricity : float
        A*c.  May be negative when the initial point is the apoapsis.
    """
    reduced_mass: float
    angular_momentum: float
    gamma: float
    c: float
    A: float
    eccentricity: float

    # =====================================================================
    # CONSTRUCTION
    # =====================================================================

    @classmethod
    def from_state(cls, params, position, velocity) -> 'KeplerConic':
        """
        Derive the conic from an initial state.

        Parameters
        ----------
        params : PhysicalParameters
            Masses and G.
        position, velocity : array-like
            Initial state of the secondary.

        Raises
        ------
        SingularStateError
            If the position is zero, or its x-component is zero so the
            axis-aligned eccentricity approximation cannot be evaluated.
        """
        r0 = as_vector3(position, 'position')
        v0 = as_vector3(velocity, 'velocity')
        r_mag = require_nonzero_position(r0)
        r_hat = r0 / r_mag
        if r_hat[0] == 0.0:
            raise SingularStateError(
                "Initial position has no x-component; the conic eccentricity "
                "approximation divides by rhat_x."
            )

        mu = params.reduced_mass
        l = float(np.linalg.norm(np.cross(r0, v0))) * mu
        g = params.gamma
        c = l * l / (g * mu)
        if c == 0.0:
            raise SingularStateError("Zero angular momentum; orbit is radial and has no conic.")
        A = (1.0 / r_mag - 1.0 / c) / r_hat[0]
        conic = cls(
            reduced_mass=mu,
            angular_momentum=l,
            gamma=g,
            c=c,
            A=A,
            eccentricity=A * c,
        )
        logger.debug(
            "Conic derived: l=%.6g c=%.6g A=%.6g eps=%.6g",
            l, c, A, conic.eccentricity,
        )
        return conic

    @classmethod
    def from_periapsis(cls, params, rmin: float, vmin: float) -> 'KeplerConic':
        """
        Build the conic from a periapsis distance and speed.

        Equivalent to an initial state ``(rmin, 0, 0)`` with velocity
        perpendicular to the radius, where the approximation in
        :meth:`from_state` is exact.
        """
        rmin = require_positive(rmin, 'rmin')
        vmin = require_positive(vmin, 'vmin')
        return cls.from_state(params, [rmin, 0.0, 0.0], [0.0, 0.0, vmin])

    # =====================================================================
    # GEOMETRY
    # =====================================================================

    @property
    def is_bound(self) -> bool:
        """True for an ellipse (|eps| < 1)."""
        return abs(self.eccentricity) < 1.0

    def distance(self, phi: float) -> float:
        """Radius at phase *phi*: c / (1 + eps*cos(phi))."""
        return self.c / (1.0 + self.eccentricity * np.cos(phi))

    def position(self, phi: float) -> Tuple[float, float, float]:
        """Point ``(x, 0, z)`` on the conic at phase *phi*."""
        r = self.distance(phi)
        return (float(r * np.cos(phi)), 0.0, float(r * np.sin(phi)))

    def sample(self, segments: int = DEFAULT_SEGMENTS) -> List[Tuple[float, float, float]]:
        """
        Sample one revolution as a closed polyline.

        Parameters
        ----------
        segments : int
            Number of segments, at least 1.

        Returns
        -------
        list of tuple
            ``segments + 1`` points; the last repeats the first exactly.
        """
        if (isinstance(segments, bool)
                or not isinstance(segments, (int, np.integer))
                or segments < 1):
            raise InvalidConfigurationError(f"segments must be an integer >= 1, got {segments!r}")
        segments = int(segments)
        delta_phi = TWO_PI / segments
        # i % segments makes the closing point bit-identical to the first
        return [self.position(delta_phi * (i % segments)) for i in range(segments + 1)]

    def sample_array(self, segments: int = DEFAULT_SEGMENTS) -> np.ndarray:
        """:meth:`sample` as an (segments+1, 3) array."""
        return np.asarray(self.sample(segments), dtype=np.float64)

    def approximate_phase(self, time: float) -> float:
        """
        Approximate orbital phase at *time* for animating a marker.

            phi = (0.5 e^2 t + t + 2 e sin t + 0.25 e^2 sin 2t) / (mu * l)

        This is a series approximation used for display only; it is not a
        solution of Kepler's equation.  Use the propagators for physics.
        """
        e = self.eccentricity
        e2 = e * e
        numerator = (
            0.5 * e2 * time
            + time
            + 2.0 * e * np.sin(time)
            + 0.25 * e2 * np.sin(2.0 * time)
        )
        return float(numerator / (self.reduced_mass * self.angular_momentum))
