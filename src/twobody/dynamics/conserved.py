"""
===============================================================================
TWOBODY - Conserved Quantities
===============================================================================
Energy and angular momentum of the secondary body, plus the central-force
acceleration that the integrators step.

The energy here is the Lagrangian form used throughout the project:

    E = 0.5 * m2 * |v|^2 - G * m1 * m2 / |r|

It is evaluated once at session creation (the baseline) and again after
every integrator advance; the absolute difference is the energy error that
drives sub-step selection.

Every function here raises SingularStateError at |r| = 0 instead of
returning inf or NaN.
===============================================================================
"""

import numpy as np

from twobody.core.validation import require_nonzero_position


def energy(state, m1: float, m2: float, G: float) -> float:
    """
    Total mechanical energy of the secondary body.

    Parameters
    ----------
    state : OrbitalState
        Any object exposing ``position`` and ``velocity`` arrays.
    m1, m2 : float
        Primary and secondary masses.
    G : float
        Gravitational constant.

    Returns
    -------
    float
        Kinetic minus potential energy magnitude, 0.5*m2*v^2 - G*m1*m2/r.

    Raises
    ------
    SingularStateError
        If the position is the zero vector.
    """
    r_mag = require_nonzero_position(state.position)
    v_sq = float(np.dot(state.velocity, state.velocity))
    return 0.5 * m2 * v_sq - G * m1 * m2 / r_mag


def specific_energy(position: np.ndarray, velocity: np.ndarray, mu: float) -> float:
    """Energy per unit mass, v^2/2 - mu/r."""
    r_mag = require_nonzero_position(position)
    return 0.5 * float(np.dot(velocity, velocity)) - mu / r_mag


def angular_momentum(state) -> np.ndarray:
    """
    Specific angular momentum vector h = r x v.

    Constant for the two-body problem; it is normal to the orbital plane.
    """
    return np.cross(state.position, state.velocity)


def gravitational_acceleration(position: np.ndarray, G: float, m1: float) -> np.ndarray:
    """
    Acceleration of the secondary toward the primary at the origin.

        a = -G * m1 / |r|^3 * r

    Parameters
    ----------
    position : np.ndarray
        (3,) position of the secondary.
    G, m1 : float
        Gravitational constant and primary mass.

    Returns
    -------
    np.ndarray
        (3,) acceleration vector.
    """
    r_mag = require_nonzero_position(position)
    return -(G * m1 / (r_mag * r_mag * r_mag)) * position
