"""
===============================================================================
TWOBODY - State and Physical Parameters
===============================================================================
Data containers shared by every solver.

    1. **OrbitalState** -- position, velocity and elapsed time of the
       secondary body in the primary-centred frame.  Mutable, but each solver
       owns its own instance; copies are taken whenever a state crosses from
       one solver to another.

    2. **PhysicalParameters** -- the masses and gravitational constant of one
       orbit.  Frozen once a session has been created.
===============================================================================
"""

from dataclasses import dataclass

import numpy as np

from twobody.core.constants import DEFAULT_G
from twobody.core.validation import (
    InvalidConfigurationError,
    as_vector3,
    require_finite,
    require_positive,
)


# =============================================================================
# ORBITAL STATE DATACLASS
# =============================================================================

@dataclass
class OrbitalState:
    """
    Snapshot of the secondary body's translational state.

    Attributes
    ----------
    position : np.ndarray
        3-element position vector relative to the primary.
    velocity : np.ndarray
        3-element velocity vector relative to the primary.
    time : float
        Elapsed simulation time at which this state is valid.
    """
    position: np.ndarray
    velocity: np.ndarray
    time: float = 0.0

    def __post_init__(self):
        self.position = as_vector3(self.position, 'position')
        self.velocity = as_vector3(self.velocity, 'velocity')
        self.time = require_finite(self.time, 'time')

    @property
    def r_mag(self) -> float:
        """Magnitude of the position vector."""
        return float(np.linalg.norm(self.position))

    @property
    def v_mag(self) -> float:
        """Magnitude of the velocity vector."""
        return float(np.linalg.norm(self.velocity))

    def copy(self) -> 'OrbitalState':
        """Return a deep copy of this state."""
        return OrbitalState(
            position=self.position.copy(),
            velocity=self.velocity.copy(),
            time=self.time,
        )

    def as_tuple(self):
        """Return independent ``(position, velocity)`` copies."""
        return self.position.copy(), self.velocity.copy()


# =============================================================================
# PHYSICAL PARAMETERS
# =============================================================================

@dataclass(frozen=True)
class PhysicalParameters:
    """
    Masses and gravitational constant of a two-body system.

    The primary (``m1``) sits at the origin; the secondary (``m2``) moves
    under its attraction.

    Attributes
    ----------
    m1 : float
        Primary mass.
    m2 : float
        Secondary mass.
    G : float
        Gravitational constant in the caller's unit system.
    """
    m1: float
    m2: float
    G: float = DEFAULT_G

    def __post_init__(self):
        # frozen dataclass: normalise through object.__setattr__
        object.__setattr__(self, 'm1', require_positive(self.m1, 'm1'))
        object.__setattr__(self, 'm2', require_positive(self.m2, 'm2'))
        object.__setattr__(self, 'G', require_positive(self.G, 'G'))
        if self.m1 + self.m2 == 0.0:
            raise InvalidConfigurationError("m1 + m2 must be non-zero")

    @property
    def reduced_mass(self) -> float:
        """Reduced mass m1*m2/(m1+m2)."""
        return self.m1 * self.m2 / (self.m1 + self.m2)

    @property
    def mug(self) -> float:
        """Reduced mass times G."""
        return self.reduced_mass * self.G

    @property
    def gravitational_parameter(self) -> float:
        """G*m1, the propagator's mu when the primary is held fixed."""
        return self.G * self.m1

    @property
    def gamma(self) -> float:
        """Coupling constant G*m1*m2 of the potential -gamma/r."""
        return self.G * self.m1 * self.m2
