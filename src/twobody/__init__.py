"""
===============================================================================
TWOBODY - Two-Body Orbit Engine
===============================================================================
Closed-form and numerical propagation of a secondary body orbiting a massive
primary fixed at the origin.

Sub-packages:
    core          -- Constants, input validation and the error taxonomy
    dynamics      -- State containers, conserved quantities, conic model,
                     universal-variable propagators, symplectic integrators
    simulation    -- Orbit session driving both solution paths side by side
    visualization -- matplotlib rendering of sampled trajectories
===============================================================================
"""

from twobody.core.validation import InvalidConfigurationError, SingularStateError
from twobody.dynamics.orbital_state import OrbitalState, PhysicalParameters
from twobody.dynamics.conserved import angular_momentum, energy
from twobody.dynamics.conic import KeplerConic
from twobody.dynamics.propagators import (
    PropagationResult,
    propagate_danby,
    propagate_goodyear,
)
from twobody.dynamics.integrators import AdaptiveIntegrator, verlet_step, yoshida_step
from twobody.simulation.orbit_session import OrbitSession, TickDiagnostics, create_orbit

__version__ = "0.1.0"
