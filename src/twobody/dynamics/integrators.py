"""
===============================================================================
TWOBODY - Symplectic Integrators with Energy-Driven Sub-Stepping
===============================================================================
Numerical advance of the secondary body under a = -G*m1/|r|^3 * r.

Two stepping kernels share the signature
``kernel(position, velocity, dt, accel) -> (position, velocity)``:

    1. **Velocity Verlet** (2nd order)

           r' = r + v*dt + 0.5*a(r)*dt^2
           v' = v + 0.5*(a(r) + a(r'))*dt

    2. **Yoshida** (4th order) -- a symmetric composition of three leapfrog
       stages with weights w1, w0, w1:

           w0 = -2^(1/3) / (2 - 2^(1/3)),   w1 = 1 / (2 - 2^(1/3))
           c1 = c4 = w1/2,   c2 = c3 = (w0 + w1)/2
           d1 = d3 = w1,     d2 = w0

Both are symplectic: the energy error oscillates rather than drifts, so the
absolute energy error after a step measures how well the step resolved the
orbit.  The AdaptiveIntegrator uses exactly that signal.  For each call it
re-runs the whole interval with 1, 2, ... more sub-steps, starting from a
velocity-based seed, until

    |E(state) - E_baseline| < tolerance

or the sub-step count has been tried at the cap (200).  Hitting the cap is reported
through ``AdvanceResult.converged = False``; it is not an error.
===============================================================================
"""

import logging
from dataclasses import dataclass
from typing import Callable, Optional, Tuple

import numpy as np

from twobody.core.constants import (
    DEFAULT_TOLERANCE,
    KERNELS,
    MAX_SUB_STEPS,
    SUB_STEP_SEED_FACTOR,
    YOSHIDA_C1,
    YOSHIDA_C2,
    YOSHIDA_W0,
    YOSHIDA_W1,
)
from twobody.core.validation import InvalidConfigurationError, require_positive
from twobody.dynamics.conserved import energy, gravitational_acceleration
from twobody.dynamics.orbital_state import OrbitalState

logger = logging.getLogger(__name__)

AccelFunc = Callable[[np.ndarray], np.ndarray]
Kernel = Callable[[np.ndarray, np.ndarray, float, AccelFunc], Tuple[np.ndarray, np.ndarray]]


# =============================================================================
# STEPPING KERNELS
# =============================================================================

def verlet_step(
    position: np.ndarray,
    velocity: np.ndarray,
    dt: float,
    accel: AccelFunc,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    One velocity-Verlet step.

    Parameters
    ----------
    position, velocity : np.ndarray
        (3,) state at the start of the step.
    dt : float
        Step size.
    accel : callable
        ``accel(position) -> acceleration``.

    Returns
    -------
    tuple of np.ndarray
        (position, velocity) after the step.
    """
    a0 = accel(position)
    new_position = position + velocity * dt + 0.5 * a0 * dt * dt
    a1 = accel(new_position)
    new_velocity = velocity + 0.5 * (a0 + a1) * dt
    return new_position, new_velocity


def yoshida_step(
    position: np.ndarray,
    velocity: np.ndarray,
    dt: float,
    accel: AccelFunc,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    One 4th-order Yoshida step (drift-kick composition).

    Four position drifts weighted c1, c2, c2, c1 interleave three velocity
    kicks weighted w1, w0, w1.  w0 is negative, so the middle stage steps
    backward in time.
    """
    x1 = position + YOSHIDA_C1 * velocity * dt
    v1 = velocity + YOSHIDA_W1 * accel(x1) * dt
    x2 = x1 + YOSHIDA_C2 * v1 * dt
    v2 = v1 + YOSHIDA_W0 * accel(x2) * dt
    x3 = x2 + YOSHIDA_C2 * v2 * dt
    v3 = v2 + YOSHIDA_W1 * accel(x3) * dt
    x4 = x3 + YOSHIDA_C1 * v3 * dt
    return x4, v3


KERNEL_FUNCTIONS = {
    'verlet': verlet_step,
    'yoshida': yoshida_step,
}


def get_kernel(name: str) -> Kernel:
    """Look up a stepping kernel by name ('verlet' or 'yoshida')."""
    key = str(name).lower()
    if key not in KERNEL_FUNCTIONS:
        raise InvalidConfigurationError(f"Unknown kernel: {name}. Valid: {list(KERNELS)}")
    return KERNEL_FUNCTIONS[key]


# =============================================================================
# SUB-STEP SEED POLICY
# =============================================================================

def velocity_squared_seed(
    velocity: np.ndarray,
    factor: float = SUB_STEP_SEED_FACTOR,
    max_sub_steps: int = MAX_SUB_STEPS,
) -> int:
    """
    Default sub-step seed, floor(factor * |v|^2) clamped to [1, max_sub_steps].

    The factor was tuned for G*m1 ~ 1000 with O(1) distances.  Pass a
    different ``seed_policy`` to AdaptiveIntegrator for other unit systems.
    """
    seed = int(np.floor(factor * float(np.dot(velocity, velocity))))
    return min(max(seed, 1), max_sub_steps)


# =============================================================================
# ADAPTIVE INTEGRATOR
# =============================================================================

@dataclass
class AdvanceResult:
    """
    Outcome of one AdaptiveIntegrator.advance call.

    Attributes
    ----------
    state : OrbitalState
        New state (a fresh object; the input is never modified).
    sub_steps : int
        Sub-steps used for the accepted pass.
    energy_error : float
        |E(state) - baseline| after the pass.
    converged : bool
        False when the sub-step cap stopped the search before the energy
        error fell below tolerance.
    """
    state: OrbitalState
    sub_steps: int
    energy_error: float
    converged: bool


class AdaptiveIntegrator:
    """
    Energy-controlled sub-stepping around a symplectic kernel.

    Parameters
    ----------
    params : PhysicalParameters
        Masses and G; define both the acceleration and the energy.
    tolerance : float
        Absolute energy error accepted after each advance.
    max_sub_steps : int
        Upper bound on sub-steps per advance.
    kernel : str or callable
        'verlet', 'yoshida' or a function with the kernel signature.
    seed_policy : callable, optional
        ``seed_policy(velocity) -> int`` giving the first sub-step count to
        try.  Defaults to :func:`velocity_squared_seed`.
    """

    def __init__(
        self,
        params,
        tolerance: float = DEFAULT_TOLERANCE,
        max_sub_steps: int = MAX_SUB_STEPS,
        kernel='verlet',
        seed_policy: Optional[Callable[[np.ndarray], int]] = None,
    ) -> None:
        self.params = params
        self.tolerance = require_positive(tolerance, 'tolerance')
        if int(max_sub_steps) < 1:
            raise InvalidConfigurationError(f"max_sub_steps must be >= 1, got {max_sub_steps}")
        self.max_sub_steps = int(max_sub_steps)

        if callable(kernel):
            self.kernel = kernel
            self.kernel_name = getattr(kernel, '__name__', 'custom')
        else:
            self.kernel = get_kernel(kernel)
            self.kernel_name = str(kernel).lower()

        if seed_policy is None:
            max_steps = self.max_sub_steps

            def seed_policy(velocity):
                return velocity_squared_seed(velocity, max_sub_steps=max_steps)

        self.seed_policy = seed_policy

    def acceleration(self, position: np.ndarray) -> np.ndarray:
        """Gravitational acceleration of the secondary at *position*."""
        return gravitational_acceleration(position, self.params.G, self.params.m1)

    def step(self, state: OrbitalState, dt: float, sub_steps: int) -> OrbitalState:
        """
        Advance *state* by *dt* using exactly *sub_steps* equal kernel steps.

        Returns a new OrbitalState; *state* is left untouched.
        """
        h = dt / sub_steps
        position = state.position.copy()
        velocity = state.velocity.copy()
        for _ in range(sub_steps):
            position, velocity = self.kernel(position, velocity, h, self.acceleration)
        return OrbitalState(position, velocity, state.time + dt)

    def advance(
        self,
        state: OrbitalState,
        dt: float,
        energy_baseline: float,
        tolerance: Optional[float] = None,
    ) -> AdvanceResult:
        """
        Advance by *dt*, choosing the sub-step count from the energy error.

        Starting at the seed, the whole interval is re-integrated from the
        initial snapshot with one more sub-step each pass, until the energy
        error drops below tolerance or the count reaches ``max_sub_steps``.

        Parameters
        ----------
        state : OrbitalState
            Pre-call state.  Not modified.
        dt : float
            Interval to advance (caller-scaled time).
        energy_baseline : float
            Reference energy, normally the value at session creation.
        tolerance : float, optional
            Override of the configured tolerance for this call.

        Returns
        -------
        AdvanceResult
            New state, sub-steps used, energy error and convergence flag.
        """
        tol = self.tolerance if tolerance is None else require_positive(tolerance, 'tolerance')
        if not np.isfinite(dt):
            raise InvalidConfigurationError(f"dt must be finite, got {dt}")

        m1, m2, G = self.params.m1, self.params.m2, self.params.G
        snapshot = state.copy()
        ticks = min(max(int(self.seed_policy(snapshot.velocity)), 1), self.max_sub_steps)

        while True:
            trial = self.step(snapshot, dt, ticks)
            ticks += 1
            error = abs(energy(trial, m1, m2, G) - energy_baseline)
            if error < tol or ticks > self.max_sub_steps:
                break

        used = ticks - 1
        converged = error < tol
        if converged:
            logger.debug("advance dt=%.3e: %d sub-steps, energy error %.3e", dt, used, error)
        else:
            logger.warning(
                "Sub-step cap reached (%d) with energy error %.3e > tolerance %.1e",
                used, error, tol,
            )
        return AdvanceResult(state=trial, sub_steps=used, energy_error=error, converged=converged)
