"""
===============================================================================
TWOBODY - Orbit Session
===============================================================================
Runs the closed-form propagator and the adaptive integrator side by side from
the same initial conditions, one external tick at a time.

Each tick performs, in order:

    1. PROPAGATOR -- the closed-form state is recomputed from the *initial*
                     state with the cumulative elapsed time.  Propagator
                     calls are stateless, so only total time is tracked.
    2. INTEGRATOR -- the numerical state is advanced by the tick increment
                     with energy-controlled sub-stepping.
    3. DIAGNOSTICS-- energy error of the integrator path against the baseline,
                     running maximum, separation between the two paths.
    4. LOGGING    -- a telemetry record is appended for post-run analysis.

The two states are separate OrbitalState objects and are never aliased:
readers get copies, and neither solver sees the other's intermediate values.
===============================================================================
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import numpy as np
import pandas as pd

from twobody.core.constants import (
    DEFAULT_G,
    DEFAULT_SEGMENTS,
    DEFAULT_TOLERANCE,
    MAX_SUB_STEPS,
    SUB_STEP_SEED_FACTOR,
)
from twobody.core.validation import (
    InvalidConfigurationError,
    as_vector3,
    require_finite,
    require_nonzero_position,
    require_positive,
)
from twobody.dynamics.conic import KeplerConic
from twobody.dynamics.conserved import angular_momentum, energy
from twobody.dynamics.integrators import AdaptiveIntegrator, velocity_squared_seed
from twobody.dynamics.orbital_state import OrbitalState, PhysicalParameters
from twobody.dynamics.propagators import get_propagator

logger = logging.getLogger(__name__)


@dataclass
class TickDiagnostics:
    """
    Per-tick report returned by :meth:`OrbitSession.tick`.

    Attributes
    ----------
    sub_steps_used : int
        Integrator sub-steps needed for this tick.
    energy_error : float
        |E - E_baseline| of the integrator path after the tick.
    max_energy_error : float
        Running maximum of ``energy_error`` over the session.
    converged : bool
        False if the integrator stopped at the sub-step cap with the error
        still above tolerance.
    propagator_converged : bool
        False if the closed-form root solve ran out of iterations.
    elapsed_time : float
        Cumulative simulation time after the tick.
    """
    sub_steps_used: int
    energy_error: float
    max_energy_error: float
    converged: bool
    propagator_converged: bool
    elapsed_time: float


class OrbitSession:
    """
    Owns the physical parameters and both live solution paths of one orbit.

    Parameters
    ----------
    params : PhysicalParameters
        Masses and G.  Immutable for the life of the session.
    position, velocity : array-like
        Initial state of the secondary relative to the primary.
    tolerance : float
        Integrator energy tolerance per tick.
    max_sub_steps : int
        Integrator sub-step cap.
    kernel : str
        'verlet' or 'yoshida'.
    propagator : str
        'goodyear' or 'danby'.
    seed_factor : float
        Factor of the default |v|^2 sub-step seed.
    seed_policy : callable, optional
        Replaces the default seed policy entirely.

    Attributes
    ----------
    energy_baseline : float
        Energy at creation; the reference for all later errors.
    conic : KeplerConic or None
        Analytic conic for trajectory sampling.  None when the initial
        position has no x-component (see dynamics.conic).
    elapsed_time : float
        Cumulative simulation time.
    max_energy_error : float
        Largest integrator energy error observed so far.
    telemetry : list of dict
        Raw per-tick records, converted to a DataFrame on request.
    """

    def __init__(
        self,
        params: PhysicalParameters,
        position,
        velocity,
        tolerance: float = DEFAULT_TOLERANCE,
        max_sub_steps: int = MAX_SUB_STEPS,
        kernel: str = 'verlet',
        propagator: str = 'goodyear',
        seed_factor: float = SUB_STEP_SEED_FACTOR,
        seed_policy=None,
    ) -> None:
        self.params = params
        r0 = as_vector3(position, 'position')
        v0 = as_vector3(velocity, 'velocity')
        require_nonzero_position(r0)

        self._initial_state = OrbitalState(r0, v0, 0.0)
        self._integrator_state = self._initial_state.copy()
        self._propagator_state = self._initial_state.copy()

        self.propagator_name = str(propagator).lower()
        self._propagate = get_propagator(self.propagator_name)

        seed_factor = require_positive(seed_factor, 'seed_factor')
        if seed_policy is None:
            max_steps = int(max_sub_steps)

            def seed_policy(v):
                return velocity_squared_seed(v, factor=seed_factor, max_sub_steps=max_steps)

        self.integrator = AdaptiveIntegrator(
            params,
            tolerance=tolerance,
            max_sub_steps=max_sub_steps,
            kernel=kernel,
            seed_policy=seed_policy,
        )

        self.energy_baseline = energy(self._initial_state, params.m1, params.m2, params.G)
        self.angular_momentum_baseline = angular_momentum(self._initial_state)

        try:
            self.conic: Optional[KeplerConic] = KeplerConic.from_state(params, r0, v0)
        except ValueError as exc:
            logger.warning("No analytic conic for this initial state: %s", exc)
            self.conic = None

        self.elapsed_time = 0.0
        self.max_energy_error = 0.0
        self.last_sub_steps = 0
        self.telemetry: List[Dict[str, Any]] = []
        self._capped_ticks = 0
        self._unconverged_propagations = 0

        logger.info(
            "OrbitSession created.  m1=%.6g m2=%.6g G=%.6g  E0=%.10g  "
            "kernel=%s propagator=%s",
            params.m1, params.m2, params.G, self.energy_baseline,
            self.integrator.kernel_name, self.propagator_name,
        )
        if self.conic is not None:
            logger.info(
                "Conic: c=%.6g eps=%.6g (%s)",
                self.conic.c, self.conic.eccentricity,
                'bound' if self.conic.is_bound else 'unbound',
            )

    # =========================================================================
    # TICK
    # =========================================================================

    def tick(self, dt: float) -> TickDiagnostics:
        """
        Advance both solution paths by *dt*.

        Parameters
        ----------
        dt : float
            Caller-scaled time increment.  Must be finite.

        Returns
        -------
        TickDiagnostics
            Sub-steps used, energy errors and convergence flags.
        """
        dt = require_finite(dt, 'dt')
        new_time = self.elapsed_time + dt

        # ---- 1. Closed-form path: always from the initial state ----
        result = self._propagate(
            self.params.gravitational_parameter,
            new_time,
            self._initial_state.position,
            self._initial_state.velocity,
        )
        self._propagator_state = OrbitalState(result.position, result.velocity, new_time)
        if not result.converged:
            self._unconverged_propagations += 1

        # ---- 2. Numerical path: incremental ----
        advance = self.integrator.advance(self._integrator_state, dt, self.energy_baseline)
        self._integrator_state = advance.state
        self._integrator_state.time = new_time
        if not advance.converged:
            self._capped_ticks += 1

        # ---- 3. Diagnostics ----
        self.elapsed_time = new_time
        self.last_sub_steps = advance.sub_steps
        self.max_energy_error = max(self.max_energy_error, advance.energy_error)

        diagnostics = TickDiagnostics(
            sub_steps_used=advance.sub_steps,
            energy_error=advance.energy_error,
            max_energy_error=self.max_energy_error,
            converged=advance.converged,
            propagator_converged=result.converged,
            elapsed_time=new_time,
        )

        # ---- 4. Telemetry ----
        self._log_telemetry(diagnostics)
        logger.debug(
            "tick t=%.6g sub_steps=%d err=%.3e max=%.3e",
            new_time, advance.sub_steps, advance.energy_error, self.max_energy_error,
        )
        return diagnostics

    def run(self, n_ticks: int, dt: float) -> pd.DataFrame:
        """
        Apply :meth:`tick` *n_ticks* times with a constant *dt*.

        Returns
        -------
        pd.DataFrame
            Telemetry for the whole session so far.
        """
        if int(n_ticks) < 0:
            raise InvalidConfigurationError(f"n_ticks must be >= 0, got {n_ticks}")
        logger.info("Session run started.  %d ticks of dt=%.6g", n_ticks, dt)
        for _ in range(int(n_ticks)):
            self.tick(dt)
        logger.info(
            "Session run complete.  t=%.6g  max energy error=%.3e",
            self.elapsed_time, self.max_energy_error,
        )
        return self.get_telemetry()

    # =========================================================================
    # READ-ONLY SNAPSHOTS
    # =========================================================================

    def integrator_state(self):
        """``(position, velocity)`` copies of the integrator path."""
        return self._integrator_state.as_tuple()

    def propagator_state(self):
        """``(position, velocity)`` copies of the closed-form path."""
        return self._propagator_state.as_tuple()

    def initial_state(self) -> OrbitalState:
        """Copy of the initial state."""
        return self._initial_state.copy()

    def energy_error(self) -> float:
        """Current |E - E_baseline| of the integrator path."""
        p = self.params
        return abs(energy(self._integrator_state, p.m1, p.m2, p.G) - self.energy_baseline)

    def propagator_energy_error(self) -> float:
        """Current |E - E_baseline| of the closed-form path."""
        p = self.params
        return abs(energy(self._propagator_state, p.m1, p.m2, p.G) - self.energy_baseline)

    def path_separation(self) -> float:
        """Distance between the integrator and propagator positions."""
        return float(np.linalg.norm(
            self._integrator_state.position - self._propagator_state.position
        ))

    def trajectory(self, segments: int = DEFAULT_SEGMENTS):
        """Sampled conic polyline, or an empty list when no conic exists."""
        if self.conic is None:
            return []
        return self.conic.sample(segments)

    # =========================================================================
    # TELEMETRY
    # =========================================================================

    def _log_telemetry(self, diagnostics: TickDiagnostics) -> None:
        ri = self._integrator_state.position
        vi = self._integrator_state.velocity
        rp = self._propagator_state.position
        vp = self._propagator_state.velocity

        record = {
            'time': diagnostics.elapsed_time,
            'int_pos_x': ri[0], 'int_pos_y': ri[1], 'int_pos_z': ri[2],
            'int_vel_x': vi[0], 'int_vel_y': vi[1], 'int_vel_z': vi[2],
            'prop_pos_x': rp[0], 'prop_pos_y': rp[1], 'prop_pos_z': rp[2],
            'prop_vel_x': vp[0], 'prop_vel_y': vp[1], 'prop_vel_z': vp[2],
            'sub_steps': diagnostics.sub_steps_used,
            'energy_error': diagnostics.energy_error,
            'max_energy_error': diagnostics.max_energy_error,
            'propagator_energy_error': self.propagator_energy_error(),
            'separation': self.path_separation(),
            'converged': diagnostics.converged,
            'propagator_converged': diagnostics.propagator_converged,
        }
        self.telemetry.append(record)

    def get_telemetry(self) -> pd.DataFrame:
        """
        Convert the telemetry record list to a pandas DataFrame indexed by time.
        """
        if not self.telemetry:
            logger.warning("No telemetry recorded.")
            return pd.DataFrame()

        df = pd.DataFrame(self.telemetry)
        df.set_index('time', inplace=True)
        return df

    def save_telemetry(self, filepath: str) -> None:
        """Save the telemetry DataFrame to a CSV file."""
        df = self.get_telemetry()
        df.to_csv(filepath)
        logger.info("Telemetry saved to %s  (%d records)", filepath, len(df))

    def get_summary(self) -> Dict[str, Any]:
        """
        Compile a summary of the session so far.

        Returns
        -------
        dict
            ticks, elapsed_time, max_energy_error, final_separation,
            capped_ticks, unconverged_propagations.
        """
        summary = {
            'ticks': len(self.telemetry),
            'elapsed_time': self.elapsed_time,
            'max_energy_error': self.max_energy_error,
            'final_separation': self.path_separation(),
            'capped_ticks': self._capped_ticks,
            'unconverged_propagations': self._unconverged_propagations,
        }

        logger.info("Session Summary:")
        for key, value in summary.items():
            if isinstance(value, float):
                logger.info("  %-25s: %.6g", key, value)
            else:
                logger.info("  %-25s: %s", key, value)

        return summary

    def __repr__(self) -> str:
        return (
            f"OrbitSession(t={self.elapsed_time:.6g}, "
            f"propagator={self.propagator_name}, "
            f"kernel={self.integrator.kernel_name}, "
            f"records={len(self.telemetry)})"
        )


def create_orbit(
    m1: float,
    m2: float,
    G: float = DEFAULT_G,
    initial_position=(1.0, 0.0, 0.0),
    initial_velocity=(0.0, 0.0, 1.0),
    **options,
) -> OrbitSession:
    """
    Build an OrbitSession from raw masses and an initial state.

    Args:
        m1: Primary mass (> 0)
        m2: Secondary mass (> 0)
        G: Gravitational constant (> 0)
        initial_position: 3-vector, must not be zero
        initial_velocity: 3-vector
        **options: Forwarded to OrbitSession (tolerance, kernel, propagator, ...)

    Returns:
        A ready-to-tick OrbitSession

    Raises:
        InvalidConfigurationError: For non-positive masses or non-finite input
        SingularStateError: If initial_position is the zero vector
    """
    params = PhysicalParameters(m1=m1, m2=m2, G=G)
    return OrbitSession(params, initial_position, initial_velocity, **options)


def session_from_config(config: Dict[str, Any]) -> OrbitSession:
    """
    Build an OrbitSession from a configuration dictionary.

    Expected layout (all sections optional except ``orbit``)::

        orbit:       {m1, m2, G, position, velocity}
        integration: {tolerance, max_sub_steps, kernel, seed_factor}
        propagation: {method}
    """
    if 'orbit' not in config:
        raise InvalidConfigurationError("Configuration has no 'orbit' section")
    orbit = config['orbit']
    integration = config.get('integration') or {}
    propagation = config.get('propagation') or {}

    missing = [k for k in ('m1', 'm2', 'position', 'velocity') if k not in orbit]
    if missing:
        raise InvalidConfigurationError(f"orbit section is missing keys: {missing}")

    return create_orbit(
        orbit['m1'],
        orbit['m2'],
        orbit.get('G', DEFAULT_G),
        orbit['position'],
        orbit['velocity'],
        tolerance=integration.get('tolerance', DEFAULT_TOLERANCE),
        max_sub_steps=integration.get('max_sub_steps', MAX_SUB_STEPS),
        kernel=integration.get('kernel', 'verlet'),
        seed_factor=integration.get('seed_factor', SUB_STEP_SEED_FACTOR),
        propagator=propagation.get('method', 'goodyear'),
    )
