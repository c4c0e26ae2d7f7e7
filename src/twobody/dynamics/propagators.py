"""
===============================================================================
TWOBODY - Universal-Variable Two-Body Propagators
===============================================================================
Closed-form solutions of the two-body initial value problem: given mu, a
signed elapsed time tau and an initial state (r0, v0), return the state at
tau in a single (iteratively solved) step.  Both formulations use a universal
anomaly, so elliptic, parabolic and hyperbolic orbits go through the same
code path without the caller branching on orbit type.

    1. **Goodyear** -- Newton iteration on the time equation in the universal
       variable psi.  The series in alp*psi^2 are evaluated in Horner form
       after argument reduction (quarter the argument, i.e. halve the angle,
       until it is below 1) and rebuilt with the angle-doubling recurrences

           pc1 <- pc0 * pc1
           pc0 <- 2 * pc0^2 - 1

    2. **Danby-Stumpff** -- universal Kepler's equation in s with the Stumpff
       functions c0..c3, an orbit-type-specific starting guess, and a
       third-order (Halley-type) correction using f, f', f'', f'''.

The result is returned through the Lagrange coefficients:

    r1 = f * r0 + g * v0
    v1 = fdot * r0 + gdot * v0

Both root solves have hard iteration caps (20 and 10).  A result that exhausts
its budget without meeting tolerance is still returned -- it is the best
available estimate -- but with ``converged = False`` and a logged warning.

References
----------
    [1] Goodyear, "Completely General Closed-Form Solution for Coordinates
        and Partial Derivatives of the Two-Body Problem", AJ 70, 1965.
    [2] Danby, "Fundamentals of Celestial Mechanics", 2nd ed., 1988,
        sec. 6.9.
    [3] Eagle, "MATLAB functions for two-body orbit propagation", 2014.
===============================================================================
"""

import logging
from dataclasses import dataclass
from typing import Callable, Dict, Iterator, Tuple

import numpy as np

from twobody.core.constants import (
    DANBY_MAX_ITER,
    GOODYEAR_MAX_ITER,
    GOODYEAR_PC4_COEFFS,
    GOODYEAR_PC5_COEFFS,
    GOODYEAR_REDUCTION_LIMIT,
    PROPAGATOR_TOLERANCE,
    STUMPFF_REDUCTION_LIMIT,
    TWO_PI,
)
from twobody.core.validation import (
    InvalidConfigurationError,
    as_vector3,
    require_finite,
    require_nonzero_position,
    require_positive,
)

logger = logging.getLogger(__name__)


# =============================================================================
# RESULT RECORD
# =============================================================================

@dataclass
class PropagationResult:
    """
    Final state of a closed-form propagation plus solver diagnostics.

    Unpacks as ``position, velocity = result`` so it can stand in for a
    plain (r1, v1) pair.

    Attributes
    ----------
    position : np.ndarray
        (3,) position at the requested time.
    velocity : np.ndarray
        (3,) velocity at the requested time.
    converged : bool
        False if the iteration budget ran out before the tolerance was met;
        the state is then a best-effort estimate.
    iterations : int
        Root-solver iterations performed.
    residual : float
        Last convergence measure (time residual for Goodyear, correction in
        s for Danby).
    method : str
        'goodyear' or 'danby'.
    """
    position: np.ndarray
    velocity: np.ndarray
    converged: bool
    iterations: int
    residual: float
    method: str

    def __iter__(self) -> Iterator[np.ndarray]:
        yield self.position
        yield self.velocity


# =============================================================================
# SHARED HELPERS
# =============================================================================

def _horner(coeffs: Tuple[float, ...], x: float) -> float:
    """Evaluate sum(coeffs[k] * x**k) in nested form."""
    result = coeffs[-1]
    for c in reversed(coeffs[:-1]):
        result = c + result * x
    return result


def _check_inputs(mu, tau, r0, v0):
    mu = require_positive(mu, 'mu')
    tau = require_finite(tau, 'tau')
    ri = as_vector3(r0, 'r0')
    vi = as_vector3(v0, 'v0')
    r_mag = require_nonzero_position(ri)
    return mu, tau, ri, vi, r_mag


def _report(result: PropagationResult, tau: float) -> PropagationResult:
    if result.converged:
        logger.debug(
            "%s converged in %d iterations (tau=%.6g)",
            result.method, result.iterations, tau,
        )
    else:
        logger.warning(
            "%s propagator did not converge in %d iterations "
            "(tau=%.6g, residual=%.3e); returning best estimate",
            result.method, result.iterations, tau, result.residual,
        )
    return result


# =============================================================================
# GOODYEAR
# =============================================================================

def propagate_goodyear(
    mu: float,
    tau: float,
    r0,
    v0,
    tol: float = PROPAGATOR_TOLERANCE,
    max_iter: int = GOODYEAR_MAX_ITER,
) -> PropagationResult:
    """
    Propagate a two-body state by *tau* with Goodyear's method.

    Algorithm:
        1. zsma = 2/r0 - v0^2/mu (reciprocal semi-major axis).  Seed the
           universal variable psi = tau*zsma for bound orbits, 0 otherwise.
        2. Evaluate the series pc0..pc3 of aas = alp*psi^2 with argument
           reduction, form s1 = pc1*psi, s2 = pc2*psi^2, s3 = pc3*psi^3.
        3. Time residual dtau = r0*s1 + (r0.v0)*s2 + mu*s3 - tau; the radius
           at tau, rfm, is its derivative.  Newton step psi -= dtau/rfm
           until |dtau| < |tau|*tol.
        4. Lagrange coefficients from s1, s2 and rfm.

    Parameters
    ----------
    mu : float
        Gravitational parameter (e.g. G*m1, or km^3/s^2 for Earth).
    tau : float
        Signed propagation interval; negative propagates backward.
    r0, v0 : array-like
        Initial position and velocity.
    tol : float
        Relative tolerance on the time residual.
    max_iter : int
        Newton iteration cap.

    Returns
    -------
    PropagationResult
        Final state and convergence diagnostics.

    Raises
    ------
    SingularStateError
        If r0 is the zero vector.
    InvalidConfigurationError
        If mu is not positive or tau is not finite.
    """
    mu, tau, ri, vi, rsm = _check_inputs(mu, tau, r0, v0)

    if tau == 0.0:
        return PropagationResult(ri, vi, True, 0, 0.0, 'goodyear')

    rsdvs = float(np.dot(ri, vi))
    vsm2 = float(np.dot(vi, vi))
    zsma = 2.0 / rsm - vsm2 / mu

    psi = tau * zsma if zsma > 0.0 else 0.0
    alp = vsm2 - 2.0 * mu / rsm

    s1 = 0.0
    s2 = 0.0
    gg = 0.0
    rfm = rsm
    dtau = -tau
    converged = False
    iterations = 0

    for iterations in range(1, max_iter + 1):
        psi2 = psi * psi
        psi3 = psi * psi2
        aas = alp * psi2
        zas = 1.0 / aas if aas != 0.0 else 0.0

        # Argument reduction: quarter aas (halve the angle) until |aas| <= 1
        m = 0
        while abs(aas) > GOODYEAR_REDUCTION_LIMIT:
            m += 1
            aas = 0.25 * aas

        pc5 = _horner(GOODYEAR_PC5_COEFFS, aas)
        pc4 = _horner(GOODYEAR_PC4_COEFFS, aas)
        pc3 = (0.5 + aas * pc5) / 3.0
        pc2 = 0.5 + aas * pc4
        pc1 = 1.0 + aas * pc3
        pc0 = 1.0 + aas * pc2

        if m > 0:
            for _ in range(m):
                pc1 = pc0 * pc1
                pc0 = 2.0 * pc0 * pc0 - 1.0
            pc2 = (pc0 - 1.0) * zas
            pc3 = (pc1 - 1.0) * zas

        s1 = pc1 * psi
        s2 = pc2 * psi2
        s3 = pc3 * psi3

        gg = rsm * s1 + rsdvs * s2
        dtau = gg + mu * s3 - tau
        rfm = abs(rsdvs * s1 + mu * s2 + rsm * pc0)

        if abs(dtau) < abs(tau) * tol:
            converged = True
            break
        psi = psi - dtau / rfm

    f = 1.0 - mu * s2 / rsm
    g = gg
    fdot = -mu * s1 / (rsm * rfm)
    gdot = 1.0 - mu * s2 / rfm

    result = PropagationResult(
        position=f * ri + g * vi,
        velocity=fdot * ri + gdot * vi,
        converged=converged,
        iterations=iterations,
        residual=abs(dtau),
        method='goodyear',
    )
    return _report(result, tau)


# =============================================================================
# STUMPFF FUNCTIONS
# =============================================================================

def stumpff(x: float) -> Tuple[float, float, float, float]:
    """
    Evaluate the Stumpff functions c0..c3 at *x*.

    For x > 0 with z = sqrt(x):

        c0 = cos z,  c1 = sin z / z,  c2 = (1 - cos z)/x,
        c3 = (z - sin z)/(x z)

    and the hyperbolic analogues for x < 0.  The argument is quartered until
    |x| <= 0.1, truncated series give c2 and c3, c1 and c0 follow from
    c1 = 1 - x*c3 and c0 = 1 - x*c2, and each quartering is undone with the
    double-argument formulas.

    Parameters
    ----------
    x : float
        Function argument (s^2 * alpha in the universal Kepler equation).

    Returns
    -------
    tuple of float
        (c0, c1, c2, c3).
    """
    n = 0
    while abs(x) > STUMPFF_REDUCTION_LIMIT:
        n += 1
        x = 0.25 * x

    c2 = 1.0 - x * (1.0 - x * (1.0 - x * (1.0 - x / 182.0) / 132.0) / 90.0) / 56.0
    c2 = (1.0 - x * (1.0 - x * c2 / 30.0) / 12.0) / 2.0
    c3 = 1.0 - x * (1.0 - x * (1.0 - x * (1.0 - x / 210.0) / 156.0) / 110.0) / 72.0
    c3 = (1.0 - x * (1.0 - x * c3 / 42.0) / 20.0) / 6.0
    c1 = 1.0 - x * c3
    c0 = 1.0 - x * c2

    while n > 0:
        n -= 1
        c3 = 0.25 * (c2 + c0 * c3)
        c2 = 0.5 * c1 * c1
        c1 = c0 * c1
        c0 = 2.0 * c0 * c0 - 1.0

    return c0, c1, c2, c3


# =============================================================================
# DANBY-STUMPFF
# =============================================================================

def _danby_initial_guess(mu: float, tau: float, r0: float, u: float, alpha: float):
    """
    Starting value of s for the universal Kepler equation.

    Returns ``(s, tau)``; for bound orbits tau comes back reduced modulo one
    orbital period.
    """
    if alpha > 0.0:
        # Elliptic: mean-anomaly based guess
        a = mu / alpha
        en = np.sqrt(mu / (a * a * a))
        ec = 1.0 - r0 / a
        es = u / (en * a * a)
        e = np.sqrt(ec * ec + es * es)
        period = TWO_PI / en
        tau = tau - np.trunc(en * tau / TWO_PI) * period
        if tau < 0.0:
            tau = tau + period

        y = en * tau - es
        z = es * np.cos(y) + ec * np.sin(y)
        sigma = 1.0 if z == 0.0 else float(np.sign(z))
        x = y + 0.85 * sigma * e
        return x / np.sqrt(alpha), tau

    r02 = r0 * r0
    r03 = r02 * r0

    if abs(tau * u / r02) < 1.0 and abs(tau * tau * (alpha / r02 + mu / r03)) < 3.0:
        # Short interval: two-stage Taylor expansion of s(t)
        t1 = 0.75 * tau
        t2 = 0.25 * tau

        s = (
            t1 / r0
            - 0.5 * t1 * t1 * u / r03
            + t1 ** 3 * (alpha - mu / r0 + 3.0 * u * u / r02) / (6.0 * r03)
            + t1 ** 4 * (u / (r02 * r03))
            * (-3.0 * alpha / 8.0 - 5.0 * u * u / (8.0 * r02) + 5.0 * mu / (12.0 * r0))
        )

        r1 = r0 * (1.0 - alpha * s * s / 2.0) + u * s * (1.0 - alpha * s * s / 6.0) + mu * s * s / 2.0
        u1 = (-r0 * alpha + mu) * s * (1.0 - s * s * alpha / 6.0) + u * (1.0 - alpha * s * s / 2.0)
        r12 = r1 * r1
        r13 = r1 * r12

        s = (
            s
            + t2 / r1
            - 0.5 * t2 * t2 * u1 / r13
            + t2 ** 3 * (alpha - mu / r1 + 3.0 * u1 * u1 / r12) / (6.0 * r13)
            + t2 ** 4 * (u1 / (r12 * r13))
            * (-3.0 * alpha / 8.0 - 5.0 * u1 * u1 / (8.0 * r12) + 5.0 * mu / (12.0 * r1))
        )
        return s, tau

    if alpha == 0.0:
        # Parabolic: dominant cubic term of tau = r0 s + u s^2/2 + mu s^3/6
        return float(np.cbrt(6.0 * tau / mu)), tau

    # Hyperbolic: logarithmic guess from the hyperbolic mean motion
    a = mu / alpha
    en = np.sqrt(-mu / (a * a * a))
    ch = 1.0 - r0 / a
    sh = u / np.sqrt(-a * mu)
    e = np.sqrt(ch * ch - sh * sh)
    dm = en * tau

    if dm > 0.0:
        s = np.log((2.0 * dm + 1.8 * e) / (ch + sh)) / np.sqrt(-alpha)
    else:
        s = -np.log((-2.0 * dm + 1.8 * e) / (ch - sh)) / np.sqrt(-alpha)
    return float(s), tau


def propagate_danby(
    mu: float,
    tau: float,
    r0,
    v0,
    tol: float = PROPAGATOR_TOLERANCE,
    max_iter: int = DANBY_MAX_ITER,
) -> PropagationResult:
    """
    Propagate a two-body state by *tau* with Danby's Stumpff-function method.

    Same contract as :func:`propagate_goodyear`; the two implementations are
    independent and serve as cross-checks of each other.

    The universal Kepler equation

        f(s) = r0*c1 + u*c2 + mu*c3 - tau = 0,  c_k scaled by s^k

    is solved from an orbit-type-specific guess with the correction sequence

        ds = -f / fp
        ds = -f / (fp + ds*fpp/2)
        ds = -f / (fp + ds*fpp/2 + ds^2*fppp/6)

    until |ds| < tol or *max_iter* corrections have been applied.

    Parameters
    ----------
    mu : float
        Gravitational parameter.
    tau : float
        Signed propagation interval.
    r0, v0 : array-like
        Initial position and velocity.
    tol : float
        Absolute tolerance on the correction in s.
    max_iter : int
        Iteration cap.

    Returns
    -------
    PropagationResult
        Final state and convergence diagnostics.
    """
    mu, tau, ri, vi, r0_mag = _check_inputs(mu, tau, r0, v0)

    if tau == 0.0:
        return PropagationResult(ri, vi, True, 0, 0.0, 'danby')

    v02 = float(np.dot(vi, vi))
    alpha = 2.0 * mu / r0_mag - v02
    u = float(np.dot(ri, vi))

    s, tau = _danby_initial_guess(mu, tau, r0_mag, u, alpha)

    c1 = c2 = c3 = 0.0
    fp = r0_mag
    ds = np.inf
    converged = False
    iterations = 0

    for iterations in range(1, max_iter + 1):
        c0, c1, c2, c3 = stumpff(s * s * alpha)
        c1 = c1 * s
        c2 = c2 * s * s
        c3 = c3 * s * s * s

        f = r0_mag * c1 + u * c2 + mu * c3 - tau
        fp = r0_mag * c0 + u * c1 + mu * c2
        fpp = (-r0_mag * alpha + mu) * c1 + u * c0
        fppp = (-r0_mag * alpha + mu) * c0 - u * alpha * c1

        ds = -f / fp
        ds = -f / (fp + ds * fpp / 2.0)
        ds = -f / (fp + ds * fpp / 2.0 + ds * ds * fppp / 6.0)
        s = s + ds

        if abs(ds) < tol:
            converged = True
            break

    f = 1.0 - (mu / r0_mag) * c2
    g = tau - mu * c3
    fdot = -(mu / (fp * r0_mag)) * c1
    gdot = 1.0 - (mu / fp) * c2

    result = PropagationResult(
        position=f * ri + g * vi,
        velocity=fdot * ri + gdot * vi,
        converged=converged,
        iterations=iterations,
        residual=float(abs(ds)),
        method='danby',
    )
    return _report(result, tau)


# =============================================================================
# DISPATCH
# =============================================================================

PROPAGATORS: Dict[str, Callable[..., PropagationResult]] = {
    'goodyear': propagate_goodyear,
    'danby': propagate_danby,
}


def get_propagator(method: str) -> Callable[..., PropagationResult]:
    """
    Look up a propagator by name.

    Args:
        method: 'goodyear' or 'danby' (case-insensitive)

    Returns:
        The propagation function

    Raises:
        InvalidConfigurationError: If the name is not recognized
    """
    key = str(method).lower()
    if key not in PROPAGATORS:
        raise InvalidConfigurationError(
            f"Unknown propagator: {method}. Valid: {list(PROPAGATORS.keys())}"
        )
    return PROPAGATORS[key]
