"""
===============================================================================
TWOBODY - Input Validation
===============================================================================
Error taxonomy shared by every component, plus the small helpers that coerce
and check caller input before it reaches the numerical code.

    SingularStateError        -- zero-length position vector.  The
                                 acceleration, energy and conic formulas all
                                 divide by |r|; the origin is not a supported
                                 regime.
    InvalidConfigurationError -- non-positive masses, non-finite times or
                                 tolerances, unknown option names.

Both derive from ValueError so callers that already guard numerical input
with ``except ValueError`` keep working.

Non-convergence of an iterative solver is deliberately *not* an exception:
it is reported through result flags (see dynamics.propagators and
dynamics.integrators).
===============================================================================
"""

import numpy as np


class SingularStateError(ValueError):
    """Raised when a state vector makes the two-body equations undefined."""


class InvalidConfigurationError(ValueError):
    """Raised when physical parameters or run options are unusable."""


def as_vector3(value, name: str = 'vector') -> np.ndarray:
    """
    Coerce *value* to a finite float64 array of shape (3,).

    Parameters
    ----------
    value : array-like
        Three components.
    name : str
        Label used in the error message.

    Returns
    -------
    np.ndarray
        A new (3,) float64 array.

    Raises
    ------
    InvalidConfigurationError
        If the input is not 3-element or contains NaN/Inf.
    """
    arr = np.array(value, dtype=np.float64)
    if arr.shape != (3,):
        raise InvalidConfigurationError(
            f"{name} must have 3 components, got shape {arr.shape}"
        )
    if not np.all(np.isfinite(arr)):
        raise InvalidConfigurationError(f"{name} must be finite, got {arr}")
    return arr


def require_finite(value: float, name: str) -> float:
    """Return *value* as float, rejecting NaN and infinities."""
    try:
        out = float(value)
    except (TypeError, ValueError) as exc:
        raise InvalidConfigurationError(f"{name} must be a number, got {value!r}") from exc
    if not np.isfinite(out):
        raise InvalidConfigurationError(f"{name} must be finite, got {out}")
    return out


def require_positive(value: float, name: str) -> float:
    """Return *value* as float, rejecting non-finite and non-positive values."""
    out = require_finite(value, name)
    if out <= 0.0:
        raise InvalidConfigurationError(f"{name} must be > 0, got {out}")
    return out


def require_nonzero_position(position: np.ndarray) -> float:
    """
    Return |position|, raising SingularStateError at the origin.

    Parameters
    ----------
    position : np.ndarray
        (3,) position vector.

    Returns
    -------
    float
        Euclidean norm of *position*.
    """
    r_mag = float(np.linalg.norm(position))
    if r_mag == 0.0:
        raise SingularStateError("Position is at the origin; the two-body problem is singular.")
    if not np.isfinite(r_mag):
        raise SingularStateError(f"Position magnitude is not finite: {r_mag}")
    return r_mag
