"""
===============================================================================
TWOBODY - Physical and Numerical Constants
===============================================================================
Defaults for every orbit session.  Nothing in this module is mutated at
runtime; each session copies the values it needs into its own configuration.

Units are caller-defined.  The simulation defaults (G = 1) are dimensionless;
the worked Earth example uses kilometres and seconds.
===============================================================================
"""

import numpy as np


# =============================================================================
# MATHEMATICAL CONSTANTS
# =============================================================================
TWO_PI = 2.0 * np.pi
CUBE_ROOT_TWO = 2.0 ** (1.0 / 3.0)

# =============================================================================
# PHYSICAL DEFAULTS
# =============================================================================
DEFAULT_G = 1.0                        # Simulation-convenience gravitational constant
EARTH_MU_KM = 398600.4415              # km^3/s^2, worked propagator example

# =============================================================================
# ROOT SOLVING (universal-variable propagators)
# =============================================================================
PROPAGATOR_TOLERANCE = 1.0e-8          # relative on time for Goodyear, absolute on s for Danby
GOODYEAR_MAX_ITER = 20
DANBY_MAX_ITER = 10

# Goodyear truncated series coefficients, lowest power first (Horner order)
GOODYEAR_PC5_COEFFS = (
    0.025,
    0.025 / 42.0,
    0.025 / 42.0 / 72.0,
    0.025 / 42.0 / 72.0 / 110.0,
    0.025 / 42.0 / 72.0 / 110.0 / 156.0,
    0.025 / 42.0 / 72.0 / 110.0 / 156.0 / 210.0,
    0.025 / 42.0 / 72.0 / 110.0 / 156.0 / 210.0 / 272.0,
    0.025 / 42.0 / 72.0 / 110.0 / 156.0 / 210.0 / 272.0 / 342.0,
)
GOODYEAR_PC4_COEFFS = (
    1.0 / 24.0,
    1.0 / 24.0 / 30.0,
    1.0 / 24.0 / 30.0 / 56.0,
    1.0 / 24.0 / 30.0 / 56.0 / 90.0,
    1.0 / 24.0 / 30.0 / 56.0 / 90.0 / 132.0,
    1.0 / 24.0 / 30.0 / 56.0 / 90.0 / 132.0 / 182.0,
    1.0 / 24.0 / 30.0 / 56.0 / 90.0 / 132.0 / 182.0 / 240.0,
    1.0 / 24.0 / 30.0 / 56.0 / 90.0 / 132.0 / 182.0 / 240.0 / 306.0,
)
GOODYEAR_REDUCTION_LIMIT = 1.0         # reduce while |alp * psi^2| exceeds this
STUMPFF_REDUCTION_LIMIT = 0.1          # reduce while |x| exceeds this

# =============================================================================
# ADAPTIVE INTEGRATION
# =============================================================================
DEFAULT_TOLERANCE = 1.0e-8             # absolute energy error per tick
MAX_SUB_STEPS = 200
SUB_STEP_SEED_FACTOR = 1.1             # seed = floor(1.1 * |v|^2)

# Yoshida 4th-order composition
YOSHIDA_W0 = -CUBE_ROOT_TWO / (2.0 - CUBE_ROOT_TWO)
YOSHIDA_W1 = 1.0 / (2.0 - CUBE_ROOT_TWO)
YOSHIDA_C1 = 0.5 * YOSHIDA_W1
YOSHIDA_C2 = 0.5 * (YOSHIDA_W0 + YOSHIDA_W1)

KERNELS = ('verlet', 'yoshida')
PROPAGATORS = ('goodyear', 'danby')

# =============================================================================
# DRIVER DEFAULTS
# =============================================================================
DEFAULT_FRAME_DT = 1.0 / 60.0          # wall-clock frame interval (s)
DEFAULT_TIME_SCALE = 0.05              # simulation time per wall-clock second
DEFAULT_TICKS = 100
DEFAULT_SEGMENTS = 128                 # trajectory polyline resolution
