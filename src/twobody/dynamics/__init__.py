"""
===============================================================================
TWOBODY - Dynamics Package
===============================================================================
Physics of the two-body problem in the primary-centred frame.

Submodules:
    orbital_state -- OrbitalState snapshot and PhysicalParameters
    conserved     -- Energy, angular momentum and gravitational acceleration
    conic         -- Analytic conic (ellipse/hyperbola) model for sampling
    propagators   -- Goodyear and Danby-Stumpff universal-variable propagators
    integrators   -- Velocity-Verlet / Yoshida kernels, adaptive sub-stepping
===============================================================================
"""
