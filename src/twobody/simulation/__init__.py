"""
===============================================================================
TWOBODY - Simulation Package
===============================================================================
Session layer that drives the closed-form and numerical solution paths side
by side, once per external tick.

Modules:
    orbit_session : OrbitSession, create_orbit, TickDiagnostics
===============================================================================
"""
