"""
===============================================================================
TWOBODY - Visualization Package
===============================================================================
Static matplotlib output for sampled trajectories and session telemetry.
Consumes points and DataFrames only; never touches the solvers.

Modules:
    plot_utils : PlotStyle, plot_orbit_paths, plot_state_history
===============================================================================
"""
