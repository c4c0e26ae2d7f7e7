"""
Plotting Utilities for Two-Body Sessions
Publication-quality plots using matplotlib.
Consistent styling, 3D orbit plots, energy-error time histories.
"""

import os

import numpy as np
import matplotlib
matplotlib.use('Agg')  # Non-interactive backend for saving
import matplotlib.pyplot as plt
from mpl_toolkits.mplot3d import Axes3D  # noqa: F401  registers the 3d projection


# ---------------------------------------------------------------------------
# PlotStyle -- shared styling helpers
# ---------------------------------------------------------------------------

class PlotStyle:
    """Centralised styling and figure management for all project plots."""

    COLORS = {
        'primary': '#2E86AB',      # Steel blue
        'secondary': '#A23B72',    # Magenta
        'accent1': '#F18F01',      # Orange
        'accent2': '#C73E1D',      # Red
        'neutral': '#546E7A',      # Blue grey
    }

    # Color sequence for multi-line plots (colorblind-friendly)
    PALETTE = ['#2E86AB', '#F18F01', '#2E7D32', '#C73E1D', '#7B1FA2', '#00838F']

    @staticmethod
    def setup_style():
        """Set matplotlib rcParams for clean, high-DPI figures."""
        plt.rcParams.update({
            'font.family': 'sans-serif',
            'font.size': 11,
            'axes.labelsize': 12,
            'axes.titlesize': 14,
            'axes.titleweight': 'bold',
            'legend.fontsize': 10,

            'figure.figsize': (10, 6),
            'figure.dpi': 100,
            'savefig.dpi': 200,
            'savefig.bbox': 'tight',

            'axes.grid': True,
            'axes.spines.top': False,
            'axes.spines.right': False,
            'axes.prop_cycle': plt.cycler(color=PlotStyle.PALETTE),

            'grid.color': '#E0E0E0',
            'grid.linewidth': 0.5,
            'lines.linewidth': 1.8,
        })

    @staticmethod
    def create_figure(nrows=1, ncols=1, figsize=None):
        """Return (fig, axes) with tight_layout enabled."""
        fig, axes = plt.subplots(nrows, ncols, figsize=figsize, layout='tight')
        return fig, axes

    @staticmethod
    def save_figure(fig, filepath, dpi=200):
        """Save *fig* to *filepath*, creating parent directories, and close it."""
        directory = os.path.dirname(filepath)
        if directory:
            os.makedirs(directory, exist_ok=True)
        fig.savefig(filepath, dpi=dpi)
        plt.close(fig)


def plot_orbit_paths(conic_points, path_arrays, labels, title, filepath):
    """3-D plot of the analytic conic and the sampled solver paths.

    Parameters
    ----------
    conic_points : array-like, (M, 3)
        Closed polyline from ``KeplerConic.sample``; may be empty.
    path_arrays : list of ndarray, each (N, 3)
        Position histories (e.g. integrator and propagator paths).
    labels : list of str
        Legend label for each path.
    title : str
    filepath : str
    """
    PlotStyle.setup_style()
    fig = plt.figure(figsize=(10, 8))
    ax = fig.add_subplot(111, projection='3d')

    ax.scatter([0.0], [0.0], [0.0], color=PlotStyle.COLORS['accent1'], s=60, label='Primary')

    conic = np.asarray(conic_points, dtype=float)
    if conic.size:
        ax.plot(conic[:, 0], conic[:, 1], conic[:, 2],
                color=PlotStyle.COLORS['neutral'], linestyle='--',
                linewidth=1.0, label='Conic')

    for idx, (pos, lbl) in enumerate(zip(path_arrays, labels)):
        pos = np.asarray(pos, dtype=float)
        ax.plot(pos[:, 0], pos[:, 1], pos[:, 2],
                color=PlotStyle.PALETTE[idx % len(PlotStyle.PALETTE)], label=lbl)

    ax.set_xlabel('X')
    ax.set_ylabel('Y')
    ax.set_zlabel('Z')
    ax.set_title(title)
    ax.legend(loc='upper left', fontsize=9)
    PlotStyle.save_figure(fig, filepath)


def plot_state_history(times, state_arrays, labels, title, filepath, log_scale=False):
    """Plot one or more signals vs time.

    Parameters
    ----------
    times : array-like
    state_arrays : list of array-like
    labels : list of str
    title : str
    filepath : str
    log_scale : bool
        Use a logarithmic y axis (energy errors span many decades).
    """
    PlotStyle.setup_style()
    fig, ax = PlotStyle.create_figure(figsize=(10, 6))
    for sig, lbl in zip(state_arrays, labels):
        ax.plot(times, sig, label=lbl)
    if log_scale:
        ax.set_yscale('log')
    ax.set_xlabel('Time')
    ax.set_title(title)
    ax.legend()
    PlotStyle.save_figure(fig, filepath)
