#!/usr/bin/env python3
"""
===============================================================================
TWOBODY - MAIN ENTRY POINT
===============================================================================
Runs one orbit session from a YAML configuration: the closed-form propagator
and the adaptive integrator advance side by side for a number of ticks, and
the telemetry, summary and optional plots are written to the output
directory.

USAGE:
    python -m twobody.main                          # config/orbit_config.yaml
    python -m twobody.main --config my_orbit.yaml
    python -m twobody.main --ticks 500 --kernel yoshida
    python -m twobody.main --propagator danby --plot

OUTPUTS:
    output/telemetry.csv      - Per-tick states and energy diagnostics
    output/simulation.log     - Run log
    output/plots/             - Orbit and energy-error plots (--plot)

DEPENDENCIES:
    numpy, pandas, matplotlib, pyyaml
===============================================================================
"""

import argparse
import copy
import logging
import os
import sys
import time
from pathlib import Path
from typing import Any, Dict, Optional

import numpy as np
import yaml

from twobody.core.constants import (
    DEFAULT_FRAME_DT,
    DEFAULT_G,
    DEFAULT_SEGMENTS,
    DEFAULT_TICKS,
    DEFAULT_TIME_SCALE,
    DEFAULT_TOLERANCE,
    KERNELS,
    MAX_SUB_STEPS,
    PROPAGATORS,
    SUB_STEP_SEED_FACTOR,
)
from twobody.core.validation import InvalidConfigurationError, require_positive
from twobody.simulation.orbit_session import OrbitSession, session_from_config

PROJECT_ROOT = Path(__file__).resolve().parents[2]
DEFAULT_CONFIG_PATH = PROJECT_ROOT / 'config' / 'orbit_config.yaml'

logger = logging.getLogger('TWOBODY_MAIN')

DEFAULT_CONFIG: Dict[str, Any] = {
    'orbit': {
        'm1': 1000.0,
        'm2': 1.0,
        'G': DEFAULT_G,
        'position': [5.0, 0.0, 0.0],
        'velocity': [0.0, 0.0, 10.0],
    },
    'integration': {
        'tolerance': DEFAULT_TOLERANCE,
        'max_sub_steps': MAX_SUB_STEPS,
        'kernel': 'verlet',
        'seed_factor': SUB_STEP_SEED_FACTOR,
    },
    'propagation': {
        'method': 'goodyear',
    },
    'driver': {
        'frame_dt': DEFAULT_FRAME_DT,
        'time_scale': DEFAULT_TIME_SCALE,
        'ticks': DEFAULT_TICKS,
        'trajectory_segments': DEFAULT_SEGMENTS,
    },
    'output': {
        'directory': 'output',
        'plots': False,
    },
}


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively overlay *override* onto a copy of *base*."""
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(config_path: Optional[str] = None) -> dict:
    """
    Load the orbit configuration from a YAML file.

    Keys missing from the file fall back to DEFAULT_CONFIG.

    Args:
        config_path: Path to YAML config. Defaults to config/orbit_config.yaml;
            if that default file does not exist the built-in defaults are used.

    Returns:
        Dictionary of run configuration parameters

    Raises:
        FileNotFoundError: If an explicit config_path does not exist
        InvalidConfigurationError: If the document is not a mapping
    """
    if config_path is None:
        if not DEFAULT_CONFIG_PATH.exists():
            logger.warning("No config at %s; using built-in defaults", DEFAULT_CONFIG_PATH)
            return copy.deepcopy(DEFAULT_CONFIG)
        config_path = str(DEFAULT_CONFIG_PATH)

    logger.info("Loading configuration from: %s", config_path)
    with open(config_path, 'r') as f:
        loaded = yaml.safe_load(f) or {}
    if not isinstance(loaded, dict):
        raise InvalidConfigurationError(
            f"Configuration must be a mapping, got {type(loaded).__name__}"
        )
    return _merge(DEFAULT_CONFIG, loaded)


def setup_logging(output_dir: str, level: int = logging.INFO) -> None:
    """Log to stdout and to <output_dir>/simulation.log."""
    os.makedirs(output_dir, exist_ok=True)
    logging.basicConfig(
        level=level,
        format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
        handlers=[
            logging.StreamHandler(sys.stdout),
            logging.FileHandler(os.path.join(output_dir, 'simulation.log'), mode='w'),
        ],
        force=True,
    )


def run_session(config: dict, output_dir: str) -> OrbitSession:
    """
    Build the session, run the configured number of ticks and write outputs.

    Args:
        config: Merged run configuration
        output_dir: Directory for telemetry and plots

    Returns:
        The finished OrbitSession
    """
    driver = config['driver']
    frame_dt = require_positive(driver['frame_dt'], 'frame_dt')
    time_scale = require_positive(driver['time_scale'], 'time_scale')
    n_ticks = int(driver['ticks'])
    dt = time_scale * frame_dt

    logger.info("=" * 60)
    logger.info("STARTING ORBIT SESSION")
    logger.info("Ticks: %d   dt per tick: %.6g", n_ticks, dt)
    logger.info("=" * 60)

    session = session_from_config(config)

    start = time.time()
    session.run(n_ticks, dt)
    logger.info("Session completed in %.2f seconds wall time", time.time() - start)

    csv_path = os.path.join(output_dir, 'telemetry.csv')
    session.save_telemetry(csv_path)
    session.get_summary()

    if config['output'].get('plots'):
        generate_plots(session, os.path.join(output_dir, 'plots'),
                       int(driver.get('trajectory_segments', DEFAULT_SEGMENTS)))

    return session


def generate_plots(session: OrbitSession, plot_dir: str, segments: int) -> None:
    """Write the orbit comparison and energy-error plots."""
    from twobody.visualization.plot_utils import plot_orbit_paths, plot_state_history

    telemetry = session.get_telemetry()
    if telemetry.empty:
        logger.warning("No telemetry to plot")
        return

    integrator_path = telemetry[['int_pos_x', 'int_pos_y', 'int_pos_z']].values
    propagator_path = telemetry[['prop_pos_x', 'prop_pos_y', 'prop_pos_z']].values
    plot_orbit_paths(
        session.trajectory(segments),
        [integrator_path, propagator_path],
        ['Integrator (%s)' % session.integrator.kernel_name,
         'Propagator (%s)' % session.propagator_name],
        'Two-Body Orbit',
        os.path.join(plot_dir, 'orbit_paths.png'),
    )

    times = telemetry.index.values
    plot_state_history(
        times,
        [np.maximum(telemetry['energy_error'].values, 1e-300),
         np.maximum(telemetry['propagator_energy_error'].values, 1e-300)],
        ['Integrator |dE|', 'Propagator |dE|'],
        'Energy Error vs Time',
        os.path.join(plot_dir, 'energy_error.png'),
        log_scale=True,
    )
    logger.info("Plots written to %s", plot_dir)


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description='Two-body orbit: closed-form propagator vs adaptive integrator'
    )
    parser.add_argument('--config', type=str, default=None,
                        help='Path to YAML configuration file')
    parser.add_argument('--ticks', type=int, default=None,
                        help='Number of ticks to run (overrides config)')
    parser.add_argument('--kernel', choices=KERNELS, default=None,
                        help='Integrator stepping kernel')
    parser.add_argument('--propagator', choices=PROPAGATORS, default=None,
                        help='Closed-form propagator')
    parser.add_argument('--output', type=str, default=None,
                        help='Output directory (overrides config)')
    parser.add_argument('--plot', action='store_true',
                        help='Write orbit and energy-error plots')
    parser.add_argument('--verbose', action='store_true',
                        help='Enable DEBUG logging')
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    config = load_config(args.config)

    if args.ticks is not None:
        config['driver']['ticks'] = args.ticks
    if args.kernel is not None:
        config['integration']['kernel'] = args.kernel
    if args.propagator is not None:
        config['propagation']['method'] = args.propagator
    if args.output is not None:
        config['output']['directory'] = args.output
    if args.plot:
        config['output']['plots'] = True

    output_dir = str(config['output']['directory'])
    setup_logging(output_dir, logging.DEBUG if args.verbose else logging.INFO)

    try:
        run_session(config, output_dir)
    except ValueError as exc:
        logger.error("Invalid orbit configuration: %s", exc)
        return 2
    return 0


if __name__ == '__main__':
    sys.exit(main())
