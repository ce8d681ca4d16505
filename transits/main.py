"""
Main entry point for transit light-curve computations.

This module provides command-line interfaces for:
- Resolving an orbit from a configuration file
- Evaluating and saving a limb-darkened transit light curve
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional

import numpy as np

from transits.errors import OrbitValidationError
from transits.physics.limb_darkening import QuadLimbDark
from transits.physics.orbit import Orbit, build_orbit, position
from transits.physics.transit_model import compute_light_curve
from transits.physics.kepler_dynamics import compute_transit_duration
from transits.utils.config import TransitsConfig, load_config
from transits.utils.logging import setup_logging

logger = logging.getLogger(__name__)


def _configure(config_path: str, log_level: Optional[str]) -> TransitsConfig:
    config = load_config(config_path)
    setup_logging(
        log_dir=Path(config.global_config.logs_dir),
        log_level=log_level or config.global_config.log_level
    )
    return config


def resolve_orbit(config_path: str, log_level: Optional[str] = None) -> Orbit:
    """
    Resolve and log the orbit described in a configuration file.

    Parameters
    ----------
    config_path : str
        Path to the YAML configuration.
    log_level : str, optional
        Override the log level from the configuration.

    Returns
    -------
    Orbit
        The resolved orbit.
    """
    config = _configure(config_path, log_level)
    orbit = build_orbit(**config.orbit)

    logger.info(f"Resolved orbit from {config_path}")
    for name, value in orbit.to_dict().items():
        logger.info(f"  {name:>16s} = {value}")

    return orbit


def run_light_curve(
    config_path: str,
    output_path: Optional[str] = None,
    log_level: Optional[str] = None
) -> Path:
    """
    Evaluate the configured light curve and save it as an .npz archive.

    The archive holds the arrays ``time``, ``flux``, ``x``, ``y`` and ``z``.

    Parameters
    ----------
    config_path : str
        Path to the YAML configuration.
    output_path : str, optional
        Override the output path from the configuration.
    log_level : str, optional
        Override the log level from the configuration.

    Returns
    -------
    Path
        Path of the written archive.
    """
    config = _configure(config_path, log_level)
    logger.info("Starting light curve computation")

    orbit = build_orbit(**config.orbit)
    model = QuadLimbDark.from_coefficients(config.limb_darkening.u)
    lc = config.light_curve

    logger.info(
        f"Orbit: P={orbit.period:.6g} d, a/R_star={orbit.aR_star:.6g}, "
        f"b={orbit.b:.4f}, e={orbit.ecc:.4f}"
    )
    if orbit.is_circular:
        duration = compute_transit_duration(orbit.period, orbit.aR_star, orbit.b, lc.r)
        logger.info(f"Transit duration (T14): {duration:.6g} d")

    time = np.linspace(lc.t_start, lc.t_stop, lc.n_points)
    flux = compute_light_curve(orbit, model, time, lc.r, solver=config.solver)
    x, y, z = position(orbit, time, solver=config.solver)

    logger.info(
        f"Evaluated {lc.n_points} points, minimum flux {flux.min():.6f} "
        f"(depth {1.0 - flux.min():.3e})"
    )

    output_path = Path(output_path or config.output.path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    np.savez(output_path, time=time, flux=flux, x=x, y=y, z=z)
    logger.info(f"Saved light curve to {output_path}")

    return output_path


def main(argv=None) -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Keplerian orbits and limb-darkened transit light curves"
    )

    subparsers = parser.add_subparsers(dest='command', help='Command to run')

    # Light curve command
    lc_parser = subparsers.add_parser('lightcurve', help='Compute a transit light curve')
    lc_parser.add_argument(
        '--config',
        type=str,
        default='configs/default.yaml',
        help='Configuration file'
    )
    lc_parser.add_argument(
        '--output',
        type=str,
        default=None,
        help='Output .npz path (overrides config)'
    )
    lc_parser.add_argument(
        '--log-level',
        type=str,
        default=None,
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        help='Logging level (overrides config)'
    )

    # Orbit command
    orbit_parser = subparsers.add_parser('orbit', help='Resolve and print an orbit')
    orbit_parser.add_argument(
        '--config',
        type=str,
        default='configs/default.yaml',
        help='Configuration file'
    )
    orbit_parser.add_argument(
        '--log-level',
        type=str,
        default=None,
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        help='Logging level (overrides config)'
    )

    args = parser.parse_args(argv)

    try:
        if args.command == 'lightcurve':
            run_light_curve(
                config_path=args.config,
                output_path=args.output,
                log_level=args.log_level
            )
        elif args.command == 'orbit':
            resolve_orbit(config_path=args.config, log_level=args.log_level)
        else:
            parser.print_help()
            return 1
    except OrbitValidationError as e:
        logger.error(f"Invalid orbit parameters: {e}")
        return 2

    return 0


if __name__ == '__main__':
    sys.exit(main())
