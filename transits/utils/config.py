"""
Configuration loader for transit light-curve runs.

This module loads and validates the YAML files that drive the command line
interface: the orbit parameters, the limb-darkening coefficients, the time
grid to evaluate and where to write the result.
"""

import yaml
from pathlib import Path
from typing import Any, Dict
from dataclasses import dataclass, field

from transits.physics.kepler_dynamics import (
    DEFAULT_KEPLER_MAX_ITERATIONS,
    DEFAULT_KEPLER_TOLERANCE,
)


@dataclass
class SolverConfig:
    """Settings of the Kepler equation solver."""
    kepler_tolerance: float = DEFAULT_KEPLER_TOLERANCE
    kepler_max_iterations: int = DEFAULT_KEPLER_MAX_ITERATIONS


@dataclass
class GlobalConfig:
    """Global configuration settings."""
    logs_dir: str = "outputs/logs"
    log_level: str = "INFO"


@dataclass
class LimbDarkeningConfig:
    """Limb-darkening coefficients (up to two)."""
    u: list = field(default_factory=list)


@dataclass
class LightCurveConfig:
    """Time grid and occultor size of the light curve."""
    r: float = 0.1
    t_start: float = -0.5
    t_stop: float = 0.5
    n_points: int = 1000


@dataclass
class OutputConfig:
    """Where results are written."""
    path: str = "outputs/light_curve.npz"


@dataclass
class TransitsConfig:
    """Complete configuration structure."""
    global_config: GlobalConfig = field(default_factory=GlobalConfig)
    solver: SolverConfig = field(default_factory=SolverConfig)
    orbit: Dict[str, Any] = field(default_factory=dict)
    limb_darkening: LimbDarkeningConfig = field(default_factory=LimbDarkeningConfig)
    light_curve: LightCurveConfig = field(default_factory=LightCurveConfig)
    output: OutputConfig = field(default_factory=OutputConfig)


def load_config(config_path: str, create_directories: bool = True) -> TransitsConfig:
    """
    Load and validate configuration from YAML file.

    Parameters
    ----------
    config_path : str
        Path to the YAML configuration file.
    create_directories : bool
        Create the log and output directories named in the file.

    Returns
    -------
    TransitsConfig
        Validated configuration object.

    Raises
    ------
    FileNotFoundError
        If the config file does not exist.
    ValueError
        If the configuration is invalid.
    """
    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(config_path, 'r') as f:
        config_dict = yaml.safe_load(f)

    if config_dict is None:
        raise ValueError("Configuration file is empty or invalid")
    if not isinstance(config_dict, dict):
        raise ValueError("Configuration file must contain a mapping at the top level")

    global_dict = config_dict.get('global') or {}
    global_config = GlobalConfig(
        logs_dir=global_dict.get('logs_dir', 'outputs/logs'),
        log_level=global_dict.get('log_level', 'INFO')
    )

    solver_dict = config_dict.get('solver') or {}
    solver_config = SolverConfig(
        kepler_tolerance=float(solver_dict.get('kepler_tolerance', DEFAULT_KEPLER_TOLERANCE)),
        kepler_max_iterations=int(
            solver_dict.get('kepler_max_iterations', DEFAULT_KEPLER_MAX_ITERATIONS)
        )
    )

    ld_dict = config_dict.get('limb_darkening') or {}
    ld_config = LimbDarkeningConfig(u=list(ld_dict.get('u', [])))

    lc_dict = config_dict.get('light_curve') or {}
    lc_config = LightCurveConfig(
        r=float(lc_dict.get('r', 0.1)),
        t_start=float(lc_dict.get('t_start', -0.5)),
        t_stop=float(lc_dict.get('t_stop', 0.5)),
        n_points=int(lc_dict.get('n_points', 1000))
    )

    output_dict = config_dict.get('output') or {}
    output_config = OutputConfig(
        path=output_dict.get('path', 'outputs/light_curve.npz')
    )

    transits_config = TransitsConfig(
        global_config=global_config,
        solver=solver_config,
        orbit=dict(config_dict.get('orbit') or {}),
        limb_darkening=ld_config,
        light_curve=lc_config,
        output=output_config
    )

    # Validate configuration
    _validate_config(transits_config)

    if create_directories:
        _create_directories(transits_config)

    return transits_config


def _validate_config(config: TransitsConfig) -> None:
    """
    Validate configuration for required fields and logical consistency.

    Parameters
    ----------
    config : TransitsConfig
        Configuration to validate.

    Raises
    ------
    ValueError
        If validation fails.
    """
    if not config.orbit:
        raise ValueError("An `orbit` section with the orbital parameters is required")

    if len(config.limb_darkening.u) > 2:
        raise ValueError(
            f"At most 2 limb darkening coefficients are supported, "
            f"got {len(config.limb_darkening.u)}"
        )

    lc = config.light_curve
    if lc.r < 0:
        raise ValueError(f"Radius ratio must be non-negative, got {lc.r}")
    if lc.n_points < 1:
        raise ValueError(f"n_points must be positive, got {lc.n_points}")
    if lc.t_stop < lc.t_start:
        raise ValueError(
            f"t_stop ({lc.t_stop}) must not be earlier than t_start ({lc.t_start})"
        )

    solver = config.solver
    if solver.kepler_max_iterations < 1:
        raise ValueError("kepler_max_iterations must be at least 1")
    if solver.kepler_tolerance <= 0:
        raise ValueError("kepler_tolerance must be positive")


def _create_directories(config: TransitsConfig) -> None:
    """
    Create necessary directory structure based on configuration.

    Parameters
    ----------
    config : TransitsConfig
        Configuration object.
    """
    dirs_to_create = [
        config.global_config.logs_dir,
        str(Path(config.output.path).parent),
    ]

    for dir_path in dirs_to_create:
        Path(dir_path).mkdir(parents=True, exist_ok=True)
