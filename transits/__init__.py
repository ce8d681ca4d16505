"""
Keplerian orbits and analytic transits of limb-darkened stars.

This package provides:
- Resolution of flexible orbital parameter sets into a canonical orbit
- Positions of both bodies in sky coordinates
- Analytic occulted flux for uniform, linear and quadratic limb darkening
- Transit light curves
"""

__version__ = "0.1.0"

from .errors import OrbitValidationError
from .physics import (
    KeplerianOrbit,
    Orbit,
    QuadLimbDark,
    build_orbit,
    compute_light_curve,
    flip,
    flux,
    planet_position,
    position,
    star_position,
)

__all__ = [
    'OrbitValidationError',
    'KeplerianOrbit',
    'Orbit',
    'QuadLimbDark',
    'build_orbit',
    'compute_light_curve',
    'flip',
    'flux',
    'planet_position',
    'position',
    'star_position',
]
