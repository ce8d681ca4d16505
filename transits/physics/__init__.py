"""
Physics of transiting systems.

This module provides:
- Keplerian orbit resolution and sky positions
- Kepler's equation and orbital geometry helpers
- Analytic occultation of a quadratically limb-darkened star
- Transit light curves
"""

from .orbit import Orbit, KeplerianOrbit, build_orbit, position, star_position, planet_position, flip
from .limb_darkening import QuadLimbDark, flux
from .transit_model import compute_light_curve

__all__ = [
    'Orbit',
    'KeplerianOrbit',
    'build_orbit',
    'position',
    'star_position',
    'planet_position',
    'flip',
    'QuadLimbDark',
    'flux',
    'compute_light_curve',
]
