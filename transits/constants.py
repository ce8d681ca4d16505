"""
Physical constants in the solar unit system used throughout the package.

All orbit quantities are plain floats expressed in solar radii, solar masses
and days. Densities are in solar masses per cubic solar radius.
"""

import numpy as np

# Gravitational constant in R_sun^3 M_sun^-1 day^-2
G_NOM = 2942.2062175044193

TWO_PI = 2.0 * np.pi
