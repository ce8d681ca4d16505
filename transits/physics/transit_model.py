"""
Transit light curves of limb-darkened stars on Keplerian orbits.

This module composes the orbit engine and the analytic occultation model:
the orbit gives the sky-projected separation b(t) of the two bodies and the
limb-darkening model turns (b, r) into a relative flux.

Scientific Context:
    When a planet passes in front of its host star, it blocks a fraction of
    the stellar light, causing a periodic dip in brightness. The depth and
    shape of this dip encode:
    - Planet-to-star radius ratio (Rp/Rs)
    - Orbital period (P) and scaled semi-major axis (a/Rs)
    - Impact parameter (b)
    - Stellar limb darkening coefficients

References:
    Mandel & Agol (2002), ApJ, 580, L171
"""

import numpy as np

from transits.physics.limb_darkening import QuadLimbDark, flux
from transits.physics.orbit import Orbit, position


def quadratic_limb_darkening(mu: np.ndarray, u1: float, u2: float) -> np.ndarray:
    """
    Quadratic limb darkening law.

    I(mu) / I(1) = 1 - u1*(1-mu) - u2*(1-mu)^2

    Parameters
    ----------
    mu : np.ndarray
        Cosine of angle from stellar center (0 to 1).
    u1 : float
        First limb darkening coefficient.
    u2 : float
        Second limb darkening coefficient.

    Returns
    -------
    np.ndarray
        Limb darkening factor.
    """
    return 1.0 - u1 * (1.0 - mu) - u2 * (1.0 - mu) ** 2


def compute_transit_depth(model: QuadLimbDark, r: float, b: float = 0.0) -> float:
    """
    Fractional flux decrease for an occultor of radius ratio ``r`` at
    projected separation ``b``.
    """
    return 1.0 - flux(model, b, r)


def compute_light_curve(
    orbit: Orbit,
    model: QuadLimbDark,
    time: np.ndarray,
    r: float,
    solver=None
) -> np.ndarray:
    """
    Compute the transit light curve of ``orbit``.

    Parameters
    ----------
    orbit : Orbit
        Resolved orbit of the occultor.
    model : QuadLimbDark
        Limb-darkening model of the star.
    time : np.ndarray
        Observation times (days).
    r : float
        Occultor-to-star radius ratio.
    solver : SolverConfig, optional
        Kepler solver settings.

    Returns
    -------
    np.ndarray
        Relative flux (1.0 = no transit, <1.0 = transit), same shape as
        ``time``.
    """
    time = np.asarray(time, dtype=float)
    X, Y, Z = position(orbit, np.ravel(time), solver)
    b = np.hypot(X, Y)

    result = np.ones(b.shape)

    # Occultations only happen with the planet in front and the disks overlapping
    in_transit = (Z > 0) & (b < 1.0 + r)

    if np.any(in_transit):
        result[in_transit] = flux(model, b[in_transit], r)

    return result.reshape(time.shape)[()]
