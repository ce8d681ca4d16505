"""
Keplerian orbital dynamics for star-planet systems.

This module implements Kepler's laws and the orbital mechanics needed to
place a transiting body on the sky: the solution of Kepler's equation, the
true anomaly, the orbital separation and the rotation of the orbital plane
into observer coordinates.

Scientific Context:
    Transit geometry is fully determined by a handful of quantities:
    - Orbital period and semi-major axis (Kepler's third law)
    - Eccentricity and argument of periastron
    - Inclination and impact parameter
    - Stellar and planetary radii and masses

Units:
    Lengths in solar radii, masses in solar masses, times in days and
    densities in M_sun / R_sun^3. Angles are in radians.

Conventions:
    The observer looks down the +z axis. A body with z > 0 lies between the
    star and the observer.
"""

import logging
import numpy as np
from typing import Optional, Tuple, Union

from transits.constants import G_NOM, TWO_PI

logger = logging.getLogger(__name__)

ArrayLike = Union[float, np.ndarray]

DEFAULT_KEPLER_TOLERANCE = 1e-12
DEFAULT_KEPLER_MAX_ITERATIONS = 50


def keplers_third_law(
    period: float,
    stellar_mass: float,
    planet_mass: Optional[float] = None
) -> float:
    """
    Compute semi-major axis from period using Kepler's third law.

    a^3 / P^2 = G * (M_star + M_planet) / (4 * π^2)

    Parameters
    ----------
    period : float
        Orbital period (days).
    stellar_mass : float
        Stellar mass (solar masses).
    planet_mass : float, optional
        Planet mass (solar masses). If None, assumes M_planet << M_star.

    Returns
    -------
    float
        Semi-major axis (solar radii).
    """
    total_mass = stellar_mass if planet_mass is None else stellar_mass + planet_mass
    return _safe_cbrt(G_NOM * total_mass * period ** 2 / (4 * np.pi ** 2))


def compute_period(
    a: float,
    stellar_mass: float,
    planet_mass: Optional[float] = None
) -> float:
    """
    Compute the orbital period from the semi-major axis (inverse of
    ``keplers_third_law``).

    P = 2π * sqrt(a^3 / (G * (M_star + M_planet)))
    """
    total_mass = stellar_mass if planet_mass is None else stellar_mass + planet_mass
    with np.errstate(divide='ignore', invalid='ignore'):
        period = TWO_PI * np.sqrt(np.divide(a ** 3, G_NOM * total_mass))
    return float(period) if np.isfinite(period) else np.nan


def compute_total_mass(a: float, period: float) -> float:
    """Total system mass implied by a and P: M_tot = 4π^2 a^3 / (G P^2)."""
    return 4 * np.pi ** 2 * a ** 3 / (G_NOM * period ** 2)


def compute_density(mass: float, radius: float) -> float:
    """
    Bulk density of a sphere, rho = 3M / (4π R^3).

    Returns NaN instead of raising when the volume vanishes or the inputs are
    not finite.
    """
    volume = 4.0 / 3.0 * np.pi * radius ** 3
    with np.errstate(divide='ignore', invalid='ignore'):
        rho = np.divide(mass, volume)
    return float(rho) if np.isfinite(rho) else np.nan


def compute_radius(mass: float, density: float) -> float:
    """Radius of a sphere of given mass and density, R = cbrt(3M / (4πρ))."""
    with np.errstate(divide='ignore', invalid='ignore'):
        arg = np.divide(3.0 * mass, 4.0 * np.pi * density)
    return _safe_cbrt(arg)


def compute_mass(density: float, radius: float) -> float:
    """Mass of a sphere of given density and radius, M = 4/3 π R^3 ρ."""
    mass = 4.0 / 3.0 * np.pi * radius ** 3 * density
    return float(mass) if np.isfinite(mass) else np.nan


def _safe_cbrt(x: float) -> float:
    # Negative or non-finite arguments have no physical cube root here.
    if not np.isfinite(x) or x < 0:
        return np.nan
    return float(np.cbrt(x))


def compute_incl_factor_inv(eccentricity: float, sin_omega: float) -> float:
    """
    Eccentric correction to the sky-projected separation at conjunction.

    (1 - e^2) / (1 + e * sin(ω)), which is 1 for a circular orbit.
    """
    if eccentricity == 0.0:
        return 1.0
    return (1.0 - eccentricity ** 2) / (1.0 + eccentricity * sin_omega)


def compute_impact_parameter(
    a_rs: float,
    inclination: float,
    eccentricity: float = 0.0,
    omega: float = 0.0
) -> float:
    """
    Compute impact parameter from orbital parameters.

    b = (a / R_star) * cos(i) * (1 - e^2) / (1 + e * sin(ω))

    Parameters
    ----------
    a_rs : float
        Semi-major axis in stellar radii.
    inclination : float
        Orbital inclination (radians, π/2 = edge-on).
    eccentricity : float
        Orbital eccentricity.
    omega : float
        Argument of periastron (radians).

    Returns
    -------
    float
        Impact parameter (0 = central transit).
    """
    incl_factor_inv = compute_incl_factor_inv(eccentricity, np.sin(omega))
    return a_rs * np.cos(inclination) * incl_factor_inv


def compute_mean_anomaly_at_transit(
    eccentricity: float,
    cos_omega: float,
    sin_omega: float
) -> float:
    """
    Mean anomaly of the body at mid-transit.

    Transit happens when ω + ν = π/2. For a circular orbit this is M0 = π/2;
    otherwise the eccentric anomaly at conjunction is

        E0 = 2 * atan2(sqrt(1 - e) cos(ω), sqrt(1 + e) (1 + sin(ω)))

    and M0 = E0 - e sin(E0).
    """
    if eccentricity == 0.0:
        return 0.5 * np.pi
    E0 = 2 * np.arctan2(
        np.sqrt(1 - eccentricity) * cos_omega,
        np.sqrt(1 + eccentricity) * (1 + sin_omega)
    )
    return float(E0 - eccentricity * np.sin(E0))


def solve_kepler(
    mean_anomaly: ArrayLike,
    eccentricity: float,
    tolerance: float = DEFAULT_KEPLER_TOLERANCE,
    max_iterations: int = DEFAULT_KEPLER_MAX_ITERATIONS
) -> ArrayLike:
    """
    Solve Kepler's equation M = E - e * sin(E) for the eccentric anomaly.

    The mean anomaly is reduced to [-π, π) and refined with Halley's method
    from Danby's starting guess E = M + 0.85 e sign(sin M). The iteration
    count is bounded, so the call always returns.

    Parameters
    ----------
    mean_anomaly : float or np.ndarray
        Mean anomaly (radians).
    eccentricity : float
        Orbital eccentricity, 0 <= e < 1.
    tolerance : float
        Absolute convergence tolerance on the Halley step.
    max_iterations : int
        Maximum number of Halley steps.

    Returns
    -------
    float or np.ndarray
        Eccentric anomaly in [-π, π) (radians), same shape as the input.
    """
    M = np.asarray(mean_anomaly, dtype=float)
    if eccentricity == 0.0:
        return M[()]

    M = np.remainder(M + np.pi, TWO_PI) - np.pi
    E = M + 0.85 * eccentricity * np.sign(np.sin(M))

    for _ in range(max_iterations):
        sin_E = np.sin(E)
        f0 = E - eccentricity * sin_E - M
        f1 = 1.0 - eccentricity * np.cos(E)
        f2 = eccentricity * sin_E
        delta = -f0 / (f1 - 0.5 * f0 * f2 / f1)
        E = E + delta
        if np.all(np.abs(delta) <= tolerance):
            break
    else:
        logger.warning(
            f"Kepler solver hit {max_iterations} iterations "
            f"(e={eccentricity}, max step={np.max(np.abs(delta)):.3e})"
        )

    return E[()]


def compute_true_anomaly(
    mean_anomaly: ArrayLike,
    eccentricity: float,
    tolerance: float = DEFAULT_KEPLER_TOLERANCE,
    max_iterations: int = DEFAULT_KEPLER_MAX_ITERATIONS
) -> ArrayLike:
    """
    Solve Kepler's equation to find true anomaly.

    M = E - e * sin(E)
    tan(ν/2) = sqrt((1+e)/(1-e)) * tan(E/2)

    Parameters
    ----------
    mean_anomaly : float or np.ndarray
        Mean anomaly (radians).
    eccentricity : float
        Orbital eccentricity.
    tolerance : float
        Convergence tolerance passed to ``solve_kepler``.
    max_iterations : int
        Iteration cap passed to ``solve_kepler``.

    Returns
    -------
    float or np.ndarray
        True anomaly (radians).
    """
    if eccentricity == 0.0:
        # Circular orbit: true anomaly = mean anomaly
        return np.asarray(mean_anomaly, dtype=float)[()]

    E = solve_kepler(mean_anomaly, eccentricity, tolerance, max_iterations)

    nu = 2 * np.arctan2(
        np.sqrt(1 + eccentricity) * np.sin(E / 2),
        np.sqrt(1 - eccentricity) * np.cos(E / 2)
    )

    return nu


def compute_orbital_separation(
    a_rs: float,
    true_anomaly: ArrayLike,
    eccentricity: float = 0.0
) -> ArrayLike:
    """
    Compute orbital separation at given true anomaly.

    r = a * (1 - e^2) / (1 + e * cos(ν))

    The sign of ``a_rs`` is kept, so passing a negative semi-major axis
    yields the position of the companion body.
    """
    if eccentricity == 0.0:
        return a_rs + np.zeros_like(true_anomaly)

    return a_rs * (1 - eccentricity ** 2) / (1 + eccentricity * np.cos(true_anomaly))


def rotate_vector(
    x: ArrayLike,
    y: ArrayLike,
    cos_incl: float,
    sin_incl: float,
    cos_omega: Optional[float] = None,
    sin_omega: Optional[float] = None,
    cos_Omega: Optional[float] = None,
    sin_Omega: Optional[float] = None
) -> Tuple[ArrayLike, ArrayLike, ArrayLike]:
    """
    Rotate an in-plane orbital position into observer coordinates.

    The rotations are applied in order: by ω about the orbit normal, by -i
    about the x axis and by Ω about the line of sight. The ω rotation is
    skipped when ``cos_omega`` is None (circular orbits) and the Ω rotation
    when ``cos_Omega`` is None.

    Parameters
    ----------
    x, y : float or np.ndarray
        Position in the orbital plane, x along the line of apsides.
    cos_incl, sin_incl : float
        Cosine and sine of the inclination.
    cos_omega, sin_omega : float, optional
        Cosine and sine of the argument of periastron.
    cos_Omega, sin_Omega : float, optional
        Cosine and sine of the longitude of the ascending node.

    Returns
    -------
    tuple
        (X, Y, Z) sky coordinates.
    """
    if cos_omega is not None:
        x, y = cos_omega * x - sin_omega * y, sin_omega * x + cos_omega * y

    X = x
    Y = cos_incl * y
    Z = -sin_incl * y

    if cos_Omega is not None:
        X, Y = cos_Omega * X - sin_Omega * Y, sin_Omega * X + cos_Omega * Y

    return X, Y, Z


def compute_aor(
    duration: float,
    period: float,
    b: float,
    r: float = 0.0
) -> float:
    """
    Semi-major axis in stellar radii for a circular orbit with the given
    full transit duration (first to fourth contact).

    a / R_star = sqrt((1 + r)^2 - b^2 cos^2(φ)) / sin(φ),  φ = π T / P

    Parameters
    ----------
    duration : float
        Transit duration T14 (days).
    period : float
        Orbital period (days).
    b : float
        Impact parameter.
    r : float
        Planet-to-star radius ratio.

    Returns
    -------
    float
        Semi-major axis in stellar radii.
    """
    phi = np.pi * duration / period
    sin_phi, cos_phi = np.sin(phi), np.cos(phi)
    return float(np.sqrt((1 + r) ** 2 - (b * cos_phi) ** 2) / sin_phi)


def compute_transit_duration(
    period: float,
    a_rs: float,
    b: float,
    r: float = 0.0
) -> float:
    """
    Compute transit duration (T14) of a circular orbit.

    T14 = (P / π) * arcsin(sqrt(((1 + Rp/Rs)^2 - b^2) / ((a/Rs)^2 - b^2)))

    This is the exact inverse of ``compute_aor``. Returns 0 when the body
    never overlaps the stellar disk.
    """
    chord2 = (1.0 + r) ** 2 - b ** 2
    if chord2 <= 0.0:
        return 0.0
    arg = np.sqrt(chord2 / (a_rs ** 2 - b ** 2))
    if arg >= 1.0:
        return period / 2.0
    return float((period / np.pi) * np.arcsin(arg))


def compute_impact_parameter_from_duration(
    duration: float,
    period: float,
    aor: float,
    eccentricity: float,
    sin_omega: float
) -> float:
    """
    Impact parameter of an eccentric orbit implied by its transit duration.

    Parameters
    ----------
    duration : float
        Transit duration (days).
    period : float
        Orbital period (days).
    aor : float
        Semi-major axis of the planet's barycentric orbit in stellar radii.
    eccentricity : float
        Orbital eccentricity.
    sin_omega : float
        Sine of the argument of periastron.

    Returns
    -------
    float
        Impact parameter (NaN when the duration is not attainable).
    """
    e = eccentricity
    incl_factor_inv = compute_incl_factor_inv(e, sin_omega)
    c = np.sin(np.pi * duration / incl_factor_inv / period)
    c2 = c * c
    esinw = e * sin_omega
    numerator = aor ** 2 * c2 - 1.0
    denominator = c2 * esinw ** 2 + 2 * c2 * esinw + c2 - e ** 4 + 2 * e ** 2 - 1.0
    with np.errstate(invalid='ignore'):
        b = np.sqrt(numerator / denominator) * (1 - e ** 2)
    return float(b)
