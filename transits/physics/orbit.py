"""
Keplerian orbit resolution and sky positions.

An orbit can be described by many over-determined combinations of physical
parameters: a period or a semi-major axis, a stellar density or a mass, an
inclination, an impact parameter or a transit duration, and so on. This
module reduces whichever consistent subset the caller supplies to a single
immutable ``Orbit`` carrying every derived quantity, and evaluates positions
of the two bodies on that orbit.

Scientific Context:
    The resolution follows the usual conventions of transit modelling codes:
    - Kepler's third law links a, P and the total mass
    - The stellar density, radius and mass form a closed triple
    - The reference time t0 is a mid-transit (conjunction) time
    - b = (a / R_star) cos(i) (1 - e^2) / (1 + e sin(ω))

Example:
    >>> orbit = build_orbit(period=3.0, t0=0.0, b=0.3, rho_star=1.4, R_star=1.0)
    >>> X, Y, Z = position(orbit, 0.0)
"""

import logging
import unicodedata
from dataclasses import dataclass, fields
from typing import Any, Dict, Optional, Tuple

import numpy as np

from transits.errors import (
    AmbiguousOmegaError,
    ConflictingInclinationError,
    DuplicateReferenceTimeError,
    DurationMissingImpactParameterError,
    DurationMissingRadiusRatioError,
    MissingReferenceTimeError,
    MissingScaleError,
    OverdeterminedScaleError,
    StellarParameterCountError,
)
from transits.physics.kepler_dynamics import (
    DEFAULT_KEPLER_MAX_ITERATIONS,
    DEFAULT_KEPLER_TOLERANCE,
    compute_aor,
    compute_density,
    compute_impact_parameter,
    compute_impact_parameter_from_duration,
    compute_incl_factor_inv,
    compute_mass,
    compute_mean_anomaly_at_transit,
    compute_orbital_separation,
    compute_period,
    compute_radius,
    compute_total_mass,
    compute_true_anomaly,
    keplers_third_law,
    rotate_vector,
)

logger = logging.getLogger(__name__)

# Canonical parameter name -> accepted spellings. Keys are matched after NFKC
# normalisation, which is also what Python applies to identifiers, so
# ``t₀=...`` arrives as ``t0`` while ``**{'t₀': ...}`` keeps the subscript.
PARAMETER_ALIASES: Dict[str, Tuple[str, ...]] = {
    'a': (),
    'aR_star': ('aRs', 'aRₛ', 'a_R_star'),
    'b': (),
    'duration': (),
    'ecc': ('e',),
    'incl': (),
    'omega': ('ω',),
    'cos_omega': ('cos_ω',),
    'sin_omega': ('sin_ω',),
    'Omega': ('Ω',),
    'period': ('P',),
    'r': ('RpRs', 'ror'),
    'rho_star': ('ρₛ', 'ρ_star', 'rho_s'),
    'R_star': ('Rs', 'Rₛ', 'r_star'),
    'M_star': ('Ms',),
    'M_planet': ('Mp',),
    't0': ('t₀', 't_0'),
    'tp': ('t_p',),
}

_ALIAS_LOOKUP = {
    unicodedata.normalize('NFKC', name): canonical
    for canonical, aliases in PARAMETER_ALIASES.items()
    for name in (canonical,) + aliases
}

_STELLAR_TRIPLE = ('rho_star', 'R_star', 'M_star')


@dataclass(frozen=True, eq=False)
class Orbit:
    """
    Fully resolved Keplerian orbit.

    Lengths are in solar radii, masses in solar masses, times in days,
    densities in M_sun / R_sun^3 and angles in radians. Optional quantities
    that were neither supplied nor derivable are None.

    Instances are built with ``build_orbit`` and never mutated; two orbits
    compare equal when every field matches (NaN matching NaN).
    """
    period: float
    t0: float
    tp: float
    t_ref: float
    duration: Optional[float]
    a: float
    a_planet: float
    a_star: float
    aR_star: float
    R_star: float
    R_planet: Optional[float]
    r: Optional[float]
    rho_star: float
    rho_planet: Optional[float]
    M_star: float
    M_planet: float
    b: float
    ecc: float
    M0: float
    n: float
    incl: float
    cos_incl: float
    sin_incl: float
    omega: float
    cos_omega: float
    sin_omega: float
    Omega: Optional[float]
    cos_Omega: Optional[float]
    sin_Omega: Optional[float]
    incl_factor_inv: float

    @property
    def is_circular(self) -> bool:
        return self.ecc == 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}

    def __eq__(self, other):
        if not isinstance(other, Orbit):
            return NotImplemented
        return all(
            _same_value(getattr(self, f.name), getattr(other, f.name))
            for f in fields(self)
        )


def _same_value(x: Optional[float], y: Optional[float]) -> bool:
    if x is None or y is None:
        return x is y
    return x == y or (np.isnan(x) and np.isnan(y))


def _optional_float(value) -> Optional[float]:
    return None if value is None else float(value)


def build_orbit(**params: float) -> Orbit:
    """
    Resolve a set of orbital parameters into an ``Orbit``.

    Parameters
    ----------
    **params : float
        Any consistent subset of: period (P), a, aR_star (aRs), t0 or tp,
        duration, b or incl, ecc (e), omega (ω) or the pair cos_omega and
        sin_omega, Omega (Ω), r (RpRs), rho_star (ρₛ), R_star (Rs), M_star
        (Ms) and M_planet (Mp). Parameters passed as None are ignored.

    Returns
    -------
    Orbit
        Immutable orbit with all derived quantities filled in.

    Raises
    ------
    OrbitValidationError
        A subclass naming the rule that the inputs violate.
    TypeError
        For unknown parameters or a parameter given under two spellings.
    """
    canonical = _canonicalize(params)
    _validate_parameters(canonical)
    # Unphysical inputs such as a zero radius resolve to inf/NaN
    with np.errstate(divide='ignore', invalid='ignore'):
        return _resolve(canonical)


# Constructor-style name used by other transit modelling codes
KeplerianOrbit = build_orbit


def _canonicalize(params: Dict[str, Any]) -> Dict[str, float]:
    resolved: Dict[str, float] = {}
    spelled_as: Dict[str, str] = {}
    for key, value in params.items():
        name = _ALIAS_LOOKUP.get(unicodedata.normalize('NFKC', key))
        if name is None:
            raise TypeError(f"build_orbit() got an unexpected keyword argument '{key}'")
        if value is None:
            continue
        if name in resolved:
            raise TypeError(
                f"`{name}` given more than once (as `{spelled_as[name]}` and `{key}`)"
            )
        resolved[name] = np.float64(value)
        spelled_as[name] = key
    return resolved


def _is_circular(params: Dict[str, float]) -> bool:
    return params.get('ecc', 0.0) == 0.0


def _validate_parameters(params: Dict[str, float]) -> None:
    """
    Check the parameter set against the resolution rules, in order.

    Raises
    ------
    OrbitValidationError
        The subclass of the first rule that fails.
    """
    circular = _is_circular(params)

    # Reference time
    if 't0' not in params and 'tp' not in params:
        raise MissingReferenceTimeError()
    if 't0' in params and 'tp' in params:
        raise DuplicateReferenceTimeError()

    # Scale
    has_a = 'a' in params or 'aR_star' in params
    if not has_a and 'period' not in params:
        raise MissingScaleError()

    # A circular transit duration sets a / R_star
    circular_duration = circular and 'duration' in params
    if 'a' in params and 'aR_star' in params:
        raise OverdeterminedScaleError("Only one of `a` or `aR_star` can be given")
    if has_a and circular_duration:
        raise OverdeterminedScaleError(
            "`a` is implied by `duration` for a circular orbit and cannot also be given"
        )
    density_implied = (has_a or circular_duration) and 'period' in params
    if density_implied and ('rho_star' in params or 'M_star' in params):
        raise OverdeterminedScaleError()

    # Stellar parameters; R_star defaults to 1 when it cannot be derived
    if not density_implied:
        n_given = sum(name in params for name in _STELLAR_TRIPLE)
        if 'R_star' not in params and 'M_star' not in params:
            n_given += 1
        if n_given != 2:
            raise StellarParameterCountError()

    # Inclination
    inclination_inputs = [name for name in ('incl', 'b') if name in params]
    if 'duration' in params and not circular:
        inclination_inputs.append('duration')
    if len(inclination_inputs) > 1:
        raise ConflictingInclinationError()

    # Duration companions
    if 'duration' in params:
        if circular and 'b' not in params:
            raise DurationMissingImpactParameterError()
        if 'r' not in params:
            raise DurationMissingRadiusRatioError()

    # Argument of periastron
    has_cos = 'cos_omega' in params
    has_sin = 'sin_omega' in params
    if has_cos != has_sin:
        raise AmbiguousOmegaError()
    if has_cos and 'omega' in params:
        cos_omega, sin_omega = _normalize_pair(params['cos_omega'], params['sin_omega'])
        omega = params['omega']
        consistent = (
            np.isclose(np.cos(omega), cos_omega, rtol=0.0, atol=1e-10)
            and np.isclose(np.sin(omega), sin_omega, rtol=0.0, atol=1e-10)
        )
        if not consistent:
            raise AmbiguousOmegaError()


def _normalize_pair(cos_value: float, sin_value: float) -> Tuple[float, float]:
    norm = np.hypot(cos_value, sin_value)
    return float(cos_value / norm), float(sin_value / norm)


def _resolve_omega(params: Dict[str, float]) -> Tuple[float, float, float]:
    """Return (omega, cos_omega, sin_omega); omega defaults to 0."""
    if 'cos_omega' in params:
        cos_omega, sin_omega = _normalize_pair(params['cos_omega'], params['sin_omega'])
        omega = params.get('omega', float(np.arctan2(sin_omega, cos_omega)))
        return omega, cos_omega, sin_omega
    omega = params.get('omega', 0.0)
    return omega, float(np.cos(omega)), float(np.sin(omega))


def _resolve(params: Dict[str, float]) -> Orbit:
    ecc = params.get('ecc', 0.0)
    circular = ecc == 0.0
    period = params.get('period')
    a = params.get('a')
    R_star = params.get('R_star')
    M_star = params.get('M_star')
    rho_star = params.get('rho_star')
    M_planet = params.get('M_planet', 0.0)
    duration = params.get('duration')
    r = params.get('r')
    b = params.get('b')

    omega, cos_omega, sin_omega = _resolve_omega(params)

    aR_input = params.get('aR_star')
    if circular and duration is not None:
        aR_input = compute_aor(duration, period, b, r)
        logger.debug(f"Circular transit duration {duration} implies a/R_star = {aR_input:.6g}")

    if aR_input is not None and period is not None:
        if R_star is None:
            R_star = 1.0
        a = aR_input * R_star

    if a is not None and period is not None:
        if R_star is None:
            R_star = 1.0
        M_star = compute_total_mass(a, period) - M_planet
        rho_star = compute_density(M_star, R_star)
        logger.debug(f"Stellar density implied by a and P: rho_star = {rho_star:.6g}")
    else:
        if R_star is None and M_star is None:
            logger.debug("R_star not given, assuming R_star = 1")
            R_star = 1.0
        if rho_star is None:
            rho_star = compute_density(M_star, R_star)
        elif R_star is None:
            R_star = compute_radius(M_star, rho_star)
        elif M_star is None:
            M_star = compute_mass(rho_star, R_star)

        if aR_input is not None:
            a = aR_input * R_star
        if a is None:
            a = keplers_third_law(period, M_star, M_planet)
        else:
            period = compute_period(a, M_star, M_planet)

    M_tot = M_star + M_planet
    a_star = float(np.divide(a * M_planet, M_tot))
    a_planet = float(np.divide(-a * M_star, M_tot))
    aR_star = np.divide(a, R_star)
    n = 2 * np.pi / period

    incl_factor_inv = compute_incl_factor_inv(ecc, sin_omega)
    M0 = compute_mean_anomaly_at_transit(ecc, cos_omega, sin_omega)
    if 't0' in params:
        t0 = params['t0']
        tp = t0 - M0 / n
    else:
        tp = params['tp']
        t0 = tp + M0 / n

    dcosi_db = np.divide(1.0, aR_star * incl_factor_inv)
    if 'incl' in params:
        incl = params['incl']
        cos_incl = float(np.cos(incl))
        b = compute_impact_parameter(aR_star, incl, ecc, omega)
    else:
        if b is None and duration is not None:
            b = compute_impact_parameter_from_duration(
                duration, period, np.divide(a_planet, R_star), ecc, sin_omega
            )
        if b is None:
            b = 0.0
            incl = 0.5 * np.pi
            cos_incl = 0.0
        else:
            cos_incl = dcosi_db * b
            incl = float(np.arccos(cos_incl))
    sin_incl = float(np.sin(incl))

    Omega = params.get('Omega')
    if Omega is None:
        cos_Omega = sin_Omega = None
    else:
        cos_Omega, sin_Omega = float(np.cos(Omega)), float(np.sin(Omega))

    if r is None:
        R_planet = rho_planet = None
    else:
        R_planet = float(r * R_star)
        rho_planet = compute_density(M_planet, R_planet)

    return Orbit(
        period=float(period),
        t0=float(t0),
        tp=float(tp),
        t_ref=float(tp - t0),
        duration=_optional_float(duration),
        a=float(a),
        a_planet=a_planet,
        a_star=a_star,
        aR_star=float(aR_star),
        R_star=float(R_star),
        R_planet=R_planet,
        r=_optional_float(r),
        rho_star=float(rho_star),
        rho_planet=rho_planet,
        M_star=float(M_star),
        M_planet=float(M_planet),
        b=float(b),
        ecc=float(ecc),
        M0=float(M0),
        n=float(n),
        incl=float(incl),
        cos_incl=float(cos_incl),
        sin_incl=sin_incl,
        omega=float(omega),
        cos_omega=cos_omega,
        sin_omega=sin_omega,
        Omega=_optional_float(Omega),
        cos_Omega=cos_Omega,
        sin_Omega=sin_Omega,
        incl_factor_inv=float(incl_factor_inv),
    )


def _solver_settings(solver) -> Tuple[float, int]:
    if solver is None:
        return DEFAULT_KEPLER_TOLERANCE, DEFAULT_KEPLER_MAX_ITERATIONS
    return solver.kepler_tolerance, solver.kepler_max_iterations


def _orbit_position(orbit: Orbit, a_rs: float, t, solver=None):
    tolerance, max_iterations = _solver_settings(solver)
    t = np.asarray(t, dtype=float)
    mean_anomaly = orbit.n * (t - orbit.tp)
    nu = compute_true_anomaly(mean_anomaly, orbit.ecc, tolerance, max_iterations)
    separation = compute_orbital_separation(a_rs, nu, orbit.ecc)
    x = separation * np.cos(nu)
    y = separation * np.sin(nu)

    if orbit.is_circular:
        cos_omega = sin_omega = None
    else:
        cos_omega, sin_omega = orbit.cos_omega, orbit.sin_omega

    return rotate_vector(
        x, y,
        orbit.cos_incl, orbit.sin_incl,
        cos_omega, sin_omega,
        orbit.cos_Omega, orbit.sin_Omega,
    )


def position(orbit: Orbit, t, solver=None):
    """
    Sky position of the planet relative to the star, in stellar radii.

    Parameters
    ----------
    orbit : Orbit
        Resolved orbit.
    t : float or np.ndarray
        Observation time(s) (days).
    solver : SolverConfig, optional
        Kepler solver settings; package defaults when None.

    Returns
    -------
    tuple
        (X, Y, Z). sqrt(X^2 + Y^2) is the projected separation and Z > 0
        means the planet is in front of the star. Scalars for scalar ``t``,
        arrays of the same shape otherwise.
    """
    return _orbit_position(orbit, -orbit.aR_star, t, solver)


def star_position(orbit: Orbit, t, R_star: Optional[float] = None, solver=None):
    """Barycentric position of the star in units of ``R_star`` (default orbit.R_star)."""
    if R_star is None:
        R_star = orbit.R_star
    return _orbit_position(orbit, orbit.a_star / R_star, t, solver)


def planet_position(orbit: Orbit, t, R_star: Optional[float] = None, solver=None):
    """Barycentric position of the planet in units of ``R_star`` (default orbit.R_star)."""
    if R_star is None:
        R_star = orbit.R_star
    return _orbit_position(orbit, orbit.a_planet / R_star, t, solver)


def flip(orbit: Orbit, R_planet: Optional[float] = None) -> Orbit:
    """
    Orbit of the companion body, with the roles of star and planet swapped.

    The masses are exchanged and the companion's radius becomes the new
    reference radius. An eccentric orbit keeps its periastron time and has ω
    turned by π; a circular orbit has its mid-transit time moved by half a
    period. The returned orbit satisfies

        planet_position(flip(orbit), t, R) == star_position(orbit, t, R)

    Parameters
    ----------
    orbit : Orbit
        Orbit to flip.
    R_planet : float, optional
        Radius of the companion (solar radii). Defaults to ``orbit.R_planet``.
        This is a radius, not a mass ratio: the masses are taken from
        ``orbit``, so ``flip(orbit, 0.7)`` makes a 0.7 R_sun companion the
        new reference body.

    Returns
    -------
    Orbit
        Flipped orbit.
    """
    if R_planet is None:
        R_planet = orbit.R_planet

    shared = dict(
        period=orbit.period,
        incl=orbit.incl,
        Omega=orbit.Omega,
        M_star=orbit.M_planet,
        M_planet=orbit.M_star,
        R_star=R_planet,
    )
    if orbit.is_circular:
        return build_orbit(t0=orbit.t0 + 0.5 * orbit.period, **shared)
    return build_orbit(
        tp=orbit.tp,
        ecc=orbit.ecc,
        omega=orbit.omega - np.pi,
        **shared
    )
