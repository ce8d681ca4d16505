"""
Analytic occultation of a quadratically limb-darkened star.

The stellar intensity profile

    I(μ) / I(1) = 1 - u1 (1 - μ) - u2 (1 - μ)^2

is rewritten in a Green's basis (constant, μ and 2 - 4ρ²) whose occulted
integrals have closed forms. The uniform (s0) and quadratic (s2) terms are
elementary; the linear term (s1) is a combination of complete elliptic
integrals evaluated with Bulirsch's ``cel``.

Scientific Context:
    The transit depth and shape depend on the radius ratio r and the
    sky-projected separation b of the two disks (both in stellar radii).
    Evaluation is split on the geometry:
    - No overlap (b >= 1 + r) or r = 0: unit flux
    - Star fully covered (r >= 1 + b): zero flux
    - Concentric disks (b = 0): closed form
    - Otherwise the limb is crossed (k² < 1) or the occultor is fully
      inside the disk (k² >= 1)

References:
    Mandel & Agol (2002), ApJ, 580, L171
    Agol, Luger & Foreman-Mackey (2020), AJ, 159, 123
"""

from dataclasses import dataclass
from typing import Sequence, Tuple, Union

import numpy as np
from scipy.special import ellipe

from transits.physics.elliptic import cel_bulirsch, em1mkdm_kc

ArrayLike = Union[float, np.ndarray]

_TINY = np.finfo(float).tiny
_KC2_FLOOR = np.finfo(float).eps ** 2


@dataclass(frozen=True)
class QuadLimbDark:
    """
    Quadratic limb-darkening model, built once and evaluated many times.

    Attributes
    ----------
    n_max : int
        Number of limb-darkening coefficients supplied (0, 1 or 2).
    u_n : tuple
        (-1, u1, u2), missing coefficients set to zero.
    g_n : tuple
        Green's basis coefficients (g0, g1, g2).
    norm : float
        1 / (π (g0 + 2 g1 / 3)), the inverse of the unocculted flux.
    """
    n_max: int
    u_n: Tuple[float, float, float]
    g_n: Tuple[float, float, float]
    norm: float

    @classmethod
    def from_coefficients(cls, u: Sequence[float] = ()) -> 'QuadLimbDark':
        """
        Build the model from up to two limb-darkening coefficients.

        An empty sequence gives a uniform disk, one coefficient the linear
        law and two the quadratic law.
        """
        u = tuple(float(coefficient) for coefficient in u)
        if len(u) > 2:
            raise ValueError(
                f"Quadratic limb darkening takes at most 2 coefficients, got {len(u)}"
            )
        u_n = (-1.0,) + u + (0.0,) * (2 - len(u))
        g_n = compute_gn(u_n)
        norm = 1.0 / (np.pi * (g_n[0] + 2.0 / 3.0 * g_n[1]))
        return cls(n_max=len(u), u_n=u_n, g_n=g_n, norm=float(norm))

    def flux(self, b: ArrayLike, r: ArrayLike) -> ArrayLike:
        return flux(self, b, r)


def compute_gn(u_n: Sequence[float]) -> Tuple[float, float, float]:
    """Green's basis coefficients of the quadratic law."""
    u1, u2 = u_n[1], u_n[2]
    g0 = 1.0 - u1 - 1.5 * u2
    g1 = u1 + 2.0 * u2
    g2 = -0.25 * u2
    return g0, g1, g2


def flux(model: QuadLimbDark, b: ArrayLike, r: ArrayLike) -> ArrayLike:
    """
    Normalised flux of the occulted star.

    Parameters
    ----------
    model : QuadLimbDark
        Limb-darkening model.
    b : float or np.ndarray
        Projected center-to-center separation (stellar radii, >= 0).
    r : float or np.ndarray
        Occultor-to-star radius ratio (>= 0).

    Returns
    -------
    float or np.ndarray
        Flux relative to the unocculted star, broadcast over ``b`` and ``r``.
    """
    if np.ndim(b) == 0 and np.ndim(r) == 0:
        return _flux_scalar(model, float(b), float(r))

    # Element-wise on purpose: each (b, r) pair takes its own geometric branch
    b_arr, r_arr = np.broadcast_arrays(
        np.asarray(b, dtype=float), np.asarray(r, dtype=float)
    )
    result = np.empty(b_arr.shape)
    for idx in np.ndindex(b_arr.shape):
        result[idx] = _flux_scalar(model, b_arr[idx], r_arr[idx])
    return result


def _flux_scalar(model: QuadLimbDark, b: float, r: float) -> float:
    if r == 0.0 or b >= 1.0 + r:
        return 1.0
    if r >= 1.0 + b:
        return 0.0

    g0, g1, g2 = model.g_n
    r2 = r * r

    if b == 0.0:
        one_m_r2 = 1.0 - r2
        total = g0 * one_m_r2
        if model.n_max >= 1:
            total += 2.0 / 3.0 * g1 * one_m_r2 ** 1.5
        if model.n_max > 1:
            total -= g2 * 2.0 * r2 * one_m_r2
        return float(np.pi * model.norm * total)

    b2 = b * b
    fourbr = 4.0 * b * r
    onembpr2 = (1.0 - r - b) * (1.0 + b + r)
    onembmr2 = (r + 1.0 - b) * (1.0 - r + b)
    k2 = max(0.0, onembpr2 / fourbr + 1.0)

    if k2 > 1.0:
        kc2 = 1.0 - 1.0 / k2 if k2 > 2.0 else onembpr2 / onembmr2
    else:
        kc2 = (r - 1.0 + b) * (b + r + 1.0) / fourbr if k2 > 0.5 else 1.0 - k2
    kc2 = max(kc2, _KC2_FLOOR)

    if k2 < 1.0:
        kite_area2 = np.sqrt(max(0.0, sqarea_triangle(1.0, b, r)))
        kap0 = np.arctan2(kite_area2, (r - 1.0) * (r + 1.0) + b2)
        kap1 = np.arctan2(kite_area2, (1.0 - r) * (1.0 + r) + b2)
        s0 = np.pi - kap1 - r2 * kap0 + 0.5 * kite_area2
    else:
        kite_area2 = 0.0
        kap0 = np.pi
        s0 = np.pi * (1.0 - r2)

    total = g0 * s0
    if model.n_max >= 1:
        total += g1 * compute_linear(b, r, k2, np.sqrt(kc2), onembmr2)
    if model.n_max >= 2:
        s2 = 2.0 * r2 * (r2 + 2.0 * b2 - 1.0) * kap0 + (1.0 - 5.0 * r2 - b2) * 0.5 * kite_area2
        total += g2 * s2
    return float(model.norm * total)


def sqarea_triangle(p0: float, p1: float, p2: float) -> float:
    """
    Sixteen times the squared area of a triangle with the given side
    lengths, using Kahan's cancellation-free ordering. Negative values mean
    the sides do not close.
    """
    p0, p1, p2 = sorted((p0, p1, p2), reverse=True)
    return (p0 + (p1 + p2)) * (p2 - (p0 - p1)) * (p2 + (p0 - p1)) * (p0 + (p1 - p2))


def compute_linear(b: float, r: float, k2: float, kc: float, onembmr2: float) -> float:
    """
    Occulted integral of the μ term of the Green's basis (s1).

    s1 = 2π/3 (1 - H(r - b)) + J / 3, where J is the boundary integral of
    (1 - ρ²)^{3/2} along the occultor's limb inside the stellar disk, written
    in terms of E, (E - kc² K)/m and one third-kind integral. H is the
    Heaviside step of r - b, taken as 1/2 when b == r.
    """
    bmr = b - r
    bmr2 = bmr * bmr
    if bmr2 < _TINY:
        step = 0.5
    elif b < r:
        step = 1.0
    else:
        step = 0.0

    c = onembmr2
    d = 4.0 * b * r
    r2mb2 = (r - b) * (r + b)
    ratio = (r + b) / (r - b) if step != 0.5 else 0.0

    E = ellipe(1.0 - kc * kc)
    em1mkdm = em1mkdm_kc(kc)

    if k2 <= 1.0:
        m = k2
        J = d * c / 3.0 * (E + (3.0 * m - 2.0) * em1mkdm) - c * r2mb2 * em1mkdm
        if step != 0.5:
            J += cel_bulirsch(kc, 1.0 / bmr2, c * ratio, 0.0)
        J /= np.sqrt(b * r)
    else:
        m = 1.0 / k2
        term = ((3.0 - 2.0 * m) * E + m * em1mkdm) / 3.0 - r2mb2 * E / c
        if step != 0.5:
            term += cel_bulirsch(
                kc, (b + r) ** 2 / bmr2, c * ratio, (c - d) * ratio
            ) / (c * c)
        J = 2.0 * c ** 1.5 * term

    return float(2.0 * np.pi / 3.0 * (1.0 - step) + J / 3.0)
