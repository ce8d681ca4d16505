"""
Complete elliptic integrals in Bulirsch's general form.

The third-kind integral and the cancellation-free combination (E - kc² K) / m
needed by the occultation model are special cases of

    cel(kc, p, a, b) = ∫_0^{π/2} (a cos²φ + b sin²φ)
                       / ((cos²φ + p sin²φ) sqrt(cos²φ + kc² sin²φ)) dφ

which is evaluated by Bulirsch's iterative algorithm. scipy.special has no
equivalent taking the complementary modulus kc, which keeps full relative
precision when m = 1 - kc² approaches 1 (grazing and near-tangent
geometries). The plain complete integrals K and E come from scipy.special.

References:
    Bulirsch (1969), Numer. Math., 13, 305
    Press et al., Numerical Recipes, §6.11
"""

import numpy as np

# The algorithm's error is the square of this tolerance.
CEL_TOLERANCE = 1.0e-8
CEL_MAX_ITERATIONS = 40


def cel_bulirsch(
    kc: float,
    p: float,
    a: float,
    b: float,
    tolerance: float = CEL_TOLERANCE,
    max_iterations: int = CEL_MAX_ITERATIONS
) -> float:
    """
    General complete elliptic integral cel(kc, p, a, b) for p > 0.

    Parameters
    ----------
    kc : float
        Complementary modulus, kc != 0.
    p : float
        Characteristic, must be positive.
    a, b : float
        Numerator coefficients.
    tolerance : float
        Convergence tolerance on the arithmetic-geometric mean.
    max_iterations : int
        Iteration cap.

    Returns
    -------
    float
        Value of the integral.
    """
    if kc == 0.0:
        raise ValueError("cel_bulirsch requires a non-zero complementary modulus")
    if p <= 0.0:
        raise ValueError("cel_bulirsch requires a positive characteristic p")

    qc = abs(kc)
    e = qc
    em = 1.0
    p = np.sqrt(p)
    b = b / p

    for _ in range(max_iterations):
        f = a
        a = a + b / p
        g = e / p
        b = b + f * g
        b = b + b
        p = g + p
        g = em
        em = em + qc
        if abs(g - qc) <= g * tolerance:
            break
        qc = 2.0 * np.sqrt(e)
        e = qc * em

    return 0.5 * np.pi * (b + a * em) / (em * (em + p))


def em1mkdm_kc(kc: float) -> float:
    """
    (E - kc² K) / m, evaluated without cancellation.

    This is ∫ cos²φ / sqrt(1 - m sin²φ) dφ over [0, π/2], which stays well
    conditioned as m -> 0.
    """
    return cel_bulirsch(kc, 1.0, 1.0, 0.0)
