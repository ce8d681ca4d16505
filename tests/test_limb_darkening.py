import numpy as np
import pytest
from scipy import integrate

from transits.physics.limb_darkening import (
    QuadLimbDark,
    compute_gn,
    flux,
    sqarea_triangle,
)
from transits.physics.transit_model import quadratic_limb_darkening


COEFFICIENTS = [(), (0.6,), (0.4, 0.26), (0.1, 0.9), (-0.2, 0.5)]

GEOMETRIES = [
    (0.3, 0.1),     # planet inside the disk, b > r
    (0.05, 0.1),    # planet covers the center
    (0.95, 0.1),    # crossing the limb
    (1.05, 0.2),    # crossing, center outside the disk
    (0.5, 0.6),     # crossing with b < r
    (0.7, 0.69),    # b close to r
    (0.7, 1.5),     # occultor larger than the star, partial
    (1.5, 1.2),     # large occultor near the limb
    (0.68, 0.3),    # inside, close to internal tangency
    (0.75, 0.3),    # just past internal tangency
    (0.6, 0.01),    # small planet
]


def numerical_flux(u, b, r):
    """Occulted flux by direct integration over annuli of the stellar disk."""
    u1 = u[0] if len(u) > 0 else 0.0
    u2 = u[1] if len(u) > 1 else 0.0

    def intensity(rho):
        mu = np.sqrt(max(0.0, 1.0 - rho * rho))
        return quadratic_limb_darkening(mu, u1, u2)

    def occulted_arc(rho):
        # Angular length of the circle of radius rho hidden by the occultor
        if b == 0.0 or rho == 0.0:
            return 2 * np.pi if rho < r - b else 0.0
        cos_half = (rho * rho + b * b - r * r) / (2 * b * rho)
        return 2 * np.arccos(np.clip(cos_half, -1.0, 1.0))

    upper = min(1.0, b + r)
    points = [x for x in (abs(b - r),) if 0.0 < x < upper]
    occulted = integrate.quad(
        lambda rho: intensity(rho) * occulted_arc(rho) * rho,
        0.0, upper, points=points or None, epsabs=1e-13, epsrel=1e-12, limit=500
    )[0]
    total = integrate.quad(
        lambda rho: intensity(rho) * 2 * np.pi * rho,
        0.0, 1.0, epsabs=1e-13, epsrel=1e-12
    )[0]
    return 1.0 - occulted / total


def uniform_flux(b, r):
    """Uniform disk: one minus the lens-shaped overlap area over π."""
    if b >= 1 + r:
        return 1.0
    if r >= 1 + b:
        return 0.0
    if b <= 1 - r:
        return 1.0 - r * r
    kap0 = np.arccos((b * b + r * r - 1) / (2 * b * r))
    kap1 = np.arccos((b * b + 1 - r * r) / (2 * b))
    lens = r * r * kap0 + kap1 - 0.5 * np.sqrt(
        (-b + r + 1) * (b + r - 1) * (b - r + 1) * (b + r + 1)
    )
    return 1.0 - lens / np.pi


def test_model_construction():
    model = QuadLimbDark.from_coefficients([0.4, 0.26])
    assert model.n_max == 2
    assert model.u_n == (-1.0, 0.4, 0.26)
    assert model.g_n == pytest.approx((1 - 0.4 - 1.5 * 0.26, 0.4 + 2 * 0.26, -0.25 * 0.26))
    assert model.norm == pytest.approx(1 / (np.pi * (model.g_n[0] + 2 / 3 * model.g_n[1])))


def test_model_pads_missing_coefficients():
    uniform = QuadLimbDark.from_coefficients()
    assert uniform.n_max == 0
    assert uniform.u_n == (-1.0, 0.0, 0.0)
    assert uniform.g_n == (1.0, 0.0, 0.0)
    assert uniform.norm == pytest.approx(1 / np.pi)

    linear = QuadLimbDark.from_coefficients(np.array([0.6]))
    assert linear.n_max == 1
    assert linear.u_n == (-1.0, 0.6, 0.0)


def test_model_rejects_higher_order():
    with pytest.raises(ValueError, match="at most 2"):
        QuadLimbDark.from_coefficients([0.1, 0.2, 0.3])


def test_green_basis_reproduces_intensity():
    # I = g0 + g1 μ + g2 (2 - 4ρ²), normalised to I(μ=1) = 1
    u1, u2 = 0.4, 0.26
    g0, g1, g2 = compute_gn((-1.0, u1, u2))
    rho = np.linspace(0.0, 1.0, 11)
    mu = np.sqrt(1 - rho ** 2)
    np.testing.assert_allclose(
        g0 + g1 * mu + g2 * (2 - 4 * rho ** 2),
        quadratic_limb_darkening(mu, u1, u2),
    )


@pytest.mark.parametrize("u", COEFFICIENTS)
def test_trivial_branches_are_exact(u):
    model = QuadLimbDark.from_coefficients(u)
    assert flux(model, 0.5, 0.0) == 1.0
    assert flux(model, 1.1, 0.1) == 1.0
    assert flux(model, 5.0, 0.3) == 1.0
    assert flux(model, 0.0, 1.0) == 0.0
    assert flux(model, 0.5, 1.5) == 0.0
    assert flux(model, 0.0, 3.0) == 0.0


@pytest.mark.parametrize("u", COEFFICIENTS)
@pytest.mark.parametrize("b,r", GEOMETRIES)
def test_flux_matches_numerical_integration(u, b, r):
    model = QuadLimbDark.from_coefficients(u)
    assert flux(model, b, r) == pytest.approx(numerical_flux(u, b, r), abs=1e-7)


@pytest.mark.parametrize("u", COEFFICIENTS)
@pytest.mark.parametrize("r", [0.01, 0.1, 0.5, 0.9])
def test_concentric_occultor(u, r):
    model = QuadLimbDark.from_coefficients(u)
    assert flux(model, 0.0, r) == pytest.approx(numerical_flux(u, 0.0, r), abs=1e-7)
    # Continuous as the occultor leaves the center
    assert flux(model, 1e-9, r) == pytest.approx(flux(model, 0.0, r), abs=1e-6)


@pytest.mark.parametrize("b,r", GEOMETRIES)
def test_uniform_disk_is_geometric_overlap(b, r):
    model = QuadLimbDark.from_coefficients()
    assert flux(model, b, r) == pytest.approx(uniform_flux(b, r), abs=1e-12)


@pytest.mark.parametrize("b,r", GEOMETRIES)
def test_graceful_degradation(b, r):
    linear = QuadLimbDark.from_coefficients([0.5])
    padded = QuadLimbDark.from_coefficients([0.5, 0.0])
    assert flux(linear, b, r) == pytest.approx(flux(padded, b, r), abs=1e-14)

    uniform = QuadLimbDark.from_coefficients([])
    zeros = QuadLimbDark.from_coefficients([0.0, 0.0])
    assert flux(uniform, b, r) == pytest.approx(flux(zeros, b, r), abs=1e-14)


def test_small_planet_limit():
    # Depth of a tiny occultor is r² times the local normalised intensity
    u1, u2, r = 0.4, 0.26, 1e-3
    model = QuadLimbDark.from_coefficients([u1, u2])
    for b in (0.0, 0.3, 0.8):
        mu = np.sqrt(1 - b * b)
        expected = r * r * quadratic_limb_darkening(mu, u1, u2) * np.pi * model.norm
        assert 1 - flux(model, b, r) == pytest.approx(expected, rel=1e-3)


def _boundaries(r):
    """Values of b where the evaluation switches branch or k² regime."""
    candidates = [abs(1 - r), 1 + r, r]
    # k² = 2 and k² = 1/2
    for k2 in (2.0, 0.5):
        # (1 - (b + r)²) / (4 b r) + 1 = k²  <=>  b² + 2(1 + 2(k² - 1)) r b + r² - 1 = 0
        beta = (1 + 2 * (k2 - 1)) * r
        b = -beta + np.sqrt(beta * beta - (r * r - 1))
        if b > 0:
            candidates.append(b)
    return [b for b in candidates if b > 1e-6]


@pytest.mark.parametrize("u", [(0.4, 0.26), (0.8,), (0.1, 0.9)])
@pytest.mark.parametrize("r", [0.05, 0.3, 0.6, 0.99, 1.3])
def test_flux_is_continuous_across_branches(u, r):
    model = QuadLimbDark.from_coefficients(u)
    delta = 1e-9
    for b in _boundaries(r):
        f_minus = flux(model, b - delta, r)
        f_plus = flux(model, b + delta, r)
        f_at = flux(model, b, r)
        assert np.isfinite(f_at)
        assert f_minus == pytest.approx(f_plus, abs=1e-5)
        assert f_at == pytest.approx(f_plus, abs=1e-5)


def test_flux_broadcasts_over_arrays():
    model = QuadLimbDark.from_coefficients([0.4, 0.26])
    b = np.linspace(0.0, 1.3, 27).reshape(3, 9)
    result = flux(model, b, 0.1)
    assert result.shape == (3, 9)
    for idx in np.ndindex(b.shape):
        assert result[idx] == pytest.approx(flux(model, b[idx], 0.1), rel=1e-14)

    radii = np.array([0.0, 0.05, 0.1, 0.2])
    result = model.flux(0.3, radii)
    assert result.shape == (4,)
    assert result[0] == 1.0
    assert np.all(np.diff(result) < 0)


def test_flux_stays_physical():
    model = QuadLimbDark.from_coefficients([0.4, 0.26])
    b = np.linspace(0.0, 2.5, 251)
    for r in (0.01, 0.1, 0.5, 1.0, 1.5):
        result = flux(model, b, r)
        assert np.all(np.isfinite(result))
        assert np.all(result >= -1e-12) and np.all(result <= 1.0 + 1e-12)
        # Moving the occultor outwards never hides more light
        assert np.all(np.diff(result) >= -1e-10)


def test_sqarea_triangle():
    # 3-4-5 right triangle: area 6, sixteen times its square is 576
    assert sqarea_triangle(3.0, 4.0, 5.0) == pytest.approx(576.0)
    assert sqarea_triangle(5.0, 3.0, 4.0) == pytest.approx(576.0)
    assert sqarea_triangle(1.0, 0.2, 0.3) < 0
