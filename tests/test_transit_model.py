import numpy as np
import pytest

from transits.physics.limb_darkening import QuadLimbDark, flux
from transits.physics.orbit import build_orbit
from transits.physics.transit_model import (
    compute_light_curve,
    compute_transit_depth,
    quadratic_limb_darkening,
)


@pytest.fixture
def orbit():
    return build_orbit(period=3.0, t0=0.5, rho_star=1.4, R_star=1.0, b=0.3)


@pytest.fixture
def model():
    return QuadLimbDark.from_coefficients([0.4, 0.26])


def test_quadratic_law_is_normalised_at_disk_center():
    assert quadratic_limb_darkening(1.0, 0.4, 0.26) == 1.0
    assert quadratic_limb_darkening(0.0, 0.4, 0.26) == pytest.approx(1 - 0.4 - 0.26)
    mu = np.linspace(0.0, 1.0, 5)
    assert quadratic_limb_darkening(mu, 0.0, 0.0) == pytest.approx(np.ones(5))


def test_transit_depth(model):
    assert compute_transit_depth(model, 0.0) == 0.0
    assert compute_transit_depth(model, 0.1) == pytest.approx(1 - flux(model, 0.0, 0.1))
    assert compute_transit_depth(model, 0.1, b=0.5) == pytest.approx(1 - flux(model, 0.5, 0.1))
    # Limb darkening makes central transits deeper than r² alone
    assert compute_transit_depth(model, 0.1) > 0.01


def test_light_curve_is_flat_out_of_transit(orbit, model):
    time = orbit.t0 + np.array([-1.0, -0.4, 0.4, 1.0])
    np.testing.assert_array_equal(compute_light_curve(orbit, model, time, 0.1), 1.0)


def test_light_curve_minimum_at_mid_transit(orbit, model):
    time = orbit.t0 + np.linspace(-0.1, 0.1, 201)
    lc = compute_light_curve(orbit, model, time, 0.1)
    assert np.argmin(lc) == 100
    assert lc[100] == pytest.approx(flux(model, orbit.b, 0.1), abs=1e-9)
    assert np.all(lc <= 1.0)


def test_circular_light_curve_is_symmetric(orbit, model):
    dt = np.linspace(0.0, 0.1, 51)
    before = compute_light_curve(orbit, model, orbit.t0 - dt, 0.1)
    after = compute_light_curve(orbit, model, orbit.t0 + dt, 0.1)
    np.testing.assert_allclose(before, after, atol=1e-10)


def test_no_dip_at_secondary_eclipse(orbit, model):
    time = orbit.t0 + 0.5 * orbit.period + np.linspace(-0.05, 0.05, 11)
    np.testing.assert_array_equal(compute_light_curve(orbit, model, time, 0.1), 1.0)


def test_light_curve_repeats_every_period(orbit, model):
    time = orbit.t0 + np.linspace(-0.1, 0.1, 41)
    np.testing.assert_allclose(
        compute_light_curve(orbit, model, time, 0.1),
        compute_light_curve(orbit, model, time + 3 * orbit.period, 0.1),
        atol=1e-10,
    )


def test_light_curve_shapes(orbit, model):
    lc = compute_light_curve(orbit, model, orbit.t0, 0.1)
    assert np.ndim(lc) == 0
    assert lc == pytest.approx(flux(model, orbit.b, 0.1), abs=1e-9)

    time = orbit.t0 + np.linspace(-0.1, 0.1, 12).reshape(3, 4)
    lc = compute_light_curve(orbit, model, time, 0.1)
    assert lc.shape == (3, 4)


def test_eccentric_transit(model):
    orbit = build_orbit(period=10.0, t0=2.0, M_star=1.0, R_star=1.0, b=0.5,
                        ecc=0.4, omega=0.7)
    time = orbit.t0 + np.linspace(-0.3, 0.3, 61)
    lc = compute_light_curve(orbit, model, time, 0.08)
    assert lc[30] == pytest.approx(flux(model, 0.5, 0.08), abs=1e-6)
    assert lc.min() < 1.0
    assert lc[0] == 1.0 and lc[-1] == 1.0
