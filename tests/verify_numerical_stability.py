import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

import numpy as np

from transits.physics.limb_darkening import QuadLimbDark, flux
from transits.physics.kepler_dynamics import solve_kepler
from transits.physics.orbit import build_orbit
from transits.physics.transit_model import compute_light_curve


def test_stability():
    print("Testing numerical stability...")
    model = QuadLimbDark.from_coefficients([0.5, 0.5])

    # 1. Test with extreme parameters
    orbit = build_orbit(period=1e6, t0=0.0, aR_star=1e6, b=10.0)  # Huge period and separation
    time = np.linspace(-30, 30, 1000)
    pred_flux = compute_light_curve(orbit, model, time, 10.0)  # Huge radius ratio
    print(f"Transit model output range: [{pred_flux.min():.3f}, {pred_flux.max():.3f}]")
    assert np.isfinite(pred_flux).all(), "Transit model produced non-finite values!"

    # 2. Occultor sizes over eight decades, close to every contact point
    for r in (1e-6, 1e-3, 0.1, 0.99, 1.0, 10.0, 100.0):
        offsets = np.array([0.0, 1e-12, 1e-8, 1e-4])
        b = np.concatenate([
            abs(1 - r) + offsets, 1 + r - offsets, r + offsets, np.abs(r - offsets)
        ])
        result = flux(model, b, r)
        print(f"r = {r:g}: flux range [{result.min():.6f}, {result.max():.6f}]")
        assert np.isfinite(result).all(), f"Non-finite flux for r = {r}"
        assert np.all(result >= -1e-8) and np.all(result <= 1 + 1e-8), f"Flux outside [0, 1] for r = {r}"

    # 3. Kepler solver close to a parabolic orbit
    M = np.linspace(-np.pi, np.pi, 10001)
    E = solve_kepler(M, 0.999999)
    residual = np.abs(np.sin(E - 0.999999 * np.sin(E) - M))
    print(f"Max Kepler residual (e = 0.999999): {residual.max():.3e}")
    assert np.isfinite(E).all(), "Kepler solver produced non-finite values!"
    assert residual.max() < 1e-10, "Kepler solver did not converge!"

    # 4. Test with zero parameters (division by zero test)
    orbit_zero = build_orbit(period=1.0, t0=0.0, M_star=0.0, R_star=0.0, b=0.0)
    print(f"Zero mass orbit: a/R_star = {orbit_zero.aR_star}, incl = {orbit_zero.incl}")

    print("All stability tests passed!")


if __name__ == "__main__":
    test_stability()
