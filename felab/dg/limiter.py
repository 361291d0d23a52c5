"""
TVD / TVB slope limiter for Legendre coefficients on a periodic mesh.
"""

import numpy as np
import numpy.typing as npt


def minmod(a, b, c):
    """Elementwise minmod of three arrays."""
    s = np.sign(a)
    same_sign = (s == np.sign(b)) & (s == np.sign(c))
    return np.where(same_sign, s * np.minimum(np.abs(a), np.minimum(np.abs(b), np.abs(c))), 0.0)


def tvb_minmod(a, b, c, Mh2: float):
    """minmod that leaves `a` alone when |a| <= M h^2."""
    return np.where(np.abs(a) <= Mh2, a, minmod(a, b, c))


def limit(coefficients: npt.NDArray[np.float64], h: float, tvb_parameter: float = 0.0):
    """
    Cockburn-Shu limiter.

    The deviations of the face values from the cell average are compared
    with the jumps of the averages to the neighbours. Cells where either
    deviation is modified are reduced to a linear polynomial with the
    slope limited by the same TVB minmod; the others are kept unchanged.

    Args:
        coefficients: Legendre coefficients, shape (n_cells, k+1)
        h: Cell width
        tvb_parameter: TVB constant M; 0 gives the TVD limiter

    Returns:
        Limited coefficients (new array)
    """
    u = coefficients.copy()
    if u.shape[1] < 2:
        return u

    ubar = u[:, 0]
    d_plus = np.roll(ubar, -1) - ubar
    d_minus = ubar - np.roll(ubar, 1)

    signs = (-1.0) ** np.arange(u.shape[1])
    # u(+1) - ubar and ubar - u(-1)
    dev_right = u[:, 1:].sum(axis=1)
    dev_left = -(u[:, 1:] * signs[1:]).sum(axis=1)

    Mh2 = tvb_parameter * h * h
    lim_right = tvb_minmod(dev_right, d_plus, d_minus, Mh2)
    lim_left = tvb_minmod(dev_left, d_plus, d_minus, Mh2)

    tol = 1e-12 * np.maximum(1.0, np.abs(ubar))
    changed = (np.abs(lim_right - dev_right) > tol) | (np.abs(lim_left - dev_left) > tol)

    if np.any(changed):
        slope = tvb_minmod(u[changed, 1], d_plus[changed], d_minus[changed], Mh2)
        u[changed, 1:] = 0.0
        u[changed, 1] = slope

    return u
