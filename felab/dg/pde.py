"""
Scalar conservation laws u_t + f(u)_x = 0 and their numerical fluxes.
"""

import numpy as np


class LinearAdvection:
    """f(u) = a u"""

    name = "linear"

    def __init__(self, speed: float = 1.0):
        self.speed = speed

    def flux(self, u):
        return self.speed * u

    def wave_speed(self, u):
        return np.full_like(np.asarray(u, dtype=np.float64), self.speed)

    def sonic_point(self, ul, ur):
        # No sign change of f'(u)
        return None


class Burgers:
    """f(u) = u^2 / 2"""

    name = "burgers"

    def flux(self, u):
        return 0.5 * u * u

    def wave_speed(self, u):
        return np.asarray(u, dtype=np.float64)

    def sonic_point(self, ul, ur):
        return 0.0


def make_pde(name: str, speed: float = 1.0):
    if name == "linear":
        return LinearAdvection(speed)
    if name == "burgers":
        return Burgers()
    raise ValueError(f"Unknown pde '{name}'")


def central_flux(pde, ul, ur):
    return 0.5 * (pde.flux(ul) + pde.flux(ur))


def upwind_flux(pde, ul, ur):
    if not isinstance(pde, LinearAdvection):
        raise ValueError("Upwind flux is only defined for linear advection")
    return pde.flux(ul) if pde.speed >= 0 else pde.flux(ur)


def rusanov_flux(pde, ul, ur):
    """Local Lax-Friedrichs flux."""
    alpha = np.maximum(np.abs(pde.wave_speed(ul)), np.abs(pde.wave_speed(ur)))
    return 0.5 * (pde.flux(ul) + pde.flux(ur)) - 0.5 * alpha * (ur - ul)


def godunov_flux(pde, ul, ur):
    """
    Flux of the exact Riemann solution for a convex flux:
    min over [ul, ur] of f if ul <= ur, max over [ur, ul] otherwise.
    """
    fl = pde.flux(ul)
    fr = pde.flux(ur)
    flux = np.where(ul <= ur, np.minimum(fl, fr), np.maximum(fl, fr))

    sonic = pde.sonic_point(ul, ur)
    if sonic is not None:
        # Transonic rarefaction: minimum of f sits at the sonic point
        inside = (ul < sonic) & (sonic < ur)
        flux = np.where(inside, pde.flux(sonic), flux)
    return flux


def roe_flux(pde, ul, ur):
    """Roe flux with the Roe-averaged speed, no entropy fix."""
    fl = pde.flux(ul)
    fr = pde.flux(ur)
    du = ur - ul
    with np.errstate(divide="ignore", invalid="ignore"):
        a = np.where(np.abs(du) > 1e-14, (fr - fl) / du, pde.wave_speed(0.5 * (ul + ur)))
    return 0.5 * (fl + fr) - 0.5 * np.abs(a) * du


NUMERICAL_FLUXES = {
    "central": central_flux,
    "upwind": upwind_flux,
    "rusanov": rusanov_flux,
    "godunov": godunov_flux,
    "roe": roe_flux,
}


def numerical_flux(name: str):
    if name not in NUMERICAL_FLUXES:
        raise ValueError(f"Unknown numerical flux '{name}'")
    return NUMERICAL_FLUXES[name]
