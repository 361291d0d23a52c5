"""
Exact solution of the Laplace equation on the Gamma-shaped domain.

    u = r^(2/3) sin(2 theta / 3),   theta in [0, 2 pi)

It is harmonic, vanishes on the two edges meeting at the re-entrant corner
and has a gradient singularity at the origin. It supplies the Dirichlet data
and the reference for the error norms.
"""

import numpy as np
import numpy.typing as npt


class ExactSolution:
    """
    Exact solution functor with vectorised value and gradient.
    """

    def __init__(self, exponent: float = 2.0 / 3.0):
        self.exponent = exponent

    @staticmethod
    def _polar(x, y):
        x = np.asarray(x, dtype=np.float64)
        y = np.asarray(y, dtype=np.float64)
        r = np.hypot(x, y)
        theta = np.arctan2(y, x)
        theta = np.where(theta < 0.0, theta + 2.0 * np.pi, theta)
        return x, y, r, theta

    def value(self, x, y) -> npt.NDArray[np.float64]:
        _, _, r, theta = self._polar(x, y)
        return r**self.exponent * np.sin(self.exponent * theta)

    def gradient(self, x, y) -> npt.NDArray[np.float64]:
        """
        Gradient [du/dx, du/dy], stacked on a trailing axis of length 2.

        Infinite at the origin.
        """
        x, y, r, theta = self._polar(x, y)
        a = self.exponent
        c = np.cos(a * theta)
        s = np.sin(a * theta)
        with np.errstate(divide="ignore", invalid="ignore"):
            scale = a * r ** (a - 2.0)
            return np.stack([scale * (-y * c + x * s), scale * (x * c + y * s)], axis=-1)

    def __call__(self, x, y):
        return self.value(x, y)
