"""
Gauss-Legendre quadrature rules for numerical integration in FEM.
"""

import numpy as np
import numpy.typing as npt
from typing import Tuple


class QuadratureRule:
    """
    Gauss-Legendre rule with `n_points` points per direction on [-1,1],
    and its tensor product on the reference element [-1,1]×[-1,1].
    """

    def __init__(self, n_points: int = 2):
        """
        Args:
            n_points: Number of Gauss points per direction (exact for
                polynomials of degree 2*n_points - 1)
        """
        if n_points < 1:
            raise ValueError("Quadrature rule needs at least one point")

        self.n_points = n_points
        self.points, self.weights = np.polynomial.legendre.leggauss(n_points)

    def tensor_points(
        self,
    ) -> Tuple[npt.NDArray[np.float64], npt.NDArray[np.float64], npt.NDArray[np.float64]]:
        """
        Tensor-product points and weights on the reference square.

        Returns:
            Tuple (xi, eta, weights), each of length n_points**2, ordered with
            xi running fastest
        """
        xi, eta = np.meshgrid(self.points, self.points)
        w = np.outer(self.weights, self.weights)
        return xi.ravel(), eta.ravel(), w.ravel()
