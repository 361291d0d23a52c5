"""
Legendre modal basis on the reference cell [-1,1].
"""

import numpy as np
import numpy.typing as npt
from numpy.polynomial import legendre


class LegendreBasis:
    """
    Basis P_0 .. P_k of Legendre polynomials.

    The basis is orthogonal, so the mass matrix on a cell of width h is
    diagonal with entries h / (2i + 1). Coefficient 0 is the cell average.
    """

    def __init__(self, degree: int):
        if degree < 0:
            raise ValueError("Basis degree must be non-negative")
        self.degree = degree
        self.n_dofs = degree + 1
        self._identity = np.eye(self.n_dofs)

        # Values at the right (+1) and left (-1) faces
        self.right = np.ones(self.n_dofs)
        self.left = (-1.0) ** np.arange(self.n_dofs)

    def values(self, xi) -> npt.NDArray[np.float64]:
        """Basis values, shape (len(xi), n_dofs)."""
        xi = np.atleast_1d(np.asarray(xi, dtype=np.float64))
        return legendre.legvander(xi, self.degree)

    def derivatives(self, xi) -> npt.NDArray[np.float64]:
        """Derivatives d/dxi of the basis, shape (len(xi), n_dofs)."""
        xi = np.atleast_1d(np.asarray(xi, dtype=np.float64))
        return np.stack(
            [legendre.legval(xi, legendre.legder(self._identity[i])) for i in range(self.n_dofs)],
            axis=-1,
        )

    def mass(self, h: float) -> npt.NDArray[np.float64]:
        """Diagonal of the cell mass matrix."""
        return h / (2.0 * np.arange(self.n_dofs) + 1.0)
