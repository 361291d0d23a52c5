"""
Preconditioned conjugate gradient solver for the assembled FEM system.
"""

import numpy as np
import numpy.typing as npt
from scipy import sparse
from scipy.sparse.linalg import LinearOperator, cg, spsolve_triangular
from typing import Optional, Tuple

from .errors import SolverConvergenceError


class SSORPreconditioner(LinearOperator):
    """
    Symmetric successive over-relaxation preconditioner.

    Applies the inverse of
        P = (D/omega + L) (D/omega)^{-1} (D/omega + U) / (2 - omega)
    with A = L + D + U, by one forward and one backward triangular solve.
    """

    def __init__(self, matrix, omega: float = 1.2):
        if not 0.0 < omega < 2.0:
            raise ValueError("SSOR relaxation parameter must lie in (0, 2)")

        A = sparse.csr_matrix(matrix)
        self.omega = omega
        self.diagonal = A.diagonal()
        if np.any(self.diagonal == 0.0):
            raise ValueError("SSOR needs a matrix with non-zero diagonal")

        D = sparse.diags(self.diagonal / omega)
        self._lower = sparse.csr_matrix(D + sparse.tril(A, k=-1))
        self._upper = sparse.csr_matrix(D + sparse.triu(A, k=1))
        super().__init__(dtype=A.dtype, shape=A.shape)

    def _matvec(self, r):
        r = np.ravel(r)
        y = spsolve_triangular(self._lower, r, lower=True)
        y *= self.diagonal / self.omega
        z = spsolve_triangular(self._upper, y, lower=False)
        return (2.0 - self.omega) * z


def solve_cg(
    matrix,
    rhs: npt.NDArray[np.float64],
    x0: Optional[npt.NDArray[np.float64]] = None,
    tolerance: float = 1e-12,
    max_iterations: int = 1000,
    omega: float = 1.2,
) -> Tuple[npt.NDArray[np.float64], int]:
    """
    Solve a symmetric positive definite system with SSOR-preconditioned CG.

    Args:
        matrix: Sparse system matrix
        rhs: Right-hand side
        x0: Initial guess (default: zero)
        tolerance: Absolute tolerance on the residual norm
        max_iterations: Iteration limit
        omega: SSOR relaxation parameter

    Returns:
        Tuple of solution and number of iterations
    """
    if rhs.size == 0:
        return np.zeros(0), 0

    preconditioner = SSORPreconditioner(matrix, omega)
    iterations = 0

    def count(_):
        nonlocal iterations
        iterations += 1

    x, info = cg(
        matrix,
        rhs,
        x0=x0,
        rtol=0.0,
        atol=tolerance,
        maxiter=max_iterations,
        M=preconditioner,
        callback=count,
    )

    if info > 0:
        residual = np.linalg.norm(rhs - matrix @ x)
        raise SolverConvergenceError(
            "CG did not converge", iterations=iterations, residual=residual
        )
    if info < 0:
        raise SolverConvergenceError("Illegal input or breakdown in CG")

    return x, iterations
