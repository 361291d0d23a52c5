"""SSOR preconditioner and the CG driver."""

import numpy as np
import pytest
from scipy import sparse

from felab.errors import SolverConvergenceError
from felab.linear_solver import SSORPreconditioner, solve_cg


def laplacian_1d(n):
    return sparse.diags(
        [-np.ones(n - 1), 2.0 * np.ones(n), -np.ones(n - 1)], [-1, 0, 1], format="csr"
    )


class TestSSORPreconditioner:
    """Application of the SSOR inverse."""

    def test_inverts_ssor_matrix(self):
        A = laplacian_1d(6).toarray()
        omega = 1.2
        D = np.diag(np.diag(A)) / omega
        L = np.tril(A, k=-1)
        U = np.triu(A, k=1)
        P = (D + L) @ np.linalg.inv(D) @ (D + U) / (2.0 - omega)

        M = SSORPreconditioner(sparse.csr_matrix(A), omega)
        v = np.arange(1.0, 7.0)
        assert np.allclose(M.matvec(P @ v), v)

    def test_invalid_omega(self):
        with pytest.raises(ValueError):
            SSORPreconditioner(laplacian_1d(4), omega=2.0)


class TestSolveCG:
    """Preconditioned CG with iteration count."""

    def test_solves_spd_system(self):
        A = laplacian_1d(50)
        rhs = np.ones(50)
        x, iterations = solve_cg(A, rhs)
        assert np.linalg.norm(A @ x - rhs) < 1e-10
        assert 0 < iterations <= 50

    def test_empty_system(self):
        x, iterations = solve_cg(laplacian_1d(3)[:0, :0], np.zeros(0))
        assert x.size == 0
        assert iterations == 0

    def test_iteration_limit_raises(self):
        with pytest.raises(SolverConvergenceError) as excinfo:
            solve_cg(laplacian_1d(50), np.ones(50), max_iterations=1)
        assert excinfo.value.iterations == 1
        assert excinfo.value.residual > 0
