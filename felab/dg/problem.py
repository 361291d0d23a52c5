"""
Discontinuous Galerkin solver for 1D scalar conservation laws on a
periodic mesh.
"""

import numpy as np
import numpy.typing as npt
from pathlib import Path
from tqdm import tqdm
from typing import Optional

from ..quadrature import QuadratureRule
from .basis import LegendreBasis
from .limiter import limit
from .parameters import Parameter
from .pde import make_pde, numerical_flux
from .test_data import InitialCondition, Solution


class ScalarProblem:
    """
    DG discretisation with a Legendre basis, SSP Runge-Kutta time stepping
    and an optional TVD/TVB limiter applied after every stage.

    The state is an array of Legendre coefficients of shape (n_cells, k+1).
    """

    def __init__(
        self,
        param: Parameter,
        initial_condition: InitialCondition,
        exact_solution: Optional[Solution] = None,
        verbose: bool = True,
    ):
        self.param = param
        self.initial_condition = initial_condition
        self.exact_solution = exact_solution
        self.verbose = verbose

        self.pde = make_pde(param.pde, param.speed)
        self.flux = numerical_flux(param.flux)
        self.basis = LegendreBasis(param.degree)
        self.quadrature = QuadratureRule(param.degree + 2)

        # Tabulated basis at the quadrature points
        self._phi = self.basis.values(self.quadrature.points)
        self._dphi = self.basis.derivatives(self.quadrature.points)

        self.x_faces = None
        self.h = None
        self.inv_mass = None
        self.solution: Optional[npt.NDArray[np.float64]] = None
        self.time = 0.0
        self.n_steps = 0

    def _log(self, message: str) -> None:
        if self.verbose:
            print(message)

    def make_grid_and_dofs(self) -> None:
        p = self.param
        self.x_faces = np.linspace(p.xmin, p.xmax, p.n_cells + 1)
        self.h = (p.xmax - p.xmin) / p.n_cells
        self.inv_mass = 1.0 / self.basis.mass(self.h)
        self.solution = np.zeros((p.n_cells, self.basis.n_dofs))

        self._log(f"   Number of cells: {p.n_cells}")
        self._log(f"   Number of degrees of freedom: {self.solution.size}")

    def cell_points(self, xi) -> npt.NDArray[np.float64]:
        """Physical points of reference coordinates xi in every cell."""
        centres = 0.5 * (self.x_faces[:-1] + self.x_faces[1:])
        return centres[:, None] + 0.5 * self.h * np.asarray(xi)[None, :]

    def initialize(self) -> None:
        """L2 projection of the initial condition."""
        x = self.cell_points(self.quadrature.points)
        u0 = self.initial_condition.value(x)
        # (2i+1)/2 * int P_i u0 dxi
        weights = self.quadrature.weights
        self.solution = (u0 * weights) @ self._phi * (
            (2.0 * np.arange(self.basis.n_dofs) + 1.0) / 2.0
        )
        self.solution = self.apply_limiter(self.solution)
        self.time = 0.0
        self.n_steps = 0

    def apply_limiter(self, u: npt.NDArray[np.float64]) -> npt.NDArray[np.float64]:
        if self.param.limiter == "none":
            return u
        M = self.param.tvb_parameter if self.param.limiter == "tvb" else 0.0
        return limit(u, self.h, M)

    def face_values(self, u):
        """Left and right trace at every interior face of the periodic mesh."""
        u_right_of_cell = u @ self.basis.right
        u_left_of_cell = u @ self.basis.left
        # face j+1/2 sits between cell j and cell j+1
        return u_right_of_cell, np.roll(u_left_of_cell, -1)

    def compute_rhs(self, u: npt.NDArray[np.float64]) -> npt.NDArray[np.float64]:
        """Time derivative of the coefficients, M^{-1} R(u)."""
        # Volume term: int f(u_h) dphi_i/dxi dxi
        uq = u @ self._phi.T
        fq = self.pde.flux(uq)
        rhs = (fq * self.quadrature.weights) @ self._dphi

        ul, ur = self.face_values(u)
        F = self.flux(self.pde, ul, ur)
        # right face contributes -F phi_i(+1), left face +F phi_i(-1)
        rhs -= F[:, None] * self.basis.right[None, :]
        rhs += np.roll(F, 1)[:, None] * self.basis.left[None, :]

        return rhs * self.inv_mass[None, :]

    def compute_dt(self) -> float:
        speed = np.max(np.abs(self.pde.wave_speed(self.solution[:, 0])))
        uq = self.solution @ self._phi.T
        speed = max(speed, np.max(np.abs(self.pde.wave_speed(uq))))
        if speed == 0.0:
            speed = 1.0
        return self.param.cfl * self.h / speed

    def step(self, dt: float) -> None:
        """Advance the solution by one time step."""
        u0 = self.solution
        L = self.compute_rhs
        lim = self.apply_limiter
        scheme = self.param.time_scheme

        if scheme == "euler":
            u = lim(u0 + dt * L(u0))
        elif scheme == "ssprk2":
            u1 = lim(u0 + dt * L(u0))
            u = lim(0.5 * u0 + 0.5 * (u1 + dt * L(u1)))
        elif scheme == "ssprk3":
            u1 = lim(u0 + dt * L(u0))
            u2 = lim(0.75 * u0 + 0.25 * (u1 + dt * L(u1)))
            u = lim(u0 / 3.0 + 2.0 / 3.0 * (u2 + dt * L(u2)))
        else:
            raise ValueError(f"Unknown time scheme '{scheme}'")

        self.solution = u
        self.time += dt
        self.n_steps += 1

    def solve(self) -> None:
        final_time = self.param.final_time
        progress = tqdm(
            total=final_time, desc="Time", unit="t", disable=not self.verbose,
            bar_format="{l_bar}{bar}| {n:.4f}/{total:.4f}",
        )
        while self.time < final_time - 1e-13:
            dt = min(self.compute_dt(), final_time - self.time)
            self.step(dt)
            progress.update(dt)

            if not np.all(np.isfinite(self.solution)):
                progress.close()
                raise FloatingPointError(
                    f"Solution became non-finite at t = {self.time:.6g}; reduce cfl"
                )
            if self.param.output_step > 0 and self.n_steps % self.param.output_step == 0:
                self.output_results()
        progress.close()

        self._log(f"   {self.n_steps} time steps to reach t = {self.time:.6g}")

    def sample(self, n_points: Optional[int] = None):
        """
        Solution sampled at equispaced points inside every cell.

        Returns:
            Tuple (x, u_h) of flattened arrays
        """
        if n_points is None:
            n_points = self.param.degree + 2
        xi = np.linspace(-1.0, 1.0, n_points)
        x = self.cell_points(xi)
        u = self.solution @ self.basis.values(xi).T
        return x.ravel(), u.ravel()

    def output_results(self) -> Path:
        """Write x, u_h and, when available, u_exact to sol-NNNN.dat."""
        x, u = self.sample()
        columns = [x, u]

        exact = self._exact_at(self.time)
        if exact is not None:
            columns.append(exact.value(x))

        out_dir = Path(self.param.output_dir)
        out_dir.mkdir(parents=True, exist_ok=True)
        filename = out_dir / f"sol-{self.n_steps:04d}.dat"
        header = "x u_h" + (" u_exact" if exact is not None else "")
        header += f"\nt = {self.time:.10g}"
        np.savetxt(filename, np.column_stack(columns), header=header)
        return filename

    def _exact_at(self, time: float) -> Optional[Solution]:
        if self.exact_solution is None:
            return None
        if np.isclose(time, self.exact_solution.time):
            exact = self.exact_solution
        else:
            exact = Solution(self.exact_solution.test_case, time, self.pde)
        return exact if exact.available else None

    def compute_error(self) -> Optional[float]:
        """
        L2 error against the exact solution at the current time.

        Returns:
            The error, or None when no exact solution is available
        """
        exact = self._exact_at(self.time)
        if exact is None:
            return None

        quadrature = QuadratureRule(self.param.degree + 3)
        x = self.cell_points(quadrature.points)
        u_h = self.solution @ self.basis.values(quadrature.points).T
        diff = exact.value(x) - u_h
        return float(np.sqrt(0.5 * self.h * np.sum(diff**2 * quadrature.weights)))

    def total_mass(self) -> float:
        """Integral of the solution over the domain."""
        return float(self.h * np.sum(self.solution[:, 0]))

    def run(self) -> Optional[float]:
        self.make_grid_and_dofs()
        self.initialize()
        if self.param.output_step > 0:
            self.output_results()
        self.solve()
        self.output_results()

        error = self.compute_error()
        if error is None:
            self._log("   Exact solution not available, error not computed")
        else:
            self._log(f"   L2 error = {error:.6e}")
        return error
