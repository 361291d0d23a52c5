"""
Finite element solver for the Laplace equation with Dirichlet data.

    -Laplace(u) = 0 in the Gamma-shaped domain
              u = g on the boundary, g taken from the exact solution
"""

import numpy as np
import numpy.typing as npt
from dataclasses import dataclass
from pathlib import Path
from scipy import sparse
from typing import Optional, Tuple, Union

from .data_out import DataOut
from .dof_handler import DoFHandler
from .element import CellValues, Element
from .exact_solution import ExactSolution
from .gmsh_reader import read_msh
from .linear_solver import solve_cg
from .mesh import Mesh
from .quadrature import QuadratureRule
from .shape_functions import LagrangeElement

DEFAULT_MESH_FILE = Path(__file__).parent / "data" / "Gamma.msh"


@dataclass
class RunResult:
    """Summary of one refinement cycle."""

    n_cells: int
    n_dofs: int
    l2_error: float
    h1_error: float
    cg_iterations: int


class LaplaceProblem:
    """
    Class for solving the Laplace problem on one refinement level.

    Sequence: make_grid_and_dofs -> assemble -> solve -> output_results
    -> evaluate_error, driven by run().
    """

    def __init__(
        self,
        degree: int = 1,
        n_refine: int = 0,
        mesh_file: Optional[Union[str, Path]] = None,
        exact_solution=None,
        output_dir: Union[str, Path] = ".",
        write_vtk: bool = True,
        coarse_mesh: Optional[Mesh] = None,
        renumber_dofs: bool = False,
        verbose: bool = True,
    ):
        """
        Initialize the problem.

        Args:
            degree: Polynomial degree of the Lagrange element
            n_refine: Number of global refinements of the coarse mesh
            mesh_file: Gmsh file with the coarse mesh (default: packaged Gamma.msh)
            exact_solution: Object with vectorised value(x, y) and gradient(x, y)
                (default: ExactSolution)
            output_dir: Directory for VTK output
            write_vtk: Whether output_results writes a file
            coarse_mesh: Use this mesh instead of reading mesh_file
            renumber_dofs: Apply reverse Cuthill-McKee renumbering
            verbose: Print progress
        """
        self.degree = degree
        self.n_refine = n_refine
        self.mesh_file = Path(mesh_file) if mesh_file is not None else DEFAULT_MESH_FILE
        self.exact_solution = exact_solution if exact_solution is not None else ExactSolution()
        self.output_dir = Path(output_dir)
        self.write_vtk = write_vtk
        self.coarse_mesh = coarse_mesh
        self.renumber_dofs = renumber_dofs
        self.verbose = verbose

        self.fe = LagrangeElement(degree)
        self.mesh: Optional[Mesh] = None
        self.dof_handler: Optional[DoFHandler] = None
        self.system_matrix = None
        self.system_rhs: Optional[npt.NDArray[np.float64]] = None
        self.solution: Optional[npt.NDArray[np.float64]] = None
        self.cg_iterations = 0
        self._free = None

    def _log(self, message: str) -> None:
        if self.verbose:
            print(message)

    def make_grid_and_dofs(self) -> None:
        if self.coarse_mesh is not None:
            self.mesh = self.coarse_mesh.copy()
        else:
            self.mesh = read_msh(self.mesh_file)
        self.mesh.refine_global(self.n_refine)

        self._log(f"   Number of active cells: {self.mesh.num_elements}")
        self._log(f"   Total number of cells: {self.mesh.num_cells_total}")

        self.dof_handler = DoFHandler(self.mesh)
        self.dof_handler.distribute_dofs(self.fe)
        if self.renumber_dofs:
            self.dof_handler.renumber_cuthill_mckee()

        self._log(f"   Number of degrees of freedom: {self.dof_handler.n_dofs}")

        n_dofs = self.dof_handler.n_dofs
        self.solution = np.zeros(n_dofs)
        self.system_rhs = np.zeros(n_dofs)

    def _check_setup(self):
        if self.dof_handler is None:
            raise ValueError("Grid not available. Call make_grid_and_dofs() first.")

    def assemble(self) -> Tuple[sparse.csr_array, npt.NDArray[np.float64]]:
        """
        Assemble the stiffness matrix and apply the Dirichlet boundary values.

        Boundary DoFs are eliminated: their values are written into the
        solution and moved to the right-hand side, and the returned system
        only contains the free DoFs.

        Returns:
            Tuple of reduced system matrix and right-hand side
        """
        self._check_setup()
        dh = self.dof_handler
        n_dofs = dh.n_dofs

        element = Element(self.fe, QuadratureRule(2 * self.degree))
        cell_matrices = np.zeros((self.mesh.num_elements,) + (self.fe.dofs_per_cell,) * 2)
        for e in range(self.mesh.num_elements):
            node_x, node_y = self.mesh.get_element_coordinates(e)
            cell_matrices[e] = element.stiffness_matrix(node_x, node_y)

        rows, cols = dh.sparsity_pattern()
        K = sparse.csr_array((cell_matrices.ravel(), (rows, cols)), shape=(n_dofs, n_dofs))
        K.sum_duplicates()

        # Dirichlet values interpolated from the exact solution
        boundary = dh.boundary_dofs()
        points = dh.support_points[boundary]
        self.solution[:] = 0.0
        self.solution[boundary] = self.exact_solution.value(points[:, 0], points[:, 1])

        free = np.ones(n_dofs, dtype=bool)
        free[boundary] = False
        self._free = free

        # Laplace equation: no source term
        self.system_rhs = np.zeros(n_dofs) - K @ self.solution
        self.system_matrix = K[free, :][:, free]

        return self.system_matrix, self.system_rhs[free]

    def solve(self) -> npt.NDArray[np.float64]:
        """
        Solve the reduced system with SSOR-preconditioned CG.

        Returns:
            Solution vector at all DoFs
        """
        if self.system_matrix is None:
            raise ValueError("System not assembled. Call assemble() first.")

        u_free, self.cg_iterations = solve_cg(
            self.system_matrix,
            self.system_rhs[self._free],
            tolerance=1e-12,
            max_iterations=1000,
            omega=1.2,
        )
        self.solution[self._free] = u_free

        self._log(
            f"   {self.cg_iterations} CG iterations needed to obtain convergence."
        )
        return self.solution

    def interpolate_exact(self) -> npt.NDArray[np.float64]:
        """Exact solution at the DoF support points."""
        self._check_setup()
        points = self.dof_handler.support_points
        return self.exact_solution.value(points[:, 0], points[:, 1])

    def output_results(self) -> Optional[Path]:
        """
        Write solution and nodal error to solution-NN.vtk.

        Returns:
            Path of the written file, or None if VTK output is disabled
        """
        if self.solution is None:
            raise ValueError("Solution not available. Call solve() first.")

        error = self.interpolate_exact() - self.solution
        if not self.write_vtk:
            return None

        data_out = DataOut(self.dof_handler)
        data_out.add_data_vector(self.solution, "solution")
        data_out.add_data_vector(error, "error")
        data_out.build_patches(self.degree)

        self.output_dir.mkdir(parents=True, exist_ok=True)
        filename = self.output_dir / f"solution-{self.n_refine:02d}.vtk"
        with open(filename, "w") as output:
            data_out.write_vtk(output)
        return filename

    def evaluate_error(self) -> Tuple[float, float]:
        """
        Evaluate the L2 norm and the H1 seminorm of the error.

        Both are the l2 norm over cells of the per-cell integrals, computed
        with a Gauss rule of 2*degree+1 points per direction.

        Returns:
            Tuple of L2 error and H1 seminorm error
        """
        if self.solution is None:
            raise ValueError("Solution not available. Call solve() first.")

        values = CellValues(self.fe, QuadratureRule(2 * self.degree + 1))
        n_cells = self.mesh.num_elements
        l2_per_cell = np.zeros(n_cells)
        h1_per_cell = np.zeros(n_cells)

        for e in range(n_cells):
            node_x, node_y = self.mesh.get_element_coordinates(e)
            values.reinit(node_x, node_y)
            local = self.solution[self.dof_handler.cell_dofs[e]]

            x = values.quadrature_points[:, 0]
            y = values.quadrature_points[:, 1]
            u_diff = self.exact_solution.value(x, y) - values.function_values(local)
            grad_diff = self.exact_solution.gradient(x, y) - values.function_gradients(local)

            l2_per_cell[e] = np.sqrt(np.sum(u_diff**2 * values.JxW))
            h1_per_cell[e] = np.sqrt(np.sum(np.sum(grad_diff**2, axis=1) * values.JxW))

        return float(np.linalg.norm(l2_per_cell)), float(np.linalg.norm(h1_per_cell))

    def run(self) -> RunResult:
        self.make_grid_and_dofs()
        self.assemble()
        self.solve()
        self.output_results()
        l2_error, h1_error = self.evaluate_error()

        self._log("-----------------------------------------------------")
        return RunResult(
            n_cells=self.mesh.num_elements,
            n_dofs=self.dof_handler.n_dofs,
            l2_error=l2_error,
            h1_error=h1_error,
            cg_iterations=self.cg_iterations,
        )
