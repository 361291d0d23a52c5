"""
Convergence study driver for the Laplace problem.
"""

from pathlib import Path
from typing import List, Optional, Union

from .convergence_table import ConvergenceTable, REDUCTION_RATE_LOG2
from .fem_solver import LaplaceProblem, RunResult
from .plots import plot_solution


def convergence_study(
    degree: int = 1,
    n_cycles: int = 5,
    mesh_file: Optional[Union[str, Path]] = None,
    exact_solution=None,
    output_dir: Union[str, Path] = ".",
    write_vtk: bool = True,
    solution_plot: Optional[Union[str, Path]] = None,
    verbose: bool = True,
) -> ConvergenceTable:
    """
    Solve on n_cycles successively refined meshes and tabulate the errors.

    Args:
        degree: Polynomial degree of the Lagrange element
        n_cycles: Number of refinement levels, starting from the coarse mesh
        mesh_file: Gmsh file with the coarse mesh
        exact_solution: Exact solution supplying boundary data and reference
        output_dir: Directory for the VTK files
        write_vtk: Write one VTK file per cycle
        solution_plot: Save a contour plot of the last cycle's solution here
        verbose: Print progress

    Returns:
        ConvergenceTable with columns cells, dofs, L2, H1 and their log2 rates
    """
    table = ConvergenceTable()
    results: List[RunResult] = []

    for n in range(n_cycles):
        if verbose:
            print(f"Cycle {n}:")
        problem = LaplaceProblem(
            degree,
            n,
            mesh_file=mesh_file,
            exact_solution=exact_solution,
            output_dir=output_dir,
            write_vtk=write_vtk,
            verbose=verbose,
        )
        result = problem.run()
        results.append(result)

        table.add_value("cells", result.n_cells)
        table.add_value("dofs", result.n_dofs)
        table.add_value("L2", result.l2_error)
        table.add_value("H1", result.h1_error)

    if solution_plot is not None and results:
        plot_solution(
            problem.dof_handler,
            problem.solution,
            solution_plot,
            title=f"Q{degree} solution, {problem.mesh.num_elements} cells",
        )

    table.set_precision("L2", 3)
    table.set_scientific("L2", True)

    table.set_precision("H1", 3)
    table.set_scientific("H1", True)

    table.set_tex_caption("cells", "\\# cells")
    table.set_tex_caption("dofs", "\\# dofs")
    table.set_tex_caption("L2", "$L^2$-error")
    table.set_tex_caption("H1", "$H^1$-error")

    table.set_tex_format("cells", "r")
    table.set_tex_format("dofs", "r")

    table.evaluate_convergence_rates("L2", REDUCTION_RATE_LOG2)
    table.evaluate_convergence_rates("H1", REDUCTION_RATE_LOG2)

    return table
