"""
Command line driver for the 1D DG solver.

    felab-dg input.prm

Without an argument the list of parameters and their defaults is printed.
"""

import argparse
import dataclasses
import json
import os
import sys

from ..convergence_table import ConvergenceTable, REDUCTION_RATE_LOG2
from ..plots import plot_dg_solution
from .parameters import Parameter, ParameterHandler, declare_parameters, parse_parameters
from .pde import make_pde
from .problem import ScalarProblem
from .test_data import InitialCondition, Solution, get_test_case


def run_convergence_study(param: Parameter, verbose: bool = True) -> ConvergenceTable:
    """
    Solve on param.refine_levels meshes, doubling the number of cells, and
    tabulate the L2 errors.
    """
    test_case = get_test_case(param.test_case)
    pde = make_pde(param.pde, param.speed)
    table = ConvergenceTable()

    for level in range(param.refine_levels):
        level_param = dataclasses.replace(
            param,
            n_cells=param.n_cells * 2**level,
            xmin=test_case.xmin,
            xmax=test_case.xmax,
        )
        if verbose:
            print(f"Level {level}:")
        problem = ScalarProblem(
            level_param,
            InitialCondition(test_case),
            Solution(test_case, param.final_time, pde),
            verbose=verbose,
        )
        error = problem.run()
        if error is None:
            raise ValueError(
                f"No exact solution for test case '{param.test_case}' with pde "
                f"'{param.pde}' at t = {param.final_time}; cannot measure convergence"
            )
        table.add_value("cells", level_param.n_cells)
        table.add_value("dofs", problem.solution.size)
        table.add_value("L2", error)

    table.set_precision("L2", 3)
    table.set_scientific("L2", True)
    table.set_tex_caption("cells", "\\# cells")
    table.set_tex_caption("dofs", "\\# dofs")
    table.set_tex_caption("L2", "$L^2$-error")
    table.set_tex_format("cells", "r")
    table.set_tex_format("dofs", "r")
    table.evaluate_convergence_rates("L2", REDUCTION_RATE_LOG2)
    return table


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="DG solver for 1D scalar conservation laws"
    )
    parser.add_argument("input", nargs="?", help="Input parameter file")
    parser.add_argument(
        "--plot", action="store_true", help="Save the final solution as solution.png"
    )
    parser.add_argument("--quiet", action="store_true", help="Reduce console output")
    args = parser.parse_args(argv)

    ph = ParameterHandler()
    declare_parameters(ph)
    if args.input is None:
        print("Specify input parameter file")
        print("It should contain following parameters.\n")
        ph.print_parameters(sys.stdout)
        return 0

    ph.parse_input(args.input)
    ph.print_parameters(sys.stdout)

    param = parse_parameters(ph)
    test_case = get_test_case(param.test_case)
    param.xmin = test_case.xmin
    param.xmax = test_case.xmax

    os.makedirs(param.output_dir, exist_ok=True)
    with open(os.path.join(param.output_dir, "config.json"), "w") as f:
        json.dump(dataclasses.asdict(param), f, indent=4)

    verbose = not args.quiet
    if param.refine_levels > 1:
        table = run_convergence_study(param, verbose=verbose)
        print()
        table.write_text(sys.stdout)
        with open(os.path.join(param.output_dir, "error.tex"), "w") as f:
            table.write_tex(f)
        return 0

    pde = make_pde(param.pde, param.speed)
    initial_condition = InitialCondition(test_case)
    exact_solution = Solution(test_case, param.final_time, pde)
    problem = ScalarProblem(param, initial_condition, exact_solution, verbose=verbose)
    problem.run()

    if args.plot:
        x, u_h = problem.sample(n_points=10)
        u_exact = exact_solution.value(x) if exact_solution.available else None
        plot_dg_solution(
            x,
            u_h,
            os.path.join(param.output_dir, "solution.png"),
            u_exact=u_exact,
            title=f"{param.test_case}, {param.pde}, t = {param.final_time:g}",
        )

    return 0


if __name__ == "__main__":
    sys.exit(main())
