"""
Driver for the Laplace problem on the Gamma-shaped domain.

    -Laplace(u) = 0 in the Gamma-shaped domain
Exact solution u = r^(2/3) sin(2 theta/3) gives the Dirichlet data.
The coarse mesh is refined uniformly and the errors are collected in a
convergence table, printed and written to error.tex.
"""

import argparse
import json
import os
import sys

from .fem_solver import DEFAULT_MESH_FILE
from .plots import plot_convergence
from .utils import convergence_study


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description="Solve the Laplace equation on the Gamma-shaped domain"
    )
    parser.add_argument(
        "--degree", type=int, default=1, help="Degree of the Lagrange element"
    )
    parser.add_argument(
        "--n-cycles",
        type=int,
        default=5,
        help="Number of uniform refinement levels, starting from the coarse mesh",
    )
    parser.add_argument(
        "--mesh",
        type=str,
        default=str(DEFAULT_MESH_FILE),
        help="Gmsh file with the coarse mesh",
    )
    parser.add_argument(
        "--output-dir", type=str, default=".", help="Directory for output files"
    )
    parser.add_argument(
        "--no-vtk", action="store_true", help="Do not write VTK files"
    )
    parser.add_argument(
        "--plot",
        action="store_true",
        help="Save convergence.png and the finest solution as solution.png",
    )
    parser.add_argument("--quiet", action="store_true", help="Only print the table")
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    os.makedirs(args.output_dir, exist_ok=True)

    config_path = os.path.join(args.output_dir, "config.json")
    with open(config_path, "w") as f:
        json.dump(vars(args), f, indent=4)

    solution_plot = os.path.join(args.output_dir, "solution.png") if args.plot else None
    table = convergence_study(
        degree=args.degree,
        n_cycles=args.n_cycles,
        mesh_file=args.mesh,
        output_dir=args.output_dir,
        write_vtk=not args.no_vtk,
        solution_plot=solution_plot,
        verbose=not args.quiet,
    )

    print()
    table.write_text(sys.stdout)

    with open(os.path.join(args.output_dir, "error.tex"), "w") as error_table_file:
        table.write_tex(error_table_file)

    if args.plot:
        plot_convergence(table, os.path.join(args.output_dir, "convergence.png"))

    return 0


if __name__ == "__main__":
    sys.exit(main())
