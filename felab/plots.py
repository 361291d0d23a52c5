"""
Plots of solutions and convergence histories.
"""

import numpy as np
import numpy.typing as npt
import matplotlib.pyplot as plt
from matplotlib.tri import Triangulation
from pathlib import Path
from typing import Optional, Union

from .convergence_table import ConvergenceTable
from .dof_handler import DoFHandler


def plot_convergence(
    table: ConvergenceTable,
    filename: Union[str, Path],
    size_key: str = "cells",
    error_keys=("L2", "H1"),
    dim: int = 2,
) -> None:
    """
    Log-log plot of errors against mesh size h ~ cells^(-1/dim).

    Args:
        table: Convergence table holding the size and error columns
        filename: Output image path
        size_key: Column with the number of cells
        error_keys: Columns with errors to plot
        dim: Space dimension
    """
    n_cells = np.asarray(table.columns[size_key], dtype=float)
    h_values = n_cells ** (-1.0 / dim)

    plt.figure(figsize=(10, 8))
    markers = ["o-", "s-", "^-", "d-"]
    for k, key in enumerate(error_keys):
        errors = np.asarray(table.columns[key], dtype=float)
        rates = np.log(errors[:-1] / errors[1:]) / np.log(h_values[:-1] / h_values[1:])
        label = f"{key} Error"
        if len(rates) > 0:
            label += f" (Rate ≈ {rates[-1]:.2f})"
        plt.loglog(h_values, errors, markers[k % len(markers)], label=label)

    plt.xlabel("Element Size (h)")
    plt.ylabel("Error")
    plt.title("FEM Convergence Study")
    plt.grid(True, which="both")
    plt.legend()
    plt.savefig(filename)
    plt.close()


def plot_solution(
    dof_handler: DoFHandler,
    solution: npt.NDArray[np.float64],
    filename: Union[str, Path],
    title: str = "FEM Solution",
) -> None:
    """
    Filled contour plot of a solution, sampled at the DoF support points.

    Each quadrilateral patch between support points is split into two
    triangles.
    """
    fe = dof_handler.fe
    p = fe.degree
    triangles = []
    for dofs in dof_handler.cell_dofs:
        for j in range(p):
            for i in range(p):
                a = dofs[j * (p + 1) + i]
                b = dofs[j * (p + 1) + i + 1]
                c = dofs[(j + 1) * (p + 1) + i + 1]
                d = dofs[(j + 1) * (p + 1) + i]
                triangles.append([a, b, c])
                triangles.append([a, c, d])

    points = dof_handler.support_points
    tri = Triangulation(points[:, 0], points[:, 1], triangles)

    fig, ax = plt.subplots(figsize=(8, 8))
    im = ax.tricontourf(tri, solution, 20, cmap="viridis")
    fig.colorbar(im, ax=ax, label="Value")
    ax.set_title(title)
    ax.set_xlabel("x")
    ax.set_ylabel("y")
    ax.set_aspect("equal")
    fig.savefig(filename)
    plt.close(fig)


def plot_dg_solution(
    x: npt.NDArray[np.float64],
    u_h: npt.NDArray[np.float64],
    filename: Union[str, Path],
    u_exact: Optional[npt.NDArray[np.float64]] = None,
    title: str = "DG Solution",
) -> None:
    """
    Plot a sampled 1D DG solution, optionally against the exact solution.
    """
    fig, ax = plt.subplots(figsize=(10, 6))
    ax.plot(x, u_h, "b-", lw=1.5, label="DG")
    if u_exact is not None:
        ax.plot(x, u_exact, "k--", lw=1.0, label="Exact")
    ax.set_xlabel("x")
    ax.set_ylabel("u")
    ax.set_title(title)
    ax.grid(True)
    ax.legend()
    fig.savefig(filename)
    plt.close(fig)
