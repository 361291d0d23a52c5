"""
Finite element demonstrations: Laplace on the Gamma-shaped domain with
continuous Q_k elements, and a 1D discontinuous Galerkin solver for scalar
conservation laws.
"""

from .mesh import Mesh
from .fem_solver import LaplaceProblem
from .exact_solution import ExactSolution
from .convergence_table import ConvergenceTable
from .utils import convergence_study
