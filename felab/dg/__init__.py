"""
Discontinuous Galerkin solver for 1D scalar conservation laws.
"""

from .parameters import Parameter, ParameterHandler, declare_parameters, parse_parameters
from .problem import ScalarProblem
from .test_data import InitialCondition, Solution, get_test_case
