"""
Element-level computations for 2D FEM.
"""

import numpy as np
import numpy.typing as npt

from .shape_functions import ShapeFunctions, LagrangeElement
from .quadrature import QuadratureRule


class CellValues:
    """
    Values of a Lagrange element at the quadrature points of one cell.

    Reference values are tabulated once; `reinit` maps them to the physical
    cell given by its four vertices.
    """

    def __init__(self, fe: LagrangeElement, quadrature: QuadratureRule):
        self.fe = fe
        self.quadrature = quadrature
        self.xi, self.eta, self.weights = quadrature.tensor_points()
        self.n_q_points = len(self.weights)

        self.shape_values = fe.values(self.xi, self.eta)
        self._ref_gradients = fe.gradients(self.xi, self.eta)

        self.shape_grads = None
        self.JxW = None
        self.quadrature_points = None

    def reinit(
        self, node_x: npt.NDArray[np.float64], node_y: npt.NDArray[np.float64]
    ) -> "CellValues":
        """
        Compute physical gradients, JxW and quadrature points on a cell.

        Args:
            node_x: x-coordinates of the cell vertices
            node_y: y-coordinates of the cell vertices
        """
        inv_J_T, det_J = ShapeFunctions.gradient_transformation_matrix(
            self.xi, self.eta, node_x, node_y
        )
        # (q, 2, 2) x (q, dofs, 2) -> (q, dofs, 2)
        self.shape_grads = np.einsum("qab,qib->qia", inv_J_T, self._ref_gradients)
        self.JxW = det_J * self.weights
        self.quadrature_points = ShapeFunctions.map_to_physical(
            self.xi, self.eta, node_x, node_y
        )
        return self

    def function_values(self, local_values: npt.NDArray[np.float64]):
        """Finite element function at the quadrature points."""
        return self.shape_values @ local_values

    def function_gradients(self, local_values: npt.NDArray[np.float64]):
        """Finite element gradient at the quadrature points, shape (q, 2)."""
        return np.einsum("qia,i->qa", self.shape_grads, local_values)


class Element:
    """
    Class for element-level computations in FEM.
    """

    def __init__(self, fe: LagrangeElement, quadrature: QuadratureRule):
        """
        Initialize element with a Lagrange element and a quadrature rule.

        Args:
            fe: Lagrange element on the reference square
            quadrature: Quadrature rule for numerical integration
        """
        self.fe = fe
        self.quadrature = quadrature
        self.cell_values = CellValues(fe, quadrature)

    def stiffness_matrix(
        self,
        node_x: npt.NDArray[np.float64],
        node_y: npt.NDArray[np.float64],
    ) -> npt.NDArray[np.float64]:
        """
        Compute the element Laplace stiffness matrix.

        Args:
            node_x: x-coordinates of the element vertices
            node_y: y-coordinates of the element vertices

        Returns:
            Element stiffness matrix (dofs_per_cell x dofs_per_cell)
        """
        values = self.cell_values.reinit(node_x, node_y)
        B = values.shape_grads

        # sum_q grad(phi_i) . grad(phi_j) JxW
        return np.einsum("qia,qja,q->ij", B, B, values.JxW)
