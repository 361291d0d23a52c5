"""
Shape functions for quadrilateral elements in 2D FEM.
"""

import numpy as np
import numpy.typing as npt
from typing import List, Tuple


# Reference vertex signs, counter-clockwise:
# (-1,-1), (1,-1), (1,1), (-1,1)
XI_A = np.array([-1.0, 1.0, 1.0, -1.0])
ETA_A = np.array([-1.0, -1.0, 1.0, 1.0])

# Local edges as (start vertex, end vertex)
LOCAL_EDGES = ((0, 1), (1, 2), (3, 2), (0, 3))


class ShapeFunctions:
    """
    Bilinear shape functions used for the geometry map of a quadrilateral.

    All methods accept scalar or array reference coordinates; array inputs
    of shape (n,) give outputs with a leading axis of length n.
    """

    @staticmethod
    def N(xi, eta) -> npt.NDArray[np.float64]:
        """
        Evaluate the four vertex shape functions.

        Args:
            xi: Local coordinate(s) in xi direction (-1 to 1)
            eta: Local coordinate(s) in eta direction (-1 to 1)

        Returns:
            Array [..., 4] of shape function values [N1, N2, N3, N4]
        """
        xi = np.asarray(xi, dtype=np.float64)[..., None]
        eta = np.asarray(eta, dtype=np.float64)[..., None]
        return 0.25 * (1 + XI_A * xi) * (1 + ETA_A * eta)

    @staticmethod
    def dN_dxi(eta) -> npt.NDArray[np.float64]:
        """
        Derivatives of the shape functions with respect to xi.
        """
        eta = np.asarray(eta, dtype=np.float64)[..., None]
        return 0.25 * XI_A * (1 + ETA_A * eta)

    @staticmethod
    def dN_deta(xi) -> npt.NDArray[np.float64]:
        """
        Derivatives of the shape functions with respect to eta.
        """
        xi = np.asarray(xi, dtype=np.float64)[..., None]
        return 0.25 * ETA_A * (1 + XI_A * xi)

    @staticmethod
    def map_to_physical(
        xi,
        eta,
        x_nodes: npt.NDArray[np.float64],
        y_nodes: npt.NDArray[np.float64],
    ) -> npt.NDArray[np.float64]:
        """
        Map coordinates from reference element to physical element.

        Args:
            xi: Local coordinate(s) in xi direction
            eta: Local coordinate(s) in eta direction
            x_nodes: x-coordinates of the four element vertices
            y_nodes: y-coordinates of the four element vertices

        Returns:
            Array [..., 2] of physical coordinates
        """
        N = ShapeFunctions.N(xi, eta)
        return np.stack([N @ x_nodes, N @ y_nodes], axis=-1)

    @staticmethod
    def jacobian(
        xi,
        eta,
        x_nodes: npt.NDArray[np.float64],
        y_nodes: npt.NDArray[np.float64],
    ) -> npt.NDArray[np.float64]:
        """
        Jacobian matrix of the mapping, [[dx/dxi, dx/deta], [dy/dxi, dy/deta]].

        Returns:
            Array [..., 2, 2]
        """
        dN_dxi = ShapeFunctions.dN_dxi(eta)
        dN_deta = ShapeFunctions.dN_deta(xi)

        J = np.empty(dN_dxi.shape[:-1] + (2, 2))
        J[..., 0, 0] = dN_dxi @ x_nodes
        J[..., 0, 1] = dN_deta @ x_nodes
        J[..., 1, 0] = dN_dxi @ y_nodes
        J[..., 1, 1] = dN_deta @ y_nodes
        return J

    @staticmethod
    def gradient_transformation_matrix(
        xi,
        eta,
        x_nodes: npt.NDArray[np.float64],
        y_nodes: npt.NDArray[np.float64],
    ) -> Tuple[npt.NDArray[np.float64], npt.NDArray[np.float64]]:
        """
        Calculate the transformation matrix for converting gradients from
        reference to physical space.

        Returns:
            Tuple containing:
                - Inverse-transpose Jacobian, array [..., 2, 2]
                - Determinant of the Jacobian, array [...]
        """
        J = ShapeFunctions.jacobian(xi, eta, x_nodes, y_nodes)
        det_J = J[..., 0, 0] * J[..., 1, 1] - J[..., 0, 1] * J[..., 1, 0]

        if np.any(det_J < 1e-14):
            raise ValueError(
                "Jacobian determinant is not positive, element may be degenerate "
                "or clockwise oriented"
            )

        # [dxi/dx, deta/dx; dxi/dy, deta/dy]
        inv_J_transpose = np.empty_like(J)
        inv_J_transpose[..., 0, 0] = J[..., 1, 1]
        inv_J_transpose[..., 0, 1] = -J[..., 1, 0]
        inv_J_transpose[..., 1, 0] = -J[..., 0, 1]
        inv_J_transpose[..., 1, 1] = J[..., 0, 0]
        inv_J_transpose /= det_J[..., None, None]

        return inv_J_transpose, det_J


def _lagrange_1d(nodes: npt.NDArray[np.float64], x: npt.NDArray[np.float64]):
    """Values and derivatives of the 1D Lagrange polynomials on `nodes`."""
    n = len(nodes)
    x = np.asarray(x, dtype=np.float64)
    values = np.ones(x.shape + (n,))
    derivs = np.zeros(x.shape + (n,))

    for i in range(n):
        others = [m for m in range(n) if m != i]
        denom = np.prod([nodes[i] - nodes[m] for m in others])
        for m in others:
            values[..., i] *= x - nodes[m]
        for k in others:
            term = np.ones_like(x)
            for m in others:
                if m != k:
                    term = term * (x - nodes[m])
            derivs[..., i] += term
        values[..., i] /= denom
        derivs[..., i] /= denom

    return values, derivs


class LagrangeElement:
    """
    Continuous tensor-product Lagrange element Q_k on [-1,1]^2.

    Support points are equispaced. Local DoF (i, j) has index j*(k+1) + i,
    i.e. xi runs fastest.
    """

    def __init__(self, degree: int = 1):
        if degree < 1:
            raise ValueError("Lagrange element degree must be at least 1")

        self.degree = degree
        self.nodes_1d = np.linspace(-1.0, 1.0, degree + 1)
        self.dofs_per_cell = (degree + 1) ** 2

        p = degree
        self.vertex_dofs = [0, p, p * (p + 1) + p, p * (p + 1)]
        self.edge_dofs = self._edge_dofs()
        self.interior_dofs = [
            j * (p + 1) + i for j in range(1, p) for i in range(1, p)
        ]

        xi, eta = np.meshgrid(self.nodes_1d, self.nodes_1d)
        self.unit_support_points = np.stack([xi.ravel(), eta.ravel()], axis=-1)

    def _edge_dofs(self) -> List[List[int]]:
        """Interior DoFs of each local edge, ordered from start to end vertex."""
        p = self.degree
        inner = range(1, p)
        return [
            [i for i in inner],
            [j * (p + 1) + p for j in inner],
            [p * (p + 1) + i for i in inner],
            [j * (p + 1) for j in inner],
        ]

    def values(self, xi, eta) -> npt.NDArray[np.float64]:
        """
        Shape function values.

        Returns:
            Array [..., dofs_per_cell]
        """
        lx, _ = _lagrange_1d(self.nodes_1d, xi)
        ly, _ = _lagrange_1d(self.nodes_1d, eta)
        return (ly[..., :, None] * lx[..., None, :]).reshape(
            lx.shape[:-1] + (self.dofs_per_cell,)
        )

    def gradients(self, xi, eta) -> npt.NDArray[np.float64]:
        """
        Shape function gradients with respect to (xi, eta).

        Returns:
            Array [..., dofs_per_cell, 2]
        """
        lx, dlx = _lagrange_1d(self.nodes_1d, xi)
        ly, dly = _lagrange_1d(self.nodes_1d, eta)
        shape = lx.shape[:-1] + (self.dofs_per_cell,)
        d_xi = (ly[..., :, None] * dlx[..., None, :]).reshape(shape)
        d_eta = (dly[..., :, None] * lx[..., None, :]).reshape(shape)
        return np.stack([d_xi, d_eta], axis=-1)
