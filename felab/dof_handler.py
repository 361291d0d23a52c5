"""
Degree-of-freedom numbering for continuous Lagrange elements.
"""

import numpy as np
import numpy.typing as npt
from scipy import sparse
from scipy.sparse.csgraph import reverse_cuthill_mckee
from typing import Optional, Tuple

from .mesh import Mesh
from .shape_functions import LOCAL_EDGES, LagrangeElement, ShapeFunctions


class DoFHandler:
    """
    Global numbering of the DoFs of a Q_k element on a mesh.

    Vertex DoFs come first (numbered like the vertices), then k-1 DoFs per
    edge, then (k-1)^2 DoFs per cell interior. Edge DoFs run from the lower
    to the higher global vertex index so neighbouring cells agree.
    """

    def __init__(self, mesh: Mesh):
        self.mesh = mesh
        self.fe: Optional[LagrangeElement] = None
        self.cell_dofs: Optional[npt.NDArray[np.int64]] = None
        self.n_dofs = 0
        self._support_points = None

    def distribute_dofs(self, fe: LagrangeElement) -> None:
        mesh = self.mesh
        self.fe = fe
        p = fe.degree
        n_edge_dofs = p - 1
        n_cell_dofs = (p - 1) ** 2

        edge_offset = mesh.num_nodes
        cell_offset = edge_offset + mesh.num_edges * n_edge_dofs
        self.n_dofs = cell_offset + mesh.num_elements * n_cell_dofs

        cell_dofs = np.zeros((mesh.num_elements, fe.dofs_per_cell), dtype=np.int64)
        for e in range(mesh.num_elements):
            verts = mesh.connectivity[:, e]
            cell_dofs[e, fe.vertex_dofs] = verts

            for k, (a, b) in enumerate(LOCAL_EDGES):
                edge = mesh.cell_edges[e, k]
                gdofs = edge_offset + edge * n_edge_dofs + np.arange(n_edge_dofs)
                if verts[a] > verts[b]:
                    gdofs = gdofs[::-1]
                cell_dofs[e, fe.edge_dofs[k]] = gdofs

            cell_dofs[e, fe.interior_dofs] = (
                cell_offset + e * n_cell_dofs + np.arange(n_cell_dofs)
            )

        self.cell_dofs = cell_dofs
        self._support_points = None

    def _check_distributed(self):
        if self.cell_dofs is None:
            raise ValueError("DoFs not distributed. Call distribute_dofs() first.")

    @property
    def support_points(self) -> npt.NDArray[np.float64]:
        """Physical location of every DoF, shape (n_dofs, 2)."""
        self._check_distributed()
        if self._support_points is None:
            points = np.zeros((self.n_dofs, 2))
            ref = self.fe.unit_support_points
            for e in range(self.mesh.num_elements):
                node_x, node_y = self.mesh.get_element_coordinates(e)
                points[self.cell_dofs[e]] = ShapeFunctions.map_to_physical(
                    ref[:, 0], ref[:, 1], node_x, node_y
                )
            self._support_points = points
        return self._support_points

    def boundary_dofs(self) -> npt.NDArray[np.int64]:
        """Sorted DoFs located on boundary edges, vertices included."""
        self._check_distributed()
        fe = self.fe
        is_boundary = np.zeros(self.mesh.num_edges, dtype=bool)
        is_boundary[self.mesh.boundary_edges] = True

        dofs = []
        for k, (a, b) in enumerate(LOCAL_EDGES):
            cells = np.flatnonzero(is_boundary[self.mesh.cell_edges[:, k]])
            local = [fe.vertex_dofs[a], fe.vertex_dofs[b]] + fe.edge_dofs[k]
            dofs.append(self.cell_dofs[np.ix_(cells, local)].ravel())
        return np.unique(np.concatenate(dofs))

    def sparsity_pattern(self) -> Tuple[npt.NDArray[np.int64], npt.NDArray[np.int64]]:
        """
        Row and column indices of every cell-matrix entry, in the order the
        flattened cell matrices are scattered.
        """
        self._check_distributed()
        n = self.fe.dofs_per_cell
        rows = np.repeat(self.cell_dofs, n, axis=1).ravel()
        cols = np.tile(self.cell_dofs, (1, n)).ravel()
        return rows, cols

    def renumber_cuthill_mckee(self) -> npt.NDArray[np.int64]:
        """
        Renumber DoFs with reverse Cuthill-McKee to reduce the bandwidth.

        Returns:
            Permutation with new_index = permutation[old_index]
        """
        rows, cols = self.sparsity_pattern()
        graph = sparse.csr_matrix(
            (np.ones(len(rows)), (rows, cols)), shape=(self.n_dofs, self.n_dofs)
        )
        order = reverse_cuthill_mckee(graph, symmetric_mode=True)
        permutation = np.empty_like(order)
        permutation[order] = np.arange(self.n_dofs)

        self.cell_dofs = permutation[self.cell_dofs]
        self._support_points = None
        return permutation
