"""
Quadrilateral mesh generation, refinement and management for 2D FEM.
"""

import numpy as np
import numpy.typing as npt
import matplotlib.pyplot as plt
from typing import Dict, Optional, Tuple

from .shape_functions import LOCAL_EDGES


class Mesh:
    """
    Class for managing an unstructured quadrilateral mesh.

    Coordinates are stored as (2, num_nodes) and connectivity as
    (4, num_elements) with counter-clockwise vertex order.
    """

    def __init__(
        self,
        coordinates: npt.NDArray[np.float64],
        connectivity: npt.NDArray[np.int64],
    ):
        """
        Initialize a mesh from nodal coordinates and cell connectivity.

        Args:
            coordinates: Array of shape (2, num_nodes)
            connectivity: Array of shape (4, num_elements)
        """
        self.coordinates = np.asarray(coordinates, dtype=np.float64)
        self.connectivity = np.asarray(connectivity, dtype=np.int64)

        if self.coordinates.shape[0] != 2 or self.connectivity.shape[0] != 4:
            raise ValueError(
                "Expected coordinates of shape (2, n) and connectivity of shape (4, m)"
            )

        # Cells on all refinement levels, including the active ones
        self.num_cells_total = self.num_elements
        self._topology = None

    @classmethod
    def rectangle(
        cls,
        x_min: float,
        x_max: float,
        y_min: float,
        y_max: float,
        num_elements_x: int,
        num_elements_y: int,
    ) -> "Mesh":
        """
        Structured mesh of a rectangle.

        Args:
            x_min: Left boundary of the domain
            x_max: Right boundary of the domain
            y_min: Bottom boundary of the domain
            y_max: Top boundary of the domain
            num_elements_x: Number of elements in x direction
            num_elements_y: Number of elements in y direction
        """
        num_nodes_x = num_elements_x + 1
        num_nodes_y = num_elements_y + 1

        x = np.linspace(x_min, x_max, num_nodes_x)
        y = np.linspace(y_min, y_max, num_nodes_y)
        X, Y = np.meshgrid(x, y)
        coordinates = np.vstack([X.ravel(), Y.ravel()])

        connectivity = np.zeros((4, num_elements_x * num_elements_y), dtype=np.int64)
        for j in range(num_elements_y):
            for i in range(num_elements_x):
                elem_index = j * num_elements_x + i
                connectivity[0, elem_index] = j * num_nodes_x + i  # Bottom left
                connectivity[1, elem_index] = j * num_nodes_x + i + 1  # Bottom right
                connectivity[2, elem_index] = (j + 1) * num_nodes_x + i + 1  # Top right
                connectivity[3, elem_index] = (j + 1) * num_nodes_x + i  # Top left

        return cls(coordinates, connectivity)

    @classmethod
    def l_shaped(cls) -> "Mesh":
        """
        Coarse three-cell mesh of (-1,1)^2 without the quadrant [0,1]x[-1,0].
        """
        coordinates = np.array(
            [
                [-1.0, 0.0, 0.0, -1.0, 1.0, 1.0, 0.0, -1.0],
                [-1.0, -1.0, 0.0, 0.0, 0.0, 1.0, 1.0, 1.0],
            ]
        )
        connectivity = np.array(
            [
                [0, 3, 2],
                [1, 2, 4],
                [2, 6, 5],
                [3, 7, 6],
            ]
        )
        return cls(coordinates, connectivity)

    def copy(self) -> "Mesh":
        mesh = Mesh(self.coordinates.copy(), self.connectivity.copy())
        mesh.num_cells_total = self.num_cells_total
        return mesh

    @property
    def num_nodes(self) -> int:
        return self.coordinates.shape[1]

    @property
    def num_elements(self) -> int:
        return self.connectivity.shape[1]

    def _build_topology(self):
        edge_index: Dict[Tuple[int, int], int] = {}
        cell_edges = np.zeros((self.num_elements, 4), dtype=np.int64)
        counts = []

        for e in range(self.num_elements):
            nodes = self.connectivity[:, e]
            for k, (a, b) in enumerate(LOCAL_EDGES):
                key = (min(nodes[a], nodes[b]), max(nodes[a], nodes[b]))
                if key not in edge_index:
                    edge_index[key] = len(edge_index)
                    counts.append(0)
                cell_edges[e, k] = edge_index[key]
                counts[edge_index[key]] += 1

        edges = np.zeros((len(edge_index), 2), dtype=np.int64)
        for key, idx in edge_index.items():
            edges[idx] = key

        if any(c > 2 for c in counts):
            raise ValueError("Mesh has an edge shared by more than two cells")

        boundary_edges = np.flatnonzero(np.array(counts) == 1)
        self._topology = (edges, cell_edges, boundary_edges)

    @property
    def edges(self) -> npt.NDArray[np.int64]:
        """Unique edges as sorted vertex pairs, shape (num_edges, 2)."""
        if self._topology is None:
            self._build_topology()
        return self._topology[0]

    @property
    def cell_edges(self) -> npt.NDArray[np.int64]:
        """Edge index of each local edge of each cell, shape (num_elements, 4)."""
        if self._topology is None:
            self._build_topology()
        return self._topology[1]

    @property
    def boundary_edges(self) -> npt.NDArray[np.int64]:
        """Indices of the edges that belong to exactly one cell."""
        if self._topology is None:
            self._build_topology()
        return self._topology[2]

    @property
    def num_edges(self) -> int:
        return len(self.edges)

    @property
    def boundary_nodes(self) -> npt.NDArray[np.int64]:
        """Sorted indices of the vertices on the boundary."""
        return np.unique(self.edges[self.boundary_edges].ravel())

    def refine_global(self, times: int = 1) -> None:
        """
        Uniformly refine every cell into four, `times` times.

        New vertices are appended: edge midpoints first, then cell centres.
        """
        for _ in range(times):
            edges = self.edges
            cell_edges = self.cell_edges
            n_nodes = self.num_nodes
            n_edges = len(edges)
            n_cells = self.num_elements

            midpoints = 0.5 * (
                self.coordinates[:, edges[:, 0]] + self.coordinates[:, edges[:, 1]]
            )
            centres = self.coordinates[:, self.connectivity].mean(axis=1)
            coordinates = np.hstack([self.coordinates, midpoints, centres])

            connectivity = np.zeros((4, 4 * n_cells), dtype=np.int64)
            for e in range(n_cells):
                v0, v1, v2, v3 = self.connectivity[:, e]
                m01, m12, m32, m03 = n_nodes + cell_edges[e]
                c = n_nodes + n_edges + e
                children = (
                    (v0, m01, c, m03),
                    (m01, v1, m12, c),
                    (c, m12, v2, m32),
                    (m03, c, m32, v3),
                )
                for k, child in enumerate(children):
                    connectivity[:, 4 * e + k] = child

            self.coordinates = coordinates
            self.connectivity = connectivity
            self.num_cells_total += connectivity.shape[1]
            self._topology = None

    def get_element_nodes(self, element_index: int) -> npt.NDArray[np.int64]:
        """
        Get the node indices of an element.
        """
        return self.connectivity[:, element_index]

    def get_element_coordinates(self, element_index: int) -> tuple:
        """
        Get the coordinates of the nodes of an element.

        Args:
            element_index: Element index

        Returns:
            Tuple (x_coords, y_coords) of node coordinates
        """
        nodes = self.get_element_nodes(element_index)
        x_coords = self.coordinates[0, nodes]
        y_coords = self.coordinates[1, nodes]

        return x_coords, y_coords

    def cell_diameters(self) -> npt.NDArray[np.float64]:
        """Longest diagonal of each cell."""
        xy = self.coordinates[:, self.connectivity]
        d1 = np.linalg.norm(xy[:, 2] - xy[:, 0], axis=0)
        d2 = np.linalg.norm(xy[:, 3] - xy[:, 1], axis=0)
        return np.maximum(d1, d2)

    def plot(
        self,
        values: Optional[npt.NDArray[np.float64]] = None,
        title: str = "Mesh",
        filename: Optional[str] = None,
    ) -> None:
        """
        Plot the mesh and optionally nodal values.

        Args:
            values: Vertex values to plot (colormap)
            title: Plot title
            filename: Save the figure here instead of keeping it open
        """
        plt.figure(figsize=(10, 8))

        if values is None:
            plt.scatter(
                self.coordinates[0, :],
                self.coordinates[1, :],
                c="blue",
                label="Interior Nodes",
            )
            plt.scatter(
                self.coordinates[0, self.boundary_nodes],
                self.coordinates[1, self.boundary_nodes],
                c="red",
                label="Boundary Nodes",
            )
        else:
            plt.tricontourf(
                self.coordinates[0, :],
                self.coordinates[1, :],
                values,
                20,
                cmap="viridis",
            )
            plt.colorbar(label="Value")

        # Overlay mesh
        for e in range(self.num_elements):
            nodes = self.connectivity[:, e]
            nodes = np.append(nodes, nodes[0])
            plt.plot(
                self.coordinates[0, nodes], self.coordinates[1, nodes], "k-", lw=0.5
            )

        plt.xlabel("x")
        plt.ylabel("y")
        plt.title(title)
        if values is None:
            plt.legend()
        plt.axis("equal")
        if filename is not None:
            plt.savefig(filename)
            plt.close()
