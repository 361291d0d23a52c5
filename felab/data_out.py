"""
VTK output of finite element fields.

Each cell is written as a patch subdivided `n_subdivisions` times per
direction. Patch vertices are duplicated between cells, so discontinuous
fields are shown faithfully. Legacy ASCII (.vtk) and XML unstructured grid
(.vtu) are supported; both open in ParaView and VisIt.
"""

import base64
import struct
import xml.etree.ElementTree as ET
import numpy as np
import numpy.typing as npt
from pathlib import Path
from typing import Dict, TextIO, Union

from .dof_handler import DoFHandler
from .shape_functions import ShapeFunctions

VTK_QUAD = 9


class DataOut:
    """
    Collect DoF vectors on a DoF handler and write them as VTK.
    """

    def __init__(self, dof_handler: DoFHandler):
        self.dof_handler = dof_handler
        self.data: Dict[str, npt.NDArray[np.float64]] = {}
        self.points = None
        self.cells = None
        self.point_data: Dict[str, npt.NDArray[np.float64]] = {}

    def add_data_vector(self, vector: npt.NDArray[np.float64], name: str) -> None:
        if len(vector) != self.dof_handler.n_dofs:
            raise ValueError(
                f"Vector '{name}' has {len(vector)} entries, expected "
                f"{self.dof_handler.n_dofs}"
            )
        self.data[name] = np.asarray(vector, dtype=np.float64)

    def build_patches(self, n_subdivisions: int = 1) -> None:
        """
        Evaluate all data vectors on the patch points of every cell.
        """
        dh = self.dof_handler
        mesh = dh.mesh
        n = n_subdivisions

        ref = np.linspace(-1.0, 1.0, n + 1)
        xi, eta = np.meshgrid(ref, ref)
        xi, eta = xi.ravel(), eta.ravel()
        values = dh.fe.values(xi, eta)

        # Sub-quads of one patch, counter-clockwise, lexicographic point index
        local_cells = []
        for j in range(n):
            for i in range(n):
                p0 = j * (n + 1) + i
                local_cells.append([p0, p0 + 1, p0 + n + 2, p0 + n + 1])
        local_cells = np.array(local_cells, dtype=np.int64)

        n_patch_points = (n + 1) ** 2
        points = []
        cells = []
        point_data = {name: [] for name in self.data}
        for e in range(mesh.num_elements):
            node_x, node_y = mesh.get_element_coordinates(e)
            points.append(ShapeFunctions.map_to_physical(xi, eta, node_x, node_y))
            cells.append(local_cells + e * n_patch_points)
            dofs = dh.cell_dofs[e]
            for name, vector in self.data.items():
                point_data[name].append(values @ vector[dofs])

        self.points = np.vstack(points)
        self.cells = np.vstack(cells)
        self.point_data = {
            name: np.concatenate(chunks) for name, chunks in point_data.items()
        }

    def _check_patches(self):
        if self.points is None:
            raise ValueError("No patches. Call build_patches() first.")

    def write_vtk(self, output: TextIO) -> None:
        """Write legacy ASCII VTK to an open text stream."""
        self._check_patches()
        n_points = len(self.points)
        n_cells = len(self.cells)

        output.write("# vtk DataFile Version 3.0\n")
        output.write("#This file was generated by felab\n")
        output.write("ASCII\n")
        output.write("DATASET UNSTRUCTURED_GRID\n\n")

        output.write(f"POINTS {n_points} double\n")
        for x, y in self.points:
            output.write(f"{x:.16g} {y:.16g} 0\n")

        output.write(f"\nCELLS {n_cells} {5 * n_cells}\n")
        for cell in self.cells:
            output.write("4 " + " ".join(str(v) for v in cell) + "\n")

        output.write(f"\nCELL_TYPES {n_cells}\n")
        output.write(" ".join([str(VTK_QUAD)] * n_cells) + "\n")

        output.write(f"POINT_DATA {n_points}\n")
        for name, values in self.point_data.items():
            output.write(f"SCALARS {name} double 1\n")
            output.write("LOOKUP_TABLE default\n")
            output.write(" ".join(f"{v:.16g}" for v in values) + "\n")

    def write_vtu(self, filename: Union[str, Path], binary: bool = False) -> Path:
        """Write VTK XML unstructured grid to `filename`."""
        self._check_patches()
        filepath = Path(filename)
        n_cells = len(self.cells)

        points_3d = np.zeros((len(self.points), 3))
        points_3d[:, :2] = self.points

        root = ET.Element(
            "VTKFile",
            {"type": "UnstructuredGrid", "version": "0.1", "byte_order": "LittleEndian"},
        )
        grid = ET.SubElement(root, "UnstructuredGrid")
        piece = ET.SubElement(
            grid,
            "Piece",
            {"NumberOfPoints": str(len(self.points)), "NumberOfCells": str(n_cells)},
        )

        points = ET.SubElement(piece, "Points")
        _add_data_array(points, "Points", points_3d.ravel(), 3, binary)

        cells = ET.SubElement(piece, "Cells")
        _add_data_array(
            cells, "connectivity", self.cells.ravel().astype(np.int32), 1, binary, "Int32"
        )
        offsets = 4 * np.arange(1, n_cells + 1, dtype=np.int32)
        _add_data_array(cells, "offsets", offsets, 1, binary, "Int32")
        types = np.full(n_cells, VTK_QUAD, dtype=np.int32)
        _add_data_array(cells, "types", types, 1, binary, "Int32")

        point_data = ET.SubElement(piece, "PointData")
        for name, values in self.point_data.items():
            _add_data_array(point_data, name, values, 1, binary)

        ET.ElementTree(root).write(filepath, xml_declaration=True, encoding="utf-8")
        return filepath


def _add_data_array(parent, name, data, n_components, binary, dtype="Float64"):
    attrs = {
        "type": dtype,
        "Name": name,
        "NumberOfComponents": str(n_components),
        "format": "binary" if binary else "ascii",
    }
    element = ET.SubElement(parent, "DataArray", attrs)
    if binary:
        np_type = np.int32 if dtype == "Int32" else np.float64
        raw = np.ascontiguousarray(data, dtype=np_type).tobytes()
        # 32-bit little-endian byte count header
        element.text = base64.b64encode(struct.pack("<I", len(raw)) + raw).decode("ascii")
    else:
        element.text = " ".join(str(v) for v in data)
