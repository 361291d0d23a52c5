"""VTK output of Q_k fields."""

import io
import xml.etree.ElementTree as ET

import numpy as np
import pytest

from felab.data_out import DataOut
from felab.dof_handler import DoFHandler
from felab.mesh import Mesh
from felab.plots import plot_dg_solution, plot_solution
from felab.shape_functions import LagrangeElement


def make_data_out(degree):
    dh = DoFHandler(Mesh.l_shaped())
    dh.distribute_dofs(LagrangeElement(degree))
    points = dh.support_points
    data_out = DataOut(dh)
    data_out.add_data_vector(points[:, 0] + 2.0 * points[:, 1], "solution")
    return data_out


class TestDataOut:
    """Patches and the two VTK formats."""

    def test_patch_sizes(self):
        data_out = make_data_out(2)
        data_out.build_patches(2)
        assert data_out.points.shape == (27, 2)
        assert data_out.cells.shape == (12, 4)

    def test_patch_values_interpolate(self):
        data_out = make_data_out(1)
        data_out.build_patches(3)
        x, y = data_out.points[:, 0], data_out.points[:, 1]
        assert np.allclose(data_out.point_data["solution"], x + 2.0 * y)

    def test_legacy_vtk(self):
        data_out = make_data_out(2)
        data_out.build_patches(2)
        out = io.StringIO()
        data_out.write_vtk(out)
        text = out.getvalue()

        assert text.startswith("# vtk DataFile Version 3.0")
        assert "DATASET UNSTRUCTURED_GRID" in text
        assert "POINTS 27 double" in text
        assert "CELLS 12 60" in text
        assert "CELL_TYPES 12" in text
        assert "POINT_DATA 27" in text
        assert "SCALARS solution double 1" in text

    @pytest.mark.parametrize("binary", [False, True])
    def test_vtu(self, tmp_path, binary):
        data_out = make_data_out(1)
        data_out.build_patches(1)
        path = data_out.write_vtu(tmp_path / "solution.vtu", binary=binary)

        root = ET.parse(path).getroot()
        piece = root.find("UnstructuredGrid/Piece")
        assert root.get("type") == "UnstructuredGrid"
        assert piece.get("NumberOfPoints") == "12"
        assert piece.get("NumberOfCells") == "3"
        names = [a.get("Name") for a in piece.iter("DataArray")]
        assert names == ["Points", "connectivity", "offsets", "types", "solution"]

    def test_wrong_length_raises(self):
        data_out = make_data_out(1)
        with pytest.raises(ValueError, match="expected 8"):
            data_out.add_data_vector(np.zeros(5), "bad")

    def test_write_before_build_raises(self):
        with pytest.raises(ValueError, match="build_patches"):
            make_data_out(1).write_vtk(io.StringIO())


class TestPlots:
    """Image output."""

    def test_plot_solution(self, tmp_path):
        dh = DoFHandler(Mesh.l_shaped())
        dh.distribute_dofs(LagrangeElement(2))
        filename = tmp_path / "solution.png"
        plot_solution(dh, dh.support_points[:, 0], filename)
        assert filename.exists()

    def test_plot_dg_solution(self, tmp_path):
        x = np.linspace(-1.0, 1.0, 50)
        filename = tmp_path / "dg.png"
        plot_dg_solution(x, np.sin(x), filename, u_exact=np.sin(x))
        assert filename.exists()
