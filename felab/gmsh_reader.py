"""
Reader for Gmsh ASCII .msh files (format 2.2 and 4.1).

Only quadrilateral cells (Gmsh element type 3) are kept. Line and point
elements are ignored: the whole boundary is treated as one Dirichlet part,
found from the mesh topology.
"""

import numpy as np
from pathlib import Path
from typing import Dict, List, Union

from .errors import MeshFileError
from .mesh import Mesh

_GMSH_QUAD = 3
# Element types that may appear next to the quads and are skipped
_GMSH_LOWER_DIM = {1, 8, 15}


def read_msh(path: Union[str, Path]) -> Mesh:
    """
    Read a Gmsh mesh file.

    Args:
        path: Path to the .msh file

    Returns:
        Mesh built from the quadrilateral cells of the file
    """
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise MeshFileError(f"Grid file not found: {path}") from exc

    return parse_msh(text)


def parse_msh(text: str) -> Mesh:
    """
    Parse the contents of a Gmsh ASCII mesh file.
    """
    lines = [line.strip() for line in text.splitlines()]
    sections = _split_sections(lines)

    if "MeshFormat" not in sections:
        raise ValueError("Missing $MeshFormat section")
    parts = sections["MeshFormat"][0].split()
    version = float(parts[0])
    file_type = int(parts[1])
    if file_type != 0:
        raise ValueError("Binary .msh files are not supported, export as ASCII")

    if "Nodes" not in sections or "Elements" not in sections:
        raise ValueError("Missing $Nodes or $Elements section")

    if version < 3.0:
        nodes = _parse_nodes_v2(sections["Nodes"])
        quads = _parse_elements_v2(sections["Elements"])
    elif version >= 4.0:
        nodes = _parse_nodes_v4(sections["Nodes"])
        quads = _parse_elements_v4(sections["Elements"])
    else:
        raise ValueError(f"Gmsh format {version} is not supported")

    if not quads:
        raise ValueError("No quadrilateral cells found in mesh file")

    # Node tags -> contiguous 0-based indices, only nodes used by cells
    used_tags = sorted({tag for quad in quads for tag in quad})
    tag_to_idx = {tag: idx for idx, tag in enumerate(used_tags)}
    try:
        coordinates = np.array([nodes[tag] for tag in used_tags]).T
    except KeyError as exc:
        raise ValueError(f"Cell refers to unknown node {exc.args[0]}") from exc

    connectivity = np.array(
        [[tag_to_idx[tag] for tag in quad] for quad in quads], dtype=np.int64
    ).T

    _orient_counter_clockwise(coordinates, connectivity)
    return Mesh(coordinates, connectivity)


def _split_sections(lines: List[str]) -> Dict[str, List[str]]:
    sections = {}
    name = None
    body: List[str] = []
    for line in lines:
        if not line:
            continue
        if line.startswith("$End"):
            if name is not None:
                sections[name] = body
            name = None
        elif line.startswith("$"):
            name = line[1:]
            body = []
        elif name is not None:
            body.append(line)
    return sections


def _parse_nodes_v2(body: List[str]) -> Dict[int, List[float]]:
    n_nodes = int(body[0])
    nodes = {}
    for line in body[1 : n_nodes + 1]:
        parts = line.split()
        nodes[int(parts[0])] = [float(parts[1]), float(parts[2])]
    return nodes


def _parse_elements_v2(body: List[str]) -> List[List[int]]:
    n_elements = int(body[0])
    quads = []
    for line in body[1 : n_elements + 1]:
        parts = [int(p) for p in line.split()]
        elm_type = parts[1]
        n_tags = parts[2]
        node_tags = parts[3 + n_tags :]
        if elm_type == _GMSH_QUAD:
            quads.append(node_tags)
        elif elm_type not in _GMSH_LOWER_DIM:
            raise ValueError(f"Unsupported Gmsh element type {elm_type}")
    return quads


def _parse_nodes_v4(body: List[str]) -> Dict[int, List[float]]:
    n_blocks = int(body[0].split()[0])
    nodes = {}
    i = 1
    for _ in range(n_blocks):
        n_block_nodes = int(body[i].split()[3])
        i += 1
        tags = [int(body[i + k]) for k in range(n_block_nodes)]
        i += n_block_nodes
        for tag in tags:
            parts = body[i].split()
            nodes[tag] = [float(parts[0]), float(parts[1])]
            i += 1
    return nodes


def _parse_elements_v4(body: List[str]) -> List[List[int]]:
    n_blocks = int(body[0].split()[0])
    quads = []
    i = 1
    for _ in range(n_blocks):
        header = body[i].split()
        elm_type = int(header[2])
        n_block_elems = int(header[3])
        i += 1
        if elm_type != _GMSH_QUAD and elm_type not in _GMSH_LOWER_DIM:
            raise ValueError(f"Unsupported Gmsh element type {elm_type}")
        for line in body[i : i + n_block_elems]:
            if elm_type == _GMSH_QUAD:
                quads.append([int(p) for p in line.split()[1:]])
        i += n_block_elems
    return quads


def _orient_counter_clockwise(coordinates, connectivity) -> None:
    """Reverse the vertex order of cells with negative signed area, in place."""
    x = coordinates[0, connectivity]
    y = coordinates[1, connectivity]
    area = 0.5 * np.sum(x * np.roll(y, -1, axis=0) - np.roll(x, -1, axis=0) * y, axis=0)
    clockwise = area < 0
    connectivity[:, clockwise] = connectivity[::-1, clockwise]
