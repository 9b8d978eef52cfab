"""STL encoding of world-space scene geometry."""

from __future__ import annotations

from pathlib import Path
from typing import Iterable

import numpy as np

from scenecraft.mesh import Mesh
from scenecraft.mesh_quality import MeshQuality
from scenecraft.modeling.group import flatten_to_mesh
from scenecraft.scene.nodes import SceneNode

_BINARY_RECORD = np.dtype(
    [("normal", "<f4", (3,)), ("corners", "<f4", (3, 3)), ("attributes", "<u2")]
)


def facet_normals(mesh: Mesh) -> np.ndarray:
    """Unit normal per triangle; zero-area triangles get a zero normal."""

    corners = mesh.vertices[mesh.faces]
    normals = np.cross(corners[:, 1] - corners[:, 0], corners[:, 2] - corners[:, 0])
    lengths = np.linalg.norm(normals, axis=1, keepdims=True)
    return np.divide(normals, lengths, out=np.zeros_like(normals), where=lengths > 0)


def write_stl(mesh: Mesh, path: Path, ascii: bool = False, solid_name: str = "scenecraft") -> Path:
    path = Path(path)
    normals = facet_normals(mesh)
    corners = mesh.vertices[mesh.faces]

    if ascii:
        with path.open("w") as handle:
            handle.write(f"solid {solid_name}\n")
            for normal, tri in zip(normals, corners):
                handle.write("  facet normal {:.6e} {:.6e} {:.6e}\n    outer loop\n".format(*normal))
                for vertex in tri:
                    handle.write("      vertex {:.6e} {:.6e} {:.6e}\n".format(*vertex))
                handle.write("    endloop\n  endfacet\n")
            handle.write(f"endsolid {solid_name}\n")
        return path

    records = np.zeros(mesh.n_faces, dtype=_BINARY_RECORD)
    records["normal"] = normals
    records["corners"] = corners
    with path.open("wb") as handle:
        handle.write(f"{solid_name} STL".encode("ascii", "replace")[:80].ljust(80, b"\0"))
        handle.write(np.array(mesh.n_faces, dtype="<u4").tobytes())
        handle.write(records.tobytes())
    return path


def export_scene_stl(
    nodes: Iterable[SceneNode],
    path: Path,
    ascii: bool = False,
    quality: MeshQuality | None = None,
) -> Path:
    """Flatten groups to their world-placed leaves and write one STL solid."""

    nodes = list(nodes)
    if not nodes:
        raise ValueError("Nothing to export: the scene is empty.")
    return write_stl(flatten_to_mesh(nodes, quality), path, ascii=ascii)
