"""Plain numpy triangle meshes shared by realization, booleans and file IO."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Sequence

import numpy as np


@dataclass(frozen=True)
class MeshAnalysis:
    """Topology report used to tell closed solids from loose surfaces."""

    degenerate_faces: int
    open_edges: int
    nonmanifold_edges: int

    @property
    def is_closed_solid(self) -> bool:
        return self.open_edges == 0 and self.nonmanifold_edges == 0

    def issues(self) -> list[str]:
        found: list[str] = []
        if self.degenerate_faces:
            found.append(f"{self.degenerate_faces} zero-area triangles")
        if self.open_edges:
            found.append(f"{self.open_edges} open edges")
        if self.nonmanifold_edges:
            found.append(f"{self.nonmanifold_edges} edges shared by more than two triangles")
        return found


@dataclass
class Mesh:
    """Working triangle mesh: ``(N, 3)`` float vertices and ``(M, 3)`` int faces."""

    vertices: np.ndarray
    faces: np.ndarray
    normals: np.ndarray | None = None

    def __post_init__(self) -> None:
        self.vertices = np.asarray(self.vertices, dtype=float).reshape(-1, 3).copy()
        self.faces = np.asarray(self.faces, dtype=np.int64).reshape(-1, 3).copy()
        if self.normals is not None:
            self.normals = np.asarray(self.normals, dtype=float).reshape(-1, 3).copy()

    def copy(self) -> "Mesh":
        return Mesh(vertices=self.vertices, faces=self.faces, normals=self.normals)

    @property
    def n_vertices(self) -> int:
        return int(self.vertices.shape[0])

    @property
    def n_faces(self) -> int:
        return int(self.faces.shape[0])

    @property
    def bounds(self) -> tuple[float, float, float, float, float, float]:
        """``(xmin, xmax, ymin, ymax, zmin, zmax)``; all zeros for an empty mesh."""
        if self.n_vertices == 0:
            return (0.0,) * 6
        lo = self.vertices.min(axis=0)
        hi = self.vertices.max(axis=0)
        return tuple(float(v) for pair in zip(lo, hi) for v in pair)  # type: ignore[return-value]

    @property
    def center(self) -> np.ndarray:
        """Center of the axis-aligned bounding box."""
        if self.n_vertices == 0:
            return np.zeros(3)
        return (self.vertices.min(axis=0) + self.vertices.max(axis=0)) / 2.0

    @property
    def extents(self) -> np.ndarray:
        """Size of the axis-aligned bounding box along X, Y, Z."""
        if self.n_vertices == 0:
            return np.zeros(3)
        return np.ptp(self.vertices, axis=0)

    @property
    def volume(self) -> float:
        """Signed enclosed volume; positive for a closed outward-wound mesh."""
        if self.n_faces == 0:
            return 0.0
        v0, v1, v2 = (self.vertices[self.faces[:, k]] for k in range(3))
        return float(np.einsum("ij,ij->i", v0, np.cross(v1, v2)).sum() / 6.0)

    def transform(self, matrix: np.ndarray, inplace: bool = True) -> "Mesh":
        """Apply a 4x4 affine matrix; mirroring matrices also flip the winding."""
        matrix = np.asarray(matrix, dtype=float)
        linear = matrix[:3, :3]
        mesh = self if inplace else self.copy()
        mesh.vertices = mesh.vertices @ linear.T + matrix[:3, 3]
        if mesh.normals is not None:
            # normals follow the inverse-transpose of the linear part
            normals = mesh.normals @ np.linalg.inv(linear)
            lengths = np.linalg.norm(normals, axis=1, keepdims=True)
            lengths[lengths == 0] = 1.0
            mesh.normals = normals / lengths
        if np.linalg.det(linear) < 0:
            mesh.faces = mesh.faces[:, ::-1].copy()
        return mesh

    def translate(self, offset: Sequence[float], inplace: bool = True) -> "Mesh":
        mesh = self if inplace else self.copy()
        mesh.vertices = mesh.vertices + np.asarray(offset, dtype=float).reshape(3)
        return mesh


def combine_meshes(meshes: Iterable[Mesh]) -> Mesh:
    """Concatenate meshes into one buffer without any boolean processing."""

    parts = list(meshes)
    if not parts:
        raise ValueError("combine_meshes requires at least one mesh.")
    offsets = np.cumsum([0] + [part.n_vertices for part in parts[:-1]])
    return Mesh(
        vertices=np.vstack([part.vertices for part in parts]),
        faces=np.vstack([part.faces + offset for part, offset in zip(parts, offsets)]),
    )


def weld_vertices(mesh: Mesh, tolerance: float = 1e-6) -> Mesh:
    """Merge vertices closer than ``tolerance`` and drop faces that collapse.

    Mesh interchange formats such as STL store every triangle corner
    separately; solid booleans need the shared-vertex topology back.
    """

    if mesh.n_faces == 0:
        return mesh.copy()
    poly = mesh_to_pyvista(mesh).clean(tolerance=max(tolerance, 0.0), absolute=True, inplace=False)
    return mesh_from_pyvista(poly)


def orient_outward(mesh: Mesh) -> Mesh:
    """Make the winding consistent with normals pointing out of the solid."""

    if mesh.n_faces == 0:
        return mesh.copy()
    poly = mesh_to_pyvista(mesh).compute_normals(
        cell_normals=True,
        point_normals=False,
        auto_orient_normals=True,
        consistent_normals=True,
        inplace=False,
    )
    return mesh_from_pyvista(poly)


def analyze_mesh(mesh: Mesh, area_epsilon: float = 1e-12) -> MeshAnalysis:
    if mesh.n_faces == 0:
        return MeshAnalysis(degenerate_faces=0, open_edges=0, nonmanifold_edges=0)
    v0, v1, v2 = (mesh.vertices[mesh.faces[:, k]] for k in range(3))
    areas = np.linalg.norm(np.cross(v1 - v0, v2 - v0), axis=1) / 2.0

    edges = np.sort(mesh.faces[:, [0, 1, 1, 2, 2, 0]].reshape(-1, 2), axis=1)
    _, counts = np.unique(edges, axis=0, return_counts=True)
    return MeshAnalysis(
        degenerate_faces=int(np.count_nonzero(areas <= area_epsilon)),
        open_edges=int(np.count_nonzero(counts == 1)),
        nonmanifold_edges=int(np.count_nonzero(counts > 2)),
    )


def mesh_to_pyvista(mesh: Mesh):
    import pyvista as pv

    if mesh.n_faces == 0:
        return pv.PolyData(mesh.vertices, deep=True)
    cells = np.column_stack([np.full(mesh.n_faces, 3, dtype=np.int64), mesh.faces]).ravel()
    return pv.PolyData(mesh.vertices, cells, deep=True)


def mesh_from_pyvista(dataset) -> Mesh:
    """Triangulate any pyvista dataset surface into a :class:`Mesh`."""

    poly = dataset.extract_surface().triangulate().clean()
    cells = np.asarray(poly.faces, dtype=np.int64)
    return Mesh(vertices=np.asarray(poly.points, dtype=float), faces=cells.reshape(-1, 4)[:, 1:])
