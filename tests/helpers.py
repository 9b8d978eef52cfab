from __future__ import annotations

import numpy as np
import pyvista as pv

from scenecraft.mesh import Mesh, mesh_to_pyvista, weld_vertices


def is_watertight(mesh: Mesh | pv.DataSet) -> tuple[bool, int]:
    if isinstance(mesh, Mesh):
        mesh = mesh_to_pyvista(weld_vertices(mesh))
    edges = mesh.extract_feature_edges(boundary_edges=True, feature_edges=False, non_manifold_edges=True, manifold_edges=False)
    open_edges = edges.n_cells
    return open_edges == 0, open_edges


def bounds(mesh: Mesh) -> np.ndarray:
    return np.array(mesh.bounds, dtype=float)
