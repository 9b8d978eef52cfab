"""Read interchange mesh files (STL, OBJ, PLY, ...) through pyvista."""

from __future__ import annotations

import logging
import warnings
from pathlib import Path

from scenecraft.mesh import Mesh, analyze_mesh, mesh_from_pyvista
from scenecraft.validation import InvalidGeometry, validate_mesh

logger = logging.getLogger(__name__)

SUPPORTED_SUFFIXES = frozenset({".stl", ".obj", ".ply", ".vtk", ".vtp"})


class MeshImportError(RuntimeError):
    """Raised when a mesh file cannot be turned into a usable solid."""


def read_mesh(path: Path) -> Mesh:
    """Load ``path`` as one triangle mesh.

    Files that load but are not closed solids are accepted with a
    ``RuntimeWarning``; boolean operations on them may fail later.
    """

    path = Path(path)
    if path.suffix.lower() not in SUPPORTED_SUFFIXES:
        raise MeshImportError(f"Unsupported mesh format '{path.suffix}'.")
    if not path.exists():
        raise MeshImportError(f"Mesh file {path} does not exist.")

    import pyvista as pv

    try:
        dataset = pv.read(str(path))
    except Exception as exc:  # pyvista/VTK reader failures are not typed
        raise MeshImportError(f"Failed to read {path.name}: {exc}") from exc
    if isinstance(dataset, pv.MultiBlock):
        dataset = dataset.combine()
    try:
        mesh = validate_mesh(mesh_from_pyvista(dataset), label=path.name)
    except InvalidGeometry as exc:
        raise MeshImportError(f"Failed to extract geometry from {path.name}: {exc}") from exc

    issues = analyze_mesh(mesh).issues()
    if issues:
        message = f"{path.name} is not a clean solid: {', '.join(issues)}."
        logger.warning(message)
        warnings.warn(message, RuntimeWarning, stacklevel=2)
    return mesh
