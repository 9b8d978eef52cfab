from __future__ import annotations

import numpy as np

from scenecraft.mesh import Mesh


class ValidationError(ValueError):
    """Raised when validation constraints are violated."""


class InvalidGeometry(ValidationError):
    """Shape data that cannot be realized into a usable triangle mesh."""


def mesh_issues(mesh: Mesh | None) -> list[str]:
    """Return the reasons ``mesh`` may not be passed downstream (empty when valid)."""

    if mesh is None or mesh.vertices is None:
        return ["missing position buffer"]
    issues: list[str] = []
    if mesh.n_vertices < 3:
        issues.append(f"needs at least 3 vertices, got {mesh.n_vertices}")
    if mesh.n_faces < 1:
        issues.append("contains no triangles")
    if np.any(~np.isfinite(mesh.vertices)):
        issues.append("contains non-finite coordinates")
    if mesh.n_faces and (mesh.faces.min() < 0 or mesh.faces.max() >= mesh.n_vertices):
        issues.append("face indices reference missing vertices")
    return issues


def validate_mesh(mesh: Mesh | None, label: str = "mesh") -> Mesh:
    issues = mesh_issues(mesh)
    if issues:
        raise InvalidGeometry(f"{label} is invalid: {'; '.join(issues)}.")
    return mesh
