"""Turn scene nodes into concrete triangle meshes in their local frame."""

from __future__ import annotations

import logging
import warnings
from typing import Callable, Dict

from scenecraft.mesh import Mesh
from scenecraft.mesh_quality import MeshQuality, apply_lod
from scenecraft.modeling.primitives import make_box, make_cone, make_cylinder, make_sphere, make_torus
from scenecraft.scene.nodes import NodeKind, SceneNode
from scenecraft.validation import InvalidGeometry, validate_mesh

logger = logging.getLogger(__name__)

Realizer = Callable[[SceneNode, MeshQuality], Mesh]


def _box(_node: SceneNode, _quality: MeshQuality) -> Mesh:
    return make_box()


def _sphere(_node: SceneNode, quality: MeshQuality) -> Mesh:
    return make_sphere(radius=0.5, segments=quality.sphere_segments, rings=quality.sphere_rings)


def _cylinder(_node: SceneNode, quality: MeshQuality) -> Mesh:
    return make_cylinder(radius=0.5, height=1.0, resolution=quality.revolve_segments)


def _cone(_node: SceneNode, quality: MeshQuality) -> Mesh:
    return make_cone(radius=0.5, height=1.0, resolution=quality.revolve_segments)


def _torus(_node: SceneNode, quality: MeshQuality) -> Mesh:
    return make_torus(
        major_radius=0.4,
        minor_radius=0.1,
        n_theta=quality.torus_tubular_segments,
        n_phi=quality.torus_radial_segments,
    )


def _custom(node: SceneNode, _quality: MeshQuality) -> Mesh:
    try:
        return node.geometry.to_mesh()
    except InvalidGeometry as exc:
        message = f"Custom mesh '{node.name}' ({node.id}) is unusable ({exc}); substituting a unit box."
        logger.warning(message)
        warnings.warn(message, RuntimeWarning, stacklevel=3)
        return make_box()


def _group(node: SceneNode, _quality: MeshQuality) -> Mesh:
    raise InvalidGeometry(f"group '{node.name}' has no geometry of its own; flatten it first.")


REALIZERS: Dict[NodeKind, Realizer] = {
    NodeKind.BOX: _box,
    NodeKind.SPHERE: _sphere,
    NodeKind.CYLINDER: _cylinder,
    NodeKind.CONE: _cone,
    NodeKind.TORUS: _torus,
    NodeKind.CUSTOM: _custom,
    NodeKind.GROUP: _group,
}


def realize(node: SceneNode, quality: MeshQuality | None = None) -> Mesh:
    """Realize ``node`` in its canonical local frame and validate the result."""

    quality = apply_lod(quality or MeshQuality())
    mesh = REALIZERS[node.kind](node, quality)
    return validate_mesh(mesh, label=f"{node.kind.value} '{node.name}'")


__all__ = ["REALIZERS", "realize"]
