"""Boolean (CSG) combination of two scene nodes into a new custom-mesh node.

The pipeline is split into three stages so the expensive middle one can run
away from the interaction thread:

1. :func:`prepare_operands` realizes and world-places both nodes,
2. :func:`boolean_mesh` runs the manifold3d combinator on plain meshes,
3. :func:`synthesize_result` turns the world-space result into a node.

None of the stages touch the scene graph.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Sequence

import numpy as np

from scenecraft.mesh import Mesh, orient_outward, weld_vertices
from scenecraft.mesh_quality import MeshQuality
from scenecraft.modeling.group import place_node
from scenecraft.modeling.transform import Vec3, as_vec3
from scenecraft.scene.ids import generate_id
from scenecraft.scene.nodes import ONE, ZERO, GeometryData, NodeKind, SceneNode
from scenecraft.validation import ValidationError, mesh_issues

logger = logging.getLogger(__name__)

VOLUME_EPSILON = 1e-9


class BooleanOp(str, Enum):
    UNION = "union"
    SUBTRACT = "subtract"
    INTERSECT = "intersect"

    @classmethod
    def parse(cls, value: "str | BooleanOp") -> "BooleanOp":
        if isinstance(value, BooleanOp):
            return value
        key = str(value).strip().lower()
        key = {"difference": "subtract", "intersection": "intersect"}.get(key, key)
        try:
            return cls(key)
        except ValueError:
            raise ValueError(f"Unknown boolean operation '{value}'.") from None


class BooleanOpError(RuntimeError):
    """A boolean operation could not produce a usable solid."""

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class UnsupportedOperand(BooleanOpError):
    """An operand has no combinable solid geometry (e.g. a group)."""


class InvalidInputGeometry(BooleanOpError):
    """An operand could not be realized into a valid world-space mesh."""


class CombinatorError(BooleanOpError):
    """The mesh combinator rejected its input or failed internally."""


class EmptyOrInvalidResult(BooleanOpError):
    """The combinator returned an empty, degenerate, or malformed mesh."""


@dataclass(frozen=True)
class Operand:
    node: SceneNode
    mesh: Mesh
    anchor: Vec3


def _load_manifold():
    try:
        from manifold3d import Manifold, Mesh as ManifoldMesh
    except ImportError as exc:  # pragma: no cover - runtime dependency
        raise ImportError("manifold3d is required for boolean operations.") from exc
    return Manifold, ManifoldMesh


def _status_name(manifold) -> str:
    status = manifold.status()
    return getattr(status, "name", str(status).rsplit(".", 1)[-1])


def _manifold_from_mesh(mesh: Mesh, label: str, weld_tolerance: float):
    Manifold, ManifoldMesh = _load_manifold()
    welded = orient_outward(weld_vertices(mesh, weld_tolerance))
    vertices = np.ascontiguousarray(welded.vertices, dtype=np.float32)
    faces = np.ascontiguousarray(welded.faces, dtype=np.uint32)
    try:
        manifold_mesh = ManifoldMesh(vert_properties=vertices, tri_verts=faces)
    except TypeError:
        manifold_mesh = ManifoldMesh(vertices, faces)
    manifold = Manifold(manifold_mesh)
    status = _status_name(manifold)
    if status != "NoError":
        raise CombinatorError(f"{label} was rejected by the combinator: {status}.")
    return manifold


def _mesh_from_manifold(manifold) -> Mesh:
    mesh = manifold.to_mesh() if hasattr(manifold, "to_mesh") else manifold.mesh
    vertices = np.asarray(getattr(mesh, "vert_properties", getattr(mesh, "vertices", None)), dtype=float)
    faces = np.asarray(getattr(mesh, "tri_verts", getattr(mesh, "triangles", None)), dtype=np.int64)
    if vertices.size == 0:
        return Mesh(vertices=np.zeros((0, 3)), faces=np.zeros((0, 3), dtype=np.int64))
    return Mesh(vertices=vertices.reshape(vertices.shape[0], -1)[:, :3], faces=faces)


def _anchor(node: SceneNode, parent: np.ndarray | None) -> Vec3:
    if parent is None:
        return node.position
    origin = np.asarray(parent, dtype=float) @ np.append(np.asarray(node.position, dtype=float), 1.0)
    return as_vec3(origin[:3])


def prepare_operands(
    node_a: SceneNode,
    node_b: SceneNode,
    parent_a: np.ndarray | None = None,
    parent_b: np.ndarray | None = None,
    quality: MeshQuality | None = None,
) -> tuple[Operand, Operand]:
    """Realize and world-place both operands, rejecting groups and bad geometry."""

    operands = []
    for label, node, parent in (("A", node_a, parent_a), ("B", node_b, parent_b)):
        if node.is_group:
            raise UnsupportedOperand(
                f"Operand {label} '{node.name}' is a group; ungroup it before running a boolean operation."
            )
        try:
            mesh = place_node(node, parent, quality)
        except ValidationError as exc:
            raise InvalidInputGeometry(f"Operand {label} '{node.name}' has invalid geometry: {exc}") from exc
        issues = mesh_issues(mesh)
        if issues:
            raise InvalidInputGeometry(f"Operand {label} '{node.name}' is invalid after placement: {'; '.join(issues)}.")
        operands.append(Operand(node=node, mesh=mesh, anchor=_anchor(node, parent)))
    return operands[0], operands[1]


def boolean_mesh(mesh_a: Mesh, mesh_b: Mesh, op: BooleanOp | str, weld_tolerance: float = 1e-6) -> Mesh:
    """Combine two world-space solids; the inputs are not modified."""

    op = BooleanOp.parse(op)
    left = _manifold_from_mesh(mesh_a, "operand A", weld_tolerance)
    right = _manifold_from_mesh(mesh_b, "operand B", weld_tolerance)
    try:
        if op is BooleanOp.UNION:
            combined = left + right
        elif op is BooleanOp.SUBTRACT:
            combined = left - right
        else:
            combined = left ^ right
        status = _status_name(combined)
        if status != "NoError":
            raise CombinatorError(f"{op.value} failed inside the combinator: {status}.")
        result = _mesh_from_manifold(combined)
    except BooleanOpError:
        raise
    except Exception as exc:
        raise CombinatorError(f"{op.value} failed inside the combinator: {exc}") from exc

    issues = mesh_issues(result)
    if issues:
        raise EmptyOrInvalidResult(f"{op.value} produced no usable solid: {'; '.join(issues)}.")
    box_volume = float(np.prod(result.extents))
    if result.volume <= VOLUME_EPSILON * max(box_volume, 1.0):
        raise EmptyOrInvalidResult(f"{op.value} produced a degenerate solid with no enclosed volume.")
    return result


def result_position(op: BooleanOp | str, anchor_a: Sequence[float], anchor_b: Sequence[float]) -> Vec3:
    """Stored position of a boolean result: A's for subtract, the midpoint otherwise."""

    if BooleanOp.parse(op) is BooleanOp.SUBTRACT:
        return as_vec3(anchor_a)
    return as_vec3((np.asarray(anchor_a, dtype=float) + np.asarray(anchor_b, dtype=float)) / 2.0)


def synthesize_result(
    result: Mesh,
    a: Operand,
    b: Operand,
    op: BooleanOp | str,
    node_id: str | None = None,
) -> SceneNode:
    """Re-express a world-space boolean result as a new custom-mesh node.

    The stored scale is the bounding-box size (zero extents become 1) with unit
    base dimensions, and the local geometry is ``(world - position) / scale``,
    so placing the node with its own transform reproduces ``result`` exactly.
    """

    op = BooleanOp.parse(op)
    position = np.asarray(result_position(op, a.anchor, b.anchor))
    scale = np.abs(result.extents)
    scale[scale == 0] = 1.0
    # bbox center to stored position offset, then normalise by size
    offset = result.center - position
    local = Mesh(vertices=(result.vertices - result.center + offset) / scale, faces=result.faces)
    return SceneNode(
        id=node_id or generate_id(),
        kind=NodeKind.CUSTOM,
        name=f"{op.value.capitalize()} Result",
        position=as_vec3(position),
        rotation=ZERO,
        scale=as_vec3(scale),
        pivot=ZERO,
        color=a.node.color,
        base_dimensions=ONE,
        geometry=GeometryData.from_mesh(local),
    )


def combine(
    node_a: SceneNode,
    node_b: SceneNode,
    op: BooleanOp | str,
    parent_a: np.ndarray | None = None,
    parent_b: np.ndarray | None = None,
    quality: MeshQuality | None = None,
    weld_tolerance: float = 1e-6,
) -> SceneNode:
    """Run the whole boolean pipeline for two scene nodes."""

    op = BooleanOp.parse(op)
    a, b = prepare_operands(node_a, node_b, parent_a, parent_b, quality)
    logger.debug("boolean %s: %s (%d tris) with %s (%d tris)", op.value, node_a.id, a.mesh.n_faces, node_b.id, b.mesh.n_faces)
    result = boolean_mesh(a.mesh, b.mesh, op, weld_tolerance)
    return synthesize_result(result, a, b, op)


__all__ = [
    "BooleanOp",
    "BooleanOpError",
    "CombinatorError",
    "EmptyOrInvalidResult",
    "InvalidInputGeometry",
    "Operand",
    "UnsupportedOperand",
    "boolean_mesh",
    "combine",
    "prepare_operands",
    "result_position",
    "synthesize_result",
]
