from __future__ import annotations

from typing import Iterable, Iterator, List, Sequence, Tuple

import numpy as np

from scenecraft.mesh import Mesh, combine_meshes
from scenecraft.mesh_quality import MeshQuality
from scenecraft.modeling.realize import realize
from scenecraft.modeling.transform import Transform, compose, world_place
from scenecraft.scene.nodes import ONE, ZERO, NodeKind, SceneNode


def node_matrix(node: SceneNode) -> np.ndarray:
    return node.transform.matrix()


def centroid(nodes: Sequence[SceneNode]) -> np.ndarray:
    if not nodes:
        raise ValueError("centroid requires at least one node.")
    return np.mean([node.position for node in nodes], axis=0)


def make_group(group_id: str, name: str, members: Sequence[SceneNode], color: str = "#ffffff") -> SceneNode:
    """Wrap ``members`` in a new group positioned at their centroid.

    Only positions are re-based; the group has identity rotation and unit
    scale, so member rotation and scale carry over unchanged.
    """

    center = centroid(members)
    children = tuple(member.evolve(position=tuple(np.asarray(member.position) - center)) for member in members)
    return SceneNode(
        id=group_id,
        kind=NodeKind.GROUP,
        name=name,
        position=tuple(center),
        rotation=ZERO,
        scale=ONE,
        pivot=ZERO,
        color=color,
        children=children,
    )


def release_children(group: SceneNode) -> Tuple[SceneNode, ...]:
    """Children of ``group`` re-expressed in the group's parent frame.

    ``childWorld = groupMatrix @ childLocal`` is composed as a full affine
    matrix and decomposed back into position, Euler rotation and scale.
    """

    if not group.is_group:
        raise ValueError(f"'{group.name}' is not a group.")
    parent = node_matrix(group)
    released: List[SceneNode] = []
    for child in group.children or ():
        placed = Transform.from_matrix(compose(parent, node_matrix(child)))
        released.append(child.evolve(position=placed.position, rotation=placed.rotation, scale=placed.scale))
    return tuple(released)


def iter_leaves(
    nodes: Iterable[SceneNode],
    parent: np.ndarray | None = None,
) -> Iterator[Tuple[SceneNode, np.ndarray]]:
    """Yield every non-group node with the world matrix of its parent frame."""

    base = np.eye(4) if parent is None else parent
    for node in nodes:
        if node.is_group:
            yield from iter_leaves(node.children or (), compose(base, node_matrix(node)))
        else:
            yield node, base


def place_node(node: SceneNode, parent: np.ndarray | None = None, quality: MeshQuality | None = None) -> Mesh:
    """Realize a leaf node and move it into world space."""

    return world_place(realize(node, quality), node.transform, node.pivot, parent=parent)


def flatten_to_meshes(nodes: Iterable[SceneNode], quality: MeshQuality | None = None) -> List[Mesh]:
    """World-placed meshes of every visible leaf, ready for a mesh encoder."""

    return [place_node(leaf, parent, quality) for leaf, parent in iter_leaves(nodes)]


def flatten_to_mesh(nodes: Iterable[SceneNode], quality: MeshQuality | None = None) -> Mesh:
    return combine_meshes(flatten_to_meshes(nodes, quality))
