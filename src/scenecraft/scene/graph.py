"""Pure operations over the scene forest.

A scene is an immutable ``tuple`` of root :class:`SceneNode` values. Every
operation returns a new tuple and leaves its input untouched; unchanged
subtrees are shared between the old and new scene.
"""

from __future__ import annotations

import re
from typing import Any, Callable, Iterable, Iterator, Mapping, Sequence, Tuple

import numpy as np

from scenecraft.mesh import Mesh
from scenecraft.modeling.group import make_group, node_matrix, release_children
from scenecraft.modeling.transform import Vec3, compose
from scenecraft.scene.ids import generate_id
from scenecraft.scene.nodes import (
    ONE,
    PATCHABLE_FIELDS,
    ZERO,
    GeometryData,
    NodeKind,
    Scene,
    SceneNode,
)

_COPY_SUFFIX = re.compile(r"^(.*?)\s\(Copy(?:\s(\d+))?\)$")


class GraphLookupError(KeyError):
    """An operation referenced an identifier that is not in the scene."""

    def __init__(self, node_id: str) -> None:
        super().__init__(node_id)
        self.node_id = node_id

    def __str__(self) -> str:
        return f"No node with id '{self.node_id}'."


def iter_nodes(scene: Iterable[SceneNode]) -> Iterator[SceneNode]:
    """Depth-first walk over every node at every depth."""

    for node in scene:
        yield node
        if node.children:
            yield from iter_nodes(node.children)


def all_ids(scene: Iterable[SceneNode]) -> list[str]:
    return [node.id for node in iter_nodes(scene)]


def all_names(scene: Iterable[SceneNode]) -> set[str]:
    return {node.name for node in iter_nodes(scene)}


def find_node(scene: Iterable[SceneNode], node_id: str) -> SceneNode | None:
    for node in iter_nodes(scene):
        if node.id == node_id:
            return node
    return None


def get_node(scene: Iterable[SceneNode], node_id: str) -> SceneNode:
    node = find_node(scene, node_id)
    if node is None:
        raise GraphLookupError(node_id)
    return node


def contains(scene: Iterable[SceneNode], node_id: str) -> bool:
    return find_node(scene, node_id) is not None


def parent_matrix(scene: Iterable[SceneNode], node_id: str) -> np.ndarray:
    """World matrix of the frame ``node_id`` is stored in (identity at the root)."""

    def search(nodes: Iterable[SceneNode], base: np.ndarray) -> np.ndarray | None:
        for node in nodes:
            if node.id == node_id:
                return base
            if node.children:
                found = search(node.children, compose(base, node_matrix(node)))
                if found is not None:
                    return found
        return None

    found = search(scene, np.eye(4))
    if found is None:
        raise GraphLookupError(node_id)
    return found


def world_matrix(scene: Iterable[SceneNode], node_id: str) -> np.ndarray:
    return compose(parent_matrix(scene, node_id), node_matrix(get_node(scene, node_id)))


def _map_tree(scene: Sequence[SceneNode], fn: Callable[[SceneNode], SceneNode | None]) -> Scene:
    """Rebuild the forest bottom-up; ``fn`` may replace a node or drop it with ``None``."""

    rebuilt: list[SceneNode] = []
    for node in scene:
        if node.children is not None:
            children = _map_tree(node.children, fn)
            if len(children) != len(node.children) or any(a is not b for a, b in zip(children, node.children)):
                node = node.evolve(children=children)
        mapped = fn(node)
        if mapped is not None:
            rebuilt.append(mapped)
    return tuple(rebuilt)


def add_node(scene: Sequence[SceneNode], node: SceneNode) -> Scene:
    clashes = set(all_ids([node])) & set(all_ids(scene))
    if clashes:
        raise ValueError(f"Node ids already present in the scene: {sorted(clashes)}.")
    return tuple(scene) + (node,)


def update_node(scene: Sequence[SceneNode], node_id: str, changes: Mapping[str, Any]) -> Scene:
    """Apply a partial field patch to the node with ``node_id`` wherever it is nested."""

    invalid = set(changes) - PATCHABLE_FIELDS
    if invalid:
        raise ValueError(f"Fields cannot be patched: {sorted(invalid)}.")
    if not contains(scene, node_id):
        raise GraphLookupError(node_id)
    return _map_tree(scene, lambda node: node.evolve(**changes) if node.id == node_id else node)


def delete_nodes(scene: Sequence[SceneNode], node_ids: Iterable[str]) -> Scene:
    """Remove every listed node (and its subtree) wherever it is nested."""

    doomed = set(node_ids)
    return _map_tree(scene, lambda node: None if node.id in doomed else node)


def copy_name(name: str, existing: Iterable[str]) -> str:
    """``"<root> (Copy)"`` or the first free ``"<root> (Copy N)"``."""

    taken = set(existing)
    match = _COPY_SUFFIX.match(name)
    root = match.group(1) if match else name
    candidate = f"{root} (Copy)"
    count = 1
    while candidate in taken:
        count += 1
        candidate = f"{root} (Copy {count})"
    return candidate


def clone_with_new_ids(node: SceneNode, id_factory: Callable[[], str] = generate_id) -> SceneNode:
    children = None
    if node.children is not None:
        children = tuple(clone_with_new_ids(child, id_factory) for child in node.children)
    return node.evolve(id=id_factory(), children=children)


def duplicate_node(
    scene: Sequence[SceneNode],
    node_id: str,
    offset: Sequence[float] = (5.0, 0.0, 5.0),
    id_factory: Callable[[], str] = generate_id,
) -> tuple[Scene, SceneNode]:
    """Deep-copy a node with fresh ids and append the copy to the root list."""

    original = get_node(scene, node_id)
    copy = clone_with_new_ids(original, id_factory)
    copy = copy.evolve(
        name=copy_name(original.name, all_names(scene)),
        position=tuple(np.asarray(original.position) + np.asarray(offset, dtype=float)),
    )
    return tuple(scene) + (copy,), copy


def group_nodes(
    scene: Sequence[SceneNode],
    node_ids: Sequence[str],
    name: str | None = None,
    id_factory: Callable[[], str] = generate_id,
) -> tuple[Scene, SceneNode]:
    """Move the selected root-level nodes into a new group appended to the root list."""

    wanted = set(node_ids)
    members = [node for node in scene if node.id in wanted]
    if len(members) < 2:
        raise ValueError("Grouping needs at least two root-level nodes.")
    others = [node for node in scene if node.id not in wanted]
    group = make_group(id_factory(), name or f"Group {len(scene) + 1}", members)
    return tuple(others) + (group,), group


def ungroup_node(scene: Sequence[SceneNode], group_id: str) -> tuple[Scene, Tuple[SceneNode, ...]]:
    """Replace a root-level group by its children, composed into root space."""

    group = next((node for node in scene if node.id == group_id), None)
    if group is None:
        raise GraphLookupError(group_id)
    if not group.is_group:
        raise ValueError(f"'{group.name}' is not a group.")
    released = release_children(group)
    others = tuple(node for node in scene if node.id != group_id)
    return others + released, released


def replace_with_result(scene: Sequence[SceneNode], operand_ids: Iterable[str], result: SceneNode) -> Scene:
    """Drop boolean operands wherever they are nested and append the result at the root."""

    return add_node(delete_nodes(scene, operand_ids), result)


def make_shape(
    kind: NodeKind | str,
    name: str,
    color: str,
    position: Vec3 = (0.0, 0.0, 10.0),
    size: float = 20.0,
    node_id: str | None = None,
) -> SceneNode:
    """A primitive sized ``size`` in every direction."""

    kind = NodeKind.parse(kind)
    if not kind.is_primitive:
        raise ValueError(f"'{kind.value}' is not a primitive shape.")
    return SceneNode(
        id=node_id or generate_id(),
        kind=kind,
        name=name,
        position=position,
        rotation=ZERO,
        scale=(size, size, size),
        pivot=ZERO,
        color=color,
    )


def make_imported(mesh: Mesh, name: str, color: str, node_id: str | None = None) -> SceneNode:
    """A custom-mesh node for an imported solid, resting on the Z=0 plane.

    The geometry is re-centered on its bounding box; its size becomes the
    node's base dimensions (zero extents count as 1).
    """

    centered = mesh.translate(-mesh.center, inplace=False)
    size = mesh.extents
    base = tuple(float(v) if v else 1.0 for v in size)
    return SceneNode(
        id=node_id or generate_id(),
        kind=NodeKind.CUSTOM,
        name=name,
        position=(0.0, 0.0, float(size[2]) / 2.0),
        rotation=ZERO,
        scale=ONE,
        pivot=ZERO,
        color=color,
        base_dimensions=base,
        geometry=GeometryData.from_mesh(centered),
    )


__all__ = [
    "GraphLookupError",
    "Scene",
    "add_node",
    "all_ids",
    "all_names",
    "clone_with_new_ids",
    "contains",
    "copy_name",
    "delete_nodes",
    "duplicate_node",
    "find_node",
    "get_node",
    "group_nodes",
    "iter_nodes",
    "make_imported",
    "make_shape",
    "parent_matrix",
    "replace_with_result",
    "ungroup_node",
    "update_node",
    "world_matrix",
]
