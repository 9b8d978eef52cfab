from __future__ import annotations

import numpy as np
import pytest

from scenecraft.modeling.csg import (
    BooleanOp,
    EmptyOrInvalidResult,
    UnsupportedOperand,
    boolean_mesh,
    combine,
    prepare_operands,
    result_position,
)
from scenecraft.mesh import Mesh
from scenecraft.modeling.group import node_matrix, place_node
from scenecraft.modeling.primitives import make_sphere
from scenecraft.scene import graph
from scenecraft.scene.nodes import NodeKind

from helpers import bounds, is_watertight

pytestmark = pytest.mark.csg


def _box(node_id: str, position, size: float = 20.0, color: str = "#ff0000"):
    return graph.make_shape(NodeKind.BOX, name=node_id, color=color, position=position, size=size, node_id=node_id)


def test_operation_aliases():
    assert BooleanOp.parse("difference") is BooleanOp.SUBTRACT
    assert BooleanOp.parse("Intersection") is BooleanOp.INTERSECT
    with pytest.raises(ValueError):
        BooleanOp.parse("xor")


def test_result_position_rules():
    assert result_position("subtract", (1.0, 2.0, 3.0), (9.0, 9.0, 9.0)) == (1.0, 2.0, 3.0)
    assert result_position("union", (0.0, 0.0, 0.0), (10.0, 20.0, 30.0)) == (5.0, 10.0, 15.0)


def test_disjoint_union_spans_both_solids():
    a, b = prepare_operands(_box("a", (0.0, 0.0, 10.0)), _box("b", (40.0, 0.0, 10.0)))
    result = boolean_mesh(a.mesh, b.mesh, BooleanOp.UNION)
    assert np.allclose(bounds(result), [-10.0, 50.0, -10.0, 10.0, 0.0, 20.0], atol=1e-3)
    assert result.volume == pytest.approx(16000.0, rel=1e-3)


def test_subtract_from_noisy_triangle_soup():
    # an imported mesh whose shared corners drifted apart by exporter float noise
    rng = np.random.default_rng(11)
    sphere = make_sphere(radius=10.0, segments=64, rings=64)
    soup = Mesh(vertices=sphere.vertices[sphere.faces].reshape(-1, 3), faces=np.arange(sphere.n_faces * 3).reshape(-1, 3))
    soup.vertices += rng.uniform(-1e-9, 1e-9, size=soup.vertices.shape)
    part = graph.make_imported(soup, name="part", color="#00ff00", node_id="part")

    result = combine(part, _box("b", (10.0, 0.0, 10.0)), "subtract")
    placed = place_node(result)
    assert is_watertight(placed)[0]
    assert np.allclose(bounds(placed)[:2], [-10.0, 0.0], atol=0.05)


def test_overlapping_subtract_and_intersect():
    a, b = prepare_operands(_box("a", (0.0, 0.0, 0.0)), _box("b", (10.0, 0.0, 0.0)))
    cut = boolean_mesh(a.mesh, b.mesh, "subtract")
    assert np.allclose(bounds(cut), [-10.0, 0.0, -10.0, 10.0, -10.0, 10.0], atol=1e-3)
    assert cut.volume == pytest.approx(4000.0, rel=1e-3)
    assert is_watertight(cut)[0]

    common = boolean_mesh(a.mesh, b.mesh, "intersect")
    assert np.allclose(common.extents, (10.0, 20.0, 20.0), atol=1e-3)


def test_inputs_are_not_modified():
    a, b = prepare_operands(_box("a", (0.0, 0.0, 0.0)), _box("b", (10.0, 0.0, 0.0)))
    before = a.mesh.vertices.copy()
    boolean_mesh(a.mesh, b.mesh, "union")
    assert np.array_equal(a.mesh.vertices, before)


def test_subtracting_a_solid_from_itself_is_empty():
    a, b = prepare_operands(_box("a", (0.0, 0.0, 0.0)), _box("b", (0.0, 0.0, 0.0)))
    with pytest.raises(EmptyOrInvalidResult):
        boolean_mesh(a.mesh, b.mesh, "subtract")


def test_disjoint_intersection_is_empty():
    with pytest.raises(EmptyOrInvalidResult):
        combine(_box("a", (0.0, 0.0, 0.0)), _box("b", (100.0, 0.0, 0.0)), "intersect")


def test_groups_are_rejected():
    group = graph.group_nodes((_box("a", (0.0, 0.0, 0.0)), _box("b", (5.0, 0.0, 0.0))), ["a", "b"])[1]
    with pytest.raises(UnsupportedOperand):
        combine(group, _box("c", (0.0, 0.0, 0.0)), "union")


def test_result_node_reproduces_the_world_result():
    node = combine(_box("a", (0.0, 0.0, 10.0)), _box("b", (40.0, 0.0, 10.0), color="#00ff00"), "union")
    assert node.kind is NodeKind.CUSTOM
    assert node.name == "Union Result"
    assert node.color == "#ff0000"
    assert node.position == pytest.approx((20.0, 0.0, 10.0))
    assert node.scale == pytest.approx((60.0, 20.0, 20.0), abs=1e-3)
    assert node.base_dimensions == (1.0, 1.0, 1.0)
    placed = place_node(node)
    assert np.allclose(bounds(placed), [-10.0, 50.0, -10.0, 10.0, 0.0, 20.0], atol=1e-3)


def test_subtract_result_keeps_first_operand_position():
    node = combine(_box("a", (3.0, 4.0, 5.0)), _box("b", (13.0, 4.0, 5.0)), "subtract")
    assert node.position == pytest.approx((3.0, 4.0, 5.0))
    assert np.allclose(bounds(place_node(node)), [-7.0, 3.0, -6.0, 14.0, -5.0, 15.0], atol=1e-3)


def test_nested_operands_are_placed_in_world_space():
    scene, group = graph.group_nodes((_box("a", (0.0, 0.0, 0.0)), _box("b", (100.0, 0.0, 0.0))), ["a", "b"])
    scene = graph.update_node(scene, group.id, {"position": (0.0, 0.0, 50.0)})
    a = graph.get_node(scene, "a")
    (operand, _) = prepare_operands(a, _box("c", (0.0, 0.0, 0.0)), graph.parent_matrix(scene, "a"), None)
    # the group sits at the members' centroid (50, 0, 0) before being moved
    assert np.allclose(operand.mesh.center, (-50.0, 0.0, 50.0))
    assert np.allclose(operand.anchor, (-50.0, 0.0, 50.0))
    assert np.allclose(graph.parent_matrix(scene, "a"), node_matrix(graph.get_node(scene, group.id)))

