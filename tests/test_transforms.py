from __future__ import annotations

import math

import numpy as np
import pytest

from scenecraft.modeling import Transform, compose, compose_matrix, decompose, floor_scale, make_box, world_place
from scenecraft.modeling.transform import (
    display_size,
    euler_to_matrix,
    scale_for_size,
    to_display_degrees,
)

from helpers import bounds


def test_compose_decompose_recovers_components():
    position = (1.0, -2.0, 3.5)
    rotation = (0.3, -0.4, 1.1)
    scale = (2.0, 0.5, 3.0)
    got_position, got_rotation, got_scale = decompose(compose_matrix(position, rotation, scale))
    assert np.allclose(got_position, position)
    assert np.allclose(got_rotation, rotation)
    assert np.allclose(got_scale, scale)


def test_euler_applies_z_first():
    # intrinsic X-Y-Z: a pure Z turn maps +X onto +Y
    turned = euler_to_matrix((0.0, 0.0, math.pi / 2)) @ np.array([1.0, 0.0, 0.0])
    assert np.allclose(turned, [0.0, 1.0, 0.0])

    combined = euler_to_matrix((0.2, 0.3, 0.4))
    sequential = euler_to_matrix((0.2, 0.0, 0.0)) @ euler_to_matrix((0.0, 0.3, 0.0)) @ euler_to_matrix((0.0, 0.0, 0.4))
    assert np.allclose(combined, sequential)


def test_floor_scale_keeps_sign():
    assert floor_scale((0.0, -1e-5, 2.0)) == (1e-3, -1e-3, 2.0)


def test_zero_scale_matrix_stays_invertible():
    mat = compose_matrix((0.0, 0.0, 0.0), (0.0, 0.0, 0.0), (0.0, 1.0, 1.0))
    assert abs(np.linalg.det(mat)) > 0


def test_zero_scale_decomposes_to_floored_nonzero_scale():
    _, _, scale = decompose(compose_matrix((0.0, 0.0, 0.0), (0.0, 0.0, 0.0), (0.0, 0.0, 2.0)))
    assert all(math.isfinite(value) and value != 0.0 for value in scale)
    assert np.allclose(scale, (1e-3, 1e-3, 2.0))


def test_mirror_decomposes_to_negative_x_scale():
    _, rotation, scale = decompose(compose_matrix((0.0, 0.0, 0.0), (0.0, 0.0, 0.0), (-2.0, 1.0, 1.0)))
    assert np.allclose(scale, (-2.0, 1.0, 1.0))
    assert np.allclose(rotation, (0.0, 0.0, 0.0))


def test_decompose_rejects_non_finite():
    mat = np.eye(4)
    mat[0, 3] = np.nan
    with pytest.raises(ValueError):
        decompose(mat)


def test_parent_child_composition():
    parent = compose_matrix((10.0, 0.0, 0.0), (0.0, 0.0, math.pi / 2), (2.0, 2.0, 2.0))
    child = compose_matrix((1.0, 0.0, 0.0), (0.0, 0.0, 0.0), (1.0, 1.0, 1.0))
    world = compose(parent, child)
    assert np.allclose(world[:3, 3], [10.0, 2.0, 0.0])


def test_world_place_applies_pivot_inside_scale():
    placed = world_place(make_box(), Transform(position=(10.0, 0.0, 0.0), scale=(2.0, 2.0, 2.0)), pivot=(1.0, 0.0, 0.0))
    assert np.allclose(bounds(placed), [11.0, 13.0, -1.0, 1.0, -1.0, 1.0])


def test_world_place_leaves_input_untouched():
    local = make_box()
    before = local.vertices.copy()
    world_place(local, Transform(position=(5.0, 5.0, 5.0)))
    assert np.array_equal(local.vertices, before)


def test_display_degrees_round_then_wrap():
    assert to_display_degrees(-math.pi / 2) == pytest.approx(270.0)
    assert to_display_degrees(2 * math.pi) == pytest.approx(0.0)
    assert to_display_degrees(math.radians(359.999)) == pytest.approx(0.0)
    assert to_display_degrees(math.radians(45.004)) == pytest.approx(45.0)


def test_display_size_and_inverse():
    assert display_size((2.0, 3.0, 4.0), (10.0, 1.0, 1.0)) == (20.0, 3.0, 4.0)
    assert display_size((2.0, 3.0, 4.0), None) == (2.0, 3.0, 4.0)
    assert scale_for_size((1.0, 1.0, 1.0), (2.0, 2.0, 2.0), 1, 10.0) == (1.0, 5.0, 1.0)
    # a zero natural size is treated as 1
    assert scale_for_size((1.0, 1.0, 1.0), (0.0, 2.0, 2.0), 0, 5.0) == (5.0, 1.0, 1.0)


def test_scale_for_size_rejects_bad_axis():
    with pytest.raises(ValueError):
        scale_for_size((1.0, 1.0, 1.0), None, 3, 1.0)
