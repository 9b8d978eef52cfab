"""Modeling utilities: primitives and transforms.

Realization, grouping and boolean helpers live in their own submodules
(``realize``, ``group``, ``csg``) because they depend on the scene node model.
"""

from __future__ import annotations

from .transform import Transform, compose, compose_matrix, decompose, floor_scale, world_place
from .primitives import (
    make_box,
    make_cone,
    make_cylinder,
    make_sphere,
    make_torus,
)

__all__ = [
    "make_box",
    "make_cylinder",
    "make_cone",
    "make_sphere",
    "make_torus",
    "Transform",
    "compose",
    "compose_matrix",
    "decompose",
    "floor_scale",
    "world_place",
]
