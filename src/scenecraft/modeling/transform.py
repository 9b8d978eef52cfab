"""Affine transforms for scene nodes.

Nodes store ``position`` (world units), ``rotation`` (radians, intrinsic X-Y-Z
Euler) and ``scale``. The compositor turns those into 4x4 matrices
``T @ Rx @ Ry @ Rz @ S`` and back again; geometry is placed with

    world = parent @ T(node) @ (local + pivot)

so the pivot moves the geometry inside the node's frame before rotation and
scale act on it.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Sequence, Tuple

import numpy as np

from scenecraft.mesh import Mesh

Vec3 = Tuple[float, float, float]

SCALE_EPSILON = 1e-3
_GIMBAL_LIMIT = 0.9999999


def as_vec3(values: Sequence[float]) -> Vec3:
    x, y, z = (float(v) for v in np.asarray(values, dtype=float).reshape(3))
    return (x, y, z)


def floor_scale(scale: Sequence[float], epsilon: float = SCALE_EPSILON) -> Vec3:
    """Clamp tiny scale magnitudes to ``epsilon`` keeping the sign (0 counts as positive)."""

    clamped = []
    for value in np.asarray(scale, dtype=float).reshape(3):
        if abs(value) < epsilon:
            value = epsilon if value >= 0 else -epsilon
        clamped.append(float(value))
    return (clamped[0], clamped[1], clamped[2])


def _translation_matrix(offset: Sequence[float]) -> np.ndarray:
    mat = np.eye(4)
    mat[:3, 3] = np.asarray(offset, dtype=float).reshape(3)
    return mat


def _scale_matrix(factors: Sequence[float]) -> np.ndarray:
    sx, sy, sz = np.asarray(factors, dtype=float).reshape(3)
    return np.diag([sx, sy, sz, 1.0])


def _axis_rotation(axis: str, angle_rad: float) -> np.ndarray:
    c = math.cos(angle_rad)
    s = math.sin(angle_rad)
    if axis == "x":
        return np.array([[1.0, 0.0, 0.0], [0.0, c, -s], [0.0, s, c]])
    if axis == "y":
        return np.array([[c, 0.0, s], [0.0, 1.0, 0.0], [-s, 0.0, c]])
    if axis == "z":
        return np.array([[c, -s, 0.0], [s, c, 0.0], [0.0, 0.0, 1.0]])
    raise ValueError(f"Unknown rotation axis '{axis}'.")


def euler_to_matrix(rotation: Sequence[float]) -> np.ndarray:
    """3x3 rotation for intrinsic X-Y-Z Euler angles in radians."""

    rx, ry, rz = np.asarray(rotation, dtype=float).reshape(3)
    return _axis_rotation("x", rx) @ _axis_rotation("y", ry) @ _axis_rotation("z", rz)


def matrix_to_euler(rotation: np.ndarray) -> Vec3:
    """Recover intrinsic X-Y-Z Euler angles from a pure 3x3 rotation matrix."""

    m = np.asarray(rotation, dtype=float)
    m13 = float(np.clip(m[0, 2], -1.0, 1.0))
    y = math.asin(m13)
    if abs(m13) < _GIMBAL_LIMIT:
        x = math.atan2(-m[1, 2], m[2, 2])
        z = math.atan2(-m[0, 1], m[0, 0])
    else:
        x = math.atan2(m[2, 1], m[1, 1])
        z = 0.0
    return (float(x), float(y), float(z))


@dataclass(frozen=True)
class Transform:
    """Position, rotation and scale of a node relative to its parent."""

    position: Vec3 = (0.0, 0.0, 0.0)
    rotation: Vec3 = (0.0, 0.0, 0.0)
    scale: Vec3 = (1.0, 1.0, 1.0)

    def __post_init__(self) -> None:
        object.__setattr__(self, "position", as_vec3(self.position))
        object.__setattr__(self, "rotation", as_vec3(self.rotation))
        object.__setattr__(self, "scale", as_vec3(self.scale))

    def matrix(self) -> np.ndarray:
        return compose_matrix(self.position, self.rotation, self.scale)

    @classmethod
    def from_matrix(cls, matrix: np.ndarray) -> "Transform":
        position, rotation, scale = decompose(matrix)
        return cls(position=position, rotation=rotation, scale=scale)


def compose_matrix(position: Sequence[float], rotation: Sequence[float], scale: Sequence[float]) -> np.ndarray:
    """Build ``T @ R @ S``; the scale is floored so the result is always invertible."""

    mat = np.eye(4)
    mat[:3, :3] = euler_to_matrix(rotation) @ np.diag(floor_scale(scale))
    mat[:3, 3] = np.asarray(position, dtype=float).reshape(3)
    return mat


def compose(parent: np.ndarray, child: np.ndarray) -> np.ndarray:
    """World matrix of ``child`` expressed under ``parent``: ``parent @ child``."""

    return np.asarray(parent, dtype=float) @ np.asarray(child, dtype=float)


def decompose(matrix: np.ndarray) -> tuple[Vec3, Vec3, Vec3]:
    """Split an affine matrix into position, X-Y-Z Euler rotation and scale.

    A mirroring matrix (negative determinant) is reported as a negative X
    scale. Shear, if present, is not representable and is dropped.
    """

    mat = np.asarray(matrix, dtype=float)
    if mat.shape != (4, 4):
        raise ValueError("decompose requires a 4x4 matrix.")
    if not np.all(np.isfinite(mat)):
        raise ValueError("decompose requires a finite matrix.")
    linear = mat[:3, :3]
    scale = np.linalg.norm(linear, axis=0)
    if np.linalg.det(linear) < 0:
        scale[0] = -scale[0]
    safe = np.where(np.abs(scale) < 1e-12, 1.0, scale)
    rotation = linear / safe
    return as_vec3(mat[:3, 3]), matrix_to_euler(rotation), as_vec3(scale)


def world_place(
    local_mesh: Mesh,
    transform: Transform,
    pivot: Sequence[float] = (0.0, 0.0, 0.0),
    parent: np.ndarray | None = None,
) -> Mesh:
    """Return a copy of ``local_mesh`` in world space."""

    mat = transform.matrix() @ _translation_matrix(pivot)
    if parent is not None:
        mat = compose(parent, mat)
    return local_mesh.transform(mat, inplace=False)


def to_display_degrees(angle_rad: float) -> float:
    """Radians to degrees rounded to 0.01 and wrapped into [0, 360)."""

    degrees = round(math.degrees(angle_rad) * 100.0) / 100.0
    degrees = math.fmod(degrees, 360.0)
    if degrees < 0:
        degrees += 360.0
    return degrees


def from_degrees(angle_deg: float) -> float:
    return math.radians(angle_deg)


def display_size(scale: Sequence[float], base_dimensions: Sequence[float] | None) -> Vec3:
    """Absolute size shown to the user: scale times the natural geometry size."""

    base = np.ones(3) if base_dimensions is None else np.asarray(base_dimensions, dtype=float)
    return as_vec3(np.asarray(scale, dtype=float) * base)


def scale_for_size(
    scale: Sequence[float],
    base_dimensions: Sequence[float] | None,
    axis: int,
    size: float,
) -> Vec3:
    """New scale vector giving ``size`` along ``axis``; a zero base counts as 1."""

    if axis not in (0, 1, 2):
        raise ValueError("axis must be 0, 1 or 2.")
    base = 1.0 if base_dimensions is None else float(base_dimensions[axis])
    if base == 0:
        base = 1.0
    updated = list(as_vec3(scale))
    updated[axis] = float(size) / base
    return as_vec3(updated)


__all__ = [
    "SCALE_EPSILON",
    "Transform",
    "Vec3",
    "as_vec3",
    "compose",
    "compose_matrix",
    "decompose",
    "display_size",
    "euler_to_matrix",
    "floor_scale",
    "from_degrees",
    "matrix_to_euler",
    "scale_for_size",
    "to_display_degrees",
    "world_place",
]
