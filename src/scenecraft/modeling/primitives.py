from __future__ import annotations

from typing import Sequence

import numpy as np
import pyvista as pv

from scenecraft.mesh import Mesh, mesh_from_pyvista, orient_outward, weld_vertices

UP = (0.0, 0.0, 1.0)


def _solid(poly: pv.PolyData) -> Mesh:
    # parametric seams and cap rings come out as near-coincident copies
    return orient_outward(weld_vertices(mesh_from_pyvista(poly.triangulate()), tolerance=1e-9))


def make_box(
    size: Sequence[float] = (1.0, 1.0, 1.0),
    center: Sequence[float] = (0.0, 0.0, 0.0),
) -> Mesh:
    """Axis-aligned box specified by size (dx, dy, dz) and center."""

    sx, sy, sz = np.asarray(size, dtype=float).reshape(3)
    cx, cy, cz = np.asarray(center, dtype=float).reshape(3)
    hx, hy, hz = sx / 2.0, sy / 2.0, sz / 2.0
    bounds = (cx - hx, cx + hx, cy - hy, cy + hy, cz - hz, cz + hz)
    return _solid(pv.Box(bounds=bounds))


def make_sphere(
    radius: float = 0.5,
    center: Sequence[float] = (0.0, 0.0, 0.0),
    segments: int = 32,
    rings: int = 32,
) -> Mesh:
    """UV sphere with its poles on the Z axis."""

    if radius <= 0:
        raise ValueError("radius must be > 0.")
    return _solid(
        pv.Sphere(
            radius=radius,
            center=center,
            direction=UP,
            theta_resolution=max(int(segments), 3),
            phi_resolution=max(int(rings), 3),
        )
    )


def make_cylinder(
    radius: float = 0.5,
    height: float = 1.0,
    center: Sequence[float] = (0.0, 0.0, 0.0),
    resolution: int = 32,
) -> Mesh:
    """Right circular cylinder whose axis is the Z (up) axis."""

    if radius <= 0 or height <= 0:
        raise ValueError("radius and height must be > 0.")
    return _solid(
        pv.Cylinder(
            center=center,
            direction=UP,
            radius=radius,
            height=height,
            resolution=max(int(resolution), 3),
            capping=True,
        )
    )


def make_cone(
    radius: float = 0.5,
    height: float = 1.0,
    center: Sequence[float] = (0.0, 0.0, 0.0),
    resolution: int = 32,
) -> Mesh:
    """Capped cone along Z with its apex at the top."""

    if radius <= 0 or height <= 0:
        raise ValueError("radius and height must be > 0.")
    return _solid(
        pv.Cone(
            center=center,
            direction=UP,
            height=height,
            radius=radius,
            capping=True,
            resolution=max(int(resolution), 3),
        )
    )


def make_torus(
    major_radius: float = 0.4,
    minor_radius: float = 0.1,
    center: Sequence[float] = (0.0, 0.0, 0.0),
    n_theta: int = 100,
    n_phi: int = 16,
) -> Mesh:
    """Torus lying in the XY plane, revolved around Z."""

    if minor_radius <= 0 or major_radius <= minor_radius:
        raise ValueError("Torus needs 0 < minor_radius < major_radius.")
    base = pv.ParametricTorus(
        ringradius=major_radius,
        crosssectionradius=minor_radius,
        u_res=max(int(n_theta), 3),
        v_res=max(int(n_phi), 3),
    )
    base.translate(center, inplace=True)
    return _solid(base)
