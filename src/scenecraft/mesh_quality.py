from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Literal

MeshLOD = Literal["preview", "final"]


@dataclass(frozen=True)
class MeshQuality:
    """Tessellation density of the canonical primitives."""

    sphere_segments: int = 32
    sphere_rings: int = 32
    revolve_segments: int = 32
    torus_radial_segments: int = 16
    torus_tubular_segments: int = 100
    lod: MeshLOD = "final"


def apply_lod(quality: MeshQuality) -> MeshQuality:
    if quality.lod == "final":
        return quality
    if quality.lod != "preview":
        raise ValueError("lod must be 'preview' or 'final'.")
    return replace(
        quality,
        sphere_segments=max(8, quality.sphere_segments // 2),
        sphere_rings=max(6, quality.sphere_rings // 2),
        revolve_segments=max(8, quality.revolve_segments // 2),
        torus_radial_segments=max(6, quality.torus_radial_segments // 2),
        torus_tubular_segments=max(12, quality.torus_tubular_segments // 2),
    )


def quality_for(lod: str) -> MeshQuality:
    """Base quality for ``lod``; the preview reduction happens in :func:`apply_lod` at realize time."""

    if lod not in ("preview", "final"):
        raise ValueError("lod must be 'preview' or 'final'.")
    return MeshQuality(lod=lod)  # type: ignore[arg-type]
