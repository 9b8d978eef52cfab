from __future__ import annotations

import warnings

import numpy as np
import pytest

from scenecraft.io.mesh_import import MeshImportError, read_mesh
from scenecraft.io.stl import write_stl
from scenecraft.mesh import Mesh, analyze_mesh, combine_meshes, orient_outward, weld_vertices
from scenecraft.modeling.primitives import make_box


def _unshared(mesh: Mesh) -> Mesh:
    """Every triangle with its own three corners, like an STL file."""
    return Mesh(vertices=mesh.vertices[mesh.faces].reshape(-1, 3), faces=np.arange(mesh.n_faces * 3).reshape(-1, 3))


def test_weld_restores_shared_topology():
    soup = _unshared(make_box())
    assert soup.n_vertices == 36
    assert analyze_mesh(soup).open_edges > 0
    welded = weld_vertices(soup)
    assert welded.n_vertices == 8
    assert analyze_mesh(welded).is_closed_solid


def test_weld_merges_noisy_corners_across_grid_boundaries():
    # corners sit half a tolerance off the origin grid and carry sub-tolerance noise
    rng = np.random.default_rng(3)
    soup = _unshared(make_box(center=(0.5e-6, 0.5e-6, 0.5e-6)))
    soup.vertices += rng.uniform(-2e-7, 2e-7, size=soup.vertices.shape)
    welded = weld_vertices(soup, tolerance=1e-6)
    assert welded.n_vertices == 8
    assert welded.n_faces == 12
    assert analyze_mesh(welded).is_closed_solid


def test_orient_outward_flips_inverted_winding():
    box = make_box()
    inverted = Mesh(vertices=box.vertices, faces=box.faces[:, ::-1])
    assert inverted.volume < 0
    assert orient_outward(inverted).volume == pytest.approx(1.0)


def test_analysis_reports_open_surfaces():
    box = make_box()
    open_box = Mesh(vertices=box.vertices, faces=box.faces[2:])
    analysis = analyze_mesh(open_box)
    assert not analysis.is_closed_solid
    assert any("open edges" in issue for issue in analysis.issues())


def test_mirror_transform_keeps_volume_positive():
    mirror = np.diag([-1.0, 1.0, 1.0, 1.0])
    flipped = make_box().transform(mirror, inplace=False)
    assert flipped.volume == pytest.approx(1.0)


def test_combine_offsets_indices():
    merged = combine_meshes([make_box(), make_box(center=(5.0, 0.0, 0.0))])
    assert merged.n_vertices == 16
    assert merged.faces.max() == 15
    assert merged.volume == pytest.approx(2.0)


def test_read_mesh_round_trips_stl(tmp_path):
    path = write_stl(make_box(size=(2.0, 3.0, 4.0)), tmp_path / "box.stl")
    mesh = read_mesh(path)
    assert np.allclose(mesh.extents, (2.0, 3.0, 4.0))
    assert analyze_mesh(mesh).is_closed_solid


def test_read_mesh_warns_for_open_surfaces(tmp_path):
    box = make_box()
    path = write_stl(Mesh(vertices=box.vertices, faces=box.faces[2:]), tmp_path / "open.stl", ascii=True)
    with warnings.catch_warnings(record=True) as caught:
        warnings.simplefilter("always")
        read_mesh(path)
    assert any(issubclass(item.category, RuntimeWarning) for item in caught)


def test_read_mesh_missing_file(tmp_path):
    with pytest.raises(MeshImportError):
        read_mesh(tmp_path / "nothing.stl")
