from __future__ import annotations

import json
import warnings

import numpy as np
import pytest

from scenecraft.io.project import (
    DOCUMENT_VERSION,
    ProjectDocument,
    ProjectLoadError,
    dumps_project,
    load_project,
    loads_project,
    project_filename,
    save_project,
)
from scenecraft.io.stl import export_scene_stl, write_stl
from scenecraft.modeling.primitives import make_box
from scenecraft.modeling.realize import realize
from scenecraft.scene import graph
from scenecraft.scene.nodes import GeometryData, NodeKind

TETRA = {
    "positions": [0, 0, 0, 1, 0, 0, 0, 1, 0, 0, 0, 1],
    "indices": [0, 2, 1, 0, 1, 3, 0, 3, 2, 1, 2, 3],
}


def _sample_scene():
    a = graph.make_shape(NodeKind.BOX, name="Box 1", color="#ff0000", node_id="a")
    b = graph.make_shape(NodeKind.CYLINDER, name="Cylinder 2", color="#00ff00", position=(30.0, 0.0, 10.0), node_id="b")
    scene, _ = graph.group_nodes((a, b), ["a", "b"], id_factory=lambda: "g")
    custom = graph.make_imported(make_box(size=(2.0, 2.0, 2.0)), name="part", color="#0000ff", node_id="c")
    return graph.add_node(scene, custom)


def test_document_uses_project_field_names():
    data = ProjectDocument(name="Demo", objects=_sample_scene()).to_dict()
    assert data["version"] == DOCUMENT_VERSION
    group, custom = data["objects"]
    assert group["type"] == "group"
    assert [child["id"] for child in group["children"]] == ["a", "b"]
    assert "geometryData" not in group
    assert custom["type"] == "custom"
    assert custom["baseDimensions"] == [2.0, 2.0, 2.0]
    assert set(custom["geometryData"]) >= {"positions", "indices"}


def test_save_and_load_preserve_scene(tmp_path):
    document = ProjectDocument(name="Demo Project", objects=_sample_scene())
    path = save_project(document, tmp_path / project_filename(document.name))
    assert path.name == "Demo_Project.json"
    loaded = load_project(path)
    assert loaded == document


def test_load_defaults_name_to_file_stem(tmp_path):
    path = tmp_path / "bench.json"
    path.write_text(json.dumps({"objects": []}))
    assert load_project(path).name == "bench"


@pytest.mark.parametrize(
    "text",
    [
        "not json",
        json.dumps({"name": "x"}),
        json.dumps({"objects": {"a": 1}}),
        json.dumps({"objects": [{"type": "box"}]}),
        json.dumps({"objects": [{"id": "a", "type": "box"}, {"id": "a", "type": "sphere"}]}),
    ],
)
def test_invalid_documents_are_rejected(text):
    with pytest.raises(ProjectLoadError):
        loads_project(text)


def test_custom_mesh_alias_and_threejs_geometry():
    document = loads_project(
        json.dumps(
            {
                "objects": [
                    {
                        "id": "m",
                        "type": "custom-mesh",
                        "geometryData": {
                            "data": {
                                "attributes": {"position": {"array": TETRA["positions"]}},
                                "index": {"array": TETRA["indices"]},
                            }
                        },
                    }
                ]
            }
        )
    )
    (node,) = document.objects
    assert node.kind is NodeKind.CUSTOM
    assert node.geometry == GeometryData(**TETRA)


def test_undecodable_geometry_loads_and_falls_back():
    document = loads_project(json.dumps({"objects": [{"id": "m", "type": "custom", "geometryData": "garbage"}]}))
    (node,) = document.objects
    with warnings.catch_warnings(record=True) as caught:
        warnings.simplefilter("always")
        mesh = realize(node)
    assert any(issubclass(item.category, RuntimeWarning) for item in caught)
    assert np.allclose(mesh.extents, (1.0, 1.0, 1.0))


def test_dumps_is_plain_json():
    text = dumps_project(ProjectDocument(objects=_sample_scene()))
    assert json.loads(text)["name"] == "Untitled Project"


def test_write_stl_ascii_and_binary(tmp_path):
    mesh = make_box(size=(2.0, 2.0, 2.0))
    ascii_path = write_stl(mesh, tmp_path / "box_ascii.stl", ascii=True)
    text = ascii_path.read_text()
    assert text.startswith("solid scenecraft")
    assert text.count("facet normal") == 12

    binary_path = write_stl(mesh, tmp_path / "box.stl")
    assert binary_path.stat().st_size == 80 + 4 + 12 * 50


def test_export_flattens_groups(tmp_path):
    path = export_scene_stl(_sample_scene(), tmp_path / "scene.stl", ascii=True)
    assert path.read_text().count("facet normal") > 24


def test_export_rejects_empty_scene(tmp_path):
    with pytest.raises(ValueError):
        export_scene_stl((), tmp_path / "empty.stl")
