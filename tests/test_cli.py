from __future__ import annotations

from typer.testing import CliRunner

from scenecraft.cli import _next_available_path, app
from scenecraft.io.project import load_project
from scenecraft.io.stl import write_stl
from scenecraft.modeling.primitives import make_box

runner = CliRunner()


def _new_project(tmp_path):
    project = tmp_path / "demo.json"
    result = runner.invoke(app, ["new", str(project)])
    assert result.exit_code == 0, result.output
    return project


def _ids(project):
    return [node.id for node in load_project(project).objects]


def test_new_refuses_to_overwrite(tmp_path):
    project = _new_project(tmp_path)
    assert load_project(project).name == "demo"
    result = runner.invoke(app, ["new", str(project)])
    assert result.exit_code != 0


def test_new_derives_file_name_from_project_name(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    result = runner.invoke(app, ["new", "--name", "Desk Lamp Base"])
    assert result.exit_code == 0, result.output
    project = tmp_path / "Desk_Lamp_Base.json"
    assert load_project(project).name == "Desk Lamp Base"

    assert runner.invoke(app, ["new"]).exit_code != 0


def test_add_edit_and_info(tmp_path):
    project = _new_project(tmp_path)
    assert runner.invoke(app, ["add", str(project), "box"]).exit_code == 0
    (node_id,) = _ids(project)

    result = runner.invoke(
        app,
        ["edit", str(project), node_id, "--position", "1", "2", "3", "--rotation", "0", "0", "90", "--size", "10", "20", "30"],
    )
    assert result.exit_code == 0, result.output
    (node,) = load_project(project).objects
    assert node.position == (1.0, 2.0, 3.0)
    assert node.scale == (10.0, 20.0, 30.0)

    info = runner.invoke(app, ["info", str(project)])
    assert info.exit_code == 0
    assert "Box 1" in info.output
    assert "90" in info.output


def test_failed_command_exits_non_zero_and_keeps_file(tmp_path):
    project = _new_project(tmp_path)
    before = project.read_text()
    result = runner.invoke(app, ["duplicate", str(project), "missing"])
    assert result.exit_code == 1
    assert project.read_text() == before


def test_group_ungroup_duplicate_delete(tmp_path):
    project = _new_project(tmp_path)
    runner.invoke(app, ["add", str(project), "box"])
    runner.invoke(app, ["add", str(project), "sphere"])
    first, second = _ids(project)

    assert runner.invoke(app, ["group", str(project), first, second]).exit_code == 0
    (group_id,) = _ids(project)
    assert runner.invoke(app, ["duplicate", str(project), group_id]).exit_code == 0
    assert len(_ids(project)) == 2
    assert runner.invoke(app, ["ungroup", str(project), group_id]).exit_code == 0
    assert len(_ids(project)) == 3
    assert runner.invoke(app, ["delete", str(project), first]).exit_code == 0
    assert first not in _ids(project)


def test_combine_runs_boolean(tmp_path):
    project = _new_project(tmp_path)
    runner.invoke(app, ["add", str(project), "box"])
    runner.invoke(app, ["add", str(project), "box"])
    first, second = _ids(project)
    runner.invoke(app, ["edit", str(project), second, "--position", "10", "0", "10"])

    result = runner.invoke(app, ["combine", str(project), "union", first, second])
    assert result.exit_code == 0, result.output
    (node,) = load_project(project).objects
    assert node.name == "Union Result"


def test_import_and_export(tmp_path):
    project = _new_project(tmp_path)
    mesh_file = write_stl(make_box(size=(2.0, 4.0, 6.0)), tmp_path / "part.stl")
    result = runner.invoke(app, ["import-mesh", str(project), str(mesh_file)])
    assert result.exit_code == 0, result.output
    (node,) = load_project(project).objects
    assert node.name == "part"
    assert node.position == (0.0, 0.0, 3.0)

    output = tmp_path / "out.stl"
    assert runner.invoke(app, ["export", str(project), "-o", str(output)]).exit_code == 0
    assert output.exists()
    assert runner.invoke(app, ["export", str(project), "-o", str(output)]).exit_code == 0
    assert (tmp_path / "out (1).stl").exists()


def test_export_empty_scene_fails(tmp_path):
    project = _new_project(tmp_path)
    assert runner.invoke(app, ["export", str(project), "-o", str(tmp_path / "x.stl")]).exit_code != 0


def test_next_available_path(tmp_path):
    target = tmp_path / "model.stl"
    assert _next_available_path(target) == target
    target.write_text("x")
    assert _next_available_path(target) == tmp_path / "model (1).stl"
