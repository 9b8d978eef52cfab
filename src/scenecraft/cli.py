from __future__ import annotations

import pathlib
from typing import List, Optional, Tuple

import typer
from rich.console import Console
from rich.panel import Panel
from rich.tree import Tree

from scenecraft._config import EditorSettings, get_editor_settings
from scenecraft.io.project import ProjectDocument, ProjectLoadError, load_project, project_filename, save_project
from scenecraft.io.stl import export_scene_stl
from scenecraft.modeling.transform import display_size, from_degrees, scale_for_size, to_display_degrees
from scenecraft.scene.editor import CommandResult, Editor
from scenecraft.scene.nodes import SceneNode

console = Console()
app = typer.Typer(help="Edit CSG scene projects from the command line.")

Triple = Tuple[float, float, float]


def _log_active_units(settings: EditorSettings) -> None:
    units = settings.units
    if abs(units.scale_to_mm - 1.0) < 1e-9:
        console.print(f"[magenta]Units: {units.name} ({units.label}).[/magenta]")
    else:
        console.print(f"[magenta]Units: {units.name} ({units.label}); 1 {units.label} = {units.scale_to_mm:.4g} mm.[/magenta]")


def _next_available_path(path: pathlib.Path) -> pathlib.Path:
    """Return a non-conflicting path by appending ' (n)' before the suffix."""

    if not path.exists():
        return path

    parent = path.parent
    stem = path.stem
    suffix = path.suffix
    n = 1
    while True:
        candidate = parent / f"{stem} ({n}){suffix}"
        if not candidate.exists():
            return candidate
        n += 1


def _open(project: pathlib.Path) -> Editor:
    if not project.exists():
        raise typer.BadParameter(f"Project {project} does not exist.")
    try:
        document = load_project(project)
    except ProjectLoadError as exc:
        raise typer.BadParameter(str(exc)) from exc
    editor = Editor(settings=get_editor_settings())
    editor.open_document(document)
    return editor


def _report(result: CommandResult) -> None:
    if not result.ok:
        console.print(Panel.fit(result.message, title="Command failed", style="red"))
        raise typer.Exit(code=1)
    style = "green" if result.level == "success" else "cyan"
    console.print(f"[{style}]{result.message}[/{style}]")


def _apply(project: pathlib.Path, editor: Editor, result: CommandResult) -> None:
    _report(result)
    save_project(editor.document(), project)
    if result.node_ids:
        console.print("Affected: " + ", ".join(f"[bold]{node_id}[/bold]" for node_id in result.node_ids))


def _fmt(values) -> str:
    return "(" + ", ".join(f"{v:.4g}" for v in values) + ")"


def _add_branch(tree: Tree, node: SceneNode) -> None:
    rotation = tuple(to_display_degrees(angle) for angle in node.rotation)
    label = (
        f"[bold]{node.name}[/bold] [dim]{node.kind.value} {node.id}[/dim] "
        f"pos={_fmt(node.position)} rot(deg)={_fmt(rotation)} size={_fmt(display_size(node.scale, node.base_dimensions))}"
    )
    branch = tree.add(label)
    for child in node.children or ():
        _add_branch(branch, child)


@app.command()
def new(
    project: Optional[pathlib.Path] = typer.Argument(
        None, help="Project JSON file to create; derived from --name when omitted."
    ),
    name: Optional[str] = typer.Option(None, "--name", help="Project name; defaults to the file stem."),
    overwrite: bool = typer.Option(False, "--overwrite", help="Replace an existing project file."),
) -> None:
    """
    Create an empty project document.
    """

    if project is None:
        if not name:
            raise typer.BadParameter("Pass a project file or a --name to derive one from.")
        project = pathlib.Path(project_filename(name))
    if project.exists() and not overwrite:
        raise typer.BadParameter(f"Project {project} already exists; pass --overwrite to replace it.")
    save_project(ProjectDocument(name=name or project.stem), project)
    console.print(Panel(f"Created [green]{project}[/green].", title="New project", border_style="green"))


@app.command()
def info(project: pathlib.Path = typer.Argument(..., help="Project JSON file.")) -> None:
    """
    Print the scene tree with positions, rotations (degrees) and sizes.
    """

    editor = _open(project)
    _log_active_units(editor.settings)
    tree = Tree(f"[bold]{editor.project_name}[/bold] (v{editor.document().version})")
    for node in editor.scene:
        _add_branch(tree, node)
    if not editor.scene:
        tree.add("[dim]empty scene[/dim]")
    console.print(tree)


@app.command()
def add(
    project: pathlib.Path = typer.Argument(..., help="Project JSON file."),
    kind: str = typer.Argument(..., help="box, sphere, cylinder, cone or torus."),
) -> None:
    """
    Add a primitive shape at the default spawn point.
    """

    editor = _open(project)
    _apply(project, editor, editor.add_shape(kind))


@app.command()
def edit(
    project: pathlib.Path = typer.Argument(..., help="Project JSON file."),
    node_id: str = typer.Argument(..., help="Identifier of the node to edit."),
    position: Optional[Triple] = typer.Option(None, "--position", help="New position x y z."),
    rotation: Optional[Triple] = typer.Option(None, "--rotation", help="New rotation in degrees x y z."),
    size: Optional[Triple] = typer.Option(None, "--size", help="New absolute size x y z."),
    pivot: Optional[Triple] = typer.Option(None, "--pivot", help="New pivot offset x y z."),
    color: Optional[str] = typer.Option(None, "--color", help="New color, e.g. #ff8800."),
    name: Optional[str] = typer.Option(None, "--name", help="New display name."),
) -> None:
    """
    Patch the transform or appearance of one node.
    """

    editor = _open(project)
    node = editor.find(node_id)
    if node is None:
        raise typer.BadParameter(f"No node with id '{node_id}'.")

    changes = {}
    if position is not None:
        changes["position"] = position
    if rotation is not None:
        changes["rotation"] = tuple(from_degrees(angle) for angle in rotation)
    if size is not None:
        scale = node.scale
        for axis, value in enumerate(size):
            scale = scale_for_size(scale, node.base_dimensions, axis, value)
        changes["scale"] = scale
    if pivot is not None:
        changes["pivot"] = pivot
    if color is not None:
        changes["color"] = color
    if name is not None:
        changes["name"] = name
    if not changes:
        raise typer.BadParameter("Nothing to change; pass at least one option.")
    _apply(project, editor, editor.update(node_id, **changes))


@app.command()
def duplicate(
    project: pathlib.Path = typer.Argument(..., help="Project JSON file."),
    node_id: str = typer.Argument(..., help="Identifier of the node to copy."),
) -> None:
    """
    Deep-copy a node (with fresh identifiers) next to the original.
    """

    editor = _open(project)
    _apply(project, editor, editor.duplicate(node_id))


@app.command()
def delete(
    project: pathlib.Path = typer.Argument(..., help="Project JSON file."),
    node_id: str = typer.Argument(..., help="Identifier of the node to delete."),
) -> None:
    """
    Delete a node and everything nested under it.
    """

    editor = _open(project)
    _apply(project, editor, editor.delete(node_id))


@app.command()
def group(
    project: pathlib.Path = typer.Argument(..., help="Project JSON file."),
    node_ids: List[str] = typer.Argument(..., help="Two or more root-level node identifiers."),
) -> None:
    """
    Group root-level nodes around their common centroid.
    """

    editor = _open(project)
    _apply(project, editor, editor.group(node_ids))


@app.command()
def ungroup(
    project: pathlib.Path = typer.Argument(..., help="Project JSON file."),
    group_id: str = typer.Argument(..., help="Identifier of a root-level group."),
) -> None:
    """
    Dissolve a group, keeping every child where it is in world space.
    """

    editor = _open(project)
    _apply(project, editor, editor.ungroup(group_id))


@app.command()
def combine(
    project: pathlib.Path = typer.Argument(..., help="Project JSON file."),
    operation: str = typer.Argument(..., help="union, subtract or intersect."),
    node_a: str = typer.Argument(..., help="First operand (the one kept for subtract)."),
    node_b: str = typer.Argument(..., help="Second operand."),
) -> None:
    """
    Replace two nodes by the boolean combination of their solids.
    """

    editor = _open(project)
    started = editor.start_boolean(operation, node_a, node_b)
    _report(started)
    with console.status(started.message):
        result = editor.finish_boolean()
    _apply(project, editor, result)


@app.command("import-mesh")
def import_mesh(
    project: pathlib.Path = typer.Argument(..., help="Project JSON file."),
    mesh_file: pathlib.Path = typer.Argument(..., help="STL, OBJ, PLY, VTK or VTP file."),
) -> None:
    """
    Import a mesh file as a custom node resting on the ground plane.
    """

    editor = _open(project)
    _apply(project, editor, editor.import_file(mesh_file))


@app.command()
def export(
    project: pathlib.Path = typer.Argument(..., help="Project JSON file."),
    output: pathlib.Path = typer.Option(
        pathlib.Path("scene.stl"),
        "--output",
        "-o",
        help="Path to the STL file that will be produced.",
    ),
    overwrite: bool = typer.Option(False, "--overwrite", help="Allow replacing an existing STL."),
    ascii: bool = typer.Option(False, "--ascii", help="Write ASCII STL instead of binary."),
) -> None:
    """
    Flatten the scene into world space and save it as one STL file.
    """

    editor = _open(project)
    final_output = output
    if output.exists() and not overwrite:
        final_output = _next_available_path(output)
        if final_output != output:
            console.print(f"[yellow]Output {output} exists; writing to {final_output} instead.[/yellow]")

    final_output.parent.mkdir(parents=True, exist_ok=True)
    try:
        export_scene_stl(editor.scene, final_output, ascii=ascii, quality=editor.quality)
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc

    mode = "ASCII" if ascii else "binary"
    units = editor.settings.units
    console.print(
        Panel(
            f"Wrote {mode} STL to [green]{final_output}[/green]. Units: {units.name} ({units.label}).",
            title="Export complete",
            border_style="green",
        )
    )


def main() -> None:
    app()


if __name__ == "__main__":
    main()
