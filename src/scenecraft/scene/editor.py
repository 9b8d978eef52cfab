"""Command layer: every user-visible edit goes through :class:`Editor`.

Each command either commits exactly one history snapshot and reports success,
or leaves scene and history untouched and reports why. Failures never raise
out of a command; they come back as a :class:`CommandResult`.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Literal, Sequence, Tuple

from scenecraft._config import EditorSettings, get_editor_settings
from scenecraft.io.mesh_import import MeshImportError, read_mesh
from scenecraft.io.project import DEFAULT_PROJECT_NAME, DOCUMENT_VERSION, ProjectDocument
from scenecraft.mesh import Mesh
from scenecraft.mesh_quality import MeshQuality, quality_for
from scenecraft.modeling.csg import BooleanOp, BooleanOpError, Operand, boolean_mesh, prepare_operands, synthesize_result
from scenecraft.scene import graph
from scenecraft.scene.history import History
from scenecraft.scene.nodes import NodeKind, Scene, SceneNode
from scenecraft.scene.worker import BooleanJob, BooleanWorker, WorkerBusyError
from scenecraft.validation import InvalidGeometry, validate_mesh

logger = logging.getLogger(__name__)

Level = Literal["success", "error", "info"]


@dataclass(frozen=True)
class CommandResult:
    ok: bool
    message: str
    level: Level = "info"
    node_ids: Tuple[str, ...] = ()


@dataclass(frozen=True)
class PendingBoolean:
    op: BooleanOp
    a: Operand
    b: Operand
    job: BooleanJob


class Editor:
    """Owns the project name, history, selection and background boolean state."""

    def __init__(
        self,
        scene: Sequence[SceneNode] = (),
        name: str = DEFAULT_PROJECT_NAME,
        settings: EditorSettings | None = None,
        rng: random.Random | None = None,
        worker: BooleanWorker | None = None,
    ) -> None:
        self.settings = settings or get_editor_settings()
        self.project_name = name
        self.history = History.reset(scene)
        self.selection: Tuple[str, ...] = ()
        self.last_notification: CommandResult | None = None
        self._rng = rng or random.Random()
        self._worker = worker or BooleanWorker(weld_tolerance=self.settings.weld_tolerance)
        self._pending: PendingBoolean | None = None

    # -- state ---------------------------------------------------------------

    @property
    def scene(self) -> Scene:
        return self.history.present

    @property
    def busy(self) -> bool:
        return self._pending is not None

    @property
    def quality(self) -> MeshQuality:
        return quality_for(self.settings.quality)

    def find(self, node_id: str) -> SceneNode | None:
        return graph.find_node(self.scene, node_id)

    def random_color(self) -> str:
        return f"#{self._rng.randrange(0x1000000):06x}"

    def _notify(self, ok: bool, message: str, level: Level, node_ids: Sequence[str] = ()) -> CommandResult:
        result = CommandResult(ok=ok, message=message, level=level, node_ids=tuple(node_ids))
        self.last_notification = result
        if level == "error":
            logger.warning(message)
        else:
            logger.info(message)
        return result

    def _fail(self, message: str) -> CommandResult:
        return self._notify(False, message, "error")

    def _commit(self, scene: Sequence[SceneNode], selection: Sequence[str] | None = None) -> None:
        self.history = self.history.commit(scene)
        if selection is not None:
            self.selection = tuple(selection)
        else:
            self.selection = tuple(node_id for node_id in self.selection if graph.contains(self.scene, node_id))

    def _blocked(self) -> CommandResult | None:
        if self.busy:
            return self._fail("A boolean operation is still running; wait for it to finish.")
        return None

    # -- selection -----------------------------------------------------------

    def select(self, node_id: str | None, multi: bool = False) -> Tuple[str, ...]:
        if node_id is None:
            self.selection = ()
        elif multi:
            if node_id in self.selection:
                self.selection = tuple(sid for sid in self.selection if sid != node_id)
            else:
                self.selection = self.selection + (node_id,)
        else:
            self.selection = (node_id,)
        return self.selection

    # -- node commands -------------------------------------------------------

    def add_shape(self, kind: NodeKind | str) -> CommandResult:
        blocked = self._blocked()
        if blocked:
            return blocked
        try:
            kind = NodeKind.parse(kind)
            node = graph.make_shape(
                kind,
                name=f"{kind.value.capitalize()} {len(self.scene) + 1}",
                color=self.random_color(),
                position=(0.0, 0.0, self.settings.spawn_height),
                size=self.settings.spawn_size,
            )
        except ValueError as exc:
            return self._fail(str(exc))
        self._commit(graph.add_node(self.scene, node), selection=(node.id,))
        return self._notify(True, f"Added {node.name}.", "success", (node.id,))

    def update(self, node_id: str, **changes: Any) -> CommandResult:
        blocked = self._blocked()
        if blocked:
            return blocked
        try:
            scene = graph.update_node(self.scene, node_id, changes)
        except graph.GraphLookupError as exc:
            return self._fail(str(exc))
        except (TypeError, ValueError) as exc:
            return self._fail(f"Invalid update: {exc}")
        self._commit(scene)
        return self._notify(True, "Object updated.", "success", (node_id,))

    def delete(self, node_id: str) -> CommandResult:
        blocked = self._blocked()
        if blocked:
            return blocked
        if not graph.contains(self.scene, node_id):
            return self._fail(str(graph.GraphLookupError(node_id)))
        self._commit(graph.delete_nodes(self.scene, [node_id]))
        return self._notify(True, "Object deleted.", "success", (node_id,))

    def duplicate(self, node_id: str) -> CommandResult:
        blocked = self._blocked()
        if blocked:
            return blocked
        offset = self.settings.duplicate_offset
        try:
            scene, copy = graph.duplicate_node(self.scene, node_id, offset=(offset, 0.0, offset))
        except graph.GraphLookupError as exc:
            return self._fail(str(exc))
        self._commit(scene, selection=(copy.id,))
        return self._notify(True, f"Duplicated as {copy.name}.", "success", (copy.id,))

    def group(self, node_ids: Sequence[str] | None = None) -> CommandResult:
        blocked = self._blocked()
        if blocked:
            return blocked
        ids = tuple(node_ids) if node_ids is not None else self.selection
        try:
            scene, group = graph.group_nodes(self.scene, ids)
        except ValueError as exc:
            return self._fail(str(exc))
        self._commit(scene, selection=(group.id,))
        return self._notify(True, "Objects grouped successfully.", "success", (group.id,))

    def ungroup(self, group_id: str | None = None) -> CommandResult:
        blocked = self._blocked()
        if blocked:
            return blocked
        if group_id is None:
            if len(self.selection) != 1:
                return self._fail("Select exactly one group to ungroup.")
            group_id = self.selection[0]
        try:
            scene, released = graph.ungroup_node(self.scene, group_id)
        except graph.GraphLookupError as exc:
            return self._fail(str(exc))
        except ValueError as exc:
            return self._fail(str(exc))
        ids = [child.id for child in released]
        self._commit(scene, selection=ids)
        return self._notify(True, "Group ungrouped.", "success", ids)

    def import_mesh(self, mesh: Mesh, name: str) -> CommandResult:
        blocked = self._blocked()
        if blocked:
            return blocked
        try:
            mesh = validate_mesh(mesh, label=name)
        except InvalidGeometry as exc:
            return self._fail(f"Error importing model file: {exc}")
        node = graph.make_imported(mesh, name=name, color=self.random_color())
        self._commit(graph.add_node(self.scene, node), selection=(node.id,))
        return self._notify(True, f"Imported {name}", "success", (node.id,))

    def import_file(self, path: Path) -> CommandResult:
        path = Path(path)
        try:
            mesh = read_mesh(path)
        except MeshImportError as exc:
            return self._fail(str(exc))
        return self.import_mesh(mesh, name=path.stem)

    # -- boolean operations ----------------------------------------------------

    def _pick_operands(self, id_a: str | None, id_b: str | None) -> tuple[SceneNode, SceneNode] | str:
        """The two operand nodes, or the message explaining why they cannot be used."""

        if id_a is None and id_b is None and len(self.selection) == 2:
            id_a, id_b = self.selection
        if id_a is None or id_b is None or id_a == id_b:
            return "Please select exactly two objects for this operation."
        node_a = self.find(id_a)
        node_b = self.find(id_b)
        if node_a is None or node_b is None:
            return "Selected objects could not be found."
        return node_a, node_b

    def _operands(self, node_a: SceneNode, node_b: SceneNode) -> tuple[Operand, Operand]:
        parent_a = None if node_a.is_group else graph.parent_matrix(self.scene, node_a.id)
        parent_b = None if node_b.is_group else graph.parent_matrix(self.scene, node_b.id)
        return prepare_operands(node_a, node_b, parent_a, parent_b, self.quality)

    def _apply_boolean(self, op: BooleanOp, a: Operand, b: Operand, result: Mesh) -> CommandResult:
        node = synthesize_result(result, a, b, op)
        scene = graph.replace_with_result(self.scene, [a.node.id, b.node.id], node)
        self._commit(scene, selection=(node.id,))
        return self._notify(True, "Boolean operation successful!", "success", (node.id,))

    def boolean(self, op: BooleanOp | str, id_a: str | None = None, id_b: str | None = None) -> CommandResult:
        """Combine two nodes on the calling thread."""

        blocked = self._blocked()
        if blocked:
            return blocked
        picked = self._pick_operands(id_a, id_b)
        if isinstance(picked, str):
            return self._fail(picked)
        try:
            op = BooleanOp.parse(op)
            a, b = self._operands(*picked)
            result = boolean_mesh(a.mesh, b.mesh, op, self.settings.weld_tolerance)
        except (BooleanOpError, ValueError) as exc:
            return self._fail(f"Boolean operation failed: {exc}")
        return self._apply_boolean(op, a, b, result)

    def start_boolean(self, op: BooleanOp | str, id_a: str | None = None, id_b: str | None = None) -> CommandResult:
        """Hand the combinator to the background worker; edits are blocked until it finishes."""

        blocked = self._blocked()
        if blocked:
            return blocked
        picked = self._pick_operands(id_a, id_b)
        if isinstance(picked, str):
            return self._fail(picked)
        try:
            op = BooleanOp.parse(op)
            a, b = self._operands(*picked)
            job = self._worker.submit(a.mesh, b.mesh, op)
        except (BooleanOpError, ValueError, WorkerBusyError) as exc:
            return self._fail(f"Boolean operation failed: {exc}")
        self._pending = PendingBoolean(op=op, a=a, b=b, job=job)
        return self._notify(True, f"{op.value.capitalize()} started.", "info", (a.node.id, b.node.id))

    def finish_boolean(self, timeout: float | None = None) -> CommandResult:
        """Deliver the background result; returns an ``info`` result while still running."""

        pending = self._pending
        if pending is None:
            return self._notify(False, "No boolean operation is running.", "info")
        if not pending.job.wait(timeout):
            return CommandResult(ok=False, message=f"{pending.op.value.capitalize()} is still running.", level="info")
        self._pending = None
        try:
            result = pending.job.result()
        except BooleanOpError as exc:
            return self._fail(f"Boolean operation failed: {exc}")
        return self._apply_boolean(pending.op, pending.a, pending.b, result)

    # -- history ---------------------------------------------------------------

    def undo(self) -> CommandResult:
        blocked = self._blocked()
        if blocked:
            return blocked
        if not self.history.can_undo:
            return self._notify(False, "Nothing to undo.", "info")
        self.history = self.history.undo()
        self._prune_selection()
        return self._notify(True, "Undone.", "info")

    def redo(self) -> CommandResult:
        blocked = self._blocked()
        if blocked:
            return blocked
        if not self.history.can_redo:
            return self._notify(False, "Nothing to redo.", "info")
        self.history = self.history.redo()
        self._prune_selection()
        return self._notify(True, "Redone.", "info")

    def _prune_selection(self) -> None:
        self.selection = tuple(node_id for node_id in self.selection if graph.contains(self.scene, node_id))

    # -- project ---------------------------------------------------------------

    def new_project(self, name: str = DEFAULT_PROJECT_NAME) -> CommandResult:
        blocked = self._blocked()
        if blocked:
            return blocked
        self.project_name = name
        self.history = History.reset()
        self.selection = ()
        return self._notify(True, f"Started {name}.", "info")

    def open_document(self, document: ProjectDocument) -> CommandResult:
        blocked = self._blocked()
        if blocked:
            return blocked
        self.project_name = document.name
        self.history = History.reset(document.objects)
        self.selection = ()
        return self._notify(True, "Project loaded successfully.", "success")

    def document(self) -> ProjectDocument:
        return ProjectDocument(name=self.project_name, version=DOCUMENT_VERSION, objects=self.scene)
