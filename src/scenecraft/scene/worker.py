from __future__ import annotations

import logging
import threading

from scenecraft.mesh import Mesh
from scenecraft.modeling.csg import BooleanOp, BooleanOpError, CombinatorError, boolean_mesh

logger = logging.getLogger(__name__)


class WorkerBusyError(RuntimeError):
    """Raised when a boolean job is submitted while another is still running."""


class BooleanJob:
    """Handle for one background boolean computation. Jobs cannot be cancelled."""

    def __init__(self, op: BooleanOp) -> None:
        self.op = op
        self._done = threading.Event()
        self._result: Mesh | None = None
        self._error: BooleanOpError | None = None

    def done(self) -> bool:
        return self._done.is_set()

    def wait(self, timeout: float | None = None) -> bool:
        return self._done.wait(timeout)

    def result(self, timeout: float | None = None) -> Mesh:
        """Block for the result mesh; re-raises the job's :class:`BooleanOpError`."""

        if not self._done.wait(timeout):
            raise TimeoutError(f"{self.op.value} is still running.")
        if self._error is not None:
            raise self._error
        if self._result is None:
            raise CombinatorError(f"{self.op.value} finished without a result.")
        return self._result


class BooleanWorker:
    """Run the mesh combinator on a background thread, one job at a time.

    Jobs receive private copies of the world-placed meshes, so nothing mutable
    is shared with the caller while the thread runs.
    """

    def __init__(self, weld_tolerance: float = 1e-6) -> None:
        self.weld_tolerance = weld_tolerance
        self._lock = threading.Lock()
        self._current: BooleanJob | None = None

    @property
    def busy(self) -> bool:
        with self._lock:
            return self._current is not None

    def submit(self, mesh_a: Mesh, mesh_b: Mesh, op: BooleanOp | str) -> BooleanJob:
        op = BooleanOp.parse(op)
        with self._lock:
            if self._current is not None:
                raise WorkerBusyError("A boolean operation is already running.")
            job = BooleanJob(op)
            self._current = job
        thread = threading.Thread(
            target=self._run,
            args=(job, mesh_a.copy(), mesh_b.copy()),
            name="scenecraft-boolean",
            daemon=True,
        )
        thread.start()
        return job

    def _run(self, job: BooleanJob, mesh_a: Mesh, mesh_b: Mesh) -> None:
        try:
            job._result = boolean_mesh(mesh_a, mesh_b, job.op, self.weld_tolerance)
        except BooleanOpError as exc:
            job._error = exc
        except Exception as exc:  # surfaced to the caller through the job
            logger.exception("boolean worker crashed")
            job._error = CombinatorError(f"{job.op.value} failed inside the combinator: {exc}")
        finally:
            with self._lock:
                self._current = None
            job._done.set()
