from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Sequence, Tuple

from scenecraft.scene.nodes import Scene

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class History:
    """Linear undo/redo over whole-scene snapshots.

    ``past`` runs oldest to newest, ``future`` holds the next redo first.
    Snapshots are immutable scene tuples, so storing one is a reference copy.
    """

    present: Scene = ()
    past: Tuple[Scene, ...] = ()
    future: Tuple[Scene, ...] = ()

    @property
    def can_undo(self) -> bool:
        return bool(self.past)

    @property
    def can_redo(self) -> bool:
        return bool(self.future)

    def commit(self, scene: Sequence) -> "History":
        """Record ``present`` as the pre-edit snapshot and make ``scene`` current."""

        logger.debug("history commit: %d undo steps, %d redo steps dropped", len(self.past) + 1, len(self.future))
        return History(present=tuple(scene), past=self.past + (self.present,), future=())

    def undo(self) -> "History":
        if not self.past:
            return self
        return History(present=self.past[-1], past=self.past[:-1], future=(self.present,) + self.future)

    def redo(self) -> "History":
        if not self.future:
            return self
        return History(present=self.future[0], past=self.past + (self.present,), future=self.future[1:])

    @classmethod
    def reset(cls, scene: Sequence = ()) -> "History":
        return cls(present=tuple(scene))
