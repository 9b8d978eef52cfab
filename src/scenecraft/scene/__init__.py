"""Scene graph, undo history, and the editor command layer."""

from __future__ import annotations

from .nodes import GeometryData, NodeKind, SceneNode
from .history import History

__all__ = ["GeometryData", "History", "NodeKind", "SceneNode"]
