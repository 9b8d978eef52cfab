from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

from scenecraft.scene.graph import all_ids
from scenecraft.scene.nodes import Scene, SceneNode

DEFAULT_PROJECT_NAME = "Untitled Project"
DOCUMENT_VERSION = "1.0"


class ProjectLoadError(ValueError):
    """Raised when a project document cannot be loaded."""


@dataclass(frozen=True)
class ProjectDocument:
    name: str = DEFAULT_PROJECT_NAME
    version: str = DOCUMENT_VERSION
    objects: Scene = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "version": self.version,
            "objects": [node.to_dict() for node in self.objects],
        }

    @classmethod
    def from_dict(cls, data: Any, fallback_name: str = DEFAULT_PROJECT_NAME) -> "ProjectDocument":
        if not isinstance(data, Mapping) or "objects" not in data:
            raise ProjectLoadError("Invalid project file structure: missing 'objects'.")
        raw_objects = data["objects"]
        if not isinstance(raw_objects, list):
            raise ProjectLoadError("Invalid project file structure: 'objects' must be a list.")
        try:
            objects = tuple(SceneNode.from_dict(item) for item in raw_objects)
        except (KeyError, TypeError, ValueError) as exc:
            raise ProjectLoadError(f"Invalid scene object: {exc}") from exc
        ids = all_ids(objects)
        if len(ids) != len(set(ids)):
            raise ProjectLoadError("Invalid project file: node ids are not unique.")
        return cls(
            name=str(data.get("name") or fallback_name),
            version=str(data.get("version") or DOCUMENT_VERSION),
            objects=objects,
        )


def dumps_project(document: ProjectDocument) -> str:
    return json.dumps(document.to_dict(), indent=2)


def loads_project(text: str, fallback_name: str = DEFAULT_PROJECT_NAME) -> ProjectDocument:
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ProjectLoadError(f"Error parsing project file: {exc}") from exc
    return ProjectDocument.from_dict(data, fallback_name=fallback_name)


def save_project(document: ProjectDocument, path: Path) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(dumps_project(document) + "\n")
    return path


def load_project(path: Path) -> ProjectDocument:
    path = Path(path)
    try:
        text = path.read_text()
    except OSError as exc:
        raise ProjectLoadError(f"Cannot read project file {path}: {exc}") from exc
    return loads_project(text, fallback_name=path.stem)


def project_filename(name: str) -> str:
    """File name used when saving a project called ``name``."""

    return "_".join(name.split()) + ".json"
