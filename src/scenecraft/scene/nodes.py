from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from enum import Enum
from typing import Any, Mapping, Sequence, Tuple

import numpy as np

from scenecraft.mesh import Mesh
from scenecraft.modeling.transform import Transform, Vec3, as_vec3
from scenecraft.validation import InvalidGeometry, validate_mesh

ZERO: Vec3 = (0.0, 0.0, 0.0)
ONE: Vec3 = (1.0, 1.0, 1.0)
DEFAULT_COLOR = "#cccccc"


class NodeKind(str, Enum):
    BOX = "box"
    SPHERE = "sphere"
    CYLINDER = "cylinder"
    CONE = "cone"
    TORUS = "torus"
    GROUP = "group"
    CUSTOM = "custom"

    @property
    def is_primitive(self) -> bool:
        return self in PRIMITIVE_KINDS

    @classmethod
    def parse(cls, value: "str | NodeKind") -> "NodeKind":
        if isinstance(value, NodeKind):
            return value
        key = str(value).strip().lower()
        if key == "custom-mesh":
            key = "custom"
        try:
            return cls(key)
        except ValueError:
            raise ValueError(f"Unknown node kind '{value}'.") from None


PRIMITIVE_KINDS = frozenset({NodeKind.BOX, NodeKind.SPHERE, NodeKind.CYLINDER, NodeKind.CONE, NodeKind.TORUS})


def _frozen_array(values: Any, dtype: Any, width: int = 3) -> np.ndarray:
    arr = np.asarray(values, dtype=dtype)
    if arr.size % width:
        raise ValueError(f"buffer length {arr.size} is not a multiple of {width}.")
    arr = arr.reshape(-1, width).copy()
    arr.setflags(write=False)
    return arr


@dataclass(frozen=True, eq=False)
class GeometryData:
    """Serializable triangle buffer stored on custom-mesh nodes.

    Buffers are read-only so one instance can be shared by every snapshot that
    references it. The data is stored as given; :meth:`to_mesh` is where it
    gets validated.
    """

    positions: np.ndarray
    indices: np.ndarray
    normals: np.ndarray | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "positions", _frozen_array(self.positions, float))
        object.__setattr__(self, "indices", _frozen_array(self.indices, np.int64))
        if self.normals is not None:
            object.__setattr__(self, "normals", _frozen_array(self.normals, float))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, GeometryData):
            return NotImplemented
        if (self.normals is None) != (other.normals is None):
            return False
        return (
            np.array_equal(self.positions, other.positions)
            and np.array_equal(self.indices, other.indices)
            and (self.normals is None or np.array_equal(self.normals, other.normals))
        )

    __hash__ = None  # type: ignore[assignment]

    @classmethod
    def empty(cls) -> "GeometryData":
        return cls(positions=np.zeros((0, 3)), indices=np.zeros((0, 3), dtype=np.int64))

    @classmethod
    def from_mesh(cls, mesh: Mesh) -> "GeometryData":
        return cls(positions=mesh.vertices, indices=mesh.faces, normals=mesh.normals)

    def to_mesh(self) -> Mesh:
        """Working copy of the buffers; raises :class:`InvalidGeometry` when unusable."""

        mesh = Mesh(vertices=np.array(self.positions), faces=np.array(self.indices))
        if self.normals is not None and self.normals.shape == self.positions.shape:
            mesh.normals = np.array(self.normals)
        return validate_mesh(mesh, label="geometry data")

    def to_dict(self) -> dict[str, list]:
        data: dict[str, list] = {
            "positions": self.positions.ravel().tolist(),
            "indices": self.indices.ravel().tolist(),
        }
        if self.normals is not None:
            data["normals"] = self.normals.ravel().tolist()
        return data

    @classmethod
    def from_dict(cls, data: Any) -> "GeometryData":
        """Decode the project encoding, or the three.js BufferGeometry JSON layout.

        Structural problems raise :class:`InvalidGeometry`.
        """

        if not isinstance(data, Mapping):
            raise InvalidGeometry("geometry data must be a mapping.")
        try:
            if "positions" in data:
                positions = data["positions"]
                indices = data.get("indices")
                normals = data.get("normals")
            else:
                payload = data.get("data", data)
                attributes = payload["attributes"]
                positions = attributes["position"]["array"]
                normals = attributes.get("normal", {}).get("array")
                index = payload.get("index")
                indices = index.get("array") if isinstance(index, Mapping) else None
            if indices is None:
                indices = np.arange(len(positions) // 3)
            return cls(positions=positions, indices=indices, normals=normals)
        except (KeyError, TypeError, ValueError, AttributeError) as exc:
            raise InvalidGeometry(f"malformed geometry data: {exc}") from exc


def _optional_vec3(values: Sequence[float] | None) -> Vec3 | None:
    return None if values is None else as_vec3(values)


@dataclass(frozen=True)
class SceneNode:
    """One entry of the scene forest: a primitive, an imported mesh, or a group."""

    id: str
    kind: NodeKind
    name: str
    position: Vec3 = ZERO
    rotation: Vec3 = ZERO
    scale: Vec3 = ONE
    pivot: Vec3 = ZERO
    color: str = DEFAULT_COLOR
    children: Tuple["SceneNode", ...] | None = None
    base_dimensions: Vec3 | None = None
    geometry: GeometryData | None = field(default=None)

    def __post_init__(self) -> None:
        object.__setattr__(self, "kind", NodeKind.parse(self.kind))
        for name in ("name", "color"):
            if not isinstance(getattr(self, name), str):
                raise ValueError(f"{name} must be a string, got {getattr(self, name)!r}.")
        for name in ("position", "rotation", "scale", "pivot"):
            object.__setattr__(self, name, as_vec3(getattr(self, name)))
        object.__setattr__(self, "base_dimensions", _optional_vec3(self.base_dimensions))
        if self.kind is NodeKind.GROUP:
            if self.children is None:
                raise ValueError("group nodes need a children sequence.")
            object.__setattr__(self, "children", tuple(self.children))
        elif self.children is not None:
            raise ValueError(f"{self.kind.value} nodes cannot have children.")
        if self.kind is NodeKind.CUSTOM:
            if self.geometry is None:
                raise ValueError("custom nodes need geometry data.")
        elif self.geometry is not None:
            raise ValueError(f"{self.kind.value} nodes cannot carry geometry data.")

    @property
    def is_group(self) -> bool:
        return self.kind is NodeKind.GROUP

    @property
    def transform(self) -> Transform:
        return Transform(position=self.position, rotation=self.rotation, scale=self.scale)

    def evolve(self, **changes: Any) -> "SceneNode":
        return replace(self, **changes)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "type": self.kind.value,
            "position": list(self.position),
            "rotation": list(self.rotation),
            "scale": list(self.scale),
            "pivot": list(self.pivot),
            "color": self.color,
            "name": self.name,
        }
        if self.children is not None:
            data["children"] = [child.to_dict() for child in self.children]
        if self.geometry is not None:
            data["geometryData"] = self.geometry.to_dict()
        if self.base_dimensions is not None:
            data["baseDimensions"] = list(self.base_dimensions)
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SceneNode":
        kind = NodeKind.parse(data["type"])
        children = None
        if kind is NodeKind.GROUP:
            children = tuple(cls.from_dict(child) for child in data.get("children") or ())
        geometry = None
        if kind is NodeKind.CUSTOM:
            # undecodable buffers are kept as empty data; realization falls back to a box
            try:
                geometry = GeometryData.from_dict(data.get("geometryData"))
            except InvalidGeometry:
                geometry = GeometryData.empty()
        return cls(
            id=str(data["id"]),
            kind=kind,
            name=str(data.get("name", kind.value.title())),
            position=data.get("position", ZERO),
            rotation=data.get("rotation", ZERO),
            scale=data.get("scale", ONE),
            pivot=data.get("pivot") or ZERO,
            color=str(data.get("color", DEFAULT_COLOR)),
            children=children,
            base_dimensions=data.get("baseDimensions"),
            geometry=geometry,
        )


Scene = Tuple[SceneNode, ...]

PATCHABLE_FIELDS = frozenset(
    f.name for f in fields(SceneNode) if f.name not in {"id", "kind", "children"}
)


__all__ = [
    "DEFAULT_COLOR",
    "GeometryData",
    "NodeKind",
    "ONE",
    "PATCHABLE_FIELDS",
    "PRIMITIVE_KINDS",
    "Scene",
    "SceneNode",
    "ZERO",
]
