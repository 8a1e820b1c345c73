"""Scene graph nodes handed to the render engines.

Nodes form a strict tree: a node owns its children, and the parent link is a
weak reference used to resolve world transforms only.
"""

from __future__ import annotations

import weakref
from dataclasses import dataclass
from typing import TYPE_CHECKING, Iterator, Optional, Sequence

import numpy as np

from .robot import LinkTransform
from .scene import (
    AXES_HELPER_SIZE,
    BACKGROUND_COLOR,
    DIRECTIONAL_COLOR,
    DIRECTIONAL_INTENSITY,
    GRID_COLOR,
    GRID_DIVISIONS,
    GRID_SIZE,
    HEMISPHERE_GROUND_COLOR,
    HEMISPHERE_INTENSITY,
    HEMISPHERE_SKY_COLOR,
    SHADOW_EXTENT,
    SHADOW_FAR,
    SHADOW_MAP_SIZE,
    SHADOW_NEAR,
)

if TYPE_CHECKING:  # pragma: no cover
    from .rendering import Geometry, Material

_SHAPES = ("box", "cylinder", "sphere")


@dataclass(frozen=True)
class GeometrySpec:
    """Primitive shape description; boxes run along X, cylinders along Z."""

    kind: str
    size: tuple[float, ...]

    def __post_init__(self) -> None:
        if self.kind not in _SHAPES:
            raise ValueError(f"Unsupported geometry kind {self.kind}")

    @classmethod
    def box(cls, length: float, width: float, height: float) -> "GeometrySpec":
        return cls("box", (float(length), float(width), float(height)))

    @classmethod
    def cylinder(cls, radius: float, height: float) -> "GeometrySpec":
        return cls("cylinder", (float(radius), float(height)))

    @classmethod
    def sphere(cls, radius: float) -> "GeometrySpec":
        return cls("sphere", (float(radius),))


class Node:
    """Transform node: translation followed by one rotation about a principal axis."""

    def __init__(
        self,
        name: str = "",
        translation: Sequence[float] = (0.0, 0.0, 0.0),
        axis: str = "y",
        angle: float = 0.0,
    ) -> None:
        self.name = name
        self.translation = np.array(translation, dtype=float)
        self.axis = axis
        self.angle = float(angle)
        self.children: list[Node] = []
        self._parent: Optional[weakref.ReferenceType[Node]] = None

    @property
    def parent(self) -> Optional["Node"]:
        return self._parent() if self._parent is not None else None

    def add(self, child: "Node") -> "Node":
        previous = child.parent
        if previous is not None:
            previous.remove(child)
        self.children.append(child)
        child._parent = weakref.ref(self)
        return child

    def remove(self, child: "Node") -> None:
        self.children.remove(child)
        child._parent = None

    def local_matrix(self) -> np.ndarray:
        return LinkTransform(self.translation, self.axis, self.angle).matrix()

    def world_matrix(self) -> np.ndarray:
        matrix = self.local_matrix()
        node = self.parent
        while node is not None:
            matrix = node.local_matrix() @ matrix
            node = node.parent
        return matrix

    def traverse(self) -> Iterator["Node"]:
        yield self
        for child in self.children:
            yield from child.traverse()

    def find(self, name: str) -> Optional["Node"]:
        for node in self.traverse():
            if node.name == name:
                return node
        return None

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r}, children={len(self.children)})"


class Mesh(Node):
    def __init__(
        self,
        geometry: "Geometry",
        material: "Material",
        name: str = "",
        translation: Sequence[float] = (0.0, 0.0, 0.0),
        axis: str = "y",
        angle: float = 0.0,
        cast_shadow: bool = True,
        receive_shadow: bool = False,
    ) -> None:
        super().__init__(name, translation, axis, angle)
        self.geometry = geometry
        self.material = material
        self.cast_shadow = cast_shadow
        self.receive_shadow = receive_shadow


class HemisphereLight(Node):
    def __init__(
        self,
        sky_color: Sequence[float] = HEMISPHERE_SKY_COLOR,
        ground_color: Sequence[float] = HEMISPHERE_GROUND_COLOR,
        intensity: float = HEMISPHERE_INTENSITY,
    ) -> None:
        super().__init__("hemisphere_light")
        self.sky_color = tuple(sky_color)
        self.ground_color = tuple(ground_color)
        self.intensity = float(intensity)


@dataclass(frozen=True)
class ShadowParams:
    map_size: tuple[int, int] = SHADOW_MAP_SIZE
    near: float = SHADOW_NEAR
    far: float = SHADOW_FAR
    left: float = -SHADOW_EXTENT
    right: float = SHADOW_EXTENT
    top: float = SHADOW_EXTENT
    bottom: float = -SHADOW_EXTENT


class DirectionalLight(Node):
    def __init__(
        self,
        position: Sequence[float],
        color: Sequence[float] = DIRECTIONAL_COLOR,
        intensity: float = DIRECTIONAL_INTENSITY,
        cast_shadow: bool = True,
        shadow: ShadowParams = ShadowParams(),
    ) -> None:
        super().__init__("directional_light", translation=position)
        self.color = tuple(color)
        self.intensity = float(intensity)
        self.cast_shadow = cast_shadow
        self.shadow = shadow

    @property
    def direction(self) -> np.ndarray:
        """Unit vector pointing from the scene origin towards the light."""
        position = self.world_matrix()[:3, 3]
        return position / max(np.linalg.norm(position), 1e-9)


class GridHelper(Node):
    def __init__(
        self,
        size: float = GRID_SIZE,
        divisions: int = GRID_DIVISIONS,
        color: Sequence[float] = GRID_COLOR,
    ) -> None:
        super().__init__("grid")
        self.size = float(size)
        self.divisions = int(divisions)
        self.color = tuple(color)

    def line_segments(self) -> np.ndarray:
        """(N, 2, 3) array of grid line endpoints on the ground plane."""
        half = self.size / 2.0
        ticks = np.linspace(-half, half, self.divisions + 1)
        segments = []
        for t in ticks:
            segments.append(((t, -half, 0.0), (t, half, 0.0)))
            segments.append(((-half, t, 0.0), (half, t, 0.0)))
        return np.array(segments, dtype=float)


class AxesHelper(Node):
    def __init__(self, size: float = AXES_HELPER_SIZE) -> None:
        super().__init__("axes")
        self.size = float(size)


class Scene(Node):
    def __init__(self, background: Sequence[float] = BACKGROUND_COLOR) -> None:
        super().__init__("scene")
        self.background = tuple(background)

    def meshes(self) -> Iterator[Mesh]:
        return (node for node in self.traverse() if isinstance(node, Mesh))

    def lights(self) -> Iterator[Node]:
        return (
            node
            for node in self.traverse()
            if isinstance(node, (HemisphereLight, DirectionalLight))
        )
