"""Render engine interface, resource bookkeeping and the matplotlib engine."""

from __future__ import annotations

import abc
import logging
from collections import Counter
from typing import Any, Optional, Sequence

import numpy as np
from matplotlib.backends.backend_agg import FigureCanvasAgg
from matplotlib.figure import Figure
from mpl_toolkits.mplot3d import Axes3D  # noqa: F401 imported for side effect
from mpl_toolkits.mplot3d.art3d import Line3DCollection, Poly3DCollection

from .camera import PerspectiveCamera
from .scene import CURVE_SEGMENTS
from .scene_graph import (
    AxesHelper,
    DirectionalLight,
    GeometrySpec,
    GridHelper,
    HemisphereLight,
    Scene,
)

LOGGER = logging.getLogger(__name__)


class RenderingUnavailable(RuntimeError):
    """No usable graphics capability (missing library, display or context)."""


# ----------------------------------------------------------------------
# Engine-owned resources
# ----------------------------------------------------------------------
class EngineResource:
    kind = "resource"

    def __init__(self, engine: "RenderEngine") -> None:
        self._engine = engine
        self.disposed = False
        self.release_count = 0
        engine.ledger.track(self)

    def dispose(self) -> None:
        if self.disposed:
            return
        self.disposed = True
        self.release_count += 1
        self._engine._release(self)


class Geometry(EngineResource):
    kind = "geometry"

    def __init__(self, engine: "RenderEngine", spec: GeometrySpec) -> None:
        super().__init__(engine)
        self.spec = spec
        self.faces = tessellate(spec, engine.curve_segments)
        self.normals = face_normals(self.faces)
        # Backend specific handle (display list id for OpenGL).
        self.handle: Any = None


class Material(EngineResource):
    kind = "material"

    def __init__(
        self,
        engine: "RenderEngine",
        color: Sequence[float],
        metalness: float = 0.0,
        roughness: float = 1.0,
    ) -> None:
        super().__init__(engine)
        self.color: tuple[float, float, float] = tuple(float(c) for c in color)  # type: ignore[assignment]
        self.metalness = float(metalness)
        self.roughness = float(roughness)
        self.version = 0

    def set_color(self, color: Sequence[float]) -> None:
        self.color = tuple(float(c) for c in color)  # type: ignore[assignment]
        self.version += 1


class Surface(EngineResource):
    kind = "surface"

    def __init__(self, engine: "RenderEngine", width: int, height: int) -> None:
        super().__init__(engine)
        self.width = int(width)
        self.height = int(height)
        self.frames = 0
        self.handle: Any = None

    @property
    def aspect(self) -> float:
        return self.width / max(1, self.height)


class ResourceLedger:
    """Allocation and release counts for everything an engine hands out."""

    def __init__(self) -> None:
        self.allocated: Counter[str] = Counter()
        self.released: Counter[str] = Counter()
        self._live: dict[int, EngineResource] = {}

    def track(self, resource: EngineResource) -> None:
        self.allocated[resource.kind] += 1
        self._live[id(resource)] = resource

    def release(self, resource: EngineResource) -> None:
        if self._live.pop(id(resource), None) is None:
            raise ValueError(f"{resource.kind} released twice or never tracked")
        self.released[resource.kind] += 1

    @property
    def live(self) -> list[EngineResource]:
        return list(self._live.values())

    def summary(self) -> dict[str, tuple[int, int]]:
        kinds = set(self.allocated) | set(self.released)
        return {kind: (self.allocated[kind], self.released[kind]) for kind in sorted(kinds)}


class RenderEngine(abc.ABC):
    """Opaque capability turning a scene graph and a camera into pixels."""

    name = "engine"

    def __init__(self, curve_segments: int = CURVE_SEGMENTS) -> None:
        self.curve_segments = int(curve_segments)
        self.ledger = ResourceLedger()
        self.surface: Optional[Surface] = None

    def create_geometry(self, spec: GeometrySpec) -> Geometry:
        geometry = Geometry(self, spec)
        self._upload_geometry(geometry)
        return geometry

    def create_material(
        self, color: Sequence[float], metalness: float = 0.0, roughness: float = 1.0
    ) -> Material:
        return Material(self, color, metalness, roughness)

    def create_surface(self, width: int, height: int) -> Surface:
        if self.surface is not None and not self.surface.disposed:
            raise RuntimeError("engine already owns a rendering surface")
        surface = Surface(self, width, height)
        try:
            self._open_surface(surface)
        except Exception as exc:
            surface.disposed = True
            self.ledger.release(surface)
            if isinstance(exc, RenderingUnavailable):
                raise
            raise RenderingUnavailable(f"{self.name} surface could not be opened: {exc}") from exc
        self.surface = surface
        return surface

    def render(self, scene: Scene, camera: PerspectiveCamera) -> Optional[np.ndarray]:
        if self.surface is None or self.surface.disposed:
            raise RuntimeError("render called without a live surface")
        camera.aspect = self.surface.aspect
        frame = self._draw(scene, camera)
        self.surface.frames += 1
        return frame

    def dispose(self) -> None:
        """Release anything still alive, then shut the backend down."""
        leftovers = self.ledger.live
        if leftovers:
            LOGGER.warning("%s engine disposing %d unreleased resources", self.name, len(leftovers))
        for resource in reversed(leftovers):
            resource.dispose()
        self._shutdown()

    def _release(self, resource: EngineResource) -> None:
        if isinstance(resource, Geometry):
            self._free_geometry(resource)
        elif isinstance(resource, Surface):
            self._close_surface(resource)
            if resource is self.surface:
                self.surface = None
        self.ledger.release(resource)

    # Backend hooks ----------------------------------------------------
    def _upload_geometry(self, geometry: Geometry) -> None:
        return

    def _free_geometry(self, geometry: Geometry) -> None:
        return

    @abc.abstractmethod
    def _open_surface(self, surface: Surface) -> None:
        ...

    @abc.abstractmethod
    def _close_surface(self, surface: Surface) -> None:
        ...

    @abc.abstractmethod
    def _draw(self, scene: Scene, camera: PerspectiveCamera) -> Optional[np.ndarray]:
        ...

    def _shutdown(self) -> None:
        return


# ----------------------------------------------------------------------
# Tessellation and shading
# ----------------------------------------------------------------------
def _box_faces(length: float, width: float, height: float) -> np.ndarray:
    hx, hy, hz = length / 2.0, width / 2.0, height / 2.0
    return np.array(
        [
            [(hx, -hy, -hz), (hx, hy, -hz), (hx, hy, hz), (hx, -hy, hz)],
            [(-hx, -hy, -hz), (-hx, -hy, hz), (-hx, hy, hz), (-hx, hy, -hz)],
            [(-hx, hy, -hz), (-hx, hy, hz), (hx, hy, hz), (hx, hy, -hz)],
            [(-hx, -hy, -hz), (hx, -hy, -hz), (hx, -hy, hz), (-hx, -hy, hz)],
            [(-hx, -hy, hz), (hx, -hy, hz), (hx, hy, hz), (-hx, hy, hz)],
            [(-hx, -hy, -hz), (-hx, hy, -hz), (hx, hy, -hz), (hx, -hy, -hz)],
        ],
        dtype=float,
    )


def _cylinder_faces(radius: float, height: float, segments: int) -> np.ndarray:
    theta = np.linspace(0.0, 2.0 * np.pi, segments + 1)
    ring = np.stack([radius * np.cos(theta), radius * np.sin(theta)], axis=1)
    hz = height / 2.0
    faces = []
    for (x0, y0), (x1, y1) in zip(ring[:-1], ring[1:]):
        faces.append([(x0, y0, -hz), (x1, y1, -hz), (x1, y1, hz), (x0, y0, hz)])
        faces.append([(0.0, 0.0, hz), (x0, y0, hz), (x1, y1, hz), (x1, y1, hz)])
        faces.append([(0.0, 0.0, -hz), (x1, y1, -hz), (x0, y0, -hz), (x0, y0, -hz)])
    return np.array(faces, dtype=float)


def _sphere_faces(radius: float, segments: int) -> np.ndarray:
    rings = max(4, segments // 2)
    theta = np.linspace(0.0, 2.0 * np.pi, segments + 1)
    phi = np.linspace(0.0, np.pi, rings + 1)

    def point(p: float, t: float) -> tuple[float, float, float]:
        return (
            radius * np.sin(p) * np.cos(t),
            radius * np.sin(p) * np.sin(t),
            radius * np.cos(p),
        )

    faces = []
    for i in range(rings):
        for j in range(segments):
            faces.append(
                [
                    point(phi[i], theta[j]),
                    point(phi[i + 1], theta[j]),
                    point(phi[i + 1], theta[j + 1]),
                    point(phi[i], theta[j + 1]),
                ]
            )
    return np.array(faces, dtype=float)


def tessellate(spec: GeometrySpec, segments: int = CURVE_SEGMENTS) -> np.ndarray:
    """(F, 4, 3) quads centered on the local origin; caps and poles are degenerate quads."""
    match spec.kind:
        case "box":
            return _box_faces(*spec.size)
        case "cylinder":
            return _cylinder_faces(spec.size[0], spec.size[1], segments)
        case "sphere":
            return _sphere_faces(spec.size[0], segments)
        case _:
            raise ValueError(f"Unsupported geometry kind {spec.kind}")


def face_normals(faces: np.ndarray) -> np.ndarray:
    """Outward unit normals of convex primitives centered on the origin."""
    following = np.roll(faces, -1, axis=1)
    normals = np.cross(faces, following).sum(axis=1)
    centroids = faces.mean(axis=1)
    flip = np.einsum("ij,ij->i", normals, centroids) < 0.0
    normals[flip] *= -1.0
    lengths = np.linalg.norm(normals, axis=1, keepdims=True)
    return normals / np.maximum(lengths, 1e-12)


def shade_faces(
    normals: np.ndarray,
    color: Sequence[float],
    hemisphere: Optional[HemisphereLight],
    directional: Optional[DirectionalLight],
) -> np.ndarray:
    """Lambert shading of world-space normals; returns (F, 3) RGB."""
    base = np.asarray(color, dtype=float)
    light = np.zeros((len(normals), 3))
    if hemisphere is not None:
        weight = 0.5 * (normals[:, 2:3] + 1.0)
        sky = np.asarray(hemisphere.sky_color)
        ground = np.asarray(hemisphere.ground_color)
        light += hemisphere.intensity * (ground + weight * (sky - ground))
    if directional is not None:
        lambert = np.clip(normals @ directional.direction, 0.0, None)[:, None]
        light += directional.intensity * lambert * np.asarray(directional.color)
    return np.clip(base * light, 0.0, 1.0)


def _first(scene: Scene, kind: type) -> Any:
    return next((node for node in scene.traverse() if isinstance(node, kind)), None)


# ----------------------------------------------------------------------
# Matplotlib engine
# ----------------------------------------------------------------------
class MatplotlibEngine(RenderEngine):
    """Software renderer drawing shaded polygons on a perspective 3D axes.

    Without a host figure the engine renders off-screen on an Agg canvas and
    returns RGB frames. With one, it draws into a new axes of that figure and
    leaves presentation to the figure's canvas.
    """

    name = "matplotlib"

    def __init__(
        self,
        figure: Optional[Figure] = None,
        rect: Sequence[float] = (0.0, 0.0, 1.0, 1.0),
        dpi: int = 100,
        curve_segments: int = CURVE_SEGMENTS,
    ) -> None:
        super().__init__(curve_segments)
        self._host_figure = figure
        self._rect = tuple(rect)
        self._dpi = dpi
        self.figure: Optional[Figure] = None
        self.axes: Any = None

    @property
    def hosted(self) -> bool:
        return self._host_figure is not None

    def _open_surface(self, surface: Surface) -> None:
        if self._host_figure is None:
            figure = Figure(figsize=(surface.width / self._dpi, surface.height / self._dpi), dpi=self._dpi)
            FigureCanvasAgg(figure)
        else:
            figure = self._host_figure
        self.figure = figure
        self.axes = figure.add_axes(self._rect, projection="3d")
        surface.handle = self.axes
        LOGGER.debug("matplotlib surface opened (%dx%d, hosted=%s)", surface.width, surface.height, self.hosted)

    def _close_surface(self, surface: Surface) -> None:
        if self.axes is not None:
            self.axes.remove()
        if not self.hosted and self.figure is not None:
            self.figure.clear()
        self.axes = None
        self.figure = None
        surface.handle = None

    def _draw(self, scene: Scene, camera: PerspectiveCamera) -> Optional[np.ndarray]:
        ax = self.axes
        ax.cla()
        ax.set_axis_off()
        ax.set_facecolor(scene.background)
        if not self.hosted:
            self.figure.set_facecolor(scene.background)
        ax.set_proj_type("persp", focal_length=camera.focal_length())
        elev, azim = camera.view_angles()
        ax.view_init(elev=elev, azim=azim)
        extent = camera.distance / 2.0
        center = camera.target
        ax.set_xlim(center[0] - extent, center[0] + extent)
        ax.set_ylim(center[1] - extent, center[1] + extent)
        ax.set_zlim(center[2] - extent, center[2] + extent)
        ax.set_box_aspect((1, 1, 1))

        for node in scene.traverse():
            if isinstance(node, GridHelper):
                self._draw_grid(node, extent)
            elif isinstance(node, AxesHelper):
                self._draw_axes_helper(node)
        self._draw_meshes(scene)

        if self.hosted:
            self.figure.canvas.draw_idle()
            return None
        canvas = self.figure.canvas
        canvas.draw()
        return np.asarray(canvas.buffer_rgba())[:, :, :3].copy()

    def _draw_meshes(self, scene: Scene) -> None:
        hemisphere = _first(scene, HemisphereLight)
        directional = _first(scene, DirectionalLight)
        polygons = []
        colors = []
        for mesh in scene.meshes():
            world = mesh.world_matrix()
            rotation, offset = world[:3, :3], world[:3, 3]
            faces = mesh.geometry.faces @ rotation.T + offset
            normals = mesh.geometry.normals @ rotation.T
            polygons.append(faces)
            colors.append(shade_faces(normals, mesh.material.color, hemisphere, directional))
        if not polygons:
            return
        collection = Poly3DCollection(
            np.concatenate(polygons), facecolors=np.concatenate(colors), edgecolors="none"
        )
        self.axes.add_collection3d(collection)

    def _draw_grid(self, grid: GridHelper, extent: float) -> None:
        segments = grid.line_segments() + grid.world_matrix()[:3, 3]
        fixed = np.where(segments[:, 0, 0] == segments[:, 1, 0], segments[:, 0, 0], segments[:, 0, 1])
        visible = segments[np.abs(fixed) <= extent]
        visible = np.clip(visible, -extent, extent)
        self.axes.add_collection3d(Line3DCollection(visible, colors=[grid.color], linewidths=0.5))

    def _draw_axes_helper(self, helper: AxesHelper) -> None:
        origin = helper.world_matrix()[:3, 3]
        for axis, color in zip(np.eye(3), ("#ff0000", "#00ff00", "#0000ff")):
            end = origin + axis * helper.size
            self.axes.plot(*zip(origin, end), color=color, linewidth=1.5)


def create_engine(name: str, **options: Any) -> RenderEngine:
    """Build an engine by name (``matplotlib`` or ``opengl``)."""
    key = name.strip().lower()
    if key == "matplotlib":
        return MatplotlibEngine(**options)
    if key == "opengl":
        from .ogl_engine import OpenGLEngine

        return OpenGLEngine(**options)
    raise ValueError(f"Unknown render engine {name!r}")
