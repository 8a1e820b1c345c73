"""Scene presenter: keeps an engine scene in sync with joint angles and color."""

from __future__ import annotations

import logging
import math
from typing import Callable, Optional

import numpy as np

from .camera import PerspectiveCamera
from .palette import (
    BODY_METALNESS,
    BODY_ROUGHNESS,
    DEFAULT_COLOR,
    JOINT_FINISH,
    PIPETTE_FINISH,
    ArmColor,
    ColorTreatment,
    treatment_for,
)
from .rendering import EngineResource, Material, RenderEngine, RenderingUnavailable
from .robot import (
    DEFAULT_GEOMETRY,
    HOME_POSE,
    JOINT_COUNT,
    ArmGeometry,
    JointAngles,
    link_transform,
)
from .scene import DEFAULT_HEIGHT, DEFAULT_WIDTH, DIRECTIONAL_POSITION
from .scene_graph import (
    AxesHelper,
    DirectionalLight,
    GeometrySpec,
    GridHelper,
    HemisphereLight,
    Mesh,
    Node,
    Scene,
)

LOGGER = logging.getLogger(__name__)

EngineFactory = Callable[[], RenderEngine]

PLACEHOLDER_TEXT = "3D view unavailable"


class ScenePresenter:
    """Owns one engine, its surface and every geometry/material of the arm scene.

    ``mount`` builds the scene and renders once. Joint and color updates only
    touch frame rotations or material colors and re-render on demand.
    ``unmount`` releases each allocated resource exactly once.
    """

    def __init__(
        self,
        engine_factory: EngineFactory,
        geometry: ArmGeometry = DEFAULT_GEOMETRY,
        width: int = DEFAULT_WIDTH,
        height: int = DEFAULT_HEIGHT,
    ) -> None:
        self._engine_factory = engine_factory
        self.geometry = geometry
        self.width = int(width)
        self.height = int(height)
        self.engine: Optional[RenderEngine] = None
        self.scene: Optional[Scene] = None
        self.camera: Optional[PerspectiveCamera] = None
        self.frames: tuple[Node, ...] = ()
        self.body_materials: tuple[Material, ...] = ()
        self.placeholder: Optional[str] = None
        self.last_frame: Optional[np.ndarray] = None
        self.frames_rendered = 0
        self.angles: JointAngles = HOME_POSE
        self.color: ArmColor | str = DEFAULT_COLOR
        self.treatment: Optional[ColorTreatment] = None
        self._resources: list[EngineResource] = []

    @property
    def mounted(self) -> bool:
        return self.engine is not None

    # ------------------------------------------------------------------
    # Lifecycle
    def mount(self, angles: JointAngles = HOME_POSE, color: ArmColor | str = DEFAULT_COLOR) -> None:
        if self.mounted:
            raise RuntimeError("presenter is already mounted; unmount it first")
        self.angles = angles
        self.color = color
        self.placeholder = None
        try:
            self.engine = self._engine_factory()
            self._resources.append(self.engine.create_surface(self.width, self.height))
            self._build_scene()
            self.render()
        except RenderingUnavailable as exc:
            LOGGER.warning("Rendering unavailable, showing placeholder: %s", exc)
            self._release_scene()
            self.placeholder = f"{PLACEHOLDER_TEXT}: {exc}"
            return
        LOGGER.info(
            "Mounted %s scene: %d resources allocated", self.engine.name, len(self._resources)
        )

    def unmount(self) -> None:
        if self.engine is None:
            self.placeholder = None
            return
        name = self.engine.name
        released = self._release_scene()
        LOGGER.info("Unmounted %s scene: %d resources released", name, released)

    def _release_scene(self) -> int:
        released = 0
        # Children before the surface so backends still have a context.
        for resource in reversed(self._resources):
            if not resource.disposed:
                resource.dispose()
                released += 1
        self._resources.clear()
        if self.engine is not None:
            self.engine.dispose()
        self.engine = None
        self.scene = None
        self.camera = None
        self.frames = ()
        self.body_materials = ()
        self.treatment = None
        self.last_frame = None
        return released

    # ------------------------------------------------------------------
    # Updates
    def set_joint_angles(self, angles: JointAngles) -> list[int]:
        """Rotate only the frames whose angle changed; returns their indices."""
        changed = [
            idx
            for idx, (old, new) in enumerate(zip(self.angles.as_tuple(), angles.as_tuple()))
            if old != new
        ]
        self.angles = angles
        if not self.mounted or not changed:
            return changed
        for idx in changed:
            self.frames[idx].angle = float(angles[idx])
        LOGGER.debug("Joint frames %s updated", changed)
        self.render()
        return changed

    def set_color(self, color: ArmColor | str) -> None:
        self.color = color
        if not self.mounted:
            return
        self._apply_treatment(treatment_for(color))
        self.render()

    def render(self) -> Optional[np.ndarray]:
        if self.engine is None or self.scene is None or self.camera is None:
            return None
        frame = self.engine.render(self.scene, self.camera)
        self.frames_rendered += 1
        if frame is not None:
            self.last_frame = frame
        return frame

    # ------------------------------------------------------------------
    # Introspection
    def frame_rotations(self) -> list[tuple[str, float]]:
        return [(frame.axis, frame.angle) for frame in self.frames]

    def world_transforms(self) -> list[np.ndarray]:
        return [frame.world_matrix() for frame in self.frames]

    def body_colors(self) -> list[tuple[float, float, float]]:
        return [material.color for material in self.body_materials]

    def materials(self) -> list[Material]:
        return [res for res in self._resources if isinstance(res, Material)]

    @property
    def resources(self) -> list[EngineResource]:
        return list(self._resources)

    # ------------------------------------------------------------------
    # Scene assembly
    def _material(self, color, metalness: float, roughness: float) -> Material:
        material = self.engine.create_material(color, metalness, roughness)
        self._resources.append(material)
        return material

    def _mesh(self, spec: GeometrySpec, material: Material, name: str, **placement) -> Mesh:
        geometry = self.engine.create_geometry(spec)
        self._resources.append(geometry)
        return Mesh(geometry, material, name=name, **placement)

    def _build_scene(self) -> None:
        geo = self.geometry
        scene = Scene()
        self.camera = PerspectiveCamera(aspect=self.width / max(1, self.height))

        treatment = treatment_for(self.color)
        body = tuple(
            self._material(shade, BODY_METALNESS, BODY_ROUGHNESS) for shade in treatment.shades
        )
        pipette_material = self._material(*PIPETTE_FINISH)
        joint_material = self._material(*JOINT_FINISH)
        self.body_materials = body
        self.treatment = treatment

        base_frame = scene.add(Node("base"))
        base_frame.add(
            self._mesh(
                GeometrySpec.cylinder(geo.base_diameter / 2.0, geo.base_height),
                body[0],
                "base_cylinder",
                translation=(0.0, 0.0, geo.base_height / 2.0),
                receive_shadow=True,
            )
        )
        base_frame.add(
            self._mesh(
                GeometrySpec.sphere(geo.shoulder_radius),
                joint_material,
                "shoulder_joint",
                translation=(0.0, 0.0, geo.base_height),
            )
        )

        frames: list[Node] = []
        parent = base_frame
        for idx in range(JOINT_COUNT):
            local = link_transform(idx, self.angles[idx], geo)
            frame = parent.add(Node(f"j{idx}", local.translation, local.axis, local.angle))
            frames.append(frame)
            parent = frame

        for link, (length, width, height) in enumerate(geo.segments, start=1):
            frames[link].add(
                self._mesh(
                    GeometrySpec.box(length, width, height),
                    body[link],
                    f"segment{link}",
                    translation=(length / 2.0, 0.0, 0.0),
                    receive_shadow=True,
                )
            )
            # Each joint sphere sits at the far end of the link it closes.
            frames[link].add(
                self._mesh(
                    GeometrySpec.sphere(geo.joint_radii[link]),
                    joint_material,
                    ("elbow_joint", "wrist_joint", "pipette_joint")[link - 1],
                    translation=(length, 0.0, 0.0),
                )
            )

        frames[4].add(
            self._mesh(
                GeometrySpec.cylinder(geo.pipette_diameter / 2.0, geo.pipette_length),
                pipette_material,
                "pipette",
                translation=(geo.pipette_length / 2.0, 0.0, 0.0),
                axis="y",
                angle=math.pi / 2.0,
                receive_shadow=True,
            )
        )

        scene.add(GridHelper())
        scene.add(AxesHelper())
        scene.add(HemisphereLight())
        scene.add(DirectionalLight(DIRECTIONAL_POSITION))

        self.scene = scene
        self.frames = tuple(frames)

    def _apply_treatment(self, treatment: ColorTreatment) -> None:
        for material, shade in zip(self.body_materials, treatment.shades):
            material.set_color(shade)
        self.treatment = treatment
        LOGGER.debug("Body color set to %s", treatment.name)
