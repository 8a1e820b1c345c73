from __future__ import annotations

import math
from dataclasses import dataclass, field

import numpy as np

from .scene import (
    CAMERA_FAR,
    CAMERA_FOV_Y,
    CAMERA_NEAR,
    CAMERA_POSITION,
    CAMERA_TARGET,
    CAMERA_UP,
)


@dataclass
class PerspectiveCamera:
    """Pose and intrinsic description for a perspective camera looking at a point."""

    position: np.ndarray = field(default_factory=lambda: np.array(CAMERA_POSITION, dtype=float))
    target: np.ndarray = field(default_factory=lambda: np.array(CAMERA_TARGET, dtype=float))
    up: np.ndarray = field(default_factory=lambda: np.array(CAMERA_UP, dtype=float))
    fov_y: float = CAMERA_FOV_Y
    aspect: float = 4.0 / 3.0
    near: float = CAMERA_NEAR
    far: float = CAMERA_FAR

    @property
    def forward(self) -> np.ndarray:
        direction = self.target - self.position
        return direction / max(np.linalg.norm(direction), 1e-9)

    @property
    def right(self) -> np.ndarray:
        right = np.cross(self.forward, self.up)
        return right / max(np.linalg.norm(right), 1e-9)

    @property
    def distance(self) -> float:
        return float(np.linalg.norm(self.target - self.position))

    def view_angles(self) -> tuple[float, float]:
        """Elevation and azimuth in degrees of the eye as seen from the target."""
        offset = self.position - self.target
        horizontal = math.hypot(float(offset[0]), float(offset[1]))
        elev = math.degrees(math.atan2(float(offset[2]), horizontal))
        azim = math.degrees(math.atan2(float(offset[1]), float(offset[0])))
        return elev, azim

    def focal_length(self) -> float:
        return 1.0 / math.tan(math.radians(self.fov_y) / 2.0)

    def view_matrix(self) -> np.ndarray:
        forward = self.forward
        right = self.right
        true_up = np.cross(right, forward)
        view = np.eye(4)
        view[0, :3] = right
        view[1, :3] = true_up
        view[2, :3] = -forward
        view[:3, 3] = -view[:3, :3] @ self.position
        return view

