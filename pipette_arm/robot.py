"""Arm description and forward kinematics for the pipetting arm."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, Sequence

import numpy as np


def _rot_y(theta: float) -> np.ndarray:
    c, s = np.cos(theta), np.sin(theta)
    return np.array(
        [[c, 0.0, s, 0.0], [0.0, 1.0, 0.0, 0.0], [-s, 0.0, c, 0.0], [0.0, 0.0, 0.0, 1.0]]
    )


def _rot_z(theta: float) -> np.ndarray:
    c, s = np.cos(theta), np.sin(theta)
    return np.array(
        [[c, -s, 0.0, 0.0], [s, c, 0.0, 0.0], [0.0, 0.0, 1.0, 0.0], [0.0, 0.0, 0.0, 1.0]]
    )


def _rot_x(theta: float) -> np.ndarray:
    c, s = np.cos(theta), np.sin(theta)
    return np.array(
        [[1.0, 0.0, 0.0, 0.0], [0.0, c, -s, 0.0], [0.0, s, c, 0.0], [0.0, 0.0, 0.0, 1.0]]
    )


def _translate(vec: Sequence[float]) -> np.ndarray:
    tx, ty, tz = vec
    return np.array(
        [[1.0, 0.0, 0.0, tx], [0.0, 1.0, 0.0, ty], [0.0, 0.0, 1.0, tz], [0.0, 0.0, 0.0, 1.0]]
    )


def axis_rotation(axis: str, theta: float) -> np.ndarray:
    """Homogeneous rotation of ``theta`` radians about a principal axis."""
    match axis:
        case "x":
            return _rot_x(theta)
        case "y":
            return _rot_y(theta)
        case "z":
            return _rot_z(theta)
        case _:
            raise ValueError(f"Unsupported axis {axis}")


def deg_to_rad(degrees: float) -> float:
    return degrees * math.pi / 180.0


def rad_to_deg(radians: float) -> int:
    """Whole degrees shown by the sliders (halves round up)."""
    return int(math.floor(radians * 180.0 / math.pi + 0.5))


JOINT_COUNT = 5
JOINT_NAMES: tuple[str, ...] = ("j0", "j1", "j2", "j3", "j4")
JOINT_LABELS: tuple[str, ...] = (
    "Base Yaw (J0)",
    "Shoulder Pitch (J1)",
    "Elbow Pitch (J2)",
    "Wrist Pitch (J3)",
    "Pipette Tilt (J4)",
)
# Yaw turns about the vertical axis, every other joint pitches about the lateral one.
JOINT_AXES: tuple[str, ...] = ("z", "y", "y", "y", "y")


@dataclass(frozen=True)
class ArmGeometry:
    """Static dimensions of the arm in meters."""

    base_diameter: float = 0.50
    base_height: float = 0.20
    segment1: tuple[float, float, float] = (0.60, 0.10, 0.10)
    segment2: tuple[float, float, float] = (0.45, 0.08, 0.08)
    segment3: tuple[float, float, float] = (0.25, 0.06, 0.06)
    pipette_diameter: float = 0.02
    pipette_length: float = 0.10
    shoulder_radius: float = 0.06
    elbow_radius: float = 0.05
    wrist_radius: float = 0.04
    pipette_joint_radius: float = 0.015

    @property
    def segments(self) -> tuple[tuple[float, float, float], ...]:
        """(length, width, height) of the three box links, shoulder first."""
        return (self.segment1, self.segment2, self.segment3)

    @property
    def joint_radii(self) -> tuple[float, float, float, float]:
        return (
            self.shoulder_radius,
            self.elbow_radius,
            self.wrist_radius,
            self.pipette_joint_radius,
        )

    def link_offset(self, index: int) -> np.ndarray:
        """Translation from the parent frame to the origin of joint ``index``."""
        if index == 0:
            return np.array([0.0, 0.0, self.base_height])
        if index == 1:
            return np.zeros(3)
        if 2 <= index < JOINT_COUNT:
            return np.array([self.segments[index - 2][0], 0.0, 0.0])
        raise ValueError(f"joint index must be in [0, {JOINT_COUNT - 1}] (got {index})")


DEFAULT_GEOMETRY = ArmGeometry()


@dataclass(frozen=True)
class JointAngles:
    """Five joint angles in radians, base first."""

    j0: float = 0.0
    j1: float = 0.0
    j2: float = 0.0
    j3: float = 0.0
    j4: float = 0.0

    @classmethod
    def from_sequence(cls, values: Iterable[float]) -> "JointAngles":
        angles = [float(v) for v in values]
        if len(angles) != JOINT_COUNT:
            raise ValueError(f"expected {JOINT_COUNT} joint angles (got {len(angles)})")
        return cls(*angles)

    @classmethod
    def from_degrees(cls, degrees: Iterable[float]) -> "JointAngles":
        return cls.from_sequence(deg_to_rad(d) for d in degrees)

    def as_tuple(self) -> tuple[float, float, float, float, float]:
        return (self.j0, self.j1, self.j2, self.j3, self.j4)

    def as_array(self) -> np.ndarray:
        return np.array(self.as_tuple(), dtype=float)

    def degrees(self) -> tuple[int, ...]:
        return tuple(rad_to_deg(angle) for angle in self.as_tuple())

    def with_angle(self, index: int, radians: float) -> "JointAngles":
        if not 0 <= index < JOINT_COUNT:
            raise ValueError(f"joint index must be in [0, {JOINT_COUNT - 1}] (got {index})")
        values = list(self.as_tuple())
        values[index] = float(radians)
        return JointAngles(*values)

    def __getitem__(self, index: int) -> float:
        return self.as_tuple()[index]

    def __len__(self) -> int:
        return JOINT_COUNT


HOME_POSE_DEGREES: tuple[int, ...] = (0, -75, 45, 15, 90)
HOME_POSE = JointAngles.from_degrees(HOME_POSE_DEGREES)


@dataclass(frozen=True)
class LinkTransform:
    """Local frame of one joint: fixed translation then a single-axis rotation."""

    translation: np.ndarray
    axis: str
    angle: float

    def matrix(self) -> np.ndarray:
        return _translate(self.translation) @ axis_rotation(self.axis, self.angle)


def link_transform(
    index: int, angle: float, geometry: ArmGeometry = DEFAULT_GEOMETRY
) -> LinkTransform:
    return LinkTransform(geometry.link_offset(index), JOINT_AXES[index], float(angle))


def local_transforms(
    angles: JointAngles | Sequence[float], geometry: ArmGeometry = DEFAULT_GEOMETRY
) -> list[LinkTransform]:
    """Local transforms of J0..J4 in parent-to-child order.

    Angles are used as given; range limits belong to the input widgets.
    """
    values = angles.as_tuple() if isinstance(angles, JointAngles) else tuple(angles)
    if len(values) != JOINT_COUNT:
        raise ValueError(f"expected {JOINT_COUNT} joint angles (got {len(values)})")
    return [link_transform(idx, theta, geometry) for idx, theta in enumerate(values)]


def chain_transforms(
    angles: JointAngles | Sequence[float], geometry: ArmGeometry = DEFAULT_GEOMETRY
) -> list[np.ndarray]:
    """World transforms of J0..J4 (the base frame is the world origin)."""
    current = np.eye(4)
    transforms: list[np.ndarray] = []
    for local in local_transforms(angles, geometry):
        current = current @ local.matrix()
        transforms.append(current.copy())
    return transforms


class ArmModel:
    """Forward kinematics helper bound to one arm geometry."""

    def __init__(self, geometry: ArmGeometry = DEFAULT_GEOMETRY) -> None:
        self.geometry = geometry
        self.dof = JOINT_COUNT

    def transforms(self, angles: JointAngles | Sequence[float]) -> list[np.ndarray]:
        return chain_transforms(angles, self.geometry)

    def joint_positions(self, angles: JointAngles | Sequence[float]) -> np.ndarray:
        """Base origin, J0..J4 origins and the pipette tip as a (7, 3) array."""
        transforms = self.transforms(angles)
        tip = transforms[-1] @ np.array([self.geometry.pipette_length, 0.0, 0.0, 1.0])
        points = [np.zeros(3)]
        points.extend(frame[:3, 3] for frame in transforms)
        points.append(tip[:3])
        return np.vstack(points)

    def pipette_tip(self, angles: JointAngles | Sequence[float]) -> np.ndarray:
        return self.joint_positions(angles)[-1]

    def max_reach(self) -> float:
        lengths = [segment[0] for segment in self.geometry.segments]
        return float(self.geometry.base_height + sum(lengths) + self.geometry.pipette_length)
