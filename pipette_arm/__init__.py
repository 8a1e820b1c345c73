"""pipette_arm

Forward-kinematics viewer for a 5-DOF pipetting robot arm.
"""

from .robot import ArmGeometry, ArmModel, JointAngles, HOME_POSE, deg_to_rad, rad_to_deg
from .controllers import ArmController, ColorChanged, JointChanged, ResetRequested, ViewerState
from .presenter import ScenePresenter
from .rendering import MatplotlibEngine, RenderingUnavailable, create_engine

__all__ = [
    "ArmGeometry",
    "ArmModel",
    "JointAngles",
    "HOME_POSE",
    "deg_to_rad",
    "rad_to_deg",
    "ArmController",
    "ColorChanged",
    "JointChanged",
    "ResetRequested",
    "ViewerState",
    "ScenePresenter",
    "MatplotlibEngine",
    "RenderingUnavailable",
    "create_engine",
]
