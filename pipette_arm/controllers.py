"""Viewer state, UI events and the single function that applies them."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, replace
from typing import Callable, Union

from .palette import DEFAULT_COLOR, ArmColor
from .presenter import ScenePresenter
from .robot import HOME_POSE, JOINT_COUNT, JointAngles, deg_to_rad
from .scene import SLIDER_MAX_DEG, SLIDER_MIN_DEG

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class ViewerState:
    """Immutable snapshot of everything the user can change."""

    color: str = DEFAULT_COLOR.value
    angles: JointAngles = HOME_POSE

    def degrees(self) -> tuple[int, ...]:
        return self.angles.degrees()


@dataclass(frozen=True)
class JointChanged:
    joint: int
    degrees: int


@dataclass(frozen=True)
class ColorChanged:
    color: str


@dataclass(frozen=True)
class ResetRequested:
    pass


Event = Union[JointChanged, ColorChanged, ResetRequested]
StateListener = Callable[[ViewerState, ViewerState], None]


def clamp_degrees(degrees: float) -> int:
    """Snap to the slider grid and clamp to its range."""
    return int(min(SLIDER_MAX_DEG, max(SLIDER_MIN_DEG, math.floor(degrees + 0.5))))


def apply_event(state: ViewerState, event: Event) -> ViewerState:
    """Return the state after ``event``; malformed events leave it unchanged."""
    match event:
        case JointChanged(joint=joint, degrees=degrees):
            if not isinstance(joint, int) or not 0 <= joint < JOINT_COUNT:
                LOGGER.warning("Ignoring change for unknown joint %r", joint)
                return state
            try:
                clamped = clamp_degrees(float(degrees))
            except (TypeError, ValueError, OverflowError):
                LOGGER.warning("Ignoring non-numeric angle %r for joint %d", degrees, joint)
                return state
            if clamped != degrees:
                LOGGER.debug("Joint %d input %r clamped to %d", joint, degrees, clamped)
            return replace(state, angles=state.angles.with_angle(joint, deg_to_rad(clamped)))
        case ColorChanged(color=color):
            value = color.value if isinstance(color, ArmColor) else str(color)
            return replace(state, color=value)
        case ResetRequested():
            return replace(state, angles=HOME_POSE)
        case _:
            LOGGER.warning("Ignoring unsupported event %r", event)
            return state


class ArmController:
    """Owns the current ``ViewerState`` and fans changes out to listeners."""

    def __init__(self, state: ViewerState | None = None) -> None:
        self.state = state or ViewerState()
        self._listeners: list[StateListener] = []

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def dispatch(self, event: Event) -> ViewerState:
        previous = self.state
        current = apply_event(previous, event)
        if current == previous:
            return current
        self.state = current
        for listener in list(self._listeners):
            listener(previous, current)
        return current

    def set_joint_degrees(self, joint: int, degrees: int) -> ViewerState:
        return self.dispatch(JointChanged(joint, degrees))

    def set_color(self, color: str) -> ViewerState:
        return self.dispatch(ColorChanged(color))

    def reset(self) -> ViewerState:
        return self.dispatch(ResetRequested())

    def connect_presenter(self, presenter: ScenePresenter) -> Callable[[], None]:
        """Mount ``presenter`` with the current state and keep it in sync."""

        def sync(previous: ViewerState, current: ViewerState) -> None:
            if current.angles != previous.angles:
                presenter.set_joint_angles(current.angles)
            if current.color != previous.color:
                presenter.set_color(current.color)

        if not presenter.mounted:
            presenter.mount(self.state.angles, self.state.color)
        return self.subscribe(sync)

    def status_text(self) -> dict[str, str]:
        lines = {"Color": self.state.color}
        for idx, value in enumerate(self.state.degrees()):
            lines[f"J{idx}"] = f"{value}°"
        return lines
