import math

import pytest

from pipette_arm.controllers import (
    ArmController,
    ColorChanged,
    JointChanged,
    ResetRequested,
    ViewerState,
    apply_event,
    clamp_degrees,
)
from pipette_arm.robot import HOME_POSE, deg_to_rad


def test_initial_state_is_black_at_home() -> None:
    state = ViewerState()
    assert state.color == "black"
    assert state.angles == HOME_POSE
    assert state.degrees() == (0, -75, 45, 15, 90)


def test_joint_change_stores_radians_from_whole_degrees() -> None:
    state = apply_event(ViewerState(), JointChanged(1, -90))
    assert state.angles.j1 == deg_to_rad(-90)
    assert state.angles.j1 == pytest.approx(-math.pi / 2)
    assert state.degrees() == (0, -90, 45, 15, 90)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [(120, 90), (-200, -90), (90, 90), (-90, -90), (12.4, 12), (12.6, 13)],
)
def test_slider_input_is_clamped(raw: float, expected: int) -> None:
    assert clamp_degrees(raw) == expected
    state = apply_event(ViewerState(), JointChanged(3, raw))
    assert state.degrees()[3] == expected


def test_malformed_joint_events_leave_state_unchanged(caplog: pytest.LogCaptureFixture) -> None:
    state = ViewerState()
    assert apply_event(state, JointChanged(7, 10)) is state
    assert apply_event(state, JointChanged(-1, 10)) is state
    assert apply_event(state, JointChanged(2, "abc")) is state  # type: ignore[arg-type]
    assert apply_event(state, JointChanged(2, float("nan"))) is state
    assert "Ignoring" in caplog.text


def test_unknown_color_is_kept_for_the_presenter_to_resolve() -> None:
    state = apply_event(ViewerState(), ColorChanged("ultraviolet"))
    assert state.color == "ultraviolet"
    assert state.angles == HOME_POSE


def test_reset_restores_home_regardless_of_previous_state() -> None:
    state = ViewerState(color="red")
    for joint, degrees in enumerate((33, 80, -12, -90, 5)):
        state = apply_event(state, JointChanged(joint, degrees))
    state = apply_event(state, ResetRequested())
    assert state.degrees() == (0, -75, 45, 15, 90)
    assert state.color == "red"


def test_controller_notifies_only_on_real_changes() -> None:
    controller = ArmController()
    calls = []
    unsubscribe = controller.subscribe(lambda prev, cur: calls.append((prev, cur)))

    controller.set_joint_degrees(0, 0)
    assert calls == []

    controller.set_joint_degrees(0, 25)
    assert len(calls) == 1
    previous, current = calls[0]
    assert previous.degrees()[0] == 0
    assert current.degrees()[0] == 25

    controller.reset()
    assert len(calls) == 2
    assert controller.state.angles == HOME_POSE

    unsubscribe()
    controller.set_color("blue")
    assert len(calls) == 2
    assert controller.state.color == "blue"


def test_status_text_shows_degree_suffix() -> None:
    controller = ArmController()
    status = controller.status_text()
    assert status["Color"] == "black"
    assert status["J1"] == "-75°"
    assert status["J4"] == "90°"
