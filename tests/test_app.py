import json

import numpy as np
import pytest
from PIL import Image

import pipette_arm.ogl_engine as ogl_engine
from pipette_arm.app import initial_state, main, render_snapshot, write_pose_log
from pipette_arm.rendering import RenderingUnavailable
from pipette_arm.robot import HOME_POSE


def test_initial_state_defaults_to_home() -> None:
    state = initial_state("black", None)
    assert state.angles == HOME_POSE
    assert state.color == "black"


def test_initial_joints_are_clamped_and_rounded() -> None:
    state = initial_state("red", [120.0, -100.0, 10.4, 0.0, 89.6])
    assert state.degrees() == (90, -90, 10, 0, 90)


def test_pose_log_lists_every_frame(tmp_path) -> None:
    path = tmp_path / "pose.json"
    write_pose_log(path, initial_state("blue", [0, 0, 0, 0, 0]))
    payload = json.loads(path.read_text())
    assert payload["color"] == "blue"
    assert payload["degrees"] == [0, 0, 0, 0, 0]
    assert [entry["frame"] for entry in payload["frames"]][0] == "base"
    assert [entry["frame"] for entry in payload["frames"]][-1] == "tip"
    assert payload["frames"][-1]["px"] == pytest.approx(1.40)
    assert payload["frames"][-1]["pz"] == pytest.approx(0.20)


def test_snapshot_writes_a_png(tmp_path) -> None:
    path = tmp_path / "arm.png"
    render_snapshot(initial_state("green", None), "matplotlib", path, 160, 120)
    with Image.open(path) as image:
        assert image.size == (160, 120)
        assert image.mode == "RGB"
        pixels = np.asarray(image)
    assert pixels.std() > 0


def test_snapshot_without_opengl_exits(tmp_path, monkeypatch: pytest.MonkeyPatch) -> None:
    def missing():
        raise RenderingUnavailable("PyOpenGL and glfw are required")

    monkeypatch.setattr(ogl_engine, "_load_backend", missing)
    with pytest.raises(SystemExit, match="3D view unavailable"):
        render_snapshot(initial_state("black", None), "opengl", tmp_path / "x.png", 64, 48)
    assert not (tmp_path / "x.png").exists()


def test_main_renders_snapshot_and_log(tmp_path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PIPETTE_ARM_COLOR", "white")
    snapshot = tmp_path / "snap.png"
    log = tmp_path / "pose.json"
    main(
        [
            "--snapshot",
            str(snapshot),
            "--log",
            str(log),
            "--width",
            "120",
            "--height",
            "90",
            "--joints",
            "10",
            "-20",
            "30",
            "-40",
            "50",
        ]
    )
    assert snapshot.exists()
    payload = json.loads(log.read_text())
    assert payload["color"] == "white"
    assert payload["degrees"] == [10, -20, 30, -40, 50]


def test_main_rejects_unknown_engine() -> None:
    with pytest.raises(SystemExit):
        main(["--engine", "vulkan", "--snapshot", "unused.png"])
