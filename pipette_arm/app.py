"""CLI entrypoint for the pipette arm viewer."""

from __future__ import annotations

import argparse
import json
import logging
import os
from pathlib import Path

from PIL import Image

from .controllers import ArmController, ViewerState, clamp_degrees
from .palette import DEFAULT_COLOR, palette_names
from .presenter import ScenePresenter
from .rendering import create_engine
from .robot import HOME_POSE_DEGREES, JOINT_NAMES, ArmModel, JointAngles
from .scene import DEFAULT_HEIGHT, DEFAULT_WIDTH

LOGGER = logging.getLogger(__name__)


def initial_state(color: str, joints: list[float] | None) -> ViewerState:
    degrees = joints if joints is not None else list(HOME_POSE_DEGREES)
    return ViewerState(
        color=color,
        angles=JointAngles.from_degrees(clamp_degrees(d) for d in degrees),
    )


def write_pose_log(path: Path, state: ViewerState) -> None:
    positions = ArmModel().joint_positions(state.angles)
    names = ["base", *JOINT_NAMES, "tip"]
    entries = [
        {"frame": name, "px": float(p[0]), "py": float(p[1]), "pz": float(p[2])}
        for name, p in zip(names, positions)
    ]
    payload = {"color": state.color, "degrees": list(state.degrees()), "frames": entries}
    path.write_text(json.dumps(payload, indent=2))


def render_snapshot(state: ViewerState, engine: str, path: Path, width: int, height: int) -> None:
    presenter = ScenePresenter(lambda: create_engine(engine), width=width, height=height)
    presenter.mount(state.angles, state.color)
    try:
        if presenter.placeholder is not None:
            raise SystemExit(presenter.placeholder)
        Image.fromarray(presenter.last_frame, "RGB").save(path)
        LOGGER.info("Snapshot written to %s", path)
    finally:
        presenter.unmount()


def run_viewer(state: ViewerState, engine: str, width: int, height: int) -> None:
    from .viewer import ArmControlPanel

    controller = ArmController(state)
    panel = ArmControlPanel(controller, engine=engine, width=width, height=height)
    try:
        panel.show()
    finally:
        panel.close()


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Interactive 5-DOF pipette arm viewer")
    parser.add_argument(
        "--engine",
        choices=("matplotlib", "opengl"),
        default=os.getenv("PIPETTE_ARM_ENGINE", "matplotlib"),
        help="Render engine (default: $PIPETTE_ARM_ENGINE or matplotlib)",
    )
    parser.add_argument(
        "--color",
        default=os.getenv("PIPETTE_ARM_COLOR", DEFAULT_COLOR.value),
        help=f"Initial arm color, one of {', '.join(palette_names())}",
    )
    parser.add_argument("--width", type=int, default=DEFAULT_WIDTH, help="Viewport width in pixels")
    parser.add_argument("--height", type=int, default=DEFAULT_HEIGHT, help="Viewport height in pixels")
    parser.add_argument(
        "--joints",
        type=float,
        nargs=5,
        metavar=("J0", "J1", "J2", "J3", "J4"),
        help="Initial joint angles in degrees (clamped to the slider range)",
    )
    parser.add_argument("--snapshot", type=Path, help="Render once without a window and save a PNG")
    parser.add_argument("--log", type=Path, help="Optional JSON output of the frame positions")
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=("DEBUG", "INFO", "WARNING", "ERROR"),
        help="Logging verbosity",
    )
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    state = initial_state(args.color, args.joints)
    if args.log:
        write_pose_log(args.log, state)
    if args.snapshot:
        render_snapshot(state, args.engine, args.snapshot, args.width, args.height)
        return
    run_viewer(state, args.engine, args.width, args.height)


if __name__ == "__main__":
    main()
