"""Matplotlib control panel: color selector, joint sliders, reset and viewport."""

from __future__ import annotations

import logging
from typing import Any, Optional

import matplotlib.pyplot as plt
from matplotlib.figure import Figure
from matplotlib.widgets import Button, RadioButtons, Slider

from .controllers import ArmController, ColorChanged, JointChanged, ResetRequested, ViewerState
from .palette import DEFAULT_COLOR, palette_names
from .presenter import ScenePresenter
from .rendering import MatplotlibEngine, create_engine
from .robot import JOINT_COUNT, JOINT_LABELS
from .scene import (
    DEFAULT_HEIGHT,
    DEFAULT_WIDTH,
    SLIDER_MAX_DEG,
    SLIDER_MIN_DEG,
    SLIDER_STEP_DEG,
)

LOGGER = logging.getLogger(__name__)

VIEWPORT_RECT = (0.0, 0.0, 0.62, 1.0)
PANEL_LEFT = 0.68
PANEL_WIDTH = 0.24


class ArmControlPanel:
    """One window holding the viewport and every input widget."""

    def __init__(
        self,
        controller: ArmController,
        engine: str = "matplotlib",
        figure: Optional[Figure] = None,
        width: int = DEFAULT_WIDTH,
        height: int = DEFAULT_HEIGHT,
    ) -> None:
        self.controller = controller
        self.figure = figure if figure is not None else plt.figure(figsize=(12, 7))
        if self.figure.canvas.manager is not None:
            self.figure.canvas.manager.set_window_title("Pipette Arm")
        self.engine_name = engine
        self._image: Any = None
        self._viewport_axes: Any = None

        if engine == "matplotlib":
            factory = lambda: MatplotlibEngine(figure=self.figure, rect=VIEWPORT_RECT)  # noqa: E731
        else:
            factory = lambda: create_engine(engine)  # noqa: E731
        self.presenter = ScenePresenter(factory, width=width, height=height)

        self._build_widgets()
        self._disconnect = [
            controller.connect_presenter(self.presenter),
            controller.subscribe(self._on_state_changed),
        ]
        self._refresh_viewport()
        self.figure.canvas.mpl_connect("key_press_event", self.on_key_press)
        self.figure.canvas.mpl_connect("close_event", self._on_close)

    # ------------------------------------------------------------------
    def _build_widgets(self) -> None:
        state = self.controller.state
        fig = self.figure
        fig.text(PANEL_LEFT, 0.95, "Joint Controls", fontsize=14, fontweight="bold")

        names = palette_names()
        color_ax = fig.add_axes((PANEL_LEFT, 0.74, PANEL_WIDTH, 0.18))
        color_ax.set_title("Arm Color", fontsize=10, loc="left")
        active = names.index(state.color if state.color in names else DEFAULT_COLOR.value)
        self.color_selector = RadioButtons(color_ax, [name.title() for name in names], active=active)
        self.color_selector.on_clicked(self._on_color_clicked)

        self.sliders: list[Slider] = []
        degrees = state.degrees()
        for idx in range(JOINT_COUNT):
            bottom = 0.62 - idx * 0.11
            ax = fig.add_axes((PANEL_LEFT, bottom, PANEL_WIDTH, 0.03))
            slider = Slider(
                ax,
                "",
                SLIDER_MIN_DEG,
                SLIDER_MAX_DEG,
                valinit=degrees[idx],
                valstep=SLIDER_STEP_DEG,
                valfmt="%d°",
            )
            ax.set_title(JOINT_LABELS[idx], fontsize=9, loc="left")
            for x, label in ((0.0, f"{SLIDER_MIN_DEG}°"), (0.5, "0°"), (1.0, f"{SLIDER_MAX_DEG}°")):
                ax.text(x, -0.9, label, transform=ax.transAxes, ha="center", va="top", fontsize=7)
            slider.on_changed(lambda value, joint=idx: self._on_slider_changed(joint, value))
            self.sliders.append(slider)

        reset_ax = fig.add_axes((PANEL_LEFT, 0.05, PANEL_WIDTH, 0.05))
        self.reset_button = Button(reset_ax, "Reset to Home")
        self.reset_button.on_clicked(lambda _event: self.controller.dispatch(ResetRequested()))

    # ------------------------------------------------------------------
    def _on_slider_changed(self, joint: int, value: float) -> None:
        self.controller.dispatch(JointChanged(joint, int(round(value))))

    def _on_color_clicked(self, label: Optional[str]) -> None:
        if label is None:
            return
        self.controller.dispatch(ColorChanged(label.lower()))

    def _on_state_changed(self, previous: ViewerState, current: ViewerState) -> None:
        self._sync_sliders(current)
        self._refresh_viewport()

    def _sync_sliders(self, state: ViewerState) -> None:
        # Callbacks are muted so a reset moves every slider without re-dispatching.
        for slider, value in zip(self.sliders, state.degrees()):
            if slider.val == value:
                continue
            slider.eventson = False
            try:
                slider.set_val(value)
            finally:
                slider.eventson = True

    def _refresh_viewport(self) -> None:
        presenter = self.presenter
        if presenter.placeholder is not None:
            ax = self._ensure_viewport_axes()
            ax.clear()
            ax.set_axis_off()
            ax.text(0.5, 0.5, presenter.placeholder, ha="center", va="center", wrap=True)
        elif self.engine_name != "matplotlib" and presenter.last_frame is not None:
            ax = self._ensure_viewport_axes()
            if self._image is None:
                ax.set_axis_off()
                self._image = ax.imshow(presenter.last_frame)
            else:
                self._image.set_data(presenter.last_frame)
        self.figure.canvas.draw_idle()

    def _ensure_viewport_axes(self) -> Any:
        if self._viewport_axes is None:
            self._viewport_axes = self.figure.add_axes(VIEWPORT_RECT)
        return self._viewport_axes

    # ------------------------------------------------------------------
    def on_key_press(self, event) -> None:
        if event.key == "r":
            self.controller.dispatch(ResetRequested())
        elif event.key == "q":
            plt.close(self.figure)

    def _on_close(self, _event) -> None:
        self.close()

    def close(self) -> None:
        for disconnect in self._disconnect:
            disconnect()
        self._disconnect = []
        self.presenter.unmount()

    def show(self) -> None:
        plt.show(block=True)
