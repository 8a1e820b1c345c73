"""Body color palette and the per-link shading derived from it."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

import numpy as np
from matplotlib.colors import to_rgb

LOGGER = logging.getLogger(__name__)

RGB = tuple[float, float, float]


class ArmColor(str, Enum):
    RED = "red"
    BLUE = "blue"
    GREEN = "green"
    BLACK = "black"
    WHITE = "white"


DEFAULT_COLOR = ArmColor.BLACK

PALETTE_BASES: dict[ArmColor, str] = {
    ArmColor.RED: "tab:red",
    ArmColor.BLUE: "tab:blue",
    ArmColor.GREEN: "tab:green",
    ArmColor.BLACK: "#222222",
    ArmColor.WHITE: "#eeeeee",
}

# Neutral grey used when the selection is not a palette entry.
FALLBACK_BASE = "#666666"

# Per-channel step between consecutive body shades (0x11 / 0xff).
SHADE_STEP: float = 17.0 / 255.0
BODY_SHADE_COUNT = 4

PIPETTE_FINISH: tuple[RGB, float, float] = ((1.0, 1.0, 1.0), 0.1, 0.3)
JOINT_FINISH: tuple[RGB, float, float] = (to_rgb("#444444"), 0.5, 0.5)
BODY_METALNESS: float = 0.3
BODY_ROUGHNESS: float = 0.7


def relative_luminance(rgb: RGB) -> float:
    r, g, b = rgb
    return 0.2126 * r + 0.7152 * g + 0.0722 * b


@dataclass(frozen=True)
class ColorTreatment:
    """Resolved appearance of the arm body for one color selection."""

    name: str
    shades: tuple[RGB, ...]
    fallback: bool = False


def resolve_color(value: ArmColor | str | None) -> Optional[ArmColor]:
    """Map a selector value onto the palette, ``None`` when it is not a member."""
    if isinstance(value, ArmColor):
        return value
    if value is None:
        return None
    try:
        return ArmColor(str(value).strip().lower())
    except ValueError:
        return None


def body_shades(base: RGB, count: int = BODY_SHADE_COUNT) -> tuple[RGB, ...]:
    """Shades for base, segment 1, 2, 3 at constant luminance offsets.

    Dark bases step towards white, light bases step towards black. Channels
    are pulled in first so that no shade clips.
    """
    direction = -1.0 if relative_luminance(base) > 0.6 else 1.0
    span = (count - 1) * SHADE_STEP
    if direction > 0:
        base_arr = np.clip(np.asarray(base, dtype=float), 0.0, 1.0 - span)
    else:
        base_arr = np.clip(np.asarray(base, dtype=float), span, 1.0)
    shades = []
    for idx in range(count):
        shade = np.clip(base_arr + direction * idx * SHADE_STEP, 0.0, 1.0)
        shades.append(tuple(float(c) for c in shade))
    return tuple(shades)


def treatment_for(value: ArmColor | str | None) -> ColorTreatment:
    color = resolve_color(value)
    if color is None:
        LOGGER.warning("Unknown arm color %r; using neutral shading", value)
        return ColorTreatment("neutral", body_shades(to_rgb(FALLBACK_BASE)), fallback=True)
    return ColorTreatment(color.value, body_shades(to_rgb(PALETTE_BASES[color])))


def palette_names() -> list[str]:
    return [color.value for color in ArmColor]
