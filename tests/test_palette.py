import numpy as np
import pytest

from pipette_arm.palette import (
    SHADE_STEP,
    ArmColor,
    body_shades,
    palette_names,
    relative_luminance,
    resolve_color,
    treatment_for,
)


def test_palette_has_the_five_fixed_entries() -> None:
    assert palette_names() == ["red", "blue", "green", "black", "white"]


def test_resolve_color_accepts_names_and_members() -> None:
    assert resolve_color("Red") is ArmColor.RED
    assert resolve_color(ArmColor.WHITE) is ArmColor.WHITE
    assert resolve_color(" green ") is ArmColor.GREEN
    assert resolve_color("purple") is None
    assert resolve_color(None) is None


def test_unknown_color_falls_back_to_neutral_greys(caplog: pytest.LogCaptureFixture) -> None:
    treatment = treatment_for("chartreuse-ish")
    assert treatment.fallback
    assert treatment.name == "neutral"
    expected = [0x66, 0x77, 0x88, 0x99]
    for shade, level in zip(treatment.shades, expected):
        assert np.allclose(shade, [level / 255.0] * 3)
    assert "Unknown arm color" in caplog.text


@pytest.mark.parametrize("name", palette_names())
def test_shades_step_at_constant_luminance_offsets(name: str) -> None:
    shades = treatment_for(name).shades
    assert len(shades) == 4
    lum = [relative_luminance(shade) for shade in shades]
    steps = np.diff(lum)
    assert np.allclose(np.abs(steps), SHADE_STEP)
    assert np.allclose(steps, steps[0])


def test_dark_colors_step_lighter() -> None:
    lum = [relative_luminance(shade) for shade in treatment_for(ArmColor.BLACK).shades]
    assert all(later > earlier for earlier, later in zip(lum, lum[1:]))


def test_light_colors_step_darker() -> None:
    shades = treatment_for("white").shades
    lum = [relative_luminance(shade) for shade in shades]
    assert all(later < earlier for earlier, later in zip(lum, lum[1:]))


def test_shades_stay_in_unit_range() -> None:
    for shade in body_shades((0.98, 0.05, 0.02)):
        assert all(0.0 <= channel <= 1.0 for channel in shade)


def test_each_palette_entry_has_a_distinct_treatment() -> None:
    bases = {treatment_for(name).shades[0] for name in palette_names()}
    assert len(bases) == 5
