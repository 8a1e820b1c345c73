"""Shared scene constants for the pipette arm viewport."""

# Window / surface size used when no host widget dictates one.
DEFAULT_WIDTH: int = 960
DEFAULT_HEIGHT: int = 720

BACKGROUND_COLOR: tuple[float, float, float] = (0.941, 0.941, 0.941)

# Fixed perspective camera looking at the origin, Z up.
CAMERA_FOV_Y: float = 60.0
CAMERA_NEAR: float = 0.1
CAMERA_FAR: float = 1000.0
CAMERA_POSITION: tuple[float, float, float] = (1.8, 1.6, 1.1)
CAMERA_TARGET: tuple[float, float, float] = (0.0, 0.0, 0.0)
CAMERA_UP: tuple[float, float, float] = (0.0, 0.0, 1.0)

HEMISPHERE_SKY_COLOR: tuple[float, float, float] = (1.0, 1.0, 1.0)
HEMISPHERE_GROUND_COLOR: tuple[float, float, float] = (0.267, 0.267, 0.267)
HEMISPHERE_INTENSITY: float = 0.6

DIRECTIONAL_COLOR: tuple[float, float, float] = (1.0, 1.0, 1.0)
DIRECTIONAL_INTENSITY: float = 0.8
DIRECTIONAL_POSITION: tuple[float, float, float] = (5.0, 3.0, 4.0)
SHADOW_MAP_SIZE: tuple[int, int] = (2048, 2048)
SHADOW_NEAR: float = 0.5
SHADOW_FAR: float = 50.0
SHADOW_EXTENT: float = 5.0

GRID_SIZE: float = 4.0
GRID_DIVISIONS: int = 40
GRID_COLOR: tuple[float, float, float] = (0.53, 0.53, 0.53)
AXES_HELPER_SIZE: float = 0.2

# Slider domain in whole degrees.
SLIDER_MIN_DEG: int = -90
SLIDER_MAX_DEG: int = 90
SLIDER_STEP_DEG: int = 1

# Tessellation density for curved primitives.
CURVE_SEGMENTS: int = 24
