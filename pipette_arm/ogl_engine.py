"""OpenGL render engine backed by an off-screen glfw window."""

from __future__ import annotations

import logging
from types import ModuleType
from typing import Optional

import numpy as np

from .camera import PerspectiveCamera
from .rendering import Geometry, RenderEngine, RenderingUnavailable, Surface
from .scene import CURVE_SEGMENTS
from .scene_graph import AxesHelper, DirectionalLight, GridHelper, HemisphereLight, Scene

LOGGER = logging.getLogger(__name__)


def _load_backend() -> tuple[ModuleType, ModuleType, ModuleType]:
    try:
        import glfw
        from OpenGL import GL, GLU
    except (ImportError, OSError) as exc:
        raise RenderingUnavailable(f"PyOpenGL and glfw are required: {exc}") from exc
    return glfw, GL, GLU


class OpenGLEngine(RenderEngine):
    """Fixed-function OpenGL renderer; each geometry is compiled to a display list."""

    name = "opengl"

    def __init__(self, visible: bool = False, curve_segments: int = CURVE_SEGMENTS) -> None:
        super().__init__(curve_segments)
        self._glfw, self._gl, self._glu = _load_backend()
        self._visible = visible
        self._window = None
        self._initialized = False

    # ------------------------------------------------------------------
    # Setup & teardown
    def _open_surface(self, surface: Surface) -> None:
        glfw = self._glfw
        if not glfw.init():
            raise RenderingUnavailable("Failed to initialize GLFW (OpenGL context)")
        self._initialized = True
        try:
            glfw.window_hint(glfw.VISIBLE, glfw.TRUE if self._visible else glfw.FALSE)
            window = glfw.create_window(surface.width, surface.height, "Pipette Arm", None, None)
            if not window:
                raise RenderingUnavailable("Unable to create GLFW window")
            self._window = window
            glfw.make_context_current(window)
            self._configure_context()
        except RenderingUnavailable:
            self._abandon_context()
            raise
        except Exception as exc:
            # Core-profile contexts reject the fixed-function state.
            self._abandon_context()
            raise RenderingUnavailable(f"OpenGL context setup failed: {exc}") from exc
        surface.handle = window
        LOGGER.debug("OpenGL surface opened (%dx%d)", surface.width, surface.height)

    def _configure_context(self) -> None:
        GL = self._gl
        GL.glEnable(GL.GL_DEPTH_TEST)
        GL.glEnable(GL.GL_LIGHTING)
        GL.glEnable(GL.GL_LIGHT0)
        GL.glEnable(GL.GL_NORMALIZE)
        GL.glEnable(GL.GL_COLOR_MATERIAL)
        GL.glColorMaterial(GL.GL_FRONT_AND_BACK, GL.GL_AMBIENT_AND_DIFFUSE)

    def _abandon_context(self) -> None:
        if self._window is not None:
            self._glfw.destroy_window(self._window)
            self._window = None
        self._glfw.terminate()
        self._initialized = False

    def _close_surface(self, surface: Surface) -> None:
        if self._window is not None:
            self._glfw.destroy_window(self._window)
        self._window = None
        surface.handle = None

    def _shutdown(self) -> None:
        if self._initialized:
            self._glfw.terminate()
            self._initialized = False

    def _upload_geometry(self, geometry: Geometry) -> None:
        if self._window is None:
            raise RuntimeError("OpenGL geometry requires an open surface")
        GL = self._gl
        handle = GL.glGenLists(1)
        GL.glNewList(handle, GL.GL_COMPILE)
        GL.glBegin(GL.GL_QUADS)
        for face, normal in zip(geometry.faces, geometry.normals):
            GL.glNormal3f(*normal)
            for vertex in face:
                GL.glVertex3f(*vertex)
        GL.glEnd()
        GL.glEndList()
        geometry.handle = handle

    def _free_geometry(self, geometry: Geometry) -> None:
        if geometry.handle is not None and self._window is not None:
            self._gl.glDeleteLists(geometry.handle, 1)
        geometry.handle = None

    # ------------------------------------------------------------------
    # Rendering
    def _draw(self, scene: Scene, camera: PerspectiveCamera) -> Optional[np.ndarray]:
        GL, GLU = self._gl, self._glu
        width, height = self.surface.width, self.surface.height
        GL.glViewport(0, 0, width, height)
        GL.glClearColor(*scene.background, 1.0)
        GL.glClear(GL.GL_COLOR_BUFFER_BIT | GL.GL_DEPTH_BUFFER_BIT)

        GL.glMatrixMode(GL.GL_PROJECTION)
        GL.glLoadIdentity()
        GLU.gluPerspective(camera.fov_y, camera.aspect, camera.near, camera.far)
        GL.glMatrixMode(GL.GL_MODELVIEW)
        GL.glLoadIdentity()
        GLU.gluLookAt(*camera.position, *camera.target, *camera.up)
        self._apply_scene_lighting(scene)

        for node in scene.traverse():
            if isinstance(node, GridHelper):
                self._draw_grid(node)
            elif isinstance(node, AxesHelper):
                self._draw_axes_helper(node)
        for mesh in scene.meshes():
            GL.glPushMatrix()
            GL.glMultMatrixf(mesh.world_matrix().astype(np.float32).T.flatten())
            GL.glColor3f(*mesh.material.color)
            GL.glCallList(mesh.geometry.handle)
            GL.glPopMatrix()
        return self._read_frame(width, height)

    def _apply_scene_lighting(self, scene: Scene) -> None:
        GL = self._gl
        ambient = np.zeros(3)
        for light in scene.lights():
            if isinstance(light, HemisphereLight):
                mean = (np.asarray(light.sky_color) + np.asarray(light.ground_color)) / 2.0
                ambient += light.intensity * mean
            elif isinstance(light, DirectionalLight):
                diffuse = light.intensity * np.asarray(light.color)
                GL.glLightfv(GL.GL_LIGHT0, GL.GL_POSITION, (*light.direction, 0.0))
                GL.glLightfv(GL.GL_LIGHT0, GL.GL_DIFFUSE, (*diffuse, 1.0))
        GL.glLightModelfv(GL.GL_LIGHT_MODEL_AMBIENT, (*np.clip(ambient, 0.0, 1.0), 1.0))

    def _draw_grid(self, grid: GridHelper) -> None:
        GL = self._gl
        GL.glDisable(GL.GL_LIGHTING)
        GL.glColor3f(*grid.color)
        GL.glLineWidth(1.0)
        GL.glBegin(GL.GL_LINES)
        for start, end in grid.line_segments() + grid.world_matrix()[:3, 3]:
            GL.glVertex3f(*start)
            GL.glVertex3f(*end)
        GL.glEnd()
        GL.glEnable(GL.GL_LIGHTING)

    def _draw_axes_helper(self, helper: AxesHelper) -> None:
        GL = self._gl
        origin = helper.world_matrix()[:3, 3]
        GL.glDisable(GL.GL_LIGHTING)
        GL.glBegin(GL.GL_LINES)
        for axis in np.eye(3):
            GL.glColor3f(*axis)
            GL.glVertex3f(*origin)
            GL.glVertex3f(*(origin + axis * helper.size))
        GL.glEnd()
        GL.glEnable(GL.GL_LIGHTING)

    def _read_frame(self, width: int, height: int) -> np.ndarray:
        GL = self._gl
        GL.glPixelStorei(GL.GL_PACK_ALIGNMENT, 1)
        GL.glFinish()
        buffer = GL.glReadPixels(0, 0, width, height, GL.GL_RGBA, GL.GL_UNSIGNED_BYTE)
        frame = np.frombuffer(buffer, dtype=np.uint8).copy().reshape((height, width, 4))
        return np.flipud(frame)[:, :, :3].copy()
