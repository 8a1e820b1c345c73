from types import SimpleNamespace

import numpy as np
import pytest
from matplotlib.backends.backend_agg import FigureCanvasAgg
from matplotlib.figure import Figure

import pipette_arm.ogl_engine as ogl_engine
from pipette_arm.camera import PerspectiveCamera
from pipette_arm.rendering import (
    MatplotlibEngine,
    RenderingUnavailable,
    create_engine,
    face_normals,
    shade_faces,
    tessellate,
)
from pipette_arm.scene_graph import DirectionalLight, GeometrySpec, HemisphereLight, Mesh, Scene


def test_tessellation_shapes() -> None:
    assert tessellate(GeometrySpec.box(0.6, 0.1, 0.1)).shape == (6, 4, 3)
    assert tessellate(GeometrySpec.cylinder(0.1, 0.2), segments=8).shape == (24, 4, 3)
    assert tessellate(GeometrySpec.sphere(0.05), segments=8).shape == (32, 4, 3)


def test_box_extents_match_its_size() -> None:
    faces = tessellate(GeometrySpec.box(0.6, 0.1, 0.08))
    points = faces.reshape(-1, 3)
    assert np.allclose(points.max(axis=0), [0.3, 0.05, 0.04])
    assert np.allclose(points.min(axis=0), [-0.3, -0.05, -0.04])


@pytest.mark.parametrize(
    "spec",
    [GeometrySpec.box(0.6, 0.1, 0.1), GeometrySpec.cylinder(0.1, 0.2), GeometrySpec.sphere(0.05)],
)
def test_normals_point_outward(spec: GeometrySpec) -> None:
    faces = tessellate(spec, segments=12)
    normals = face_normals(faces)
    centroids = faces.mean(axis=1)
    assert np.all(np.einsum("ij,ij->i", normals, centroids) >= -1e-12)
    assert np.allclose(np.linalg.norm(normals, axis=1), 1.0)


def test_unknown_geometry_kind_is_rejected() -> None:
    with pytest.raises(ValueError):
        GeometrySpec("torus", (1.0,))


def test_lit_faces_are_brighter_than_unlit_faces() -> None:
    light = DirectionalLight((0.0, 0.0, 10.0))
    normals = np.array([[0.0, 0.0, 1.0], [0.0, 0.0, -1.0]])
    shaded = shade_faces(normals, (0.5, 0.5, 0.5), HemisphereLight(), light)
    assert shaded[0].sum() > shaded[1].sum()
    assert np.all((shaded >= 0.0) & (shaded <= 1.0))


def test_ledger_rejects_a_second_release() -> None:
    engine = MatplotlibEngine()
    material = engine.create_material((1.0, 0.0, 0.0))
    material.dispose()
    material.dispose()
    assert material.release_count == 1
    with pytest.raises(ValueError):
        engine.ledger.release(material)


def test_engine_owns_a_single_surface() -> None:
    engine = MatplotlibEngine()
    engine.create_surface(80, 60)
    with pytest.raises(RuntimeError):
        engine.create_surface(80, 60)
    engine.dispose()
    assert engine.ledger.live == []


def test_render_requires_a_surface() -> None:
    with pytest.raises(RuntimeError):
        MatplotlibEngine().render(Scene(), PerspectiveCamera())


def test_matplotlib_engine_returns_rgb_frames() -> None:
    engine = MatplotlibEngine(curve_segments=8)
    engine.create_surface(160, 120)
    scene = Scene()
    scene.add(HemisphereLight())
    scene.add(
        Mesh(
            engine.create_geometry(GeometrySpec.box(0.4, 0.2, 0.2)),
            engine.create_material((0.8, 0.1, 0.1)),
            name="box",
        )
    )
    camera = PerspectiveCamera()
    frame = engine.render(scene, camera)
    assert frame.shape == (120, 160, 3)
    assert frame.dtype == np.uint8
    assert camera.aspect == pytest.approx(160 / 120)
    assert engine.surface.frames == 1
    # the red box should show up somewhere against the grey background
    assert np.any((frame[:, :, 0].astype(int) - frame[:, :, 2].astype(int)) > 40)
    engine.dispose()


def test_hosted_engine_draws_into_the_given_figure() -> None:
    figure = Figure()
    FigureCanvasAgg(figure)
    engine = MatplotlibEngine(figure=figure, rect=(0.0, 0.0, 0.5, 1.0))
    engine.create_surface(100, 100)
    assert engine.hosted
    assert engine.axes in figure.axes
    assert engine.render(Scene(), PerspectiveCamera()) is None
    engine.dispose()
    assert engine.axes is None
    assert figure.axes == []


def test_create_engine_by_name() -> None:
    assert isinstance(create_engine(" Matplotlib "), MatplotlibEngine)
    with pytest.raises(ValueError):
        create_engine("vulkan")


def test_opengl_engine_without_libraries(monkeypatch: pytest.MonkeyPatch) -> None:
    def missing():
        raise RenderingUnavailable("PyOpenGL and glfw are required")

    monkeypatch.setattr(ogl_engine, "_load_backend", missing)
    with pytest.raises(RenderingUnavailable):
        create_engine("opengl")


def test_opengl_engine_without_a_display(monkeypatch: pytest.MonkeyPatch) -> None:
    calls = []
    fake_glfw = SimpleNamespace(
        init=lambda: False,
        terminate=lambda: calls.append("terminate"),
    )
    monkeypatch.setattr(ogl_engine, "_load_backend", lambda: (fake_glfw, None, None))
    engine = ogl_engine.OpenGLEngine()
    with pytest.raises(RenderingUnavailable):
        engine.create_surface(64, 48)
    assert engine.ledger.live == []
    engine.dispose()
    assert calls == []


def test_view_matrix_puts_the_eye_at_the_origin() -> None:
    camera = PerspectiveCamera()
    view = camera.view_matrix()
    eye = view @ np.append(camera.position, 1.0)
    target = view @ np.append(camera.target, 1.0)
    assert np.allclose(eye[:3], 0.0)
    assert target[2] == pytest.approx(-camera.distance)
    assert np.allclose(target[:2], 0.0)


def test_camera_view_angles_from_default_pose() -> None:
    elev, azim = PerspectiveCamera().view_angles()
    assert 0.0 < elev < 90.0
    assert 0.0 < azim < 90.0


def test_failed_surface_is_released_on_any_error() -> None:
    class _BrokenSetupEngine(MatplotlibEngine):
        def _open_surface(self, surface):
            raise OSError("GL setup failed")

    engine = _BrokenSetupEngine()
    with pytest.raises(RenderingUnavailable, match="GL setup failed"):
        engine.create_surface(64, 48)
    assert engine.ledger.live == []
    assert engine.ledger.allocated == engine.ledger.released
    assert engine.surface is None


def test_opengl_core_profile_context_is_torn_down(monkeypatch: pytest.MonkeyPatch) -> None:
    calls = []

    def reject(_cap):
        raise RuntimeError("GLError: invalid enumerant")

    fake_glfw = SimpleNamespace(
        VISIBLE=1,
        TRUE=1,
        FALSE=0,
        init=lambda: True,
        window_hint=lambda hint, value: None,
        create_window=lambda *args: "window",
        make_context_current=lambda window: None,
        destroy_window=lambda window: calls.append(("destroy", window)),
        terminate=lambda: calls.append("terminate"),
    )
    fake_gl = SimpleNamespace(GL_DEPTH_TEST=0x0B71, glEnable=reject)
    monkeypatch.setattr(ogl_engine, "_load_backend", lambda: (fake_glfw, fake_gl, None))

    engine = ogl_engine.OpenGLEngine()
    with pytest.raises(RenderingUnavailable, match="invalid enumerant"):
        engine.create_surface(64, 48)
    assert engine.ledger.live == []
    engine.dispose()
    assert calls == [("destroy", "window"), "terminate"]
