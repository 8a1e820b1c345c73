import math

import numpy as np

from pipette_arm.scene_graph import DirectionalLight, GridHelper, Node, Scene


def test_world_matrix_composes_parent_transforms() -> None:
    root = Node("root", translation=(0.0, 0.0, 1.0), axis="z", angle=math.pi / 2)
    child = root.add(Node("child", translation=(1.0, 0.0, 0.0)))
    assert np.allclose(child.world_matrix()[:3, 3], [0.0, 1.0, 1.0])


def test_reparenting_moves_the_node() -> None:
    first, second = Node("a"), Node("b")
    leaf = first.add(Node("leaf"))
    second.add(leaf)
    assert leaf.parent is second
    assert first.children == []
    assert second.find("leaf") is leaf
    second.remove(leaf)
    assert leaf.parent is None


def test_grid_lines_cover_the_ground_plane() -> None:
    segments = GridHelper(size=4.0, divisions=40).line_segments()
    assert segments.shape == (82, 2, 3)
    assert np.allclose(segments[:, :, 2], 0.0)
    assert segments.min() == -2.0 and segments.max() == 2.0


def test_scene_collects_lights() -> None:
    scene = Scene()
    light = scene.add(DirectionalLight((5.0, 3.0, 4.0)))
    assert list(scene.lights()) == [light]
    assert np.allclose(np.linalg.norm(light.direction), 1.0)
    assert list(scene.meshes()) == []
