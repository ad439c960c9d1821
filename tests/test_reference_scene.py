"""Tests for the reference scene factory."""

import pytest


class TestReferenceScene:
    """Tests for create_reference_scene."""

    def test_contents(self):
        from qmctrace.core.config import RenderConfig
        from qmctrace.scene.intersection import ShapeKind
        from qmctrace.scene.reference import create_reference_scene

        scene, config = create_reference_scene()

        assert config == RenderConfig()
        assert scene.get_object_count() == 4
        assert scene.get_plane_count() == 1
        assert scene.get_sphere_count() == 3
        assert scene.objects[0].kind == ShapeKind.PLANE
        assert scene.objects[1].params["center"] == (0.0, 0.0, 0.0)

    def test_spheres_rest_on_ground(self):
        from qmctrace.scene.reference import create_reference_scene

        scene, _ = create_reference_scene()
        ground = scene.objects[0].params["point"][1]
        for info in scene.objects[1:]:
            bottom = info.params["center"][1] - info.params["radius"]
            assert bottom == pytest.approx(ground)

    def test_objects_inside_camera_orbit(self):
        """The camera never sits inside an object."""
        import math

        from qmctrace.core.config import CameraConfig
        from qmctrace.scene.reference import create_reference_scene

        scene, _ = create_reference_scene()
        camera = CameraConfig()
        for frame in range(16):
            t = 2.0 * math.pi * frame / 16
            position = (
                camera.orbit_scale * (camera.orbit_minor * math.cos(t) + camera.orbit_major * math.sin(t)),
                camera.orbit_scale * camera.orbit_height,
                camera.orbit_scale * (-camera.orbit_major * math.cos(t) + camera.orbit_minor * math.sin(t)),
            )
            for info in scene.objects[1:]:
                assert math.dist(position, info.params["center"]) > info.params["radius"]

    def test_custom_params_and_config(self):
        from dataclasses import replace

        from qmctrace.core.config import RenderConfig
        from qmctrace.scene.reference import ReferenceSceneParams, create_reference_scene

        params = ReferenceSceneParams(ground_height=-2.0, centre_colour=(1.0, 0.0, 0.0))
        config = replace(RenderConfig(), max_bounces=1)
        scene, returned = create_reference_scene(params, config)

        assert returned is config
        assert scene.objects[0].params["point"] == (0.0, -2.0, 0.0)
        assert scene.objects[1].colour == (1.0, 0.0, 0.0)

    def test_camera_sees_centre_sphere(self):
        from qmctrace.camera.orbit import get_primary_ray
        from qmctrace.scene.intersection import query_nearest
        from qmctrace.scene.reference import create_reference_scene

        create_reference_scene()
        origin, direction = get_primary_ray(32, 32, 64, 64)
        object_id, _ = query_nearest(origin, direction)
        assert object_id == 1
