"""Tests for the path tracing integrator.

This module tests:
- Determinism of estimates
- Sky colour for escaped rays
- Direct lighting and shadow rays
- The bounce bound and terminal states of the path state machine
- Energy non-negativity
- Render target setup and running-mean accumulation

Note: Imports are done inside test methods; the conftest.py fixture
initializes Taichi before tests run.
"""

import math
from dataclasses import replace

import numpy as np
import pytest


def _expected_sky(x, y, frame, pass_index, width, height, frames=0):
    """Sky colour seen by the primary ray of one estimate, computed from its parts."""
    from qmctrace.camera.orbit import get_primary_ray
    from qmctrace.core.config import SkyGradient
    from qmctrace.core.sampler import pixel_hash_value, sample_value

    hash_random = pixel_hash_value(x, y, frame, width, height)
    jitter = (sample_value(pass_index, 0, hash_random), sample_value(pass_index, 1, hash_random))
    time_jitter = sample_value(pass_index, 2, hash_random)
    _, direction = get_primary_ray(x, y, width, height, frame, frames, jitter, time_jitter)

    sky = SkyGradient()
    up = max(0.0, direction[1])
    return tuple(h + (z - h) * up for z, h in zip(sky.zenith, sky.horizon))


def _box_scene():
    """Floor below and ceiling above the camera: every path hits something."""
    from qmctrace.scene.manager import SceneManager

    scene = SceneManager()
    scene.add_plane((0.0, -1.0, 0.0), (0.0, 1.0, 0.0), (0.5, 0.5, 0.5))
    scene.add_plane((0.0, 3.0, 0.0), (0.0, -1.0, 0.0), (0.5, 0.5, 0.5))
    return scene


class TestDeterminism:
    """Identical inputs give bit-identical estimates."""

    def test_same_inputs_same_colour(self):
        from qmctrace.core.integrator import generate_colour
        from qmctrace.scene.reference import create_reference_scene

        create_reference_scene()
        first = generate_colour(20, 30, 3, 7, 64, 48, frames=12)
        second = generate_colour(20, 30, 3, 7, 64, 48, frames=12)
        assert first == second

    def test_passes_differ(self):
        from qmctrace.core.integrator import generate_colour
        from qmctrace.scene.reference import create_reference_scene

        create_reference_scene()
        colours = {generate_colour(40, 40, 0, p, 64, 64) for p in range(6)}
        assert len(colours) > 1

    def test_render_is_reproducible(self):
        from qmctrace.core.integrator import get_linear_image_numpy, render_pass, setup_render_target
        from qmctrace.scene.reference import create_reference_scene

        create_reference_scene()
        images = []
        for _ in range(2):
            setup_render_target(24, 16)
            render_pass(frame=1, pass_index=0, frames=8)
            render_pass(frame=1, pass_index=1, frames=8)
            images.append(get_linear_image_numpy())
        assert np.array_equal(images[0], images[1])


class TestSky:
    """Escaped rays return the sky gradient."""

    @pytest.mark.parametrize("x, y, pass_index", [(0, 0, 0), (32, 10, 3), (63, 63, 17)])
    def test_empty_scene_returns_sky(self, x, y, pass_index):
        from qmctrace.core.integrator import PathStatus, trace_path_stats

        stats = trace_path_stats(x, y, 0, pass_index, 64, 64)
        expected = _expected_sky(x, y, 0, pass_index, 64, 64)

        assert stats["contribution"] == pytest.approx(expected, abs=1e-5)
        assert stats["status"] == PathStatus.MISS
        assert stats["segments"] == 1
        assert stats["bounces"] == 0

    def test_sky_gradient(self):
        from qmctrace.core.integrator import evaluate_sky_colour

        assert evaluate_sky_colour((0.0, 1.0, 0.0)) == pytest.approx((0.04, 0.1, 0.2), abs=1e-6)
        assert evaluate_sky_colour((1.0, 0.0, 0.0)) == pytest.approx((0.1, 0.14, 0.2), abs=1e-6)
        # Below the horizon the gradient is clamped
        assert evaluate_sky_colour((0.0, -1.0, 0.0)) == pytest.approx((0.1, 0.14, 0.2), abs=1e-6)

    def test_custom_sky(self):
        from qmctrace.core.config import RenderConfig, SkyGradient
        from qmctrace.core.integrator import generate_colour, setup_integrator

        setup_integrator(replace(RenderConfig(), sky=SkyGradient(zenith=(1.0, 1.0, 1.0), horizon=(1.0, 1.0, 1.0))))
        assert generate_colour(5, 5, 0, 0, 16, 16) == pytest.approx((1.0, 1.0, 1.0), abs=1e-6)


class TestDirectLighting:
    """Point light evaluation with shadow rays."""

    def test_lit_point(self):
        from qmctrace.core.integrator import evaluate_direct_lighting

        point = (0.0, 1.0, 0.0)
        light = (8.0, 12.0, -6.0)
        light_vec = tuple(l - p for l, p in zip(light, point))
        dist_sq = sum(c * c for c in light_vec)
        n_dot_l = light_vec[1] / math.sqrt(dist_sq)
        expected = n_dot_l / dist_sq * 420.0

        result = evaluate_direct_lighting(point, (0.0, 1.0, 0.0), (1.0, 0.5, 0.25))
        assert result == pytest.approx((expected, expected * 0.5, expected * 0.25), rel=1e-4)

    def test_occluder_casts_shadow(self):
        """A plane between the point and the light blocks it."""
        from qmctrace.core.integrator import evaluate_direct_lighting
        from qmctrace.scene.manager import SceneManager

        scene = SceneManager()
        scene.add_sphere((0.0, 0.0, 0.0), 1.0, (1.0, 1.0, 1.0))
        scene.add_plane((0.0, 3.0, 0.0), (0.0, -1.0, 0.0), (1.0, 1.0, 1.0))

        result = evaluate_direct_lighting((0.0, 1.0, 0.0), (0.0, 1.0, 0.0), (1.0, 1.0, 1.0))
        assert result == (0.0, 0.0, 0.0)

    def test_occluder_beyond_light_does_not_shadow(self):
        from qmctrace.core.integrator import evaluate_direct_lighting
        from qmctrace.scene.manager import SceneManager

        scene = SceneManager()
        scene.add_plane((0.0, 20.0, 0.0), (0.0, -1.0, 0.0), (1.0, 1.0, 1.0))

        result = evaluate_direct_lighting((0.0, 1.0, 0.0), (0.0, 1.0, 0.0), (1.0, 1.0, 1.0))
        assert all(c > 0.0 for c in result)

    def test_surface_facing_away(self):
        from qmctrace.core.integrator import evaluate_direct_lighting

        result = evaluate_direct_lighting((0.0, -1.0, 0.0), (0.0, -1.0, 0.0), (1.0, 1.0, 1.0))
        assert result == (0.0, 0.0, 0.0)

    def test_point_at_light(self):
        from qmctrace.core.integrator import evaluate_direct_lighting

        result = evaluate_direct_lighting((8.0, 12.0, -6.0), (0.0, 1.0, 0.0), (1.0, 1.0, 1.0))
        assert all(math.isfinite(c) for c in result)


class TestEndToEnd:
    """Whole estimates against small scenes."""

    def test_white_sphere_centre_pixel(self):
        from qmctrace.core.integrator import generate_colour
        from qmctrace.scene.manager import SceneManager

        scene = SceneManager()
        scene.add_sphere((0.0, 0.0, 0.0), 1.0, (1.0, 1.0, 1.0))

        colour = generate_colour(32, 32, 0, 0, 64, 64)
        assert all(c > 0.2 for c in colour)

    def test_zero_intensity_light_leaves_sky_only(self):
        """With a black sphere and no light, a hit contributes nothing."""
        from qmctrace.core.config import PointLight, RenderConfig
        from qmctrace.core.integrator import generate_colour, setup_integrator
        from qmctrace.scene.manager import SceneManager

        setup_integrator(replace(RenderConfig(), light=PointLight(intensity=0.0)))
        scene = SceneManager()
        scene.add_sphere((0.0, 0.0, 0.0), 1.0, (0.0, 0.0, 0.0))

        assert generate_colour(32, 32, 0, 0, 64, 64) == (0.0, 0.0, 0.0)

    def test_requires_configuration(self, monkeypatch):
        from qmctrace.core import integrator

        monkeypatch.setattr(integrator, "_active_config", None)
        with pytest.raises(RuntimeError, match="setup_integrator"):
            integrator.generate_colour(0, 0, 0, 0, 8, 8)


class TestBounceBound:
    """A path issues at most max_bounces + 1 segment queries."""

    @pytest.mark.parametrize("max_bounces", [0, 1, 3])
    def test_enclosed_paths_hit_bounce_limit(self, max_bounces):
        from qmctrace.core.config import RenderConfig
        from qmctrace.core.integrator import PathStatus, setup_integrator, trace_path_stats

        setup_integrator(replace(RenderConfig(), max_bounces=max_bounces))
        _box_scene()

        for x, y, pass_index in [(0, 0, 0), (16, 16, 1), (31, 5, 9)]:
            stats = trace_path_stats(x, y, 0, pass_index, 32, 32)
            assert stats["segments"] == max_bounces + 1
            assert stats["bounces"] == max_bounces + 1
            assert stats["status"] == PathStatus.BOUNCE_LIMIT

    def test_segments_never_exceed_bound(self):
        from qmctrace.core.integrator import trace_path_stats
        from qmctrace.scene.reference import create_reference_scene

        _, config = create_reference_scene()
        for pass_index in range(8):
            for x, y in [(3, 40), (32, 32), (60, 10)]:
                stats = trace_path_stats(x, y, 0, pass_index, 64, 64)
                assert 1 <= stats["segments"] <= config.max_bounces + 1


class TestEnergy:
    """Estimates are finite and never negative."""

    def test_reference_scene_non_negative(self):
        from qmctrace.core.integrator import generate_colour
        from qmctrace.scene.reference import create_reference_scene

        create_reference_scene()
        for pass_index in range(4):
            for x in range(0, 64, 9):
                for y in range(0, 48, 7):
                    colour = generate_colour(x, y, 2, pass_index, 64, 48, frames=16)
                    assert all(math.isfinite(c) and c >= 0.0 for c in colour)

    def test_rendered_image_non_negative(self):
        from qmctrace.core.integrator import get_linear_image_numpy, render_pass, setup_render_target
        from qmctrace.scene.reference import create_reference_scene

        create_reference_scene()
        setup_render_target(32, 24)
        for pass_index in range(3):
            render_pass(frame=0, pass_index=pass_index)

        image = get_linear_image_numpy()
        assert np.isfinite(image).all()
        assert image.min() >= 0.0
        assert image.max() > 0.0


class TestRenderTarget:
    """Render target setup and running-mean accumulation."""

    def test_setup_sets_dimensions(self):
        from qmctrace.core.integrator import get_image_dimensions, get_total_samples, setup_render_target

        setup_render_target(64, 48)
        assert get_image_dimensions() == (64, 48)
        assert get_total_samples() == 0

    @pytest.mark.parametrize("width, height", [(0, 10), (10, -1), (4096, 10), (10, 4096)])
    def test_invalid_dimensions(self, width, height):
        from qmctrace.core.integrator import setup_render_target

        with pytest.raises(ValueError):
            setup_render_target(width, height)

    def test_running_mean_matches_estimates(self):
        from qmctrace.core.integrator import (
            generate_colour,
            get_linear_image_numpy,
            get_total_samples,
            render_pass,
            setup_render_target,
        )
        from qmctrace.scene.reference import create_reference_scene

        create_reference_scene()
        width, height = 16, 12
        setup_render_target(width, height)
        for pass_index in range(3):
            render_pass(frame=0, pass_index=pass_index)

        assert get_total_samples() == 3
        image = get_linear_image_numpy()
        assert image.shape == (height, width, 3)

        for x, y in [(0, 0), (5, 7), (15, 11)]:
            estimates = np.array([generate_colour(x, y, 0, p, width, height) for p in range(3)])
            np.testing.assert_allclose(image[y, x], estimates.mean(axis=0), rtol=1e-4, atol=1e-5)

    def test_clear_resets_accumulation(self):
        from qmctrace.core.integrator import (
            clear_render_target,
            get_linear_image_numpy,
            get_total_samples,
            render_pass,
            setup_render_target,
        )

        setup_render_target(8, 8)
        render_pass(frame=0, pass_index=0)
        assert get_total_samples() == 1

        clear_render_target()
        assert get_total_samples() == 0
        assert get_linear_image_numpy().max() == 0.0

    def test_normalized_image_is_clamped(self):
        from qmctrace.core.config import PointLight, RenderConfig
        from qmctrace.core.integrator import get_normalized_image_numpy, render_pass, setup_integrator, setup_render_target
        from qmctrace.scene.manager import SceneManager

        setup_integrator(replace(RenderConfig(), light=PointLight(intensity=1e5)))
        scene = SceneManager()
        scene.add_sphere((0.0, 0.0, 0.0), 1.0, (1.0, 1.0, 1.0))

        setup_render_target(16, 16)
        render_pass(frame=0, pass_index=0)
        image = get_normalized_image_numpy()
        assert image.max() <= 1.0
        assert image.min() >= 0.0
