"""Unit tests for the integrator.

Tests cover:
- Background gradient, default and custom
- trace_ray depth semantics, emission and absorption
- Render target setup, validation and accumulation
- Single-pixel sampling
"""

import numpy as np
import pytest
import taichi as ti


def _trace(origin, direction, max_depth):
    """Trace one ray from Python and return its colour."""
    from marbles.core.integrator import trace_ray
    from marbles.core.ray import make_ray, vec3

    result = ti.field(dtype=ti.math.vec3, shape=())

    @ti.kernel
    def trace_kernel():
        ray = make_ray(
            vec3(origin[0], origin[1], origin[2]),
            vec3(direction[0], direction[1], direction[2]),
        )
        result[None] = trace_ray(ray, max_depth)

    trace_kernel()
    return result[None].to_numpy()


class TestBackground:
    def test_default_gradient(self):
        """Straight up is sky blue, straight down is white."""
        up = _trace((0.0, 0.0, 0.0), (0.0, 1.0, 0.0), 5)
        down = _trace((0.0, 0.0, 0.0), (0.0, -1.0, 0.0), 5)
        level = _trace((0.0, 0.0, 0.0), (1.0, 0.0, 0.0), 5)
        assert np.allclose(up, (0.5, 0.7, 1.0), atol=1e-6)
        assert np.allclose(down, (1.0, 1.0, 1.0), atol=1e-6)
        assert np.allclose(level, (0.75, 0.85, 1.0), atol=1e-6)

    def test_gradient_uses_unit_direction(self):
        """Scaling the direction does not change the background."""
        a = _trace((0.0, 0.0, 0.0), (0.0, 0.3, -1.0), 5)
        b = _trace((0.0, 0.0, 0.0), (0.0, 3.0, -10.0), 5)
        assert np.allclose(a, b, atol=1e-6)

    def test_custom_background(self):
        from marbles.core.integrator import reset_background, setup_background

        setup_background((0.0, 0.0, 0.0), (0.2, 0.4, 0.6))
        assert np.allclose(_trace((0, 0, 0), (0.0, 1.0, 0.0), 5), (0.2, 0.4, 0.6), atol=1e-6)
        assert np.allclose(_trace((0, 0, 0), (0.0, -1.0, 0.0), 5), 0.0, atol=1e-6)

        reset_background()
        assert np.allclose(_trace((0, 0, 0), (0.0, 1.0, 0.0), 5), (0.5, 0.7, 1.0), atol=1e-6)


class TestTraceRay:
    def test_zero_depth_is_black(self):
        assert np.allclose(_trace((0.0, 0.0, 0.0), (0.0, 1.0, 0.0), 0), 0.0)

    def test_mirror_bounce_needs_two_casts(self):
        """A mirror hit adds nothing until the reflected ray is cast."""
        from marbles.scene.manager import SceneManager

        scene = SceneManager()
        scene.add_metal_sphere((0.0, 0.0, 0.0), 1.0, (0.5, 0.5, 0.5), 0.0)

        one = _trace((0.0, 0.0, 5.0), (0.0, 0.0, -1.0), 1)
        two = _trace((0.0, 0.0, 5.0), (0.0, 0.0, -1.0), 2)
        assert np.allclose(one, 0.0)
        # Reflected straight back along +z sees the horizon colour
        assert np.allclose(two, 0.5 * np.array([0.75, 0.85, 1.0]), atol=1e-5)

    def test_emitter_contributes_its_emission(self):
        from marbles.scene.manager import SceneManager

        scene = SceneManager()
        scene.add_diffuse_light_sphere((0.0, 0.0, -3.0), 1.0, (1.0, 0.5, 0.25), 2.0)

        color = _trace((0.0, 0.0, 0.0), (0.0, 0.0, -1.0), 10)
        assert np.allclose(color, (2.0, 1.0, 0.5), atol=1e-5)

    def test_black_background_without_lights_is_black(self):
        from marbles.core.integrator import setup_background
        from marbles.scene.manager import SceneManager

        scene = SceneManager()
        scene.add_lambertian_sphere((0.0, 0.0, -2.0), 1.0, (0.9, 0.9, 0.9))
        setup_background((0.0, 0.0, 0.0), (0.0, 0.0, 0.0))

        assert np.allclose(_trace((0.0, 0.0, 0.0), (0.0, 0.0, -1.0), 20), 0.0)

    def test_diffuse_sphere_darkens_background(self):
        """A grey diffuse surface returns less than the brightest sky."""
        from marbles.scene.manager import SceneManager

        scene = SceneManager()
        scene.add_lambertian_sphere((0.0, 0.0, -2.0), 1.0, (0.5, 0.5, 0.5))

        colors = np.array([_trace((0.0, 0.0, 0.0), (0.0, 0.0, -1.0), 10) for _ in range(4)])
        assert (colors <= 1.0 + 1e-6).all()
        assert (colors >= 0.0).all()


class TestRenderTarget:
    def test_setup_and_dimensions(self):
        from marbles.core.integrator import get_image_dimensions, setup_render_target

        setup_render_target(64, 32)
        assert get_image_dimensions() == (64, 32)

    @pytest.mark.parametrize("width,height", [(0, 10), (10, 0), (4096, 10), (10, 4096)])
    def test_invalid_dimensions(self, width, height):
        from marbles.core.integrator import setup_render_target

        with pytest.raises(ValueError):
            setup_render_target(width, height)

    def test_uninitialized_target_raises(self):
        from marbles.core.integrator import get_linear_image_numpy, get_total_samples, render_image

        with pytest.raises(RuntimeError, match="not set up"):
            render_image(1)
        with pytest.raises(RuntimeError):
            get_total_samples()
        with pytest.raises(RuntimeError):
            get_linear_image_numpy()

    def test_render_image_accumulates(self):
        from marbles.camera.camera import Camera, setup_camera
        from marbles.core.integrator import (
            get_linear_image_numpy,
            get_total_samples,
            render_image,
            setup_render_target,
        )

        camera = Camera(image_width=16, aspect_ratio=2.0)
        setup_camera(camera)
        setup_render_target(camera.image_width, camera.image_height)

        render_image(2, max_depth=5)
        render_image(3, max_depth=5)
        assert get_total_samples() == 5

        image = get_linear_image_numpy()
        assert image.shape == (8, 16, 3)
        assert image.dtype == np.float32
        # Empty scene: top row is bluer than the bottom row
        assert image[0, :, 0].mean() < image[-1, :, 0].mean()

    def test_clear_render_target_resets_samples(self):
        from marbles.camera.camera import Camera, setup_camera
        from marbles.core.integrator import (
            clear_render_target,
            get_total_samples,
            render_image,
            setup_render_target,
        )

        setup_camera(Camera(image_width=8, aspect_ratio=1.0))
        setup_render_target(8, 8)
        render_image(2)
        clear_render_target()
        assert get_total_samples() == 0

    def test_render_sample_center_ray(self):
        """The unjittered sample of an empty scene is deterministic."""
        from marbles.camera.camera import Camera, setup_camera
        from marbles.core.integrator import render_sample, setup_render_target

        setup_camera(Camera(image_width=9, aspect_ratio=1.0))
        setup_render_target(9, 9)
        a = render_sample(4, 4, jitter=False)
        b = render_sample(4, 4, jitter=False)
        assert a == b
        assert np.allclose(a, (0.75, 0.85, 1.0), atol=1e-5)
