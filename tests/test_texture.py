"""Unit tests for textures.

Tests cover:
- Solid colour textures
- 3-D checker pattern selection
- Image textures from arrays and files, including the v flip
- Validation and capacity errors
"""

import numpy as np
import pytest
import taichi as ti
from PIL import Image


def _sample(texture_id, u, v, p):
    """Evaluate a texture at one (u, v, p) from Python."""
    from marbles.core.ray import vec3
    from marbles.materials.texture import texture_value

    result = ti.field(dtype=ti.math.vec3, shape=())

    @ti.kernel
    def sample_kernel():
        result[None] = texture_value(texture_id, u, v, vec3(p[0], p[1], p[2]))

    sample_kernel()
    r = result[None]
    return (float(r[0]), float(r[1]), float(r[2]))


class TestSolidTexture:
    def test_value_is_constant(self):
        from marbles.materials.texture import add_solid_texture

        tex = add_solid_texture((0.2, 0.4, 0.6))
        for u, v, p in [(0.0, 0.0, (0.0, 0.0, 0.0)), (0.7, 0.1, (5.0, -3.0, 2.0))]:
            c = _sample(tex, u, v, p)
            assert np.allclose(c, (0.2, 0.4, 0.6), atol=1e-6)

    def test_out_of_range_color_rejected(self):
        from marbles.materials.texture import add_solid_texture

        with pytest.raises(ValueError, match="outside"):
            add_solid_texture((1.5, 0.0, 0.0))

    def test_texture_count_and_clear(self):
        from marbles.materials.texture import add_solid_texture, clear_textures, get_texture_count

        add_solid_texture((0.1, 0.1, 0.1))
        add_solid_texture((0.2, 0.2, 0.2))
        assert get_texture_count() == 2
        clear_textures()
        assert get_texture_count() == 0


class TestCheckerTexture:
    def test_sign_of_sine_product_selects_color(self):
        from marbles.materials.texture import add_checker_texture

        odd = (0.2, 0.3, 0.1)
        even = (0.9, 0.9, 0.9)
        tex = add_checker_texture(odd, even, frequency=1.0)

        # sin(1) * sin(1) * sin(1) > 0
        assert np.allclose(_sample(tex, 0.0, 0.0, (1.0, 1.0, 1.0)), even, atol=1e-6)
        # sin(-1) * sin(1) * sin(1) < 0
        assert np.allclose(_sample(tex, 0.0, 0.0, (-1.0, 1.0, 1.0)), odd, atol=1e-6)

    def test_frequency_scales_pattern(self):
        from marbles.materials.texture import add_checker_texture

        odd = (0.0, 0.0, 0.0)
        even = (1.0, 1.0, 1.0)
        tex = add_checker_texture(odd, even, frequency=10.0)

        # sin(10 * 0.4) = sin(4) < 0, so one negative factor
        assert np.allclose(_sample(tex, 0.0, 0.0, (0.4, 0.1, 0.1)), odd, atol=1e-6)

    def test_invalid_frequency(self):
        from marbles.materials.texture import add_checker_texture

        with pytest.raises(ValueError, match="frequency"):
            add_checker_texture((0.0, 0.0, 0.0), (1.0, 1.0, 1.0), frequency=0.0)


class TestImageTexture:
    @staticmethod
    def _quadrants():
        """A 2x2 image: red, green on the top row; blue, white on the bottom."""
        return np.array(
            [
                [[255, 0, 0], [0, 255, 0]],
                [[0, 0, 255], [255, 255, 255]],
            ],
            dtype=np.uint8,
        )

    def test_uint8_array_lookup_and_v_flip(self):
        """v = 1 is the top row of the image."""
        from marbles.materials.texture import add_image_texture

        tex = add_image_texture(self._quadrants())
        p = (0.0, 0.0, 0.0)
        assert np.allclose(_sample(tex, 0.25, 0.75, p), (1.0, 0.0, 0.0), atol=1e-6)
        assert np.allclose(_sample(tex, 0.75, 0.75, p), (0.0, 1.0, 0.0), atol=1e-6)
        assert np.allclose(_sample(tex, 0.25, 0.25, p), (0.0, 0.0, 1.0), atol=1e-6)
        assert np.allclose(_sample(tex, 0.75, 0.25, p), (1.0, 1.0, 1.0), atol=1e-6)

    def test_coordinates_are_clamped(self):
        from marbles.materials.texture import add_image_texture

        tex = add_image_texture(self._quadrants())
        p = (0.0, 0.0, 0.0)
        assert np.allclose(_sample(tex, -0.5, 2.0, p), (1.0, 0.0, 0.0), atol=1e-6)
        assert np.allclose(_sample(tex, 1.0, 0.0, p), (1.0, 1.0, 1.0), atol=1e-6)

    def test_two_images_share_texel_storage(self):
        from marbles.materials.texture import add_image_texture, num_texels

        first = add_image_texture(self._quadrants())
        second = add_image_texture(np.full((3, 5, 3), 0.5, dtype=np.float32))
        assert num_texels[None] == 4 + 15
        assert np.allclose(_sample(first, 0.25, 0.75, (0, 0, 0)), (1.0, 0.0, 0.0), atol=1e-6)
        assert np.allclose(_sample(second, 0.5, 0.5, (0, 0, 0)), (0.5, 0.5, 0.5), atol=1e-6)

    def test_load_from_png(self, tmp_path):
        from marbles.materials.texture import add_image_texture

        path = tmp_path / "quadrants.png"
        Image.fromarray(self._quadrants()).save(path)

        tex = add_image_texture(path)
        assert np.allclose(_sample(tex, 0.75, 0.75, (0, 0, 0)), (0.0, 1.0, 0.0), atol=1e-6)

    def test_missing_file_raises(self, tmp_path):
        from marbles.materials.texture import add_image_texture

        with pytest.raises(FileNotFoundError):
            add_image_texture(tmp_path / "missing.png")

    def test_bad_shape_rejected(self):
        from marbles.materials.texture import add_image_texture

        with pytest.raises(ValueError, match="shape"):
            add_image_texture(np.zeros((4, 4), dtype=np.float32))

    @pytest.mark.parametrize("value", [-0.1, 1.5, float("nan")])
    def test_float_texels_outside_unit_range_rejected(self, value):
        from marbles.materials.texture import add_image_texture, get_texture_count

        with pytest.raises(ValueError, match="must lie in"):
            add_image_texture(np.full((2, 2, 3), value, dtype=np.float32))
        assert get_texture_count() == 0

    def test_image_texels_scales_uint8(self):
        from marbles.materials.texture import image_texels

        pixels = image_texels(np.full((1, 2, 3), 255, dtype=np.uint8))
        assert pixels.dtype == np.float32
        assert np.allclose(pixels, 1.0)

    def test_texel_capacity(self):
        from marbles.materials.texture import MAX_TEXELS, add_image_texture, num_texels

        num_texels[None] = MAX_TEXELS - 1
        with pytest.raises(RuntimeError, match="texel capacity"):
            add_image_texture(self._quadrants())
