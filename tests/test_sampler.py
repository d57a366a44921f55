import numpy as np
import pytest
from PIL import Image

from checkboxsketch.sampler import (canvas_size, flatten_on_white, resample,
                                    round_half_up, sample, to_rgba_array)


class TestCanvasSize:
    def test_square_ignores_source_shape(self):
        assert canvas_size(100, 50, 30, False) == (30, 30)
        assert canvas_size(50, 100, 80, False) == (80, 80)

    def test_landscape_keeps_width(self):
        assert canvas_size(200, 100, 80, True) == (80, 40)

    def test_portrait_keeps_height(self):
        assert canvas_size(100, 200, 80, True) == (40, 80)

    def test_square_source_with_aspect(self):
        assert canvas_size(10, 10, 50, True) == (50, 50)

    def test_shorter_side_is_rounded(self):
        # 50 / 1.5 = 33.33
        assert canvas_size(300, 200, 50, True) == (50, 33)
        assert canvas_size(200, 300, 50, True) == (33, 50)

    def test_extreme_panorama_keeps_one_row(self):
        assert canvas_size(1000, 1, 30, True) == (30, 1)


def test_round_half_up():
    assert round_half_up(2.5) == 3
    assert round_half_up(127.5) == 128
    assert round_half_up(2.4) == 2


class TestResample:
    def test_nearest_neighbour_picks_top_left_of_each_block(self):
        src = np.arange(16, dtype=np.uint8).reshape(4, 4)
        pixels = np.stack([src] * 4, axis=-1)
        out = resample(pixels, 2, 2)
        assert out.shape == (2, 2, 4)
        assert out[..., 0].tolist() == [[0, 2], [8, 10]]

    def test_upscaling_repeats_pixels(self):
        src = np.array([[0, 255]], dtype=np.uint8)
        pixels = np.stack([src] * 4, axis=-1)
        out = resample(pixels, 4, 2)
        assert out[..., 0].tolist() == [[0, 0, 255, 255], [0, 0, 255, 255]]


class TestFlatten:
    def test_transparent_becomes_white(self):
        img = Image.new("RGBA", (3, 3), (0, 0, 0, 0))
        flat = flatten_on_white(img)
        assert (flat[..., :3] == 255).all()
        assert (flat[..., 3] == 255).all()

    def test_opaque_pixels_unchanged(self):
        img = Image.new("RGBA", (2, 2), (10, 20, 30, 255))
        flat = flatten_on_white(img)
        assert flat[0, 0].tolist() == [10, 20, 30, 255]

    def test_rgb_array_gets_alpha(self):
        arr = np.zeros((2, 3, 3), dtype=np.uint8)
        assert to_rgba_array(arr).shape == (2, 3, 4)

    def test_rejects_bad_shape(self):
        with pytest.raises(ValueError):
            to_rgba_array(np.zeros((2, 2, 2), dtype=np.uint8))


class TestSample:
    def test_output_dimensions_follow_canvas_size(self):
        img = Image.new("RGB", (200, 100), (128, 128, 128))
        assert sample(img, 80, True).shape == (40, 80, 4)
        assert sample(img, 30, False).shape == (30, 30, 4)

    def test_is_deterministic(self):
        rng = np.random.default_rng(7)
        pixels = rng.integers(0, 256, size=(37, 53, 4), dtype=np.uint8)
        first = sample(pixels, 20, True)
        second = sample(pixels, 20, True)
        assert np.array_equal(first, second)
