import numpy as np
import pytest

from cropguard.core.image_stats import ImageStatsAnalyzer, decode_image
from conftest import encode_png


analyzer = ImageStatsAnalyzer()


def test_stats_sample_every_tenth_pixel():
    pixels = np.zeros((2, 10, 3), dtype=np.uint8)
    pixels[0, 0] = (30, 60, 90)      # flat index 0 → sampled
    pixels[1, 0] = (90, 120, 150)    # flat index 10 → sampled
    pixels[0, 5] = (255, 255, 255)   # skipped

    stats = analyzer.analyze(pixels)

    assert stats.avg_red == pytest.approx(60.0)
    assert stats.avg_green == pytest.approx(90.0)
    assert stats.avg_blue == pytest.approx(120.0)
    assert stats.avg_brightness == pytest.approx(90.0)
    assert stats.contrast == pytest.approx(120.0 - 60.0)
    assert stats.green_ratio == pytest.approx(90.0 / 270.0)


def test_stats_black_image_has_no_division_by_zero():
    stats = analyzer.analyze(np.zeros((4, 4, 3), dtype=np.uint8))
    assert stats.avg_brightness == 0
    assert stats.green_ratio == 0


def test_blur_uniform_image_is_zero():
    pixels = np.full((100, 100, 3), 128, dtype=np.uint8)
    assert analyzer.estimate_blur(pixels) == 0.0


def test_blur_checkerboard_is_maximal():
    yy, xx = np.indices((50, 50))
    grey = np.where((yy + xx) % 2 == 0, 255, 0).astype(np.uint8)
    pixels = np.stack([grey, grey, grey], axis=2)

    # sampled centres sit on odd/odd coordinates, all bright with dark neighbours
    assert analyzer.estimate_blur(pixels) == pytest.approx(4 * 255)


def test_blur_tiny_image_returns_zero():
    assert analyzer.estimate_blur(np.zeros((2, 2, 3), dtype=np.uint8)) == 0.0


def test_blur_only_looks_at_top_left_region():
    pixels = np.full((700, 700, 3), 100, dtype=np.uint8)
    pixels[650:, 650:] = 255  # outside the 640x640 window
    assert analyzer.estimate_blur(pixels) == 0.0


def test_decode_image_returns_rgb_array():
    rgb = np.full((8, 12, 3), 40, dtype=np.uint8)
    decoded = decode_image(encode_png(rgb))
    assert decoded.shape == (8, 12, 3)
    assert decoded.dtype == np.uint8
