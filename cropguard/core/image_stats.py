from __future__ import annotations

import io

import numpy as np
from PIL import Image

from cropguard.core.policies import SamplingPolicy
from cropguard.core.schemas import ImageStats


def decode_image(data: bytes) -> np.ndarray:
    """Decode raw file bytes into an H x W x 3 uint8 RGB array."""
    with Image.open(io.BytesIO(data)) as image:
        return np.asarray(image.convert("RGB"), dtype=np.uint8)


class ImageStatsAnalyzer:
    """
    Cheap per-image statistics used by the quality gate.

    Brightness/colour are measured on every Nth pixel in row-major order;
    blur is the mean absolute Laplacian on a strided grid over the top-left
    region of the image. Higher blur score means a sharper image.
    """

    def __init__(self, sampling: SamplingPolicy | None = None):
        self.sampling = sampling or SamplingPolicy()

    def analyze(self, pixels: np.ndarray) -> ImageStats:
        samples = pixels.reshape(-1, 3)[:: self.sampling.stats_step].astype(np.float64)
        if samples.shape[0] == 0:
            return ImageStats(
                avg_brightness=0.0,
                contrast=0.0,
                green_ratio=0.0,
                avg_red=0.0,
                avg_green=0.0,
                avg_blue=0.0,
            )

        brightness = samples.sum(axis=1) / 3.0
        avg_red, avg_green, avg_blue = (float(v) for v in samples.mean(axis=0))
        channel_total = avg_red + avg_green + avg_blue

        return ImageStats(
            avg_brightness=float(brightness.mean()),
            contrast=float(brightness.max() - brightness.min()),
            green_ratio=avg_green / channel_total if channel_total > 0 else 0.0,
            avg_red=avg_red,
            avg_green=avg_green,
            avg_blue=avg_blue,
        )

    def estimate_blur(self, pixels: np.ndarray) -> float:
        region = self.sampling.blur_region
        step = self.sampling.blur_step

        h = min(pixels.shape[0], region)
        w = min(pixels.shape[1], region)
        if h < 3 or w < 3:
            return 0.0

        grey = pixels[:h, :w, :3].astype(np.float64).sum(axis=2) / 3.0

        center = grey[1:h - 1:step, 1:w - 1:step]
        top = grey[0:h - 2:step, 1:w - 1:step]
        bottom = grey[2:h:step, 1:w - 1:step]
        left = grey[1:h - 1:step, 0:w - 2:step]
        right = grey[1:h - 1:step, 2:w:step]

        if center.size == 0:
            return 0.0

        laplacian = np.abs(-4.0 * center + top + bottom + left + right)
        return float(laplacian.mean())
