from __future__ import annotations

import logging

from cropguard.core.image_stats import ImageStatsAnalyzer, decode_image
from cropguard.core.policies import QualityPolicy, SamplingPolicy
from cropguard.core.schemas import ImageQualityResult, ImageStats


logger = logging.getLogger(__name__)

UNABLE_TO_VALIDATE = "Unable to validate image quality. Please try another image."


class ImageQualityGate:
    """
    Advisory pass/fail decision about an image before it goes to the
    vision model. Checks are independent and never short-circuit.
    """

    def __init__(
        self,
        policy: QualityPolicy | None = None,
        analyzer: ImageStatsAnalyzer | None = None,
        sampling: SamplingPolicy | None = None,
    ):
        self.policy = policy or QualityPolicy()
        self.analyzer = analyzer or ImageStatsAnalyzer(sampling)

    def validate(self, data: bytes) -> ImageQualityResult:
        try:
            pixels = decode_image(data)
            height, width = pixels.shape[:2]
            stats = self.analyzer.analyze(pixels)
            blur_score = self.analyzer.estimate_blur(pixels)
            return self.evaluate(
                file_size=len(data),
                width=width,
                height=height,
                stats=stats,
                blur_score=blur_score,
            )
        except Exception as exc:
            logger.warning("Image quality validation failed: %s", exc)
            return ImageQualityResult(
                is_valid=False,
                score=0,
                issues=[UNABLE_TO_VALIDATE],
                warnings=[],
            )

    def evaluate(
        self,
        file_size: int,
        width: int,
        height: int,
        stats: ImageStats,
        blur_score: float,
    ) -> ImageQualityResult:
        p = self.policy
        issues: list[str] = []
        warnings: list[str] = []
        score = 100

        # File size
        size_mb = file_size / (1024 * 1024)
        if size_mb < p.min_size_mb:
            issues.append("Image file is too small (< 100KB). This may indicate poor quality.")
            score -= p.size_fail_penalty
        elif size_mb < p.warn_size_mb:
            warnings.append("Image file is small. Consider using a higher quality image for better results.")
            score -= p.size_warn_penalty

        # Resolution
        if width < p.min_side or height < p.min_side:
            issues.append(
                f"Image resolution is too low ({width}x{height}). "
                f"Minimum {p.min_side}x{p.min_side} pixels required."
            )
            score -= p.resolution_fail_penalty
        elif width < p.warn_side or height < p.warn_side:
            warnings.append(
                f"Image resolution is low ({width}x{height}). "
                f"{p.warn_side}x{p.warn_side} or higher recommended for best results."
            )
            score -= p.resolution_warn_penalty

        # Aspect ratio
        aspect = width / height if height else 0.0
        if aspect < p.min_aspect or aspect > p.max_aspect:
            warnings.append("Unusual aspect ratio detected. Try to capture plants in a more standard frame.")
            score -= p.aspect_penalty

        # Too dark
        if stats.avg_brightness < p.too_dark:
            issues.append("Image is too dark. Please take photo in better lighting conditions.")
            score -= p.too_dark_penalty
        elif stats.avg_brightness < p.dark:
            warnings.append("Image is somewhat dark. Better lighting will improve analysis accuracy.")
            score -= p.dark_penalty

        # Overexposed
        if stats.avg_brightness > p.overexposed:
            issues.append("Image is overexposed. Reduce lighting or avoid direct sunlight.")
            score -= p.overexposed_penalty
        elif stats.avg_brightness > p.bright:
            warnings.append("Image is quite bright. Slightly reduce exposure for better results.")
            score -= p.bright_penalty

        # Contrast
        if stats.contrast < p.min_contrast:
            warnings.append("Low image contrast detected. This may affect analysis accuracy.")
            score -= p.contrast_penalty

        # Blur
        if blur_score < p.blurry:
            issues.append("Image appears to be blurry. Please hold camera steady and ensure focus.")
            score -= p.blurry_penalty
        elif blur_score < p.soft:
            warnings.append("Image may be slightly out of focus. Ensure camera is focused on the plant.")
            score -= p.soft_penalty

        # Vegetation
        if stats.green_ratio < p.min_green_ratio:
            warnings.append(
                "Image doesn't appear to contain much vegetation. Ensure plant leaves are clearly visible."
            )
            score -= p.green_penalty

        score = max(0, min(100, score))

        logger.debug(
            "Quality %sx%s size=%s brightness=%.1f blur=%.1f → score=%s issues=%s",
            width,
            height,
            file_size,
            stats.avg_brightness,
            blur_score,
            score,
            len(issues),
        )

        return ImageQualityResult(
            is_valid=not issues,
            score=score,
            issues=issues,
            warnings=warnings,
        )
