from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class QualityPolicy:
    # File size (MB)
    min_size_mb: float = 0.1
    warn_size_mb: float = 0.5
    size_fail_penalty: int = 30
    size_warn_penalty: int = 10

    # Resolution (pixels, either side)
    min_side: int = 300
    warn_side: int = 640
    resolution_fail_penalty: int = 40
    resolution_warn_penalty: int = 15

    # Aspect ratio
    min_aspect: float = 0.5
    max_aspect: float = 2.0
    aspect_penalty: int = 5

    # Brightness (0-255)
    too_dark: float = 40.0
    dark: float = 70.0
    too_dark_penalty: int = 35
    dark_penalty: int = 10
    overexposed: float = 230.0
    bright: float = 200.0
    overexposed_penalty: int = 30
    bright_penalty: int = 8

    # Contrast
    min_contrast: float = 20.0
    contrast_penalty: int = 10

    # Blur (mean absolute Laplacian)
    blurry: float = 50.0
    soft: float = 100.0
    blurry_penalty: int = 40
    soft_penalty: int = 15

    # Vegetation
    min_green_ratio: float = 0.15
    green_penalty: int = 10


@dataclass(frozen=True)
class SamplingPolicy:
    stats_step: int = 10
    blur_step: int = 4
    blur_region: int = 640


@dataclass(frozen=True)
class TrendPolicy:
    window: int = 5
    hysteresis: float = 0.1


@dataclass(frozen=True)
class RiskPolicy:
    recent_window: int = 3
    high_recent_diseased: int = 2
    high_health_rate: float = 0.5
    medium_health_rate: float = 0.75


@dataclass(frozen=True)
class ReminderPolicy:
    rescan_days: int = 7
    upcoming_days: int = 7
    retention_days: int = 30
    supply_high_days: int = 3


@dataclass(frozen=True)
class WeatherAlertPolicy:
    fungal_humidity: float = 75.0
    fungal_temperature: float = 20.0
    heat_temperature: float = 35.0
    frost_temperature: float = 5.0


@dataclass(frozen=True)
class Policies:
    quality: QualityPolicy = QualityPolicy()
    sampling: SamplingPolicy = SamplingPolicy()
    trend: TrendPolicy = TrendPolicy()
    risk: RiskPolicy = RiskPolicy()
    reminders: ReminderPolicy = ReminderPolicy()
    weather_alerts: WeatherAlertPolicy = WeatherAlertPolicy()
