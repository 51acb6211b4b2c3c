from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Union


SCAN_SEVERITIES = ("none", "low", "medium", "high")
RISK_LEVELS = ("low", "medium", "high")
REMINDER_TYPES = ("treatment", "weather", "harvest", "supply", "seasonal", "rescan")
REMINDER_PRIORITIES = ("urgent", "high", "normal", "low")


# ---------------------------------------------------------------------------
# Image quality
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class ImageStats:
    avg_brightness: float
    contrast: float
    green_ratio: float
    avg_red: float
    avg_green: float
    avg_blue: float


@dataclass(frozen=True)
class ImageQualityResult:
    is_valid: bool
    score: int              # 0-100
    issues: list[str]       # hard failures
    warnings: list[str]     # soft, score reduction only


# ---------------------------------------------------------------------------
# Diagnosis outcome
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class Healthy:
    pass


@dataclass(frozen=True)
class Diseased:
    name: str


DiagnosisOutcome = Union[Healthy, Diseased]


@dataclass(frozen=True)
class Treatment:
    immediate: str
    prevention: str
    follow_up: str


@dataclass(frozen=True)
class WeatherConditions:
    temperature: float
    humidity: float
    description: str


# ---------------------------------------------------------------------------
# Scan history
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class CropScan:
    id: str
    timestamp: datetime
    crop_type: str
    is_healthy: bool
    detected_disease: str | None
    severity: str           # "none" | "low" | "medium" | "high"
    confidence: float       # 0-100
    field_section: str = "default"
    treatment: Treatment | None = None
    observations: str | None = None
    weather_conditions: WeatherConditions | None = None

    @property
    def outcome(self) -> DiagnosisOutcome:
        if self.detected_disease:
            return Diseased(name=self.detected_disease)
        return Healthy()


@dataclass
class DiseaseCount:
    name: str
    count: int


@dataclass
class CropHealthHistory:
    crop_id: str
    crop_type: str
    field_section: str
    scans: list[CropScan] = field(default_factory=list)
    health_trend: int = 0           # -1 declining, 0 stable, 1 improving
    risk_level: str = "low"         # "low" | "medium" | "high"
    last_scanned: datetime | None = None
    total_scans: int = 0
    healthy_scans: int = 0
    diseased_scans: int = 0
    common_diseases: list[DiseaseCount] = field(default_factory=list)


@dataclass(frozen=True)
class HistoryStatistics:
    total_crops: int
    total_scans: int
    total_healthy: int
    total_diseased: int
    health_rate: float      # percent
    high_risk_crops: int
    medium_risk_crops: int


# ---------------------------------------------------------------------------
# Reminders
# ---------------------------------------------------------------------------
@dataclass
class Reminder:
    id: str
    user_id: str
    type: str               # see REMINDER_TYPES
    priority: str           # see REMINDER_PRIORITIES
    title: str
    message: str
    scheduled_for: datetime
    created_at: datetime
    completed: bool = False
    action_required: bool = True
    related_crop: str | None = None
    related_scan_id: str | None = None
    metadata: dict[str, Any] | None = None


@dataclass(frozen=True)
class ReminderCounts:
    total: int
    urgent: int
    high: int
    normal: int
    low: int
    overdue: int


# ---------------------------------------------------------------------------
# Collaborators
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class WeatherReading:
    temperature: float
    humidity: float
    description: str
    wind_speed: float = 0.0
    pressure: float | None = None
    location: str = ""
    source: str = "live"    # "live" | "cache" | "default"
    fetched_at: datetime | None = None


@dataclass(frozen=True)
class FarmProfile:
    user_name: str = "Farmer"
    farm_name: str = "Farm"
    location: str = ""
    farm_size: float | None = None
    crop_types: list[str] = field(default_factory=list)
    experience_years: int | None = None
    phone_number: str | None = None


@dataclass(frozen=True)
class Diagnosis:
    is_plant: bool
    is_healthy: bool
    detected_disease: str | None
    plant_type: str
    crop: str | None        # whitelisted crop name, None when unsupported
    confidence: float
    observations: str
    treatment: Treatment
    severity: str           # as reported: "mild" | "moderate" | "severe"
    environmental_factors: str
    farm_specific_advice: str

    @property
    def outcome(self) -> DiagnosisOutcome:
        if self.detected_disease:
            return Diseased(name=self.detected_disease)
        return Healthy()


@dataclass(frozen=True)
class NotificationResult:
    sent: bool
    destination: str | None = None
    message_id: str | None = None
    error: str | None = None


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------
class AnalysisStatus(str, Enum):
    ANALYZED = "analyzed"
    NOT_A_PLANT = "not_a_plant"
    UNSUPPORTED_CROP = "unsupported_crop"
    REJECTED = "rejected"
    FAILED = "failed"


@dataclass(frozen=True)
class AnalysisResult:
    status: AnalysisStatus
    quality: ImageQualityResult
    diagnosis: Diagnosis | None = None
    scan: CropScan | None = None
    history: CropHealthHistory | None = None
    weather: WeatherReading | None = None
    reminders: list[Reminder] = field(default_factory=list)
    notification: NotificationResult | None = None
    error: str | None = None
