from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Callable

from cropguard.core.quality import ImageQualityGate
from cropguard.core.schemas import (
    AnalysisResult,
    AnalysisStatus,
    CropScan,
    Diagnosis,
    FarmProfile,
    Reminder,
    WeatherConditions,
)
from cropguard.services.history_service import HistoryService
from cropguard.services.notification_service import NotificationService
from cropguard.services.reminder_service import ReminderService
from cropguard.services.vision_service import VisionService
from cropguard.services.weather_service import WeatherService


logger = logging.getLogger(__name__)

ALLOWED_MIME_TYPES = ("image/jpeg", "image/jpg", "image/png", "image/webp")

# reported severity → stored scan severity
SCAN_SEVERITY = {"mild": "low", "moderate": "medium", "severe": "high"}


def scan_severity(diagnosis: Diagnosis) -> str:
    if diagnosis.is_healthy:
        return "none"
    return SCAN_SEVERITY.get(diagnosis.severity, "low")


class AnalysisPipeline:
    def __init__(
        self,
        quality_gate: ImageQualityGate,
        vision: VisionService,
        weather: WeatherService,
        history: HistoryService,
        reminders: ReminderService,
        notifications: NotificationService | None = None,
        block_invalid_images: bool = True,
        max_upload_bytes: int = 10 * 1024 * 1024,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self.quality_gate = quality_gate
        self.vision = vision
        self.weather = weather
        self.history = history
        self.reminders = reminders
        self.notifications = notifications
        self.block_invalid_images = block_invalid_images
        self.max_upload_bytes = max_upload_bytes
        self.clock = clock

    def validate_upload(self, image_bytes: bytes, mime_type: str) -> None:
        if not image_bytes:
            raise ValueError("Please select an image first")
        if (mime_type or "").lower() not in ALLOWED_MIME_TYPES:
            raise ValueError("Please upload a valid image file (JPG, PNG, WEBP)")
        if len(image_bytes) > self.max_upload_bytes:
            raise ValueError(f"Image size should be less than {self.max_upload_bytes // (1024 * 1024)}MB")

    def run(
        self,
        user_id: str,
        image_bytes: bytes,
        mime_type: str,
        farm: FarmProfile,
        field_section: str | None = None,
    ) -> AnalysisResult:
        if not user_id:
            raise ValueError("user_id is required")
        self.validate_upload(image_bytes, mime_type)

        quality = self.quality_gate.validate(image_bytes)
        if not quality.is_valid and self.block_invalid_images:
            logger.info("Image rejected for user=%s (score=%s): %s", user_id, quality.score, quality.issues)
            return AnalysisResult(status=AnalysisStatus.REJECTED, quality=quality)

        weather = self.weather.get(farm.location, user_id=user_id)

        try:
            diagnosis = self.vision.diagnose(image_bytes, mime_type, farm, weather)
        except Exception as exc:
            logger.error("Analysis failed for user=%s: %s", user_id, exc)
            return AnalysisResult(
                status=AnalysisStatus.FAILED,
                quality=quality,
                weather=weather,
                error=str(exc),
            )

        if not diagnosis.is_plant:
            return AnalysisResult(
                status=AnalysisStatus.NOT_A_PLANT,
                quality=quality,
                diagnosis=diagnosis,
                weather=weather,
            )
        if diagnosis.crop is None:
            return AnalysisResult(
                status=AnalysisStatus.UNSUPPORTED_CROP,
                quality=quality,
                diagnosis=diagnosis,
                weather=weather,
            )

        scan = CropScan(
            id=f"scan_{uuid.uuid4().hex}",
            timestamp=self.clock(),
            crop_type=diagnosis.crop,
            field_section=field_section or "default",
            is_healthy=diagnosis.is_healthy,
            detected_disease=diagnosis.detected_disease,
            severity=scan_severity(diagnosis),
            confidence=diagnosis.confidence,
            treatment=diagnosis.treatment,
            observations=diagnosis.observations,
            weather_conditions=(
                WeatherConditions(
                    temperature=weather.temperature,
                    humidity=weather.humidity,
                    description=weather.description,
                )
                if weather.source != "default"
                else None
            ),
        )
        history = self.history.add_scan(user_id, scan)

        created: list[Reminder] = []
        notification = None
        if not diagnosis.is_healthy:
            created.append(self.reminders.create_treatment_reminder(
                user_id,
                scan.crop_type,
                diagnosis.detected_disease,
                diagnosis.treatment.immediate,
                days_until_application=0 if scan.severity == "high" else 1,
            ))
            created.append(self.reminders.create_rescan_reminder(user_id, scan.crop_type, scan.id))

            if farm.phone_number and self.notifications is not None:
                notification = self.notifications.send_disease_alert(farm.phone_number, diagnosis, farm)

        return AnalysisResult(
            status=AnalysisStatus.ANALYZED,
            quality=quality,
            diagnosis=diagnosis,
            scan=scan,
            history=history,
            weather=weather,
            reminders=created,
            notification=notification,
        )
