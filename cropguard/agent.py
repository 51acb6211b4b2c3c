from __future__ import annotations

import logging
from typing import Any

from cropguard.config import Settings
from cropguard.core.codec import analysis_to_dict, quality_to_dict
from cropguard.core.pipeline import AnalysisPipeline
from cropguard.core.policies import Policies
from cropguard.core.quality import ImageQualityGate
from cropguard.core.schemas import FarmProfile
from cropguard.core.trends import HealthTrendEngine
from cropguard.services.history_service import HistoryService
from cropguard.services.notification_service import NotificationService
from cropguard.services.reminder_service import ReminderService
from cropguard.services.vision_service import VisionService
from cropguard.services.weather_service import WeatherService
from cropguard.storage import KeyValueStore, build_store
from cropguard.vision import GeminiVisionClassifier
from cropguard.weather import OpenWeatherClient

logger = logging.getLogger(__name__)


class CropGuardAgent:
    """Wires storage, collaborators and engines into one object the API holds."""

    def __init__(
        self,
        settings: Settings,
        store: KeyValueStore | None = None,
        policies: Policies | None = None,
        classifier: GeminiVisionClassifier | None = None,
        weather_client: OpenWeatherClient | None = None,
    ):
        self.settings = settings
        self.policies = policies or Policies()
        self.store = store if store is not None else build_store(settings.store_path)

        self.quality_gate = ImageQualityGate(
            policy=self.policies.quality,
            sampling=self.policies.sampling,
        )
        self.history = HistoryService(
            store=self.store,
            engine=HealthTrendEngine(trend=self.policies.trend, risk=self.policies.risk),
        )
        self.reminders = ReminderService(
            store=self.store,
            policy=self.policies.reminders,
            weather_policy=self.policies.weather_alerts,
        )
        self.weather = WeatherService(
            client=weather_client or OpenWeatherClient(
                api_key=settings.openweather_api_key,
                timeout=settings.weather_timeout_s,
                retries=settings.weather_retries,
            ),
            store=self.store,
            ttl_s=settings.weather_cache_ttl_s,
        )
        self.vision = VisionService(
            classifier=classifier or GeminiVisionClassifier(api_key=settings.gemini_api_key)
        )
        self.notifications = NotificationService(
            account_sid=settings.twilio_account_sid,
            auth_token=settings.twilio_auth_token,
            from_number=settings.twilio_whatsapp_from,
            country_code=settings.default_country_code,
            timeout=settings.notification_timeout_s,
        )

        self.pipeline = AnalysisPipeline(
            quality_gate=self.quality_gate,
            vision=self.vision,
            weather=self.weather,
            history=self.history,
            reminders=self.reminders,
            notifications=self.notifications,
            block_invalid_images=settings.block_invalid_images,
            max_upload_bytes=settings.max_upload_bytes,
        )

        logger.info("CropGuardAgent initialized (store=%s)", type(self.store).__name__)

    def check_quality(self, image_bytes: bytes) -> dict[str, Any]:
        return quality_to_dict(self.quality_gate.validate(image_bytes))

    def analyze(
        self,
        user_id: str,
        image_bytes: bytes,
        mime_type: str,
        farm: FarmProfile,
        field_section: str | None = None,
    ) -> dict[str, Any]:
        result = self.pipeline.run(
            user_id=user_id,
            image_bytes=image_bytes,
            mime_type=mime_type,
            farm=farm,
            field_section=field_section,
        )
        return analysis_to_dict(result)
