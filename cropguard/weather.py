from __future__ import annotations

import logging
import math
import time
from datetime import datetime, timezone
from typing import Any

import requests

from cropguard.config import settings
from cropguard.core.schemas import WeatherReading


logger = logging.getLogger(__name__)


class OpenWeatherClient:
    """
    Current conditions from OpenWeatherMap, looked up by free-text location.

    Guarantees a STABLE output schema (``WeatherReading``) for downstream code.
    """

    url = "https://api.openweathermap.org/data/2.5/weather"

    def __init__(
        self,
        api_key: str | None = None,
        timeout: float | None = None,
        retries: int | None = None,
        backoff_s: float = 0.5,
    ):
        self.api_key = settings.openweather_api_key if api_key is None else api_key
        self.timeout = settings.weather_timeout_s if timeout is None else timeout
        self.retries = settings.weather_retries if retries is None else retries
        self.backoff_s = backoff_s

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    # ------------------------------------------------------------------
    # Internal HTTP helper
    # ------------------------------------------------------------------
    def _get(self, params: dict[str, Any]) -> dict[str, Any]:
        last_exc: Exception | None = None

        for attempt in range(self.retries + 1):
            try:
                response = requests.get(self.url, params=params, timeout=self.timeout)
                response.raise_for_status()
                return response.json()

            except Exception as exc:
                last_exc = exc
                logger.warning(
                    "Weather request failed (%s/%s): %s",
                    attempt + 1,
                    self.retries + 1,
                    exc,
                )
                if attempt < self.retries:
                    time.sleep(self.backoff_s)

        raise RuntimeError("Weather API request failed after retries") from last_exc

    # ------------------------------------------------------------------
    # Current conditions
    # ------------------------------------------------------------------
    def current(self, location: str) -> WeatherReading:
        if not location or not location.strip():
            raise ValueError("Location is required")
        if not self.configured:
            raise RuntimeError("OPENWEATHER_API_KEY not set")

        data = self._get({"q": location.strip(), "appid": self.api_key, "units": "metric"})

        main = data.get("main", {})
        if main.get("temp") is None or main.get("humidity") is None:
            raise ValueError("Weather response missing temperature/humidity")

        description = (data.get("weather") or [{}])[0].get("description", "")
        reading = WeatherReading(
            temperature=float(math.floor(main["temp"] + 0.5)),
            humidity=float(main["humidity"]),
            description=description,
            wind_speed=float(data.get("wind", {}).get("speed", 0.0)),
            pressure=main.get("pressure"),
            location=data.get("name") or location.strip(),
            source="live",
            fetched_at=datetime.now(timezone.utc),
        )

        logger.debug(
            "Weather %s → temp=%s humidity=%s (%s)",
            location,
            reading.temperature,
            reading.humidity,
            reading.description,
        )
        return reading
