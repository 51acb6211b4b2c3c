from __future__ import annotations

import logging
import re
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from typing import Callable

from cropguard.core.codec import weather_from_dict, weather_to_dict
from cropguard.core.schemas import WeatherReading
from cropguard.storage import KeyValueStore
from cropguard.weather import OpenWeatherClient


logger = logging.getLogger(__name__)


def default_reading(location: str = "") -> WeatherReading:
    return WeatherReading(
        temperature=22.0,
        humidity=60.0,
        description="Weather data unavailable",
        wind_speed=0.0,
        pressure=None,
        location=location,
        source="default",
    )


class WeatherService:
    """
    Cached weather lookups that never raise.

    Order: fresh cache → live fetch → last known reading → neutral default.
    """

    storage_prefix = "weather"

    def __init__(
        self,
        client: OpenWeatherClient,
        store: KeyValueStore,
        ttl_s: int = 3600,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self.client = client
        self.store = store
        self.ttl = timedelta(seconds=ttl_s)
        self.clock = clock

    def _key(self, location: str, user_id: str | None) -> str:
        if user_id:
            return f"{self.storage_prefix}_{user_id}"
        return f"{self.storage_prefix}_" + re.sub(r"[^a-z0-9]+", "-", location.strip().lower())

    def get(self, location: str, user_id: str | None = None) -> WeatherReading:
        location = (location or "").strip()
        if not location:
            return default_reading()

        key = self._key(location, user_id)
        cached = self.store.get(key)
        if cached and cached.get("location") != location.lower():
            cached = None

        now = self.clock()
        if cached and datetime.fromisoformat(cached["expires"]) > now:
            return weather_from_dict(cached["data"])

        try:
            reading = self.client.current(location)
        except Exception as exc:
            logger.warning("Weather unavailable for %r: %s", location, exc)
            if cached:
                stale = weather_from_dict(cached["data"])
                return replace(stale, source="cache")
            return default_reading(location)

        self.store.set(key, {
            "location": location.lower(),
            "data": weather_to_dict(reading),
            "expires": (now + self.ttl).isoformat(),
        })
        return reading
