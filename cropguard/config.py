from __future__ import annotations

import os
from dataclasses import dataclass


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    # Storage (empty path keeps everything in memory)
    store_path: str = os.getenv("STORE_PATH", "")

    # Logging
    log_level: str = os.getenv("LOG_LEVEL", "INFO")

    # Uploads
    max_upload_bytes: int = int(os.getenv("MAX_UPLOAD_BYTES", str(10 * 1024 * 1024)))
    block_invalid_images: bool = _env_flag("BLOCK_INVALID_IMAGES", "true")

    # Vision AI
    gemini_api_key: str = os.getenv("GEMINI_API_KEY", "")
    gemini_models: str = os.getenv("GEMINI_MODELS", "gemini-2.0-flash,gemini-2.5-flash,gemini-1.5-flash")

    # Weather
    openweather_api_key: str = os.getenv("OPENWEATHER_API_KEY", "")
    weather_timeout_s: float = float(os.getenv("WEATHER_TIMEOUT_S", "10"))
    weather_retries: int = int(os.getenv("WEATHER_RETRIES", "2"))
    weather_cache_ttl_s: int = int(os.getenv("WEATHER_CACHE_TTL_S", "3600"))

    # Notifications
    twilio_account_sid: str = os.getenv("TWILIO_ACCOUNT_SID", "")
    twilio_auth_token: str = os.getenv("TWILIO_AUTH_TOKEN", "")
    twilio_whatsapp_from: str = os.getenv("TWILIO_WHATSAPP_FROM", "+14155238886")
    notification_timeout_s: float = float(os.getenv("NOTIFICATION_TIMEOUT_S", "10"))
    default_country_code: str = os.getenv("DEFAULT_COUNTRY_CODE", "27")


settings = Settings()
