from __future__ import annotations

import logging

from google import genai
from google.genai import types

from cropguard.config import settings


logger = logging.getLogger(__name__)


class GeminiVisionClassifier:
    """
    Multimodal prompt → text using the google-genai SDK.

    Models are tried in order until one answers; the client is created on
    first use so the service can start without an API key.
    """

    def __init__(self, api_key: str | None = None, models: list[str] | None = None):
        self.api_key = settings.gemini_api_key if api_key is None else api_key
        self.models = models or [m.strip() for m in settings.gemini_models.split(",") if m.strip()]
        self._client: genai.Client | None = None

    def _get_client(self) -> genai.Client:
        if self._client is None:
            if not self.api_key:
                raise ValueError("GEMINI_API_KEY environment variable is missing.")
            self._client = genai.Client(api_key=self.api_key)
            logger.info("Gemini client initialized")
        return self._client

    def generate(self, prompt: str, image_bytes: bytes, mime_type: str) -> str:
        client = self._get_client()
        image_part = types.Part.from_bytes(data=image_bytes, mime_type=mime_type)

        last_error: Exception | None = None
        for model_name in self.models:
            try:
                response = client.models.generate_content(
                    model=model_name,
                    contents=[prompt, image_part],
                )
                logger.info("Used model: %s", model_name)
                return (response.text or "").strip()
            except Exception as exc:
                logger.warning("Model %s failed: %s", model_name, exc)
                last_error = exc

        raise RuntimeError(f"All Gemini models failed. Last error: {last_error}")
