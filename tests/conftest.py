from __future__ import annotations

import io
import json
from datetime import datetime, timedelta, timezone

import numpy as np
import pytest
from PIL import Image

from cropguard.core.schemas import CropScan
from cropguard.storage import InMemoryStore


NOW = datetime(2026, 10, 16, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


class FakeClassifier:
    """Stands in for the Gemini client: returns a canned reply or raises."""

    def __init__(self, reply: dict | str | None = None, error: Exception | None = None):
        self.reply = reply
        self.error = error
        self.calls: list[tuple[str, bytes, str]] = []

    def generate(self, prompt: str, image_bytes: bytes, mime_type: str) -> str:
        self.calls.append((prompt, image_bytes, mime_type))
        if self.error is not None:
            raise self.error
        if isinstance(self.reply, dict):
            return "```json\n" + json.dumps(self.reply) + "\n```"
        return self.reply or ""


class FailingWeatherClient:
    def __init__(self):
        self.calls = 0

    def current(self, location: str):
        self.calls += 1
        raise RuntimeError("weather down")


def encode_png(pixels: np.ndarray) -> bytes:
    buf = io.BytesIO()
    Image.fromarray(pixels.astype(np.uint8), "RGB").save(buf, format="PNG")
    return buf.getvalue()


def noisy_image(width: int = 700, height: int = 700, seed: int = 0) -> np.ndarray:
    rng = np.random.default_rng(seed)
    return rng.integers(0, 256, size=(height, width, 3), dtype=np.uint8)


def make_scan(
    healthy: bool,
    disease: str | None = None,
    crop: str = "Tomato",
    section: str = "default",
    at: datetime = NOW,
    scan_id: str = "scan",
) -> CropScan:
    return CropScan(
        id=scan_id,
        timestamp=at,
        crop_type=crop,
        field_section=section,
        is_healthy=healthy,
        detected_disease=None if healthy else (disease or "Early blight"),
        severity="none" if healthy else "medium",
        confidence=85.0,
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def sharp_png() -> bytes:
    return encode_png(noisy_image())
