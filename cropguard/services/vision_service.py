from __future__ import annotations

import json
import logging
import re
from typing import Any

from cropguard.core.crops import CROP_DISEASES, is_not_a_plant, match_crop, match_disease
from cropguard.core.schemas import Diagnosis, Diseased, FarmProfile, Treatment, WeatherReading
from cropguard.vision import GeminiVisionClassifier


logger = logging.getLogger(__name__)

SEVERITIES = ("mild", "moderate", "severe")


def build_prompt(farm: FarmProfile, weather: WeatherReading | None) -> str:
    crops = ", ".join(farm.crop_types) if farm.crop_types else "Various crops"
    supported = ", ".join(CROP_DISEASES)

    if weather is not None and weather.source != "default":
        weather_block = (
            f"- Temperature: {weather.temperature}°C\n"
            f"- Humidity: {weather.humidity}%\n"
            f"- Weather: {weather.description}\n"
            f"- Wind Speed: {weather.wind_speed} m/s"
        )
    else:
        weather_block = "Weather data unavailable"

    return f"""
You are an expert agricultural AI assistant analyzing a crop image for {farm.user_name} from {farm.farm_name} farm.

FARM CONTEXT:
- Location: {farm.location or "Unknown"}
- Farm Size: {farm.farm_size if farm.farm_size is not None else "Unknown"} acres
- Farmer's Experience: {farm.experience_years if farm.experience_years is not None else "Unknown"} years
- Crops Grown: {crops}

CURRENT WEATHER CONDITIONS:
{weather_block}

Supported crops: {supported}.

Provide your analysis in this EXACT JSON format:
{{
  "isPlant": boolean,
  "isHealthy": boolean,
  "detectedDisease": "string or null",
  "plantType": "identified plant/crop type, or 'Not a plant'",
  "confidence": number (0-100),
  "observations": "string",
  "treatment": {{"immediate": "string", "prevention": "string", "followUp": "string"}},
  "severity": "mild/moderate/severe",
  "environmentalFactors": "string",
  "farmSpecificAdvice": "string"
}}
""".strip()


def extract_json(text: str) -> dict[str, Any]:
    # Outermost { ... } block, ignoring markdown fences or chatter around it
    match = re.search(r"\{.*\}", text, re.DOTALL)
    if not match:
        raise ValueError("No JSON found in response")
    data = json.loads(match.group(0))
    if not isinstance(data, dict):
        raise ValueError("Response JSON is not an object")
    return data


def _text(value: Any, default: str) -> str:
    if value is None:
        return default
    text = str(value).strip()
    return text or default


def _confidence(value: Any) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        number = 70.0
    return min(100.0, max(0.0, number))


def coerce_diagnosis(raw: dict[str, Any]) -> Diagnosis:
    """Default every field and validate the disease against the crop whitelist."""
    plant_type = _text(raw.get("plantType"), "Unknown plant")
    is_plant = raw.get("isPlant") is not False and not is_not_a_plant(plant_type)
    crop = match_crop(plant_type) if is_plant else None

    outcome = match_disease(crop, raw.get("detectedDisease"))
    if raw.get("detectedDisease") and not isinstance(outcome, Diseased):
        logger.info("Disease %r not recognised for crop %r; treating as healthy",
                    raw.get("detectedDisease"), crop)
    # the whitelisted disease decides; isHealthy is only cross-checked
    if raw.get("isHealthy") is True and isinstance(outcome, Diseased):
        logger.warning("Model reported isHealthy=true with disease %r on %r; recording as diseased",
                       outcome.name, crop)

    treatment = raw.get("treatment") if isinstance(raw.get("treatment"), dict) else {}
    severity = _text(raw.get("severity"), "mild").lower()
    if severity not in SEVERITIES:
        severity = "mild"

    return Diagnosis(
        is_plant=is_plant,
        is_healthy=not isinstance(outcome, Diseased),
        detected_disease=outcome.name if isinstance(outcome, Diseased) else None,
        plant_type=plant_type,
        crop=crop,
        confidence=_confidence(raw.get("confidence")),
        observations=_text(raw.get("observations"), "Analysis completed"),
        treatment=Treatment(
            immediate=_text(treatment.get("immediate"), "Monitor plant condition"),
            prevention=_text(treatment.get("prevention"), "Maintain proper plant care"),
            follow_up=_text(treatment.get("followUp"), "Regular health checks recommended"),
        ),
        severity=severity,
        environmental_factors=_text(raw.get("environmentalFactors"), "Weather conditions normal"),
        farm_specific_advice=_text(raw.get("farmSpecificAdvice"), "Continue current farming practices"),
    )


class VisionService:
    def __init__(self, classifier: GeminiVisionClassifier):
        self.classifier = classifier

    def diagnose(
        self,
        image_bytes: bytes,
        mime_type: str,
        farm: FarmProfile,
        weather: WeatherReading | None = None,
    ) -> Diagnosis:
        try:
            text = self.classifier.generate(build_prompt(farm, weather), image_bytes, mime_type)
            raw = extract_json(text)
        except Exception as e:
            # Hard failure should still surface; pipeline will catch and report
            raise RuntimeError(f"Vision analysis failed: {e}") from e

        diagnosis = coerce_diagnosis(raw)
        logger.info(
            "Diagnosis plant=%r crop=%r disease=%r confidence=%.0f",
            diagnosis.plant_type,
            diagnosis.crop,
            diagnosis.detected_disease,
            diagnosis.confidence,
        )
        return diagnosis
