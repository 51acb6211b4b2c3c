"""
JSON-safe encoding of domain objects for the key-value store and the API.

Datetimes are written as ISO-8601 strings with their UTC offset so a
decode of an encoded object compares equal to the original.
"""
from __future__ import annotations

from datetime import datetime
from typing import Any

from cropguard.core.crops import HEALTHY_LABELS
from cropguard.core.schemas import (
    AnalysisResult,
    CropHealthHistory,
    CropScan,
    Diagnosis,
    DiseaseCount,
    HistoryStatistics,
    ImageQualityResult,
    NotificationResult,
    Reminder,
    ReminderCounts,
    Treatment,
    WeatherConditions,
    WeatherReading,
)


def _dt(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _parse_dt(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


# ---------------------------------------------------------------------------
# Scans and history
# ---------------------------------------------------------------------------
def treatment_to_dict(t: Treatment) -> dict[str, Any]:
    return {"immediate": t.immediate, "prevention": t.prevention, "follow_up": t.follow_up}


def treatment_from_dict(d: dict[str, Any]) -> Treatment:
    return Treatment(
        immediate=d.get("immediate", ""),
        prevention=d.get("prevention", ""),
        follow_up=d.get("follow_up", ""),
    )


def scan_to_dict(scan: CropScan) -> dict[str, Any]:
    wc = scan.weather_conditions
    return {
        "id": scan.id,
        "timestamp": _dt(scan.timestamp),
        "crop_type": scan.crop_type,
        "field_section": scan.field_section,
        "is_healthy": scan.is_healthy,
        "detected_disease": scan.detected_disease,
        "severity": scan.severity,
        "confidence": scan.confidence,
        "treatment": treatment_to_dict(scan.treatment) if scan.treatment else None,
        "observations": scan.observations,
        "weather_conditions": (
            {"temperature": wc.temperature, "humidity": wc.humidity, "description": wc.description}
            if wc
            else None
        ),
    }


def scan_from_dict(d: dict[str, Any]) -> CropScan:
    disease = d.get("detected_disease")
    if disease is not None and disease.strip().lower() in HEALTHY_LABELS:
        disease = None

    wc = d.get("weather_conditions")
    return CropScan(
        id=d["id"],
        timestamp=_parse_dt(d["timestamp"]),
        crop_type=d["crop_type"],
        field_section=d.get("field_section") or "default",
        is_healthy=bool(d["is_healthy"]),
        detected_disease=disease,
        severity=d.get("severity", "none"),
        confidence=d.get("confidence", 0),
        treatment=treatment_from_dict(d["treatment"]) if d.get("treatment") else None,
        observations=d.get("observations"),
        weather_conditions=(
            WeatherConditions(
                temperature=wc["temperature"],
                humidity=wc["humidity"],
                description=wc.get("description", ""),
            )
            if wc
            else None
        ),
    )


def history_to_dict(h: CropHealthHistory) -> dict[str, Any]:
    return {
        "crop_id": h.crop_id,
        "crop_type": h.crop_type,
        "field_section": h.field_section,
        "scans": [scan_to_dict(s) for s in h.scans],
        "health_trend": h.health_trend,
        "risk_level": h.risk_level,
        "last_scanned": _dt(h.last_scanned),
        "total_scans": h.total_scans,
        "healthy_scans": h.healthy_scans,
        "diseased_scans": h.diseased_scans,
        "common_diseases": [{"name": c.name, "count": c.count} for c in h.common_diseases],
    }


def history_from_dict(d: dict[str, Any]) -> CropHealthHistory:
    return CropHealthHistory(
        crop_id=d["crop_id"],
        crop_type=d["crop_type"],
        field_section=d.get("field_section") or "default",
        scans=[scan_from_dict(s) for s in d.get("scans", [])],
        health_trend=d.get("health_trend", 0),
        risk_level=d.get("risk_level", "low"),
        last_scanned=_parse_dt(d.get("last_scanned")),
        total_scans=d.get("total_scans", 0),
        healthy_scans=d.get("healthy_scans", 0),
        diseased_scans=d.get("diseased_scans", 0),
        common_diseases=[DiseaseCount(name=c["name"], count=c["count"]) for c in d.get("common_diseases", [])],
    )


def statistics_to_dict(s: HistoryStatistics) -> dict[str, Any]:
    return {
        "total_crops": s.total_crops,
        "total_scans": s.total_scans,
        "total_healthy": s.total_healthy,
        "total_diseased": s.total_diseased,
        "health_rate": s.health_rate,
        "high_risk_crops": s.high_risk_crops,
        "medium_risk_crops": s.medium_risk_crops,
    }


# ---------------------------------------------------------------------------
# Reminders
# ---------------------------------------------------------------------------
def reminder_to_dict(r: Reminder) -> dict[str, Any]:
    return {
        "id": r.id,
        "user_id": r.user_id,
        "type": r.type,
        "priority": r.priority,
        "title": r.title,
        "message": r.message,
        "scheduled_for": _dt(r.scheduled_for),
        "created_at": _dt(r.created_at),
        "completed": r.completed,
        "action_required": r.action_required,
        "related_crop": r.related_crop,
        "related_scan_id": r.related_scan_id,
        "metadata": r.metadata,
    }


def reminder_from_dict(d: dict[str, Any]) -> Reminder:
    return Reminder(
        id=d["id"],
        user_id=d["user_id"],
        type=d["type"],
        priority=d["priority"],
        title=d["title"],
        message=d.get("message", ""),
        scheduled_for=_parse_dt(d["scheduled_for"]),
        created_at=_parse_dt(d["created_at"]),
        completed=bool(d.get("completed", False)),
        action_required=bool(d.get("action_required", True)),
        related_crop=d.get("related_crop"),
        related_scan_id=d.get("related_scan_id"),
        metadata=d.get("metadata"),
    )


def counts_to_dict(c: ReminderCounts) -> dict[str, int]:
    return {
        "total": c.total,
        "urgent": c.urgent,
        "high": c.high,
        "normal": c.normal,
        "low": c.low,
        "overdue": c.overdue,
    }


# ---------------------------------------------------------------------------
# Weather, quality, diagnosis
# ---------------------------------------------------------------------------
def weather_to_dict(w: WeatherReading) -> dict[str, Any]:
    return {
        "temperature": w.temperature,
        "humidity": w.humidity,
        "description": w.description,
        "wind_speed": w.wind_speed,
        "pressure": w.pressure,
        "location": w.location,
        "source": w.source,
        "fetched_at": _dt(w.fetched_at),
    }


def weather_from_dict(d: dict[str, Any]) -> WeatherReading:
    return WeatherReading(
        temperature=d["temperature"],
        humidity=d["humidity"],
        description=d.get("description", ""),
        wind_speed=d.get("wind_speed", 0.0),
        pressure=d.get("pressure"),
        location=d.get("location", ""),
        source=d.get("source", "live"),
        fetched_at=_parse_dt(d.get("fetched_at")),
    )


def quality_to_dict(q: ImageQualityResult) -> dict[str, Any]:
    return {
        "is_valid": q.is_valid,
        "score": q.score,
        "issues": list(q.issues),
        "warnings": list(q.warnings),
    }


def diagnosis_to_dict(d: Diagnosis) -> dict[str, Any]:
    return {
        "is_plant": d.is_plant,
        "is_healthy": d.is_healthy,
        "detected_disease": d.detected_disease,
        "plant_type": d.plant_type,
        "crop": d.crop,
        "confidence": d.confidence,
        "observations": d.observations,
        "treatment": treatment_to_dict(d.treatment),
        "severity": d.severity,
        "environmental_factors": d.environmental_factors,
        "farm_specific_advice": d.farm_specific_advice,
    }


def notification_to_dict(n: NotificationResult) -> dict[str, Any]:
    return {
        "sent": n.sent,
        "destination": n.destination,
        "message_id": n.message_id,
        "error": n.error,
    }


def analysis_to_dict(result: AnalysisResult) -> dict[str, Any]:
    return {
        "status": result.status.value,
        "quality": quality_to_dict(result.quality),
        "diagnosis": diagnosis_to_dict(result.diagnosis) if result.diagnosis else None,
        "scan": scan_to_dict(result.scan) if result.scan else None,
        "history": (
            {
                "crop_id": result.history.crop_id,
                "health_trend": result.history.health_trend,
                "risk_level": result.history.risk_level,
                "total_scans": result.history.total_scans,
                "healthy_scans": result.history.healthy_scans,
                "diseased_scans": result.history.diseased_scans,
                "common_diseases": [
                    {"name": c.name, "count": c.count} for c in result.history.common_diseases
                ],
            }
            if result.history
            else None
        ),
        "weather": weather_to_dict(result.weather) if result.weather else None,
        "reminders": [reminder_to_dict(r) for r in result.reminders],
        "notification": notification_to_dict(result.notification) if result.notification else None,
        "error": result.error,
    }
