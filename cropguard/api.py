from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from fastapi import FastAPI, File, Form, HTTPException, Query, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from cropguard.agent import CropGuardAgent
from cropguard.config import settings
from cropguard.core.codec import (
    counts_to_dict,
    history_to_dict,
    reminder_to_dict,
    statistics_to_dict,
    weather_to_dict,
)
from cropguard.core.schemas import FarmProfile

logger = logging.getLogger(__name__)

app = FastAPI(
    title="CropGuard API",
    version="1.0.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

agent: CropGuardAgent | None = None


@app.on_event("startup")
def startup_event():
    global agent
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    if agent is None:
        logger.info("🌱 Initializing CropGuard agent...")
        agent = CropGuardAgent(settings=settings)
        logger.info("✅ CropGuard agent ready")


def _agent() -> CropGuardAgent:
    if agent is None:
        raise HTTPException(status_code=500, detail="Agent not initialized")
    return agent


# ---------------------------------------------------------------------------
# Request bodies
# ---------------------------------------------------------------------------
class ReminderIn(BaseModel):
    type: str
    priority: str = "normal"
    title: str
    message: str = ""
    scheduled_for: datetime
    action_required: bool = True
    related_crop: str | None = None
    metadata: dict[str, Any] | None = None


class SupplyReminderIn(BaseModel):
    item: str
    days_remaining: int = Field(ge=0)


class SeasonalReminderIn(BaseModel):
    title: str
    message: str
    scheduled_for: datetime


class WeatherRemindersIn(BaseModel):
    location: str
    crops: list[str] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Analysis
# ---------------------------------------------------------------------------
@app.get("/health")
def health():
    return {"status": "ok"}


@app.post("/quality")
async def check_quality(image: UploadFile = File(...)):
    data = await image.read()
    return _agent().check_quality(data)


@app.post("/analyze")
async def analyze_crop(
    image: UploadFile = File(...),
    user_id: str = Form(...),
    location: str = Form(""),
    user_name: str = Form("Farmer"),
    farm_name: str = Form("Farm"),
    farm_size: float | None = Form(None),
    crop_types: str = Form(""),
    experience_years: int | None = Form(None),
    phone_number: str | None = Form(None),
    field_section: str = Form("default"),
):
    cg = _agent()
    farm = FarmProfile(
        user_name=user_name,
        farm_name=farm_name,
        location=location,
        farm_size=farm_size,
        crop_types=[c.strip() for c in crop_types.split(",") if c.strip()],
        experience_years=experience_years,
        phone_number=phone_number or None,
    )
    data = await image.read()

    try:
        return cg.analyze(
            user_id=user_id,
            image_bytes=data,
            mime_type=image.content_type or "",
            farm=farm,
            field_section=field_section,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@app.get("/weather")
def get_weather(location: str = Query(..., min_length=1), user_id: str | None = None):
    return weather_to_dict(_agent().weather.get(location, user_id=user_id))


# ---------------------------------------------------------------------------
# Health history
# ---------------------------------------------------------------------------
@app.get("/users/{user_id}/history")
def list_history(user_id: str):
    return [history_to_dict(h) for h in _agent().history.get_all_history(user_id)]


@app.delete("/users/{user_id}/history")
def wipe_history(user_id: str):
    _agent().history.clear(user_id)
    return {"status": "ok"}


@app.get("/users/{user_id}/history/stats")
def history_stats(user_id: str):
    return statistics_to_dict(_agent().history.get_statistics(user_id))


@app.post("/users/{user_id}/history/cleanup")
def cleanup_history(user_id: str, keep: int = Query(50, ge=0)):
    return {"dropped": _agent().history.clean_old_scans(user_id, keep=keep)}


@app.get("/users/{user_id}/history/{crop_type}")
def crop_history(user_id: str, crop_type: str, field_section: str = "default"):
    h = _agent().history.get_crop_history(user_id, crop_type, field_section)
    if h is None:
        raise HTTPException(status_code=404, detail="history not found")
    return history_to_dict(h)


# ---------------------------------------------------------------------------
# Reminders
# ---------------------------------------------------------------------------
@app.get("/users/{user_id}/reminders")
def list_reminders(user_id: str, view: str = "active", priority: str | None = None):
    reminders = _agent().reminders
    if view == "active":
        items = reminders.get_active_reminders(user_id, priority=priority)
    elif view == "overdue":
        items = reminders.get_overdue_reminders(user_id)
    elif view == "upcoming":
        items = reminders.get_upcoming_reminders(user_id)
    elif view == "all":
        items = reminders.get_all_reminders(user_id)
    else:
        raise HTTPException(status_code=400, detail=f"unknown view: {view}")
    return [reminder_to_dict(r) for r in items]


@app.post("/users/{user_id}/reminders", status_code=201)
def create_reminder(user_id: str, body: ReminderIn):
    try:
        r = _agent().reminders.add_reminder(
            user_id,
            type=body.type,
            priority=body.priority,
            title=body.title,
            message=body.message,
            scheduled_for=body.scheduled_for,
            action_required=body.action_required,
            related_crop=body.related_crop,
            metadata=body.metadata,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return reminder_to_dict(r)


@app.post("/users/{user_id}/reminders/supply", status_code=201)
def create_supply_reminder(user_id: str, body: SupplyReminderIn):
    return reminder_to_dict(_agent().reminders.create_supply_reminder(user_id, body.item, body.days_remaining))


@app.post("/users/{user_id}/reminders/seasonal", status_code=201)
def create_seasonal_reminder(user_id: str, body: SeasonalReminderIn):
    r = _agent().reminders.create_seasonal_reminder(user_id, body.title, body.message, body.scheduled_for)
    return reminder_to_dict(r)


@app.post("/users/{user_id}/reminders/weather")
def weather_reminders(user_id: str, body: WeatherRemindersIn):
    cg = _agent()
    reading = cg.weather.get(body.location, user_id=user_id)
    created = cg.reminders.generate_weather_based_reminders(user_id, reading, body.crops)
    return {
        "weather": weather_to_dict(reading),
        "reminders": [reminder_to_dict(r) for r in created],
    }


@app.get("/users/{user_id}/reminders/counts")
def reminder_counts(user_id: str):
    return counts_to_dict(_agent().reminders.get_reminder_counts(user_id))


@app.post("/users/{user_id}/reminders/cleanup")
def cleanup_reminders(user_id: str):
    return {"removed": _agent().reminders.clean_old_reminders(user_id)}


@app.post("/users/{user_id}/reminders/{reminder_id}/complete")
def complete_reminder(user_id: str, reminder_id: str):
    if not _agent().reminders.complete_reminder(user_id, reminder_id):
        raise HTTPException(status_code=404, detail="reminder not found")
    return {"status": "ok"}


@app.post("/users/{user_id}/reminders/{reminder_id}/snooze")
def snooze_reminder(user_id: str, reminder_id: str, hours: float = Query(..., gt=0)):
    if not _agent().reminders.snooze_reminder(user_id, reminder_id, hours):
        raise HTTPException(status_code=404, detail="reminder not found")
    return {"status": "ok"}


@app.delete("/users/{user_id}/reminders/{reminder_id}")
def delete_reminder(user_id: str, reminder_id: str):
    if not _agent().reminders.delete_reminder(user_id, reminder_id):
        raise HTTPException(status_code=404, detail="reminder not found")
    return {"status": "ok"}
