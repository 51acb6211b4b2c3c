from __future__ import annotations

import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Callable

from cropguard.core.codec import reminder_from_dict, reminder_to_dict
from cropguard.core.policies import ReminderPolicy, WeatherAlertPolicy
from cropguard.core.schemas import (
    REMINDER_PRIORITIES,
    REMINDER_TYPES,
    Reminder,
    ReminderCounts,
    WeatherReading,
)
from cropguard.storage import KeyValueStore


logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ReminderService:
    """
    Scheduled action items per user.

    Mutators return True when the reminder existed and was changed, False
    for an unknown id; they never raise for a missing reminder.
    """

    storage_prefix = "smartReminders"

    def __init__(
        self,
        store: KeyValueStore,
        policy: ReminderPolicy | None = None,
        weather_policy: WeatherAlertPolicy | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.policy = policy or ReminderPolicy()
        self.weather_policy = weather_policy or WeatherAlertPolicy()
        self.clock = clock

    # ------------------------------------------------------------------
    # Storage
    # ------------------------------------------------------------------
    def _key(self, user_id: str) -> str:
        return f"{self.storage_prefix}_{user_id}"

    def _save(self, user_id: str, reminders: list[Reminder]) -> None:
        self.store.set(self._key(user_id), [reminder_to_dict(r) for r in reminders])

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def get_all_reminders(self, user_id: str) -> list[Reminder]:
        data = self.store.get(self._key(user_id))
        if not data:
            return []
        return [reminder_from_dict(r) for r in data]

    def get_active_reminders(self, user_id: str, priority: str | None = None) -> list[Reminder]:
        active = [r for r in self.get_all_reminders(user_id) if not r.completed]
        if priority is not None:
            active = [r for r in active if r.priority == priority]
        return sorted(active, key=lambda r: r.scheduled_for)

    def get_overdue_reminders(self, user_id: str) -> list[Reminder]:
        now = self.clock()
        return [r for r in self.get_active_reminders(user_id) if r.scheduled_for < now]

    def get_upcoming_reminders(self, user_id: str) -> list[Reminder]:
        now = self.clock()
        horizon = now + timedelta(days=self.policy.upcoming_days)
        return [r for r in self.get_active_reminders(user_id) if now <= r.scheduled_for <= horizon]

    def get_reminder_counts(self, user_id: str) -> ReminderCounts:
        active = self.get_active_reminders(user_id)
        now = self.clock()
        return ReminderCounts(
            total=len(active),
            urgent=sum(1 for r in active if r.priority == "urgent"),
            high=sum(1 for r in active if r.priority == "high"),
            normal=sum(1 for r in active if r.priority == "normal"),
            low=sum(1 for r in active if r.priority == "low"),
            overdue=sum(1 for r in active if r.scheduled_for < now),
        )

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------
    def add_reminder(
        self,
        user_id: str,
        type: str,
        priority: str,
        title: str,
        message: str,
        scheduled_for: datetime,
        action_required: bool = True,
        related_crop: str | None = None,
        related_scan_id: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> Reminder:
        if type not in REMINDER_TYPES:
            raise ValueError(f"Unknown reminder type: {type}")
        if priority not in REMINDER_PRIORITIES:
            raise ValueError(f"Unknown reminder priority: {priority}")
        if scheduled_for.tzinfo is None:
            scheduled_for = scheduled_for.replace(tzinfo=timezone.utc)

        reminder = Reminder(
            id=f"reminder_{uuid.uuid4().hex}",
            user_id=user_id,
            type=type,
            priority=priority,
            title=title,
            message=message,
            scheduled_for=scheduled_for,
            created_at=self.clock(),
            completed=False,
            action_required=action_required,
            related_crop=related_crop,
            related_scan_id=related_scan_id,
            metadata=metadata,
        )

        with self.store.lock(self._key(user_id)):
            reminders = self.get_all_reminders(user_id)
            reminders.append(reminder)
            self._save(user_id, reminders)

        logger.debug("Reminder %s (%s/%s) scheduled for %s", reminder.id, type, priority, scheduled_for)
        return reminder

    def create_treatment_reminder(
        self,
        user_id: str,
        crop_type: str,
        disease: str,
        treatment: str,
        days_until_application: int = 0,
    ) -> Reminder:
        return self.add_reminder(
            user_id,
            type="treatment",
            priority="urgent" if days_until_application == 0 else "high",
            title=f"Treat {crop_type} - {disease}",
            message=treatment,
            scheduled_for=self.clock() + timedelta(days=days_until_application),
            related_crop=crop_type,
        )

    def create_rescan_reminder(
        self,
        user_id: str,
        crop_type: str,
        scan_id: str,
        days_until_rescan: int | None = None,
    ) -> Reminder:
        days = self.policy.rescan_days if days_until_rescan is None else days_until_rescan
        return self.add_reminder(
            user_id,
            type="rescan",
            priority="normal",
            title=f"Rescan {crop_type}",
            message=(
                f"Time to check {crop_type} progress after treatment. "
                "Take a new photo to track improvement."
            ),
            scheduled_for=self.clock() + timedelta(days=days),
            related_crop=crop_type,
            related_scan_id=scan_id,
        )

    def create_weather_alert(
        self,
        user_id: str,
        crop_types: list[str],
        condition: str,
        recommendation: str,
        priority: str = "high",
    ) -> Reminder:
        return self.add_reminder(
            user_id,
            type="weather",
            priority=priority,
            title=f"Weather Alert - {condition}",
            message=f"{recommendation}\n\nAffected crops: {', '.join(crop_types)}",
            scheduled_for=self.clock(),
            metadata={"weather_condition": condition, "crops": list(crop_types)},
        )

    def create_seasonal_reminder(
        self,
        user_id: str,
        title: str,
        message: str,
        scheduled_for: datetime,
    ) -> Reminder:
        return self.add_reminder(
            user_id,
            type="seasonal",
            priority="normal",
            title=title,
            message=message,
            scheduled_for=scheduled_for,
            action_required=False,
        )

    def create_supply_reminder(self, user_id: str, item: str, days_remaining: int) -> Reminder:
        return self.add_reminder(
            user_id,
            type="supply",
            priority="high" if days_remaining <= self.policy.supply_high_days else "normal",
            title=f"Reorder {item}",
            message=f"You may be running low on {item}. Consider ordering more supplies.",
            scheduled_for=self.clock() + timedelta(days=days_remaining),
            metadata={"item": item},
        )

    def generate_weather_based_reminders(
        self,
        user_id: str,
        weather: WeatherReading,
        user_crops: list[str],
    ) -> list[Reminder]:
        wp = self.weather_policy
        created: list[Reminder] = []

        # Warm and humid: fungal pressure
        if weather.humidity > wp.fungal_humidity and weather.temperature > wp.fungal_temperature:
            created.append(self.create_weather_alert(
                user_id,
                user_crops,
                "High Humidity",
                "High risk of fungal diseases. Consider preventive fungicide application "
                "and ensure good air circulation.",
                "high",
            ))

        if weather.temperature > wp.heat_temperature:
            created.append(self.create_weather_alert(
                user_id,
                user_crops,
                "Extreme Heat",
                "Provide shade for sensitive crops and increase watering frequency. "
                "Monitor for heat stress.",
                "urgent",
            ))

        if weather.temperature < wp.frost_temperature:
            created.append(self.create_weather_alert(
                user_id,
                user_crops,
                "Frost Warning",
                "Protect sensitive crops from frost. Cover plants or move containers "
                "indoors if possible.",
                "urgent",
            ))

        if created:
            logger.info(
                "Weather %.1f°C / %.0f%% → %s alert(s) for user=%s",
                weather.temperature,
                weather.humidity,
                len(created),
                user_id,
            )
        return created

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------
    def _update(self, user_id: str, reminder_id: str, change: Callable[[Reminder], None]) -> bool:
        with self.store.lock(self._key(user_id)):
            reminders = self.get_all_reminders(user_id)
            reminder = next((r for r in reminders if r.id == reminder_id), None)
            if reminder is None:
                logger.debug("Reminder %s not found for user=%s", reminder_id, user_id)
                return False
            change(reminder)
            self._save(user_id, reminders)
        return True

    def complete_reminder(self, user_id: str, reminder_id: str) -> bool:
        def mark(r: Reminder) -> None:
            r.completed = True

        return self._update(user_id, reminder_id, mark)

    def snooze_reminder(self, user_id: str, reminder_id: str, hours: float) -> bool:
        def push(r: Reminder) -> None:
            r.scheduled_for = r.scheduled_for + timedelta(hours=hours)

        return self._update(user_id, reminder_id, push)

    def delete_reminder(self, user_id: str, reminder_id: str) -> bool:
        with self.store.lock(self._key(user_id)):
            reminders = self.get_all_reminders(user_id)
            kept = [r for r in reminders if r.id != reminder_id]
            if len(kept) == len(reminders):
                return False
            self._save(user_id, kept)
        return True

    def clean_old_reminders(self, user_id: str) -> int:
        cutoff = self.clock() - timedelta(days=self.policy.retention_days)
        with self.store.lock(self._key(user_id)):
            reminders = self.get_all_reminders(user_id)
            kept = [r for r in reminders if not r.completed or r.created_at > cutoff]
            removed = len(reminders) - len(kept)
            if removed:
                self._save(user_id, kept)

        if removed:
            logger.info("Removed %s completed reminders older than %s days for user=%s",
                        removed, self.policy.retention_days, user_id)
        return removed
