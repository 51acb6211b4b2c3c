from __future__ import annotations

import logging

from cropguard.core.codec import history_from_dict, history_to_dict
from cropguard.core.schemas import CropHealthHistory, CropScan, HistoryStatistics
from cropguard.core.trends import HealthTrendEngine, crop_key
from cropguard.storage import KeyValueStore


logger = logging.getLogger(__name__)


class HistoryService:
    """Per-user scan history, one aggregate per (crop type, field section)."""

    storage_prefix = "cropHealthHistory"

    def __init__(self, store: KeyValueStore, engine: HealthTrendEngine | None = None, max_scans: int = 50):
        self.store = store
        self.engine = engine or HealthTrendEngine()
        self.max_scans = max_scans

    def _key(self, user_id: str) -> str:
        return f"{self.storage_prefix}_{user_id}"

    def _save(self, user_id: str, history: list[CropHealthHistory]) -> None:
        self.store.set(self._key(user_id), [history_to_dict(h) for h in history])

    def get_all_history(self, user_id: str) -> list[CropHealthHistory]:
        data = self.store.get(self._key(user_id))
        if not data:
            return []
        return [history_from_dict(h) for h in data]

    def get_crop_history(
        self,
        user_id: str,
        crop_type: str,
        field_section: str | None = None,
    ) -> CropHealthHistory | None:
        crop_id = crop_key(crop_type, field_section)
        for h in self.get_all_history(user_id):
            if h.crop_id == crop_id:
                return h
        return None

    def add_scan(self, user_id: str, scan: CropScan) -> CropHealthHistory:
        with self.store.lock(self._key(user_id)):
            history = self.get_all_history(user_id)
            crop_id = crop_key(scan.crop_type, scan.field_section)

            crop_history = next((h for h in history if h.crop_id == crop_id), None)
            if crop_history is None:
                crop_history = self.engine.new_history(scan.crop_type, scan.field_section)
                history.append(crop_history)

            self.engine.append_scan(crop_history, scan)
            self._save(user_id, history)

        logger.info(
            "Scan %s added for user=%s crop=%s → trend=%s risk=%s",
            scan.id,
            user_id,
            crop_id,
            crop_history.health_trend,
            crop_history.risk_level,
        )
        return crop_history

    def get_statistics(self, user_id: str) -> HistoryStatistics:
        history = self.get_all_history(user_id)
        total_scans = sum(h.total_scans for h in history)
        total_healthy = sum(h.healthy_scans for h in history)
        total_diseased = sum(h.diseased_scans for h in history)

        return HistoryStatistics(
            total_crops=len(history),
            total_scans=total_scans,
            total_healthy=total_healthy,
            total_diseased=total_diseased,
            health_rate=(total_healthy / total_scans) * 100 if total_scans > 0 else 0.0,
            high_risk_crops=sum(1 for h in history if h.risk_level == "high"),
            medium_risk_crops=sum(1 for h in history if h.risk_level == "medium"),
        )

    def clean_old_scans(self, user_id: str, keep: int | None = None) -> int:
        """Trim every crop to its latest scans; returns how many scans were dropped."""
        keep = self.max_scans if keep is None else keep
        dropped = 0
        with self.store.lock(self._key(user_id)):
            history = self.get_all_history(user_id)
            for h in history:
                if len(h.scans) > keep:
                    dropped += len(h.scans) - keep
                    h.scans = h.scans[-keep:] if keep > 0 else []
                    self.engine.recount(h)
            self._save(user_id, history)

        if dropped:
            logger.info("Dropped %s old scans for user=%s", dropped, user_id)
        return dropped

    def clear(self, user_id: str) -> None:
        with self.store.lock(self._key(user_id)):
            self.store.delete(self._key(user_id))
        logger.info("History wiped for user=%s", user_id)
