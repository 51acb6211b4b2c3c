from __future__ import annotations

from cropguard.core.policies import RiskPolicy, TrendPolicy
from cropguard.core.schemas import (
    CropHealthHistory,
    CropScan,
    Diseased,
    DiseaseCount,
)


def crop_key(crop_type: str, field_section: str | None = None) -> str:
    return f"{crop_type.lower()}_{(field_section or 'default').lower()}"


def _health_rate(scans: list[CropScan]) -> float:
    return sum(1 for s in scans if s.is_healthy) / len(scans)


class HealthTrendEngine:
    def __init__(self, trend: TrendPolicy | None = None, risk: RiskPolicy | None = None):
        self.trend = trend or TrendPolicy()
        self.risk = risk or RiskPolicy()

    def new_history(self, crop_type: str, field_section: str | None = None) -> CropHealthHistory:
        section = field_section or "default"
        return CropHealthHistory(
            crop_id=crop_key(crop_type, section),
            crop_type=crop_type,
            field_section=section,
        )

    def append_scan(self, history: CropHealthHistory, scan: CropScan) -> CropHealthHistory:
        history.scans.append(scan)
        history.last_scanned = scan.timestamp
        history.total_scans += 1

        if scan.is_healthy:
            history.healthy_scans += 1
        else:
            history.diseased_scans += 1

        outcome = scan.outcome
        if isinstance(outcome, Diseased):
            for entry in history.common_diseases:
                if entry.name == outcome.name:
                    entry.count += 1
                    break
            else:
                history.common_diseases.append(DiseaseCount(name=outcome.name, count=1))

        # stable: ties keep first-seen order
        history.common_diseases.sort(key=lambda d: d.count, reverse=True)

        history.health_trend = self.calculate_trend(history.scans)
        history.risk_level = self.calculate_risk(history)
        return history

    def recount(self, history: CropHealthHistory) -> CropHealthHistory:
        """Rebuild counters and derived state from the scans currently held."""
        scans = list(history.scans)
        history.scans = []
        history.total_scans = history.healthy_scans = history.diseased_scans = 0
        history.common_diseases = []
        history.health_trend = 0
        history.risk_level = "low"
        for scan in scans:
            self.append_scan(history, scan)
        return history

    def calculate_trend(self, scans: list[CropScan]) -> int:
        if len(scans) < 2:
            return 0

        window = self.trend.window
        recent = scans[-window:]
        older = scans[-2 * window:-window]
        if not older:
            return 0

        recent_rate = _health_rate(recent)
        older_rate = _health_rate(older)

        if recent_rate > older_rate + self.trend.hysteresis:
            return 1
        if recent_rate < older_rate - self.trend.hysteresis:
            return -1
        return 0

    def calculate_risk(self, history: CropHealthHistory) -> str:
        if history.total_scans == 0:
            return "low"

        health_rate = history.healthy_scans / history.total_scans
        recent = history.scans[-self.risk.recent_window:]
        recent_diseased = sum(1 for s in recent if not s.is_healthy)

        if recent_diseased >= self.risk.high_recent_diseased or health_rate < self.risk.high_health_rate:
            return "high"
        if recent_diseased == 1 or health_rate < self.risk.medium_health_rate:
            return "medium"
        return "low"
