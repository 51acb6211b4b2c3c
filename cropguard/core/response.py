from __future__ import annotations

from cropguard.core.schemas import Diagnosis, FarmProfile


MAX_MESSAGE_LENGTH = 1600


def _truncate(text: str | None, max_length: int) -> str:
    if not text:
        return ""
    return text[:max_length] + "..." if len(text) > max_length else text


class ResponseBuilder:
    def build_disease_alert(self, diagnosis: Diagnosis, farm: FarmProfile) -> str:
        lines: list[str] = ["🌱 CropGuard AI Alert", ""]

        lines.append(f"👤 {farm.user_name or 'Farmer'} | 🏡 {farm.farm_name or 'Farm'}")
        lines.append("")
        lines.append(f"🌿 Plant: {diagnosis.crop or diagnosis.plant_type or 'Unknown'}")
        lines.append(f"⚠️ Disease: {diagnosis.detected_disease or 'Unknown'}")
        lines.append(f"📊 Severity: {diagnosis.severity.upper() if diagnosis.severity else 'N/A'}")
        lines.append(f"🎯 Confidence: {round(diagnosis.confidence)}%")
        lines.append("")

        if diagnosis.observations:
            lines += ["🔬 Observations:", _truncate(diagnosis.observations, 200), ""]

        lines += ["💊 TREATMENT", ""]
        t = diagnosis.treatment
        if t.immediate:
            lines += ["⚡ Immediate:", _truncate(t.immediate, 250), ""]
        if t.prevention:
            lines += ["🛡️ Prevention:", _truncate(t.prevention, 250), ""]
        if t.follow_up:
            lines += ["📋 Follow-up:", _truncate(t.follow_up, 200), ""]

        if diagnosis.environmental_factors:
            lines += ["🌤️ Environment:", _truncate(diagnosis.environmental_factors, 150), ""]

        lines.append("📱 Check dashboard for full details.")
        lines.append("🤖 CropGuard AI")

        body = "\n".join(lines)
        if len(body) > MAX_MESSAGE_LENGTH:
            body = body[: MAX_MESSAGE_LENGTH - 3] + "..."
        return body
