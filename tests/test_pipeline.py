import numpy as np
import pytest

from cropguard.core.pipeline import AnalysisPipeline, scan_severity
from cropguard.core.quality import ImageQualityGate
from cropguard.core.schemas import AnalysisStatus, FarmProfile, NotificationResult, WeatherReading
from cropguard.services.history_service import HistoryService
from cropguard.services.reminder_service import ReminderService
from cropguard.services.vision_service import VisionService, coerce_diagnosis
from cropguard.services.weather_service import WeatherService
from conftest import NOW, FailingWeatherClient, FakeClassifier, encode_png


DISEASED = {
    "isPlant": True,
    "isHealthy": False,
    "plantType": "Tomato",
    "detectedDisease": "Early blight",
    "confidence": 91,
    "severity": "severe",
    "treatment": {"immediate": "Remove infected leaves", "prevention": "Mulch", "followUp": "Rescan"},
}

HEALTHY = {"isPlant": True, "isHealthy": True, "plantType": "Corn", "detectedDisease": None, "confidence": 95}

FARM = FarmProfile(user_name="Lerato", farm_name="Riverside", location="Durban", crop_types=["Tomato"])


class SunnyWeatherClient:
    def current(self, location):
        return WeatherReading(temperature=26.0, humidity=55.0, description="clear sky", location=location)


class RecordingNotifier:
    def __init__(self):
        self.sent = []

    def send_disease_alert(self, destination, diagnosis, farm):
        self.sent.append((destination, diagnosis.detected_disease))
        return NotificationResult(sent=True, destination=destination, message_id="SM1")


def make_pipeline(store, clock, reply=None, error=None, weather_client=None, block=True, notifier=None):
    classifier = FakeClassifier(reply, error)
    pipeline = AnalysisPipeline(
        quality_gate=ImageQualityGate(),
        vision=VisionService(classifier),
        weather=WeatherService(weather_client or SunnyWeatherClient(), store, clock=clock),
        history=HistoryService(store),
        reminders=ReminderService(store, clock=clock),
        notifications=notifier,
        block_invalid_images=block,
        clock=clock,
    )
    return pipeline, classifier


def test_low_quality_image_is_rejected_before_diagnosis(store, clock):
    pipeline, classifier = make_pipeline(store, clock, reply=DISEASED)
    grey = encode_png(np.full((200, 200, 3), 128, dtype=np.uint8))

    result = pipeline.run("u1", grey, "image/png", FARM)

    assert result.status is AnalysisStatus.REJECTED
    assert not result.quality.is_valid
    assert classifier.calls == []
    assert pipeline.history.get_all_history("u1") == []


def test_low_quality_image_passes_when_blocking_disabled(store, clock):
    pipeline, classifier = make_pipeline(store, clock, reply=HEALTHY, block=False)
    grey = encode_png(np.full((200, 200, 3), 128, dtype=np.uint8))

    result = pipeline.run("u1", grey, "image/png", FARM)

    assert result.status is AnalysisStatus.ANALYZED
    assert not result.quality.is_valid
    assert len(classifier.calls) == 1


def test_diseased_crop_is_recorded_with_reminders_and_alert(store, clock, sharp_png):
    notifier = RecordingNotifier()
    farm = FarmProfile(user_name="Lerato", farm_name="Riverside", location="Durban", phone_number="0825551234")
    pipeline, _ = make_pipeline(store, clock, reply=DISEASED, notifier=notifier)

    result = pipeline.run("u1", sharp_png, "image/png", farm, field_section="north")

    assert result.status is AnalysisStatus.ANALYZED
    assert result.quality.is_valid
    scan = result.scan
    assert scan.crop_type == "Tomato"
    assert scan.field_section == "north"
    assert scan.detected_disease == "Early blight"
    assert scan.severity == "high"
    assert scan.timestamp == NOW
    assert scan.weather_conditions.description == "clear sky"

    assert result.history.crop_id == "tomato_north"
    assert result.history.diseased_scans == 1

    treatment, rescan = result.reminders
    assert treatment.type == "treatment"
    assert treatment.priority == "urgent"
    assert treatment.message == "Remove infected leaves"
    assert rescan.type == "rescan"
    assert rescan.related_scan_id == scan.id
    assert len(pipeline.reminders.get_active_reminders("u1")) == 2

    assert notifier.sent == [("0825551234", "Early blight")]
    assert result.notification.sent is True


def test_moderate_disease_schedules_treatment_for_tomorrow(store, clock, sharp_png):
    pipeline, _ = make_pipeline(store, clock, reply={**DISEASED, "severity": "moderate"})

    result = pipeline.run("u1", sharp_png, "image/png", FARM)

    assert result.scan.severity == "medium"
    assert result.reminders[0].priority == "high"
    assert result.notification is None


def test_healthy_crop_is_recorded_without_reminders(store, clock, sharp_png):
    notifier = RecordingNotifier()
    farm = FarmProfile(location="Durban", phone_number="0825551234")
    pipeline, _ = make_pipeline(store, clock, reply=HEALTHY, notifier=notifier)

    result = pipeline.run("u1", sharp_png, "image/jpeg", farm)

    assert result.status is AnalysisStatus.ANALYZED
    assert result.scan.is_healthy
    assert result.scan.severity == "none"
    assert result.history.crop_id == "corn_default"
    assert result.reminders == []
    assert notifier.sent == []


def test_not_a_plant_is_not_recorded(store, clock, sharp_png):
    pipeline, _ = make_pipeline(store, clock, reply={"isPlant": False, "plantType": "Not a plant"})

    result = pipeline.run("u1", sharp_png, "image/png", FARM)

    assert result.status is AnalysisStatus.NOT_A_PLANT
    assert result.scan is None
    assert pipeline.history.get_all_history("u1") == []


def test_unsupported_crop_is_not_recorded(store, clock, sharp_png):
    pipeline, _ = make_pipeline(store, clock, reply={"isPlant": True, "plantType": "Banana"})

    result = pipeline.run("u1", sharp_png, "image/png", FARM)

    assert result.status is AnalysisStatus.UNSUPPORTED_CROP
    assert result.diagnosis.plant_type == "Banana"
    assert pipeline.history.get_all_history("u1") == []


def test_vision_failure_is_reported(store, clock, sharp_png):
    pipeline, _ = make_pipeline(store, clock, error=RuntimeError("quota exceeded"))

    result = pipeline.run("u1", sharp_png, "image/png", FARM)

    assert result.status is AnalysisStatus.FAILED
    assert "quota exceeded" in result.error
    assert pipeline.history.get_all_history("u1") == []
    assert pipeline.reminders.get_all_reminders("u1") == []


def test_missing_weather_falls_back_to_default(store, clock, sharp_png):
    pipeline, classifier = make_pipeline(store, clock, reply=HEALTHY, weather_client=FailingWeatherClient())

    result = pipeline.run("u1", sharp_png, "image/png", FARM)

    assert result.weather.source == "default"
    assert result.scan.weather_conditions is None
    assert "Weather data unavailable" in classifier.calls[0][0]


@pytest.mark.parametrize(
    "image, mime",
    [
        (b"", "image/png"),
        (b"GIF89a...", "image/gif"),
        (b"%PDF-1.4", "application/pdf"),
    ],
)
def test_bad_uploads_raise_value_error(store, clock, image, mime):
    pipeline, _ = make_pipeline(store, clock, reply=HEALTHY)
    with pytest.raises(ValueError):
        pipeline.run("u1", image, mime, FARM)


def test_oversized_upload_raises_value_error(store, clock):
    pipeline, _ = make_pipeline(store, clock, reply=HEALTHY)
    pipeline.max_upload_bytes = 10
    with pytest.raises(ValueError, match="less than"):
        pipeline.run("u1", b"x" * 11, "image/png", FARM)


@pytest.mark.parametrize(
    "severity, expected",
    [("mild", "low"), ("moderate", "medium"), ("severe", "high")],
)
def test_scan_severity_mapping(severity, expected):
    diagnosis = coerce_diagnosis({**DISEASED, "severity": severity})
    assert scan_severity(diagnosis) == expected


def test_healthy_scan_severity_is_none():
    assert scan_severity(coerce_diagnosis(HEALTHY)) == "none"
