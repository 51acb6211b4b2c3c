from __future__ import annotations

import re

from cropguard.core.schemas import DiagnosisOutcome, Diseased, Healthy


# Supported crops and the diseases the classifier is allowed to report for them.
CROP_DISEASES: dict[str, list[str]] = {
    "Apple": ["Apple scab", "Black rot", "Cedar apple rust"],
    "Bell pepper": ["Bacterial spot"],
    "Blueberry": [],
    "Cherry": ["Powdery mildew"],
    "Corn": ["Cercospora leaf spot", "Common rust", "Northern leaf blight"],
    "Grape": ["Black rot", "Esca (Black measles)", "Leaf blight"],
    "Peach": ["Bacterial spot"],
    "Potato": ["Early blight", "Late blight"],
    "Raspberry": [],
    "Soybean": [],
    "Squash": ["Powdery mildew"],
    "Strawberry": ["Leaf scorch"],
    "Tomato": [
        "Bacterial spot",
        "Early blight",
        "Late blight",
        "Leaf mold",
        "Septoria leaf spot",
        "Spider mites",
        "Target spot",
        "Yellow leaf curl virus",
        "Mosaic virus",
    ],
}

CROP_ALIASES: dict[str, str] = {
    "maize": "Corn",
    "corn maize": "Corn",
    "pepper": "Bell pepper",
    "pepper bell": "Bell pepper",
    "sweet pepper": "Bell pepper",
    "capsicum": "Bell pepper",
    "soya": "Soybean",
    "soy": "Soybean",
    "soya bean": "Soybean",
    "grapevine": "Grape",
}

# Labels older clients stored instead of a null disease.
HEALTHY_LABELS = frozenset({"healthy", "healthy leaf", "none", "no disease", "null"})

NOT_A_PLANT_LABELS = frozenset({"not a plant", "no plant", "none", "not plant", "non plant"})


def _normalize(text: str) -> str:
    text = text.lower().replace("_", " ")
    text = re.sub(r"[^a-z0-9() ]+", " ", text)
    return " ".join(text.split())


_CROP_INDEX = {_normalize(name): name for name in CROP_DISEASES}
_CROP_INDEX.update({_normalize(alias): name for alias, name in CROP_ALIASES.items()})


def is_not_a_plant(plant_type: str | None) -> bool:
    return plant_type is not None and _normalize(plant_type) in NOT_A_PLANT_LABELS


def match_crop(plant_type: str | None) -> str | None:
    """Case-insensitive lookup of a reported plant type in the supported crops."""
    if not plant_type:
        return None

    normalized = _normalize(plant_type)
    if normalized in _CROP_INDEX:
        return _CROP_INDEX[normalized]

    # "Tomato plant", "Healthy potato leaves", ...
    words = f" {normalized} "
    for key in sorted(_CROP_INDEX, key=len, reverse=True):
        if f" {key} " in words or f" {key}s " in words:
            return _CROP_INDEX[key]
    return None


def match_disease(crop: str | None, disease: str | None) -> DiagnosisOutcome:
    """
    Validate a reported disease against the crop's list.
    Anything not on the list collapses to Healthy.
    """
    if not crop or not disease:
        return Healthy()

    normalized = _normalize(disease)
    if normalized in HEALTHY_LABELS:
        return Healthy()

    crop_prefix = _normalize(crop) + " "
    for name in CROP_DISEASES.get(crop, []):
        candidate = _normalize(name)
        if normalized == candidate or normalized == crop_prefix + candidate:
            return Diseased(name=name)
    return Healthy()
