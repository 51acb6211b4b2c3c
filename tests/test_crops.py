import pytest

from cropguard.core.crops import CROP_DISEASES, is_not_a_plant, match_crop, match_disease
from cropguard.core.schemas import Diseased, Healthy


def test_thirteen_supported_crops():
    assert len(CROP_DISEASES) == 13


@pytest.mark.parametrize(
    "reported, expected",
    [
        ("Tomato", "Tomato"),
        ("tomato", "Tomato"),
        ("TOMATO PLANT", "Tomato"),
        ("Healthy potato leaves", "Potato"),
        ("Maize", "Corn"),
        ("Corn_(maize)", "Corn"),
        ("Pepper,_bell", "Bell pepper"),
        ("bell pepper", "Bell pepper"),
        ("Grapes", "Grape"),
        ("Mango", None),
        ("Rose bush", None),
        ("", None),
        (None, None),
    ],
)
def test_match_crop(reported, expected):
    assert match_crop(reported) == expected


@pytest.mark.parametrize("label", ["Not a plant", "not_a_plant", "NO PLANT", "non-plant"])
def test_not_a_plant_labels(label):
    assert is_not_a_plant(label)


def test_real_plant_is_a_plant():
    assert not is_not_a_plant("Tomato")
    assert not is_not_a_plant(None)


@pytest.mark.parametrize(
    "crop, disease, expected",
    [
        ("Tomato", "Early blight", Diseased("Early blight")),
        ("Tomato", "early_blight", Diseased("Early blight")),
        ("Tomato", "Tomato Late blight", Diseased("Late blight")),
        ("Corn", "common rust", Diseased("Common rust")),
        ("Grape", "Esca (Black measles)", Diseased("Esca (Black measles)")),
        ("Tomato", "Healthy", Healthy()),
        ("Tomato", None, Healthy()),
        ("Tomato", "Apple scab", Healthy()),
        ("Blueberry", "Powdery mildew", Healthy()),
        (None, "Early blight", Healthy()),
    ],
)
def test_match_disease(crop, disease, expected):
    assert match_disease(crop, disease) == expected
