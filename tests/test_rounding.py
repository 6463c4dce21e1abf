"""Tests for the rounding engine."""

import math

import pytest

from nfpcheck.core.errors import CatalogError, LabelDataError
from nfpcheck.core.models import NutritionData, ServingContext
from nfpcheck.core.nutrients import Nutrient
from nfpcheck.core.rounding import (
    RoundingTable,
    format_amount,
    round_nutrient,
    round_nutrition,
    round_serving_amount,
    round_to_increment,
    servings_display,
)

SAMPLE_AMOUNTS = [
    0,
    0.2,
    0.49,
    0.5,
    0.7,
    1,
    1.4,
    2,
    2.3,
    3,
    4.9,
    5,
    7.4,
    12.6,
    49,
    50,
    50.1,
    55,
    93,
    137,
    140.2,
    142,
    260,
    1234.5,
]


@pytest.mark.parametrize("nutrient", list(Nutrient))
def test_rounding_is_idempotent(nutrient: Nutrient) -> None:
    for amount in SAMPLE_AMOUNTS:
        once = round_nutrient(nutrient, amount)
        assert round_nutrient(nutrient, once) == once, (nutrient, amount, once)


def test_serving_size_rounding_literal_cases() -> None:
    assert round_serving_amount(1.23) == pytest.approx(1.2)
    assert round_serving_amount(3.1) == 3.0
    assert round_serving_amount(3.4) == 3.5
    assert round_serving_amount(7.4) == 7


def test_servings_per_container_rounding() -> None:
    assert round_serving_amount(2.3) == 2.5
    assert servings_display(2.3) == "about 2.5"
    assert servings_display(8) == "8"
    assert servings_display(1.23) == "1.2"


def test_fractional_increment_does_not_drift() -> None:
    assert round_to_increment(0.3, 0.1) == 0.3
    assert round_to_increment(2.3, 0.5) == 2.5
    assert round_to_increment(55, 10) == 60


def test_calorie_bands() -> None:
    assert round_nutrient(Nutrient.CALORIES, 3) == 0
    assert round_nutrient(Nutrient.CALORIES, 47) == 45
    assert round_nutrient(Nutrient.CALORIES, 50) == 50
    assert round_nutrient(Nutrient.CALORIES, 52) == 50
    assert round_nutrient(Nutrient.CALORIES, 55) == 60


def test_fat_bands() -> None:
    assert round_nutrient(Nutrient.TOTAL_FAT, 0.4) == 0
    assert round_nutrient(Nutrient.TOTAL_FAT, 2.3) == 2.5
    assert round_nutrient(Nutrient.SATURATED_FAT, 6.6) == 7
    assert round_nutrient(Nutrient.TRANS_FAT, 0.2) == 0


def test_cholesterol_less_than_band() -> None:
    assert round_nutrient(Nutrient.CHOLESTEROL, 1) == 0
    assert round_nutrient(Nutrient.CHOLESTEROL, 3) == "less than 5"
    assert round_nutrient(Nutrient.CHOLESTEROL, 12) == 10


def test_sodium_bands() -> None:
    assert round_nutrient(Nutrient.SODIUM, 3) == 0
    assert round_nutrient(Nutrient.SODIUM, 137) == 135
    assert round_nutrient(Nutrient.SODIUM, 142) == 140


def test_carbohydrate_family_less_than_one() -> None:
    assert round_nutrient(Nutrient.TOTAL_CARBOHYDRATES, 0.7) == "less than 1"
    assert round_nutrient(Nutrient.DIETARY_FIBER, 0.2) == 0
    assert round_nutrient(Nutrient.PROTEIN, 12.6) == 13


def test_insignificant_micronutrients_declared_as_zero() -> None:
    assert round_nutrient(Nutrient.IRON, 0.3) == 0
    assert round_nutrient(Nutrient.CALCIUM, 24) == 0
    assert round_nutrient(Nutrient.CALCIUM, 26.4) == 30
    assert round_nutrient(Nutrient.POTASSIUM, 93) == 0
    assert round_nutrient(Nutrient.IRON, 2.53) == pytest.approx(2.5)


def test_qualifier_strings_pass_through() -> None:
    assert round_nutrient(Nutrient.CHOLESTEROL, "less than 5") == "less than 5"
    assert round_nutrient(Nutrient.PROTEIN, "Less  than 1") == "less than 1"
    assert round_nutrient("totalCarbohydrates", "12.6") == 13


def test_not_measured_passes_through() -> None:
    assert round_nutrient(Nutrient.SODIUM, None) is None


def test_invalid_amounts_raise() -> None:
    with pytest.raises(LabelDataError):
        round_nutrient(Nutrient.SODIUM, -1)
    with pytest.raises(LabelDataError):
        round_nutrient(Nutrient.SODIUM, math.nan)
    with pytest.raises(LabelDataError):
        round_nutrient(Nutrient.SODIUM, "a lot")
    with pytest.raises(ValueError):
        round_nutrient("vitamin_q", 1)


def test_round_nutrition_with_serving_context() -> None:
    data = NutritionData(calories=47, sodium=142, cholesterol=3)
    rounded = round_nutrition(data, ServingContext(serving_size_g=30, servings_per_container=2.3))

    assert rounded.calories == 45
    assert rounded.sodium == 140
    assert rounded.cholesterol == "less than 5"
    assert rounded.total_fat is None
    assert rounded.serving is not None
    assert rounded.serving.serving_size_g == 30
    assert rounded.serving.servings_per_container == 2.5
    assert rounded.serving.servings_display == "about 2.5"


def test_round_nutrition_without_context() -> None:
    rounded = round_nutrition(NutritionData(protein=0.7))
    assert rounded.protein == "less than 1"
    assert rounded.serving is None


def test_round_nutrition_requires_data() -> None:
    with pytest.raises(LabelDataError):
        round_nutrition(None)  # type: ignore[arg-type]


def test_format_amount() -> None:
    assert format_amount(8.0) == "8"
    assert format_amount(2.5) == "2.5"


def test_rounding_table_requires_every_nutrient(tmp_path) -> None:
    (tmp_path / "rounding.yaml").write_text(
        "nutrients:\n  calories:\n    bands:\n      - {nearest: 10}\n", encoding="utf-8"
    )
    with pytest.raises(CatalogError, match="no rule for"):
        RoundingTable.load(tmp_path)


def test_rounding_table_rejects_bounded_last_band(tmp_path) -> None:
    (tmp_path / "rounding.yaml").write_text(
        "nutrients:\n  calories:\n    bands:\n      - {below: 5, zero: true}\n",
        encoding="utf-8",
    )
    with pytest.raises(CatalogError, match="unbounded"):
        RoundingTable.load(tmp_path)
