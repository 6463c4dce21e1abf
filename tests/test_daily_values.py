"""Tests for the Daily Value table and %DV arithmetic."""

import pytest

from nfpcheck.core.daily_values import (
    DailyValueTable,
    default_daily_values,
    percent_daily_values,
    percent_dv,
    round_half_up,
)
from nfpcheck.core.errors import CatalogError
from nfpcheck.core.models import NutritionData
from nfpcheck.core.nutrients import Nutrient


def test_round_half_up_is_not_bankers_rounding() -> None:
    assert round_half_up(0.5) == 1
    assert round_half_up(2.5) == 3
    assert round_half_up(13.4) == 13


def test_percent_dv_matches_regulation_examples() -> None:
    assert percent_dv(Nutrient.IRON, 2.5) == 14
    assert percent_dv(Nutrient.POTASSIUM, 940) == 20
    assert percent_dv(Nutrient.SODIUM, 2300) == 100


def test_percent_dv_accepts_camel_case_keys() -> None:
    assert percent_dv("totalFat", 39) == 50
    assert percent_dv("total_fat", 39) == 50


def test_percent_dv_zero_for_missing_or_non_positive_amounts() -> None:
    assert percent_dv(Nutrient.SODIUM, 0) == 0
    assert percent_dv(Nutrient.SODIUM, -10) == 0
    assert percent_dv(Nutrient.SODIUM, None) == 0


def test_nutrients_without_reference_are_unrated() -> None:
    table = default_daily_values()
    unrated = (Nutrient.CALORIES, Nutrient.TRANS_FAT, Nutrient.TOTAL_SUGARS, Nutrient.PROTEIN)
    for nutrient in unrated:
        assert not table.has_reference(nutrient)
        assert table.percent_dv(nutrient, 50) == 0
    assert table.reference(Nutrient.POTASSIUM) == 4700


def test_percent_dv_never_negative() -> None:
    table = default_daily_values()
    for nutrient in table.values:
        for amount in (0, 0.01, 1, 17.5, 5000):
            assert table.percent_dv(nutrient, amount) >= 0
        assert table.percent_dv(nutrient, 0) == 0


def test_percent_daily_values_skips_unrated_and_undeclared() -> None:
    data = NutritionData(sodium=230, protein=5, iron=None, calcium=130)
    assert percent_daily_values(data) == {Nutrient.SODIUM: 10, Nutrient.CALCIUM: 10}


def test_load_from_override_directory(tmp_path) -> None:
    (tmp_path / "daily_values.yaml").write_text(
        "table: test\ndaily_values:\n  sodium: 2000\n", encoding="utf-8"
    )
    table = DailyValueTable.load(tmp_path)
    assert table.name == "test"
    assert table.percent_dv(Nutrient.SODIUM, 1000) == 50
    assert not table.has_reference(Nutrient.IRON)


def test_load_rejects_bad_tables(tmp_path) -> None:
    with pytest.raises(CatalogError):
        DailyValueTable.load(tmp_path)

    (tmp_path / "daily_values.yaml").write_text(
        "daily_values:\n  sodium: -1\n", encoding="utf-8"
    )
    with pytest.raises(CatalogError):
        DailyValueTable.load(tmp_path)

    (tmp_path / "daily_values.yaml").write_text(
        "daily_values:\n  vitamin_q: 5\n", encoding="utf-8"
    )
    with pytest.raises(CatalogError):
        DailyValueTable.load(tmp_path)
