"""Tests for report rendering, serialisation and label parsing."""

import json
from datetime import datetime, timezone

import pytest

from nfpcheck.core.errors import LabelDataError
from nfpcheck.core.models import (
    ComplianceReport,
    LabelData,
    LabelFormat,
    NutritionData,
    OverallStatus,
)
from nfpcheck.core.report import (
    format_report,
    parse_label_data,
    report_from_dict,
    report_to_dict,
)
from nfpcheck.core.validator import validate_label

NOW = datetime(2026, 1, 2, 3, 4, 5, tzinfo=timezone.utc)


def _busy_report() -> ComplianceReport:
    label = LabelData(
        nutrition_data=NutritionData(calories=90, total_fat=0.8, sodium=800, added_sugars=12),
        serving_size_g=30,
        servings_per_container=8,
        format=LabelFormat.STANDARD_VERTICAL,
        package_surface_area=15,
        claim_statements=("Fat free", "Healthy", "Good source of iron", "Artisanal"),
        racc_category_id="bakery-cookies",
    )
    return validate_label(label, now=NOW)


def test_report_survives_json() -> None:
    report = _busy_report()
    payload = json.loads(json.dumps(report_to_dict(report)))
    assert payload["overall_status"] == "errors"
    assert payload["validated_at"] == "2026-01-02T03:04:05+00:00"
    assert payload["results"][0]["details_type"] == "FormatDetails"
    assert report_from_dict(payload) == report


def test_not_validated_report_from_dict() -> None:
    payload = report_to_dict(ComplianceReport.not_validated(LabelFormat.LINEAR))
    report = report_from_dict(payload)
    assert report.overall_status == OverallStatus.NOT_VALIDATED
    assert report.label_format == LabelFormat.LINEAR


def test_report_from_dict_rejects_tampered_summary() -> None:
    payload = report_to_dict(_busy_report())
    payload["overall_status"] = "compliant"
    payload["errors_count"] = 0
    with pytest.raises(LabelDataError):
        report_from_dict(payload)


def test_report_from_dict_rejects_bad_timestamp() -> None:
    payload = report_to_dict(_busy_report())
    payload["validated_at"] = "last tuesday"
    with pytest.raises(LabelDataError):
        report_from_dict(payload)


def test_format_report_text() -> None:
    text = format_report(_busy_report())
    assert text.startswith("Nutrition Facts Compliance Report")
    assert "Status: ERRORS" in text
    assert "Validated at: 2026-01-02T03:04:05+00:00" in text
    assert "[WARNING] Format Package Size Mismatch" in text
    assert "recommendation=linear" in text
    assert "[ERROR] Mandatory Nutrient Declaration" in text
    assert "Citation: 21 CFR 101.9(c)" in text
    assert "RACC: Bakery Products: Cookies (30 g)" in text


def test_parse_label_data_accepts_camel_case() -> None:
    label = parse_label_data(
        {
            "nutritionData": {"totalFat": 5, "sodium": 140, "vitaminD": None},
            "servingSizeG": 30,
            "servingsPerContainer": 8,
            "format": "tabular",
            "packageSurfaceArea": 30,
            "claimStatements": ["Low sodium"],
            "raccCategoryId": "bakery-cookies",
        }
    )
    assert label.nutrition_data.total_fat == 5
    assert label.nutrition_data.sodium == 140
    assert label.nutrition_data.vitamin_d is None
    assert label.serving_size_g == 30
    assert label.format == LabelFormat.TABULAR
    assert label.claim_statements == ("Low sodium",)
    assert label.racc_category_id == "bakery-cookies"


def test_parse_label_data_with_reference_food() -> None:
    label = parse_label_data(
        {
            "nutrition_data": {"sodium": 300},
            "reference_nutrition_data": {"sodium": 500},
        }
    )
    assert label.reference_nutrition_data == NutritionData(sodium=500)
    assert label.format is None


@pytest.mark.parametrize(
    "payload",
    [
        {},
        {"nutrition_data": "lots"},
        {"nutrition_data": {"sodium": "lots"}},
        {"nutrition_data": {"sodium": -5}},
        {"nutrition_data": {"sodium": True}},
        {"nutrition_data": {"vitamin_q": 1}},
        {"nutrition_data": {}, "format": "poster"},
        {"nutrition_data": {}, "claim_statements": "Low sodium"},
        {"nutrition_data": {}, "serving_size_g": -30},
    ],
)
def test_parse_label_data_rejects_malformed_input(payload) -> None:
    with pytest.raises(LabelDataError):
        parse_label_data(payload)
