"""Compliance report rendering, serialisation and label input parsing."""

from __future__ import annotations

import math
from dataclasses import asdict, fields, is_dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Mapping

from dateutil import parser as date_parser

from nfpcheck.core.errors import LabelDataError
from nfpcheck.core.models import (
    ClaimThresholdDetails,
    ComplianceReport,
    ContainerRule,
    DailyValueClaimDetails,
    FormatDetails,
    HealthyClaimDetails,
    LabelData,
    LabelFormat,
    MessageType,
    MissingNutrientsDetails,
    NutritionData,
    OverallStatus,
    RaccCategory,
    RaccDetails,
    RelativeClaimDetails,
    ResultDetails,
    RoundingDetails,
    RuleType,
    ServingSizeValidation,
    Severity,
    Status,
    UnrecognizedClaimDetails,
    ValidationMessage,
    ValidationResult,
)
from nfpcheck.core.nutrients import Nutrient, parse_nutrient
from nfpcheck.core.rounding import format_amount

_DETAIL_TYPES: dict[str, type] = {
    cls.__name__: cls
    for cls in (
        FormatDetails,
        RoundingDetails,
        MissingNutrientsDetails,
        ClaimThresholdDetails,
        DailyValueClaimDetails,
        HealthyClaimDetails,
        RelativeClaimDetails,
        UnrecognizedClaimDetails,
        RaccDetails,
    )
}

# Fields whose JSON form needs converting back to an enum or tuple.
_DETAIL_FIELD_TYPES: dict[str, Any] = {
    "current_format": LabelFormat,
    "recommendation": LabelFormat,
    "nutrient": Nutrient,
    "missing_nutrients": tuple,
    "violations": tuple,
}


def dataclass_to_dict(obj: Any) -> Any:
    if obj is None:
        return None
    if isinstance(obj, datetime):
        return obj.isoformat()
    if isinstance(obj, Enum):
        return obj.value
    if is_dataclass(obj) and not isinstance(obj, type):
        return {f.name: dataclass_to_dict(getattr(obj, f.name)) for f in fields(obj)}
    if isinstance(obj, (list, tuple)):
        return [dataclass_to_dict(value) for value in obj]
    if isinstance(obj, Mapping):
        return {dataclass_to_dict(key): dataclass_to_dict(value) for key, value in obj.items()}
    return obj


def _result_to_dict(result: ValidationResult) -> dict[str, Any]:
    data = dataclass_to_dict(result)
    data["details_type"] = type(result.details).__name__ if result.details else None
    return data


def report_to_dict(report: ComplianceReport) -> dict[str, Any]:
    """JSON-ready form of a report; details carry their type name for round-tripping."""
    return {
        "overall_status": report.overall_status.value,
        "errors_count": report.errors_count,
        "warnings_count": report.warnings_count,
        "validated_at": dataclass_to_dict(report.validated_at),
        "label_format": dataclass_to_dict(report.label_format),
        "results": [_result_to_dict(r) for r in report.results],
        "racc_validation": dataclass_to_dict(report.racc_validation),
    }


def _parse_details(type_name: str | None, payload: Any) -> ResultDetails | None:
    if not type_name or payload is None:
        return None
    cls = _DETAIL_TYPES.get(type_name)
    if cls is None:
        raise LabelDataError(f"Unknown details type: {type_name}")
    values: dict[str, Any] = {}
    for f in fields(cls):
        if f.name not in payload:
            continue
        value = payload[f.name]
        convert = _DETAIL_FIELD_TYPES.get(f.name)
        values[f.name] = convert(value) if convert is not None and value is not None else value
    try:
        return cls(**values)
    except TypeError as exc:
        raise LabelDataError(f"Malformed {type_name}: {exc}") from exc


def _parse_result(data: Mapping[str, Any]) -> ValidationResult:
    try:
        return ValidationResult(
            rule_id=data["rule_id"],
            rule_name=data["rule_name"],
            rule_type=RuleType(data["rule_type"]),
            status=Status(data["status"]),
            severity=Severity(data["severity"]),
            message=data["message"],
            citation=data.get("citation"),
            details=_parse_details(data.get("details_type"), data.get("details")),
        )
    except KeyError as exc:
        raise LabelDataError(f"Result is missing field {exc}") from exc


def _parse_racc_validation(data: Mapping[str, Any] | None) -> ServingSizeValidation | None:
    if not data:
        return None
    category = data.get("racc_category")
    racc = None
    if category:
        racc = RaccCategory(
            id=category["id"],
            category=category["category"],
            reference_amount=float(category["reference_amount"]),
            unit=category.get("unit", "g"),
            subcategory=category.get("subcategory"),
            household_measure=category.get("household_measure"),
            label_statement=category.get("label_statement", ""),
            product_examples=tuple(category.get("product_examples") or ()),
            format_hints=tuple(LabelFormat(h) for h in category.get("format_hints") or ()),
        )
    messages = tuple(
        ValidationMessage(
            type=MessageType(m["type"]),
            message=m["message"],
            citation=m.get("citation"),
            details=RaccDetails(**m["details"]) if m.get("details") else None,
        )
        for m in data.get("messages") or ()
    )
    return ServingSizeValidation(
        is_valid=bool(data.get("is_valid")),
        racc_category=racc,
        suggested_serving_size=data.get("suggested_serving_size"),
        suggested_household_measure=data.get("suggested_household_measure"),
        messages=messages,
        single_serving_required=bool(data.get("single_serving_required")),
        container_rule=ContainerRule(data.get("container_rule", ContainerRule.STANDARD.value)),
    )


def report_from_dict(data: Mapping[str, Any]) -> ComplianceReport:
    """
    Rebuild a report stored with report_to_dict.

    Counts and status are recomputed and must agree with the stored ones.

    Raises:
        LabelDataError: If the payload is malformed or inconsistent
    """
    try:
        status = OverallStatus(data["overall_status"])
        label_format = LabelFormat(data["label_format"]) if data.get("label_format") else None
    except (KeyError, ValueError) as exc:
        raise LabelDataError(f"Malformed report: {exc}") from exc

    if status == OverallStatus.NOT_VALIDATED:
        return ComplianceReport.not_validated(label_format)

    validated_at = _parse_datetime(data.get("validated_at"))
    if validated_at is None:
        raise LabelDataError("Malformed report: validated_at is required")
    try:
        results = [_parse_result(r) for r in data.get("results") or ()]
        racc_validation = _parse_racc_validation(data.get("racc_validation"))
    except (KeyError, ValueError) as exc:
        raise LabelDataError(f"Malformed report: {exc}") from exc

    report = ComplianceReport.build(
        results,
        validated_at=validated_at,
        label_format=label_format,
        racc_validation=racc_validation,
    )
    stored = (status, data.get("errors_count"), data.get("warnings_count"))
    derived = (report.overall_status, report.errors_count, report.warnings_count)
    if stored != derived:
        raise LabelDataError(f"Report summary {stored} does not match its results {derived}")
    return report


def _parse_datetime(value: Any) -> datetime | None:
    if not value:
        return None
    if isinstance(value, datetime):
        return value
    try:
        return date_parser.isoparse(str(value))
    except (ValueError, TypeError) as exc:
        raise LabelDataError(f"Invalid timestamp: {value!r}") from exc


def format_report(report: ComplianceReport) -> str:
    """Plain-text report for terminals and export appendices."""
    title = "Nutrition Facts Compliance Report"
    lines = [title, "=" * len(title)]
    lines.append(f"Status: {report.overall_status.value.upper()}")
    lines.append(f"Errors: {report.errors_count}")
    lines.append(f"Warnings: {report.warnings_count}")
    if report.validated_at is not None:
        lines.append(f"Validated at: {report.validated_at.isoformat()}")
    if report.label_format is not None:
        lines.append(f"Format: {report.label_format.value}")

    racc = report.racc_validation
    if racc is not None and racc.racc_category is not None:
        category = racc.racc_category
        lines.append(
            f"RACC: {category.description} "
            f"({format_amount(category.reference_amount)} {category.unit})"
        )
        if racc.suggested_serving_size is not None:
            lines.append(f"Suggested serving size: {format_amount(racc.suggested_serving_size)}g")

    for result in report.results:
        lines.append("")
        tag = "PASS" if result.status == Status.PASS else result.severity.value.upper()
        lines.append(f"[{tag}] {result.rule_name}")
        lines.append(f"  {result.message}")
        if result.citation:
            lines.append(f"  Citation: {result.citation}")
        if result.details is not None:
            lines.append(f"  Details: {_details_text(result.details)}")
    return "\n".join(lines)


def _details_text(details: ResultDetails) -> str:
    parts = []
    for key, value in asdict(details).items():
        if value is None or value == ():
            continue
        if isinstance(value, Enum):
            value = value.value
        elif isinstance(value, tuple):
            value = ", ".join(str(v) for v in value)
        elif isinstance(value, float):
            value = format_amount(value)
        parts.append(f"{key}={value}")
    return "; ".join(parts)


def _key(data: Mapping[str, Any], snake: str, camel: str) -> Any:
    return data[snake] if snake in data else data.get(camel)


def _number(value: Any, name: str) -> float | None:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise LabelDataError(f"{name} must be a number, got {value!r}")
    number = float(value)
    if math.isnan(number) or math.isinf(number) or number < 0:
        raise LabelDataError(f"{name} must be a non-negative number, got {value!r}")
    return number


def parse_nutrition_data(data: Any, name: str = "nutrition_data") -> NutritionData:
    """Build NutritionData from a mapping with snake_case or camelCase nutrient keys."""
    if not isinstance(data, Mapping):
        raise LabelDataError(f"{name} must be an object")
    values: dict[str, float | None] = {}
    for key, raw in data.items():
        try:
            nutrient = parse_nutrient(key)
        except ValueError as exc:
            raise LabelDataError(f"{name}: {exc}") from exc
        values[nutrient.value] = _number(raw, f"{name}.{key}")
    return NutritionData(**values)


def parse_label_data(data: Mapping[str, Any]) -> LabelData:
    """
    Build LabelData from a decoded JSON object.

    Raises:
        LabelDataError: For a missing nutrition_data object, non-numeric or
            negative amounts, an unknown format or non-string claims
    """
    if not isinstance(data, Mapping):
        raise LabelDataError("Label data must be an object")
    nutrition = _key(data, "nutrition_data", "nutritionData")
    if nutrition is None:
        raise LabelDataError("nutrition_data is required")

    reference = _key(data, "reference_nutrition_data", "referenceNutritionData")
    format_value = data.get("format")
    try:
        label_format = LabelFormat(format_value) if format_value else None
    except ValueError as exc:
        raise LabelDataError(f"Unknown label format: {format_value!r}") from exc

    claims = _key(data, "claim_statements", "claimStatements") or []
    if not isinstance(claims, list) or not all(isinstance(c, str) for c in claims):
        raise LabelDataError("claim_statements must be a list of strings")

    household = _key(data, "serving_size_household", "servingSizeHousehold")
    category_id = _key(data, "racc_category_id", "raccCategoryId")
    return LabelData(
        nutrition_data=parse_nutrition_data(nutrition),
        serving_size_g=_number(_key(data, "serving_size_g", "servingSizeG"), "serving_size_g"),
        serving_size_household=str(household) if household else None,
        servings_per_container=_number(
            _key(data, "servings_per_container", "servingsPerContainer"), "servings_per_container"
        ),
        format=label_format,
        package_surface_area=_number(
            _key(data, "package_surface_area", "packageSurfaceArea"), "package_surface_area"
        ),
        claim_statements=tuple(claims),
        racc_category_id=str(category_id) if category_id else None,
        total_product_weight_g=_number(
            _key(data, "total_product_weight_g", "totalProductWeightG"), "total_product_weight_g"
        ),
        reference_nutrition_data=(
            parse_nutrition_data(reference, "reference_nutrition_data")
            if reference is not None
            else None
        ),
    )
