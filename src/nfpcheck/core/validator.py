"""Validation orchestrator: runs every check on a label and builds the report."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import assert_never

from nfpcheck.core.claims import evaluate_claims
from nfpcheck.core.daily_values import DailyValueTable, default_daily_values
from nfpcheck.core.errors import LabelDataError
from nfpcheck.core.models import (
    ComplianceReport,
    FormatDetails,
    LabelData,
    LabelFormat,
    MessageType,
    MissingNutrientsDetails,
    RoundingDetails,
    RuleType,
    ServingSizeInput,
    ServingSizeValidation,
    Severity,
    Status,
    ValidationMessage,
    ValidationResult,
)
from nfpcheck.core.racc import RaccTable, default_racc_table
from nfpcheck.core.rounding import format_amount, round_in_bands
from nfpcheck.core.rules import (
    FormatRule,
    RuleCatalog,
    ServingQuantity,
    ServingSizeRule,
    default_catalog,
)
from nfpcheck.core.serving_size import ROUNDING_TOLERANCE, validate_serving_size

_logger = logging.getLogger(__name__)

DEFAULT_FORMAT = LabelFormat.STANDARD_VERTICAL
DEFAULT_PACKAGE_AREA = 100.0
"""Square inches assumed when the label does not say; treated as a large package."""

RACC_RULE_ID = "racc-serving-size"
RACC_RULE_NAME = "RACC Serving Size"


def validate_label(
    label: LabelData,
    *,
    catalog: RuleCatalog | None = None,
    daily_values: DailyValueTable | None = None,
    racc_table: RaccTable | None = None,
    now: datetime | None = None,
) -> ComplianceReport:
    """
    Validate a proposed label against the compliance rule catalog.

    Checks run in a fixed order: format, serving size, mandatory nutrients,
    claims (when any are given) and RACC (when a category and serving size
    are given). Regulatory findings become results, never exceptions.

    Args:
        label: The label to check
        catalog: Rule catalog (defaults to the packaged rules)
        daily_values: Daily Value table used by %DV-based claims
        racc_table: RACC table used by the serving-size check
        now: Timestamp for validated_at (defaults to the current UTC time)

    Raises:
        LabelDataError: If the label or its nutrition data is missing
    """
    if label is None or label.nutrition_data is None:
        raise LabelDataError("nutrition_data is required")

    catalog = catalog or default_catalog()
    daily_values = daily_values or default_daily_values()
    label_format = label.format or DEFAULT_FORMAT

    results: list[ValidationResult] = []
    results.extend(check_format(label_format, label.package_surface_area, catalog))
    results.extend(check_serving_size(label, catalog))
    results.extend(check_mandatory_nutrients(label, catalog))
    if label.claim_statements:
        results.extend(evaluate_claims(label, catalog, daily_values))

    racc_validation = None
    if label.racc_category_id and label.serving_size_g:
        racc_validation = _run_racc_validation(
            label,
            label.racc_category_id,
            label.serving_size_g,
            racc_table or default_racc_table(),
        )
        results.extend(racc_results(racc_validation))

    report = ComplianceReport.build(
        results,
        validated_at=now or datetime.now(timezone.utc),
        label_format=label.format,
        racc_validation=racc_validation,
    )
    _logger.debug(
        "Validated label: %s (%s errors, %s warnings, %s results)",
        report.overall_status.value,
        report.errors_count,
        report.warnings_count,
        len(report.results),
    )
    return report


def recommended_format(area: float, catalog: RuleCatalog) -> LabelFormat:
    """First format in catalog order whose package-area bounds admit the area."""
    for rule in catalog.format_rules():
        if rule.allows(area):
            return rule.format
    return DEFAULT_FORMAT


def check_format(
    label_format: LabelFormat, area: float | None, catalog: RuleCatalog
) -> list[ValidationResult]:
    package_area = area if area is not None else DEFAULT_PACKAGE_AREA
    rule: FormatRule | None = next(
        (r for r in catalog.format_rules() if r.format == label_format), None
    )
    if rule is None:
        return []

    if rule.allows(package_area):
        return [
            ValidationResult(
                rule_id=rule.id,
                rule_name=rule.name,
                rule_type=RuleType.FORMAT,
                status=Status.PASS,
                severity=Severity.INFO,
                message=(
                    f"{rule.name} is appropriate for a "
                    f"{format_amount(package_area)} sq in package"
                ),
                citation=rule.citation,
            )
        ]

    recommendation = recommended_format(package_area, catalog)
    return [
        ValidationResult(
            rule_id="nfp-format-mismatch",
            rule_name="Format Package Size Mismatch",
            rule_type=RuleType.FORMAT,
            status=Status.FAIL,
            severity=Severity.WARNING,
            message=(
                f"Label format {label_format.value} is not appropriate for a "
                f"{format_amount(package_area)} sq in package; "
                f"recommended format is {recommendation.value}"
            ),
            citation=rule.citation,
            details=FormatDetails(
                current_format=label_format,
                package_size=package_area,
                recommendation=recommendation,
            ),
        )
    ]


def _rounding_result(rule: ServingSizeRule, value: float, label: str) -> ValidationResult:
    expected = round_in_bands(value, rule.bands)
    if abs(value - expected) < ROUNDING_TOLERANCE:
        return ValidationResult(
            rule_id=rule.id,
            rule_name=rule.name,
            rule_type=RuleType.SERVING_SIZE,
            status=Status.PASS,
            severity=Severity.INFO,
            message=f"{label} ({format_amount(value)}) is properly rounded",
            citation=rule.citation,
        )
    return ValidationResult(
        rule_id=rule.id,
        rule_name=rule.name,
        rule_type=RuleType.SERVING_SIZE,
        status=Status.FAIL,
        severity=Severity.ERROR,
        message=(
            f"{label} ({format_amount(value)}) should be rounded to {format_amount(expected)}"
        ),
        citation=rule.citation,
        details=RoundingDetails(current=value, expected=expected),
    )


def check_serving_size(label: LabelData, catalog: RuleCatalog) -> list[ValidationResult]:
    results: list[ValidationResult] = []
    checks = (
        (
            ServingQuantity.SERVINGS_PER_CONTAINER,
            label.servings_per_container,
            "Servings per container",
        ),
        (ServingQuantity.SERVING_SIZE, label.serving_size_g, "Serving size"),
    )
    for quantity, value, text in checks:
        rule = catalog.serving_rule(quantity)
        if rule is None or not value or value <= 0:
            continue
        results.append(_rounding_result(rule, value, text))
    return results


def check_mandatory_nutrients(label: LabelData, catalog: RuleCatalog) -> list[ValidationResult]:
    rule = catalog.mandatory_rule()
    if rule is None:
        return []

    missing = tuple(n.display for n in rule.nutrients if label.nutrition_data.get(n) is None)
    if not missing:
        return [
            ValidationResult(
                rule_id=rule.id,
                rule_name=rule.name,
                rule_type=RuleType.MANDATORY_NUTRIENTS,
                status=Status.PASS,
                severity=Severity.INFO,
                message="All mandatory nutrients are declared",
                citation=rule.citation,
            )
        ]
    return [
        ValidationResult(
            rule_id=rule.id,
            rule_name=rule.name,
            rule_type=RuleType.MANDATORY_NUTRIENTS,
            status=Status.FAIL,
            severity=Severity.ERROR,
            message=f"Missing mandatory nutrients: {', '.join(missing)}",
            citation=rule.citation,
            details=MissingNutrientsDetails(missing_nutrients=missing),
        )
    ]


def _run_racc_validation(
    label: LabelData, category_id: str, serving_size_g: float, table: RaccTable
) -> ServingSizeValidation:
    total_weight = label.total_product_weight_g
    if not total_weight:
        total_weight = serving_size_g * (label.servings_per_container or 1)
    return validate_serving_size(
        ServingSizeInput(
            serving_size_g=serving_size_g,
            total_product_weight_g=total_weight,
            racc_category_id=category_id,
            serving_size_household=label.serving_size_household,
            servings_per_container=label.servings_per_container,
        ),
        table,
    )


def _racc_result(message: ValidationMessage) -> ValidationResult:
    match message.type:
        case MessageType.ERROR:
            status, severity = Status.FAIL, Severity.ERROR
        case MessageType.WARNING:
            status, severity = Status.FAIL, Severity.WARNING
        case MessageType.INFO | MessageType.SUCCESS:
            status, severity = Status.PASS, Severity.INFO
        case _:
            assert_never(message.type)
    return ValidationResult(
        rule_id=RACC_RULE_ID,
        rule_name=RACC_RULE_NAME,
        rule_type=RuleType.RACC_VALIDATION,
        status=status,
        severity=severity,
        message=message.message,
        citation=message.citation,
        details=message.details,
    )


def racc_results(validation: ServingSizeValidation) -> list[ValidationResult]:
    """Fold RACC messages into report results, preserving their order."""
    return [_racc_result(m) for m in validation.messages]
