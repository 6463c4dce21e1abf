"""Nutrient content claim evaluation (21 CFR Part 101 Subpart D)."""

from __future__ import annotations

from typing import assert_never

from nfpcheck.core.daily_values import DailyValueTable
from nfpcheck.core.errors import CatalogError
from nfpcheck.core.models import (
    ClaimThresholdDetails,
    DailyValueClaimDetails,
    HealthyClaimDetails,
    LabelData,
    NutritionData,
    RelativeClaimDetails,
    ResultDetails,
    RuleType,
    Severity,
    Status,
    UnrecognizedClaimDetails,
    ValidationResult,
)
from nfpcheck.core.nutrients import Nutrient, find_nutrient_in_text
from nfpcheck.core.rounding import format_amount
from nfpcheck.core.rules import ClaimFamily, ClaimRule, RuleCatalog

CALORIES_PER_GRAM_FAT = 9


def evaluate_claims(
    label: LabelData, catalog: RuleCatalog, daily_values: DailyValueTable
) -> list[ValidationResult]:
    """One result per matched rule per claim, or one warning per unrecognized claim."""
    results: list[ValidationResult] = []
    for claim in label.claim_statements:
        matching = catalog.matching_claim_rules(claim)
        if not matching:
            results.append(
                ValidationResult(
                    rule_id="unknown-claim",
                    rule_name="Unknown Claim",
                    rule_type=RuleType.NUTRIENT_CONTENT_CLAIM,
                    status=Status.FAIL,
                    severity=Severity.WARNING,
                    message=(
                        f'Claim "{claim}" is not recognized or not defined in FDA regulations'
                    ),
                    details=UnrecognizedClaimDetails(claim_statement=claim),
                )
            )
            continue
        for rule in matching:
            results.append(evaluate_claim(rule, claim, label, daily_values))
    return results


def evaluate_claim(
    rule: ClaimRule, claim: str, label: LabelData, daily_values: DailyValueTable
) -> ValidationResult:
    data = label.nutrition_data
    match rule.family:
        case ClaimFamily.FREE | ClaimFamily.LOW:
            return _threshold_claim(rule, claim, data)
        case ClaimFamily.GOOD_SOURCE | ClaimFamily.HIGH:
            return _daily_value_claim(rule, claim, data, daily_values)
        case ClaimFamily.HEALTHY:
            return _healthy_claim(rule, claim, data, daily_values)
        case ClaimFamily.REDUCED:
            return _reduced_claim(rule, claim, data, label.reference_nutrition_data)
        case ClaimFamily.LIGHT:
            return _light_claim(rule, claim, data, label.reference_nutrition_data)
        case _:
            assert_never(rule.family)


def _result(
    rule: ClaimRule,
    passed: bool,
    message: str,
    details: ResultDetails,
    fail_severity: Severity = Severity.ERROR,
) -> ValidationResult:
    return ValidationResult(
        rule_id=rule.id,
        rule_name=rule.name,
        rule_type=RuleType.NUTRIENT_CONTENT_CLAIM,
        status=Status.PASS if passed else Status.FAIL,
        severity=Severity.INFO if passed else fail_severity,
        message=message,
        citation=rule.citation,
        details=details,
    )


def _cannot_validate(rule: ClaimRule, reason: str, details: ResultDetails) -> ValidationResult:
    return _result(
        rule,
        passed=False,
        message=f'Cannot validate "{rule.name}" claim: {reason}',
        details=details,
        fail_severity=Severity.WARNING,
    )


def _incomplete(rule: ClaimRule, needs: str) -> CatalogError:
    return CatalogError(f"Claim rule {rule.id} ({rule.family.value}) needs {needs}")


def _threshold_claim(rule: ClaimRule, claim: str, data: NutritionData) -> ValidationResult:
    nutrient = rule.nutrient
    max_amount = rule.max_amount
    if nutrient is None or max_amount is None:
        raise _incomplete(rule, "nutrient and max_amount")
    amount = data.get(nutrient)
    if amount is None:
        details = ClaimThresholdDetails(
            claim_statement=claim, nutrient=nutrient, max_allowed=max_amount
        )
        return _cannot_validate(rule, f"{nutrient.display} is not declared", details)

    # Undeclared co-limited nutrients are not held against the claim.
    violations: list[str] = []
    limit_text = format_amount(max_amount)
    if amount > max_amount:
        violations.append(
            f"{_short_name(nutrient)} {format_amount(amount)} exceeds maximum {limit_text}"
        )
    for other, limit in rule.co_limits.items():
        other_amount = data.get(other)
        if other_amount is not None and other_amount > limit:
            violations.append(
                f"{_short_name(other)} {format_amount(other_amount)} "
                f"exceeds maximum {format_amount(limit)}"
            )
    details = ClaimThresholdDetails(
        claim_statement=claim,
        nutrient=nutrient,
        current_value=amount,
        max_allowed=max_amount,
        violations=tuple(violations),
    )
    if not violations:
        return _result(
            rule,
            True,
            f'Claim "{rule.name}" is valid: {format_amount(amount)} ≤ {limit_text}',
            details,
        )
    return _result(
        rule, False, f'Claim "{rule.name}" is invalid: {", ".join(violations)}', details
    )


def _daily_value_claim(
    rule: ClaimRule, claim: str, data: NutritionData, daily_values: DailyValueTable
) -> ValidationResult:
    if rule.min_dv_percent is None:
        raise _incomplete(rule, "min_dv_percent")
    nutrient = find_nutrient_in_text(claim, rule.applicable_nutrients)
    details = DailyValueClaimDetails(
        claim_statement=claim,
        nutrient=nutrient,
        min_percent=rule.min_dv_percent,
        max_percent_exclusive=rule.max_dv_percent_exclusive,
    )
    if nutrient is None:
        return _cannot_validate(rule, "no qualifying nutrient named in the claim", details)
    if not daily_values.has_reference(nutrient):
        return _cannot_validate(rule, f"no Daily Value defined for {nutrient.display}", details)
    amount = data.get(nutrient)
    if amount is None:
        return _cannot_validate(rule, f"{nutrient.display} is not declared", details)

    dv = daily_values.percent_dv(nutrient, amount)
    details = DailyValueClaimDetails(
        claim_statement=claim,
        nutrient=nutrient,
        dv_percent=dv,
        min_percent=rule.min_dv_percent,
        max_percent_exclusive=rule.max_dv_percent_exclusive,
    )
    upper = rule.max_dv_percent_exclusive
    passed = dv >= rule.min_dv_percent and (upper is None or dv < upper)
    if upper is None:
        required = f"≥{rule.min_dv_percent}%"
    else:
        required = f"{rule.min_dv_percent}-{upper - 1}%"
    verdict = "valid" if passed else "invalid"
    return _result(
        rule,
        passed,
        f'Claim "{rule.name}" for {nutrient.display} is {verdict}: {dv}% DV (requires {required})',
        details,
    )


def _short_name(nutrient: Nutrient) -> str:
    return nutrient.display.removeprefix("Includes ")


def _healthy_claim(
    rule: ClaimRule, claim: str, data: NutritionData, daily_values: DailyValueTable
) -> ValidationResult:
    dvs = {n: daily_values.percent_dv(n, data.get(n)) for n in rule.dv_limits}
    violations = tuple(
        f"{_short_name(n)} {dvs[n]}% DV (max {limit}%)"
        for n, limit in rule.dv_limits.items()
        if dvs[n] > limit
    )
    details = HealthyClaimDetails(
        claim_statement=claim,
        added_sugars_dv=dvs.get(Nutrient.ADDED_SUGARS, 0),
        sodium_dv=dvs.get(Nutrient.SODIUM, 0),
        saturated_fat_dv=dvs.get(Nutrient.SATURATED_FAT, 0),
        violations=violations,
    )
    if not violations:
        return _result(rule, True, f'Claim "{rule.name}" is valid', details)
    return _result(
        rule, False, f'Claim "{rule.name}" is invalid: {", ".join(violations)}', details
    )


def _reduction(current: float, reference: float) -> float:
    return (reference - current) / reference * 100


def _reduced_claim(
    rule: ClaimRule,
    claim: str,
    data: NutritionData,
    reference_data: NutritionData | None,
) -> ValidationResult:
    if rule.nutrient is None or rule.min_reduction_percent is None:
        raise _incomplete(rule, "nutrient and min_reduction_percent")
    nutrient = rule.nutrient
    current = data.get(nutrient)
    reference = reference_data.get(nutrient) if reference_data else None
    details = RelativeClaimDetails(
        claim_statement=claim,
        nutrient=nutrient,
        current_value=current,
        reference_value=reference,
        min_reduction_percent=rule.min_reduction_percent,
    )
    if reference_data is None:
        return _cannot_validate(rule, "no reference food supplied for comparison", details)
    if current is None or reference is None or reference <= 0:
        return _cannot_validate(
            rule, f"{nutrient.display} must be declared for both foods", details
        )

    reduction = _reduction(current, reference)
    details = RelativeClaimDetails(
        claim_statement=claim,
        nutrient=nutrient,
        current_value=current,
        reference_value=reference,
        reduction_percent=round(reduction, 1),
        min_reduction_percent=rule.min_reduction_percent,
    )
    passed = reduction >= rule.min_reduction_percent
    verdict = "valid" if passed else "invalid"
    return _result(
        rule,
        passed,
        (
            f'Claim "{rule.name}" is {verdict}: {nutrient.display} reduced '
            f"{reduction:.1f}% (requires ≥{format_amount(rule.min_reduction_percent)}%)"
        ),
        details,
    )


def _light_claim(
    rule: ClaimRule,
    claim: str,
    data: NutritionData,
    reference_data: NutritionData | None,
) -> ValidationResult:
    """
    Light/lite per 21 CFR 101.56(b).

    If half or more of the reference food's calories come from fat, fat must
    drop by the minimum reduction; otherwise a one-third calorie reduction
    also qualifies.
    """
    if rule.nutrient is None or rule.min_reduction_percent is None:
        raise _incomplete(rule, "nutrient and min_reduction_percent")
    fat = data.get(rule.nutrient)
    calories = data.get(Nutrient.CALORIES)
    ref_fat = reference_data.get(rule.nutrient) if reference_data else None
    ref_calories = reference_data.get(Nutrient.CALORIES) if reference_data else None
    details = RelativeClaimDetails(
        claim_statement=claim,
        nutrient=rule.nutrient,
        current_value=fat,
        reference_value=ref_fat,
        min_reduction_percent=rule.min_reduction_percent,
    )
    if reference_data is None:
        return _cannot_validate(rule, "no reference food supplied for comparison", details)
    if fat is None or calories is None or not ref_fat or not ref_calories:
        return _cannot_validate(
            rule, "fat and calories must be declared for both foods", details
        )

    fat_reduction = _reduction(fat, ref_fat)
    calorie_reduction = _reduction(calories, ref_calories)
    fat_share = ref_fat * CALORIES_PER_GRAM_FAT / ref_calories * 100
    details = RelativeClaimDetails(
        claim_statement=claim,
        nutrient=rule.nutrient,
        current_value=fat,
        reference_value=ref_fat,
        reduction_percent=round(fat_reduction, 1),
        min_reduction_percent=rule.min_reduction_percent,
    )

    fat_ok = fat_reduction >= rule.min_reduction_percent
    share_limit = rule.fat_calorie_share_percent or 50
    calorie_limit = rule.min_calorie_reduction_percent
    if fat_share >= share_limit or calorie_limit is None:
        passed = fat_ok
        requirement = f"fat reduced ≥{format_amount(rule.min_reduction_percent)}%"
    else:
        passed = fat_ok or calorie_reduction >= calorie_limit
        requirement = (
            f"fat reduced ≥{format_amount(rule.min_reduction_percent)}% or calories "
            f"reduced ≥{format_amount(calorie_limit)}%"
        )
    verdict = "valid" if passed else "invalid"
    return _result(
        rule,
        passed,
        (
            f'Claim "{rule.name}" is {verdict}: fat reduced {fat_reduction:.1f}%, calories '
            f"reduced {calorie_reduction:.1f}% (requires {requirement})"
        ),
        details,
    )
