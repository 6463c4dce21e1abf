"""Serving-size validation against the RACC for a food category."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from nfpcheck.core.daily_values import round_half_up
from nfpcheck.core.models import (
    ContainerRule,
    MessageType,
    RaccCategory,
    RaccDetails,
    ServingSizeInput,
    ServingSizeValidation,
    ValidationMessage,
)
from nfpcheck.core.racc import RaccTable, default_racc_table
from nfpcheck.core.rounding import format_amount, round_serving_amount, servings_display

_logger = logging.getLogger(__name__)

ROUNDING_TOLERANCE = 0.01
MIN_PERCENT_OF_RACC = 50
MAX_PERCENT_OF_RACC = 200
SINGLE_SERVING_RATIO = 2
DUAL_COLUMN_RATIO = 3


@dataclass(frozen=True)
class ServingSizeRecommendation:
    recommended_serving_size: float
    recommended_servings_per_container: float
    household_measure: str
    label_statement: str
    is_single_serving: bool
    can_use_dual_column: bool


@dataclass(frozen=True)
class RaccMatch:
    matches: bool
    percent_of_racc: float
    racc_amount: float
    message: str


def is_properly_rounded(value: float) -> tuple[bool, float]:
    expected = round_serving_amount(value)
    return abs(value - expected) < ROUNDING_TOLERANCE, expected


def _suggested_serving_size(racc_grams: float, total_weight: float) -> float:
    # A package that could be one serving is suggested whole.
    if total_weight <= racc_grams * SINGLE_SERVING_RATIO:
        return round_serving_amount(total_weight)
    return round_serving_amount(racc_grams)


def _household_for(racc: RaccCategory) -> str:
    return racc.household_measure or racc.label_statement


def validate_serving_size(
    data: ServingSizeInput, table: RaccTable | None = None
) -> ServingSizeValidation:
    """
    Check a declared serving against the RACC of its category.

    Never raises for an unknown category; that becomes an error message.
    """
    table = table or default_racc_table()
    racc = table.get(data.racc_category_id)
    if racc is None:
        return ServingSizeValidation(
            is_valid=False,
            racc_category=None,
            suggested_serving_size=None,
            suggested_household_measure=None,
            messages=(
                ValidationMessage(
                    type=MessageType.ERROR,
                    message=f'RACC category "{data.racc_category_id}" not found',
                ),
            ),
        )

    messages: list[ValidationMessage] = []
    racc_grams = racc.reference_grams
    percent_of_racc = data.serving_size_g / racc_grams * 100
    ratio = data.total_product_weight_g / racc_grams
    ratio_percent = round_half_up(ratio * 100)

    container_rule = ContainerRule.STANDARD
    if ratio <= SINGLE_SERVING_RATIO:
        container_rule = ContainerRule.SINGLE
        messages.append(
            ValidationMessage(
                type=MessageType.INFO,
                message=(
                    f"Package contains ≤200% of RACC ({ratio_percent}%). "
                    "Must be labeled as single serving."
                ),
                citation="21 CFR 101.9(b)(6)",
                details=RaccDetails(total_to_racc_percent=ratio_percent),
            )
        )
    elif ratio <= DUAL_COLUMN_RATIO:
        container_rule = ContainerRule.DUAL
        messages.append(
            ValidationMessage(
                type=MessageType.INFO,
                message=(
                    f"Package contains {ratio_percent}% of RACC. May use dual-column format "
                    "showing per-serving and per-container values."
                ),
                citation="21 CFR 101.9(b)(11)",
                details=RaccDetails(total_to_racc_percent=ratio_percent),
            )
        )

    rounded_percent = round_half_up(percent_of_racc)
    serving_text = f"Serving size ({format_amount(data.serving_size_g)}g)"
    racc_text = f"RACC ({format_amount(racc_grams)}g)"
    if percent_of_racc < MIN_PERCENT_OF_RACC:
        messages.append(
            ValidationMessage(
                type=MessageType.WARNING,
                message=f"{serving_text} is less than 50% of {racc_text}. Consider increasing.",
                citation="21 CFR 101.9(b)(2)",
                details=RaccDetails(percent_of_racc=rounded_percent),
            )
        )
    elif percent_of_racc > MAX_PERCENT_OF_RACC:
        messages.append(
            ValidationMessage(
                type=MessageType.WARNING,
                message=f"{serving_text} exceeds 200% of {racc_text}. Consider decreasing.",
                citation="21 CFR 101.9(b)(2)",
                details=RaccDetails(percent_of_racc=rounded_percent),
            )
        )
    else:
        messages.append(
            ValidationMessage(
                type=MessageType.SUCCESS,
                message=(
                    f"{serving_text} is {rounded_percent}% of {racc_text} - "
                    "within acceptable range."
                ),
                citation="21 CFR 101.9(b)",
                details=RaccDetails(percent_of_racc=rounded_percent),
            )
        )

    grams_ok, grams_expected = is_properly_rounded(data.serving_size_g)
    if not grams_ok:
        messages.append(
            ValidationMessage(
                type=MessageType.ERROR,
                message=(
                    f"Serving size should be rounded to {format_amount(grams_expected)}g "
                    "per FDA rounding rules."
                ),
                citation="21 CFR 101.9(b)(7)",
                details=RaccDetails(
                    current_value=data.serving_size_g, suggested_value=grams_expected
                ),
            )
        )

    servings = data.servings_per_container
    if servings:
        servings_ok, servings_expected = is_properly_rounded(servings)
        if not servings_ok:
            display = servings_display(servings)
            messages.append(
                ValidationMessage(
                    type=MessageType.ERROR,
                    message=(
                        f'Servings per container should be displayed as "{display}" '
                        "per FDA rounding rules."
                    ),
                    citation="21 CFR 101.9(b)(8)",
                    details=RaccDetails(
                        current_value=servings,
                        suggested_value=servings_expected,
                        suggested_display=display,
                    ),
                )
            )

    household = _household_for(racc)
    if not (data.serving_size_household or "").strip():
        messages.append(
            ValidationMessage(
                type=MessageType.WARNING,
                message=(
                    "Serving size has no household measure. "
                    f'For {racc.description} use a measure such as "{household}".'
                ),
                citation="21 CFR 101.9(b)(5)",
                details=RaccDetails(household_measure=household),
            )
        )

    if servings:
        messages.append(
            _servings_recommendation_message(racc, data, container_rule, servings)
        )

    is_valid = not any(m.type in (MessageType.ERROR, MessageType.WARNING) for m in messages)
    _logger.debug(
        "RACC check %s: %s%% of RACC, container=%s, valid=%s",
        racc.id,
        rounded_percent,
        container_rule.value,
        is_valid,
    )
    return ServingSizeValidation(
        is_valid=is_valid,
        racc_category=racc,
        suggested_serving_size=_suggested_serving_size(racc_grams, data.total_product_weight_g),
        suggested_household_measure=household,
        messages=tuple(messages),
        single_serving_required=container_rule == ContainerRule.SINGLE,
        container_rule=container_rule,
    )


def _servings_recommendation_message(
    racc: RaccCategory,
    data: ServingSizeInput,
    container_rule: ContainerRule,
    servings: float,
) -> ValidationMessage:
    recommendation = _recommend(racc, data.total_product_weight_g)
    declared = round_serving_amount(servings)
    expected = recommendation.recommended_servings_per_container
    details = RaccDetails(
        current_value=servings,
        suggested_value=expected,
        suggested_display=servings_display(expected),
    )

    if container_rule == ContainerRule.SINGLE and declared > 1:
        return ValidationMessage(
            type=MessageType.ERROR,
            message=(
                f"Package holds no more than 200% of the RACC for {racc.description}; "
                f"it must be labeled as 1 serving, not {format_amount(declared)}."
            ),
            citation="21 CFR 101.9(b)(6)",
            details=details,
        )
    if abs(declared - expected) < ROUNDING_TOLERANCE:
        return ValidationMessage(
            type=MessageType.INFO,
            message=(
                f"Servings per container ({format_amount(declared)}) matches the "
                f"RACC-based recommendation."
            ),
            citation="21 CFR 101.12(b)",
            details=details,
        )
    return ValidationMessage(
        type=MessageType.WARNING,
        message=(
            f"Servings per container ({format_amount(declared)}) differs from the "
            f"RACC-based recommendation of {format_amount(expected)} "
            f"({format_amount(recommendation.recommended_serving_size)}g servings)."
        ),
        citation="21 CFR 101.12(b)",
        details=details,
    )


def _recommend(racc: RaccCategory, total_weight: float) -> ServingSizeRecommendation:
    racc_grams = racc.reference_grams
    ratio = total_weight / racc_grams
    is_single = False
    dual = False

    if ratio <= SINGLE_SERVING_RATIO:
        serving = total_weight
        servings: float = 1
        is_single = True
    else:
        serving = racc_grams
        servings = round_half_up(ratio)
        dual = ratio <= DUAL_COLUMN_RATIO

    return ServingSizeRecommendation(
        recommended_serving_size=round_serving_amount(serving),
        recommended_servings_per_container=round_serving_amount(servings),
        household_measure=_household_for(racc),
        label_statement=racc.label_statement,
        is_single_serving=is_single,
        can_use_dual_column=dual,
    )


def get_serving_size_recommendation(
    racc_category_id: str, total_product_weight: float, table: RaccTable | None = None
) -> ServingSizeRecommendation | None:
    racc = (table or default_racc_table()).get(racc_category_id)
    if racc is None:
        return None
    return _recommend(racc, total_product_weight)


def check_serving_size_matches_racc(
    serving_size_g: float, racc_category_id: str, table: RaccTable | None = None
) -> RaccMatch:
    """Looser 67-150% window used when picking a category interactively."""
    racc = (table or default_racc_table()).get(racc_category_id)
    if racc is None:
        return RaccMatch(
            matches=False, percent_of_racc=0, racc_amount=0, message="RACC category not found"
        )

    percent = serving_size_g / racc.reference_grams * 100
    shown = round_half_up(percent)
    matches = 67 <= percent <= 150
    if matches:
        message = f"Serving size is {shown}% of RACC - acceptable"
    elif percent < 67:
        message = f"Serving size is only {shown}% of RACC - may be too small"
    else:
        message = f"Serving size is {shown}% of RACC - may be too large"
    return RaccMatch(
        matches=matches,
        percent_of_racc=percent,
        racc_amount=racc.reference_grams,
        message=message,
    )
