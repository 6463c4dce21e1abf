"""Declared-value rounding for nutrients, serving sizes and servings per container."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping

from nfpcheck.core.daily_values import DailyValueTable, default_daily_values, round_half_up
from nfpcheck.core.errors import CatalogError, LabelDataError
from nfpcheck.core.models import (
    NutritionData,
    RoundedNutritionData,
    RoundedServing,
    RoundedValue,
    ServingContext,
)
from nfpcheck.core.nutrients import Nutrient, parse_nutrient
from nfpcheck.core.tables import as_float, load_yaml

_logger = logging.getLogger(__name__)


def round_to_increment(value: float, increment: float) -> float:
    """
    Round half-up to a multiple of increment.

    Fractional increments scale up instead of dividing so that 0.3 stays 0.3
    and never drifts to 0.30000000000000004 on a second pass.
    """
    if increment < 1:
        scale = round(1 / increment)
        return round_half_up(value * scale) / scale
    return float(round_half_up(value / increment) * increment)


def format_amount(value: float) -> str:
    """Render 8.0 as "8" and 2.5 as "2.5"."""
    if float(value).is_integer():
        return str(int(value))
    return f"{value:g}"


@dataclass(frozen=True)
class IncrementBand:
    """Values below `below` (exclusive) round to `increment`; None catches the rest."""

    increment: float
    below: float | None = None


SERVING_BANDS: tuple[IncrementBand, ...] = (
    IncrementBand(increment=0.1, below=2),
    IncrementBand(increment=0.5, below=5),
    IncrementBand(increment=1),
)


def round_in_bands(value: float, bands: tuple[IncrementBand, ...] = SERVING_BANDS) -> float:
    for band in bands:
        if band.below is None or value < band.below:
            return round_to_increment(value, band.increment)
    return value


def round_serving_amount(value: float) -> float:
    """
    Three-band serving rule (21 CFR 101.9(b)(7)-(8)).

    <2 to the nearest 0.1, 2 to <5 to the nearest 0.5, otherwise whole numbers.
    Used for both serving size grams and servings per container.
    """
    return round_in_bands(value, SERVING_BANDS)


def servings_display(servings: float) -> str:
    """Container count as printed; counts of 2 or more that were rounded read "about N"."""
    rounded = round_serving_amount(servings)
    if servings >= 2 and abs(servings - rounded) > 0.01:
        return f"about {format_amount(rounded)}"
    return format_amount(rounded)


@dataclass(frozen=True)
class RoundingBand:
    """
    One magnitude band of a nutrient's declaration rule.

    Exactly one of zero / less_than / nearest is set.
    """

    below: float | None = None
    through: float | None = None
    zero: bool = False
    less_than: float | None = None
    nearest: float | None = None

    def contains(self, value: float) -> bool:
        if self.below is not None:
            return value < self.below
        if self.through is not None:
            return value <= self.through
        return True

    @property
    def qualifier(self) -> str | None:
        if self.less_than is None:
            return None
        return f"less than {format_amount(self.less_than)}"

    def apply(self, value: float) -> RoundedValue:
        if self.zero:
            return 0.0
        if self.less_than is not None:
            return self.qualifier
        if self.nearest is not None:
            return round_to_increment(value, self.nearest)
        raise CatalogError("Rounding band has no rule")


@dataclass(frozen=True)
class NutrientRounding:
    nutrient: Nutrient
    bands: tuple[RoundingBand, ...]
    citation: str = ""
    micronutrient: bool = False

    @property
    def qualifiers(self) -> frozenset[str]:
        return frozenset(b.qualifier for b in self.bands if b.qualifier is not None)


def _parse_band(entry: Any, source: str) -> RoundingBand:
    if not isinstance(entry, dict):
        raise CatalogError(f"{source}: band must be a mapping")
    band = RoundingBand(
        below=as_float(entry["below"], source) if "below" in entry else None,
        through=as_float(entry["through"], source) if "through" in entry else None,
        zero=bool(entry.get("zero", False)),
        less_than=as_float(entry["less_than"], source) if "less_than" in entry else None,
        nearest=as_float(entry["nearest"], source) if "nearest" in entry else None,
    )
    rules_set = sum([band.zero, band.less_than is not None, band.nearest is not None])
    if rules_set != 1:
        raise CatalogError(f"{source}: band needs exactly one of zero, less_than, nearest")
    return band


@dataclass(frozen=True)
class RoundingTable:
    """Per-nutrient rounding rules, loaded once from rounding.yaml."""

    nutrients: Mapping[Nutrient, NutrientRounding]
    micronutrient_zero_below_dv_percent: float = 2.0

    @classmethod
    def load(cls, data_path: str | Path | None = None) -> RoundingTable:
        payload = load_yaml(data_path, "rounding.yaml")
        rules: dict[Nutrient, NutrientRounding] = {}
        for key, entry in (payload.get("nutrients") or {}).items():
            source = f"rounding.yaml:{key}"
            try:
                nutrient = parse_nutrient(key)
            except ValueError as exc:
                raise CatalogError(f"rounding.yaml: {exc}") from exc
            bands = tuple(_parse_band(b, source) for b in entry.get("bands") or [])
            if not bands or bands[-1].below is not None or bands[-1].through is not None:
                raise CatalogError(f"{source}: last band must be unbounded")
            rules[nutrient] = NutrientRounding(
                nutrient=nutrient,
                bands=bands,
                citation=str(entry.get("citation", "")),
                micronutrient=bool(entry.get("micronutrient", False)),
            )
        missing = [n.value for n in Nutrient if n not in rules]
        if missing:
            raise CatalogError(f"rounding.yaml: no rule for {', '.join(missing)}")
        return cls(
            nutrients=MappingProxyType(rules),
            micronutrient_zero_below_dv_percent=as_float(
                payload.get("micronutrient_zero_below_dv_percent", 2), "rounding.yaml"
            ),
        )

    def rule_for(self, nutrient: Nutrient) -> NutrientRounding:
        return self.nutrients[nutrient]


@lru_cache(maxsize=1)
def default_rounding_table() -> RoundingTable:
    return RoundingTable.load()


def round_nutrient(
    nutrient: Nutrient | str,
    amount: RoundedValue,
    *,
    table: RoundingTable | None = None,
    daily_values: DailyValueTable | None = None,
) -> RoundedValue:
    """
    Value a label may declare for a raw per-serving amount.

    Idempotent: feeding a result back in returns it unchanged, including the
    qualitative "less than N" strings. None (not measured) passes through.

    Raises:
        LabelDataError: For negative, non-finite or unparseable amounts
    """
    key = parse_nutrient(nutrient)
    if amount is None:
        return None
    table = table or default_rounding_table()
    rule = table.rule_for(key)

    if isinstance(amount, str):
        text = " ".join(amount.lower().split())
        if text in rule.qualifiers:
            return text
        try:
            value = float(text)
        except ValueError as exc:
            raise LabelDataError(f"Cannot round {key.value} value {amount!r}") from exc
    else:
        value = float(amount)

    if math.isnan(value) or math.isinf(value) or value < 0:
        raise LabelDataError(f"{key.value} must be a non-negative number, got {amount!r}")

    band = next(b for b in rule.bands if b.contains(value))
    rounded = band.apply(value)

    if rule.micronutrient and isinstance(rounded, float) and rounded > 0:
        rounded = _zero_if_insignificant(key, rounded, table, daily_values)
    return rounded


def _zero_if_insignificant(
    nutrient: Nutrient,
    rounded: float,
    table: RoundingTable,
    daily_values: DailyValueTable | None,
) -> float:
    # Checked on the rounded amount so a second pass cannot cross the threshold.
    reference = (daily_values or default_daily_values()).reference(nutrient)
    if reference is None:
        return rounded
    if rounded / reference * 100 < table.micronutrient_zero_below_dv_percent:
        return 0.0
    return rounded


def round_nutrition(
    data: NutritionData,
    context: ServingContext | None = None,
    *,
    table: RoundingTable | None = None,
    daily_values: DailyValueTable | None = None,
) -> RoundedNutritionData:
    """Round all 15 nutrients (and, with a context, the serving declaration)."""
    if data is None:
        raise LabelDataError("nutrition_data is required")
    table = table or default_rounding_table()
    values = {
        nutrient.value: round_nutrient(
            nutrient, data.get(nutrient), table=table, daily_values=daily_values
        )
        for nutrient in Nutrient
    }
    serving = _round_serving(context) if context is not None else None
    return RoundedNutritionData(**values, serving=serving)


def _round_serving(context: ServingContext) -> RoundedServing:
    serving_size = context.serving_size_g
    servings = context.servings_per_container
    for name, value in (("serving_size_g", serving_size), ("servings_per_container", servings)):
        if value is not None and (math.isnan(value) or value < 0):
            raise LabelDataError(f"{name} must be a non-negative number, got {value!r}")
    return RoundedServing(
        serving_size_g=round_serving_amount(serving_size) if serving_size else None,
        servings_per_container=round_serving_amount(servings) if servings else None,
        servings_display=servings_display(servings) if servings else None,
    )
