"""Daily Value reference table and percent Daily Value arithmetic."""

from __future__ import annotations

import math
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from types import MappingProxyType
from typing import Mapping

from nfpcheck.core.errors import CatalogError
from nfpcheck.core.models import NutritionData
from nfpcheck.core.nutrients import Nutrient, parse_nutrient
from nfpcheck.core.tables import as_float, load_yaml


def round_half_up(value: float) -> int:
    """Nearest integer with halves rounded up, matching the regulation examples."""
    return math.floor(value + 0.5)


@dataclass(frozen=True)
class DailyValueTable:
    """Immutable nutrient -> reference daily intake mapping."""

    name: str
    values: Mapping[Nutrient, float]
    citation: str = ""

    @classmethod
    def load(cls, data_path: str | Path | None = None) -> DailyValueTable:
        payload = load_yaml(data_path, "daily_values.yaml")
        raw = payload.get("daily_values") or {}
        if not isinstance(raw, dict):
            raise CatalogError("daily_values.yaml: 'daily_values' must be a mapping")
        values: dict[Nutrient, float] = {}
        for key, amount in raw.items():
            try:
                nutrient = parse_nutrient(key)
            except ValueError as exc:
                raise CatalogError(f"daily_values.yaml: {exc}") from exc
            reference = as_float(amount, f"daily_values.yaml:{key}")
            if reference <= 0:
                raise CatalogError(f"daily_values.yaml:{key}: reference must be positive")
            values[nutrient] = reference
        return cls(
            name=str(payload.get("table", "default")),
            values=MappingProxyType(values),
            citation=str(payload.get("citation", "")),
        )

    def reference(self, nutrient: Nutrient | str) -> float | None:
        return self.values.get(parse_nutrient(nutrient))

    def has_reference(self, nutrient: Nutrient | str) -> bool:
        return self.reference(nutrient) is not None

    def percent_dv(self, nutrient: Nutrient | str, amount: float | None) -> int:
        """
        Percent Daily Value rounded half-up to a whole percent.

        Returns 0 for a missing or non-positive amount and for nutrients that
        have no reference; callers that need to tell those apart check
        has_reference first.
        """
        reference = self.reference(nutrient)
        if reference is None or amount is None or amount <= 0:
            return 0
        return round_half_up(amount / reference * 100)


@lru_cache(maxsize=1)
def default_daily_values() -> DailyValueTable:
    return DailyValueTable.load()


def percent_dv(nutrient: Nutrient | str, amount: float | None) -> int:
    """%DV against the default FDA table."""
    return default_daily_values().percent_dv(nutrient, amount)


def percent_daily_values(
    data: NutritionData, table: DailyValueTable | None = None
) -> dict[Nutrient, int]:
    """%DV for every declared nutrient that has a reference, in panel order."""
    table = table or default_daily_values()
    result: dict[Nutrient, int] = {}
    for nutrient in Nutrient:
        amount = data.get(nutrient)
        if amount is not None and table.has_reference(nutrient):
            result[nutrient] = table.percent_dv(nutrient, amount)
    return result
