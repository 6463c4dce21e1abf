"""Compliance rule catalog: one rule variant per rule type, loaded from rules.yaml."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from functools import lru_cache
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping, Union

from nfpcheck.core.errors import CatalogError
from nfpcheck.core.models import LabelFormat, RuleType
from nfpcheck.core.nutrients import Nutrient, parse_nutrient
from nfpcheck.core.rounding import IncrementBand
from nfpcheck.core.tables import as_float, load_yaml, require

_logger = logging.getLogger(__name__)


class RuleCategory(str, Enum):
    REQUIRED = "required"
    CONDITIONAL = "conditional"
    OPTIONAL = "optional"


class ClaimFamily(str, Enum):
    FREE = "free"
    LOW = "low"
    GOOD_SOURCE = "good_source"
    HIGH = "high"
    HEALTHY = "healthy"
    REDUCED = "reduced"
    LIGHT = "light"


class ServingQuantity(str, Enum):
    SERVING_SIZE = "serving_size"
    SERVINGS_PER_CONTAINER = "servings_per_container"
    CONTAINER = "container"


@dataclass(frozen=True)
class FormatRule:
    id: str
    name: str
    citation: str
    format: LabelFormat
    min_area: float | None = None
    """Inclusive lower bound, square inches."""

    max_area: float | None = None
    max_inclusive: bool = False
    description: str = ""
    category: RuleCategory = RuleCategory.CONDITIONAL
    rule_type: RuleType = RuleType.FORMAT

    def allows(self, area: float) -> bool:
        if self.min_area is not None and area < self.min_area:
            return False
        if self.max_area is not None:
            if self.max_inclusive:
                return area <= self.max_area
            return area < self.max_area
        return True


@dataclass(frozen=True)
class ServingSizeRule:
    id: str
    name: str
    citation: str
    quantity: ServingQuantity
    bands: tuple[IncrementBand, ...] = ()
    max_reference_percent: float | None = None
    description: str = ""
    category: RuleCategory = RuleCategory.REQUIRED
    rule_type: RuleType = RuleType.SERVING_SIZE


@dataclass(frozen=True)
class MandatoryNutrientsRule:
    id: str
    name: str
    citation: str
    nutrients: tuple[Nutrient, ...]
    description: str = ""
    category: RuleCategory = RuleCategory.REQUIRED
    rule_type: RuleType = RuleType.MANDATORY_NUTRIENTS


@dataclass(frozen=True)
class ClaimRule:
    """
    A nutrient content claim and its qualifying thresholds.

    Which threshold fields apply depends on family: free/low use max_amount
    and co_limits, good_source/high use the %DV bounds, healthy uses
    dv_limits, reduced/light use the reduction percentages against a
    reference food.
    """

    id: str
    name: str
    citation: str
    family: ClaimFamily
    terms: tuple[str, ...]
    nutrient: Nutrient | None = None
    max_amount: float | None = None
    min_dv_percent: int | None = None
    max_dv_percent_exclusive: int | None = None
    applicable_nutrients: tuple[Nutrient, ...] = ()
    co_limits: Mapping[Nutrient, float] = field(default_factory=lambda: MappingProxyType({}))
    dv_limits: Mapping[Nutrient, int] = field(default_factory=lambda: MappingProxyType({}))
    min_reduction_percent: float | None = None
    min_calorie_reduction_percent: float | None = None
    fat_calorie_share_percent: float | None = None
    description: str = ""
    category: RuleCategory = RuleCategory.OPTIONAL
    rule_type: RuleType = RuleType.NUTRIENT_CONTENT_CLAIM

    def matches(self, claim_statement: str) -> bool:
        lowered = claim_statement.lower()
        return any(term in lowered for term in self.terms)


ComplianceRule = Union[FormatRule, ServingSizeRule, MandatoryNutrientsRule, ClaimRule]


def _base_fields(entry: dict[str, Any], source: str) -> dict[str, Any]:
    fields: dict[str, Any] = {
        "id": str(require(entry, "id", source)),
        "name": str(require(entry, "name", source)),
        "citation": str(require(entry, "citation", source)),
        "description": str(entry.get("description", "")),
    }
    if "category" in entry:
        fields["category"] = RuleCategory(entry["category"])
    return fields


def _nutrient(value: Any, source: str) -> Nutrient:
    try:
        return parse_nutrient(str(value))
    except ValueError as exc:
        raise CatalogError(f"{source}: {exc}") from exc


def _optional_float(entry: dict[str, Any], key: str, source: str) -> float | None:
    return as_float(entry[key], source) if entry.get(key) is not None else None


def _optional_int(entry: dict[str, Any], key: str, source: str) -> int | None:
    value = _optional_float(entry, key, source)
    return int(value) if value is not None else None


def _parse_format_rule(entry: dict[str, Any], source: str) -> FormatRule:
    return FormatRule(
        **_base_fields(entry, source),
        format=LabelFormat(require(entry, "format", source)),
        min_area=_optional_float(entry, "min_area", source),
        max_area=_optional_float(entry, "max_area", source),
        max_inclusive=bool(entry.get("max_inclusive", False)),
    )


def _parse_serving_rule(entry: dict[str, Any], source: str) -> ServingSizeRule:
    bands = tuple(
        IncrementBand(
            increment=as_float(require(b, "increment", source), source),
            below=_optional_float(b, "below", source),
        )
        for b in entry.get("bands") or []
    )
    return ServingSizeRule(
        **_base_fields(entry, source),
        quantity=ServingQuantity(require(entry, "quantity", source)),
        bands=bands,
        max_reference_percent=_optional_float(entry, "max_reference_percent", source),
    )


def _parse_mandatory_rule(entry: dict[str, Any], source: str) -> MandatoryNutrientsRule:
    nutrients = tuple(_nutrient(n, source) for n in require(entry, "nutrients", source))
    return MandatoryNutrientsRule(**_base_fields(entry, source), nutrients=nutrients)


def _parse_claim_rule(entry: dict[str, Any], source: str) -> ClaimRule:
    family = ClaimFamily(require(entry, "family", source))
    terms = tuple(str(t).lower() for t in require(entry, "terms", source))
    if not terms:
        raise CatalogError(f"{source}: claim rule needs at least one term")
    nutrient = _nutrient(entry["nutrient"], source) if entry.get("nutrient") else None
    limits = {
        _nutrient(key, source): int(as_float(value, source))
        for key, value in (entry.get("dv_limits") or {}).items()
    }
    co_limits = {
        _nutrient(key, source): as_float(value, source)
        for key, value in (entry.get("co_limits") or {}).items()
    }
    rule = ClaimRule(
        **_base_fields(entry, source),
        family=family,
        terms=terms,
        nutrient=nutrient,
        max_amount=_optional_float(entry, "max_amount", source),
        co_limits=MappingProxyType(co_limits),
        min_dv_percent=_optional_int(entry, "min_dv_percent", source),
        max_dv_percent_exclusive=_optional_int(entry, "max_dv_percent_exclusive", source),
        applicable_nutrients=tuple(
            _nutrient(n, source) for n in entry.get("applicable_nutrients") or []
        ),
        dv_limits=MappingProxyType(limits),
        min_reduction_percent=_optional_float(entry, "min_reduction_percent", source),
        min_calorie_reduction_percent=_optional_float(
            entry, "min_calorie_reduction_percent", source
        ),
        fat_calorie_share_percent=_optional_float(entry, "fat_calorie_share_percent", source),
    )
    _check_claim_rule(rule, source)
    return rule


def _check_claim_rule(rule: ClaimRule, source: str) -> None:
    family = rule.family
    if family in (ClaimFamily.FREE, ClaimFamily.LOW):
        if rule.nutrient is None or rule.max_amount is None:
            raise CatalogError(f"{source}: {family.value} claim needs nutrient and max_amount")
    elif family in (ClaimFamily.GOOD_SOURCE, ClaimFamily.HIGH):
        if rule.min_dv_percent is None or not rule.applicable_nutrients:
            raise CatalogError(
                f"{source}: {family.value} claim needs min_dv_percent and applicable_nutrients"
            )
    elif family == ClaimFamily.HEALTHY:
        if not rule.dv_limits:
            raise CatalogError(f"{source}: healthy claim needs dv_limits")
    elif family in (ClaimFamily.REDUCED, ClaimFamily.LIGHT):
        if rule.nutrient is None or rule.min_reduction_percent is None:
            raise CatalogError(
                f"{source}: {family.value} claim needs nutrient and min_reduction_percent"
            )


_SECTIONS = (
    ("format_rules", _parse_format_rule),
    ("serving_size_rules", _parse_serving_rule),
    ("mandatory_nutrient_rules", _parse_mandatory_rule),
    ("claim_rules", _parse_claim_rule),
)


@dataclass(frozen=True)
class RuleCatalog:
    """Read-only catalog of compliance rules in declaration order."""

    rules: tuple[ComplianceRule, ...]

    @classmethod
    def load(cls, data_path: str | Path | None = None) -> RuleCatalog:
        payload = load_yaml(data_path, "rules.yaml")
        rules: list[ComplianceRule] = []
        seen: set[str] = set()
        for section, parser in _SECTIONS:
            for index, entry in enumerate(payload.get(section) or []):
                source = f"rules.yaml:{section}[{index}]"
                if not isinstance(entry, dict):
                    raise CatalogError(f"{source}: rule must be a mapping")
                try:
                    rule = parser(entry, source)
                except ValueError as exc:
                    raise CatalogError(f"{source}: {exc}") from exc
                if rule.id in seen:
                    raise CatalogError(f"rules.yaml: duplicate rule id '{rule.id}'")
                seen.add(rule.id)
                rules.append(rule)
        _logger.debug("Loaded %s compliance rules", len(rules))
        return cls(rules=tuple(rules))

    def get(self, rule_id: str) -> ComplianceRule | None:
        return next((r for r in self.rules if r.id == rule_id), None)

    def rules_of_type(self, rule_type: RuleType) -> list[ComplianceRule]:
        return [r for r in self.rules if r.rule_type == rule_type]

    def format_rules(self) -> list[FormatRule]:
        return [r for r in self.rules if isinstance(r, FormatRule)]

    def serving_rule(self, quantity: ServingQuantity) -> ServingSizeRule | None:
        return next(
            (r for r in self.rules if isinstance(r, ServingSizeRule) and r.quantity == quantity),
            None,
        )

    def mandatory_rule(self) -> MandatoryNutrientsRule | None:
        return next((r for r in self.rules if isinstance(r, MandatoryNutrientsRule)), None)

    def claim_rules(self) -> list[ClaimRule]:
        return [r for r in self.rules if isinstance(r, ClaimRule)]

    def matching_claim_rules(self, claim_statement: str) -> list[ClaimRule]:
        return [r for r in self.claim_rules() if r.matches(claim_statement)]


@lru_cache(maxsize=1)
def default_catalog() -> RuleCatalog:
    return RuleCatalog.load()
