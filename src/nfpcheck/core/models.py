"""Core immutable data models for rounding and compliance validation."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional, Union

from nfpcheck.core.nutrients import Nutrient


class LabelFormat(str, Enum):
    """Nutrition Facts Panel layouts (21 CFR 101.9(d), (f))."""

    STANDARD_VERTICAL = "standard_vertical"
    TABULAR = "tabular"
    LINEAR = "linear"
    SIMPLIFIED = "simplified"


class RuleType(str, Enum):
    FORMAT = "format"
    SERVING_SIZE = "serving_size"
    MANDATORY_NUTRIENTS = "mandatory_nutrients"
    NUTRIENT_CONTENT_CLAIM = "nutrient_content_claim"
    RACC_VALIDATION = "racc_validation"


class Status(str, Enum):
    PASS = "pass"
    FAIL = "fail"


class Severity(str, Enum):
    """Error blocks approval, warning is surfaced only, info confirms."""

    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


class OverallStatus(str, Enum):
    COMPLIANT = "compliant"
    WARNINGS = "warnings"
    ERRORS = "errors"
    NOT_VALIDATED = "not_validated"


class MessageType(str, Enum):
    """Outcome of a single RACC serving-size check."""

    ERROR = "error"
    WARNING = "warning"
    INFO = "info"
    SUCCESS = "success"


class ContainerRule(str, Enum):
    """How a container relates to its RACC (21 CFR 101.9(b)(6), (b)(11))."""

    SINGLE = "single"
    DUAL = "dual"
    STANDARD = "standard"


@dataclass(frozen=True)
class NutritionData:
    """
    Raw per-serving amounts, already normalized to the declared serving.

    None means "not measured". Units: kcal, g, mg or mcg as printed on the panel.
    """

    calories: Optional[float] = None
    total_fat: Optional[float] = None
    saturated_fat: Optional[float] = None
    trans_fat: Optional[float] = None
    cholesterol: Optional[float] = None
    sodium: Optional[float] = None
    total_carbohydrates: Optional[float] = None
    dietary_fiber: Optional[float] = None
    total_sugars: Optional[float] = None
    added_sugars: Optional[float] = None
    protein: Optional[float] = None
    vitamin_d: Optional[float] = None
    calcium: Optional[float] = None
    iron: Optional[float] = None
    potassium: Optional[float] = None

    def get(self, nutrient: Nutrient) -> Optional[float]:
        return getattr(self, nutrient.value)

    def as_dict(self) -> dict[Nutrient, Optional[float]]:
        return {nutrient: self.get(nutrient) for nutrient in Nutrient}


RoundedValue = Union[float, str, None]
"""A declarable number, a qualitative string ("less than 1"), or None when not measured."""


@dataclass(frozen=True)
class ServingContext:
    """Declared serving facts passed alongside raw nutrient amounts for rounding."""

    serving_size_g: Optional[float] = None
    servings_per_container: Optional[float] = None


@dataclass(frozen=True)
class RoundedServing:
    serving_size_g: Optional[float] = None
    servings_per_container: Optional[float] = None
    servings_display: Optional[str] = None
    """Container count as printed, with "about" when the count was rounded."""


@dataclass(frozen=True)
class RoundedNutritionData:
    """Values the label is permitted to declare."""

    calories: RoundedValue = None
    total_fat: RoundedValue = None
    saturated_fat: RoundedValue = None
    trans_fat: RoundedValue = None
    cholesterol: RoundedValue = None
    sodium: RoundedValue = None
    total_carbohydrates: RoundedValue = None
    dietary_fiber: RoundedValue = None
    total_sugars: RoundedValue = None
    added_sugars: RoundedValue = None
    protein: RoundedValue = None
    vitamin_d: RoundedValue = None
    calcium: RoundedValue = None
    iron: RoundedValue = None
    potassium: RoundedValue = None
    serving: Optional[RoundedServing] = None

    def get(self, nutrient: Nutrient) -> RoundedValue:
        return getattr(self, nutrient.value)


@dataclass(frozen=True)
class LabelData:
    """Validation input for a single proposed label."""

    nutrition_data: NutritionData
    serving_size_g: Optional[float] = None
    serving_size_household: Optional[str] = None
    servings_per_container: Optional[float] = None
    format: Optional[LabelFormat] = None
    package_surface_area: Optional[float] = None
    """Square inches available for labeling."""

    claim_statements: tuple[str, ...] = ()
    racc_category_id: Optional[str] = None
    total_product_weight_g: Optional[float] = None
    reference_nutrition_data: Optional[NutritionData] = None
    """Per-serving amounts of the comparison food for reduced/light claims."""


@dataclass(frozen=True)
class RaccCategory:
    """Reference Amount Customarily Consumed for one food category (21 CFR 101.12)."""

    id: str
    category: str
    reference_amount: float
    unit: str = "g"
    subcategory: Optional[str] = None
    household_measure: Optional[str] = None
    label_statement: str = ""
    product_examples: tuple[str, ...] = ()
    format_hints: tuple[LabelFormat, ...] = ()

    @property
    def reference_grams(self) -> float:
        # 1 mL is treated as 1 g for beverages and other liquids.
        return self.reference_amount

    @property
    def description(self) -> str:
        if self.subcategory:
            return f"{self.category}: {self.subcategory}"
        return self.category


# Structured result payloads, one shape per kind of finding.


@dataclass(frozen=True)
class FormatDetails:
    current_format: LabelFormat
    package_size: float
    recommendation: LabelFormat


@dataclass(frozen=True)
class RoundingDetails:
    current: float
    expected: float


@dataclass(frozen=True)
class MissingNutrientsDetails:
    missing_nutrients: tuple[str, ...]


@dataclass(frozen=True)
class ClaimThresholdDetails:
    claim_statement: str
    nutrient: Nutrient
    current_value: Optional[float] = None
    max_allowed: Optional[float] = None
    violations: tuple[str, ...] = ()


@dataclass(frozen=True)
class DailyValueClaimDetails:
    claim_statement: str
    nutrient: Optional[Nutrient] = None
    dv_percent: Optional[int] = None
    min_percent: Optional[int] = None
    max_percent_exclusive: Optional[int] = None


@dataclass(frozen=True)
class HealthyClaimDetails:
    claim_statement: str
    added_sugars_dv: int
    sodium_dv: int
    saturated_fat_dv: int
    violations: tuple[str, ...] = ()


@dataclass(frozen=True)
class RelativeClaimDetails:
    claim_statement: str
    nutrient: Nutrient
    current_value: Optional[float] = None
    reference_value: Optional[float] = None
    reduction_percent: Optional[float] = None
    min_reduction_percent: Optional[float] = None


@dataclass(frozen=True)
class UnrecognizedClaimDetails:
    claim_statement: str


@dataclass(frozen=True)
class RaccDetails:
    percent_of_racc: Optional[int] = None
    total_to_racc_percent: Optional[int] = None
    current_value: Optional[float] = None
    suggested_value: Optional[float] = None
    suggested_display: Optional[str] = None
    household_measure: Optional[str] = None


ResultDetails = Union[
    FormatDetails,
    RoundingDetails,
    MissingNutrientsDetails,
    ClaimThresholdDetails,
    DailyValueClaimDetails,
    HealthyClaimDetails,
    RelativeClaimDetails,
    UnrecognizedClaimDetails,
    RaccDetails,
]


@dataclass(frozen=True)
class ValidationResult:
    rule_id: str
    rule_name: str
    rule_type: RuleType
    status: Status
    severity: Severity
    message: str
    citation: Optional[str] = None
    details: Optional[ResultDetails] = None

    def __post_init__(self) -> None:
        if self.status == Status.FAIL and self.severity == Severity.INFO:
            raise ValueError(f"Failing result {self.rule_id} cannot have info severity")
        if self.status == Status.PASS and self.severity != Severity.INFO:
            raise ValueError(f"Passing result {self.rule_id} must have info severity")

    @property
    def is_error(self) -> bool:
        return self.status == Status.FAIL and self.severity == Severity.ERROR

    @property
    def is_warning(self) -> bool:
        return self.status == Status.FAIL and self.severity == Severity.WARNING


@dataclass(frozen=True)
class ValidationMessage:
    """One RACC serving-size finding before it is folded into the report."""

    type: MessageType
    message: str
    citation: Optional[str] = None
    details: Optional[RaccDetails] = None


@dataclass(frozen=True)
class ServingSizeValidation:
    is_valid: bool
    racc_category: Optional[RaccCategory]
    suggested_serving_size: Optional[float]
    suggested_household_measure: Optional[str]
    messages: tuple[ValidationMessage, ...] = ()
    single_serving_required: bool = False
    container_rule: ContainerRule = ContainerRule.STANDARD


@dataclass(frozen=True)
class ComplianceReport:
    """
    Aggregate outcome of validate_label.

    Counts and overall_status are derived from results; build() is the only
    place that computes them.
    """

    overall_status: OverallStatus
    results: tuple[ValidationResult, ...]
    errors_count: int
    warnings_count: int
    validated_at: Optional[datetime]
    label_format: Optional[LabelFormat] = None
    racc_validation: Optional[ServingSizeValidation] = None

    @classmethod
    def build(
        cls,
        results: list[ValidationResult] | tuple[ValidationResult, ...],
        validated_at: datetime,
        label_format: Optional[LabelFormat] = None,
        racc_validation: Optional[ServingSizeValidation] = None,
    ) -> ComplianceReport:
        errors_count = sum(1 for r in results if r.is_error)
        warnings_count = sum(1 for r in results if r.is_warning)
        if errors_count > 0:
            overall = OverallStatus.ERRORS
        elif warnings_count > 0:
            overall = OverallStatus.WARNINGS
        else:
            overall = OverallStatus.COMPLIANT
        return cls(
            overall_status=overall,
            results=tuple(results),
            errors_count=errors_count,
            warnings_count=warnings_count,
            validated_at=validated_at,
            label_format=label_format,
            racc_validation=racc_validation,
        )

    @classmethod
    def not_validated(cls, label_format: Optional[LabelFormat] = None) -> ComplianceReport:
        return cls(
            overall_status=OverallStatus.NOT_VALIDATED,
            results=(),
            errors_count=0,
            warnings_count=0,
            validated_at=None,
            label_format=label_format,
        )

    def results_of_type(self, rule_type: RuleType) -> list[ValidationResult]:
        return [r for r in self.results if r.rule_type == rule_type]


@dataclass(frozen=True)
class ServingSizeInput:
    """Input to the RACC serving-size validator."""

    serving_size_g: float
    total_product_weight_g: float
    racc_category_id: str
    serving_size_household: Optional[str] = None
    servings_per_container: Optional[float] = None
