"""nfpcheck: FDA Nutrition Facts Panel rounding and compliance validation."""

__version__ = "0.1.0"

# Core exports
from nfpcheck.core.daily_values import DailyValueTable, percent_daily_values, percent_dv
from nfpcheck.core.errors import CatalogError, LabelDataError, NfpCheckError
from nfpcheck.core.models import (
    ComplianceReport,
    LabelData,
    LabelFormat,
    NutritionData,
    OverallStatus,
    RoundedNutritionData,
    ServingContext,
    ServingSizeInput,
    ServingSizeValidation,
    Severity,
    Status,
    ValidationResult,
)
from nfpcheck.core.nutrients import Nutrient
from nfpcheck.core.racc import RaccTable
from nfpcheck.core.report import format_report, parse_label_data, report_from_dict, report_to_dict
from nfpcheck.core.rounding import round_nutrient, round_nutrition, round_serving_amount
from nfpcheck.core.rules import RuleCatalog
from nfpcheck.core.serving_size import validate_serving_size
from nfpcheck.core.validator import validate_label

__all__ = [
    "CatalogError",
    "ComplianceReport",
    "DailyValueTable",
    "LabelData",
    "LabelDataError",
    "LabelFormat",
    "NfpCheckError",
    "Nutrient",
    "NutritionData",
    "OverallStatus",
    "RaccTable",
    "RoundedNutritionData",
    "RuleCatalog",
    "ServingContext",
    "ServingSizeInput",
    "ServingSizeValidation",
    "Severity",
    "Status",
    "ValidationResult",
    "format_report",
    "parse_label_data",
    "percent_daily_values",
    "percent_dv",
    "report_from_dict",
    "report_to_dict",
    "round_nutrient",
    "round_nutrition",
    "round_serving_amount",
    "validate_label",
    "validate_serving_size",
]
