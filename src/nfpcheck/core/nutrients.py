"""The 15 Nutrition Facts nutrients, their units and the names used to find them."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Nutrient(str, Enum):
    """Nutrient keys in the order they appear on the panel."""

    CALORIES = "calories"
    TOTAL_FAT = "total_fat"
    SATURATED_FAT = "saturated_fat"
    TRANS_FAT = "trans_fat"
    CHOLESTEROL = "cholesterol"
    SODIUM = "sodium"
    TOTAL_CARBOHYDRATES = "total_carbohydrates"
    DIETARY_FIBER = "dietary_fiber"
    TOTAL_SUGARS = "total_sugars"
    ADDED_SUGARS = "added_sugars"
    PROTEIN = "protein"
    VITAMIN_D = "vitamin_d"
    CALCIUM = "calcium"
    IRON = "iron"
    POTASSIUM = "potassium"

    @property
    def display(self) -> str:
        return NUTRIENT_INFO[self].display

    @property
    def unit(self) -> str:
        return NUTRIENT_INFO[self].unit


@dataclass(frozen=True)
class NutrientInfo:
    display: str
    unit: str
    camel_key: str
    aliases: tuple[str, ...]
    """Lowercase phrases that name this nutrient inside a claim statement."""


NUTRIENT_INFO: dict[Nutrient, NutrientInfo] = {
    Nutrient.CALORIES: NutrientInfo("Calories", "kcal", "calories", ("calorie",)),
    Nutrient.TOTAL_FAT: NutrientInfo("Total Fat", "g", "totalFat", ("total fat", "fat")),
    Nutrient.SATURATED_FAT: NutrientInfo(
        "Saturated Fat", "g", "saturatedFat", ("saturated fat",)
    ),
    Nutrient.TRANS_FAT: NutrientInfo("Trans Fat", "g", "transFat", ("trans fat",)),
    Nutrient.CHOLESTEROL: NutrientInfo("Cholesterol", "mg", "cholesterol", ("cholesterol",)),
    Nutrient.SODIUM: NutrientInfo("Sodium", "mg", "sodium", ("sodium", "salt")),
    Nutrient.TOTAL_CARBOHYDRATES: NutrientInfo(
        "Total Carbohydrate", "g", "totalCarbohydrates", ("carbohydrate", "carbs")
    ),
    Nutrient.DIETARY_FIBER: NutrientInfo(
        "Dietary Fiber", "g", "dietaryFiber", ("dietary fiber", "fiber", "fibre")
    ),
    Nutrient.TOTAL_SUGARS: NutrientInfo("Total Sugars", "g", "totalSugars", ("sugar",)),
    Nutrient.ADDED_SUGARS: NutrientInfo(
        "Includes Added Sugars", "g", "addedSugars", ("added sugar",)
    ),
    Nutrient.PROTEIN: NutrientInfo("Protein", "g", "protein", ("protein",)),
    Nutrient.VITAMIN_D: NutrientInfo("Vitamin D", "mcg", "vitaminD", ("vitamin d",)),
    Nutrient.CALCIUM: NutrientInfo("Calcium", "mg", "calcium", ("calcium",)),
    Nutrient.IRON: NutrientInfo("Iron", "mg", "iron", ("iron",)),
    Nutrient.POTASSIUM: NutrientInfo("Potassium", "mg", "potassium", ("potassium",)),
}

PANEL_ORDER: tuple[Nutrient, ...] = tuple(Nutrient)

_KEY_LOOKUP: dict[str, Nutrient] = {}
for _nutrient, _info in NUTRIENT_INFO.items():
    _KEY_LOOKUP[_nutrient.value] = _nutrient
    _KEY_LOOKUP[_info.camel_key] = _nutrient


def parse_nutrient(key: str | Nutrient) -> Nutrient:
    """Resolve a snake_case or camelCase nutrient key."""
    if isinstance(key, Nutrient):
        return key
    nutrient = _KEY_LOOKUP.get(str(key).strip())
    if nutrient is None:
        raise ValueError(f"Unknown nutrient key: {key}")
    return nutrient


def find_nutrient_in_text(
    text: str, candidates: tuple[Nutrient, ...] | None = None
) -> Nutrient | None:
    """
    Return the nutrient named in a free-text claim.

    The longest matching alias wins, so "saturated fat" beats "fat".
    """
    lowered = " ".join(text.lower().split())
    pool = candidates if candidates is not None else PANEL_ORDER
    best: tuple[Nutrient, int] | None = None
    for nutrient in pool:
        for alias in NUTRIENT_INFO[nutrient].aliases:
            if alias in lowered and (best is None or len(alias) > best[1]):
                best = (nutrient, len(alias))
    return best[0] if best else None
