"""RACC category table: load, lookup and fuzzy search."""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from types import MappingProxyType
from typing import Mapping

from rapidfuzz import fuzz

from nfpcheck.core.errors import CatalogError
from nfpcheck.core.models import LabelFormat, RaccCategory
from nfpcheck.core.tables import as_float, load_yaml, require

_UNITS = {"g", "mL"}


def _parse_category(entry: dict, index: int) -> RaccCategory:
    source = f"racc.yaml:categories[{index}]"
    unit = str(entry.get("unit", "g"))
    if unit not in _UNITS:
        raise CatalogError(f"{source}: unit must be g or mL, got {unit}")
    amount = as_float(require(entry, "reference_amount", source), source)
    if amount <= 0:
        raise CatalogError(f"{source}: reference_amount must be positive")
    try:
        hints = tuple(LabelFormat(h) for h in entry.get("format_hints") or [])
    except ValueError as exc:
        raise CatalogError(f"{source}: {exc}") from exc
    return RaccCategory(
        id=str(require(entry, "id", source)),
        category=str(require(entry, "category", source)),
        subcategory=entry.get("subcategory"),
        reference_amount=amount,
        unit=unit,
        household_measure=entry.get("household_measure"),
        label_statement=str(entry.get("label_statement", "")),
        product_examples=tuple(str(e) for e in entry.get("product_examples") or []),
        format_hints=hints,
    )


@dataclass(frozen=True)
class RaccTable:
    """
    Static RACC reference data (21 CFR 101.12(b)).

    Never mutated after load; safe to share across threads.
    """

    entries: Mapping[str, RaccCategory]
    citation: str = ""
    match_threshold: int = 60

    @classmethod
    def load(cls, data_path: str | Path | None = None) -> RaccTable:
        payload = load_yaml(data_path, "racc.yaml")
        entries: dict[str, RaccCategory] = {}
        for index, entry in enumerate(payload.get("categories") or []):
            if not isinstance(entry, dict):
                raise CatalogError(f"racc.yaml:categories[{index}] must be a mapping")
            category = _parse_category(entry, index)
            if category.id in entries:
                raise CatalogError(f"racc.yaml: duplicate category id '{category.id}'")
            entries[category.id] = category
        return cls(entries=MappingProxyType(entries), citation=str(payload.get("citation", "")))

    def get(self, category_id: str) -> RaccCategory | None:
        return self.entries.get(category_id)

    def __contains__(self, category_id: object) -> bool:
        return category_id in self.entries

    def __len__(self) -> int:
        return len(self.entries)

    def categories(self) -> list[str]:
        """Distinct top-level category names in table order."""
        seen: list[str] = []
        for entry in self.entries.values():
            if entry.category not in seen:
                seen.append(entry.category)
        return seen

    def in_category(self, category: str) -> list[RaccCategory]:
        return [e for e in self.entries.values() if e.category == category]

    def search(self, query: str, limit: int = 5) -> list[tuple[RaccCategory, float]]:
        """
        Rank categories against a free-text product description.

        Scores each entry by its best WRatio over category, subcategory and
        product examples; entries below match_threshold are dropped.
        """
        query = " ".join(query.lower().split())
        if not query:
            return []
        scored: list[tuple[RaccCategory, float]] = []
        for entry in self.entries.values():
            candidates = [entry.category, entry.subcategory or "", *entry.product_examples]
            score = max(fuzz.WRatio(query, c.lower()) for c in candidates if c)
            if score >= self.match_threshold:
                scored.append((entry, score))
        scored.sort(key=lambda pair: (-pair[1], pair[0].id))
        return scored[:limit]


@lru_cache(maxsize=1)
def default_racc_table() -> RaccTable:
    return RaccTable.load()
