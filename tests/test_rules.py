"""Tests for the compliance rule catalog."""

import pytest

from nfpcheck.core.errors import CatalogError
from nfpcheck.core.models import LabelFormat, RuleType
from nfpcheck.core.nutrients import Nutrient
from nfpcheck.core.rules import (
    ClaimFamily,
    ClaimRule,
    RuleCatalog,
    ServingQuantity,
    default_catalog,
)


def test_default_catalog_contents() -> None:
    catalog = default_catalog()
    assert len(catalog.format_rules()) == 4
    assert len(catalog.rules_of_type(RuleType.SERVING_SIZE)) == 3
    assert len(catalog.claim_rules()) == 21

    mandatory = catalog.mandatory_rule()
    assert mandatory is not None
    assert mandatory.id == "mandatory-nutrients-standard"
    assert mandatory.nutrients == tuple(Nutrient)


def test_rule_ids_are_unique() -> None:
    ids = [rule.id for rule in default_catalog().rules]
    assert len(ids) == len(set(ids))


def test_format_rule_bounds() -> None:
    rules = {rule.format: rule for rule in default_catalog().format_rules()}
    assert rules[LabelFormat.STANDARD_VERTICAL].allows(40)
    assert not rules[LabelFormat.STANDARD_VERTICAL].allows(39.9)
    assert rules[LabelFormat.TABULAR].allows(40)
    assert not rules[LabelFormat.TABULAR].allows(19)
    assert not rules[LabelFormat.LINEAR].allows(40)
    assert rules[LabelFormat.LINEAR].allows(15)
    assert rules[LabelFormat.SIMPLIFIED].allows(11)
    assert not rules[LabelFormat.SIMPLIFIED].allows(12)


def test_serving_rules_share_bands() -> None:
    catalog = default_catalog()
    grams = catalog.serving_rule(ServingQuantity.SERVING_SIZE)
    servings = catalog.serving_rule(ServingQuantity.SERVINGS_PER_CONTAINER)
    assert grams is not None and servings is not None
    assert grams.bands == servings.bands
    assert [band.increment for band in grams.bands] == [0.1, 0.5, 1]


def test_claim_rule_details() -> None:
    catalog = default_catalog()
    good = catalog.get("claim-good-source")
    assert isinstance(good, ClaimRule)
    assert good.family == ClaimFamily.GOOD_SOURCE
    assert good.min_dv_percent == 10
    assert good.max_dv_percent_exclusive == 20
    assert Nutrient.IRON in good.applicable_nutrients

    healthy = catalog.get("claim-healthy-2025")
    assert isinstance(healthy, ClaimRule)
    assert dict(healthy.dv_limits) == {
        Nutrient.ADDED_SUGARS: 20,
        Nutrient.SODIUM: 30,
        Nutrient.SATURATED_FAT: 20,
    }

    saturated_free = catalog.get("claim-saturated-fat-free")
    assert isinstance(saturated_free, ClaimRule)
    assert dict(saturated_free.co_limits) == {Nutrient.TRANS_FAT: 0.5}
    for rule_id in ("claim-cholesterol-free", "claim-low-cholesterol"):
        rule = catalog.get(rule_id)
        assert isinstance(rule, ClaimRule)
        assert dict(rule.co_limits) == {Nutrient.SATURATED_FAT: 2}


def test_claim_matching_is_case_insensitive_substring() -> None:
    catalog = default_catalog()
    ids = {rule.id for rule in catalog.matching_claim_rules("Very LOW Sodium")}
    assert ids == {"claim-low-sodium", "claim-very-low-sodium"}
    assert catalog.matching_claim_rules("artisanal") == []


def test_load_override_catalog(tmp_path) -> None:
    (tmp_path / "rules.yaml").write_text(
        """
claim_rules:
  - id: claim-test-free
    name: Test Free
    citation: "21 CFR 101.60"
    family: free
    terms: [Test Free]
    nutrient: calories
    max_amount: 5
""",
        encoding="utf-8",
    )
    catalog = RuleCatalog.load(tmp_path)
    assert len(catalog.rules) == 1
    rule = catalog.claim_rules()[0]
    assert rule.terms == ("test free",)
    assert rule.nutrient == Nutrient.CALORIES
    assert catalog.mandatory_rule() is None


@pytest.mark.parametrize(
    "body",
    [
        # unknown family
        "claim_rules:\n  - {id: a, name: A, citation: c, family: great, terms: [x]}\n",
        # free claim without a threshold
        "claim_rules:\n  - {id: a, name: A, citation: c, family: free, terms: [x], "
        "nutrient: sodium}\n",
        # unknown nutrient
        "claim_rules:\n  - {id: a, name: A, citation: c, family: free, terms: [x], "
        "nutrient: vitamin_q, max_amount: 1}\n",
        # missing citation
        "format_rules:\n  - {id: a, name: A, format: linear}\n",
        # duplicate ids
        "format_rules:\n  - {id: a, name: A, citation: c, format: linear}\n"
        "  - {id: a, name: B, citation: c, format: tabular}\n",
    ],
)
def test_load_rejects_malformed_rules(tmp_path, body: str) -> None:
    (tmp_path / "rules.yaml").write_text(body, encoding="utf-8")
    with pytest.raises(CatalogError):
        RuleCatalog.load(tmp_path)
