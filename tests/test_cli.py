"""Tests for the nfpcheck command line."""

import json
import logging

import pytest

from nfpcheck.cli import main

COMPLIANT_LABEL = {
    "nutrition_data": {
        "calories": 140,
        "total_fat": 7,
        "saturated_fat": 2.5,
        "trans_fat": 0,
        "cholesterol": 10,
        "sodium": 95,
        "total_carbohydrates": 18,
        "dietary_fiber": 1,
        "total_sugars": 9,
        "added_sugars": 8,
        "protein": 2,
        "vitamin_d": 0,
        "calcium": 10,
        "iron": 0.7,
        "potassium": 45,
    },
    "serving_size_g": 30,
    "servings_per_container": 8,
    "format": "tabular",
    "package_surface_area": 30,
}


@pytest.fixture(autouse=True)
def _isolated(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("NFPCHECK_DATA_PATH", raising=False)
    yield
    logging.getLogger("nfpcheck").handlers.clear()


def _write(tmp_path, payload, name: str = "label.json"):
    path = tmp_path / name
    path.write_text(json.dumps(payload), encoding="utf-8")
    return path


def test_validate_compliant_label(tmp_path, capsys) -> None:
    path = _write(tmp_path, COMPLIANT_LABEL)
    assert main(["validate", str(path)]) == 0
    report = json.loads(capsys.readouterr().out)
    assert report["overall_status"] == "compliant"
    assert report["errors_count"] == 0


def test_validate_exit_code_reflects_errors(tmp_path, capsys) -> None:
    label = dict(COMPLIANT_LABEL, servings_per_container=2.3)
    path = _write(tmp_path, label)
    assert main(["validate", str(path), "--text"]) == 1
    assert "Status: ERRORS" in capsys.readouterr().out


def test_validate_writes_out_file(tmp_path) -> None:
    path = _write(tmp_path, COMPLIANT_LABEL)
    out = tmp_path / "report.json"
    assert main(["validate", str(path), "--out", str(out)]) == 0
    assert json.loads(out.read_text(encoding="utf-8"))["overall_status"] == "compliant"


def test_validate_malformed_input(tmp_path, capsys) -> None:
    path = _write(tmp_path, {"format": "tabular"})
    assert main(["validate", str(path)]) == 2
    assert "nutrition_data is required" in capsys.readouterr().err

    broken = tmp_path / "broken.json"
    broken.write_text("{not json", encoding="utf-8")
    assert main(["validate", str(broken)]) == 2
    assert main(["validate", str(tmp_path / "missing.json")]) == 2


def test_round_label(tmp_path, capsys) -> None:
    label = dict(COMPLIANT_LABEL, servings_per_container=2.3)
    path = _write(tmp_path, label)
    assert main(["round", str(path)]) == 0
    record = json.loads(capsys.readouterr().out)
    declared = record["declared"]
    assert declared["calories"] == 140
    assert declared["vitamin_d"] == 0
    assert declared["potassium"] == 0
    assert declared["serving"]["servings_display"] == "about 2.5"
    assert record["percent_daily_values"]["sodium"] == 4


def test_round_bare_nutrition_mapping(tmp_path, capsys) -> None:
    path = _write(tmp_path, {"cholesterol": 3, "totalFat": 2.3})
    assert main(["round", str(path)]) == 0
    declared = json.loads(capsys.readouterr().out)["declared"]
    assert declared["cholesterol"] == "less than 5"
    assert declared["total_fat"] == 2.5
    assert declared["serving"] is None


def test_racc_search_and_show(capsys) -> None:
    assert main(["racc", "search", "chocolate chip cookies", "--limit", "3"]) == 0
    lines = capsys.readouterr().out.splitlines()
    assert 0 < len(lines) <= 3
    assert lines[0].startswith("bakery-cookies\t30 g")

    assert main(["racc", "show", "bakery-cookies"]) == 0
    assert json.loads(capsys.readouterr().out)["household_measure"] == "2 cookies"

    assert main(["racc", "show", "no-such-category"]) == 1


def test_rules_listing(capsys) -> None:
    assert main(["rules", "--type", "format"]) == 0
    lines = capsys.readouterr().out.splitlines()
    assert len(lines) == 4
    assert lines[0].startswith("nfp-format-standard\tformat\t")


def test_data_path_override(tmp_path, monkeypatch, capsys) -> None:
    data_dir = tmp_path / "tables"
    data_dir.mkdir()
    (data_dir / "racc.yaml").write_text(
        "categories:\n  - {id: snack, category: Snacks, reference_amount: 28}\n",
        encoding="utf-8",
    )
    monkeypatch.setenv("NFPCHECK_DATA_PATH", str(data_dir))
    assert main(["racc", "show", "snack"]) == 0
    assert json.loads(capsys.readouterr().out)["reference_amount"] == 28

    assert main(["rules"]) == 2
    assert "rules.yaml" in capsys.readouterr().err
