"""CLI helpers for nfpcheck."""

from __future__ import annotations

import argparse
import dataclasses
import json
import logging
import sys
from pathlib import Path
from typing import Any

from nfpcheck.app_logging import configure_logging
from nfpcheck.config import Settings
from nfpcheck.core.daily_values import (
    DailyValueTable,
    default_daily_values,
    percent_daily_values,
)
from nfpcheck.core.errors import CatalogError, LabelDataError
from nfpcheck.core.models import RuleType, ServingContext
from nfpcheck.core.racc import RaccTable, default_racc_table
from nfpcheck.core.report import (
    dataclass_to_dict,
    format_report,
    parse_label_data,
    parse_nutrition_data,
    report_to_dict,
)
from nfpcheck.core.rounding import RoundingTable, default_rounding_table, round_nutrition
from nfpcheck.core.rules import RuleCatalog, default_catalog
from nfpcheck.core.validator import validate_label

_logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_ERRORS = 1
EXIT_BAD_INPUT = 2


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="nfpcheck")
    parser.add_argument("--log-level", default=None, help="Overrides NFPCHECK_LOG_LEVEL")
    subparsers = parser.add_subparsers(dest="command", required=True)

    validate_cmd = subparsers.add_parser("validate", help="Validate a label JSON file")
    validate_cmd.add_argument("file")
    validate_cmd.add_argument("--out", help="Write the report here instead of stdout")
    validate_cmd.add_argument("--text", action="store_true", help="Plain-text report")

    round_cmd = subparsers.add_parser("round", help="Print declared values for a label")
    round_cmd.add_argument("file")

    racc_cmd = subparsers.add_parser("racc", help="Browse RACC categories")
    racc_sub = racc_cmd.add_subparsers(dest="racc_command", required=True)
    search_cmd = racc_sub.add_parser("search", help="Fuzzy search categories")
    search_cmd.add_argument("query")
    search_cmd.add_argument("--limit", type=int, default=5)
    show_cmd = racc_sub.add_parser("show", help="Show one category")
    show_cmd.add_argument("id")

    rules_cmd = subparsers.add_parser("rules", help="List compliance rules")
    rules_cmd.add_argument("--type", choices=[t.value for t in RuleType])

    args = parser.parse_args(argv)
    settings = Settings()
    configure_logging(args.log_level or settings.log_level)

    try:
        if args.command == "validate":
            return _validate(args, settings)
        if args.command == "round":
            return _round(args, settings)
        if args.command == "racc":
            return _racc(args, settings)
        if args.command == "rules":
            return _rules(args, settings)
    except (LabelDataError, CatalogError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return EXIT_BAD_INPUT
    return EXIT_ERRORS


def _validate(args: argparse.Namespace, settings: Settings) -> int:
    label = parse_label_data(_read_json(args.file))
    if label.package_surface_area is None:
        label = dataclasses.replace(label, package_surface_area=settings.default_package_area)

    data_path = settings.data_path
    report = validate_label(
        label,
        catalog=RuleCatalog.load(data_path) if data_path else default_catalog(),
        daily_values=_daily_values(settings),
        racc_table=RaccTable.load(data_path) if data_path else default_racc_table(),
    )
    _logger.info(
        "%s: %s (%s errors, %s warnings)",
        args.file,
        report.overall_status.value,
        report.errors_count,
        report.warnings_count,
    )

    if args.text:
        output = format_report(report) + "\n"
    else:
        output = json.dumps(report_to_dict(report), indent=2, ensure_ascii=False) + "\n"
    if args.out:
        Path(args.out).write_text(output, encoding="utf-8")
    else:
        sys.stdout.write(output)
    return EXIT_ERRORS if report.errors_count else EXIT_OK


def _round(args: argparse.Namespace, settings: Settings) -> int:
    data = _read_json(args.file)
    if isinstance(data, dict) and ("nutrition_data" in data or "nutritionData" in data):
        label = parse_label_data(data)
        nutrition = label.nutrition_data
        context = ServingContext(label.serving_size_g, label.servings_per_container)
    else:
        nutrition = parse_nutrition_data(data)
        context = None

    daily_values = _daily_values(settings)
    table = RoundingTable.load(settings.data_path) if settings.data_path else None
    rounded = round_nutrition(
        nutrition,
        context,
        table=table or default_rounding_table(),
        daily_values=daily_values,
    )
    record = {
        "declared": dataclass_to_dict(rounded),
        "percent_daily_values": {
            nutrient.value: dv
            for nutrient, dv in percent_daily_values(nutrition, daily_values).items()
        },
    }
    sys.stdout.write(json.dumps(record, indent=2, ensure_ascii=False) + "\n")
    return EXIT_OK


def _racc(args: argparse.Namespace, settings: Settings) -> int:
    table = RaccTable.load(settings.data_path) if settings.data_path else default_racc_table()
    if args.racc_command == "search":
        for category, score in table.search(args.query, limit=args.limit):
            print(
                f"{category.id}\t{category.reference_amount:g} {category.unit}\t"
                f"{category.description}\t{score:.0f}"
            )
        return EXIT_OK

    category = table.get(args.id)
    if category is None:
        print(f"error: unknown RACC category {args.id!r}", file=sys.stderr)
        return EXIT_ERRORS
    sys.stdout.write(json.dumps(dataclass_to_dict(category), indent=2) + "\n")
    return EXIT_OK


def _rules(args: argparse.Namespace, settings: Settings) -> int:
    catalog = RuleCatalog.load(settings.data_path) if settings.data_path else default_catalog()
    rules = catalog.rules_of_type(RuleType(args.type)) if args.type else list(catalog.rules)
    for rule in rules:
        print(f"{rule.id}\t{rule.rule_type.value}\t{rule.name}\t{rule.citation}")
    return EXIT_OK


def _daily_values(settings: Settings) -> DailyValueTable:
    if settings.data_path:
        return DailyValueTable.load(settings.data_path)
    return default_daily_values()


def _read_json(path: str) -> Any:
    try:
        with Path(path).open("r", encoding="utf-8") as handle:
            return json.load(handle)
    except FileNotFoundError as exc:
        raise LabelDataError(f"File not found: {path}") from exc
    except json.JSONDecodeError as exc:
        raise LabelDataError(f"{path} is not valid JSON: {exc}") from exc


if __name__ == "__main__":
    raise SystemExit(main())
