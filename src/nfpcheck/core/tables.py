"""Loading of the static reference tables shipped in nfpcheck.data."""

from __future__ import annotations

import logging
from importlib import resources
from pathlib import Path
from typing import Any

import yaml

from nfpcheck.core.errors import CatalogError

_logger = logging.getLogger(__name__)


def load_yaml(path: str | Path | None, resource_name: str) -> dict[str, Any]:
    """
    Read a reference table.

    Args:
        path: Directory overriding the packaged data (None uses nfpcheck.data)
        resource_name: File name, e.g. "racc.yaml"

    Raises:
        CatalogError: If the file is missing or is not a YAML mapping
    """
    try:
        if path:
            file_path = Path(path) / resource_name
            with file_path.open("r", encoding="utf-8") as handle:
                payload = yaml.safe_load(handle)
        else:
            resource = resources.files("nfpcheck.data").joinpath(resource_name)
            with resource.open("r", encoding="utf-8") as handle:
                payload = yaml.safe_load(handle)
    except FileNotFoundError as exc:
        raise CatalogError(f"Reference table not found: {resource_name}") from exc
    except yaml.YAMLError as exc:
        raise CatalogError(f"Reference table {resource_name} is not valid YAML: {exc}") from exc

    if not isinstance(payload, dict):
        raise CatalogError(f"Reference table {resource_name} must be a mapping")
    _logger.debug("Loaded reference table %s from %s", resource_name, path or "package data")
    return payload


def require(entry: dict[str, Any], key: str, source: str) -> Any:
    value = entry.get(key)
    if value is None:
        raise CatalogError(f"{source}: missing required field '{key}'")
    return value


def as_float(value: Any, source: str) -> float:
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise CatalogError(f"{source}: expected a number, got {value!r}") from exc
