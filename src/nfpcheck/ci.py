"""Local CI runner: lint, format check, type check and tests with coverage."""

from __future__ import annotations

import argparse
import subprocess
import sys
from pathlib import Path

_CHECKS: dict[str, list[str]] = {
    "lint": ["ruff", "check", "src", "tests"],
    "format": ["black", "--check", "src", "tests"],
    "types": ["mypy", "src"],
    "tests": ["pytest", "--cov=src/nfpcheck", "--cov-report=term-missing"],
}


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="nfpcheck-ci")
    parser.add_argument(
        "--install",
        action="store_true",
        help="Install the package with its dev extra before checking.",
    )
    parser.add_argument(
        "--only",
        choices=sorted(_CHECKS),
        action="append",
        help="Run only the named check (repeatable).",
    )
    args = parser.parse_args(argv)

    cwd = Path.cwd()
    python = sys.executable
    if args.install:
        subprocess.run([python, "-m", "pip", "install", "-e", ".[dev]"], check=True, cwd=cwd)

    failed = []
    for name, command in _CHECKS.items():
        if args.only and name not in args.only:
            continue
        print(f"==> {name}: {' '.join(command)}", flush=True)
        if subprocess.run([python, "-m", *command], cwd=cwd).returncode != 0:
            failed.append(name)

    if failed:
        print(f"Failed checks: {', '.join(failed)}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
