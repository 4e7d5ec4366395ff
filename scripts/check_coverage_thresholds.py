"""Enforce per-module coverage floors from a coverage.py JSON report.

Usage::

    pytest --cov=blobfields --cov-report=json
    python scripts/check_coverage_thresholds.py coverage.json
"""

import argparse
import json
import sys
from pathlib import Path
from typing import Final

THRESHOLDS: Final[dict[str, float]] = {
    "src/blobfields/sync.py": 95.0,
    "src/blobfields/links.py": 95.0,
    "src/blobfields/record.py": 95.0,
    "src/blobfields/collection.py": 95.0,
    "src/blobfields/blobs/_file.py": 90.0,
    "src/blobfields/records/_file.py": 90.0,
}


def _read_files_section(path: Path) -> dict[str, object]:
    """Return the ``files`` object of a coverage JSON report."""
    report = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(report, dict) or not isinstance(report.get("files"), dict):
        msg = f"{path} is not a coverage.py JSON report with a 'files' object."
        raise TypeError(msg)
    return report["files"]


def _module_key(path: str) -> str:
    """Reduce a reported path to its ``src/...`` suffix regardless of OS or checkout location."""
    normalized = path.replace("\\", "/").removeprefix("./")
    index = normalized.rfind("/src/")
    return normalized[index + 1 :] if index >= 0 else normalized


def _covered_percent(files: dict[str, object], module_path: str) -> float | None:
    by_key = {_module_key(key): entry for key, entry in files.items()}
    entry = by_key.get(_module_key(module_path))
    if not isinstance(entry, dict):
        return None
    summary = entry.get("summary")
    value = summary.get("percent_covered") if isinstance(summary, dict) else None
    return float(value) if isinstance(value, int | float) else None


def find_shortfalls(report_path: Path, thresholds: dict[str, float] = THRESHOLDS) -> list[str]:
    """Return one message per module below its floor or missing from the report."""
    files = _read_files_section(report_path)
    shortfalls: list[str] = []
    for module_path, floor in thresholds.items():
        percent = _covered_percent(files, module_path)
        if percent is None:
            shortfalls.append(f"{module_path}: not in report")
        elif percent < floor:
            shortfalls.append(f"{module_path}: {percent:.2f}% < required {floor:.2f}%")
    return shortfalls


def main() -> int:
    """Exit non-zero when any module misses its coverage floor."""
    parser = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
    parser.add_argument("report", nargs="?", default="coverage.json", help="coverage.py JSON report path.")
    args = parser.parse_args()

    shortfalls = find_shortfalls(Path(args.report))
    for line in shortfalls:
        sys.stderr.write(f"{line}\n")
    return 1 if shortfalls else 0


if __name__ == "__main__":
    raise SystemExit(main())
