"""Output files for catalog scans."""
from __future__ import annotations

import json
from collections.abc import Iterable
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from .scanner import ScanOutcome, UnrecognizedLine


def now_iso() -> str:
    return datetime.now(UTC).replace(microsecond=0).isoformat()


def format_unrecognized(entry: UnrecognizedLine) -> str:
    return f"[{entry.file}] {entry.line}"


def write_lines(path: Path, lines: Iterable[str]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("\n".join(lines), encoding="utf-8")


def write_object_paths(path: Path, paths: Iterable[str]) -> None:
    write_lines(path, paths)


def write_unrecognized(path: Path, entries: Iterable[UnrecognizedLine]) -> None:
    write_lines(path, (format_unrecognized(entry) for entry in entries))


def build_scan_report(outcome: ScanOutcome, timestamp: str) -> dict[str, Any]:
    return {
        "timestamp": timestamp,
        "target": str(outcome.target),
        "files": {file: data.to_dict() for file, data in outcome.files.items()},
        "counts": {
            "files": len(outcome.files),
            "object_paths": len(outcome.object_paths),
            "unique_object_paths": len(outcome.unique_object_paths()),
            "unrecognized": len(outcome.unrecognized),
        },
    }


def write_scan_report(path: Path, outcome: ScanOutcome, timestamp: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as fh:
        json.dump(build_scan_report(outcome, timestamp), fh, indent=2)
