"""Directory scanning for catalog files."""
from __future__ import annotations

import logging
from collections.abc import Iterator
from dataclasses import dataclass, field
from hashlib import sha256
from pathlib import Path

from .extractor import extract_object_paths

logger = logging.getLogger(__name__)

CATALOG_EXTENSIONS = {".dsc", ".stc", ".ssc"}
PRIMARY_ENCODING = "utf-8"
FALLBACK_ENCODING = "cp1252"


@dataclass
class FileScanResult:
    """Metadata captured during scanning of a single catalog file."""

    file: str
    sha256: str
    extracted_count: int
    unrecognized_count: int = 0
    encoding: str | None = None
    status: str = "ok"
    error: str | None = None

    def to_dict(self) -> dict[str, object]:
        return {
            "file": self.file,
            "sha256": self.sha256,
            "extracted_count": self.extracted_count,
            "unrecognized_count": self.unrecognized_count,
            "encoding": self.encoding,
            "status": self.status,
            "error": self.error,
        }


@dataclass(frozen=True)
class UnrecognizedLine:
    file: str
    line: str


@dataclass
class ScanOutcome:
    """Everything extracted from one directory tree, in walk order."""

    target: Path
    paths_by_file: dict[str, list[str]] = field(default_factory=dict)
    unrecognized: list[UnrecognizedLine] = field(default_factory=list)
    files: dict[str, FileScanResult] = field(default_factory=dict)

    @property
    def object_paths(self) -> list[str]:
        return [path for paths in self.paths_by_file.values() for path in paths]

    def unique_object_paths(self) -> list[str]:
        return sorted(set(self.object_paths))


def iter_catalog_files(root: Path) -> Iterator[Path]:
    for path in sorted(root.rglob("*")):
        if not path.is_file():
            continue
        if path.suffix.lower() in CATALOG_EXTENSIONS:
            yield path


def decode_catalog_bytes(raw: bytes) -> tuple[str, str] | None:
    """Decode catalog bytes as UTF-8, falling back to Windows-1252.

    Returns the text with the encoding that worked, or ``None``.
    """
    for encoding in (PRIMARY_ENCODING, FALLBACK_ENCODING):
        try:
            return raw.decode(encoding), encoding
        except UnicodeDecodeError:
            continue
    return None


def scan_directory(target_dir: Path, base_path: Path | None = None) -> ScanOutcome:
    """Parse every catalog file below ``target_dir``.

    File paths in the outcome are relative to ``base_path`` (defaults to
    ``target_dir``). Read and decode failures are recorded, not raised.
    """
    base = base_path or target_dir
    outcome = ScanOutcome(target=target_dir)
    for file_path in iter_catalog_files(target_dir):
        rel_file = str(file_path.relative_to(base).as_posix())
        try:
            raw_bytes = file_path.read_bytes()
        except OSError as exc:
            logger.error("Failed to read %s: %s", file_path, exc)
            outcome.files[rel_file] = FileScanResult(
                file=rel_file,
                sha256="",
                extracted_count=0,
                status="error",
                error=str(exc),
            )
            continue
        file_sha = sha256(raw_bytes).hexdigest()
        decoded = decode_catalog_bytes(raw_bytes)
        if decoded is None:
            logger.warning("Cannot decode %s, skipping", file_path)
            outcome.files[rel_file] = FileScanResult(
                file=rel_file,
                sha256=file_sha,
                extracted_count=0,
                status="skipped",
                error="undecodable content",
            )
            continue
        text, encoding = decoded
        if encoding != PRIMARY_ENCODING:
            logger.debug("Decoded %s as %s", rel_file, encoding)
        parsed = extract_object_paths(text)
        outcome.paths_by_file[rel_file] = parsed.object_paths
        outcome.unrecognized.extend(
            UnrecognizedLine(file=rel_file, line=line) for line in parsed.unrecognized_lines
        )
        outcome.files[rel_file] = FileScanResult(
            file=rel_file,
            sha256=file_sha,
            extracted_count=len(parsed.object_paths),
            unrecognized_count=len(parsed.unrecognized_lines),
            encoding=encoding,
        )
    logger.debug(
        "Scanned %d catalog files under %s", len(outcome.files), target_dir
    )
    return outcome
