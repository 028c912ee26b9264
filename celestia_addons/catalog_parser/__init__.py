"""Celestia catalog parser package."""
from __future__ import annotations

from . import addon, extractor, report, scanner
from .extractor import CatalogParseResult, extract_object_paths

__all__ = [
    "addon",
    "extractor",
    "report",
    "scanner",
    "CatalogParseResult",
    "extract_object_paths",
]
