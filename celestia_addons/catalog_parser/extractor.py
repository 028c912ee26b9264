"""Object path extraction for Celestia catalog files (.ssc, .stc, .dsc)."""
from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from enum import Enum

logger = logging.getLogger(__name__)

QUOTE = '"'
COMMENT = "#"
OPEN_BRACE = "{"
CLOSE_BRACE = "}"

REFERENCE_FRAME_PREFIXES = ("location", "barycenter")
ALT_SURFACE_PREFIX = "altsurface"
MODIFY_PREFIXES = ("modify", "replace")

CATALOG_NUMBER_RE = re.compile(r"^[+-]?[0-9]+$")
_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1


@dataclass
class CatalogParseResult:
    """Object paths and unclassifiable lines found in one catalog file."""

    object_paths: list[str] = field(default_factory=list)
    unrecognized_lines: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, object]:
        return {
            "object_paths": list(self.object_paths),
            "unrecognized_lines": list(self.unrecognized_lines),
        }


class LineKind(Enum):
    BRACE_ONLY = "brace_only"
    REFERENCE_FRAME = "reference_frame"
    ALT_SURFACE = "alt_surface"
    MODIFY_REPLACE = "modify_replace"
    GENERIC = "generic"


@dataclass(frozen=True)
class Extraction:
    """Outcome of applying one extraction rule to a top-level line.

    ``paths`` are emitted in order; ``unrecognized`` carries the line when no
    rule applied. An instance with neither is a silent drop.
    """

    paths: tuple[str, ...] = ()
    unrecognized: str | None = None

    @classmethod
    def emit(cls, *paths: str) -> Extraction:
        return cls(paths=paths)

    @classmethod
    def unrecognized_line(cls, line: str) -> Extraction:
        return cls(unrecognized=line)

    @property
    def is_drop(self) -> bool:
        return not self.paths and self.unrecognized is None

    def __add__(self, other: Extraction) -> Extraction:
        return Extraction(
            paths=self.paths + other.paths,
            unrecognized=self.unrecognized or other.unrecognized,
        )


DROP = Extraction()


# ---------------------------------------------------------------------------
# Lexical helpers
# ---------------------------------------------------------------------------

def iter_logical_lines(text: str) -> Iterator[str]:
    """Yield logical lines, joining physical lines inside an open quote.

    A physical line that leaves an odd number of ``"`` in the accumulated
    text is concatenated with the following lines until the quote closes.
    A file ending inside a quote yields whatever was accumulated.
    """
    accumulator = ""
    in_open_quote = False
    for raw_line in text.splitlines():
        if in_open_quote:
            accumulator += raw_line
        else:
            accumulator = raw_line
        in_open_quote = accumulator.count(QUOTE) % 2 != 0
        if not in_open_quote:
            yield accumulator
            accumulator = ""
    if accumulator:
        yield accumulator


def strip_comment(line: str) -> str:
    """Drop everything from the first ``#`` outside quotes and trim."""
    in_quote = False
    for index, char in enumerate(line):
        if char == QUOTE:
            in_quote = not in_quote
        elif char == COMMENT and not in_quote:
            return line[:index].strip()
    return line.strip()


def extraction_prefix(line: str) -> str:
    """Return the part of ``line`` before its first unquoted ``{``, trimmed."""
    in_quote = False
    for index, char in enumerate(line):
        if char == QUOTE:
            in_quote = not in_quote
        elif char == OPEN_BRACE and not in_quote:
            return line[:index].strip()
    return line.strip()


def quoted_strings(text: str) -> list[str]:
    """Collect the contents of each ``"..."`` pair. There are no escapes."""
    tokens: list[str] = []
    in_quote = False
    current: list[str] = []
    for char in text:
        if char == QUOTE:
            if in_quote:
                tokens.append("".join(current))
                current = []
            in_quote = not in_quote
        elif in_quote:
            current.append(char)
    return tokens


def brace_delta(line: str) -> int:
    # Braces inside quoted text are counted too; existing catalogs rely on it.
    return line.count(OPEN_BRACE) - line.count(CLOSE_BRACE)


def parse_catalog_number(word: str) -> int | None:
    if not CATALOG_NUMBER_RE.match(word):
        return None
    number = int(word)
    if number < _INT64_MIN or number > _INT64_MAX:
        return None
    return number


def hip_path(number: int) -> str:
    return f"HIP {number}"


def _first_name(name_spec: str) -> str:
    # Empty segments are skipped, so ":Moon" names "Moon".
    return next((segment for segment in name_spec.split(":") if segment), "")


# ---------------------------------------------------------------------------
# Classification
# ---------------------------------------------------------------------------

def classify_line(trimmed: str) -> LineKind:
    """Classify a trimmed top-level line by its case-insensitive prefix."""
    if trimmed.startswith((OPEN_BRACE, CLOSE_BRACE)):
        return LineKind.BRACE_ONLY
    lowered = trimmed.lower()
    if lowered.startswith(REFERENCE_FRAME_PREFIXES):
        return LineKind.REFERENCE_FRAME
    if lowered.startswith(ALT_SURFACE_PREFIX):
        return LineKind.ALT_SURFACE
    if lowered.startswith(MODIFY_PREFIXES):
        return LineKind.MODIFY_REPLACE
    return LineKind.GENERIC


# ---------------------------------------------------------------------------
# Extraction rules
# ---------------------------------------------------------------------------

def extract_from_tokens(tokens: list[str]) -> Extraction:
    """Apply the name/parent-path rule to a non-empty token list."""
    if len(tokens) == 1:
        name = _first_name(tokens[0])
        if name.startswith(" "):
            return DROP
        trimmed_name = name.strip()
        return Extraction.emit(trimmed_name) if trimmed_name else DROP

    name = _first_name(tokens[-2])
    if name.startswith(" "):
        return DROP
    parent_path = tokens[-1]
    if parent_path.startswith(" "):
        return DROP
    parent_path = parent_path.strip().rstrip("/")
    if "/ " in parent_path:
        return DROP

    trimmed_name = name.strip()
    if not trimmed_name:
        return Extraction.emit(parent_path) if parent_path else DROP
    if parent_path:
        return Extraction.emit(f"{parent_path}/{trimmed_name}")
    return Extraction.emit(trimmed_name)


def extract_generic(trimmed: str) -> Extraction:
    tokens = quoted_strings(extraction_prefix(trimmed))
    if tokens:
        return extract_from_tokens(tokens)
    number = parse_catalog_number(trimmed.split(maxsplit=1)[0])
    if number is None:
        return Extraction.unrecognized_line(trimmed)
    return Extraction.emit(hip_path(number))


def extract_alt_surface(trimmed: str) -> Extraction:
    tokens = quoted_strings(extraction_prefix(trimmed))
    if len(tokens) < 2:
        return Extraction.unrecognized_line(trimmed)
    # The first token only labels the surface.
    object_path = tokens[-1].strip()
    return Extraction.emit(object_path) if object_path else DROP


def extract_modify_replace(trimmed: str) -> Extraction | None:
    """Handle ``Modify``/``Replace`` lines.

    Returns ``None`` when the line names neither a catalog number nor a
    quoted object, so the caller treats it as a generic line.
    """
    parts = trimmed.split(maxsplit=2)
    if len(parts) < 2 or parts[1].lower() == "barycenter":
        return DROP

    handled = False
    outcome = DROP
    number = parse_catalog_number(parts[1])
    if number is not None:
        outcome = Extraction.emit(hip_path(number))
        handled = True
    tokens = quoted_strings(extraction_prefix(trimmed))
    if tokens:
        outcome = outcome + extract_from_tokens(tokens)
        handled = True
    return outcome if handled else None


def extract_line(trimmed: str) -> Extraction:
    """Extract object paths from one comment-free top-level line."""
    kind = classify_line(trimmed)
    if kind in (LineKind.BRACE_ONLY, LineKind.REFERENCE_FRAME):
        return DROP
    if kind is LineKind.ALT_SURFACE:
        return extract_alt_surface(trimmed)
    if kind is LineKind.MODIFY_REPLACE:
        outcome = extract_modify_replace(trimmed)
        if outcome is not None:
            return outcome
    return extract_generic(trimmed)


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def extract_object_paths(text: str) -> CatalogParseResult:
    """Extract object paths from the decoded text of one catalog file.

    Only top-level lines are classified; lines inside property blocks only
    move the brace depth. Malformed input never raises: lines no rule can
    read end up in ``unrecognized_lines``.
    """
    return extract_from_lines(iter_logical_lines(text))


def extract_from_lines(lines: Iterable[str]) -> CatalogParseResult:
    result = CatalogParseResult()
    depth = 0
    for line in lines:
        trimmed = strip_comment(line)
        if not trimmed:
            continue
        if depth == 0:
            outcome = extract_line(trimmed)
            result.object_paths.extend(outcome.paths)
            if outcome.unrecognized is not None:
                logger.debug("Unrecognized catalog line: %s", outcome.unrecognized)
                result.unrecognized_lines.append(outcome.unrecognized)
        depth = max(depth + brace_delta(trimmed), 0)
    return result
