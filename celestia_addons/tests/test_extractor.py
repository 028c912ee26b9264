from __future__ import annotations

import pytest

from celestia_addons.catalog_parser import extractor
from celestia_addons.catalog_parser.extractor import (
    DROP,
    Extraction,
    LineKind,
    classify_line,
    extract_object_paths,
)

SAMPLE_SSC = '''
# Moons of a fictional system
"Moon:Luna" "Sol/Earth"
{
    Texture "moon.jpg"
    Radius 1737
    EllipticalOrbit {
        Period 27.3
    }
}

Location "Tranquility Base" "Sol/Earth/Moon"
{
    LongLat [ 23.4 0.67 0 ]
}

AltSurface "Limit of Knowledge" "Sol/Mars"
{
    Texture "mars-lok.jpg"
}

Modify "Phobos" "Sol/Mars/" { Radius 12 }
Barycenter "EarthMoon" "Sol" { }
'''


def paths(text: str) -> list[str]:
    return extract_object_paths(text).object_paths


def test_sample_catalog() -> None:
    result = extract_object_paths(SAMPLE_SSC)
    assert result.object_paths == ["Sol/Earth/Moon", "Sol/Mars", "Sol/Mars/Phobos"]
    assert result.unrecognized_lines == []


def test_name_with_parent_path() -> None:
    result = extract_object_paths('"Name" "Parent/Path"')
    assert result.object_paths == ["Parent/Path/Name"]
    assert result.unrecognized_lines == []


def test_name_without_parent_path() -> None:
    assert paths('"Name"') == ["Name"]


def test_trailing_slashes_are_stripped() -> None:
    assert paths('"Name" "Parent/"') == ["Parent/Name"]
    assert paths('"Name" "Parent///"') == ["Parent/Name"]


def test_first_alias_is_the_name() -> None:
    assert paths('"Io:Jupiter I" "Sol/Jupiter"') == ["Sol/Jupiter/Io"]


def test_empty_alias_segments_are_skipped() -> None:
    assert paths('":Moon" "Sol/Earth"') == ["Sol/Earth/Moon"]


def test_empty_name_emits_parent_path() -> None:
    assert paths('"" "Sol/Earth"') == ["Sol/Earth"]


def test_empty_parent_emits_name() -> None:
    assert paths('"Moon" ""') == ["Moon"]


def test_last_two_tokens_are_used() -> None:
    assert paths('ReferencePoint "Ignored" "Name" "Parent"') == ["Parent/Name"]


@pytest.mark.parametrize(
    "line",
    [
        '" Name" "Parent"',
        '"Name" " Parent"',
        '"Name" "Sol/ Earth"',
        '"" " Parent"',
        '"" "Sol/ Earth"',
        '" Name"',
        '""',
        '"  "',
    ],
)
def test_malformed_names_are_dropped_silently(line: str) -> None:
    result = extract_object_paths(line)
    assert result.object_paths == []
    assert result.unrecognized_lines == []


def test_empty_name_and_parent_are_dropped() -> None:
    result = extract_object_paths('"" ""')
    assert result.object_paths == []
    assert result.unrecognized_lines == []


def test_alt_surface_emits_object_path_only() -> None:
    assert paths('AltSurface "Alt" "Sol/Earth"') == ["Sol/Earth"]


def test_alt_surface_single_token_is_unrecognized() -> None:
    result = extract_object_paths('AltSurface "Alt" { Texture "x.jpg" }')
    assert result.object_paths == []
    assert result.unrecognized_lines == ['AltSurface "Alt" { Texture "x.jpg" }']


def test_modify_catalog_number() -> None:
    result = extract_object_paths("Modify 12345 { Radius 2 }")
    assert result.object_paths == ["HIP 12345"]
    assert result.unrecognized_lines == []


def test_replace_catalog_number_is_canonical() -> None:
    assert paths("Replace 007") == ["HIP 7"]


def test_modify_barycenter_emits_nothing() -> None:
    result = extract_object_paths('Modify Barycenter "EarthMoon" "Sol" { }')
    assert result.object_paths == []
    assert result.unrecognized_lines == []


def test_bare_modify_emits_nothing() -> None:
    result = extract_object_paths("Modify")
    assert result.object_paths == []
    assert result.unrecognized_lines == []


def test_modify_number_and_name_both_emitted() -> None:
    assert paths('Modify 12345 "Proxima" "Alpha Cen"') == ["HIP 12345", "Alpha Cen/Proxima"]


def test_replace_quoted_object() -> None:
    assert paths('Replace "Sol/Earth" { Radius 6400 }') == ["Sol/Earth"]


def test_modify_without_number_or_name_is_unrecognized() -> None:
    result = extract_object_paths("Modify Star { }")
    assert result.object_paths == []
    assert result.unrecognized_lines == ["Modify Star { }"]


def test_bare_catalog_number_with_comment() -> None:
    result = extract_object_paths("70890 # Proxima Cen")
    assert result.object_paths == ["HIP 70890"]
    assert result.unrecognized_lines == []


def test_bare_catalog_number_before_block() -> None:
    assert paths("70890 {\n  Distance 4.2\n}") == ["HIP 70890"]


def test_unquoted_word_is_unrecognized() -> None:
    result = extract_object_paths("Star {\n}")
    assert result.object_paths == []
    assert result.unrecognized_lines == ["Star {"]


def test_reference_frames_are_skipped() -> None:
    text = 'Location "Crater" "Sol/Earth/Moon"\nbarycenter "Pair" "Sol"'
    result = extract_object_paths(text)
    assert result.object_paths == []
    assert result.unrecognized_lines == []


def test_hash_inside_quotes_is_not_a_comment() -> None:
    assert paths('"Name#1" "Parent" # trailing comment') == ["Parent/Name#1"]


def test_multiline_string_is_joined() -> None:
    text = '"Name" "Sol/\nEarth\n" {\n Radius 1\n}\n"Next" "Sol"'
    assert paths(text) == ["Sol/Earth/Name", "Sol/Next"]


def test_multiline_string_braces_count_once() -> None:
    text = '"Comet" "Sol" { InfoURL "a\n{b" }\n"After" "Sol"'
    # The logical line holds two "{" and one "}", leaving depth 1.
    assert paths(text) == ["Sol/Comet"]


def test_unterminated_quote_at_end_of_file() -> None:
    result = extract_object_paths('"Name" "Sol\nEarth')
    # Only the closed token survives tokenizing the dangling logical line.
    assert result.object_paths == ["Name"]
    assert result.unrecognized_lines == []


def test_nested_lines_are_not_classified() -> None:
    text = '"Star" "Sol"\n{\n  "Inner" "Thing"\n  Radius 100\n  12345\n}\n'
    result = extract_object_paths(text)
    assert result.object_paths == ["Sol/Star"]
    assert result.unrecognized_lines == []


def test_braces_inside_quotes_are_counted() -> None:
    text = '"Odd{" "Sol"\n"Hidden" "Sol"\n}\n"Visible" "Sol"'
    assert paths(text) == ["Sol/Odd{", "Sol/Visible"]


def test_extraction_stops_at_unquoted_brace() -> None:
    assert paths('"Earth" "Sol" { Texture "earth.jpg" }') == ["Sol/Earth"]


def test_depth_never_goes_negative() -> None:
    text = "}\n}\n}\n\"Moon\" \"Sol/Earth\""
    result = extract_object_paths(text)
    assert result.object_paths == ["Sol/Earth/Moon"]
    assert result.unrecognized_lines == []


def test_duplicates_are_preserved() -> None:
    assert paths('"Moon" "Sol/Earth"\n"Moon" "Sol/Earth"') == [
        "Sol/Earth/Moon",
        "Sol/Earth/Moon",
    ]


def test_repeated_runs_are_identical() -> None:
    first = extract_object_paths(SAMPLE_SSC)
    second = extract_object_paths(SAMPLE_SSC)
    assert first == second


def test_crlf_line_endings() -> None:
    assert paths('"A" "Sol"\r\n"B" "Sol"\r\n') == ["Sol/A", "Sol/B"]


def test_iter_logical_lines() -> None:
    text = 'one\n"two\nthree"\nfour "five\nsix\nseven"'
    assert list(extractor.iter_logical_lines(text)) == [
        "one",
        '"twothree"',
        'four "fivesixseven"',
    ]


def test_strip_comment_respects_quotes() -> None:
    assert extractor.strip_comment('  "a#b" c # note ') == '"a#b" c'
    assert extractor.strip_comment("# only comment") == ""


def test_quoted_strings() -> None:
    assert extractor.quoted_strings('x "a" y "b c" "') == ["a", "b c"]
    assert extractor.quoted_strings("no quotes") == []


def test_extraction_prefix() -> None:
    assert extractor.extraction_prefix('"a{" "b" { c }') == '"a{" "b"'
    assert extractor.extraction_prefix("plain") == "plain"


@pytest.mark.parametrize(
    ("word", "expected"),
    [
        ("12345", 12345),
        ("+5", 5),
        ("-3", -3),
        ("1.5", None),
        ("1_000", None),
        ("", None),
        ("99999999999999999999", None),
    ],
)
def test_parse_catalog_number(word: str, expected: int | None) -> None:
    assert extractor.parse_catalog_number(word) == expected


@pytest.mark.parametrize(
    ("line", "kind"),
    [
        ("{", LineKind.BRACE_ONLY),
        ("} # end", LineKind.BRACE_ONLY),
        ("LOCATION \"x\"", LineKind.REFERENCE_FRAME),
        ("Barycenter \"x\"", LineKind.REFERENCE_FRAME),
        ("altSurface \"a\" \"b\"", LineKind.ALT_SURFACE),
        ("Modify 1", LineKind.MODIFY_REPLACE),
        ("REPLACE \"x\"", LineKind.MODIFY_REPLACE),
        ("\"Earth\" \"Sol\"", LineKind.GENERIC),
        ("Add \"Earth\" \"Sol\"", LineKind.GENERIC),
    ],
)
def test_classify_line(line: str, kind: LineKind) -> None:
    assert classify_line(line) is kind


def test_extraction_outcomes() -> None:
    assert extractor.extract_from_tokens(["Moon", "Sol/Earth"]) == Extraction.emit("Sol/Earth/Moon")
    assert extractor.extract_from_tokens([" Moon", "Sol/Earth"]).is_drop
    assert extractor.extract_generic("Star") == Extraction.unrecognized_line("Star")
    assert extractor.extract_modify_replace("Modify Star") is None
    assert extractor.extract_modify_replace("Modify Barycenter") == DROP


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ('":" "Sol"', ["Sol"]),
        ('"\t" "Sol"', ["Sol"]),
        ('"Name" "Sol/ "', ["Sol/Name"]),
        ("Modify\t12 { }", ["HIP 12"]),
        ('Modify 5 "" "Sol/"', ["HIP 5", "Sol"]),
    ],
)
def test_degenerate_names_and_separators(text: str, expected: list[str]) -> None:
    result = extractor.extract_object_paths(text)
    assert result.object_paths == expected
    assert result.unrecognized_lines == []
