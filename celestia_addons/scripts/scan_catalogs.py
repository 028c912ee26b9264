#!/usr/bin/env python3
"""CLI entrypoint for the Celestia catalog tools."""
from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from celestia_addons.catalog_parser import addon, report, scanner

logger = logging.getLogger("celestia_addons.catalog_parser.cli")


def configure_logging(verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="[%(levelname)s] %(message)s",
    )


def resolve_directory(path: str) -> Path:
    resolved = Path(path).expanduser().resolve()
    if not resolved.is_dir():
        raise SystemExit(f"Cannot enumerate directory at {resolved}")
    return resolved


def resolve_file(path: str) -> Path:
    resolved = Path(path).expanduser().resolve()
    if not resolved.is_file():
        raise SystemExit(f"File not found: {resolved}")
    return resolved


def print_scan_outcome(outcome: scanner.ScanOutcome) -> None:
    for file_path, paths in outcome.paths_by_file.items():
        if not paths:
            continue
        print(f"--- {file_path} ---")
        for path in paths:
            print(path)
    print(f"\n=== Total: {len(outcome.object_paths)} object paths ===")
    if outcome.unrecognized:
        print(f"\n{len(outcome.unrecognized)} unrecognized line(s):")
        for entry in outcome.unrecognized:
            print(f"  {report.format_unrecognized(entry)}")


def command_scan(args: argparse.Namespace) -> None:
    target = resolve_directory(args.directory)
    logger.info("Scanning %s", target)
    outcome = scanner.scan_directory(target)
    print_scan_outcome(outcome)
    if args.objects_output:
        objects_path = Path(args.objects_output)
        report.write_object_paths(objects_path, outcome.object_paths)
        print(f"Object paths written to {objects_path}")
    if args.unrecognized_output:
        unrecognized_path = Path(args.unrecognized_output)
        report.write_unrecognized(unrecognized_path, outcome.unrecognized)
        print(f"Unrecognized lines written to {unrecognized_path}")
    if args.report:
        report_path = Path(args.report)
        report.write_scan_report(report_path, outcome, report.now_iso())
        logger.info("Scan report written to %s", report_path)


def command_related(args: argparse.Namespace) -> None:
    archive = resolve_file(args.archive)
    try:
        contents = addon.collect_related_object_paths(archive)
    except addon.ValidatorError as exc:
        raise SystemExit(str(exc)) from exc
    for path in contents.related_object_paths:
        print(path)
    print(f"\n=== {len(contents.related_object_paths)} distinct object paths ===")
    if contents.needs_related_paths_update:
        print("Related object paths should be stored with the item")


def command_validate(args: argparse.Namespace) -> None:
    target = Path(args.path).expanduser().resolve()
    try:
        if target.is_dir():
            operation = addon.validate_directory(target)
        elif target.is_file():
            operation = addon.validate_archive(target)
        else:
            raise SystemExit(f"Path not found: {target}")
    except addon.ValidatorError as exc:
        logger.error("Validation failed: %s", exc)
        raise SystemExit(str(exc)) from exc
    json.dump(addon.operation_to_dict(operation), sys.stdout, indent=2, ensure_ascii=False)
    sys.stdout.write("\n")


def build_parser() -> argparse.ArgumentParser:
    parser_obj = argparse.ArgumentParser(description="Extract object paths from Celestia catalogs")
    parser_obj.add_argument("--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser_obj.add_subparsers(dest="command")

    scan_parser = subparsers.add_parser(
        "scan", help="Scan a directory for .dsc, .stc and .ssc files"
    )
    scan_parser.add_argument("directory", help="The directory path to scan")
    scan_parser.add_argument(
        "--objects-output", help="File path to write extracted object paths to"
    )
    scan_parser.add_argument(
        "--unrecognized-output", help="File path to write unrecognized lines to"
    )
    scan_parser.add_argument("--report", help="File path to write a JSON scan report to")
    scan_parser.set_defaults(func=command_scan)

    related_parser = subparsers.add_parser(
        "related", help="List the object paths declared by an add-on archive"
    )
    related_parser.add_argument("archive", help="Path to the add-on zip file")
    related_parser.set_defaults(func=command_related)

    validate_parser = subparsers.add_parser(
        "validate", help="Validate an add-on submission directory or zip file"
    )
    validate_parser.add_argument("path", help="Submission directory or zip file")
    validate_parser.set_defaults(func=command_validate)

    return parser_obj


def main(argv: list[str] | None = None) -> None:
    parser_obj = build_parser()
    args = parser_obj.parse_args(argv)
    if not getattr(args, "command", None):
        parser_obj.print_help()
        return
    configure_logging(args.verbose)
    args.func(args)


if __name__ == "__main__":
    main()
