#!/usr/bin/env python3
"""
classical-lint: a metadata linter for classical music releases.

Checks release directories (or JSON release documents) against the
community style rules for classical torrents and reports every violation
with its severity, plus an improvement score.
"""

import argparse
import sys
from pathlib import Path
from typing import List, Optional, Tuple

from api.schemas import load_release_document
from domain.models import Level, Release
from filesystem.file_ops import FileSystemOperations
from filesystem.release_detector import ReleaseDetector
from reporting.report_writer import ReportWriter
from utils.config_loader import get_config_template, load_config
from utils.exceptions import ClassicalLintError, ConfigurationError, FilesystemError
from utils.logging_config import DEFAULT_FORMAT, configure_library_logging, setup_logging
from validation.runner import ReleaseValidator

DEFAULT_CONFIG_NAME = "classical-lint.yaml"

EXIT_OK = 0
EXIT_ERRORS_FOUND = 1
EXIT_FAILURE = 2


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="classical-lint",
        description="Validate classical music release metadata against the style rules",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s "/music/Mendelssohn - Frohlocket [2013] [FLAC]"
  %(prog)s release.json --reference reference.json
  %(prog)s /music/*/ --min-level error --format json --output report.json
  %(prog)s --print-config-template > classical-lint.yaml
        """
    )

    parser.add_argument(
        "releases",
        type=Path,
        nargs="*",
        help="Release directories or JSON release documents"
    )

    parser.add_argument(
        "--reference",
        type=Path,
        help="JSON release document with authoritative data (single release only)"
    )

    parser.add_argument(
        "--min-level",
        choices=["info", "warning", "error"],
        help="Lowest severity to report (default: from config, info)"
    )

    parser.add_argument(
        "--format",
        choices=["text", "json"],
        help="Report format (default: from config, text)"
    )

    parser.add_argument(
        "--output", "-o",
        type=Path,
        help="Write the report to a file instead of stdout"
    )

    parser.add_argument(
        "--config",
        type=Path,
        help=f"Path to config file (default: ./{DEFAULT_CONFIG_NAME} when present)"
    )

    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose logging"
    )

    parser.add_argument(
        "--print-config-template",
        action="store_true",
        help="Print a configuration template and exit"
    )

    args = parser.parse_args(argv)

    if not args.print_config_template and not args.releases:
        parser.error("at least one release is required")

    if args.reference and len(args.releases) > 1:
        parser.error("--reference can only be used with a single release")

    return args


def load_release(path: Path, detector: ReleaseDetector) -> Tuple[Release, List[str]]:
    """
    Load a release from a directory or a JSON document.

    Returns:
        The release and the per-file load errors

    Raises:
        FilesystemError: If the path is neither a directory nor a JSON file
        ReleaseDocumentError: If a JSON document is invalid
    """
    if path.is_dir():
        result = detector.load(path)
        return result.release, result.errors

    if path.is_file() and path.suffix.lower() == ".json":
        return load_release_document(path), []

    raise FilesystemError(str(path), "load", "not a release directory or JSON release document")


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main entry point.

    Returns:
        0 when no Error-level issue was found, 1 when at least one was,
        2 when the run itself failed
    """
    args = parse_arguments(argv)

    if args.print_config_template:
        print(get_config_template(), end="")
        return EXIT_OK

    try:
        if args.config:
            if not args.config.exists():
                raise ConfigurationError(f"Config file not found: {args.config}")
            config_path = args.config
        else:
            config_path = Path.cwd() / DEFAULT_CONFIG_NAME

        config = load_config(config_path)

        logging_config = config.get("logging", {})
        log_level = "DEBUG" if args.verbose else logging_config.get("level", "WARNING")
        log_file = Path(logging_config["file"]) if logging_config.get("file") else None
        logger = setup_logging(log_level, log_file, fmt=logging_config.get("format") or DEFAULT_FORMAT)
        configure_library_logging()

        report_config = config.get("report", {})
        min_level = Level.parse(args.min_level or report_config.get("min_level", "info"))
        report_format = (args.format or report_config.get("format", "text")).lower()

        filesystem_config = config.get("filesystem", {})
        fs_ops = FileSystemOperations(
            audio_extensions=filesystem_config.get("audio_extensions", []),
            ignored_dirs=filesystem_config.get("ignored_dirs", [])
        )
        detector = ReleaseDetector(fs_ops)
        validator = ReleaseValidator(weights=config.get("rules", {}).get("weights", {}))

        reference = None
        if args.reference:
            reference = load_release_document(args.reference)
            logger.info(f"Using reference {args.reference}")

        reports = []
        for path in args.releases:
            logger.info(f"Checking {path}")
            release, load_errors = load_release(path, detector)
            report = validator.validate(release, reference)
            report.load_errors = load_errors
            reports.append(report)

        ReportWriter(report_format, min_level).write(reports, args.output)

        failing = sum(1 for report in reports if report.has_errors)
        logger.info(f"Checked {len(reports)} releases, {failing} with errors")

        return EXIT_ERRORS_FOUND if failing else EXIT_OK

    except KeyboardInterrupt:
        print("\nOperation cancelled by user.", file=sys.stderr)
        return EXIT_FAILURE
    except ClassicalLintError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_FAILURE
    except Exception as e:
        # Handle encoding errors in the exception message itself
        try:
            error_msg = str(e)
        except (UnicodeDecodeError, UnicodeEncodeError):
            error_msg = repr(e).encode('utf-8', errors='replace').decode('utf-8')

        print(f"Unexpected error: {error_msg}", file=sys.stderr)
        return EXIT_FAILURE


def cli():
    """Console script entry point."""
    sys.exit(main())


if __name__ == "__main__":
    cli()
