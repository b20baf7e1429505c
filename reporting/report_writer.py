"""
Report sinks: render validation reports as text or JSON.
"""

import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from domain.models import Level
from utils.exceptions import FilesystemError
from validation.runner import ValidationReport

logger = logging.getLogger(__name__)

REPORT_FORMATS = ('text', 'json')


def render_text(reports: List[ValidationReport], min_level: Level = Level.INFO) -> str:
    """
    Human-readable rendering: release-scope issues first, then tracks.

    Args:
        reports: One report per validated release
        min_level: Lowest severity to list (counts always cover every issue)

    Returns:
        Report text ending with a newline
    """
    lines = []

    for report in reports:
        lines.append("=" * 60)
        lines.append(report.release)
        lines.append("=" * 60)

        issues = report.filter(min_level)
        release_issues = [issue for issue in issues if issue.is_release_scope]
        track_issues = [issue for issue in issues if not issue.is_release_scope]

        if release_issues:
            lines.append("Release:")
            for issue in release_issues:
                lines.append(f"  [{issue.level.name}] {issue.rule} - {issue.message}")

        current = None
        for issue in track_issues:
            if issue.location != current:
                current = issue.location
                lines.append(f"{current}:")
            lines.append(f"  [{issue.level.name}] {issue.rule} - {issue.message}")

        if not issues:
            lines.append("No issues found.")

        for error in report.load_errors:
            lines.append(f"Load error: {error}")

        lines.append("")
        lines.append(f"Errors: {report.error_count}  Warnings: {report.warning_count}  "
                     f"Info: {report.info_count}")
        lines.append(f"Score: {report.score:.1%}")
        lines.append("")

    if len(reports) > 1:
        failing = sum(1 for report in reports if report.has_errors)
        lines.append(f"{len(reports)} releases checked, {failing} with errors")

    return "\n".join(lines) + "\n"


def render_json(reports: List[ValidationReport], min_level: Level = Level.INFO) -> str:
    """JSON rendering: a list with one object per release."""
    payload = [report.to_dict(min_level) for report in reports]
    return json.dumps(payload, indent=2, ensure_ascii=False) + "\n"


class ReportWriter:
    """Writes rendered reports to a file or stdout."""

    def __init__(self, fmt: str = 'text', min_level: Level = Level.INFO):
        if fmt not in REPORT_FORMATS:
            raise ValueError(f"Unknown report format: {fmt}")
        self.fmt = fmt
        self.min_level = min_level

    def render(self, reports: List[ValidationReport]) -> str:
        if self.fmt == 'json':
            return render_json(reports, self.min_level)
        return render_text(reports, self.min_level)

    def write(self, reports: List[ValidationReport], output: Optional[Path] = None):
        """
        Write the rendered reports.

        Args:
            reports: Reports to write
            output: Destination file; stdout when None

        Raises:
            FilesystemError: If the output file cannot be written
        """
        content = self.render(reports)

        if output is None:
            sys.stdout.write(content)
            return

        try:
            output.parent.mkdir(parents=True, exist_ok=True)
            with open(output, 'w', encoding='utf-8') as f:
                f.write(content)
        except OSError as e:
            raise FilesystemError(str(output), "write report", str(e))

        logger.info(f"Report written to {output}")
