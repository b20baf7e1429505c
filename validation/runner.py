"""
Rule execution and reporting.

The runner calls every release rule once and every track rule once per track,
orders the resulting issues and computes the improvement score.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from domain.models import Level, Release, ValidationIssue
from utils.logging_config import LoggerMixin
from validation.rule import RuleResult
from validation.rules import release_rules, track_rules


def issue_sort_key(issue: ValidationIssue):
    """Release scope first, then disc, track, severity (worst first) and rule id."""
    return (0 if issue.is_release_scope else 1, issue.disc, issue.track, -int(issue.level), issue.rule)


def improvement_score(results: List[RuleResult], weights: Optional[Dict[str, float]] = None) -> float:
    """
    Weighted pass ratio of rule invocations.

    Args:
        results: One result per rule invocation
        weights: Optional per-rule-id weight overrides

    Returns:
        Score in [0, 1]; 1.0 when every rule passed or nothing ran
    """
    weights = weights or {}
    total = 0.0
    failed = 0.0
    for result in results:
        weight = weights.get(result.meta.id, result.meta.weight)
        total += weight
        if not result.passed:
            failed += weight
    if total <= 0:
        return 1.0
    return max(0.0, 1.0 - failed / total)


@dataclass
class ValidationReport:
    """Ordered issues, per-invocation results and the improvement score."""

    release: str
    issues: List[ValidationIssue]
    results: List[RuleResult] = field(default_factory=list)
    score: float = 1.0
    # Files the loader could not turn into tracks
    load_errors: List[str] = field(default_factory=list)

    def count(self, level: Level) -> int:
        return sum(1 for issue in self.issues if issue.level == level)

    @property
    def error_count(self) -> int:
        return self.count(Level.ERROR)

    @property
    def warning_count(self) -> int:
        return self.count(Level.WARNING)

    @property
    def info_count(self) -> int:
        return self.count(Level.INFO)

    @property
    def has_errors(self) -> bool:
        return self.error_count > 0

    @property
    def internal_errors(self) -> List[RuleResult]:
        return [r for r in self.results if r.internal_error]

    def filter(self, min_level: Level) -> List[ValidationIssue]:
        """Issues at or above a severity."""
        return [issue for issue in self.issues if issue.level >= min_level]

    def to_dict(self, min_level: Level = Level.INFO) -> dict:
        return {
            'release': self.release,
            'score': round(self.score, 4),
            'summary': {
                'errors': self.error_count,
                'warnings': self.warning_count,
                'info': self.info_count,
                'rules_run': len(self.results),
                'rules_failed': sum(1 for r in self.results if not r.passed),
            },
            'issues': [issue.to_dict() for issue in self.filter(min_level)],
            'load_errors': list(self.load_errors),
        }


class ReleaseValidator(LoggerMixin):
    """Runs the discovered rules against a release."""

    def __init__(self, weights: Optional[Dict[str, float]] = None):
        """
        Args:
            weights: Per-rule-id weight overrides for the improvement score
        """
        self.weights = dict(weights or {})

    def validate(self, actual: Release, reference: Optional[Release] = None) -> ValidationReport:
        """
        Validate a release, optionally against a reference release.

        Args:
            actual: Release under validation
            reference: Authoritative counterpart, if available

        Returns:
            ValidationReport with ordered issues and the improvement score
        """
        results: List[RuleResult] = []

        for release_rule in release_rules():
            results.append(release_rule(actual, reference))

        for track in actual.tracks:
            reference_track = reference.track(track.disc, track.number) if reference else None
            for track_rule in track_rules():
                results.append(track_rule(track, reference_track, actual, reference))

        issues = sorted((issue for result in results for issue in result.issues), key=issue_sort_key)
        score = improvement_score(results, self.weights)
        report = ValidationReport(
            release=actual.root_path or actual.title,
            issues=issues,
            results=results,
            score=score,
        )

        for failed in report.internal_errors:
            self.logger.warning(f"Rule {failed.meta.id} failed internally: {failed.internal_error}")
        self.logger.debug(f"Validated {report.release}: {len(results)} rule runs, "
                          f"{report.error_count} errors, {report.warning_count} warnings, "
                          f"{report.info_count} info, score {score:.3f}")
        return report


def run(actual: Release, reference: Optional[Release] = None,
        weights: Optional[Dict[str, float]] = None) -> ValidationReport:
    """Validate a release with the default validator."""
    return ReleaseValidator(weights).validate(actual, reference)


def check(actual: Release, reference: Optional[Release] = None) -> List[ValidationIssue]:
    """Ordered issues for a release."""
    return run(actual, reference).issues
