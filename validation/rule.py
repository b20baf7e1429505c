"""
Rule primitives: metadata, findings, results and the ``@rule`` decorator.

A rule method yields ``Finding`` objects. The decorator stamps each one with
the rule id and the track position and packages them as a ``RuleResult``.
"""

import functools
from dataclasses import dataclass, field
from typing import Callable, Iterable, List, Optional

from domain.models import Level, Track, ValidationIssue
from utils.exceptions import RuleDefinitionError


@dataclass(frozen=True)
class Finding:
    """
    One violation reported by a rule body.

    ``level`` defaults to the rule's level. ``track`` defaults to the track
    under evaluation for track rules and to release scope otherwise.
    """

    message: str
    level: Optional[Level] = None
    track: Optional[Track] = None


@dataclass(frozen=True)
class RuleMetadata:
    """Identity and severity of a rule."""

    id: str
    name: str
    level: Level
    weight: float = 1.0

    def to_issue(self, finding: Finding, subject: Optional[Track] = None) -> ValidationIssue:
        track = finding.track or subject
        return ValidationIssue(
            level=self.level if finding.level is None else finding.level,
            track=track.number if track else 0,
            rule=self.id,
            message=finding.message,
            disc=track.disc if track else 0,
        )


@dataclass(frozen=True)
class RuleResult:
    """
    Outcome of one rule invocation.

    ``internal_error`` holds the reason when the rule itself failed; such a
    result carries a diagnostic issue but still counts as passed.
    """

    meta: RuleMetadata
    issues: List[ValidationIssue] = field(default_factory=list)
    internal_error: Optional[str] = None

    @property
    def passed(self) -> bool:
        return not self.issues or self.internal_error is not None


def rule(id: str, name: str, level: Level, weight: float = 1.0) -> Callable:
    """
    Declare a rule method.

    Args:
        id: Stable rule identifier, e.g. '2.3.12' or 'classical.composer'
        name: Short human-readable description
        level: Default severity of the rule's findings
        weight: Contribution to the improvement score

    Raises:
        RuleDefinitionError: If the id or name is empty or the weight is not positive
    """
    if not id or not id.strip():
        raise RuleDefinitionError(id, "rule id must not be empty")
    if not name:
        raise RuleDefinitionError(id, "rule name must not be empty")
    if weight <= 0:
        raise RuleDefinitionError(id, f"weight must be positive, got {weight}")

    meta = RuleMetadata(id=id, name=name, level=level, weight=weight)

    def decorator(method: Callable[..., Iterable[Finding]]) -> Callable[..., RuleResult]:
        @functools.wraps(method)
        def wrapper(self, *args) -> RuleResult:
            subject = args[0] if args and isinstance(args[0], Track) else None
            findings = method(self, *args) or ()
            return RuleResult(meta=meta, issues=[meta.to_issue(f, subject) for f in findings])

        wrapper.meta = meta
        wrapper.__annotations__ = dict(method.__annotations__, **{'return': RuleResult})
        return wrapper

    return decorator
