"""
Reflective rule discovery.

A rule host is any object whose public methods are declared with ``@rule``.
Methods are classified by their type hints:

    release rule: (actual: Release, reference: Optional[Release]) -> RuleResult
    track rule:   (actual_track: Track, reference_track: Optional[Track],
                   actual_release: Release, reference_release: Optional[Release]) -> RuleResult

Each discovered method is wrapped so that calling it never raises.
"""

import inspect
import logging
import typing
from typing import Any, Callable, List, Optional, Tuple

from domain.models import Level, Release, Track, ValidationIssue
from validation.rule import RuleMetadata, RuleResult

logger = logging.getLogger(__name__)

DISCOVERY_METHODS = frozenset({'release_rules', 'track_rules'})

RELEASE_RULE_SHAPE = (Release, Optional[Release])
TRACK_RULE_SHAPE = (Track, Optional[Track], Release, Optional[Release])


class DiscoveredRule:
    """A bound rule method plus its metadata."""

    def __init__(self, method: Callable[..., RuleResult]):
        self._method = method
        self.meta: RuleMetadata = method.meta

    @property
    def name(self) -> str:
        return self._method.__name__

    def _invoke(self, *args, track: int = 0, disc: int = 0) -> RuleResult:
        try:
            return self._method(*args)
        except Exception as e:
            logger.exception(f"Rule {self.meta.id} ({self.name}) raised {type(e).__name__}")
            reason = f"{type(e).__name__}: {e}"
            issue = ValidationIssue(
                level=Level.WARNING,
                track=track,
                rule=self.meta.id,
                message=f"Rule could not be evaluated ({reason})",
                disc=disc,
            )
            return RuleResult(meta=self.meta, issues=[issue], internal_error=reason)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.meta.id!r}, {self.name})"


class ReleaseRule(DiscoveredRule):
    """Rule evaluated once per release."""

    def __call__(self, actual: Release, reference: Optional[Release] = None) -> RuleResult:
        return self._invoke(actual, reference)


class TrackRule(DiscoveredRule):
    """Rule evaluated once per track, with whole-release context."""

    def __call__(self, actual_track: Track, reference_track: Optional[Track],
                 actual_release: Release, reference_release: Optional[Release] = None) -> RuleResult:
        return self._invoke(
            actual_track, reference_track, actual_release, reference_release,
            track=actual_track.number, disc=actual_track.disc,
        )


def _parameter_types(function: Callable) -> Optional[Tuple[Any, ...]]:
    """Annotated parameter types (excluding self) of a rule-shaped function."""
    try:
        hints = typing.get_type_hints(function)
    except (NameError, TypeError) as e:
        logger.debug(f"Cannot resolve type hints of {function.__qualname__}: {e}")
        return None

    if hints.get('return') is not RuleResult:
        return None

    parameters = list(inspect.signature(function).parameters.values())[1:]
    types = []
    for parameter in parameters:
        if parameter.name not in hints:
            return None
        types.append(hints[parameter.name])
    return tuple(types)


def discover(host: Any) -> Tuple[List[ReleaseRule], List[TrackRule]]:
    """
    Scan a rule host for release and track rules.

    Args:
        host: Instance whose class declares the rule methods

    Returns:
        (release rules, track rules), each ordered by method name
    """
    release_rules: List[ReleaseRule] = []
    track_rules: List[TrackRule] = []

    for name, function in inspect.getmembers(type(host), predicate=inspect.isfunction):
        if name.startswith('_') or name in DISCOVERY_METHODS:
            continue
        if not hasattr(function, 'meta'):
            continue

        shape = _parameter_types(function)
        bound = getattr(host, name)
        if shape == RELEASE_RULE_SHAPE:
            release_rules.append(ReleaseRule(bound))
        elif shape == TRACK_RULE_SHAPE:
            track_rules.append(TrackRule(bound))
        else:
            logger.warning(f"Ignoring {name}: signature does not match a rule shape")

    logger.debug(f"Discovered {len(release_rules)} release rules and {len(track_rules)} track rules "
                 f"on {type(host).__name__}")
    return release_rules, track_rules


def rule_ids(*rule_lists: List[DiscoveredRule]) -> List[str]:
    """All rule ids across the given lists, in order (duplicates kept)."""
    return [r.meta.id for rules in rule_lists for r in rules]
