"""
The rule host.

``Rules`` gathers every release and track rule. Adding a rule means adding one
``@rule`` method to one of the mixins; nothing else needs to change.
"""

import logging
from functools import lru_cache
from typing import List, Tuple

from validation.registry import ReleaseRule, TrackRule, discover
from validation.release_rules import ReleaseRulesMixin
from validation.track_rules import TrackRulesMixin

logger = logging.getLogger(__name__)


class Rules(ReleaseRulesMixin, TrackRulesMixin):
    """All validation rules for classical releases."""

    def release_rules(self) -> List[ReleaseRule]:
        return discover(self)[0]

    def track_rules(self) -> List[TrackRule]:
        return discover(self)[1]


@lru_cache(maxsize=None)
def _discovered() -> Tuple[Tuple[ReleaseRule, ...], Tuple[TrackRule, ...]]:
    release, track = discover(Rules())
    logger.debug(f"Rule registry ready: {len(release)} release rules, {len(track)} track rules")
    return tuple(release), tuple(track)


def release_rules() -> Tuple[ReleaseRule, ...]:
    """Release rules, discovered once per process."""
    return _discovered()[0]


def track_rules() -> Tuple[TrackRule, ...]:
    """Track rules, discovered once per process."""
    return _discovered()[1]
