"""Tests for rule declaration and reflective discovery."""

from typing import Iterator, Optional

import pytest

from domain.models import Level, Release, Track
from utils.exceptions import RuleDefinitionError
from validation.registry import ReleaseRule, TrackRule, discover, rule_ids
from validation.rule import Finding, RuleResult, rule
from validation.rules import Rules, release_rules, track_rules

from conftest import make_release, make_track

RELEASE_RULE_IDS = {
    "2.3.1", "2.3.2", "2.3.5", "2.3.6", "2.3.7", "2.3.14", "2.3.15", "2.3.16.4",
    "2.3.16.4-album", "2.3.18.3.3", "2.3.18.4-album", "2.3.20",
    "classical.catalog_comment", "classical.record_label",
}

TRACK_RULE_IDS = {
    "2.3.11", "2.3.11.1", "2.3.12", "2.3.13", "2.3.14.1", "2.3.16.4-track", "2.3.18.4-track",
    "classical.composer", "classical.track_title", "classical.arrangement", "classical.opus",
}


class SampleRules:
    """A small rule host used to exercise discovery."""

    @rule("test.release", "Release title must not be empty", Level.ERROR)
    def title_present(self, actual: Release, reference: Optional[Release]) -> Iterator[Finding]:
        if not actual.title:
            yield Finding("no title")

    @rule("test.track", "Track title must not be empty", Level.WARNING, weight=0.5)
    def track_title_present(self, actual_track: Track, reference_track: Optional[Track],
                            actual_release: Release,
                            reference_release: Optional[Release]) -> Iterator[Finding]:
        if not actual_track.title:
            yield Finding("no track title")

    @rule("test.broken", "Always raises", Level.ERROR)
    def broken(self, actual: Release, reference: Optional[Release]) -> Iterator[Finding]:
        raise RuntimeError("boom")
        yield

    @rule("test.misshapen", "Wrong signature", Level.ERROR)
    def misshapen(self, actual: Release) -> Iterator[Finding]:
        yield Finding("never discovered")

    def helper(self, actual: Release, reference: Optional[Release]) -> RuleResult:
        """Not declared with @rule, so never discovered."""
        raise AssertionError("should not be called")

    def release_rules(self):
        return discover(self)[0]

    def track_rules(self):
        return discover(self)[1]


class TestRuleDeclaration:

    def test_metadata_attached(self):
        meta = SampleRules.title_present.meta
        assert meta.id == "test.release"
        assert meta.level == Level.ERROR
        assert meta.weight == 1.0

    @pytest.mark.parametrize("rule_id,name,weight", [
        ("", "Name", 1.0),
        ("   ", "Name", 1.0),
        ("x.y", "", 1.0),
        ("x.y", "Name", 0),
        ("x.y", "Name", -1.0),
    ])
    def test_invalid_declarations_rejected(self, rule_id, name, weight):
        with pytest.raises(RuleDefinitionError):
            rule(rule_id, name, Level.ERROR, weight=weight)

    def test_findings_become_issues(self):
        release = make_release([make_track()], title="")
        result = SampleRules().title_present(release, None)
        assert isinstance(result, RuleResult)
        assert not result.passed
        assert len(result.issues) == 1
        issue = result.issues[0]
        assert issue.rule == "test.release"
        assert issue.track == 0
        assert issue.level == Level.ERROR

    def test_track_findings_carry_position(self):
        track = make_track(number=3, disc=2, title="")
        release = make_release([track])
        result = SampleRules().track_title_present(track, None, release, None)
        assert [(i.disc, i.track, i.level) for i in result.issues] == [(2, 3, Level.WARNING)]


class TestDiscovery:

    def test_classifies_by_signature(self):
        host = SampleRules()
        releases, tracks = host.release_rules(), host.track_rules()
        assert [r.meta.id for r in releases] == ["test.broken", "test.release"]
        assert [r.meta.id for r in tracks] == ["test.track"]
        assert all(isinstance(r, ReleaseRule) for r in releases)
        assert all(isinstance(r, TrackRule) for r in tracks)

    def test_crashing_rule_returns_diagnostic(self):
        broken = next(r for r in SampleRules().release_rules() if r.meta.id == "test.broken")
        result = broken(make_release([make_track()]), None)
        assert result.passed
        assert result.internal_error == "RuntimeError: boom"
        assert len(result.issues) == 1
        assert result.issues[0].level == Level.WARNING
        assert "boom" in result.issues[0].message

    def test_calling_wrapper_matches_method(self):
        release = make_release([make_track()], title="")
        wrapper = next(r for r in SampleRules().release_rules() if r.meta.id == "test.release")
        assert wrapper(release, None) == SampleRules().title_present(release, None)


class TestRegistryCoverage:
    """Inspection of the production rule host."""

    def test_every_rule_present(self):
        assert {r.meta.id for r in release_rules()} == RELEASE_RULE_IDS
        assert {r.meta.id for r in track_rules()} == TRACK_RULE_IDS

    def test_ids_unique_and_non_empty(self):
        ids = rule_ids(release_rules(), track_rules())
        assert len(ids) == len(set(ids))
        assert all(rule_id.strip() for rule_id in ids)

    def test_names_and_weights(self):
        for discovered in list(release_rules()) + list(track_rules()):
            assert discovered.meta.name
            assert discovered.meta.weight > 0

    def test_lists_are_stable(self):
        assert release_rules() is release_rules()
        assert track_rules() is track_rules()
        assert [r.name for r in release_rules()] == sorted(r.name for r in release_rules())

    def test_host_methods_agree_with_cached_lists(self):
        host = Rules()
        assert [r.meta.id for r in host.release_rules()] == [r.meta.id for r in release_rules()]
        assert [r.meta.id for r in host.track_rules()] == [r.meta.id for r in track_rules()]
