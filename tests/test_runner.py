"""Tests for the runner: ordering, scoring and end-to-end scenarios."""

from dataclasses import replace

import pytest

from domain.models import Level, Release, Track, ValidationIssue
from validation.rule import RuleMetadata, RuleResult
from validation.rules import release_rules, track_rules
from validation.runner import ReleaseValidator, check, improvement_score, issue_sort_key, run

from conftest import ACADEMY, BACH, VIVALDI, make_release, make_track


def errors(issues, rule_id=None):
    return [i for i in issues if i.level == Level.ERROR and (rule_id is None or i.rule == rule_id)]


class TestScenarios:

    def test_clean_release(self, clean_release):
        report = run(clean_release)
        assert report.error_count == 0
        assert report.warning_count <= 3
        assert report.score > 0.9

    def test_missing_edition(self, clean_release):
        release = replace(clean_release, edition=None)
        issues = check(release)
        catalog = [i for i in issues if i.rule == "classical.catalog_comment"]
        assert [i.level for i in catalog] == [Level.INFO]
        required = [i for i in issues if i.rule.startswith("2.3.16.4")]
        assert len([i for i in required if i.level == Level.WARNING]) <= 1
        for rule_id in ("2.3.2", "2.3.5", "2.3.6"):
            assert errors(issues, rule_id) == []

    def test_composer_in_track_title(self):
        track = make_track(1, "Bach: Goldberg Variations", path="01 - Goldberg Variations.flac")
        issues = check(make_release([track]))
        assert len(errors(issues, "classical.track_title")) == 1
        assert errors(issues, "2.3.11.1") == []

    def test_multi_disc_gap(self):
        tracks = [make_track(1, disc=1), make_track(2, disc=1), make_track(3, disc=2), make_track(4, disc=2)]
        assert len(errors(check(make_release(tracks)), "2.3.15")) == 1

        tracks = [make_track(1, disc=1), make_track(2, disc=1), make_track(1, disc=3)]
        found = errors(check(make_release(tracks)), "2.3.15")
        assert len(found) == 1
        assert "missing disc 2" in found[0].message

    def test_filename_sort_inversion(self):
        tracks = [
            make_track(1, "A", path="1 - A.flac"),
            make_track(2, "B", path="2 - B.flac"),
            make_track(10, "C", path="10 - C.flac"),
            make_track(3, "D", path="3 - D.flac"),
        ]
        assert len(errors(check(make_release(tracks)), "2.3.14")) == 1

    def test_request_tags(self):
        req = make_release([make_track()], title="Foo [REQ] [2013] [FLAC]")
        assert len(errors(check(req), "2.3.5")) == 1

        request = make_release([make_track()], title="Foo [REQUEST] [2013] [FLAC]")
        issues = [i for i in check(request) if i.rule == "2.3.5"]
        assert [i.level for i in issues] == [Level.WARNING]

    def test_multi_composer_artist_position(self):
        def release(first, second):
            return make_release([
                make_track(1, "P", path=first, artists=[BACH, ACADEMY]),
                make_track(2, "C", path=second, artists=[VIVALDI, ACADEMY]),
            ])

        assert len(errors(check(release("Bach - 01 - P.flac", "Vivaldi - 02 - C.flac")), "2.3.14.1")) == 2
        assert errors(check(release("01 - Bach - P.flac", "02 - Vivaldi - C.flac")), "2.3.14.1") == []


class TestOrdering:

    def test_release_scope_first_then_position_then_severity(self):
        tracks = [
            make_track(2, "aria", disc=2, path="CD2/02 - aria.flac", artists=[]),
            make_track(1, "Prelude", disc=1, path="CD1/01 - Prelude.flac"),
            make_track(1, "Gigue", disc=2, path="CD2/01 - Gigue.flac"),
        ]
        release = make_release(tracks, title="")
        issues = check(release)
        keys = [issue_sort_key(issue) for issue in issues]
        assert keys == sorted(keys)

        first_track_issue = next(i for i, issue in enumerate(issues) if not issue.is_release_scope)
        assert all(issue.is_release_scope for issue in issues[:first_track_issue])
        assert all(not issue.is_release_scope for issue in issues[first_track_issue:])

    def test_deterministic(self, clean_release):
        assert check(clean_release) == check(clean_release)
        assert run(clean_release).score == run(clean_release).score


class TestScore:

    def _result(self, rule_id, passed, weight=1.0):
        meta = RuleMetadata(rule_id, "name", Level.ERROR, weight)
        if passed:
            return RuleResult(meta)
        return RuleResult(meta, [ValidationIssue(Level.ERROR, 0, rule_id, "failed")])

    def test_all_pass(self):
        assert improvement_score([self._result("a", True), self._result("b", True)]) == 1.0

    def test_all_fail(self):
        assert improvement_score([self._result("a", False), self._result("b", False)]) == 0.0

    def test_empty(self):
        assert improvement_score([]) == 1.0

    def test_weighted(self):
        results = [self._result("a", False, weight=1.0), self._result("b", True, weight=3.0)]
        assert improvement_score(results) == pytest.approx(0.75)

    def test_weight_override(self):
        results = [self._result("a", False), self._result("b", True)]
        assert improvement_score(results, {"a": 3.0}) == pytest.approx(0.25)

    def test_score_bounds_on_real_release(self):
        release = make_release([make_track(1, "", path="x", artists=[])], title="", original_year=0,
                               edition=None, root_path="x")
        score = run(release).score
        assert 0.0 <= score < 1.0

    def _broken_release(self):
        track = make_track(1, "goldberg VARIATIONS", path="Bach - goldberg.flac", artists=[])
        return make_release([track], title="goldberg variations [REQ] CD 1", original_year=0,
                            edition=None, root_path="goldberg", extra_files=["scans.rar"])

    def test_broken_release_scores_below_clean(self, clean_release):
        broken = run(self._broken_release()).score
        assert 0.0 <= broken < run(clean_release).score

    def test_only_failing_rules_counted_scores_zero(self):
        release = self._broken_release()
        report = run(release)
        assert any(not result.passed for result in report.results)
        # One track, so each rule id is invoked exactly once
        weights = {result.meta.id: 0.0 for result in report.results if result.passed}
        assert ReleaseValidator(weights).validate(release).score == 0.0

    def test_validator_weights(self, clean_release):
        release = replace(clean_release, edition=None)
        default = ReleaseValidator().validate(release).score
        heavier = ReleaseValidator({"classical.catalog_comment": 10.0}).validate(release).score
        assert heavier < default


class TestReferencePolicy:

    def test_reference_only_rules_silent_without_reference(self):
        release = make_release([make_track(1, "Totally Different Title")], title="Whatever")
        rule_ids = {issue.rule for issue in check(release)}
        for reference_rule in ("2.3.6", "2.3.18.4-album", "2.3.18.4-track", "classical.record_label"):
            assert reference_rule not in rule_ids

    def test_reference_pairs_by_disc_and_number(self):
        actual = make_release([
            make_track(1, "Prelude", disc=1),
            make_track(1, "Brandenburg Concertos", disc=2, path="CD2/01 - Brandenburg Concertos.flac"),
        ])
        reference = make_release([
            make_track(1, "Prelude", disc=1),
            make_track(1, "Goldberg Variations", disc=2, path="CD2/01 - Goldberg Variations.flac"),
        ])
        found = [i for i in check(actual, reference) if i.rule == "2.3.18.4-track"]
        assert [(i.disc, i.track, i.level) for i in found] == [(2, 1, Level.ERROR)]


class TestReport:

    def test_counts_and_dict(self, clean_release):
        release = replace(clean_release, edition=None)
        report = run(release)
        payload = report.to_dict()
        assert payload['release'] == release.root_path
        assert payload['summary']['errors'] == report.error_count
        assert payload['summary']['info'] == report.info_count
        assert len(payload['issues']) == len(report.issues)
        assert payload['summary']['rules_run'] == len(report.results)

    def test_filter_by_level(self, clean_release):
        report = run(replace(clean_release, edition=None))
        assert all(issue.level >= Level.WARNING for issue in report.filter(Level.WARNING))
        assert len(report.to_dict(Level.ERROR)['issues']) == report.error_count

    def test_invocation_count(self):
        tracks = [make_track(1), make_track(2)]
        report = run(make_release(tracks))
        assert len(report.results) == len(release_rules()) + 2 * len(track_rules())

    def test_release_without_tracks_runs_release_rules_only(self):
        release = Release(root_path="Empty - Release [2013] [FLAC]", title="Empty", original_year=2013)
        report = run(release)
        assert len(report.results) == len(release_rules())
        assert report.has_errors

    def test_track_issue_for_tracks_is_positioned(self):
        track = Track(path="02 - goldberg.flac", disc=1, number=2, title="goldberg", artists=[BACH, ACADEMY])
        issues = [i for i in check(make_release([track])) if i.rule == "2.3.11.1"]
        assert [(i.disc, i.track) for i in issues] == [(1, 2)]
        assert str(issues[0]).startswith("[ERROR] Track 2: 2.3.11.1 - ")


class TestSeverity:

    def _worst_level(self, rule_id, actual, reference=None):
        levels = [issue.level for issue in run(actual, reference).issues if issue.rule == rule_id]
        return max(levels, default=None)

    @pytest.mark.parametrize("closer,farther", [
        ("Goldberg Variations", "Goldberg Variation"),
        ("Goldberg Variation", "Goldberg Variations Live"),
        ("Goldberg Variations Live", "Brandenburg Concertos"),
        ("Goldberg Variations: Aria", "Brandenburg Concertos: Aria"),
    ])
    def test_track_title_severity_grows_with_distance(self, closer, farther):
        reference = make_release([make_track(1, "Goldberg Variations")])
        near = self._worst_level("2.3.18.4-track", make_release([make_track(1, closer, path="01 - Aria.flac")]),
                                 reference)
        far = self._worst_level("2.3.18.4-track", make_release([make_track(1, farther, path="01 - Aria.flac")]),
                                reference)
        assert far is not None
        assert near is None or near <= far

    @pytest.mark.parametrize("closer,farther", [
        ("Goldberg Variation", "Goldberg Variations Live"),
        ("Goldberg Variations Live", "Brandenburg Concertos"),
    ])
    def test_album_title_severity_grows_with_distance(self, closer, farther):
        reference = make_release([make_track()], title="Goldberg Variations")
        near = self._worst_level("2.3.6", make_release([make_track()], title=closer), reference)
        far = self._worst_level("2.3.6", make_release([make_track()], title=farther), reference)
        assert far is not None
        assert near is None or near <= far

    @pytest.mark.parametrize("title", ["Goldberg Variation", "Goldberg Variations Live", "Brandenburg Concertos"])
    def test_severity_stable_across_runs(self, title):
        actual = make_release([make_track(1, title, path="01 - Aria.flac")], title=title)
        reference = make_release([make_track(1, "Goldberg Variations")])
        first = [(issue.rule, issue.level) for issue in run(actual, reference).issues]
        second = [(issue.rule, issue.level) for issue in run(actual, reference).issues]
        assert first == second
