"""Tests for track-scope rules."""

import pytest

from domain.models import Artist, Level, Role

from conftest import ACADEMY, BACH, VIVALDI, issues_for, make_release, make_track


def levels(issues):
    return [issue.level for issue in issues]


class TestPathLength:

    def test_long_path_rejected(self):
        track = make_track(1, "Aria", path="01 - " + "A" * 200 + ".flac")
        issues = issues_for("2.3.12", make_release([track]))
        assert levels(issues) == [Level.ERROR]
        assert "limit 180" in issues[0].message

    def test_path_at_limit_allowed(self):
        root = "Bach - Goldberg Variations [2013] [FLAC]"
        name_length = 180 - len(root) - 1
        path = "01 - " + "a" * (name_length - len("01 - ") - len(".flac")) + ".flac"
        track = make_track(1, "Aria", path=path)
        assert issues_for("2.3.12", make_release([track], root_path=root)) == []


class TestTrackNumbersInFilenames:

    def test_missing_number(self):
        tracks = [make_track(1, "Aria", path="Aria.flac"), make_track(2, "Variatio 1")]
        issues = issues_for("2.3.13", make_release(tracks))
        assert [(i.track, i.level) for i in issues] == [(1, Level.ERROR)]

    def test_single_track_exempt(self):
        track = make_track(1, "Aria", path="Aria.flac")
        assert issues_for("2.3.13", make_release([track])) == []


class TestFilenameCapitalization:

    def test_lowercase_filename(self):
        track = make_track(1, "Goldberg Variations", path="01 - goldberg variations.flac")
        assert levels(issues_for("2.3.11.1", make_release([track]))) == [Level.ERROR]

    def test_title_case_filename(self):
        track = make_track(1, "Symphony No. 5: Allegro con brio",
                           path="01 - Symphony No. 5 - Allegro con brio.flac")
        assert issues_for("2.3.11.1", make_release([track])) == []

    def test_filename_without_title_skipped(self):
        track = make_track(1, "Aria", path="01.flac")
        assert issues_for("2.3.11.1", make_release([track])) == []


class TestFilenamesMatchTitles:

    def test_matching(self):
        track = make_track(1, "Frohlocket, Op. 79/1", path="01 Frohlocket, Op. 79-1.flac")
        assert issues_for("2.3.11", make_release([track])) == []

    def test_truncated_filename_contained_in_title(self):
        track = make_track(1, "Goldberg Variations, BWV 988: Aria", path="01 - Goldberg Variations.flac")
        assert issues_for("2.3.11", make_release([track])) == []

    def test_unrelated_filename(self):
        track = make_track(1, "Goldberg Variations", path="01 - Brandenburg Concerto.flac")
        assert levels(issues_for("2.3.11", make_release([track]))) == [Level.ERROR]

    def test_shared_subtitle_is_not_a_match(self):
        track = make_track(1, "Goldberg Variations: Aria", path="01 - Brandenburg Concerto: Aria.flac")
        assert levels(issues_for("2.3.11", make_release([track]))) == [Level.ERROR]


class TestArtistPositionInFilename:

    def _release(self, first_path, second_path):
        tracks = [
            make_track(1, "P", path=first_path, artists=[BACH, ACADEMY]),
            make_track(2, "C", path=second_path, artists=[VIVALDI, ACADEMY]),
        ]
        return make_release(tracks)

    def test_artist_before_number(self):
        release = self._release("Bach - 01 - P.flac", "Vivaldi - 02 - C.flac")
        issues = issues_for("2.3.14.1", release)
        assert [(i.track, i.level) for i in issues] == [(1, Level.ERROR), (2, Level.ERROR)]

    def test_artist_after_number(self):
        release = self._release("01 - Bach - P.flac", "02 - Vivaldi - C.flac")
        assert issues_for("2.3.14.1", release) == []

    def test_single_composer_exempt(self):
        tracks = [
            make_track(1, "P", path="Bach - 01 - P.flac"),
            make_track(2, "C", path="Bach - 02 - C.flac"),
        ]
        assert issues_for("2.3.14.1", make_release(tracks)) == []


class TestRequiredTrackTags:

    def test_missing_title_and_artists(self):
        track = make_track(1, "", path="01 - Aria.flac", artists=[])
        issues = issues_for("2.3.16.4-track", make_release([track]))
        assert levels(issues) == [Level.ERROR, Level.ERROR]

    def test_single_track_needs_performer(self):
        track = make_track(1, "Aria", artists=[BACH])
        assert levels(issues_for("2.3.16.4-track", make_release([track]))) == [Level.ERROR]

    def test_performer_not_enforced_on_titled_multi_track(self):
        tracks = [make_track(1, "Aria", artists=[BACH]), make_track(2, "Variatio 1", artists=[BACH])]
        assert issues_for("2.3.16.4-track", make_release(tracks)) == []


class TestComposerTag:

    def test_missing_composer(self):
        track = make_track(1, "Aria", artists=[ACADEMY])
        assert levels(issues_for("classical.composer", make_release([track]))) == [Level.ERROR]

    def test_single_word_composer(self):
        track = make_track(1, "Aria", artists=[Artist("Bach", Role.COMPOSER), ACADEMY])
        issues = issues_for("classical.composer", make_release([track]))
        assert levels(issues) == [Level.ERROR]
        assert "'Bach'" in issues[0].message

    @pytest.mark.parametrize("name", ["Johann Sebastian Bach", "J.S. Bach", "Ludwig van Beethoven"])
    def test_identifiable_names(self, name):
        track = make_track(1, "Aria", artists=[Artist(name, Role.COMPOSER), ACADEMY])
        assert issues_for("classical.composer", make_release([track])) == []

    def test_nonstandard_name_is_warning(self):
        track = make_track(1, "Aria", artists=[Artist("bach.js", Role.COMPOSER), ACADEMY])
        assert levels(issues_for("classical.composer", make_release([track]))) == [Level.WARNING]


class TestComposerNotInTitle:

    def test_composer_prefix_in_title(self):
        track = make_track(1, "Bach: Goldberg Variations", path="01 - Goldberg Variations.flac")
        issues = issues_for("classical.track_title", make_release([track]))
        assert levels(issues) == [Level.ERROR]
        assert "Bach" in issues[0].message

    def test_theme_by_composer_allowed(self):
        track = make_track(1, "Variations on a Theme by Bach",
                           artists=[Artist("Max Reger", Role.COMPOSER), ACADEMY])
        release = make_release([track])
        assert issues_for("classical.track_title", release) == []
        reger = make_track(1, "Variations on a Theme by Reger",
                           artists=[Artist("Max Reger", Role.COMPOSER), ACADEMY])
        assert issues_for("classical.track_title", make_release([reger])) == []

    def test_surname_inside_other_word_ignored(self):
        track = make_track(1, "Bachianas Brasileiras No. 5")
        assert issues_for("classical.track_title", make_release([track])) == []


class TestArrangerCredit:

    def test_arrangement_without_credit(self):
        track = make_track(1, "Chaconne", artists=[BACH, Artist("Ferruccio Busoni", Role.ARRANGER),
                                                   Artist("Hélène Grimaud", Role.SOLOIST)])
        issues = issues_for("classical.arrangement", make_release([track]))
        assert levels(issues) == [Level.INFO]
        assert "arr. Busoni" in issues[0].message

    def test_arrangement_credited(self):
        track = make_track(1, "Chaconne (arr. Busoni)",
                           artists=[BACH, Artist("Ferruccio Busoni", Role.ARRANGER),
                                    Artist("Hélène Grimaud", Role.SOLOIST)])
        assert issues_for("classical.arrangement", make_release([track])) == []


class TestOpusNumbers:

    def test_suggested_for_catalogued_composer(self):
        track = make_track(1, "Goldberg Variations")
        assert levels(issues_for("classical.opus", make_release([track]))) == [Level.INFO]

    def test_present_catalog_number(self):
        track = make_track(1, "Goldberg Variations, BWV 988")
        assert issues_for("classical.opus", make_release([track])) == []

    def test_reference_catalog_mismatch(self):
        actual = make_release([make_track(1, "Goldberg Variations, BWV 989")])
        reference = make_release([make_track(1, "Goldberg Variations, BWV 988")])
        issues = issues_for("classical.opus", actual, reference)
        assert levels(issues) == [Level.INFO]
        assert "BWV 988" in issues[0].message

    def test_reference_without_catalog_number(self):
        actual = make_release([make_track(1, "Goldberg Variations")])
        reference = make_release([make_track(1, "Goldberg Variations")])
        assert issues_for("classical.opus", actual, reference) == []


class TestTagAccuracyVsReference:

    @pytest.mark.parametrize("title,level", [
        ("Goldberg Variation", Level.INFO),
        ("Goldberg Variations Live", Level.WARNING),
        ("Brandenburg Concertos", Level.ERROR),
    ])
    def test_title_distance_graded(self, title, level):
        actual = make_release([make_track(1, title, path="01 - Aria.flac")])
        reference = make_release([make_track(1, "Goldberg Variations")])
        assert levels(issues_for("2.3.18.4-track", actual, reference)) == [level]

    def test_shared_subtitle_does_not_hide_different_works(self):
        mozart = Artist("Wolfgang Amadeus Mozart", Role.COMPOSER)
        actual = make_release([make_track(1, "Die Zauberflote: Overture", path="01 - Overture.flac",
                                          artists=[mozart, ACADEMY])])
        reference = make_release([make_track(1, "Don Giovanni: Overture", artists=[mozart, ACADEMY])])
        issues = issues_for("2.3.18.4-track", actual, reference)
        assert len(issues) == 1
        assert issues[0].level >= Level.WARNING
        assert "Don Giovanni: Overture" in issues[0].message

    def test_composer_prefix_in_title_ignored(self):
        actual = make_release([make_track(1, "Bach: Goldberg Variations", path="01 - Goldberg Variations.flac")])
        reference = make_release([make_track(1, "Goldberg Variations")])
        assert issues_for("2.3.18.4-track", actual, reference) == []

    def test_identical_titles(self):
        actual = make_release([make_track(1, "Goldberg Variations")])
        reference = make_release([make_track(1, "Goldberg Variations")])
        assert issues_for("2.3.18.4-track", actual, reference) == []

    def test_composer_mismatch(self):
        actual = make_release([make_track(1, "Gloria", artists=[VIVALDI, ACADEMY])])
        reference = make_release([make_track(1, "Gloria", artists=[BACH, ACADEMY])])
        assert levels(issues_for("2.3.18.4-track", actual, reference)) == [Level.ERROR]

    def test_composer_name_forms_equivalent(self):
        actual = make_release([make_track(1, "Gloria", artists=[Artist("J.S. Bach", Role.COMPOSER), ACADEMY])])
        reference = make_release([make_track(1, "Gloria")])
        assert issues_for("2.3.18.4-track", actual, reference) == []

    def test_track_without_reference_counterpart(self):
        actual = make_release([make_track(1, "Aria"), make_track(2, "Brandenburg Concertos")])
        reference = make_release([make_track(1, "Aria")])
        assert issues_for("2.3.18.4-track", actual, reference) == []
