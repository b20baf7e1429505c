"""
Track-scope rules: evaluated once per track, with the whole release as context.

Discovered by the registry from the signature
``(actual_track, reference_track, actual_release, reference_release)``.
"""

import re
from typing import Iterator, Optional

from domain.models import Level, Release, Track
from validation.rule import Finding, rule
from validation.text import (
    MAX_PATH_LENGTH, TITLE_MATCH_DISTANCE, TITLE_MISMATCH_DISTANCE, basename,
    check_capitalization, composer_last_name, filename_title, load_vocabulary,
    normalize_name, normalize_title, parse_filename, title_distance, titles_match,
)

# First name or initial followed by a surname: 'J.S. Bach', 'Johann Sebastian Bach'
_COMPOSER_NAME_PATTERN = re.compile(r'^[A-Z]\S*[\s.]+\S+|^\S+\s+\S+')
_OPUS_PATTERN = re.compile(r'(?i)\b(Op\.?|BWV|K\.?|Hob\.?|D\.?|RV|Wq\.?|S\.?)\s*([IVXLCDM]+:)?\s*\d+')


def extract_opus_number(title: str) -> str:
    """First catalog reference in a title ('Op. 79', 'BWV 988'), or ''."""
    match = _OPUS_PATTERN.search(title)
    return match.group(0).strip() if match else ""


def _opus_key(opus: str) -> str:
    return re.sub(r'[\s.]', '', opus).lower()


def _mentions(title: str, word: str) -> bool:
    return re.search(rf'\b{re.escape(word.lower())}\b', title.lower()) is not None


def _is_part_of_work_title(title: str, surname: str) -> bool:
    lower = title.lower()
    return any(
        phrase.format(name=surname.lower()) in lower
        for phrase in load_vocabulary()['composer_title_phrases']
    )


class TrackRulesMixin:
    """Rules that look at one track at a time."""

    @rule("2.3.12", "Path length must not exceed 180 characters", Level.ERROR)
    def path_length(self, actual_track: Track, reference_track: Optional[Track],
                    actual_release: Release, reference_release: Optional[Release]) -> Iterator[Finding]:
        full_path = actual_release.full_path(actual_track)
        if len(full_path) > MAX_PATH_LENGTH:
            yield Finding(f"Path '{full_path}' is {len(full_path)} characters long "
                          f"(limit {MAX_PATH_LENGTH})")

    @rule("2.3.13", "Track numbers must appear in filenames", Level.ERROR)
    def track_numbers_in_filenames(self, actual_track: Track, reference_track: Optional[Track],
                                   actual_release: Release,
                                   reference_release: Optional[Release]) -> Iterator[Finding]:
        if len(actual_release.tracks) <= 1 or not actual_track.path:
            return
        if parse_filename(actual_track.path) is None:
            yield Finding(f"Track {actual_track.position}: filename '{actual_track.basename}' "
                          f"does not start with a track number")

    @rule("2.3.11.1", "Filename capitalization must be Title Case", Level.ERROR)
    def filename_capitalization(self, actual_track: Track, reference_track: Optional[Track],
                                actual_release: Release,
                                reference_release: Optional[Release]) -> Iterator[Finding]:
        title = filename_title(actual_track.path)
        if title is None:
            return
        reason = check_capitalization(title)
        if reason:
            yield Finding(f"Track {actual_track.position}: {reason} in filename '{actual_track.basename}'")

    @rule("2.3.11", "Filenames must reflect track titles", Level.ERROR)
    def filenames_match_titles(self, actual_track: Track, reference_track: Optional[Track],
                               actual_release: Release,
                               reference_release: Optional[Release]) -> Iterator[Finding]:
        file_title = filename_title(actual_track.path)
        if file_title is None or not actual_track.title:
            return
        composers = actual_release.composer_names()
        normalized_file = normalize_title(file_title, composers)
        normalized_title = normalize_title(actual_track.title, composers)
        if (normalized_file in normalized_title or normalized_title in normalized_file
                or titles_match(file_title, actual_track.title, composers)):
            return
        yield Finding(f"Track {actual_track.position}: filename '{file_title}' does not match "
                      f"track title '{actual_track.title}'")

    @rule("2.3.14.1", "Artist name must come after the track number in filenames", Level.ERROR)
    def artist_position_in_filename(self, actual_track: Track, reference_track: Optional[Track],
                                    actual_release: Release,
                                    reference_release: Optional[Release]) -> Iterator[Finding]:
        if len(actual_release.composer_names()) <= 1:
            return
        name = basename(actual_track.path)
        first_digit = next((i for i, char in enumerate(name) if char.isdigit()), -1)
        if first_digit <= 0:
            return

        prefix = name[:first_digit].lower()
        for artist in actual_track.artists:
            full_name = artist.name.strip().lower()
            surname = composer_last_name(artist.name).lower()
            if (full_name and full_name in prefix) or (surname and surname in prefix):
                yield Finding(f"Track {actual_track.position}: artist '{artist.name}' appears before "
                              f"the track number in filename '{name}' (expected '01 - Artist - Title')")
                return

    @rule("2.3.16.4-track", "Required track tags present", Level.ERROR)
    def required_track_tags(self, actual_track: Track, reference_track: Optional[Track],
                            actual_release: Release,
                            reference_release: Optional[Release]) -> Iterator[Finding]:
        if not actual_track.title.strip():
            yield Finding(f"Track {actual_track.position}: title tag is missing")

        if not actual_track.artists:
            yield Finding(f"Track {actual_track.position}: artist tag is missing")
        elif not actual_track.performers:
            if len(actual_release.tracks) <= 1 or not actual_track.title.strip():
                yield Finding(f"Track {actual_track.position}: artist tag has no performers")

    @rule("classical.composer", "Composer tag required with an identifiable name", Level.ERROR)
    def composer_tag(self, actual_track: Track, reference_track: Optional[Track],
                     actual_release: Release, reference_release: Optional[Release]) -> Iterator[Finding]:
        composers = actual_track.composers
        if not composers:
            yield Finding(f"Track {actual_track.position}: composer tag is missing")
            return

        for composer in composers:
            name = composer.name.strip()
            if " " not in name and "." not in name:
                yield Finding(f"Track {actual_track.position}: composer name '{name}' is not uniquely "
                              f"identifiable (needs first name or initial)")
            elif not _COMPOSER_NAME_PATTERN.match(name):
                yield Finding(f"Track {actual_track.position}: composer name '{name}' may not be in "
                              f"standard form (e.g. 'Johann Sebastian Bach' or 'J.S. Bach')",
                              level=Level.WARNING)

    @rule("classical.track_title", "Composer name not in track title", Level.ERROR)
    def composer_not_in_title(self, actual_track: Track, reference_track: Optional[Track],
                              actual_release: Release,
                              reference_release: Optional[Release]) -> Iterator[Finding]:
        title = actual_track.title
        if not title:
            return
        for composer in actual_track.composers:
            surname = composer_last_name(composer.name)
            if not surname or not _mentions(title, surname):
                continue
            if _is_part_of_work_title(title, surname):
                continue
            yield Finding(f"Track {actual_track.position}: composer surname '{surname}' found in "
                          f"track title '{title}' (composer belongs in the COMPOSER tag)")

    @rule("classical.arrangement", "Arrangements should credit the arranger in the title", Level.INFO, weight=0.1)
    def arranger_credit(self, actual_track: Track, reference_track: Optional[Track],
                        actual_release: Release, reference_release: Optional[Release]) -> Iterator[Finding]:
        arrangers = actual_track.arrangers
        if not arrangers:
            return
        arranger = arrangers[0]
        surname = composer_last_name(arranger.name)
        title = actual_track.title.lower()

        has_marker = any(marker in title for marker in load_vocabulary()['arrangement_markers'])
        if not has_marker:
            yield Finding(f"Track {actual_track.position}: consider adding an arrangement credit "
                          f"to the title (e.g. 'arr. {surname}')")
        elif arranger.name.lower() not in title and surname.lower() not in title:
            yield Finding(f"Track {actual_track.position}: arrangement by '{arranger.name}' could be "
                          f"credited in the title (e.g. 'arr. {surname}')")

    @rule("classical.opus", "Opus/catalog numbers recommended in track titles", Level.INFO, weight=0.1)
    def opus_numbers(self, actual_track: Track, reference_track: Optional[Track],
                     actual_release: Release, reference_release: Optional[Release]) -> Iterator[Finding]:
        actual_opus = extract_opus_number(actual_track.title)

        if reference_track is None:
            composer = actual_track.composer
            if actual_opus or composer is None:
                return
            catalog_composers = load_vocabulary()['catalog_composers']
            if any(name in composer.name.lower() for name in catalog_composers):
                yield Finding(f"Track {actual_track.position}: consider adding an opus/catalog number "
                              f"for better identification")
            return

        reference_opus = extract_opus_number(reference_track.title)
        if reference_opus and _opus_key(actual_opus) != _opus_key(reference_opus):
            yield Finding(f"Track {actual_track.position}: catalog number '{actual_opus or '-'}' does not "
                          f"match reference '{reference_opus}'")

    @rule("2.3.18.4-track", "Track tags must match reference data", Level.ERROR)
    def tag_accuracy_vs_reference(self, actual_track: Track, reference_track: Optional[Track],
                                  actual_release: Release,
                                  reference_release: Optional[Release]) -> Iterator[Finding]:
        if reference_track is None:
            return

        if actual_track.title and reference_track.title:
            composers = [a.name for a in actual_track.composers + reference_track.composers]
            distance = title_distance(actual_track.title, reference_track.title, composers)
            if distance > 0:
                if distance <= TITLE_MATCH_DISTANCE:
                    level = Level.INFO
                elif distance <= TITLE_MISMATCH_DISTANCE:
                    level = Level.WARNING
                else:
                    level = Level.ERROR
                yield Finding(f"Track {actual_track.position}: title '{actual_track.title}' does not match "
                              f"reference '{reference_track.title}'", level=level)

        composer, reference_composer = actual_track.composer, reference_track.composer
        if composer and reference_composer:
            if (normalize_name(composer_last_name(composer.name))
                    != normalize_name(composer_last_name(reference_composer.name))):
                yield Finding(f"Track {actual_track.position}: composer '{composer.name}' does not match "
                              f"reference '{reference_composer.name}'")
