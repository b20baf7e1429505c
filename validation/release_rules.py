"""
Release-scope rules: evaluated once per release.

Each public method declared with ``@rule`` and shaped
``(actual: Release, reference: Optional[Release])`` is discovered
automatically by the registry.
"""

import re
from collections import Counter, defaultdict
from functools import lru_cache
from typing import Dict, Iterator, List, Optional, Tuple

from domain.models import Level, Release, Role, Track
from validation.rule import Finding, rule
from validation.text import (
    TITLE_MATCH_DISTANCE, TITLE_MISMATCH_DISTANCE, basename, folder_year, levenshtein_distance,
    load_vocabulary, normalize_name, normalize_title,
)

SEPARATOR = " - "
VARIOUS_ARTISTS = "various artists"

_CORE_WORK_PATTERN = re.compile(r'^([^\W\d_]+ no\.?\s*\d+)')
_KEY_PHRASE_PATTERN = re.compile(r'\bin ([a-g](?:#|b|-flat|-sharp)?)(?:\s+(major|minor))?(?=\W|$)')
_DISC_NUMBER_PATTERN = re.compile(r'(?i)\b(?:disc|cd|disk|volume|vol\.?)\s*\d+')
_VOLUME_RANGE_PATTERN = re.compile(r'(?i)\b(?:vol(?:ume)?s?\.?|discs?|cds?)\s*\d+\s*-\s*\d+')


@lru_cache(maxsize=None)
def _format_pattern() -> re.Pattern:
    formats = "|".join(load_vocabulary()['audio_formats'])
    return re.compile(rf'(?i)[\[(](?:{formats})\b[^\])]*[\])]')


def _key_phrase(title: str) -> Optional[Tuple[str, str]]:
    """('d', 'minor') from '... in d minor'; mode is '' when absent."""
    match = _KEY_PHRASE_PATTERN.search(title)
    if not match:
        return None
    return match.group(1), match.group(2) or ""


def _dominant(counts: Counter, order: List[str]) -> Tuple[Optional[str], int]:
    """Most frequent name, ties broken by first appearance."""
    best, best_count = None, 0
    for name in order:
        if counts[name] > best_count:
            best, best_count = name, counts[name]
    return best, best_count


class ReleaseRulesMixin:
    """Rules that look at the release as a whole."""

    @rule("2.3.2", "Folder name format: Artist - Album [Year] [Format]", Level.WARNING, weight=0.5)
    def folder_name_format(self, actual: Release, reference: Optional[Release]) -> Iterator[Finding]:
        name = actual.folder_name or actual.title
        if not name:
            return

        if SEPARATOR not in name:
            yield Finding(f"Folder name '{name}' should contain ' - ' between artist and album")

        year = folder_year(name)
        if year is None:
            yield Finding(f"Folder name '{name}' should include the year as [YYYY], (YYYY) or '- YYYY'")
        elif actual.original_year and year != actual.original_year:
            yield Finding(f"Year {year} in folder name '{name}' does not match release year {actual.original_year}")

        if not _format_pattern().search(name):
            yield Finding(f"Folder name '{name}' could include a format indicator such as [FLAC]",
                          level=Level.INFO)

    @rule("2.3.5", "Album title must not contain a request tag", Level.ERROR)
    def no_request_tag_in_title(self, actual: Release, reference: Optional[Release]) -> Iterator[Finding]:
        if not actual.title:
            return
        request_tags = load_vocabulary()['request_tags']
        title_upper = actual.title.upper()

        for tag in request_tags['error']:
            if tag in title_upper:
                yield Finding(f"Album title '{actual.title}' contains {tag} tag (must be removed)")
        for tag in request_tags['warning']:
            if tag in title_upper:
                yield Finding(f"Album title '{actual.title}' contains request indicator '{tag}' (should be removed)",
                              level=Level.WARNING)

    @rule("2.3.6", "Album title must accurately match reference", Level.ERROR)
    def album_title_accuracy(self, actual: Release, reference: Optional[Release]) -> Iterator[Finding]:
        if reference is None or not actual.title or not reference.title:
            return

        composers = actual.composer_names() + reference.composer_names()
        actual_title = normalize_title(actual.title, composers)
        reference_title = normalize_title(reference.title, composers)
        if actual_title == reference_title:
            return

        actual_key = _key_phrase(actual_title)
        reference_key = _key_phrase(reference_title)

        core = _CORE_WORK_PATTERN.match(actual_title)
        reference_core = _CORE_WORK_PATTERN.match(reference_title)
        if core and reference_core and core.group(1) == reference_core.group(1):
            core_title = core.group(1)
            if actual_title == core_title:
                return
            if (actual_key and reference_key and actual_key[0] == reference_key[0]
                    and not actual_key[1] and reference_key[1]
                    and actual_title == f"{core_title} in {actual_key[0]}"):
                yield Finding(
                    f"Album title '{actual.title}' omits the mode given by reference '{reference.title}'",
                    level=Level.WARNING,
                )
                return

        if (actual_key and reference_key and actual_key[1] and reference_key[1]
                and actual_key != reference_key):
            yield Finding(
                f"Album title '{actual.title}' is in {' '.join(actual_key)} "
                f"but reference '{reference.title}' is in {' '.join(reference_key)}"
            )
            return

        distance = levenshtein_distance(actual_title, reference_title)
        if distance > TITLE_MISMATCH_DISTANCE:
            yield Finding(f"Album title '{actual.title}' does not match reference '{reference.title}'")
        elif distance > TITLE_MATCH_DISTANCE:
            yield Finding(
                f"Album title '{actual.title}' differs from reference '{reference.title}' (minor differences)",
                level=Level.WARNING,
            )

    @rule("2.3.14", "Filenames sort alphabetically into playback order", Level.ERROR)
    def filename_sorting_order(self, actual: Release, reference: Optional[Release]) -> Iterator[Finding]:
        by_disc: Dict[int, List[Track]] = defaultdict(list)
        for track in actual.tracks:
            by_disc[track.disc].append(track)

        for disc in sorted(by_disc):
            tracks = by_disc[disc]
            if len(tracks) <= 1 or not all(t.path for t in tracks):
                continue
            by_name = sorted(tracks, key=lambda t: basename(t.path))
            by_number = sorted(tracks, key=lambda t: t.number)
            for position, (got, expected) in enumerate(zip(by_name, by_number), start=1):
                if got is not expected:
                    yield Finding(
                        f"Disc {disc}: filename sorting differs at position {position}: "
                        f"got '{basename(got.path)}' (track {got.number}), "
                        f"expected '{basename(expected.path)}' (track {expected.number})",
                        track=expected,
                    )
                    return

    @rule("2.3.15", "Multi-disc track numbering starts at 1 for each disc", Level.ERROR)
    def multi_disc_track_numbering(self, actual: Release, reference: Optional[Release]) -> Iterator[Finding]:
        if not actual.is_multi_disc:
            return
        numbers: Dict[int, List[int]] = defaultdict(list)
        for track in actual.tracks:
            numbers[track.disc].append(track.number)

        for disc in range(1, max(numbers) + 1):
            disc_numbers = numbers.get(disc)
            if not disc_numbers:
                yield Finding(f"Multi-disc release is missing disc {disc}")
                continue
            if 1 not in disc_numbers:
                yield Finding(f"Disc {disc}: track numbering must start at 1 (lowest track is {min(disc_numbers)})")
            present = set(disc_numbers)
            for expected in range(1, len(disc_numbers) + 1):
                if expected not in present:
                    yield Finding(f"Disc {disc}: gap in track numbering at track {expected}",
                                  level=Level.WARNING)

    @rule("2.3.16.4", "Release must contain at least one track", Level.ERROR)
    def release_has_tracks(self, actual: Release, reference: Optional[Release]) -> Iterator[Finding]:
        if not actual.tracks:
            yield Finding("Release contains no audio tracks")

    @rule("2.3.16.4-album", "Required album tags present", Level.ERROR)
    def required_album_tags(self, actual: Release, reference: Optional[Release]) -> Iterator[Finding]:
        if not actual.title.strip():
            yield Finding("Album title tag is missing")
        if not actual.original_year:
            yield Finding("Year tag is missing (strongly recommended)", level=Level.WARNING)

    @rule("2.3.7", "Album artist tag consistent with track artists", Level.INFO, weight=0.1)
    def album_artist_tag(self, actual: Release, reference: Optional[Release]) -> Iterator[Finding]:
        tracks = actual.tracks
        if not tracks:
            return

        if actual.album_artists:
            names = [a.name for a in actual.album_artists]
            if len(names) == 1 and normalize_name(names[0]) == VARIOUS_ARTISTS:
                return
            track_artists = {normalize_name(a.name) for t in tracks for a in t.artists}
            for name in names:
                if normalize_name(name) not in track_artists:
                    yield Finding(f"Album artist '{name}' must appear in at least one track's ARTISTs",
                                  level=Level.ERROR)
            return

        if VARIOUS_ARTISTS in actual.title.lower():
            yield Finding("Album looks like 'Various Artists'; consider setting the album artist accordingly")
            return

        if len(tracks) == 1:
            roles = {a.role for a in tracks[0].artists}
            if roles & {Role.ENSEMBLE, Role.CONDUCTOR} and Role.SOLOIST not in roles:
                yield Finding("Consider using the album artist tag for the ensemble/conductor")
            return

        composers = actual.composer_names()
        if len(composers) == 2:
            return

        half = len(tracks) / 2
        performer_counts: Counter = Counter()
        performer_order: List[str] = []
        ensemble_counts: Counter = Counter()
        ensemble_order: List[str] = []
        for track in tracks:
            for artist in track.performers:
                if artist.name not in performer_order:
                    performer_order.append(artist.name)
            performer_counts.update({a.name for a in track.performers})
            ensembles = {a.name for a in track.artists if a.role in (Role.ENSEMBLE, Role.CONDUCTOR)}
            for artist in track.artists:
                if artist.name in ensembles and artist.name not in ensemble_order:
                    ensemble_order.append(artist.name)
            ensemble_counts.update(ensembles)

        dominant, count = _dominant(performer_counts, performer_order)
        if dominant and count > half:
            yield Finding(f"Consider using album artist '{dominant}' (appears in {count}/{len(tracks)} tracks)")

        if len(composers) > 3:
            performer, performer_count = _dominant(ensemble_counts, ensemble_order)
            if performer and performer_count > half:
                yield Finding(f"Multiple composers ({len(composers)}) detected; consider album artist "
                              f"'{performer}' (consistent performer across tracks)")
            else:
                yield Finding(f"Multiple composers ({len(composers)}) detected; consider the dominant "
                              f"ensemble/conductor as album artist (not 'Various Artists')")

    @rule("classical.catalog_comment", "Label, catalog number and release year recommended", Level.INFO, weight=0.1)
    def catalog_info(self, actual: Release, reference: Optional[Release]) -> Iterator[Finding]:
        if actual.edition is None:
            yield Finding("Consider adding record label and catalog number information")
            return
        missing = actual.edition.missing_fields()
        if missing:
            yield Finding(f"Edition information incomplete; consider adding: {', '.join(missing)}")

    @rule("classical.record_label", "Record label and catalog number match reference", Level.ERROR)
    def record_label_accuracy(self, actual: Release, reference: Optional[Release]) -> Iterator[Finding]:
        if reference is None or reference.edition is None or actual.edition is None:
            return
        expected, got = reference.edition, actual.edition

        if expected.label and normalize_name(got.label) != normalize_name(expected.label):
            yield Finding(f"Record label mismatch: got '{got.label}', expected '{expected.label}'")
        if expected.catalog_number and _catalog_key(got.catalog_number) != _catalog_key(expected.catalog_number):
            yield Finding(f"Catalog number mismatch: got '{got.catalog_number}', expected '{expected.catalog_number}'")

    @rule("2.3.18.4-album", "Release year matches reference", Level.WARNING)
    def release_year_vs_reference(self, actual: Release, reference: Optional[Release]) -> Iterator[Finding]:
        if reference is None or not actual.original_year or not reference.original_year:
            return
        if actual.original_year != reference.original_year:
            yield Finding(f"Release year {actual.original_year} does not match reference {reference.original_year}")

    @rule("2.3.1", "No archive files in the release", Level.ERROR)
    def no_archive_files(self, actual: Release, reference: Optional[Release]) -> Iterator[Finding]:
        extensions = load_vocabulary()['archive_extensions']
        for file in actual.files:
            if file.path.lower().endswith(tuple(extensions)):
                yield Finding(f"Archive file '{file.path}' is not allowed",
                              track=file if isinstance(file, Track) else None)

    @rule("2.3.18.3.3", "Disc numbers belong in the disc tag, not the album title", Level.WARNING, weight=0.5)
    def no_disc_numbers_in_album_title(self, actual: Release, reference: Optional[Release]) -> Iterator[Finding]:
        title = actual.title
        if not title or not _DISC_NUMBER_PATTERN.search(title):
            return
        if _is_volume_title(title):
            return
        yield Finding(f"Album title '{title}' contains a disc number (use the disc tag instead)")

    @rule("2.3.20", "No leading spaces in names or titles", Level.ERROR)
    def no_leading_spaces(self, actual: Release, reference: Optional[Release]) -> Iterator[Finding]:
        if actual.folder_name.startswith(" "):
            yield Finding(f"Folder name has a leading space: '{actual.folder_name}'")
        if actual.title.startswith(" "):
            yield Finding(f"Album title has a leading space: '{actual.title}'")

        for file in actual.files:
            track = file if isinstance(file, Track) else None
            parts = file.parts
            for i, part in enumerate(parts):
                if part.startswith(" "):
                    location = "filename" if i == len(parts) - 1 else "folder name"
                    yield Finding(f"Leading space in {location}: '{part}'", track=track)
            if track is not None and track.title.startswith(" "):
                yield Finding(f"Track {track.position} title has a leading space: '{track.title}'", track=track)


def _catalog_key(catalog_number: str) -> str:
    return re.sub(r'[\s\-_.]', '', catalog_number).upper()


def _is_volume_title(title: str) -> bool:
    """Volume numbers that are part of a series or collection title."""
    lower = title.lower()
    if any(marker in lower for marker in load_vocabulary()['volume_title_exceptions']):
        return True
    return bool(_VOLUME_RANGE_PATTERN.search(title))
