"""Shared builders for releases and tracks."""

import sys
from pathlib import Path
from typing import List, Optional

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from domain.models import Artist, Edition, File, Release, Role, Track  # noqa: E402
from validation.runner import run  # noqa: E402

BACH = Artist("Johann Sebastian Bach", Role.COMPOSER)
VIVALDI = Artist("Antonio Vivaldi", Role.COMPOSER)
MENDELSSOHN = Artist("Felix Mendelssohn", Role.COMPOSER)
RIAS = Artist("RIAS Kammerchor", Role.ENSEMBLE)
ACADEMY = Artist("Academy of Ancient Music", Role.ENSEMBLE)

DEFAULT_EDITION = Edition(label="Harmonia Mundi", catalog_number="HMC902170", year=2013)


def make_track(number: int = 1, title: str = "Goldberg Variations", disc: int = 1,
               path: Optional[str] = None, artists=None) -> Track:
    if path is None:
        path = f"{number:02d} - {title}.flac"
    if artists is None:
        artists = [BACH, ACADEMY]
    return Track(path=path, disc=disc, number=number, title=title, artists=artists)


def make_release(tracks: List[Track], root_path: str = "Bach - Goldberg Variations [2013] [FLAC]",
                 title: str = "Goldberg Variations", original_year: int = 2013,
                 edition: Optional[Edition] = DEFAULT_EDITION, album_artists=(),
                 extra_files=()) -> Release:
    return Release(
        root_path=root_path,
        title=title,
        original_year=original_year,
        edition=edition,
        album_artists=album_artists,
        files=list(tracks) + [File(path) for path in extra_files],
    )


def issues_for(rule_id: str, actual: Release, reference: Optional[Release] = None):
    """Issues one rule raised when the whole rule set runs."""
    return [issue for issue in run(actual, reference).issues if issue.rule == rule_id]


@pytest.fixture
def clean_release() -> Release:
    """A release that satisfies every Error-level rule."""
    track = Track(
        path="01 Frohlocket, Op. 79-1.flac",
        disc=1,
        number=1,
        title="Frohlocket, Op. 79/1",
        artists=[MENDELSSOHN, RIAS],
    )
    return Release(
        root_path="Mendelssohn - Frohlocket [2013] [FLAC]",
        title="Frohlocket",
        original_year=2013,
        edition=Edition(label="test label", catalog_number="HMC902170", year=2013),
        files=[track],
    )
