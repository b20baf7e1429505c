"""
Pydantic schemas for tag records and release documents.

A ``TagRecord`` holds the tags read from one audio file. A ``ReleaseDocument``
is the JSON form of a whole release; it is used for reference data and for
releases that are described in a file rather than scanned from disk. Both
convert to the frozen domain objects the rule engine works on.
"""

import logging
import re
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from domain.models import Artist, Edition, File, Release, Role, Track
from utils.exceptions import ReleaseDocumentError, TagValidationError

logger = logging.getLogger(__name__)

# Name fragments that identify an ensemble rather than a soloist
ENSEMBLE_KEYWORDS = (
    'orchestra', 'orchester', 'orchestre', 'orquesta', 'philharmoni', 'symphony', 'sinfonia',
    'sinfonie', 'symphonie', 'quartet', 'quartett', 'quatuor', 'quintet', 'trio', 'choir',
    'chor', 'choeur', 'chorus', 'ensemble', 'consort', 'kammer', 'academy', 'akademie',
    'singers', 'band', 'players', 'soloists', 'camerata', 'capella', 'cappella',
)

_ARTIST_SEPARATORS = re.compile(r'\s*[;/,]\s*')
_COMPOSER_SEPARATORS = re.compile(r'\s*[;/]\s*')
_LEADING_NUMBER = re.compile(r'^\s*(\d+)')
_YEAR = re.compile(r'(\d{4})')

REQUIRED_TAGS = ('title', 'artist', 'album', 'track_number', 'composer')


def _split_names(value: Optional[str], separators: re.Pattern) -> List[str]:
    if not value:
        return []
    return [name for name in separators.split(value) if name]


def guess_role(name: str) -> Role:
    """Ensemble when the name contains an ensemble keyword, soloist otherwise."""
    lowered = name.lower()
    if any(keyword in lowered for keyword in ENSEMBLE_KEYWORDS):
        return Role.ENSEMBLE
    return Role.SOLOIST


class TagRecord(BaseModel):
    """Tags read from a single audio file."""

    title: Optional[str] = Field(default=None, description="Track title")
    artist: Optional[str] = Field(default=None, description="Performing artists, separated by ; / or ,")
    album: Optional[str] = Field(default=None, description="Album title")
    composer: Optional[str] = Field(default=None, description="Composers, separated by ; or /")
    album_artist: Optional[str] = Field(default=None, description="Album artist")
    year: Optional[int] = Field(default=None, description="Original release year", ge=0)
    track_number: Optional[int] = Field(default=None, description="Track number on its disc", ge=1)
    disc_number: Optional[int] = Field(default=None, description="Disc number", ge=1)
    label: Optional[str] = Field(default=None, description="Record label")
    catalog_number: Optional[str] = Field(default=None, description="Label catalog number")
    conductor: Optional[str] = Field(default=None, description="Conductor")
    ensemble: Optional[str] = Field(default=None, description="Orchestra or ensemble")
    arranger: Optional[str] = Field(default=None, description="Arranger")

    @field_validator('title', 'artist', 'album', 'composer', 'album_artist', 'label',
                     'catalog_number', 'conductor', 'ensemble', 'arranger', mode='before')
    @classmethod
    def strip_text(cls, v):
        """Strip whitespace; empty strings become None."""
        if v is None:
            return None
        if isinstance(v, (list, tuple)):
            v = "; ".join(str(item) for item in v if item)
        v = str(v).strip()
        return v or None

    @field_validator('track_number', 'disc_number', mode='before')
    @classmethod
    def parse_position(cls, v):
        """Handle '3/12' style values and empty strings."""
        if v is None or v == "":
            return None
        if isinstance(v, (list, tuple)):
            v = v[0] if v else None
            if v is None:
                return None
        if isinstance(v, int):
            return v if v > 0 else None
        match = _LEADING_NUMBER.match(str(v))
        if not match or int(match.group(1)) == 0:
            return None
        return int(match.group(1))

    @field_validator('year', mode='before')
    @classmethod
    def parse_year(cls, v):
        """Take the first four-digit group of dates like '2013-05-01'."""
        if v is None or v == "":
            return None
        if isinstance(v, int):
            return v
        match = _YEAR.search(str(v))
        return int(match.group(1)) if match else None

    def missing_required(self) -> List[str]:
        return [name for name in REQUIRED_TAGS if getattr(self, name) is None]

    def validate_required(self, file_path: Optional[str] = None):
        """
        Check that the tags the rules rely on are present.

        Args:
            file_path: File the record was read from, for the error message

        Raises:
            TagValidationError: Naming every missing required tag
        """
        missing = self.missing_required()
        if missing:
            raise TagValidationError(file_path, missing)

    def composers(self) -> List[str]:
        return _split_names(self.composer, _COMPOSER_SEPARATORS)

    def artists(self) -> List[Artist]:
        """Every credited artist with a role, composers first."""
        artists: List[Artist] = []
        seen = set()

        def add(name: str, role: Role):
            key = name.lower()
            if key not in seen:
                seen.add(key)
                artists.append(Artist(name, role))

        for name in self.composers():
            add(name, Role.COMPOSER)
        for name in _split_names(self.conductor, _COMPOSER_SEPARATORS):
            add(name, Role.CONDUCTOR)
        for name in _split_names(self.ensemble, _COMPOSER_SEPARATORS):
            add(name, Role.ENSEMBLE)
        for name in _split_names(self.artist, _ARTIST_SEPARATORS):
            add(name, guess_role(name))
        for name in _split_names(self.arranger, _COMPOSER_SEPARATORS):
            add(name, Role.ARRANGER)
        return artists

    def album_artists(self) -> List[Artist]:
        """Album-artist names, with roles borrowed from the track credits where they match."""
        credited = {artist.name.lower(): artist.role for artist in self.artists()}
        return [
            Artist(name, credited.get(name.lower(), guess_role(name)))
            for name in _split_names(self.album_artist, _COMPOSER_SEPARATORS)
        ]

    def to_track(self, path: str, disc: Optional[int] = None, number: Optional[int] = None) -> Track:
        """
        Build the domain track for this record.

        Args:
            path: File path relative to the release root
            disc: Disc number to use when the tag is absent
            number: Track number to use when the tag is absent

        Returns:
            Track built from the tags
        """
        return Track(
            path=path,
            disc=self.disc_number or disc or 1,
            number=self.track_number or number or 1,
            title=self.title or "",
            artists=self.artists(),
        )


class ArtistDocument(BaseModel):
    name: str = Field(..., min_length=1, description="Artist name")
    role: Role = Field(default=Role.OTHER, description="Role on the track")

    @field_validator('role', mode='before')
    @classmethod
    def parse_role(cls, v):
        if isinstance(v, Role):
            return v
        return Role.parse(str(v or ""))

    def to_domain(self) -> Artist:
        return Artist(self.name, self.role)


class EditionDocument(BaseModel):
    label: str = Field(default="", description="Record label")
    catalog_number: str = Field(default="", description="Catalog number")
    year: int = Field(default=0, ge=0, description="Edition year, 0 when unknown")

    @field_validator('label', 'catalog_number', mode='before')
    @classmethod
    def none_to_empty(cls, v):
        return "" if v is None else str(v).strip()

    @field_validator('year', mode='before')
    @classmethod
    def none_to_zero(cls, v):
        return 0 if v in (None, "") else v


class FileDocument(BaseModel):
    """A file of the release; it is a track when ``number`` is set."""

    path: str = Field(..., description="Path relative to the release root")
    disc: int = Field(default=1, ge=1, description="Disc number")
    number: Optional[int] = Field(default=None, ge=1, description="Track number, null for non-audio files")
    title: str = Field(default="", description="Track title")
    artists: List[ArtistDocument] = Field(default_factory=list, description="Credited artists")

    @property
    def is_track(self) -> bool:
        return self.number is not None

    def to_domain(self) -> File:
        if not self.is_track:
            return File(self.path)
        return Track(
            path=self.path,
            disc=self.disc,
            number=self.number,
            title=self.title,
            artists=[artist.to_domain() for artist in self.artists],
        )


class ReleaseDocument(BaseModel):
    """JSON document describing a release."""

    root_path: str = Field(default="", description="Release root directory")
    title: str = Field(default="", description="Album title")
    original_year: int = Field(default=0, ge=0, description="Original release year, 0 when unknown")
    edition: Optional[EditionDocument] = Field(default=None, description="Published edition")
    album_artist: List[ArtistDocument] = Field(default_factory=list, description="Album-artist tag")
    files: List[FileDocument] = Field(default_factory=list, description="Tracks and auxiliary files")

    @field_validator('original_year', mode='before')
    @classmethod
    def none_to_zero(cls, v):
        return 0 if v in (None, "") else v

    @model_validator(mode='after')
    def unique_track_numbers(self):
        seen = set()
        for file in self.files:
            if not file.is_track:
                continue
            key = (file.disc, file.number)
            if key in seen:
                raise ValueError(f"duplicate track number {file.number} on disc {file.disc}")
            seen.add(key)
        return self

    def to_domain(self) -> Release:
        edition = None
        if self.edition is not None:
            edition = Edition(self.edition.label, self.edition.catalog_number, self.edition.year)
        return Release(
            root_path=self.root_path,
            title=self.title,
            original_year=self.original_year,
            edition=edition,
            album_artists=[artist.to_domain() for artist in self.album_artist],
            files=[file.to_domain() for file in self.files],
        )

    @classmethod
    def from_domain(cls, release: Release) -> 'ReleaseDocument':
        files = []
        for file in release.files:
            if isinstance(file, Track):
                files.append(FileDocument(
                    path=file.path,
                    disc=file.disc,
                    number=file.number,
                    title=file.title,
                    artists=[ArtistDocument(name=a.name, role=a.role) for a in file.artists],
                ))
            else:
                files.append(FileDocument(path=file.path))

        edition = None
        if release.edition is not None:
            edition = EditionDocument(
                label=release.edition.label,
                catalog_number=release.edition.catalog_number,
                year=release.edition.year,
            )

        return cls(
            root_path=release.root_path,
            title=release.title,
            original_year=release.original_year,
            edition=edition,
            album_artist=[ArtistDocument(name=a.name, role=a.role) for a in release.album_artists],
            files=files,
        )


def _summarize(error: ValidationError) -> str:
    parts = []
    for detail in error.errors():
        location = ".".join(str(item) for item in detail.get('loc', ()))
        message = detail.get('msg', 'invalid value')
        parts.append(f"{location}: {message}" if location else message)
    return "; ".join(parts)


def load_release_document(path: Path) -> Release:
    """
    Read a release from a JSON document.

    Args:
        path: JSON file to read

    Returns:
        The release described by the document

    Raises:
        ReleaseDocumentError: If the file cannot be read or is not a valid document
    """
    try:
        raw = path.read_text(encoding='utf-8')
    except OSError as e:
        raise ReleaseDocumentError(str(path), f"cannot read file: {e}")

    try:
        document = ReleaseDocument.model_validate_json(raw)
    except ValidationError as e:
        raise ReleaseDocumentError(str(path), _summarize(e))

    logger.debug(f"Loaded release document {path} with {len(document.files)} files")
    return document.to_domain()


def save_release_document(release: Release, path: Path):
    """
    Write a release as a JSON document.

    Raises:
        ReleaseDocumentError: If the file cannot be written
    """
    document = ReleaseDocument.from_domain(release)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(document.model_dump_json(indent=2), encoding='utf-8')
    except OSError as e:
        raise ReleaseDocumentError(str(path), f"cannot write file: {e}")
    logger.debug(f"Saved release document {path}")
