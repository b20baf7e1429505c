"""
Domain model for classical music releases.

A release (a "torrent") is a directory holding audio tracks, possibly spread
over several discs, plus auxiliary files. Everything here is immutable once
built; the rule engine only ever reads these objects.
"""

from dataclasses import dataclass
from enum import Enum, IntEnum
from pathlib import PurePosixPath
from typing import List, Optional, Tuple


class Level(IntEnum):
    """Issue severity, totally ordered: INFO < WARNING < ERROR."""

    INFO = 0
    WARNING = 1
    ERROR = 2

    def __str__(self) -> str:
        return self.name

    @classmethod
    def parse(cls, value: str) -> 'Level':
        """Parse a level name such as 'warning' or 'ERROR'."""
        try:
            return cls[value.strip().upper()]
        except KeyError:
            raise ValueError(f"Unknown level: {value!r}")


class Role(Enum):
    """Role an artist plays on a track."""

    COMPOSER = "composer"
    SOLOIST = "soloist"
    ENSEMBLE = "ensemble"
    CONDUCTOR = "conductor"
    ARRANGER = "arranger"
    OTHER = "other"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def parse(cls, value: str) -> 'Role':
        """Parse a role name case-insensitively; unknown names map to OTHER."""
        normalized = (value or "").strip().lower()
        for role in cls:
            if role.value == normalized:
                return role
        return cls.OTHER


@dataclass(frozen=True)
class Artist:
    """A named contributor. Equality is by name and role."""

    name: str
    role: Role

    def __str__(self) -> str:
        return f"{self.name} ({self.role})"


@dataclass(frozen=True)
class Edition:
    """Published edition of a release; any field may be absent."""

    label: str = ""
    catalog_number: str = ""
    year: int = 0

    def missing_fields(self) -> List[str]:
        missing = []
        if not self.label:
            missing.append("label")
        if not self.catalog_number:
            missing.append("catalog number")
        if not self.year:
            missing.append("release year")
        return missing


@dataclass(frozen=True)
class File:
    """A file inside the release, addressed relative to the release root."""

    path: str

    @property
    def basename(self) -> str:
        return PurePosixPath(self.path).name if self.path else ""

    @property
    def parts(self) -> Tuple[str, ...]:
        return tuple(part for part in self.path.split("/") if part != "")


@dataclass(frozen=True)
class Track(File):
    """An audio file with its tags."""

    disc: int = 1
    number: int = 1
    title: str = ""
    artists: Tuple[Artist, ...] = ()

    def __post_init__(self):
        # Accept any iterable of artists but always store a tuple
        object.__setattr__(self, 'artists', tuple(self.artists))

    @property
    def composers(self) -> List[Artist]:
        return [a for a in self.artists if a.role == Role.COMPOSER]

    @property
    def performers(self) -> List[Artist]:
        return [a for a in self.artists if a.role not in (Role.COMPOSER, Role.ARRANGER)]

    @property
    def arrangers(self) -> List[Artist]:
        return [a for a in self.artists if a.role == Role.ARRANGER]

    @property
    def composer(self) -> Optional[Artist]:
        """First credited composer, if any."""
        composers = self.composers
        return composers[0] if composers else None

    @property
    def position(self) -> str:
        """Human-readable position: '3' on disc 1, '2-3' on later discs."""
        if self.disc > 1:
            return f"{self.disc}-{self.number}"
        return str(self.number)


@dataclass(frozen=True)
class Release:
    """
    A classical release: one root directory with tracks and auxiliary files.

    ``original_year`` is 0 when unknown. ``album_artists`` is empty when the
    album-artist tag is unset.
    """

    root_path: str
    title: str = ""
    original_year: int = 0
    edition: Optional[Edition] = None
    album_artists: Tuple[Artist, ...] = ()
    files: Tuple[File, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, 'album_artists', tuple(self.album_artists))
        object.__setattr__(self, 'files', tuple(self.files))
        seen = set()
        for track in self.tracks:
            key = (track.disc, track.number)
            if key in seen:
                raise ValueError(
                    f"Duplicate track number {track.number} on disc {track.disc} in {self.root_path!r}"
                )
            seen.add(key)

    @property
    def tracks(self) -> List[Track]:
        """Audio tracks in file order."""
        return [f for f in self.files if isinstance(f, Track)]

    @property
    def auxiliary_files(self) -> List[File]:
        """Files that are not tracks (booklets, logs, cue sheets, ...)."""
        return [f for f in self.files if not isinstance(f, Track)]

    @property
    def folder_name(self) -> str:
        return PurePosixPath(self.root_path.replace("\\", "/")).name if self.root_path else ""

    @property
    def discs(self) -> List[int]:
        return sorted({track.disc for track in self.tracks})

    @property
    def is_multi_disc(self) -> bool:
        return any(track.disc > 1 for track in self.tracks)

    def track(self, disc: int, number: int) -> Optional[Track]:
        """Look up a track by (disc, number)."""
        for track in self.tracks:
            if track.disc == disc and track.number == number:
                return track
        return None

    def composer_names(self) -> List[str]:
        """Distinct composer names across all tracks, in first-seen order."""
        names = []
        for track in self.tracks:
            for artist in track.composers:
                if artist.name not in names:
                    names.append(artist.name)
        return names

    def full_path(self, file: File) -> str:
        """Root path joined with a file's relative path."""
        if not self.root_path:
            return file.path
        return f"{self.root_path.rstrip('/')}/{file.path}"


@dataclass(frozen=True)
class ValidationIssue:
    """
    A single rule violation.

    ``track`` is 0 for release-scope issues; ``disc`` accompanies it so issues
    can be ordered by position.
    """

    level: Level
    track: int
    rule: str
    message: str
    disc: int = 0

    @property
    def is_release_scope(self) -> bool:
        return self.track == 0

    @property
    def location(self) -> str:
        if self.is_release_scope:
            return "Release"
        if self.disc > 1:
            return f"Track {self.disc}-{self.track}"
        return f"Track {self.track}"

    def __str__(self) -> str:
        return f"[{self.level.name}] {self.location}: {self.rule} - {self.message}"

    def to_dict(self) -> dict:
        return {
            'level': str(self.level),
            'disc': self.disc,
            'track': self.track,
            'rule': self.rule,
            'message': self.message,
        }
