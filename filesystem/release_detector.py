"""
Release detection: turn a release directory on disk into a domain Release.

Audio files become tracks built from their tags; everything else (booklets,
logs, cue sheets, archives) is kept as a plain file so the release-level
rules can see it. Disc numbers come from the disc tag or, failing that, from
CD1 / Disc 2 style subdirectories.
"""

import logging
import re
from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Optional, Set, Tuple

from api.schemas import TagRecord
from domain.models import Artist, Edition, File, Release
from filesystem.file_ops import FileSystemOperations
from utils.exceptions import FileProcessingError
from validation.text import folder_year, parse_filename

logger = logging.getLogger(__name__)

TagReader = Callable[[Path], TagRecord]

_ROMAN_VALUES = {'i': 1, 'v': 5, 'x': 10}


def _roman_to_int(value: str) -> Optional[int]:
    total, previous = 0, 0
    for char in reversed(value.lower()):
        number = _ROMAN_VALUES.get(char)
        if number is None:
            return None
        total += -number if number < previous else number
        previous = max(previous, number)
    return total or None


@dataclass
class LoadResult:
    """A release read from disk plus the files that could not be used."""

    release: Release
    errors: List[str] = field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)


class ReleaseDetector:
    """Builds releases from directories."""

    def __init__(self, fs_ops: FileSystemOperations, tag_reader: Optional[TagReader] = None):
        """
        Args:
            fs_ops: Filesystem operations used for discovery
            tag_reader: Callable reading the tags of one audio file; defaults to
                the mutagen-based reader of ``fs_ops``
        """
        self.fs_ops = fs_ops
        self.tag_reader = tag_reader or fs_ops.read_tags

        # Disc directory pattern (CD1, Disc 2, etc.)
        self.disc_dir_pattern = re.compile(r"(?i)^\s*(?:cd|disc|disk)[\s._-]*([0-9ivx]+)\s*$")

    def disc_from_directory(self, relative_path: str) -> Optional[int]:
        """
        Disc number from the first CD/Disc directory in a release-relative path.

        Args:
            relative_path: Path relative to the release root

        Returns:
            Disc number, or None when no directory names a disc
        """
        for part in relative_path.split('/')[:-1]:
            match = self.disc_dir_pattern.match(part)
            if not match:
                continue
            value = match.group(1)
            if value.isdigit():
                return int(value) or None
            return _roman_to_int(value)
        return None

    def load(self, root_dir: Path) -> LoadResult:
        """
        Read a release directory.

        Args:
            root_dir: Release root directory

        Returns:
            LoadResult with the release and any per-file load errors

        Raises:
            FilesystemError: If the directory cannot be scanned
        """
        errors: List[str] = []
        files: List[File] = []
        records: List[TagRecord] = []
        used: Set[Tuple[int, int]] = set()
        next_number: Dict[int, int] = {}

        for path in self.fs_ops.discover_files(root_dir):
            relative = path.relative_to(root_dir).as_posix()

            if not self.fs_ops.is_audio_file(path):
                files.append(File(relative))
                continue

            try:
                record = self.tag_reader(path)
            except FileProcessingError as e:
                logger.warning(f"Skipping tags of {path}: {e}")
                errors.append(str(e))
                files.append(File(relative))
                continue

            disc = record.disc_number or self.disc_from_directory(relative) or 1
            parsed = parse_filename(relative)
            number = record.track_number or (parsed[0] if parsed and parsed[0] > 0 else None)
            if number is None:
                number = next_number.get(disc, 1)
                while (disc, number) in used:
                    number += 1
                logger.debug(f"No track number for {relative}; using {number}")

            if (disc, number) in used:
                message = f"Duplicate track number {number} on disc {disc}: {relative}"
                logger.warning(message)
                errors.append(message)
                files.append(File(relative))
                continue

            used.add((disc, number))
            next_number[disc] = max(next_number.get(disc, 1), number + 1)
            files.append(record.to_track(relative, disc=disc, number=number))
            records.append(record)

        release = Release(
            # Paths are measured as they appear inside the torrent
            root_path=root_dir.name or str(root_dir),
            title=self._album_title(records),
            original_year=self._original_year(records, root_dir.name),
            edition=self._edition(records),
            album_artists=self._album_artists(records),
            files=files,
        )

        logger.info(f"Loaded {root_dir.name}: {len(release.tracks)} tracks, "
                    f"{len(release.auxiliary_files)} other files, {len(errors)} errors")
        return LoadResult(release=release, errors=errors)

    @staticmethod
    def _first(records: List[TagRecord], name: str):
        for record in records:
            value = getattr(record, name)
            if value:
                return value
        return None

    def _album_title(self, records: List[TagRecord]) -> str:
        """Most common album tag; ties go to the first seen."""
        titles = [record.album for record in records if record.album]
        if not titles:
            return ""
        counts = Counter(titles)
        return max(dict.fromkeys(titles), key=lambda title: counts[title])

    def _original_year(self, records: List[TagRecord], folder_name: str) -> int:
        return self._first(records, 'year') or folder_year(folder_name) or 0

    def _edition(self, records: List[TagRecord]) -> Optional[Edition]:
        label = self._first(records, 'label') or ""
        catalog_number = self._first(records, 'catalog_number') or ""
        if not label and not catalog_number:
            return None
        return Edition(label=label, catalog_number=catalog_number,
                       year=self._first(records, 'year') or 0)

    def _album_artists(self, records: List[TagRecord]) -> List[Artist]:
        for record in records:
            if record.album_artist:
                return record.album_artists()
        return []
