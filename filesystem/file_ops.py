"""
Filesystem scanning and tag reading using pathlib and mutagen.

This module finds the files of a release on disk and reads the tags of its
audio files into ``TagRecord`` objects. It never writes to the filesystem.
"""

from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional
import logging

import mutagen
from mutagen.id3 import Frame, ID3NoHeaderError

from api.schemas import TagRecord
from utils.exceptions import (
    FilesystemError, UnsupportedFormatError, MetadataExtractionError
)

logger = logging.getLogger(__name__)

# Tag names per field across ID3, Vorbis comments / APEv2 and MP4 atoms
TAG_MAPPING = {
    'title': ['TIT2', 'TITLE', '\xa9nam'],
    'artist': ['TPE1', 'ARTIST', 'PERFORMER', '\xa9ART'],
    'album_artist': ['TPE2', 'ALBUMARTIST', 'ALBUM ARTIST', 'aART'],
    'album': ['TALB', 'ALBUM', '\xa9alb'],
    'composer': ['TCOM', 'COMPOSER', '\xa9wrt'],
    'year': ['TDOR', 'TDRC', 'TYER', 'ORIGINALDATE', 'ORIGINALYEAR', 'DATE', 'YEAR', '\xa9day'],
    'track_number': ['TRCK', 'TRACKNUMBER', 'TRACK', 'trkn'],
    'disc_number': ['TPOS', 'DISCNUMBER', 'DISC', 'disk'],
    'conductor': ['TPE3', 'CONDUCTOR', '----:com.apple.iTunes:CONDUCTOR'],
    'ensemble': ['TXXX:ENSEMBLE', 'ENSEMBLE', 'ORCHESTRA'],
    'arranger': ['TXXX:ARRANGER', 'ARRANGER'],
    'label': ['TPUB', 'LABEL', 'ORGANIZATION', 'PUBLISHER', 'TXXX:LABEL', '----:com.apple.iTunes:LABEL'],
    'catalog_number': ['TXXX:CATALOGNUMBER', 'CATALOGNUMBER', 'CATALOG', 'LABELNO',
                       '----:com.apple.iTunes:CATALOGNUMBER'],
}


def _tag_value(value: Any) -> Optional[str]:
    """Flatten a mutagen tag value to a string; lists are joined with '; '."""
    if value is None:
        return None
    if isinstance(value, bytes):
        return value.decode('utf-8', errors='replace')
    if isinstance(value, tuple):
        # MP4 trkn/disk pairs: (number, total)
        return str(value[0]) if value else None
    if isinstance(value, list):
        items = [_tag_value(item) for item in value]
        items = [item for item in items if item]
        return "; ".join(items) if items else None
    if isinstance(value, Frame):
        return _tag_value(list(getattr(value, "text", [])))
    return str(value)


class FileSystemOperations:
    """Finds release files and reads audio tags with proper error handling."""

    def __init__(self, audio_extensions: List[str], ignored_dirs: List[str]):
        """
        Initialize filesystem operations.

        Args:
            audio_extensions: List of supported audio file extensions (with dots)
            ignored_dirs: List of directory names to ignore during scanning
        """
        self.audio_extensions = {ext.lower() for ext in audio_extensions}
        self.ignored_dirs = {name.lower() for name in ignored_dirs}

    def is_audio_file(self, path: Path) -> bool:
        return path.suffix.lower() in self.audio_extensions

    def discover_files(self, root_dir: Path, recursive: bool = True) -> Iterator[Path]:
        """
        Discover every file in a directory tree, in sorted order.

        Args:
            root_dir: Root directory to scan
            recursive: Whether to scan subdirectories recursively

        Yields:
            Path objects for discovered files

        Raises:
            FilesystemError: If the root directory cannot be accessed
        """
        if not root_dir.exists():
            raise FilesystemError(str(root_dir), "scan", "Directory does not exist")

        if not root_dir.is_dir():
            raise FilesystemError(str(root_dir), "scan", "Path is not a directory")

        try:
            pattern = "**/*" if recursive else "*"
            for path in sorted(root_dir.glob(pattern)):
                if not path.is_file():
                    continue

                if self._should_ignore_parent(path.relative_to(root_dir)):
                    continue

                yield path

        except PermissionError as e:
            raise FilesystemError(str(root_dir), "scan", f"Permission denied: {e}")
        except OSError as e:
            raise FilesystemError(str(root_dir), "scan", f"OS error: {e}")

    def _should_ignore_parent(self, relative_path: Path) -> bool:
        """Check if any directory between the root and the file should be ignored."""
        for parent in relative_path.parents:
            if parent.name.lower() in self.ignored_dirs:
                return True
        return False

    def read_tags(self, file_path: Path) -> TagRecord:
        """
        Read the tags of an audio file.

        Args:
            file_path: Path to the audio file

        Returns:
            TagRecord with whatever tags the file carries

        Raises:
            UnsupportedFormatError: If mutagen does not recognise the file
            MetadataExtractionError: If the file cannot be read
        """
        if not file_path.is_file():
            raise MetadataExtractionError(str(file_path), "not a file")

        try:
            audio_file = mutagen.File(str(file_path))
        except ID3NoHeaderError:
            logger.debug(f"No ID3 tags found in {file_path}")
            return TagRecord()
        except PermissionError as e:
            raise MetadataExtractionError(str(file_path), f"permission denied: {e}")
        except (mutagen.MutagenError, OSError) as e:
            raise MetadataExtractionError(str(file_path), str(e))

        if audio_file is None:
            raise UnsupportedFormatError(str(file_path), file_path.suffix.lower() or None)

        if audio_file.tags is None:
            logger.debug(f"No tags in {file_path}")
            return TagRecord()

        return TagRecord(**self.extract_metadata(audio_file.tags, file_path))

    def extract_metadata(self, tags: Any, file_path: Path) -> Dict[str, str]:
        """
        Map format-specific tag names onto TagRecord fields.

        Args:
            tags: Mutagen tag container (dict-like)
            file_path: File the tags belong to, for logging

        Returns:
            Dictionary of TagRecord field name to raw string value
        """
        metadata = {}

        for standard_key, possible_keys in TAG_MAPPING.items():
            for key in possible_keys:
                try:
                    if key not in tags:
                        continue
                    value = _tag_value(tags[key])
                except (ValueError, KeyError, TypeError) as key_error:
                    # Some containers reject keys that are invalid for their format
                    logger.debug(f"Error reading tag {key} from {file_path}: {key_error}")
                    continue
                if value:
                    metadata[standard_key] = value
                    break

        logger.debug(f"Read {len(metadata)} tags from {file_path}")
        return metadata
