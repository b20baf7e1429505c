"""
Text helpers shared by the validation rules.

Capitalization checks, title normalization and fuzzy comparison, filename
parsing and composer surname extraction. Word lists are data and live in
vocabulary.yaml next to this module.
"""

import logging
import re
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple

import yaml

logger = logging.getLogger(__name__)

VOCABULARY_FILE = Path(__file__).with_name("vocabulary.yaml")

# Title comparison thresholds (edit distance on normalized titles)
TITLE_MATCH_DISTANCE = 3
TITLE_MISMATCH_DISTANCE = 10

MAX_PATH_LENGTH = 180

CAPITALIZATION_REASON = "Not Title Case or Casual Title Case"

FILENAME_TRACK_PATTERN = re.compile(r'^(\d+)[\s\-_\.]+(.*)$')
_EXTENSION_PATTERN = re.compile(r'\.[A-Za-z0-9]{1,5}$')
_DELIMITER_PATTERN = re.compile(r'[:—–\-]')
_BRACKETED_PATTERN = re.compile(r'\[[^\]]*\]')
_LEADING_PREFIX_PATTERN = re.compile(r"^(.+?)\s*(?::|\s-\s)\s*(?=\S)")
_INITIAL_PATTERN = re.compile(r'\b[A-Z]\.\s*')
_WHITESPACE_PATTERN = re.compile(r'\s+')
_FOLDER_YEAR_PATTERN = re.compile(r'\[(\d{4})\]|\((\d{4})\)|-\s+(\d{4})(?!\d)')


@lru_cache(maxsize=None)
def load_vocabulary(path: Path = VOCABULARY_FILE) -> Dict[str, Any]:
    """
    Load the word lists used by the text helpers.

    Args:
        path: YAML file to load (defaults to the bundled vocabulary)

    Returns:
        Dictionary of word lists keyed by name
    """
    with open(path, 'r', encoding='utf-8') as f:
        vocabulary = yaml.safe_load(f) or {}
    logger.debug(f"Loaded vocabulary from {path} ({len(vocabulary)} tables)")
    return vocabulary


def _word_set(name: str) -> frozenset:
    return frozenset(load_vocabulary()[name])


# Token predicates

def is_number(token: str) -> bool:
    return token.isascii() and token.isdigit()


def is_key_token(token: str) -> bool:
    """Musical key letter, optionally with an accidental: 'D', 'F#', 'Bb'."""
    if len(token) == 1:
        return 'A' <= token <= 'G'
    if len(token) == 2:
        return 'A' <= token[0] <= 'G' and token[1] in ('#', 'b')
    return False


def is_all_uppercase(token: str) -> bool:
    """True when the token has at least one letter and no lowercase letters."""
    has_letter = False
    for char in token:
        if char.isalpha():
            has_letter = True
            if char.islower():
                return False
    return has_letter


def is_lowercase_word(token: str) -> bool:
    """True when the token has at least one letter and no uppercase letters."""
    has_letter = False
    for char in token:
        if char.isalpha():
            has_letter = True
            if char.isupper():
                return False
    return has_letter


def is_acronym(token: str) -> bool:
    """
    Recognize acronyms: a fixed list, '&' forms such as 'R&B', and dotted
    uppercase forms such as 'U.S.A.'.
    """
    if token in _word_set('acronyms'):
        return True
    if '&' in token and token.upper() == token:
        return True
    undotted = token.replace('.', '')
    return undotted != token and undotted.upper() == undotted and len(undotted) > 1


def is_initialism(token: str) -> bool:
    """Short all-uppercase letter token such as 'RIAS' or 'HMC'."""
    vocabulary = load_vocabulary()
    limit = vocabulary.get('max_initialism_length', 0)
    if not (token.isalpha() and token.isupper() and 2 <= len(token) <= limit):
        return False
    # Shouted words that happen to be short are not initialisms
    lower = token.lower()
    return lower not in vocabulary['mode_words'] and lower not in vocabulary['catalog_composers']


def is_roman_numeral(token: str) -> bool:
    letters = load_vocabulary()['roman_numeral_letters']
    return bool(token) and all(char in letters for char in token)


def is_catalog_token(token: str) -> bool:
    return token in _word_set('catalog_tokens')


def is_small_word(word: str) -> bool:
    return word.lower() in _word_set('small_words')


def is_capitalized_word(token: str) -> bool:
    """
    First letter uppercase and, for words with more than one letter, not
    entirely uppercase. Tokens without letters are accepted.
    """
    letters = [char for char in token if char.isalpha()]
    if not letters:
        return True
    if not letters[0].isupper():
        return False
    if len(letters) > 1 and not any(char.islower() for char in letters):
        return False
    return True


def _is_exception_token(token: str) -> bool:
    return (is_acronym(token) or is_initialism(token)
            or is_roman_numeral(token) or is_catalog_token(token))


def split_on_delimiters(text: str) -> List[str]:
    """Split a title into segments on ':', em/en dashes and hyphens."""
    return _DELIMITER_PATTERN.split(text)


def _is_shouting(title: str) -> bool:
    # Several words, all uppercase, at least one of them not a known exception
    words = [token for token in title.split() if any(char.isalpha() for char in token)]
    if len(words) < 2 or not all(is_all_uppercase(word) for word in words):
        return False
    return any(
        not (is_acronym(word) or is_roman_numeral(word) or is_catalog_token(word))
        for word in words
    )


# Capitalization classifier

def valid_title_case(title: str) -> bool:
    """
    Strict Title Case.

    Every significant word is capitalized and small words are lowercase unless
    they start or end a segment. Acronyms, roman numerals, catalog tokens,
    numbers and key letters are accepted anywhere.
    """
    if _is_shouting(title):
        return False

    vocabulary = load_vocabulary()
    continuations = set(vocabulary['lowercase_continuations'])
    mode_words = set(vocabulary['mode_words'])

    for segment in split_on_delimiters(title):
        tokens = segment.split()
        for i, token in enumerate(tokens):
            is_boundary = i == 0 or i == len(tokens) - 1
            for part in token.split('-'):
                if not part:
                    continue
                if is_number(part) or is_key_token(part) or _is_exception_token(part):
                    continue
                if is_small_word(part) and not is_boundary:
                    if not is_lowercase_word(part):
                        return False
                    continue
                if i > 0 and tokens[i - 1].lower() in continuations and is_lowercase_word(part):
                    continue
                if i > 0 and part.lower() in mode_words and is_lowercase_word(part):
                    continue
                if not is_capitalized_word(part):
                    return False
    return True


def valid_casual_title_case(title: str) -> bool:
    """Casual Title Case: every word starts with a capital letter."""
    if _is_shouting(title):
        return False

    for token in title.split():
        if _is_exception_token(token):
            continue
        first = token[0]
        if first.isalpha() and not first.isupper():
            return False
        if len(token) >= 2 and is_all_uppercase(token):
            return False
    return True


def check_capitalization(title: str) -> str:
    """
    Classify a title's capitalization.

    Returns:
        Empty string when strict or casual Title Case holds, otherwise a short
        reason
    """
    if valid_title_case(title) or valid_casual_title_case(title):
        return ""
    return CAPITALIZATION_REASON


# Title comparison

def _composer_keys(composers: Iterable[str]) -> frozenset:
    keys = set()
    for name in composers:
        if name and name.strip():
            keys.add(normalize_name(name))
            keys.add(normalize_name(composer_last_name(name)))
    return frozenset(keys)


def normalize_title(title: str, composers: Iterable[str] = ()) -> str:
    """
    Normalize a title for fuzzy comparison.

    Lowercases, removes bracketed segments and collapses whitespace. A leading
    'Composer -' or 'Composer:' prefix is dropped only when it names one of
    the given composers, by full name or surname; any other prefix is part of
    the work title.
    """
    normalized = _BRACKETED_PATTERN.sub(' ', title)
    normalized = _WHITESPACE_PATTERN.sub(' ', normalized).strip()
    keys = _composer_keys(composers)
    match = _LEADING_PREFIX_PATTERN.match(normalized)
    if match and keys:
        prefix = match.group(1)
        if (normalize_name(prefix) in keys
                or normalize_name(_INITIAL_PATTERN.sub(' ', prefix)) in keys):
            normalized = normalized[match.end():]
    return normalized.lower().strip()


def levenshtein_distance(first: str, second: str) -> int:
    """Edit distance counting insertions, deletions and substitutions."""
    if not first:
        return len(second)
    if not second:
        return len(first)

    previous = list(range(len(second) + 1))
    for i, a in enumerate(first, start=1):
        current = [i]
        for j, b in enumerate(second, start=1):
            cost = 0 if a == b else 1
            current.append(min(
                previous[j] + 1,
                current[j - 1] + 1,
                previous[j - 1] + cost,
            ))
        previous = current
    return previous[-1]


def title_distance(first: str, second: str, composers: Iterable[str] = ()) -> int:
    """Edit distance between two titles after normalization."""
    composers = list(composers)
    return levenshtein_distance(normalize_title(first, composers), normalize_title(second, composers))


def titles_match(first: str, second: str, composers: Iterable[str] = ()) -> bool:
    return title_distance(first, second, composers) <= TITLE_MATCH_DISTANCE


# Filenames

def basename(path: str) -> str:
    """Final component of a release-relative path ('CD1/01 - A.flac' -> '01 - A.flac')."""
    return path.replace('\\', '/').rsplit('/', 1)[-1]


def strip_extension(name: str) -> str:
    return _EXTENSION_PATTERN.sub('', name)


def parse_filename(path: str) -> Optional[Tuple[int, str]]:
    """
    Extract the leading track number from a file's basename.

    Args:
        path: File path relative to the release root

    Returns:
        (track number, remainder of the basename) or None when the basename
        does not start with a number followed by a separator
    """
    match = FILENAME_TRACK_PATTERN.match(basename(path))
    if not match:
        return None
    return int(match.group(1)), match.group(2)


def filename_title(path: str) -> Optional[str]:
    """Title portion of a filename: basename without track number or extension."""
    match = FILENAME_TRACK_PATTERN.match(strip_extension(basename(path)))
    if not match:
        return None
    return match.group(2).strip() or None


def folder_year(name: str) -> Optional[int]:
    """Year written as [YYYY], (YYYY) or '- YYYY' in a folder name."""
    match = _FOLDER_YEAR_PATTERN.search(name)
    if not match:
        return None
    return int(next(group for group in match.groups() if group))


# Names

def composer_last_name(name: str) -> str:
    """
    Extract a composer's surname.

    'Ludwig van Beethoven' -> 'Beethoven', 'J.S. Bach' -> 'Bach',
    'Beethoven, Ludwig van' -> 'Beethoven'.
    """
    name = name.strip()
    if ',' in name:
        return name.split(',', 1)[0].strip()

    stripped = _INITIAL_PATTERN.sub(' ', name)
    particles = _word_set('name_particles')
    tokens = [t for t in stripped.split() if t.lower() not in particles or t[0].isupper()]
    if not tokens:
        tokens = name.split()
    return tokens[-1] if tokens else name


def normalize_name(name: str) -> str:
    """Lowercase a name and collapse its whitespace."""
    return _WHITESPACE_PATTERN.sub(' ', name).strip().lower()
