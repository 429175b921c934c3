"""Speech Name Correction

Cleans up common speech-to-text misrecognitions of family names before a
transcript reaches the parser.
"""

import re
from difflib import SequenceMatcher
from typing import Dict, Iterable, Optional

from ..core.logging_manager import LoggingManager


# Misrecognition -> roster spelling
NAME_CORRECTIONS: Dict[str, str] = {
    # Hilly
    'אילי': 'הילי',
    'היילי': 'הילי',
    # Alon
    'אילון': 'אלון',
    'עלון': 'אלון',
    # Yael
    'יעאל': 'יעל',
    'יאל': 'יעל',
    # Ella
    'עלה': 'אלה',
    'הילה': 'אלה',
    'אילת': 'אלה',
    # Eyal
    'איל': 'אייל',
    'עייל': 'אייל',
    'איאל': 'אייל',
}

NAME_PREFIXES = ['ל', 'ש', 'ב', 'כ', 'את ']

DEFAULT_MATCH_THRESHOLD = 0.6

logger = LoggingManager.get_logger(__name__)


def _build_correction_pattern(corrections: Dict[str, str]) -> re.Pattern:
    mistakes = '|'.join(re.escape(m) for m in sorted(corrections, key=len, reverse=True))
    prefixes = '|'.join(re.escape(p) for p in NAME_PREFIXES)
    return re.compile(rf'(?<!\S)(?P<prefix>{prefixes})?(?P<name>{mistakes})(?!\S)')


CORRECTION_PATTERN = _build_correction_pattern(NAME_CORRECTIONS)


def correct_family_names(text: str, corrections: Optional[Dict[str, str]] = None) -> str:
    """Replace known misrecognized names, keeping any Hebrew prefix.

    A name only counts as a whole whitespace-delimited word, optionally led by
    one of the prefixes ל, ש, ב, כ or the object marker "את ".

    Args:
        text: Raw speech transcript
        corrections: Optional replacement map; defaults to NAME_CORRECTIONS

    Returns:
        Corrected transcript
    """
    if not text:
        return text

    table = corrections or NAME_CORRECTIONS
    pattern = CORRECTION_PATTERN if corrections is None else _build_correction_pattern(table)

    def replace(match: re.Match) -> str:
        return (match.group('prefix') or '') + table[match.group('name')]

    corrected = pattern.sub(replace, text)
    if corrected != text:
        logger.debug(f"Corrected transcript names: '{text}' -> '{corrected}'")
    return corrected


def similarity(left: str, right: str) -> float:
    """Similarity ratio between two strings in [0, 1]."""
    if not left and not right:
        return 1.0
    return SequenceMatcher(None, left.lower(), right.lower()).ratio()


def find_best_name_match(spoken_name: str, known_names: Iterable[str],
                         threshold: float = DEFAULT_MATCH_THRESHOLD) -> str:
    """Return the most similar known name, or ``spoken_name`` when none reaches ``threshold``."""
    best_match = spoken_name
    best_score = 0.0

    for known_name in known_names:
        score = similarity(spoken_name, known_name)
        if score > best_score and score >= threshold:
            best_score = score
            best_match = known_name

    return best_match
