"""Language Detection

Classifies a task sentence as Hebrew or English by the share of Hebrew
code points among its non-whitespace characters.
"""

import re

from .task_types import Language


HEBREW_CHAR = re.compile(r'[֐-׿]')
WHITESPACE = re.compile(r'\s')


def hebrew_ratio(text: str) -> float:
    """Fraction of non-whitespace characters that fall in the Hebrew block."""
    total = len(WHITESPACE.sub('', text or ''))
    if total == 0:
        return 0.0
    return len(HEBREW_CHAR.findall(text)) / total


def detect_language(text: str, threshold: float = 0.3) -> Language:
    """Return Hebrew when the Hebrew share exceeds ``threshold``, else English."""
    return Language.HEBREW if hebrew_ratio(text) > threshold else Language.ENGLISH
