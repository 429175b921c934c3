"""Written Time Parser

Recognizes clock times written in words or as bare hour numbers, such as
"בשמונה וחצי בערב", "רבע לשבע", "half past six" or "8pm", and turns them into
24-hour clock values.

Forms are tried in tiers, most specific first:

1. hour + time-of-day context ("שמונה בערב", "eight in the evening")
2. hour + minute modifier not followed by a context ("שמונה וחצי")
3. hour + minute modifier + context ("שמונה וחצי בערב")
4. bare hour after a preposition ("בשמונה", "בשעה 8", "at 8")

The first tier that yields a valid time wins.
"""

import re
from dataclasses import dataclass
from typing import Dict, List, Optional, Pattern, Tuple

from ..core.logging_manager import LoggingManager
from .pattern_library import keyword_alternation
from .task_types import ClockTime, Language


HEBREW_HOUR_WORDS: Dict[str, int] = {
    'אחת': 1, 'שתיים': 2, 'שתים': 2, 'שלוש': 3, 'ארבע': 4, 'חמש': 5, 'שש': 6,
    'שבע': 7, 'שמונה': 8, 'תשע': 9, 'עשר': 10, 'אחת עשרה': 11,
    'שתיים עשרה': 12, 'שתים עשרה': 12,
}

ENGLISH_HOUR_WORDS: Dict[str, int] = {
    'one': 1, 'two': 2, 'three': 3, 'four': 4, 'five': 5, 'six': 6, 'seven': 7,
    'eight': 8, 'nine': 9, 'ten': 10, 'eleven': 11, 'twelve': 12,
}

HEBREW_CONTEXTS: Dict[str, str] = {
    'בבוקר': 'morning',
    'בצהריים': 'noon',
    'בצהרים': 'noon',
    'אחר הצהריים': 'afternoon',
    'אחרי הצהריים': 'afternoon',
    'אחה"צ': 'afternoon',
    'בערב': 'evening',
    'בלילה': 'night',
}

ENGLISH_CONTEXTS: Dict[str, str] = {
    'am': 'am',
    'a.m.': 'am',
    'pm': 'pm',
    'p.m.': 'pm',
    'in the morning': 'morning',
    'in the afternoon': 'afternoon',
    'in the evening': 'evening',
    'at night': 'night',
}

# Minute modifiers: (minutes, hour offset)
MODIFIERS: Dict[str, Tuple[int, int]] = {
    'oclock': (0, 0),
    'ten': (10, 0),
    'quarter': (15, 0),
    'twenty': (20, 0),
    'half': (30, 0),
    'forty_five': (45, 0),
    'quarter_to': (45, -1),
}

DIGIT_HOUR = r'(?<![\d:])\d{1,2}(?![\d:]|[./]\d)'


@dataclass
class WrittenTimeMatch:
    """A recognized written time and the exact text it came from."""
    time: ClockTime
    text: str
    start: int
    end: int
    spelled: bool = False
    context: Optional[str] = None


def apply_context(hour: int, context: Optional[str]) -> int:
    """Move a 12-hour reading into the 24-hour day using its context."""
    if context is None or hour > 12:
        return hour
    if context in ('am', 'morning'):
        return 0 if hour == 12 else hour
    if context in ('pm', 'afternoon', 'evening'):
        return hour + 12 if hour < 12 else hour
    if context == 'noon':
        return hour + 12 if 1 <= hour <= 6 else hour
    if context == 'night':
        if hour == 12:
            return 0
        return hour + 12 if 6 <= hour < 12 else hour
    return hour


def hebrew_hour_word(hour: int) -> str:
    """Spelled Hebrew hour (feminine count form) for a 24-hour value."""
    if hour == 0:
        return 'חצות'
    twelve_hour = hour - 12 if hour > 12 else hour
    for word, value in HEBREW_HOUR_WORDS.items():
        if value == twelve_hour:
            return word
    return str(hour)


def english_hour_word(hour: int) -> str:
    """Spelled English hour for a 24-hour value."""
    twelve_hour = hour % 12 or 12
    for word, value in ENGLISH_HOUR_WORDS.items():
        if value == twelve_hour:
            return word
    return str(hour)


def time_of_day_context(hour: int, language: Language) -> str:
    """Context phrase that makes a 12-hour reading unambiguous."""
    if language == Language.ENGLISH:
        return 'pm' if hour >= 12 else 'am'
    if 5 <= hour <= 11:
        return 'בבוקר'
    if 12 <= hour <= 16:
        return 'בצהריים'
    if 17 <= hour <= 20:
        return 'בערב'
    return 'בלילה'


class WrittenTimeParser:
    """Tiered recognizer for spelled-out and bare-hour clock times."""

    def __init__(self, language: Language):
        """Compile the tiered patterns for one language.

        Args:
            language: Language whose number words and contexts are recognized
        """
        self.logger = LoggingManager.get_logger(__name__)
        self.language = language

        if language == Language.HEBREW:
            self.hour_words = HEBREW_HOUR_WORDS
            self.contexts = HEBREW_CONTEXTS
        else:
            self.hour_words = ENGLISH_HOUR_WORDS
            self.contexts = ENGLISH_CONTEXTS

        self.tiers = self._build_tiers()

    def _build_tiers(self) -> List[List[Tuple[Pattern, Optional[str]]]]:
        """Build tiers of (pattern, modifier) pairs in evaluation order."""
        number = rf'(?P<num>(?:{keyword_alternation(self.hour_words)})(?!\w)|{DIGIT_HOUR})'
        next_hour = rf'(?:(?:{keyword_alternation(self.hour_words)})(?!\w)|{DIGIT_HOUR})'
        context = rf'(?P<ctx>{keyword_alternation(self.contexts)})(?!\w)'

        if self.language == Language.HEBREW:
            prep = r'(?P<prep>בשעה\s+|ב-?)?'
            bare_prep = r'(?P<prep>בשעה\s+|ב-?)'
            context_gap = r'\s+'
            plain_hour = rf'{number}'
            compounds = [
                (rf'{number}\s+ורבע\s+ל-?{next_hour}', 'forty_five'),
                (rf'{number}\s+וחצי', 'half'),
                (rf'{number}\s+ורבע', 'quarter'),
                (rf'{number}\s+ועשרים', 'twenty'),
                (rf'{number}\s+ועשרה', 'ten'),
                (rf'{number}\s+פחות\s+רבע', 'quarter_to'),
                (rf'רבע\s+ל-?{number}', 'quarter_to'),
            ]
        else:
            prep = r'(?P<prep>(?:at|on|by)\s+)?'
            bare_prep = r'(?P<prep>at\s+)'
            context_gap = r'\s*'
            plain_hour = rf"{number}(?:\s+o'?clock)?"
            compounds = [
                (rf'{number}\s+thirty', 'half'),
                (rf'{number}\s+fifteen', 'quarter'),
                (rf'{number}\s+forty[\s-]five', 'forty_five'),
                (rf"{number}\s+o'?clock", 'oclock'),
                (rf'half\s+past\s+{number}', 'half'),
                (rf'quarter\s+past\s+{number}', 'quarter'),
                (rf'quarter\s+(?:to|till|of)\s+{number}', 'quarter_to'),
            ]

        def compile_(body: str) -> Pattern:
            return re.compile(rf'(?<!\w){body}', re.IGNORECASE)

        with_context = [(compile_(rf'{prep}{plain_hour}{context_gap}{context}'), None)]
        compound_only = [
            (compile_(rf'{prep}{fragment}(?!\s*{context})(?!\w)'), modifier)
            for fragment, modifier in compounds
        ]
        compound_context = [
            (compile_(rf'{prep}{fragment}\s*{context}'), modifier)
            for fragment, modifier in compounds
        ]
        bare = [(compile_(rf'{bare_prep}{number}'), None)]

        return [with_context, compound_only, compound_context, bare]

    def parse(self, text: str) -> Optional[WrittenTimeMatch]:
        """Find the first written time in ``text``.

        Args:
            text: Raw task sentence

        Returns:
            The earliest valid match of the most specific tier, or None
        """
        for tier in self.tiers:
            found = self._search_tier(tier, text)
            if found:
                self.logger.debug(f"Written time '{found.text}' -> {found.time.display}")
                return found
        return None

    def _search_tier(self, tier: List[Tuple[Pattern, Optional[str]]], text: str) -> Optional[WrittenTimeMatch]:
        candidates = []
        for pattern, modifier in tier:
            for match in pattern.finditer(text):
                decoded = self._decode(match, modifier)
                if decoded:
                    candidates.append(decoded)
                    break

        if not candidates:
            return None
        return min(candidates, key=lambda c: (c.start, -(c.end - c.start)))

    def _decode(self, match: re.Match, modifier: Optional[str]) -> Optional[WrittenTimeMatch]:
        hour_text = re.sub(r'\s+', ' ', match.group('num')).lower()
        spelled = not hour_text.isdigit()
        hour = int(hour_text) if not spelled else self.hour_words.get(hour_text)
        if hour is None:
            return None

        minute = 0
        if modifier:
            minute, hour_offset = MODIFIERS[modifier]
            if hour_offset:
                hour = 12 if hour == 1 else hour + hour_offset

        context = None
        context_text = match.groupdict().get('ctx')
        if context_text:
            context = self.contexts.get(re.sub(r'\s+', ' ', context_text).lower())
            hour = apply_context(hour, context)

        clock = ClockTime(hour, minute)
        if not clock.is_valid():
            return None

        return WrittenTimeMatch(
            time=clock,
            text=match.group(0),
            start=match.start(),
            end=match.end(),
            spelled=spelled,
            context=context
        )
