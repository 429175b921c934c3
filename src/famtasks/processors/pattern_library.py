"""Pattern Library for Bilingual Task Parsing

Per-language tables of compiled matchers for every semantic category:
priority tokens, time-bucket keywords, clock times, dates, family-member
mentions, known places, transport verbs, recurrence phrases and
reminder/task keywords.

Spanned matchers use named groups: ``payload`` holds the semantic value and
the optional ``et`` / ``affix`` groups hold grammatical affixes (Hebrew object
marker, one-letter prefixes, English prepositions) that belong to the mention
without changing its meaning.
"""

import re
from dataclasses import dataclass
from datetime import date
from typing import Any, Callable, Dict, List, Optional, Pattern, Sequence

from dateutil import parser as date_parser

from ..core.config_manager import FamilyMember, KnownPlace
from ..core.logging_manager import LoggingManager
from .task_types import ClockTime, Language, PriorityLevel, RecurrencePattern, TimeBucket


# Hebrew points (niqqud and cantillation) that may sit between letters
HEBREW_MARKS = '[֑-ׇ]*'

HEBREW_DAY_NAMES = ['ראשון', 'שני', 'שלישי', 'רביעי', 'חמישי', 'שישי', 'שבת']
ENGLISH_DAY_NAMES = ['sunday', 'monday', 'tuesday', 'wednesday', 'thursday', 'friday', 'saturday']

# Time-bucket keywords, one closed set per language
TIME_BUCKET_KEYWORDS = {
    Language.HEBREW: {
        TimeBucket.TODAY: ['היום', 'הערב', 'הלילה', 'עכשיו'],
        TimeBucket.TOMORROW: ['מחר'],
        TimeBucket.THIS_WEEK: ['השבוע הזה', 'השבוע', 'בשבוע'],
        TimeBucket.NEXT_WEEK: ['השבוע הבא', 'בשבוע הבא', 'שבוע הבא'],
    },
    Language.ENGLISH: {
        TimeBucket.TODAY: ['today', 'tonight'],
        TimeBucket.TOMORROW: ['tomorrow', 'tmrw'],
        TimeBucket.THIS_WEEK: ['this week'],
        TimeBucket.NEXT_WEEK: ['next week'],
    },
}

TRANSPORT_WORDS = {
    Language.HEBREW: ['להסיע', 'לקחת', 'להביא', 'לאסוף', 'להוריד', 'להקפיץ',
                      'לנסוע', 'לנהוג', 'נסיעה', 'נהיגה', 'איסוף'],
    Language.ENGLISH: ['take', 'takes', 'taking', 'bring', 'pick up', 'picking up',
                       'drop off', 'dropping off', 'drive', 'driving', 'ride'],
}

RECURRENCE_WORDS = {
    Language.HEBREW: {
        RecurrencePattern.DAILY: ['כל יום', 'יומיומי', 'יומי', 'מדי יום'],
        RecurrencePattern.WEEKLY: ['כל שבוע', 'שבועי', 'מדי שבוע', 'פעם בשבוע'],
        RecurrencePattern.MONTHLY: ['כל חודש', 'חודשי', 'מדי חודש', 'פעם בחודש'],
    },
    Language.ENGLISH: {
        RecurrencePattern.DAILY: ['daily', 'every day', 'each day', 'everyday'],
        RecurrencePattern.WEEKLY: ['weekly', 'every week', 'each week'],
        RecurrencePattern.MONTHLY: ['monthly', 'every month', 'each month'],
    },
}

REMINDER_WORDS = {
    Language.HEBREW: ['להזכיר', 'תזכיר', 'תזכורת', 'זיכרון'],
    Language.ENGLISH: ['remind', 'reminder', 'remember to'],
}

TASK_WORDS = {
    Language.HEBREW: ['צריך', 'צריכה', 'חייב', 'חייבת', 'משימה', 'לעשות'],
    Language.ENGLISH: ['need to', 'needs to', 'have to', 'has to', 'must', 'task', 'todo'],
}


@dataclass
class Matcher:
    """One compiled pattern for a spanned category.

    ``decoder`` turns a regex match into the category value; returning None
    discards the occurrence silently.
    """
    pattern: Pattern
    decoder: Callable[[re.Match], Optional[Any]]
    description: str = ""


def keyword_alternation(keywords: Sequence[str], tolerant: bool = False) -> str:
    """Build a longest-first alternation where inner spaces match any whitespace."""
    parts = []
    for keyword in sorted(set(keywords), key=len, reverse=True):
        if tolerant:
            escaped = ''.join(_tolerant_char(ch) for ch in keyword)
        else:
            escaped = re.escape(keyword)
        parts.append(re.sub(r'(\\ |\s)+', r'\\s+', escaped))
    return '|'.join(parts)


def _tolerant_char(ch: str) -> str:
    if ch.isspace():
        return ' '
    if 'א' <= ch <= 'ת':
        return ch + HEBREW_MARKS
    return re.escape(ch)


def _const(value: Any) -> Callable[[re.Match], Any]:
    return lambda match: value


def decode_clock(match: re.Match) -> Optional[ClockTime]:
    """Decode ``HH:MM`` with an optional am/pm suffix; out-of-range values give None."""
    hour = int(match.group('hour'))
    minute = int(match.group('minute'))
    if not (0 <= hour <= 23 and 0 <= minute <= 59):
        return None

    meridiem = (match.groupdict().get('meridiem') or '').lower().replace('.', '')
    if meridiem == 'pm' and hour < 12:
        hour += 12
    elif meridiem == 'am' and hour == 12:
        hour = 0
    return ClockTime(hour, minute)


def decode_date(match: re.Match) -> Optional[date]:
    """Decode a numeric date; day-first unless the first field is a year."""
    text = match.group('payload')
    year_first = len(match.group('first')) == 4
    try:
        return date_parser.parse(text, dayfirst=not year_first, yearfirst=year_first).date()
    except (ValueError, OverflowError):
        return None


class PatternLibrary:
    """Compiled matchers for one language and one pair of reference rosters."""

    def __init__(self, language: Language, family_members: Sequence[FamilyMember],
                 known_places: Sequence[KnownPlace]):
        """Compile every category's matchers.

        Args:
            language: Active input language
            family_members: Family roster used for mention matching
            known_places: Place roster used for location matching
        """
        self.logger = LoggingManager.get_logger(__name__)
        self.language = language

        self.priority = self._build_priority_matchers()
        self.time_bucket = self._build_time_bucket_matchers()
        self.family_members = self._build_family_matchers(family_members)
        self.locations = self._build_location_matchers(known_places)
        self.clock_time = self._build_clock_matchers()
        self.dates = self._build_date_matchers()

        self.transport = self._build_keyword_test(TRANSPORT_WORDS[language])
        self.recurrence_flags = {
            pattern: self._build_keyword_test(words)
            for pattern, words in RECURRENCE_WORDS[language].items()
        }
        self.reminder = self._build_keyword_test(REMINDER_WORDS[language])
        self.task = self._build_keyword_test(TASK_WORDS[language])

        self.day_names = HEBREW_DAY_NAMES if language == Language.HEBREW else ENGLISH_DAY_NAMES
        self.weekday_multi, self.weekday_single = self._build_weekday_patterns()
        self.day_token = self._build_day_token()

        self.logger.debug(
            f"Built {language.value} pattern library: {len(self.family_members)} members, "
            f"{len(self.locations)} places"
        )

    def _build_priority_matchers(self) -> List[Matcher]:
        return [
            Matcher(
                pattern=re.compile(r'(?<!\w)(?P<payload>[Pp](?P<level>[1-3]))(?!\w)'),
                decoder=lambda m: PriorityLevel(f"P{m.group('level')}"),
                description="Priority token P1-P3"
            )
        ]

    def _build_time_bucket_matchers(self) -> List[Matcher]:
        affix = r'(?P<affix>ו)?' if self.language == Language.HEBREW else ''
        matchers = []

        for bucket, keywords in TIME_BUCKET_KEYWORDS[self.language].items():
            pattern = re.compile(
                rf'(?<!\w){affix}(?P<payload>{keyword_alternation(keywords)})(?!\w)',
                re.IGNORECASE
            )
            matchers.append(Matcher(pattern=pattern, decoder=_const(bucket),
                                    description=f"Time bucket {bucket.value}"))
        return matchers

    def _build_family_matchers(self, family_members: Sequence[FamilyMember]) -> List[Matcher]:
        """Build one matcher per family member.

        Hebrew mentions may carry the object marker (את, optionally prefixed)
        and a one-letter prefix (ל, ש, ב, כ, ו) glued to the name.
        """
        matchers = []

        for member in family_members:
            names = [member.name] + list(member.aliases)
            if member.name_localized:
                names.append(member.name_localized)

            pattern = re.compile(
                r'(?<!\w)(?P<et>[לשבכ]?את\s+)?(?P<affix>[לשבכו])?'
                rf'(?P<payload>{keyword_alternation(names, tolerant=True)})(?!\w)',
                re.IGNORECASE
            )
            matchers.append(Matcher(pattern=pattern, decoder=_const(member.name),
                                    description=f"Family member {member.name}"))
        return matchers

    def _build_location_matchers(self, known_places: Sequence[KnownPlace]) -> List[Matcher]:
        """Build matchers for every known place.

        Native-language keywords come first; the other language's keywords are
        kept so mixed sentences still resolve places.
        """
        hebrew_affix = r'(?P<affix>(?:אצל\s+)?ו?[למב]?ה?)'
        english_affix = r'(?P<affix>(?:(?:to|at|from|in)\s+(?:the\s+)?|the\s+))?'

        native_first = [Language.HEBREW, Language.ENGLISH]
        if self.language == Language.ENGLISH:
            native_first.reverse()

        matchers = []
        for keyword_language in native_first:
            for place in known_places:
                if keyword_language == Language.HEBREW:
                    keywords = list(place.keywords_he) or [place.name_localized]
                    affix = hebrew_affix
                else:
                    keywords = list(place.keywords_en) or [place.name]
                    affix = english_affix

                keywords = [k for k in keywords if k]
                if not keywords:
                    continue

                pattern = re.compile(
                    rf'(?<!\w){affix}(?P<payload>{keyword_alternation(keywords, tolerant=True)})(?!\w)',
                    re.IGNORECASE
                )
                matchers.append(Matcher(pattern=pattern, decoder=_const(place.name),
                                        description=f"Place {place.name} ({keyword_language.value})"))
        return matchers

    def _build_clock_matchers(self) -> List[Matcher]:
        if self.language == Language.HEBREW:
            pattern = (
                r'(?:(?<!\w)(?:בשעה\s*|ב-?))?(?<![\d:])'
                r'(?P<payload>(?P<hour>\d{1,2}):(?P<minute>\d{2}))(?![\d:])'
            )
        else:
            pattern = (
                r'(?:(?<!\w)(?:at|by|@)\s*)?(?<![\d:])'
                r'(?P<payload>(?P<hour>\d{1,2}):(?P<minute>\d{2})'
                r'(?:\s*(?P<meridiem>a\.m\.|p\.m\.|am|pm)(?!\w))?)(?![\d:])'
            )
        return [
            Matcher(pattern=re.compile(pattern, re.IGNORECASE), decoder=decode_clock,
                    description="Numeric HH:MM time")
        ]

    def _build_date_matchers(self) -> List[Matcher]:
        return [
            Matcher(
                pattern=re.compile(
                    r'(?<![\d/.\-])(?P<payload>(?P<first>\d{1,4})[/.\-]\d{1,2}[/.\-]\d{2,4})(?![\d/.\-])'
                ),
                decoder=decode_date,
                description="Numeric date (DD/MM/YYYY or YYYY-MM-DD)"
            )
        ]

    def _build_keyword_test(self, keywords: Sequence[str]) -> Pattern:
        prefix = r'ו?' if self.language == Language.HEBREW else ''
        return re.compile(
            rf'(?<!\w){prefix}(?P<payload>{keyword_alternation(keywords)})(?!\w)',
            re.IGNORECASE
        )

    def _day_alternation(self) -> str:
        plural = r's?' if self.language == Language.ENGLISH else ''
        return rf'(?:{keyword_alternation(self.day_names)}){plural}(?!\w)'

    def _build_weekday_patterns(self):
        """Patterns for weekday recurrence phrases.

        The multi-day phrase needs at least two conjoined day names; the
        single-day phrase needs an explicit "every" lead.
        """
        day = self._day_alternation()

        if self.language == Language.HEBREW:
            lead = r'(?P<lead>(?:כל\s+)?(?:ביום|יום|בימי|ימי)\s+|כל\s+)?'
            separator = r'(?:\s*,\s*|\s+)ו?-?'
            single = re.compile(rf'(?<!\w)(?P<lead>כל\s+(?:יום\s+)?)(?P<days>{day})')
        else:
            lead = r'(?P<lead>(?:every|each|on)\s+)?'
            separator = r'(?:\s*,\s*(?:and\s+)?|\s+(?:and|&)\s+)'
            single = re.compile(rf'(?<!\w)(?P<lead>(?:every|each)\s+)(?P<days>{day})', re.IGNORECASE)

        multi = re.compile(rf'(?<!\w){lead}(?P<days>{day}(?:{separator}{day})+)', re.IGNORECASE)
        return multi, single

    def _build_day_token(self) -> Pattern:
        prefix = r'(?:(?<!\w)|(?<=ו)|(?<=-))' if self.language == Language.HEBREW else r'(?<!\w)'
        plural = r's?' if self.language == Language.ENGLISH else ''
        return re.compile(rf'{prefix}(?P<day>{keyword_alternation(self.day_names)}){plural}(?!\w)',
                          re.IGNORECASE)

    def decode_weekdays(self, phrase: str) -> List[int]:
        """Sorted, de-duplicated day indexes (0=Sunday) named in a phrase."""
        days = {
            self.day_names.index(match.group('day').lower())
            for match in self.day_token.finditer(phrase)
        }
        return sorted(days)


class PatternRegistry:
    """Holds one compiled library per language for a given roster pair."""

    def __init__(self, family_members: Sequence[FamilyMember], known_places: Sequence[KnownPlace]):
        self._libraries: Dict[Language, PatternLibrary] = {
            language: PatternLibrary(language, family_members, known_places)
            for language in Language
        }

    def for_language(self, language: Language) -> PatternLibrary:
        return self._libraries.get(language, self._libraries[Language.ENGLISH])
