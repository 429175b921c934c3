"""Tag Text Synchronization

Rewrites the raw sentence after a user edits one tag. Each tag remembers the
span of the match that produced it, so the edit replaces exactly that text
with a rendering of the new value in the sentence's language. When a tag has
no span the old display text is swapped literally as a best effort. The
caller always re-parses the result.
"""

import re
from typing import Any, Callable, Dict, Optional, Sequence, Tuple

from ..core.config_manager import FamilyMember, KnownPlace
from ..core.logging_manager import LoggingManager
from .language_detector import HEBREW_CHAR
from .pattern_library import ENGLISH_DAY_NAMES, HEBREW_DAY_NAMES
from .tag_synthesizer import RECURRENCE_LABELS, TIME_BUCKET_LABELS
from .task_types import (
    ClockTime,
    ExtractedTag,
    Language,
    ParsedTask,
    PriorityLevel,
    RecurrencePattern,
    TagType,
    TimeBucket,
)
from .written_time_parser import english_hour_word, hebrew_hour_word, time_of_day_context


NUMERIC_TIME = re.compile(r'^\d{1,2}:\d{2}')
DURATION = re.compile(r'(\d+)(\s*)(min|minutes|mins|דקות|דק\')', re.IGNORECASE)

HEBREW_MINUTE_WORDS = {0: '', 15: ' ורבע', 30: ' וחצי'}

TIME_BUCKET_KEYWORDS = {
    Language.HEBREW: {
        TimeBucket.TODAY: "היום",
        TimeBucket.TOMORROW: "מחר",
        TimeBucket.THIS_WEEK: "השבוע",
        TimeBucket.NEXT_WEEK: "שבוע הבא",
    },
    Language.ENGLISH: {
        TimeBucket.TODAY: "today",
        TimeBucket.TOMORROW: "tomorrow",
        TimeBucket.THIS_WEEK: "this week",
        TimeBucket.NEXT_WEEK: "next week",
    },
}

RECURRENCE_PHRASES = {
    Language.HEBREW: {
        RecurrencePattern.DAILY: "כל יום",
        RecurrencePattern.WEEKLY: "כל שבוע",
        RecurrencePattern.MONTHLY: "כל חודש",
    },
    Language.ENGLISH: {
        RecurrencePattern.DAILY: "every day",
        RecurrencePattern.WEEKLY: "every week",
        RecurrencePattern.MONTHLY: "every month",
    },
}


def splice(text: str, start: int, end: int, replacement: str) -> str:
    """Replace ``text[start:end]``; a removal also drops one adjoining space."""
    before, after = text[:start], text[end:]
    if not replacement and before.endswith(' ') and (not after or after[0] in ' .,!?'):
        before = before[:-1]
    return before + replacement + after


def _is_hebrew(text: str) -> bool:
    return bool(HEBREW_CHAR.search(text))


class TagTextSynchronizer:
    """Renders an edited tag value back into the raw sentence."""

    def __init__(self, family_members: Sequence[FamilyMember], known_places: Sequence[KnownPlace]):
        """Initialize synchronizer.

        Args:
            family_members: Family roster used to localize edited names
            known_places: Place roster used to localize edited locations
        """
        self.logger = LoggingManager.get_logger(__name__)
        self.family_members = list(family_members)
        self.known_places = list(known_places)

        self.renderers: Dict[TagType, Callable[[ParsedTask, ExtractedTag, Any], Optional[str]]] = {
            TagType.TIME: self._rewrite_time,
            TagType.OWNER: self._rewrite_member,
            TagType.INVOLVED: self._rewrite_member,
            TagType.TIME_BUCKET: self._rewrite_time_bucket,
            TagType.LOCATION: self._rewrite_location,
            TagType.PRIORITY: self._rewrite_priority,
            TagType.TRANSPORT: self._rewrite_transport,
            TagType.RECURRING: self._rewrite_recurring,
        }

    def rewrite(self, task: ParsedTask, tag: ExtractedTag, new_value: Any) -> str:
        """Produce the raw text that expresses ``new_value`` for ``tag``.

        Args:
            task: Parse result the tag belongs to
            tag: Tag being edited
            new_value: Replacement value (type depends on the tag)

        Returns:
            Rewritten raw text; unchanged when the value cannot be rendered
        """
        renderer = self.renderers.get(tag.type)
        try:
            rewritten = renderer(task, tag, new_value) if renderer else None
        except (ValueError, KeyError, TypeError) as e:
            self.logger.warning(f"Cannot apply {new_value!r} to {tag.type.value} tag: {e}")
            return task.raw_text

        if rewritten is None:
            rewritten = self._literal_fallback(task, tag, new_value)

        self.logger.debug(f"Tag {tag.id} edit: '{task.raw_text}' -> '{rewritten}'")
        return rewritten

    def _literal_fallback(self, task: ParsedTask, tag: ExtractedTag, new_value: Any) -> str:
        if tag.display_text and tag.display_text in task.raw_text:
            return task.raw_text.replace(tag.display_text, self._display(new_value), 1)
        self.logger.info(f"No text found for {tag.type.value} tag '{tag.display_text}', text left as is")
        return task.raw_text

    def _display(self, value: Any) -> str:
        if isinstance(value, ClockTime):
            return value.display
        if hasattr(value, 'value'):
            return str(value.value)
        return str(value)

    def _replace_span(self, task: ParsedTask, span: Optional[Tuple[int, int]], replacement: str) -> Optional[str]:
        if span is None:
            return None
        start, end = span
        if not (0 <= start <= end <= len(task.raw_text)):
            return None
        return splice(task.raw_text, start, end, replacement)

    def _append(self, task: ParsedTask, addition: str) -> str:
        if not addition:
            return task.raw_text
        base = task.raw_text.rstrip()
        return f"{base} {addition}" if base else addition

    def _rewrite_time(self, task: ParsedTask, tag: ExtractedTag, new_value: Any) -> Optional[str]:
        clock = ClockTime.coerce(new_value)
        if tag.span is None:
            prefix = "בשעה " if task.language == Language.HEBREW else "at "
            return self._append(task, f"{prefix}{clock.display}")

        original = task.raw_text[tag.span[0]:tag.span[1]]
        return self._replace_span(task, tag.span, self.render_time(original, clock, task.language))

    def render_time(self, original: str, clock: ClockTime, language: Language) -> str:
        """Render a clock value in the same style as the phrase it replaces.

        Numeric ``HH:MM`` stays numeric; a digit phrase becomes "בשעה HH:MM" /
        "at HH:MM"; a spelled-out phrase stays spelled out with a time-of-day
        context where the minute allows it.
        """
        if NUMERIC_TIME.match(original):
            return clock.display

        if any(ch.isdigit() for ch in original):
            prefix = "בשעה " if language == Language.HEBREW else "at "
            return f"{prefix}{clock.display}"

        if language == Language.HEBREW:
            if clock.hour == 0 or clock.minute not in HEBREW_MINUTE_WORDS:
                return f"בשעה {clock.display}"
            return (f"ב{hebrew_hour_word(clock.hour)}{HEBREW_MINUTE_WORDS[clock.minute]} "
                    f"{time_of_day_context(clock.hour, language)}")

        if clock.minute == 0:
            return f"at {english_hour_word(clock.hour)} {time_of_day_context(clock.hour, language)}"
        return f"at {clock.display}"

    def find_member(self, value: Any) -> Optional[FamilyMember]:
        wanted = str(value).strip().lower()
        for member in self.family_members:
            names = [member.name, member.name_localized] + list(member.aliases)
            if wanted in (name.lower() for name in names if name):
                return member
        return None

    def _rewrite_member(self, task: ParsedTask, tag: ExtractedTag, new_value: Any) -> Optional[str]:
        member = self.find_member(new_value)
        if tag.payload_span is None:
            return None

        original = task.raw_text[tag.payload_span[0]:tag.payload_span[1]]
        if member is None:
            replacement = str(new_value).strip()
        elif _is_hebrew(original) and member.name_localized:
            replacement = member.name_localized
        else:
            replacement = member.name

        # Only the payload is replaced, so prefixes and the object marker survive
        return self._replace_span(task, tag.payload_span, replacement)

    def find_place(self, value: Any) -> Optional[KnownPlace]:
        wanted = str(value).strip().lower()
        for place in self.known_places:
            names = [place.name, place.name_localized] + list(place.keywords_he) + list(place.keywords_en)
            if wanted in (name.lower() for name in names if name):
                return place
        return None

    def _rewrite_location(self, task: ParsedTask, tag: ExtractedTag, new_value: Any) -> Optional[str]:
        place = self.find_place(new_value)
        if tag.payload_span is None:
            return None

        original = task.raw_text[tag.payload_span[0]:tag.payload_span[1]]
        if place is None:
            replacement = str(new_value).strip()
        elif _is_hebrew(original):
            replacement = (list(place.keywords_he) or [place.name_localized or place.name])[0]
        else:
            replacement = (list(place.keywords_en) or [place.name])[0]

        return self._replace_span(task, tag.payload_span, replacement)

    def coerce_time_bucket(self, value: Any) -> TimeBucket:
        if isinstance(value, TimeBucket):
            return value
        text = str(value).strip()
        for labels in list(TIME_BUCKET_LABELS.values()) + list(TIME_BUCKET_KEYWORDS.values()):
            for bucket, label in labels.items():
                if label.lower() == text.lower():
                    return bucket
        return TimeBucket(text.lower())

    def _rewrite_time_bucket(self, task: ParsedTask, tag: ExtractedTag, new_value: Any) -> Optional[str]:
        bucket = self.coerce_time_bucket(new_value)
        span = tag.payload_span
        keyword = TIME_BUCKET_KEYWORDS[task.language].get(bucket, "")

        # A bucket derived from a date has no keyword in the text to replace
        if tag.span is None:
            return self._append(task, keyword)

        if bucket == TimeBucket.UNLABELED:
            return self._replace_span(task, tag.span, "")

        return self._replace_span(task, span, keyword)

    def _rewrite_priority(self, task: ParsedTask, tag: ExtractedTag, new_value: Any) -> Optional[str]:
        priority = PriorityLevel(str(getattr(new_value, 'value', new_value)).strip().upper())
        return self._replace_span(task, tag.payload_span, priority.value)

    def _rewrite_transport(self, task: ParsedTask, tag: ExtractedTag, new_value: Any) -> Optional[str]:
        minutes = int(new_value)
        match = DURATION.search(task.raw_text)
        if match is None:
            return None
        return splice(task.raw_text, match.start(1), match.end(1), str(minutes))

    def coerce_recurrence(self, value: Any) -> Any:
        """Read a recurrence edit as a RecurrencePattern or a sorted weekday list."""
        if isinstance(value, RecurrencePattern):
            return value
        if isinstance(value, (list, tuple)):
            days = set()
            for day in value:
                if isinstance(day, int):
                    if not 0 <= day <= 6:
                        raise ValueError(f"Weekday index out of range: {day}")
                    days.add(day)
                else:
                    name = str(day).strip().lower()
                    days.add(ENGLISH_DAY_NAMES.index(name) if name in ENGLISH_DAY_NAMES
                             else HEBREW_DAY_NAMES.index(name))
            return sorted(days)

        text = str(value).strip()
        for labels in RECURRENCE_LABELS.values():
            for pattern, label in labels.items():
                if label.lower() == text.lower():
                    return pattern
        return RecurrencePattern(text.lower())

    def render_recurrence(self, value: Any, language: Language) -> str:
        if isinstance(value, RecurrencePattern):
            return RECURRENCE_PHRASES[language].get(value, "")
        if not value:
            return ""

        if language == Language.HEBREW:
            names = [HEBREW_DAY_NAMES[day] for day in value]
            if len(names) == 1:
                return f"כל יום {names[0]}"
            return f"כל יום {', '.join(names[:-1])} ו{names[-1]}"

        names = [ENGLISH_DAY_NAMES[day].capitalize() for day in value]
        if len(names) == 1:
            return f"every {names[0]}"
        return f"every {', '.join(names[:-1])} and {names[-1]}"

    def _rewrite_recurring(self, task: ParsedTask, tag: ExtractedTag, new_value: Any) -> Optional[str]:
        value = self.coerce_recurrence(new_value)
        phrase = self.render_recurrence(value, task.language)
        if tag.span is None:
            return self._append(task, phrase)
        return self._replace_span(task, tag.span, phrase)

