"""Task Parsing Data Model

Shared types for the parsing pipeline: closed value sets, spanned matches,
highlight segments, user-facing tags and the final parse result.
"""

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union


class Language(str, Enum):
    """Supported input languages."""
    HEBREW = "he"
    ENGLISH = "en"


class TimeBucket(str, Enum):
    """Coarse temporal classification of a task."""
    TODAY = "today"
    TOMORROW = "tomorrow"
    THIS_WEEK = "this-week"
    NEXT_WEEK = "next-week"
    UNLABELED = "unlabeled"


class PriorityLevel(str, Enum):
    """Explicit priority tokens."""
    P1 = "P1"
    P2 = "P2"
    P3 = "P3"


class RecurrencePattern(str, Enum):
    """Keyword-driven recurrence patterns."""
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    NONE = "none"


class MatchCategory(str, Enum):
    """Spanned match categories, listed in scan (priority) order."""
    PRIORITY = "priority"
    TIME_BUCKET = "time_bucket"
    FAMILY_MEMBER = "involved"
    LOCATION = "location"
    CLOCK_TIME = "time"
    DATE = "date"


# Scan order doubles as the tie-break rank for matches starting at the same offset
CATEGORY_RANK: Dict[MatchCategory, int] = {
    category: rank for rank, category in enumerate(MatchCategory)
}


class TagType(str, Enum):
    """User-facing tag types, in display order."""
    TIME_BUCKET = "time_bucket"
    TIME = "time"
    OWNER = "owner"
    INVOLVED = "involved"
    LOCATION = "location"
    TRANSPORT = "transport"
    PRIORITY = "priority"
    RECURRING = "recurring"


@dataclass(frozen=True)
class ClockTime:
    """A 24-hour wall clock value."""
    hour: int
    minute: int = 0

    @property
    def display(self) -> str:
        return f"{self.hour:02d}:{self.minute:02d}"

    def is_valid(self) -> bool:
        return 0 <= self.hour <= 23 and 0 <= self.minute <= 59

    @classmethod
    def coerce(cls, value: Any) -> 'ClockTime':
        """Build a ClockTime from a ClockTime, a mapping or an ``HH:MM`` string.

        Raises:
            ValueError: If the value cannot be read as a valid time
        """
        if isinstance(value, ClockTime):
            clock = value
        elif isinstance(value, dict):
            hour = value.get('hour', value.get('hours'))
            minute = value.get('minute', value.get('minutes', 0))
            if hour is None:
                raise ValueError(f"Time mapping has no hour: {value!r}")
            clock = cls(int(hour), int(minute))
        elif isinstance(value, str) and ':' in value:
            hour_text, _, minute_text = value.strip().partition(':')
            clock = cls(int(hour_text), int(minute_text))
        else:
            raise ValueError(f"Cannot read a time from {value!r}")

        if not clock.is_valid():
            raise ValueError(f"Time out of range: {clock.display}")
        return clock


# Tagged per-category variant: the category on the Match says which member applies
MatchValue = Union[TimeBucket, ClockTime, str, PriorityLevel, date]


@dataclass
class Match:
    """A spanned detection of one category inside the raw text.

    ``start``/``end`` cover affix plus payload (what a reader sees as the
    mention); ``payload_start``/``payload_end`` cover the semantic payload only.
    """
    start: int
    end: int
    category: MatchCategory
    value: MatchValue
    matched_text: str
    payload_start: int = -1
    payload_end: int = -1

    def __post_init__(self):
        if self.payload_start < 0:
            self.payload_start = self.start
        if self.payload_end < 0:
            self.payload_end = self.end

    @property
    def span(self) -> Tuple[int, int]:
        return (self.start, self.end)

    @property
    def payload_span(self) -> Tuple[int, int]:
        return (self.payload_start, self.payload_end)


@dataclass
class Segment:
    """A contiguous slice of the raw text, typed ``text`` or a match category."""
    text: str
    type: str
    start: int
    end: int
    value: Optional[MatchValue] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {"text": self.text, "type": self.type, "start": self.start, "end": self.end}
        if self.value is not None:
            data["value"] = _jsonable(self.value)
        return data


TagValue = Union[TimeBucket, ClockTime, str, PriorityLevel, RecurrencePattern, int, List[int]]


@dataclass
class ExtractedTag:
    """A user-facing, editable projection of one inferred fact."""
    id: str
    type: TagType
    display_text: str
    value: TagValue
    emoji: str
    editable: bool = True
    span: Optional[Tuple[int, int]] = None
    payload_span: Optional[Tuple[int, int]] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type.value,
            "display_text": self.display_text,
            "value": _jsonable(self.value),
            "emoji": self.emoji,
            "editable": self.editable,
        }


@dataclass
class ParsedTask:
    """Complete parse result, fully derived from ``raw_text``."""
    raw_text: str
    language: Language = Language.ENGLISH
    segments: List[Segment] = field(default_factory=list)
    tags: List[ExtractedTag] = field(default_factory=list)
    time_bucket: TimeBucket = TimeBucket.UNLABELED
    specific_time: Optional[ClockTime] = None
    specific_date: Optional[date] = None
    owner: Optional[str] = None
    involved_members: List[str] = field(default_factory=list)
    location: Optional[str] = None
    priority: Optional[PriorityLevel] = None
    recurring: Optional[Union[RecurrencePattern, List[int]]] = None
    weekdays: List[int] = field(default_factory=list)
    is_reminder: bool = False
    task_type_confidence: float = 0.5
    requires_driving: bool = False
    driving_duration: Optional[int] = None
    driving_from: str = "home"
    driving_to: Optional[str] = None
    driving_reason: Optional[str] = None
    confidence: float = 0.5
    warnings: List[str] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)

    def get_tag(self, tag_id: str) -> Optional[ExtractedTag]:
        for tag in self.tags:
            if tag.id == tag_id:
                return tag
        return None

    def to_dict(self) -> Dict[str, Any]:
        """Plain JSON-ready representation."""
        return {
            "raw_text": self.raw_text,
            "language": self.language.value,
            "segments": [segment.to_dict() for segment in self.segments],
            "tags": [tag.to_dict() for tag in self.tags],
            "time_bucket": self.time_bucket.value,
            "specific_time": _jsonable(self.specific_time),
            "specific_date": _jsonable(self.specific_date),
            "owner": self.owner,
            "involved_members": list(self.involved_members),
            "location": self.location,
            "priority": _jsonable(self.priority),
            "recurring": _jsonable(self.recurring),
            "is_reminder": self.is_reminder,
            "requires_driving": self.requires_driving,
            "driving_duration": self.driving_duration,
            "driving_from": self.driving_from,
            "driving_to": self.driving_to,
            "confidence": round(self.confidence, 2),
            "warnings": list(self.warnings),
            "metadata": dict(self.metadata),
        }


def _jsonable(value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, ClockTime):
        return {"hour": value.hour, "minute": value.minute}
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, list):
        return [_jsonable(item) for item in value]
    return value
