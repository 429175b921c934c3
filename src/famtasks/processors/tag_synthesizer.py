"""Tag Synthesis

Builds the ordered, user-facing tag list from inference output and the
resolved matches that produced it.
"""

from typing import Dict, List, Optional, Sequence

from ..core.config_manager import FamilyMember, KnownPlace
from .inference_engine import Inference
from .pattern_library import ENGLISH_DAY_NAMES, HEBREW_DAY_NAMES
from .scanner import RecurrenceEvidence
from .task_types import (
    ClockTime,
    ExtractedTag,
    Language,
    Match,
    MatchCategory,
    PriorityLevel,
    RecurrencePattern,
    TagType,
    TimeBucket,
)


TAG_EMOJIS: Dict[TagType, str] = {
    TagType.TIME_BUCKET: "📅",
    TagType.TIME: "🕐",
    TagType.OWNER: "👤",
    TagType.INVOLVED: "👥",
    TagType.LOCATION: "📍",
    TagType.TRANSPORT: "🚗",
    TagType.PRIORITY: "🔥",
    TagType.RECURRING: "🔄",
}

TIME_BUCKET_LABELS = {
    Language.HEBREW: {
        TimeBucket.TODAY: "היום",
        TimeBucket.TOMORROW: "מחר",
        TimeBucket.THIS_WEEK: "השבוע",
        TimeBucket.NEXT_WEEK: "שבוע הבא",
    },
    Language.ENGLISH: {
        TimeBucket.TODAY: "Today",
        TimeBucket.TOMORROW: "Tomorrow",
        TimeBucket.THIS_WEEK: "This week",
        TimeBucket.NEXT_WEEK: "Next week",
    },
}

RECURRENCE_LABELS = {
    Language.HEBREW: {
        RecurrencePattern.DAILY: "יומי",
        RecurrencePattern.WEEKLY: "שבועי",
        RecurrencePattern.MONTHLY: "חודשי",
    },
    Language.ENGLISH: {
        RecurrencePattern.DAILY: "Daily",
        RecurrencePattern.WEEKLY: "Weekly",
        RecurrencePattern.MONTHLY: "Monthly",
    },
}


def weekday_display(weekdays: Sequence[int], language: Language) -> str:
    """Comma-joined day names, e.g. "שני, חמישי" or "Monday, Thursday"."""
    if language == Language.HEBREW:
        return ", ".join(HEBREW_DAY_NAMES[day] for day in weekdays)
    return ", ".join(ENGLISH_DAY_NAMES[day].capitalize() for day in weekdays)


class TagSynthesizer:
    """Projects inferred facts onto tags in a fixed display order."""

    def __init__(self, family_members: Sequence[FamilyMember], known_places: Sequence[KnownPlace]):
        self.members_by_name = {member.name: member for member in family_members}
        self.places_by_name = {place.name: place for place in known_places}

    def synthesize(self, inference: Inference, resolved: Sequence[Match],
                   recurrence_evidence: Sequence[RecurrenceEvidence],
                   language: Language, specific_time: Optional[ClockTime] = None,
                   priority: Optional[PriorityLevel] = None) -> List[ExtractedTag]:
        """Build tags in order: time bucket, time, owner, involved, location,
        transport, priority, recurring.

        Args:
            inference: Derived facts
            resolved: Resolved matches, used to anchor tags to text spans
            recurrence_evidence: Recurrence phrase spans from the scan
            language: Display language
            specific_time: Clock time taken from the resolved matches
            priority: Priority taken from the resolved matches

        Returns:
            Tags with sequential ids ``tag-0``, ``tag-1``, ...
        """
        tags: List[ExtractedTag] = []

        def add(tag_type: TagType, display_text: str, value, anchor: Optional[Match] = None,
                editable: bool = True, span=None):
            if anchor is not None:
                span = anchor.span
            tags.append(ExtractedTag(
                id=f"tag-{len(tags)}",
                type=tag_type,
                display_text=display_text,
                value=value,
                emoji=TAG_EMOJIS[tag_type],
                editable=editable,
                span=span,
                payload_span=anchor.payload_span if anchor is not None else span
            ))

        if inference.time_bucket != TimeBucket.UNLABELED:
            anchor = self._first(resolved, MatchCategory.TIME_BUCKET, inference.time_bucket)
            add(TagType.TIME_BUCKET, TIME_BUCKET_LABELS[language][inference.time_bucket],
                inference.time_bucket, anchor)

        if specific_time is not None:
            anchor = self._first(resolved, MatchCategory.CLOCK_TIME)
            add(TagType.TIME, specific_time.display, specific_time, anchor)

        if inference.owner:
            anchor = self._first(resolved, MatchCategory.FAMILY_MEMBER, inference.owner)
            add(TagType.OWNER, self._member_display(inference.owner, language), inference.owner, anchor)

        for name in inference.involved_members:
            anchor = self._first(resolved, MatchCategory.FAMILY_MEMBER, name)
            add(TagType.INVOLVED, self._member_display(name, language), name, anchor)

        location_anchor = self._first(resolved, MatchCategory.LOCATION)
        if location_anchor is not None:
            add(TagType.LOCATION, self._place_display(location_anchor.value, language),
                location_anchor.value, location_anchor)

        if inference.requires_driving and inference.driving_duration is not None:
            add(TagType.TRANSPORT, f"{inference.driving_duration}min", inference.driving_duration,
                editable=False)

        if priority is not None:
            anchor = self._first(resolved, MatchCategory.PRIORITY)
            add(TagType.PRIORITY, priority.value, priority, anchor)

        if inference.recurrence != RecurrencePattern.NONE:
            evidence = next((e for e in recurrence_evidence if e.pattern == inference.recurrence), None)
            add(TagType.RECURRING, RECURRENCE_LABELS[language][inference.recurrence],
                inference.recurrence, span=(evidence.start, evidence.end) if evidence else None)

        if inference.weekdays:
            evidence = next((e for e in recurrence_evidence if e.weekdays), None)
            add(TagType.RECURRING, weekday_display(inference.weekdays, language),
                list(inference.weekdays), span=(evidence.start, evidence.end) if evidence else None)

        return tags

    def _first(self, resolved: Sequence[Match], category: MatchCategory, value=None) -> Optional[Match]:
        for match in resolved:
            if match.category == category and (value is None or match.value == value):
                return match
        return None

    def _member_display(self, name: str, language: Language) -> str:
        member = self.members_by_name.get(name)
        if member and language == Language.HEBREW and member.name_localized:
            return member.name_localized
        return name

    def _place_display(self, name: str, language: Language) -> str:
        place = self.places_by_name.get(name)
        if place and language == Language.HEBREW and place.name_localized:
            return place.name_localized
        return name
