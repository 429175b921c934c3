"""Inference Engine

Derives facts that are not literally present in the text: time bucket,
owner/involved split, driving need and duration, task-vs-reminder
classification, recurrence, confidence and warnings.

Each inference category is an ordered table of (condition -> fact) rules over
an ``Evidence`` record; the first rule whose condition holds decides. Nothing
here looks at the raw text.
"""

from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from dateutil.relativedelta import SU, relativedelta

from ..core.config_manager import FamilyMember, KnownPlace
from ..core.logging_manager import LoggingManager
from .task_types import ClockTime, PriorityLevel, RecurrencePattern, TimeBucket


REMINDER_CONFIDENCE = 0.9
TASK_CONFIDENCE = 0.8
DEFAULT_TASK_CONFIDENCE = 0.5

BASE_CONFIDENCE = 0.5
CONFIDENCE_WEIGHTS = {
    'time_bucket': 0.15,
    'location': 0.1,
    'members': 0.1,
    'specific_time': 0.1,
    'multiple_indicators': 0.05,
}

WARNING_DRIVING_NO_LOCATION = "Driving detected but no location specified"
WARNING_CHILDREN_NO_TIME = "Task involves children but no time specified"
WARNING_LOCATION_NEEDS_MEMBERS = "Location usually requires driving - consider adding family members"


@dataclass
class Evidence:
    """Extracted values and presence flags for one sentence."""
    time_buckets: List[TimeBucket] = field(default_factory=list)
    specific_time: Optional[ClockTime] = None
    specific_date: Optional[date] = None
    members: List[str] = field(default_factory=list)
    location: Optional[str] = None
    priority: Optional[PriorityLevel] = None
    has_transport: bool = False
    has_reminder_keyword: bool = False
    has_task_keyword: bool = False
    recurrence_flags: Dict[RecurrencePattern, bool] = field(default_factory=dict)
    weekdays: List[int] = field(default_factory=list)


@dataclass
class Inference:
    """Derived facts for one sentence."""
    time_bucket: TimeBucket = TimeBucket.UNLABELED
    owner: Optional[str] = None
    involved_members: List[str] = field(default_factory=list)
    is_reminder: bool = False
    task_type_confidence: float = DEFAULT_TASK_CONFIDENCE
    requires_driving: bool = False
    driving_duration: Optional[int] = None
    driving_from: str = "home"
    driving_to: Optional[str] = None
    driving_reason: Optional[str] = None
    recurrence: RecurrencePattern = RecurrencePattern.NONE
    weekdays: List[int] = field(default_factory=list)
    confidence: float = BASE_CONFIDENCE
    warnings: List[str] = field(default_factory=list)


@dataclass
class DrivingContext:
    """Roster-resolved view of the evidence used by the driving rules."""
    members: List[FamilyMember]
    place: Optional[KnownPlace]
    has_transport: bool

    @property
    def supervised_children(self) -> List[FamilyMember]:
        return [m for m in self.members if m.is_child and m.needs_supervision]

    @property
    def place_requires_driving(self) -> bool:
        return bool(self.place and self.place.requires_driving)


# Explicit keyword precedence
TIME_BUCKET_KEYWORD_ORDER = [
    TimeBucket.TODAY,
    TimeBucket.TOMORROW,
    TimeBucket.NEXT_WEEK,
    TimeBucket.THIS_WEEK,
]


def _week_start(reference: date) -> date:
    """Sunday that opens the reference date's week."""
    return reference + relativedelta(weekday=SU(-1))


# Date fallback: bucket -> inclusive [start, end] range around the reference date
DATE_BUCKET_RULES: List[Tuple[TimeBucket, Callable[[date], Tuple[date, date]]]] = [
    (TimeBucket.TODAY, lambda ref: (ref, ref)),
    (TimeBucket.TOMORROW, lambda ref: (ref + timedelta(days=1), ref + timedelta(days=1))),
    (TimeBucket.THIS_WEEK, lambda ref: (_week_start(ref), _week_start(ref) + timedelta(days=6))),
    (TimeBucket.NEXT_WEEK, lambda ref: (_week_start(ref) + timedelta(days=7),
                                        _week_start(ref) + timedelta(days=13))),
]

DRIVING_RULES: List[Tuple[str, Callable[[DrivingContext], bool]]] = [
    ("supervised child going to a driving location",
     lambda ctx: bool(ctx.supervised_children) and ctx.place_requires_driving),
    ("transport verb with a driving location",
     lambda ctx: ctx.has_transport and ctx.place_requires_driving),
    ("supervised child with a transport verb",
     lambda ctx: bool(ctx.supervised_children) and ctx.has_transport),
]

# (condition, is_reminder, confidence); the last rule always applies
TASK_TYPE_RULES: List[Tuple[Callable[[Evidence, Optional[str]], bool], bool, float]] = [
    (lambda ev, owner: ev.has_reminder_keyword, True, REMINDER_CONFIDENCE),
    (lambda ev, owner: ev.has_task_keyword or owner is not None or ev.has_transport,
     False, TASK_CONFIDENCE),
    (lambda ev, owner: True, False, DEFAULT_TASK_CONFIDENCE),
]

RECURRENCE_ORDER = [
    RecurrencePattern.DAILY,
    RecurrencePattern.WEEKLY,
    RecurrencePattern.MONTHLY,
]


class InferenceEngine:
    """Rule-based derivation of task facts from extracted evidence."""

    def __init__(self, family_members: Sequence[FamilyMember], known_places: Sequence[KnownPlace],
                 driving_from: str = "home"):
        """Initialize inference engine.

        Args:
            family_members: Family roster (read-only)
            known_places: Place roster (read-only)
            driving_from: Default origin for derived driving legs
        """
        self.logger = LoggingManager.get_logger(__name__)
        self.members_by_name = {member.name: member for member in family_members}
        self.places_by_name = {place.name: place for place in known_places}
        self.driving_from = driving_from

    def infer(self, evidence: Evidence, reference_date: date) -> Inference:
        """Derive every inference category.

        Args:
            evidence: Values and flags taken from resolved matches and scans
            reference_date: "Today" for date-based time buckets

        Returns:
            Derived facts
        """
        result = Inference(driving_from=self.driving_from)

        result.time_bucket = self.infer_time_bucket(evidence, reference_date)
        result.owner, result.involved_members = self.split_owner(evidence.members)
        result.is_reminder, result.task_type_confidence = self.classify_task_type(evidence, result.owner)
        self._infer_driving(evidence, result)
        result.recurrence = self.infer_recurrence(evidence.recurrence_flags)
        result.weekdays = list(evidence.weekdays)
        result.confidence = self.score_confidence(evidence, result.time_bucket)
        result.warnings = self.collect_warnings(evidence, result)

        self.logger.debug(
            f"Inferred bucket={result.time_bucket.value}, owner={result.owner}, "
            f"involved={result.involved_members}, driving={result.requires_driving}, "
            f"confidence={result.confidence:.2f}"
        )
        return result

    def infer_time_bucket(self, evidence: Evidence, reference_date: date) -> TimeBucket:
        """Keyword flags first, then the specific date against calendar ranges."""
        for bucket in TIME_BUCKET_KEYWORD_ORDER:
            if bucket in evidence.time_buckets:
                return bucket

        if evidence.specific_date:
            for bucket, date_range in DATE_BUCKET_RULES:
                start, end = date_range(reference_date)
                if start <= evidence.specific_date <= end:
                    return bucket

        return TimeBucket.UNLABELED

    def split_owner(self, mentioned: Sequence[str]) -> Tuple[Optional[str], List[str]]:
        """Split mentioned members into an owner and involved members.

        The first adult in mention order owns the task; everyone else is
        involved. Without an adult there is no owner.

        Args:
            mentioned: Member names in mention order

        Returns:
            Tuple of (owner name or None, involved names)
        """
        names = list(dict.fromkeys(mentioned))
        owner = next(
            (name for name in names
             if name in self.members_by_name and not self.members_by_name[name].is_child),
            None
        )
        involved = [name for name in names if name != owner]
        return owner, involved

    def classify_task_type(self, evidence: Evidence, owner: Optional[str]) -> Tuple[bool, float]:
        for condition, is_reminder, confidence in TASK_TYPE_RULES:
            if condition(evidence, owner):
                return is_reminder, confidence
        return False, DEFAULT_TASK_CONFIDENCE

    def infer_recurrence(self, flags: Dict[RecurrencePattern, bool]) -> RecurrencePattern:
        for pattern in RECURRENCE_ORDER:
            if flags.get(pattern):
                return pattern
        return RecurrencePattern.NONE

    def _infer_driving(self, evidence: Evidence, result: Inference):
        context = DrivingContext(
            members=[self.members_by_name[name] for name in result.involved_members
                     if name in self.members_by_name],
            place=self.places_by_name.get(evidence.location) if evidence.location else None,
            has_transport=evidence.has_transport
        )

        rule = next((description for description, condition in DRIVING_RULES if condition(context)), None)
        if rule is None:
            return

        result.requires_driving = True
        result.driving_to = evidence.location
        if context.place is not None:
            result.driving_duration = context.place.driving_time_from_home
        result.driving_reason = self._driving_reason(context, result)
        self.logger.debug(f"Driving required: {rule}")

    def _driving_reason(self, context: DrivingContext, result: Inference) -> str:
        riders = [m.name for m in context.supervised_children] or list(result.involved_members)
        reason = "Driving needed"
        if riders:
            reason += f" for {', '.join(riders)}"
        if result.driving_to:
            reason += f" to {result.driving_to}"
        return reason

    def score_confidence(self, evidence: Evidence, time_bucket: TimeBucket) -> float:
        indicators = {
            'time_bucket': time_bucket != TimeBucket.UNLABELED,
            'location': evidence.location is not None,
            'members': bool(evidence.members),
            'specific_time': evidence.specific_time is not None,
        }

        confidence = BASE_CONFIDENCE
        for name, present in indicators.items():
            if present:
                confidence += CONFIDENCE_WEIGHTS[name]
        if sum(indicators.values()) >= 2:
            confidence += CONFIDENCE_WEIGHTS['multiple_indicators']

        return min(round(confidence, 2), 1.0)

    def collect_warnings(self, evidence: Evidence, result: Inference) -> List[str]:
        """Advisory warnings; they never block output."""
        warnings = []
        members = [self.members_by_name[name] for name in evidence.members if name in self.members_by_name]
        place = self.places_by_name.get(evidence.location) if evidence.location else None

        if result.requires_driving and not evidence.location:
            warnings.append(WARNING_DRIVING_NO_LOCATION)
        if any(member.is_child for member in members) and evidence.specific_time is None:
            warnings.append(WARNING_CHILDREN_NO_TIME)
        if place is not None and place.requires_driving and not members:
            warnings.append(WARNING_LOCATION_NEEDS_MEMBERS)

        return warnings
