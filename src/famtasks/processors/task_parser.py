"""Task Parser

Runs the full rule-based pipeline on one sentence:

    raw text -> language detection -> scan -> resolve -> segments
                                              \\-> inference -> tags

and the reverse path for tag edits (rewrite the text, then parse again).
Parsing is synchronous, pure and safe to call on every keystroke.
"""

from datetime import date
from typing import Any, Optional

from ..core.config_manager import AppConfig
from ..core.error_handler import ParseError
from ..core.logging_manager import LoggingManager
from .inference_engine import Evidence, InferenceEngine
from .language_detector import detect_language
from .match_resolver import MatchResolver
from .pattern_library import PatternRegistry
from .scanner import Scanner, ScanResult
from .segment_builder import SegmentBuilder
from .tag_synthesizer import TagSynthesizer
from .tag_text_synchronizer import TagTextSynchronizer
from .task_types import Language, Match, MatchCategory, ParsedTask, RecurrencePattern
from .written_time_parser import WrittenTimeParser


class TaskParser:
    """Parses free-form Hebrew/English task sentences into ParsedTask records."""

    def __init__(self, config: Optional[AppConfig] = None, reference_date: Optional[date] = None):
        """Initialize the pipeline from configuration.

        Args:
            config: Application configuration; defaults ship the family and place rosters
            reference_date: Fixed "today" for time buckets, or None for the system date
        """
        self.logger = LoggingManager.get_logger(__name__)
        self.config = config or AppConfig()
        self.reference_date = reference_date

        family_members = self.config.family_members
        known_places = self.config.known_places

        registry = PatternRegistry(family_members, known_places)
        self.scanners = {
            language: Scanner(registry.for_language(language), WrittenTimeParser(language))
            for language in Language
        }
        self.resolver = MatchResolver()
        self.segment_builder = SegmentBuilder()
        self.inference_engine = InferenceEngine(family_members, known_places,
                                                driving_from=self.config.parser.driving_from)
        self.tag_synthesizer = TagSynthesizer(family_members, known_places)
        self.synchronizer = TagTextSynchronizer(family_members, known_places)

        self.logger.info(
            f"Task parser ready: {len(family_members)} family members, {len(known_places)} known places"
        )

    def parse(self, text: str) -> ParsedTask:
        """Parse one task sentence.

        Args:
            text: Raw task sentence (never modified)

        Returns:
            Parse result fully derived from ``text``

        Raises:
            ParseError: If ``text`` is not a string
        """
        if text is None:
            text = ""
        if not isinstance(text, str):
            raise ParseError(f"Task text must be a string, got {type(text).__name__}")
        if not text:
            return ParsedTask(raw_text="", driving_from=self.config.parser.driving_from)

        language = detect_language(text, self.config.parser.hebrew_threshold)
        scan = self.scanners[language].scan(text)
        resolved = self.resolver.resolve(scan.matches)

        evidence = self._collect_evidence(resolved, scan)
        inference = self.inference_engine.infer(evidence, self.reference_date or date.today())

        if inference.weekdays:
            recurring = list(inference.weekdays)
        elif inference.recurrence != RecurrencePattern.NONE:
            recurring = inference.recurrence
        else:
            recurring = None

        task = ParsedTask(
            raw_text=text,
            language=language,
            segments=self.segment_builder.build(text, resolved),
            tags=self.tag_synthesizer.synthesize(
                inference, resolved, scan.recurrence_evidence, language,
                specific_time=evidence.specific_time, priority=evidence.priority
            ),
            time_bucket=inference.time_bucket,
            specific_time=evidence.specific_time,
            specific_date=evidence.specific_date,
            owner=inference.owner,
            involved_members=inference.involved_members,
            location=evidence.location,
            priority=evidence.priority,
            recurring=recurring,
            weekdays=inference.weekdays,
            is_reminder=inference.is_reminder,
            task_type_confidence=inference.task_type_confidence,
            requires_driving=inference.requires_driving,
            driving_duration=inference.driving_duration,
            driving_from=inference.driving_from,
            driving_to=inference.driving_to,
            driving_reason=inference.driving_reason,
            confidence=inference.confidence,
            warnings=inference.warnings
        )

        self.logger.debug(f"Parsed '{text}' ({language.value}): {len(task.tags)} tags")
        return task

    def _collect_evidence(self, resolved, scan: ScanResult) -> Evidence:
        """Take values from resolved matches and flags from the scan."""
        def first(category: MatchCategory) -> Optional[Match]:
            return next((m for m in resolved if m.category == category), None)

        clock = first(MatchCategory.CLOCK_TIME)
        day = first(MatchCategory.DATE)
        place = first(MatchCategory.LOCATION)
        priority = first(MatchCategory.PRIORITY)

        return Evidence(
            time_buckets=[m.value for m in resolved if m.category == MatchCategory.TIME_BUCKET],
            specific_time=clock.value if clock else None,
            specific_date=day.value if day else None,
            members=[m.value for m in resolved if m.category == MatchCategory.FAMILY_MEMBER],
            location=place.value if place else None,
            priority=priority.value if priority else None,
            has_transport=scan.has_transport,
            has_reminder_keyword=scan.has_reminder_keyword,
            has_task_keyword=scan.has_task_keyword,
            recurrence_flags=dict(scan.recurrence_flags),
            weekdays=list(scan.weekdays)
        )

    def on_tag_edit(self, task: ParsedTask, tag_id: str, new_value: Any) -> ParsedTask:
        """Apply a tag edit by rewriting the raw text and parsing it again.

        Args:
            task: Current parse result
            tag_id: Id of the edited tag
            new_value: New value for the tag

        Returns:
            A freshly parsed task for the rewritten text
        """
        tag = task.get_tag(tag_id)
        if tag is None:
            self.logger.warning(f"Unknown tag id '{tag_id}', re-parsing unchanged text")
            return self.parse(task.raw_text)

        if not tag.editable:
            self.logger.info(f"Tag {tag_id} ({tag.type.value}) is not directly editable as text")

        return self.parse(self.synchronizer.rewrite(task, tag, new_value))


_default_parser: Optional[TaskParser] = None


def get_default_parser() -> TaskParser:
    """Shared parser built from the default configuration."""
    global _default_parser
    if _default_parser is None:
        _default_parser = TaskParser()
    return _default_parser


def parse(text: str) -> ParsedTask:
    """Parse a task sentence with the default parser."""
    return get_default_parser().parse(text)


def on_tag_edit(task: ParsedTask, tag_id: str, new_value: Any) -> ParsedTask:
    """Apply a tag edit with the default parser."""
    return get_default_parser().on_tag_edit(task, tag_id, new_value)
