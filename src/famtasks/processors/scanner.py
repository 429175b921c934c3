"""Category Scanner

Runs every category matcher of a PatternLibrary over a sentence and collects
spanned matches plus the boolean presence flags (transport, reminder, task and
recurrence) that never become segments.
"""

import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from ..core.logging_manager import LoggingManager
from .pattern_library import Matcher, PatternLibrary
from .task_types import Match, MatchCategory, RecurrencePattern
from .written_time_parser import WrittenTimeMatch, WrittenTimeParser


AFFIX_GROUPS = ('et', 'affix')


@dataclass
class RecurrenceEvidence:
    """Where a recurrence phrase sits in the text and what it decoded to."""
    start: int
    end: int
    text: str
    pattern: Optional[RecurrencePattern] = None
    weekdays: List[int] = field(default_factory=list)


@dataclass
class ScanResult:
    """Everything the scanner found in one sentence."""
    matches: List[Match] = field(default_factory=list)
    has_transport: bool = False
    has_reminder_keyword: bool = False
    has_task_keyword: bool = False
    recurrence_flags: Dict[RecurrencePattern, bool] = field(default_factory=dict)
    weekdays: List[int] = field(default_factory=list)
    recurrence_evidence: List[RecurrenceEvidence] = field(default_factory=list)
    written_time: Optional[WrittenTimeMatch] = None

    def matches_for(self, category: MatchCategory) -> List[Match]:
        return [match for match in self.matches if match.category == category]


def minimal_span(match: re.Match) -> Tuple[int, int, int, int]:
    """Compute (start, end, payload_start, payload_end) for a regex match.

    The span covers any captured affix plus the payload; without a payload
    group it falls back to the whole match.
    """
    groups = match.re.groupindex
    if 'payload' not in groups or match.start('payload') < 0:
        return match.start(), match.end(), match.start(), match.end()

    payload_start, payload_end = match.start('payload'), match.end('payload')
    start = payload_start
    for name in AFFIX_GROUPS:
        if name in groups and match.group(name):
            start = min(start, match.start(name))
    return start, payload_end, payload_start, payload_end


def _overlaps(start: int, end: int, spans: Sequence[Tuple[int, int]]) -> bool:
    return any(start < span_end and span_start < end for span_start, span_end in spans)


class Scanner:
    """Scans one language's categories in the fixed priority order."""

    def __init__(self, library: PatternLibrary, written_time_parser: WrittenTimeParser):
        """Initialize scanner.

        Args:
            library: Compiled matchers for the active language
            written_time_parser: Fallback recognizer for spelled-out times
        """
        self.logger = LoggingManager.get_logger(__name__)
        self.library = library
        self.written_time_parser = written_time_parser

        # Fixed scan order; also the tie-break rank used by the resolver
        self.spanned_categories = [
            (MatchCategory.PRIORITY, library.priority),
            (MatchCategory.TIME_BUCKET, library.time_bucket),
            (MatchCategory.FAMILY_MEMBER, library.family_members),
            (MatchCategory.LOCATION, library.locations),
            (MatchCategory.CLOCK_TIME, library.clock_time),
            (MatchCategory.DATE, library.dates),
        ]

    def scan(self, text: str) -> ScanResult:
        """Scan a sentence for every category.

        Args:
            text: Raw task sentence

        Returns:
            Spanned matches in scan order plus boolean flags
        """
        result = ScanResult()

        for category, matchers in self.spanned_categories:
            found = self._scan_category(text, category, matchers)

            if category == MatchCategory.CLOCK_TIME and not found:
                written = self.written_time_parser.parse(text)
                if written:
                    result.written_time = written
                    found = [Match(
                        start=written.start,
                        end=written.end,
                        category=MatchCategory.CLOCK_TIME,
                        value=written.time,
                        matched_text=written.text
                    )]

            result.matches.extend(found)

        result.has_transport = bool(self.library.transport.search(text))
        result.has_reminder_keyword = bool(self.library.reminder.search(text))
        result.has_task_keyword = bool(self.library.task.search(text))
        self._scan_recurrence(text, result)

        self.logger.debug(
            f"Scanned {len(text)} chars: {len(result.matches)} matches, "
            f"transport={result.has_transport}, weekdays={result.weekdays}"
        )
        return result

    def _scan_category(self, text: str, category: MatchCategory,
                       matchers: Sequence[Matcher]) -> List[Match]:
        found = []
        for matcher in matchers:
            for occurrence in matcher.pattern.finditer(text):
                value = matcher.decoder(occurrence)
                if value is None:
                    self.logger.debug(f"Discarded {category.value} '{occurrence.group(0)}'")
                    continue

                start, end, payload_start, payload_end = minimal_span(occurrence)
                found.append(Match(
                    start=start,
                    end=end,
                    category=category,
                    value=value,
                    matched_text=text[start:end],
                    payload_start=payload_start,
                    payload_end=payload_end
                ))
        return found

    def _scan_recurrence(self, text: str, result: ScanResult):
        """Collect weekday phrases first, then keyword flags outside them."""
        phrase_spans: List[Tuple[int, int]] = []
        weekdays = set()

        for pattern in (self.library.weekday_multi, self.library.weekday_single):
            for occurrence in pattern.finditer(text):
                if _overlaps(occurrence.start(), occurrence.end(), phrase_spans):
                    continue
                days = self.library.decode_weekdays(occurrence.group('days'))
                if not days:
                    continue

                phrase_spans.append((occurrence.start(), occurrence.end()))
                weekdays.update(days)
                result.recurrence_evidence.append(RecurrenceEvidence(
                    start=occurrence.start(),
                    end=occurrence.end(),
                    text=occurrence.group(0),
                    weekdays=days
                ))

        result.weekdays = sorted(weekdays)

        for recurrence, pattern in self.library.recurrence_flags.items():
            result.recurrence_flags[recurrence] = False
            for occurrence in pattern.finditer(text):
                if _overlaps(occurrence.start(), occurrence.end(), phrase_spans):
                    continue
                result.recurrence_flags[recurrence] = True
                result.recurrence_evidence.append(RecurrenceEvidence(
                    start=occurrence.start(),
                    end=occurrence.end(),
                    text=occurrence.group(0),
                    pattern=recurrence
                ))
                break
