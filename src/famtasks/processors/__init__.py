"""Processors for FamTasks.

The rule-based parsing, inference and text-synchronization engine.
"""

from .task_types import (
    ClockTime,
    ExtractedTag,
    Language,
    Match,
    MatchCategory,
    ParsedTask,
    PriorityLevel,
    RecurrencePattern,
    Segment,
    TagType,
    TimeBucket,
)
from .language_detector import detect_language
from .pattern_library import PatternLibrary, PatternRegistry
from .written_time_parser import WrittenTimeParser, WrittenTimeMatch
from .scanner import Scanner, ScanResult
from .match_resolver import MatchResolver
from .segment_builder import SegmentBuilder
from .inference_engine import Evidence, Inference, InferenceEngine
from .tag_synthesizer import TagSynthesizer
from .tag_text_synchronizer import TagTextSynchronizer
from .task_parser import TaskParser, get_default_parser, on_tag_edit, parse

__all__ = [
    "ClockTime",
    "ExtractedTag",
    "Language",
    "Match",
    "MatchCategory",
    "ParsedTask",
    "PriorityLevel",
    "RecurrencePattern",
    "Segment",
    "TagType",
    "TimeBucket",
    "detect_language",
    "PatternLibrary",
    "PatternRegistry",
    "WrittenTimeParser",
    "WrittenTimeMatch",
    "Scanner",
    "ScanResult",
    "MatchResolver",
    "SegmentBuilder",
    "Evidence",
    "Inference",
    "InferenceEngine",
    "TagSynthesizer",
    "TagTextSynchronizer",
    "TaskParser",
    "get_default_parser",
    "parse",
    "on_tag_edit",
]
