"""Segment Builder

Turns resolved matches into a total covering of the raw text for inline
highlighting. Joining the segment texts always reproduces the input.
"""

from typing import List, Sequence

from .task_types import Match, Segment


TEXT_SEGMENT = "text"


class SegmentBuilder:
    """Fills the gaps between resolved matches with plain-text segments."""

    def build(self, text: str, resolved: Sequence[Match]) -> List[Segment]:
        """Build ordered, contiguous segments.

        Args:
            text: Raw task sentence
            resolved: Non-overlapping matches in ascending start order

        Returns:
            Segments whose concatenation equals ``text``
        """
        segments: List[Segment] = []
        cursor = 0

        for match in resolved:
            if match.start > cursor:
                segments.append(Segment(text[cursor:match.start], TEXT_SEGMENT, cursor, match.start))

            segments.append(Segment(
                text=text[match.start:match.end],
                type=match.category.value,
                start=match.start,
                end=match.end,
                value=match.value
            ))
            cursor = match.end

        if cursor < len(text):
            segments.append(Segment(text[cursor:], TEXT_SEGMENT, cursor, len(text)))

        return segments
