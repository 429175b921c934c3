"""Match Resolution

Pools the spanned matches of every category and keeps a non-overlapping,
left-to-right subset.
"""

from typing import List, Sequence

from ..core.logging_manager import LoggingManager
from .task_types import CATEGORY_RANK, Match


class MatchResolver:
    """Orders matches and drops those that overlap an earlier kept match.

    Sort key, in order: start offset, category scan rank, longer span first,
    original scan sequence. A match survives only if it starts at or after
    the end of the previously kept match.
    """

    def __init__(self):
        self.logger = LoggingManager.get_logger(__name__)

    def resolve(self, matches: Sequence[Match]) -> List[Match]:
        """Resolve overlaps between pooled matches.

        Args:
            matches: Matches from all categories, in scan order

        Returns:
            Kept matches in ascending start order
        """
        ordered = sorted(
            enumerate(matches),
            key=lambda item: (
                item[1].start,
                CATEGORY_RANK[item[1].category],
                -(item[1].end - item[1].start),
                item[0],
            )
        )

        resolved: List[Match] = []
        last_end = 0
        for _, match in ordered:
            if match.start >= last_end:
                resolved.append(match)
                last_end = match.end
            else:
                self.logger.debug(
                    f"Dropped {match.category.value} '{match.matched_text}' at {match.start}: "
                    f"overlaps previous match ending at {last_end}"
                )

        return resolved
