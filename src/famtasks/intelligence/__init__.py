"""Intelligence modules for FamTasks.

Collaborators kept outside the parsing core: the optional LLM enhancement
client and the speech-transcript name correction filter.
"""

from .ai_enhancer import AIParseResult, AITaskEnhancer, split_category_marker
from .name_correction import correct_family_names, find_best_name_match, similarity

__all__ = [
    "AIParseResult",
    "AITaskEnhancer",
    "split_category_marker",
    "correct_family_names",
    "find_best_name_match",
    "similarity",
]
