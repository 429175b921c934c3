"""FamTasks - Bilingual Family Task Parser

Turns short Hebrew/English task sentences into structured task records with
highlight segments and editable tags.
"""

__version__ = "0.1.0"
__author__ = "FamTasks Team"
__description__ = "Bilingual family task parser"

from .processors.task_parser import TaskParser, on_tag_edit, parse

__all__ = ["TaskParser", "parse", "on_tag_edit"]
