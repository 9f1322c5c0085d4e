"""
Models package for extraction tasks and results.
"""

from .extract_result import ExtractResult
from .extraction_task import ExtractionTask, TaskStatus, union_web_page_ids

__all__ = ["ExtractResult", "ExtractionTask", "TaskStatus", "union_web_page_ids"]
