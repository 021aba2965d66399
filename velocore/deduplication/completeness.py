"""
Completeness Scoring

Percentage of a content type's expected fields that a record actually fills.
Used to report record quality and to pick the primary record of a duplicate
cluster.
"""

from typing import Any, Dict, List, Optional

from ..utils import get_path, is_empty
from .content_processors import BaseContentProcessor


def has_field(record: Dict[str, Any], field: str,
              processor: Optional[BaseContentProcessor] = None) -> bool:
    """Check that a (possibly dotted) field is present and non-empty.

    Zero and False count as present. When a processor is given, its field
    aliases are consulted too.
    """
    if processor is not None:
        return processor.resolve_field(record, field) is not None
    return not is_empty(get_path(record, field))


def calculate_completeness(
    record: Dict[str, Any],
    expected_fields: List[str],
    processor: Optional[BaseContentProcessor] = None,
) -> int:
    """
    Calculate the completeness of a record.

    Args:
        record: The record to score
        expected_fields: Fields a complete record carries (dotted paths allowed)
        processor: Optional processor whose aliases also satisfy fields

    Returns:
        Rounded percentage 0..100; 0 when no fields are expected
    """
    if not expected_fields:
        return 0

    present = sum(1 for field in expected_fields if has_field(record, field, processor))
    return round(present * 100 / len(expected_fields))


def missing_fields(
    record: Dict[str, Any],
    expected_fields: List[str],
    processor: Optional[BaseContentProcessor] = None,
) -> List[str]:
    """Expected fields the record does not fill."""
    return [field for field in expected_fields if not has_field(record, field, processor)]


def completeness_status(score: int) -> str:
    """Publication status for a completeness score."""
    if score < 50:
        return "incomplete"
    elif score < 80:
        return "partial"
    return "ready"


def completeness_band(score: int) -> str:
    """Quality band used in report summaries."""
    if score >= 90:
        return "excellent"
    elif score >= 70:
        return "good"
    elif score >= 40:
        return "partial"
    return "minimal"


class CompletenessScorer:
    """Scores records of one content type against its expected fields."""

    def __init__(self, processor: BaseContentProcessor,
                 expected_fields: Optional[List[str]] = None):
        self.processor = processor
        self.expected_fields = list(expected_fields or processor.get_expected_fields())

    def score(self, record: Dict[str, Any]) -> int:
        return calculate_completeness(record, self.expected_fields, self.processor)

    def missing(self, record: Dict[str, Any]) -> List[str]:
        return missing_fields(record, self.expected_fields, self.processor)
