"""Question type enumeration.

The integer values are the wire encoding used by clients and must not be
renumbered.
"""

from __future__ import annotations

from enum import IntEnum


class QuestionType(IntEnum):
    SINGLE_CHOICE = 0
    MULTIPLE_CHOICE = 1
    RATING = 2


# Rating answers are the literal values 1..5; bucket i holds rating i + 1
RATING_MIN = 1
RATING_MAX = 5
RATING_BUCKETS = RATING_MAX - RATING_MIN + 1


def bucket_count(question_type: QuestionType, option_count: int) -> int:
    """Return the number of aggregation buckets for a question."""
    if question_type is QuestionType.RATING:
        return RATING_BUCKETS
    return option_count


__all__ = ["QuestionType", "RATING_MIN", "RATING_MAX", "RATING_BUCKETS", "bucket_count"]
