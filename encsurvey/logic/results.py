"""Results reporting over decrypted tallies.

Turns decrypted bucket counts into a per-question summary (labels, counts,
percentages and the average for rating questions) and renders it as CSV.
Ordering is deterministic by question index, then bucket index.
"""

from __future__ import annotations

import csv
import io
from typing import Sequence

from encsurvey.models.question_kind import RATING_MIN, QuestionType
from encsurvey.models.schemas import (
    BucketResult,
    QuestionInfo,
    QuestionResult,
    ResultsSummary,
    SurveyInfo,
)


HEADER = [
    "question_index",
    "question_text",
    "question_type",
    "bucket_index",
    "label",
    "count",
    "percentage",
]


def _labels(question: QuestionInfo, size: int) -> list[str]:
    if question.question_type is QuestionType.RATING:
        return [str(RATING_MIN + i) for i in range(size)]
    return [question.options[i] if i < len(question.options) else f"Option {i + 1}" for i in range(size)]


def summarize_question(question_index: int, question: QuestionInfo, counts: Sequence[int]) -> QuestionResult:
    total = sum(int(c) for c in counts)
    labels = _labels(question, len(counts))
    buckets = [
        BucketResult(
            bucket_index=i,
            label=labels[i],
            count=int(c),
            percentage=round(int(c) * 100.0 / total, 1) if total > 0 else 0.0,
        )
        for i, c in enumerate(counts)
    ]
    average = None
    if question.question_type is QuestionType.RATING and total > 0:
        weighted = sum((RATING_MIN + i) * int(c) for i, c in enumerate(counts))
        average = round(weighted / total, 2)
    return QuestionResult(
        question_index=question_index,
        text=question.text,
        question_type=question.question_type,
        total_votes=total,
        buckets=buckets,
        average_rating=average,
    )


def summarize_results(
    survey: SurveyInfo,
    questions: Sequence[QuestionInfo],
    total_responses: int,
    counts: Sequence[Sequence[int]],
) -> ResultsSummary:
    return ResultsSummary(
        survey_id=survey.survey_id,
        title=survey.title,
        total_responses=int(total_responses),
        questions=[summarize_question(q, question, counts[q]) for q, question in enumerate(questions)],
    )


def export_results_csv(summary: ResultsSummary) -> bytes:
    buf = io.StringIO(newline="")
    writer = csv.DictWriter(buf, fieldnames=HEADER)
    writer.writeheader()
    for question in summary.questions:
        for bucket in question.buckets:
            writer.writerow(
                {
                    "question_index": question.question_index,
                    "question_text": question.text,
                    "question_type": question.question_type.name.lower(),
                    "bucket_index": bucket.bucket_index,
                    "label": bucket.label,
                    "count": bucket.count,
                    "percentage": f"{bucket.percentage:.1f}",
                }
            )
    return buf.getvalue().encode("utf-8")


__all__ = ["HEADER", "summarize_question", "summarize_results", "export_results_csv"]
