"""Response intake and homomorphic tallying.

A submission imports one encrypted answer per question and folds it into the
survey's encrypted per-bucket counters without decrypting anything:

- single choice: bucket o += (answer == o)
- multiple choice: bucket o += ((answer & (1 << o)) > 0)
- rating: bucket r - 1 += (answer == r) for r in 1..5

Every addition yields a new counter handle. Grants never carry over to the
new handle, so the contract and the survey creator are re-granted on every
update.
"""

from __future__ import annotations

import logging
from typing import List, Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session

from encsurvey.logic import events
from encsurvey.logic.addresses import ZERO_HANDLE, normalize_address
from encsurvey.logic.ciphertext import CiphertextAlgebra
from encsurvey.logic.context import CallContext
from encsurvey.logic.errors import InvalidInputError, NotFoundError, StateConflictError
from encsurvey.logic.registry import load_question, load_questions, load_survey, option_counts
from encsurvey.models.question_kind import RATING_MAX, RATING_MIN, QuestionType, bucket_count
from encsurvey.models.schemas import ResponseInfo
from encsurvey.models.survey import AggregateCounter, ResponseAnswer, Survey, SurveyResponse

logger = logging.getLogger(__name__)


def _find_response(session: Session, survey_id: int, respondent: str) -> SurveyResponse | None:
    return session.execute(
        select(SurveyResponse).where(
            SurveyResponse.survey_id == survey_id,
            SurveyResponse.respondent == respondent,
        )
    ).scalar_one_or_none()


def _accumulate(
    session: Session,
    algebra: CiphertextAlgebra,
    survey: Survey,
    question_index: int,
    bucket_index: int,
    indicator: str,
) -> None:
    counter = session.get(AggregateCounter, (survey.survey_id, question_index, bucket_index))
    current = counter.handle if counter is not None else ZERO_HANDLE
    updated = algebra.add(current, indicator)
    if counter is None:
        session.add(
            AggregateCounter(
                survey_id=survey.survey_id,
                question_index=question_index,
                bucket_index=bucket_index,
                handle=updated,
            )
        )
    else:
        counter.handle = updated
    algebra.allow_this(updated)
    algebra.allow(updated, survey.creator)


def _tally(
    session: Session,
    algebra: CiphertextAlgebra,
    survey: Survey,
    question_index: int,
    question_type: QuestionType,
    n_options: int,
    answer: str,
) -> None:
    if question_type is QuestionType.SINGLE_CHOICE:
        for o in range(n_options):
            hit = algebra.select(algebra.eq(answer, o), 1, 0)
            _accumulate(session, algebra, survey, question_index, o, hit)
    elif question_type is QuestionType.MULTIPLE_CHOICE:
        for o in range(n_options):
            masked = algebra.bit_and(answer, 1 << o)
            hit = algebra.select(algebra.gt(masked, 0), 1, 0)
            _accumulate(session, algebra, survey, question_index, o, hit)
    elif question_type is QuestionType.RATING:
        for rating in range(RATING_MIN, RATING_MAX + 1):
            hit = algebra.select(algebra.eq(answer, rating), 1, 0)
            _accumulate(session, algebra, survey, question_index, rating - RATING_MIN, hit)
    else:  # pragma: no cover - QuestionType is closed
        raise AssertionError(f"unhandled question type {question_type!r}")


def submit_response(
    session: Session,
    algebra: CiphertextAlgebra,
    ctx: CallContext,
    survey_id: int,
    encrypted_answers: Sequence[str],
    answer_proofs: Sequence[str],
) -> None:
    survey = load_survey(session, survey_id)
    if not survey.is_active:
        raise StateConflictError("SURVEY_INACTIVE", f"survey {survey.survey_id} is not active")
    if not survey.start_time <= ctx.timestamp <= survey.end_time:
        raise StateConflictError(
            "OUTSIDE_TIME_WINDOW", f"survey {survey.survey_id} is not open at time {ctx.timestamp}"
        )
    if len(encrypted_answers) != survey.question_count or len(answer_proofs) != survey.question_count:
        raise InvalidInputError(
            "ANSWER_COUNT_MISMATCH",
            f"expected {survey.question_count} answers and proofs, got "
            f"{len(encrypted_answers)} and {len(answer_proofs)}",
        )
    existing = _find_response(session, survey.survey_id, ctx.sender)
    if existing is not None and existing.exists:
        raise StateConflictError("ALREADY_RESPONDED", f"{ctx.sender} already responded to survey {survey.survey_id}")

    session.add(
        SurveyResponse(survey_id=survey.survey_id, respondent=ctx.sender, exists=True, submitted_at=ctx.timestamp)
    )
    n_options = option_counts(session, survey.survey_id)
    for question in load_questions(session, survey):
        q = question.question_index
        answer = algebra.from_external(encrypted_answers[q], answer_proofs[q], ctx.sender)
        session.add(ResponseAnswer(survey_id=survey.survey_id, respondent=ctx.sender, question_index=q, handle=answer))
        algebra.allow_this(answer)
        _tally(session, algebra, survey, q, QuestionType(question.question_type), n_options.get(q, 0), answer)

    total = algebra.add(survey.total_responses, 1)
    survey.total_responses = total
    algebra.allow_this(total)
    algebra.allow(total, survey.creator)

    events.publish(
        session,
        events.RESPONSE_SUBMITTED,
        {"surveyId": survey.survey_id, "participant": ctx.sender},
        timestamp=ctx.timestamp,
    )
    logger.info("response_submitted survey=%s participant=%s", survey.survey_id, ctx.sender)


def get_question_option_counts(session: Session, survey_id: int, question_index: int) -> List[str]:
    """Current counter handles for a question; unset buckets read as the zero handle."""
    survey = load_survey(session, survey_id)
    question = load_question(session, survey, question_index)
    n_options = option_counts(session, survey.survey_id).get(question.question_index, 0)
    size = bucket_count(QuestionType(question.question_type), n_options)
    handles = [ZERO_HANDLE] * size
    rows = session.execute(
        select(AggregateCounter).where(
            AggregateCounter.survey_id == survey.survey_id,
            AggregateCounter.question_index == question.question_index,
        )
    ).scalars()
    for row in rows:
        if 0 <= row.bucket_index < size:
            handles[row.bucket_index] = row.handle
    return handles


def get_total_responses(session: Session, survey_id: int) -> str:
    return load_survey(session, survey_id).total_responses


def get_response(session: Session, survey_id: int, respondent: str) -> ResponseInfo:
    survey = load_survey(session, survey_id)
    respondent = normalize_address(respondent)
    response = _find_response(session, survey.survey_id, respondent)
    if response is None or not response.exists:
        raise NotFoundError(
            "RESPONSE_NOT_FOUND", f"{respondent} has not responded to survey {survey.survey_id}"
        )
    answers = session.execute(
        select(ResponseAnswer.handle)
        .where(ResponseAnswer.survey_id == survey.survey_id, ResponseAnswer.respondent == respondent)
        .order_by(ResponseAnswer.question_index.asc())
    ).scalars()
    return ResponseInfo(exists=True, submitted_at=response.submitted_at, answers=list(answers))


def has_responded(session: Session, survey_id: int, respondent: str) -> bool:
    survey = load_survey(session, survey_id)
    response = _find_response(session, survey.survey_id, normalize_address(respondent))
    return bool(response is not None and response.exists)


__all__ = [
    "submit_response",
    "get_question_option_counts",
    "get_total_responses",
    "get_response",
    "has_responded",
]
