"""Survey registry: creation, status changes and metadata lookups.

Survey ids are allocated sequentially from 0 inside the creating call's
transaction and are never reused. Everything but the active flag is
immutable after creation.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Sequence

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from encsurvey.logic import events
from encsurvey.logic.ciphertext import CiphertextAlgebra
from encsurvey.logic.context import CallContext
from encsurvey.logic.errors import (
    AuthorizationError,
    InvalidInputError,
    question_not_found,
    survey_not_found,
)
from encsurvey.models.permission import SurveyPermission
from encsurvey.models.question_kind import QuestionType
from encsurvey.models.schemas import QuestionInfo, SurveyInfo, SurveyListItem
from encsurvey.models.survey import QuestionOption, Survey, SurveyQuestion, SurveyTag

logger = logging.getLogger(__name__)

DEFAULT_MAX_QUESTIONS = 20


def load_survey(session: Session, survey_id: int) -> Survey:
    survey = session.get(Survey, int(survey_id))
    if survey is None or not survey.exists:
        raise survey_not_found(survey_id)
    return survey


def load_question(session: Session, survey: Survey, question_index: int) -> SurveyQuestion:
    if not 0 <= int(question_index) < survey.question_count:
        raise question_not_found(survey.survey_id, question_index)
    question = session.get(SurveyQuestion, (survey.survey_id, int(question_index)))
    if question is None:  # pragma: no cover - question rows are written with the survey
        raise question_not_found(survey.survey_id, question_index)
    return question


def load_questions(session: Session, survey: Survey) -> List[SurveyQuestion]:
    return list(
        session.execute(
            select(SurveyQuestion)
            .where(SurveyQuestion.survey_id == survey.survey_id)
            .order_by(SurveyQuestion.question_index.asc())
        ).scalars()
    )


def load_options(session: Session, survey_id: int, question_index: int) -> List[str]:
    return list(
        session.execute(
            select(QuestionOption.text)
            .where(
                QuestionOption.survey_id == survey_id,
                QuestionOption.question_index == question_index,
            )
            .order_by(QuestionOption.option_index.asc())
        ).scalars()
    )


def option_counts(session: Session, survey_id: int) -> Dict[int, int]:
    """Return {question_index: stored option count} for a survey."""
    rows = session.execute(
        select(QuestionOption.question_index, func.count())
        .where(QuestionOption.survey_id == survey_id)
        .group_by(QuestionOption.question_index)
    ).all()
    return {int(q): int(n) for q, n in rows}


def _validate_creation(
    title: str,
    start_time: int,
    end_time: int,
    question_texts: Sequence[str],
    question_types: Sequence[int],
    question_options: Sequence[Sequence[str]],
    max_questions: int,
) -> List[QuestionType]:
    if not title:
        raise InvalidInputError("INVALID_TITLE", "title must not be empty")
    if int(end_time) <= int(start_time):
        raise InvalidInputError("INVALID_TIME_RANGE", "end_time must be after start_time")
    if not 1 <= len(question_texts) <= max_questions:
        raise InvalidInputError(
            "INVALID_QUESTION_COUNT", f"a survey needs between 1 and {max_questions} questions"
        )
    if not (len(question_texts) == len(question_types) == len(question_options)):
        raise InvalidInputError(
            "QUESTION_ARRAY_MISMATCH", "question texts, types and options must have equal length"
        )
    types: List[QuestionType] = []
    for i, (text, qtype, options) in enumerate(zip(question_texts, question_types, question_options)):
        if not text:
            raise InvalidInputError("EMPTY_QUESTION_TEXT", f"question {i} has empty text")
        if not options:
            raise InvalidInputError("EMPTY_OPTIONS", f"question {i} has no options")
        try:
            types.append(QuestionType(int(qtype)))
        except ValueError:
            raise InvalidInputError("INVALID_QUESTION_TYPE", f"question {i} has unknown type {qtype!r}") from None
    return types


def create_survey(
    session: Session,
    algebra: CiphertextAlgebra,
    ctx: CallContext,
    *,
    title: str,
    category: str,
    tags: Sequence[str],
    start_time: int,
    end_time: int,
    question_texts: Sequence[str],
    question_types: Sequence[int],
    question_options: Sequence[Sequence[str]],
    max_questions: int = DEFAULT_MAX_QUESTIONS,
) -> int:
    types = _validate_creation(
        title, start_time, end_time, question_texts, question_types, question_options, max_questions
    )

    survey_id = survey_counter(session)
    total = algebra.as_encrypted(0)
    survey = Survey(
        survey_id=survey_id,
        creator=ctx.sender,
        title=title,
        category=category or "",
        created_at=ctx.timestamp,
        start_time=int(start_time),
        end_time=int(end_time),
        exists=True,
        is_active=True,
        question_count=len(question_texts),
        total_responses=total,
    )
    session.add(survey)
    for position, tag in enumerate(tags):
        session.add(SurveyTag(survey_id=survey_id, position=position, tag=tag))
    for q, (text, qtype, options) in enumerate(zip(question_texts, types, question_options)):
        session.add(SurveyQuestion(survey_id=survey_id, question_index=q, text=text, question_type=int(qtype)))
        for o, option in enumerate(options):
            session.add(QuestionOption(survey_id=survey_id, question_index=q, option_index=o, text=option))

    algebra.allow_this(total)
    algebra.allow(total, ctx.sender)

    session.add(
        SurveyPermission(
            survey_id=survey_id,
            address=ctx.sender,
            can_view=True,
            can_export=True,
            can_manage=True,
            exists=True,
        )
    )
    events.publish(
        session,
        events.SURVEY_CREATED,
        {
            "surveyId": survey_id,
            "creator": ctx.sender,
            "title": title,
            "category": category or "",
            "questionCount": len(question_texts),
        },
        timestamp=ctx.timestamp,
    )
    logger.info("survey_created id=%s creator=%s questions=%s", survey_id, ctx.sender, len(question_texts))
    return survey_id


def set_survey_status(session: Session, ctx: CallContext, survey_id: int, is_active: bool) -> None:
    survey = load_survey(session, survey_id)
    if ctx.sender != survey.creator:
        perm = session.get(SurveyPermission, (survey.survey_id, ctx.sender))
        if perm is None or not perm.can_manage:
            raise AuthorizationError("NOT_MANAGER", "only the creator or a manager may change survey status")
    survey.is_active = bool(is_active)
    events.publish(
        session,
        events.SURVEY_STATUS_CHANGED,
        {"surveyId": survey.survey_id, "isActive": bool(is_active)},
        timestamp=ctx.timestamp,
    )
    logger.info("survey_status_changed id=%s active=%s by=%s", survey.survey_id, is_active, ctx.sender)


def survey_counter(session: Session) -> int:
    """Number of surveys created so far, which is also the next id."""
    current = session.execute(select(func.max(Survey.survey_id))).scalar()
    return 0 if current is None else int(current) + 1


def _info(survey: Survey) -> SurveyInfo:
    return SurveyInfo(
        survey_id=survey.survey_id,
        creator=survey.creator,
        title=survey.title,
        category=survey.category,
        created_at=survey.created_at,
        start_time=survey.start_time,
        end_time=survey.end_time,
        question_count=survey.question_count,
        exists=survey.exists,
        is_active=survey.is_active,
    )


def get_survey_info(session: Session, survey_id: int) -> SurveyInfo:
    return _info(load_survey(session, survey_id))


def get_question_info(session: Session, survey_id: int, question_index: int) -> QuestionInfo:
    survey = load_survey(session, survey_id)
    question = load_question(session, survey, question_index)
    options = load_options(session, survey.survey_id, question.question_index)
    return QuestionInfo(
        text=question.text,
        question_type=QuestionType(question.question_type),
        options=options,
        option_count=len(options),
    )


def get_survey_tags(session: Session, survey_id: int) -> List[str]:
    survey = load_survey(session, survey_id)
    return list(
        session.execute(
            select(SurveyTag.tag)
            .where(SurveyTag.survey_id == survey.survey_id)
            .order_by(SurveyTag.position.asc())
        ).scalars()
    )


def is_accepting_responses(survey: Survey, now: int) -> bool:
    return bool(survey.is_active) and survey.start_time <= int(now) <= survey.end_time


def list_surveys(session: Session, now: int) -> List[SurveyListItem]:
    """All surveys, newest first."""
    rows = session.execute(
        select(Survey)
        .where(Survey.exists.is_(True))
        .order_by(Survey.created_at.desc(), Survey.survey_id.desc())
    ).scalars()
    return [
        SurveyListItem(**_info(s).model_dump(), accepting_responses=is_accepting_responses(s, now))
        for s in rows
    ]


__all__ = [
    "DEFAULT_MAX_QUESTIONS",
    "load_survey",
    "load_question",
    "load_questions",
    "load_options",
    "option_counts",
    "create_survey",
    "set_survey_status",
    "survey_counter",
    "get_survey_info",
    "get_question_info",
    "get_survey_tags",
    "is_accepting_responses",
    "list_surveys",
]
