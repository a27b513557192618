"""ORM models for surveys, their questions, responses and encrypted tallies."""

from __future__ import annotations

from sqlalchemy import Boolean, Column, ForeignKey, Integer, String, Text, UniqueConstraint

from encsurvey.models.base import Base


class Survey(Base):  # type: ignore[valid-type]
    __tablename__ = "survey"

    survey_id = Column(Integer, primary_key=True, autoincrement=False)
    creator = Column(String(42), nullable=False, index=True)
    title = Column(Text, nullable=False)
    category = Column(Text, nullable=False, default="")
    created_at = Column(Integer, nullable=False)
    start_time = Column(Integer, nullable=False)
    end_time = Column(Integer, nullable=False)
    exists = Column(Boolean, nullable=False, default=True)
    is_active = Column(Boolean, nullable=False, default=True)
    question_count = Column(Integer, nullable=False)
    total_responses = Column(String(66), nullable=False)


class SurveyTag(Base):  # type: ignore[valid-type]
    __tablename__ = "survey_tag"

    survey_id = Column(Integer, ForeignKey("survey.survey_id"), primary_key=True)
    position = Column(Integer, primary_key=True)
    tag = Column(Text, nullable=False)


class SurveyQuestion(Base):  # type: ignore[valid-type]
    __tablename__ = "survey_question"

    survey_id = Column(Integer, ForeignKey("survey.survey_id"), primary_key=True)
    question_index = Column(Integer, primary_key=True)
    text = Column(Text, nullable=False)
    question_type = Column(Integer, nullable=False)


class QuestionOption(Base):  # type: ignore[valid-type]
    __tablename__ = "question_option"

    survey_id = Column(Integer, primary_key=True)
    question_index = Column(Integer, primary_key=True)
    option_index = Column(Integer, primary_key=True)
    text = Column(Text, nullable=False)


class SurveyResponse(Base):  # type: ignore[valid-type]
    __tablename__ = "survey_response"
    __table_args__ = (
        UniqueConstraint("survey_id", "respondent", name="uq_survey_respondent"),
    )

    response_id = Column(Integer, primary_key=True, autoincrement=True)
    survey_id = Column(Integer, ForeignKey("survey.survey_id"), nullable=False)
    respondent = Column(String(42), nullable=False)
    exists = Column(Boolean, nullable=False, default=True)
    submitted_at = Column(Integer, nullable=False)


class ResponseAnswer(Base):  # type: ignore[valid-type]
    __tablename__ = "response_answer"

    survey_id = Column(Integer, primary_key=True)
    respondent = Column(String(42), primary_key=True)
    question_index = Column(Integer, primary_key=True)
    handle = Column(String(66), nullable=False)


class AggregateCounter(Base):  # type: ignore[valid-type]
    """Encrypted per-bucket tally; rows appear on first increment only."""

    __tablename__ = "aggregate_counter"

    survey_id = Column(Integer, primary_key=True)
    question_index = Column(Integer, primary_key=True)
    bucket_index = Column(Integer, primary_key=True)
    handle = Column(String(66), nullable=False)


__all__ = [
    "Survey",
    "SurveyTag",
    "SurveyQuestion",
    "QuestionOption",
    "SurveyResponse",
    "ResponseAnswer",
    "AggregateCounter",
]
