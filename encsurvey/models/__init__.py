"""ORM tables and API schemas for the encrypted survey service."""

from encsurvey.models.base import Base
from encsurvey.models.ciphertext import AclGrant, CiphertextRecord
from encsurvey.models.event import ContractEvent
from encsurvey.models.permission import SurveyPermission
from encsurvey.models.question_kind import QuestionType
from encsurvey.models.survey import (
    AggregateCounter,
    QuestionOption,
    ResponseAnswer,
    Survey,
    SurveyQuestion,
    SurveyResponse,
    SurveyTag,
)

__all__ = [
    "Base",
    "AclGrant",
    "CiphertextRecord",
    "ContractEvent",
    "SurveyPermission",
    "QuestionType",
    "AggregateCounter",
    "QuestionOption",
    "ResponseAnswer",
    "Survey",
    "SurveyQuestion",
    "SurveyResponse",
    "SurveyTag",
]
