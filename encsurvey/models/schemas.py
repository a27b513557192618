"""Pydantic models for request and response bodies of the survey API.

Logic functions return these models directly; route handlers only bind
them to HTTP.
"""

from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from encsurvey.models.question_kind import QuestionType


class CreateSurveyRequest(BaseModel):
    title: str
    category: str = ""
    tags: List[str] = Field(default_factory=list)
    start_time: int
    end_time: int
    question_texts: List[str]
    question_types: List[int]
    question_options: List[List[str]]


class SurveyCreated(BaseModel):
    survey_id: int


class SurveyInfo(BaseModel):
    survey_id: int
    creator: str
    title: str
    category: str
    created_at: int
    start_time: int
    end_time: int
    question_count: int
    exists: bool
    is_active: bool


class SurveyListItem(SurveyInfo):
    accepting_responses: bool


class QuestionInfo(BaseModel):
    text: str
    question_type: QuestionType
    options: List[str]
    option_count: int


class SetStatusRequest(BaseModel):
    is_active: bool


class SubmitResponseRequest(BaseModel):
    encrypted_answers: List[str]
    answer_proofs: List[str]


class ResponseInfo(BaseModel):
    exists: bool
    submitted_at: int
    answers: List[str]


class GrantPermissionRequest(BaseModel):
    can_view: bool = False
    can_export: bool = False
    can_manage: bool = False


class PermissionInfo(BaseModel):
    can_view: bool
    can_export: bool
    can_manage: bool
    exists: bool = False


class HandleValue(BaseModel):
    handle: str


class HandleList(BaseModel):
    handles: List[str]


class EncryptInputRequest(BaseModel):
    value: int = Field(ge=0)


class EncryptedInput(BaseModel):
    handle: str
    proof: str


class IssueTokenRequest(BaseModel):
    contract_addresses: Optional[List[str]] = None
    start_timestamp: Optional[int] = None
    duration_days: int = Field(default=1, gt=0)


class DecryptionToken(BaseModel):
    """Capability presented to the decryption oracle on behalf of one user."""

    user_address: str
    contract_addresses: List[str]
    start_timestamp: int
    duration_days: int
    signature: str


class HandleContractPair(BaseModel):
    handle: str
    contract_address: Optional[str] = None


class DecryptRequest(BaseModel):
    handles: List[HandleContractPair]
    token: DecryptionToken


class DecryptResult(BaseModel):
    values: Dict[str, int]


class ResultsRequest(BaseModel):
    token: DecryptionToken


class BucketResult(BaseModel):
    bucket_index: int
    label: str
    count: int
    percentage: float


class QuestionResult(BaseModel):
    question_index: int
    text: str
    question_type: QuestionType
    total_votes: int
    buckets: List[BucketResult]
    average_rating: Optional[float] = None


class ResultsSummary(BaseModel):
    survey_id: int
    title: str
    total_responses: int
    questions: List[QuestionResult]


class Events(BaseModel):
    events: list


__all__ = [
    "CreateSurveyRequest",
    "SurveyCreated",
    "SurveyInfo",
    "SurveyListItem",
    "QuestionInfo",
    "SetStatusRequest",
    "SubmitResponseRequest",
    "ResponseInfo",
    "GrantPermissionRequest",
    "PermissionInfo",
    "HandleValue",
    "HandleList",
    "EncryptInputRequest",
    "EncryptedInput",
    "IssueTokenRequest",
    "DecryptionToken",
    "HandleContractPair",
    "DecryptRequest",
    "DecryptResult",
    "ResultsRequest",
    "BucketResult",
    "QuestionResult",
    "ResultsSummary",
    "Events",
]
