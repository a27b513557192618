"""Survey registry endpoints: creation, status, metadata and listing."""

from __future__ import annotations

import logging
from typing import List

from fastapi import APIRouter, Depends

from encsurvey.logic.context import CallContext
from encsurvey.logic.contract import EncryptedSurveyContract
from encsurvey.models.schemas import (
    CreateSurveyRequest,
    QuestionInfo,
    SetStatusRequest,
    SurveyCreated,
    SurveyInfo,
    SurveyListItem,
)
from encsurvey.routes.deps import call_context, get_contract

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post(
    "/surveys",
    status_code=201,
    response_model=SurveyCreated,
    summary="Create a survey",
    operation_id="createSurvey",
)
def create_survey(
    payload: CreateSurveyRequest,
    ctx: CallContext = Depends(call_context),
    contract: EncryptedSurveyContract = Depends(get_contract),
) -> SurveyCreated:
    survey_id = contract.create_survey(
        ctx,
        payload.title,
        payload.category,
        payload.tags,
        payload.start_time,
        payload.end_time,
        payload.question_texts,
        payload.question_types,
        payload.question_options,
    )
    logger.info("route.create_survey id=%s sender=%s", survey_id, ctx.sender)
    return SurveyCreated(survey_id=survey_id)


@router.get("/surveys", response_model=List[SurveyListItem], summary="List surveys, newest first")
def list_surveys(contract: EncryptedSurveyContract = Depends(get_contract)) -> List[SurveyListItem]:
    return contract.list_surveys()


@router.get("/surveys/counter", summary="Number of surveys created", operation_id="surveyCounter")
def survey_counter(contract: EncryptedSurveyContract = Depends(get_contract)) -> dict:
    return {"survey_counter": contract.survey_counter()}


@router.get("/surveys/{survey_id}", response_model=SurveyInfo, operation_id="getSurveyInfo")
def get_survey_info(survey_id: int, contract: EncryptedSurveyContract = Depends(get_contract)) -> SurveyInfo:
    return contract.get_survey_info(survey_id)


@router.get("/surveys/{survey_id}/tags", operation_id="getSurveyTags")
def get_survey_tags(survey_id: int, contract: EncryptedSurveyContract = Depends(get_contract)) -> dict:
    return {"tags": contract.get_survey_tags(survey_id)}


@router.get(
    "/surveys/{survey_id}/questions/{question_index}",
    response_model=QuestionInfo,
    operation_id="getQuestionInfo",
)
def get_question_info(
    survey_id: int, question_index: int, contract: EncryptedSurveyContract = Depends(get_contract)
) -> QuestionInfo:
    return contract.get_question_info(survey_id, question_index)


@router.patch("/surveys/{survey_id}/status", response_model=SurveyInfo, operation_id="setSurveyStatus")
def set_survey_status(
    survey_id: int,
    payload: SetStatusRequest,
    ctx: CallContext = Depends(call_context),
    contract: EncryptedSurveyContract = Depends(get_contract),
) -> SurveyInfo:
    contract.set_survey_status(ctx, survey_id, payload.is_active)
    return contract.get_survey_info(survey_id)


__all__ = ["router"]
