"""Response submission and encrypted tally endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from encsurvey.logic.context import CallContext
from encsurvey.logic.contract import EncryptedSurveyContract
from encsurvey.models.schemas import HandleList, HandleValue, ResponseInfo, SubmitResponseRequest
from encsurvey.routes.deps import call_context, get_contract

router = APIRouter()


@router.post("/surveys/{survey_id}/responses", status_code=201, operation_id="submitResponse")
def submit_response(
    survey_id: int,
    payload: SubmitResponseRequest,
    ctx: CallContext = Depends(call_context),
    contract: EncryptedSurveyContract = Depends(get_contract),
) -> dict:
    contract.submit_response(ctx, survey_id, payload.encrypted_answers, payload.answer_proofs)
    return {"survey_id": survey_id, "participant": ctx.sender, "submitted_at": ctx.timestamp}


@router.get(
    "/surveys/{survey_id}/responses/{respondent}",
    response_model=ResponseInfo,
    operation_id="getResponse",
)
def get_response(
    survey_id: int, respondent: str, contract: EncryptedSurveyContract = Depends(get_contract)
) -> ResponseInfo:
    return contract.get_response(survey_id, respondent)


@router.get("/surveys/{survey_id}/responses/{respondent}/exists", operation_id="hasResponded")
def has_responded(survey_id: int, respondent: str, contract: EncryptedSurveyContract = Depends(get_contract)) -> dict:
    return {"has_responded": contract.has_responded(survey_id, respondent)}


@router.get("/surveys/{survey_id}/total-responses", response_model=HandleValue, operation_id="getTotalResponses")
def get_total_responses(survey_id: int, contract: EncryptedSurveyContract = Depends(get_contract)) -> HandleValue:
    return HandleValue(handle=contract.get_total_responses(survey_id))


@router.get(
    "/surveys/{survey_id}/questions/{question_index}/counts",
    response_model=HandleList,
    operation_id="getQuestionOptionCounts",
)
def get_question_option_counts(
    survey_id: int, question_index: int, contract: EncryptedSurveyContract = Depends(get_contract)
) -> HandleList:
    return HandleList(handles=contract.get_question_option_counts(survey_id, question_index))


__all__ = ["router"]
