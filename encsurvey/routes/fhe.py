"""Client-side encryption helper, decryption oracle and results endpoints.

These stand in for the external FHE client library and user-decryption
service so that a browser or script client can drive the whole flow over
HTTP.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Response

from encsurvey.logic.contract import EncryptedSurveyContract
from encsurvey.logic.errors import DecryptionDeniedError
from encsurvey.models.schemas import (
    DecryptRequest,
    DecryptResult,
    DecryptionToken,
    EncryptedInput,
    EncryptInputRequest,
    Events,
    IssueTokenRequest,
    ResultsRequest,
    ResultsSummary,
)
from encsurvey.routes.deps import caller_address, get_contract

router = APIRouter()
logger = logging.getLogger(__name__)


def _require_token_holder(token: DecryptionToken, caller: str) -> None:
    if token.user_address.lower() != caller.strip().lower():
        raise DecryptionDeniedError("INVALID_DECRYPTION_TOKEN", "token was issued to a different address")


@router.post("/fhe/inputs", response_model=EncryptedInput, status_code=201, summary="Encrypt an answer for submission")
def encrypt_input(
    payload: EncryptInputRequest,
    caller: str = Depends(caller_address),
    contract: EncryptedSurveyContract = Depends(get_contract),
) -> EncryptedInput:
    return contract.encrypt_input(caller, payload.value)


@router.post("/fhe/tokens", response_model=DecryptionToken, status_code=201, summary="Issue a user-decryption token")
def issue_token(
    payload: IssueTokenRequest,
    caller: str = Depends(caller_address),
    contract: EncryptedSurveyContract = Depends(get_contract),
) -> DecryptionToken:
    return contract.issue_token(caller, payload.contract_addresses, payload.start_timestamp, payload.duration_days)


@router.post("/fhe/decrypt", response_model=DecryptResult, summary="Decrypt handles granted to the caller")
def user_decrypt(
    payload: DecryptRequest,
    caller: str = Depends(caller_address),
    contract: EncryptedSurveyContract = Depends(get_contract),
) -> DecryptResult:
    _require_token_holder(payload.token, caller)
    values = contract.user_decrypt([(p.handle, p.contract_address) for p in payload.handles], payload.token)
    return DecryptResult(values=values)


@router.post("/surveys/{survey_id}/results", response_model=ResultsSummary, summary="Decrypt and summarise results")
def survey_results(
    survey_id: int,
    payload: ResultsRequest,
    caller: str = Depends(caller_address),
    contract: EncryptedSurveyContract = Depends(get_contract),
) -> ResultsSummary:
    _require_token_holder(payload.token, caller)
    return contract.decrypt_results(survey_id, payload.token)


@router.post("/surveys/{survey_id}/results.csv", summary="Export decrypted results as CSV")
def export_results(
    survey_id: int,
    payload: ResultsRequest,
    caller: str = Depends(caller_address),
    contract: EncryptedSurveyContract = Depends(get_contract),
) -> Response:
    _require_token_holder(payload.token, caller)
    data = contract.export_results_csv(survey_id, payload.token)
    logger.info("route.export_results survey=%s bytes=%s", survey_id, len(data))
    return Response(
        content=data,
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="survey-{survey_id}-results.csv"'},
    )


@router.get("/events", response_model=Events, summary="Contract event log")
def list_events(
    survey_id: Optional[int] = None, contract: EncryptedSurveyContract = Depends(get_contract)
) -> Events:
    return Events(events=contract.events(survey_id))


__all__ = ["router"]
