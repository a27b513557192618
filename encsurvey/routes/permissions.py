"""Permission table and decryption-authorization endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Response

from encsurvey.logic.context import CallContext
from encsurvey.logic.contract import EncryptedSurveyContract
from encsurvey.models.schemas import GrantPermissionRequest, HandleList, PermissionInfo
from encsurvey.routes.deps import call_context, get_contract

router = APIRouter()


@router.put(
    "/surveys/{survey_id}/permissions/{viewer}",
    response_model=PermissionInfo,
    operation_id="grantPermission",
)
def grant_permission(
    survey_id: int,
    viewer: str,
    payload: GrantPermissionRequest,
    ctx: CallContext = Depends(call_context),
    contract: EncryptedSurveyContract = Depends(get_contract),
) -> PermissionInfo:
    contract.grant_permission(ctx, survey_id, viewer, payload.can_view, payload.can_export, payload.can_manage)
    return contract.get_permission(survey_id, viewer)


@router.delete("/surveys/{survey_id}/permissions/{viewer}", status_code=204, operation_id="revokePermission")
def revoke_permission(
    survey_id: int,
    viewer: str,
    ctx: CallContext = Depends(call_context),
    contract: EncryptedSurveyContract = Depends(get_contract),
) -> Response:
    contract.revoke_permission(ctx, survey_id, viewer)
    return Response(status_code=204)


@router.get(
    "/surveys/{survey_id}/permissions/{address}",
    response_model=PermissionInfo,
    operation_id="getPermission",
)
def get_permission(
    survey_id: int, address: str, contract: EncryptedSurveyContract = Depends(get_contract)
) -> PermissionInfo:
    return contract.get_permission(survey_id, address)


@router.post("/surveys/{survey_id}/authorizations/me", status_code=204, operation_id="authorizeMyDecryption")
def authorize_my_decryption(
    survey_id: int,
    ctx: CallContext = Depends(call_context),
    contract: EncryptedSurveyContract = Depends(get_contract),
) -> Response:
    contract.authorize_my_decryption(ctx, survey_id)
    return Response(status_code=204)


@router.post(
    "/surveys/{survey_id}/authorizations/all",
    response_model=HandleList,
    operation_id="authorizeAllResultsDecryption",
)
def authorize_all_results_decryption(
    survey_id: int,
    ctx: CallContext = Depends(call_context),
    contract: EncryptedSurveyContract = Depends(get_contract),
) -> HandleList:
    return HandleList(handles=contract.authorize_all_results_decryption(ctx, survey_id))


__all__ = ["router"]
