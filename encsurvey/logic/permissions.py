"""Application-level permission table and the decryption authorization bridge.

Permissions (view/export/manage) are this service's own capability records.
They are distinct from ciphertext ACL grants, which are per handle and cannot
be withdrawn once issued. Revoking a permission therefore only stops future
`authorize_*` calls; it does not reach handles already granted.
"""

from __future__ import annotations

import logging
from typing import List

from sqlalchemy import select
from sqlalchemy.orm import Session

from encsurvey.logic import events
from encsurvey.logic.addresses import ZERO_HANDLE, normalize_address
from encsurvey.logic.ciphertext import CiphertextAlgebra
from encsurvey.logic.context import CallContext
from encsurvey.logic.errors import AuthorizationError
from encsurvey.logic.registry import load_survey
from encsurvey.models.permission import SurveyPermission
from encsurvey.models.schemas import PermissionInfo
from encsurvey.models.survey import AggregateCounter, Survey

logger = logging.getLogger(__name__)


def _require_creator(survey: Survey, ctx: CallContext) -> None:
    if ctx.sender != survey.creator:
        raise AuthorizationError("NOT_CREATOR", "only the survey creator may change permissions")


def _permission(session: Session, survey_id: int, address: str) -> SurveyPermission | None:
    return session.get(SurveyPermission, (survey_id, address))


def can_view(session: Session, survey: Survey, address: str) -> bool:
    if address == survey.creator:
        return True
    perm = _permission(session, survey.survey_id, address)
    return bool(perm is not None and perm.can_view)


def can_export(session: Session, survey: Survey, address: str) -> bool:
    if address == survey.creator:
        return True
    perm = _permission(session, survey.survey_id, address)
    return bool(perm is not None and perm.can_export)


def grant_permission(
    session: Session,
    algebra: CiphertextAlgebra,
    ctx: CallContext,
    survey_id: int,
    viewer: str,
    can_view: bool,
    can_export: bool,
    can_manage: bool,
) -> None:
    survey = load_survey(session, survey_id)
    _require_creator(survey, ctx)
    viewer = normalize_address(viewer)

    perm = _permission(session, survey.survey_id, viewer)
    if perm is None:
        perm = SurveyPermission(survey_id=survey.survey_id, address=viewer)
        session.add(perm)
    perm.can_view = bool(can_view)
    perm.can_export = bool(can_export)
    perm.can_manage = bool(can_manage)
    perm.exists = True

    # Covers only the total handle that exists right now
    algebra.allow(survey.total_responses, viewer)

    events.publish(
        session,
        events.PERMISSION_GRANTED,
        {"surveyId": survey.survey_id, "viewer": viewer, "granter": ctx.sender},
        timestamp=ctx.timestamp,
    )
    logger.info(
        "permission_granted survey=%s viewer=%s view=%s export=%s manage=%s",
        survey.survey_id,
        viewer,
        can_view,
        can_export,
        can_manage,
    )


def revoke_permission(session: Session, ctx: CallContext, survey_id: int, viewer: str) -> None:
    survey = load_survey(session, survey_id)
    _require_creator(survey, ctx)
    viewer = normalize_address(viewer)

    perm = _permission(session, survey.survey_id, viewer)
    if perm is not None:
        perm.can_view = False
        perm.can_export = False
        perm.can_manage = False

    events.publish(
        session,
        events.PERMISSION_REVOKED,
        {"surveyId": survey.survey_id, "viewer": viewer, "revoker": ctx.sender},
        timestamp=ctx.timestamp,
    )
    logger.info("permission_revoked survey=%s viewer=%s", survey.survey_id, viewer)


def get_permission(session: Session, survey_id: int, address: str) -> PermissionInfo:
    survey = load_survey(session, survey_id)
    perm = _permission(session, survey.survey_id, normalize_address(address))
    if perm is None:
        return PermissionInfo(can_view=False, can_export=False, can_manage=False, exists=False)
    return PermissionInfo(
        can_view=perm.can_view,
        can_export=perm.can_export,
        can_manage=perm.can_manage,
        exists=perm.exists,
    )


def _require_viewer(session: Session, survey: Survey, ctx: CallContext) -> None:
    if not can_view(session, survey, ctx.sender):
        raise AuthorizationError("NOT_VIEWER", f"{ctx.sender} may not view results of survey {survey.survey_id}")


def authorize_my_decryption(session: Session, algebra: CiphertextAlgebra, ctx: CallContext, survey_id: int) -> None:
    survey = load_survey(session, survey_id)
    _require_viewer(session, survey, ctx)
    algebra.allow(survey.total_responses, ctx.sender)
    logger.info("decryption_authorized survey=%s caller=%s scope=total", survey.survey_id, ctx.sender)


def authorize_all_results_decryption(
    session: Session, algebra: CiphertextAlgebra, ctx: CallContext, survey_id: int
) -> List[str]:
    """Grant the caller every current result handle; returns the handles granted."""
    survey = load_survey(session, survey_id)
    _require_viewer(session, survey, ctx)

    granted = [survey.total_responses]
    algebra.allow(survey.total_responses, ctx.sender)
    counters = session.execute(
        select(AggregateCounter.handle)
        .where(AggregateCounter.survey_id == survey.survey_id)
        .order_by(AggregateCounter.question_index.asc(), AggregateCounter.bucket_index.asc())
    ).scalars()
    for handle in counters:
        if handle == ZERO_HANDLE:
            continue
        algebra.allow(handle, ctx.sender)
        granted.append(handle)
    logger.info(
        "decryption_authorized survey=%s caller=%s scope=all handles=%s",
        survey.survey_id,
        ctx.sender,
        len(granted),
    )
    return granted


__all__ = [
    "can_view",
    "can_export",
    "grant_permission",
    "revoke_permission",
    "get_permission",
    "authorize_my_decryption",
    "authorize_all_results_decryption",
]
