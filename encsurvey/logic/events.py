"""Contract event names and publisher.

Events are appended to the `contract_event` table inside the emitting call's
transaction, so a rejected call leaves no event behind. Each publish is also
logged for observability.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional
import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from encsurvey.models.event import ContractEvent

logger = logging.getLogger(__name__)

SURVEY_CREATED = "SurveyCreated"
RESPONSE_SUBMITTED = "ResponseSubmitted"
PERMISSION_GRANTED = "PermissionGranted"
PERMISSION_REVOKED = "PermissionRevoked"
SURVEY_STATUS_CHANGED = "SurveyStatusChanged"


def publish(session: Session, event_type: str, payload: Dict[str, Any], *, timestamp: int) -> None:
    """Append an event to the log of the current call."""
    logger.info("event_publish type=%s payload=%s", event_type, payload)
    session.add(
        ContractEvent(
            name=event_type,
            survey_id=payload.get("surveyId"),
            payload=dict(payload),
            timestamp=int(timestamp),
        )
    )


def list_events(session: Session, survey_id: Optional[int] = None) -> List[Dict[str, Any]]:
    """Return committed events in emission order, optionally for one survey."""
    stmt = select(ContractEvent).order_by(ContractEvent.seq.asc())
    if survey_id is not None:
        stmt = stmt.where(ContractEvent.survey_id == survey_id)
    return [
        {"seq": ev.seq, "event": ev.name, "args": dict(ev.payload), "timestamp": ev.timestamp}
        for ev in session.execute(stmt).scalars()
    ]


__all__ = [
    "SURVEY_CREATED",
    "RESPONSE_SUBMITTED",
    "PERMISSION_GRANTED",
    "PERMISSION_REVOKED",
    "SURVEY_STATUS_CHANGED",
    "publish",
    "list_events",
]
