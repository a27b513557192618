"""FastAPI dependencies shared by the route modules."""

from __future__ import annotations

from fastapi import Depends, Header, Request

from encsurvey.logic.context import CallContext
from encsurvey.logic.contract import EncryptedSurveyContract


def get_contract(request: Request) -> EncryptedSurveyContract:
    return request.app.state.contract


def caller_address(x_caller_address: str = Header(..., alias="X-Caller-Address")) -> str:
    return x_caller_address


def call_context(
    sender: str = Depends(caller_address),
    contract: EncryptedSurveyContract = Depends(get_contract),
) -> CallContext:
    """Build the msg.sender / block.timestamp pair for a state-changing call."""
    return contract.context(sender)


__all__ = ["get_contract", "caller_address", "call_context"]
