"""APIRouter registration for the encrypted survey service."""

from __future__ import annotations

from fastapi import APIRouter

from encsurvey.routes.fhe import router as fhe_router
from encsurvey.routes.permissions import router as permissions_router
from encsurvey.routes.responses import router as responses_router
from encsurvey.routes.surveys import router as surveys_router

api_router = APIRouter()
api_router.include_router(surveys_router, tags=["Surveys"])
api_router.include_router(responses_router, tags=["Responses"])
api_router.include_router(permissions_router, tags=["Permissions"])
api_router.include_router(fhe_router, tags=["FHE"])

__all__ = ["api_router"]
