"""Application factory for the encrypted survey service."""

from __future__ import annotations

import logging
from typing import Callable, Optional

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError

from encsurvey.config import AppConfig, load_config
from encsurvey.db.base import get_engine, get_sessionmaker, init_schema
from encsurvey.http.problem import (
    handle_http_exception,
    handle_request_validation_error,
    handle_survey_error,
    handle_unexpected_error,
)
from encsurvey.http.request_id import RequestIdMiddleware
from encsurvey.logging_setup import configure_logging
from encsurvey.logic.contract import EncryptedSurveyContract
from encsurvey.logic.errors import SurveyError
from encsurvey.middleware.cors import apply_cors
from encsurvey.routes import api_router

logger = logging.getLogger(__name__)


def build_contract(config: AppConfig, *, clock: Optional[Callable[[], int]] = None) -> EncryptedSurveyContract:
    """Bind a contract instance to the configured database, creating tables if needed."""
    engine = get_engine(config.database.dsn)
    init_schema(engine)
    return EncryptedSurveyContract(get_sessionmaker(engine), config, clock=clock)


def create_app(
    config: Optional[AppConfig] = None,
    *,
    contract: Optional[EncryptedSurveyContract] = None,
) -> FastAPI:
    config = config or (contract.config if contract is not None else load_config())
    configure_logging(config.logging.level)
    contract = contract or build_contract(config)

    app = FastAPI(title="Encrypted Survey Service")
    app.state.contract = contract

    app.add_exception_handler(SurveyError, handle_survey_error)
    app.add_exception_handler(HTTPException, handle_http_exception)
    app.add_exception_handler(RequestValidationError, handle_request_validation_error)
    app.add_exception_handler(Exception, handle_unexpected_error)

    apply_cors(app, origins=config.http.cors_origins)
    app.add_middleware(RequestIdMiddleware)

    @app.get("/health")
    def health() -> dict:
        return {"status": "ok", "contract": contract.address, "surveys": contract.survey_counter()}

    app.include_router(api_router, prefix="/api/v1")
    logger.info("app_created contract=%s db=%s", contract.address, config.database.dsn.split("@")[-1])
    return app
