"""Functional test bootstrap.

Each test gets its own in-memory SQLite database and a contract instance
whose ledger clock the test controls. HTTP tests wrap the same contract in
the FastAPI app through TestClient, so contract-level and HTTP-level
assertions observe one shared state.
"""

from __future__ import annotations

import pytest

from encsurvey.config import AppConfig, ContractConfig, DatabaseConfig, FheConfig, HttpConfig
from encsurvey.db.base import build_engine, get_sessionmaker, init_schema
from encsurvey.logic.contract import EncryptedSurveyContract

from survey_helpers import CONTRACT, LedgerClock


@pytest.fixture()
def config() -> AppConfig:
    return AppConfig(
        database=DatabaseConfig(dsn="sqlite+pysqlite:///:memory:"),
        contract=ContractConfig(address=CONTRACT, max_questions=20),
        fhe=FheConfig(secret_key="functional-test-secret-key", max_duration_days=30),
        http=HttpConfig(cors_origins=["*"]),
    )


@pytest.fixture()
def clock() -> LedgerClock:
    return LedgerClock(150)


@pytest.fixture()
def contract(config: AppConfig, clock: LedgerClock):
    engine = build_engine(config.database.dsn)
    init_schema(engine)
    yield EncryptedSurveyContract(get_sessionmaker(engine), config, clock=clock)
    engine.dispose()


@pytest.fixture()
def client(contract: EncryptedSurveyContract):
    from fastapi.testclient import TestClient

    from encsurvey.main import create_app

    with TestClient(create_app(contract=contract)) as c:
        yield c
