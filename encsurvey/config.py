"""Configuration utilities for the encrypted survey service.

This module loads application configuration with the following rules:
- Primary source: `encsurvey_config.json` at the project root.
- Overrides: environment variables, then optional text files under `config/`.
- Validation: Pydantic models enforce required fields and value constraints.
"""

from __future__ import annotations

import json
import logging
import os
import re
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, Field, ValidationError as PydanticValidationError, field_validator

from encsurvey.logging_setup import LEVELS

CONFIG_DIR = Path("config")
ROOT_CONFIG_FILE = Path("encsurvey_config.json")
logger = logging.getLogger(__name__)

_ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")

DEFAULT_CONTRACT_ADDRESS = "0x5fbdb2315678afecb367f032d93f642f64180aa3"


def _read_config_file(rel_path: str) -> Optional[str]:
    path = CONFIG_DIR / rel_path
    try:
        if path.exists():
            return path.read_text(encoding="utf-8").strip()
    except (OSError, UnicodeDecodeError) as e:
        logger.warning("Failed to read override %s: %s", path, e)
        return None
    return None


def _env(key: str, default: Optional[str] = None) -> Optional[str]:
    return os.environ.get(key, default)


class DatabaseConfig(BaseModel):
    dsn: str

    @field_validator("dsn")
    @classmethod
    def dsn_must_be_non_empty(cls, v: str) -> str:
        if not isinstance(v, str) or not v.strip():
            raise ValueError("database.dsn must be a non-empty string")
        return v


class ContractConfig(BaseModel):
    address: str
    max_questions: int = Field(default=20, gt=0)

    @field_validator("address")
    @classmethod
    def address_must_be_hex(cls, v: str) -> str:
        if not _ADDRESS_RE.match(v or ""):
            raise ValueError("contract.address must be a 0x-prefixed 20-byte hex string")
        return v.lower()


class FheConfig(BaseModel):
    secret_key: str = Field(min_length=16)
    max_duration_days: int = Field(default=365, gt=0)


class HttpConfig(BaseModel):
    cors_origins: List[str] = Field(default_factory=lambda: ["*"])


class LoggingConfig(BaseModel):
    level: str = "INFO"

    @field_validator("level")
    @classmethod
    def level_must_be_known(cls, v: str) -> str:
        v = (v or "").strip().upper()
        if v not in LEVELS:
            raise ValueError(f"logging.level must be one of {', '.join(LEVELS)}")
        return v


class AppConfig(BaseModel):
    database: DatabaseConfig
    contract: ContractConfig
    fhe: FheConfig
    http: HttpConfig = Field(default_factory=HttpConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


def _read_json_file(path: Path) -> dict:
    try:
        if path.exists():
            return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        logger.error("Failed to read JSON config %s: %s", path, e)
    return {}


def load_config() -> AppConfig:
    """Load configuration with validation.

    Precedence (highest first):
    1) Environment variables
    2) Text files in `config/` (optional)
    3) encsurvey_config.json at project root (primary base)
    4) Safe defaults for development
    """

    base = _read_json_file(ROOT_CONFIG_FILE)

    def _base(path: str, default: Optional[str] = None) -> Optional[str]:
        cur: object = base
        for key in path.split("."):
            if not isinstance(cur, dict) or key not in cur:
                return default
            cur = cur[key]
        if isinstance(cur, list):
            return ",".join(str(x) for x in cur)
        return str(cur) if cur is not None else default

    dsn = _env("DATABASE_URL") or _read_config_file("database.url") or _base("database.dsn") or "sqlite+pysqlite:///:memory:"

    contract_address = (
        _env("CONTRACT_ADDRESS") or _read_config_file("contract.address") or _base("contract.address", DEFAULT_CONTRACT_ADDRESS)
    ).strip()
    max_questions_text = _env("SURVEY_MAX_QUESTIONS") or _read_config_file("survey.max_questions") or _base("contract.max_questions", "20")

    # Development key only; deployments override through FHE_SECRET_KEY
    secret_key = _env("FHE_SECRET_KEY") or _read_config_file("fhe.secret_key") or _base("fhe.secret_key", "encsurvey-development-key")
    max_days_text = (
        _env("DECRYPTION_MAX_DURATION_DAYS") or _read_config_file("fhe.max_duration_days") or _base("fhe.max_duration_days", "365")
    )

    origins_text = _env("CORS_ORIGINS") or _read_config_file("http.cors_origins") or _base("http.cors_origins", "*")
    log_level = _env("LOG_LEVEL") or _read_config_file("logging.level") or _base("logging.level", "INFO")

    origins = [o.strip() for o in str(origins_text).split(",") if o.strip()]

    try:
        cfg = AppConfig(
            database=DatabaseConfig(dsn=dsn),
            contract=ContractConfig(address=contract_address, max_questions=int(str(max_questions_text).strip())),
            fhe=FheConfig(secret_key=str(secret_key), max_duration_days=int(str(max_days_text).strip())),
            http=HttpConfig(cors_origins=origins or ["*"]),
            logging=LoggingConfig(level=str(log_level)),
        )
        return cfg
    except (PydanticValidationError, ValueError) as e:
        logger.error("Invalid application configuration: %s", e)
        raise


__all__ = [
    "AppConfig",
    "DatabaseConfig",
    "ContractConfig",
    "FheConfig",
    "HttpConfig",
    "LoggingConfig",
    "load_config",
]
