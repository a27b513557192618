"""ORM model for the append-only contract event log."""

from __future__ import annotations

from sqlalchemy import JSON, Column, Integer, String

from encsurvey.models.base import Base


class ContractEvent(Base):  # type: ignore[valid-type]
    __tablename__ = "contract_event"

    seq = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(64), nullable=False)
    survey_id = Column(Integer, nullable=True, index=True)
    payload = Column(JSON, nullable=False)
    timestamp = Column(Integer, nullable=False)


__all__ = ["ContractEvent"]
