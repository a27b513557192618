"""ORM model for per-(survey, address) application capabilities."""

from __future__ import annotations

from sqlalchemy import Boolean, Column, Integer, String

from encsurvey.models.base import Base


class SurveyPermission(Base):  # type: ignore[valid-type]
    __tablename__ = "survey_permission"

    survey_id = Column(Integer, primary_key=True)
    address = Column(String(42), primary_key=True)
    can_view = Column(Boolean, nullable=False, default=False)
    can_export = Column(Boolean, nullable=False, default=False)
    can_manage = Column(Boolean, nullable=False, default=False)
    # Stays true after revoke so "revoked" differs from "never configured"
    exists = Column(Boolean, nullable=False, default=False)


__all__ = ["SurveyPermission"]
