"""ORM models backing the plaintext-shadow ciphertext algebra and its ACL."""

from __future__ import annotations

from sqlalchemy import BigInteger, Column, Integer, String

from encsurvey.models.base import Base


class CiphertextRecord(Base):  # type: ignore[valid-type]
    __tablename__ = "ciphertext"

    handle = Column(String(66), primary_key=True)
    # Shadow plaintext; never exposed except through the decryption oracle
    value = Column(BigInteger, nullable=False)
    origin = Column(String(16), nullable=False)
    # External inputs are bound to the address that encrypted them
    owner = Column(String(42), nullable=True)
    seq = Column(Integer, nullable=False, unique=True)


class AclGrant(Base):  # type: ignore[valid-type]
    __tablename__ = "acl_grant"

    handle = Column(String(66), primary_key=True)
    address = Column(String(42), primary_key=True)


__all__ = ["CiphertextRecord", "AclGrant"]
