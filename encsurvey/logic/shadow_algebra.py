"""Plaintext-shadow implementation of the ciphertext algebra.

Each handle is an opaque 32-byte identifier; the integer it stands for is
kept beside it in the `ciphertext` table and is only ever read back through
the decryption oracle. Ciphertexts and ACL grants are written through the
caller's SQLAlchemy session, so they commit or roll back together with the
contract call that produced them.

This backend models the interface of an encrypted-integer library. It is not
cryptographically secure.
"""

from __future__ import annotations

import hashlib
import hmac
import logging
from typing import Optional, Set

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from encsurvey.logic.addresses import ZERO_HANDLE, normalize_address, normalize_handle
from encsurvey.logic.ciphertext import UINT32_MOD, CiphertextAlgebra, Operand
from encsurvey.logic.errors import AuthorizationError, InvalidInputError, InvalidProofError
from encsurvey.models.ciphertext import AclGrant, CiphertextRecord

logger = logging.getLogger(__name__)

ORIGIN_EXTERNAL = "external"
ORIGIN_INPUT = "input"
ORIGIN_TRIVIAL = "trivial"
ORIGIN_DERIVED = "derived"


def _sign(secret_key: str, message: str) -> str:
    return hmac.new(secret_key.encode("utf-8"), message.encode("utf-8"), hashlib.sha256).hexdigest()


def input_proof(secret_key: str, external_handle: str, contract_address: str, user: str) -> str:
    """Proof binding an external ciphertext to one (contract, user) pair."""
    return "0x" + _sign(secret_key, f"input|{external_handle}|{contract_address}|{user}")


class ShadowAlgebra(CiphertextAlgebra):
    def __init__(self, session: Session, contract_address: str, secret_key: str) -> None:
        self.session = session
        self.contract_address = normalize_address(contract_address)
        self._secret_key = secret_key
        self._next_seq: Optional[int] = None
        # Handles produced during this call are usable by the contract without a grant
        self._transient: Set[str] = set()

    # ------------------------------------------------------------------
    # storage helpers
    # ------------------------------------------------------------------

    def _allocate_seq(self) -> int:
        if self._next_seq is None:
            current = self.session.execute(select(func.max(CiphertextRecord.seq))).scalar()
            self._next_seq = int(current or 0) + 1
        seq = self._next_seq
        self._next_seq += 1
        return seq

    def _new(self, value: int, origin: str, owner: Optional[str] = None) -> str:
        seq = self._allocate_seq()
        handle = "0x" + _sign(self._secret_key, f"handle|{origin}|{seq}")
        self.session.add(
            CiphertextRecord(handle=handle, value=int(value) % UINT32_MOD, origin=origin, owner=owner, seq=seq)
        )
        self.session.flush()
        if origin != ORIGIN_EXTERNAL:
            self._transient.add(handle)
        return handle

    def _record(self, handle: str) -> CiphertextRecord:
        record = self.session.get(CiphertextRecord, handle)
        if record is None:
            raise InvalidInputError("UNKNOWN_HANDLE", f"unknown ciphertext handle {handle}")
        return record

    def _usable(self, handle: str) -> bool:
        return handle in self._transient or self.is_allowed(handle, self.contract_address)

    def _value(self, operand: Operand) -> int:
        if isinstance(operand, int):
            return operand % UINT32_MOD
        handle = normalize_handle(operand)
        if handle == ZERO_HANDLE:
            # Uninitialised encrypted values behave as zero
            return 0
        record = self._record(handle)
        if record.origin == ORIGIN_EXTERNAL or not self._usable(handle):
            raise AuthorizationError("HANDLE_NOT_ALLOWED", f"contract may not use handle {handle}")
        return int(record.value)

    # ------------------------------------------------------------------
    # client-side encryption
    # ------------------------------------------------------------------

    def encrypt_input(self, user: str, value: int) -> tuple[str, str]:
        """Encrypt `value` for submission by `user` to this contract."""
        if not 0 <= int(value) < UINT32_MOD:
            raise InvalidInputError("INPUT_OUT_OF_RANGE", "encrypted inputs must fit in 32 bits")
        owner = normalize_address(user)
        handle = self._new(value, ORIGIN_EXTERNAL, owner=owner)
        return handle, input_proof(self._secret_key, handle, self.contract_address, owner)

    # ------------------------------------------------------------------
    # algebra
    # ------------------------------------------------------------------

    def from_external(self, external_handle: str, proof: str, user: str) -> str:
        handle = normalize_handle(external_handle)
        owner = normalize_address(user)
        expected = input_proof(self._secret_key, handle, self.contract_address, owner)
        if not hmac.compare_digest(expected, (proof or "").strip().lower()):
            logger.info("input_proof_rejected handle=%s user=%s", handle, owner)
            raise InvalidProofError()
        record = self.session.get(CiphertextRecord, handle)
        if record is None or record.origin != ORIGIN_EXTERNAL or record.owner != owner:
            logger.info("input_binding_rejected handle=%s user=%s", handle, owner)
            raise InvalidProofError("encrypted input is not bound to this caller")
        return self._new(int(record.value), ORIGIN_INPUT)

    def as_encrypted(self, value: int) -> str:
        return self._new(value, ORIGIN_TRIVIAL)

    def eq(self, a: Operand, b: Operand) -> str:
        return self._new(int(self._value(a) == self._value(b)), ORIGIN_DERIVED)

    def gt(self, a: Operand, b: Operand) -> str:
        return self._new(int(self._value(a) > self._value(b)), ORIGIN_DERIVED)

    def bit_and(self, a: Operand, b: Operand) -> str:
        return self._new(self._value(a) & self._value(b), ORIGIN_DERIVED)

    def add(self, a: Operand, b: Operand) -> str:
        return self._new(self._value(a) + self._value(b), ORIGIN_DERIVED)

    def select(self, condition: str, if_true: Operand, if_false: Operand) -> str:
        chosen = if_true if self._value(condition) else if_false
        return self._new(self._value(chosen), ORIGIN_DERIVED)

    def allow(self, handle: str, address: str) -> None:
        handle = normalize_handle(handle)
        address = normalize_address(address)
        if handle == ZERO_HANDLE:
            raise InvalidInputError("UNINITIALIZED_HANDLE", "cannot grant access to an uninitialised handle")
        self._record(handle)
        if not self._usable(handle):
            raise AuthorizationError("HANDLE_NOT_ALLOWED", f"contract may not share handle {handle}")
        if self.session.get(AclGrant, (handle, address)) is None:
            self.session.add(AclGrant(handle=handle, address=address))
            self.session.flush()

    def is_allowed(self, handle: str, address: str) -> bool:
        handle = normalize_handle(handle)
        address = normalize_address(address)
        return self.session.get(AclGrant, (handle, address)) is not None


__all__ = [
    "ShadowAlgebra",
    "input_proof",
    "ORIGIN_EXTERNAL",
    "ORIGIN_INPUT",
    "ORIGIN_TRIVIAL",
    "ORIGIN_DERIVED",
]
