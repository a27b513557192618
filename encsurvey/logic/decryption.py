"""Off-chain user-decryption oracle.

A user first obtains a `DecryptionToken`: a signed capability bound to their
address, a set of contract addresses and a validity window. The oracle then
returns plaintexts only for handles that both the user and the named contract
hold ACL grants on. Any handle that fails the check rejects the whole
request.
"""

from __future__ import annotations

import hashlib
import hmac
import logging
from typing import Dict, Iterable, Sequence, Tuple

from sqlalchemy.orm import Session

from encsurvey.logic.addresses import ZERO_HANDLE, normalize_address, normalize_handle
from encsurvey.logic.errors import DecryptionDeniedError, InvalidInputError
from encsurvey.models.ciphertext import AclGrant, CiphertextRecord
from encsurvey.models.schemas import DecryptionToken

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 86400


def _token_message(user: str, contracts: Iterable[str], start_timestamp: int, duration_days: int) -> str:
    return f"token|{user}|{','.join(sorted(contracts))}|{int(start_timestamp)}|{int(duration_days)}"


def _token_signature(secret_key: str, message: str) -> str:
    return "0x" + hmac.new(secret_key.encode("utf-8"), message.encode("utf-8"), hashlib.sha256).hexdigest()


def issue_token(
    secret_key: str,
    user: str,
    contract_addresses: Sequence[str],
    start_timestamp: int,
    duration_days: int,
    *,
    max_duration_days: int = 365,
) -> DecryptionToken:
    user = normalize_address(user)
    contracts = sorted({normalize_address(c) for c in contract_addresses})
    if not contracts:
        raise InvalidInputError("EMPTY_CONTRACT_SET", "a decryption token must name at least one contract")
    if not 0 < int(duration_days) <= max_duration_days:
        raise InvalidInputError(
            "INVALID_TOKEN_DURATION", f"duration_days must be between 1 and {max_duration_days}"
        )
    message = _token_message(user, contracts, start_timestamp, duration_days)
    logger.info("decryption_token_issued user=%s contracts=%s days=%s", user, len(contracts), duration_days)
    return DecryptionToken(
        user_address=user,
        contract_addresses=contracts,
        start_timestamp=int(start_timestamp),
        duration_days=int(duration_days),
        signature=_token_signature(secret_key, message),
    )


def verify_token(secret_key: str, token: DecryptionToken, now: int) -> str:
    """Check signature and validity window; return the token's user address."""
    user = normalize_address(token.user_address)
    contracts = [normalize_address(c) for c in token.contract_addresses]
    expected = _token_signature(
        secret_key, _token_message(user, contracts, token.start_timestamp, token.duration_days)
    )
    if not hmac.compare_digest(expected, (token.signature or "").lower()):
        raise DecryptionDeniedError("INVALID_DECRYPTION_TOKEN", "decryption token signature is invalid")
    expires_at = token.start_timestamp + token.duration_days * SECONDS_PER_DAY
    if not token.start_timestamp <= int(now) < expires_at:
        raise DecryptionDeniedError("DECRYPTION_TOKEN_EXPIRED", "decryption token is outside its validity window")
    return user


def user_decrypt(
    session: Session,
    secret_key: str,
    pairs: Sequence[Tuple[str, str]],
    token: DecryptionToken,
    now: int,
) -> Dict[str, int]:
    """Decrypt (handle, contract) pairs for the token holder."""
    user = verify_token(secret_key, token, now)
    allowed_contracts = {normalize_address(c) for c in token.contract_addresses}
    values: Dict[str, int] = {}
    for raw_handle, raw_contract in pairs:
        handle = normalize_handle(raw_handle)
        contract = normalize_address(raw_contract)
        if contract not in allowed_contracts:
            raise DecryptionDeniedError(
                "DECRYPTION_NOT_ALLOWED", f"token does not cover contract {contract}"
            )
        if handle == ZERO_HANDLE:
            values[handle] = 0
            continue
        record = session.get(CiphertextRecord, handle)
        user_granted = session.get(AclGrant, (handle, user)) is not None
        contract_granted = session.get(AclGrant, (handle, contract)) is not None
        if record is None or not (user_granted and contract_granted):
            logger.info("decryption_denied user=%s handle=%s", user, handle)
            raise DecryptionDeniedError(
                "DECRYPTION_NOT_ALLOWED", f"{user} is not allowed to decrypt {handle}"
            )
        values[handle] = int(record.value)
    logger.info("user_decrypt user=%s handles=%s", user, len(values))
    return values


__all__ = ["SECONDS_PER_DAY", "issue_token", "verify_token", "user_decrypt"]
