"""Address and handle normalisation helpers."""

from __future__ import annotations

import re

from encsurvey.logic.errors import InvalidInputError

_ADDRESS_RE = re.compile(r"^0x[0-9a-f]{40}$")
_HANDLE_RE = re.compile(r"^0x[0-9a-f]{64}$")

ZERO_HANDLE = "0x" + "0" * 64


def normalize_address(address: str) -> str:
    """Return `address` lowercased, rejecting anything but a 20-byte hex string."""
    value = (address or "").strip().lower()
    if not _ADDRESS_RE.match(value):
        raise InvalidInputError("INVALID_ADDRESS", f"not a valid address: {address!r}")
    return value


def normalize_handle(handle: str) -> str:
    value = (handle or "").strip().lower()
    if not _HANDLE_RE.match(value):
        raise InvalidInputError("INVALID_HANDLE", f"not a valid ciphertext handle: {handle!r}")
    return value


__all__ = ["ZERO_HANDLE", "normalize_address", "normalize_handle"]
