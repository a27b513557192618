"""Per-call execution context: who is calling, and at what ledger time."""

from __future__ import annotations

from dataclasses import dataclass

from encsurvey.logic.addresses import normalize_address


@dataclass(frozen=True)
class CallContext:
    sender: str
    timestamp: int

    @classmethod
    def of(cls, sender: str, timestamp: int) -> "CallContext":
        return cls(sender=normalize_address(sender), timestamp=int(timestamp))


__all__ = ["CallContext"]
