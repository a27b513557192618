"""Encrypted 32-bit integer algebra consumed by the survey contract.

The contract never sees plaintext. It manipulates opaque handles through the
operations below, each of which yields a *fresh* handle that carries no ACL
grants until the contract extends them with `allow` / `allow_this`.

Operands of the binary operations may be handles (`str`) or plaintext scalars
(`int`), mirroring the scalar overloads of encrypted-integer libraries.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Union

Operand = Union[str, int]

UINT32_MOD = 2**32


class CiphertextAlgebra(ABC):
    """Interface to an encrypted-integer backend bound to one contract call."""

    contract_address: str

    @abstractmethod
    def from_external(self, external_handle: str, proof: str, user: str) -> str:
        """Validate an externally encrypted input and import it as a fresh handle."""

    @abstractmethod
    def as_encrypted(self, value: int) -> str:
        """Trivially encrypt a plaintext constant."""

    @abstractmethod
    def eq(self, a: Operand, b: Operand) -> str: ...

    @abstractmethod
    def gt(self, a: Operand, b: Operand) -> str: ...

    @abstractmethod
    def bit_and(self, a: Operand, b: Operand) -> str: ...

    @abstractmethod
    def add(self, a: Operand, b: Operand) -> str: ...

    @abstractmethod
    def select(self, condition: str, if_true: Operand, if_false: Operand) -> str: ...

    @abstractmethod
    def allow(self, handle: str, address: str) -> None:
        """Grant `address` the right to request decryption of `handle`."""

    def allow_this(self, handle: str) -> None:
        self.allow(handle, self.contract_address)

    @abstractmethod
    def is_allowed(self, handle: str, address: str) -> bool: ...


__all__ = ["CiphertextAlgebra", "Operand", "UINT32_MOD"]
