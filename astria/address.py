"""Sequencer account addresses and account query responses."""

from __future__ import annotations

import hashlib
from dataclasses import dataclass

from .primitive import Uint128
from .raw import RawBalanceResponse, RawNonceResponse

ADDRESS_LEN = 20


class IncorrectAddressLength(ValueError):
    """Raised when an address is built from a buffer that is not 20 bytes long."""

    def __init__(self, received: int) -> None:
        super().__init__(f"expected {ADDRESS_LEN} bytes, got {received}")
        self.received = received


@dataclass(frozen=True)
class Address:
    """A 20 byte sequencer account address."""

    value: bytes

    def __post_init__(self) -> None:
        value = bytes(self.value)
        if len(value) != ADDRESS_LEN:
            raise IncorrectAddressLength(len(value))
        object.__setattr__(self, "value", value)

    @classmethod
    def from_slice(cls, data: bytes) -> Address:
        """Build an address from a buffer, which must be exactly 20 bytes long."""
        return cls(bytes(data))

    @classmethod
    def from_verification_key(cls, public_key: bytes) -> Address:
        """Derive the address of an ed25519 verification key.

        The address is the first 20 bytes of the sha256 hash of the key.
        """
        key_bytes = bytes(public_key)
        if len(key_bytes) != 32:
            raise ValueError(f"an ed25519 verification key is 32 bytes, got {len(key_bytes)}")
        return cls(hashlib.sha256(key_bytes).digest()[:ADDRESS_LEN])

    def to_bytes(self) -> bytes:
        return self.value

    def __bytes__(self) -> bytes:
        return self.value

    def __str__(self) -> str:
        return self.value.hex()


@dataclass(frozen=True)
class BalanceResponse:
    """The balance of an account at a given height."""

    height: int
    balance: int

    @classmethod
    def from_raw(cls, raw: RawBalanceResponse) -> BalanceResponse:
        balance = raw.balance.to_int() if raw.balance is not None else 0
        return cls(height=raw.height, balance=balance)

    def to_raw(self) -> RawBalanceResponse:
        return RawBalanceResponse(height=self.height, balance=Uint128.from_int(self.balance))


@dataclass(frozen=True)
class NonceResponse:
    """The nonce of an account at a given height."""

    height: int
    nonce: int

    @classmethod
    def from_raw(cls, raw: RawNonceResponse) -> NonceResponse:
        return cls(height=raw.height, nonce=raw.nonce)

    def to_raw(self) -> RawNonceResponse:
        return RawNonceResponse(height=self.height, nonce=self.nonce)