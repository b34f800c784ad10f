"""Validator sets, proposer selection and commit quorum checks."""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from typing import Iterable, Optional, Sequence

_MAX_U64 = (1 << 64) - 1
_ED25519_KEY_LEN = 32
_ADDRESS_LEN = 20


class VerificationError(ValueError):
    """Raised when data received from the network fails verification."""


@dataclass(frozen=True)
class Validator:
    """A member of a validator set with its voting power and proposer priority."""

    pub_key: bytes
    power: int
    proposer_priority: int = 0
    name: Optional[str] = None

    def __post_init__(self) -> None:
        key = bytes(self.pub_key)
        if len(key) != _ED25519_KEY_LEN:
            raise ValueError(
                f"an ed25519 public key is {_ED25519_KEY_LEN} bytes, got {len(key)}"
            )
        object.__setattr__(self, "pub_key", key)
        if not 0 <= self.power <= _MAX_U64:
            raise ValueError(
                f"voting power must fit into an unsigned 64-bit integer, got {self.power}"
            )

    @property
    def address(self) -> bytes:
        """The account address: the first 20 bytes of the sha256 of the public key."""
        return hashlib.sha256(self.pub_key).digest()[:_ADDRESS_LEN]


def does_commit_voting_power_have_quorum(committed: int, total: int) -> bool:
    """Whether ``committed`` is more than two thirds of ``total``."""
    if total < 3:
        return committed * 3 > total * 2
    return committed > total // 3 * 2


def total_voting_power(validators: Iterable[Validator]) -> int:
    """Sum the voting power of a validator set.

    Raises ``VerificationError`` if the sum does not fit into 64 bits.
    """
    total = 0
    for validator in validators:
        total += validator.power
        if total > _MAX_U64:
            raise VerificationError("total voting power exceeded u64:MAX")
    return total


def get_proposer(validators: Sequence[Validator]) -> Validator:
    """Return the validator with the highest proposer priority.

    On ties the last such validator in the set wins.
    """
    proposer: Optional[Validator] = None
    for validator in validators:
        if proposer is None or validator.proposer_priority >= proposer.proposer_priority:
            proposer = validator
    if proposer is None:
        raise VerificationError("no proposer found")
    return proposer