"""Primitive value types shared by the sequencer messages."""

from __future__ import annotations

from dataclasses import dataclass

_U64_LIMIT = 1 << 64
_U128_LIMIT = 1 << 128


@dataclass(frozen=True)
class Uint128:
    """An unsigned 128-bit integer split into low and high 64-bit halves."""

    lo: int = 0
    hi: int = 0

    def __post_init__(self) -> None:
        for name, half in (("lo", self.lo), ("hi", self.hi)):
            if not 0 <= half < _U64_LIMIT:
                raise ValueError(f"`{name}` must fit into an unsigned 64-bit integer, got {half}")

    @classmethod
    def from_int(cls, value: int) -> Uint128:
        """Split a non-negative integer below 2**128 into its two halves."""
        if not 0 <= value < _U128_LIMIT:
            raise ValueError(f"value must fit into an unsigned 128-bit integer, got {value}")
        return cls(lo=value & (_U64_LIMIT - 1), hi=value >> 64)

    def to_int(self) -> int:
        """Join the two halves back into one integer."""
        return (self.hi << 64) | self.lo

    def __int__(self) -> int:
        return self.to_int()