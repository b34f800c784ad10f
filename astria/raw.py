"""Protobuf wire encoding of the raw sequencer message types."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator, Optional, Union

from .primitive import Uint128

_MAX_U64 = (1 << 64) - 1
_MAX_U32 = (1 << 32) - 1
_MIN_I64 = -(1 << 63)
_MAX_I64 = (1 << 63) - 1

_WIRE_VARINT = 0
_WIRE_FIXED64 = 1
_WIRE_LEN = 2
_WIRE_FIXED32 = 5


class DecodeError(ValueError):
    """Raised when bytes cannot be decoded as the expected message."""


def encode_varint(value: int) -> bytes:
    """Encode an unsigned 64-bit integer as a protobuf varint."""
    if not 0 <= value <= _MAX_U64:
        raise ValueError(f"varint value must be an unsigned 64-bit integer, got {value}")
    out = bytearray()
    while True:
        byte = value & 0x7F
        value >>= 7
        if value:
            out.append(byte | 0x80)
        else:
            out.append(byte)
            return bytes(out)


def decode_varint(data: bytes, pos: int = 0) -> tuple[int, int]:
    """Decode a varint starting at ``pos``; return the value and the next position."""
    result = 0
    for shift in range(0, 70, 7):
        if pos >= len(data):
            raise DecodeError("truncated varint")
        byte = data[pos]
        pos += 1
        result |= (byte & 0x7F) << shift
        if not byte & 0x80:
            if result > _MAX_U64:
                raise DecodeError("varint overflows 64 bits")
            return result, pos
    raise DecodeError("varint is longer than 10 bytes")


def _iter_fields(data: bytes) -> Iterator[tuple[int, int, Union[int, bytes]]]:
    data = bytes(data)
    pos = 0
    end_of_data = len(data)
    while pos < end_of_data:
        key, pos = decode_varint(data, pos)
        number, wire = key >> 3, key & 0x7
        if number == 0:
            raise DecodeError("field number 0 is not valid")
        value: Union[int, bytes]
        if wire == _WIRE_VARINT:
            value, pos = decode_varint(data, pos)
        elif wire in (_WIRE_LEN, _WIRE_FIXED64, _WIRE_FIXED32):
            if wire == _WIRE_LEN:
                length, pos = decode_varint(data, pos)
            else:
                length = 8 if wire == _WIRE_FIXED64 else 4
            end = pos + length
            if end > end_of_data:
                raise DecodeError(f"field {number} runs past the end of the buffer")
            value = data[pos:end]
            pos = end
        else:
            raise DecodeError(f"unsupported wire type {wire} for field {number}")
        yield number, wire, value


def _expect_varint(number: int, wire: int, value: Union[int, bytes]) -> int:
    if wire != _WIRE_VARINT:
        raise DecodeError(f"field {number} should be a varint, got wire type {wire}")
    assert isinstance(value, int)
    return value


def _expect_bytes(number: int, wire: int, value: Union[int, bytes]) -> bytes:
    if wire != _WIRE_LEN:
        raise DecodeError(
            f"field {number} should be length delimited, got wire type {wire}"
        )
    assert isinstance(value, bytes)
    return value


def _key(number: int, wire: int) -> bytes:
    return encode_varint((number << 3) | wire)


def _varint_field(number: int, value: int) -> bytes:
    if value == 0:
        return b""
    return _key(number, _WIRE_VARINT) + encode_varint(value)


def _len_field(number: int, payload: bytes) -> bytes:
    payload = bytes(payload)
    return _key(number, _WIRE_LEN) + encode_varint(len(payload)) + payload


def _bytes_field(number: int, value: bytes) -> bytes:
    if not value:
        return b""
    return _len_field(number, value)


def _check_u32(name: str, value: int) -> int:
    if not 0 <= value <= _MAX_U32:
        raise ValueError(f"`{name}` must fit into an unsigned 32-bit integer, got {value}")
    return value


def _encode_uint128(value: Uint128) -> bytes:
    return _varint_field(1, value.lo) + _varint_field(2, value.hi)


def _decode_uint128(data: bytes) -> Uint128:
    lo = hi = 0
    for number, wire, value in _iter_fields(data):
        if number == 1:
            lo = _expect_varint(number, wire, value)
        elif number == 2:
            hi = _expect_varint(number, wire, value)
    return Uint128(lo=lo, hi=hi)


@dataclass
class RawSequenceAction:
    """Opaque rollup data destined for the rollup with ``chain_id``."""

    chain_id: bytes = b""
    data: bytes = b""

    def encode(self) -> bytes:
        return _bytes_field(1, self.chain_id) + _bytes_field(2, self.data)

    @classmethod
    def decode(cls, data: bytes) -> RawSequenceAction:
        msg = cls()
        for number, wire, value in _iter_fields(data):
            if number == 1:
                msg.chain_id = _expect_bytes(number, wire, value)
            elif number == 2:
                msg.data = _expect_bytes(number, wire, value)
        return msg


@dataclass
class RawTransferAction:
    """A transfer of ``amount`` to the account ``to``."""

    to: bytes = b""
    amount: Optional[Uint128] = None

    def encode(self) -> bytes:
        out = _bytes_field(1, self.to)
        if self.amount is not None:
            out += _len_field(2, _encode_uint128(self.amount))
        return out

    @classmethod
    def decode(cls, data: bytes) -> RawTransferAction:
        msg = cls()
        for number, wire, value in _iter_fields(data):
            if number == 1:
                msg.to = _expect_bytes(number, wire, value)
            elif number == 2:
                msg.amount = _decode_uint128(_expect_bytes(number, wire, value))
        return msg


@dataclass
class RawSudoAddressChangeAction:
    """A change of the sudo address to ``new_address``."""

    new_address: bytes = b""

    def encode(self) -> bytes:
        return _bytes_field(1, self.new_address)

    @classmethod
    def decode(cls, data: bytes) -> RawSudoAddressChangeAction:
        msg = cls()
        for number, wire, value in _iter_fields(data):
            if number == 1:
                msg.new_address = _expect_bytes(number, wire, value)
        return msg


@dataclass
class RawMintAction:
    """A mint of ``amount`` to the account ``to``."""

    to: bytes = b""
    amount: Optional[Uint128] = None

    def encode(self) -> bytes:
        out = _bytes_field(1, self.to)
        if self.amount is not None:
            out += _len_field(2, _encode_uint128(self.amount))
        return out

    @classmethod
    def decode(cls, data: bytes) -> RawMintAction:
        msg = cls()
        for number, wire, value in _iter_fields(data):
            if number == 1:
                msg.to = _expect_bytes(number, wire, value)
            elif number == 2:
                msg.amount = _decode_uint128(_expect_bytes(number, wire, value))
        return msg


@dataclass
class RawValidatorUpdate:
    """A validator power update; at most one public key kind may be set."""

    ed25519: Optional[bytes] = None
    secp256k1: Optional[bytes] = None
    power: int = 0

    def encode(self) -> bytes:
        if self.ed25519 is not None and self.secp256k1 is not None:
            raise ValueError("only one public key kind may be set on a validator update")
        if not _MIN_I64 <= self.power <= _MAX_I64:
            raise ValueError(f"`power` must fit into a signed 64-bit integer, got {self.power}")
        out = b""
        if self.ed25519 is not None:
            out += _len_field(1, _len_field(1, self.ed25519))
        elif self.secp256k1 is not None:
            out += _len_field(1, _len_field(2, self.secp256k1))
        return out + _varint_field(2, self.power & _MAX_U64)

    @classmethod
    def decode(cls, data: bytes) -> RawValidatorUpdate:
        msg = cls()
        for number, wire, value in _iter_fields(data):
            if number == 1:
                msg.ed25519 = msg.secp256k1 = None
                key_data = _expect_bytes(number, wire, value)
                for key_number, key_wire, key_value in _iter_fields(key_data):
                    if key_number == 1:
                        msg.ed25519 = _expect_bytes(key_number, key_wire, key_value)
                        msg.secp256k1 = None
                    elif key_number == 2:
                        msg.secp256k1 = _expect_bytes(key_number, key_wire, key_value)
                        msg.ed25519 = None
            elif number == 2:
                power = _expect_varint(number, wire, value)
                msg.power = power - (1 << 64) if power > _MAX_I64 else power
        return msg


RawActionValue = Union[
    RawTransferAction,
    RawSequenceAction,
    RawValidatorUpdate,
    RawSudoAddressChangeAction,
    RawMintAction,
]

_ACTION_FIELDS: dict[type, int] = {
    RawTransferAction: 1,
    RawSequenceAction: 2,
    RawValidatorUpdate: 100,
    RawSudoAddressChangeAction: 101,
    RawMintAction: 102,
}
_ACTION_TYPES: dict[int, type] = {number: kind for kind, number in _ACTION_FIELDS.items()}


@dataclass
class RawAction:
    """An action whose ``value`` is one of the raw action kinds, or unset."""

    value: Optional[RawActionValue] = None

    def encode(self) -> bytes:
        if self.value is None:
            return b""
        number = _ACTION_FIELDS.get(type(self.value))
        if number is None:
            raise TypeError(f"unsupported action kind: {type(self.value).__name__}")
        return _len_field(number, self.value.encode())

    @classmethod
    def decode(cls, data: bytes) -> RawAction:
        msg = cls()
        for number, wire, value in _iter_fields(data):
            kind = _ACTION_TYPES.get(number)
            if kind is not None:
                msg.value = kind.decode(_expect_bytes(number, wire, value))
        return msg


@dataclass
class RawUnsignedTransaction:
    """A nonce and a list of actions, not yet signed."""

    nonce: int = 0
    actions: list[RawAction] = field(default_factory=list)

    def encode(self) -> bytes:
        out = _varint_field(1, _check_u32("nonce", self.nonce))
        for action in self.actions:
            out += _len_field(2, action.encode())
        return out

    @classmethod
    def decode(cls, data: bytes) -> RawUnsignedTransaction:
        msg = cls()
        for number, wire, value in _iter_fields(data):
            if number == 1:
                msg.nonce = _expect_varint(number, wire, value) & _MAX_U32
            elif number == 2:
                msg.actions.append(RawAction.decode(_expect_bytes(number, wire, value)))
        return msg


@dataclass
class RawSignedTransaction:
    """An unsigned transaction together with its signature and public key."""

    signature: bytes = b""
    public_key: bytes = b""
    transaction: Optional[RawUnsignedTransaction] = None

    def encode(self) -> bytes:
        out = _bytes_field(1, self.signature) + _bytes_field(2, self.public_key)
        if self.transaction is not None:
            out += _len_field(3, self.transaction.encode())
        return out

    @classmethod
    def decode(cls, data: bytes) -> RawSignedTransaction:
        msg = cls()
        for number, wire, value in _iter_fields(data):
            if number == 1:
                msg.signature = _expect_bytes(number, wire, value)
            elif number == 2:
                msg.public_key = _expect_bytes(number, wire, value)
            elif number == 3:
                msg.transaction = RawUnsignedTransaction.decode(
                    _expect_bytes(number, wire, value)
                )
        return msg


@dataclass
class RawBalanceResponse:
    """The balance of an account at a height."""

    height: int = 0
    balance: Optional[Uint128] = None

    def encode(self) -> bytes:
        out = _varint_field(1, self.height)
        if self.balance is not None:
            out += _len_field(2, _encode_uint128(self.balance))
        return out

    @classmethod
    def decode(cls, data: bytes) -> RawBalanceResponse:
        msg = cls()
        for number, wire, value in _iter_fields(data):
            if number == 1:
                msg.height = _expect_varint(number, wire, value)
            elif number == 2:
                msg.balance = _decode_uint128(_expect_bytes(number, wire, value))
        return msg


@dataclass
class RawNonceResponse:
    """The nonce of an account at a height."""

    height: int = 0
    nonce: int = 0

    def encode(self) -> bytes:
        return _varint_field(1, self.height) + _varint_field(
            2, _check_u32("nonce", self.nonce)
        )

    @classmethod
    def decode(cls, data: bytes) -> RawNonceResponse:
        msg = cls()
        for number, wire, value in _iter_fields(data):
            if number == 1:
                msg.height = _expect_varint(number, wire, value)
            elif number == 2:
                msg.nonce = _expect_varint(number, wire, value) & _MAX_U32
        return msg