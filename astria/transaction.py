"""Native sequencer actions and transactions, checked and signed."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Union

from nacl.exceptions import BadSignatureError, CryptoError
from nacl.signing import SigningKey, VerifyKey

from .address import Address, IncorrectAddressLength
from .primitive import Uint128
from .raw import (
    RawAction,
    RawMintAction,
    RawSequenceAction,
    RawSignedTransaction,
    RawSudoAddressChangeAction,
    RawTransferAction,
    RawUnsignedTransaction,
    RawValidatorUpdate,
)

_SIGNATURE_LEN = 64
_ED25519_KEY_LEN = 32
_SECP256K1_KEY_LEN = 33
_KEY_TYPES = ("ed25519", "secp256k1")


class TransferActionError(ValueError):
    """A raw transfer action could not be converted."""


class SudoAddressChangeActionError(ValueError):
    """A raw sudo address change action could not be converted."""


class MintActionError(ValueError):
    """A raw mint action could not be converted."""


class ActionError(ValueError):
    """A raw action could not be converted to a native action."""


class UnsignedTransactionError(ValueError):
    """A raw unsigned transaction could not be converted."""


class SignedTransactionError(ValueError):
    """A raw signed transaction could not be reconstructed or verified."""


@dataclass(frozen=True)
class SequenceAction:
    """Opaque data for the rollup identified by ``chain_id``."""

    chain_id: bytes
    data: bytes

    def to_raw(self) -> RawSequenceAction:
        return RawSequenceAction(chain_id=bytes(self.chain_id), data=bytes(self.data))

    @classmethod
    def from_raw(cls, raw: RawSequenceAction) -> SequenceAction:
        return cls(chain_id=raw.chain_id, data=raw.data)


@dataclass(frozen=True)
class TransferAction:
    """A transfer of ``amount`` to ``to``."""

    to: Address
    amount: int

    def to_raw(self) -> RawTransferAction:
        return RawTransferAction(to=self.to.to_bytes(), amount=Uint128.from_int(self.amount))

    @classmethod
    def from_raw(cls, raw: RawTransferAction) -> TransferAction:
        try:
            to = Address.from_slice(raw.to)
        except IncorrectAddressLength as err:
            raise TransferActionError("`to` field did not contain a valid address") from err
        amount = raw.amount.to_int() if raw.amount is not None else 0
        return cls(to=to, amount=amount)


@dataclass(frozen=True)
class SudoAddressChangeAction:
    """A change of the sudo address to ``new_address``."""

    new_address: Address

    def to_raw(self) -> RawSudoAddressChangeAction:
        return RawSudoAddressChangeAction(new_address=self.new_address.to_bytes())

    @classmethod
    def from_raw(cls, raw: RawSudoAddressChangeAction) -> SudoAddressChangeAction:
        try:
            new_address = Address.from_slice(raw.new_address)
        except IncorrectAddressLength as err:
            raise SudoAddressChangeActionError(
                "`new_address` field did not contain a valid address"
            ) from err
        return cls(new_address=new_address)


@dataclass(frozen=True)
class MintAction:
    """A mint of ``amount`` to ``to``."""

    to: Address
    amount: int

    def to_raw(self) -> RawMintAction:
        return RawMintAction(to=self.to.to_bytes(), amount=Uint128.from_int(self.amount))

    @classmethod
    def from_raw(cls, raw: RawMintAction) -> MintAction:
        try:
            to = Address.from_slice(raw.to)
        except IncorrectAddressLength as err:
            raise MintActionError("`to` field did not contain a valid address") from err
        amount = raw.amount.to_int() if raw.amount is not None else 0
        return cls(to=to, amount=amount)


@dataclass(frozen=True)
class ValidatorUpdate:
    """A new voting power for the validator with ``public_key``."""

    public_key: bytes
    power: int
    key_type: str = "ed25519"

    def __post_init__(self) -> None:
        if self.key_type not in _KEY_TYPES:
            raise ValueError(f"unsupported public key type `{self.key_type}`")
        expected = _ED25519_KEY_LEN if self.key_type == "ed25519" else _SECP256K1_KEY_LEN
        if len(self.public_key) != expected:
            raise ValueError(
                f"{self.key_type} public key must be {expected} bytes, got {len(self.public_key)}"
            )
        if self.power < 0:
            raise ValueError(f"validator power must not be negative, got {self.power}")

    def to_raw(self) -> RawValidatorUpdate:
        if self.key_type == "ed25519":
            return RawValidatorUpdate(ed25519=bytes(self.public_key), power=self.power)
        return RawValidatorUpdate(secp256k1=bytes(self.public_key), power=self.power)

    @classmethod
    def from_raw(cls, raw: RawValidatorUpdate) -> ValidatorUpdate:
        if raw.ed25519 is not None:
            return cls(public_key=raw.ed25519, power=raw.power, key_type="ed25519")
        if raw.secp256k1 is not None:
            return cls(public_key=raw.secp256k1, power=raw.power, key_type="secp256k1")
        raise ValueError("validator update is missing a public key")


Action = Union[SequenceAction, TransferAction, ValidatorUpdate, SudoAddressChangeAction, MintAction]


def action_to_raw(action: Action) -> RawAction:
    """Wrap a native action into a raw action."""
    if isinstance(action, (SequenceAction, TransferAction, ValidatorUpdate,
                           SudoAddressChangeAction, MintAction)):
        return RawAction(value=action.to_raw())
    raise TypeError(f"unsupported action kind: {type(action).__name__}")


def action_from_raw(raw: RawAction) -> Action:
    """Convert a raw action into a native action, checking its contents."""
    value = raw.value
    if value is None:
        raise ActionError("oneof value was not set")
    if isinstance(value, RawSequenceAction):
        return SequenceAction.from_raw(value)
    if isinstance(value, RawTransferAction):
        try:
            return TransferAction.from_raw(value)
        except TransferActionError as err:
            raise ActionError("raw transfer action was not valid") from err
    if isinstance(value, RawValidatorUpdate):
        try:
            return ValidatorUpdate.from_raw(value)
        except ValueError as err:
            raise ActionError("raw validator update action was not valid") from err
    if isinstance(value, RawSudoAddressChangeAction):
        try:
            return SudoAddressChangeAction.from_raw(value)
        except SudoAddressChangeActionError as err:
            raise ActionError("raw sudo address change action was not valid") from err
    if isinstance(value, RawMintAction):
        try:
            return MintAction.from_raw(value)
        except MintActionError as err:
            raise ActionError("raw mint action was not valid") from err
    raise ActionError(f"unsupported raw action kind: {type(value).__name__}")


@dataclass
class UnsignedTransaction:
    """A nonce and the actions to execute, not yet signed."""

    nonce: int
    actions: list[Action] = field(default_factory=list)

    def to_raw(self) -> RawUnsignedTransaction:
        return RawUnsignedTransaction(
            nonce=self.nonce, actions=[action_to_raw(action) for action in self.actions]
        )

    @classmethod
    def from_raw(cls, raw: RawUnsignedTransaction) -> UnsignedTransaction:
        try:
            actions = [action_from_raw(action) for action in raw.actions]
        except ActionError as err:
            raise UnsignedTransactionError("constructing unsigned tx failed") from err
        return cls(nonce=raw.nonce, actions=actions)

    def sign(self, signing_key: Union[SigningKey, bytes]) -> SignedTransaction:
        """Sign the encoded transaction with an ed25519 key."""
        if not isinstance(signing_key, SigningKey):
            signing_key = SigningKey(bytes(signing_key))
        message = self.to_raw().encode()
        signature = signing_key.sign(message).signature
        return SignedTransaction(
            signature=bytes(signature),
            verification_key=bytes(signing_key.verify_key),
            transaction=self,
        )


@dataclass
class SignedTransaction:
    """An unsigned transaction with its ed25519 signature and verification key."""

    signature: bytes
    verification_key: bytes
    transaction: UnsignedTransaction

    def to_raw(self) -> RawSignedTransaction:
        return RawSignedTransaction(
            signature=bytes(self.signature),
            public_key=bytes(self.verification_key),
            transaction=self.transaction.to_raw(),
        )

    @classmethod
    def from_raw(cls, raw: RawSignedTransaction) -> SignedTransaction:
        """Reconstruct a signed transaction, verifying its signature."""
        if len(raw.signature) != _SIGNATURE_LEN:
            raise SignedTransactionError(
                "could not reconstruct an ed25519 signature from the bytes contained in the "
                "`signature` field of the raw protobuf message"
            )
        try:
            verify_key = VerifyKey(bytes(raw.public_key))
        except (CryptoError, ValueError, TypeError) as err:
            raise SignedTransactionError(
                "could not reconstruct an ed25519 verification key from the bytes contained in "
                "the `public_key` field of the raw protobuf message"
            ) from err
        if raw.transaction is None:
            raise SignedTransactionError("`transaction` field of raw protobuf message was not set")
        try:
            verify_key.verify(raw.transaction.encode(), bytes(raw.signature))
        except (BadSignatureError, CryptoError, ValueError) as err:
            raise SignedTransactionError(
                "the encoded bytes of the raw unsigned protobuf transaction could not be verified"
            ) from err
        try:
            transaction = UnsignedTransaction.from_raw(raw.transaction)
        except UnsignedTransactionError as err:
            raise SignedTransactionError(
                "the decoded raw unsigned protobuf transaction could not be converted to a "
                "native astria transaction"
            ) from err
        return cls(
            signature=bytes(raw.signature),
            verification_key=bytes(raw.public_key),
            transaction=transaction,
        )

    def actions(self) -> list[Action]:
        return self.transaction.actions