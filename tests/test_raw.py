import pytest

from astria.primitive import Uint128
from astria.raw import (
    DecodeError,
    RawAction,
    RawBalanceResponse,
    RawMintAction,
    RawNonceResponse,
    RawSequenceAction,
    RawSignedTransaction,
    RawSudoAddressChangeAction,
    RawTransferAction,
    RawUnsignedTransaction,
    RawValidatorUpdate,
    decode_varint,
    encode_varint,
)


def test_varint_of_300_matches_wire_format():
    assert encode_varint(300) == b"\xac\x02"


def test_varint_of_zero_is_single_byte():
    assert encode_varint(0) == b"\x00"


@pytest.mark.parametrize("value", [0, 1, 127, 128, 300, 2**32, 2**64 - 1])
def test_varint_roundtrip(value):
    encoded = encode_varint(value)
    assert decode_varint(encoded, 0) == (value, len(encoded))


def test_decode_varint_respects_start_position():
    data = b"\xff" + encode_varint(300)
    assert decode_varint(data, 1) == (300, len(data))


@pytest.mark.parametrize("value", [-1, 2**64])
def test_encode_varint_rejects_out_of_range(value):
    with pytest.raises(ValueError):
        encode_varint(value)


def test_truncated_varint_fails():
    with pytest.raises(DecodeError):
        decode_varint(encode_varint(300)[:-1], 0)


def test_overlong_varint_fails():
    with pytest.raises(DecodeError):
        decode_varint(b"\x80" * 11, 0)


def test_default_messages_encode_to_nothing():
    assert RawNonceResponse().encode() == b""
    assert RawSequenceAction().encode() == b""
    assert RawAction().encode() == b""


def test_sequence_action_roundtrip():
    msg = RawSequenceAction(chain_id=b"test-chain", data=b"payload")
    assert RawSequenceAction.decode(msg.encode()) == msg


@pytest.mark.parametrize("kind", [RawTransferAction, RawMintAction])
def test_amount_actions_roundtrip(kind):
    msg = kind(to=bytes(range(20)), amount=Uint128.from_int(10**18))
    assert kind.decode(msg.encode()) == msg


def test_transfer_without_amount_roundtrips_as_unset():
    msg = RawTransferAction(to=b"\x01" * 20)
    assert RawTransferAction.decode(msg.encode()).amount is None


def test_sudo_address_change_roundtrip():
    msg = RawSudoAddressChangeAction(new_address=b"\x42" * 20)
    assert RawSudoAddressChangeAction.decode(msg.encode()) == msg


@pytest.mark.parametrize("power", [0, 10, -5, 2**63 - 1, -(2**63)])
def test_validator_update_roundtrip(power):
    msg = RawValidatorUpdate(ed25519=b"\x07" * 32, power=power)
    assert RawValidatorUpdate.decode(msg.encode()) == msg


def test_validator_update_secp256k1_roundtrip():
    msg = RawValidatorUpdate(secp256k1=b"\x02" * 33, power=3)
    assert RawValidatorUpdate.decode(msg.encode()) == msg


def test_validator_update_with_two_keys_is_rejected():
    with pytest.raises(ValueError):
        RawValidatorUpdate(ed25519=b"a", secp256k1=b"b").encode()


@pytest.mark.parametrize(
    "value",
    [
        RawSequenceAction(chain_id=b"c", data=b"d"),
        RawSequenceAction(),
        RawTransferAction(to=b"\x01" * 20, amount=Uint128.from_int(5)),
        RawValidatorUpdate(ed25519=b"\x03" * 32, power=1),
        RawSudoAddressChangeAction(new_address=b"\x04" * 20),
        RawMintAction(to=b"\x05" * 20, amount=Uint128.from_int(7)),
    ],
)
def test_action_roundtrip_keeps_kind(value):
    decoded = RawAction.decode(RawAction(value=value).encode())
    assert decoded == RawAction(value=value)


def test_unset_action_decodes_as_unset():
    assert RawAction.decode(b"") == RawAction(value=None)


def test_unsigned_transaction_roundtrip():
    msg = RawUnsignedTransaction(
        nonce=1,
        actions=[
            RawAction(value=RawSequenceAction(chain_id=b"a", data=b"b")),
            RawAction(),
            RawAction(value=RawTransferAction(to=b"\x09" * 20, amount=Uint128.from_int(333_333))),
        ],
    )
    assert RawUnsignedTransaction.decode(msg.encode()) == msg


def test_unsigned_transaction_nonce_must_fit_u32():
    with pytest.raises(ValueError):
        RawUnsignedTransaction(nonce=2**32).encode()


def test_signed_transaction_roundtrip():
    msg = RawSignedTransaction(
        signature=b"\x11" * 64,
        public_key=b"\x22" * 32,
        transaction=RawUnsignedTransaction(nonce=4),
    )
    assert RawSignedTransaction.decode(msg.encode()) == msg


def test_signed_transaction_without_transaction_stays_unset():
    msg = RawSignedTransaction(signature=b"s", public_key=b"p")
    assert RawSignedTransaction.decode(msg.encode()).transaction is None


def test_balance_response_roundtrip():
    msg = RawBalanceResponse(height=10, balance=Uint128.from_int(10**18))
    assert RawBalanceResponse.decode(msg.encode()) == msg


def test_nonce_response_roundtrip():
    msg = RawNonceResponse(height=10, nonce=1)
    assert RawNonceResponse.decode(msg.encode()) == msg


def test_unknown_fields_are_skipped():
    msg = RawNonceResponse(height=5, nonce=7)
    unknown = encode_varint(15 << 3) + encode_varint(9)
    assert RawNonceResponse.decode(msg.encode() + unknown) == msg


def test_wrong_wire_type_fails():
    with pytest.raises(DecodeError):
        RawSequenceAction.decode(RawNonceResponse(height=5).encode())


def test_truncated_length_delimited_field_fails():
    with pytest.raises(DecodeError):
        RawSequenceAction.decode(RawSequenceAction(chain_id=b"abc").encode()[:-1])