import pytest

from astria.address import (
    Address,
    BalanceResponse,
    IncorrectAddressLength,
    NonceResponse,
)
from astria.primitive import Uint128
from astria.raw import RawBalanceResponse, RawNonceResponse


def test_balance_roundtrip_is_correct():
    expected = BalanceResponse(height=42, balance=42)
    assert BalanceResponse.from_raw(expected.to_raw()) == expected


def test_nonce_roundtrip_is_correct():
    expected = NonceResponse(height=42, nonce=42)
    assert NonceResponse.from_raw(expected.to_raw()) == expected


def test_balance_roundtrip_through_wire_bytes():
    expected = BalanceResponse(height=10, balance=10**18)
    wire = expected.to_raw().encode()
    assert BalanceResponse.from_raw(RawBalanceResponse.decode(wire)) == expected


def test_nonce_roundtrip_through_wire_bytes():
    expected = NonceResponse(height=10, nonce=1)
    wire = expected.to_raw().encode()
    assert NonceResponse.from_raw(RawNonceResponse.decode(wire)) == expected


def test_balance_to_raw_splits_amount():
    raw = BalanceResponse(height=1, balance=2**64).to_raw()
    assert raw.balance == Uint128(lo=0, hi=1)


def test_missing_raw_balance_means_zero():
    assert BalanceResponse.from_raw(RawBalanceResponse(height=3)) == BalanceResponse(
        height=3, balance=0
    )


def test_account_of_20_bytes_is_converted_correctly():
    expected = Address(bytes([42] * 20))
    actual = Address.from_slice(list(expected.to_bytes()))
    assert actual == expected


@pytest.mark.parametrize("length", [0, 19, 21, 100])
def test_account_of_incorrect_length_gives_error(length):
    with pytest.raises(IncorrectAddressLength) as info:
        Address.from_slice(bytes([42] * length))
    assert info.value.received == length


def test_incorrect_length_message():
    with pytest.raises(IncorrectAddressLength, match="expected 20 bytes, got 19"):
        Address.from_slice(bytes(19))


def test_address_displays_as_lowercase_hex():
    address = Address(bytes.fromhex("1c0c490f1b5528d8173c5de46d131160e4b2c0c3"))
    assert str(address) == "1c0c490f1b5528d8173c5de46d131160e4b2c0c3"


def test_bytes_of_address_is_its_value():
    raw = bytes(range(20))
    assert bytes(Address(raw)) == raw


def test_address_from_verification_key_is_deterministic_and_distinct():
    first = Address.from_verification_key(bytes([1] * 32))
    again = Address.from_verification_key(bytes([1] * 32))
    other = Address.from_verification_key(bytes([2] * 32))
    assert first == again
    assert first != other
    assert len(first.to_bytes()) == 20


def test_verification_key_must_be_32_bytes():
    with pytest.raises(ValueError):
        Address.from_verification_key(bytes(31))