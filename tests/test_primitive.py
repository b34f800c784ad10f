import pytest

from astria.primitive import Uint128

U64_MAX = (1 << 64) - 1
U128_MAX = (1 << 128) - 1


@pytest.mark.parametrize(
    "value",
    [
        0,
        1,
        U64_MAX,
        U64_MAX + 1,
        1 << 127,
        (1 << 127) + (1 << 63),
        U128_MAX,
    ],
)
def test_u128_roundtrips_work(value):
    assert Uint128.from_int(value).to_int() == value


def test_low_half_holds_small_values():
    assert Uint128.from_int(U64_MAX) == Uint128(lo=U64_MAX, hi=0)


def test_value_past_u64_carries_into_high_half():
    assert Uint128.from_int(U64_MAX + 1) == Uint128(lo=0, hi=1)


def test_int_conversion_matches_to_int():
    pb = Uint128.from_int(1 << 127)
    assert int(pb) == 1 << 127


@pytest.mark.parametrize("value", [-1, U128_MAX + 1])
def test_out_of_range_values_are_rejected(value):
    with pytest.raises(ValueError):
        Uint128.from_int(value)


def test_halves_must_fit_in_u64():
    with pytest.raises(ValueError):
        Uint128(lo=U64_MAX + 1, hi=0)