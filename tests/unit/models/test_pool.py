"""Tests for tokens, tick ranges and pool snapshots."""

import pytest

from lpflow.errors import InvalidRange
from lpflow.math.tick_math import MAX_TICK, MIN_TICK, get_tick_bounds
from lpflow.models.pool import PoolSnapshot, PriceRegime, TickRange, is_full_range
from lpflow.models.token import Token, sort_tokens
from lpflow.models.types import (
    UINT160_MAX,
    address_sorts_before,
    check_uint,
    is_valid_address,
    normalize_address,
    validate_uint256,
)
from tests.helpers import DAI, NATIVE, USDC, WETH, make_snapshot, make_token


class TestToken:
    """Tests for the Token reference."""

    def test_address_is_lowercased(self):
        token = Token(USDC.upper().replace("0X", "0x"), 6, "USDC")
        assert token.address == USDC
        assert str(token) == "USDC"

    def test_str_falls_back_to_address(self):
        assert str(Token(DAI, 18)) == DAI

    def test_native(self):
        assert Token(NATIVE, 18).is_native
        assert not Token(DAI, 18).is_native

    @pytest.mark.parametrize("address", ["0x1234", "not an address", "0x" + "zz" * 20])
    def test_invalid_address(self, address):
        with pytest.raises(ValueError):
            Token(address, 18)

    def test_invalid_decimals(self):
        with pytest.raises(ValueError):
            Token(DAI, 256)

    def test_sorting_is_numeric(self):
        dai, usdc = make_token(DAI), make_token(USDC)
        assert dai.sorts_before(usdc)
        assert sort_tokens(usdc, dai) == (dai, usdc)
        assert sort_tokens(dai, usdc) == (dai, usdc)

    def test_mixed_case_sorting(self):
        """Checksummed text must not change the canonical order."""
        assert address_sorts_before("0xAAAA" + "0" * 36, "0xbbbb" + "0" * 36)
        with pytest.raises(ValueError):
            address_sorts_before(WETH, WETH.upper().replace("0X", "0x"))


class TestTypes:
    """Tests for shared type helpers."""

    def test_validate_uint256(self):
        assert validate_uint256(5) == "5"
        assert validate_uint256("0") == "0"
        with pytest.raises(ValueError):
            validate_uint256(-1)
        with pytest.raises(ValueError):
            validate_uint256(2**256)
        with pytest.raises(ValueError):
            validate_uint256(True)
        with pytest.raises(ValueError):
            validate_uint256("1.5")

    def test_check_uint(self):
        assert check_uint(UINT160_MAX, 160) == UINT160_MAX
        with pytest.raises(ValueError, match="overflows uint160"):
            check_uint(UINT160_MAX + 1, 160)

    def test_normalize_address(self):
        assert normalize_address("ABCD") == "0xabcd"
        with pytest.raises(ValueError):
            normalize_address("0x12", validate=True)

    @pytest.mark.parametrize(
        "address,valid",
        [(DAI, True), (DAI.upper().replace("0X", "0x"), True), ("0x12", False), (None, False)],
    )
    def test_is_valid_address(self, address, valid):
        assert is_valid_address(address) is valid


class TestTickRange:
    """Tests for TickRange validation and regimes."""

    def test_valid_range(self):
        TickRange(-100, 100).validate(10)

    @pytest.mark.parametrize(
        "lower,upper,spacing",
        [
            (100, 100, 10),
            (100, -100, 10),
            (-105, 100, 10),
            (-100, 95, 10),
            (MIN_TICK - 8, 0, 10),
            (0, MAX_TICK + 8, 10),
            (-100, 100, 0),
        ],
    )
    def test_invalid_ranges(self, lower, upper, spacing):
        with pytest.raises(InvalidRange):
            TickRange(lower, upper).validate(spacing)

    def test_full_range(self):
        full = TickRange.full_range(60)
        assert (full.lower, full.upper) == get_tick_bounds(60)
        assert full.is_full_range(60)
        assert is_full_range(full, 60)
        assert not is_full_range(TickRange(-600, 600), 60)
        full.validate(60)

    @pytest.mark.parametrize(
        "tick,expected",
        [
            (-101, PriceRegime.BELOW),
            (-100, PriceRegime.IN_RANGE),
            (0, PriceRegime.IN_RANGE),
            (99, PriceRegime.IN_RANGE),
            (100, PriceRegime.ABOVE),
            (500, PriceRegime.ABOVE),
        ],
    )
    def test_regime(self, tick, expected):
        assert TickRange(-100, 100).regime(tick) == expected


class TestPoolSnapshot:
    """Tests for PoolSnapshot invariants."""

    def test_tokens_and_index(self, snapshot):
        assert snapshot.tokens == (snapshot.token0, snapshot.token1)
        assert snapshot.index_of(DAI) == 0
        assert snapshot.index_of(make_token(USDC)) == 1
        assert snapshot.index_of(USDC.upper().replace("0X", "0x")) == 1
        with pytest.raises(ValueError, match="not in pool"):
            snapshot.index_of(WETH)

    def test_unsorted_tokens_rejected(self):
        with pytest.raises(ValueError, match="sorted"):
            make_snapshot(token0=USDC, token1=DAI)

    def test_out_of_bounds_values_rejected(self):
        with pytest.raises(ValueError):
            make_snapshot(current_tick=MAX_TICK + 1, sqrt_price_x96=1)
        with pytest.raises(ValueError):
            make_snapshot(tick_spacing=0)
        with pytest.raises(ValueError):
            make_snapshot(sqrt_price_x96=2**160)
        with pytest.raises(ValueError):
            make_snapshot(liquidity=-1)

    def test_is_frozen(self, snapshot):
        with pytest.raises(AttributeError):
            snapshot.current_tick = 5

    def test_regime(self, snapshot):
        assert snapshot.regime(TickRange(-100, 100)) == PriceRegime.IN_RANGE
        assert snapshot.regime(TickRange(10, 100)) == PriceRegime.BELOW
        assert snapshot.regime(TickRange(-100, 0)) == PriceRegime.ABOVE

    def test_snapshot_is_hashable(self):
        assert isinstance(hash(make_snapshot()), int)
        assert isinstance(make_snapshot(), PoolSnapshot)
