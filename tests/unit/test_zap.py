"""Tests for single-token zap splits."""

from decimal import Decimal
from fractions import Fraction

import pytest

from lpflow.errors import InsufficientAmount, InvalidRange, StaleSnapshot
from lpflow.models.deposit import InputSide
from lpflow.models.pool import TickRange
from lpflow.zap import DEFAULT_HAIRCUT_BPS, compute_zap_split, optimal_swap_amount
from tests.helpers import DAI, USDC, make_snapshot

RANGE = TickRange(-100, 100)


class TestOptimalSwapAmount:
    """Tests for the closed-form swap amount."""

    def test_balanced_ratio_swaps_half(self):
        assert optimal_swap_amount(InputSide.TOKEN0, 1000, Fraction(1), Fraction(1)) == 500
        assert optimal_swap_amount(InputSide.TOKEN1, 1000, Fraction(1), Fraction(1)) == 500

    def test_ratio_weights_the_split(self):
        """Needing 3 token1 per token0 at price 1 means swapping 3/4 of token0."""
        assert optimal_swap_amount(InputSide.TOKEN0, 1000, Fraction(3), Fraction(1)) == 750
        assert optimal_swap_amount(InputSide.TOKEN1, 1000, Fraction(3), Fraction(1)) == 250

    def test_worse_rate_swaps_more(self):
        full = optimal_swap_amount(InputSide.TOKEN0, 10**18, Fraction(1), Fraction(1))
        lossy = optimal_swap_amount(
            InputSide.TOKEN0, 10**18, Fraction(1), Fraction(1), Fraction(99, 100)
        )
        assert lossy > full

    def test_zero_ratio_swaps_nothing(self):
        assert optimal_swap_amount(InputSide.TOKEN0, 1000, Fraction(0), Fraction(1)) == 0

    def test_non_positive_input(self):
        assert optimal_swap_amount(InputSide.TOKEN0, 0, Fraction(1), Fraction(1)) == 0

    def test_invalid_price(self):
        with pytest.raises(ValueError):
            optimal_swap_amount(InputSide.TOKEN0, 1000, Fraction(1), Fraction(0))


class TestComputeZapSplit:
    """Tests for compute_zap_split."""

    def test_in_range_token0_input(self, snapshot):
        amount = 10**18
        split = compute_zap_split(snapshot, RANGE, InputSide.TOKEN0, amount)

        assert split.input_token.address == DAI
        assert 0 < split.swap_amount < amount
        # Half minus the 0.1% haircut
        assert split.swap_amount == pytest.approx(amount / 2 * 0.999, rel=1e-6)
        assert split.swap_output == split.swap_amount
        assert split.deposit_amount0 <= amount - split.swap_amount
        assert split.deposit_amount1 <= split.swap_output
        assert split.liquidity > 0
        assert split.leftover0 + split.leftover1 < amount // 100

    def test_in_range_token1_input(self, snapshot):
        amount = 5 * 10**6
        split = compute_zap_split(snapshot, RANGE, InputSide.TOKEN1, amount)
        assert split.input_token.address == USDC
        assert 0 < split.swap_amount < amount
        assert split.deposit_amount0 > 0
        assert split.deposit_amount1 > 0

    def test_haircut_reduces_swap(self, snapshot):
        plain = compute_zap_split(snapshot, RANGE, InputSide.TOKEN0, 10**18, haircut_bps=0)
        shaved = compute_zap_split(snapshot, RANGE, InputSide.TOKEN0, 10**18)
        assert DEFAULT_HAIRCUT_BPS == 10
        assert shaved.swap_amount == plain.swap_amount - plain.swap_amount * 10 // 10_000

    def test_swap_rate_accepts_decimal(self, snapshot):
        split = compute_zap_split(
            snapshot, RANGE, InputSide.TOKEN0, 10**18, swap_rate=Decimal("0.997")
        )
        assert split.swap_output < split.swap_amount

    def test_below_range_keeps_token0(self):
        snapshot = make_snapshot(current_tick=-500)
        split = compute_zap_split(snapshot, RANGE, InputSide.TOKEN0, 10**18)
        assert split.swap_amount == 0
        assert split.deposit_amount1 == 0
        assert split.deposit_amount0 > 0

    def test_below_range_swaps_all_token1(self):
        snapshot = make_snapshot(current_tick=-500)
        split = compute_zap_split(snapshot, RANGE, InputSide.TOKEN1, 10**18)
        assert split.swap_amount == 10**18
        assert split.deposit_amount1 == 0

    def test_above_range_swaps_all_token0(self):
        snapshot = make_snapshot(current_tick=500)
        split = compute_zap_split(snapshot, RANGE, InputSide.TOKEN0, 10**18)
        assert split.swap_amount == 10**18
        assert split.deposit_amount0 == 0
        assert split.deposit_amount1 > 0

    def test_required_amounts(self, snapshot):
        """The router pulls the whole input and nothing of the other token."""
        split = compute_zap_split(snapshot, RANGE, InputSide.TOKEN0, 10**18)
        assert split.required_amounts() == {DAI: 10**18, USDC: split.deposit_amount1}

    @pytest.mark.parametrize("rate", [0, -1, Decimal("1.2"), 2])
    def test_invalid_swap_rate(self, snapshot, rate):
        with pytest.raises(ValueError):
            compute_zap_split(snapshot, RANGE, InputSide.TOKEN0, 10**18, swap_rate=rate)

    def test_invalid_haircut(self, snapshot):
        with pytest.raises(ValueError):
            compute_zap_split(snapshot, RANGE, InputSide.TOKEN0, 10**18, haircut_bps=10_000)

    def test_zero_amount(self, snapshot):
        with pytest.raises(InsufficientAmount):
            compute_zap_split(snapshot, RANGE, InputSide.TOKEN0, 0)

    def test_invalid_range(self, snapshot):
        with pytest.raises(InvalidRange):
            compute_zap_split(snapshot, TickRange(-105, 100), InputSide.TOKEN0, 10**18)

    def test_stale_snapshot(self):
        with pytest.raises(StaleSnapshot):
            compute_zap_split(
                make_snapshot(current_tick=-500, sqrt_price_x96=0),
                RANGE,
                InputSide.TOKEN0,
                10**18,
            )
