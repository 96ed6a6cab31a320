"""Tests for ERC20 calldata encoding."""

import pytest

from lpflow.chain.encoding import (
    ERC20_APPROVE_SELECTOR,
    build_approve_transaction,
    encode_erc20_approve,
)
from lpflow.constants import PERMIT2_ADDRESS
from lpflow.models.types import UINT256_MAX
from tests.helpers import DAI


class TestEncodeErc20Approve:
    def test_layout(self):
        data = encode_erc20_approve(PERMIT2_ADDRESS, 1000)

        assert data.startswith("0x095ea7b3")
        assert ERC20_APPROVE_SELECTOR.hex() == "095ea7b3"
        # selector + two 32-byte words
        assert len(data) == 2 + 8 + 64 * 2
        assert data[10:74] == "0" * 24 + PERMIT2_ADDRESS[2:]
        assert int(data[74:], 16) == 1000

    def test_unlimited_amount(self):
        data = encode_erc20_approve(PERMIT2_ADDRESS, UINT256_MAX)
        assert data[74:] == "f" * 64

    def test_checksummed_spender(self):
        mixed = "0x000000000022D473030F116dDEE9F6B43aC78BA3"
        assert encode_erc20_approve(mixed, 1) == encode_erc20_approve(PERMIT2_ADDRESS, 1)

    @pytest.mark.parametrize("amount", [-1, 2**256])
    def test_out_of_range_amount(self, amount):
        with pytest.raises(ValueError):
            encode_erc20_approve(PERMIT2_ADDRESS, amount)

    def test_invalid_spender(self):
        with pytest.raises(ValueError):
            encode_erc20_approve("0x1234", 1)


class TestBuildApproveTransaction:
    def test_targets_token(self):
        tx = build_approve_transaction(DAI, PERMIT2_ADDRESS, 5)
        assert tx.to == DAI
        assert tx.value == 0
        assert tx.data == encode_erc20_approve(PERMIT2_ADDRESS, 5)
