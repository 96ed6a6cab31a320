"""Tests for the permission state resolver."""

import pytest

from lpflow.constants import PERMIT2_ADDRESS
from lpflow.models.deposit import CalculatedDeposit, DepositMode
from lpflow.models.types import UINT160_MAX
from lpflow.permissions.resolver import (
    PermissionRequirement,
    StandardPermissions,
    TokenAllowance,
    ZapPermissions,
    permit_needs_signature,
    requires_approval,
    resolve_permissions_for_amounts,
    resolve_required_permissions,
)
from tests.helpers import DAI, NATIVE, NOW, USDC, WETH, ZAP_ROUTER, make_intent, make_token

FUTURE = NOW + 86_400


def valid_permit(token: str, erc20: int = 0, nonce: int = 0) -> TokenAllowance:
    """Allowance with an unlimited, unexpired Permit2 grant."""
    return TokenAllowance(
        token=token,
        erc20_allowance=erc20,
        permit_amount=UINT160_MAX,
        permit_expiration=FUTURE,
        permit_nonce=nonce,
    )


def by_token(permissions) -> dict[str, PermissionRequirement]:
    return {r.token: r for r in permissions.requirements}


class TestAllowanceApprovals:
    """ERC20 allowance checks."""

    def test_allowance_below_required_needs_approval(self, config):
        permissions = resolve_permissions_for_amounts(
            DepositMode.STANDARD,
            {DAI: 100, USDC: 100},
            [valid_permit(DAI, erc20=99), valid_permit(USDC, erc20=100)],
            now=NOW,
            config=config,
        )
        requirements = by_token(permissions)
        assert requirements[DAI].needs_allowance_approval
        assert not requirements[USDC].needs_allowance_approval
        assert requirements[USDC].is_satisfied

    def test_missing_allowance_counts_as_zero(self, config):
        permissions = resolve_permissions_for_amounts(
            DepositMode.STANDARD, {DAI: 1}, [], now=NOW, config=config
        )
        requirement = by_token(permissions)[DAI]
        assert requirement.needs_allowance_approval
        assert requirement.needs_batch_signature

    def test_native_and_zero_amounts_skipped(self, config):
        permissions = resolve_permissions_for_amounts(
            DepositMode.STANDARD, {NATIVE: 10**18, DAI: 0}, [], now=NOW, config=config
        )
        assert permissions.requirements == frozenset()
        assert not permissions.needs_batch_signature

    def test_spender_is_permit2_in_standard_mode(self, config):
        permissions = resolve_permissions_for_amounts(
            DepositMode.STANDARD, {DAI: 1}, [], now=NOW, config=config
        )
        assert isinstance(permissions, StandardPermissions)
        assert by_token(permissions)[DAI].spender == PERMIT2_ADDRESS

    def test_allowances_accepted_as_mapping(self, config):
        permissions = resolve_permissions_for_amounts(
            DepositMode.STANDARD,
            {DAI: 5},
            {DAI.upper().replace("0X", "0x"): valid_permit(DAI, erc20=5)},
            now=NOW,
            config=config,
        )
        assert by_token(permissions)[DAI].is_satisfied

    def test_requires_approval_is_sorted(self, config):
        permissions = resolve_permissions_for_amounts(
            DepositMode.STANDARD, {WETH: 1, DAI: 1, USDC: 1}, [], now=NOW, config=config
        )
        assert [r.token for r in requires_approval(permissions)] == [DAI, USDC, WETH]


class TestBatchSignature:
    """Permit2 signature checks in standard mode."""

    def test_absent_permit(self):
        allowance = TokenAllowance(token=DAI, erc20_allowance=0)
        assert permit_needs_signature(allowance, 1, NOW)

    def test_insufficient_permit(self):
        allowance = TokenAllowance(DAI, 0, permit_amount=99, permit_expiration=FUTURE)
        assert permit_needs_signature(allowance, 100, NOW)
        assert not permit_needs_signature(allowance, 99, NOW)

    def test_expiry_is_inclusive(self):
        """A permit expiring exactly now is already expired."""
        allowance = TokenAllowance(DAI, 0, permit_amount=UINT160_MAX, permit_expiration=NOW)
        assert permit_needs_signature(allowance, 1, NOW)
        assert not permit_needs_signature(allowance, 1, NOW - 1)

    def test_unlimited_permit_covers_any_amount(self):
        allowance = TokenAllowance(DAI, 0, permit_amount=UINT160_MAX, permit_expiration=FUTURE)
        assert not permit_needs_signature(allowance, 2**200, NOW)

    def test_signature_tokens_carry_nonces(self, config):
        permissions = resolve_permissions_for_amounts(
            DepositMode.STANDARD,
            {DAI: 10, USDC: 10},
            [
                TokenAllowance(DAI, 10, permit_nonce=4),
                valid_permit(USDC, erc20=10, nonce=9),
            ],
            now=NOW,
            config=config,
        )
        assert permissions.needs_batch_signature
        assert permissions.signature_tokens == {DAI: 4}

    def test_signature_independent_of_erc20_approval(self, config):
        """A pending ERC20 approval alone does not ask for a new signature."""
        permissions = resolve_permissions_for_amounts(
            DepositMode.STANDARD, {DAI: 10}, [valid_permit(DAI)], now=NOW, config=config
        )
        requirement = by_token(permissions)[DAI]
        assert requirement.needs_allowance_approval
        assert not requirement.needs_batch_signature


class TestZapPermissions:
    """Zap deposits approve the zap router and never sign."""

    def test_zap_mode(self, config):
        permissions = resolve_permissions_for_amounts(
            DepositMode.ZAP, {DAI: 10, USDC: 10}, [], now=NOW, config=config
        )
        assert isinstance(permissions, ZapPermissions)
        assert permissions.mode == DepositMode.ZAP
        assert not permissions.needs_batch_signature
        assert permissions.signature_tokens == {}
        assert {r.spender for r in permissions.requirements} == {ZAP_ROUTER}
        assert all(not r.needs_batch_signature for r in permissions.requirements)


class TestResolveRequiredPermissions:
    """Tests for the calculated-deposit entry point."""

    def test_uses_calculated_amounts(self, config):
        calculated = CalculatedDeposit(make_token(DAI), make_token(USDC), 500, 0, 1)
        permissions = resolve_required_permissions(
            make_intent(), calculated, [], now=NOW, config=config
        )
        assert set(by_token(permissions)) == {DAI}
        assert by_token(permissions)[DAI].required_amount == 500

    @pytest.mark.parametrize("mode", [DepositMode.STANDARD, DepositMode.ZAP])
    def test_mode_follows_intent(self, config, mode):
        calculated = CalculatedDeposit(make_token(DAI), make_token(USDC), 1, 1, 1)
        permissions = resolve_required_permissions(
            make_intent(mode=mode), calculated, [], now=NOW, config=config
        )
        assert permissions.mode == mode
