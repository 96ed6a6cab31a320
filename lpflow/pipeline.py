"""Public facade of the liquidity position pipeline.

Typical use, one call per stage:

    deposit = compute_dependent_amount(intent, snapshot)
    pipeline = LiquidityPipeline(signer, builder, reader)
    plan, request = await pipeline.prepare(intent, snapshot, deposit)
    async for event in pipeline.execute(plan, request, snapshot):
        ...

Calculation is synchronous and side-effect free. Preparing re-reads
allowances from the chain; executing streams StepEvents.
"""

from __future__ import annotations

from collections.abc import AsyncIterator

import structlog

from lpflow.calculator import compute_dependent_amount, compute_two_sided_deposit
from lpflow.config import DEFAULT_CONFIG, PipelineConfig
from lpflow.constants import NATIVE_ADDRESS
from lpflow.errors import InsufficientAmount
from lpflow.executor.context import ExecutionContext
from lpflow.executor.events import StepEvent
from lpflow.executor.executor import StepExecutor
from lpflow.executor.store import FlowKey, FlowStore, JsonFileFlowStore
from lpflow.interfaces import (
    AllowanceReader,
    DepositRequest,
    PoolDataSource,
    TransactionBuilder,
    WalletSigner,
)
from lpflow.models.deposit import CalculatedDeposit, DepositIntent, DepositMode
from lpflow.models.pool import PoolSnapshot
from lpflow.models.types import normalize_address
from lpflow.permissions.resolver import (
    PermissionSet,
    TokenAllowance,
    resolve_required_permissions,
)
from lpflow.steps.planner import plan_steps
from lpflow.steps.types import ExecuteKind, Plan
from lpflow.zap import ZapSplit

logger = structlog.get_logger()


async def fetch_allowances(
    reader: AllowanceReader,
    owner: str,
    tokens: list[str],
    mode: DepositMode,
    config: PipelineConfig = DEFAULT_CONFIG,
) -> list[TokenAllowance]:
    """Read current allowance state for every non-native token.

    Standard deposits read the ERC20 allowance to Permit2 and the Permit2
    allowance to the position manager; zaps read the ERC20 allowance to the
    zap router only.
    """
    allowances = []
    for token in tokens:
        token = normalize_address(token)
        if token == NATIVE_ADDRESS:
            continue
        if mode == DepositMode.ZAP:
            erc20 = await reader.get_erc20_allowance(owner, token, config.zap_router_address)
            allowances.append(TokenAllowance(token=token, erc20_allowance=erc20))
            continue
        erc20 = await reader.get_erc20_allowance(owner, token, config.permit2_address)
        amount, expiration, nonce = await reader.get_permit2_allowance(
            owner, token, config.position_manager_address
        )
        allowances.append(
            TokenAllowance(
                token=token,
                erc20_allowance=erc20,
                permit_amount=amount,
                permit_expiration=expiration,
                permit_nonce=nonce,
            )
        )
    return allowances


def build_deposit_request(
    intent: DepositIntent,
    snapshot: PoolSnapshot,
    calculated: CalculatedDeposit | ZapSplit,
    account: str,
    config: PipelineConfig = DEFAULT_CONFIG,
    token_id: int | None = None,
) -> DepositRequest:
    """Validated parameters for the Execute step.

    Raises:
        InsufficientAmount: If the deposit is empty
    """
    if isinstance(calculated, ZapSplit):
        amount0, amount1 = calculated.deposit_amount0, calculated.deposit_amount1
        liquidity = calculated.liquidity
        zap_fields = {
            "input_token": calculated.input_token.address,
            "input_amount": calculated.input_amount,
            "swap_amount": calculated.swap_amount,
        }
    else:
        if calculated.is_empty:
            raise InsufficientAmount("Nothing to deposit for this range and input side")
        amount0, amount1 = calculated.amounts
        liquidity = calculated.liquidity
        zap_fields = {}

    max0, max1 = CalculatedDeposit(
        snapshot.token0, snapshot.token1, amount0, amount1, liquidity
    ).with_slippage(config.slippage_bps)

    return DepositRequest(
        account=normalize_address(account),
        chain_id=config.chain_id,
        pool_id=snapshot.pool_id,
        token0=snapshot.token0.address,
        token1=snapshot.token1.address,
        tick_lower=intent.range.lower,
        tick_upper=intent.range.upper,
        liquidity=liquidity,
        amount0=amount0,
        amount1=amount1,
        amount0_max=max0,
        amount1_max=max1,
        mode=intent.mode,
        token_id=token_id,
        **zap_fields,
    )


class LiquidityPipeline:
    """Wires the resolver, planner and executor to concrete collaborators."""

    def __init__(
        self,
        signer: WalletSigner,
        builder: TransactionBuilder,
        allowance_reader: AllowanceReader,
        config: PipelineConfig = DEFAULT_CONFIG,
        context: ExecutionContext | None = None,
        store: FlowStore | None = None,
        pool_source: PoolDataSource | None = None,
    ):
        if store is None and config.flow_store_dir is not None:
            store = JsonFileFlowStore(config.flow_store_dir, ttl_seconds=config.flow_ttl_seconds)
        self.config = config
        self.allowance_reader = allowance_reader
        self.executor = StepExecutor(
            signer=signer,
            builder=builder,
            allowance_reader=allowance_reader,
            context=context,
            store=store,
            config=config,
            pool_source=pool_source,
        )

    @property
    def account(self) -> str:
        return self.executor.signer.address

    async def resolve(
        self,
        intent: DepositIntent,
        calculated: CalculatedDeposit | ZapSplit,
        now: int | None = None,
    ) -> PermissionSet:
        """Resolve permissions against freshly read allowances."""
        required = calculated.required_amounts()
        allowances = await fetch_allowances(
            self.allowance_reader, self.account, list(required), intent.mode, self.config
        )
        return resolve_required_permissions(
            intent, calculated, allowances, now=now, config=self.config
        )

    async def prepare(
        self,
        intent: DepositIntent,
        snapshot: PoolSnapshot,
        calculated: CalculatedDeposit | ZapSplit,
        token_id: int | None = None,
    ) -> tuple[Plan, DepositRequest]:
        """Plan a deposit from fresh on-chain state.

        Raises:
            InsufficientAmount: If the deposit is empty
        """
        request = build_deposit_request(
            intent, snapshot, calculated, self.account, self.config, token_id
        )
        now = self.executor.now()
        requirements = await self.resolve(intent, calculated, now)

        if intent.mode == DepositMode.ZAP:
            execute_kind = ExecuteKind.ZAP_DEPOSIT
        elif token_id is not None:
            execute_kind = ExecuteKind.INCREASE_POSITION
        else:
            execute_kind = ExecuteKind.CREATE_POSITION

        key = FlowKey.for_request(request)
        cached = self.executor.context.cached_signature(key, now)
        if cached is None:
            stored = self.executor.store.find(key)
            cached = stored.cached_signature if stored is not None else None

        plan = plan_steps(
            requirements,
            intent.mode,
            execute_kind=execute_kind,
            cached_signature=cached,
            now=now,
        )
        logger.info(
            "deposit_prepared",
            pool=snapshot.pool_id,
            mode=intent.mode.value,
            steps=plan.step_ids,
        )
        return plan, request

    def execute(
        self,
        plan: Plan,
        request: DepositRequest,
        snapshot: PoolSnapshot | None = None,
    ) -> AsyncIterator[StepEvent]:
        """Run a plan; see `StepExecutor.execute`."""
        return self.executor.execute(plan, request, snapshot)

    def request_close(self, request: DepositRequest) -> None:
        self.executor.request_close(FlowKey.for_request(request))

    def abandon(self, request: DepositRequest) -> None:
        self.executor.abandon(FlowKey.for_request(request))


__all__ = [
    "LiquidityPipeline",
    "compute_dependent_amount",
    "compute_two_sided_deposit",
    "resolve_required_permissions",
    "plan_steps",
    "fetch_allowances",
    "build_deposit_request",
]
