"""Resumable step executor.

Runs a plan one step at a time, streaming events to the caller:

    Idle -> Locked(step) -> StepSucceeded -> advance (or stop)
                         -> StepFailed    -> ErrorReported
                         -> user rejected -> Idle
    ... -> Completed after the Execute step

Progress is persisted after every step so a reloaded client can resume
from the stored flow state. Only one execution per flow runs at a time,
and a running step is never interrupted; close requests take effect at the
next step boundary.
"""

from __future__ import annotations

import time
from collections.abc import AsyncIterator, Callable

import structlog

from lpflow.config import DEFAULT_CONFIG, PipelineConfig
from lpflow.errors import ExecutorBusy, PermissionExpired, StaleSnapshot, TransactionReverted
from lpflow.interfaces import (
    AllowanceReader,
    DepositRequest,
    ExecuteCall,
    PoolDataSource,
    ReceiptStatus,
    TransactionBuilder,
    TransactionRequest,
    WalletSigner,
)
from lpflow.models.pool import PoolSnapshot
from lpflow.permissions.permit2 import (
    CachedPermitSignature,
    build_permit_batch,
    build_permit_batch_typed_data,
)
from lpflow.steps.types import (
    ApproveToken,
    ApproveZapInputs,
    Execute,
    Plan,
    SignPermission,
    TransactionStep,
)

from .classify import ErrorCategory, classify_error, extract_error_message
from .context import ExecutionContext, ExecutorState
from .events import FlowCompleted, StepEvent, StepFailed, StepStarted, StepSucceeded
from .store import FlowKey, FlowState, FlowStore, InMemoryFlowStore

logger = structlog.get_logger()


class StepExecutor:
    """Executes planned steps against a wallet and the chain."""

    def __init__(
        self,
        signer: WalletSigner,
        builder: TransactionBuilder,
        allowance_reader: AllowanceReader,
        context: ExecutionContext | None = None,
        store: FlowStore | None = None,
        config: PipelineConfig = DEFAULT_CONFIG,
        pool_source: PoolDataSource | None = None,
        clock: Callable[[], float] = time.time,
    ):
        """Initialize the executor.

        Args:
            signer: Connected wallet
            builder: Calldata source for approve and execute steps
            allowance_reader: Used to re-fetch allowances between steps
            context: Shared single-flight/signature state (a private one if None)
            store: Durable flow state (in memory if None)
            config: Spenders, permit lifetimes, drift tolerance, auto-advance
            pool_source: When set, the pool is re-read before the Execute step
            clock: Unix time source
        """
        self.signer = signer
        self.builder = builder
        self.allowance_reader = allowance_reader
        self.context = context or ExecutionContext()
        self.store = store or InMemoryFlowStore(ttl_seconds=config.flow_ttl_seconds)
        self.config = config
        self.pool_source = pool_source
        self.clock = clock

    def now(self) -> int:
        return int(self.clock())

    # Flow bookkeeping

    def find_flow(self, request: DepositRequest) -> FlowState | None:
        """Stored progress for the request's flow key, if any."""
        return self.store.find(FlowKey.for_request(request))

    def request_close(self, key: FlowKey) -> None:
        """Stop after the in-flight step instead of auto-advancing."""
        logger.info("flow_close_requested", flow=key.as_string())
        self.context.request_close(key)

    def abandon(self, key: FlowKey) -> None:
        """Delete stored progress and cached signature of a flow.

        Raises:
            ExecutorBusy: If a step of the flow is in flight
        """
        if self.context.is_locked(key):
            raise ExecutorBusy(f"Flow {key.as_string()} is executing; cannot abandon")
        self.store.delete(key)
        self.context.drop_signature(key)
        self.context.clear_close(key)
        self.context.set_status(key, ExecutorState.IDLE)
        logger.info("flow_abandoned", flow=key.as_string())

    def _load_or_create(self, key: FlowKey, plan: Plan, request: DepositRequest) -> FlowState:
        state = self.store.find(key)
        if state is None:
            state = FlowState(key=key, plan=plan, request=request)
            logger.info("flow_created", flow_id=state.flow_id, steps=plan.step_ids)
        else:
            sub_ids = {
                a.step_id
                for step in plan.steps
                if isinstance(step, ApproveZapInputs)
                for a in step.approvals
            }
            kept = state.completed_steps & (set(plan.step_ids) | sub_ids)
            logger.info(
                "flow_resumed",
                flow_id=state.flow_id,
                completed=sorted(kept),
                steps=plan.step_ids,
            )
            state.plan = plan
            state.request = request
            state.completed_steps = kept
        now = self.now()
        if state.cached_signature is not None:
            if state.cached_signature.is_expired(now):
                logger.info("stored_signature_expired", flow_id=state.flow_id)
                state.cached_signature = None
                state.completed_steps.discard("sign_permission")
            else:
                self.context.cache_signature(key, state.cached_signature)

        execute = state.plan.execute_step
        if execute is not None and execute.permit is not None:
            signature = state.cached_signature or self.context.cached_signature(key, now)
            if signature is not None and signature.covers(execute.permit.amounts, now):
                state.cached_signature = signature
            else:
                if "sign_permission" not in state.plan.step_ids:
                    logger.info("flow_needs_signature", flow_id=state.flow_id)
                    state.plan = state.plan.with_sign_step()
                state.completed_steps.discard("sign_permission")
        self.store.save(state)
        return state

    # Execution

    async def execute(
        self,
        plan: Plan,
        request: DepositRequest,
        snapshot: PoolSnapshot | None = None,
    ) -> AsyncIterator[StepEvent]:
        """Run the plan from its first incomplete step.

        With auto-advance on, steps run back to back until the flow
        completes, a step fails, the user rejects, or a close is requested.
        With it off, one step runs per call.

        Args:
            plan: Steps to run (a re-plan of a stored flow resumes it)
            request: Deposit parameters for the Execute step
            snapshot: Pool state the deposit was calculated from; compared
                against the latest state before executing

        Yields:
            StepStarted, StepSucceeded, StepFailed and FlowCompleted events

        Raises:
            ExecutorBusy: If this flow is already executing (raised before
                anything is yielded or stored)
        """
        key = FlowKey.for_request(request)
        self.context.acquire(key)
        try:
            self.context.clear_close(key)
            state = self._load_or_create(key, plan, request)
            first = True

            while True:
                pending = state.next_step()
                if pending is None:
                    break
                index, step = pending

                if not first and self.context.close_requested(key):
                    logger.info("flow_paused_on_close", flow_id=state.flow_id, next=step.step_id)
                    self.context.clear_close(key)
                    self.context.set_status(key, ExecutorState.IDLE)
                    return
                first = False

                self.context.set_status(key, ExecutorState.LOCKED, index)
                yield StepStarted(state.flow_id, step.step_id, index, len(state.plan.steps))
                logger.info("step_started", flow_id=state.flow_id, step=step.step_id, index=index)

                try:
                    tx_hashes = await self._run_step(step, state, snapshot)
                except Exception as e:
                    failure = self._handle_failure(e, step, state)
                    if failure is not None:
                        yield failure
                    return

                state.mark_completed(step.step_id, tx_hashes)
                self.store.save(state)
                logger.info(
                    "step_succeeded",
                    flow_id=state.flow_id,
                    step=step.step_id,
                    tx_hashes=tx_hashes,
                )
                yield StepSucceeded(
                    state.flow_id,
                    step.step_id,
                    tx_hashes[-1] if tx_hashes else None,
                    tuple(tx_hashes),
                )

                if isinstance(step, Execute):
                    self.store.delete(key)
                    self.context.drop_signature(key)
                    self.context.set_status(key, ExecutorState.COMPLETED, index)
                    logger.info("flow_completed", flow_id=state.flow_id)
                    yield FlowCompleted(state.flow_id, tx_hashes[-1] if tx_hashes else None)
                    return

                try:
                    await self._refresh_approvals(state)
                except Exception as e:
                    # Best effort; the completed step stands
                    logger.warning(
                        "approval_refresh_failed",
                        flow_id=state.flow_id,
                        error=extract_error_message(e),
                    )

                if not self.config.auto_advance:
                    self.context.set_status(key, ExecutorState.IDLE)
                    return

            # Every step was already complete on entry
            self.store.delete(key)
            self.context.set_status(key, ExecutorState.COMPLETED)
            yield FlowCompleted(state.flow_id)
        finally:
            self.context.release(key)

    def _handle_failure(
        self, error: Exception, step: TransactionStep, state: FlowState
    ) -> StepFailed | None:
        classified = classify_error(error)

        if classified.category == ErrorCategory.USER_REJECTION:
            logger.info("step_rejected_by_user", flow_id=state.flow_id, step=step.step_id)
            self.context.set_status(state.key, ExecutorState.IDLE)
            return None

        if classified.category == ErrorCategory.PERMISSION_EXPIRED:
            state.cached_signature = None
            state.plan = state.plan.with_sign_step()
            state.completed_steps.discard("sign_permission")
            self.context.drop_signature(state.key)

        state.failure_reason = classified.message
        self.store.save(state)
        self.context.set_status(state.key, ExecutorState.ERROR_REPORTED)
        logger.warning(
            "step_failed",
            flow_id=state.flow_id,
            step=step.step_id,
            category=classified.category.value,
            error=classified.message,
        )
        return StepFailed(
            flow_id=state.flow_id,
            step_id=step.step_id,
            reason=classified.message,
            category=classified.category,
            affordance=classified.affordance,
            user_message=classified.user_message,
            error=classified.error,
        )

    async def _run_step(
        self, step: TransactionStep, state: FlowState, snapshot: PoolSnapshot | None
    ) -> list[str]:
        if isinstance(step, ApproveToken):
            return [await self._approve(step)]
        if isinstance(step, ApproveZapInputs):
            hashes = []
            for approval in step.approvals:
                if approval.step_id in state.completed_steps:
                    continue
                tx_hash = await self._approve(approval)
                state.mark_completed(approval.step_id, [tx_hash])
                self.store.save(state)
                hashes.append(tx_hash)
            return hashes
        if isinstance(step, SignPermission):
            await self._sign(step, state)
            return []
        if isinstance(step, Execute):
            return [await self._execute(step, state, snapshot)]
        raise TypeError(f"Unknown step: {type(step).__name__}")

    async def _send_and_confirm(self, request: TransactionRequest) -> str:
        tx_hash = await self.signer.send_transaction(request)
        receipt = await self.signer.wait_for_receipt(tx_hash)
        if receipt.status == ReceiptStatus.REVERTED:
            raise TransactionReverted(receipt.revert_reason or "execution reverted")
        return tx_hash

    async def _approve(self, step: ApproveToken) -> str:
        request = await self.builder.build_approve(step.token, step.spender, step.amount)
        return await self._send_and_confirm(request)

    async def _sign(self, step: SignPermission, state: FlowState) -> None:
        now = self.now()
        cached = self.context.cached_signature(state.key, now) or state.cached_signature
        if cached is not None and cached.covers(step.amounts, now):
            logger.info("permit_signature_reused", flow_id=state.flow_id)
            state.cached_signature = cached
            return

        batch = build_permit_batch(step.nonces.items(), now=now, config=self.config)
        payload = build_permit_batch_typed_data(batch, self.config)
        signature = await self.signer.sign_typed_data(payload)

        cached = CachedPermitSignature(batch=batch, signature=signature)
        state.cached_signature = cached
        self.context.cache_signature(state.key, cached)

    async def _revalidate(self, state: FlowState, snapshot: PoolSnapshot) -> None:
        latest = await self.pool_source.get_snapshot(snapshot.pool_id)
        tick_range = state.request.tick_range
        drift = abs(latest.current_tick - snapshot.current_tick)
        if latest.regime(tick_range) != snapshot.regime(tick_range):
            raise StaleSnapshot(
                f"Pool moved from {snapshot.regime(tick_range).value} to "
                f"{latest.regime(tick_range).value} the range"
            )
        if drift > self.config.max_tick_drift:
            raise StaleSnapshot(
                f"Pool tick drifted by {drift} (limit {self.config.max_tick_drift})"
            )

    async def _execute(
        self, step: Execute, state: FlowState, snapshot: PoolSnapshot | None
    ) -> str:
        if self.pool_source is not None and snapshot is not None:
            await self._revalidate(state, snapshot)

        now = self.now()
        cached = state.cached_signature or self.context.cached_signature(state.key, now)
        if step.permit is not None:
            if cached is None or not cached.covers(step.permit.amounts, now):
                raise PermissionExpired("Execute needs a permit signature and none is valid")
        elif cached is not None and cached.is_expired(now):
            raise PermissionExpired("Permit signature expired before execution")

        call = ExecuteCall(
            kind=step.execute_kind,
            deposit=state.request,
            permit_batch=cached.batch if cached is not None else None,
            signature=cached.signature if cached is not None else None,
        )
        request = await self.builder.build_execute(call)
        return await self._send_and_confirm(request)

    async def _refresh_approvals(self, state: FlowState) -> None:
        """Re-read allowances and mark approvals that are already in place.

        This is the one point where on-chain state is re-fetched between
        steps; an approval confirmed by an earlier, interrupted run is not
        sent again.
        """
        required = state.request.required_amounts()
        account = state.request.account
        changed = False

        for step in state.plan.steps:
            approvals = step.approvals if isinstance(step, ApproveZapInputs) else (step,)
            for approval in approvals:
                if not isinstance(approval, ApproveToken):
                    continue
                if approval.step_id in state.completed_steps:
                    continue
                allowance = await self.allowance_reader.get_erc20_allowance(
                    account, approval.token, approval.spender
                )
                if allowance >= required.get(approval.token, approval.amount):
                    logger.info(
                        "approval_already_satisfied",
                        flow_id=state.flow_id,
                        token=approval.token,
                        allowance=allowance,
                    )
                    state.mark_completed(approval.step_id)
                    changed = True
            if isinstance(step, ApproveZapInputs) and step.step_id not in state.completed_steps:
                if all(a.step_id in state.completed_steps for a in step.approvals):
                    state.mark_completed(step.step_id)
                    changed = True

        if changed:
            self.store.save(state)


__all__ = ["StepExecutor"]
