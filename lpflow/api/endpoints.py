"""API endpoints for the liquidity pipeline."""

import structlog
from fastapi import APIRouter, Depends, HTTPException

from lpflow.calculator import compute_dependent_amount
from lpflow.config import PipelineConfig
from lpflow.errors import CalcError, PlanningError
from lpflow.models.deposit import CalculatedDeposit, DepositIntent, DepositMode, parse_units
from lpflow.models.pool import TickRange
from lpflow.permissions.permit2 import build_permit_batch, build_permit_batch_typed_data
from lpflow.permissions.resolver import (
    PermissionRequirement,
    StandardPermissions,
    TokenAllowance,
    ZapPermissions,
    resolve_permissions_for_amounts,
)
from lpflow.steps.planner import plan_steps
from lpflow.zap import compute_zap_split

from .schemas import (
    CalculateRequest,
    CalculateResponse,
    CheckApprovalsRequest,
    CheckApprovalsResponse,
    PlanRequest,
    PlanResponse,
    PlanStepSchema,
    RequirementSchema,
)

logger = structlog.get_logger()

router = APIRouter(prefix="/liquidity")


def get_config() -> PipelineConfig:
    """Dependency provider for the pipeline configuration.

    Override this in tests:
        app.dependency_overrides[get_config] = lambda: PipelineConfig(...)
    """
    return PipelineConfig.from_env()


def _calc_error(error: CalcError) -> HTTPException:
    return HTTPException(
        status_code=400,
        detail={"error": type(error).__name__, "message": str(error)},
    )


@router.post("/calculate", response_model_exclude_none=True)
async def calculate(body: CalculateRequest) -> CalculateResponse:
    """Derive both deposit amounts and the liquidity from one typed amount.

    Error Handling:
        - Invalid request schema or pool state: 422
        - InvalidRange / InsufficientAmount / StaleSnapshot: 400
    """
    try:
        snapshot = body.pool.to_snapshot()
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e

    tick_range = TickRange(body.tick_lower, body.tick_upper)
    swap_amount = swap_output = None
    try:
        if body.mode == DepositMode.ZAP:
            token = snapshot.tokens[body.input_side.index]
            split = compute_zap_split(
                snapshot,
                tick_range,
                body.input_side,
                parse_units(body.input_amount, token.decimals),
                swap_rate=body.swap_rate,
            )
            deposit = CalculatedDeposit(
                snapshot.token0,
                snapshot.token1,
                split.deposit_amount0,
                split.deposit_amount1,
                split.liquidity,
            )
            swap_amount, swap_output = str(split.swap_amount), str(split.swap_output)
        else:
            intent = DepositIntent(
                range=tick_range,
                input_side=body.input_side,
                input_amount=body.input_amount,
                mode=body.mode,
            )
            deposit = compute_dependent_amount(intent, snapshot)
    except CalcError as e:
        logger.info("calculate_rejected", pool=snapshot.pool_id, error=str(e))
        raise _calc_error(e) from e
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e

    formatted0, formatted1 = deposit.formatted()
    return CalculateResponse(
        amount0=str(deposit.amount0),
        amount1=str(deposit.amount1),
        liquidity=str(deposit.liquidity),
        amount0_formatted=str(formatted0),
        amount1_formatted=str(formatted1),
        regime=snapshot.regime(tick_range),
        swap_amount=swap_amount,
        swap_output=swap_output,
    )


def _requirement_schema(requirement: PermissionRequirement) -> RequirementSchema:
    return RequirementSchema(
        token=requirement.token,
        required_amount=str(requirement.required_amount),
        spender=requirement.spender,
        needs_allowance_approval=requirement.needs_allowance_approval,
        needs_batch_signature=requirement.needs_batch_signature,
        permit_nonce=requirement.permit_nonce,
    )


@router.post("/check-approvals", response_model_exclude_none=True)
async def check_approvals(
    body: CheckApprovalsRequest,
    config: PipelineConfig = Depends(get_config),
) -> CheckApprovalsResponse:
    """Classify which approvals and signatures a deposit still needs."""
    allowances = [
        TokenAllowance(
            token=a.token,
            erc20_allowance=int(a.erc20_allowance),
            permit_amount=int(a.permit_amount),
            permit_expiration=a.permit_expiration,
            permit_nonce=a.permit_nonce,
        )
        for a in body.allowances
    ]
    required: dict[str, int] = {}
    for item in body.amounts:
        token = item.token.lower()
        required[token] = required.get(token, 0) + int(item.amount)

    permissions = resolve_permissions_for_amounts(
        body.mode, required, allowances, now=body.now, config=config
    )

    typed_data = None
    if permissions.needs_batch_signature:
        batch = build_permit_batch(
            permissions.signature_tokens.items(), now=body.now, config=config
        )
        typed_data = build_permit_batch_typed_data(batch, config)

    requirements = sorted(permissions.requirements, key=lambda r: int(r.token, 16))
    return CheckApprovalsResponse(
        mode=body.mode,
        requirements=[_requirement_schema(r) for r in requirements],
        needs_batch_signature=permissions.needs_batch_signature,
        typed_data=typed_data,
    )


@router.post("/plan")
async def plan(body: PlanRequest) -> PlanResponse:
    """Order the outstanding work into steps.

    Error Handling:
        - Mode and execute kind disagree: 400
    """
    requirements = frozenset(
        PermissionRequirement(
            token=r.token.lower(),
            required_amount=int(r.required_amount),
            spender=r.spender.lower(),
            needs_allowance_approval=r.needs_allowance_approval,
            needs_batch_signature=r.needs_batch_signature and body.mode == DepositMode.STANDARD,
            permit_nonce=r.permit_nonce,
        )
        for r in body.requirements
    )
    permissions = (
        ZapPermissions(requirements)
        if body.mode == DepositMode.ZAP
        else StandardPermissions(requirements)
    )
    try:
        result = plan_steps(permissions, body.mode, execute_kind=body.execute_kind)
    except PlanningError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e

    return PlanResponse(
        mode=result.mode,
        steps=[
            PlanStepSchema(
                step_id=step.step_id,
                kind=step.kind,
                detail=step.model_dump(mode="json", exclude={"kind"}),
            )
            for step in result.steps
        ],
    )
