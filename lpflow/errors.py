"""Error classes for the liquidity position pipeline.

Calculation errors block planning; execution errors are produced at the
executor boundary by classifying whatever the wallet or RPC raised.
"""


class LpflowError(Exception):
    """Base error for pipeline operations."""

    pass


class CalcError(LpflowError):
    """Base error for the calculation boundary."""

    pass


class InvalidRange(CalcError):
    """Lower tick >= upper tick, out of bounds, or not aligned to tick spacing."""

    pass


class InsufficientAmount(CalcError):
    """The requested deposit yields zero liquidity."""

    pass


class StaleSnapshot(CalcError):
    """The pool snapshot is missing, inconsistent, or moved since planning."""

    pass


class PlanningError(LpflowError):
    """A plan could not be built from the given requirements."""

    pass


class ExecutorBusy(LpflowError):
    """A step for this flow is already in flight."""

    pass


class ExecutionError(LpflowError):
    """Base error for step execution failures."""

    pass


class PermissionExpired(ExecutionError):
    """The batched permit signature is expired or was rejected as invalid."""

    pass


class UserRejected(ExecutionError):
    """The user rejected the request in their wallet."""

    pass


class TransactionReverted(ExecutionError):
    """A submitted transaction reverted on-chain."""

    def __init__(self, reason: str = "execution reverted") -> None:
        super().__init__(reason)
        self.reason = reason


class UnknownExecutionError(ExecutionError):
    """Any other failure while executing a step."""

    pass
