"""
User operation middleware pipeline.

A submission passes its draft through four stages, always in this order:

1. dummy paymaster  - placeholder paymasterAndData so gas estimation sees it
2. gas estimator    - callGasLimit / verificationGasLimit / preVerificationGas
3. fee data         - maxFeePerGas / maxPriorityFeePerGas bid
4. paymaster        - final paymasterAndData

Each stage can be rebound on a provider; real paymaster integrations replace
stages 1 and 4 and keep the default gas and fee logic.
"""
from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Dict, Mapping, Optional, Tuple, Union

from .fees import compute_fee_bid
from .interfaces import BundlerClientPort
from .user_operation import EMPTY_HEX, UserOperationDraft

logger = logging.getLogger(__name__)


class MiddlewareStage(str, Enum):
    """Pipeline stages in execution order."""
    DUMMY_PAYMASTER = "dummy_paymaster"
    GAS_ESTIMATOR = "gas_estimator"
    FEE_DATA = "fee_data"
    PAYMASTER = "paymaster"


PIPELINE_ORDER: Tuple[MiddlewareStage, ...] = tuple(MiddlewareStage)


@dataclass(frozen=True)
class MiddlewareContext:
    """What a stage may use besides the draft itself."""
    client: BundlerClientPort
    entry_point_address: str
    chain_id: int
    min_priority_fee_per_bid: int


class UserOperationMiddleware(ABC):
    """One transform step of the pipeline."""

    @abstractmethod
    async def apply(
        self, draft: UserOperationDraft, context: MiddlewareContext
    ) -> UserOperationDraft:
        pass

    @property
    def name(self) -> str:
        return type(self).__name__


MiddlewareFn = Callable[[UserOperationDraft, MiddlewareContext], Awaitable[UserOperationDraft]]
MiddlewareLike = Union[UserOperationMiddleware, MiddlewareFn]


class FunctionMiddleware(UserOperationMiddleware):
    """Adapts a plain ``async def fn(draft, context)`` to the stage interface."""

    def __init__(self, fn: MiddlewareFn, name: Optional[str] = None):
        self._fn = fn
        self._name = name or getattr(fn, "__name__", type(fn).__name__)

    async def apply(
        self, draft: UserOperationDraft, context: MiddlewareContext
    ) -> UserOperationDraft:
        return await self._fn(draft, context)

    @property
    def name(self) -> str:
        return self._name


def as_middleware(middleware: MiddlewareLike) -> UserOperationMiddleware:
    if isinstance(middleware, UserOperationMiddleware):
        return middleware
    if callable(middleware):
        return FunctionMiddleware(middleware)
    raise TypeError(f"not a middleware: {middleware!r}")


class DummyPaymasterMiddleware(UserOperationMiddleware):
    """Empty paymasterAndData placeholder."""

    async def apply(self, draft, context):
        draft.paymaster_and_data = EMPTY_HEX
        return draft


class PaymasterMiddleware(UserOperationMiddleware):
    """No paymaster: the account pays its own gas."""

    async def apply(self, draft, context):
        draft.paymaster_and_data = EMPTY_HEX
        return draft


class GasEstimatorMiddleware(UserOperationMiddleware):
    """Ask the bundler for the three gas limits of the current draft."""

    async def apply(self, draft, context):
        estimate = await context.client.estimate_user_operation_gas(
            draft.to_rpc(include_unset=False), context.entry_point_address
        )
        draft.call_gas_limit = estimate.call_gas_limit
        draft.verification_gas_limit = estimate.verification_gas_limit
        draft.pre_verification_gas = estimate.pre_verification_gas
        return draft


class FeeDataMiddleware(UserOperationMiddleware):
    """Bid maxFeePerGas / maxPriorityFeePerGas from current network fees."""

    async def apply(self, draft, context):
        suggested_priority_fee = await context.client.get_max_priority_fee_per_gas()
        fee_data = await context.client.get_fee_data()
        bid = compute_fee_bid(
            suggested_priority_fee, fee_data, context.min_priority_fee_per_bid
        )
        logger.debug(
            "Fee bid: maxFeePerGas=%d maxPriorityFeePerGas=%d (suggested priority %d)",
            bid.max_fee_per_gas,
            bid.max_priority_fee_per_gas,
            suggested_priority_fee,
        )
        draft.max_fee_per_gas = bid.max_fee_per_gas
        draft.max_priority_fee_per_gas = bid.max_priority_fee_per_gas
        return draft


def default_middlewares() -> Dict[MiddlewareStage, UserOperationMiddleware]:
    return {
        MiddlewareStage.DUMMY_PAYMASTER: DummyPaymasterMiddleware(),
        MiddlewareStage.GAS_ESTIMATOR: GasEstimatorMiddleware(),
        MiddlewareStage.FEE_DATA: FeeDataMiddleware(),
        MiddlewareStage.PAYMASTER: PaymasterMiddleware(),
    }


class MiddlewareStack:
    """
    The active stage set of a provider.

    Rebinding swaps an immutable tuple under a lock. A submission takes a
    snapshot when it starts, so it keeps the stages it started with even if
    a stage is rebound mid-flight.
    """

    def __init__(self, overrides: Optional[Mapping[MiddlewareStage, MiddlewareLike]] = None):
        stages = default_middlewares()
        for stage, middleware in (overrides or {}).items():
            stages[MiddlewareStage(stage)] = as_middleware(middleware)
        self._lock = threading.Lock()
        self._stages: Tuple[UserOperationMiddleware, ...] = tuple(
            stages[stage] for stage in PIPELINE_ORDER
        )

    def snapshot(self) -> Tuple[UserOperationMiddleware, ...]:
        with self._lock:
            return self._stages

    def get(self, stage: MiddlewareStage) -> UserOperationMiddleware:
        return self.snapshot()[PIPELINE_ORDER.index(MiddlewareStage(stage))]

    def replace(self, stage: MiddlewareStage, middleware: MiddlewareLike) -> None:
        index = PIPELINE_ORDER.index(MiddlewareStage(stage))
        resolved = as_middleware(middleware)
        with self._lock:
            stages = list(self._stages)
            stages[index] = resolved
            self._stages = tuple(stages)
        logger.info("Rebound %s middleware to %s", MiddlewareStage(stage).value, resolved.name)


async def run_pipeline(
    stages: Tuple[UserOperationMiddleware, ...],
    draft: UserOperationDraft,
    context: MiddlewareContext,
) -> UserOperationDraft:
    """Apply the stages sequentially; each gets the previous stage's output."""
    for stage, middleware in zip(PIPELINE_ORDER, stages):
        result = await middleware.apply(draft, context)
        if not isinstance(result, UserOperationDraft):
            raise TypeError(
                f"{stage.value} middleware {middleware.name} returned "
                f"{type(result).__name__}, expected UserOperationDraft"
            )
        draft = result
        logger.debug("Applied %s middleware %s", stage.value, middleware.name)
    return draft
