"""
Fee bidding for user operations.

The bid adds a 33% premium to the network's suggested priority fee, floors
it at a configured minimum, and keeps the base-fee headroom implied by the
network's fee data.
"""
from __future__ import annotations

from dataclasses import dataclass

from .exceptions import InvalidFeeDataError
from .interfaces import FeeData

PRIORITY_FEE_PREMIUM_NUMERATOR = 4
PRIORITY_FEE_PREMIUM_DENOMINATOR = 3


@dataclass(frozen=True)
class FeeBid:
    max_fee_per_gas: int
    max_priority_fee_per_gas: int


def compute_fee_bid(
    suggested_priority_fee: int,
    fee_data: FeeData,
    min_priority_fee_per_bid: int,
) -> FeeBid:
    """
    Compute maxFeePerGas / maxPriorityFeePerGas for a user operation.

    Raises:
        InvalidFeeDataError: fee_data lacks (or zeroes) either fee field
    """
    if not fee_data.max_fee_per_gas or not fee_data.max_priority_fee_per_gas:
        raise InvalidFeeDataError(
            fee_data.max_fee_per_gas, fee_data.max_priority_fee_per_gas
        )

    # Integer division truncates toward zero for non-negative values
    priority_fee_bid = (
        int(suggested_priority_fee) * PRIORITY_FEE_PREMIUM_NUMERATOR
    ) // PRIORITY_FEE_PREMIUM_DENOMINATOR
    if priority_fee_bid < min_priority_fee_per_bid:
        priority_fee_bid = min_priority_fee_per_bid

    max_fee_bid = (
        int(fee_data.max_fee_per_gas)
        - int(fee_data.max_priority_fee_per_gas)
        + priority_fee_bid
    )
    return FeeBid(max_fee_per_gas=max_fee_bid, max_priority_fee_per_gas=priority_fee_bid)
