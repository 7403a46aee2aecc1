"""
Structured logging for user operation lifecycles.

Features:
- Operation context tracking with durations
- Submission logging with fee bids
- Address masking
"""
from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, AsyncIterator, Dict, Optional

from .config import LoggingConfig
from .user_operation import UserOperationRequest, parse_quantity

logger = logging.getLogger(__name__)


class OperationType(str, Enum):
    """Types of smart account operations."""
    BUILD_USER_OPERATION = "build_user_operation"
    SEND_USER_OPERATION = "send_user_operation"
    SEND_TRANSACTION = "send_transaction"
    WAIT_FOR_TRANSACTION = "wait_for_transaction"
    SIGN_MESSAGE = "sign_message"


@dataclass
class OperationContext:
    """Context for a smart account operation."""
    operation_id: str
    operation_type: OperationType
    chain_id: int
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    completed_at: Optional[datetime] = None
    duration_ms: Optional[float] = None
    success: bool = False
    error: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def complete(self, success: bool = True, error: Optional[str] = None) -> None:
        """Mark operation as complete."""
        self.completed_at = datetime.now(timezone.utc)
        self.duration_ms = (
            (self.completed_at - self.started_at).total_seconds() * 1000
        )
        self.success = success
        self.error = error

    def to_dict(self) -> Dict[str, Any]:
        return {
            "operation_id": self.operation_id,
            "operation_type": self.operation_type.value,
            "chain_id": self.chain_id,
            "started_at": self.started_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "duration_ms": self.duration_ms,
            "success": self.success,
            "error": self.error,
            "metadata": self.metadata,
        }


def mask_address(address: str) -> str:
    """Mask middle portion of address for privacy."""
    if len(address) < 10:
        return address
    return f"{address[:6]}...{address[-4:]}"


class AALogger:
    """Logger bound to one provider's chain and logging settings."""

    def __init__(
        self,
        chain_id: int,
        config: Optional[LoggingConfig] = None,
        name: str = "sardis_aa",
    ):
        self._logger = logging.getLogger(name)
        self._chain_id = chain_id
        self._config = config or LoggingConfig()
        self._operation_counter = 0

    def _generate_operation_id(self) -> str:
        self._operation_counter += 1
        timestamp = int(time.time() * 1000)
        return f"aa_{timestamp}_{self._operation_counter}"

    def _get_level(self, level_str: str) -> int:
        return getattr(logging, level_str.upper(), logging.INFO)

    def _address(self, address: str) -> str:
        return mask_address(address) if self._config.mask_addresses else address

    @asynccontextmanager
    async def operation_context(
        self,
        operation_type: OperationType,
        **metadata: Any,
    ) -> AsyncIterator[OperationContext]:
        """
        Track an operation from start to completion.

        Usage:
            async with aa_logger.operation_context(OperationType.SEND_USER_OPERATION) as ctx:
                ctx.metadata["user_op_hash"] = user_op_hash
        """
        ctx = OperationContext(
            operation_id=self._generate_operation_id(),
            operation_type=operation_type,
            chain_id=self._chain_id,
            metadata=metadata,
        )
        self._logger.debug(
            f"Starting {operation_type.value} on chain {self._chain_id}",
            extra={"operation": ctx.to_dict()},
        )

        try:
            yield ctx
            ctx.complete(success=True)
        except Exception as e:
            ctx.complete(success=False, error=str(e) or type(e).__name__)
            raise
        finally:
            level = (
                self._get_level(self._config.operation_level)
                if ctx.success
                else self._get_level(self._config.error_level)
            )
            self._logger.log(
                level,
                f"Completed {operation_type.value} on chain {self._chain_id} "
                f"in {ctx.duration_ms or 0:.0f}ms (success={ctx.success})",
                extra={"operation": ctx.to_dict()},
            )

    def log_user_operation_submitted(
        self,
        user_op_hash: str,
        request: UserOperationRequest,
        entry_point_address: str,
    ) -> None:
        data: Dict[str, Any] = {
            "user_op_hash": user_op_hash,
            "sender": self._address(request.sender),
            "nonce": parse_quantity(request.nonce),
            "entry_point": entry_point_address,
            "chain_id": self._chain_id,
            "sponsored": request.paymaster_and_data != "0x",
        }
        if self._config.log_fee_bids:
            data["max_fee_per_gas"] = parse_quantity(request.max_fee_per_gas)
            data["max_priority_fee_per_gas"] = parse_quantity(request.max_priority_fee_per_gas)

        self._logger.log(
            self._get_level(self._config.operation_level),
            f"User operation submitted: {user_op_hash} from {data['sender']}",
            extra={"user_operation": data},
        )
