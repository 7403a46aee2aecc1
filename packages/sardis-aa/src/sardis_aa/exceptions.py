"""Error taxonomy for smart account operations."""
from __future__ import annotations

import json
from typing import Any, Optional


class SmartAccountError(Exception):
    """Base exception for sardis-aa."""

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or "SMART_ACCOUNT_ERROR"
        self.details = details or {}

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "details": self.details,
            }
        }


class AccountNotConnectedError(SmartAccountError):
    """Operation requires a bound account and none is connected."""

    def __init__(self, message: str = "account not connected"):
        super().__init__(message, code="ACCOUNT_NOT_CONNECTED")


class IncompleteRequestError(SmartAccountError):
    """A user operation left the pipeline with unset fields."""

    def __init__(self, request: dict[str, Any], missing: list[str]):
        pretty = json.dumps(request, indent=2, default=str)
        super().__init__(
            "Request is missing parameters. All properties on the user operation "
            f"must be set (missing: {', '.join(missing)}). uo: {pretty}",
            code="INCOMPLETE_REQUEST",
            details={"missing": missing, "request": request},
        )
        self.request = request
        self.missing = missing


class InvalidFeeDataError(SmartAccountError):
    """Fee data from the network is missing maxFeePerGas or maxPriorityFeePerGas."""

    def __init__(
        self,
        max_fee_per_gas: Optional[int] = None,
        max_priority_fee_per_gas: Optional[int] = None,
    ):
        super().__init__(
            "feeData is missing maxFeePerGas or maxPriorityFeePerGas",
            code="INVALID_FEE_DATA",
            details={
                "max_fee_per_gas": max_fee_per_gas,
                "max_priority_fee_per_gas": max_priority_fee_per_gas,
            },
        )


class InvalidRecipientError(SmartAccountError):
    """Transaction request has no target address."""

    def __init__(self, message: str = "transaction is missing to address"):
        super().__init__(message, code="INVALID_RECIPIENT")


class UnsupportedSignerMismatchError(SmartAccountError):
    """Message signing requested for an address other than the bound account."""

    def __init__(self, requested: str, account_address: str):
        super().__init__(
            "cannot sign for address that is not the current account",
            code="SIGNER_MISMATCH",
            details={"requested": requested, "account_address": account_address},
        )
        self.requested = requested
        self.account_address = account_address


class ConfirmationTimeoutError(SmartAccountError):
    """No receipt appeared for a user operation within the retry budget."""

    def __init__(self, user_op_hash: str, attempts: int):
        super().__init__(
            f"Failed to find transaction for User Operation {user_op_hash} "
            f"after {attempts} attempts",
            code="CONFIRMATION_TIMEOUT",
            details={"user_op_hash": user_op_hash, "attempts": attempts},
        )
        self.user_op_hash = user_op_hash
        self.attempts = attempts


class ConfirmationCancelledError(SmartAccountError):
    """The caller abandoned a confirmation wait."""

    def __init__(self, user_op_hash: str, attempts: int):
        super().__init__(
            f"Confirmation wait for {user_op_hash} cancelled after {attempts} attempts",
            code="CONFIRMATION_CANCELLED",
            details={"user_op_hash": user_op_hash, "attempts": attempts},
        )
        self.user_op_hash = user_op_hash
        self.attempts = attempts


class BundlerRPCError(SmartAccountError):
    """JSON-RPC error returned by the bundler or node."""

    def __init__(self, method: str, error: Any):
        if isinstance(error, dict):
            rpc_code = error.get("code")
            rpc_message = error.get("message", str(error))
        else:
            rpc_code = None
            rpc_message = str(error)
        super().__init__(
            f"Bundler RPC error ({method}): {rpc_message}",
            code="BUNDLER_RPC_ERROR",
            details={"method": method, "rpc_code": rpc_code, "data": error},
        )
        self.method = method
        self.rpc_code = rpc_code
        self.rpc_message = rpc_message
