"""
Receipt polling for submitted user operations.

A bundler only returns a receipt once the bundle containing the operation is
mined. The poller waits a fixed interval before each lookup, treats lookup
errors as "not yet available", and gives up after a bounded number of
attempts. This is the only retrying step of a submission.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Optional

from .config import DEFAULT_TX_MAX_RETRIES, DEFAULT_TX_RETRY_INTERVAL_MS
from .exceptions import ConfirmationCancelledError, ConfirmationTimeoutError
from .interfaces import BundlerClientPort

logger = logging.getLogger(__name__)


def receipt_transaction_hash(receipt: Dict[str, Any]) -> str:
    """Transaction hash of the bundle that included the operation."""
    inner = receipt.get("receipt")
    if isinstance(inner, dict) and inner.get("transactionHash"):
        return inner["transactionHash"]
    if receipt.get("transactionHash"):
        return receipt["transactionHash"]
    raise ValueError(f"user operation receipt has no transactionHash: {receipt!r}")


class ConfirmationPoller:
    """Resolves a user operation hash to its on-chain transaction hash."""

    def __init__(
        self,
        client: BundlerClientPort,
        max_retries: int = DEFAULT_TX_MAX_RETRIES,
        retry_interval_ms: int = DEFAULT_TX_RETRY_INTERVAL_MS,
    ):
        if max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        if retry_interval_ms < 0:
            raise ValueError("retry_interval_ms must be >= 0")
        self._client = client
        self._max_retries = max_retries
        self._retry_interval_seconds = retry_interval_ms / 1000

    async def wait_for_transaction(
        self,
        user_op_hash: str,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> str:
        """
        Poll for the receipt of ``user_op_hash`` and return the transaction hash.

        Args:
            user_op_hash: Hash returned by eth_sendUserOperation
            cancel_event: Optional event; setting it abandons the wait

        Raises:
            ConfirmationTimeoutError: no receipt after max_retries lookups
            ConfirmationCancelledError: cancel_event was set
        """
        for attempt in range(1, self._max_retries + 1):
            await self._wait_interval(user_op_hash, attempt - 1, cancel_event)

            try:
                receipt = await self._client.get_user_operation_receipt(user_op_hash)
            except Exception as e:
                logger.debug(
                    "Receipt lookup for %s failed on attempt %d/%d: %s",
                    user_op_hash,
                    attempt,
                    self._max_retries,
                    e,
                )
                receipt = None

            if receipt:
                tx = await self._client.get_transaction(receipt_transaction_hash(receipt))
                logger.info(
                    "User operation %s included in %s after %d attempts",
                    user_op_hash,
                    tx["hash"],
                    attempt,
                )
                return tx["hash"]

            logger.debug(
                "No receipt yet for %s (attempt %d/%d)",
                user_op_hash,
                attempt,
                self._max_retries,
            )

        raise ConfirmationTimeoutError(user_op_hash, self._max_retries)

    async def _wait_interval(
        self,
        user_op_hash: str,
        attempts: int,
        cancel_event: Optional[asyncio.Event],
    ) -> None:
        if cancel_event is None:
            await asyncio.sleep(self._retry_interval_seconds)
            return

        if cancel_event.is_set():
            raise ConfirmationCancelledError(user_op_hash, attempts)
        try:
            await asyncio.wait_for(cancel_event.wait(), timeout=self._retry_interval_seconds)
        except asyncio.TimeoutError:
            return
        raise ConfirmationCancelledError(user_op_hash, attempts)
