"""ERC-4337 bundler JSON-RPC client."""

from __future__ import annotations

import itertools
import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Union

import httpx

from .exceptions import BundlerRPCError
from .interfaces import BundlerClientPort, FeeData, GasEstimate
from .user_operation import UserOperationRequest, parse_quantity

logger = logging.getLogger(__name__)


@dataclass
class BundlerConfig:
    url: str
    timeout_seconds: float = 30.0


def _serialize(request: Union[UserOperationRequest, Mapping[str, Any]]) -> Dict[str, Any]:
    if isinstance(request, UserOperationRequest):
        return request.to_rpc()
    return dict(request)


class BundlerClient(BundlerClientPort):
    """
    Talks to a bundler endpoint that also proxies standard eth_* methods
    (as Alchemy, Pimlico and Stackup endpoints do).
    """

    def __init__(
        self,
        config: BundlerConfig,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self._config = config
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=config.timeout_seconds)
        self._ids = itertools.count(1)

    @property
    def url(self) -> str:
        return self._config.url

    async def _rpc(self, method: str, params: List[Any]) -> Any:
        request_id = next(self._ids)
        payload = {"jsonrpc": "2.0", "id": request_id, "method": method, "params": params}
        started = time.monotonic()
        response = await self._client.post(self._config.url, json=payload)
        response.raise_for_status()
        data = response.json()
        logger.debug(
            "RPC %s (id=%d) in %.0fms", method, request_id, (time.monotonic() - started) * 1000
        )
        if data.get("error"):
            raise BundlerRPCError(method, data["error"])
        return data.get("result")

    async def request(self, method: str, params: Optional[List[Any]] = None) -> Any:
        return await self._rpc(method, list(params or []))

    async def get_chain_id(self) -> int:
        return parse_quantity(await self._rpc("eth_chainId", []))

    async def estimate_user_operation_gas(
        self,
        request: Union[UserOperationRequest, Mapping[str, Any]],
        entry_point: str,
    ) -> GasEstimate:
        result = await self._rpc("eth_estimateUserOperationGas", [_serialize(request), entry_point])
        if not isinstance(result, dict):
            raise BundlerRPCError("eth_estimateUserOperationGas", "invalid gas estimate payload")
        return GasEstimate.from_rpc(result)

    async def get_max_priority_fee_per_gas(self) -> int:
        return parse_quantity(await self._rpc("eth_maxPriorityFeePerGas", []))

    async def get_fee_data(self) -> FeeData:
        """EIP-1559 fees from the latest block: maxFee = 2 * baseFee + priority fee."""
        block = await self._rpc("eth_getBlockByNumber", ["latest", False])
        if not isinstance(block, dict) or block.get("baseFeePerGas") is None:
            return FeeData()
        base_fee = parse_quantity(block["baseFeePerGas"])
        priority_fee = await self.get_max_priority_fee_per_gas()
        return FeeData(
            max_fee_per_gas=base_fee * 2 + priority_fee,
            max_priority_fee_per_gas=priority_fee,
            base_fee_per_gas=base_fee,
        )

    async def send_user_operation(
        self,
        request: Union[UserOperationRequest, Mapping[str, Any]],
        entry_point: str,
    ) -> str:
        result = await self._rpc("eth_sendUserOperation", [_serialize(request), entry_point])
        if not isinstance(result, str):
            raise BundlerRPCError("eth_sendUserOperation", "invalid user op hash")
        return result

    async def get_user_operation_receipt(self, user_op_hash: str) -> Optional[Dict[str, Any]]:
        result = await self._rpc("eth_getUserOperationReceipt", [user_op_hash])
        if result is None:
            return None
        if not isinstance(result, dict):
            raise BundlerRPCError("eth_getUserOperationReceipt", "invalid receipt payload")
        return result

    async def get_transaction(self, tx_hash: str) -> Dict[str, Any]:
        result = await self._rpc("eth_getTransactionByHash", [tx_hash])
        if not isinstance(result, dict):
            raise BundlerRPCError("eth_getTransactionByHash", f"transaction {tx_hash} not found")
        return result

    async def get_supported_entry_points(self) -> List[str]:
        return list(await self._rpc("eth_supportedEntryPoints", []) or [])

    async def get_balance(self, address: str, block: str = "latest") -> int:
        return parse_quantity(await self._rpc("eth_getBalance", [address, block]))

    async def get_code(self, address: str, block: str = "latest") -> str:
        return await self._rpc("eth_getCode", [address, block]) or "0x"

    async def call(self, to: str, data: str, block: str = "latest") -> str:
        return await self._rpc("eth_call", [{"to": to, "data": data}, block])

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "BundlerClient":
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()
