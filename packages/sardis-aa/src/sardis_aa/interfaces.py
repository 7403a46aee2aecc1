"""Capability interfaces consumed by the provider."""
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Union

from .user_operation import UserOperationRequest, parse_quantity

HexStr = str


@dataclass(frozen=True)
class GasEstimate:
    """Gas limits returned by eth_estimateUserOperationGas."""
    call_gas_limit: int
    verification_gas_limit: int
    pre_verification_gas: int

    @classmethod
    def from_rpc(cls, payload: Dict[str, Any]) -> "GasEstimate":
        return cls(
            call_gas_limit=parse_quantity(payload["callGasLimit"]),
            verification_gas_limit=parse_quantity(payload["verificationGasLimit"]),
            pre_verification_gas=parse_quantity(payload["preVerificationGas"]),
        )


@dataclass(frozen=True)
class FeeData:
    """EIP-1559 fee suggestion. Either field may be absent on legacy chains."""
    max_fee_per_gas: Optional[int] = None
    max_priority_fee_per_gas: Optional[int] = None
    base_fee_per_gas: Optional[int] = None


class SignerPort(ABC):
    """Key holder that owns a smart account."""

    @abstractmethod
    async def get_address(self) -> HexStr:
        pass

    @abstractmethod
    async def sign_message(self, message: Union[bytes, HexStr]) -> HexStr:
        """EIP-191 sign raw bytes (or a 0x hex string) and return the signature hex."""
        pass


class SmartAccountPort(ABC):
    """Smart contract account that user operations are built for."""

    @abstractmethod
    async def get_address(self) -> HexStr:
        pass

    @abstractmethod
    async def get_nonce(self) -> int:
        pass

    @abstractmethod
    async def get_init_code(self) -> HexStr:
        """Factory init code, or "0x" once the account is deployed."""
        pass

    @abstractmethod
    async def encode_execute(self, target: HexStr, value: int, data: HexStr) -> HexStr:
        pass

    @abstractmethod
    async def get_dummy_signature(self) -> HexStr:
        """Placeholder with the same byte length as a real signature."""
        pass

    @abstractmethod
    async def sign_message(self, message: Union[bytes, HexStr]) -> HexStr:
        pass


class BundlerClientPort(ABC):
    """ERC-4337 bundler plus the node methods the provider relies on."""

    @abstractmethod
    async def estimate_user_operation_gas(
        self, request: Mapping[str, str], entry_point: HexStr
    ) -> GasEstimate:
        """Estimate against a (possibly partial) wire mapping of the operation."""
        pass

    @abstractmethod
    async def get_max_priority_fee_per_gas(self) -> int:
        pass

    @abstractmethod
    async def get_fee_data(self) -> FeeData:
        pass

    @abstractmethod
    async def send_user_operation(
        self, request: UserOperationRequest, entry_point: HexStr
    ) -> HexStr:
        pass

    @abstractmethod
    async def get_user_operation_receipt(self, user_op_hash: HexStr) -> Optional[Dict[str, Any]]:
        """Receipt mapping, or None while the operation is not yet included."""
        pass

    @abstractmethod
    async def get_transaction(self, tx_hash: HexStr) -> Dict[str, Any]:
        pass

    @abstractmethod
    async def get_supported_entry_points(self) -> List[HexStr]:
        pass

    @abstractmethod
    async def get_balance(self, address: HexStr) -> int:
        pass

    @abstractmethod
    async def request(self, method: str, params: Optional[List[Any]] = None) -> Any:
        """Raw JSON-RPC call for methods the provider does not handle itself."""
        pass
