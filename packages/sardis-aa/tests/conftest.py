"""
Pytest configuration and stub collaborators for sardis-aa tests.
"""
from __future__ import annotations

import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest

# Add package source to path
package_src = Path(__file__).parent.parent / "src"
if str(package_src) not in sys.path:
    sys.path.insert(0, str(package_src))

from sardis_aa.config import ENTRYPOINT_V06_ADDRESS, ProviderConfig  # noqa: E402
from sardis_aa.interfaces import (  # noqa: E402
    BundlerClientPort,
    FeeData,
    GasEstimate,
    SmartAccountPort,
)

ACCOUNT_ADDRESS = "0x1234567890123456789012345678901234567890"
TARGET_ADDRESS = "0x70997970C51812dc3A010C7d01b50e0d17dc79C8"
USER_OP_HASH = "0x" + "b" * 64
TX_HASH = "0x" + "a" * 64
STUB_SIGNATURE = "0x" + "5" * 130
STUB_DUMMY_SIGNATURE = "0x" + "d" * 130
STUB_INIT_CODE = "0x9406cc6185a346906296840746125a0e449764545fbfb9cf"
STUB_CALL_DATA = "0xb61d27f6"


class StubAccount(SmartAccountPort):
    """Account stub that records every call."""

    def __init__(
        self,
        address: str = ACCOUNT_ADDRESS,
        nonce: int = 7,
        init_code: str = "0x",
        signature: str = STUB_SIGNATURE,
    ):
        self.address = address
        self.nonce = nonce
        self.init_code = init_code
        self.signature = signature
        self.calls: List[tuple] = []
        self.signed_messages: List[Any] = []

    async def get_address(self) -> str:
        self.calls.append(("get_address",))
        return self.address

    async def get_nonce(self) -> int:
        self.calls.append(("get_nonce",))
        return self.nonce

    async def get_init_code(self) -> str:
        self.calls.append(("get_init_code",))
        return self.init_code

    async def encode_execute(self, target: str, value: int, data: str) -> str:
        self.calls.append(("encode_execute", target, value, data))
        return STUB_CALL_DATA

    async def get_dummy_signature(self) -> str:
        self.calls.append(("get_dummy_signature",))
        return STUB_DUMMY_SIGNATURE

    async def sign_message(self, message: Any) -> str:
        self.calls.append(("sign_message", message))
        self.signed_messages.append(message)
        return self.signature


class StubBundler(BundlerClientPort):
    """Bundler stub with scripted answers; every call lands in ``calls``."""

    def __init__(
        self,
        gas: Optional[GasEstimate] = None,
        priority_fee: int = 1_000_000_000,
        fee_data: Optional[FeeData] = None,
        receipts: Optional[List[Any]] = None,
        user_op_hash: str = USER_OP_HASH,
        tx_hash: str = TX_HASH,
    ):
        self.gas = gas or GasEstimate(
            call_gas_limit=35_000,
            verification_gas_limit=70_000,
            pre_verification_gas=48_000,
        )
        self.priority_fee = priority_fee
        self.fee_data = fee_data or FeeData(
            max_fee_per_gas=5_000_000_000,
            max_priority_fee_per_gas=2_000_000_000,
        )
        # Each entry is returned (or raised, if an exception) by one receipt lookup;
        # once exhausted, lookups return None.
        self.receipts = list(receipts or [])
        self.user_op_hash = user_op_hash
        self.tx_hash = tx_hash
        self.calls: List[tuple] = []
        self.sent: List[Any] = []
        self.receipt_lookups = 0

    def methods(self) -> List[str]:
        return [call[0] for call in self.calls]

    async def estimate_user_operation_gas(self, request, entry_point):
        self.calls.append(("estimate_user_operation_gas", dict(request), entry_point))
        return self.gas

    async def get_max_priority_fee_per_gas(self) -> int:
        self.calls.append(("get_max_priority_fee_per_gas",))
        return self.priority_fee

    async def get_fee_data(self) -> FeeData:
        self.calls.append(("get_fee_data",))
        return self.fee_data

    async def send_user_operation(self, request, entry_point) -> str:
        self.calls.append(("send_user_operation", request, entry_point))
        self.sent.append(request)
        return self.user_op_hash

    async def get_user_operation_receipt(self, user_op_hash: str) -> Optional[Dict[str, Any]]:
        self.calls.append(("get_user_operation_receipt", user_op_hash))
        self.receipt_lookups += 1
        if not self.receipts:
            return None
        answer = self.receipts.pop(0)
        if isinstance(answer, Exception):
            raise answer
        return answer

    async def get_transaction(self, tx_hash: str) -> Dict[str, Any]:
        self.calls.append(("get_transaction", tx_hash))
        return {"hash": tx_hash, "blockNumber": "0x10"}

    async def get_supported_entry_points(self) -> List[str]:
        self.calls.append(("get_supported_entry_points",))
        return [ENTRYPOINT_V06_ADDRESS]

    async def get_balance(self, address: str) -> int:
        self.calls.append(("get_balance", address))
        return 10**18

    async def request(self, method: str, params=None) -> Any:
        self.calls.append(("request", method, list(params or [])))
        return {"method": method, "params": list(params or [])}


def make_receipt(tx_hash: str = TX_HASH) -> Dict[str, Any]:
    return {
        "userOpHash": USER_OP_HASH,
        "success": True,
        "receipt": {"transactionHash": tx_hash, "blockNumber": "0x10"},
    }


@pytest.fixture
def stub_account() -> StubAccount:
    return StubAccount()


@pytest.fixture
def stub_bundler() -> StubBundler:
    return StubBundler()


@pytest.fixture
def fast_config() -> ProviderConfig:
    """Provider config with no polling delay."""
    return ProviderConfig(chain_id=84532, tx_max_retries=5, tx_retry_interval_ms=0)
