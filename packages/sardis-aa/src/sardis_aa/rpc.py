"""EIP-1193 style requests understood by SmartAccountProvider.request()."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, List, Mapping, Optional, Sequence, Union

from .user_operation import EMPTY_HEX, Quantity, parse_quantity

SEND_TRANSACTION = "eth_sendTransaction"
ETH_SIGN = "eth_sign"
PERSONAL_SIGN = "personal_sign"


@dataclass(frozen=True)
class TransactionRequest:
    """Conventional transaction shape (eth_sendTransaction params[0])."""
    to: Optional[str] = None
    data: Optional[str] = None
    value: Optional[Quantity] = None
    from_address: Optional[str] = None

    @classmethod
    def from_rpc(cls, payload: Mapping[str, Any]) -> "TransactionRequest":
        return cls(
            to=payload.get("to"),
            data=payload.get("data") or payload.get("input"),
            value=payload.get("value"),
            from_address=payload.get("from"),
        )

    @property
    def call_data(self) -> str:
        return self.data or EMPTY_HEX

    @property
    def value_wei(self) -> int:
        return parse_quantity(self.value) if self.value else 0


@dataclass(frozen=True)
class SendTransactionCall:
    transaction: TransactionRequest


@dataclass(frozen=True)
class SignMessageCall:
    method: str
    message: str
    address: str


@dataclass(frozen=True)
class PassthroughCall:
    """Any method the provider does not handle itself."""
    method: str
    params: List[Any] = field(default_factory=list)


RpcCall = Union[SendTransactionCall, SignMessageCall, PassthroughCall]


def parse_rpc_call(method: str, params: Optional[Sequence[Any]] = None) -> RpcCall:
    params = list(params or [])

    if method == SEND_TRANSACTION:
        if not params:
            raise ValueError(f"{method} requires a transaction object")
        tx = params[0]
        if isinstance(tx, Mapping):
            tx = TransactionRequest.from_rpc(tx)
        elif not isinstance(tx, TransactionRequest):
            raise ValueError(f"{method} expects a transaction object, got {tx!r}")
        return SendTransactionCall(transaction=tx)

    if method in (ETH_SIGN, PERSONAL_SIGN):
        if len(params) < 2:
            raise ValueError(f"{method} requires a message and an address")
        # personal_sign takes [data, address]; eth_sign takes [address, data]
        if method == PERSONAL_SIGN:
            message, address = params[0], params[1]
        else:
            address, message = params[0], params[1]
        if not isinstance(address, str):
            raise ValueError(f"{method} expects an address string, got {address!r}")
        if not isinstance(message, (str, bytes)):
            raise ValueError(f"{method} expects hex or text message data, got {message!r}")
        return SignMessageCall(method=method, message=message, address=address)

    return PassthroughCall(method=method, params=params)
