"""
UserOperation primitives for ERC-4337 (EntryPoint v0.6).

A UserOperationDraft is filled in stage by stage while a submission is being
built. to_request() is the single gate that turns a draft into the immutable,
hex-encoded UserOperationRequest that gets signed and sent to a bundler.
"""
from __future__ import annotations

from dataclasses import asdict, dataclass, replace
from typing import Any, Dict, Optional, Union

from eth_abi import encode
from web3 import Web3

from .exceptions import IncompleteRequestError

HexLike = Union[str, bytes]
Quantity = Union[int, str]

EMPTY_HEX = "0x"

# (python attribute, wire key, numeric)
_FIELDS = (
    ("sender", "sender", False),
    ("nonce", "nonce", True),
    ("init_code", "initCode", False),
    ("call_data", "callData", False),
    ("call_gas_limit", "callGasLimit", True),
    ("verification_gas_limit", "verificationGasLimit", True),
    ("pre_verification_gas", "preVerificationGas", True),
    ("max_fee_per_gas", "maxFeePerGas", True),
    ("max_priority_fee_per_gas", "maxPriorityFeePerGas", True),
    ("paymaster_and_data", "paymasterAndData", False),
    ("signature", "signature", False),
)

USER_OPERATION_WIRE_KEYS = tuple(wire for _, wire, _ in _FIELDS)


def to_hex_quantity(value: Quantity) -> str:
    """Canonical hex for an unsigned integer ("0x0" for zero)."""
    number = parse_quantity(value)
    if number < 0:
        raise ValueError(f"quantity must be unsigned, got {number}")
    return hex(number)


def to_hex_data(value: HexLike) -> str:
    """Canonical 0x-prefixed lowercase hex for a byte sequence."""
    if isinstance(value, (bytes, bytearray)):
        return "0x" + bytes(value).hex()
    if not isinstance(value, str) or not value.startswith(("0x", "0X")):
        raise ValueError(f"expected 0x-prefixed hex data, got {value!r}")
    body = value[2:]
    if body:
        int(body, 16)
    return "0x" + body.lower()


def parse_quantity(value: Quantity) -> int:
    """Decode an int or a (hex or decimal) string quantity."""
    if isinstance(value, bool):
        raise TypeError("booleans are not quantities")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        if value.startswith(("0x", "0X")):
            return int(value, 16) if len(value) > 2 else 0
        return int(value)
    raise TypeError(f"cannot interpret {value!r} as a quantity")


@dataclass
class UserOperationDraft:
    """Mutable user operation while the middleware pipeline fills it in."""
    sender: Optional[str] = None
    nonce: Optional[Quantity] = None
    init_code: Optional[HexLike] = None
    call_data: Optional[HexLike] = None
    call_gas_limit: Optional[Quantity] = None
    verification_gas_limit: Optional[Quantity] = None
    pre_verification_gas: Optional[Quantity] = None
    max_fee_per_gas: Optional[Quantity] = None
    max_priority_fee_per_gas: Optional[Quantity] = None
    paymaster_and_data: Optional[HexLike] = None
    signature: Optional[HexLike] = None

    def missing_fields(self) -> list[str]:
        return [wire for attr, wire, _ in _FIELDS if getattr(self, attr) is None]

    def to_rpc(self, include_unset: bool = True) -> Dict[str, Optional[str]]:
        """Hex-encode whatever is set; unset fields map to None unless dropped."""
        rpc: Dict[str, Optional[str]] = {}
        for attr, wire, numeric in _FIELDS:
            value = getattr(self, attr)
            if value is None:
                if include_unset:
                    rpc[wire] = None
            elif numeric:
                rpc[wire] = to_hex_quantity(value)
            else:
                rpc[wire] = to_hex_data(value)
        return rpc


@dataclass(frozen=True)
class UserOperationRequest:
    """Wire-ready user operation. Every field is a hex string."""
    sender: str
    nonce: str
    init_code: str
    call_data: str
    call_gas_limit: str
    verification_gas_limit: str
    pre_verification_gas: str
    max_fee_per_gas: str
    max_priority_fee_per_gas: str
    paymaster_and_data: str
    signature: str

    def to_rpc(self) -> Dict[str, str]:
        return {wire: getattr(self, attr) for attr, wire, _ in _FIELDS}

    @classmethod
    def from_rpc(cls, payload: Dict[str, Any]) -> "UserOperationRequest":
        """Parse a wire mapping, re-encoding each field canonically."""
        return to_request(
            UserOperationDraft(**{attr: payload.get(wire) for attr, wire, _ in _FIELDS})
        )

    def with_signature(self, signature: HexLike) -> "UserOperationRequest":
        return replace(self, signature=to_hex_data(signature))

    def to_draft(self) -> UserOperationDraft:
        """Decode back to a draft with integer quantities."""
        values = asdict(self)
        for attr, _, numeric in _FIELDS:
            if numeric:
                values[attr] = parse_quantity(values[attr])
        return UserOperationDraft(**values)


def to_request(draft: UserOperationDraft) -> UserOperationRequest:
    """Encode a draft and reject it unless every field is set."""
    rpc = draft.to_rpc()
    missing = [key for key, value in rpc.items() if value is None]
    if missing:
        raise IncompleteRequestError(rpc, missing)
    return UserOperationRequest(
        **{attr: rpc[wire] for attr, wire, _ in _FIELDS}
    )


def get_user_operation_hash(
    request: UserOperationRequest,
    entry_point_address: str,
    chain_id: int,
) -> str:
    """
    EntryPoint v0.6 getUserOpHash.

    keccak256(abi.encode(keccak256(pack(userOp)), entryPoint, chainId)) where
    pack() abi-encodes every field except the signature, with the three
    dynamic byte fields replaced by their keccak256.
    """
    packed = encode(
        [
            "address",
            "uint256",
            "bytes32",
            "bytes32",
            "uint256",
            "uint256",
            "uint256",
            "uint256",
            "uint256",
            "bytes32",
        ],
        [
            Web3.to_checksum_address(request.sender),
            parse_quantity(request.nonce),
            Web3.keccak(hexstr=request.init_code),
            Web3.keccak(hexstr=request.call_data),
            parse_quantity(request.call_gas_limit),
            parse_quantity(request.verification_gas_limit),
            parse_quantity(request.pre_verification_gas),
            parse_quantity(request.max_fee_per_gas),
            parse_quantity(request.max_priority_fee_per_gas),
            Web3.keccak(hexstr=request.paymaster_and_data),
        ],
    )
    digest = Web3.keccak(
        encode(
            ["bytes32", "address", "uint256"],
            [
                Web3.keccak(packed),
                Web3.to_checksum_address(entry_point_address),
                chain_id,
            ],
        )
    )
    return Web3.to_hex(digest)

