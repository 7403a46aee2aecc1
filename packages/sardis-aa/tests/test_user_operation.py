"""Tests for user operation encoding, validation and hashing."""
from __future__ import annotations

import pytest

from sardis_aa.exceptions import IncompleteRequestError
from sardis_aa.user_operation import (
    USER_OPERATION_WIRE_KEYS,
    UserOperationDraft,
    UserOperationRequest,
    get_user_operation_hash,
    parse_quantity,
    to_hex_data,
    to_hex_quantity,
    to_request,
)

ENTRY_POINT = "0x5FF137D4b0FDCD49DcA30c7CF57E578a026d2789"
SENDER = "0x1234567890123456789012345678901234567890"


def full_draft(**overrides) -> UserOperationDraft:
    values = dict(
        sender=SENDER,
        nonce=3,
        init_code="0x",
        call_data="0xB61D27F6",
        call_gas_limit=35_000,
        verification_gas_limit=70_000,
        pre_verification_gas=48_000,
        max_fee_per_gas=4_333_333_333,
        max_priority_fee_per_gas=1_333_333_333,
        paymaster_and_data="0x",
        signature="0x" + "ab" * 65,
    )
    values.update(overrides)
    return UserOperationDraft(**values)


class TestHexEncoding:
    def test_quantity_zero(self):
        assert to_hex_quantity(0) == "0x0"

    def test_quantity_from_int_and_hex(self):
        assert to_hex_quantity(255) == "0xff"
        assert to_hex_quantity("0xff") == "0xff"
        assert to_hex_quantity("255") == "0xff"

    def test_negative_quantity_rejected(self):
        with pytest.raises(ValueError):
            to_hex_quantity(-1)

    def test_data_from_bytes(self):
        assert to_hex_data(b"\x01\xab") == "0x01ab"
        assert to_hex_data(b"") == "0x"

    def test_data_is_lowercased(self):
        assert to_hex_data("0xABCD") == "0xabcd"

    def test_data_requires_prefix(self):
        with pytest.raises(ValueError):
            to_hex_data("abcd")

    def test_data_rejects_non_hex(self):
        with pytest.raises(ValueError):
            to_hex_data("0xzz")

    def test_parse_quantity(self):
        assert parse_quantity("0x") == 0
        assert parse_quantity("0x10") == 16
        assert parse_quantity(16) == 16
        with pytest.raises(TypeError):
            parse_quantity(True)


class TestToRequest:
    def test_full_draft_encodes_every_field(self):
        request = to_request(full_draft())
        rpc = request.to_rpc()

        assert tuple(rpc.keys()) == USER_OPERATION_WIRE_KEYS
        assert all(isinstance(v, str) and v.startswith("0x") for v in rpc.values())
        assert rpc["nonce"] == "0x3"
        assert rpc["callGasLimit"] == hex(35_000)
        assert rpc["maxFeePerGas"] == hex(4_333_333_333)
        assert rpc["callData"] == "0xb61d27f6"

    @pytest.mark.parametrize(
        "attr,wire",
        [
            ("sender", "sender"),
            ("nonce", "nonce"),
            ("init_code", "initCode"),
            ("call_gas_limit", "callGasLimit"),
            ("max_priority_fee_per_gas", "maxPriorityFeePerGas"),
            ("paymaster_and_data", "paymasterAndData"),
            ("signature", "signature"),
        ],
    )
    def test_missing_field_rejected(self, attr, wire):
        with pytest.raises(IncompleteRequestError) as exc_info:
            to_request(full_draft(**{attr: None}))

        err = exc_info.value
        assert err.missing == [wire]
        assert err.request[wire] is None
        assert err.code == "INCOMPLETE_REQUEST"
        assert wire in err.message

    def test_partial_request_carries_set_fields(self):
        draft = UserOperationDraft(sender=SENDER, nonce=1)
        with pytest.raises(IncompleteRequestError) as exc_info:
            to_request(draft)
        assert exc_info.value.request["nonce"] == "0x1"
        assert len(exc_info.value.missing) == 9

    def test_zero_values_are_not_missing(self):
        request = to_request(full_draft(nonce=0, call_gas_limit=0))
        assert request.nonce == "0x0"
        assert request.call_gas_limit == "0x0"

    def test_decode_round_trip(self):
        draft = full_draft(call_data="0xb61d27f6")
        decoded = to_request(draft).to_draft()
        assert decoded == draft

    def test_from_rpc(self):
        rpc = to_request(full_draft()).to_rpc()
        assert UserOperationRequest.from_rpc(rpc) == to_request(full_draft())

    def test_from_rpc_missing_key(self):
        rpc = to_request(full_draft()).to_rpc()
        del rpc["paymasterAndData"]
        with pytest.raises(IncompleteRequestError):
            UserOperationRequest.from_rpc(rpc)

    def test_with_signature_returns_new_request(self):
        request = to_request(full_draft())
        signed = request.with_signature("0xDEAD")
        assert signed.signature == "0xdead"
        assert request.signature != signed.signature

    def test_partial_rpc_drops_unset(self):
        rpc = UserOperationDraft(sender=SENDER, nonce=2).to_rpc(include_unset=False)
        assert rpc == {"sender": SENDER, "nonce": "0x2"}


class TestUserOperationHash:
    def test_known_answer(self):
        # Digest computed outside web3/eth_abi: keccak256 over the v0.6 pack()
        # layout of 32-byte words, then over (packHash, entryPoint, chainId).
        request = to_request(
            UserOperationDraft(
                sender="0x70997970C51812dc3A010C7d01b50e0d17dc79C8",
                nonce=1,
                init_code="0x",
                call_data="0xdeadbeef",
                call_gas_limit=35_000,
                verification_gas_limit=70_000,
                pre_verification_gas=48_000,
                max_fee_per_gas=4_333_333_333,
                max_priority_fee_per_gas=1_333_333_333,
                paymaster_and_data="0x",
                signature="0x" + "00" * 65,
            )
        )

        assert get_user_operation_hash(request, ENTRY_POINT, 84532) == (
            "0x41bdc73aeba4d23f5a8edfe8b06cee997d98228aaa402f03ff9486acf8636c81"
        )

    def test_hash_shape(self):
        digest = get_user_operation_hash(to_request(full_draft()), ENTRY_POINT, 84532)
        assert digest.startswith("0x")
        assert len(digest) == 66

    def test_deterministic(self):
        request = to_request(full_draft())
        assert get_user_operation_hash(request, ENTRY_POINT, 1) == get_user_operation_hash(
            request, ENTRY_POINT, 1
        )

    def test_signature_not_hashed(self):
        a = to_request(full_draft(signature="0x01"))
        b = to_request(full_draft(signature="0x02"))
        assert get_user_operation_hash(a, ENTRY_POINT, 1) == get_user_operation_hash(b, ENTRY_POINT, 1)

    def test_chain_id_bound(self):
        request = to_request(full_draft())
        assert get_user_operation_hash(request, ENTRY_POINT, 1) != get_user_operation_hash(
            request, ENTRY_POINT, 10
        )

    def test_entry_point_bound(self):
        request = to_request(full_draft())
        other = "0x0000000071727De22E5E9d8BAf0edAc6f37da032"
        assert get_user_operation_hash(request, ENTRY_POINT, 1) != get_user_operation_hash(
            request, other, 1
        )

    @pytest.mark.parametrize(
        "field,value",
        [
            ("nonce", 4),
            ("init_code", "0x01"),
            ("call_data", "0xb61d27f7"),
            ("max_fee_per_gas", 1),
            ("paymaster_and_data", "0x01"),
        ],
    )
    def test_fields_are_bound(self, field, value):
        base = get_user_operation_hash(to_request(full_draft()), ENTRY_POINT, 1)
        changed = get_user_operation_hash(to_request(full_draft(**{field: value})), ENTRY_POINT, 1)
        assert base != changed

    def test_address_case_does_not_matter(self):
        lower = to_request(full_draft(sender=SENDER.lower()))
        assert get_user_operation_hash(lower, ENTRY_POINT.lower(), 1) == get_user_operation_hash(
            to_request(full_draft()), ENTRY_POINT, 1
        )
