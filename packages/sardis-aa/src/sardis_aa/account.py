"""
Reference SimpleAccount (EntryPoint v0.6) implementation.

SimpleAccount is the eth-infinitism sample account: a single ECDSA owner,
deployed through SimpleAccountFactory.createAccount(owner, salt) by the
init code of the account's first user operation.
"""
from __future__ import annotations

import logging
from typing import Optional, Union

from eth_abi import decode, encode
from eth_account import Account
from eth_account.messages import encode_defunct
from web3 import Web3

from .bundler_client import BundlerClient
from .config import ENTRYPOINT_V06_ADDRESS
from .interfaces import SignerPort, SmartAccountPort
from .user_operation import EMPTY_HEX, to_hex_data

logger = logging.getLogger(__name__)

SIMPLE_ACCOUNT_FACTORY_V06 = "0x9406Cc6185a346906296840746125a0E44976454"

# r = 0xff..f000.., s = 0x7aaa..a (low s), v = 28. Recovers to some address,
# which is all gas estimation needs.
DUMMY_SIGNATURE = "0x" + "ff" * 15 + "f0" + "00" * 16 + "7" + "a" * 63 + "1c"

_EXECUTE_SELECTOR = Web3.keccak(text="execute(address,uint256,bytes)")[:4]
_CREATE_ACCOUNT_SELECTOR = Web3.keccak(text="createAccount(address,uint256)")[:4]
_GET_ADDRESS_SELECTOR = Web3.keccak(text="getAddress(address,uint256)")[:4]
_GET_NONCE_SELECTOR = Web3.keccak(text="getNonce(address,uint192)")[:4]


def _message_bytes(message: Union[bytes, str]) -> bytes:
    if isinstance(message, (bytes, bytearray)):
        return bytes(message)
    if message.startswith(("0x", "0X")):
        return Web3.to_bytes(hexstr=message)
    return message.encode("utf-8")


class LocalAccountSigner(SignerPort):
    """EOA owner backed by an in-process private key."""

    def __init__(self, private_key: Union[str, bytes]):
        self._account = Account.from_key(private_key)

    async def get_address(self) -> str:
        return self._account.address

    async def sign_message(self, message: Union[bytes, str]) -> str:
        signed = self._account.sign_message(encode_defunct(primitive=_message_bytes(message)))
        return Web3.to_hex(signed.signature)


class SimpleSmartContractAccount(SmartAccountPort):
    """SimpleAccount owned by ``owner`` and deployed by SimpleAccountFactory."""

    def __init__(
        self,
        rpc_client: BundlerClient,
        owner: SignerPort,
        factory_address: str = SIMPLE_ACCOUNT_FACTORY_V06,
        entry_point_address: str = ENTRYPOINT_V06_ADDRESS,
        salt: int = 0,
        account_address: Optional[str] = None,
    ):
        self._rpc = rpc_client
        self._owner = owner
        self._factory_address = Web3.to_checksum_address(factory_address)
        self._entry_point_address = Web3.to_checksum_address(entry_point_address)
        self._salt = salt
        self._address = Web3.to_checksum_address(account_address) if account_address else None
        self._deployed = False

    @property
    def owner(self) -> SignerPort:
        return self._owner

    async def get_address(self) -> str:
        if self._address is None:
            owner = Web3.to_checksum_address(await self._owner.get_address())
            calldata = _GET_ADDRESS_SELECTOR + encode(["address", "uint256"], [owner, self._salt])
            result = await self._rpc.call(self._factory_address, Web3.to_hex(calldata))
            (address,) = decode(["address"], Web3.to_bytes(hexstr=result))
            self._address = Web3.to_checksum_address(address)
        return self._address

    async def is_deployed(self) -> bool:
        # Deployment is one-way, so a positive answer is cached
        if not self._deployed:
            code = await self._rpc.get_code(await self.get_address())
            self._deployed = code not in (None, "", EMPTY_HEX, "0x0")
        return self._deployed

    async def get_init_code(self) -> str:
        if await self.is_deployed():
            return EMPTY_HEX
        owner = Web3.to_checksum_address(await self._owner.get_address())
        calldata = _CREATE_ACCOUNT_SELECTOR + encode(["address", "uint256"], [owner, self._salt])
        return self._factory_address.lower() + Web3.to_hex(calldata)[2:]

    async def get_nonce(self) -> int:
        if not await self.is_deployed():
            return 0
        sender = await self.get_address()
        calldata = _GET_NONCE_SELECTOR + encode(["address", "uint192"], [sender, 0])
        result = await self._rpc.call(self._entry_point_address, Web3.to_hex(calldata))
        (nonce,) = decode(["uint256"], Web3.to_bytes(hexstr=result))
        return nonce

    async def encode_execute(self, target: str, value: int, data: str) -> str:
        encoded = encode(
            ["address", "uint256", "bytes"],
            [Web3.to_checksum_address(target), value, Web3.to_bytes(hexstr=to_hex_data(data))],
        )
        return Web3.to_hex(_EXECUTE_SELECTOR + encoded)

    async def get_dummy_signature(self) -> str:
        return DUMMY_SIGNATURE

    async def sign_message(self, message: Union[bytes, str]) -> str:
        return await self._owner.sign_message(message)
