"""
SmartAccountProvider: builds, signs and submits ERC-4337 user operations.

Flow of a submission:

    assemble draft -> middleware pipeline -> validate/encode -> sign -> send
                                                                  |
    (send_transaction only)                      poll receipt <---+

Every step is a single attempt except the receipt polling.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, replace
from typing import Any, Callable, List, Mapping, Optional, Union

from .assembler import assemble_user_operation
from .bundler_client import BundlerClient, BundlerConfig
from .config import ProviderConfig, get_config, resolve_chain_id
from .confirmation import ConfirmationPoller
from .exceptions import (
    AccountNotConnectedError,
    InvalidRecipientError,
    UnsupportedSignerMismatchError,
)
from .interfaces import BundlerClientPort, SmartAccountPort
from .logging_utils import AALogger, OperationType
from .middleware import (
    MiddlewareContext,
    MiddlewareLike,
    MiddlewareStack,
    MiddlewareStage,
    run_pipeline,
)
from .rpc import (
    PassthroughCall,
    SendTransactionCall,
    SignMessageCall,
    TransactionRequest,
    parse_rpc_call,
)
from .user_operation import (
    EMPTY_HEX,
    UserOperationRequest,
    get_user_operation_hash,
    to_request,
)

logger = logging.getLogger(__name__)

AccountFactory = Callable[[BundlerClientPort], SmartAccountPort]


@dataclass(frozen=True)
class SendUserOperationResult:
    """User operation hash (not a transaction hash) and the request as sent."""
    hash: str
    request: UserOperationRequest


class SmartAccountProvider:
    """
    Client-side orchestrator for one smart account session.

    The provider can be used for read-only RPC passthrough before an account
    is connected; anything that needs a signer raises AccountNotConnectedError
    until connect() (or the ``account`` argument) binds one.
    """

    def __init__(
        self,
        rpc_provider: Union[str, BundlerClientPort],
        entry_point_address: Optional[str] = None,
        chain: Union[str, int, None] = None,
        account: Optional[SmartAccountPort] = None,
        config: Optional[ProviderConfig] = None,
        middlewares: Optional[Mapping[MiddlewareStage, MiddlewareLike]] = None,
    ):
        """
        Args:
            rpc_provider: Bundler RPC URL, or an existing client
            entry_point_address: Overrides config.entry_point_address
            chain: Chain name or id; overrides config.chain_id
            account: Smart account to bind now (see connect())
            config: Provider settings (default: the global config)
            middlewares: Stage overrides applied at construction
        """
        overrides: dict[str, Any] = {}
        if entry_point_address:
            overrides["entry_point_address"] = entry_point_address
        if chain is not None:
            overrides["chain_id"] = resolve_chain_id(chain)
        self._config = replace(config or get_config(), **overrides)

        if isinstance(rpc_provider, str):
            self._client: BundlerClientPort = BundlerClient(
                BundlerConfig(url=rpc_provider, timeout_seconds=self._config.rpc_timeout_seconds)
            )
            self._owns_client = True
        else:
            self._client = rpc_provider
            self._owns_client = False

        self._account = account
        self._middlewares = MiddlewareStack(middlewares)
        self._poller = ConfirmationPoller(
            self._client,
            max_retries=self._config.tx_max_retries,
            retry_interval_ms=self._config.tx_retry_interval_ms,
        )
        self._aa_logger = AALogger(self._config.chain_id, self._config.logging)

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def config(self) -> ProviderConfig:
        return self._config

    @property
    def rpc_client(self) -> BundlerClientPort:
        return self._client

    @property
    def account(self) -> Optional[SmartAccountPort]:
        return self._account

    @property
    def entry_point_address(self) -> str:
        return self._config.entry_point_address

    @property
    def chain_id(self) -> int:
        return self._config.chain_id

    @property
    def middlewares(self) -> MiddlewareStack:
        return self._middlewares

    # ------------------------------------------------------------------
    # Account binding
    # ------------------------------------------------------------------

    def connect(self, factory: AccountFactory) -> "SmartAccountProvider":
        """Bind the account built by ``factory(rpc_client)``."""
        self._account = factory(self._client)
        logger.info("Connected %s to provider", type(self._account).__name__)
        return self

    def _require_account(self) -> SmartAccountPort:
        if self._account is None:
            raise AccountNotConnectedError()
        return self._account

    async def get_address(self) -> str:
        return await self._require_account().get_address()

    # ------------------------------------------------------------------
    # Middleware overrides
    # ------------------------------------------------------------------

    def with_paymaster_middleware(
        self,
        dummy_paymaster_middleware: Optional[MiddlewareLike] = None,
        paymaster_middleware: Optional[MiddlewareLike] = None,
    ) -> "SmartAccountProvider":
        if dummy_paymaster_middleware is not None:
            self._middlewares.replace(MiddlewareStage.DUMMY_PAYMASTER, dummy_paymaster_middleware)
        if paymaster_middleware is not None:
            self._middlewares.replace(MiddlewareStage.PAYMASTER, paymaster_middleware)
        return self

    def with_gas_estimator(self, override: MiddlewareLike) -> "SmartAccountProvider":
        self._middlewares.replace(MiddlewareStage.GAS_ESTIMATOR, override)
        return self

    def with_fee_data_getter(self, override: MiddlewareLike) -> "SmartAccountProvider":
        self._middlewares.replace(MiddlewareStage.FEE_DATA, override)
        return self

    def _middleware_context(self) -> MiddlewareContext:
        return MiddlewareContext(
            client=self._client,
            entry_point_address=self._config.entry_point_address,
            chain_id=self._config.chain_id,
            min_priority_fee_per_bid=self._config.min_priority_fee_per_bid,
        )

    # ------------------------------------------------------------------
    # User operations
    # ------------------------------------------------------------------

    async def build_user_operation(
        self,
        target: str,
        data: str = EMPTY_HEX,
        value: Optional[int] = None,
    ) -> UserOperationRequest:
        """Assemble, run the pipeline and validate, without signing or sending."""
        return await self._build(self._account, target, data, value)

    async def _build(
        self,
        account: Optional[SmartAccountPort],
        target: str,
        data: str,
        value: Optional[int],
    ) -> UserOperationRequest:
        stages = self._middlewares.snapshot()
        async with self._aa_logger.operation_context(
            OperationType.BUILD_USER_OPERATION, target=target
        ):
            draft = await assemble_user_operation(account, target, data, value)
            draft = await run_pipeline(stages, draft, self._middleware_context())
            return to_request(draft)

    async def send_user_operation(
        self,
        target: str,
        data: str = EMPTY_HEX,
        value: Optional[int] = None,
    ) -> SendUserOperationResult:
        """
        Build, sign and submit a user operation calling ``target``.

        Returns:
            SendUserOperationResult with the user operation hash

        Raises:
            AccountNotConnectedError: no account is bound
            IncompleteRequestError: a middleware left a field unset
            InvalidFeeDataError: the network returned unusable fee data
        """
        account = self._require_account()

        async with self._aa_logger.operation_context(
            OperationType.SEND_USER_OPERATION, target=target
        ) as ctx:
            request = await self._build(account, target, data, value)
            user_op_hash = get_user_operation_hash(
                request, self._config.entry_point_address, self._config.chain_id
            )
            request = request.with_signature(await account.sign_message(user_op_hash))

            sent_hash = await self._client.send_user_operation(
                request, self._config.entry_point_address
            )
            ctx.metadata["user_op_hash"] = sent_hash

        self._aa_logger.log_user_operation_submitted(
            sent_hash, request, self._config.entry_point_address
        )
        return SendUserOperationResult(hash=sent_hash, request=request)

    async def wait_for_user_operation_transaction(
        self,
        user_op_hash: str,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> str:
        """Poll until the operation is mined; returns the transaction hash."""
        async with self._aa_logger.operation_context(
            OperationType.WAIT_FOR_TRANSACTION, user_op_hash=user_op_hash
        ):
            return await self._poller.wait_for_transaction(user_op_hash, cancel_event)

    async def send_transaction(
        self,
        transaction: Union[TransactionRequest, Mapping[str, Any]],
        cancel_event: Optional[asyncio.Event] = None,
    ) -> str:
        """
        Send a conventional transaction through the account and wait for it.

        Raises:
            InvalidRecipientError: the transaction has no ``to`` address
            ConfirmationTimeoutError: submitted, but no receipt in the retry budget
        """
        if isinstance(transaction, Mapping):
            transaction = TransactionRequest.from_rpc(transaction)
        if not isinstance(transaction, TransactionRequest) or not transaction.to:
            raise InvalidRecipientError()

        async with self._aa_logger.operation_context(
            OperationType.SEND_TRANSACTION, to=transaction.to
        ):
            result = await self.send_user_operation(
                transaction.to, transaction.call_data, transaction.value_wei
            )
            return await self.wait_for_user_operation_transaction(result.hash, cancel_event)

    # ------------------------------------------------------------------
    # RPC compatibility
    # ------------------------------------------------------------------

    async def sign_message(self, message: Union[str, bytes], address: str) -> str:
        """Sign with the bound account; ``address`` must be that account."""
        account = self._require_account()
        account_address = await account.get_address()
        if not isinstance(address, str) or address.lower() != account_address.lower():
            raise UnsupportedSignerMismatchError(address, account_address)
        async with self._aa_logger.operation_context(OperationType.SIGN_MESSAGE):
            return await account.sign_message(message)

    async def request(self, method: str, params: Optional[List[Any]] = None) -> Any:
        """EIP-1193 style entry point."""
        call = parse_rpc_call(method, params)
        if isinstance(call, SendTransactionCall):
            return await self.send_transaction(call.transaction)
        if isinstance(call, SignMessageCall):
            return await self.sign_message(call.message, call.address)
        if isinstance(call, PassthroughCall):
            return await self._client.request(call.method, call.params)
        raise TypeError(f"unhandled rpc call {call!r}")

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def close(self) -> None:
        """Close the bundler client if this provider created it."""
        if self._owns_client and isinstance(self._client, BundlerClient):
            await self._client.close()

    async def __aenter__(self) -> "SmartAccountProvider":
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()
