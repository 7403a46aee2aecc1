"""ERC-4337 smart account provider: user operation building, signing and submission."""

from .account import (
    DUMMY_SIGNATURE,
    SIMPLE_ACCOUNT_FACTORY_V06,
    LocalAccountSigner,
    SimpleSmartContractAccount,
)
from .bundler_client import BundlerClient, BundlerConfig
from .config import (
    CHAIN_ID_MAP,
    ENTRYPOINT_V06_ADDRESS,
    LoggingConfig,
    ProviderConfig,
    get_config,
    set_config,
)
from .confirmation import ConfirmationPoller
from .exceptions import (
    AccountNotConnectedError,
    BundlerRPCError,
    ConfirmationCancelledError,
    ConfirmationTimeoutError,
    IncompleteRequestError,
    InvalidFeeDataError,
    InvalidRecipientError,
    SmartAccountError,
    UnsupportedSignerMismatchError,
)
from .fees import FeeBid, compute_fee_bid
from .interfaces import (
    BundlerClientPort,
    FeeData,
    GasEstimate,
    SignerPort,
    SmartAccountPort,
)
from .middleware import (
    DummyPaymasterMiddleware,
    FeeDataMiddleware,
    FunctionMiddleware,
    GasEstimatorMiddleware,
    MiddlewareContext,
    MiddlewareStack,
    MiddlewareStage,
    PaymasterMiddleware,
    UserOperationMiddleware,
)
from .provider import SendUserOperationResult, SmartAccountProvider
from .rpc import TransactionRequest
from .user_operation import (
    UserOperationDraft,
    UserOperationRequest,
    get_user_operation_hash,
    to_request,
)

__version__ = "0.1.0"

__all__ = [
    "DUMMY_SIGNATURE",
    "SIMPLE_ACCOUNT_FACTORY_V06",
    "LocalAccountSigner",
    "SimpleSmartContractAccount",
    "BundlerClient",
    "BundlerConfig",
    "CHAIN_ID_MAP",
    "ENTRYPOINT_V06_ADDRESS",
    "LoggingConfig",
    "ProviderConfig",
    "get_config",
    "set_config",
    "ConfirmationPoller",
    "AccountNotConnectedError",
    "BundlerRPCError",
    "ConfirmationCancelledError",
    "ConfirmationTimeoutError",
    "IncompleteRequestError",
    "InvalidFeeDataError",
    "InvalidRecipientError",
    "SmartAccountError",
    "UnsupportedSignerMismatchError",
    "FeeBid",
    "compute_fee_bid",
    "BundlerClientPort",
    "FeeData",
    "GasEstimate",
    "SignerPort",
    "SmartAccountPort",
    "DummyPaymasterMiddleware",
    "FeeDataMiddleware",
    "FunctionMiddleware",
    "GasEstimatorMiddleware",
    "MiddlewareContext",
    "MiddlewareStack",
    "MiddlewareStage",
    "PaymasterMiddleware",
    "UserOperationMiddleware",
    "SendUserOperationResult",
    "SmartAccountProvider",
    "TransactionRequest",
    "UserOperationDraft",
    "UserOperationRequest",
    "get_user_operation_hash",
    "to_request",
]
