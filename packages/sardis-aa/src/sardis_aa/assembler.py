"""Builds the initial user operation draft from account state."""
from __future__ import annotations

import logging
from typing import Optional

from .exceptions import AccountNotConnectedError
from .interfaces import SmartAccountPort
from .user_operation import EMPTY_HEX, UserOperationDraft, to_hex_data

logger = logging.getLogger(__name__)


async def assemble_user_operation(
    account: Optional[SmartAccountPort],
    target: str,
    data: str = EMPTY_HEX,
    value: Optional[int] = None,
) -> UserOperationDraft:
    """
    Query the account for sender, nonce, init code, call data and a dummy
    signature. Gas, fee and paymaster fields are left for the pipeline.

    Raises:
        AccountNotConnectedError: no account is bound
    """
    if account is None:
        raise AccountNotConnectedError()

    init_code = await account.get_init_code()
    sender = await account.get_address()
    nonce = await account.get_nonce()
    call_data = await account.encode_execute(target, value or 0, to_hex_data(data or EMPTY_HEX))
    dummy_signature = await account.get_dummy_signature()

    logger.debug(
        "Assembled user operation for %s (nonce=%d, deploying=%s)",
        sender,
        nonce,
        to_hex_data(init_code) != EMPTY_HEX,
    )
    return UserOperationDraft(
        sender=sender,
        nonce=nonce,
        init_code=init_code,
        call_data=call_data,
        signature=dummy_signature,
    )
