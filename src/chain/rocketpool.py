"""Read-only accessors for Rocket Pool protocol state."""

from __future__ import annotations

import logging
from typing import Any

from eth_abi import decode as abi_decode
from eth_utils.crypto import keccak

from core.base_types import Address, CallRequest

from .client import ChainClient
from .transaction_builder import encode_call

logger = logging.getLogger(__name__)

ROCKET_STORAGE_ADDRESS = "0x1d8f8f00cfa6758d7bE78336684788Fb0ee0Fa46"

RETH_TOKEN = "rocketTokenRETH"
DEPOSIT_SETTINGS = "rocketDAOProtocolSettingsDeposit"
DEPOSIT_POOL = "rocketDepositPool"


def storage_key(contract_name: str) -> bytes:
    """Registry key under which RocketStorage keeps a contract's address."""
    return keccak(text=f"contract.address{contract_name}")


class RocketPoolReader:
    """
    Typed ``eth_call`` wrappers over the protocol contracts.

    Nothing is cached: deposit pool balance and the rETH rate move block to
    block, so every accessor reads latest state.
    """

    def __init__(
        self, client: ChainClient, storage_address: str = ROCKET_STORAGE_ADDRESS
    ):
        self._client = client
        self._storage = Address.from_string(storage_address)

    def get_address(self, contract_name: str) -> Address:
        (value,) = self._call(
            self._storage,
            "getAddress(bytes32)",
            ["bytes32"],
            [storage_key(contract_name)],
            ["address"],
        )
        return Address.from_string(value)

    def reth_address(self) -> Address:
        return self.get_address(RETH_TOKEN)

    def get_deposit_fee(self) -> int:
        """Mint fee as a fraction of 1 ether."""
        return self._call_uint(self.get_address(DEPOSIT_SETTINGS), "getDepositFee()")

    def get_maximum_deposit_pool_size(self) -> int:
        return self._call_uint(
            self.get_address(DEPOSIT_SETTINGS), "getMaximumDepositPoolSize()"
        )

    def get_deposit_pool_balance(self) -> int:
        return self._call_uint(self.get_address(DEPOSIT_POOL), "getBalance()")

    def get_reth_value(self, eth_amount: int) -> int:
        """rETH minted for ``eth_amount`` wei at the current exchange rate."""
        return self._call_uint(
            self.reth_address(), "getRethValue(uint256)", ["uint256"], [eth_amount]
        )

    def get_exchange_rate(self) -> int:
        """ETH wei backing one rETH."""
        return self._call_uint(self.reth_address(), "getExchangeRate()")

    def _call_uint(
        self,
        contract: Address,
        signature: str,
        arg_types: list[str] | None = None,
        args: list[Any] | None = None,
    ) -> int:
        (value,) = self._call(contract, signature, arg_types or [], args or [], ["uint256"])
        return int(value)

    def _call(
        self,
        contract: Address,
        signature: str,
        arg_types: list[str],
        args: list[Any],
        out_types: list[str],
    ) -> tuple:
        data = encode_call(signature, arg_types, args)
        result = self._client.call(CallRequest(to=contract, data=data))
        logger.debug("call %s.%s -> %s", contract, signature, result.hex())
        return tuple(abi_decode(out_types, result))
