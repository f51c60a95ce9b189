"""Fluent builder for EIP-1559 transactions and ABI call encoding."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from eth_abi import encode as abi_encode
from eth_utils.crypto import keccak

from core.base_types import DYNAMIC_FEE_TX_TYPE, Address, TransactionRequest
from core.bundle import RawTransaction


def encode_call(signature: str, arg_types: list[str], args: list[Any]) -> bytes:
    """Function selector followed by ABI-encoded arguments."""
    selector = keccak(text=signature)[:4]
    if not arg_types:
        return selector
    return selector + abi_encode(arg_types, args)


@dataclass
class _TxState:
    to: Address | None = None
    data: bytes = b""
    nonce: int | None = None
    gas_limit: int | None = None
    max_fee_per_gas: int | None = None
    max_priority_fee: int | None = None
    chain_id: int | None = None
    tx_type: int = DYNAMIC_FEE_TX_TYPE


class TransactionBuilder:
    """
    Fluent builder for transactions.

    Usage:
        tx = (TransactionBuilder()
            .to(arb_contract)
            .data(calldata)
            .following(deposit_tx)
            .gas_limit(900_000)
            .build())
    """

    def __init__(self) -> None:
        self._state = _TxState()

    def to(self, address: Address) -> "TransactionBuilder":
        self._state.to = address
        return self

    def data(self, calldata: bytes) -> "TransactionBuilder":
        self._state.data = calldata
        return self

    def gas_limit(self, limit: int) -> "TransactionBuilder":
        if limit <= 0:
            raise ValueError("gas_limit must be positive")
        self._state.gas_limit = limit
        return self

    def fees(self, max_fee_per_gas: int, max_priority_fee: int) -> "TransactionBuilder":
        if max_priority_fee > max_fee_per_gas:
            raise ValueError("max_priority_fee must not exceed max_fee_per_gas")
        self._state.max_fee_per_gas = max_fee_per_gas
        self._state.max_priority_fee = max_priority_fee
        return self

    def following(self, previous: RawTransaction) -> "TransactionBuilder":
        """Next transaction from the same sender: nonce + 1, same chain, type and fees."""
        self._state.nonce = previous.nonce + 1
        self._state.chain_id = previous.chain_id
        self._state.tx_type = previous.tx_type
        return self.fees(previous.max_fee_per_gas, previous.max_priority_fee)

    def build(self) -> TransactionRequest:
        """Validate and return transaction request."""
        state = self._state
        if state.to is None:
            raise ValueError("to address is required")
        if (
            state.nonce is None
            or state.chain_id is None
            or state.max_fee_per_gas is None
            or state.max_priority_fee is None
        ):
            raise ValueError("previous transaction is required (call following)")
        if state.gas_limit is None:
            raise ValueError("gas_limit is required")
        return TransactionRequest(
            to=state.to,
            value=0,
            data=state.data,
            nonce=state.nonce,
            gas_limit=state.gas_limit,
            max_fee_per_gas=state.max_fee_per_gas,
            max_priority_fee=state.max_priority_fee,
            chain_id=state.chain_id,
            tx_type=state.tx_type,
        )
