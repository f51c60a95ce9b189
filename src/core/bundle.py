"""Deposit parameters, decoded transactions and the two-transaction bundle."""

from __future__ import annotations

import secrets
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

import rlp
from eth_account import Account
from eth_utils.crypto import keccak
from rlp.exceptions import DecodingError

from .base_types import DYNAMIC_FEE_TX_TYPE, Address

SALT_BITS = 256
_DYNAMIC_FEE_FIELD_COUNT = 12


class DecodeError(ValueError):
    """Signed transaction encoding could not be decoded."""


@dataclass(frozen=True)
class DepositParameters:
    """Inputs for creating the minipool deposit transaction."""

    amount_wei: int
    min_commission_fee: Decimal
    salt: int
    use_deposit_pool_space: bool = True

    def __post_init__(self) -> None:
        if self.amount_wei <= 0:
            raise ValueError("deposit amount must be positive")
        if self.salt < 0 or self.salt >= 2**SALT_BITS:
            raise ValueError("salt must fit in 256 bits")

    @classmethod
    def create(
        cls,
        amount_wei: int,
        min_commission_fee: Decimal,
        salt_hex: str | None = None,
        use_deposit_pool_space: bool = True,
    ) -> "DepositParameters":
        """Build parameters, drawing a random salt unless one is supplied."""
        if salt_hex:
            salt = int(salt_hex, 16)
        else:
            salt = secrets.randbits(SALT_BITS)
        return cls(
            amount_wei=amount_wei,
            min_commission_fee=min_commission_fee,
            salt=salt,
            use_deposit_pool_space=use_deposit_pool_space,
        )


@dataclass(frozen=True)
class RawTransaction:
    """A signed EIP-1559 transaction decoded from its wire encoding."""

    encoded: str
    to: Optional[Address]
    data: bytes
    value: int
    nonce: int
    chain_id: int
    max_fee_per_gas: int
    max_priority_fee: int
    gas_limit: int
    tx_type: int = DYNAMIC_FEE_TX_TYPE

    @classmethod
    def decode(cls, encoded: str) -> "RawTransaction":
        raw = hex_to_bytes(encoded)
        if not raw or raw[0] != DYNAMIC_FEE_TX_TYPE:
            raise DecodeError("only signed type-2 transactions are supported")
        try:
            fields = rlp.decode(raw[1:])
        except DecodingError as exc:
            raise DecodeError(f"malformed transaction encoding: {exc}") from exc
        if not isinstance(fields, list) or len(fields) != _DYNAMIC_FEE_FIELD_COUNT:
            raise DecodeError("unexpected field count in type-2 transaction")
        (
            chain_id,
            nonce,
            max_priority_fee,
            max_fee_per_gas,
            gas_limit,
            to,
            value,
            data,
            _access_list,
            _y_parity,
            _r,
            _s,
        ) = fields
        return cls(
            encoded=f"0x{raw.hex()}",
            to=Address.from_bytes(to) if to else None,
            data=bytes(data),
            value=_big_endian(value),
            nonce=_big_endian(nonce),
            chain_id=_big_endian(chain_id),
            max_fee_per_gas=_big_endian(max_fee_per_gas),
            max_priority_fee=_big_endian(max_priority_fee),
            gas_limit=_big_endian(gas_limit),
        )

    @property
    def tx_hash(self) -> str:
        return f"0x{keccak(hex_to_bytes(self.encoded)).hex()}"

    def recover_sender(self) -> Address:
        return Address.from_string(Account.recover_transaction(self.encoded))


@dataclass(frozen=True)
class Bundle:
    """
    Ordered pair of signed transactions submitted atomically.

    The deposit must execute first; the arbitrage transaction spends what the
    deposit mints.
    """

    deposit_tx: str
    arb_tx: str

    @property
    def transactions(self) -> tuple[str, str]:
        return (self.deposit_tx, self.arb_tx)

    def with_arb(self, arb_tx: str) -> "Bundle":
        return Bundle(deposit_tx=self.deposit_tx, arb_tx=arb_tx)

    def decode(self) -> tuple[RawTransaction, RawTransaction]:
        return RawTransaction.decode(self.deposit_tx), RawTransaction.decode(
            self.arb_tx
        )

    def to_payload(self) -> list[dict]:
        return [{"signedTransaction": tx} for tx in self.transactions]

    @classmethod
    def from_payload(cls, payload: object) -> "Bundle":
        if not isinstance(payload, list) or len(payload) != 2:
            raise ValueError("bundle must be a list of two transactions")
        encoded = []
        for entry in payload:
            if not isinstance(entry, dict) or not isinstance(
                entry.get("signedTransaction"), str
            ):
                raise ValueError("bundle entries must hold a signedTransaction string")
            encoded.append(entry["signedTransaction"])
        return cls(deposit_tx=encoded[0], arb_tx=encoded[1])


def hex_to_bytes(value: str) -> bytes:
    normalized = value[2:] if value.startswith("0x") else value
    try:
        return bytes.fromhex(normalized)
    except ValueError as exc:
        raise DecodeError("transaction encoding must be hex") from exc


def _big_endian(value: bytes) -> int:
    return int.from_bytes(value, "big")
