"""Core type definitions shared by the chain, pricing and executor modules."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from eth_utils.address import is_address, to_checksum_address

DYNAMIC_FEE_TX_TYPE = 2


@dataclass(frozen=True)
class Address:
    """Ethereum address with validation and checksumming."""

    value: str

    def __post_init__(self) -> None:
        if not isinstance(self.value, str):
            raise TypeError("Address value must be a string")
        if not is_address(self.value):
            raise ValueError(f"Invalid Ethereum address: {self.value!r}")
        object.__setattr__(self, "value", to_checksum_address(self.value))

    @classmethod
    def from_string(cls, s: str) -> "Address":
        return cls(s)

    @classmethod
    def from_bytes(cls, raw: bytes) -> "Address":
        if len(raw) != 20:
            raise ValueError("address must be 20 bytes")
        return cls(f"0x{raw.hex()}")

    @property
    def checksum(self) -> str:
        return self.value

    @property
    def lower(self) -> str:
        return self.value.lower()

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Address):
            return self.lower == other.lower
        if isinstance(other, str):
            return self.lower == other.lower()
        return False

    def __hash__(self) -> int:
        return hash(self.lower)

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class TokenAmount:
    """
    Represents a token amount with proper decimal handling.

    Internally stores raw integer (wei-equivalent).
    Provides human-readable formatting.
    """

    raw: int
    decimals: int
    symbol: Optional[str] = None

    def __post_init__(self) -> None:
        if not isinstance(self.raw, int):
            raise TypeError("raw must be an int")
        if not isinstance(self.decimals, int) or self.decimals < 0:
            raise ValueError("decimals must be a non-negative integer")

    @classmethod
    def from_human(
        cls, amount: str | Decimal, decimals: int, symbol: str | None = None
    ) -> "TokenAmount":
        """Create from human-readable amount (e.g., '16' ETH)."""
        if isinstance(amount, float):
            raise TypeError("amount must be a string or Decimal, not float")
        if isinstance(amount, str):
            decimal_amount = Decimal(amount)
        elif isinstance(amount, Decimal):
            decimal_amount = amount
        else:
            raise TypeError("amount must be a string or Decimal")

        scale = Decimal(10) ** Decimal(decimals)
        raw_decimal = decimal_amount * scale
        if raw_decimal != raw_decimal.to_integral_value():
            raise ValueError("amount has more precision than decimals allow")
        return cls(raw=int(raw_decimal), decimals=decimals, symbol=symbol)

    @classmethod
    def ether(cls, raw: int, symbol: str = "ETH") -> "TokenAmount":
        return cls(raw=raw, decimals=18, symbol=symbol)

    @property
    def human(self) -> Decimal:
        """Returns human-readable decimal."""
        scale = Decimal(10) ** Decimal(self.decimals)
        return Decimal(self.raw) / scale

    def __str__(self) -> str:
        return f"{self.human} {self.symbol or ''}".strip()


def format_gwei(wei: int) -> str:
    """Render a per-gas price in gwei, e.g. ``12.5 gwei``."""
    return f"{Decimal(wei) / Decimal(10**9)} gwei"


@dataclass(frozen=True)
class TransactionRequest:
    """An EIP-1559 transaction ready to be signed."""

    to: Address
    value: int
    data: bytes
    nonce: int
    gas_limit: int
    max_fee_per_gas: int
    max_priority_fee: int
    chain_id: int
    tx_type: int = DYNAMIC_FEE_TX_TYPE

    def to_dict(self) -> dict:
        """Convert to an eth-account signable dict."""
        return {
            "type": self.tx_type,
            "to": self.to.checksum,
            "value": self.value,
            "data": f"0x{self.data.hex()}",
            "nonce": self.nonce,
            "gas": self.gas_limit,
            "maxFeePerGas": self.max_fee_per_gas,
            "maxPriorityFeePerGas": self.max_priority_fee,
            "chainId": self.chain_id,
        }


@dataclass(frozen=True)
class CallRequest:
    """A read-only ``eth_call`` against a contract."""

    to: Address
    data: bytes

    def to_rpc_dict(self) -> dict:
        return {"to": self.to.checksum, "data": f"0x{self.data.hex()}"}
