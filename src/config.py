"""Environment loading and the immutable run configuration."""

from __future__ import annotations

import os
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from enum import Enum
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from core.base_types import TokenAmount

_ENV_LOADED = False

DEFAULT_RPC_URL = "http://localhost:8545"
DEFAULT_DAEMON = "docker exec rocketpool_node /go/bin/rocketpool"
DEFAULT_ARB_CONTRACT = "0x1f7e55F2e907dDce8074b916f94F62C7e8A18571"


class ConfigurationError(ValueError):
    """Invalid combination of options, detected before any network activity."""


def _load_env() -> None:
    global _ENV_LOADED
    if _ENV_LOADED:
        return
    load_dotenv(dotenv_path=Path.cwd() / ".env")
    _ENV_LOADED = True


def get_env(
    name: str, default: str | None = None, required: bool = False
) -> str | None:
    _load_env()
    value = os.environ.get(name, default)
    if required and (value is None or value == ""):
        raise SystemExit(f"{name} env var is required")
    return value


class ResumeMode(Enum):
    FRESH = "fresh"
    FULL = "full"
    DEPOSIT = "deposit"


@dataclass(frozen=True)
class ArbConfig:
    """All run options, built once in ``main`` and passed to each component."""

    rpc_url: str = DEFAULT_RPC_URL
    daemon: str = DEFAULT_DAEMON
    salt: Optional[str] = None
    max_fee_gwei: Optional[Decimal] = None
    max_prio_gwei: Optional[Decimal] = None
    extra_args: Optional[str] = None
    dry_run: bool = False
    bundle_file: str = "bundle.json"
    resume: bool = False
    resume_deposit: bool = False
    use_deposit_pool: bool = True
    max_tries: int = 10
    amount_ether: Decimal = Decimal("16")
    min_fee: Decimal = Decimal("0.15")
    gas_limit: int = 900_000
    gas_refund: int = 2_500_000
    arb_contract: str = DEFAULT_ARB_CONTRACT
    slippage: Decimal = Decimal("2")
    relay_url: Optional[str] = None
    oneinch_url: Optional[str] = None
    rates: bool = False

    def validate(self) -> "ArbConfig":
        if self.resume and self.resume_deposit:
            raise ConfigurationError(
                "At most one of --resume and --resume-deposit may be given"
            )
        if self.max_tries < 1:
            raise ConfigurationError("--max-tries must be at least 1")
        if self.amount_ether <= 0:
            raise ConfigurationError("--amount must be positive")
        if self.gas_limit <= 0 or self.gas_refund < 0:
            raise ConfigurationError("gas limit must be positive and gas refund >= 0")
        if self.resume_deposit and (self.max_fee_gwei is None) != (
            self.max_prio_gwei is None
        ):
            raise ConfigurationError(
                "--resume-deposit fee override needs both --max-fee and --max-prio"
            )
        if (
            self.max_fee_gwei is not None
            and self.max_prio_gwei is not None
            and self.max_prio_gwei > self.max_fee_gwei
        ):
            raise ConfigurationError("--max-prio must not exceed --max-fee")
        if self.salt:
            try:
                int(self.salt, 16)
            except ValueError as exc:
                raise ConfigurationError(f"--salt must be hex: {self.salt!r}") from exc
        return self

    @property
    def resume_mode(self) -> ResumeMode:
        if self.resume:
            return ResumeMode.FULL
        if self.resume_deposit:
            return ResumeMode.DEPOSIT
        return ResumeMode.FRESH

    @property
    def amount_wei(self) -> int:
        return TokenAmount.from_human(self.amount_ether, 18, "ETH").raw

    @property
    def fee_override_wei(self) -> Optional[tuple[int, int]]:
        """(max fee, max priority fee) in wei when overriding a resumed deposit."""
        if self.resume_mode != ResumeMode.DEPOSIT or self.max_fee_gwei is None:
            return None
        assert self.max_prio_gwei is not None
        return gwei_to_wei(self.max_fee_gwei), gwei_to_wei(self.max_prio_gwei)


def gwei_to_wei(value: Decimal) -> int:
    return TokenAmount.from_human(value, 9).raw


def parse_decimal(value: str) -> Decimal:
    """argparse type for amounts; rejects floats' binary rounding."""
    try:
        return Decimal(value)
    except InvalidOperation as exc:
        raise ValueError(f"not a decimal number: {value!r}") from exc
