"""Test configuration for module import paths and shared transaction fixtures."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest


def _ensure_src_on_path() -> None:
    src_path = Path(__file__).resolve().parents[1] / "src"
    src_value = str(src_path)
    if src_value not in sys.path:
        sys.path.insert(0, src_value)


_ensure_src_on_path()

from eth_account import Account  # noqa: E402

MINIPOOL_MANAGER = "0x000000000000000000000000000000000000dEaD"
GWEI = 10**9


@pytest.fixture
def node_account():
    return Account.create()


@pytest.fixture
def sign_deposit(node_account):
    """Factory for signed type-2 deposit encodings from the node account."""

    def _sign(
        nonce: int = 41,
        chain_id: int = 1,
        value: int = 16 * 10**18,
        max_fee: int = 30 * GWEI,
        max_prio: int = 2 * GWEI,
    ) -> str:
        signed = node_account.sign_transaction(
            {
                "type": 2,
                "to": MINIPOOL_MANAGER,
                "value": value,
                "data": "0x1234",
                "nonce": nonce,
                "gas": 2_000_000,
                "maxFeePerGas": max_fee,
                "maxPriorityFeePerGas": max_prio,
                "chainId": chain_id,
            }
        )
        return f"0x{bytes(signed.raw_transaction).hex()}"

    return _sign
