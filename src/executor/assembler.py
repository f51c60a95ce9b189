"""Builds and signs the arbitrage transaction that spends the deposit's mint."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from chain.errors import SigningError
from chain.signing_oracle import SigningOracle
from chain.transaction_builder import TransactionBuilder, encode_call
from core.base_types import Address, TokenAmount, TransactionRequest, format_gwei
from core.bundle import RawTransaction
from core.wallet_manager import WalletManager
from pricing.deposit_calculator import DepositCalculator
from pricing.oneinch_client import OneInchClient

logger = logging.getLogger(__name__)

ARB_SIGNATURE = "arb(uint256,uint256,bytes)"


@dataclass(frozen=True)
class FeeOverride:
    """Replacement fee fields for an arbitrage leg built on a resumed deposit."""

    max_fee_per_gas: int
    max_priority_fee: int


def min_profit(gas_refund: int, deposit: RawTransaction) -> int:
    """Profit floor: refund of ``gas_refund`` gas at the deposit's max fee."""
    return gas_refund * deposit.max_fee_per_gas


class ArbTransactionAssembler:
    """
    Produces the signed arbitrage transaction for a signed deposit.

    The arbitrage transaction takes the deposit's nonce + 1, its chain id and
    transaction type. Fees follow the deposit unless a ``FeeOverride`` is
    given, which is only accepted when the deposit was loaded from a saved
    bundle.

    Signing is two-phase. The oracle's decoder refuses unsigned encodings, so
    the transaction is first signed with a single-use random key and the
    result is handed to the oracle, which replaces the signature with the
    node's. The random key authorizes nothing.
    """

    def __init__(
        self,
        calculator: DepositCalculator,
        quotes: OneInchClient,
        oracle: SigningOracle,
        arb_contract: Address,
        gas_limit: int,
        gas_refund: int,
        slippage_percent: Decimal,
    ):
        self._calculator = calculator
        self._quotes = quotes
        self._oracle = oracle
        self._arb_contract = arb_contract
        self._gas_limit = gas_limit
        self._gas_refund = gas_refund
        self._slippage = slippage_percent

    def build(
        self,
        deposit: RawTransaction,
        fee_override: Optional[FeeOverride] = None,
        resumed: bool = False,
    ) -> TransactionRequest:
        """Unsigned arbitrage transaction against current protocol state and quote."""
        if fee_override is not None and not resumed:
            raise ValueError("fee override is only allowed for a resumed deposit")

        amounts = self._calculator.compute(deposit.value)
        quote = self._quotes.swap(
            amounts.reth_address, amounts.reth_amount, self._arb_contract, self._slippage
        )
        floor = min_profit(self._gas_refund, deposit)
        logger.info(
            "Min profit %s (%d gas at %s)",
            TokenAmount.ether(floor),
            self._gas_refund,
            format_gwei(deposit.max_fee_per_gas),
        )
        calldata = encode_call(
            ARB_SIGNATURE,
            ["uint256", "uint256", "bytes"],
            [amounts.eth_amount, floor, quote.data],
        )
        builder = (
            TransactionBuilder()
            .to(self._arb_contract)
            .data(calldata)
            .following(deposit)
            .gas_limit(self._gas_limit)
        )
        if fee_override is not None:
            logger.info(
                "Overriding arb fees: max fee %s, max priority fee %s",
                format_gwei(fee_override.max_fee_per_gas),
                format_gwei(fee_override.max_priority_fee),
            )
            builder.fees(fee_override.max_fee_per_gas, fee_override.max_priority_fee)
        return builder.build()

    def assemble(
        self,
        encoded_deposit: str,
        fee_override: Optional[FeeOverride] = None,
        resumed: bool = False,
    ) -> str:
        """Signed arbitrage transaction encoding for ``encoded_deposit``."""
        logger.info("Creating arb transaction")
        deposit = RawTransaction.decode(encoded_deposit)
        request = self.build(deposit, fee_override=fee_override, resumed=resumed)

        signed = self._oracle.sign(WalletManager.ephemeral().presign(request))

        _check_signed(RawTransaction.decode(signed), request)
        return signed


def _check_signed(signed: RawTransaction, request: TransactionRequest) -> None:
    if signed.nonce != request.nonce or signed.chain_id != request.chain_id:
        raise SigningError(
            f"oracle changed nonce/chain id: got {signed.nonce}/{signed.chain_id}, "
            f"expected {request.nonce}/{request.chain_id}"
        )
