"""Deposit sizing: how much ETH goes through the mint and how much rETH comes out."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal

from chain.rocketpool import RocketPoolReader
from core.base_types import Address, TokenAmount

from .oneinch_client import OneInchClient

logger = logging.getLogger(__name__)

ONE_ETHER = 10**18


@dataclass(frozen=True)
class ProtocolSnapshot:
    """Protocol state read at computation time; never reused across runs."""

    deposit_fee_rate: int
    deposit_pool_max_size: int
    deposit_pool_balance: int
    exchange_rate: int
    reth_address: Address

    @property
    def remaining_capacity(self) -> int:
        """Unused deposit pool space, zero when the pool is at or over its cap."""
        return max(0, self.deposit_pool_max_size - self.deposit_pool_balance)


@dataclass(frozen=True)
class DepositAmounts:
    eth_amount: int
    mint_fee: int
    deposit_amount: int
    reth_amount: int
    reth_address: Address


def effective_eth_amount(
    requested: int, snapshot: ProtocolSnapshot, use_deposit_pool_space: bool
) -> int:
    if use_deposit_pool_space:
        return requested + snapshot.remaining_capacity
    return requested


def mint_fee(eth_amount: int, fee_rate: int) -> int:
    return eth_amount * fee_rate // ONE_ETHER


class DepositCalculator:
    """
    Derives the arbitrage size from live protocol state.

    The ETH amount is the minipool deposit plus, optionally, the free space in
    the deposit pool. After the mint fee it is converted to rETH through the
    token contract's own rate.
    """

    def __init__(self, reader: RocketPoolReader, use_deposit_pool_space: bool = True):
        self._reader = reader
        self._use_deposit_pool_space = use_deposit_pool_space

    def snapshot(self) -> ProtocolSnapshot:
        return ProtocolSnapshot(
            deposit_fee_rate=self._reader.get_deposit_fee(),
            deposit_pool_max_size=self._reader.get_maximum_deposit_pool_size(),
            deposit_pool_balance=self._reader.get_deposit_pool_balance(),
            exchange_rate=self._reader.get_exchange_rate(),
            reth_address=self._reader.reth_address(),
        )

    def compute(self, requested_wei: int) -> DepositAmounts:
        snapshot = self.snapshot()
        eth_amount = effective_eth_amount(
            requested_wei, snapshot, self._use_deposit_pool_space
        )
        fee = mint_fee(eth_amount, snapshot.deposit_fee_rate)
        deposit_amount = eth_amount - fee
        reth_amount = self._reader.get_reth_value(deposit_amount)
        logger.info(
            "Total rETH amount to swap: %s (from %s deposit (%s after mint fee))",
            TokenAmount.ether(reth_amount, "rETH"),
            TokenAmount.ether(eth_amount),
            TokenAmount.ether(deposit_amount),
        )
        return DepositAmounts(
            eth_amount=eth_amount,
            mint_fee=fee,
            deposit_amount=deposit_amount,
            reth_amount=reth_amount,
            reth_address=snapshot.reth_address,
        )


@dataclass(frozen=True)
class RateComparison:
    protocol_rate: Decimal
    market_rate: Decimal

    @property
    def premium(self) -> Decimal:
        """Fractional premium of the market rate over the protocol rate."""
        return self.market_rate / self.protocol_rate - 1


def compare_rates(
    calculator: DepositCalculator,
    quotes: OneInchClient,
    from_address: Address,
    slippage_percent: Decimal,
) -> RateComparison:
    """ETH per rETH at the protocol versus selling one rETH on the aggregator."""
    snapshot = calculator.snapshot()
    quote = quotes.swap(snapshot.reth_address, ONE_ETHER, from_address, slippage_percent)
    comparison = RateComparison(
        protocol_rate=TokenAmount.ether(snapshot.exchange_rate).human,
        market_rate=TokenAmount.ether(quote.to_amount).human,
    )
    logger.info(
        "Protocol rate %s ETH/rETH, market rate %s ETH/rETH, premium %.4f%%",
        comparison.protocol_rate,
        comparison.market_rate,
        comparison.premium * 100,
    )
    return comparison
