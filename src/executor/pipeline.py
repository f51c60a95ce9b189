"""Produces the bundle to submit: fresh, fully resumed, or resumed from the deposit."""

from __future__ import annotations

import logging

from chain.signing_oracle import SigningOracle
from config import ArbConfig, ResumeMode
from core.bundle import Bundle, DepositParameters
from core.bundle_store import BundleStore

from .assembler import ArbTransactionAssembler, FeeOverride

logger = logging.getLogger(__name__)


class BundlePipeline:
    """
    Chooses how the bundle is obtained.

    - ``FRESH``: the oracle creates a deposit, the arbitrage leg is built on
      it, the pair is saved before anything is sent.
    - ``FULL``: the saved bundle is submitted unchanged.
    - ``DEPOSIT``: the saved deposit is kept and only the arbitrage leg is
      rebuilt against current state; the new pair replaces the saved one.
    """

    def __init__(
        self,
        config: ArbConfig,
        oracle: SigningOracle,
        assembler: ArbTransactionAssembler,
        store: BundleStore,
    ):
        self._config = config
        self._oracle = oracle
        self._assembler = assembler
        self._store = store

    def build_bundle(self) -> Bundle:
        mode = self._config.resume_mode
        if mode == ResumeMode.FULL:
            logger.info("Resuming with bundle from %s", self._store.path)
            return self._store.load()
        if mode == ResumeMode.DEPOSIT:
            return self._rebuild_arb()
        return self._make_bundle()

    def _make_bundle(self) -> Bundle:
        params = DepositParameters.create(
            amount_wei=self._config.amount_wei,
            min_commission_fee=self._config.min_fee,
            salt_hex=self._config.salt,
            use_deposit_pool_space=self._config.use_deposit_pool,
        )
        deposit_tx = self._oracle.create_deposit(params)
        arb_tx = self._assembler.assemble(deposit_tx)
        bundle = Bundle(deposit_tx=deposit_tx, arb_tx=arb_tx)
        self._store.save(bundle)
        return bundle

    def _rebuild_arb(self) -> Bundle:
        logger.info("Resuming using deposit from %s", self._store.path)
        saved = self._store.load()
        override = None
        if self._config.fee_override_wei is not None:
            max_fee, max_prio = self._config.fee_override_wei
            override = FeeOverride(max_fee_per_gas=max_fee, max_priority_fee=max_prio)
        arb_tx = self._assembler.assemble(
            saved.deposit_tx, fee_override=override, resumed=True
        )
        bundle = saved.with_arb(arb_tx)
        self._store.save(bundle)
        return bundle
