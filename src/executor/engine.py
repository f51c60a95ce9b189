"""Multi-block bundle submission."""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import asdict, dataclass, field
from enum import Enum, auto
from typing import Optional, Protocol

from chain.client import ChainClient
from core.base_types import TokenAmount, format_gwei
from core.bundle import Bundle

from .relay import (
    BundlePricing,
    BundleResolution,
    BundleSubmission,
    RelayResponseError,
    SimulationResult,
    calculate_bundle_pricing,
)

logger = logging.getLogger(__name__)


class SubmissionState(Enum):
    PENDING = auto()
    INCLUDED = auto()
    FAILED = auto()
    BLOCK_PASSED_WITHOUT_INCLUSION = auto()


_RESOLUTION_STATES = {
    BundleResolution.INCLUDED: SubmissionState.INCLUDED,
    BundleResolution.FAILED: SubmissionState.FAILED,
    BundleResolution.BLOCK_PASSED_WITHOUT_INCLUSION: (
        SubmissionState.BLOCK_PASSED_WITHOUT_INCLUSION
    ),
}


class Relay(Protocol):
    def sign_bundle(self, bundle: Bundle) -> list[str]: ...

    def simulate(
        self, signed_bundle: list[str], target_block: int
    ) -> SimulationResult: ...

    def send_bundle(
        self, bundle: Bundle, target_block: int
    ) -> BundleSubmission | RelayResponseError: ...


@dataclass
class SubmissionAttempt:
    target_block: int
    state: SubmissionState = SubmissionState.PENDING
    error: Optional[str] = None


@dataclass
class SubmissionOutcome:
    attempts: list[SubmissionAttempt] = field(default_factory=list)

    @property
    def included_block(self) -> Optional[int]:
        for attempt in self.attempts:
            if attempt.state == SubmissionState.INCLUDED:
                return attempt.target_block
        return None

    @property
    def success(self) -> bool:
        return self.included_block is not None


@dataclass(frozen=True)
class DryRunReport:
    target_block: int
    base_fee: int
    simulation: SimulationResult
    pricing: BundlePricing


class BundleSubmitter:
    """
    Races one signed bundle against the next ``max_tries`` blocks.

    The bundle must decode before anything is sent. Sends for every target
    block are dispatched together up front; their outcomes are examined
    strictly in block order so an earlier inclusion ends the run even if a
    later block answered first.
    """

    def __init__(self, relay: Relay, chain: ChainClient, max_tries: int):
        if max_tries < 1:
            raise ValueError("max_tries must be >= 1")
        self._relay = relay
        self._chain = chain
        self._max_tries = max_tries

    async def submit(self, bundle: Bundle) -> SubmissionOutcome:
        bundle.decode()
        current = await asyncio.to_thread(self._chain.get_block_number)
        targets = list(range(current + 1, current + self._max_tries + 1))
        sends = [
            asyncio.create_task(asyncio.to_thread(self._relay.send_bundle, bundle, target))
            for target in targets
        ]

        outcome = SubmissionOutcome()
        for target, send in zip(targets, sends):
            attempt = SubmissionAttempt(target_block=target)
            outcome.attempts.append(attempt)

            base_fee = await asyncio.to_thread(self._chain.get_base_fee)
            logger.info("current base fee %s", format_gwei(base_fee))
            logger.info("Target block number: %d", target)

            submission = await send
            if isinstance(submission, RelayResponseError):
                logger.error(
                    "RelayResponseError for block %d: %s (code %s)",
                    target,
                    submission.message,
                    submission.code,
                )
                attempt.state = SubmissionState.FAILED
                attempt.error = submission.message
                continue

            resolution = await asyncio.to_thread(submission.wait)
            attempt.state = _RESOLUTION_STATES[resolution]
            logger.info("Resolution: %s", resolution.value)

            if attempt.state == SubmissionState.INCLUDED:
                logger.info("Bundle successfully included on chain!")
                return outcome
            if attempt.state == SubmissionState.FAILED:
                attempt.error = "bundle failed in relay"

        logger.warning("Bundle not included in %d blocks", self._max_tries)
        return outcome

    async def dry_run(self, bundle: Bundle) -> DryRunReport:
        logger.info("Dry run only: using flashbots simulate on one block")
        current = await asyncio.to_thread(self._chain.get_block_number)
        base_fee = await asyncio.to_thread(self._chain.get_base_fee, current)
        logger.info("current base fee %s", format_gwei(base_fee))
        target = current + 1
        logger.info("Target block number: %d", target)

        signed_bundle = self._relay.sign_bundle(bundle)
        simulation = await asyncio.to_thread(self._relay.simulate, signed_bundle, target)
        logger.info("Simulation:\n%s", json.dumps(simulation.raw, indent=2))
        revert = simulation.first_revert
        if revert is not None:
            logger.warning("Simulated transaction reverted: %s", revert)

        pricing = calculate_bundle_pricing(simulation.results, base_fee)
        logger.info("Bundle pricing:\n%s", json.dumps(asdict(pricing), indent=2))
        logger.info(
            "Searcher pays %s in gas fees for %d gas",
            TokenAmount.ether(pricing.gas_fees_paid_by_searcher),
            pricing.gas_used,
        )
        return DryRunReport(
            target_block=target,
            base_fee=base_fee,
            simulation=simulation,
            pricing=pricing,
        )
