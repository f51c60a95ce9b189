"""Flashbots-compatible relay client: simulate, send and resolve bundles."""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Optional, Sequence

import requests

from chain.client import ChainClient
from core.bundle import Bundle, RawTransaction
from core.serializer import CanonicalSerializer
from core.wallet_manager import WalletManager

logger = logging.getLogger(__name__)

RELAY_URLS = {
    1: "https://relay.flashbots.net",
    5: "https://relay-goerli.flashbots.net",
    11155111: "https://relay-sepolia.flashbots.net",
}


class RelayError(RuntimeError):
    """Relay transport failure or unusable relay response."""


class BundleResolution(Enum):
    INCLUDED = "BundleIncluded"
    BLOCK_PASSED_WITHOUT_INCLUSION = "BlockPassedWithoutInclusion"
    FAILED = "Failed"


@dataclass(frozen=True)
class RelayResponseError:
    """The relay rejected a submission for one target block."""

    target_block: int
    message: str
    code: Optional[int] = None


@dataclass(frozen=True)
class SimulationResult:
    target_block: int
    results: list[dict]
    total_gas_used: int
    coinbase_diff: int
    raw: dict = field(repr=False)

    @property
    def first_revert(self) -> Optional[dict]:
        for result in self.results:
            if result.get("error") or result.get("revert"):
                return result
        return None


@dataclass(frozen=True)
class BundlePricing:
    gas_used: int
    gas_fees_paid_by_searcher: int
    priority_fees_received_by_miner: int
    eth_sent_to_coinbase: int
    tx_count: int
    effective_gas_price_to_searcher: int
    effective_priority_fee_to_miner: int


def relay_url_for(chain_id: int) -> str:
    try:
        return RELAY_URLS[chain_id]
    except KeyError as exc:
        raise RelayError(f"No known relay for chain id {chain_id}") from exc


def calculate_bundle_pricing(results: list[dict], base_fee: int) -> BundlePricing:
    """Gas and miner payment totals for simulated bundle transactions."""
    gas_used = 0
    gas_fees = 0
    priority_fees = 0
    coinbase_transfers = 0
    for result in results:
        tx_gas = int(result.get("gasUsed", 0))
        gas_price = int(result.get("gasPrice", 0))
        priority_fee = max(0, gas_price - base_fee)
        coinbase_diff = int(result.get("coinbaseDiff", 0))
        gas_used += tx_gas
        gas_fees += gas_price * tx_gas
        priority_fees += priority_fee * tx_gas
        coinbase_transfers += coinbase_diff - priority_fee * tx_gas
    effective_gas_price = 0
    effective_priority_fee = 0
    if gas_used > 0:
        effective_gas_price = (coinbase_transfers + gas_fees) // gas_used
        effective_priority_fee = (coinbase_transfers + priority_fees) // gas_used
    return BundlePricing(
        gas_used=gas_used,
        gas_fees_paid_by_searcher=gas_fees,
        priority_fees_received_by_miner=priority_fees,
        eth_sent_to_coinbase=coinbase_transfers,
        tx_count=len(results),
        effective_gas_price_to_searcher=effective_gas_price,
        effective_priority_fee_to_miner=effective_priority_fee,
    )


class BundleSubmission:
    """
    A bundle accepted by the relay for one target block.

    ``wait`` blocks until the target block exists on the ledger and then
    decides inclusion from the block's transaction hashes.
    """

    def __init__(
        self,
        chain: ChainClient,
        transactions: Sequence[RawTransaction],
        target_block: int,
        bundle_hash: Optional[str] = None,
        poll_interval: float = 1.0,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self._chain = chain
        self._transactions = list(transactions)
        self.target_block = target_block
        self.bundle_hash = bundle_hash
        self._poll_interval = poll_interval
        self._sleep = sleep

    @property
    def tx_hashes(self) -> list[str]:
        return [tx.tx_hash for tx in self._transactions]

    def wait(self) -> BundleResolution:
        while self._chain.get_block_number() < self.target_block:
            self._sleep(self._poll_interval)

        block = self._chain.get_block(self.target_block)
        included = {_tx_hash(entry).lower() for entry in block.get("transactions", [])}
        if all(tx_hash.lower() in included for tx_hash in self.tx_hashes):
            return BundleResolution.INCLUDED

        first = self._transactions[0]
        confirmed_nonce = self._chain.get_nonce(first.recover_sender(), self.target_block)
        if confirmed_nonce > first.nonce:
            logger.warning(
                "Nonce %d already used by another transaction at block %d",
                first.nonce,
                self.target_block,
            )
            return BundleResolution.FAILED
        return BundleResolution.BLOCK_PASSED_WITHOUT_INCLUSION


class FlashbotsRelay:
    """
    JSON-RPC client for a Flashbots-style relay.

    Requests carry an ``X-Flashbots-Signature`` header: the auth key's
    EIP-191 signature over the keccak of the request body. The auth key only
    identifies the searcher to the relay; it holds no funds.
    """

    def __init__(
        self,
        relay_url: str,
        auth: WalletManager,
        chain: ChainClient,
        timeout: int = 30,
        poll_interval: float = 1.0,
    ):
        self._relay_url = relay_url
        self._auth = auth
        self._chain = chain
        self._timeout = timeout
        self._poll_interval = poll_interval
        self._session = requests.Session()

    @property
    def relay_url(self) -> str:
        return self._relay_url

    def sign_bundle(self, bundle: Bundle) -> list[str]:
        """Raw signed transactions in bundle order, as the relay expects them."""
        return list(bundle.transactions)

    def simulate(
        self, signed_bundle: list[str], target_block: int, state_block: str = "latest"
    ) -> SimulationResult:
        params = {
            "txs": signed_bundle,
            "blockNumber": hex(target_block),
            "stateBlockNumber": state_block,
        }
        response = self._request("eth_callBundle", [params])
        if "error" in response:
            raise RelayError(f"simulation failed: {response['error']}")
        result = response.get("result")
        if not isinstance(result, dict):
            raise RelayError(f"unexpected simulation response: {response!r}")
        return SimulationResult(
            target_block=target_block,
            results=list(result.get("results", [])),
            total_gas_used=int(result.get("totalGasUsed", 0)),
            coinbase_diff=int(result.get("coinbaseDiff", 0)),
            raw=result,
        )

    def send_bundle(
        self, bundle: Bundle, target_block: int
    ) -> BundleSubmission | RelayResponseError:
        transactions = bundle.decode()
        params = {"txs": self.sign_bundle(bundle), "blockNumber": hex(target_block)}
        response = self._request("eth_sendBundle", [params])
        if "error" in response:
            error = response["error"]
            if isinstance(error, dict):
                return RelayResponseError(
                    target_block=target_block,
                    message=str(error.get("message", error)),
                    code=error.get("code"),
                )
            return RelayResponseError(target_block=target_block, message=str(error))
        result = response.get("result") or {}
        return BundleSubmission(
            self._chain,
            transactions,
            target_block,
            bundle_hash=result.get("bundleHash") if isinstance(result, dict) else None,
            poll_interval=self._poll_interval,
        )

    def _request(self, method: str, params: list[Any]) -> dict:
        body = CanonicalSerializer.dumps(
            {"jsonrpc": "2.0", "id": 1, "method": method, "params": params}
        )
        headers = {
            "Content-Type": "application/json",
            "X-Flashbots-Signature": self._signature_header(body),
        }
        try:
            response = self._session.post(
                self._relay_url,
                data=body.encode("utf-8"),
                headers=headers,
                timeout=self._timeout,
            )
        except (requests.Timeout, requests.ConnectionError) as exc:
            raise RelayError(f"relay request {method} failed") from exc
        try:
            data = response.json()
        except json.JSONDecodeError as exc:
            raise RelayError(
                f"HTTP {response.status_code} from relay: {response.text!r}"
            ) from exc
        if not isinstance(data, dict):
            raise RelayError(f"unexpected relay response: {data!r}")
        return data

    def _signature_header(self, body: str) -> str:
        return self._auth.relay_signature(body)


def _tx_hash(entry: object) -> str:
    if isinstance(entry, dict):
        return str(entry.get("hash", ""))
    return str(entry)
