"""Ethereum JSON-RPC client for ledger reads."""

from __future__ import annotations

import json
import logging
import time
from typing import Any, Optional

import requests

from core.base_types import Address, CallRequest

from .errors import ChainError, RPCError

logger = logging.getLogger(__name__)

BlockId = int | str


class ChainClient:
    """
    Read-only Ethereum RPC client.

    Each call is a single request: transport errors surface as ``ChainError``
    and node errors as ``RPCError``. Retrying is left to the operator.
    """

    def __init__(self, rpc_url: str, timeout: int = 30):
        if not rpc_url:
            raise ValueError("rpc_url must not be empty")
        self._rpc_url = rpc_url
        self._timeout = timeout
        self._session = requests.Session()

    @property
    def rpc_url(self) -> str:
        return self._rpc_url

    def get_chain_id(self) -> int:
        return _hex_to_int(self._rpc_call("eth_chainId", []))

    def get_block_number(self) -> int:
        return _hex_to_int(self._rpc_call("eth_blockNumber", []))

    def get_block(self, block: BlockId = "latest", full: bool = False) -> dict:
        data = self._rpc_call("eth_getBlockByNumber", [_block_param(block), full])
        if data is None:
            raise RPCError(f"Block {block} not found")
        return data

    def get_base_fee(self, block: BlockId = "latest") -> int:
        return _hex_to_int(self.get_block(block).get("baseFeePerGas", "0x0"))

    def get_nonce(self, address: Address, block: BlockId = "latest") -> int:
        nonce_hex = self._rpc_call(
            "eth_getTransactionCount", [address.checksum, _block_param(block)]
        )
        return _hex_to_int(nonce_hex)

    def call(self, request: CallRequest, block: BlockId = "latest") -> bytes:
        result = self._rpc_call("eth_call", [request.to_rpc_dict(), _block_param(block)])
        return _hex_to_bytes(result)

    def _rpc_call(self, method: str, params: list[Any]) -> Any:
        payload = {"jsonrpc": "2.0", "id": 1, "method": method, "params": params}
        start = time.perf_counter()
        try:
            response = self._session.post(
                self._rpc_url,
                json=payload,
                timeout=self._timeout,
            )
        except (requests.Timeout, requests.ConnectionError) as exc:
            raise ChainError(f"RPC request {method} to {self._rpc_url} failed") from exc
        elapsed = time.perf_counter() - start
        logger.debug("rpc %s %s in %.3fs", method, self._rpc_url, elapsed)
        if response.status_code >= 400:
            raise RPCError(f"HTTP {response.status_code} from {self._rpc_url}")
        try:
            data = response.json()
        except json.JSONDecodeError as exc:
            raise ChainError(f"Invalid JSON from {self._rpc_url}") from exc
        if "error" in data:
            self._raise_rpc_error(data["error"])
        return data.get("result")

    def _raise_rpc_error(self, error: dict) -> None:
        message = str(error.get("message", "RPC error"))
        raise RPCError(message, code=error.get("code"), data=error.get("data"))


def _block_param(block: BlockId) -> str:
    if isinstance(block, int):
        return hex(block)
    return block


def _hex_to_int(value: Optional[str]) -> int:
    if not isinstance(value, str):
        raise RPCError("Expected hex string result")
    return int(value, 16)


def _hex_to_bytes(value: Optional[str]) -> bytes:
    if not isinstance(value, str):
        raise RPCError("Expected hex string result")
    normalized = value[2:] if value.startswith("0x") else value
    if normalized == "":
        return b""
    return bytes.fromhex(normalized)
