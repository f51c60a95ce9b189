from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict

import requests

from core.base_types import Address

logger = logging.getLogger(__name__)

ONEINCH_BASE_URL = "https://api.1inch.io/v4.0/1"
ONEINCH_ROUTER_ADDRESS = "0x1111111254fb6c44bAC0beD2854e76F90643097d"
WETH_ADDRESS = "0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2"


class QuoteError(RuntimeError):
    """The quoting service returned an error status or an unusable payload."""


@dataclass(frozen=True)
class SwapQuote:
    """
    Executable swap returned by the aggregator.

    ``to`` is the contract the call data targets; ``data`` is passed verbatim
    into the arbitrage contract.
    """

    from_token: Address
    to_token: Address
    from_amount: int
    to_amount: int
    to: Address
    data: bytes


class OneInchClient:
    """
    Minimal 1inch swap API client.

    Only the ``/swap`` endpoint is used: it returns call data the arbitrage
    contract can execute as ``from_address``. Gas estimation is disabled
    because the caller sets its own gas limit.
    """

    def __init__(
        self,
        base_url: str | None = None,
        expected_router: str = ONEINCH_ROUTER_ADDRESS,
        settlement_token: str = WETH_ADDRESS,
        timeout_seconds: float = 10.0,
    ) -> None:
        self._base_url = (base_url or ONEINCH_BASE_URL).rstrip("/")
        self._expected_router = Address.from_string(expected_router)
        self._settlement_token = Address.from_string(settlement_token)
        self._timeout = timeout_seconds
        self._session = requests.Session()

    def _get(self, path: str, params: Dict[str, Any]) -> Dict[str, Any]:
        url = f"{self._base_url}{path}"
        try:
            resp = self._session.get(url, params=params, timeout=self._timeout)
        except requests.RequestException as exc:
            raise QuoteError(f"1inch request failed: {exc}") from exc
        if resp.status_code != 200:
            logger.error("Got %s from 1inch", resp.status_code)
            raise QuoteError(
                f"1inch request failed: HTTP {resp.status_code} body={resp.text!r}"
            )
        try:
            data = resp.json()
        except ValueError as exc:
            raise QuoteError(f"Invalid JSON from 1inch: {resp.text!r}") from exc
        if not isinstance(data, dict):
            raise QuoteError(f"Unexpected 1inch response: {data!r}")
        return data

    def swap(
        self,
        from_token: Address,
        amount: int,
        from_address: Address,
        slippage_percent: Decimal = Decimal("2"),
    ) -> SwapQuote:
        """
        Call data for swapping ``amount`` of ``from_token`` into the
        settlement token, executed by ``from_address``.

        A router address other than the expected one is only warned about;
        the returned call data is still used.
        """
        params: Dict[str, Any] = {
            "fromTokenAddress": from_token.checksum,
            "toTokenAddress": self._settlement_token.checksum,
            "fromAddress": from_address.checksum,
            "amount": str(amount),
            "slippage": str(slippage_percent),
            "allowPartialFill": "false",
            "disableEstimate": "true",
        }
        data = self._get("/swap", params)

        try:
            tx = data["tx"]
            to = Address.from_string(tx["to"])
            call_data = _hex_to_bytes(tx["data"])
            to_amount = int(data.get("toTokenAmount", 0))
        except (KeyError, ValueError, TypeError) as exc:
            raise QuoteError(f"Unexpected 1inch response schema: {data}") from exc

        if to != self._expected_router:
            logger.warning("Unexpected to address for swap: %s", to)

        logger.debug(
            "1inch swap: in=%s out=%s router=%s data=%d bytes",
            amount,
            to_amount,
            to,
            len(call_data),
        )
        return SwapQuote(
            from_token=from_token,
            to_token=self._settlement_token,
            from_amount=amount,
            to_amount=to_amount,
            to=to,
            data=call_data,
        )


def _hex_to_bytes(value: str) -> bytes:
    if not isinstance(value, str):
        raise TypeError("call data must be a hex string")
    normalized = value[2:] if value.startswith("0x") else value
    return bytes.fromhex(normalized)
