import logging
from decimal import Decimal

import pytest
import requests

from core.base_types import Address
from pricing.oneinch_client import (
    ONEINCH_ROUTER_ADDRESS,
    WETH_ADDRESS,
    OneInchClient,
    QuoteError,
)

RETH = Address.from_string("0xae78736cd615f374d3085123a210448e74fc6393")
ARB = Address.from_string("0x1f7e55f2e907dDce8074b916f94F62C7e8A18571")


class _Response:
    def __init__(self, payload, status_code=200, text=""):
        self._payload = payload
        self.status_code = status_code
        self.text = text

    def json(self):
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload


def _swap_payload(to=ONEINCH_ROUTER_ADDRESS, data="0xabcdef"):
    return {
        "toTokenAmount": "16800000000000000000",
        "tx": {"to": to, "data": data, "value": "0"},
    }


def test_swap_request_parameters(monkeypatch):
    seen = {}

    def fake_get(url, params=None, timeout=None):
        seen["url"] = url
        seen["params"] = params
        return _Response(_swap_payload())

    client = OneInchClient(base_url="https://api.example/v4.0/1/")
    monkeypatch.setattr(client._session, "get", fake_get)

    client.swap(RETH, 15 * 10**18, ARB, Decimal("1.5"))

    assert seen["url"] == "https://api.example/v4.0/1/swap"
    assert seen["params"] == {
        "fromTokenAddress": RETH.checksum,
        "toTokenAddress": Address.from_string(WETH_ADDRESS).checksum,
        "fromAddress": ARB.checksum,
        "amount": "15000000000000000000",
        "slippage": "1.5",
        "allowPartialFill": "false",
        "disableEstimate": "true",
    }


def test_swap_returns_call_data(monkeypatch):
    client = OneInchClient()
    monkeypatch.setattr(client._session, "get", lambda *a, **k: _Response(_swap_payload()))

    quote = client.swap(RETH, 10**18, ARB)

    assert quote.data == bytes.fromhex("abcdef")
    assert quote.to == ONEINCH_ROUTER_ADDRESS
    assert quote.to_amount == 16_800_000_000_000_000_000
    assert quote.to_token == WETH_ADDRESS
    assert quote.from_amount == 10**18


def test_unexpected_router_only_warns(monkeypatch, caplog):
    other = "0x000000000000000000000000000000000000bEEF"
    client = OneInchClient()
    monkeypatch.setattr(
        client._session, "get", lambda *a, **k: _Response(_swap_payload(to=other))
    )

    with caplog.at_level(logging.WARNING):
        quote = client.swap(RETH, 10**18, ARB)

    assert quote.to == other
    assert quote.data == bytes.fromhex("abcdef")
    assert "Unexpected to address for swap" in caplog.text


def test_error_status_raises(monkeypatch):
    client = OneInchClient()
    monkeypatch.setattr(
        client._session,
        "get",
        lambda *a, **k: _Response({"error": "bad"}, status_code=400, text="bad"),
    )

    with pytest.raises(QuoteError, match="HTTP 400"):
        client.swap(RETH, 10**18, ARB)


def test_transport_failure_raises(monkeypatch):
    def fake_get(*args, **kwargs):
        raise requests.ConnectionError("down")

    client = OneInchClient()
    monkeypatch.setattr(client._session, "get", fake_get)

    with pytest.raises(QuoteError, match="request failed"):
        client.swap(RETH, 10**18, ARB)


@pytest.mark.parametrize(
    "payload",
    [
        {"toTokenAmount": "1"},
        {"tx": {"to": ONEINCH_ROUTER_ADDRESS}},
        {"tx": {"to": ONEINCH_ROUTER_ADDRESS, "data": "0xzz"}},
        {"tx": {"to": "not-an-address", "data": "0x00"}},
    ],
)
def test_malformed_payload_raises(monkeypatch, payload):
    client = OneInchClient()
    monkeypatch.setattr(client._session, "get", lambda *a, **k: _Response(payload))

    with pytest.raises(QuoteError, match="schema"):
        client.swap(RETH, 10**18, ARB)


def test_invalid_json_raises(monkeypatch):
    client = OneInchClient()
    monkeypatch.setattr(
        client._session, "get", lambda *a, **k: _Response(ValueError("nope"), text="<html>")
    )

    with pytest.raises(QuoteError, match="Invalid JSON"):
        client.swap(RETH, 10**18, ARB)
