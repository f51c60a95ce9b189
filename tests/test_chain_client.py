import pytest
import requests

from chain.client import ChainClient
from chain.errors import ChainError, RPCError
from core.base_types import Address, CallRequest


class _Response:
    def __init__(self, payload, status_code=200):
        self._payload = payload
        self.status_code = status_code

    def json(self):
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload


def test_rpc_timeout_is_not_retried(monkeypatch):
    calls = {"count": 0}

    def fake_post(*args, **kwargs):
        calls["count"] += 1
        raise requests.Timeout("boom")

    client = ChainClient("https://rpc.example")
    monkeypatch.setattr(client._session, "post", fake_post)

    with pytest.raises(ChainError, match="eth_blockNumber"):
        client.get_block_number()
    assert calls["count"] == 1


def test_rpc_error_payload_exposed(monkeypatch):
    def fake_post(*args, **kwargs):
        return _Response({"error": {"message": "boom", "code": 123, "data": "0xdead"}})

    client = ChainClient("https://rpc.example")
    monkeypatch.setattr(client._session, "post", fake_post)

    with pytest.raises(RPCError) as exc:
        client.get_chain_id()

    assert exc.value.code == 123
    assert exc.value.data == "0xdead"


def test_http_error_status(monkeypatch):
    client = ChainClient("https://rpc.example")
    monkeypatch.setattr(client._session, "post", lambda *a, **k: _Response({}, 502))

    with pytest.raises(RPCError, match="HTTP 502"):
        client.get_block_number()


def test_get_block_uses_hex_number(monkeypatch):
    seen = {}

    def fake_post(*args, **kwargs):
        seen.update(kwargs["json"])
        return _Response({"result": {"number": "0x10", "baseFeePerGas": "0x5"}})

    client = ChainClient("https://rpc.example")
    monkeypatch.setattr(client._session, "post", fake_post)

    assert client.get_base_fee(16) == 5
    assert seen["method"] == "eth_getBlockByNumber"
    assert seen["params"] == ["0x10", False]


def test_missing_block_raises(monkeypatch):
    client = ChainClient("https://rpc.example")
    monkeypatch.setattr(client._session, "post", lambda *a, **k: _Response({"result": None}))

    with pytest.raises(RPCError, match="not found"):
        client.get_block(99)


def test_get_nonce_at_block(monkeypatch):
    seen = {}

    def fake_post(*args, **kwargs):
        seen.update(kwargs["json"])
        return _Response({"result": "0x2a"})

    client = ChainClient("https://rpc.example")
    monkeypatch.setattr(client._session, "post", fake_post)
    owner = Address.from_string("0x000000000000000000000000000000000000dead")

    assert client.get_nonce(owner, 100) == 42
    assert seen["params"] == ["0x000000000000000000000000000000000000dEaD", "0x64"]


def test_call_returns_bytes(monkeypatch):
    def fake_post(*args, **kwargs):
        assert kwargs["json"]["params"][1] == "latest"
        return _Response({"result": "0x1234"})

    client = ChainClient("https://rpc.example")
    monkeypatch.setattr(client._session, "post", fake_post)
    call = CallRequest(
        to=Address.from_string("0x000000000000000000000000000000000000dead"),
        data=b"",
    )
    assert client.call(call) == bytes.fromhex("1234")


def test_empty_rpc_url_rejected():
    with pytest.raises(ValueError):
        ChainClient("")
