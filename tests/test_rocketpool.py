from eth_abi import encode
from eth_utils.crypto import keccak

from chain.rocketpool import (
    DEPOSIT_POOL,
    DEPOSIT_SETTINGS,
    RETH_TOKEN,
    RocketPoolReader,
    storage_key,
)
from chain.transaction_builder import encode_call

RETH = "0xae78736cd615f374d3085123a210448e74fc6393"
SETTINGS = "0x00000000000000000000000000000000000000A1"
POOL = "0x00000000000000000000000000000000000000A2"


class _FakeClient:
    """Answers eth_call by (contract, calldata)."""

    def __init__(self):
        self.calls = []
        self.answers = {}

    def on(self, contract, data, value_type, value):
        self.answers[(contract.lower(), data)] = encode([value_type], [value])

    def call(self, request, block="latest"):
        key = (request.to.lower, request.data)
        self.calls.append(key)
        return self.answers[key]


def _registry(client):
    storage = "0x1d8f8f00cfa6758d7bE78336684788Fb0ee0Fa46"
    for name, address in (
        (RETH_TOKEN, RETH),
        (DEPOSIT_SETTINGS, SETTINGS),
        (DEPOSIT_POOL, POOL),
    ):
        client.on(
            storage,
            encode_call("getAddress(bytes32)", ["bytes32"], [storage_key(name)]),
            "address",
            address,
        )


def test_storage_key_hashes_namespace():
    assert storage_key("rocketTokenRETH") == keccak(
        text="contract.addressrocketTokenRETH"
    )


def test_reads_resolve_through_storage():
    client = _FakeClient()
    _registry(client)
    client.on(SETTINGS, encode_call("getDepositFee()", [], []), "uint256", 5 * 10**14)
    client.on(
        SETTINGS,
        encode_call("getMaximumDepositPoolSize()", [], []),
        "uint256",
        5000 * 10**18,
    )
    client.on(POOL, encode_call("getBalance()", [], []), "uint256", 4990 * 10**18)
    client.on(
        RETH,
        encode_call("getRethValue(uint256)", ["uint256"], [10**18]),
        "uint256",
        95 * 10**16,
    )
    client.on(RETH, encode_call("getExchangeRate()", [], []), "uint256", 105 * 10**16)

    reader = RocketPoolReader(client)

    assert reader.reth_address() == RETH
    assert reader.get_deposit_fee() == 5 * 10**14
    assert reader.get_maximum_deposit_pool_size() == 5000 * 10**18
    assert reader.get_deposit_pool_balance() == 4990 * 10**18
    assert reader.get_reth_value(10**18) == 95 * 10**16
    assert reader.get_exchange_rate() == 105 * 10**16


def test_no_caching_between_reads():
    client = _FakeClient()
    _registry(client)
    client.on(POOL, encode_call("getBalance()", [], []), "uint256", 1)
    reader = RocketPoolReader(client)

    reader.get_deposit_pool_balance()
    reader.get_deposit_pool_balance()

    pool_calls = [key for key in client.calls if key[0] == POOL.lower()]
    assert len(pool_calls) == 2
