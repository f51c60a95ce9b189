import pytest
from eth_utils.crypto import keccak

from core.serializer import CanonicalSerializer


def test_nested_objects_sorted_keys():
    obj = {"b": 1, "a": {"d": 4, "c": 3}}
    assert CanonicalSerializer.dumps(obj) == '{"a":{"c":3,"d":4},"b":1}'


def test_large_integers():
    obj = {"value": 2**80}
    assert CanonicalSerializer.dumps(obj) == f'{{"value":{2**80}}}'


def test_floats_are_rejected():
    with pytest.raises(ValueError, match="Floating point"):
        CanonicalSerializer.dumps({"value": 1.23})


def test_unsupported_types_rejected():
    with pytest.raises(TypeError, match="Unsupported type"):
        CanonicalSerializer.dumps({"value": b"\x00"})


def test_loads_inverts_dumps():
    obj = [{"signedTransaction": "0x01"}, {"signedTransaction": "0x02"}]
    assert CanonicalSerializer.loads(CanonicalSerializer.dumps(obj)) == obj


def test_body_digest_is_prefixed_keccak():
    body = '{"id":1}'
    assert CanonicalSerializer.body_digest(body) == "0x" + keccak(text=body).hex()
