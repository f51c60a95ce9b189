"""Canonical JSON text for bundle files and relay request bodies."""

from __future__ import annotations

import json
from typing import Any

from eth_utils.crypto import keccak


def _validate_for_serialization(obj: Any) -> None:
    if isinstance(obj, float):
        raise ValueError("Floating point values are not allowed")

    if isinstance(obj, dict):
        for key, value in obj.items():
            if not isinstance(key, str):
                raise TypeError("All dictionary keys must be strings")
            _validate_for_serialization(value)
        return

    if isinstance(obj, list):
        for item in obj:
            _validate_for_serialization(item)
        return

    if obj is None or isinstance(obj, (str, int, bool)):
        return

    raise TypeError(f"Unsupported type for serialization: {type(obj).__name__}")


class CanonicalSerializer:
    """
    Produces deterministic JSON text.

    Rules:
    - Keys sorted alphabetically (recursive)
    - No whitespace
    - No floats (wei amounts are ints or decimal strings)
    """

    @staticmethod
    def dumps(obj: Any) -> str:
        _validate_for_serialization(obj)
        return json.dumps(
            obj,
            sort_keys=True,
            separators=(",", ":"),
            ensure_ascii=False,
        )

    @staticmethod
    def loads(text: str) -> Any:
        return json.loads(text)

    @staticmethod
    def body_digest(body: str) -> str:
        """Returns the 0x-prefixed keccak256 of a request body, as relays sign it."""
        return f"0x{keccak(text=body).hex()}"
