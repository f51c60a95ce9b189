"""Local keys: relay authentication and throwaway pre-signatures."""

from __future__ import annotations

import os
from typing import Any

from eth_account import Account
from eth_account.datastructures import SignedMessage
from eth_account.messages import encode_defunct
from eth_utils.address import to_checksum_address

from .base_types import TransactionRequest
from .serializer import CanonicalSerializer


def _mask_private_key(private_key: Any) -> str:
    if isinstance(private_key, (bytes, bytearray)):
        raw = private_key.hex()
    else:
        raw = str(private_key)
    raw = raw.removeprefix("0x")
    if len(raw) < 10:
        return "<redacted>"
    return f"0x{raw[:6]}...{raw[-4:]}"


class WalletManager:
    """
    Holds a local signing key that never holds funds.

    Used for:
    - relay authentication: the ``X-Flashbots-Signature`` header, keyed from
      ``FLASHBOTS_SIGNER_KEY`` or fresh per run
    - the pre-signature on the arbitrage transaction, which the signing
      oracle replaces with the node's; always ``ephemeral()``

    The private key must never appear in logs, errors or reprs.
    """

    def __init__(self, private_key: str | bytes) -> None:
        try:
            self._account = Account.from_key(private_key)
        except Exception as exc:
            raise ValueError(
                f"Invalid private key: {_mask_private_key(private_key)}"
            ) from exc

    @classmethod
    def from_env(cls, env_var: str = "FLASHBOTS_SIGNER_KEY") -> "WalletManager":
        value = os.environ.get(env_var)
        if not value:
            raise ValueError(f"Environment variable {env_var} is not set")
        return cls(value)

    @classmethod
    def ephemeral(cls) -> "WalletManager":
        """A fresh random key that lives only as long as this object."""
        return cls(Account.create().key)

    @property
    def address(self) -> str:
        return to_checksum_address(self._account.address)

    def sign_message(self, message: str) -> SignedMessage:
        """EIP-191 personal-message signature over ``message``."""
        if not isinstance(message, str):
            raise TypeError("message must be a string")
        if message == "":
            raise ValueError("message must not be empty")
        return self._account.sign_message(encode_defunct(text=message))

    def relay_signature(self, body: str) -> str:
        """
        ``X-Flashbots-Signature`` header value for a relay request body.

        The signed message is the hex keccak of the body text, so the relay
        can recover ``address`` from the exact bytes it received.
        """
        signed = self.sign_message(CanonicalSerializer.body_digest(body))
        return f"{self.address}:0x{bytes(signed.signature).hex()}"

    def presign(self, request: TransactionRequest) -> str:
        """Signed wire encoding of ``request`` under this key, 0x-prefixed."""
        signed = self._account.sign_transaction(request.to_dict())
        return f"0x{bytes(signed.raw_transaction).hex()}"

    def __repr__(self) -> str:
        return f"WalletManager(address={self.address})"

    __str__ = __repr__
