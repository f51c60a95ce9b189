"""Chain-specific exceptions for RPC and signing failures."""

from __future__ import annotations

from typing import Optional


class ChainError(Exception):
    """Base class for chain errors."""


class RPCError(ChainError):
    """RPC request failed."""

    def __init__(
        self,
        message: str,
        code: Optional[int] = None,
        data: Optional[object] = None,
    ):
        self.code = code
        self.data = data
        super().__init__(message)


class SigningError(ChainError):
    """The signing oracle did not return a signed transaction."""

    def __init__(self, message: str, oracle_error: Optional[str] = None):
        self.oracle_error = oracle_error
        super().__init__(message)
