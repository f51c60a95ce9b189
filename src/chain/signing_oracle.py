"""Signing oracle interface and the Rocket Pool smartnode daemon adapter."""

from __future__ import annotations

import json
import logging
import shlex
import subprocess
from decimal import Decimal
from typing import Callable, Optional, Protocol

from core.bundle import DepositParameters

from .errors import SigningError

logger = logging.getLogger(__name__)

Runner = Callable[[list[str]], str]


class SigningOracle(Protocol):
    """Holds the node's signing authority; returns signed type-2 encodings."""

    def create_deposit(self, params: DepositParameters) -> str:
        """Create and sign the minipool deposit transaction."""
        ...

    def sign(self, encoded_tx: str) -> str:
        """Re-sign a (pre-signed) transaction encoding with the node key."""
        ...


def _run_command(argv: list[str]) -> str:
    try:
        completed = subprocess.run(argv, capture_output=True, check=True, text=True)
    except FileNotFoundError as exc:
        raise SigningError(f"daemon command not found: {argv[0]}") from exc
    except subprocess.CalledProcessError as exc:
        stderr = (exc.stderr or "").strip()
        raise SigningError(
            f"daemon exited with status {exc.returncode}", oracle_error=stderr
        ) from exc
    return completed.stdout


class SmartnodeDaemon:
    """
    Runs the smartnode daemon's ``api node`` commands as a local process.

    ``command`` is the daemon invocation, e.g.
    ``docker exec rocketpool_node /go/bin/rocketpool``.
    """

    def __init__(
        self,
        command: str,
        max_fee_gwei: Optional[Decimal] = None,
        max_prio_gwei: Optional[Decimal] = None,
        extra_args: Optional[str] = None,
        runner: Runner = _run_command,
    ):
        if not command.strip():
            raise ValueError("daemon command must not be empty")
        self._command = shlex.split(command)
        self._max_fee_gwei = max_fee_gwei
        self._max_prio_gwei = max_prio_gwei
        self._extra_args = shlex.split(extra_args) if extra_args else []
        self._runner = runner

    def deposit_command(
        self, params: DepositParameters, with_extra_args: bool = True
    ) -> list[str]:
        """``with_extra_args=False`` gives the loggable form of the command."""
        argv = list(self._command)
        if self._max_fee_gwei is not None:
            argv += ["--maxFee", str(self._max_fee_gwei)]
        if self._max_prio_gwei is not None:
            argv += ["--maxPrioFee", str(self._max_prio_gwei)]
        if with_extra_args:
            argv += self._extra_args
        argv += [
            "api",
            "node",
            "deposit",
            str(params.amount_wei),
            str(params.min_commission_fee),
            str(params.salt),
            "false",
        ]
        return argv

    def sign_command(self, encoded_tx: str) -> list[str]:
        payload = encoded_tx[2:] if encoded_tx.startswith("0x") else encoded_tx
        return [*self._command, *self._extra_args, "api", "node", "sign", payload]

    def create_deposit(self, params: DepositParameters) -> str:
        logger.info(
            "Creating deposit transaction by executing smartnode: %s",
            shlex.join(self.deposit_command(params, with_extra_args=False)),
        )
        output = self._runner(self.deposit_command(params)).strip()
        if output.startswith("{"):
            response = _parse_response(output)
            raise SigningError(
                "smartnode did not return a deposit transaction",
                oracle_error=str(response.get("error")),
            )
        encoded = _normalize_hex(output)
        logger.info("Got deposit transaction data from smartnode")
        return encoded

    def sign(self, encoded_tx: str) -> str:
        output = self._runner(self.sign_command(encoded_tx))
        response = _parse_response(output)
        if response.get("status") != "success":
            error = response.get("error")
            raise SigningError(
                f"signing arb transaction failed: {error}", oracle_error=error
            )
        signed = response.get("signedData")
        if not isinstance(signed, str) or not signed:
            raise SigningError("smartnode sign response has no signedData")
        logger.info("Signed arb transaction with smartnode")
        return _normalize_hex(signed)


def _parse_response(output: str) -> dict:
    try:
        response = json.loads(output)
    except json.JSONDecodeError as exc:
        raise SigningError(f"unparseable smartnode response: {output!r}") from exc
    if not isinstance(response, dict):
        raise SigningError(f"unexpected smartnode response: {output!r}")
    return response


def _normalize_hex(value: str) -> str:
    normalized = value[2:] if value.startswith("0x") else value
    try:
        bytes.fromhex(normalized)
    except ValueError as exc:
        raise SigningError("smartnode output is not a hex transaction") from exc
    if not normalized:
        raise SigningError("smartnode returned an empty transaction")
    return f"0x{normalized}"
