import json
import logging
import subprocess
from decimal import Decimal

import pytest

from chain.errors import SigningError
from chain.signing_oracle import SmartnodeDaemon, _run_command
from core.bundle import DepositParameters


class _Runner:
    def __init__(self, output):
        self.output = output
        self.calls = []

    def __call__(self, argv):
        self.calls.append(argv)
        return self.output


def _params(salt=255):
    return DepositParameters(
        amount_wei=16 * 10**18, min_commission_fee=Decimal("0.15"), salt=salt
    )


def test_deposit_command_layout():
    daemon = SmartnodeDaemon(
        "docker exec rocketpool_node /go/bin/rocketpool",
        max_fee_gwei=Decimal("40"),
        max_prio_gwei=Decimal("2.5"),
        extra_args="--allow-root",
    )

    argv = daemon.deposit_command(_params())

    assert argv == [
        "docker",
        "exec",
        "rocketpool_node",
        "/go/bin/rocketpool",
        "--maxFee",
        "40",
        "--maxPrioFee",
        "2.5",
        "--allow-root",
        "api",
        "node",
        "deposit",
        "16000000000000000000",
        "0.15",
        "255",
        "false",
    ]


def test_deposit_command_omits_unset_fees():
    argv = SmartnodeDaemon("rocketpool").deposit_command(_params())
    assert "--maxFee" not in argv
    assert "--maxPrioFee" not in argv
    assert argv[:4] == ["rocketpool", "api", "node", "deposit"]


def test_create_deposit_normalizes_hex():
    runner = _Runner("02f8aa01\n")
    daemon = SmartnodeDaemon("rocketpool", runner=runner)

    assert daemon.create_deposit(_params()) == "0x02f8aa01"
    assert runner.calls[0][-4:] == ["16000000000000000000", "0.15", "255", "false"]


def test_create_deposit_error_response():
    runner = _Runner(json.dumps({"status": "error", "error": "insufficient RPL stake"}))
    daemon = SmartnodeDaemon("rocketpool", runner=runner)

    with pytest.raises(SigningError) as exc:
        daemon.create_deposit(_params())
    assert exc.value.oracle_error == "insufficient RPL stake"


def test_sign_strips_prefix_and_returns_signed_data():
    runner = _Runner(json.dumps({"status": "success", "signedData": "02f8bb01"}))
    daemon = SmartnodeDaemon("rocketpool", extra_args="--allow-root", runner=runner)

    assert daemon.sign("0x02f8aa01") == "0x02f8bb01"
    assert runner.calls == [
        ["rocketpool", "--allow-root", "api", "node", "sign", "02f8aa01"]
    ]


def test_sign_failure_carries_oracle_error():
    runner = _Runner(json.dumps({"status": "error", "error": "wallet locked"}))
    daemon = SmartnodeDaemon("rocketpool", runner=runner)

    with pytest.raises(SigningError, match="signing arb transaction failed: wallet locked"):
        daemon.sign("0x02")


def test_sign_without_signed_data():
    daemon = SmartnodeDaemon("rocketpool", runner=_Runner('{"status": "success"}'))
    with pytest.raises(SigningError, match="signedData"):
        daemon.sign("0x02")


def test_sign_unparseable_output():
    daemon = SmartnodeDaemon("rocketpool", runner=_Runner("panic: nil pointer"))
    with pytest.raises(SigningError, match="unparseable"):
        daemon.sign("0x02")


def test_empty_command_rejected():
    with pytest.raises(ValueError):
        SmartnodeDaemon("   ")


def test_run_command_wraps_process_failure(monkeypatch):
    def fake_run(argv, **kwargs):
        raise subprocess.CalledProcessError(1, argv, stderr="boom\n")

    monkeypatch.setattr(subprocess, "run", fake_run)

    with pytest.raises(SigningError) as exc:
        _run_command(["rocketpool", "api"])
    assert exc.value.oracle_error == "boom"


def test_run_command_missing_binary(monkeypatch):
    def fake_run(argv, **kwargs):
        raise FileNotFoundError(argv[0])

    monkeypatch.setattr(subprocess, "run", fake_run)

    with pytest.raises(SigningError, match="not found"):
        _run_command(["rocketpool"])


def test_deposit_log_omits_extra_args(caplog):
    runner = _Runner("02f8aa01")
    daemon = SmartnodeDaemon(
        "rocketpool", extra_args="--password hunter2", runner=runner
    )

    with caplog.at_level(logging.INFO):
        daemon.create_deposit(_params())

    assert "hunter2" not in caplog.text
    assert "api node deposit" in caplog.text
    assert "hunter2" in runner.calls[0]
