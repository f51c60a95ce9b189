"""CLI entrypoint: build the deposit + arbitrage bundle and race it into a block."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from dataclasses import dataclass
from typing import Callable

from chain import ChainClient, ChainError, RocketPoolReader, SmartnodeDaemon
from config import (
    DEFAULT_ARB_CONTRACT,
    DEFAULT_DAEMON,
    DEFAULT_RPC_URL,
    ArbConfig,
    ConfigurationError,
    ResumeMode,
    get_env,
    parse_decimal,
)
from core.base_types import Address
from core.bundle_store import BundleStore
from core.wallet_manager import WalletManager
from executor.assembler import ArbTransactionAssembler
from executor.engine import BundleSubmitter
from executor.pipeline import BundlePipeline
from executor.relay import FlashbotsRelay, RelayError, relay_url_for
from pricing.deposit_calculator import DepositCalculator, compare_rates
from pricing.oneinch_client import OneInchClient, QuoteError

logger = logging.getLogger("rocketarb")

LOG_FORMAT = "%(asctime)s |%(levelname)s |%(message)s"


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Deposit a minipool and arbitrage the minted rETH in one bundle"
    )
    parser.add_argument(
        "-r",
        "--rpc",
        default=get_env("ROCKETARB_RPC", DEFAULT_RPC_URL),
        help="RPC endpoint URL",
    )
    parser.add_argument(
        "-d",
        "--daemon",
        default=get_env("ROCKETARB_DAEMON", DEFAULT_DAEMON),
        help="command (+ args if req) to run the rocketpool smartnode daemon",
    )
    parser.add_argument("-l", "--salt", help="salt for custom minipool address (hex)")
    parser.add_argument(
        "-f",
        "--max-fee",
        type=parse_decimal,
        help="max transaction fee per gas in gwei",
    )
    parser.add_argument(
        "-i",
        "--max-prio",
        type=parse_decimal,
        help="max transaction priority fee per gas in gwei",
    )
    parser.add_argument(
        "-x",
        "--extra-args",
        help="extra (space-separated) arguments to pass to daemon calls",
    )
    parser.add_argument(
        "-n",
        "--dry-run",
        action="store_true",
        help="simulate only, do not submit transaction bundle",
    )
    parser.add_argument(
        "-v",
        "--bundle-file",
        default="bundle.json",
        help="file for saving the bundle before submission or reading a saved bundle",
    )
    parser.add_argument(
        "-e",
        "--resume",
        action="store_true",
        help="do not create a new bundle, submit the one saved in the bundle file",
    )
    parser.add_argument(
        "-o",
        "--resume-deposit",
        action="store_true",
        help="reuse the deposit saved in the bundle file but recreate the arb transaction",
    )
    parser.add_argument(
        "-p",
        "--no-use-dp",
        dest="use_dp",
        action="store_false",
        help="do not include space in the deposit pool in the arb",
    )
    parser.add_argument(
        "-m",
        "--max-tries",
        type=int,
        default=10,
        help="number of blocks to attempt to submit bundle for",
    )
    parser.add_argument(
        "-a",
        "--amount",
        type=parse_decimal,
        default=parse_decimal("16"),
        help="amount in ether to deposit",
    )
    parser.add_argument(
        "-c",
        "--min-fee",
        type=parse_decimal,
        default=parse_decimal("0.15"),
        help="minimum minipool commission fee",
    )
    parser.add_argument(
        "-g",
        "--gas-limit",
        type=int,
        default=900_000,
        help="gas limit for arbitrage transaction",
    )
    parser.add_argument(
        "-u",
        "--gas-refund",
        type=int,
        default=2_500_000,
        help="set min-profit to a gas refund of this much gas",
    )
    parser.add_argument(
        "-b",
        "--arb-contract",
        default=DEFAULT_ARB_CONTRACT,
        help="deployment address of the RocketDepositArbitrage contract",
    )
    parser.add_argument(
        "-s",
        "--slippage",
        type=parse_decimal,
        default=parse_decimal("2"),
        help="slippage tolerance for the arb swap (percent)",
    )
    parser.add_argument(
        "-t",
        "--rates",
        action="store_true",
        help="only compare the protocol rETH rate with the market rate, then exit",
    )
    parser.add_argument(
        "--relay-url",
        default=get_env("ROCKETARB_RELAY_URL"),
        help="bundle relay URL (default: chosen by chain id)",
    )
    parser.add_argument("--oneinch-url", help="1inch API base URL")
    parser.add_argument(
        "-y",
        "--yes",
        action="store_true",
        help="skip the smartnode dry run confirmation",
    )
    parser.add_argument("--verbose", action="store_true", help="debug logging")
    return parser


def _config_from_args(args: argparse.Namespace) -> ArbConfig:
    return ArbConfig(
        rpc_url=args.rpc,
        daemon=args.daemon,
        salt=args.salt,
        max_fee_gwei=args.max_fee,
        max_prio_gwei=args.max_prio,
        extra_args=args.extra_args,
        dry_run=args.dry_run,
        bundle_file=args.bundle_file,
        resume=args.resume,
        resume_deposit=args.resume_deposit,
        use_deposit_pool=args.use_dp,
        max_tries=args.max_tries,
        amount_ether=args.amount,
        min_fee=args.min_fee,
        gas_limit=args.gas_limit,
        gas_refund=args.gas_refund,
        arb_contract=args.arb_contract,
        slippage=args.slippage,
        relay_url=args.relay_url,
        oneinch_url=args.oneinch_url,
        rates=args.rates,
    )


@dataclass
class Components:
    chain: ChainClient
    calculator: DepositCalculator
    quotes: OneInchClient
    pipeline: BundlePipeline


def build_components(config: ArbConfig) -> Components:
    chain = ChainClient(config.rpc_url)
    calculator = DepositCalculator(
        RocketPoolReader(chain), use_deposit_pool_space=config.use_deposit_pool
    )
    quotes = OneInchClient(base_url=config.oneinch_url)
    fresh = config.resume_mode == ResumeMode.FRESH
    oracle = SmartnodeDaemon(
        config.daemon,
        max_fee_gwei=config.max_fee_gwei if fresh else None,
        max_prio_gwei=config.max_prio_gwei if fresh else None,
        extra_args=config.extra_args,
    )
    assembler = ArbTransactionAssembler(
        calculator=calculator,
        quotes=quotes,
        oracle=oracle,
        arb_contract=Address.from_string(config.arb_contract),
        gas_limit=config.gas_limit,
        gas_refund=config.gas_refund,
        slippage_percent=config.slippage,
    )
    pipeline = BundlePipeline(config, oracle, assembler, BundleStore(config.bundle_file))
    return Components(
        chain=chain, calculator=calculator, quotes=quotes, pipeline=pipeline
    )


def _relay_auth() -> WalletManager:
    if get_env("FLASHBOTS_SIGNER_KEY"):
        return WalletManager.from_env("FLASHBOTS_SIGNER_KEY")
    return WalletManager.ephemeral()


async def run(
    config: ArbConfig, build: Callable[[ArbConfig], Components] = build_components
) -> int:
    """Returns the process exit code: 0 on inclusion or a finished dry run."""
    config.validate()
    components = build(config)

    if config.rates:
        await asyncio.to_thread(
            compare_rates,
            components.calculator,
            components.quotes,
            Address.from_string(config.arb_contract),
            config.slippage,
        )
        return 0

    bundle = await asyncio.to_thread(components.pipeline.build_bundle)

    logger.info("waiting for network")
    chain_id = await asyncio.to_thread(components.chain.get_chain_id)
    logger.info("got chain id %d", chain_id)
    relay = FlashbotsRelay(
        config.relay_url or relay_url_for(chain_id), _relay_auth(), components.chain
    )
    logger.info("created relay client for %s", relay.relay_url)

    submitter = BundleSubmitter(relay, components.chain, config.max_tries)
    if config.dry_run:
        await submitter.dry_run(bundle)
        return 0
    outcome = await submitter.submit(bundle)
    return 0 if outcome.success else 1


def main() -> None:
    """Entrypoint for the ``rocketarb`` console script."""
    parser = _build_parser()
    args = parser.parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO, format=LOG_FORMAT
    )
    logger.info("Welcome to RocketArb: Deposit!")

    try:
        config = _config_from_args(args).validate()
    except ConfigurationError as exc:
        print(str(exc), file=sys.stderr)
        sys.exit(2)

    if config.resume_mode == ResumeMode.FRESH and not config.rates and not args.yes:
        answer = input(
            "Have you done a dry run of depositing your minipool using the smartnode? "
        )
        if answer.strip().lower() not in ("y", "yes"):
            print("Do that first then retry.")
            return

    try:
        code = asyncio.run(run(config))
    except ConfigurationError as exc:
        print(str(exc), file=sys.stderr)
        sys.exit(2)
    except (ChainError, QuoteError, RelayError, ValueError) as exc:
        logger.error("%s: %s", type(exc).__name__, exc)
        sys.exit(1)
    sys.exit(code)


if __name__ == "__main__":
    main()
