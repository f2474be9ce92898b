#!/usr/bin/env python3
"""Pyth Price Relayer.

Fetches signed Pyth price updates from the Hermes API and relays them to
the on-chain price relay contract when the price moved beyond the configured
deviation tolerance.

Configuration comes from environment variables; CLI options override them.
"""

import argparse
import asyncio
import logging
import os
import signal
import sys
from collections.abc import Awaitable, Callable

from .src.Cancellation import CancellationToken
from .src.commands import (
    CommandContext,
    admin_refresh_params,
    admin_transfer,
    admin_update_fee,
    daemon_command,
    query_command,
    status_command,
    update_command,
)
from .src.config import parse_config
from .src.errors import ConfigError, sanitize_error
from .src.HermesClient import HermesClient

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)

# Commands that only read chain state and can run without WALLET_SECRET
READ_ONLY_COMMANDS = {"query", "status"}


def build_parser() -> argparse.ArgumentParser:
    """Build the command line parser."""
    parser = argparse.ArgumentParser(
        prog="price-relayer",
        description="Pyth Price Relayer: Relay Hermes price updates on-chain",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Run a single update
  python -m relayer.main update

  # Query the price stored on-chain
  python -m relayer.main query --feed

  # Run continuously with a health check endpoint
  python -m relayer.main daemon --interval 60000

Environment variables (CLI args take precedence):
  CONTRACT_ADDRESS, WALLET_SECRET, NETWORK, RPC_URL, HERMES_ENDPOINT,
  UPDATE_INTERVAL_MS, PRICE_DEVIATION_TOLERANCE, HEALTHCHECK_PORT,
  FETCH_TIMEOUT, NODE_ENV
""",
    )

    parser.add_argument(
        "--contract",
        dest="contract_address",
        type=str,
        help="Price relay contract address",
        default=os.environ.get("CONTRACT_ADDRESS"),
    )

    parser.add_argument(
        "--network",
        type=str,
        help="Network to connect to (sapphire, sapphire-testnet, sapphire-localnet or an RPC URL)",
        default=os.environ.get("NETWORK"),
    )

    parser.add_argument(
        "--rpc-url",
        dest="rpc_url",
        type=str,
        help="RPC endpoint overriding the network default",
        default=os.environ.get("RPC_URL"),
    )

    parser.add_argument(
        "--hermes-endpoint",
        dest="hermes_endpoint",
        type=str,
        help="Hermes API base URL (default: https://hermes.pyth.network)",
        default=os.environ.get("HERMES_ENDPOINT"),
    )

    parser.add_argument(
        "--fetch-timeout",
        dest="fetch_timeout",
        type=str,
        help="Timeout for Hermes requests in seconds (default: 10.0)",
        default=os.environ.get("FETCH_TIMEOUT"),
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose (DEBUG) logging",
    )

    subparsers = parser.add_subparsers(dest="command", metavar="<command>")
    subparsers.required = True

    subparsers.add_parser("update", help="Fetch the latest price and update the contract once")

    query = subparsers.add_parser("query", help="Query price data from the contract")
    group = query.add_mutually_exclusive_group()
    group.add_argument("--feed", action="store_true", help="Show the full price feed")
    group.add_argument("--config", action="store_true", help="Show the contract configuration")
    group.add_argument(
        "--oracle-params",
        dest="oracle_params",
        action="store_true",
        help="Show the cached oracle parameters",
    )

    subparsers.add_parser("status", help="Show the relayer status")

    daemon = subparsers.add_parser("daemon", help="Run continuous updates with a health endpoint")
    daemon.add_argument(
        "--interval",
        type=str,
        help="Milliseconds between update cycles (default: 300000)",
        default=os.environ.get("UPDATE_INTERVAL_MS"),
    )
    daemon.add_argument(
        "--tolerance",
        type=str,
        help='Price deviation tolerance, "0.5" (absolute) or "1%%" (percentage)',
        default=os.environ.get("PRICE_DEVIATION_TOLERANCE"),
    )
    daemon.add_argument(
        "--port",
        type=str,
        help="Health check server port (default: 3000)",
        default=os.environ.get("HEALTHCHECK_PORT"),
    )

    admin = subparsers.add_parser("admin", help="Admin operations (requires the admin wallet)")
    admin_subparsers = admin.add_subparsers(dest="admin_command", metavar="<action>")
    admin_subparsers.required = True
    admin_subparsers.add_parser("refresh-params", help="Refresh the cached oracle parameters")
    update_fee = admin_subparsers.add_parser("update-fee", help="Update the price update fee")
    update_fee.add_argument("fee", help="New fee in wei")
    transfer = admin_subparsers.add_parser("transfer", help="Transfer admin rights")
    transfer.add_argument("address", help="New admin address")

    return parser


def build_env(args: argparse.Namespace) -> dict[str, str]:
    """Merge CLI arguments over the process environment.

    :param args: Parsed arguments.
    :returns: Environment mapping for :func:`parse_config`.
    """
    env = dict(os.environ)
    overrides = {
        "CONTRACT_ADDRESS": args.contract_address,
        "NETWORK": args.network,
        "RPC_URL": args.rpc_url,
        "HERMES_ENDPOINT": args.hermes_endpoint,
        "FETCH_TIMEOUT": args.fetch_timeout,
        "UPDATE_INTERVAL_MS": getattr(args, "interval", None),
        "PRICE_DEVIATION_TOLERANCE": getattr(args, "tolerance", None),
        "HEALTHCHECK_PORT": getattr(args, "port", None),
    }
    for key, value in overrides.items():
        if value:
            env[key] = value
    return env


def select_command(
    args: argparse.Namespace,
) -> tuple[str, Callable[[CommandContext], Awaitable[None]]]:
    """Map parsed arguments to a command name and coroutine function."""
    if args.command == "update":
        return "update", update_command
    if args.command == "query":
        return "query", lambda ctx: query_command(
            ctx, feed=args.feed, config=args.config, oracle_params=args.oracle_params
        )
    if args.command == "status":
        return "status", status_command
    if args.command == "daemon":
        return "daemon", daemon_command
    if args.admin_command == "refresh-params":
        return "admin refresh-params", admin_refresh_params
    if args.admin_command == "update-fee":
        return "admin update-fee", lambda ctx: admin_update_fee(ctx, args.fee)
    return "admin transfer", lambda ctx: admin_transfer(ctx, args.address)


def install_signal_handlers(cancellation: CancellationToken) -> None:
    """Fire the cancellation token on SIGINT and SIGTERM."""
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, cancellation.cancel)
        except NotImplementedError:
            # Not supported on Windows event loops; Ctrl+C still raises KeyboardInterrupt
            pass


async def run_command(
    command: Callable[[CommandContext], Awaitable[None]],
    ctx: CommandContext,
    handle_signals: bool = False,
) -> None:
    """Run a command and release the shared HTTP client afterwards.

    :param command: Command coroutine function.
    :param ctx: Command context.
    :param handle_signals: Route SIGINT/SIGTERM to the cancellation token.
    """
    if handle_signals:
        install_signal_handlers(ctx.cancellation)
    try:
        await command(ctx)
    finally:
        await HermesClient.close_shared_client()


def main(argv: list[str] | None = None) -> None:
    """Main entry point for the Pyth Price Relayer CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)

    # Configure logging level
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    try:
        config = parse_config(
            build_env(args), require_wallet=args.command not in READ_ONLY_COMMANDS
        )
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        sys.exit(1)

    name, command = select_command(args)

    # Log configuration
    logger.debug("=" * 60)
    logger.debug(f"Network:           {config.network}")
    logger.debug(f"RPC Endpoint:      {config.rpc_endpoint}")
    logger.debug(f"Contract:          {config.contract_address}")
    logger.debug(f"Hermes Endpoint:   {config.hermes_endpoint}")
    logger.debug(f"Update Interval:   {config.update_interval_ms}ms")
    logger.debug(f"Tolerance:         {config.price_deviation_tolerance}")
    logger.debug(f"Wallet:            {config.wallet_secret!r}")
    logger.debug("=" * 60)

    try:
        asyncio.run(
            run_command(command, CommandContext(config), handle_signals=name == "daemon")
        )
    except KeyboardInterrupt:
        logger.info("Shutting down...")
    except Exception as e:
        print(f'Command "{name}" failed: {sanitize_error(e)}', file=sys.stderr)
        logger.debug("Command failure", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
