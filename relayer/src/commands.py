"""CLI command implementations.

Each command receives a :class:`CommandContext` carrying the validated
configuration and the factories for its collaborators, prints its report to
stdout and raises on failure; ``main`` turns exceptions into the
``Command "<name>" failed: ...`` message and exit code 1.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable

from .Cancellation import CancellationToken
from .config import RelayerConfig
from .CycleOutcome import Failed, SkippedStale, SkippedWithinTolerance, Submitted
from .errors import RelayerError
from .HealthServer import HealthServer
from .HermesClient import HermesClient
from .LedgerClient import LedgerClient
from .PriceQuote import normalize_price
from .PriceRelayer import PriceRelayer
from .validation import validate_address, validate_fee_amount

# Prices older than this are reported as stale by the query command
STALE_PRICE_AGE = 300

SEPARATOR = "─" * 29


def default_quote_source(config: RelayerConfig) -> HermesClient:
    """Build the Hermes quote source from the configuration."""
    return HermesClient(config.hermes_endpoint, timeout=config.fetch_timeout)


@dataclass
class CommandContext:
    """Configuration and collaborator factories shared by all commands.

    :ivar config: Validated relayer configuration.
    :ivar create_ledger: Factory for the ledger client.
    :ivar create_quote_source: Factory for the quote source.
    :ivar cancellation: Token stopping the daemon (created if not given).
    """

    config: RelayerConfig
    create_ledger: Callable[[RelayerConfig], LedgerClient] = LedgerClient.from_config
    create_quote_source: Callable[[RelayerConfig], HermesClient] = default_quote_source
    cancellation: CancellationToken = field(default_factory=CancellationToken)

    def create_relayer(self) -> PriceRelayer:
        """Build a price relayer wired to fresh collaborators."""
        return PriceRelayer(
            quote_source=self.create_quote_source(self.config),
            ledger=self.create_ledger(self.config),
            contract_address=self.config.contract_address,
            update_interval_ms=self.config.update_interval_ms,
            tolerance=self.config.price_deviation_tolerance,
        )

    async def connect_ledger(self) -> LedgerClient:
        """Build the ledger client and check the RPC connection."""
        ledger = self.create_ledger(self.config)
        await asyncio.to_thread(ledger.connect)
        return ledger


def _format_timestamp(timestamp: int) -> str:
    return datetime.fromtimestamp(timestamp, tz=timezone.utc).strftime(
        "%Y-%m-%dT%H:%M:%SZ"
    )


def _format_amount(value: str, expo: int) -> str:
    return f"${normalize_price(value, expo):.8f}"


async def update_command(ctx: CommandContext) -> None:
    """Run exactly one update cycle.

    :raises RelayerError: If the cycle failed.
    """
    print("Updating oracle price...\n")
    relayer = ctx.create_relayer()
    outcome = await relayer.update_once()

    if isinstance(outcome, Failed):
        raise RelayerError(outcome.error)
    if isinstance(outcome, Submitted):
        print(f"TX: {outcome.tx_ref}")
    elif isinstance(outcome, SkippedWithinTolerance):
        print(f"Skipped: deviation {outcome.observed_deviation} within tolerance")
    elif isinstance(outcome, SkippedStale):
        print("Skipped: on-chain price is already up to date")
    print("\nUpdate completed successfully!")


async def query_command(
    ctx: CommandContext,
    feed: bool = False,
    config: bool = False,
    oracle_params: bool = False,
) -> None:
    """Print on-chain data from the relay contract.

    :param feed: Print the full price feed.
    :param config: Print the contract configuration.
    :param oracle_params: Print the cached oracle parameters.
    """
    ledger = await ctx.connect_ledger()

    if config:
        print("Contract Configuration:\n")
        cfg = await asyncio.to_thread(ledger.query_config)
        print(SEPARATOR)
        print(f"Admin:            {cfg.admin}")
        print(f"Pyth Contract:    {cfg.pyth_contract}")
        print(f"Update Fee:       {cfg.update_fee}")
        print(f"Price Feed ID:    {cfg.price_feed_id}")
        return

    if oracle_params:
        print("Cached Oracle Parameters:\n")
        params = await asyncio.to_thread(ledger.query_oracle_params)
        deviation_pct = params.max_price_deviation_bps / 100
        print(SEPARATOR)
        print(f"Max Deviation:    {params.max_price_deviation_bps} bps ({deviation_pct}%)")
        print(f"Min Sources:      {params.min_price_sources}")
        print(f"Max Staleness:    {params.max_price_staleness_blocks} blocks")
        print(f"TWAP Window:      {params.twap_window} blocks")
        print(f"Last Updated:     Height {params.last_updated_height}")
        return

    if feed:
        print("Price Feed Data:\n")
        price_feed = await asyncio.to_thread(ledger.query_price_feed)
        print(SEPARATOR)
        print(f"Symbol:           {price_feed.symbol}")
        print(f"Price:            {price_feed.price}")
        print(f"Confidence:       {price_feed.conf}")
        print(f"Exponent:         {price_feed.expo}")
        print(f"Publish Time:     {price_feed.publish_time}")
        print(f"                  {_format_timestamp(price_feed.publish_time)}")
        print(f"Prev Publish:     {price_feed.prev_publish_time}")
        print(f"                  {_format_timestamp(price_feed.prev_publish_time)}")
        print("\nFormatted:")
        print(
            f"Price:            {_format_amount(price_feed.price, price_feed.expo)}"
            f" +/- {_format_amount(price_feed.conf, price_feed.expo)}"
        )
        return

    print("Current Price:\n")
    price = await asyncio.to_thread(ledger.query_price)
    print(SEPARATOR)
    print(f"Price:        {price.price}")
    print(f"Confidence:   {price.conf}")
    print(f"Exponent:     {price.expo}")
    print(f"Publish Time: {price.publish_time}")
    print(f"              {_format_timestamp(price.publish_time)}")
    print("\nFormatted:")
    print(
        f"Price:        {_format_amount(price.price, price.expo)}"
        f" +/- {_format_amount(price.conf, price.expo)}"
    )

    age = int(time.time()) - price.publish_time
    print(f"\nAge:          {age} seconds")
    if age > STALE_PRICE_AGE:
        print("Warning: Price data is stale (>5 minutes old)")
    else:
        print("Price data is fresh")


async def status_command(ctx: CommandContext) -> None:
    """Initialize the relayer and print its status."""
    print("Contract Status...\n")
    relayer = ctx.create_relayer()
    await relayer.initialize()
    status = relayer.status()

    print("Client Status:")
    print(SEPARATOR)
    print(f"Address:          {status.address or '-'}")
    print(f"Contract:         {status.contract_address}")
    print(f"Price Feed ID:    {status.price_feed_id}")
    print(f"Running:          {'yes' if status.is_running else 'no'}")
    print(f"RPC Endpoint:     {ctx.config.rpc_endpoint}")
    print(f"Hermes Endpoint:  {ctx.config.hermes_endpoint}")


async def daemon_command(ctx: CommandContext) -> None:
    """Run the relayer and the health server until cancelled."""
    print("Starting daemon mode...\n")
    cancellation = ctx.cancellation
    relayer = ctx.create_relayer()
    server = HealthServer(relayer.status, ctx.config.healthcheck_port)

    try:
        await relayer.start(cancellation)
        if cancellation.cancelled:
            return
        await server.start()
        print("Daemon started. Press Ctrl+C to stop.\n")
        await cancellation.wait()
        print("\n\nShutting down daemon...")
    finally:
        relayer.stop()
        await relayer.wait_stopped()
        if server.listening:
            print("\nStopping health check server...")
            await server.stop()


async def admin_refresh_params(ctx: CommandContext) -> None:
    """Refresh the oracle parameters cached by the contract."""
    print("Refreshing oracle parameters...\n")
    ledger = await ctx.connect_ledger()
    tx_hash = await asyncio.to_thread(ledger.refresh_oracle_params)
    print("Oracle parameters refreshed successfully!")
    print(f"TX: {tx_hash}")


async def admin_update_fee(ctx: CommandContext, new_fee: str) -> None:
    """Update the price update fee.

    :param new_fee: New fee in wei, as integer string.
    """
    validate_fee_amount(new_fee)
    print(f"Updating fee to {new_fee}...\n")
    ledger = await ctx.connect_ledger()
    tx_hash = await asyncio.to_thread(ledger.update_fee, new_fee)
    print("Fee updated successfully!")
    print(f"TX: {tx_hash}")


async def admin_transfer(ctx: CommandContext, new_admin: str) -> None:
    """Transfer admin rights to a new address.

    :param new_admin: New admin address.
    """
    address = validate_address(new_admin, "admin address")
    print(f"Transferring admin to {address}...\n")
    ledger = await ctx.connect_ledger()
    tx_hash = await asyncio.to_thread(ledger.transfer_admin, address)
    print("Admin transferred successfully!")
    print(f"TX: {tx_hash}")
