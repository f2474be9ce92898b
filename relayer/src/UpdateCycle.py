"""UpdateCycle: One fetch -> decide -> submit iteration.

Flow:
    1. Fetch the latest quote and VAA from the quote source
    2. Read the price currently committed on-chain
    3. Ask the decision engine; skips return without touching the write path
    4. Read the contract config for the current update fee
    5. Submit the VAA with the fee attached

Every collaborator failure is turned into a :class:`Failed` outcome with a
sanitized message, so nothing but task cancellation escapes a cycle.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from .CycleOutcome import CycleOutcome, Failed, SkippedStale, SkippedWithinTolerance, Submitted
from .DecisionEngine import decide
from .DeviationTolerance import DeviationTolerance, ToleranceKind
from .errors import sanitize_error_message

if TYPE_CHECKING:
    from .HermesClient import HermesClient
    from .LedgerClient import LedgerClient

logger = logging.getLogger(__name__)


class UpdateCycle:
    """Executes single update cycles for one price feed.

    :ivar quote_source: Source of price quotes (Hermes).
    :ivar ledger: Relay contract client.
    :ivar tolerance: Deviation tolerance policy.
    :ivar feed_id: Price feed identifier, resolved during initialization.
    """

    def __init__(
        self,
        quote_source: HermesClient,
        ledger: LedgerClient,
        tolerance: DeviationTolerance | None = None,
        feed_id: str | None = None,
    ) -> None:
        """Initialize the executor.

        :param quote_source: Quote source exposing ``fetch_latest(feed_id)``.
        :param ledger: Ledger client exposing ``query_price``, ``query_config``
            and ``submit_price_update``.
        :param tolerance: Deviation tolerance (default: absolute zero).
        :param feed_id: Price feed identifier.
        """
        self.quote_source = quote_source
        self.ledger = ledger
        self.tolerance = tolerance or DeviationTolerance.default()
        self.feed_id = feed_id

    async def run_cycle(self) -> CycleOutcome:
        """Run one update cycle.

        :returns: The cycle outcome; never raises except on cancellation.
        """
        try:
            return await self._run()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            message = sanitize_error_message(e, "Failed to update price")
            logger.debug("Update cycle failed", exc_info=True)
            return Failed(message)

    async def _run(self) -> CycleOutcome:
        """Run the cycle steps; collaborator errors propagate to run_cycle."""
        if not self.feed_id:
            raise RuntimeError("Price feed ID not loaded")

        quote = await self.quote_source.fetch_latest(self.feed_id)
        current = await asyncio.to_thread(self.ledger.query_price)

        decision = decide(quote, current, self.tolerance)

        if isinstance(decision, SkippedStale):
            logger.info(
                f"Price already up to date (publish_time: {current.publish_time})"
            )
            return decision

        if isinstance(decision, SkippedWithinTolerance):
            unit = "%" if self.tolerance.kind is ToleranceKind.PERCENTAGE else ""
            logger.info(
                f"Price deviation {decision.observed_deviation}{unit} within tolerance "
                f"{self.tolerance}, skipping update"
            )
            return decision

        config = await asyncio.to_thread(self.ledger.query_config)

        logger.info("Submitting VAA to price relay contract...")
        logger.info(f"  Pyth contract: {config.pyth_contract}")
        tx_ref = await asyncio.to_thread(
            self.ledger.submit_price_update, quote, config.update_fee
        )

        logger.info(f"Price updated successfully! TX: {tx_ref}")
        logger.info(f"  New price: {quote.price} (expo: {quote.expo})")
        return Submitted(tx_ref)
