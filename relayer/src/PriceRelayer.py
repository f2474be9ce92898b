"""PriceRelayer: Lifecycle controller and scheduler for price relaying.

Architecture:
    - ``start`` is single-flight: the run state flips to RUNNING before the
      first suspension point, so concurrent callers see RUNNING and return
    - Initialization connects to the ledger and resolves the price feed ID;
      failure resets the state to STOPPED and propagates
    - The initial cycle runs as part of ``start``
    - Later cycles run from a background loop that waits ``update_interval_ms``
      after each cycle *completes*, so slow cycles never overlap
    - A cancellation token stops the loop; an in-flight cycle runs to
      completion but no further cycle begins
    - Every cycle (initial, scheduled or ``update_once``) holds the cycle
      lock, so at most one cycle executes at any instant, across restarts
    - Per-cycle failures are logged and counted, never fatal
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable

from .CycleOutcome import CycleOutcome, Failed, SkippedWithinTolerance, Submitted
from .errors import InitializationError, sanitize_error
from .metrics import record_outcome
from .UpdateCycle import UpdateCycle

if TYPE_CHECKING:
    from .Cancellation import CancellationToken
    from .DeviationTolerance import DeviationTolerance
    from .HermesClient import HermesClient
    from .LedgerClient import LedgerClient

logger = logging.getLogger(__name__)


class RunState(Enum):
    """Scheduler run state."""

    STOPPED = "stopped"
    RUNNING = "running"


@dataclass(frozen=True)
class StatusSnapshot:
    """Read-only status view for the health probe.

    Only operational fields exist here; signing material, gas settings and
    endpoints have no place in this type.
    """

    is_running: bool
    contract_address: str
    address: str | None = None
    price_feed_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON form; absent optional fields are omitted."""
        payload: dict[str, Any] = {"isRunning": self.is_running}
        if self.address is not None:
            payload["address"] = self.address
        if self.price_feed_id is not None:
            payload["priceFeedId"] = self.price_feed_id
        payload["contractAddress"] = self.contract_address
        return payload


class PriceRelayer:
    """Relays Pyth prices to the relay contract on a self-rescheduling loop.

    :ivar quote_source: Quote source (Hermes).
    :ivar ledger: Relay contract client.
    :ivar contract_address: Relay contract address (for status).
    :ivar update_interval_ms: Delay between the end of one cycle and the
        start of the next.
    :ivar executor: Update cycle executor.
    """

    def __init__(
        self,
        quote_source: HermesClient,
        ledger: LedgerClient,
        contract_address: str,
        update_interval_ms: int,
        tolerance: DeviationTolerance | None = None,
    ) -> None:
        """Initialize the relayer.

        :param quote_source: Quote source exposing ``fetch_latest(feed_id)``.
        :param ledger: Ledger client.
        :param contract_address: Relay contract address.
        :param update_interval_ms: Interval in milliseconds (must be positive).
        :param tolerance: Deviation tolerance (default: absolute zero).
        :raises ValueError: If the interval is not positive.
        """
        if update_interval_ms <= 0:
            raise ValueError("Invalid update interval: must be a positive number")

        self.quote_source = quote_source
        self.ledger = ledger
        self.contract_address = contract_address
        self.update_interval_ms = update_interval_ms
        self.executor = UpdateCycle(quote_source, ledger, tolerance)

        self._state = RunState.STOPPED
        self._initialized = False
        self._sender_address: str | None = None
        self._price_feed_id: str | None = None
        self._cancellation: CancellationToken | None = None
        self._loop_task: asyncio.Task[None] | None = None
        self._cycle_lock = asyncio.Lock()
        self._cycle_task: asyncio.Task[Any] | None = None
        self._run_id = 0

    @property
    def state(self) -> RunState:
        """Return the current run state."""
        return self._state

    @property
    def is_running(self) -> bool:
        """Check whether the relayer is running."""
        return self._state is RunState.RUNNING

    async def initialize(self) -> None:
        """Connect to the ledger and resolve the price feed ID.

        Runs once; later calls return immediately.

        :raises InitializationError: If the ledger is unreachable or the feed
            ID cannot be resolved.
        """
        if self._initialized:
            return

        logger.info("Initializing price relayer...")
        try:
            await asyncio.to_thread(self.ledger.connect)
            config = await asyncio.to_thread(self.ledger.query_config)
        except InitializationError:
            raise
        except Exception as e:
            raise InitializationError(
                f"Failed to initialize price relayer: {sanitize_error(e)}"
            ) from e

        if not config.price_feed_id or int(config.price_feed_id, 16) == 0:
            raise InitializationError("Relay contract has no price feed ID configured")

        self._sender_address = self.ledger.sender_address
        self._price_feed_id = config.price_feed_id
        self.executor.feed_id = config.price_feed_id
        self._initialized = True

        logger.info(f"Using Pyth Price Feed ID: {self._price_feed_id}")
        logger.info(f"Update fee: {config.update_fee} wei")
        logger.info("Price relayer initialized successfully")

    async def start(self, cancellation: CancellationToken) -> None:
        """Start relaying prices until the cancellation token fires.

        Returns after initialization and the initial cycle; later cycles
        run in the background.

        :param cancellation: Token whose firing stops the relayer.
        :raises InitializationError: If initialization fails; the relayer
            is left stopped.
        """
        if self._state is RunState.RUNNING:
            logger.info("Price relayer is already running")
            return

        if cancellation.cancelled:
            logger.info("Cancellation already requested, not starting")
            return

        # No await before this point: concurrent callers observe RUNNING.
        self._state = RunState.RUNNING
        self._run_id += 1
        run_id = self._run_id
        self._cancellation = cancellation
        cancellation.add_callback(self.stop)

        try:
            await self.initialize()
            # A loop or cycle left over from a previous run must finish first.
            await self.wait_stopped()
        except BaseException:
            if self._run_id == run_id:
                self._reset_run(cancellation)
            raise

        if not self._is_current_run(run_id, cancellation):
            logger.info("Cancelled during initialization, not starting updates")
            return

        logger.info(
            f"Starting automatic updates every {self.update_interval_ms / 1000}s"
        )

        await self._execute_cycle(lambda: self._is_current_run(run_id, cancellation))

        if self._is_current_run(run_id, cancellation):
            self._loop_task = asyncio.create_task(
                self._reschedule_loop(run_id, cancellation), name="price-relayer-loop"
            )

    def stop(self) -> None:
        """Stop automatic updates. Idempotent and synchronous.

        The pending timer is abandoned; a cycle already in flight finishes
        but no further cycle begins.
        """
        if self._state is RunState.STOPPED:
            return

        self._state = RunState.STOPPED
        if self._cancellation is not None:
            self._cancellation.remove_callback(self.stop)
            self._cancellation = None

        task = self._loop_task
        if task is not None and not task.done() and self._cycle_task is not task:
            task.cancel()
        logger.info("Price relayer stopped")

    async def wait_stopped(self) -> None:
        """Wait for the background loop and any in-flight cycle to finish."""
        task = self._loop_task
        if task is not None and task is not asyncio.current_task():
            try:
                await task
            except asyncio.CancelledError:
                if not task.cancelled():
                    raise
            finally:
                if self._loop_task is task:
                    self._loop_task = None

        if self._cycle_task is not None and self._cycle_task is not asyncio.current_task():
            async with self._cycle_lock:
                pass

    def status(self) -> StatusSnapshot:
        """Return the current status. Never blocks and never fails."""
        return StatusSnapshot(
            is_running=self._state is RunState.RUNNING,
            address=self._sender_address,
            price_feed_id=self._price_feed_id,
            contract_address=self.contract_address,
        )

    async def update_once(self) -> CycleOutcome:
        """Initialize if needed and run a single cycle outside the loop.

        Waits for a cycle already in flight (for example a scheduled one)
        before running.

        :returns: The cycle outcome.
        :raises InitializationError: If initialization fails.
        """
        await self.initialize()
        return await self._execute_cycle()

    def _is_current_run(self, run_id: int, cancellation: CancellationToken) -> bool:
        """Check that the run started with ``run_id`` is still active."""
        return (
            self._state is RunState.RUNNING
            and self._run_id == run_id
            and not cancellation.cancelled
        )

    def _reset_run(self, cancellation: CancellationToken) -> None:
        """Mark the current run stopped without touching the loop task."""
        self._state = RunState.STOPPED
        cancellation.remove_callback(self.stop)
        self._cancellation = None

    async def _reschedule_loop(self, run_id: int, cancellation: CancellationToken) -> None:
        """Wait the interval after each cycle, then run the next one."""
        interval = self.update_interval_ms / 1000
        try:
            while self._is_current_run(run_id, cancellation):
                if await cancellation.sleep(interval):
                    break
                await self._execute_cycle(lambda: self._is_current_run(run_id, cancellation))
        except Exception:
            logger.exception("Update loop terminated unexpectedly")
        finally:
            # Only an unexpected exit leaves the current run marked RUNNING
            if self._run_id == run_id and self._state is RunState.RUNNING:
                self._reset_run(cancellation)
                logger.error("Price relayer stopped after update loop failure")

    async def _execute_cycle(
        self, should_run: Callable[[], bool] | None = None
    ) -> CycleOutcome | None:
        """Run one cycle under the cycle lock, then log and count its outcome.

        :param should_run: Checked once the lock is held; the cycle is
            abandoned if it returns False.
        :returns: The outcome, or None if the cycle was abandoned.
        """
        async with self._cycle_lock:
            if should_run is not None and not should_run():
                return None
            self._cycle_task = asyncio.current_task()
            try:
                outcome = await self.executor.run_cycle()
            finally:
                self._cycle_task = None

        record_outcome(outcome.label)
        if isinstance(outcome, Failed):
            logger.error(f"Error in scheduled update: {outcome.error}")
        elif isinstance(outcome, Submitted):
            logger.info(f"Cycle finished: submitted {outcome.tx_ref}")
        elif isinstance(outcome, SkippedWithinTolerance):
            logger.debug("Cycle finished: skipped within tolerance")
        else:
            logger.debug("Cycle finished: skipped stale price")
        return outcome
