"""
Pyth Price Relayer - Hermes to On-Chain Relay Module

This module relays Pyth price updates to an on-chain price relay contract:
- PriceRelayer: Lifecycle controller and self-rescheduling update loop
- UpdateCycle: Single fetch -> decide -> submit iteration
- DecisionEngine: Deviation tolerance decision
- HermesClient: Pyth Hermes API quote source
- LedgerClient: Relay contract reads and writes
- HealthServer: Health and metrics HTTP endpoints
"""

from .Cancellation import CancellationToken
from .config import RelayerConfig, WalletSecret, parse_config
from .CycleOutcome import CycleOutcome, Failed, SkippedStale, SkippedWithinTolerance, Submitted
from .DecisionEngine import SubmitDecision, decide
from .DeviationTolerance import DeviationTolerance, ToleranceKind
from .HealthServer import HealthServer
from .HermesClient import HERMES_API, HermesClient, HermesError, HermesHTTPError
from .LedgerClient import LedgerClient
from .PriceQuote import OnChainPrice, PriceQuote
from .PriceRelayer import PriceRelayer, RunState, StatusSnapshot
from .UpdateCycle import UpdateCycle

__all__ = [
    "CancellationToken",
    "CycleOutcome",
    "DeviationTolerance",
    "Failed",
    "HERMES_API",
    "HealthServer",
    "HermesClient",
    "HermesError",
    "HermesHTTPError",
    "LedgerClient",
    "OnChainPrice",
    "PriceQuote",
    "PriceRelayer",
    "RelayerConfig",
    "RunState",
    "SkippedStale",
    "SkippedWithinTolerance",
    "StatusSnapshot",
    "Submitted",
    "SubmitDecision",
    "ToleranceKind",
    "UpdateCycle",
    "WalletSecret",
    "decide",
    "parse_config",
]
