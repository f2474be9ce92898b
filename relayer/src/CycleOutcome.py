"""CycleOutcome: Result of one fetch-decide-submit cycle.

Exactly one outcome is produced per cycle. Outcomes are logged and counted,
never persisted.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import ClassVar, Union


@dataclass(frozen=True)
class Submitted:
    """The price update transaction was accepted.

    :ivar tx_ref: Transaction hash.
    """

    tx_ref: str
    label: ClassVar[str] = "submitted"


@dataclass(frozen=True)
class SkippedStale:
    """The fetched quote is not newer than the on-chain price."""

    label: ClassVar[str] = "skipped_stale"


@dataclass(frozen=True)
class SkippedWithinTolerance:
    """The fetched quote moved less than the configured tolerance.

    :ivar observed_deviation: Absolute deviation in quote-currency units, or
        percent for percentage tolerances.
    """

    observed_deviation: Decimal
    label: ClassVar[str] = "skipped_within_tolerance"


@dataclass(frozen=True)
class Failed:
    """A collaborator failed; the message is already sanitized.

    :ivar error: Sanitized error message.
    """

    error: str
    label: ClassVar[str] = "failed"


CycleOutcome = Union[Submitted, SkippedStale, SkippedWithinTolerance, Failed]
