"""DecisionEngine: Decide whether a fetched quote is worth an on-chain write.

Algorithm:
    1. Skip as stale unless the quote's publish time is strictly newer
    2. Align both mantissas to the smaller exponent (``mantissa * 10**expo``)
    3. Absolute tolerance: skip iff ``|new - current| <= value``
    4. Percentage tolerance: skip iff ``|new - current| / current <= value / 100``;
       a zero on-chain price makes the deviation unbounded, so it always submits
    5. Otherwise submit

Comparisons run on integers: both mantissas are aligned to the finer exponent
and the tolerance is taken as an exact fraction, so arbitrarily long prices
never round and boundaries are inclusive.

.. code-block:: python

    >>> current = OnChainPrice(price="10050", conf="0", expo=-2, publish_time=1000)
    >>> quote = PriceQuote(price="10000", conf="0", expo=-2, publish_time=2000)
    >>> decide(quote, current, DeviationTolerance.absolute("1.0"))
    SkippedWithinTolerance(observed_deviation=Decimal('0.50'))
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Union

from .CycleOutcome import SkippedStale, SkippedWithinTolerance
from .DeviationTolerance import DeviationTolerance, ToleranceKind
from .errors import UnknownToleranceKindError
from .PriceQuote import OnChainPrice, PriceQuote, normalize_price


@dataclass(frozen=True)
class SubmitDecision:
    """The quote should be submitted.

    :ivar observed_deviation: Deviation that exceeded the tolerance, or None
        when it is unbounded (zero baseline under a percentage tolerance).
    """

    observed_deviation: Decimal | None


Decision = Union[SubmitDecision, SkippedStale, SkippedWithinTolerance]


def decide(
    new_quote: PriceQuote,
    current: OnChainPrice,
    tolerance: DeviationTolerance,
) -> Decision:
    """Decide between submitting and skipping a freshly fetched quote.

    :param new_quote: Quote fetched from the price API.
    :param current: Price currently committed on-chain.
    :param tolerance: Deviation tolerance policy.
    :returns: SubmitDecision, SkippedStale or SkippedWithinTolerance.
    :raises UnknownToleranceKindError: If the tolerance kind is not supported.
    """
    if new_quote.publish_time <= current.publish_time:
        return SkippedStale()

    # Align both mantissas to the finer exponent so the difference is an integer
    expo = min(new_quote.expo, current.expo)
    new_scaled = int(new_quote.price) * 10 ** (new_quote.expo - expo)
    current_scaled = int(current.price) * 10 ** (current.expo - expo)
    diff = abs(new_scaled - current_scaled)
    deviation = normalize_price(diff, expo)
    tolerance_num, tolerance_den = tolerance.value.as_integer_ratio()

    if tolerance.kind is ToleranceKind.ABSOLUTE:
        # diff * 10**expo <= tolerance_num / tolerance_den
        if expo >= 0:
            within = diff * 10**expo * tolerance_den <= tolerance_num
        else:
            within = diff * tolerance_den <= tolerance_num * 10 ** (-expo)
        if within:
            return SkippedWithinTolerance(deviation)
        return SubmitDecision(deviation)

    if tolerance.kind is ToleranceKind.PERCENTAGE:
        if current_scaled == 0:
            return SubmitDecision(None)
        deviation_percent = Decimal(diff * 100) / Decimal(current_scaled)
        if diff * 100 * tolerance_den <= tolerance_num * current_scaled:
            return SkippedWithinTolerance(deviation_percent)
        return SubmitDecision(deviation_percent)

    raise UnknownToleranceKindError(f"Unknown deviation tolerance kind: {tolerance.kind!r}")
