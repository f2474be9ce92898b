"""DeviationTolerance: Threshold below which a newer price is not written.

A tolerance is either absolute (quote-currency units, after the exponent is
applied) or a percentage of the current on-chain price. The configuration
string form is ``"0.5"`` for absolute and ``"2.5%"`` for percentage.

.. code-block:: python

    >>> DeviationTolerance.from_string("2.5%")
    DeviationTolerance(kind=<ToleranceKind.PERCENTAGE: 'percentage'>, value=Decimal('2.5'))
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from enum import Enum


class ToleranceKind(str, Enum):
    """Kind of deviation tolerance."""

    ABSOLUTE = "absolute"
    PERCENTAGE = "percentage"


@dataclass(frozen=True)
class DeviationTolerance:
    """Deviation tolerance policy.

    :ivar kind: Absolute or percentage.
    :ivar value: Non-negative threshold; at most 100 for percentages.
    """

    kind: ToleranceKind
    value: Decimal

    def __post_init__(self) -> None:
        """Validate the threshold range."""
        if not isinstance(self.value, Decimal):
            object.__setattr__(self, "value", Decimal(str(self.value)))
        if not self.value.is_finite() or self.value < 0:
            raise ValueError("Deviation tolerance must be a non-negative number")
        if self.kind is ToleranceKind.PERCENTAGE and self.value > 100:
            raise ValueError("Percentage deviation tolerance must be between 0 and 100")

    @classmethod
    def absolute(cls, value: Decimal | str | int) -> DeviationTolerance:
        """Create an absolute tolerance."""
        return cls(ToleranceKind.ABSOLUTE, Decimal(str(value)))

    @classmethod
    def percentage(cls, value: Decimal | str | int) -> DeviationTolerance:
        """Create a percentage tolerance."""
        return cls(ToleranceKind.PERCENTAGE, Decimal(str(value)))

    @classmethod
    def default(cls) -> DeviationTolerance:
        """Absolute zero: submit on any strictly newer publish time."""
        return cls.absolute(0)

    @classmethod
    def from_string(cls, text: str) -> DeviationTolerance:
        """Parse ``"<n>"`` (absolute) or ``"<n>%"`` (percentage).

        :param text: Tolerance string.
        :returns: Parsed tolerance.
        :raises ValueError: If the format or range is invalid.
        """
        raw = text.strip()
        kind = ToleranceKind.ABSOLUTE
        if raw.endswith("%"):
            kind = ToleranceKind.PERCENTAGE
            raw = raw[:-1].strip()

        try:
            value = Decimal(raw)
        except InvalidOperation:
            raise ValueError(f"Invalid deviation tolerance {text!r}") from None

        return cls(kind, value)

    def __str__(self) -> str:
        """Return the configuration string form."""
        if self.kind is ToleranceKind.PERCENTAGE:
            return f"{self.value}%"
        return str(self.value)
