"""PriceQuote: Price observations and relay contract views.

Prices travel as Pyth encodes them: an unsigned integer mantissa kept as a
decimal string, a signed decimal exponent and a publish timestamp in seconds.
The human value is ``mantissa * 10**expo``; :func:`normalize_price` computes
it exactly with :class:`~decimal.Decimal`.

.. code-block:: python

    >>> quote = PriceQuote(price="10000", conf="5", expo=-2, publish_time=2000)
    >>> quote.value
    Decimal('100.00')
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal


def parse_uint_string(value: str | int, field_name: str) -> str:
    """Validate an unsigned integer encoded as a decimal string.

    :param value: Raw value (contract reads return ints, Hermes returns strings).
    :param field_name: Field name used in error messages.
    :returns: Canonical decimal string.
    :raises ValueError: If the value is not a non-negative integer.
    """
    text = str(value).strip()
    if not text.isdigit():
        raise ValueError(f"Invalid {field_name}: {text!r} is not an unsigned integer")
    return str(int(text))


def normalize_price(price: str | int, expo: int) -> Decimal:
    """Scale a price mantissa by its decimal exponent.

    :param price: Unsigned integer mantissa (decimal string or int).
    :param expo: Signed decimal exponent.
    :returns: Exact value ``price * 10**expo``.
    :raises ValueError: If the mantissa is not a decimal integer.
    """
    try:
        mantissa = int(price)
    except (TypeError, ValueError):
        raise ValueError(f"Invalid price mantissa: {price!r}") from None
    # String construction is exact; scaleb would round to the context precision
    return Decimal(f"{mantissa}E{int(expo)}")


@dataclass(frozen=True)
class PriceQuote:
    """A single price observation fetched from the price API.

    :ivar price: Price mantissa as decimal string.
    :ivar conf: Confidence interval mantissa as decimal string.
    :ivar expo: Decimal exponent shared by price and conf.
    :ivar publish_time: Publish time in seconds since epoch.
    :ivar feed_id: Hex price feed identifier the quote belongs to.
    :ivar update_data: Signed update payload (VAA) submitted on-chain.
    """

    price: str
    conf: str
    expo: int
    publish_time: int
    feed_id: str = ""
    update_data: bytes = field(default=b"", repr=False)

    def __post_init__(self) -> None:
        """Canonicalize and validate the integer fields."""
        object.__setattr__(self, "price", parse_uint_string(self.price, "price"))
        object.__setattr__(self, "conf", parse_uint_string(self.conf, "conf"))
        object.__setattr__(self, "expo", int(self.expo))
        object.__setattr__(self, "publish_time", int(self.publish_time))

    @property
    def value(self) -> Decimal:
        """Return the normalized price."""
        return normalize_price(self.price, self.expo)


@dataclass(frozen=True)
class OnChainPrice:
    """The price last committed to the relay contract.

    :ivar price: Price mantissa as decimal string.
    :ivar conf: Confidence mantissa as decimal string.
    :ivar expo: Decimal exponent.
    :ivar publish_time: Publish time of the committed observation.
    """

    price: str
    conf: str
    expo: int
    publish_time: int

    def __post_init__(self) -> None:
        """Canonicalize and validate the integer fields."""
        object.__setattr__(self, "price", parse_uint_string(self.price, "price"))
        object.__setattr__(self, "conf", parse_uint_string(self.conf, "conf"))
        object.__setattr__(self, "expo", int(self.expo))
        object.__setattr__(self, "publish_time", int(self.publish_time))

    @property
    def value(self) -> Decimal:
        """Return the normalized price."""
        return normalize_price(self.price, self.expo)


@dataclass(frozen=True)
class PriceFeed(OnChainPrice):
    """Price feed with metadata as stored by the relay contract.

    :ivar symbol: Feed symbol (e.g., "AKT/USD").
    :ivar prev_publish_time: Publish time of the previous observation.
    """

    symbol: str = ""
    prev_publish_time: int = 0


@dataclass(frozen=True)
class ContractConfig:
    """Relay contract configuration.

    :ivar admin: Admin address.
    :ivar pyth_contract: Address of the Pyth contract verifying updates.
    :ivar update_fee: Fee in wei attached to each price update.
    :ivar price_feed_id: Hex price feed identifier (``0x`` prefixed).
    """

    admin: str
    pyth_contract: str
    update_fee: int
    price_feed_id: str


@dataclass(frozen=True)
class OracleParams:
    """Oracle parameters cached by the relay contract."""

    max_price_deviation_bps: int
    min_price_sources: int
    max_price_staleness_blocks: int
    twap_window: int
    last_updated_height: int
