"""Relayer configuration loaded from environment variables.

Environment variables:
    CONTRACT_ADDRESS            Relay contract address (required)
    WALLET_SECRET               "mnemonic:<words>" or "privateKey:<hex>"
    NETWORK                     sapphire, sapphire-testnet, sapphire-localnet or an RPC URL
    RPC_URL                     Overrides the network's RPC URL
    HERMES_ENDPOINT             Hermes API base URL
    UPDATE_INTERVAL_MS          Milliseconds between update cycles
    PRICE_DEVIATION_TOLERANCE   "<n>" (absolute) or "<n>%" (percentage)
    HEALTHCHECK_PORT            Port of the health check server
    FETCH_TIMEOUT               Hermes request timeout in seconds
    NODE_ENV / RELAYER_ENV      "development" allows http and private endpoints

.. code-block:: python

    >>> config = parse_config({"CONTRACT_ADDRESS": "0x5FbDB2315678afecb367f032d93F642f64180aa3"})
    >>> config.update_interval_ms
    300000
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Literal

from .ContractUtility import NETWORKS
from .DeviationTolerance import DeviationTolerance
from .errors import ConfigError
from .HermesClient import HERMES_API
from .validation import (
    parse_positive_int,
    validate_address,
    validate_endpoint_url,
    validate_mnemonic_format,
    validate_private_key,
)

DEFAULT_NETWORK = "sapphire-testnet"

# Price feed update interval (5 minutes)
DEFAULT_UPDATE_INTERVAL_MS = 5 * 60 * 1000

DEFAULT_HEALTHCHECK_PORT = 3000
DEFAULT_FETCH_TIMEOUT = 10.0

WalletSecretType = Literal["mnemonic", "privateKey"]


@dataclass(frozen=True)
class WalletSecret:
    """Signing secret. Its value never shows up in repr or logs.

    :ivar type: "mnemonic" or "privateKey".
    :ivar value: Mnemonic phrase or hex private key.
    """

    type: WalletSecretType
    value: str = field(repr=False)

    def __repr__(self) -> str:
        """Return a masked representation."""
        return f"WalletSecret(type={self.type!r}, value='***')"

    @classmethod
    def from_string(cls, text: str) -> WalletSecret:
        """Parse ``"mnemonic:<words>"`` or ``"privateKey:<hex>"``.

        :param text: Raw secret string.
        :returns: Parsed secret.
        :raises ValueError: If the prefix or the secret format is invalid.
        """
        kind, sep, value = text.partition(":")
        if not sep:
            raise ValueError('expected "mnemonic:<words>" or "privateKey:<hex>"')
        if kind == "mnemonic":
            validate_mnemonic_format(value)
            return cls("mnemonic", value)
        if kind == "privateKey":
            validate_private_key(value)
            return cls("privateKey", value)
        raise ValueError('expected "mnemonic:<words>" or "privateKey:<hex>"')


@dataclass(frozen=True)
class RelayerConfig:
    """Validated relayer configuration.

    :ivar contract_address: Checksummed relay contract address.
    :ivar wallet_secret: Signing secret, or None for read-only commands.
    :ivar network: Network name or RPC URL.
    :ivar rpc_url: Explicit RPC URL, or None for the network default.
    :ivar hermes_endpoint: Hermes API base URL.
    :ivar update_interval_ms: Milliseconds between the end of a cycle and the
        start of the next.
    :ivar price_deviation_tolerance: Deviation tolerance policy.
    :ivar healthcheck_port: Health check server port.
    :ivar fetch_timeout: Hermes request timeout in seconds.
    :ivar allow_insecure_endpoints: Development mode endpoint rules.
    """

    contract_address: str
    wallet_secret: WalletSecret | None = None
    network: str = DEFAULT_NETWORK
    rpc_url: str | None = None
    hermes_endpoint: str = HERMES_API
    update_interval_ms: int = DEFAULT_UPDATE_INTERVAL_MS
    price_deviation_tolerance: DeviationTolerance = field(
        default_factory=DeviationTolerance.default
    )
    healthcheck_port: int = DEFAULT_HEALTHCHECK_PORT
    fetch_timeout: float = DEFAULT_FETCH_TIMEOUT
    allow_insecure_endpoints: bool = False

    @property
    def rpc_endpoint(self) -> str:
        """Return the effective RPC endpoint."""
        return self.rpc_url or NETWORKS.get(self.network, self.network)


def parse_config(env: Mapping[str, str], require_wallet: bool = True) -> RelayerConfig:
    """Build and validate the configuration from environment variables.

    :param env: Environment mapping (usually ``os.environ``).
    :param require_wallet: Whether WALLET_SECRET must be present.
    :returns: Validated configuration.
    :raises ConfigError: Naming the offending variable.
    """
    mode = env.get("RELAYER_ENV") or env.get("NODE_ENV") or "production"
    allow_insecure = mode == "development"

    contract = env.get("CONTRACT_ADDRESS")
    if not contract:
        raise ConfigError("CONTRACT_ADDRESS environment variable is required")
    try:
        contract_address = validate_address(contract, "CONTRACT_ADDRESS")
    except ValueError as e:
        raise ConfigError(str(e)) from None

    wallet_secret: WalletSecret | None = None
    raw_secret = env.get("WALLET_SECRET")
    if raw_secret:
        try:
            wallet_secret = WalletSecret.from_string(raw_secret)
        except ValueError as e:
            raise ConfigError(f"Invalid WALLET_SECRET: {e}") from None
    elif require_wallet:
        raise ConfigError("WALLET_SECRET environment variable is required")

    network = env.get("NETWORK") or DEFAULT_NETWORK
    rpc_url = env.get("RPC_URL") or None
    # Named networks carry their own RPC URL; sapphire-localnet is plain http
    rpc_to_check = rpc_url or (None if network in NETWORKS else network)
    if rpc_to_check:
        try:
            validate_endpoint_url(rpc_to_check, "RPC endpoint", allow_insecure)
        except ValueError as e:
            raise ConfigError(f"{e} (RPC_URL/NETWORK)") from None

    hermes_endpoint = env.get("HERMES_ENDPOINT") or HERMES_API
    try:
        validate_endpoint_url(hermes_endpoint, "Hermes endpoint", allow_insecure)
    except ValueError as e:
        raise ConfigError(f"{e} (HERMES_ENDPOINT)") from None

    try:
        update_interval_ms = parse_positive_int(
            env.get("UPDATE_INTERVAL_MS"), "UPDATE_INTERVAL_MS"
        )
        healthcheck_port = parse_positive_int(
            env.get("HEALTHCHECK_PORT"), "HEALTHCHECK_PORT"
        )
    except ValueError as e:
        raise ConfigError(str(e)) from None
    if healthcheck_port is not None and healthcheck_port > 65535:
        raise ConfigError("Invalid HEALTHCHECK_PORT: must be at most 65535")

    tolerance = DeviationTolerance.default()
    raw_tolerance = env.get("PRICE_DEVIATION_TOLERANCE")
    if raw_tolerance:
        try:
            tolerance = DeviationTolerance.from_string(raw_tolerance)
        except ValueError as e:
            raise ConfigError(f"Invalid PRICE_DEVIATION_TOLERANCE: {e}") from None

    fetch_timeout = DEFAULT_FETCH_TIMEOUT
    raw_timeout = env.get("FETCH_TIMEOUT")
    if raw_timeout:
        try:
            fetch_timeout = float(raw_timeout)
        except ValueError:
            raise ConfigError("Invalid FETCH_TIMEOUT: must be a number") from None
        if not math.isfinite(fetch_timeout) or fetch_timeout <= 0:
            raise ConfigError("Invalid FETCH_TIMEOUT: must be positive")

    return RelayerConfig(
        contract_address=contract_address,
        wallet_secret=wallet_secret,
        network=network,
        rpc_url=rpc_url,
        hermes_endpoint=hermes_endpoint,
        update_interval_ms=update_interval_ms or DEFAULT_UPDATE_INTERVAL_MS,
        price_deviation_tolerance=tolerance,
        healthcheck_port=healthcheck_port or DEFAULT_HEALTHCHECK_PORT,
        fetch_timeout=fetch_timeout,
        allow_insecure_endpoints=allow_insecure,
    )
