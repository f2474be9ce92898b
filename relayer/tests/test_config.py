"""Unit tests for configuration parsing."""

from decimal import Decimal

import pytest

from relayer.src.config import (
    DEFAULT_HEALTHCHECK_PORT,
    DEFAULT_NETWORK,
    DEFAULT_UPDATE_INTERVAL_MS,
    WalletSecret,
    parse_config,
)
from relayer.src.DeviationTolerance import ToleranceKind
from relayer.src.errors import ConfigError
from relayer.src.HermesClient import HERMES_API

CONTRACT = "0x5FbDB2315678afecb367f032d93F642f64180aa3"
MNEMONIC = " ".join(["test"] * 11 + ["junk"])
PRIVATE_KEY = "ac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80"


def make_env(**overrides: str) -> dict[str, str]:
    """Create a minimal valid environment."""
    env = {
        "CONTRACT_ADDRESS": CONTRACT,
        "WALLET_SECRET": f"mnemonic:{MNEMONIC}",
    }
    env.update(overrides)
    return env


class TestParseConfigDefaults:
    """Test defaults of a minimal configuration."""

    def test_defaults(self) -> None:
        """Unset variables fall back to defaults."""
        config = parse_config(make_env())

        assert config.contract_address == CONTRACT
        assert config.network == DEFAULT_NETWORK
        assert config.rpc_url is None
        assert config.hermes_endpoint == HERMES_API
        assert config.update_interval_ms == DEFAULT_UPDATE_INTERVAL_MS == 300000
        assert config.healthcheck_port == DEFAULT_HEALTHCHECK_PORT == 3000
        assert config.fetch_timeout == 10.0
        assert config.price_deviation_tolerance.kind is ToleranceKind.ABSOLUTE
        assert config.price_deviation_tolerance.value == 0
        assert config.allow_insecure_endpoints is False

    def test_rpc_endpoint_from_network(self) -> None:
        """Named networks resolve to their RPC URL."""
        config = parse_config(make_env(NETWORK="sapphire"))
        assert config.rpc_endpoint == "https://sapphire.oasis.io"

    def test_rpc_url_override(self) -> None:
        """RPC_URL takes precedence over the network default."""
        config = parse_config(make_env(RPC_URL="https://rpc.example.com"))
        assert config.rpc_endpoint == "https://rpc.example.com"

    def test_lowercase_contract_is_checksummed(self) -> None:
        """Contract addresses are stored checksummed."""
        config = parse_config(make_env(CONTRACT_ADDRESS=CONTRACT.lower()))
        assert config.contract_address == CONTRACT


class TestParseConfigRequired:
    """Test required variables."""

    def test_missing_contract(self) -> None:
        """CONTRACT_ADDRESS is required."""
        env = make_env()
        del env["CONTRACT_ADDRESS"]
        with pytest.raises(ConfigError, match="CONTRACT_ADDRESS environment variable is required"):
            parse_config(env)

    def test_invalid_contract(self) -> None:
        """Malformed contract addresses are rejected."""
        with pytest.raises(ConfigError, match="CONTRACT_ADDRESS"):
            parse_config(make_env(CONTRACT_ADDRESS="0x1234"))

    def test_missing_wallet(self) -> None:
        """WALLET_SECRET is required for signing commands."""
        env = make_env()
        del env["WALLET_SECRET"]
        with pytest.raises(ConfigError, match="WALLET_SECRET environment variable is required"):
            parse_config(env)

    def test_wallet_optional_for_read_only(self) -> None:
        """Read-only commands run without a wallet."""
        env = make_env()
        del env["WALLET_SECRET"]
        config = parse_config(env, require_wallet=False)
        assert config.wallet_secret is None


class TestWalletSecret:
    """Test wallet secret parsing."""

    def test_mnemonic(self) -> None:
        """mnemonic: prefix yields a mnemonic secret."""
        config = parse_config(make_env())
        assert config.wallet_secret == WalletSecret("mnemonic", MNEMONIC)

    def test_private_key(self) -> None:
        """privateKey: prefix yields a private key secret."""
        config = parse_config(make_env(WALLET_SECRET=f"privateKey:{PRIVATE_KEY}"))
        assert config.wallet_secret.type == "privateKey"
        assert config.wallet_secret.value == PRIVATE_KEY

    @pytest.mark.parametrize(
        "secret",
        [MNEMONIC, f"seed:{MNEMONIC}", "mnemonic:too short", "privateKey:1234"],
    )
    def test_invalid(self, secret: str) -> None:
        """Bad prefixes and formats are rejected."""
        with pytest.raises(ConfigError, match="Invalid WALLET_SECRET"):
            parse_config(make_env(WALLET_SECRET=secret))

    def test_repr_masks_value(self) -> None:
        """The secret value never appears in repr."""
        secret = WalletSecret("privateKey", PRIVATE_KEY)
        assert PRIVATE_KEY not in repr(secret)
        assert repr(secret) == "WalletSecret(type='privateKey', value='***')"

    def test_config_repr_masks_value(self) -> None:
        """Config repr does not leak the secret either."""
        config = parse_config(make_env())
        assert MNEMONIC not in repr(config)


class TestEndpoints:
    """Test endpoint validation and development mode."""

    def test_insecure_rpc_rejected(self) -> None:
        """Plain HTTP RPC URLs are rejected in production."""
        with pytest.raises(ConfigError, match="RPC_URL/NETWORK"):
            parse_config(make_env(RPC_URL="http://rpc.example.com"))

    def test_network_url_validated(self) -> None:
        """A raw URL in NETWORK is validated like RPC_URL."""
        with pytest.raises(ConfigError, match="private or internal"):
            parse_config(make_env(NETWORK="https://127.0.0.1:8545"))

    def test_localnet_allowed(self) -> None:
        """Named networks are trusted, including the plain-http localnet."""
        config = parse_config(make_env(NETWORK="sapphire-localnet"))
        assert config.rpc_endpoint.startswith("http://")

    def test_insecure_hermes_rejected(self) -> None:
        """Hermes must use HTTPS in production."""
        with pytest.raises(ConfigError, match="HERMES_ENDPOINT"):
            parse_config(make_env(HERMES_ENDPOINT="http://hermes.example.com"))

    @pytest.mark.parametrize("variable", ["NODE_ENV", "RELAYER_ENV"])
    def test_development_mode(self, variable: str) -> None:
        """Development mode allows local HTTP endpoints."""
        config = parse_config(
            make_env(
                **{variable: "development"},
                RPC_URL="http://localhost:8545",
                HERMES_ENDPOINT="http://localhost:4000",
            )
        )
        assert config.allow_insecure_endpoints is True
        assert config.rpc_endpoint == "http://localhost:8545"


class TestNumericSettings:
    """Test numeric and tolerance settings."""

    def test_update_interval(self) -> None:
        """UPDATE_INTERVAL_MS is parsed."""
        assert parse_config(make_env(UPDATE_INTERVAL_MS="60000")).update_interval_ms == 60000

    @pytest.mark.parametrize("value", ["0", "-1", "abc", "2147483648"])
    def test_invalid_update_interval(self, value: str) -> None:
        """Invalid intervals are rejected."""
        with pytest.raises(ConfigError, match="UPDATE_INTERVAL_MS"):
            parse_config(make_env(UPDATE_INTERVAL_MS=value))

    def test_invalid_port(self) -> None:
        """Ports above 65535 are rejected."""
        with pytest.raises(ConfigError, match="HEALTHCHECK_PORT"):
            parse_config(make_env(HEALTHCHECK_PORT="70000"))

    def test_percentage_tolerance(self) -> None:
        """Percentage tolerances are parsed."""
        tolerance = parse_config(make_env(PRICE_DEVIATION_TOLERANCE="5%")).price_deviation_tolerance
        assert tolerance.kind is ToleranceKind.PERCENTAGE
        assert tolerance.value == Decimal("5")

    def test_absolute_tolerance(self) -> None:
        """Absolute tolerances are parsed."""
        tolerance = parse_config(make_env(PRICE_DEVIATION_TOLERANCE="0.5")).price_deviation_tolerance
        assert tolerance.kind is ToleranceKind.ABSOLUTE
        assert tolerance.value == Decimal("0.5")

    @pytest.mark.parametrize("value", ["150%", "-1", "abc"])
    def test_invalid_tolerance(self, value: str) -> None:
        """Out-of-range or malformed tolerances are rejected."""
        with pytest.raises(ConfigError, match="Invalid PRICE_DEVIATION_TOLERANCE"):
            parse_config(make_env(PRICE_DEVIATION_TOLERANCE=value))

    @pytest.mark.parametrize("value", ["0", "-3", "abc", "nan", "inf"])
    def test_invalid_fetch_timeout(self, value: str) -> None:
        """Fetch timeouts must be positive finite numbers."""
        with pytest.raises(ConfigError, match="Invalid FETCH_TIMEOUT"):
            parse_config(make_env(FETCH_TIMEOUT=value))
