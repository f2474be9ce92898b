"""Input validation for endpoints, addresses, fees and wallet secrets.

All validators raise :class:`ValueError` with a message that names the field
but never echoes secret material back.
"""

from __future__ import annotations

import ipaddress
import re
from urllib.parse import urlparse

from web3 import Web3

MAX_POSITIVE_INT = 2**31 - 1

# Uint256 has at most 78 decimal digits
MAX_FEE_DIGITS = 78

BLOCKED_HOST_SUFFIXES = (".local", ".localhost", ".internal")

PRIVATE_KEY_REGEX = re.compile(r"^(0x)?[0-9a-fA-F]{64}$")
MNEMONIC_WORD_REGEX = re.compile(r"^[a-z]+$")


def _is_private_host(hostname: str) -> bool:
    """Check whether a hostname points at a loopback, private or link-local address."""
    if hostname == "localhost" or hostname.endswith(BLOCKED_HOST_SUFFIXES):
        return True
    try:
        address = ipaddress.ip_address(hostname)
    except ValueError:
        return False
    return (
        address.is_private
        or address.is_loopback
        or address.is_link_local
        or address.is_unspecified
        or address.is_reserved
    )


def validate_endpoint_url(
    url: str, field_name: str, allow_insecure: bool = False
) -> str:
    """Validate an endpoint URL.

    Only ``http`` and ``https`` are accepted. Unless ``allow_insecure`` is set,
    the scheme must be ``https`` and the host must not be a private, loopback
    or link-local address.

    :param url: URL to validate.
    :param field_name: Human readable field name used in error messages.
    :param allow_insecure: Allow plain http and private hosts (development).
    :returns: The URL unchanged.
    :raises ValueError: If the URL is not acceptable.
    """
    if not url:
        raise ValueError(f"Invalid {field_name}: not a valid URL")

    parsed = urlparse(url)
    if not parsed.scheme or not parsed.hostname:
        raise ValueError(f"Invalid {field_name}: not a valid URL")

    if parsed.scheme not in ("http", "https"):
        raise ValueError(f"Invalid {field_name}: only HTTP/HTTPS endpoints are allowed")

    if allow_insecure:
        return url

    if parsed.scheme != "https":
        raise ValueError(f"Invalid {field_name}: only HTTPS endpoints are allowed")

    if _is_private_host(parsed.hostname.lower()):
        raise ValueError(
            f"Invalid {field_name}: private or internal addresses are not allowed"
        )

    return url


def validate_address(address: str, field_name: str = "address") -> str:
    """Validate an EVM address and return its checksummed form.

    :param address: Hex address, with ``0x`` prefix.
    :param field_name: Field name used in error messages.
    :returns: Checksummed address.
    :raises ValueError: If the address is empty or malformed.
    """
    if not address:
        raise ValueError(f"Invalid {field_name}: address is empty")
    if not Web3.is_address(address):
        raise ValueError(
            f"Invalid {field_name}: must be a 0x-prefixed 20-byte hex address"
        )
    return Web3.to_checksum_address(address)


def validate_fee_amount(fee: str) -> str:
    """Validate a fee given as a non-negative integer string (wei).

    :param fee: Fee amount.
    :returns: The fee unchanged.
    :raises ValueError: If the fee is not a plain non-negative integer string.
    """
    if not re.fullmatch(r"[0-9]+", fee or ""):
        raise ValueError("Invalid fee: must be a non-negative integer string")
    if len(fee) > MAX_FEE_DIGITS:
        raise ValueError("Invalid fee: value exceeds maximum allowed")
    return fee


def parse_positive_int(value: str | None, field_name: str) -> int | None:
    """Parse a positive integer from an environment variable.

    :param value: Raw value, ``None`` or empty when unset.
    :param field_name: Variable name used in error messages.
    :returns: Parsed integer, or None if the value is unset.
    :raises ValueError: If the value is not a positive integer in range.
    """
    if value is None or value.strip() == "":
        return None

    try:
        parsed = int(value.strip(), 10)
    except ValueError:
        raise ValueError(f"Invalid {field_name}: must be a valid integer") from None

    if parsed <= 0:
        raise ValueError(f"Invalid {field_name}: must be a positive integer")
    if parsed > MAX_POSITIVE_INT:
        raise ValueError(f"Invalid {field_name}: value too large")
    return parsed


def validate_mnemonic_format(mnemonic: str) -> None:
    """Validate the shape of a BIP39 mnemonic without exposing its words.

    :param mnemonic: Space separated mnemonic phrase.
    :raises ValueError: If the word count or characters are wrong.
    """
    if mnemonic != mnemonic.strip():
        raise ValueError("Invalid mnemonic: leading or trailing whitespace")
    words = mnemonic.split(" ")
    if len(words) not in (12, 24):
        raise ValueError("Invalid mnemonic: must be 12 or 24 words")
    for word in words:
        if not MNEMONIC_WORD_REGEX.match(word):
            raise ValueError("Invalid mnemonic: contains invalid characters")


def validate_private_key(private_key: str) -> None:
    """Validate a secp256k1 private key given as hex.

    :param private_key: 32-byte key as hex, optional ``0x`` prefix.
    :raises ValueError: If the key is not 64 hex characters.
    """
    if not PRIVATE_KEY_REGEX.match(private_key or ""):
        raise ValueError("Invalid private key: must be 64 hex characters")
