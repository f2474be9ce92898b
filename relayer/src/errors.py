"""Relayer error types and message sanitization.

Error messages can end up in logs, the CLI output and the health probe's
neighbourhood, so anything derived from a collaborator failure is passed
through :func:`sanitize_error` first. Sanitization strips file paths, stack
trace lines and JSON response bodies; it never sees wallet secrets because
those are not put into exception messages in the first place.
"""

import re

import httpx

FILE_PATH_REGEX = re.compile(r"(?:/[\w.-]+)+\.(?:py|pyc|json|so)(?::\d+(?::\d+)?)?")
STACK_LINE_REGEX = re.compile(r"\n\s*(?:File \"[^\n]*|Traceback \(most recent call last\):[^\n]*)")
JSON_BODY_REGEX = re.compile(r"\{[^}]*\"[^\"]*\"[^}]*\}")


class RelayerError(Exception):
    """Base exception for relayer errors."""

    pass


class ConfigError(RelayerError):
    """Raised when the environment or CLI configuration is invalid."""

    pass


class InitializationError(RelayerError):
    """Raised when the relayer cannot connect to the ledger or resolve its feed."""

    pass


class UnknownToleranceKindError(RelayerError):
    """Raised by the decision engine for a tolerance kind it does not know."""

    pass


class TxSubmitError(RelayerError):
    """Raised when a transaction is rejected or reverts on-chain.

    :ivar tx_hash: Hash of the reverted transaction, if it was mined.
    """

    def __init__(self, message: str, tx_hash: str | None = None):
        """Initialize the submit error.

        :param message: Error message.
        :param tx_hash: Optional transaction hash.
        """
        self.tx_hash = tx_hash
        super().__init__(message)


def sanitize_error(error: object) -> str:
    """Reduce an error to a message that is safe to log.

    :param error: Exception (or anything else) raised by a collaborator.
    :returns: Message without file paths, stack traces or response bodies.
    """
    if isinstance(error, BaseException):
        message = str(error) or error.__class__.__name__
    elif isinstance(error, str):
        message = error
    else:
        return "An unknown error occurred"

    message = STACK_LINE_REGEX.sub("", message)
    message = FILE_PATH_REGEX.sub("[path]", message)
    message = JSON_BODY_REGEX.sub("[response data]", message)
    return message


def sanitize_http_error(error: object) -> str:
    """Reduce an httpx failure to its status code.

    Response bodies of the price API are never forwarded.

    :param error: Exception raised while talking to the price API.
    :returns: Generic message with the status code when one is known.
    """
    if isinstance(error, httpx.HTTPStatusError):
        return f"Hermes API request failed with status {error.response.status_code}"
    if isinstance(error, httpx.RequestError):
        return "Hermes API request failed (no response)"
    return sanitize_error(error)


def sanitize_error_message(error: object, context: str) -> str:
    """Sanitize an error and prefix it with a context string.

    :param error: Exception to sanitize.
    :param context: Short description of the failed operation.
    :returns: ``"<context>: <sanitized message>"``.
    """
    if error is None:
        return f"{context}: an unexpected error occurred"
    return f"{context}: {sanitize_error(error)}"
