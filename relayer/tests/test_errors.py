"""Unit tests for error sanitization."""

import httpx

from relayer.src.errors import (
    TxSubmitError,
    sanitize_error,
    sanitize_error_message,
    sanitize_http_error,
)


class TestSanitizeError:
    """Test sanitize_error."""

    def test_plain_message_unchanged(self) -> None:
        """Messages without sensitive content pass through."""
        assert sanitize_error(RuntimeError("connection refused")) == "connection refused"

    def test_string_input(self) -> None:
        """Strings are sanitized like exception messages."""
        assert sanitize_error("boom") == "boom"

    def test_unknown_input(self) -> None:
        """Non-exception values give a generic message."""
        assert sanitize_error(42) == "An unknown error occurred"
        assert sanitize_error(None) == "An unknown error occurred"

    def test_empty_message_uses_class_name(self) -> None:
        """Exceptions without a message are named by class."""
        assert sanitize_error(TimeoutError()) == "TimeoutError"

    def test_file_paths_removed(self) -> None:
        """File paths are replaced."""
        message = sanitize_error(ValueError("failed in /home/user/app/relayer/src/x.py:42"))
        assert "/home/user" not in message
        assert "[path]" in message

    def test_stack_lines_removed(self) -> None:
        """Stack trace lines are dropped."""
        error = RuntimeError(
            'boom\n  File "/srv/app/main.py", line 3, in <module>\nTraceback (most recent call last):'
        )
        message = sanitize_error(error)
        assert message.startswith("boom")
        assert "File" not in message
        assert "Traceback" not in message

    def test_json_bodies_removed(self) -> None:
        """JSON response bodies are replaced."""
        message = sanitize_error(RuntimeError('execution reverted {"code": -32000, "data": "0xdead"}'))
        assert "0xdead" not in message
        assert "[response data]" in message


class TestSanitizeHttpError:
    """Test sanitize_http_error."""

    def test_status_error(self) -> None:
        """Status errors keep only the code."""
        request = httpx.Request("GET", "https://hermes.pyth.network/v2/updates/price/latest")
        response = httpx.Response(503, request=request, text="secret upstream body")
        error = httpx.HTTPStatusError("Server error", request=request, response=response)

        message = sanitize_http_error(error)
        assert message == "Hermes API request failed with status 503"

    def test_request_error(self) -> None:
        """Transport errors have no status."""
        request = httpx.Request("GET", "https://hermes.pyth.network")
        error = httpx.ConnectError("dns failure", request=request)
        assert sanitize_http_error(error) == "Hermes API request failed (no response)"

    def test_other_errors_fall_back(self) -> None:
        """Other errors are sanitized generically."""
        assert sanitize_http_error(ValueError("bad")) == "bad"


class TestSanitizeErrorMessage:
    """Test sanitize_error_message."""

    def test_with_context(self) -> None:
        """Context is prefixed."""
        assert sanitize_error_message(RuntimeError("boom"), "Failed to update price") == (
            "Failed to update price: boom"
        )

    def test_none_error(self) -> None:
        """Missing errors give a generic message."""
        assert sanitize_error_message(None, "Failed") == "Failed: an unexpected error occurred"


class TestTxSubmitError:
    """Test TxSubmitError."""

    def test_carries_hash(self) -> None:
        """The transaction hash is kept."""
        error = TxSubmitError("Transaction 0xabc reverted", "0xabc")
        assert error.tx_hash == "0xabc"
        assert str(error) == "Transaction 0xabc reverted"
