"""Unit tests for CancellationToken."""

import asyncio

import pytest

from relayer.src.Cancellation import CancellationToken


class TestCallbacks:
    """Test callback dispatch."""

    @pytest.mark.asyncio
    async def test_callbacks_run_synchronously(self) -> None:
        """Callbacks run inside cancel()."""
        token = CancellationToken()
        calls: list[str] = []
        token.add_callback(lambda: calls.append("a"))
        token.add_callback(lambda: calls.append("b"))

        token.cancel()

        assert calls == ["a", "b"]
        assert token.cancelled

    @pytest.mark.asyncio
    async def test_cancel_is_idempotent(self) -> None:
        """Callbacks run once."""
        token = CancellationToken()
        calls: list[int] = []
        token.add_callback(lambda: calls.append(1))

        token.cancel()
        token.cancel()

        assert calls == [1]

    @pytest.mark.asyncio
    async def test_late_callback_runs_immediately(self) -> None:
        """Callbacks added after firing run at once."""
        token = CancellationToken()
        token.cancel()
        calls: list[int] = []

        token.add_callback(lambda: calls.append(1))

        assert calls == [1]

    @pytest.mark.asyncio
    async def test_removed_callback_not_run(self) -> None:
        """Removed callbacks are skipped."""
        token = CancellationToken()
        calls: list[int] = []

        def callback() -> None:
            calls.append(1)

        token.add_callback(callback)
        token.remove_callback(callback)
        token.remove_callback(callback)
        token.cancel()

        assert calls == []

    @pytest.mark.asyncio
    async def test_failing_callback_does_not_block_others(self) -> None:
        """A raising callback is logged and the rest still run."""
        token = CancellationToken()
        calls: list[int] = []

        def broken() -> None:
            raise RuntimeError("boom")

        token.add_callback(broken)
        token.add_callback(lambda: calls.append(1))
        token.cancel()

        assert calls == [1]


class TestSleep:
    """Test the cancellable sleep."""

    @pytest.mark.asyncio
    async def test_sleep_times_out(self) -> None:
        """Sleep returns False when the deadline passes."""
        token = CancellationToken()
        assert await token.sleep(0.01) is False

    @pytest.mark.asyncio
    async def test_sleep_interrupted(self) -> None:
        """Sleep returns True as soon as the token fires."""
        token = CancellationToken()
        asyncio.get_running_loop().call_later(0.01, token.cancel)

        loop = asyncio.get_running_loop()
        started = loop.time()
        assert await token.sleep(10) is True
        assert loop.time() - started < 5

    @pytest.mark.asyncio
    async def test_sleep_after_cancel(self) -> None:
        """Sleep on a fired token returns at once."""
        token = CancellationToken()
        token.cancel()
        assert await token.sleep(10) is True

    @pytest.mark.asyncio
    async def test_wait(self) -> None:
        """wait() returns once the token fires."""
        token = CancellationToken()
        waiter = asyncio.create_task(token.wait())
        await asyncio.sleep(0)
        assert not waiter.done()

        token.cancel()
        await asyncio.wait_for(waiter, timeout=1)
