"""Unit tests for CancellationToken and StreamSession."""

import asyncio

import httpx
import pytest
import pytest_check as check

from ragrelay.gateway import CallerAborted, CancellationToken, StreamSession, StreamState


class TestCancellationToken:
    """Tests for single-fire cancellation."""

    def test_first_cancel_fires(self) -> None:
        token = CancellationToken()

        check.is_true(token.cancel("client went away"))
        check.is_true(token.cancelled)
        check.equal(token.reason, "client went away")

    def test_second_cancel_is_noop(self) -> None:
        """Signalling twice keeps the first reason and reports no new firing."""
        token = CancellationToken()
        token.cancel("first")

        check.is_false(token.cancel("second"))
        check.equal(token.reason, "first")

    def test_callbacks_run_exactly_once(self) -> None:
        token = CancellationToken()
        calls: list[str] = []
        token.add_callback(lambda: calls.append("a"))
        token.add_callback(lambda: calls.append("b"))

        token.cancel()
        token.cancel()

        assert calls == ["a", "b"]

    def test_callback_added_after_cancel_runs_immediately(self) -> None:
        token = CancellationToken()
        token.cancel()
        calls: list[int] = []

        token.add_callback(lambda: calls.append(1))

        assert calls == [1]

    def test_raise_if_cancelled(self) -> None:
        token = CancellationToken()
        token.raise_if_cancelled()

        token.cancel("stop")
        with pytest.raises(CallerAborted, match="stop"):
            token.raise_if_cancelled()

    async def test_race_returns_result_when_not_cancelled(self) -> None:
        async def work() -> int:
            await asyncio.sleep(0)
            return 7

        assert await CancellationToken().race(work()) == 7

    async def test_race_propagates_errors(self) -> None:
        async def fail() -> None:
            raise ValueError("boom")

        with pytest.raises(ValueError, match="boom"):
            await CancellationToken().race(fail())

    async def test_race_cancels_pending_work(self) -> None:
        """Firing the token interrupts a pending await and cancels it."""
        token = CancellationToken()
        cancelled = asyncio.Event()

        async def hang() -> None:
            try:
                await asyncio.Event().wait()
            except asyncio.CancelledError:
                cancelled.set()
                raise

        asyncio.get_running_loop().call_later(0.01, token.cancel, "timeout")
        with pytest.raises(CallerAborted):
            await token.race(hang())

        assert cancelled.is_set()

    async def test_race_after_cancel_raises_without_running(self) -> None:
        token = CancellationToken()
        token.cancel()
        ran: list[bool] = []

        async def work() -> None:
            ran.append(True)

        with pytest.raises(CallerAborted):
            await token.race(work())
        assert ran == []


class TestStreamSession:
    """Tests for per-call session state."""

    def test_cancel_marks_open_session_aborted(self) -> None:
        session = StreamSession()
        session.mark_streaming()

        session.token.cancel()

        assert session.state is StreamState.ABORTED

    def test_cancel_after_completion_keeps_completed(self) -> None:
        """A late close notification does not turn a finished relay into an abort."""
        session = StreamSession()
        session.mark_streaming()
        session.mark_completed()

        session.token.cancel("late close")

        assert session.state is StreamState.COMPLETED

    def test_terminal_state_is_sticky(self) -> None:
        session = StreamSession()
        session.mark_failed()
        session.mark_completed()

        assert session.state is StreamState.FAILED

    async def test_aclose_is_idempotent(self) -> None:
        """Closing twice closes the upstream response once."""
        session = StreamSession()
        response = httpx.Response(200, content=b"{}")
        closes: list[bool] = []
        original = response.aclose

        async def counting_aclose() -> None:
            closes.append(True)
            await original()

        response.aclose = counting_aclose  # type: ignore[method-assign]
        session.attach(response)

        await session.aclose()
        await session.aclose()

        check.equal(len(closes), 1)
        check.is_true(session.closed)
        check.is_true(response.is_closed)
