"""Tests for the Result pattern implementation.

Besides Success and Failure, the request queue relies on RateLimited to tell
upstream throttling apart from real failures.
"""

import asyncio

import pytest

from label_catalog.domain.result import (
    Failure,
    RateLimited,
    Success,
    as_result_async,
)
from label_catalog.exceptions import RateLimitError, TransportError


class TestSuccess:
    """Test the Success result type."""

    def test_success_creation(self):
        result = Success(42)
        assert result.is_success() is True
        assert result.is_failure() is False
        assert result.is_rate_limited() is False
        assert result.value() == 42

    def test_success_repr(self):
        assert repr(Success("test")) == "Success('test')"

    def test_success_error_raises(self):
        with pytest.raises(ValueError, match="Cannot get error from Success result"):
            Success(42).error()


class TestFailure:
    """Test the Failure result type."""

    def test_failure_creation(self):
        error = TransportError("boom", status=500)
        result = Failure(error)
        assert result.is_failure() is True
        assert result.is_success() is False
        assert result.error() is error

    def test_failure_value_raises(self):
        with pytest.raises(ValueError, match="Cannot get value from Failure result"):
            Failure(TransportError("boom")).value()


class TestRateLimited:

    def test_neither_success_nor_failure(self):
        result = RateLimited(retry_after=5.0)
        assert result.is_rate_limited()
        assert not result.is_success()
        assert not result.is_failure()

    def test_error_carries_retry_after(self):
        error = RateLimited(retry_after=5.0).error()
        assert isinstance(error, RateLimitError)
        assert error.retry_after == 5.0
        assert error.status == 429

    def test_value_raises(self):
        with pytest.raises(ValueError):
            RateLimited().value()


class TestAsResultAsync:

    @pytest.mark.asyncio
    async def test_outcomes(self):
        @as_result_async
        async def fetch(kind):
            if kind == "throttled":
                raise RateLimitError(retry_after=3)
            if kind == "broken":
                raise TransportError("bad")
            return kind

        ok = await fetch("ok")
        throttled = await fetch("throttled")
        broken = await fetch("broken")

        assert ok.value() == "ok"
        assert throttled.is_rate_limited()
        assert throttled.retry_after == 3
        assert broken.is_failure()
        assert isinstance(broken.error(), TransportError)

    @pytest.mark.asyncio
    async def test_cancellation_propagates(self):
        @as_result_async
        async def cancelled():
            raise asyncio.CancelledError()

        with pytest.raises(asyncio.CancelledError):
            await cancelled()
