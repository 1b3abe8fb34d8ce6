"""
重试机制测试
"""

from unittest.mock import AsyncMock

import pytest

from recap.core.exceptions import ConfigurationException, UpstreamAPIException
from recap.core.retry import execute_with_retry, is_transient


class TestIsTransient:
    """瞬时错误判断测试"""

    def test_transient_upstream_error(self):
        assert is_transient(UpstreamAPIException("busy", status_code=503, transient=True))

    def test_client_error_is_not_transient(self):
        assert not is_transient(UpstreamAPIException("bad request", status_code=400))

    def test_other_errors_are_not_transient(self):
        assert not is_transient(ConfigurationException("missing key"))
        assert not is_transient(ValueError("boom"))


class TestExecuteWithRetry:
    """带重试执行测试"""

    @pytest.mark.asyncio
    async def test_success_on_first_attempt(self):
        operation = AsyncMock(return_value="ok")

        result = await execute_with_retry("op", operation, 1, key="v", retry_attempts=3, retry_delay=0)

        assert result == "ok"
        operation.assert_awaited_once_with(1, key="v")

    @pytest.mark.asyncio
    async def test_transient_failures_are_retried(self):
        operation = AsyncMock(side_effect=[
            UpstreamAPIException("busy", status_code=429, transient=True),
            UpstreamAPIException("busy", status_code=500, transient=True),
            "ok",
        ])

        result = await execute_with_retry("op", operation, retry_attempts=3, retry_delay=0)

        assert result == "ok"
        assert operation.await_count == 3

    @pytest.mark.asyncio
    async def test_gives_up_after_max_attempts(self):
        operation = AsyncMock(side_effect=UpstreamAPIException("down", status_code=503, transient=True))

        with pytest.raises(UpstreamAPIException, match="down"):
            await execute_with_retry("op", operation, retry_attempts=2, retry_delay=0)

        assert operation.await_count == 2

    @pytest.mark.asyncio
    async def test_permanent_failure_is_not_retried(self):
        operation = AsyncMock(side_effect=UpstreamAPIException("unauthorized", status_code=401))

        with pytest.raises(UpstreamAPIException):
            await execute_with_retry("op", operation, retry_attempts=5, retry_delay=0)

        assert operation.await_count == 1

    @pytest.mark.asyncio
    async def test_backoff_is_exponential(self, monkeypatch):
        delays = []

        async def fake_sleep(delay):
            delays.append(delay)

        monkeypatch.setattr("recap.core.retry.asyncio.sleep", fake_sleep)
        operation = AsyncMock(side_effect=UpstreamAPIException("down", status_code=502, transient=True))

        with pytest.raises(UpstreamAPIException):
            await execute_with_retry("op", operation, retry_attempts=4, retry_delay=0.5)

        assert delays == [0.5, 1.0, 2.0]
