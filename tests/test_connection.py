"""Tests for retry and timing utilities."""
import logging

import httpx
import pytest

from edgelan.controlplane.base import ControlPlaneError
from edgelan.utils.connection import with_retry, RETRYABLE_EXCEPTIONS
from edgelan.utils.logging_config import setup_logging, timed, timed_section, main_logger


class TestWithRetry:
    """Tests for retry decorator."""

    @pytest.mark.asyncio
    async def test_async_success_no_retry(self):
        """Successful async function doesn't retry."""
        call_count = 0

        @with_retry(max_attempts=3)
        async def succeeding_func():
            nonlocal call_count
            call_count += 1
            return "success"

        result = await succeeding_func()
        assert result == "success"
        assert call_count == 1

    @pytest.mark.asyncio
    async def test_async_retry_then_success(self):
        """Async function retries on a transport failure then succeeds."""
        call_count = 0

        @with_retry(max_attempts=3, min_wait=0.01, max_wait=0.1)
        async def failing_then_succeeding():
            nonlocal call_count
            call_count += 1
            if call_count < 2:
                raise httpx.ConnectError("Connection refused")
            return "success"

        result = await failing_then_succeeding()
        assert result == "success"
        assert call_count == 2

    @pytest.mark.asyncio
    async def test_async_max_retries_exceeded(self):
        """Async function raises after max retries."""
        call_count = 0

        @with_retry(max_attempts=3, min_wait=0.01, max_wait=0.1)
        async def always_failing():
            nonlocal call_count
            call_count += 1
            raise TimeoutError("Always times out")

        with pytest.raises(TimeoutError):
            await always_failing()
        assert call_count == 3

    @pytest.mark.asyncio
    async def test_server_answers_not_retried(self):
        """Errors reported by the control-plane are answers, not retried."""
        call_count = 0

        @with_retry(max_attempts=3, min_wait=0.01, max_wait=0.1)
        async def rejected():
            nonlocal call_count
            call_count += 1
            raise ControlPlaneError("permission denied")

        with pytest.raises(ControlPlaneError):
            await rejected()
        assert call_count == 1


class TestRetryableExceptions:
    """Tests for retryable exceptions list."""

    def test_transport_errors_are_retryable(self):
        assert httpx.TransportError in RETRYABLE_EXCEPTIONS
        assert issubclass(httpx.ReadTimeout, RETRYABLE_EXCEPTIONS)

    def test_connection_refused_is_retryable(self):
        assert ConnectionRefusedError in RETRYABLE_EXCEPTIONS

    def test_http_status_error_not_retryable(self):
        assert not issubclass(httpx.HTTPStatusError, RETRYABLE_EXCEPTIONS)


class TestTiming:
    """Tests for the performance logging helpers."""

    @pytest.mark.asyncio
    async def test_timed_logs_site(self, caplog):
        """The site id is picked from the first argument after self."""

        class Client:
            @timed("list_slots")
            async def list_interface_slots(self, site_id):
                return [site_id]

        with caplog.at_level(logging.INFO, logger="edgelan.perf"):
            assert await Client().list_interface_slots("1001") == ["1001"]

        assert "list_slots" in caplog.text
        assert "1001" in caplog.text
        assert "OK" in caplog.text

    @pytest.mark.asyncio
    async def test_timed_section_failure(self, caplog):
        """Failures are logged and re-raised."""
        with caplog.at_level(logging.INFO, logger="edgelan.perf"):
            with pytest.raises(RuntimeError):
                async with timed_section("reassign", site_id="1001", to="INT_7"):
                    raise RuntimeError("boom")

        assert "FAIL: boom" in caplog.text
        assert "to=INT_7" in caplog.text

    def test_setup_logging_writes_file(self, tmp_path, monkeypatch):
        log_file = tmp_path / "edgelan.log"
        monkeypatch.setenv("EDGELAN_LOG_FILE", str(log_file))

        setup_logging()
        setup_logging()

        file_handlers = [
            h for h in main_logger.handlers if isinstance(h, logging.FileHandler)
        ]
        assert len(file_handlers) == 1
        assert log_file.exists()
        assert (tmp_path / "edgelan-perf.log").exists()
