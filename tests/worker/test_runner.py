# tests/worker/test_runner.py
"""
Тесты запускалки воркеров.
"""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from flycargo.worker.flight_check import FlightCheckWorker
from flycargo.worker.runner import build_workers, run_workers


@pytest.fixture
def container(mock_event_bus) -> MagicMock:
    container = MagicMock()
    container.startup = AsyncMock()
    container.shutdown = AsyncMock()
    container.event_bus = mock_event_bus
    container.settings.flight_check.FLIGHT_CHECK_MAX_ATTEMPTS = 4
    container.settings.flight_check.FLIGHT_CHECK_BACKOFF_SECONDS = 120
    return container


@pytest.fixture
def mock_worker():
    worker = MagicMock()
    worker.start = AsyncMock()
    worker.stop = AsyncMock()
    with patch("flycargo.worker.runner.build_workers", return_value=[worker]):
        yield worker


def test_build_workers(container) -> None:
    workers = build_workers(container)

    assert len(workers) == 1
    assert isinstance(workers[0], FlightCheckWorker)
    assert workers[0]._max_attempts == 4


@pytest.mark.asyncio
async def test_run_workers_lifecycle(container, mock_worker) -> None:
    with patch("flycargo.worker.runner.asyncio.sleep", side_effect=asyncio.CancelledError):
        await run_workers(container)

    container.startup.assert_awaited_once()
    mock_worker.start.assert_awaited_once()
    mock_worker.stop.assert_awaited_once()
    container.shutdown.assert_awaited_once()


@pytest.mark.asyncio
async def test_run_workers_shared_infra(container, mock_worker) -> None:
    with patch("flycargo.worker.runner.asyncio.sleep", side_effect=asyncio.CancelledError):
        await run_workers(container, init_infra=False)

    container.startup.assert_not_awaited()
    container.shutdown.assert_not_awaited()
    mock_worker.stop.assert_awaited_once()


@pytest.mark.asyncio
async def test_run_workers_start_failure(container, mock_worker) -> None:
    mock_worker.start.side_effect = RuntimeError("no broker")

    with patch("flycargo.worker.runner.log_error", new_callable=AsyncMock) as mock_log:
        await run_workers(container)

    mock_log.assert_awaited_once()
    mock_worker.stop.assert_awaited_once()
    container.shutdown.assert_awaited_once()
