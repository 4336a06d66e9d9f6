import asyncio

import pytest
from unittest.mock import AsyncMock

from aiohttp import ClientError

from querycanvas.builder.notify import Level
from querycanvas.dashboard.export import (
    ExportJob,
    ExportOptions,
    ExportPoller,
    ExportStatus,
)


def job(status=ExportStatus.PROCESSING, **kw) -> ExportJob:
    return ExportJob(export_id="e1", status=status, **kw)


def poller(check, notifier, **kw) -> ExportPoller:
    kw.setdefault("interval", 0)
    return ExportPoller(check, notifier=notifier, **kw)


def test_options_wire_defaults():
    wire = ExportOptions().to_wire()
    assert wire["format"] == "pdf"
    assert wire["orientation"] == "landscape"
    assert wire["pageSize"] == "A4"
    assert wire["quality"] == "high"
    assert wire["resolution"] == 300
    assert wire["includeFilters"] is True
    assert "title" not in wire


def test_poller_uses_settings(mock_settings_instance):
    p = ExportPoller(AsyncMock())
    assert p.interval == 0
    assert p.max_attempts == 5


@pytest.mark.asyncio
async def test_completes(notifier):
    check = AsyncMock(
        side_effect=[
            job(progress=40),
            job(ExportStatus.COMPLETED, progress=100, download_url="/d/e1.pdf"),
        ]
    )
    p = poller(check, notifier, max_attempts=10)
    result = await p.poll(job())
    assert result.status == ExportStatus.COMPLETED
    assert result.download_url == "/d/e1.pdf"
    assert p.attempts == 2
    check.assert_awaited_with("e1")
    assert notifier.last.message == "Export completed!"


@pytest.mark.asyncio
async def test_failed(notifier):
    check = AsyncMock(return_value=job(ExportStatus.FAILED, error="renderer crashed"))
    result = await poller(check, notifier, max_attempts=10).poll(job())
    assert result.status == ExportStatus.FAILED
    assert notifier.last.level == Level.ERROR
    assert notifier.last.message == "Export failed: renderer crashed"


@pytest.mark.asyncio
async def test_times_out(notifier):
    check = AsyncMock(return_value=job(progress=10))
    p = poller(check, notifier, max_attempts=3)
    result = await p.poll(job())
    assert check.await_count == 3
    assert result.status == ExportStatus.TIMED_OUT
    assert result.status.terminal
    assert notifier.last.message == "Export timed out"


@pytest.mark.asyncio
@pytest.mark.parametrize("error", [RuntimeError("boom"), ClientError("reset")])
async def test_status_error_fails_job(notifier, error):
    check = AsyncMock(side_effect=error)
    result = await poller(check, notifier, max_attempts=10).poll(job())
    assert check.await_count == 1
    assert result.status == ExportStatus.FAILED
    assert result.error == str(error)
    assert notifier.last.message == "Failed to check export status"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "status", [ExportStatus.COMPLETED, ExportStatus.FAILED, ExportStatus.IDLE]
)
async def test_no_polling_when_not_processing(notifier, status):
    check = AsyncMock()
    result = await poller(check, notifier).poll(job(status))
    check.assert_not_called()
    assert result.status == status


@pytest.mark.asyncio
async def test_cancel_stops_polling(notifier):
    check = AsyncMock(return_value=job(progress=10))
    p = poller(check, notifier, interval=60, max_attempts=10)
    task = asyncio.create_task(p.poll(job()))
    await asyncio.sleep(0)
    p.cancel()
    result = await asyncio.wait_for(task, timeout=1)
    assert p.cancelled
    check.assert_not_called()
    assert result.status == ExportStatus.PROCESSING
    assert notifier.last is None


@pytest.mark.asyncio
async def test_poller_reused_for_second_export(notifier):
    check = AsyncMock(
        side_effect=[
            job(progress=50),
            job(ExportStatus.COMPLETED),
            job(progress=50),
            job(ExportStatus.COMPLETED),
        ]
    )
    p = poller(check, notifier, max_attempts=2)
    assert (await p.poll(job())).status == ExportStatus.COMPLETED
    assert (await p.poll(job())).status == ExportStatus.COMPLETED
    assert p.attempts == 2
    assert check.await_count == 4
