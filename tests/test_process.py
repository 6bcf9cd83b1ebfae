"""Tests for the event-based upload process."""
import asyncio
from unittest.mock import AsyncMock

import pytest

from conftest import FakeTransport, make_files
from gallery_uploader import ProcessState, UploadOrchestrator
from gallery_uploader.models import UploadConfig


@pytest.mark.asyncio
async def test_events_are_delivered(fast_config):
    transport = FakeTransport({"photo1.jpg": ["fail"] * 3})
    completed, failed, finished, summaries = [], [], [], []

    async with UploadOrchestrator(transport=transport, config=fast_config) as uploader:
        process = uploader.upload_files("g1", make_files(3), concurrency=2)
        process.on_file_complete(lambda task_id, info: completed.append(task_id))
        process.on_file_fail(lambda task_id, info: failed.append(info.file.name))
        process.on_summary(summaries.append)
        process.on_finish(finished.append)

        assert process.state == ProcessState.PENDING
        result = await process.wait()

    assert process.state == ProcessState.COMPLETED
    assert process.is_completed is True
    assert sorted(completed) == ["0-photo0.jpg", "2-photo2.jpg"]
    assert failed == ["photo1.jpg"]
    assert finished == [result]
    assert process.summary.failed == 1
    assert summaries[-1].completed == 2


@pytest.mark.asyncio
async def test_start_twice_is_rejected(fast_config):
    async with UploadOrchestrator(transport=FakeTransport(), config=fast_config) as uploader:
        process = uploader.upload_files("g1", make_files(1))
        await process.start()
        with pytest.raises(RuntimeError):
            await process.start()
        await process.wait()


@pytest.mark.asyncio
async def test_cancel_stops_in_flight_transfers():
    config = UploadConfig(retry_delay=0, admission_pause=0, chunk_pause=0, upload_timeout=30)
    transport = FakeTransport({f"photo{i}.jpg": ["hang"] for i in range(3)})

    async with UploadOrchestrator(transport=transport, config=config) as uploader:
        process = uploader.upload_files("g1", make_files(3), concurrency=3)
        await process.start()
        await asyncio.sleep(0.05)
        assert transport.active == 2

        await process.cancel()

    assert process.state == ProcessState.CANCELLED
    assert process.result is None
    assert await process.wait() is None
    assert transport.active == 0


@pytest.mark.asyncio
async def test_batch_crash_emits_error(fast_config):
    errors = []

    async with UploadOrchestrator(transport=FakeTransport(), config=fast_config) as uploader:
        uploader.upload_batch = AsyncMock(side_effect=RuntimeError("scheduler crashed"))
        process = uploader.upload_files("g1", make_files(1))
        process.on_error(errors.append)
        assert await process.wait() is None

    assert process.state == ProcessState.FAILED
    assert str(process.error) == "scheduler crashed"
    assert len(errors) == 1
