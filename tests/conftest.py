"""Shared fakes for gallery_uploader tests."""
import asyncio
from collections import defaultdict, deque
from typing import Dict, Iterable, List, Optional

import pytest

from gallery_uploader.errors import TransportError
from gallery_uploader.models import SourceFile, UploadConfig


def name_from_key(key: str) -> str:
    """Storage keys end in {timestamp}-{random}-{name}."""
    return key.rsplit("/", 1)[-1].split("-", 2)[2]


class FakeHandle:
    def __init__(self, transport: "FakeTransport", key: str, task: asyncio.Task):
        self._transport = transport
        self.key = key
        self._task = task

    async def result(self) -> str:
        return await self._task

    def cancel(self) -> None:
        self._transport.cancelled.append(self.key)
        self._task.cancel()


class FakeTransport:
    """
    In-memory transport.

    outcomes maps a file name to the outcome of each successive transfer of
    that file: "ok", "fail" or "hang". Unlisted transfers succeed.
    """

    def __init__(self, outcomes: Optional[Dict[str, Iterable[str]]] = None, delay: float = 0.005):
        self._outcomes = defaultdict(deque)
        for name, sequence in (outcomes or {}).items():
            self._outcomes[name].extend(sequence)
        self.delay = delay
        self.calls: List[str] = []
        self.cancelled: List[str] = []
        self.active = 0
        self.peak = 0

    def start_transfer(self, key, payload, content_type, progress_callback=None):
        name = name_from_key(key)
        outcome = self._outcomes[name].popleft() if self._outcomes[name] else "ok"
        self.calls.append(key)
        task = asyncio.get_running_loop().create_task(
            self._transfer(key, payload, outcome, progress_callback)
        )
        return FakeHandle(self, key, task)

    def names(self) -> List[str]:
        return [name_from_key(key) for key in self.calls]

    async def _transfer(self, key, payload, outcome, progress_callback):
        self.active += 1
        self.peak = max(self.peak, self.active)
        try:
            await asyncio.sleep(self.delay)
            if outcome == "hang":
                await asyncio.Event().wait()
            if progress_callback:
                progress_callback(len(payload) // 2, len(payload))
                progress_callback(len(payload), len(payload))
            if outcome == "fail":
                raise TransportError(f"storage rejected {key}")
            return f"https://storage.test/{key}"
        finally:
            self.active -= 1


def make_files(count: int, size: int = 64, prefix: str = "photo") -> List[SourceFile]:
    return [
        SourceFile.from_bytes(f"{prefix}{i}.jpg", bytes([i % 256]) * size, "image/jpeg")
        for i in range(count)
    ]


@pytest.fixture
def fast_config() -> UploadConfig:
    """Default limits with every pause removed."""
    return UploadConfig(retry_delay=0, admission_pause=0, chunk_pause=0, upload_timeout=1.0)


@pytest.fixture
def record_pauses(monkeypatch):
    """
    Replace asyncio.sleep with a recorder that does not wait.

    Every non-zero pause is stored as (delay, snapshot()) so a test can see
    what the upload looked like when the pause started.
    """
    real_sleep = asyncio.sleep

    def install(snapshot=lambda: None):
        pauses = []

        async def recording_sleep(delay, *args, **kwargs):
            if delay:
                pauses.append((delay, snapshot()))
            await real_sleep(0)

        monkeypatch.setattr(asyncio, "sleep", recording_sleep)
        return pauses

    return install
