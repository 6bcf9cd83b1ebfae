from enum import Enum
from typing import Callable, Dict, Optional, Sequence, Set, TYPE_CHECKING
import asyncio
import logging

from gallery_uploader.models import SourceFile, UploadProgressInfo, UploadState, UploadSummary
from gallery_uploader.orchestrator.models import BatchUploadResult
from gallery_uploader.utils.events import EventEmitter
logger = logging.getLogger(__name__)

if TYPE_CHECKING:
    from .core import UploadOrchestrator


class ProcessState(Enum):
    """State of upload process."""
    PENDING = "pending"
    RUNNING = "running"
    CANCELLED = "cancelled"
    COMPLETED = "completed"
    FAILED = "failed"


class UploadProcess:
    """
    Process object for batch uploads with event-based progress tracking.

    Usage:
        process = orchestrator.upload_files(gallery_id, files)
        process.on_summary(lambda s: print(f"{s.overall_progress:.0f}%"))
        process.on_file_fail(lambda task_id, info: print(f"Failed: {info.file.name}"))
        process.on_finish(lambda result: print(f"{result.uploaded_files}/{result.total_files}"))

        result = await process.wait()
    """

    def __init__(
        self,
        orchestrator: "UploadOrchestrator",
        destination_id: str,
        files: Sequence[SourceFile],
        concurrency: Optional[int] = None,
    ):
        self._orchestrator = orchestrator
        self._destination_id = destination_id
        self._files = list(files)
        self._concurrency = concurrency
        self._events = EventEmitter()
        self._state = ProcessState.PENDING
        self._task: Optional[asyncio.Task] = None
        self._result: Optional[BatchUploadResult] = None
        self._error: Optional[Exception] = None
        self._summary = UploadSummary()
        self._settled: Set[str] = set()

    # Event subscription methods
    def on_start(self, callback: Callable[[], None]):
        """Called when the upload process starts."""
        self._events.on("start", callback)

    def on_progress(self, callback: Callable[[Dict[str, UploadProgressInfo]], None]):
        """Called on every task change. Receives the full progress map."""
        self._events.on("progress", callback)

    def on_summary(self, callback: Callable[[UploadSummary], None]):
        """Called after every progress event. Receives UploadSummary."""
        self._events.on("summary", callback)

    def on_file_complete(self, callback: Callable[[str, UploadProgressInfo], None]):
        """Called once per uploaded file. Receives (task_id, UploadProgressInfo)."""
        self._events.on("file_complete", callback)

    def on_file_fail(self, callback: Callable[[str, UploadProgressInfo], None]):
        """Called once per file that exhausted its retries."""
        self._events.on("file_fail", callback)

    def on_finish(self, callback: Callable[[BatchUploadResult], None]):
        """Called when every file reached a terminal state. Receives BatchUploadResult."""
        self._events.on("finish", callback)

    def on_error(self, callback: Callable[[Exception], None]):
        """Called when the batch itself crashes. Receives Exception."""
        self._events.on("error", callback)

    # Control methods
    async def start(self):
        """Start the upload process (non-blocking)."""
        if self._state != ProcessState.PENDING:
            raise RuntimeError(f"Cannot start process in state: {self._state}")

        self._state = ProcessState.RUNNING
        self._task = asyncio.create_task(self._run())
        await self._events.emit("start")

    async def cancel(self):
        """Cancel the upload process. In-flight transfers are cancelled with it."""
        if self._state in (ProcessState.COMPLETED, ProcessState.CANCELLED, ProcessState.FAILED):
            return

        self._state = ProcessState.CANCELLED

        if self._task and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass

    async def wait(self) -> Optional[BatchUploadResult]:
        """Wait for the upload process to complete and return its result."""
        if self._state == ProcessState.PENDING:
            await self.start()

        if self._task:
            try:
                await self._task
            except asyncio.CancelledError:
                if self._state != ProcessState.CANCELLED:
                    raise

        return self._result

    # State properties
    @property
    def state(self) -> ProcessState:
        return self._state

    @property
    def summary(self) -> UploadSummary:
        """Latest summary seen."""
        return self._summary

    @property
    def result(self) -> Optional[BatchUploadResult]:
        return self._result

    @property
    def error(self) -> Optional[Exception]:
        return self._error

    @property
    def is_running(self) -> bool:
        return self._state == ProcessState.RUNNING

    @property
    def is_completed(self) -> bool:
        return self._state == ProcessState.COMPLETED

    @property
    def is_cancelled(self) -> bool:
        return self._state == ProcessState.CANCELLED

    # Internal methods
    def _handle_progress(self, progress_map: Dict[str, UploadProgressInfo]) -> None:
        self._events.emit_nowait("progress", progress_map)

        for task_id, info in progress_map.items():
            if task_id in self._settled or not info.state.is_terminal:
                continue
            self._settled.add(task_id)
            event = "file_complete" if info.state == UploadState.SUCCESS else "file_fail"
            self._events.emit_nowait(event, task_id, info)

    def _handle_summary(self, summary: UploadSummary) -> None:
        self._summary = summary
        self._events.emit_nowait("summary", summary)

    async def _run(self):
        """Internal method that runs the batch."""
        try:
            self._result = await self._orchestrator.upload_batch(
                self._destination_id,
                self._files,
                concurrency=self._concurrency,
                on_progress=self._handle_progress,
                on_summary=self._handle_summary,
            )
            await self._events.drain()
            self._state = ProcessState.COMPLETED
            await self._events.emit("finish", self._result)

        except asyncio.CancelledError:
            self._state = ProcessState.CANCELLED
            raise
        except Exception as e:
            self._state = ProcessState.FAILED
            self._error = e
            logger.error(f"Upload process failed: {e}", exc_info=True)
            await self._events.emit("error", e)
