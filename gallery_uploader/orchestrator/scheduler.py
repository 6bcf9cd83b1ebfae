from collections import deque
from typing import Deque, Dict, List, Optional, Sequence
import asyncio
import logging
import time

from gallery_uploader.errors import UploadFailedError
from gallery_uploader.models import SourceFile, UploadConfig
from gallery_uploader.orchestrator.concurrency import AdaptiveConcurrency, initial_concurrency
from gallery_uploader.orchestrator.models import BatchUploadResult, UploadFailure
from gallery_uploader.orchestrator.progress import ProgressTracker
from gallery_uploader.orchestrator.task import UploadTask
from gallery_uploader.protocols import ICompressor, ITransport
logger = logging.getLogger(__name__)


def validate_batch(destination_id: str, files: Sequence[SourceFile], concurrency: Optional[int] = None) -> None:
    """Reject unusable input before anything is scheduled."""
    if not destination_id or not str(destination_id).strip():
        raise ValueError("destination_id is required")
    if not files:
        raise ValueError("No files to upload")
    if concurrency is not None and concurrency < 1:
        raise ValueError("concurrency must be at least 1")


class BatchScheduler:
    """
    Runs the upload tasks of a batch with bounded concurrency.

    - Files are split into chunks of config.chunk_size, processed strictly in order
    - Inside a chunk, tasks are admitted in file order while a slot is free
    - The limit starts from the batch size and drops to 1 for good as soon
      as failures outnumber successes
    """

    def __init__(
        self,
        transport: ITransport,
        compressor: Optional[ICompressor] = None,
        config: Optional[UploadConfig] = None,
    ):
        self._transport = transport
        self._compressor = compressor
        self._config = config or UploadConfig()
        self.concurrency: Optional[AdaptiveConcurrency] = None
        self.peak_active = 0

    async def run(
        self,
        destination_id: str,
        files: Sequence[SourceFile],
        concurrency: Optional[int] = None,
        tracker: Optional[ProgressTracker] = None,
    ) -> BatchUploadResult:
        """
        Upload every file of the batch.

        Args:
            destination_id: Gallery (or other destination) the files belong to
            files: Files to upload, in submission order
            concurrency: Requested number of simultaneous uploads
            tracker: Progress tracker receiving every task update

        Returns:
            BatchUploadResult once every file reached a terminal state
        """
        validate_batch(destination_id, files, concurrency)
        requested = concurrency or self._config.default_concurrency
        tracker = tracker or ProgressTracker()

        started = time.monotonic()
        self.peak_active = 0
        self.concurrency = AdaptiveConcurrency(
            initial_concurrency(len(files), requested, self._config)
        )
        result = BatchUploadResult(destination_id=destination_id, total_files=len(files))

        tasks = [
            UploadTask(
                destination_id,
                file,
                batch_index=index,
                transport=self._transport,
                compressor=self._compressor,
                config=self._config,
                report=tracker.update,
            )
            for index, file in enumerate(files)
        ]
        for task in tasks:
            tracker.register(task.id, task.file)

        chunk_size = self._config.chunk_size
        chunks = [tasks[i:i + chunk_size] for i in range(0, len(tasks), chunk_size)]

        logger.info(
            f"Starting batch upload to {destination_id}: {len(files)} files in "
            f"{len(chunks)} chunk(s), concurrency {self.concurrency.limit} (requested {requested})"
        )

        for number, chunk in enumerate(chunks, 1):
            logger.info(f"Processing chunk {number}/{len(chunks)} ({len(chunk)} files)")
            chunk_started = time.monotonic()
            await self._run_chunk(chunk, result)
            chunk_duration = time.monotonic() - chunk_started
            if chunk_duration > 0:
                logger.debug(
                    f"Chunk {number} finished in {chunk_duration:.1f}s "
                    f"({len(chunk) / chunk_duration:.2f} files/s)"
                )
            if number < len(chunks) and self._config.chunk_pause:
                await asyncio.sleep(self._config.chunk_pause)

        result.duration = time.monotonic() - started
        result.summary = tracker.summary()

        logger.info(
            f"Batch upload finished in {result.duration:.1f}s: "
            f"{result.uploaded_files} successful, {result.failed_files} failed of {len(files)}"
        )
        if result.failed_files:
            logger.warning(f"{result.failed_files} file(s) were not uploaded: {', '.join(result.failed_names)}")

        return result

    async def _run_chunk(self, chunk: List[UploadTask], result: BatchUploadResult) -> None:
        """Admission loop for one chunk. Returns once every task of the chunk settled."""
        queue: Deque[UploadTask] = deque(chunk)
        active: Dict[asyncio.Task, UploadTask] = {}

        try:
            while queue or active:
                limit = self.concurrency.evaluate()

                while queue and len(active) < limit:
                    upload_task = queue.popleft()
                    runner = asyncio.create_task(upload_task.run(), name=f"upload-{upload_task.id}")
                    active[runner] = upload_task
                    self.peak_active = max(self.peak_active, len(active))

                done, _ = await asyncio.wait(active.keys(), return_when=asyncio.FIRST_COMPLETED)
                for runner in done:
                    self._settle(runner, active.pop(runner), result)

                if queue and self._config.admission_pause:
                    await asyncio.sleep(self._config.admission_pause)
        except asyncio.CancelledError:
            logger.info("Batch upload cancelled")
            await self._cancel_remaining_tasks(list(active.keys()))
            raise

    def _settle(self, runner: asyncio.Task, upload_task: UploadTask, result: BatchUploadResult) -> None:
        try:
            photo = runner.result()
        except UploadFailedError as e:
            self.concurrency.record_failure()
            result.failures.append(
                UploadFailure(
                    task_id=upload_task.id,
                    file_name=upload_task.file.name,
                    attempts=e.attempts,
                    error=str(e.last_error) or type(e.last_error).__name__,
                )
            )
        except Exception as e:
            logger.error(f"Unexpected error uploading {upload_task.file.name}: {e}", exc_info=True)
            self.concurrency.record_failure()
            result.failures.append(
                UploadFailure(
                    task_id=upload_task.id,
                    file_name=upload_task.file.name,
                    attempts=upload_task.attempt,
                    error=str(e) or type(e).__name__,
                )
            )
        else:
            self.concurrency.record_success()
            result.uploaded.append(photo)

        processed = self.concurrency.successful_uploads + self.concurrency.failed_uploads
        logger.info(
            f"Progress: {processed}/{result.total_files} "
            f"({self.concurrency.successful_uploads} successful, {self.concurrency.failed_uploads} failed)"
        )

    async def _cancel_remaining_tasks(self, tasks: List[asyncio.Task]) -> None:
        """Cancel all remaining tasks gracefully."""
        for task in tasks:
            if not task.done():
                task.cancel()

        await asyncio.gather(*tasks, return_exceptions=True)
