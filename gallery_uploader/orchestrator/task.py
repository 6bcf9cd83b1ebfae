"""Per-file upload task: compression, transfer, retries and timeout."""
import asyncio
import logging
from datetime import datetime, timezone
from typing import Callable, Optional

from ..errors import InvalidTransitionError, TransferTimeoutError, UploadFailedError
from ..models import (
    SourceFile,
    UploadConfig,
    UploadedPhoto,
    UploadProgressInfo,
    UploadState,
)
from ..protocols import ICompressor, ITransport
from .naming import build_storage_key, sanitize_file_name

logger = logging.getLogger(__name__)

ReportCallback = Callable[[str, UploadProgressInfo], None]


def task_id_for(batch_index: int, file_name: str) -> str:
    """Stable identity of a file inside a batch, shared by all its attempts."""
    return f"{batch_index}-{file_name}"


def _is_well_formed(candidate) -> bool:
    return (
        isinstance(candidate, SourceFile)
        and bool(candidate.name)
        and bool(candidate.content_type)
        and candidate.size is not None
        and candidate.size >= 0
        and (candidate.data is not None or candidate.path is not None)
    )


class UploadTask:
    """
    State machine for one file.

    waiting -> running -> success
                       -> retry -> running ...   (attempt < max_retry_attempts)
                       -> canceled -> retry/error (transfer timed out)
                       -> error                   (last attempt failed)

    Each attempt compresses the file, builds a fresh destination key and runs
    the transfer under its own timeout. Attempts run in a bounded loop; the
    task never calls itself.
    """

    def __init__(
        self,
        destination_id: str,
        file: SourceFile,
        batch_index: int,
        transport: ITransport,
        compressor: Optional[ICompressor] = None,
        config: Optional[UploadConfig] = None,
        report: Optional[ReportCallback] = None,
    ):
        self.id = task_id_for(batch_index, file.name)
        self.file = file
        self.batch_index = batch_index
        self._destination_id = destination_id
        self._transport = transport
        self._compressor = compressor
        self._config = config or UploadConfig()
        self._report = report

        self.state = UploadState.WAITING
        self.attempt = 1
        self.uploaded_bytes = 0
        self.total_bytes = file.size
        self.storage_key: Optional[str] = None
        self.result: Optional[UploadedPhoto] = None
        self.error: Optional[Exception] = None

    @property
    def progress(self) -> float:
        if self.state == UploadState.SUCCESS:
            return 100.0
        if self.total_bytes <= 0:
            return 0.0
        return min(100.0, self.uploaded_bytes / self.total_bytes * 100)

    def snapshot(self) -> UploadProgressInfo:
        return UploadProgressInfo(
            file=self.file,
            progress=self.progress,
            state=self.state,
            uploaded_bytes=self.uploaded_bytes,
            total_bytes=self.total_bytes,
            attempt=self.attempt,
        )

    def _transition(self, target: UploadState) -> None:
        if not self.state.can_transition_to(target):
            raise InvalidTransitionError(
                f"Task {self.id}: cannot go from {self.state.value} to {target.value}"
            )
        self.state = target

    def _emit(self) -> None:
        if self._report:
            self._report(self.id, self.snapshot())

    async def run(self) -> UploadedPhoto:
        """
        Upload the file, retrying failed attempts.

        Returns:
            UploadedPhoto for the stored file

        Raises:
            UploadFailedError: every attempt failed; wraps the last error
        """
        max_attempts = self._config.max_retry_attempts

        for attempt in range(1, max_attempts + 1):
            self.attempt = attempt
            try:
                photo = await self._run_attempt()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                self.error = e
                if attempt < max_attempts:
                    logger.warning(
                        f"[{self.id}] Attempt {attempt}/{max_attempts} failed: {e}. "
                        f"Retrying in {self._config.retry_delay}s"
                    )
                    self._enter_retry()
                    await asyncio.sleep(self._config.retry_delay)
                    continue

                logger.error(f"[{self.id}] Giving up after {attempt} attempts: {e}")
                self._enter_error()
                raise UploadFailedError(self.file.name, attempt, e) from e

            self.error = None
            self.result = photo
            return photo

        raise AssertionError("retry loop exited without a result")

    def _enter_retry(self) -> None:
        self._transition(UploadState.RETRY)
        self.uploaded_bytes = 0
        self.total_bytes = self.file.size
        self._emit()

    def _enter_error(self) -> None:
        self._transition(UploadState.ERROR)
        self.uploaded_bytes = 0
        self.total_bytes = self.file.size
        self._emit()

    async def _run_attempt(self) -> UploadedPhoto:
        self._transition(UploadState.RUNNING)
        self.uploaded_bytes = 0
        self.total_bytes = 0

        # first running event waits for the payload size
        upload_file = await self._compress()
        payload = await upload_file.read_bytes()
        self.storage_key = build_storage_key(
            self._destination_id,
            upload_file.name,
            prefix=self._config.storage_prefix,
        )
        self.total_bytes = len(payload)
        self._emit()

        logger.info(
            f"[{self.id}] Uploading {self.file.name} -> {self.storage_key} "
            f"({len(payload) / 1024:.2f} KB, attempt {self.attempt})"
        )

        handle = self._transport.start_transfer(
            self.storage_key,
            payload,
            upload_file.content_type,
            self._progress_listener(self.attempt),
        )
        try:
            url = await asyncio.wait_for(handle.result(), timeout=self._config.upload_timeout)
        except asyncio.TimeoutError:
            logger.warning(f"[{self.id}] Upload timed out after {self._config.upload_timeout}s")
            handle.cancel()
            self._transition(UploadState.CANCELED)
            self._emit()
            raise TransferTimeoutError(
                f"Transfer of {self.file.name} timed out after {self._config.upload_timeout}s"
            )

        self._transition(UploadState.SUCCESS)
        self.uploaded_bytes = len(payload)
        self.total_bytes = len(payload)
        self._emit()
        logger.info(f"[{self.id}] Upload completed: {self.file.name}")

        return UploadedPhoto(
            name=sanitize_file_name(upload_file.name),
            url=url,
            size=len(payload),
            content_type=upload_file.content_type,
            created_at=datetime.now(timezone.utc),
        )

    async def _compress(self) -> SourceFile:
        """Compress the source file, falling back to the original on any problem."""
        if self._compressor is None:
            return self.file

        try:
            compressed = await self._compressor.compress(self.file, self._config.compression)
        except Exception as e:
            logger.warning(f"[{self.id}] Compression failed, using original file: {e}")
            return self.file

        if not _is_well_formed(compressed):
            logger.warning(f"[{self.id}] Compressor returned a malformed file, using original")
            return self.file

        if compressed is not self.file:
            logger.debug(
                f"[{self.id}] Compressed {self.file.name}: "
                f"{self.file.size / 1024:.2f} KB -> {compressed.size / 1024:.2f} KB"
            )
        return compressed

    def _progress_listener(self, attempt: int) -> Callable[[int, int], None]:
        def on_progress(transferred: int, total: int) -> None:
            # Late events from a cancelled or finished attempt are dropped
            if attempt != self.attempt or self.state != UploadState.RUNNING:
                return
            if total > 0:
                self.total_bytes = max(self.total_bytes, total)
            transferred = min(max(transferred, 0), self.total_bytes)
            self.uploaded_bytes = max(self.uploaded_bytes, transferred)
            self._emit()

        return on_progress
