"""Core orchestrator - coordinates batch uploads to a gallery."""
import asyncio
import logging
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence, Set, Union

from ..models import SourceFile, UploadConfig, UploadProgressInfo, UploadSummary
from ..protocols import ICompressor, INotifier, ITransport
from ..services.api_client import HTTPAPIClient
from ..services.compressor import ImageCompressor
from ..services.notifier import SubscriberNotifier
from ..services.repository import PhotoRepository
from ..services.transport import DEFAULT_STORAGE_URL, ObjectStorageTransport

from .models import BatchUploadResult
from .process import UploadProcess
from .progress import ProgressTracker
from .scheduler import BatchScheduler, validate_batch

logger = logging.getLogger(__name__)

FileInput = Union[SourceFile, Path, str]


def _as_source_file(item: FileInput) -> SourceFile:
    if isinstance(item, SourceFile):
        return item
    return SourceFile.from_path(Path(item))


class UploadOrchestrator:
    """
    Orchestrates gallery batch uploads using injected services.

    Usage:
        # Object storage + gallery API
        async with UploadOrchestrator(storage_bucket="my-bucket", api_url=api_url) as uploader:
            result = await uploader.upload_batch(gallery_id, files, concurrency=3)

        # Custom transport (tests, other backends)
        async with UploadOrchestrator(transport=transport) as uploader:
            process = uploader.upload_files(gallery_id, files)
            process.on_summary(lambda s: print(f"{s.overall_progress:.0f}%"))
            result = await process.wait()
    """

    def __init__(
        self,
        transport: Optional[ITransport] = None,
        config: Optional[UploadConfig] = None,
        compressor: Optional[ICompressor] = None,
        notifier: Optional[INotifier] = None,
        storage_bucket: Optional[str] = None,
        storage_url: str = DEFAULT_STORAGE_URL,
        storage_token: Optional[str] = None,
        api_url: Optional[str] = None,
        api_token: Optional[str] = None,
        uploader_name: str = "",
        gallery_base_url: Optional[str] = None,
        notify: bool = True,
    ):
        """
        Initialize orchestrator with dependencies.

        Args:
            transport: Pre-built storage transport. Built from storage_bucket when omitted
            config: Upload configuration
            compressor: Image compressor. Defaults to ImageCompressor
            notifier: Receives the batch result once it finished
            storage_bucket: Object storage bucket, used when no transport is given
            storage_url: Object storage endpoint
            storage_token: Bearer token for object storage
            api_url: Gallery API URL; enables the photo repository and subscriber notifications
            api_token: Bearer token for the gallery API
            uploader_name: Name shown in subscriber notifications
            gallery_base_url: Public site URL used to build gallery links
            notify: Send subscriber notifications after a batch
        """
        self._external_transport = transport
        self._config = config or UploadConfig()
        self._compressor = compressor
        self._notifier = notifier
        self._storage_bucket = storage_bucket
        self._storage_url = storage_url
        self._storage_token = storage_token
        self._api_url = api_url
        self._api_token = api_token
        self._uploader_name = uploader_name
        self._gallery_base_url = gallery_base_url
        self._notify = notify

        # Services (initialized in __aenter__)
        self._transport: Optional[ITransport] = None
        self._owned_transport: Optional[ObjectStorageTransport] = None
        self._api_client: Optional[HTTPAPIClient] = None
        self._repository: Optional[PhotoRepository] = None
        self._notifications: Set[asyncio.Task] = set()

    async def __aenter__(self):
        """Initialize services."""
        if self._external_transport is not None:
            self._transport = self._external_transport
        elif self._storage_bucket:
            self._owned_transport = ObjectStorageTransport(
                self._storage_bucket,
                base_url=self._storage_url,
                token=self._storage_token,
            )
            await self._owned_transport.__aenter__()
            self._transport = self._owned_transport
        else:
            raise ValueError("Either transport or storage_bucket must be provided")

        if self._compressor is None:
            self._compressor = ImageCompressor()

        if self._api_url:
            self._api_client = HTTPAPIClient(self._api_url, token=self._api_token)
            await self._api_client.__aenter__()
            self._repository = PhotoRepository(self._api_client)
            if self._notifier is None and self._notify:
                self._notifier = SubscriberNotifier(
                    self._api_client,
                    uploader_name=self._uploader_name,
                    gallery_base_url=self._gallery_base_url,
                )

        return self

    async def __aexit__(self, *args):
        """Wait for pending notifications, then release resources."""
        if self._notifications:
            await asyncio.gather(*list(self._notifications), return_exceptions=True)

        if self._api_client:
            await self._api_client.__aexit__(*args)
            self._api_client = None
        if self._owned_transport:
            await self._owned_transport.__aexit__(*args)
            self._owned_transport = None
        self._transport = None

    @property
    def config(self) -> UploadConfig:
        return self._config

    @property
    def repository(self) -> Optional[PhotoRepository]:
        """Photo repository, available when api_url was given."""
        return self._repository

    @property
    def pending_notifications(self) -> int:
        return len(self._notifications)

    async def upload_batch(
        self,
        destination_id: str,
        files: Sequence[FileInput],
        concurrency: Optional[int] = None,
        on_progress: Optional[Callable[[Dict[str, UploadProgressInfo]], None]] = None,
        on_summary: Optional[Callable[[UploadSummary], None]] = None,
    ) -> BatchUploadResult:
        """
        Upload a batch of files and wait for every one to finish.

        Individual file failures never abort the batch; they are reported in
        the returned result.

        Args:
            destination_id: Gallery the files belong to
            files: SourceFile objects or paths, in submission order
            concurrency: Requested number of simultaneous uploads
            on_progress: Receives the full progress map on every task change
            on_summary: Receives the aggregate summary on every task change

        Returns:
            BatchUploadResult

        Raises:
            ValueError: Missing destination, empty batch or invalid concurrency
        """
        if self._transport is None:
            raise RuntimeError("UploadOrchestrator not initialized. Use 'async with' context.")

        sources = self._prepare(destination_id, files, concurrency)
        scheduler = BatchScheduler(self._transport, self._compressor, self._config)
        tracker = ProgressTracker(on_progress=on_progress, on_summary=on_summary)

        result = await scheduler.run(destination_id, sources, concurrency=concurrency, tracker=tracker)
        self._dispatch_notification(destination_id, result)
        return result

    def upload_files(
        self,
        destination_id: str,
        files: Sequence[FileInput],
        concurrency: Optional[int] = None,
    ) -> UploadProcess:
        """
        Upload a batch with event-based progress tracking.

        Input is validated immediately; the upload itself runs once the
        process is started (wait() starts it automatically).

        Example:
            process = orchestrator.upload_files(gallery_id, files)
            process.on_file_complete(lambda task_id, info: print(f"Done: {info.file.name}"))
            process.on_file_fail(lambda task_id, info: print(f"Failed: {info.file.name}"))
            process.on_finish(lambda result: print(f"{result.uploaded_files}/{result.total_files}"))

            result = await process.wait()
        """
        if self._transport is None:
            raise RuntimeError("UploadOrchestrator not initialized. Use 'async with' context.")
        sources = self._prepare(destination_id, files, concurrency)
        return UploadProcess(self, destination_id, sources, concurrency=concurrency)

    @staticmethod
    def _prepare(
        destination_id: str,
        files: Sequence[FileInput],
        concurrency: Optional[int],
    ) -> List[SourceFile]:
        validate_batch(destination_id, files, concurrency)
        return [_as_source_file(item) for item in files]

    def _dispatch_notification(self, destination_id: str, result: BatchUploadResult) -> None:
        """Notify subscribers in the background. The batch result does not wait for it."""
        if self._notifier is None or not result.uploaded_files:
            return

        task = asyncio.create_task(
            self._notifier.notify(destination_id, result),
            name=f"notify-{destination_id}",
        )
        self._notifications.add(task)
        task.add_done_callback(self._notification_done)

    def _notification_done(self, task: asyncio.Task) -> None:
        self._notifications.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error(f"[notify] Subscriber notification failed: {error}")
