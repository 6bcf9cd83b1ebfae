"""
Gallery Uploader - batch photo uploads for event galleries.

Each file goes through its own upload task (compress, transfer, retry) while
a scheduler bounds how many run at once and a tracker aggregates progress.

Usage:
    from gallery_uploader import UploadOrchestrator, UploadConfig

    async with UploadOrchestrator(storage_bucket="bucket", api_url=api_url) as uploader:
        result = await uploader.upload_batch(gallery_id, paths, concurrency=3)

    # Event-based progress
    process = uploader.upload_files(gallery_id, paths)
    process.on_summary(lambda summary: print(f"{summary.overall_progress:.0f}%"))
    result = await process.wait()
"""
from .errors import (
    APIError,
    InvalidTransitionError,
    TransferTimeoutError,
    TransportError,
    UploaderError,
    UploadFailedError,
)
from .models import (
    CompressionOptions,
    SourceFile,
    UploadConfig,
    UploadedPhoto,
    UploaderInfo,
    UploadProgressInfo,
    UploadState,
    UploadSummary,
)
from .orchestrator import (
    BatchUploadResult,
    ProcessState,
    UploadFailure,
    UploadOrchestrator,
    UploadProcess,
    calculate_upload_summary,
)
from .services import (
    HTTPAPIClient,
    ImageCompressor,
    NotificationResult,
    ObjectStorageTransport,
    PhotoRepository,
    SubscriberNotifier,
)

__version__ = "0.1.0"
__all__ = [
    # Main
    "UploadOrchestrator",
    "UploadProcess",
    "ProcessState",
    "BatchUploadResult",
    "UploadFailure",
    "calculate_upload_summary",
    # Models
    "CompressionOptions",
    "SourceFile",
    "UploadConfig",
    "UploadedPhoto",
    "UploaderInfo",
    "UploadProgressInfo",
    "UploadState",
    "UploadSummary",
    # Errors
    "UploaderError",
    "TransportError",
    "TransferTimeoutError",
    "UploadFailedError",
    "InvalidTransitionError",
    "APIError",
    # Services
    "HTTPAPIClient",
    "ImageCompressor",
    "NotificationResult",
    "ObjectStorageTransport",
    "PhotoRepository",
    "SubscriberNotifier",
]
