"""
Models for gallery_uploader.

Immutable dataclasses describing files, task progress and configuration.
"""
import asyncio
import mimetypes
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Dict, FrozenSet, Optional


class UploadState(Enum):
    """State of a single file upload."""
    WAITING = "waiting"
    RUNNING = "running"
    RETRY = "retry"
    SUCCESS = "success"
    ERROR = "error"
    CANCELED = "canceled"

    @property
    def is_terminal(self) -> bool:
        return self in (UploadState.SUCCESS, UploadState.ERROR)

    def can_transition_to(self, target: "UploadState") -> bool:
        return target in _TRANSITIONS[self]


_TRANSITIONS: Dict[UploadState, FrozenSet[UploadState]] = {
    UploadState.WAITING: frozenset({UploadState.RUNNING}),
    UploadState.RUNNING: frozenset({
        UploadState.RUNNING,
        UploadState.SUCCESS,
        UploadState.RETRY,
        UploadState.ERROR,
        UploadState.CANCELED,
    }),
    UploadState.CANCELED: frozenset({UploadState.RETRY, UploadState.ERROR}),
    UploadState.RETRY: frozenset({UploadState.RUNNING}),
    UploadState.SUCCESS: frozenset(),
    UploadState.ERROR: frozenset(),
}


@dataclass(frozen=True)
class SourceFile:
    """Immutable reference to the content of one file to upload."""
    name: str
    size: int
    content_type: str = "application/octet-stream"
    path: Optional[Path] = None
    data: Optional[bytes] = field(default=None, repr=False)

    @classmethod
    def from_path(cls, path: Path) -> "SourceFile":
        path = Path(path)
        content_type, _ = mimetypes.guess_type(path.name)
        return cls(
            name=path.name,
            size=path.stat().st_size,
            content_type=content_type or "application/octet-stream",
            path=path,
        )

    @classmethod
    def from_bytes(cls, name: str, data: bytes, content_type: Optional[str] = None) -> "SourceFile":
        if content_type is None:
            content_type, _ = mimetypes.guess_type(name)
        return cls(
            name=name,
            size=len(data),
            content_type=content_type or "application/octet-stream",
            data=data,
        )

    @property
    def is_image(self) -> bool:
        return self.content_type.startswith("image/")

    @property
    def is_audio(self) -> bool:
        return self.content_type.startswith("audio/")

    async def read_bytes(self) -> bytes:
        """Return the file content, reading from disk off the event loop."""
        if self.data is not None:
            return self.data
        if self.path is None:
            raise ValueError(f"SourceFile {self.name} has neither data nor path")
        return await asyncio.to_thread(self.path.read_bytes)


@dataclass(frozen=True)
class CompressionOptions:
    """Limits handed to the compressor."""
    max_size_mb: float = 1.0
    max_dimension: int = 1920

    @property
    def max_size_bytes(self) -> int:
        return int(self.max_size_mb * 1024 * 1024)


@dataclass(frozen=True)
class UploadConfig:
    """Immutable tuning parameters for batch uploads (times in seconds)."""
    max_retry_attempts: int = 3
    retry_delay: float = 2.0
    upload_timeout: float = 30.0
    chunk_size: int = 50
    admission_pause: float = 0.5
    chunk_pause: float = 0.5
    default_concurrency: int = 1
    large_batch_threshold: int = 20
    medium_batch_threshold: int = 10
    reduced_concurrency: int = 2
    medium_concurrency: int = 2
    storage_prefix: str = "galleries"
    compression: CompressionOptions = field(default_factory=CompressionOptions)

    def __post_init__(self):
        if self.max_retry_attempts < 1:
            raise ValueError("max_retry_attempts must be at least 1")
        if self.chunk_size < 1:
            raise ValueError("chunk_size must be at least 1")
        for name in ("default_concurrency", "reduced_concurrency", "medium_concurrency"):
            if getattr(self, name) < 1:
                raise ValueError(f"{name} must be at least 1")
        if self.upload_timeout <= 0:
            raise ValueError("upload_timeout must be positive")
        for name in ("retry_delay", "admission_pause", "chunk_pause"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} cannot be negative")


@dataclass(frozen=True)
class UploadProgressInfo:
    """Snapshot of one task, as handed to progress callbacks."""
    file: SourceFile
    progress: float
    state: UploadState
    uploaded_bytes: int
    total_bytes: int
    attempt: int = 1


@dataclass(frozen=True)
class UploadedPhoto:
    """Record returned for every successfully uploaded file."""
    name: str
    url: str
    size: int
    content_type: str
    created_at: datetime

    def to_dict(self) -> Dict[str, object]:
        return {
            "name": self.name,
            "url": self.url,
            "size": self.size,
            "contentType": self.content_type,
            "createdAt": self.created_at.isoformat(),
        }


@dataclass(frozen=True)
class UploadSummary:
    """Aggregate view over every task of a batch. Always derived, never stored."""
    total: int = 0
    completed: int = 0
    failed: int = 0
    in_progress: int = 0
    waiting: int = 0
    overall_progress: float = 0.0
    total_size: int = 0
    uploaded_size: int = 0

    @property
    def finished(self) -> bool:
        return self.total > 0 and self.completed + self.failed == self.total


@dataclass(frozen=True)
class UploaderInfo:
    """Who uploaded a batch (guest or gallery owner)."""
    name: str
    email: Optional[str] = None
    uid: Optional[str] = None

    def to_dict(self) -> Dict[str, Optional[str]]:
        return {
            "uploaderName": self.name,
            "uploaderEmail": self.email,
            "uploaderUid": self.uid,
        }


@dataclass(frozen=True)
class NotificationResult:
    """Emails sent and failed for one subscriber notification."""
    success: int = 0
    failed: int = 0
