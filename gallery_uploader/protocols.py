"""
Protocols (Interfaces) for Dependency Inversion.

The orchestrator only talks to its collaborators through these.
"""
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Optional, Protocol, runtime_checkable

from .models import CompressionOptions, NotificationResult, SourceFile

ProgressCallback = Callable[[int, int], None]


@runtime_checkable
class ICompressor(Protocol):
    """Interface for media compression."""

    async def compress(self, file: SourceFile, options: CompressionOptions) -> SourceFile:
        """Return a possibly smaller file. Must not raise."""
        ...


@runtime_checkable
class ITransferHandle(Protocol):
    """Handle to one in-flight transfer."""

    async def result(self) -> str:
        """Wait for the transfer and return the download URL."""
        ...

    def cancel(self) -> None:
        """Abort the transfer."""
        ...


@runtime_checkable
class ITransport(Protocol):
    """Interface for object storage transfers."""

    def start_transfer(
        self,
        key: str,
        payload: bytes,
        content_type: str,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> ITransferHandle:
        """Start uploading payload under key."""
        ...


@runtime_checkable
class IAPIClient(Protocol):
    """Interface for API operations."""

    async def post(self, endpoint: str, json: Dict) -> Any:
        """POST request to API."""
        ...

    async def get(self, endpoint: str) -> Any:
        """GET request to API."""
        ...


class INotifier(ABC):
    """Receives a notification once a batch has finished."""

    @abstractmethod
    async def notify(self, destination_id: str, result: Any) -> NotificationResult:
        pass
